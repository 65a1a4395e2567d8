"""Exception types raised by macro tracker services."""


class MacroTrackerError(Exception):
    """Base class for macro tracker errors."""


class NotFoundError(MacroTrackerError):
    """A referenced food or meal does not exist."""

    def __init__(self, entity: str, entity_id: object) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class NotAuthenticatedError(MacroTrackerError):
    """No user is signed in."""


class RemoteFailure(MacroTrackerError):
    """A call to the remote store failed or timed out."""

    def __init__(self, action: str, cause: BaseException | None = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Remote call {action} failed{detail}")
        self.action = action
        self.cause = cause


class PartialWriteFailure(MacroTrackerError):
    """A multi-step meal write failed partway through.

    ``compensated`` tells whether the steps already applied were undone.
    """

    def __init__(
        self, meal_id: int | None, step: str, *, compensated: bool
    ) -> None:
        state = "rolled back" if compensated else "left partially written"
        super().__init__(f"Meal {meal_id} write failed at {step}; {state}")
        self.meal_id = meal_id
        self.step = step
        self.compensated = compensated
