"""Domain models for the macro tracker."""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class UserRecord:
    """Represents the signed-in auth user."""

    id: UUID
    email: str | None = None
