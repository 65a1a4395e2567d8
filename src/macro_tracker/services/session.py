"""Per-user service graph and its lifecycle."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from macro_tracker.domain.models import UserRecord
from macro_tracker.errors import NotAuthenticatedError
from macro_tracker.services.daily_totals import DailyTotalsCache
from macro_tracker.services.foods import FoodCatalog
from macro_tracker.services.meals import MealStore
from macro_tracker.services.remote import RemoteCall
from macro_tracker.services.user_settings import UserSettingsService

_logger = logging.getLogger(__name__)


class AuthClient(Protocol):
    """Interface to the external auth provider."""

    async def current_user(self) -> UserRecord | None:
        """Return the signed-in user, if any."""

    async def sign_in(self, email: str, password: str) -> UserRecord:
        """Sign in with email and password."""

    async def sign_out(self) -> None:
        """End the current auth session."""


@dataclass
class UserSession:
    """Everything cached on behalf of one signed-in user."""

    user: UserRecord
    meals: MealStore
    foods: FoodCatalog
    settings: UserSettingsService

    @property
    def totals(self) -> DailyTotalsCache:
        return self.meals.totals

    def close(self) -> None:
        """Drop all cached state for this user."""
        self.totals.clear()
        self.meals.meals = []
        self.foods.foods = []
        self.settings.goals = None


SessionFactory = Callable[[UserRecord], UserSession]


@dataclass
class SessionManager:
    """Hands out the session of whoever is signed in right now.

    A session is never reused across users: when the auth user changes or
    disappears the previous session is closed first.
    """

    auth: AuthClient
    factory: SessionFactory
    remote: RemoteCall = field(default_factory=RemoteCall)
    _session: UserSession | None = field(default=None, init=False)

    async def current(self) -> UserSession:
        """Return the session for the signed-in user."""
        user = await self.remote.read(self.auth.current_user, action="current_user")
        if user is None:
            self._close()
            raise NotAuthenticatedError("No user found")
        if self._session is not None and self._session.user.id != user.id:
            _logger.info("Signed-in user changed; discarding cached session")
            self._close()
        if self._session is None:
            self._session = self.factory(user)
        return self._session

    async def sign_in(self, email: str, password: str) -> UserSession:
        """Sign in and return the new user's session."""
        await self.remote.write(
            lambda: self.auth.sign_in(email, password), action="sign_in"
        )
        return await self.current()

    async def sign_out(self) -> None:
        """Sign out and discard the session."""
        try:
            await self.remote.write(self.auth.sign_out, action="sign_out")
        finally:
            self._close()

    def _close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None
