"""Supabase auth adapter."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from supabase import AsyncClient

from macro_tracker.domain.models import UserRecord
from macro_tracker.errors import NotAuthenticatedError
from macro_tracker.services.session import AuthClient


@dataclass
class SupabaseAuthClient(AuthClient):
    """Reads the signed-in user from Supabase auth."""

    client: AsyncClient

    async def current_user(self) -> UserRecord | None:
        """Return the signed-in user, if any."""
        response = await self.client.auth.get_user()
        if response is None or response.user is None:
            return None
        return _to_record(response.user)

    async def sign_in(self, email: str, password: str) -> UserRecord:
        """Sign in with email and password."""
        response = await self.client.auth.sign_in_with_password(
            {"email": email, "password": password}
        )
        if response.user is None:
            raise NotAuthenticatedError("Sign in returned no user")
        return _to_record(response.user)

    async def sign_out(self) -> None:
        """End the Supabase auth session."""
        await self.client.auth.sign_out()


class _AuthUser(Protocol):
    id: str
    email: str | None


def _to_record(user: _AuthUser) -> UserRecord:
    return UserRecord(id=UUID(str(user.id)), email=user.email)
