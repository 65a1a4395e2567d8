"""Supabase repository for user settings."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import AsyncClient

from macro_tracker.domain.settings import UserGoals
from macro_tracker.services.user_settings import UserSettingsRepository


@dataclass
class SupabaseUserSettingsRepository(UserSettingsRepository):
    """Supabase implementation for user settings."""

    client: AsyncClient

    async def get_settings(self, user_id: UUID) -> UserGoals | None:
        """Return the stored goals for a user."""
        response = (
            await self.client.table("user_settings")
            .select("*")
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_settings(response.data[0])

    async def upsert_settings(
        self, user_id: UUID, payload: dict[str, object]
    ) -> UserGoals:
        """Insert or update the user's settings row."""
        response = (
            await self.client.table("user_settings")
            .upsert({"user_id": str(user_id), **payload}, on_conflict="user_id")
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to save user settings")
        return _parse_settings(response.data[0])


def _parse_settings(row: dict[str, object]) -> UserGoals:
    start_raw = row.get("bulk_cut_start_date")
    return UserGoals(
        user_id=UUID(str(row["user_id"])),
        calorie_goal=int(row.get("calorie_goal") or 0),
        protein_goal=int(row.get("protein_goal") or 0),
        carb_goal=int(row.get("carb_goal") or 0),
        fat_goal=int(row.get("fat_goal") or 0),
        bulk_cut_start_date=(
            datetime.fromisoformat(start_raw)
            if isinstance(start_raw, str) and start_raw
            else None
        ),
    )
