"""Supabase implementation for the food catalog."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import AsyncClient

from macro_tracker.domain.foods import Food, FoodDraft
from macro_tracker.services.foods import FoodRepository


@dataclass
class SupabaseFoodRepository(FoodRepository):
    """Supabase-backed repository for the ``foods`` table."""

    client: AsyncClient

    async def list_foods(self, user_id: UUID) -> list[Food]:
        """Return every food owned by a user."""
        response = (
            await self.client.table("foods")
            .select("*")
            .eq("user_id", str(user_id))
            .order("name", desc=False)
            .execute()
        )
        return [_parse_food(row) for row in response.data or []]

    async def get_food(self, food_id: int) -> Food | None:
        """Return a food by id, if present."""
        response = (
            await self.client.table("foods")
            .select("*")
            .eq("id", food_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_food(response.data[0])

    async def create_food(self, user_id: UUID, draft: FoodDraft) -> Food:
        """Create a food and return it."""
        response = (
            await self.client.table("foods")
            .insert(
                {
                    "user_id": str(user_id),
                    "name": draft.name,
                    "protein": draft.protein_g,
                    "carbs": draft.carbs_g,
                    "fat": draft.fat_g,
                    "serving_size": draft.serving_size_g,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create food")
        return _parse_food(response.data[0])

    async def delete_food(self, food_id: int) -> None:
        """Delete a food."""
        await self.client.table("foods").delete().eq("id", food_id).execute()


def _parse_food(row: dict[str, object]) -> Food:
    """Parse a foods row into a domain model."""
    created_raw = row.get("created_at")
    created_at = (
        datetime.fromisoformat(created_raw)
        if isinstance(created_raw, str) and created_raw
        else None
    )
    serving_size = row.get("serving_size")
    return Food(
        id=int(row["id"]),
        user_id=UUID(str(row["user_id"])),
        name=str(row.get("name", "")),
        protein_g=float(row.get("protein") or 0.0),
        carbs_g=float(row.get("carbs") or 0.0),
        fat_g=float(row.get("fat") or 0.0),
        serving_size_g=float(serving_size) if serving_size is not None else None,
        created_at=created_at,
    )
