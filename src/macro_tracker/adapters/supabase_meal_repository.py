"""Supabase repository for meals and meal lines."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import AsyncClient

from macro_tracker.domain.meals import (
    FoodSnapshot,
    Meal,
    MealDraft,
    MealLine,
    MealRow,
)
from macro_tracker.domain.nutrition import MacroProfile
from macro_tracker.services.meals import MealRepository

_MEAL_COLUMNS = "id, user_id, name, created_at, protein, carbs, fat, calories"
_LINE_COLUMNS = (
    "id, meal_id, food_id, food_name, food_protein, food_carbs, food_fat, "
    "serving_size, quantity, is_quick_macro"
)


@dataclass
class SupabaseMealRepository(MealRepository):
    """Supabase implementation for the ``meals`` and ``meal_foods`` tables."""

    client: AsyncClient

    async def create_meal(self, user_id: UUID, draft: MealDraft) -> Meal:
        """Create a meal row and return it."""
        response = (
            await self.client.table("meals")
            .insert({"user_id": str(user_id), **_meal_payload(draft)})
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create meal")
        return _parse_meal(response.data[0])

    async def update_meal(self, meal_id: int, draft: MealDraft) -> None:
        """Replace a meal row's scalar fields."""
        await (
            self.client.table("meals")
            .update(_meal_payload(draft))
            .eq("id", meal_id)
            .execute()
        )

    async def delete_meal(self, meal_id: int) -> None:
        """Delete a meal row."""
        await self.client.table("meals").delete().eq("id", meal_id).execute()

    async def get_meal(self, meal_id: int) -> Meal | None:
        """Return a meal row by id."""
        response = (
            await self.client.table("meals")
            .select(_MEAL_COLUMNS)
            .eq("id", meal_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_meal(response.data[0])

    async def list_meals(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[Meal]:
        """Return meals in the time range, newest first."""
        response = (
            await self.client.table("meals")
            .select(_MEAL_COLUMNS)
            .eq("user_id", str(user_id))
            .gte("created_at", start.isoformat())
            .lt("created_at", end.isoformat())
            .order("created_at", desc=True)
            .execute()
        )
        return [_parse_meal(row) for row in response.data or []]

    async def list_meal_macros(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[MealRow]:
        """Return the stored macros of meals in the time range."""
        response = (
            await self.client.table("meals")
            .select("id, created_at, protein, carbs, fat, calories")
            .eq("user_id", str(user_id))
            .gte("created_at", start.isoformat())
            .lt("created_at", end.isoformat())
            .execute()
        )
        return [_parse_row(row) for row in response.data or []]

    async def create_meal_line(  # noqa: PLR0913
        self,
        meal_id: int,
        food_id: int | None,
        snapshot: FoodSnapshot,
        quantity: float,
        is_quick_macro: bool,
    ) -> MealLine:
        """Create a meal line row carrying the food snapshot."""
        response = (
            await self.client.table("meal_foods")
            .insert(
                {
                    "meal_id": meal_id,
                    "food_id": food_id,
                    "food_name": snapshot.name,
                    "food_protein": snapshot.protein_g,
                    "food_carbs": snapshot.carbs_g,
                    "food_fat": snapshot.fat_g,
                    "serving_size": snapshot.serving_size_g,
                    "quantity": quantity,
                    "is_quick_macro": is_quick_macro,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create meal line")
        return _parse_line(response.data[0])

    async def list_meal_lines(self, meal_id: int) -> list[MealLine]:
        """Return the lines of a meal."""
        response = (
            await self.client.table("meal_foods")
            .select(_LINE_COLUMNS)
            .eq("meal_id", meal_id)
            .order("id", desc=False)
            .execute()
        )
        return [_parse_line(row) for row in response.data or []]

    async def delete_meal_lines(self, meal_id: int) -> None:
        """Delete every line of a meal."""
        await self.client.table("meal_foods").delete().eq("meal_id", meal_id).execute()


def _meal_payload(draft: MealDraft) -> dict[str, object]:
    return {
        "name": draft.name,
        "created_at": draft.created_at.isoformat(),
        "protein": draft.protein_g,
        "carbs": draft.carbs_g,
        "fat": draft.fat_g,
        "calories": draft.resolved_calories,
    }


def _parse_timestamp(raw: object) -> datetime:
    if isinstance(raw, datetime):
        return raw
    return datetime.fromisoformat(str(raw))


def _parse_meal(row: dict[str, object]) -> Meal:
    return Meal(
        id=int(row["id"]),
        user_id=UUID(str(row["user_id"])),
        name=str(row.get("name") or ""),
        created_at=_parse_timestamp(row["created_at"]),
        protein_g=float(row.get("protein") or 0.0),
        carbs_g=float(row.get("carbs") or 0.0),
        fat_g=float(row.get("fat") or 0.0),
        calories=float(row.get("calories") or 0.0),
    )


def _parse_row(row: dict[str, object]) -> MealRow:
    return MealRow(
        meal_id=int(row["id"]),
        created_at=_parse_timestamp(row["created_at"]),
        macros=MacroProfile(
            calories=float(row.get("calories") or 0.0),
            protein_g=float(row.get("protein") or 0.0),
            carbs_g=float(row.get("carbs") or 0.0),
            fat_g=float(row.get("fat") or 0.0),
        ),
    )


def _parse_line(row: dict[str, object]) -> MealLine:
    serving_size = row.get("serving_size")
    return MealLine(
        id=int(row["id"]),
        meal_id=int(row["meal_id"]),
        food_id=int(row["food_id"]) if row.get("food_id") is not None else None,
        snapshot=FoodSnapshot(
            name=str(row.get("food_name") or ""),
            protein_g=float(row.get("food_protein") or 0.0),
            carbs_g=float(row.get("food_carbs") or 0.0),
            fat_g=float(row.get("food_fat") or 0.0),
            serving_size_g=float(serving_size) if serving_size is not None else None,
        ),
        quantity=float(row.get("quantity") or 0.0),
        is_quick_macro=bool(row.get("is_quick_macro")),
    )
