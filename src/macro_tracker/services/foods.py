"""Services for managing the user food catalog."""

import math
from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

from macro_tracker.domain.foods import Food, FoodDraft
from macro_tracker.services.remote import RemoteCall


class FoodRepository(Protocol):
    """Persistence interface for catalog foods."""

    async def list_foods(self, user_id: UUID) -> list[Food]:
        """Return every food owned by a user."""

    async def get_food(self, food_id: int) -> Food | None:
        """Return a food by id, if present."""

    async def create_food(self, user_id: UUID, draft: FoodDraft) -> Food:
        """Create a food and return it."""

    async def delete_food(self, food_id: int) -> None:
        """Delete a food."""


@dataclass
class FoodCatalog:
    """The current user's reusable foods with a local list cache.

    Removing a food never touches meal lines: they carry their own snapshot.
    """

    user_id: UUID
    repository: FoodRepository
    remote: RemoteCall = field(default_factory=RemoteCall)
    foods: list[Food] = field(default_factory=list)

    async def refresh(self) -> list[Food]:
        """Reload the full food list."""
        self.foods = await self.remote.read(
            lambda: self.repository.list_foods(self.user_id), action="list_foods"
        )
        return self.foods

    async def add(self, draft: FoodDraft) -> list[Food]:
        """Create a food with macros rounded to whole grams, then reload."""
        rounded = draft.model_copy(
            update={
                "protein_g": _round_half_up(draft.protein_g),
                "carbs_g": _round_half_up(draft.carbs_g),
                "fat_g": _round_half_up(draft.fat_g),
            }
        )
        await self.remote.write(
            lambda: self.repository.create_food(self.user_id, rounded),
            action="create_food",
        )
        return await self.refresh()

    async def remove(self, food_id: int) -> list[Food]:
        """Delete a food, then reload."""
        await self.remote.write(
            lambda: self.repository.delete_food(food_id), action="delete_food"
        )
        return await self.refresh()

    def find(self, food_id: int) -> Food | None:
        """Return a food from the local list."""
        for food in self.foods:
            if food.id == food_id:
                return food
        return None

    def by_id(self) -> dict[int, Food]:
        """Return the local list keyed by id."""
        return {food.id: food for food in self.foods}


def _round_half_up(value: float) -> float:
    return float(math.floor(value + 0.5))
