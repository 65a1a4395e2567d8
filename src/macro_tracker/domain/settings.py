"""Domain models for user goals."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from macro_tracker.domain.nutrition import calories_from_macros


@dataclass(frozen=True)
class UserGoals:
    """Stored daily targets for a user."""

    user_id: UUID
    calorie_goal: int
    protein_goal: int
    carb_goal: int
    fat_goal: int
    bulk_cut_start_date: datetime | None = None


class GoalsUpdate(BaseModel):
    """Goals entered on the settings screen."""

    protein_goal: int = Field(ge=0)
    carb_goal: int = Field(ge=0)
    fat_goal: int = Field(ge=0)

    @property
    def calorie_goal(self) -> int:
        return int(
            calories_from_macros(self.protein_goal, self.carb_goal, self.fat_goal)
        )
