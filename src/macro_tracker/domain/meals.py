"""Domain models for meals and their food lines."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from macro_tracker.domain.days import day_key
from macro_tracker.domain.foods import Food
from macro_tracker.domain.nutrition import MacroProfile, calories_from_macros
from macro_tracker.errors import NotFoundError


@dataclass(frozen=True)
class FoodSnapshot:
    """Macros copied into a meal line when it is written.

    Later edits or deletion of the source food never touch a snapshot.
    """

    name: str
    protein_g: float
    carbs_g: float
    fat_g: float
    serving_size_g: float | None = None

    @classmethod
    def from_food(cls, food: Food) -> "FoodSnapshot":
        """Copy a catalog food's current values."""
        return cls(
            name=food.name,
            protein_g=food.protein_g,
            carbs_g=food.carbs_g,
            fat_g=food.fat_g,
            serving_size_g=food.serving_size_g,
        )

    @property
    def macros(self) -> MacroProfile:
        return MacroProfile(
            calories=calories_from_macros(self.protein_g, self.carbs_g, self.fat_g),
            protein_g=self.protein_g,
            carbs_g=self.carbs_g,
            fat_g=self.fat_g,
        )


@dataclass(frozen=True)
class MealLine:
    """A persisted meal line row."""

    id: int
    meal_id: int
    food_id: int | None
    snapshot: FoodSnapshot
    quantity: float
    is_quick_macro: bool


@dataclass(frozen=True)
class Meal:
    """A persisted meal with its stored totals."""

    id: int
    user_id: UUID
    name: str
    created_at: datetime
    protein_g: float
    carbs_g: float
    fat_g: float
    calories: float
    lines: list[MealLine] = field(default_factory=list)

    @property
    def macros(self) -> MacroProfile:
        return MacroProfile(
            calories=self.calories,
            protein_g=self.protein_g,
            carbs_g=self.carbs_g,
            fat_g=self.fat_g,
        )

    @property
    def day_key(self) -> str:
        return day_key(self.created_at)


@dataclass(frozen=True)
class MealRow:
    """Macro-only projection of a meal used for day aggregation."""

    meal_id: int
    created_at: datetime
    macros: MacroProfile


class MealLineInput(BaseModel):
    """A line to attach to a meal: a catalog food or a quick macro entry."""

    food_id: int | None = None
    quantity: float = Field(default=1, gt=0)
    is_quick_macro: bool = False
    name: str | None = None
    protein_g: float = Field(default=0, ge=0)
    carbs_g: float = Field(default=0, ge=0)
    fat_g: float = Field(default=0, ge=0)
    serving_size_g: float | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _check_source(self) -> "MealLineInput":
        if self.is_quick_macro:
            if not self.name:
                raise ValueError("quick macro lines need a name")
        elif self.food_id is None:
            raise ValueError("food lines need a food_id")
        return self

    def quick_snapshot(self) -> FoodSnapshot:
        """Return the inline values of a quick macro line as its snapshot."""
        return FoodSnapshot(
            name=self.name or "Quick macro",
            protein_g=self.protein_g,
            carbs_g=self.carbs_g,
            fat_g=self.fat_g,
            serving_size_g=self.serving_size_g,
        )


class MealDraft(BaseModel):
    """Scalar fields of a meal about to be written.

    ``calories`` is derived from the macros when omitted; either way the value
    is stored and trusted from then on.
    """

    name: str = Field(min_length=1)
    created_at: datetime
    protein_g: float = Field(ge=0)
    carbs_g: float = Field(ge=0)
    fat_g: float = Field(ge=0)
    calories: float | None = Field(default=None, ge=0)

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @property
    def resolved_calories(self) -> float:
        if self.calories is not None:
            return self.calories
        return calories_from_macros(self.protein_g, self.carbs_g, self.fat_g)

    @property
    def macros(self) -> MacroProfile:
        return MacroProfile(
            calories=self.resolved_calories,
            protein_g=self.protein_g,
            carbs_g=self.carbs_g,
            fat_g=self.fat_g,
        )

    @classmethod
    def from_meal(cls, meal: Meal) -> "MealDraft":
        """Return the scalar fields currently stored on a meal."""
        return cls(
            name=meal.name,
            created_at=meal.created_at,
            protein_g=meal.protein_g,
            carbs_g=meal.carbs_g,
            fat_g=meal.fat_g,
            calories=meal.calories,
        )

    @classmethod
    def from_lines(
        cls,
        name: str,
        created_at: datetime,
        lines: list[MealLineInput],
        foods: Mapping[int, Food],
    ) -> "MealDraft":
        """Build a draft whose macros sum each line's values times quantity."""
        total = MacroProfile.zero()
        for line in lines:
            if line.is_quick_macro:
                snapshot = line.quick_snapshot()
            else:
                food = foods.get(line.food_id)
                if food is None:
                    raise NotFoundError("Food", line.food_id)
                snapshot = FoodSnapshot.from_food(food)
            total = total + snapshot.macros.scaled(line.quantity)
        return cls(
            name=name,
            created_at=created_at,
            protein_g=total.protein_g,
            carbs_g=total.carbs_g,
            fat_g=total.fat_g,
        )


class MealUpdate(MealDraft):
    """Replacement scalar fields and lines for an existing meal."""

    lines: list[MealLineInput] = Field(default_factory=list)
