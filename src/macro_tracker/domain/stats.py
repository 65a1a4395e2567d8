"""Domain models for daily statistics."""

from dataclasses import dataclass

from macro_tracker.domain.nutrition import MacroProfile


@dataclass(frozen=True)
class DailyTotals:
    """Aggregated macros for one day key."""

    day_key: str
    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float

    @classmethod
    def empty(cls, day_key: str) -> "DailyTotals":
        return cls(day_key=day_key, calories=0.0, protein_g=0.0, carbs_g=0.0, fat_g=0.0)

    @classmethod
    def from_macros(cls, day_key: str, macros: MacroProfile) -> "DailyTotals":
        return cls(
            day_key=day_key,
            calories=macros.calories,
            protein_g=macros.protein_g,
            carbs_g=macros.carbs_g,
            fat_g=macros.fat_g,
        )

    @property
    def macros(self) -> MacroProfile:
        return MacroProfile(
            calories=self.calories,
            protein_g=self.protein_g,
            carbs_g=self.carbs_g,
            fat_g=self.fat_g,
        )


@dataclass(frozen=True)
class MacroProgress:
    """One dashboard row comparing a day's total to its goal."""

    name: str
    current: float
    goal: float
    remaining: float
    percentage: float
