"""Nutrition domain models."""

from dataclasses import dataclass

PROTEIN_KCAL_PER_G = 4
CARBS_KCAL_PER_G = 4
FAT_KCAL_PER_G = 9


@dataclass(frozen=True)
class MacroProfile:
    """Calories and macronutrients, used for totals and signed deltas."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float

    @classmethod
    def zero(cls) -> "MacroProfile":
        """Return an all-zero profile."""
        return cls(calories=0.0, protein_g=0.0, carbs_g=0.0, fat_g=0.0)

    def __add__(self, other: "MacroProfile") -> "MacroProfile":
        return MacroProfile(
            calories=self.calories + other.calories,
            protein_g=self.protein_g + other.protein_g,
            carbs_g=self.carbs_g + other.carbs_g,
            fat_g=self.fat_g + other.fat_g,
        )

    def __neg__(self) -> "MacroProfile":
        return MacroProfile(
            calories=-self.calories,
            protein_g=-self.protein_g,
            carbs_g=-self.carbs_g,
            fat_g=-self.fat_g,
        )

    def __sub__(self, other: "MacroProfile") -> "MacroProfile":
        return self + (-other)

    def scaled(self, factor: float) -> "MacroProfile":
        """Return the profile multiplied by a quantity factor."""
        return MacroProfile(
            calories=self.calories * factor,
            protein_g=self.protein_g * factor,
            carbs_g=self.carbs_g * factor,
            fat_g=self.fat_g * factor,
        )


def calories_from_macros(protein_g: float, carbs_g: float, fat_g: float) -> float:
    """Derive calories using 4/4/9 kcal per gram."""
    return (
        protein_g * PROTEIN_KCAL_PER_G
        + carbs_g * CARBS_KCAL_PER_G
        + fat_g * FAT_KCAL_PER_G
    )
