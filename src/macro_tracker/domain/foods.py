"""Domain models for the food catalog."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


@dataclass(frozen=True)
class Food:
    """A reusable food definition with macros per serving."""

    id: int
    user_id: UUID
    name: str
    protein_g: float
    carbs_g: float
    fat_g: float
    serving_size_g: float | None = None
    created_at: datetime | None = None


class FoodDraft(BaseModel):
    """User input for a new catalog food."""

    name: str = Field(min_length=1)
    protein_g: float = Field(ge=0)
    carbs_g: float = Field(ge=0)
    fat_g: float = Field(ge=0)
    serving_size_g: float | None = Field(default=None, gt=0)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("name must not be blank")
        return stripped
