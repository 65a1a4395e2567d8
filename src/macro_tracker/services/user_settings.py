"""User goals service."""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Protocol
from uuid import UUID

from macro_tracker.domain.settings import GoalsUpdate, UserGoals
from macro_tracker.domain.stats import DailyTotals, MacroProgress
from macro_tracker.services.remote import RemoteCall


class UserSettingsRepository(Protocol):
    """Persistence interface for user settings."""

    async def get_settings(self, user_id: UUID) -> UserGoals | None:
        """Return the user's goals if set."""

    async def upsert_settings(
        self, user_id: UUID, payload: dict[str, object]
    ) -> UserGoals:
        """Insert or update the user's settings row and return it."""


@dataclass
class UserSettingsService:
    """Reads and edits the targets the dashboard compares totals against."""

    user_id: UUID
    repository: UserSettingsRepository
    remote: RemoteCall = field(default_factory=RemoteCall)
    goals: UserGoals | None = None

    async def get_goals(self, refresh: bool = False) -> UserGoals | None:
        """Return the user's goals, fetching them once per session."""
        if self.goals is None or refresh:
            self.goals = await self.remote.read(
                lambda: self.repository.get_settings(self.user_id),
                action="get_settings",
            )
        return self.goals

    async def save_goals(self, update: GoalsUpdate) -> UserGoals:
        """Store new macro goals with the calorie goal derived from them."""
        return await self._upsert(_goals_payload(update))

    async def start_bulk_cut(
        self, update: GoalsUpdate, now: datetime | None = None
    ) -> UserGoals:
        """Store goals and start the bulk/cut day counter."""
        started_at = now or datetime.now(tz=UTC)
        payload = _goals_payload(update)
        payload["bulk_cut_start_date"] = started_at.isoformat()
        return await self._upsert(payload)

    async def _upsert(self, payload: dict[str, object]) -> UserGoals:
        self.goals = await self.remote.write(
            lambda: self.repository.upsert_settings(self.user_id, payload),
            action="upsert_settings",
        )
        return self.goals


def bulk_cut_day(goals: UserGoals, day: date) -> int | None:
    """Return the 1-based day number of ``day`` in the current bulk/cut."""
    if goals.bulk_cut_start_date is None:
        return None
    start = goals.bulk_cut_start_date
    if start.tzinfo is not None:
        start = start.astimezone(UTC)
    return (day - start.date()).days + 1


def goal_progress(totals: DailyTotals, goals: UserGoals) -> list[MacroProgress]:
    """Return the dashboard rows for calories, protein, carbs and fat."""
    rows = (
        ("Calories", totals.calories, goals.calorie_goal),
        ("Protein", totals.protein_g, goals.protein_goal),
        ("Carbs", totals.carbs_g, goals.carb_goal),
        ("Fat", totals.fat_g, goals.fat_goal),
    )
    return [
        MacroProgress(
            name=name,
            current=current,
            goal=goal,
            remaining=goal - current,
            percentage=min(current / goal * 100, 100.0) if goal > 0 else 0.0,
        )
        for name, current, goal in rows
    ]


def _goals_payload(update: GoalsUpdate) -> dict[str, object]:
    return {
        "calorie_goal": update.calorie_goal,
        "protein_goal": update.protein_goal,
        "carb_goal": update.carb_goal,
        "fat_goal": update.fat_goal,
    }
