"""Meal store: meal CRUD that keeps daily totals in step."""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Protocol
from uuid import UUID

from macro_tracker.domain.days import day_bounds, day_key
from macro_tracker.domain.meals import (
    FoodSnapshot,
    Meal,
    MealDraft,
    MealLine,
    MealLineInput,
    MealRow,
    MealUpdate,
)
from macro_tracker.errors import MacroTrackerError, NotFoundError, PartialWriteFailure
from macro_tracker.services.daily_totals import DailyTotalsCache
from macro_tracker.services.foods import FoodRepository
from macro_tracker.services.remote import RemoteCall

_logger = logging.getLogger(__name__)


class MealRepository(Protocol):
    """Persistence interface for meals and meal lines."""

    async def create_meal(self, user_id: UUID, draft: MealDraft) -> Meal:
        """Create a meal row and return it without lines."""

    async def update_meal(self, meal_id: int, draft: MealDraft) -> None:
        """Replace a meal row's scalar fields."""

    async def delete_meal(self, meal_id: int) -> None:
        """Delete a meal row."""

    async def get_meal(self, meal_id: int) -> Meal | None:
        """Return a meal row by id without lines, if present."""

    async def list_meals(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[Meal]:
        """Return meals in ``[start, end)`` newest first, without lines."""

    async def list_meal_macros(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[MealRow]:
        """Return the stored macros of meals in ``[start, end)``."""

    async def create_meal_line(  # noqa: PLR0913
        self,
        meal_id: int,
        food_id: int | None,
        snapshot: FoodSnapshot,
        quantity: float,
        is_quick_macro: bool,
    ) -> MealLine:
        """Create a meal line row and return it."""

    async def list_meal_lines(self, meal_id: int) -> list[MealLine]:
        """Return the lines of a meal."""

    async def delete_meal_lines(self, meal_id: int) -> None:
        """Delete every line of a meal."""


@dataclass
class MealStore:
    """Meal CRUD for one user.

    Every confirmed write is mirrored into ``totals`` as a signed delta, so the
    dashboard never needs a refetch after create, update or delete. Writes that
    fail partway are undone with compensating writes before the error is raised.
    """

    user_id: UUID
    repository: MealRepository
    food_repository: FoodRepository
    remote: RemoteCall = field(default_factory=RemoteCall)
    stale_refresh_attempts: int = 3
    meals: list[Meal] = field(default_factory=list)
    totals: DailyTotalsCache = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.totals = DailyTotalsCache(
            source=self, stale_refresh_attempts=self.stale_refresh_attempts
        )

    async def create(self, draft: MealDraft, lines: list[MealLineInput]) -> Meal:
        """Write a meal and its lines, then add its macros to the day's total."""
        snapshots = await self._resolve_snapshots(lines)
        with self.totals.pending_write(draft.created_at):
            meal = await self.remote.write(
                lambda: self.repository.create_meal(self.user_id, draft),
                action="create_meal",
            )
            written: list[MealLine] = []
            try:
                for line, snapshot in zip(lines, snapshots, strict=True):
                    written.append(await self._write_line(meal.id, line, snapshot))
            except MacroTrackerError as exc:
                _logger.exception("Failed to write lines for meal %s", meal.id)
                compensated = await self._discard(meal.id)
                if not compensated:
                    self.totals.invalidate(meal.created_at)
                raise PartialWriteFailure(
                    meal.id, "create_meal_line", compensated=compensated
                ) from exc

            meal = replace(meal, lines=written)
            self.meals.insert(0, meal)
            self.totals.apply_delta(meal.created_at, meal.macros)
        return meal

    async def update(self, meal_id: int, update: MealUpdate) -> Meal:
        """Replace a meal's fields and lines and move its macros between days.

        The old macros are always subtracted from the old day and the new
        macros added to the new day, even when the day is unchanged.
        """
        current = await self._find(meal_id)
        snapshots = await self._resolve_snapshots(update.lines)
        with self.totals.pending_write(current.created_at, update.created_at):
            await self.remote.write(
                lambda: self.repository.delete_meal_lines(meal_id),
                action="delete_meal_lines",
            )
            try:
                await self.remote.write(
                    lambda: self.repository.update_meal(meal_id, update),
                    action="update_meal",
                )
                written = [
                    await self._write_line(meal_id, line, snapshot)
                    for line, snapshot in zip(update.lines, snapshots, strict=True)
                ]
            except MacroTrackerError as exc:
                _logger.exception("Failed to update meal %s", meal_id)
                compensated = await self._restore(current)
                self.totals.invalidate(current.created_at)
                self.totals.invalidate(update.created_at)
                raise PartialWriteFailure(
                    meal_id, "update_meal", compensated=compensated
                ) from exc

            updated = Meal(
                id=meal_id,
                user_id=current.user_id,
                name=update.name,
                created_at=update.created_at,
                protein_g=update.protein_g,
                carbs_g=update.carbs_g,
                fat_g=update.fat_g,
                calories=update.resolved_calories,
                lines=written,
            )
            self.meals = [
                updated if meal.id == meal_id else meal for meal in self.meals
            ]
            self.totals.apply_delta(current.created_at, -current.macros)
            self.totals.apply_delta(updated.created_at, updated.macros)
        return updated

    async def delete(self, meal_id: int) -> None:
        """Delete a meal's lines and row, then subtract it from its day."""
        meal = await self._find(meal_id)
        with self.totals.pending_write(meal.created_at):
            await self.remote.write(
                lambda: self.repository.delete_meal_lines(meal_id),
                action="delete_meal_lines",
            )
            try:
                await self.remote.write(
                    lambda: self.repository.delete_meal(meal_id),
                    action="delete_meal",
                )
            except MacroTrackerError as exc:
                _logger.exception("Failed to delete meal %s", meal_id)
                compensated = await self._restore_lines(meal)
                self.totals.invalidate(meal.created_at)
                raise PartialWriteFailure(
                    meal_id, "delete_meal", compensated=compensated
                ) from exc

            self.meals = [item for item in self.meals if item.id != meal_id]
            self.totals.apply_delta(meal.created_at, -meal.macros)

    async def fetch_range(self, start: datetime, end: datetime) -> list[Meal]:
        """Return meals in ``[start, end)`` newest first, each with its lines."""
        meals = await self.remote.read(
            lambda: self.repository.list_meals(self.user_id, start, end),
            action="list_meals",
        )
        lines = await asyncio.gather(*(self._load_lines(meal.id) for meal in meals))
        self.meals = [
            replace(meal, lines=meal_lines)
            for meal, meal_lines in zip(meals, lines, strict=True)
        ]
        return self.meals

    async def fetch_day(self, day: date | datetime) -> list[Meal]:
        """Return the meals logged on a day."""
        start, end = day_bounds(day_key(day))
        return await self.fetch_range(start, end)

    async def list_meal_macros(self, start: datetime, end: datetime) -> list[MealRow]:
        """Range query used by the daily totals cache."""
        return await self.remote.read(
            lambda: self.repository.list_meal_macros(self.user_id, start, end),
            action="list_meal_macros",
        )

    async def _find(self, meal_id: int) -> Meal:
        for meal in self.meals:
            if meal.id == meal_id:
                return meal
        meal = await self.remote.read(
            lambda: self.repository.get_meal(meal_id), action="get_meal"
        )
        if meal is None or meal.user_id != self.user_id:
            raise NotFoundError("Meal", meal_id)
        return replace(meal, lines=await self._load_lines(meal_id))

    async def _load_lines(self, meal_id: int) -> list[MealLine]:
        return await self.remote.read(
            lambda: self.repository.list_meal_lines(meal_id),
            action="list_meal_lines",
        )

    async def _resolve_snapshots(
        self, lines: list[MealLineInput]
    ) -> list[FoodSnapshot]:
        snapshots = []
        for line in lines:
            if line.is_quick_macro:
                snapshots.append(line.quick_snapshot())
                continue
            food = await self.remote.read(
                lambda food_id=line.food_id: self.food_repository.get_food(food_id),
                action="get_food",
            )
            if food is None:
                raise NotFoundError("Food", line.food_id)
            snapshots.append(FoodSnapshot.from_food(food))
        return snapshots

    async def _write_line(
        self, meal_id: int, line: MealLineInput, snapshot: FoodSnapshot
    ) -> MealLine:
        return await self.remote.write(
            lambda: self.repository.create_meal_line(
                meal_id,
                None if line.is_quick_macro else line.food_id,
                snapshot,
                line.quantity,
                line.is_quick_macro,
            ),
            action="create_meal_line",
        )

    async def _discard(self, meal_id: int) -> bool:
        """Undo a half-written create."""
        try:
            await self.remote.write(
                lambda: self.repository.delete_meal_lines(meal_id),
                action="delete_meal_lines",
            )
            await self.remote.write(
                lambda: self.repository.delete_meal(meal_id), action="delete_meal"
            )
        except MacroTrackerError:
            _logger.exception("Failed to roll back meal %s", meal_id)
            return False
        return True

    async def _restore(self, meal: Meal) -> bool:
        """Put back a meal's previous fields and lines after a failed update."""
        try:
            await self.remote.write(
                lambda: self.repository.delete_meal_lines(meal.id),
                action="delete_meal_lines",
            )
            await self.remote.write(
                lambda: self.repository.update_meal(meal.id, MealDraft.from_meal(meal)),
                action="update_meal",
            )
        except MacroTrackerError:
            _logger.exception("Failed to restore meal %s", meal.id)
            return False
        return await self._restore_lines(meal)

    async def _restore_lines(self, meal: Meal) -> bool:
        try:
            for line in meal.lines:
                await self.remote.write(
                    lambda line=line: self.repository.create_meal_line(
                        meal.id,
                        line.food_id,
                        line.snapshot,
                        line.quantity,
                        line.is_quick_macro,
                    ),
                    action="create_meal_line",
                )
        except MacroTrackerError:
            _logger.exception("Failed to restore lines for meal %s", meal.id)
            return False
        return True
