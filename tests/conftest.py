"""Shared test fixtures."""

import asyncio
import itertools
from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from uuid import UUID, uuid4

import pytest

from macro_tracker.config import Settings
from macro_tracker.domain.foods import Food, FoodDraft
from macro_tracker.domain.meals import (
    FoodSnapshot,
    Meal,
    MealDraft,
    MealLine,
    MealRow,
)
from macro_tracker.domain.models import UserRecord
from macro_tracker.domain.settings import UserGoals
from macro_tracker.services.foods import FoodRepository
from macro_tracker.services.meals import MealRepository, MealStore
from macro_tracker.services.remote import RemoteCall
from macro_tracker.services.session import AuthClient
from macro_tracker.services.user_settings import UserSettingsRepository


@dataclass
class CallLog:
    """Counts calls per method and fails the ones listed in ``fail_calls``.

    ``fail_calls`` holds ``(method, n)`` pairs: the n-th call (1-based) to that
    method raises ``RuntimeError``.
    """

    calls: list[str] = field(default_factory=list)
    fail_calls: set[tuple[str, int]] = field(default_factory=set)

    def record(self, name: str) -> None:
        self.calls.append(name)
        if (name, self.calls.count(name)) in self.fail_calls:
            raise RuntimeError(f"{name} failed")

    def count(self, name: str) -> int:
        return self.calls.count(name)


@dataclass
class InMemoryFoodRepository(FoodRepository):
    """In-memory food repository for tests."""

    foods: dict[int, Food] = field(default_factory=dict)
    log: CallLog = field(default_factory=CallLog)
    _ids: Iterator[int] = field(default_factory=lambda: itertools.count(1))

    async def list_foods(self, user_id: UUID) -> list[Food]:
        self.log.record("list_foods")
        return [food for food in self.foods.values() if food.user_id == user_id]

    async def get_food(self, food_id: int) -> Food | None:
        self.log.record("get_food")
        return self.foods.get(food_id)

    async def create_food(self, user_id: UUID, draft: FoodDraft) -> Food:
        self.log.record("create_food")
        food = Food(
            id=next(self._ids),
            user_id=user_id,
            name=draft.name,
            protein_g=draft.protein_g,
            carbs_g=draft.carbs_g,
            fat_g=draft.fat_g,
            serving_size_g=draft.serving_size_g,
        )
        self.foods[food.id] = food
        return food

    async def delete_food(self, food_id: int) -> None:
        self.log.record("delete_food")
        self.foods.pop(food_id, None)


@dataclass
class InMemoryMealRepository(MealRepository):
    """In-memory meal repository for tests.

    ``macros_gate`` holds range queries after they have read their rows;
    ``line_gate`` holds line inserts before they write.
    """

    meals: dict[int, Meal] = field(default_factory=dict)
    lines: dict[int, MealLine] = field(default_factory=dict)
    log: CallLog = field(default_factory=CallLog)
    macros_gate: asyncio.Event | None = None
    line_gate: asyncio.Event | None = None
    _meal_ids: Iterator[int] = field(default_factory=lambda: itertools.count(1))
    _line_ids: Iterator[int] = field(default_factory=lambda: itertools.count(1))

    def add_meal(  # noqa: PLR0913
        self,
        user_id: UUID,
        created_at: datetime,
        calories: float,
        protein_g: float,
        carbs_g: float,
        fat_g: float,
        name: str = "Meal",
    ) -> Meal:
        meal = Meal(
            id=next(self._meal_ids),
            user_id=user_id,
            name=name,
            created_at=created_at,
            protein_g=protein_g,
            carbs_g=carbs_g,
            fat_g=fat_g,
            calories=calories,
        )
        self.meals[meal.id] = meal
        return meal

    async def create_meal(self, user_id: UUID, draft: MealDraft) -> Meal:
        self.log.record("create_meal")
        return self.add_meal(
            user_id,
            draft.created_at,
            draft.resolved_calories,
            draft.protein_g,
            draft.carbs_g,
            draft.fat_g,
            name=draft.name,
        )

    async def update_meal(self, meal_id: int, draft: MealDraft) -> None:
        self.log.record("update_meal")
        self.meals[meal_id] = replace(
            self.meals[meal_id],
            name=draft.name,
            created_at=draft.created_at,
            protein_g=draft.protein_g,
            carbs_g=draft.carbs_g,
            fat_g=draft.fat_g,
            calories=draft.resolved_calories,
        )

    async def delete_meal(self, meal_id: int) -> None:
        self.log.record("delete_meal")
        self.meals.pop(meal_id, None)

    async def get_meal(self, meal_id: int) -> Meal | None:
        self.log.record("get_meal")
        return self.meals.get(meal_id)

    async def list_meals(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[Meal]:
        self.log.record("list_meals")
        meals = [
            meal
            for meal in self.meals.values()
            if meal.user_id == user_id and start <= meal.created_at < end
        ]
        return sorted(meals, key=lambda meal: meal.created_at, reverse=True)

    async def list_meal_macros(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[MealRow]:
        self.log.record("list_meal_macros")
        rows = [
            MealRow(meal_id=meal.id, created_at=meal.created_at, macros=meal.macros)
            for meal in self.meals.values()
            if meal.user_id == user_id and start <= meal.created_at < end
        ]
        if self.macros_gate is not None:
            await self.macros_gate.wait()
        return rows

    async def create_meal_line(  # noqa: PLR0913
        self,
        meal_id: int,
        food_id: int | None,
        snapshot: FoodSnapshot,
        quantity: float,
        is_quick_macro: bool,
    ) -> MealLine:
        if self.line_gate is not None:
            await self.line_gate.wait()
        self.log.record("create_meal_line")
        line = MealLine(
            id=next(self._line_ids),
            meal_id=meal_id,
            food_id=food_id,
            snapshot=snapshot,
            quantity=quantity,
            is_quick_macro=is_quick_macro,
        )
        self.lines[line.id] = line
        return line

    async def list_meal_lines(self, meal_id: int) -> list[MealLine]:
        self.log.record("list_meal_lines")
        return [line for line in self.lines.values() if line.meal_id == meal_id]

    async def delete_meal_lines(self, meal_id: int) -> None:
        self.log.record("delete_meal_lines")
        self.lines = {
            line_id: line
            for line_id, line in self.lines.items()
            if line.meal_id != meal_id
        }

    def lines_for(self, meal_id: int) -> list[MealLine]:
        return [line for line in self.lines.values() if line.meal_id == meal_id]


@dataclass
class InMemoryUserSettingsRepository(UserSettingsRepository):
    """In-memory user settings repository for tests."""

    rows: dict[UUID, UserGoals] = field(default_factory=dict)
    log: CallLog = field(default_factory=CallLog)

    async def get_settings(self, user_id: UUID) -> UserGoals | None:
        self.log.record("get_settings")
        return self.rows.get(user_id)

    async def upsert_settings(
        self, user_id: UUID, payload: dict[str, object]
    ) -> UserGoals:
        self.log.record("upsert_settings")
        current = self.rows.get(user_id)
        start_raw = payload.get("bulk_cut_start_date")
        goals = UserGoals(
            user_id=user_id,
            calorie_goal=int(payload["calorie_goal"]),
            protein_goal=int(payload["protein_goal"]),
            carb_goal=int(payload["carb_goal"]),
            fat_goal=int(payload["fat_goal"]),
            bulk_cut_start_date=(
                datetime.fromisoformat(str(start_raw))
                if start_raw
                else current.bulk_cut_start_date if current else None
            ),
        )
        self.rows[user_id] = goals
        return goals


@dataclass
class FakeAuthClient(AuthClient):
    """Auth client whose signed-in user is set by the test."""

    user: UserRecord | None = None
    accounts: dict[str, UserRecord] = field(default_factory=dict)
    signed_out: int = 0

    async def current_user(self) -> UserRecord | None:
        return self.user

    async def sign_in(self, email: str, password: str) -> UserRecord:
        self.user = self.accounts[email]
        return self.user

    async def sign_out(self) -> None:
        self.signed_out += 1
        self.user = None


def at(day: str, hour: int = 12) -> datetime:
    """Return an aware UTC timestamp on ``day`` at ``hour``."""
    return datetime.fromisoformat(day).replace(hour=hour, tzinfo=UTC)


def fast_remote() -> RemoteCall:
    return RemoteCall(timeout_seconds=1.0, retry_attempts=0, retry_delay_seconds=0)


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def meal_repository() -> InMemoryMealRepository:
    return InMemoryMealRepository()


@pytest.fixture
def food_repository() -> InMemoryFoodRepository:
    return InMemoryFoodRepository()


@pytest.fixture
def store(
    user_id: UUID,
    meal_repository: InMemoryMealRepository,
    food_repository: InMemoryFoodRepository,
) -> MealStore:
    return MealStore(
        user_id=user_id,
        repository=meal_repository,
        food_repository=food_repository,
        remote=fast_remote(),
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_anon_key="anon-key",
        preferences_path=str(tmp_path / "preferences.json"),
    )


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[list[dict[str, object]]]] = field(
        default_factory=lambda: {
            "select": [],
            "insert": [],
            "update": [],
            "upsert": [],
            "delete": [],
        }
    )
    last_payload: object | None = None
    last_filters: list[tuple[str, object]] = field(default_factory=list)
    actions: list[str] = field(default_factory=list)

    def queue(self, action: str, data: list[dict[str, object]]) -> None:
        self.response_queue[action].append(data)

    def select(self, *_args) -> "FakeTable":
        self._action = "select"
        return self

    def insert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "insert"
        self.last_payload = payload
        return self

    def update(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "update"
        self.last_payload = payload
        return self

    def upsert(  # type: ignore[no-untyped-def]
        self, payload, on_conflict: str = ""
    ) -> "FakeTable":
        self._action = "upsert"
        self.last_payload = payload
        return self

    def delete(self) -> "FakeTable":
        self._action = "delete"
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((column, value))
        return self

    def gte(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((column, value))
        return self

    def lt(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((column, value))
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    def order(self, _column: str, desc: bool = False) -> "FakeTable":
        return self

    async def execute(self) -> FakeResponse:
        action = getattr(self, "_action", "select")
        self.actions.append(action)
        queue = self.response_queue.get(action, [])
        data = queue.pop(0) if queue else []
        return FakeResponse(data=data)


@dataclass
class FakeAuthUser:
    id: str
    email: str | None = None


@dataclass
class FakeAuthResponse:
    user: FakeAuthUser | None


@dataclass
class FakeSupabaseAuth:
    user: FakeAuthUser | None = None
    password: str = "secret"

    async def get_user(self) -> FakeAuthResponse | None:
        if self.user is None:
            return None
        return FakeAuthResponse(user=self.user)

    async def sign_in_with_password(
        self, credentials: dict[str, str]
    ) -> FakeAuthResponse:
        if credentials["password"] != self.password:
            return FakeAuthResponse(user=None)
        self.user = FakeAuthUser(id=str(uuid4()), email=credentials["email"])
        return FakeAuthResponse(user=self.user)

    async def sign_out(self) -> None:
        self.user = None


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)
    auth: FakeSupabaseAuth = field(default_factory=FakeSupabaseAuth)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]
