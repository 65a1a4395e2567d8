"""Dependency container wiring for the library."""

from dataclasses import dataclass
from functools import partial
from pathlib import Path

from supabase import AsyncClient, acreate_client

from macro_tracker.adapters.supabase_auth_client import SupabaseAuthClient
from macro_tracker.adapters.supabase_food_repository import SupabaseFoodRepository
from macro_tracker.adapters.supabase_meal_repository import SupabaseMealRepository
from macro_tracker.adapters.supabase_user_settings_repository import (
    SupabaseUserSettingsRepository,
)
from macro_tracker.config import Settings
from macro_tracker.domain.models import UserRecord
from macro_tracker.services.foods import FoodCatalog, FoodRepository
from macro_tracker.services.meals import MealRepository, MealStore
from macro_tracker.services.preferences import DisplayPreferences
from macro_tracker.services.remote import RemoteCall
from macro_tracker.services.session import AuthClient, SessionManager, UserSession
from macro_tracker.services.user_settings import (
    UserSettingsRepository,
    UserSettingsService,
)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    remote: RemoteCall
    auth_client: AuthClient
    meal_repository: MealRepository
    food_repository: FoodRepository
    user_settings_repository: UserSettingsRepository
    preferences: DisplayPreferences
    session_manager: SessionManager


def build_session(  # noqa: PLR0913
    user: UserRecord,
    *,
    meal_repository: MealRepository,
    food_repository: FoodRepository,
    user_settings_repository: UserSettingsRepository,
    remote: RemoteCall,
    stale_refresh_attempts: int = 3,
) -> UserSession:
    """Create a fresh service graph for one user."""
    meals = MealStore(
        user_id=user.id,
        repository=meal_repository,
        food_repository=food_repository,
        remote=remote,
        stale_refresh_attempts=stale_refresh_attempts,
    )
    return UserSession(
        user=user,
        meals=meals,
        foods=FoodCatalog(user.id, food_repository, remote=remote),
        settings=UserSettingsService(user.id, user_settings_repository, remote=remote),
    )


def wire_container(settings: Settings, client: AsyncClient) -> AppContainer:
    """Wire the container around an existing Supabase client."""
    remote = RemoteCall(
        timeout_seconds=settings.remote_timeout_seconds,
        retry_attempts=settings.read_retry_attempts,
        retry_delay_seconds=settings.retry_delay_seconds,
    )
    auth_client = SupabaseAuthClient(client)
    meal_repository = SupabaseMealRepository(client)
    food_repository = SupabaseFoodRepository(client)
    user_settings_repository = SupabaseUserSettingsRepository(client)
    session_factory = partial(
        build_session,
        meal_repository=meal_repository,
        food_repository=food_repository,
        user_settings_repository=user_settings_repository,
        remote=remote,
        stale_refresh_attempts=settings.stale_refresh_attempts,
    )
    return AppContainer(
        settings=settings,
        remote=remote,
        auth_client=auth_client,
        meal_repository=meal_repository,
        food_repository=food_repository,
        user_settings_repository=user_settings_repository,
        preferences=DisplayPreferences(Path(settings.preferences_path).expanduser()),
        session_manager=SessionManager(
            auth=auth_client, factory=session_factory, remote=remote
        ),
    )


async def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    client = await acreate_client(
        resolved_settings.supabase_url, resolved_settings.supabase_anon_key
    )
    return wire_container(resolved_settings, client)
