"""Per-day macro totals cache.

Entries are keyed by UTC day key and replaced whole, never mutated field by
field. Every key carries a version that moves whenever a delta or an
invalidation touches it; a range query that resolves after its day's version
moved is discarded and reissued. Results that resolve while a meal write for
the day is still in flight are returned but never cached, since they may or may
not include the row whose delta is about to be applied.
"""

import asyncio
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Protocol

from macro_tracker.domain.days import day_bounds, day_key, parse_day_key, shift_day
from macro_tracker.domain.meals import MealRow
from macro_tracker.domain.nutrition import MacroProfile
from macro_tracker.domain.stats import DailyTotals

_logger = logging.getLogger(__name__)


class MealRangeSource(Protocol):
    """Range query over the current user's meals."""

    async def list_meal_macros(self, start: datetime, end: datetime) -> list[MealRow]:
        """Return meal macros with ``start <= created_at < end``."""


@dataclass(frozen=True)
class _CacheEntry:
    totals: DailyTotals
    complete: bool


@dataclass
class DailyTotalsCache:
    """Day-keyed totals with on-demand fetch, prefetch and signed deltas.

    Remote failures never escape ``get`` or ``prefetch``: the caller gets an
    empty total and can read the failure back with ``error_for``.
    """

    source: MealRangeSource
    stale_refresh_attempts: int = 3
    _entries: dict[str, _CacheEntry] = field(default_factory=dict, init=False)
    _versions: dict[str, int] = field(default_factory=dict, init=False)
    _pending: dict[str, int] = field(default_factory=dict, init=False)
    _epoch: int = field(default=0, init=False)
    _errors: dict[str, Exception] = field(default_factory=dict, init=False)
    _inflight: dict[str, "asyncio.Task[DailyTotals]"] = field(
        default_factory=dict, init=False
    )
    _prefetches: set["asyncio.Task[None]"] = field(default_factory=set, init=False)

    async def get(
        self, day: date | datetime, force_refresh: bool = False
    ) -> DailyTotals:
        """Return a day's totals, fetching them when not cached."""
        key = day_key(day)
        entry = self._entries.get(key)
        if not force_refresh and entry is not None and entry.complete:
            return entry.totals

        task = None if force_refresh else self._inflight.get(key)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._load(key))
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._forget_inflight(key, done))
        return await asyncio.shield(task)

    def prefetch(self, day: date | datetime) -> None:
        """Warm the cache for the days either side of ``day`` in the background."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _logger.warning("Prefetch skipped: no running event loop")
            return
        key = day_key(day)
        for neighbour in (shift_day(key, -1), shift_day(key, 1)):
            task = loop.create_task(self._prefetch_one(neighbour))
            self._prefetches.add(task)
            task.add_done_callback(self._prefetches.discard)

    async def wait_for_prefetch(self) -> None:
        """Wait until every scheduled prefetch has finished."""
        while self._prefetches:
            await asyncio.gather(*list(self._prefetches), return_exceptions=True)

    def apply_delta(self, day: date | datetime, delta: MacroProfile) -> DailyTotals:
        """Add a signed delta to a day's entry, creating a zero entry if absent.

        A created entry only holds the delta, so it is not treated as a cache hit
        until a real fetch replaces it.
        """
        key = day_key(day)
        self._bump(key)
        entry = self._entries.get(key)
        base = entry.totals if entry is not None else DailyTotals.empty(key)
        updated = DailyTotals.from_macros(key, base.macros + delta)
        self._entries[key] = _CacheEntry(
            totals=updated, complete=entry is not None and entry.complete
        )
        return updated

    @contextmanager
    def pending_write(self, *days: date | datetime) -> Iterator[None]:
        """Mark days as having a meal write in flight for the duration of a block."""
        keys = {day_key(day) for day in days}
        for key in keys:
            self._pending[key] = self._pending.get(key, 0) + 1
            self._bump(key)
        try:
            yield
        finally:
            for key in keys:
                remaining = self._pending.get(key, 0) - 1
                if remaining > 0:
                    self._pending[key] = remaining
                else:
                    self._pending.pop(key, None)
                self._bump(key)

    def invalidate(self, day: date | datetime) -> None:
        """Drop a day's entry so the next ``get`` fetches it again."""
        key = day_key(day)
        self._bump(key)
        self._entries.pop(key, None)

    def peek(self, day: date | datetime) -> DailyTotals | None:
        """Return the cached totals for a day without fetching."""
        entry = self._entries.get(day_key(day))
        return entry.totals if entry is not None else None

    def error_for(self, day: date | datetime) -> Exception | None:
        """Return the last fetch failure for a day, if its latest fetch failed."""
        return self._errors.get(day_key(day))

    def snapshot(self) -> dict[str, DailyTotals]:
        """Return a copy of every cached entry by day key."""
        return {key: entry.totals for key, entry in self._entries.items()}

    def clear(self) -> None:
        """Discard all state; used when the owning session ends."""
        for task in list(self._prefetches):
            task.cancel()
        self._prefetches.clear()
        self._inflight.clear()
        self._entries.clear()
        self._versions.clear()
        self._pending.clear()
        self._errors.clear()
        self._epoch += 1

    async def _load(self, key: str) -> DailyTotals:
        start, end = day_bounds(key)
        totals = DailyTotals.empty(key)
        attempts = max(self.stale_refresh_attempts, 1)
        epoch = self._epoch
        try:
            for attempt in range(1, attempts + 1):
                stamp = self._stamp(key)
                rows = await self.source.list_meal_macros(start, end)
                totals = _aggregate_day(key, rows)
                if self._epoch != epoch:
                    return totals
                if self._pending.get(key):
                    _logger.info(
                        "Not caching totals for %s: a meal write is in flight", key
                    )
                    return totals
                if self._stamp(key) == stamp:
                    self._entries[key] = _CacheEntry(totals=totals, complete=True)
                    self._errors.pop(key, None)
                    return totals
                _logger.info(
                    "Discarding stale totals for %s (attempt %s/%s)",
                    key,
                    attempt,
                    attempts,
                )
        except Exception as exc:
            _logger.warning("Failed to fetch daily totals for %s: %r", key, exc)
            self._errors[key] = exc
            return DailyTotals.empty(key)
        _logger.warning("Totals for %s changed during every refresh; not cached", key)
        return totals

    async def _prefetch_one(self, key: str) -> None:
        try:
            await self.get(parse_day_key(key))
        except asyncio.CancelledError:
            raise
        except Exception:
            _logger.warning("Prefetch failed for %s", key, exc_info=True)

    def _forget_inflight(self, key: str, task: "asyncio.Task[DailyTotals]") -> None:
        if self._inflight.get(key) is task:
            self._inflight.pop(key, None)

    def _bump(self, key: str) -> None:
        self._versions[key] = self._versions.get(key, 0) + 1

    def _stamp(self, key: str) -> tuple[int, int]:
        return self._epoch, self._versions.get(key, 0)


def _aggregate_day(key: str, rows: list[MealRow]) -> DailyTotals:
    total = MacroProfile.zero()
    for row in rows:
        if day_key(row.created_at) != key:
            continue
        total = total + row.macros
    return DailyTotals.from_macros(key, total)
