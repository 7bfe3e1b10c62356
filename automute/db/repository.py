"""Database repository - durable key-value storage for all persisted state."""

import json
import logging
from pathlib import Path
from typing import Any, Callable, List, TypeVar

import aiosqlite

from automute.db.models import (
    INTERRUPTION_FILTERS,
    RINGER_MODES,
    DailyTimer,
    InterruptionFilter,
    QuickTimerState,
    RingerMode,
    SavedLocation,
)
from automute.utils.constants import (
    DAILY_TIMER_KEY_PREFIX,
    KEY_DAILY_TIMERS,
    KEY_INTERRUPTION_FILTER,
    KEY_LOCATIONS,
    KEY_MUTED_BY_APP,
    KEY_QUICK_TIMER_ACTIVE,
    KEY_QUICK_TIMER_END_TIME,
    KEY_RINGER_MODE,
)
from automute.utils.exceptions import MalformedPersistedState

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Repository:
    """Database access layer."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open database connection."""
        self._db = await aiosqlite.connect(self.db_path)
        self._db.row_factory = aiosqlite.Row
        logger.info(f"Connected to database at {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self._db:
            await self._db.close()
            self._db = None
            logger.info("Database connection closed")

    @property
    def db(self) -> aiosqlite.Connection:
        """Get the database connection."""
        if self._db is None:
            raise RuntimeError("Database not connected")
        return self._db

    # Raw key-value operations

    async def get_value(self, key: str) -> str | None:
        """Get the raw stored text for a key."""
        async with self.db.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        ) as cursor:
            row = await cursor.fetchone()
            return row["value"] if row else None

    async def put_value(self, key: str, value: str, commit: bool = True) -> None:
        """Insert or replace the raw stored text for a key."""
        await self.db.execute(
            """
            INSERT INTO kv_store (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                updated_at = datetime('now')
            """,
            (key, value),
        )
        if commit:
            await self.db.commit()

    async def delete_value(self, key: str, commit: bool = True) -> None:
        """Remove a key. Missing keys are ignored."""
        await self.db.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        if commit:
            await self.db.commit()

    async def _load(self, key: str, decode: Callable[[Any], T], default: T) -> T:
        """Load and decode a JSON value, falling back to default when corrupt."""
        raw = await self.get_value(key)
        if raw is None:
            return default

        try:
            try:
                data = json.loads(raw)
            except json.JSONDecodeError as e:
                raise MalformedPersistedState(key, str(e)) from e
            try:
                return decode(data)
            except (KeyError, TypeError, ValueError) as e:
                raise MalformedPersistedState(key, str(e)) from e
        except MalformedPersistedState as e:
            logger.warning(f"{e}; treating as empty")
            return default

    # Saved locations (order is significant)

    async def get_locations(self) -> List[SavedLocation]:
        """Get all saved locations in storage order."""
        return await self._load(
            KEY_LOCATIONS,
            lambda data: [SavedLocation.from_dict(item) for item in data],
            [],
        )

    async def save_locations(self, locations: List[SavedLocation]) -> None:
        """Replace the saved location list."""
        await self.put_value(
            KEY_LOCATIONS, json.dumps([loc.to_dict() for loc in locations])
        )

    async def add_location(self, location: SavedLocation) -> None:
        """Append a location. Names are unique."""
        locations = await self.get_locations()
        if any(loc.name == location.name for loc in locations):
            raise ValueError(f"A location named '{location.name}' already exists")

        locations.append(location)
        await self.save_locations(locations)
        logger.info(f"Saved location '{location.name}'")

    async def delete_location(self, name: str) -> SavedLocation | None:
        """Delete a location by name. Returns the removed location, if any."""
        locations = await self.get_locations()
        removed = next((loc for loc in locations if loc.name == name), None)
        if removed is None:
            return None

        await self.save_locations([loc for loc in locations if loc.name != name])
        logger.info(f"Deleted location '{name}'")
        return removed

    async def clear_locations(self) -> None:
        """Delete every saved location."""
        await self.save_locations([])

    # Daily timers

    async def get_daily_timers(self) -> List[DailyTimer]:
        """Get all daily timers in storage order."""
        return await self._load(
            KEY_DAILY_TIMERS,
            lambda data: [DailyTimer.from_dict(item) for item in data],
            [],
        )

    async def get_timer_by_id(self, timer_id: str) -> DailyTimer | None:
        """Look up a single timer from the keyed object store."""
        return await self._load(
            DAILY_TIMER_KEY_PREFIX + timer_id, DailyTimer.from_dict, None
        )

    async def save_timer(self, timer: DailyTimer) -> None:
        """Insert or fully replace a timer in the list and the keyed store."""
        timers = await self.get_daily_timers()
        for i, existing in enumerate(timers):
            if existing.id == timer.id:
                timers[i] = timer
                break
        else:
            timers.append(timer)

        await self.put_value(
            KEY_DAILY_TIMERS, json.dumps([t.to_dict() for t in timers]), commit=False
        )
        await self.put_value(
            DAILY_TIMER_KEY_PREFIX + timer.id, json.dumps(timer.to_dict()), commit=False
        )
        await self.db.commit()
        logger.info(f"Saved daily timer {timer.id}")

    async def delete_timer(self, timer_id: str) -> DailyTimer | None:
        """Delete a timer from the list and the keyed store."""
        timers = await self.get_daily_timers()
        removed = next((t for t in timers if t.id == timer_id), None)
        if removed is None:
            removed = await self.get_timer_by_id(timer_id)

        await self.put_value(
            KEY_DAILY_TIMERS,
            json.dumps([t.to_dict() for t in timers if t.id != timer_id]),
            commit=False,
        )
        await self.delete_value(DAILY_TIMER_KEY_PREFIX + timer_id, commit=False)
        await self.db.commit()

        if removed:
            logger.info(f"Deleted daily timer {timer_id}")
        return removed

    # Orchestrator state

    async def get_muted_by_app(self) -> bool:
        """Get the mute attribution flag."""
        return await self._load(KEY_MUTED_BY_APP, _decode_bool, False)

    async def get_quick_timer(self) -> QuickTimerState:
        """Get the quick timer singleton."""
        active = await self._load(KEY_QUICK_TIMER_ACTIVE, _decode_bool, False)
        end_time = await self._load(KEY_QUICK_TIMER_END_TIME, _decode_int, None)
        if active and end_time is None:
            logger.warning("Quick timer marked active without an end time; clearing")
            return QuickTimerState()
        return QuickTimerState(active=active, end_time_millis=end_time if active else None)

    async def save_mute_state(self, muted_by_app: bool, quick_timer: QuickTimerState) -> None:
        """Persist attribution and quick timer state in one transaction."""
        await self.put_value(KEY_MUTED_BY_APP, json.dumps(muted_by_app), commit=False)
        await self.put_value(
            KEY_QUICK_TIMER_ACTIVE, json.dumps(quick_timer.active), commit=False
        )
        if quick_timer.active:
            await self.put_value(
                KEY_QUICK_TIMER_END_TIME,
                json.dumps(quick_timer.end_time_millis),
                commit=False,
            )
        else:
            await self.delete_value(KEY_QUICK_TIMER_END_TIME, commit=False)
        await self.db.commit()

    # Device ringer state (used by the stored ringer adapter)

    async def get_ringer_mode(self) -> RingerMode:
        """Get the stored ringer mode."""
        return await self._load(
            KEY_RINGER_MODE, lambda v: _decode_choice(v, RINGER_MODES), "NORMAL"
        )

    async def set_ringer_mode(self, mode: RingerMode) -> None:
        """Store the ringer mode."""
        await self.put_value(KEY_RINGER_MODE, json.dumps(mode))

    async def get_interruption_filter(self) -> InterruptionFilter:
        """Get the stored interruption filter."""
        return await self._load(
            KEY_INTERRUPTION_FILTER,
            lambda v: _decode_choice(v, INTERRUPTION_FILTERS),
            "ALL_ALLOWED",
        )

    async def set_interruption_filter(self, mode: InterruptionFilter) -> None:
        """Store the interruption filter."""
        await self.put_value(KEY_INTERRUPTION_FILTER, json.dumps(mode))


def _decode_bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"expected a boolean, got {value!r}")
    return value


def _decode_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"expected an integer, got {value!r}")
    return value


def _decode_choice(value: Any, choices: tuple) -> Any:
    if value not in choices:
        raise ValueError(f"unknown value {value!r}")
    return value
