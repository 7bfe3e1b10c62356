"""Typed events feeding the orchestrator.

Every event source (location fixes, alarm wake-ups, owner commands)
produces one of these; alarm payloads are events themselves.
"""

from dataclasses import dataclass
from typing import Union

from automute.db.models import AlarmEdge, DailyTimer, RingerMode, SavedLocation
from automute.engine.geofence import LocationSample


@dataclass(frozen=True)
class AlarmFired:
    """A daily timer edge wake-up."""

    timer_id: str
    day_of_week: int
    edge: AlarmEdge


@dataclass(frozen=True)
class QuickTimerStarted:
    minutes: int


@dataclass(frozen=True)
class QuickTimerFired:
    """The quick timer's one-shot wake-up."""


@dataclass(frozen=True)
class QuickTimerCancelled:
    pass


@dataclass(frozen=True)
class LocationAdded:
    location: SavedLocation


@dataclass(frozen=True)
class LocationDeleted:
    name: str


@dataclass(frozen=True)
class AllLocationsEmptied:
    """Every saved location was removed."""


@dataclass(frozen=True)
class TimerSaved:
    timer: DailyTimer


@dataclass(frozen=True)
class TimerDeleted:
    timer_id: str


@dataclass(frozen=True)
class ManualRingerChange:
    """The owner set the ringer directly."""

    mode: RingerMode


Event = Union[
    LocationSample,
    AlarmFired,
    QuickTimerStarted,
    QuickTimerFired,
    QuickTimerCancelled,
    LocationAdded,
    LocationDeleted,
    AllLocationsEmptied,
    TimerSaved,
    TimerDeleted,
    ManualRingerChange,
]

# Events initiated by the owner; their failures are reported back once.
USER_EVENTS = (
    QuickTimerStarted,
    QuickTimerCancelled,
    LocationAdded,
    LocationDeleted,
    AllLocationsEmptied,
    TimerSaved,
    TimerDeleted,
    ManualRingerChange,
)
