"""Data models."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Literal
from uuid import uuid4

RingerMode = Literal["NORMAL", "VIBRATE", "SILENT"]
InterruptionFilter = Literal["ALL_ALLOWED", "ALARMS_ONLY", "NONE_ALLOWED"]
AlarmEdge = Literal["START", "END"]

RINGER_MODES: tuple[RingerMode, ...] = ("NORMAL", "VIBRATE", "SILENT")
INTERRUPTION_FILTERS: tuple[InterruptionFilter, ...] = (
    "ALL_ALLOWED",
    "ALARMS_ONLY",
    "NONE_ALLOWED",
)
ALARM_EDGES: tuple[AlarmEdge, ...] = ("START", "END")


@dataclass(frozen=True)
class SavedLocation:
    """A circular zone that mutes the ringer while the device is inside it."""

    name: str
    latitude: float
    longitude: float
    radius: float  # meters
    target_ringer_mode: RingerMode = "SILENT"

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Location name is required")
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Longitude out of range: {self.longitude}")
        if self.radius <= 0:
            raise ValueError("Radius must be greater than 0")
        if self.target_ringer_mode not in RINGER_MODES:
            raise ValueError(f"Unknown ringer mode: {self.target_ringer_mode}")

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "SavedLocation":
        return cls(
            name=data["name"],
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            radius=float(data["radius"]),
            target_ringer_mode=data.get("target_ringer_mode", "SILENT"),
        )


@dataclass(frozen=True)
class DailyTimer:
    """A recurring weekly silence window.

    Days are 1=Sunday..7=Saturday. The window is [start, end) in
    minutes-of-day; when end is before start it spans midnight and ends
    on the following day.
    """

    start_hour: int
    start_minute: int
    end_hour: int
    end_minute: int
    days_of_week: tuple[int, ...]
    id: str = field(default_factory=lambda: str(uuid4()))

    def __post_init__(self) -> None:
        for label, hour, minute in (
            ("start", self.start_hour, self.start_minute),
            ("end", self.end_hour, self.end_minute),
        ):
            if not (0 <= hour <= 23 and 0 <= minute <= 59):
                raise ValueError(f"Invalid {label} time {hour}:{minute}")

        days = tuple(sorted(set(self.days_of_week)))
        if not days:
            raise ValueError("At least one day is required")
        if any(d < 1 or d > 7 for d in days):
            raise ValueError(f"Days must be within 1..7: {list(days)}")
        object.__setattr__(self, "days_of_week", days)

        if self.start_minutes == self.end_minutes:
            raise ValueError("Start and end times must differ")

    @property
    def start_minutes(self) -> int:
        return self.start_hour * 60 + self.start_minute

    @property
    def end_minutes(self) -> int:
        return self.end_hour * 60 + self.end_minute

    @property
    def spans_midnight(self) -> bool:
        return self.end_minutes < self.start_minutes

    def contains(self, day: int, minute_of_day: int) -> bool:
        """Check whether the window covers the given day and minute."""
        if not self.spans_midnight:
            return (
                day in self.days_of_week
                and self.start_minutes <= minute_of_day < self.end_minutes
            )

        previous_day = 7 if day == 1 else day - 1
        return (day in self.days_of_week and minute_of_day >= self.start_minutes) or (
            previous_day in self.days_of_week and minute_of_day < self.end_minutes
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["days_of_week"] = list(self.days_of_week)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "DailyTimer":
        return cls(
            id=str(data["id"]),
            start_hour=int(data["start_hour"]),
            start_minute=int(data["start_minute"]),
            end_hour=int(data["end_hour"]),
            end_minute=int(data["end_minute"]),
            days_of_week=tuple(int(d) for d in data["days_of_week"]),
        )


@dataclass(frozen=True)
class QuickTimerState:
    """The one-shot countdown singleton."""

    active: bool = False
    end_time_millis: int | None = None  # epoch millis


@dataclass(frozen=True)
class ScheduledAlarm:
    """One armed edge of a daily timer (derived, never persisted)."""

    alarm_id: int
    timer_id: str
    day_of_week: int
    edge: AlarmEdge
    fire_at: datetime
