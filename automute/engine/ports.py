"""Ports to the device: exact-time wake-ups and ringer control.

Adapters live in automute.adapters; tests provide in-memory fakes.
"""

from abc import ABC, abstractmethod
from typing import Any

from automute.db.models import InterruptionFilter, RingerMode


class AlarmClock(ABC):
    """Schedules a payload for delivery at an absolute time.

    Alarms are identified purely by an integer; arming an id that is
    already pending replaces it.
    """

    @abstractmethod
    async def arm(self, alarm_id: int, at_epoch_millis: int, payload: Any) -> None:
        """Arm (or replace) the alarm with this id.

        Raises:
            SchedulingDenied: if exact wake-ups are unavailable
        """

    @abstractmethod
    async def cancel(self, alarm_id: int) -> None:
        """Cancel the alarm with this id. Unknown ids are ignored."""


class RingerControl(ABC):
    """The device's audible ringer mode and interruption filter.

    Setters require do-not-disturb policy access and raise
    PermissionDenied without it.
    """

    @abstractmethod
    async def get_ringer_mode(self) -> RingerMode:
        pass

    @abstractmethod
    async def set_ringer_mode(self, mode: RingerMode) -> None:
        pass

    @abstractmethod
    async def get_interruption_filter(self) -> InterruptionFilter:
        pass

    @abstractmethod
    async def set_interruption_filter(self, mode: InterruptionFilter) -> None:
        pass
