"""Shared fixtures: in-memory port fakes and an orchestrator harness."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable

import pytest

from automute.db.migrations import run_migrations
from automute.db.repository import Repository
from automute.engine.orchestrator import MuteOrchestrator
from automute.engine.ports import AlarmClock, RingerControl
from automute.engine.scheduler import RecurringAlarmScheduler
from automute.utils.exceptions import PermissionDenied, SchedulingDenied


class FakeAlarmClock(AlarmClock):
    """Pending alarms keyed by id, replaced on re-arm."""

    def __init__(self):
        self.pending: dict[int, tuple[int, Any]] = {}
        self.arm_calls: list[int] = []
        self.denied = False

    async def arm(self, alarm_id: int, at_epoch_millis: int, payload: Any) -> None:
        if self.denied:
            raise SchedulingDenied("exact alarms revoked")
        self.pending[alarm_id] = (at_epoch_millis, payload)
        self.arm_calls.append(alarm_id)

    async def cancel(self, alarm_id: int) -> None:
        self.pending.pop(alarm_id, None)


class FakeRinger(RingerControl):
    """Device ringer held in memory."""

    def __init__(self, mode: str = "NORMAL", interruption_filter: str = "ALL_ALLOWED"):
        self.mode = mode
        self.filter = interruption_filter
        self.granted = True
        self.calls: list[tuple[str, str]] = []

    async def get_ringer_mode(self):
        return self.mode

    async def set_ringer_mode(self, mode) -> None:
        if not self.granted:
            raise PermissionDenied("Do Not Disturb access is not granted")
        self.mode = mode
        self.calls.append(("ringer", mode))

    async def get_interruption_filter(self):
        return self.filter

    async def set_interruption_filter(self, mode) -> None:
        if not self.granted:
            raise PermissionDenied("Do Not Disturb access is not granted")
        self.filter = mode
        self.calls.append(("filter", mode))


@dataclass
class Harness:
    repo: Repository
    ringer: FakeRinger
    clock: FakeAlarmClock
    now: datetime
    restore_when_empty: bool = False
    scheduler: RecurringAlarmScheduler = field(init=False)
    orchestrator: MuteOrchestrator = field(init=False)

    def __post_init__(self):
        self.scheduler = RecurringAlarmScheduler(self.clock, lambda: self.now)
        self.orchestrator = MuteOrchestrator(
            repo=self.repo,
            ringer=self.ringer,
            alarm_clock=self.clock,
            scheduler=self.scheduler,
            now_fn=lambda: self.now,
            restore_when_empty=self.restore_when_empty,
        )


@pytest.fixture
def run_harness(tmp_path):
    """Run an async scenario against a fresh database and fake ports."""

    def runner(
        scenario: Callable[[Harness], Awaitable[Any]],
        now: datetime,
        restore_when_empty: bool = False,
    ) -> Any:
        async def main():
            db_path = tmp_path / "automute.db"
            await run_migrations(db_path)
            repo = Repository(db_path)
            await repo.connect()
            try:
                harness = Harness(
                    repo, FakeRinger(), FakeAlarmClock(), now, restore_when_empty
                )
                return await scenario(harness)
            finally:
                await repo.close()

        return asyncio.run(main())

    return runner


@pytest.fixture
def run_repo(tmp_path):
    """Run an async scenario against a fresh, connected repository."""

    def runner(scenario: Callable[[Repository], Awaitable[Any]]) -> Any:
        async def main():
            db_path = tmp_path / "automute.db"
            await run_migrations(db_path)
            repo = Repository(db_path)
            await repo.connect()
            try:
                return await scenario(repo)
            finally:
                await repo.close()

        return asyncio.run(main())

    return runner

