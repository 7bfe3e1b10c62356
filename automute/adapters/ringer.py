"""RingerControl whose device state lives in the repository."""

import logging

from automute.db.models import InterruptionFilter, RingerMode
from automute.db.repository import Repository
from automute.engine.ports import RingerControl
from automute.utils.exceptions import PermissionDenied

logger = logging.getLogger(__name__)


class StoredRinger(RingerControl):
    """Ringer mode and interruption filter persisted as device state.

    Changes require the do-not-disturb policy grant, mirroring the
    device permission.
    """

    def __init__(self, repo: Repository, dnd_access_granted: bool = True):
        self.repo = repo
        self.dnd_access_granted = dnd_access_granted

    def _require_access(self) -> None:
        if not self.dnd_access_granted:
            raise PermissionDenied("Do Not Disturb access is not granted")

    async def get_ringer_mode(self) -> RingerMode:
        return await self.repo.get_ringer_mode()

    async def set_ringer_mode(self, mode: RingerMode) -> None:
        self._require_access()
        await self.repo.set_ringer_mode(mode)
        logger.info(f"Ringer mode set to {mode}")

    async def get_interruption_filter(self) -> InterruptionFilter:
        return await self.repo.get_interruption_filter()

    async def set_interruption_filter(self, mode: InterruptionFilter) -> None:
        self._require_access()
        await self.repo.set_interruption_filter(mode)
        logger.info(f"Interruption filter set to {mode}")
