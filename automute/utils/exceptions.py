"""Error taxonomy.

Port adapters raise these; the orchestrator converts them to reported
outcomes so they never unwind past a single event-processing step.
"""


class AutoMuteError(Exception):
    """Base class for reportable failures."""


class PermissionDenied(AutoMuteError):
    """Do-not-disturb policy access (or location access) is missing."""


class SchedulingDenied(AutoMuteError):
    """Exact wake-ups cannot be scheduled right now."""


class MalformedPersistedState(AutoMuteError):
    """A stored value could not be decoded."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Malformed value for '{key}': {reason}")
        self.key = key
        self.reason = reason
