"""Geofence evaluation: circular zone membership and the resulting mute intent."""

import math
from dataclasses import dataclass
from typing import Iterable

from automute.db.models import RingerMode, SavedLocation
from automute.utils.constants import EARTH_RADIUS_METERS


@dataclass(frozen=True)
class LocationSample:
    """A single location fix."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class MuteIntent:
    """Result of zone membership: inside `location`, or inside nothing."""

    location: SavedLocation | None = None

    @property
    def enter(self) -> bool:
        return self.location is not None


@dataclass(frozen=True)
class GeofenceDecision:
    """What the geofence wants done to the ringer.

    target_mode is None when the ringer must be left alone.
    """

    target_mode: RingerMode | None
    muted_by_app: bool
    reason: str


def distance_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates (haversine)."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(a)))


def membership(
    sample: LocationSample, saved_locations: Iterable[SavedLocation]
) -> MuteIntent:
    """Find the zone the sample falls into.

    First match in storage order wins, not the nearest zone. Inside means
    the distance is strictly less than the radius.
    """
    for location in saved_locations:
        distance = distance_meters(
            sample.latitude, sample.longitude, location.latitude, location.longitude
        )
        if distance < location.radius:
            return MuteIntent(location)
    return MuteIntent()


def resolve(
    sample: LocationSample,
    saved_locations: list[SavedLocation],
    ringer_mode: RingerMode,
    muted_by_app: bool,
    restore_when_empty: bool = False,
) -> GeofenceDecision:
    """Turn a location sample into a ringer decision.

    - No saved locations: hands-off (unless restore_when_empty is set and
      the app caused the current mute).
    - Inside a zone: mute only from exactly NORMAL, and take ownership.
    - Outside every zone: restore NORMAL only if the app caused the mute.
    """
    if not saved_locations:
        if restore_when_empty and muted_by_app:
            return GeofenceDecision("NORMAL", False, "no saved locations, releasing mute")
        return GeofenceDecision(None, muted_by_app, "no saved locations")

    intent = membership(sample, saved_locations)

    if intent.enter:
        zone = intent.location
        if ringer_mode == "NORMAL" and zone.target_ringer_mode != "NORMAL":
            return GeofenceDecision(
                zone.target_ringer_mode, True, f"entered '{zone.name}'"
            )
        return GeofenceDecision(
            None, muted_by_app, f"inside '{zone.name}', ringer is {ringer_mode}"
        )

    if muted_by_app:
        return GeofenceDecision("NORMAL", False, "left all zones")
    return GeofenceDecision(None, False, "outside all zones")
