"""Tests for zone membership and geofence decisions."""

import math

from automute.db.models import SavedLocation
from automute.engine.geofence import (
    LocationSample,
    distance_meters,
    membership,
    resolve,
)
from automute.utils.constants import EARTH_RADIUS_METERS

WORK = SavedLocation("Work", 40.0, -73.0, 100.0, "SILENT")


def north_of(latitude: float, meters: float) -> float:
    """Latitude `meters` due north of `latitude`."""
    return latitude + math.degrees(meters / EARTH_RADIUS_METERS)


def test_distance_meters():
    """Test great-circle distance."""
    assert distance_meters(40.0, -73.0, 40.0, -73.0) == 0
    assert abs(distance_meters(40.0, -73.0, north_of(40.0, 50), -73.0) - 50) < 0.01
    # One degree of longitude on the equator
    assert abs(distance_meters(0.0, 0.0, 0.0, 1.0) - 111195) < 1


def test_membership_inside_and_outside():
    """Test circular containment."""
    inside = LocationSample(north_of(40.0, 50), -73.0)
    outside = LocationSample(north_of(40.0, 500), -73.0)

    assert membership(inside, [WORK]).location == WORK
    assert not membership(outside, [WORK]).enter
    assert not membership(inside, []).enter


def test_membership_radius_is_strict():
    """Test that the boundary itself is outside."""
    zone = SavedLocation("Edge", 0.0, 0.0, distance_meters(0.0, 0.0, 0.0, 0.001))
    assert not membership(LocationSample(0.0, 0.001), [zone]).enter


def test_membership_first_match_not_nearest():
    """Test that storage order wins over distance."""
    big = SavedLocation("Campus", 40.0, -73.0, 1000.0, "VIBRATE")
    near = SavedLocation("Library", north_of(40.0, 300), -73.0, 100.0, "SILENT")
    sample = LocationSample(north_of(40.0, 300), -73.0)

    assert membership(sample, [big, near]).location == big
    assert membership(sample, [near, big]).location == near


def test_resolve_enter_mutes_from_normal():
    """Test entering a zone with a NORMAL ringer."""
    decision = resolve(LocationSample(north_of(40.0, 50), -73.0), [WORK], "NORMAL", False)

    assert decision.target_mode == "SILENT"
    assert decision.muted_by_app is True


def test_resolve_enter_respects_manual_mode():
    """Test that a manual VIBRATE inside a zone is left alone."""
    decision = resolve(LocationSample(north_of(40.0, 50), -73.0), [WORK], "VIBRATE", False)

    assert decision.target_mode is None
    assert decision.muted_by_app is False


def test_resolve_exit_restores_only_own_mute():
    """Test the attribution rule on leaving every zone."""
    far = LocationSample(north_of(40.0, 500), -73.0)

    restored = resolve(far, [WORK], "SILENT", True)
    assert restored.target_mode == "NORMAL"
    assert restored.muted_by_app is False

    untouched = resolve(far, [WORK], "SILENT", False)
    assert untouched.target_mode is None
    assert untouched.muted_by_app is False


def test_resolve_no_locations_is_hands_off():
    """Test that an empty location list never touches the ringer."""
    sample = LocationSample(40.0, -73.0)

    for mode in ("NORMAL", "VIBRATE", "SILENT"):
        for muted in (True, False):
            decision = resolve(sample, [], mode, muted)
            assert decision.target_mode is None
            assert decision.muted_by_app == muted


def test_resolve_no_locations_restore_variant():
    """Test the configurable restore-when-empty variant."""
    sample = LocationSample(40.0, -73.0)

    decision = resolve(sample, [], "SILENT", True, restore_when_empty=True)
    assert decision.target_mode == "NORMAL"
    assert decision.muted_by_app is False

    decision = resolve(sample, [], "SILENT", False, restore_when_empty=True)
    assert decision.target_mode is None
