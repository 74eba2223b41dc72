"""
Proximity Classifier

Turns a raw position into a proximity classification against an
organization's work-location geofences.

PRIVACY: This is the only place raw coordinates are used. The output
holds a category, a work-location name and a distance rounded to the
configured granularity (100m by default). Rounding happens here,
before the value leaves the classifier.

Rules (distance d to the nearest work location with radius r):
1. No work locations         -> UNKNOWN_WORK_AREA
2. d <= r                    -> AT_WORK_LOCATION
3. d <= multiplier * r       -> NEAR_WORK_LOCATION
4. otherwise                 -> AWAY_FROM_WORK
Boundaries are inclusive. Equidistant locations resolve to the first
in the given order (stores return ascending work location id).
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from securyflex.config.logging_config import get_logger
from securyflex.domain.enums.tracking import ProximityStatus
from securyflex.domain.geo import haversine_distance_m
from securyflex.domain.models.location import Position, ProximityClassification, WorkLocation

logger = get_logger(__name__)


def round_distance(distance_m: float, granularity_m: int = 100) -> int:
    """
    Round a distance to the nearest multiple of granularity (halves up).

    Args:
        distance_m: Exact distance in meters
        granularity_m: Rounding step in meters

    Returns:
        Rounded distance, always a multiple of granularity_m
    """
    steps = (Decimal(repr(distance_m)) / granularity_m).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return int(steps) * granularity_m


def _is_usable(location: WorkLocation) -> bool:
    values = (location.latitude, location.longitude, location.geofence_radius_m)
    if not all(isinstance(v, (int, float)) and math.isfinite(v) for v in values):
        return False
    return (
        -90.0 <= location.latitude <= 90.0
        and -180.0 <= location.longitude <= 180.0
        and location.geofence_radius_m > 0
    )


class ProximityClassifier:
    """
    Stateless proximity classification.

    Usage:
        classifier = ProximityClassifier()
        result = classifier.classify(position, work_locations)
    """

    def __init__(
        self,
        near_radius_multiplier: float = 2.0,
        distance_rounding_m: int = 100,
    ) -> None:
        """
        Initialize classifier.

        Args:
            near_radius_multiplier: Near band as a multiple of the geofence radius
            distance_rounding_m: Granularity of the reported distance
        """
        self._near_multiplier = near_radius_multiplier
        self._rounding = distance_rounding_m

    def nearest(
        self,
        position: Position,
        work_locations: Sequence[WorkLocation],
    ) -> tuple[Optional[WorkLocation], float]:
        """
        Find the nearest usable work location.

        Returns:
            (location, exact distance in meters); (None, inf) if none is usable
        """
        nearest_location: Optional[WorkLocation] = None
        min_distance = math.inf

        for location in work_locations:
            if not _is_usable(location):
                logger.warning("Skipping malformed work location", work_location_id=location.id)
                continue

            distance = haversine_distance_m(
                position.latitude,
                position.longitude,
                location.latitude,
                location.longitude,
            )
            # Strict comparison keeps the first of equidistant locations
            if distance < min_distance:
                min_distance = distance
                nearest_location = location

        return nearest_location, min_distance

    def classify_distance(self, distance_m: float, location: WorkLocation) -> ProximityClassification:
        """Classify a known distance to a work location."""
        radius = location.geofence_radius_m
        if distance_m <= radius:
            status = ProximityStatus.AT_WORK_LOCATION
        elif distance_m <= radius * self._near_multiplier:
            status = ProximityStatus.NEAR_WORK_LOCATION
        else:
            status = ProximityStatus.AWAY_FROM_WORK

        return ProximityClassification(
            status=status,
            nearest_work_area_name=location.name,
            approximate_distance_m=round_distance(distance_m, self._rounding),
        )

    def classify(
        self,
        position: Position,
        work_locations: Sequence[WorkLocation],
    ) -> ProximityClassification:
        """
        Classify a position against work-location geofences.

        Never raises for bad input: an empty set gives
        UNKNOWN_WORK_AREA, a set without a single usable entry gives
        NO_WORK_AREA_NEARBY.

        Args:
            position: Raw device position
            work_locations: Organization geofences in canonical order

        Returns:
            Privacy-preserving classification
        """
        if not work_locations:
            return ProximityClassification(status=ProximityStatus.UNKNOWN_WORK_AREA)

        if not (math.isfinite(position.latitude) and math.isfinite(position.longitude)):
            logger.warning("Discarding non-finite position")
            return ProximityClassification(status=ProximityStatus.NO_WORK_AREA_NEARBY)

        location, distance = self.nearest(position, work_locations)
        if location is None or not math.isfinite(distance):
            return ProximityClassification(status=ProximityStatus.NO_WORK_AREA_NEARBY)

        return self.classify_distance(distance, location)
