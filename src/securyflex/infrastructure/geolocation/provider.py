"""
Device Location Provider Interface

Defines the contract for device position sources. The tracking
engine depends only on this interface; the device-reported
source or a test double can be injected without changing service code.

PRIVACY: Sources are asked for reduced accuracy and a movement
filter. Both limit how much location data is produced at all.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum
from typing import AsyncIterator, Optional

from securyflex.domain.models.location import Position


class LocationAccuracy(StrEnum):
    """Requested fix accuracy."""

    LOWEST = "lowest"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    BEST = "best"
    BEST_FOR_NAVIGATION = "best_for_navigation"


class LocationPermission(StrEnum):
    """Device-level location permission."""

    DENIED = "denied"
    DENIED_FOREVER = "denied_forever"
    WHILE_IN_USE = "while_in_use"
    ALWAYS = "always"

    @property
    def is_granted(self) -> bool:
        return self in (LocationPermission.WHILE_IN_USE, LocationPermission.ALWAYS)


@dataclass(frozen=True)
class LocationSettings:
    """
    Position stream configuration.

    Attributes:
        accuracy: Requested accuracy
        distance_filter_m: Minimum movement before a new position is emitted
    """

    accuracy: LocationAccuracy = LocationAccuracy.MEDIUM
    distance_filter_m: int = 100


class PositionSource(ABC):
    """
    Abstract device position source.

    Implementations:
    - ReportedPositionSource: positions reported by the guard's device
    """

    @abstractmethod
    async def is_service_enabled(self) -> bool:
        """Whether location services are switched on."""

    @abstractmethod
    async def check_permission(self) -> LocationPermission:
        """Current device permission."""

    @abstractmethod
    async def request_permission(self) -> LocationPermission:
        """Ask the user for permission and return the outcome."""

    @abstractmethod
    def position_stream(self, settings: LocationSettings) -> AsyncIterator[Position]:
        """
        Stream of positions honoring accuracy and distance filter.

        The iterator ends when the source is closed.
        """

    @abstractmethod
    async def current_position(
        self,
        accuracy: LocationAccuracy = LocationAccuracy.MEDIUM,
    ) -> Position:
        """
        One-shot position fetch.

        Raises:
            Exception: Any source-specific failure; callers treat it
                as a missed cycle
        """


async def ensure_location_permission(source: PositionSource) -> Optional[LocationPermission]:
    """
    Check device location availability, asking once if needed.

    Returns:
        None if location can be used, otherwise the permission
        value explaining why not (DENIED when services are off)
    """
    if not await source.is_service_enabled():
        return LocationPermission.DENIED

    permission = await source.check_permission()
    if permission == LocationPermission.DENIED:
        permission = await source.request_permission()

    if not permission.is_granted:
        return permission
    return None
