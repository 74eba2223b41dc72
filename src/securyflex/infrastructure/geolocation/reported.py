"""
Device-Reported Position Source

Position source fed by the guard's mobile device. The device
reports its permission state and positions; tracking sessions
consume them through the PositionSource interface.

PRIVACY: The distance filter is applied here, before positions
reach the tracking pipeline. Reports closer than the filter to
the last emitted position are dropped.

A one-shot read never returns a report older than the configured
maximum age; it waits for a fresh report instead.
"""

import asyncio
import time
from typing import AsyncIterator, Optional

from securyflex.config.logging_config import get_logger
from securyflex.domain.geo import haversine_distance_m
from securyflex.domain.models.location import Position
from securyflex.infrastructure.geolocation.provider import (
    LocationAccuracy,
    LocationPermission,
    LocationSettings,
    PositionSource,
)

logger = get_logger(__name__)

_CLOSED = object()


class ReportedPositionSource(PositionSource):
    """
    Queue-backed position source for one device.

    Usage:
        source = ReportedPositionSource(permission=LocationPermission.WHILE_IN_USE)
        source.report(Position(latitude=52.37, longitude=4.90))
    """

    def __init__(
        self,
        permission: LocationPermission = LocationPermission.DENIED,
        service_enabled: bool = True,
        stream_buffer: int = 32,
        max_report_age_seconds: Optional[float] = None,
    ) -> None:
        """
        Args:
            permission: Permission state last reported by the device
            service_enabled: Whether the device location service is on
            stream_buffer: Positions buffered per open stream
            max_report_age_seconds: Oldest report current_position returns (None: no limit)
        """
        self._permission = permission
        self._service_enabled = service_enabled
        self._stream_buffer = stream_buffer
        self._streams: set[asyncio.Queue] = set()
        self._max_report_age = max_report_age_seconds
        self._latest: Optional[Position] = None
        self._latest_at = 0.0
        self._latest_changed = asyncio.Event()
        self._closed = False

    @property
    def latest(self) -> Optional[Position]:
        return self._latest

    @property
    def active_streams(self) -> int:
        """Number of open position streams."""
        return len(self._streams)

    def set_permission(self, permission: LocationPermission, service_enabled: bool = True) -> None:
        """Record the device's current permission state."""
        self._permission = permission
        self._service_enabled = service_enabled

    def report(self, position: Position) -> None:
        """Accept a position reported by the device."""
        if self._closed:
            return
        self._latest = position
        self._latest_at = time.monotonic()
        self._latest_changed.set()
        self._latest_changed = asyncio.Event()
        for queue in list(self._streams):
            if queue.full():
                # Slow consumer: keep the newest positions
                queue.get_nowait()
            queue.put_nowait(position)

    async def is_service_enabled(self) -> bool:
        return self._service_enabled

    async def check_permission(self) -> LocationPermission:
        return self._permission

    async def request_permission(self) -> LocationPermission:
        # The device prompts the user; the server only sees the reported outcome
        return self._permission

    async def position_stream(self, settings: LocationSettings) -> AsyncIterator[Position]:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._stream_buffer)
        self._streams.add(queue)
        last_emitted: Optional[Position] = None
        try:
            while True:
                item = await queue.get()
                if item is _CLOSED:
                    return
                if last_emitted is not None and settings.distance_filter_m > 0:
                    moved = haversine_distance_m(
                        last_emitted.latitude,
                        last_emitted.longitude,
                        item.latitude,
                        item.longitude,
                    )
                    if moved < settings.distance_filter_m:
                        continue
                last_emitted = item
                yield item
        finally:
            self._streams.discard(queue)

    async def current_position(
        self,
        accuracy: LocationAccuracy = LocationAccuracy.MEDIUM,
    ) -> Position:
        if self._closed:
            raise RuntimeError("Position source closed")
        if self._latest is not None and not self._is_stale():
            return self._latest
        # Nothing usable reported: wait for the next report (callers bound this with a timeout)
        await self._latest_changed.wait()
        if self._closed or self._latest is None:
            raise RuntimeError("Position source closed")
        return self._latest

    def _is_stale(self) -> bool:
        if self._max_report_age is None:
            return False
        return time.monotonic() - self._latest_at > self._max_report_age

    def close(self) -> None:
        """End all open streams."""
        self._closed = True
        self._latest_changed.set()
        for queue in list(self._streams):
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(_CLOSED)


class DeviceRegistry:
    """
    Maps guards to their device position sources.

    Used as the position source provider of GuardLocationService.
    """

    def __init__(self, max_report_age_seconds: Optional[float] = None) -> None:
        self._max_report_age = max_report_age_seconds
        self._sources: dict[str, ReportedPositionSource] = {}

    def __call__(self, subject_id: str) -> ReportedPositionSource:
        return self.get(subject_id)

    def get(self, subject_id: str) -> ReportedPositionSource:
        source = self._sources.get(subject_id)
        if source is None:
            source = ReportedPositionSource(max_report_age_seconds=self._max_report_age)
            self._sources[subject_id] = source
            logger.debug("Device source registered", subject_id=subject_id)
        return source

    def remove(self, subject_id: str) -> None:
        source = self._sources.pop(subject_id, None)
        if source is not None:
            source.close()

    def close(self) -> None:
        for source in self._sources.values():
            source.close()
        self._sources.clear()
