"""
Geolocation Providers

Position sources for the GPS capture step of the sensor editor. A real
deployment plugs in a device GPS; simulation mode generates a fix near a
configured centre point so the workflow runs without hardware.
"""

import asyncio
import logging
import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class PositionError(Exception):
    """Raised by a provider when a fix cannot be obtained (denied, no signal)."""


@dataclass
class PositionOptions:
    """Options passed with every position request."""
    enable_high_accuracy: bool = False
    timeout: float = 10.0         # Seconds
    maximum_age: float = 0.0      # Seconds; 0 disables cached fixes


@dataclass
class GeoPosition:
    """A resolved position."""
    latitude: float
    longitude: float
    accuracy_m: float
    timestamp: float


class GeolocationProvider(ABC):
    """Asynchronous position source."""

    @abstractmethod
    async def get_current_position(self, options: PositionOptions) -> GeoPosition:
        """
        Resolve the current position.

        Raises:
            PositionError: If permission is refused or no fix is available
        """


class FixedGeolocation(GeolocationProvider):
    """Always resolves to the same configured position."""

    def __init__(self, latitude: float, longitude: float, accuracy_m: float = 5.0):
        self.latitude = latitude
        self.longitude = longitude
        self.accuracy_m = accuracy_m

    async def get_current_position(self, options: PositionOptions) -> GeoPosition:
        return GeoPosition(self.latitude, self.longitude, self.accuracy_m, time.time())


class SimulatedGeolocation(GeolocationProvider):
    """
    Generates a fix scattered around a centre point.

    Attributes:
        center: (latitude, longitude) of the simulated field
        accuracy_range_m: Range of reported accuracies in meters
        delay_seconds: Simulated time to first fix
    """

    JITTER_DEG = 0.002

    def __init__(
        self,
        center: Tuple[float, float] = (36.12, -115.17),
        accuracy_range_m: Tuple[float, float] = (3.0, 15.0),
        delay_seconds: float = 0.2,
        seed: Optional[int] = None
    ):
        self.center = center
        self.accuracy_range_m = accuracy_range_m
        self.delay_seconds = delay_seconds
        self._rng = random.Random(seed)

    async def get_current_position(self, options: PositionOptions) -> GeoPosition:
        await asyncio.sleep(self.delay_seconds)

        low, high = self.accuracy_range_m
        if options.enable_high_accuracy:
            high = low + (high - low) / 2

        position = GeoPosition(
            latitude=round(self.center[0] + self._rng.uniform(-self.JITTER_DEG, self.JITTER_DEG), 6),
            longitude=round(self.center[1] + self._rng.uniform(-self.JITTER_DEG, self.JITTER_DEG), 6),
            accuracy_m=round(self._rng.uniform(low, high), 1),
            timestamp=time.time(),
        )
        logger.debug(f"Simulated fix: {position.latitude}, {position.longitude} (±{position.accuracy_m} m)")
        return position


def options_from_config(config: Dict[str, Any]) -> PositionOptions:
    geo_config = config.get('geolocation', {})
    return PositionOptions(
        enable_high_accuracy=geo_config.get('enable_high_accuracy', False),
        timeout=float(geo_config.get('timeout_seconds', 10)),
        maximum_age=float(geo_config.get('maximum_age_seconds', 0)),
    )


def build_provider(config: Dict[str, Any], simulate: bool = False) -> Optional[GeolocationProvider]:
    """
    Create the provider named in the ``geolocation`` config section.

    Returns:
        A provider, or None when no position source is available
    """
    geo_config = config.get('geolocation', {})
    kind = 'simulated' if simulate else geo_config.get('provider', 'none')
    center = tuple(geo_config.get('center', [36.12, -115.17]))

    if kind == 'simulated':
        return SimulatedGeolocation(
            center=center,
            accuracy_range_m=tuple(geo_config.get('accuracy_range_m', [3.0, 15.0])),
        )

    if kind == 'fixed':
        return FixedGeolocation(
            latitude=center[0],
            longitude=center[1],
            accuracy_m=geo_config.get('fixed_accuracy_m', 5.0),
        )

    if kind != 'none':
        logger.warning(f"Unknown geolocation provider '{kind}', GPS capture disabled")
    return None
