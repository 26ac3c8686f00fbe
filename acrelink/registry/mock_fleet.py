"""
Mock Fleet Generator

Produces the demo sites and a randomized sensor fleet used the first time
the registry is loaded with no saved state. Also produces the mock device
metadata attached to every newly created sensor record.

Pass a ``seed`` for deterministic output in tests.
"""

import logging
import random
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from .models import (
    Depth,
    DeviceSnapshot,
    GpsFix,
    SensorRecord,
    SensorStatus,
    Site,
)

logger = logging.getLogger(__name__)

DEMO_SITES: List[Dict[str, Any]] = [
    {"id": "demo-a", "name": "Demo Site A", "info": "Hay Farm", "seed_count": 10,
     "center": [36.12, -115.17]},
    {"id": "demo-b", "name": "Demo Site B", "info": "Orchard", "seed_count": 12,
     "center": [36.73, -119.68]},
    {"id": "demo-c", "name": "Demo Site C", "info": "Wheat Farm", "seed_count": 8,
     "center": [36.87, -119.79]},
]

# Ids are allocated in blocks of 100 per site: ACR-0001.., ACR-0101.., ...
ID_BLOCK_SIZE = 100

SAMPLE_NOTES = [
    "",
    "",
    "Near oak tree",
    "Intermittent connectivity",
    "Close to irrigation valve",
    "Flagged with orange stake",
    "Soil compacted, re-check probe seating",
]

TECHNICIANS = ["Parker", "Lopez", "Nguyen", "Okafor"]


class MockFleetGenerator:
    """
    Randomized demo data source.

    Attributes:
        sites: Demo site definitions (id, name, info, seed_count, center)
        seed: Random seed, None for non-deterministic output

    Example:
        >>> generator = MockFleetGenerator(seed=7)
        >>> sensors = generator.generate_fleet()
        >>> len([s for s in sensors if s.site_id == "demo-a"])
        10
    """

    BATTERY_RANGE = (20, 100)       # Percent
    RF_RANGE = (-120, -60)          # dBm
    GPS_JITTER_DEG = 0.004
    ACCURACY_RANGE_FT = (6, 40)

    def __init__(
        self,
        sites: Optional[List[Dict[str, Any]]] = None,
        seed: Optional[int] = None,
        clock: Callable[[], datetime] = None
    ):
        self.sites = sites if sites is not None else DEMO_SITES
        self.seed = seed
        self._rng = random.Random(seed)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        for site in self.sites:
            count = int(site.get("seed_count", 0))
            if not 0 <= count < ID_BLOCK_SIZE:
                raise ValueError(
                    f"seed_count for site {site.get('id')} must be between 0 and {ID_BLOCK_SIZE - 1}"
                )

    def seed_counts(self) -> Dict[str, int]:
        """Number of sensors generated per site id."""
        return {site["id"]: int(site.get("seed_count", 0)) for site in self.sites}

    def generate_sites(self) -> List[Site]:
        return [
            Site(id=site["id"], name=site.get("name", site["id"]), info=site.get("info", ""))
            for site in self.sites
        ]

    def device_snapshot(self) -> DeviceSnapshot:
        """Fresh mock device metadata for a new record."""
        now = self._clock()
        last_seen = now - timedelta(minutes=self._rng.randint(1, 24 * 60))
        return DeviceSnapshot(
            dev_eui="".join(self._rng.choice("0123456789ABCDEF") for _ in range(16)),
            battery=self._rng.randint(*self.BATTERY_RANGE),
            rf=self._rng.randint(*self.RF_RANGE),
            last_seen=last_seen.isoformat(),
        )

    def _gps_near(self, center: Tuple[float, float]) -> GpsFix:
        lat = center[0] + self._rng.uniform(-self.GPS_JITTER_DEG, self.GPS_JITTER_DEG)
        lng = center[1] + self._rng.uniform(-self.GPS_JITTER_DEG, self.GPS_JITTER_DEG)
        return GpsFix(
            lat=round(lat, 6),
            lng=round(lng, 6),
            accuracy_ft=self._rng.randint(*self.ACCURACY_RANGE_FT),
            captured_at=self._clock().isoformat(),
        )

    def _install_date(self) -> date:
        today = self._clock().date()
        return today - timedelta(days=self._rng.randint(0, 180))

    def _sensor(self, site: Dict[str, Any], sensor_id: str) -> SensorRecord:
        depth = self._rng.choice(list(Depth))
        status = self._rng.choices(
            list(SensorStatus), weights=[3, 5, 1, 1]
        )[0]
        installed_on = self._install_date()

        history = []
        gps = None
        if status is not SensorStatus.PLANNED:
            tech = self._rng.choice(TECHNICIANS)
            history.append(f"{installed_on.isoformat()} – Installed at {depth.value}, by {tech}")
            # Roughly one in five installed probes never had a fix recorded.
            if site.get("center") and self._rng.random() > 0.2:
                gps = self._gps_near(tuple(site["center"]))

        return SensorRecord(
            id=sensor_id,
            site_id=site["id"],
            depth=depth,
            install_date=installed_on.isoformat(),
            gps=gps,
            status=status,
            notes=self._rng.choice(SAMPLE_NOTES),
            history=history,
            device=self.device_snapshot(),
        )

    def generate_fleet(self) -> List[SensorRecord]:
        """
        Generate the demo fleet.

        Returns:
            Sensor records, ``seed_count`` per demo site
        """
        sensors = []
        for index, site in enumerate(self.sites):
            base = index * ID_BLOCK_SIZE
            for n in range(1, int(site.get("seed_count", 0)) + 1):
                sensors.append(self._sensor(site, f"ACR-{base + n:04d}"))

        logger.info(f"Generated mock fleet of {len(sensors)} sensors across {len(self.sites)} sites")
        return sensors
