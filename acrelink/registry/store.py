"""
Sensor Store

Owns the authoritative sensor and site collections for a service session
and mediates every read and write against durable storage.
"""

import json
import logging
from collections import Counter
from typing import List, Optional, Tuple

from ..errors import ValidationError
from .mock_fleet import MockFleetGenerator
from .models import NO_SITE_ID, SensorRecord, Site, placeholder_site
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)

SENSORS_KEY = "acrelink_service_sensors"
SITES_KEY = "acrelink_service_sites"


class SensorStore:
    """
    Sensor registry backed by a key-value storage.

    Every successful mutation rewrites the full sensor and site
    collections to storage before returning; site ``planned_count``
    values are always recomputed from the live sensor list.

    Example:
        >>> store = SensorStore(MemoryStorage(), MockFleetGenerator(seed=1))
        >>> store.load()
        >>> store.get("ACR-0001").site_id
        'demo-a'
    """

    def __init__(self, storage: KeyValueStorage, generator: MockFleetGenerator = None):
        self.storage = storage
        self.generator = generator or MockFleetGenerator()
        self._sensors: List[SensorRecord] = []
        self._sites: List[Site] = []
        self._loaded = False

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def _read_json_list(self, key: str) -> Optional[list]:
        raw = self.storage.get_item(key)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Stored value for {key} is not valid JSON ({e}), ignoring it")
            return None
        if not isinstance(data, list):
            logger.warning(f"Stored value for {key} is not a list, ignoring it")
            return None
        return data

    def _load_sites(self) -> List[Site]:
        data = self._read_json_list(SITES_KEY)
        if data:
            try:
                sites = [Site.from_dict(item) for item in data]
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Stored sites are malformed ({e}), using demo sites")
                sites = self.generator.generate_sites()
        else:
            sites = self.generator.generate_sites()

        if not any(site.id == NO_SITE_ID for site in sites):
            sites.insert(0, placeholder_site())
        return sites

    def _load_sensors(self) -> Optional[List[SensorRecord]]:
        data = self._read_json_list(SENSORS_KEY)
        if data is None:
            return None
        try:
            return [SensorRecord.from_dict(item) for item in data]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Stored sensors are malformed ({e}), reseeding")
            return None

    def load(self) -> Tuple[SensorRecord, ...]:
        """
        Load the registry from storage, seeding mock data when none exists.

        Returns:
            The loaded sensor collection
        """
        self._sites = self._load_sites()
        sensors = self._load_sensors()

        if sensors is None:
            self._sensors = self.generator.generate_fleet()
            self._recount()
            self._persist()
            logger.info(f"Seeded registry with {len(self._sensors)} mock sensors")
        else:
            self._sensors = sensors
            self._recount()
            logger.info(f"Loaded {len(self._sensors)} sensors from storage")

        self._loaded = True
        return self.list_all()

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def list_all(self) -> Tuple[SensorRecord, ...]:
        """Full sensor collection. Copy a record before changing it."""
        self._ensure_loaded()
        return tuple(self._sensors)

    def get(self, sensor_id: str) -> Optional[SensorRecord]:
        self._ensure_loaded()
        for sensor in self._sensors:
            if sensor.id == sensor_id:
                return sensor
        return None

    def sites(self) -> Tuple[Site, ...]:
        """All sites, the "no site" placeholder first."""
        self._ensure_loaded()
        return tuple(self._sites)

    def site(self, site_id: str) -> Optional[Site]:
        self._ensure_loaded()
        for site in self._sites:
            if site.id == site_id:
                return site
        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def _index_of(self, sensor_id: str) -> int:
        for index, sensor in enumerate(self._sensors):
            if sensor.id == sensor_id:
                return index
        return -1

    def upsert(self, record: SensorRecord, original_id: str = None) -> SensorRecord:
        """
        Insert or replace a sensor record.

        Args:
            record: Record to save; its trimmed id is stored
            original_id: Id the record had when opened for editing, None for
                a new record. A record keeping its own id is replaced in
                place; a record renamed from ``original_id`` replaces that
                record.

        Returns:
            The saved record

        Raises:
            ValidationError: empty-id, missing-depth or duplicate-id
        """
        self._ensure_loaded()

        sensor_id = (record.id or "").strip()
        if not sensor_id:
            raise ValidationError(ValidationError.EMPTY_ID, "Sensor ID is required")

        if record.depth is None:
            raise ValidationError(ValidationError.MISSING_DEPTH, "Please choose a depth")

        existing = self._index_of(sensor_id)
        if existing >= 0 and sensor_id != original_id:
            raise ValidationError(
                ValidationError.DUPLICATE_ID,
                f"Sensor ID {sensor_id} already exists"
            )

        saved = record.copy()
        saved.id = sensor_id

        target = self._index_of(original_id) if original_id is not None else -1
        if target >= 0:
            self._sensors[target] = saved
            logger.info(f"Updated sensor {sensor_id} on site {saved.site_id}")
        else:
            self._sensors.insert(0, saved)
            logger.info(f"Added sensor {sensor_id} to site {saved.site_id}")

        self._recount()
        self._persist()
        return saved

    def remove(self, sensor_id: str) -> bool:
        """
        Delete a sensor record.

        Returns:
            True if a record was removed, False if the id was unknown
        """
        self._ensure_loaded()

        index = self._index_of(sensor_id)
        if index < 0:
            logger.debug(f"Remove ignored, sensor {sensor_id} not found")
            return False

        del self._sensors[index]
        self._recount()
        self._persist()
        logger.info(f"Deleted sensor {sensor_id}")
        return True

    def _recount(self) -> None:
        counts = Counter(sensor.site_id for sensor in self._sensors)
        for site in self._sites:
            site.planned_count = 0 if site.is_placeholder else counts.get(site.id, 0)

    def _persist(self) -> None:
        self.storage.set_item(
            SENSORS_KEY,
            json.dumps([sensor.to_dict() for sensor in self._sensors], ensure_ascii=False)
        )
        self.storage.set_item(
            SITES_KEY,
            json.dumps([site.to_dict() for site in self._sites], ensure_ascii=False)
        )
        logger.debug(f"Persisted {len(self._sensors)} sensors and {len(self._sites)} sites")
