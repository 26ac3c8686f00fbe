"""
Site-scoped sensor selection: the visible list and the visit basket.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Iterator, List, Optional, Tuple

from ..errors import ValidationError
from .models import SensorRecord

logger = logging.getLogger(__name__)


def matches_query(sensor: SensorRecord, query: str) -> bool:
    """Case-insensitive substring match against the sensor id or label."""
    if not query:
        return True
    term = query.lower()
    return term in sensor.id.lower() or term in (sensor.label or "").lower()


def visible_sensors(
    sensors: Iterable[SensorRecord],
    site_id: str,
    query: str = ""
) -> Iterator[SensorRecord]:
    """
    Sensors of ``site_id`` matching ``query``, ascending by id.

    Args:
        sensors: Full sensor collection
        site_id: Selected site id
        query: Free-text search, empty for no filter

    Returns:
        Iterator over the matching records (possibly empty)
    """
    matching = (
        sensor for sensor in sensors
        if sensor.site_id == site_id and matches_query(sensor, query)
    )
    yield from sorted(matching, key=lambda sensor: sensor.id)


@dataclass(frozen=True)
class VisitRecord:
    """One committed basket: the sensors visited in a pass and the remarks."""
    site_id: Optional[str]
    technician: Optional[str]
    sensor_ids: Tuple[str, ...]
    remarks: str
    committed_at: str


class SelectionBasket:
    """
    Chip-style multi-select of sensor ids gathered during one site visit.

    Attributes:
        remarks: Free-text note committed with the selection
        on_add: Called with the id after a new id is added; the session
            uses it to clear the active search text
    """

    def __init__(self, on_add: Callable[[str], None] = None):
        self._ids: List[str] = []
        self.remarks = ""
        self.on_add = on_add

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, sensor_id: str) -> bool:
        return sensor_id in self._ids

    @property
    def ids(self) -> Tuple[str, ...]:
        return tuple(self._ids)

    def add(self, sensor_id: str) -> bool:
        """
        Add an id, keeping set semantics.

        Returns:
            True if the id was added, False if it was already selected
        """
        if sensor_id in self._ids:
            return False
        self._ids.append(sensor_id)
        if self.on_add:
            self.on_add(sensor_id)
        return True

    def remove(self, sensor_id: str) -> bool:
        if sensor_id not in self._ids:
            return False
        self._ids.remove(sensor_id)
        return True

    def candidates(self, visible: Iterable[SensorRecord]) -> List[SensorRecord]:
        """The pick list: visible sensors that are not selected yet."""
        return [sensor for sensor in visible if sensor.id not in self._ids]

    def commit(
        self,
        remarks: str = None,
        site_id: str = None,
        technician: str = None
    ) -> VisitRecord:
        """
        Finalize the selection and remarks as one visit event.

        Args:
            remarks: Remarks text, defaults to the basket's ``remarks``
            site_id: Site the visit took place on
            technician: Who made the visit

        Returns:
            The committed VisitRecord

        Raises:
            ValidationError: empty-selection if nothing is selected
        """
        if not self._ids:
            raise ValidationError(ValidationError.EMPTY_SELECTION, "No sensors selected!")

        text = self.remarks if remarks is None else remarks
        record = VisitRecord(
            site_id=site_id,
            technician=technician,
            sensor_ids=tuple(self._ids),
            remarks=text,
            committed_at=datetime.now(timezone.utc).isoformat(),
        )
        logger.info(f"Visit saved for {len(record.sensor_ids)} sensors: {', '.join(record.sensor_ids)}")
        if text:
            logger.info(f"Remarks: {text}")

        self._ids.clear()
        self.remarks = ""
        return record
