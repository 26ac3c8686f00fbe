"""
Sensor Editor

Holds one draft sensor record while the technician edits it. The draft is
independent of the store: nothing reaches the registry until ``save``.
"""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from ..errors import CapabilityError
from .geolocation import GeolocationProvider, PositionError, PositionOptions
from .mock_fleet import MockFleetGenerator
from .models import GpsFix, SensorRecord, SensorStatus
from .store import SensorStore

logger = logging.getLogger(__name__)

FEET_PER_METER = 3.28084


def meters_to_feet(meters: float) -> int:
    """Convert an accuracy radius to whole feet, rounding halves up."""
    return int(meters * FEET_PER_METER + 0.5)


class EditorState(Enum):
    CLOSED = "closed"
    OPEN_NEW = "open-new"
    OPEN_EDIT = "open-edit"


class SensorEditor:
    """
    Draft state machine: CLOSED -> OPEN_NEW / OPEN_EDIT -> CLOSED.

    A failed save keeps the editor open with the draft untouched so the
    technician can correct it and try again.

    Example:
        >>> editor = SensorEditor(MockFleetGenerator(seed=3))
        >>> draft = editor.open_new("demo-a")
        >>> draft.id, draft.status.value
        ('', 'Planned')
    """

    def __init__(
        self,
        generator: MockFleetGenerator = None,
        clock: Callable[[], datetime] = None
    ):
        self.generator = generator or MockFleetGenerator()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._state = EditorState.CLOSED
        self._draft: Optional[SensorRecord] = None
        self._original_id: Optional[str] = None

    @property
    def state(self) -> EditorState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is not EditorState.CLOSED

    @property
    def draft(self) -> Optional[SensorRecord]:
        return self._draft

    @property
    def original_id(self) -> Optional[str]:
        """Id of the record being edited, None for a new record."""
        return self._original_id

    def open_new(self, site_id: str) -> SensorRecord:
        """Start a new record for ``site_id`` with default values."""
        self._draft = SensorRecord(
            id="",
            site_id=site_id,
            depth=None,
            install_date=self._clock().date().isoformat(),
            gps=None,
            status=SensorStatus.PLANNED,
            notes="",
            history=[],
            device=self.generator.device_snapshot(),
        )
        self._original_id = None
        self._state = EditorState.OPEN_NEW
        logger.debug(f"Opened new sensor draft for site {site_id}")
        return self._draft

    def open_edit(self, record: SensorRecord) -> SensorRecord:
        """Start editing a copy of an existing record."""
        self._draft = record.copy()
        self._original_id = record.id
        self._state = EditorState.OPEN_EDIT
        logger.debug(f"Opened sensor {record.id} for editing")
        return self._draft

    def cancel(self) -> None:
        """Discard the draft without touching the store."""
        if self._draft is not None:
            logger.debug(f"Discarded draft {self._draft.id or '<new>'}")
        self._close()

    def _close(self) -> None:
        self._draft = None
        self._original_id = None
        self._state = EditorState.CLOSED

    def _require_open(self) -> SensorRecord:
        if not self.is_open or self._draft is None:
            raise RuntimeError("No sensor draft is open")
        return self._draft

    def save(self, store: SensorStore, site_id: str = None) -> SensorRecord:
        """
        Validate and commit the draft to the store.

        Args:
            store: Registry to write into
            site_id: Currently selected site; the draft is moved to it

        Returns:
            The saved record

        Raises:
            ValidationError: The draft stays open and unchanged
        """
        draft = self._require_open()
        if site_id is not None:
            draft = replace(draft, site_id=site_id)

        saved = store.upsert(draft, original_id=self._original_id)
        self._close()
        return saved

    def clear_gps(self) -> None:
        """Remove the draft's GPS fix; the store changes only on save."""
        draft = self._require_open()
        draft.gps = None
        logger.debug(f"Cleared GPS on draft {draft.id or '<new>'}")

    async def capture_gps(
        self,
        provider: Optional[GeolocationProvider],
        options: PositionOptions = None
    ) -> GpsFix:
        """
        Capture the current position into the open draft.

        Overlapping captures are not cancelled; whichever resolves last
        overwrites the draft's fix. A capture resolving after the draft was
        closed or replaced is dropped.

        Returns:
            The captured fix

        Raises:
            CapabilityError: No provider, permission denied or timeout
        """
        draft = self._require_open()
        options = options or PositionOptions()

        if provider is None:
            raise CapabilityError(
                CapabilityError.GEOLOCATION_UNAVAILABLE,
                "Geolocation is not supported on this device."
            )

        try:
            position = await asyncio.wait_for(
                provider.get_current_position(options),
                timeout=options.timeout
            )
        except asyncio.TimeoutError:
            raise CapabilityError(
                CapabilityError.GEOLOCATION_DENIED_OR_TIMEOUT,
                "Unable to get GPS, please try again. (Timeout expired)",
                reason="Timeout expired"
            )
        except PositionError as e:
            reason = str(e) or "unknown"
            raise CapabilityError(
                CapabilityError.GEOLOCATION_DENIED_OR_TIMEOUT,
                f"Unable to get GPS, please try again. ({reason})",
                reason=reason
            ) from e

        fix = GpsFix(
            lat=position.latitude,
            lng=position.longitude,
            accuracy_ft=meters_to_feet(position.accuracy_m or 0),
            captured_at=self._clock().isoformat(),
        )

        if self._draft is draft:
            draft.gps = fix
            logger.info(f"GPS captured: {fix.lat}, {fix.lng} (±{fix.accuracy_ft} ft)")
        else:
            logger.debug("GPS fix arrived after the draft was closed, dropped")
        return fix
