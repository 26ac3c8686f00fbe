"""
Service Mode Session

Top-level controller for one technician session. It owns the sensor store,
the selected site, the search text, the editor and the visit basket, and
reports the outcome of every action through the notifier.
"""

import logging
from typing import List, Optional

from .errors import CapabilityError, ValidationError
from .notifications import Notifier
from .registry.editor import SensorEditor
from .registry.geolocation import GeolocationProvider, PositionOptions
from .registry.models import NO_SITE_ID, GpsFix, SensorRecord, Site
from .registry.selection import SelectionBasket, VisitRecord, visible_sensors
from .registry.store import SensorStore

logger = logging.getLogger(__name__)


class ServiceSession:
    """
    Service-mode workflow controller.

    Workflow errors never propagate out of the action methods: they are
    reported through ``notifier`` and the action returns None or False.

    Attributes:
        store: Sensor registry
        editor: Draft editor
        basket: Visit selection basket
        notifier: Receives success and error messages
        visits: Visit records committed during this session
    """

    def __init__(
        self,
        store: SensorStore,
        editor: SensorEditor = None,
        geolocation: Optional[GeolocationProvider] = None,
        notifier: Notifier = None,
        position_options: PositionOptions = None,
        technician: str = "Parker"
    ):
        self.store = store
        self.editor = editor or SensorEditor(store.generator)
        self.geolocation = geolocation
        self.notifier = notifier or Notifier()
        self.position_options = position_options or PositionOptions()
        self.technician = technician

        self.selected_site_id = NO_SITE_ID
        self.search_term = ""
        self.basket = SelectionBasket(on_add=self._on_basket_add)
        self.visits: List[VisitRecord] = []

        self.store.load()

    # ------------------------------------------------------------------
    # Site and search
    # ------------------------------------------------------------------
    @property
    def has_site(self) -> bool:
        return self.selected_site_id != NO_SITE_ID

    def sites(self) -> List[Site]:
        """Selectable sites, without the placeholder entry."""
        return [site for site in self.store.sites() if not site.is_placeholder]

    def select_site(self, site_id: str) -> Site:
        """
        Select the site to work on.

        Raises:
            KeyError: If the site id is unknown
        """
        site = self.store.site(site_id)
        if site is None:
            raise KeyError(f"Unknown site: {site_id}")
        self.selected_site_id = site.id
        logger.info(f"Selected site {site.id} ({site.name})")
        return site

    def set_search(self, text: str) -> None:
        self.search_term = text or ""

    def visible(self) -> Optional[List[SensorRecord]]:
        """
        Sensors of the selected site matching the search text.

        Returns:
            The (possibly empty) list, or None when no site is selected
        """
        if not self.has_site:
            return None
        return list(visible_sensors(self.store.list_all(), self.selected_site_id, self.search_term))

    def pick_list(self) -> Optional[List[SensorRecord]]:
        """Visible sensors that are not in the basket yet."""
        visible = self.visible()
        if visible is None:
            return None
        return self.basket.candidates(visible)

    # ------------------------------------------------------------------
    # Editor
    # ------------------------------------------------------------------
    def open_create(self) -> Optional[SensorRecord]:
        if not self.has_site:
            self.notifier.error("Select a site before adding a sensor.")
            return None
        return self.editor.open_new(self.selected_site_id)

    def open_edit(self, sensor_id: str) -> Optional[SensorRecord]:
        record = self.store.get(sensor_id)
        if record is None:
            self.notifier.error(f"Sensor {sensor_id} not found.")
            return None
        return self.editor.open_edit(record)

    def save_draft(self) -> Optional[SensorRecord]:
        """
        Validate and save the open draft.

        Returns:
            The saved record, or None when validation failed (draft kept)
        """
        site_id = self.selected_site_id if self.has_site else None
        try:
            saved = self.editor.save(self.store, site_id=site_id)
        except ValidationError as e:
            self.notifier.error(e.message, kind=e.kind)
            return None

        self.notifier.info(f"Saved {saved.id}")
        return saved

    def cancel_draft(self) -> None:
        self.editor.cancel()

    def clear_gps(self) -> None:
        self.editor.clear_gps()
        self.notifier.info("GPS cleared")

    async def capture_gps(self) -> Optional[GpsFix]:
        """Capture GPS into the open draft; None if the capture failed."""
        try:
            fix = await self.editor.capture_gps(self.geolocation, self.position_options)
        except CapabilityError as e:
            self.notifier.error(e.message, kind=e.kind)
            return None

        self.notifier.info(f"GPS captured (±{fix.accuracy_ft} ft)")
        return fix

    def delete_sensor(self, sensor_id: str) -> bool:
        if not self.store.remove(sensor_id):
            self.notifier.error(f"Sensor {sensor_id} not found.")
            return False
        self.basket.remove(sensor_id)
        self.notifier.info(f"Deleted {sensor_id}")
        return True

    # ------------------------------------------------------------------
    # Visit basket
    # ------------------------------------------------------------------
    def _on_basket_add(self, sensor_id: str) -> None:
        self.search_term = ""

    def pick(self, sensor_id: str) -> bool:
        """
        Add a sensor of the selected site to the visit basket.

        Returns:
            True if the id was added; False if it was already selected or
            rejected (no site selected, or not a sensor of that site)
        """
        if not self.has_site:
            self.notifier.error("Select a site before picking sensors.")
            return False
        sensor = self.store.get(sensor_id)
        if sensor is None or sensor.site_id != self.selected_site_id:
            self.notifier.error(f"Sensor {sensor_id} is not on site {self.selected_site_id}.")
            return False
        return self.basket.add(sensor_id)

    def unpick(self, sensor_id: str) -> bool:
        return self.basket.remove(sensor_id)

    def save_selection(self, remarks: str = None) -> Optional[VisitRecord]:
        site_id = self.selected_site_id if self.has_site else None
        try:
            visit = self.basket.commit(remarks, site_id=site_id, technician=self.technician)
        except ValidationError as e:
            self.notifier.error(e.message, kind=e.kind)
            return None

        self.visits.append(visit)
        self.notifier.info("Saved successfully!")
        return visit
