"""
Sensor registry: records, storage, selection and editing.
"""

from .editor import EditorState, SensorEditor
from .models import NO_SITE_ID, Depth, GpsFix, SensorRecord, SensorStatus, Site
from .selection import SelectionBasket, VisitRecord, visible_sensors
from .store import SensorStore

__all__ = [
    "Depth",
    "EditorState",
    "GpsFix",
    "NO_SITE_ID",
    "SelectionBasket",
    "SensorEditor",
    "SensorRecord",
    "SensorStatus",
    "SensorStore",
    "Site",
    "VisitRecord",
    "visible_sensors",
]
