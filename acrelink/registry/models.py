"""
Sensor Registry Data Model

Dataclasses for sites and sensor records, plus the JSON mapping used by
the durable key-value storage. Field names on disk follow the camelCase
layout of the service-mode storage keys.
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

NO_SITE_ID = "none"


class Depth(Enum):
    """Installation depth band of a soil-moisture probe."""
    SHALLOW = "Shallow (0–6 in)"
    MEDIUM = "Medium (6–12 in)"
    DEEP = "Deep (12–24 in)"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Depth"]:
        """
        Resolve a depth from its stored label or a short name.

        Accepts ``"Shallow (0–6 in)"`` as well as ``"shallow"``.
        """
        if value is None or value == "":
            return None
        if isinstance(value, Depth):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Depth must be a string, got {value!r}")
        for depth in cls:
            if value == depth.value or value.strip().lower() == depth.name.lower():
                return depth
        raise ValueError(f"Unknown depth: {value}")


class SensorStatus(Enum):
    """Deployment status shown on a sensor card."""
    PLANNED = "Planned"
    INSTALLED = "Installed"
    NEEDS_SERVICE = "Needs service"
    OFFLINE = "Offline"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SensorStatus":
        if value is None or value == "":
            return cls.PLANNED
        if isinstance(value, SensorStatus):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Status must be a string, got {value!r}")
        normalized = value.strip().lower().replace("_", " ").replace("-", " ")
        for status in cls:
            if normalized in (status.value.lower(), status.name.lower().replace("_", " ")):
                return status
        raise ValueError(f"Unknown status: {value}")


@dataclass
class GpsFix:
    """Position captured on site for a sensor."""
    lat: float
    lng: float
    accuracy_ft: int
    captured_at: str   # ISO 8601, UTC

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lat": self.lat,
            "lng": self.lng,
            "accuracyFt": self.accuracy_ft,
            "capturedAt": self.captured_at,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["GpsFix"]:
        if not data:
            return None
        return cls(
            lat=float(data["lat"]),
            lng=float(data["lng"]),
            accuracy_ft=int(data.get("accuracyFt", 0)),
            captured_at=data.get("capturedAt", ""),
        )


@dataclass
class DeviceSnapshot:
    """Read-only device metadata generated when a record is created."""
    dev_eui: str
    battery: int          # Percent
    rf: int               # RSSI in dBm
    last_seen: str        # ISO 8601, UTC


@dataclass
class Site:
    """A farm site that sensors are deployed to."""
    id: str
    name: str
    info: str = ""
    planned_count: int = 0

    @property
    def is_placeholder(self) -> bool:
        return self.id == NO_SITE_ID

    def describe(self) -> str:
        """Display line used by the site picker."""
        if self.is_placeholder:
            return self.name
        return f"{self.info}, {self.planned_count} sensors planned"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "info": self.info,
            "plannedCount": self.planned_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Site":
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            info=data.get("info", ""),
            planned_count=int(data.get("plannedCount", 0)),
        )


@dataclass
class SensorRecord:
    """One tagged soil-moisture sensor in the registry."""
    id: str
    site_id: str
    depth: Optional[Depth] = None
    install_date: Optional[str] = None    # YYYY-MM-DD
    gps: Optional[GpsFix] = None
    status: SensorStatus = SensorStatus.PLANNED
    notes: str = ""
    label: Optional[str] = None
    history: List[str] = field(default_factory=list)
    device: Optional[DeviceSnapshot] = None

    def copy(self) -> "SensorRecord":
        """Return an independent deep copy, used for editor drafts."""
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "siteId": self.site_id,
            "depth": self.depth.value if self.depth else None,
            "installDate": self.install_date,
            "gps": self.gps.to_dict() if self.gps else None,
            "status": self.status.value,
            "notes": self.notes,
            "history": list(self.history),
        }
        if self.label:
            data["label"] = self.label
        if self.device:
            data["devEUI"] = self.device.dev_eui
            data["battery"] = self.device.battery
            data["rf"] = self.device.rf
            data["lastSeen"] = self.device.last_seen
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SensorRecord":
        device = None
        if data.get("devEUI"):
            device = DeviceSnapshot(
                dev_eui=data["devEUI"],
                battery=int(data.get("battery", 0)),
                rf=int(data.get("rf", 0)),
                last_seen=data.get("lastSeen", ""),
            )
        return cls(
            id=data["id"],
            site_id=data["siteId"],
            depth=Depth.parse(data.get("depth")),
            install_date=data.get("installDate"),
            gps=GpsFix.from_dict(data.get("gps")),
            status=SensorStatus.parse(data.get("status")),
            notes=data.get("notes") or "",
            label=data.get("label"),
            history=list(data.get("history") or []),
            device=device,
        )


def placeholder_site() -> Site:
    """The sentinel "no site selected" entry kept at the head of the site list."""
    return Site(id=NO_SITE_ID, name="Select a site", info="")
