"""
Durable Key-Value Storage

A local-storage style key/value store: string keys map to string values
(JSON documents). The file-backed implementation keeps every key in a
single JSON file and rewrites it on each write.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class KeyValueStorage(ABC):
    """Interface shared by all storage backends."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the stored string for ``key`` or None if absent."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete ``key`` if present."""


class MemoryStorage(KeyValueStorage):
    """In-process storage, used for tests and dry runs."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})
        self.write_count = 0

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value
        self.write_count += 1

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileStorage(KeyValueStorage):
    """
    File-backed storage.

    Attributes:
        path: Location of the JSON file holding all keys

    Example:
        >>> storage = JsonFileStorage("data/service_storage.json")
        >>> storage.set_item("greeting", '"hello"')
        >>> storage.get_item("greeting")
        '"hello"'
    """

    def __init__(self, path):
        self.path = Path(path)
        self._items: Dict[str, str] = self._read_file()

    def _read_file(self) -> Dict[str, str]:
        if not self.path.exists():
            logger.info(f"Storage file {self.path} not found, starting empty")
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Storage file {self.path} is not readable JSON ({e}), starting empty")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Storage file {self.path} does not hold an object, starting empty")
            return {}

        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_file(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._items, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self.path)
        logger.debug(f"Wrote {len(self._items)} keys to {self.path}")

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value
        self._write_file()

    def remove_item(self, key: str) -> None:
        if key in self._items:
            del self._items[key]
            self._write_file()
