"""Concrete KeyValueStore implementations."""

import logging
from pathlib import Path
from typing import Dict, Optional, Union

import diskcache as dc

from pulsadash.domain.interfaces.storage import KeyValueStore
from pulsadash.domain.models.common import StorageKey

logger = logging.getLogger(__name__)


class InMemoryStore(KeyValueStore):
    """Dict-backed store. Contents are lost with the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: StorageKey) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: StorageKey, value: str) -> None:
        self._data[key] = value

    def delete(self, key: StorageKey) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._data


class DiskKeyValueStore(KeyValueStore):
    """Persistent store on top of a diskcache directory."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory).expanduser()
        self.directory.mkdir(parents=True, exist_ok=True)
        self._cache = dc.Cache(str(self.directory), timeout=1)
        logger.debug(f"Opened key-value store at: {self._cache.directory}")

    def get(self, key: StorageKey) -> Optional[str]:
        value = self._cache.get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            logger.warning(f"Ignoring non-text value stored under '{key}'")
            return None
        return value

    def set(self, key: StorageKey, value: str) -> None:
        self._cache.set(key, value)

    def delete(self, key: StorageKey) -> None:
        self._cache.delete(key)

    def close(self) -> None:
        self._cache.close()
