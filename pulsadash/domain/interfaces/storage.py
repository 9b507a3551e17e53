"""Interface for persistent key-value storage.

The paginated cache and the attempt throttle only need string values under
string keys, so any backend (memory, disk, browser-like storage) can serve them.
"""

import abc
from typing import Optional

from pulsadash.domain.models.common import StorageKey


class KeyValueStore(abc.ABC):
    """Abstract Base Class for key-value persistence."""

    @abc.abstractmethod
    def get(self, key: StorageKey) -> Optional[str]:
        """Returns the stored value, or None if the key is absent."""
        pass

    @abc.abstractmethod
    def set(self, key: StorageKey, value: str) -> None:
        """Stores a value, replacing any previous one."""
        pass

    @abc.abstractmethod
    def delete(self, key: StorageKey) -> None:
        """Removes a key. Deleting an absent key is not an error."""
        pass
