from __future__ import annotations

import threading
from abc import ABC, abstractmethod

from storage_api.types import UrlMapping


class MappingStore(ABC):
    """Persistence for identifier -> UrlMapping records.

    Every single call must be atomic with respect to concurrent callers.
    Nothing spans more than one call; the mapping service never needs a
    cross-call transaction.
    """

    @abstractmethod
    def get(self, identifier: str) -> UrlMapping | None: ...

    @abstractmethod
    def set(self, mapping: UrlMapping) -> None:
        """Insert or fully replace the record keyed by ``mapping.identifier``."""

    @abstractmethod
    def delete(self, identifier: str) -> None:
        """Remove the record; absence is not an error."""

    @abstractmethod
    def cleanup(self, now: int) -> int:
        """Delete every expired non-permanent record and return how many went."""

    @abstractmethod
    def get_all(self) -> list[UrlMapping]:
        """Return a snapshot of all records, in no particular order."""


class InMemoryMappingStore(MappingStore):
    def __init__(self) -> None:
        self._records: dict[str, UrlMapping] = {}
        self._lock = threading.Lock()

    def get(self, identifier: str) -> UrlMapping | None:
        with self._lock:
            return self._records.get(identifier)

    def set(self, mapping: UrlMapping) -> None:
        with self._lock:
            self._records[mapping.identifier] = mapping

    def delete(self, identifier: str) -> None:
        with self._lock:
            self._records.pop(identifier, None)

    def cleanup(self, now: int) -> int:
        with self._lock:
            expired = [k for k, m in self._records.items() if m.is_expired(now)]
            for identifier in expired:
                del self._records[identifier]
            return len(expired)

    def get_all(self) -> list[UrlMapping]:
        with self._lock:
            return list(self._records.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
