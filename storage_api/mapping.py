from __future__ import annotations

from collections.abc import Callable

from storage_api.db import now_ms
from storage_api.store import MappingStore
from storage_api.types import UrlMapping, UrlMetadata

IDENTIFIER_PREFIX = "storage-file://"

RefreshCallback = Callable[[str], UrlMetadata]


def create_identifier(key: str) -> str:
    return f"{IDENTIFIER_PREFIX}{key}"


def extract_key(identifier: str) -> str:
    # Strings without the prefix are treated as raw storage keys.
    if identifier.startswith(IDENTIFIER_PREFIX):
        return identifier[len(IDENTIFIER_PREFIX) :]
    return identifier


class UrlMappingService:
    """Caches access URLs per identifier and refreshes them once they expire.

    The service never talks to object storage itself: callers of
    :meth:`resolve` pass the callback that produces fresh metadata for a
    storage key. Callback failures propagate untouched and nothing is written
    until the callback has returned.

    Two concurrent resolutions of the same stale identifier may both call the
    refresh callback; whichever registers last wins. No lock is held across
    the callback.
    """

    def __init__(self, store: MappingStore, clock: Callable[[], int] = now_ms):
        self.store = store
        self.clock = clock

    def resolve(self, identifier: str, refresh_callback: RefreshCallback) -> UrlMetadata:
        mapping = self.store.get(identifier)
        now = self.clock()

        if mapping is not None and mapping.is_permanent:
            return UrlMetadata(url=mapping.url, is_permanent=True)

        if mapping is None or (mapping.expires_at and mapping.expires_at <= now):
            metadata = refresh_callback(extract_key(identifier))
            self.register(identifier, metadata)
            return metadata

        return UrlMetadata(url=mapping.url, is_permanent=False, expires_at=mapping.expires_at)

    def register(self, identifier: str, metadata: UrlMetadata) -> None:
        # Full replacement: created_at restarts on every refresh.
        now = self.clock()
        self.store.set(
            UrlMapping(
                identifier=identifier,
                url=metadata.url,
                is_permanent=metadata.is_permanent,
                expires_at=metadata.expires_at,
                created_at=now,
                updated_at=now,
            )
        )

    def delete(self, identifier: str) -> None:
        self.store.delete(identifier)

    def cleanup(self) -> int:
        return self.store.cleanup(self.clock())

    def get_all(self) -> list[UrlMapping]:
        return list(self.store.get_all())

    def create_identifier(self, key: str) -> str:
        return create_identifier(key)

    def extract_key(self, identifier: str) -> str:
        return extract_key(identifier)
