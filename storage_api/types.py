from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class UrlMetadata:
    """An access URL for a stored object.

    ``expires_at`` is an epoch-millisecond timestamp and only carries meaning
    when ``is_permanent`` is false.
    """

    url: str
    is_permanent: bool
    expires_at: int | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"url": self.url, "isPermanent": self.is_permanent}
        if self.expires_at is not None:
            out["expiresAt"] = self.expires_at
        return out


@dataclass(frozen=True)
class UrlMapping:
    identifier: str
    url: str
    is_permanent: bool
    expires_at: int | None
    created_at: int
    updated_at: int

    @property
    def metadata(self) -> UrlMetadata:
        return UrlMetadata(url=self.url, is_permanent=self.is_permanent, expires_at=self.expires_at)

    def is_expired(self, now: int) -> bool:
        # A non-permanent record without an expiry never counts as expired.
        return (not self.is_permanent) and bool(self.expires_at) and self.expires_at <= now

    def to_dict(self) -> dict[str, Any]:
        out = {"identifier": self.identifier, **self.metadata.to_dict()}
        out["createdAt"] = self.created_at
        out["updatedAt"] = self.updated_at
        return out


@dataclass(frozen=True)
class ApiResult:
    """A framework-neutral response: JSON-serialisable payload plus status."""

    data: Any
    status: int = 200
