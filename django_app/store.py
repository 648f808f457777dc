from __future__ import annotations

from django_app.models import UrlMappingRecord
from storage_api.store import MappingStore
from storage_api.types import UrlMapping


class DjangoMappingStore(MappingStore):
    """MappingStore on the Django ORM, sharing the ``url_mapping`` table layout."""

    def get(self, identifier: str) -> UrlMapping | None:
        row = UrlMappingRecord.objects.filter(identifier=identifier).first()
        return row.to_mapping() if row else None

    def set(self, mapping: UrlMapping) -> None:
        UrlMappingRecord.objects.update_or_create(
            identifier=mapping.identifier,
            defaults={
                "url": mapping.url,
                "is_permanent": mapping.is_permanent,
                "expires_at": mapping.expires_at,
                "created_at": mapping.created_at,
                "updated_at": mapping.updated_at,
            },
        )

    def delete(self, identifier: str) -> None:
        UrlMappingRecord.objects.filter(identifier=identifier).delete()

    def cleanup(self, now: int) -> int:
        deleted, _ = (
            UrlMappingRecord.objects.filter(
                is_permanent=False,
                expires_at__isnull=False,
                expires_at__lte=now,
            )
            .exclude(expires_at=0)
            .delete()
        )
        return deleted

    def get_all(self) -> list[UrlMapping]:
        return [row.to_mapping() for row in UrlMappingRecord.objects.all()]
