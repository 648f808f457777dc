from __future__ import annotations

from django.db import models

from storage_api.types import UrlMapping


class UrlMappingRecord(models.Model):
    identifier = models.CharField(max_length=1024, primary_key=True)
    url = models.TextField()
    is_permanent = models.BooleanField(default=False)
    expires_at = models.BigIntegerField(null=True, blank=True)
    created_at = models.BigIntegerField()
    updated_at = models.BigIntegerField()

    class Meta:
        db_table = "url_mapping"
        indexes = [
            models.Index(fields=["expires_at"], name="ix_url_mapping_expires_at"),
        ]

    def to_mapping(self) -> UrlMapping:
        return UrlMapping(
            identifier=self.identifier,
            url=self.url,
            is_permanent=self.is_permanent,
            expires_at=self.expires_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
