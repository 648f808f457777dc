from storage_api.db import SqlMappingStore, init_db, now_ms
from storage_api.mapping import UrlMappingService, create_identifier
from storage_api.types import UrlMetadata

SIGNED_URL_TTL_MS = 60 * 60 * 1000


def main(db_url: str | None = None) -> None:
    init_db(db_url)
    service = UrlMappingService(SqlMappingStore(db_url))
    service.register(
        create_identifier("demo/logo.png"),
        UrlMetadata(url="https://cdn.example.com/demo/logo.png", is_permanent=True),
    )
    service.register(
        create_identifier("demo/report.pdf"),
        UrlMetadata(
            url="https://storage.example.com/demo/report.pdf?X-Amz-Signature=demo",
            is_permanent=False,
            expires_at=now_ms() + SIGNED_URL_TTL_MS,
        ),
    )


if __name__ == "__main__":
    main()
