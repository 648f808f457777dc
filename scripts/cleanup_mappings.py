from storage_api.db import SqlMappingStore, init_db
from storage_api.mapping import UrlMappingService
from storage_api.observability import log_event


def main(db_url: str | None = None) -> int:
    init_db(db_url)
    deleted = UrlMappingService(SqlMappingStore(db_url)).cleanup()
    log_event("mappings.cleanup", deleted_count=deleted)
    print(f"deleted_mappings={deleted}")
    return deleted


if __name__ == "__main__":
    main()
