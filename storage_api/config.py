from __future__ import annotations

import os
from dataclasses import dataclass, field


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class S3Config:
    bucket: str | None = os.getenv("S3_BUCKET_NAME") or None
    region: str = os.getenv("S3_REGION", "auto")
    endpoint_url: str | None = os.getenv("S3_ENDPOINT") or None
    access_key_id: str | None = os.getenv("S3_ACCESS_KEY_ID") or None
    secret_access_key: str | None = os.getenv("S3_SECRET_ACCESS_KEY") or None
    # Required for MinIO, optional for most other providers.
    force_path_style: bool = _env_flag("S3_FORCE_PATH_STYLE")
    public_endpoint: str | None = os.getenv("S3_PUBLIC_ENDPOINT") or None
    provider: str = os.getenv("S3_PROVIDER", "Unknown")
    signed_url_ttl_s: int = int(os.getenv("S3_SIGNED_URL_TTL_S", 7 * 24 * 60 * 60))
    transfer_url_ttl_s: int = int(os.getenv("S3_TRANSFER_URL_TTL_S", 60 * 60))

    @property
    def configured(self) -> bool:
        return bool(self.bucket)


@dataclass(frozen=True)
class Settings:
    api_prefix: str = os.getenv("STORAGE_API_PREFIX", "/api")
    db_url: str = os.getenv("STORAGE_API_DB_URL", "sqlite:///data/storage_api.db")
    mapping_store: str = os.getenv("STORAGE_API_MAPPING_STORE", "memory")
    api_token: str | None = os.getenv("STORAGE_API_TOKEN") or None
    auth_type: str = os.getenv("STORAGE_API_AUTH_TYPE", "user")
    s3: S3Config = field(default_factory=S3Config)


settings = Settings()
