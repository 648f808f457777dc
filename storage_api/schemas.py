from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Action(str, Enum):
    RESOLVE_URL = "resolveUrl"
    PUBLIC_URL = "publicUrl"
    UPLOAD = "upload"
    LIST = "list"
    DELETE = "delete"
    RENAME = "rename"
    DOWNLOAD = "download"
    CLEANUP = "cleanup"
    MAPPINGS = "mappings"
    TEST = "test"


AUTH_REQUIRED_ACTIONS = frozenset(
    {
        Action.UPLOAD,
        Action.DELETE,
        Action.RENAME,
        Action.CLEANUP,
        Action.MAPPINGS,
        Action.TEST,
        Action.LIST,
    }
)


class StorageActionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    action: str | None = None
    key: str | None = None
    content_type: str | None = Field(default=None, alias="contentType")
    prefix: str | None = None
    identifier: str | None = None
    new_key: str | None = Field(default=None, alias="newKey")
