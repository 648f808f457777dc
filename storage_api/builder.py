from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Generic

from fastapi import status
from pydantic import ValidationError

from storage_api.config import Settings
from storage_api.context import AuthType, C, ContextDriver, R, RequestContext
from storage_api.errors import (
    bad_request,
    invalid_action,
    missing_field,
    not_configured,
    unauthorized,
)
from storage_api.mapping import UrlMappingService
from storage_api.observability import increment, log_event, timed
from storage_api.schemas import AUTH_REQUIRED_ACTIONS, Action, StorageActionRequest
from storage_api.storage import S3StorageBackend, StorageBackend
from storage_api.types import ApiResult, UrlMetadata

DEFAULT_CONTENT_TYPE = "application/octet-stream"
STORAGE_KEY_HEADER = "x-storage-key"


class StorageApi(ABC, Generic[C, R]):
    def __init__(
        self,
        driver: ContextDriver[C, R],
        url_mapping_service: UrlMappingService,
        auth_type: AuthType | None = None,
    ):
        self.driver = driver
        self.url_mapping_service = url_mapping_service
        self.auth_type = auth_type

    @abstractmethod
    def resolve_url(self, identifier: str) -> UrlMetadata | None: ...

    @abstractmethod
    def handle_action(self, context: RequestContext) -> ApiResult:
        """Handle one POST request (JSON body with an ``action`` field)."""

    @abstractmethod
    def handle_upload(self, context: RequestContext) -> ApiResult:
        """Handle one PUT request (raw bytes, key in ``x-storage-key``)."""

    def get_post(self) -> Callable[[C], R]:
        return self.driver.handle_endpoint(self.handle_action)

    def get_put(self) -> Callable[[C], R]:
        return self.driver.handle_endpoint(self.handle_upload)


class NoOpStorageApi(StorageApi[C, R]):
    """Stand-in used when no storage backend is configured."""

    def resolve_url(self, identifier: str) -> None:
        return None

    def handle_action(self, context: RequestContext) -> ApiResult:
        return not_configured()

    def handle_upload(self, context: RequestContext) -> ApiResult:
        return not_configured()


class StorageApiBuilder(StorageApi[C, R]):
    def __init__(
        self,
        driver: ContextDriver[C, R],
        url_mapping_service: UrlMappingService,
        backend: StorageBackend,
        auth_type: AuthType | None = None,
    ):
        super().__init__(driver, url_mapping_service, auth_type)
        self.backend = backend

    def resolve_url(self, identifier: str) -> UrlMetadata:
        return self.url_mapping_service.resolve(identifier, self.backend.url_metadata)

    def _parse_request(self, context: RequestContext) -> StorageActionRequest | ApiResult:
        try:
            payload = context.json()
        except ValueError:
            return bad_request("Request body must be valid JSON")
        if not isinstance(payload, dict):
            return bad_request("Request body must be a JSON object")
        try:
            return StorageActionRequest.model_validate(payload)
        except ValidationError as exc:
            return bad_request(f"Invalid request body: {exc.errors()[0]['msg']}")

    def handle_action(self, context: RequestContext) -> ApiResult:
        parsed = self._parse_request(context)
        if isinstance(parsed, ApiResult):
            return parsed
        try:
            action = Action(parsed.action)
        except ValueError:
            increment("storage.actions.invalid")
            return invalid_action()

        if action in AUTH_REQUIRED_ACTIONS and not context.is_authorized(self.auth_type):
            increment("storage.actions.unauthorized")
            return unauthorized()

        increment(f"storage.actions.{action.value}")
        with timed(f"storage.actions.{action.value}.latency_ms"):
            result = self._run(action, parsed)
        log_event("storage.action", action=action.value, status=result.status)
        return result

    def _run(self, action: Action, req: StorageActionRequest) -> ApiResult:
        mappings = self.url_mapping_service
        match action:
            case Action.RESOLVE_URL:
                if not req.identifier:
                    return missing_field("identifier", action.value)
                return ApiResult(self.resolve_url(req.identifier).to_dict())

            case Action.PUBLIC_URL:
                if not req.key:
                    return missing_field("key", action.value)
                metadata = self.backend.url_metadata(req.key)
                identifier = mappings.create_identifier(req.key)
                mappings.register(identifier, metadata)
                return ApiResult({**metadata.to_dict(), "identifier": identifier})

            case Action.UPLOAD:
                if not req.key:
                    return missing_field("key", action.value)
                if not req.content_type:
                    return missing_field("contentType", action.value)
                url = self.backend.upload_url(req.key, req.content_type)
                return ApiResult({"url": url, "key": req.key})

            case Action.LIST:
                files = self.backend.list_objects(req.prefix or req.key or "")
                return ApiResult({"files": files})

            case Action.DELETE:
                if not req.key:
                    return missing_field("key", action.value)
                self.backend.delete_object(req.key)
                mappings.delete(mappings.create_identifier(req.key))
                return ApiResult({"success": True})

            case Action.RENAME:
                if not req.new_key:
                    return missing_field("newKey", action.value)
                if not req.key:
                    return missing_field("key", action.value)
                self.backend.rename_object(req.key, req.new_key)
                mappings.delete(mappings.create_identifier(req.key))
                mappings.register(
                    mappings.create_identifier(req.new_key),
                    self.backend.url_metadata(req.new_key),
                )
                return ApiResult({"success": True, "newKey": req.new_key})

            case Action.DOWNLOAD:
                if not req.key:
                    return missing_field("key", action.value)
                return ApiResult({"url": self.backend.download_url(req.key)})

            case Action.CLEANUP:
                return ApiResult({"deletedCount": mappings.cleanup()})

            case Action.MAPPINGS:
                return ApiResult({"mappings": [m.to_dict() for m in mappings.get_all()]})

            case Action.TEST:
                return self._test_connection()

    def _test_connection(self) -> ApiResult:
        # Reported as a result body rather than raised.
        try:
            self.backend.test_connection()
        except Exception as exc:
            return ApiResult(
                {"success": False, "error": str(exc) or "Connection failed"},
                status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return ApiResult(
            {
                "success": True,
                "message": "Successfully connected to S3-compatible storage",
                "provider": self.backend.provider,
            }
        )

    def handle_upload(self, context: RequestContext) -> ApiResult:
        if not context.is_authorized(self.auth_type):
            increment("storage.uploads.unauthorized")
            return unauthorized()
        key = context.header(STORAGE_KEY_HEADER)
        if not key:
            return bad_request(f"Missing {STORAGE_KEY_HEADER} header")
        content_type = context.header("content-type") or DEFAULT_CONTENT_TYPE
        body = context.body()
        with timed("storage.uploads.latency_ms"):
            self.backend.put_object(key, body, content_type)
        increment("storage.uploads")
        log_event("storage.upload", key=key, size=len(body), content_type=content_type)
        return ApiResult({"message": "File uploaded successfully", "key": key})


def build_storage_api(
    driver: ContextDriver[C, R],
    url_mapping_service: UrlMappingService,
    config: Settings,
    backend: StorageBackend | None = None,
) -> StorageApi[C, R]:
    """Wire a storage API from settings, falling back to the no-op variant."""
    auth_type = AuthType(config.auth_type)
    if backend is None and config.s3.configured:
        backend = S3StorageBackend(config.s3)
    if backend is None:
        log_event("storage.backend.not_configured")
        return NoOpStorageApi(driver, url_mapping_service, auth_type)
    return StorageApiBuilder(driver, url_mapping_service, backend, auth_type)
