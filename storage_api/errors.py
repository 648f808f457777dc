from __future__ import annotations

from fastapi import status

from storage_api.types import ApiResult


def error(status_code: int, message: str) -> ApiResult:
    return ApiResult(data={"error": message}, status=status_code)


def bad_request(message: str) -> ApiResult:
    return error(status.HTTP_400_BAD_REQUEST, message)


def missing_field(field: str, action: str) -> ApiResult:
    return bad_request(f"{field} is required for {action} action")


def invalid_action() -> ApiResult:
    return bad_request("Invalid action")


def unauthorized() -> ApiResult:
    return error(status.HTTP_401_UNAUTHORIZED, "Unauthorized")


def not_configured() -> ApiResult:
    return error(status.HTTP_501_NOT_IMPLEMENTED, "noStorageConfigured")


def server_error(exc: BaseException) -> ApiResult:
    return error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or exc.__class__.__name__)
