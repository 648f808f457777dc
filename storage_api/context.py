"""Framework boundary for the storage API.

A :class:`ContextDriver` turns one framework's request into a neutral
:class:`RequestContext`, runs a handler against it and turns the returned
:class:`~storage_api.types.ApiResult` back into that framework's response.
"""

from __future__ import annotations

import hmac
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import Any, Generic, TypeVar

from storage_api.errors import server_error
from storage_api.observability import increment, log_event
from storage_api.types import ApiResult

C = TypeVar("C")
R = TypeVar("R")


class AuthType(str, Enum):
    HEADERS = "headers"
    USER = "user"


def bearer_token_matches(authorization: str | None, api_token: str | None) -> bool:
    if not api_token or not authorization:
        return False
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return False
    return hmac.compare_digest(token.strip().encode("utf-8"), api_token.encode("utf-8"))


class RequestContext(ABC):
    @abstractmethod
    def body(self) -> bytes: ...

    @abstractmethod
    def header(self, name: str) -> str | None: ...

    @abstractmethod
    def is_authorized(self, auth_type: AuthType | None = None) -> bool: ...

    def json(self) -> Any:
        raw = self.body()
        if not raw:
            return None
        return json.loads(raw)


ContextHandler = Callable[[RequestContext], ApiResult]


class ContextDriver(ABC, Generic[C, R]):
    def __init__(self, api_token: str | None = None):
        self.api_token = api_token

    @abstractmethod
    def parse_context(self, raw: C) -> RequestContext: ...

    @abstractmethod
    def build_response(self, result: ApiResult) -> R: ...

    def dispatch(self, handler: ContextHandler, raw: C) -> ApiResult:
        """Run ``handler`` against ``raw``; any exception becomes a 500 result."""
        try:
            return handler(self.parse_context(raw))
        except Exception as exc:
            increment("storage.request.errors")
            log_event("storage.request.error", level=logging.ERROR, error=str(exc))
            return server_error(exc)

    def handle_endpoint(self, handler: ContextHandler) -> Callable[[C], R]:
        def endpoint(raw: C) -> R:
            return self.build_response(self.dispatch(handler, raw))

        return endpoint
