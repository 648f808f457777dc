from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from fastapi.requests import Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from fastapi_server.auth import user_from_headers
from storage_api.context import (
    AuthType,
    ContextDriver,
    ContextHandler,
    RequestContext,
    bearer_token_matches,
)
from storage_api.types import ApiResult


@dataclass(frozen=True)
class BufferedRequest:
    """A request whose body was already read on the event loop."""

    request: Request
    body: bytes


class FastAPIRequestContext(RequestContext):
    def __init__(self, raw: BufferedRequest, api_token: str | None):
        self._request = raw.request
        self._body = raw.body
        self._api_token = api_token

    def body(self) -> bytes:
        return self._body

    def header(self, name: str) -> str | None:
        return self._request.headers.get(name)

    def is_authorized(self, auth_type: AuthType | None = None) -> bool:
        if auth_type == AuthType.HEADERS:
            return bearer_token_matches(self.header("authorization"), self._api_token)
        return user_from_headers(self._request.headers) is not None


class FastAPIContextDriver(ContextDriver[BufferedRequest, JSONResponse]):
    def parse_context(self, raw: BufferedRequest) -> FastAPIRequestContext:
        return FastAPIRequestContext(raw, self.api_token)

    def build_response(self, result: ApiResult) -> JSONResponse:
        return JSONResponse(content=result.data, status_code=result.status)

    def handle_endpoint(
        self, handler: ContextHandler
    ) -> Callable[[Request], Awaitable[JSONResponse]]:
        async def endpoint(request: Request) -> JSONResponse:
            raw = BufferedRequest(request=request, body=await request.body())
            # Handlers block on the object store, keep them off the event loop.
            result = await run_in_threadpool(self.dispatch, handler, raw)
            return self.build_response(result)

        return endpoint
