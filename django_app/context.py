from __future__ import annotations

from django.http import HttpRequest, JsonResponse

from storage_api.context import AuthType, ContextDriver, RequestContext, bearer_token_matches
from storage_api.types import ApiResult


class DjangoRequestContext(RequestContext):
    def __init__(self, request: HttpRequest, api_token: str | None):
        self._request = request
        self._api_token = api_token

    def body(self) -> bytes:
        return self._request.body

    def header(self, name: str) -> str | None:
        return self._request.headers.get(name)

    def is_authorized(self, auth_type: AuthType | None = None) -> bool:
        if auth_type == AuthType.HEADERS:
            return bearer_token_matches(self.header("Authorization"), self._api_token)
        user = getattr(self._request, "user", None)
        return bool(user and user.is_authenticated)


class DjangoContextDriver(ContextDriver[HttpRequest, JsonResponse]):
    def parse_context(self, raw: HttpRequest) -> DjangoRequestContext:
        return DjangoRequestContext(raw, self.api_token)

    def build_response(self, result: ApiResult) -> JsonResponse:
        # safe=False: payloads are not guaranteed to be dicts.
        return JsonResponse(result.data, status=result.status, safe=False)
