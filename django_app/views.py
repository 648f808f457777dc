from __future__ import annotations

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from django_app.context import DjangoContextDriver
from django_app.store import DjangoMappingStore
from storage_api.builder import StorageApi, build_storage_api
from storage_api.config import settings as storage_settings
from storage_api.mapping import UrlMappingService
from storage_api.observability import snapshot


def storage_view(api: StorageApi):
    """One Django view serving the action endpoint (POST) and binary upload (PUT)."""
    post = api.get_post()
    put = api.get_put()

    @csrf_exempt
    @require_http_methods(["POST", "PUT"])
    def storage_endpoint(request):
        if request.method == "PUT":
            return put(request)
        return post(request)

    return storage_endpoint


storage_api = build_storage_api(
    DjangoContextDriver(api_token=storage_settings.api_token),
    UrlMappingService(DjangoMappingStore()),
    storage_settings,
)
storage_endpoint = storage_view(storage_api)


@require_http_methods(["GET"])
def metrics_view(request):
    return JsonResponse(snapshot())
