from django.urls import path

from django_app.context import DjangoContextDriver
from django_app.store import DjangoMappingStore
from django_app.views import metrics_view, storage_view
from storage_api.builder import StorageApiBuilder
from storage_api.context import AuthType
from storage_api.mapping import UrlMappingService
from storage_api.tests.fakes import FakeClock, FakeStorageBackend

API_TOKEN = "secret-token"

clock = FakeClock()
backend = FakeStorageBackend(clock=clock)
mapping_service = UrlMappingService(DjangoMappingStore(), clock=clock)


def _api(auth_type: AuthType) -> StorageApiBuilder:
    return StorageApiBuilder(
        DjangoContextDriver(api_token=API_TOKEN), mapping_service, backend, auth_type
    )


urlpatterns = [
    path("metrics", metrics_view, name="metrics"),
    path("api/storage", storage_view(_api(AuthType.USER)), name="storage"),
    path("api/token-storage", storage_view(_api(AuthType.HEADERS)), name="token_storage"),
]
