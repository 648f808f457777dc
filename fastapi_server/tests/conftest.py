from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from fastapi_server.context import FastAPIContextDriver
from fastapi_server.main import create_app
from storage_api.builder import StorageApiBuilder
from storage_api.config import Settings
from storage_api.context import AuthType
from storage_api.mapping import UrlMappingService
from storage_api.observability import reset
from storage_api.store import InMemoryMappingStore
from storage_api.tests.fakes import FakeClock, FakeStorageBackend

API_TOKEN = "secret-token"
USER_HEADERS = {"x-user-id": "reviewer@example.com"}


@pytest.fixture(autouse=True)
def _reset_metrics() -> None:
    reset()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def backend(clock) -> FakeStorageBackend:
    return FakeStorageBackend(clock=clock)


@pytest.fixture()
def mapping_service(clock) -> UrlMappingService:
    return UrlMappingService(InMemoryMappingStore(), clock=clock)


def _client(mapping_service, backend, auth_type: AuthType) -> TestClient:
    api = StorageApiBuilder(
        FastAPIContextDriver(api_token=API_TOKEN), mapping_service, backend, auth_type
    )
    return TestClient(create_app(api, Settings()))


@pytest.fixture()
def client(mapping_service, backend) -> TestClient:
    return _client(mapping_service, backend, AuthType.USER)


@pytest.fixture()
def token_client(mapping_service, backend) -> TestClient:
    return _client(mapping_service, backend, AuthType.HEADERS)
