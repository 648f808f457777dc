from __future__ import annotations

import time
import uuid

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import Response

from fastapi_server.context import FastAPIContextDriver
from storage_api.builder import StorageApi, build_storage_api
from storage_api.config import Settings, settings
from storage_api.db import SqlMappingStore, now_ms
from storage_api.mapping import UrlMappingService
from storage_api.observability import increment, log_event, observe_ms, snapshot
from storage_api.store import InMemoryMappingStore, MappingStore


def build_mapping_store(config: Settings) -> MappingStore:
    if config.mapping_store == "memory":
        return InMemoryMappingStore()
    if config.mapping_store == "sql":
        store = SqlMappingStore(config.db_url)
        store.create_schema()
        return store
    raise ValueError(f"Unknown mapping store: {config.mapping_store!r}")


def build_default_storage_api(config: Settings) -> StorageApi:
    driver = FastAPIContextDriver(api_token=config.api_token)
    return build_storage_api(driver, UrlMappingService(build_mapping_store(config)), config)


def create_app(storage_api: StorageApi | None = None, config: Settings = settings) -> FastAPI:
    api = storage_api or build_default_storage_api(config)
    app = FastAPI(title="storage-api")
    app.state.storage_api = api
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://127.0.0.1:8080", "http://localhost:8080"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_observability(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        t0 = time.perf_counter()
        response = None
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = (time.perf_counter() - t0) * 1000.0
            increment("http.requests.total")
            observe_ms("http.request.latency_ms", duration_ms)
            log_event(
                "http.request",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                status=status_code,
                duration_ms=round(duration_ms, 2),
                user_id=request.headers.get("x-user-id"),
            )
            if response is None:
                response = Response(status_code=status_code)
            response.headers["x-request-id"] = request_id

    @app.get("/metrics")
    def metrics():
        return snapshot()

    @app.get("/health")
    def health():
        return {"ok": True, "ts": now_ms()}

    storage_path = f"{config.api_prefix}/storage"
    app.add_api_route(storage_path, api.get_post(), methods=["POST"], name="storage_post")
    app.add_api_route(storage_path, api.get_put(), methods=["PUT"], name="storage_put")
    return app


app = create_app()
