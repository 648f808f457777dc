from __future__ import annotations

import warnings
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import inspect
from sqlalchemy.dialects import postgresql

from storage_api import db
from storage_api.db import SqlMappingStore, session_scope, upgrade_db, upsert_statement
from storage_api.store import InMemoryMappingStore
from storage_api.types import UrlMapping

NOW = 1_760_000_000_000


def _mapping(identifier: str, *, is_permanent=False, expires_at=None, url=None) -> UrlMapping:
    return UrlMapping(
        identifier=identifier,
        url=url or f"https://example.com/{identifier}",
        is_permanent=is_permanent,
        expires_at=expires_at,
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.fixture(params=["memory", "sql"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryMappingStore()
    sql_store = SqlMappingStore(f"sqlite:///{tmp_path / 'mappings.db'}")
    sql_store.create_schema()
    return sql_store


def test_get_missing_returns_none(store):
    assert store.get("storage-file://nope") is None


def test_set_is_upsert(store):
    store.set(_mapping("storage-file://a", url="first", expires_at=NOW + 1))
    store.set(_mapping("storage-file://a", url="second", is_permanent=True))

    got = store.get("storage-file://a")
    assert got.url == "second"
    assert got.is_permanent is True
    assert got.expires_at is None
    assert len(store.get_all()) == 1


def test_round_trips_all_fields(store):
    original = _mapping("storage-file://dir/a b.png", expires_at=NOW + 42)
    store.set(original)
    assert store.get("storage-file://dir/a b.png") == original


def test_delete_absent_is_noop(store):
    store.delete("storage-file://nope")
    store.set(_mapping("storage-file://a"))
    store.delete("storage-file://a")
    assert store.get("storage-file://a") is None


def test_cleanup_selectivity(store):
    store.set(_mapping("storage-file://perm", is_permanent=True, expires_at=NOW - 100))
    store.set(_mapping("storage-file://expired", expires_at=NOW - 1))
    store.set(_mapping("storage-file://boundary", expires_at=NOW))
    store.set(_mapping("storage-file://fresh", expires_at=NOW + 1))
    store.set(_mapping("storage-file://no-expiry"))

    assert store.cleanup(NOW) == 2

    remaining = sorted(m.identifier for m in store.get_all())
    assert remaining == ["storage-file://fresh", "storage-file://no-expiry", "storage-file://perm"]


def test_concurrent_writes_to_distinct_identifiers(store):
    identifiers = [f"storage-file://file-{i}.png" for i in range(40)]
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda ident: store.set(_mapping(ident, expires_at=NOW + 1)), identifiers))
    assert sorted(m.identifier for m in store.get_all()) == sorted(identifiers)


def test_sql_store_supports_in_memory_sqlite():
    sql_store = SqlMappingStore("sqlite://")
    sql_store.create_schema()
    sql_store.set(_mapping("storage-file://a"))
    assert sql_store.get("storage-file://a") is not None


def test_migration_upgrade_fresh_db(tmp_path):
    db_url = f"sqlite:///{tmp_path / 'fresh.db'}"

    upgrade_db(db_url=db_url)

    with session_scope(db_url) as session:
        insp = inspect(session.bind)
        tables = set(insp.get_table_names())
        indexes = {ix["name"] for ix in insp.get_indexes("url_mapping")}
    assert {"url_mapping", "alembic_version"}.issubset(tables)
    assert "ix_url_mapping_expires_at" in indexes


def test_migrated_schema_accepts_store_writes(tmp_path):
    db_url = f"sqlite:///{tmp_path / 'migrated.db'}"
    upgrade_db(db_url=db_url)

    sql_store = SqlMappingStore(db_url)
    sql_store.set(_mapping("storage-file://a", expires_at=NOW - 1))
    assert sql_store.cleanup(NOW) == 1


def test_concurrent_writes_to_same_identifier_last_write_wins(store):
    writes = [
        _mapping("storage-file://hot.png", url=f"https://signed.example.com/hot.png?v={i}")
        for i in range(40)
    ]
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(store.set, writes))

    stored = store.get_all()
    assert len(stored) == 1
    assert stored[0] in writes


def test_postgresql_upsert_is_single_statement():
    stmt = upsert_statement("postgresql", db._mapping_values(_mapping("storage-file://a")))
    sql = str(stmt.compile(dialect=postgresql.dialect()))
    assert "ON CONFLICT (identifier) DO UPDATE" in sql
    assert "DELETE" not in sql


def test_upsert_unavailable_for_other_dialects():
    assert upsert_statement("mssql", db._mapping_values(_mapping("storage-file://a"))) is None


def test_insert_conflict_falls_back_to_update(tmp_path, monkeypatch):
    monkeypatch.setattr(db, "upsert_statement", lambda dialect_name, values: None)
    sql_store = SqlMappingStore(f"sqlite:///{tmp_path / 'generic.db'}")
    sql_store.create_schema()

    sql_store.set(_mapping("storage-file://a", url="first", expires_at=NOW))
    sql_store.set(_mapping("storage-file://a", url="second", is_permanent=True))

    got = sql_store.get("storage-file://a")
    assert got.url == "second"
    assert got.is_permanent is True
    assert got.expires_at is None
    assert len(sql_store.get_all()) == 1


def test_upgrade_emits_no_alembic_config_warnings(tmp_path):
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        upgrade_db(db_url=f"sqlite:///{tmp_path / 'quiet.db'}")
    assert not [w for w in caught if "path_separator" in str(w.message)]
