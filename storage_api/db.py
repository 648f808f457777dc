from __future__ import annotations

import argparse
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Index,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    select,
)
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from storage_api.config import settings
from storage_api.store import MappingStore
from storage_api.types import UrlMapping

ROOT = Path(__file__).resolve().parents[1]

metadata = MetaData()

url_mapping = Table(
    "url_mapping",
    metadata,
    Column("identifier", String(1024), primary_key=True),
    Column("url", Text, nullable=False),
    Column("is_permanent", Boolean, nullable=False, default=False),
    Column("expires_at", BigInteger),
    Column("created_at", BigInteger, nullable=False),
    Column("updated_at", BigInteger, nullable=False),
)

Index("ix_url_mapping_expires_at", url_mapping.c.expires_at)


def get_engine(db_url: str | None = None):
    url = db_url or settings.db_url
    if url in {"sqlite://", "sqlite:///:memory:"}:
        # One shared connection, otherwise every pooled connection sees its own empty db.
        return create_engine(
            url,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if url.startswith("sqlite:///"):
        Path(url.removeprefix("sqlite:///")).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, future=True)


@contextmanager
def session_scope(db_url: str | None = None):
    engine = get_engine(db_url)
    with Session(engine) as session:
        yield session


def init_db(db_url: str | None = None) -> None:
    engine = get_engine(db_url)
    metadata.create_all(engine)


def upgrade_db(db_url: str | None = None) -> None:
    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "alembic"))
    cfg.set_main_option("sqlalchemy.url", db_url or settings.db_url)
    cfg.attributes["configure_logger"] = False
    command.upgrade(cfg, "head")


def now_ms() -> int:
    return int(datetime.now(UTC).timestamp() * 1000)


_UPSERT_INSERTS = {"postgresql": postgresql_insert, "sqlite": sqlite_insert}
_MUTABLE_COLUMNS = ("url", "is_permanent", "expires_at", "created_at", "updated_at")


def _mapping_values(mapping: UrlMapping) -> dict:
    return {
        "identifier": mapping.identifier,
        "url": mapping.url,
        "is_permanent": mapping.is_permanent,
        "expires_at": mapping.expires_at,
        "created_at": mapping.created_at,
        "updated_at": mapping.updated_at,
    }


def upsert_statement(dialect_name: str, values: dict):
    """Single-statement upsert on ``identifier``, or None if the dialect has none."""
    insert = _UPSERT_INSERTS.get(dialect_name)
    if insert is None:
        return None
    stmt = insert(url_mapping).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=[url_mapping.c.identifier],
        set_={name: stmt.excluded[name] for name in _MUTABLE_COLUMNS},
    )


def _row_to_mapping(row) -> UrlMapping:
    return UrlMapping(
        identifier=row["identifier"],
        url=row["url"],
        is_permanent=bool(row["is_permanent"]),
        expires_at=row["expires_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class SqlMappingStore(MappingStore):
    def __init__(self, db_url: str | None = None, engine=None):
        self.engine = engine or get_engine(db_url)

    def create_schema(self) -> None:
        metadata.create_all(self.engine)

    def get(self, identifier: str) -> UrlMapping | None:
        with Session(self.engine) as session:
            row = (
                session.execute(select(url_mapping).where(url_mapping.c.identifier == identifier))
                .mappings()
                .one_or_none()
            )
            return _row_to_mapping(row) if row else None

    def set(self, mapping: UrlMapping) -> None:
        values = _mapping_values(mapping)
        stmt = upsert_statement(self.engine.dialect.name, values)
        with Session(self.engine) as session:
            if stmt is not None:
                session.execute(stmt)
                session.commit()
                return
            try:
                session.execute(url_mapping.insert().values(**values))
                session.commit()
            except IntegrityError:
                # Another writer inserted the same identifier first; last write wins.
                session.rollback()
                session.execute(
                    url_mapping.update()
                    .where(url_mapping.c.identifier == mapping.identifier)
                    .values(**{name: values[name] for name in _MUTABLE_COLUMNS})
                )
                session.commit()

    def delete(self, identifier: str) -> None:
        with Session(self.engine) as session:
            session.execute(url_mapping.delete().where(url_mapping.c.identifier == identifier))
            session.commit()

    def cleanup(self, now: int) -> int:
        with Session(self.engine) as session:
            result = session.execute(
                url_mapping.delete().where(
                    url_mapping.c.is_permanent.is_(False),
                    url_mapping.c.expires_at.is_not(None),
                    url_mapping.c.expires_at != 0,
                    url_mapping.c.expires_at <= now,
                )
            )
            session.commit()
            return result.rowcount

    def get_all(self) -> list[UrlMapping]:
        with Session(self.engine) as session:
            rows = session.execute(select(url_mapping)).mappings().all()
            return [_row_to_mapping(r) for r in rows]


def _cli() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--db-url", default=None)
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("init")
    sub.add_parser("upgrade")
    args = parser.parse_args()
    if args.command == "init":
        init_db(args.db_url)
    elif args.command == "upgrade":
        upgrade_db(args.db_url)


if __name__ == "__main__":
    _cli()
