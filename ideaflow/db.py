from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator

from sqlalchemy import create_engine, inspect as sa_inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ideaflow.config import get_settings
from ideaflow.models import Base, SchemaMigration, StoredFile

log = logging.getLogger(__name__)

_ENGINES: dict[str, Engine] = {}
_SESSIONS: dict[str, sessionmaker[Session]] = {}


def _resolve_url(db_url: str | None) -> str:
    return db_url or get_settings().database_url


def get_engine(db_url: str | None = None) -> Engine:
    """One engine per database URL; SQLite connections may cross threads (CLI, tests)."""
    url = _resolve_url(db_url)
    engine = _ENGINES.get(url)
    if engine is None:
        is_sqlite = url.startswith("sqlite")
        engine = create_engine(url, connect_args={"check_same_thread": False} if is_sqlite else {})
        _ENGINES[url] = engine
        log.debug("Created engine for %s", engine.url.render_as_string(hide_password=True))
    return engine


def get_session_factory(db_url: str | None = None) -> sessionmaker[Session]:
    # Ideas are read after commit (CLI output), so nothing expires on commit.
    url = _resolve_url(db_url)
    factory = _SESSIONS.get(url)
    if factory is None:
        factory = _SESSIONS[url] = sessionmaker(bind=get_engine(url), autoflush=False, expire_on_commit=False)
    return factory


def get_session(db_url: str | None = None) -> Session:
    return get_session_factory(db_url)()


def dispose_engines() -> None:
    for engine in _ENGINES.values():
        engine.dispose()
    _ENGINES.clear()
    _SESSIONS.clear()


def init_db(db_url: str | None = None) -> Engine:
    if db_url is None:
        Path(get_settings().database_path).parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(db_url)
    Base.metadata.create_all(engine)
    run_migrations(engine)
    return engine


@contextmanager
def session_scope(db_url: str | None = None) -> Iterator[Session]:
    """Yield a session that commits when the block exits cleanly.

    Any exception (including ``typer.Exit``) rolls the whole unit of work back
    and propagates.
    """
    with get_session(db_url) as session:
        try:
            yield session
        except Exception:
            session.rollback()
            log.debug("Rolled back session for %s", _resolve_url(db_url), exc_info=True)
            raise
        session.commit()


# ---------------------------------------------------------------------------
# Migrations
# ---------------------------------------------------------------------------


def create_stored_files(engine: Engine) -> None:
    StoredFile.__table__.create(engine, checkfirst=True)


def drop_stored_files(engine: Engine) -> None:
    StoredFile.__table__.drop(engine, checkfirst=True)


# version -> (upgrade, downgrade), applied in key order
MIGRATIONS: dict[str, tuple[Callable[[Engine], None], Callable[[Engine], None]]] = {
    "20121101143411_create_stored_files": (create_stored_files, drop_stored_files),
}


def applied_migrations(engine: Engine) -> list[str]:
    if not sa_inspect(engine).has_table(SchemaMigration.__tablename__):
        return []
    with Session(engine) as session:
        return list(session.execute(
            select(SchemaMigration.version).order_by(SchemaMigration.version)
        ).scalars().all())


def run_migrations(engine: Engine) -> list[str]:
    """Apply pending migrations; returns the versions applied by this call."""
    SchemaMigration.__table__.create(engine, checkfirst=True)
    done = set(applied_migrations(engine))
    applied: list[str] = []
    for version in sorted(MIGRATIONS):
        if version in done:
            continue
        upgrade, _ = MIGRATIONS[version]
        upgrade(engine)
        with Session(engine) as session:
            session.add(SchemaMigration(version=version))
            session.commit()
        log.info("Applied migration %s", version)
        applied.append(version)
    return applied


def rollback_migration(engine: Engine, version: str | None = None) -> str | None:
    """Revert ``version`` (default: the latest applied); ``None`` if nothing to revert."""
    done = applied_migrations(engine)
    if version is None:
        if not done:
            return None
        version = done[-1]
    if version not in MIGRATIONS:
        raise ValueError(f"Unknown migration: {version!r}")
    if version not in done:
        return None
    _, downgrade = MIGRATIONS[version]
    downgrade(engine)
    with Session(engine) as session:
        row = session.get(SchemaMigration, version)
        if row is not None:
            session.delete(row)
        session.commit()
    log.info("Reverted migration %s", version)
    return version
