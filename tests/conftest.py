"""Pytest configuration and shared fixtures."""

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from casework.adapters.persistence import models  # noqa: F401
from casework.adapters.persistence.database import Base
from casework.domain.entities.case import CaseAttributes
from casework.domain.entities.handler import Handler


@pytest.fixture
def make_handler():
    def _make(hid: int, count: int = 0, max_cases: int = 10, **kwargs) -> Handler:
        kwargs.setdefault("name", f"Handler {hid}")
        kwargs.setdefault("role", "agent")
        return Handler(id=hid, max_concurrent_cases=max_cases, current_case_count=count, **kwargs)

    return _make


@pytest.fixture
def fedex_case():
    return CaseAttributes(
        id=7, carrier="FEDEX", issue_type="DAMAGED", priority="HIGH", claimed_amount=15_000
    )


# ─── SQLite ─────────────────────────────────────────────────────────


def _enable_savepoints(engine) -> None:
    # pysqlite's implicit transaction handling breaks SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest_asyncio.fixture
async def sql_engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    _enable_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(sql_engine):
    return async_sessionmaker(sql_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s
