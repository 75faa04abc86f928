"""Root conftest — shared fixtures for all test suites."""
from __future__ import annotations

from typing import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from taskdao.config.connection_engine import metadata
from taskdao.daos.dao import Dao

# Registers the test models on the shared metadata.
from tests import fakes  # noqa: F401


@pytest.fixture
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    metadata.create_all(engine)
    yield engine
    metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture(autouse=True)
def reset_shared_factory() -> Iterator[None]:
    Dao.setSharedSessionFactory(None)
    yield
    Dao.setSharedSessionFactory(None)
