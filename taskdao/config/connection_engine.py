"""
Connection Engine (SQLAlchemy)

Purpose
-------
Centralizes database initialization for the package:
- Builds a SQLAlchemy connection URL from environment-backed settings.
- Creates the Engine (connection pool + SQL execution entry point).
- Builds the session factory handed to `TaskExecutor` and `Dao`.
- Defines shared MetaData for table and schema objects.
- Exposes a Declarative Base class for ORM models.

Notes
-----
- Uses `URL.create(...)` to avoid hardcoding credentials and to keep configuration
  environment-driven (e.g., via `.env`, container secrets, or deployment vars).
- Nothing connects at import time; engines are built on demand so that
  applications and tests can pass their own `Settings`.
- All ORM models must inherit from `declarativeBase` to participate in schema reflection
  and enable ORM features.
"""

import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.schema import MetaData

from taskdao.config.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


def create_connection_url(settings: Optional[Settings] = None) -> URL:
    """
    Construct the SQLAlchemy connection URL using values from Settings.

    Parameters
    ----------
    settings : Settings, optional
        Configuration to read. Defaults to the module singleton.

    Returns
    -------
    URL
        ``DB_URL`` parsed with `make_url` when set; otherwise a URL assembled
        from the individual ``DB_*`` fields.
    """
    if settings is None:
        settings = default_settings
    if settings.DB_URL:
        return make_url(settings.DB_URL)
    return URL.create(
        drivername=settings.DB_DRIVER_NAME,   # e.g., "postgresql", "mysql", "sqlite"
        username=settings.DB_USERNAME,
        password=settings.DB_PASSWORD,
        host=settings.DB_HOST,
        port=settings.DB_PORT,
        database=settings.DB_DATABASE_NAME
    )


def create_connection_engine(settings: Optional[Settings] = None) -> Engine:
    """
    Create the Engine: core interface to the database.
    Responsible for managing connections, executing SQL, and pooling.
    """
    if settings is None:
        settings = default_settings
    url = create_connection_url(settings)
    logger.debug("Creating engine for %s", url.render_as_string(hide_password=True))
    return create_engine(url, echo=settings.DB_ECHO)


def create_session_factory(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> sessionmaker:
    """
    Build a session factory bound to an engine.

    Parameters
    ----------
    settings : Settings, optional
        Configuration to read. Defaults to the module singleton.
    engine : Engine, optional
        Engine to bind. A new one is created from `settings` when omitted.

    Returns
    -------
    sessionmaker
        Zero-argument callable producing new `Session` objects.
    """
    if settings is None:
        settings = default_settings
    if engine is None:
        engine = create_connection_engine(settings)
    return sessionmaker(bind=engine, expire_on_commit=settings.DB_EXPIRE_ON_COMMIT)


# --------------------------------------------------------------------
# Metadata object: stores schema-level information about tables,
# constraints, indexes, etc. Shared across all models.
# --------------------------------------------------------------------
metadata = MetaData()
"""
Metadata object: Stores schema-level information about tables, constraints, indexes, etc. Shared across all models.
"""

# --------------------------------------------------------------------
# Declarative Base: root class for ORM models.
# --------------------------------------------------------------------
declarativeBase = declarative_base(metadata=metadata)
"""Declarative Base: Root class for ORM models.
All model classes should inherit from this to gain ORM features and automatic schema generation.
"""
