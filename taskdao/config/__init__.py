"""
The `config` package provides two core building blocks for establishing and managing database connections.

Contents:
    - config: Configuration layer - strongly typed settings loaded from environment variables (with .env support), exposed through a singleton Settings object
    - connection_engine: Database layer - SQLAlchemy bootstrap that constructs a connection URL from those settings, creates the Engine and session factory, shared MetaData, and the declarative base for ORM models

Together they provide environment-driven configuration and the session factories consumed by `tasks` and `daos`.
"""
