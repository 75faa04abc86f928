"""
DAOs Package — Data Access Layer (SQLAlchemy 2.0)
=================================================

The `daos` package provides a generic Data Access Layer.
It encapsulates the common interactions with SQLAlchemy ORM entities,
providing clean CRUD APIs for the service layer while hiding session
handling and query details.

Conventions
-----------
- Works with any SQLAlchemy 2.0 mapped class
- Borrowed sessions: lifecycle (commit/rollback/close) handled by callers
- Owned sessions: opened, committed (writes) and closed by the DAO
- DAOs surface exceptions so upper layers decide error policy

Contents
--------
- Dao
    Generic DAO for one entity class:
    * getById / put / delete / deleteById
    * fetchAll / fetchWhere / count
    * query (ORM `Select` or raw SQL)
    * per-instance and shared session factories

- QueryLanguage
    Selects how `Dao.query` interprets its statement (ORM or SQL).
"""

from taskdao.daos.dao import Dao
from taskdao.daos.query_language import QueryLanguage

__all__ = ["Dao", "QueryLanguage"]
