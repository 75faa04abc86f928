"""
Generic DAO

Purpose
-------
Thin data-access layer for any mapped entity class. Spares callers the
"open session, run one operation, close session" boilerplate:
- Lookup by primary key
- Make persistent / delete / delete by primary key
- Listing, filtering and counting
- ORM or raw SQL queries mapped onto the entity

Design
------
- Every operation accepts an optional ``session``. When given, it is
  borrowed: the DAO neither commits nor closes it, so the caller controls
  the transaction (same convention as the application DAOs it generalizes).
- Without a session, a new one is taken from the DAO's own factory, or from
  the factory shared by all DAOs when none is set. Writes run in a
  transaction that is committed before the session is closed; reads run
  without one.
- All operations go through `TaskExecutor`.

Usage
-----
.. code-block:: python

    from taskdao.daos.dao import Dao

    # Set up a shared session factory from Settings (env / .env).
    Dao.setupSharedSessionFactory()

    dao = Dao.create(Customer)
    dao.put(Customer(id=1, name="roman"))
    customer = dao.getById(1)

    # Inside a caller-managed transaction
    with factory() as session, session.begin():
        dao.put(Customer(id=2, name="reigns"), session=session)
        dao.deleteById(1, session=session)

Error Handling
--------------
- SQLAlchemy errors are logged with the failing operation and re-raised.
- ``None`` entities/ids raise `InvalidArgumentError`.
- No available factory raises `HandleUnavailableError`.
"""

import logging
from typing import Any, Callable, Generic, List, Optional, Type, TypeVar

from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taskdao.config.config import Settings
from taskdao.config.connection_engine import create_session_factory
from taskdao.daos.query_language import QueryLanguage
from taskdao.tasks.errors import HandleUnavailableError, InvalidArgumentError
from taskdao.tasks.executor import SessionFactory, TaskExecutor
from taskdao.tasks.task import FunctionTask

logger = logging.getLogger(__name__)

TEntity = TypeVar("TEntity")


class Dao(Generic[TEntity]):
    """
    Data Access Object (DAO) for one entity class.

    Parameters
    ----------
    entity_class : type
        The mapped class handled by this DAO.
    factory : callable, optional
        Session factory for this instance. Falls back to the shared factory.
    """

    _shared_session_factory: Optional[SessionFactory] = None

    def __init__(self, entity_class: Type[TEntity], factory: Optional[SessionFactory] = None):
        self._checkNonNull(entity_class, "entity_class")
        self.entity_class = entity_class
        self._session_factory = factory

    @classmethod
    def create(cls, entity_class: Type[TEntity], factory: Optional[SessionFactory] = None) -> "Dao[TEntity]":
        """Create a DAO for the specified entity class."""
        return cls(entity_class, factory)

    # ------------------------------------------------------------------
    # Session factories
    # ------------------------------------------------------------------

    @staticmethod
    def getSharedSessionFactory() -> Optional[SessionFactory]:
        """Get the factory shared by DAOs that do not have one of their own."""
        return Dao._shared_session_factory

    @staticmethod
    def setSharedSessionFactory(factory: Optional[SessionFactory]) -> None:
        """Set the factory used as fallback by DAOs that do not have one of their own."""
        Dao._shared_session_factory = factory

    @staticmethod
    def setupSharedSessionFactory(settings: Optional[Settings] = None) -> SessionFactory:
        """
        Build a session factory from configuration and install it as the shared one.

        Parameters
        ----------
        settings : Settings, optional
            Configuration to read. Defaults to the environment-backed singleton.

        Returns
        -------
        sessionmaker
            The factory that was installed.
        """
        factory = create_session_factory(settings)
        Dao.setSharedSessionFactory(factory)
        return factory

    def getSessionFactory(self) -> Optional[SessionFactory]:
        """Get the session factory set on this instance (not the shared one)."""
        return self._session_factory

    def setSessionFactory(self, factory: Optional[SessionFactory]) -> "Dao[TEntity]":
        """Set a session factory for this instance. Returns ``self``."""
        self._session_factory = factory
        return self

    def getSession(self) -> Optional[Session]:
        """
        Open a new session from this instance's factory, or from the shared
        factory when none is set.

        Returns
        -------
        Session | None
            None if no factory is available. The caller must close the session.
        """
        factory = self._effectiveFactory()
        if factory is None:
            return None
        return factory()

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def getById(self, id: Any, session: Optional[Session] = None) -> Optional[TEntity]:
        """
        Get an entity by primary key.

        Returns
        -------
        TEntity | None
            The entity, or None if not found.
        """
        self._checkNonNull(id, "id")
        return self._execute("getById", lambda s: s.get(self.entity_class, id), session)

    def put(self, entity: TEntity, session: Optional[Session] = None) -> TEntity:
        """
        Make an entity persistent.

        With an owned session the change is committed before returning; with
        a borrowed one it is only added (and flushed) to that session.
        """
        self._checkNonNull(entity, "entity")

        def task(s: Session) -> TEntity:
            s.add(entity)
            s.flush()
            return entity

        return self._execute("put", task, session, write=True)

    def delete(self, entity: TEntity, session: Optional[Session] = None) -> None:
        """Delete an entity. Detached instances are merged into the session first."""
        self._checkNonNull(entity, "entity")

        def task(s: Session) -> None:
            s.delete(entity if entity in s else s.merge(entity))

        self._execute("delete", task, session, write=True)

    def deleteById(self, id: Any, session: Optional[Session] = None) -> None:
        """Delete the entity with the given primary key. Nothing happens if it does not exist."""
        self._checkNonNull(id, "id")

        def task(s: Session) -> None:
            entity = s.get(self.entity_class, id)
            if entity is not None:
                s.delete(entity)

        self._execute("deleteById", task, session, write=True)

    def fetchAll(self, session: Optional[Session] = None) -> List[TEntity]:
        """Fetch every row of the entity's table."""
        return self._execute("fetchAll", lambda s: list(s.scalars(select(self.entity_class)).all()), session)

    def fetchWhere(self, *criteria, order_by=None, limit: Optional[int] = None,
                   session: Optional[Session] = None) -> List[TEntity]:
        """
        Fetch entities matching all `criteria`.

        Parameters
        ----------
        *criteria
            SQLAlchemy boolean expressions, e.g. ``Customer.name == "roman"``.
        order_by : column | sequence of columns, optional
            Ordering of the result.
        limit : int, optional
            Maximum number of rows.
        """
        stmt = select(self.entity_class).where(*criteria)
        if order_by is not None:
            if not isinstance(order_by, (list, tuple)):
                order_by = (order_by,)
            stmt = stmt.order_by(*order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        return self._execute("fetchWhere", lambda s: list(s.scalars(stmt).all()), session)

    def count(self, *criteria, session: Optional[Session] = None) -> int:
        """Count entities matching all `criteria` (every row when none are given)."""
        stmt = select(func.count()).select_from(self.entity_class).where(*criteria)
        return self._execute("count", lambda s: s.scalar(stmt), session)

    def query(self, statement, language: QueryLanguage = QueryLanguage.ORM,
              params: Optional[dict] = None, session: Optional[Session] = None) -> List[TEntity]:
        """
        Run a query and return the matching entities.

        Parameters
        ----------
        statement : Select | str
            A SQLAlchemy ``Select`` for ``QueryLanguage.ORM``, a SQL string for
            ``QueryLanguage.SQL``.
        language : QueryLanguage
            How to interpret `statement`.
        params : dict, optional
            Bind parameters.
        """
        self._checkNonNull(statement, "statement")
        if language is QueryLanguage.SQL:
            statement = select(self.entity_class).from_statement(text(statement))
        return self._execute("query", lambda s: list(s.scalars(statement, params or {}).all()), session)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _checkNonNull(value: Any, name: str) -> None:
        if value is None:
            raise InvalidArgumentError(f"{name} is None.")

    def _effectiveFactory(self) -> Optional[SessionFactory]:
        if self._session_factory is not None:
            return self._session_factory
        return Dao._shared_session_factory

    def _execute(self, operation: str, fn: Callable[[Session], Any],
                 session: Optional[Session], write: bool = False) -> Any:
        if session is not None:
            executor = TaskExecutor(session=session)
        else:
            factory = self._effectiveFactory()
            if factory is None:
                raise HandleUnavailableError("Session factory is not set.")
            executor = TaskExecutor(factory)

        try:
            # A borrowed session's transaction belongs to the caller.
            return executor.execute(FunctionTask(fn), transaction=write and session is None)
        except SQLAlchemyError as e:
            logger.error("Error in Dao.%s. Error Message: %s", operation, e)
            raise

    def __repr__(self) -> str:
        return f"Dao({self.entity_class.__name__})"
