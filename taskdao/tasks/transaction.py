"""
Transaction context over a SQLAlchemy `Session`.

`TaskExecutor` drives transactions through four calls: ``begin()``,
``commit()``, ``rollback()`` and ``is_active``. `SessionTransaction`
maps them onto the session. Handles that already expose a
``current_transaction()`` method are used as they are.
"""

import logging

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class SessionTransaction:
    """
    The active/inactive unit-of-work boundary on a session.

    Parameters
    ----------
    session : Session
        Session whose transaction is managed.
    """

    def __init__(self, session: Session):
        self._session = session

    @property
    def session(self) -> Session:
        """The session this transaction belongs to."""
        return self._session

    @property
    def is_active(self) -> bool:
        """True while the session holds an open transaction (explicit or autobegun)."""
        return self._session.in_transaction()

    def begin(self) -> None:
        # Session.begin() raises InvalidRequestError if a transaction is already open.
        self._session.begin()
        logger.debug("Transaction begun on %r", self._session)

    def commit(self) -> None:
        self._session.commit()
        logger.debug("Transaction committed on %r", self._session)

    def rollback(self) -> None:
        self._session.rollback()
        logger.debug("Transaction rolled back on %r", self._session)

    def __repr__(self) -> str:
        return f"SessionTransaction(active={self.is_active})"


def current_transaction(session):
    """
    Return the transaction context of a session.

    Parameters
    ----------
    session : Session
        A SQLAlchemy session, or any handle with its own ``current_transaction()``.

    Returns
    -------
    SessionTransaction
        Or whatever the handle's ``current_transaction()`` returns.
    """
    getter = getattr(session, "current_transaction", None)
    if callable(getter):
        return getter()
    return SessionTransaction(session)
