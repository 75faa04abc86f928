"""
Task Executor
=============

Runs a unit of work against a SQLAlchemy session, optionally inside a
transaction, retrying on recoverable failures.

Session sources
~~~~~~~~~~~~~~~
An executor is built from exactly one of:

- a session factory (``sessionmaker`` or any zero-argument callable): every
  ``execute`` call opens a fresh session and closes it on exit, success or
  failure;
- a borrowed session: reused by every call and never closed by the
  executor. Concurrent calls on such an executor are the caller's problem.

Per-call flow
~~~~~~~~~~~~~
acquire session -> [begin] -> attempt(s) -> [commit | rollback] -> release

If the session is already inside a transaction when ``transaction=True`` is
requested, the work is treated as enclosed by that outer transaction: no
begin/commit/rollback and no hooks.

Retries
~~~~~~~
A task-level `RecoverableError` is retried on the same session, inside the
same transaction if there is one. A recoverable SQLAlchemy failure (lost
connection, pool timeout) leaves the session unusable until its transaction
is rolled back, so:

- if the session was idle and no transaction was requested, the session is
  rolled back before the next attempt;
- inside a transaction, whether begun here or by the caller, the failure is
  not retried and propagates at once.

Hook failures
~~~~~~~~~~~~~
A hook that raises propagates immediately. Once ``begin()`` has succeeded,
any failure (task, hook or commit) leaves the rollback-on-exit in charge.
``before_transaction_rollback`` raising does not prevent the rollback
itself; ``after_transaction_rollback`` is skipped in that case.

Example
-------
>>> executor = TaskExecutor(create_session_factory())
>>> executor.execute(lambda session: session.get(Customer, 42))
>>> executor.execute(ImportBatch(rows), transaction=True, retry_count=2)
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional, Union

from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session

from taskdao.tasks.errors import (
    FailureKind,
    HandleUnavailableError,
    InvalidArgumentError,
    TaskDaoError,
    classify_failure,
)
from taskdao.tasks.task import Task, TransactionAwareTask, as_task, as_transaction_aware
from taskdao.tasks.transaction import SessionTransaction, current_transaction

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


@dataclass(frozen=True)
class OwnedSessions:
    """Sessions come from `factory` and are closed after each call."""

    factory: SessionFactory


@dataclass(frozen=True)
class BorrowedSession:
    """A caller-owned session reused by every call and never closed."""

    session: Session


HandleSource = Union[OwnedSessions, BorrowedSession]


class TaskExecutor:
    """
    Task executor.

    Parameters
    ----------
    factory : callable, optional
        Session factory. Mutually exclusive with `session`.
    session : Session, optional
        Borrowed session. Mutually exclusive with `factory`.

    Raises
    ------
    InvalidArgumentError
        Neither or both of `factory` and `session` were given.
    """

    def __init__(self, factory: Optional[SessionFactory] = None, *, session: Optional[Session] = None):
        if factory is not None and session is not None:
            raise InvalidArgumentError("factory and session are mutually exclusive.")
        if factory is not None:
            self._source: HandleSource = OwnedSessions(factory)
        elif session is not None:
            self._source = BorrowedSession(session)
        else:
            raise InvalidArgumentError("factory is None.")

    @property
    def factory(self) -> Optional[SessionFactory]:
        """The session factory, or None if the executor was built with a borrowed session."""
        if isinstance(self._source, OwnedSessions):
            return self._source.factory
        return None

    @property
    def session(self) -> Optional[Session]:
        """The borrowed session, or None if the executor was built with a factory."""
        if isinstance(self._source, BorrowedSession):
            return self._source.session
        return None

    def execute(self, task: Union[Task, Callable[[Session], Any]], transaction: bool = False,
                retry_count: int = 0) -> Any:
        """
        Execute a task.

        Parameters
        ----------
        task : Task | TransactionAwareTask | callable
            Unit of work. Plain callables are invoked as ``task(session)``.
        transaction : bool
            True to run the task inside a transaction.
        retry_count : int
            How many more attempts to make after the first one. The task is
            retried only when an attempt raised a failure classified as
            recoverable (see `classify_failure`); any other failure
            propagates at once.

        Returns
        -------
        Any
            Whatever the successful attempt returned.

        Raises
        ------
        InvalidArgumentError
            `task` is None or `retry_count` is negative. No session is touched.
        HandleUnavailableError
            The factory failed or returned None.
        Exception
            The last recoverable failure once retries are exhausted, or the
            first non-recoverable failure, or a begin/commit/rollback error.
        """
        if task is None:
            raise InvalidArgumentError("task is None.")
        if retry_count < 0:
            raise InvalidArgumentError("retry_count < 0")
        task = as_task(task)

        with self._acquire_session() as session:
            return self._execute_in_session(task, transaction, retry_count, session)

    @contextmanager
    def _acquire_session(self) -> Iterator[Session]:
        if isinstance(self._source, BorrowedSession):
            yield self._source.session
            return

        session = self._create_session(self._source.factory)
        logger.debug("Session %r acquired", session)
        try:
            yield session
        finally:
            # Close the session in any case.
            session.close()
            logger.debug("Session %r released", session)

    @staticmethod
    def _create_session(factory: SessionFactory) -> Session:
        try:
            session = factory()
        except TaskDaoError:
            raise
        except Exception as e:
            raise HandleUnavailableError("session factory failed.") from e

        if session is None:
            raise HandleUnavailableError("session factory returned None.")
        return session

    def _execute_in_session(self, task: Task, transaction: bool, retry_count: int, session: Session) -> Any:
        tx = current_transaction(session)
        if tx.is_active:
            if transaction:
                logger.debug("Session already in a transaction; joining it")
            return self._run_with_retry(task, retry_count, session, tx, resettable=False)
        if not transaction:
            return self._run_with_retry(task, retry_count, session, tx, resettable=True)

        aware = as_transaction_aware(task)

        if aware is not None:
            aware.before_transaction_begin(session, tx)
        tx.begin()

        committed = False
        try:
            if aware is not None:
                aware.after_transaction_begin(session, tx)

            result = self._run_with_retry(task, retry_count, session, tx, resettable=False)

            if aware is not None:
                aware.before_transaction_commit(session, tx)
            tx.commit()
            committed = True
            if aware is not None:
                aware.after_transaction_commit(session, tx)

            return result
        finally:
            # Transaction was begun here but not committed. A hook touching
            # the session after commit autobegins a new one, left to close().
            if not committed and tx.is_active:
                self._rollback(aware, session, tx)

    @staticmethod
    def _rollback(aware: Optional[TransactionAwareTask], session: Session, tx: SessionTransaction) -> None:
        try:
            if aware is not None:
                aware.before_transaction_rollback(session, tx)
        finally:
            tx.rollback()
        if aware is not None:
            aware.after_transaction_rollback(session, tx)

    @staticmethod
    def _run_with_retry(task: Task, retry_count: int, session: Session, tx: SessionTransaction,
                        resettable: bool) -> Any:
        last_error = None

        for attempt in range(1, retry_count + 2):
            try:
                return task.run(session)
            except Exception as e:
                if classify_failure(e) is not FailureKind.RECOVERABLE:
                    raise
                session_failure = isinstance(e, sa_exc.SQLAlchemyError)
                if session_failure and not resettable:
                    # The session is unusable until the enclosing transaction is rolled back.
                    raise
                last_error = e
                if attempt <= retry_count:
                    logger.warning("Attempt %d of %r failed (%s); retrying", attempt, task, e)
                    if session_failure:
                        tx.rollback()

        logger.error("%r failed after %d attempt(s)", task, retry_count + 1)
        raise last_error
