"""
Task Contract
=============

Units of work executed by `TaskExecutor`.

- `Task`: anything with ``run(session)``. The value it returns is handed back
  by ``TaskExecutor.execute``; ``None`` is fine.
- `TransactionAwareTask`: a task that also wants to hear about transaction
  boundaries. When ``execute`` is called with ``transaction=True`` and the
  executor actually opens the transaction, the six hooks fire around
  begin/commit/rollback.
- `TaskAdapter`: no-op `TransactionAwareTask`; override only what you need.
- `FunctionTask`: wraps a plain ``fn(session)`` callable.

Do not expect that either ``before_transaction_commit`` or
``before_transaction_rollback`` is always called. If the session was already
inside a transaction, or if ``begin()`` failed, neither fires.

Example
-------
>>> class AuditedInsert(TaskAdapter):
...     def run(self, session):
...         session.add(Customer(name="roman"))
...     def after_transaction_commit(self, session, tx):
...         audit_log.append("customer committed")
...
>>> executor.execute(AuditedInsert(), transaction=True)
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from sqlalchemy.orm import Session


@runtime_checkable
class Task(Protocol):
    """Unit of work run against a session."""

    def run(self, session: Session) -> Any:
        ...


class TransactionAwareTask(ABC):
    """
    Task with lifecycle hooks around transaction boundaries.

    Each hook receives the session and its current transaction context and
    returns nothing. A hook that raises aborts the call; see
    `TaskExecutor.execute` for how the transaction is cleaned up.
    """

    @abstractmethod
    def run(self, session: Session) -> Any:
        """Task body."""

    @abstractmethod
    def before_transaction_begin(self, session: Session, tx) -> None:
        """Called before ``tx.begin()``."""

    @abstractmethod
    def after_transaction_begin(self, session: Session, tx) -> None:
        """Called after ``tx.begin()`` returned."""

    @abstractmethod
    def before_transaction_commit(self, session: Session, tx) -> None:
        """Called before ``tx.commit()``."""

    @abstractmethod
    def after_transaction_commit(self, session: Session, tx) -> None:
        """Called after ``tx.commit()`` returned."""

    @abstractmethod
    def before_transaction_rollback(self, session: Session, tx) -> None:
        """Called before ``tx.rollback()``."""

    @abstractmethod
    def after_transaction_rollback(self, session: Session, tx) -> None:
        """Called after ``tx.rollback()`` returned."""


class TaskAdapter(TransactionAwareTask):
    """Empty implementation of `TransactionAwareTask`."""

    def run(self, session: Session) -> Any:
        return None

    def before_transaction_begin(self, session: Session, tx) -> None:
        pass

    def after_transaction_begin(self, session: Session, tx) -> None:
        pass

    def before_transaction_commit(self, session: Session, tx) -> None:
        pass

    def after_transaction_commit(self, session: Session, tx) -> None:
        pass

    def before_transaction_rollback(self, session: Session, tx) -> None:
        pass

    def after_transaction_rollback(self, session: Session, tx) -> None:
        pass


class FunctionTask:
    """Adapts a ``fn(session)`` callable to the `Task` contract."""

    def __init__(self, fn: Callable[[Session], Any]):
        self.fn = fn

    def run(self, session: Session) -> Any:
        return self.fn(session)

    def __repr__(self) -> str:
        return f"FunctionTask({getattr(self.fn, '__qualname__', self.fn)!r})"


def as_task(task) -> Task:
    """Return `task` itself if it has ``run``, otherwise wrap a callable in `FunctionTask`."""
    if isinstance(task, Task):
        return task
    if callable(task):
        return FunctionTask(task)
    raise TypeError(f"{type(task).__name__} is neither a Task nor callable.")


def as_transaction_aware(task) -> Optional[TransactionAwareTask]:
    """
    Capability probe for transaction hooks.

    Returns
    -------
    TransactionAwareTask | None
        The task itself when it implements the hooks, ``None`` otherwise.
        ``None`` is not an error: hook calls are simply skipped.
    """
    if isinstance(task, TransactionAwareTask):
        return task
    return None
