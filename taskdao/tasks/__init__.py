"""
The `tasks` package runs units of work against SQLAlchemy sessions.

Contents
--------
- executor
    `TaskExecutor`: session acquisition/release, optional transaction with
    begin/commit/rollback, bounded retry on recoverable failures.
- task
    `Task` protocol, `TransactionAwareTask` hooks, `TaskAdapter`, `FunctionTask`.
- transaction
    `SessionTransaction` adapter exposing begin/commit/rollback/is_active.
- errors
    Error hierarchy and `classify_failure`.
"""

from taskdao.tasks.errors import (
    FailureKind,
    HandleUnavailableError,
    InvalidArgumentError,
    RecoverableError,
    TaskDaoError,
    classify_failure,
)
from taskdao.tasks.executor import BorrowedSession, OwnedSessions, TaskExecutor
from taskdao.tasks.task import FunctionTask, Task, TaskAdapter, TransactionAwareTask, as_transaction_aware
from taskdao.tasks.transaction import SessionTransaction, current_transaction

__all__ = [
    "BorrowedSession",
    "FailureKind",
    "FunctionTask",
    "HandleUnavailableError",
    "InvalidArgumentError",
    "OwnedSessions",
    "RecoverableError",
    "SessionTransaction",
    "Task",
    "TaskAdapter",
    "TaskDaoError",
    "TaskExecutor",
    "TransactionAwareTask",
    "as_transaction_aware",
    "classify_failure",
    "current_transaction",
]
