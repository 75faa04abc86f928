"""
The `taskdao` package is a thin convenience layer over SQLAlchemy sessions.
It spares application code the repeated "open a session, run one operation,
make sure the session is closed" boilerplate, and wraps arbitrary units of
work in an optional transaction with retry on recoverable failures.

Contents:
    - config:
        Settings and the SQLAlchemy bootstrap (URL, engine, session factory,
        shared metadata and declarative base).

    - tasks:
        `TaskExecutor` and the task contract (`Task`, `TransactionAwareTask`,
        `TaskAdapter`), the transaction adapter and the error hierarchy.

    - daos:
        Generic `Dao` providing CRUD and query operations for any entity class.

    - helpers:
        The `@transactional` decorator and the session context variable.
"""

from taskdao.daos import Dao, QueryLanguage
from taskdao.tasks import (
    FunctionTask,
    HandleUnavailableError,
    InvalidArgumentError,
    RecoverableError,
    Task,
    TaskAdapter,
    TaskDaoError,
    TaskExecutor,
    TransactionAwareTask,
)

__version__ = "1.0.0"
