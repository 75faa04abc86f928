"""
Database Transaction Management
===============================

This module provides utilities for managing SQLAlchemy database sessions
using Python context variables and a decorator-based transaction wrapper.

It allows seamless propagation of a database session across function calls
without explicitly threading it through arguments. Functions can be safely
decorated with ``@transactional`` to ensure they run inside a managed
transactional context.

Key features
~~~~~~~~~~~~
- Context variable to store the active session
- Implicit reuse of existing sessions
- Automatic begin, commit and rollback handling through `TaskExecutor`
- Optional retry on recoverable failures
- Clean session closure after execution

"""

import contextvars
import logging
from functools import wraps

from taskdao.daos.dao import Dao
from taskdao.tasks.errors import HandleUnavailableError
from taskdao.tasks.executor import TaskExecutor

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------
# Context variable to store the current database session.
# This ensures a session can be passed implicitly across function calls
# without explicitly threading it through arguments.
# --------------------------------------------------------------------
db_session_context = contextvars.ContextVar("db_session_context", default=None)
"""Context variable storing the active SQLAlchemy session."""


def transactional(func=None, *, retry_count: int = 0, factory=None):
    """
    Decorator to wrap functions in a managed SQLAlchemy transaction.

    Ensures that:
    - If a session already exists in context, it is reused and the outer
      call stays in charge of commit/rollback.
    - Otherwise, a new session is created, the function runs inside a
      transaction, the transaction is committed and the session closed.
    - On errors, the transaction is rolled back and the session closed.
    - Recoverable failures are retried up to `retry_count` more times.

    Parameters
    ----------
    func : callable
        The function to wrap. It must accept a `session` keyword argument.
    retry_count : int, optional
        Additional attempts on recoverable failures. Default 0.
    factory : callable, optional
        Session factory. Defaults to the factory shared by all DAOs
        (see `Dao.setSharedSessionFactory`), looked up at call time.

    Returns
    -------
    callable
        The wrapped function, executed within a database transaction.

    Example
    -------
    >>> @transactional
    ... def create_customer(customer: Customer, session=None):
    ...     session.add(customer)
    ...     return customer
    ...
    >>> @transactional(retry_count=2)
    ... def transfer(src, dst, amount, session=None):
    ...     ...
    """
    def decorator(fn):
        @wraps(fn)
        def wrap_func(*args, **kwargs):
            # Try to get an existing session from context
            session = db_session_context.get()
            if session is not None:
                return fn(*args, session=session, **kwargs)

            session_factory = factory or Dao.getSharedSessionFactory()
            if session_factory is None:
                raise HandleUnavailableError("Session factory is not set.")

            def task(new_session):
                token = db_session_context.set(new_session)
                try:
                    return fn(*args, session=new_session, **kwargs)
                finally:
                    db_session_context.reset(token)

            logger.debug("Running %s in a new transaction", fn.__qualname__)
            return TaskExecutor(session_factory).execute(task, transaction=True, retry_count=retry_count)

        return wrap_func

    if func is not None:
        return decorator(func)
    return decorator
