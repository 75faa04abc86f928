"""
Task Errors
===========

Error taxonomy shared by `TaskExecutor`, `Dao` and the `@transactional`
decorator, plus the failure classification that drives the retry loop.

Classification
--------------
The retry loop never catches a specific exception subtype. It asks
`classify_failure` for a `FailureKind` tag and retries only on
``FailureKind.RECOVERABLE``:

- `RecoverableError` raised by task code
- SQLAlchemy `DBAPIError` whose ``connection_invalidated`` flag is set
- SQLAlchemy pool `TimeoutError`

Every other exception is ``FailureKind.FATAL``. `TaskExecutor` further limits
the two SQLAlchemy cases to sessions it can roll back between attempts; see
its module docstring.
"""

from enum import Enum

from sqlalchemy import exc as sa_exc


class TaskDaoError(Exception):
    """Base class of every error raised by this package."""


class InvalidArgumentError(TaskDaoError, ValueError):
    """An argument is missing or out of range. Raised before any session is touched."""


class HandleUnavailableError(TaskDaoError):
    """
    A session could not be obtained.

    Raised when the session factory fails or returns ``None``. The factory's
    own exception, if any, is chained as ``__cause__``.
    """


class RecoverableError(TaskDaoError):
    """Raised by a task body when the same work may succeed if retried unchanged."""


class FailureKind(Enum):
    """Failure classification consumed by the retry loop."""

    RECOVERABLE = "recoverable"
    FATAL = "fatal"


def classify_failure(error: BaseException) -> FailureKind:
    """
    Classify a failure raised from a task body.

    Parameters
    ----------
    error : BaseException
        The exception raised by one attempt.

    Returns
    -------
    FailureKind
        ``RECOVERABLE`` if the attempt may be retried, ``FATAL`` otherwise.
    """
    if isinstance(error, RecoverableError):
        return FailureKind.RECOVERABLE
    if isinstance(error, sa_exc.DBAPIError) and error.connection_invalidated:
        return FailureKind.RECOVERABLE
    if isinstance(error, sa_exc.TimeoutError):
        return FailureKind.RECOVERABLE
    return FailureKind.FATAL
