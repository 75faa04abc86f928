"""Unit tests for TaskExecutor: argument checks, session lifecycle, retry loop."""
from __future__ import annotations

import logging

import pytest
from sqlalchemy import exc as sa_exc

from taskdao.tasks.errors import (
    FailureKind,
    HandleUnavailableError,
    InvalidArgumentError,
    RecoverableError,
    TaskDaoError,
    classify_failure,
)
from taskdao.tasks.executor import BorrowedSession, OwnedSessions, TaskExecutor
from tests.fakes import FakeFactory, FakeSession, ScriptedTask


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

class TestConstruction:

    def test_factory_mode_exposes_factory_only(self) -> None:
        factory = FakeFactory()
        executor = TaskExecutor(factory)
        assert executor.factory is factory
        assert executor.session is None
        assert isinstance(executor._source, OwnedSessions)

    def test_borrowed_mode_exposes_session_only(self) -> None:
        session = FakeSession()
        executor = TaskExecutor(session=session)
        assert executor.session is session
        assert executor.factory is None
        assert isinstance(executor._source, BorrowedSession)

    def test_requires_a_source(self) -> None:
        with pytest.raises(InvalidArgumentError):
            TaskExecutor()

    def test_sources_are_mutually_exclusive(self) -> None:
        with pytest.raises(InvalidArgumentError):
            TaskExecutor(FakeFactory(), session=FakeSession())

    def test_invalid_argument_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            TaskExecutor()


# ---------------------------------------------------------------------------
# Argument validation
# ---------------------------------------------------------------------------

class TestValidation:

    def test_none_task_touches_nothing(self) -> None:
        factory = FakeFactory()
        with pytest.raises(InvalidArgumentError, match="task is None"):
            TaskExecutor(factory).execute(None, transaction=True)
        assert factory.calls == 0

    @pytest.mark.parametrize("retry_count", [-1, -5])
    def test_negative_retry_count_touches_nothing(self, retry_count: int) -> None:
        factory = FakeFactory()
        task = ScriptedTask("ok")
        with pytest.raises(InvalidArgumentError, match="retry_count < 0"):
            TaskExecutor(factory).execute(task, transaction=True, retry_count=retry_count)
        assert factory.calls == 0
        assert task.attempts == 0

    def test_negative_retry_count_with_borrowed_session(self) -> None:
        session = FakeSession()
        with pytest.raises(InvalidArgumentError):
            TaskExecutor(session=session).execute(ScriptedTask(), transaction=True, retry_count=-1)
        assert session.events == []

    def test_non_callable_task_is_rejected(self) -> None:
        with pytest.raises(TypeError):
            TaskExecutor(FakeFactory()).execute(42)


# ---------------------------------------------------------------------------
# Session acquisition and release
# ---------------------------------------------------------------------------

class TestSessionLifecycle:

    def test_factory_failure_is_wrapped(self) -> None:
        boom = RuntimeError("pool exhausted")

        def factory():
            raise boom

        with pytest.raises(HandleUnavailableError) as excinfo:
            TaskExecutor(factory).execute(ScriptedTask())
        assert excinfo.value.__cause__ is boom

    def test_factory_returning_none(self) -> None:
        with pytest.raises(HandleUnavailableError, match="returned None"):
            TaskExecutor(lambda: None).execute(ScriptedTask())

    def test_package_error_from_factory_propagates_unchanged(self) -> None:
        error = RecoverableError("try again")

        def factory():
            raise error

        with pytest.raises(RecoverableError) as excinfo:
            TaskExecutor(factory).execute(ScriptedTask())
        assert excinfo.value is error

    def test_owned_session_closed_once_on_success(self) -> None:
        factory = FakeFactory()
        assert TaskExecutor(factory).execute(ScriptedTask("done"), transaction=True) == "done"
        assert factory.calls == 1
        assert factory.sessions[0].close_count == 1

    def test_owned_session_closed_once_on_failure(self) -> None:
        factory = FakeFactory()
        with pytest.raises(KeyError):
            TaskExecutor(factory).execute(ScriptedTask(KeyError("x")), transaction=True)
        assert factory.sessions[0].close_count == 1

    def test_owned_session_closed_when_commit_fails(self) -> None:
        factory = FakeFactory(fail_on=("commit",))
        with pytest.raises(RuntimeError, match="commit failed"):
            TaskExecutor(factory).execute(ScriptedTask("x"), transaction=True)
        assert factory.sessions[0].close_count == 1

    def test_each_call_gets_a_fresh_session(self) -> None:
        factory = FakeFactory()
        executor = TaskExecutor(factory)
        for _ in range(3):
            executor.execute(ScriptedTask())
        assert factory.calls == 3
        assert [s.close_count for s in factory.sessions] == [1, 1, 1]

    def test_borrowed_session_never_closed(self) -> None:
        session = FakeSession()
        executor = TaskExecutor(session=session)
        executor.execute(ScriptedTask("a"))
        executor.execute(ScriptedTask("b"), transaction=True)
        with pytest.raises(ValueError):
            executor.execute(ScriptedTask(ValueError("bad")), transaction=True)
        assert session.close_count == 0

    def test_task_receives_the_session(self) -> None:
        session = FakeSession()
        seen = []
        TaskExecutor(session=session).execute(seen.append)
        assert seen == [session]


# ---------------------------------------------------------------------------
# Retry loop
# ---------------------------------------------------------------------------

class TestRetry:

    @pytest.mark.parametrize(
        ("failures", "retry_count", "succeeds"),
        [
            (0, 0, True),
            (1, 0, False),
            (1, 1, True),
            (2, 1, False),
            (2, 2, True),
            (2, 5, True),
        ],
    )
    def test_retry_termination(self, failures: int, retry_count: int, succeeds: bool) -> None:
        outcomes = [RecoverableError(f"attempt {i}") for i in range(failures)] + ["result"]
        task = ScriptedTask(*outcomes)
        executor = TaskExecutor(FakeFactory())

        if succeeds:
            assert executor.execute(task, retry_count=retry_count) == "result"
            assert task.attempts == failures + 1
        else:
            with pytest.raises(RecoverableError):
                executor.execute(task, retry_count=retry_count)
            assert task.attempts == retry_count + 1

    def test_two_recoverable_failures_then_success(self) -> None:
        task = ScriptedTask(RecoverableError("1"), RecoverableError("2"), 42)
        assert TaskExecutor(FakeFactory()).execute(task, retry_count=2) == 42
        assert task.attempts == 3

    def test_no_retry_count_raises_the_same_recoverable_failure(self) -> None:
        error = RecoverableError("deadlock")
        task = ScriptedTask(error)
        with pytest.raises(RecoverableError) as excinfo:
            TaskExecutor(FakeFactory()).execute(task)
        assert excinfo.value is error
        assert task.attempts == 1

    def test_exhaustion_raises_the_last_recoverable_failure(self) -> None:
        first, last = RecoverableError("first"), RecoverableError("last")
        task = ScriptedTask(first, last)
        with pytest.raises(RecoverableError) as excinfo:
            TaskExecutor(FakeFactory()).execute(task, retry_count=1)
        assert excinfo.value is last

    @pytest.mark.parametrize("retry_count", [0, 1, 10])
    def test_non_recoverable_failure_short_circuits(self, retry_count: int) -> None:
        task = ScriptedTask(LookupError("missing"), "never")
        with pytest.raises(LookupError):
            TaskExecutor(FakeFactory()).execute(task, retry_count=retry_count)
        assert task.attempts == 1

    def test_non_recoverable_after_recoverable_stops_retrying(self) -> None:
        task = ScriptedTask(RecoverableError("again"), ZeroDivisionError(), "never")
        with pytest.raises(ZeroDivisionError):
            TaskExecutor(FakeFactory()).execute(task, retry_count=5)
        assert task.attempts == 2

    def test_retries_happen_inside_one_transaction(self) -> None:
        factory = FakeFactory()
        task = ScriptedTask(RecoverableError("1"), "ok")
        TaskExecutor(factory).execute(task, transaction=True, retry_count=1)
        assert factory.sessions[0].events == ["begin", "commit"]

    def test_exhausted_retries_roll_back(self) -> None:
        factory = FakeFactory()
        with pytest.raises(RecoverableError):
            TaskExecutor(factory).execute(ScriptedTask(RecoverableError("x")), transaction=True, retry_count=2)
        assert factory.sessions[0].events == ["begin", "rollback"]

    def test_lost_connection_rolls_back_before_next_attempt(self) -> None:
        factory = FakeFactory()
        lost = sa_exc.OperationalError("SELECT 1", {}, Exception("server closed"), connection_invalidated=True)
        task = ScriptedTask(lost, "reconnected")
        assert TaskExecutor(factory).execute(task, retry_count=1) == "reconnected"
        assert factory.sessions[0].events == ["rollback"]

    def test_pool_timeout_rolls_back_before_next_attempt(self) -> None:
        factory = FakeFactory()
        task = ScriptedTask(sa_exc.TimeoutError("QueuePool limit"), "ok")
        assert TaskExecutor(factory).execute(task, retry_count=1) == "ok"
        assert factory.sessions[0].events == ["rollback"]

    def test_lost_connection_in_own_transaction_is_not_retried(self) -> None:
        factory = FakeFactory()
        lost = sa_exc.OperationalError("SELECT 1", {}, Exception("server closed"), connection_invalidated=True)
        task = ScriptedTask(lost, "never")
        with pytest.raises(sa_exc.OperationalError):
            TaskExecutor(factory).execute(task, transaction=True, retry_count=3)
        assert task.attempts == 1
        assert factory.sessions[0].events == ["begin", "rollback"]

    def test_lost_connection_in_outer_transaction_is_not_retried(self) -> None:
        session = FakeSession(active=True)
        task = ScriptedTask(sa_exc.TimeoutError("QueuePool limit"), "never")
        with pytest.raises(sa_exc.TimeoutError):
            TaskExecutor(session=session).execute(task, transaction=True, retry_count=3)
        assert task.attempts == 1
        assert session.events == []

    def test_recoverable_error_does_not_roll_back_between_attempts(self) -> None:
        factory = FakeFactory()
        TaskExecutor(factory).execute(ScriptedTask(RecoverableError("busy"), "ok"), retry_count=1)
        assert factory.sessions[0].events == []

    def test_retry_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        task = ScriptedTask(RecoverableError("busy"), "ok")
        with caplog.at_level(logging.WARNING, logger="taskdao.tasks.executor"):
            TaskExecutor(FakeFactory()).execute(task, retry_count=1)
        assert any("retrying" in r.getMessage() for r in caplog.records)

    def test_exhaustion_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.ERROR, logger="taskdao.tasks.executor"):
            with pytest.raises(RecoverableError):
                TaskExecutor(FakeFactory()).execute(ScriptedTask(RecoverableError("busy")), retry_count=1)
        assert any("after 2 attempt(s)" in r.getMessage() for r in caplog.records)


# ---------------------------------------------------------------------------
# Failure classification
# ---------------------------------------------------------------------------

class TestClassifyFailure:

    def test_recoverable_error(self) -> None:
        assert classify_failure(RecoverableError()) is FailureKind.RECOVERABLE

    def test_invalidated_connection(self) -> None:
        error = sa_exc.DBAPIError("SELECT 1", {}, Exception("gone"), connection_invalidated=True)
        assert classify_failure(error) is FailureKind.RECOVERABLE

    def test_plain_dbapi_error_is_fatal(self) -> None:
        error = sa_exc.IntegrityError("INSERT", {}, Exception("duplicate key"))
        assert classify_failure(error) is FailureKind.FATAL

    def test_pool_timeout(self) -> None:
        assert classify_failure(sa_exc.TimeoutError("QueuePool limit")) is FailureKind.RECOVERABLE

    @pytest.mark.parametrize("error", [ValueError(), RuntimeError(), TaskDaoError(), HandleUnavailableError()])
    def test_everything_else_is_fatal(self, error: Exception) -> None:
        assert classify_failure(error) is FailureKind.FATAL
