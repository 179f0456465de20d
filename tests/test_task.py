"""Tests for the task abstractions."""

import asyncio

import pytest

from taskgraph import BaseTask, Context, FunctionTask, Task, TimeoutTask
from taskgraph.utils.errors import TaskExecutionFailed


class FlakyTask(BaseTask):
    """Fails a fixed number of times before succeeding."""

    def __init__(self, failures: int, config=None):
        super().__init__(id="flaky", config=config)
        self.failures = failures
        self.attempts = 0

    async def _run_impl(self, context: Context) -> None:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise TaskExecutionFailed(f"attempt {self.attempts} failed")
        await context.set("attempts", self.attempts)


class SlowTask(BaseTask):
    async def _run_impl(self, context: Context) -> None:
        await asyncio.sleep(1)
        await context.set("done", True)


def test_protocol_conformance():
    """Test that the provided task classes satisfy the Task protocol."""

    async def fn(context):
        pass

    assert isinstance(FunctionTask("f", fn), Task)
    assert isinstance(FlakyTask(0), Task)
    assert isinstance(TimeoutTask(FunctionTask("f", fn), 1.0), Task)


def test_default_id_is_class_name():
    """Test that BaseTask falls back to the class name for its id."""
    assert SlowTask().id == "SlowTask"
    assert repr(SlowTask(id="slow")) == "SlowTask(id='slow')"


@pytest.mark.asyncio
async def test_function_task_runs(context):
    """Test that FunctionTask awaits the wrapped coroutine function."""

    async def write(ctx):
        await ctx.set("x", 1)

    await FunctionTask("writer", write).run(context)

    assert await context.get("x") == 1


@pytest.mark.asyncio
async def test_no_retry_by_default(context):
    """Test that a failing task fails immediately without retry config."""
    task = FlakyTask(failures=1)

    with pytest.raises(TaskExecutionFailed, match="attempt 1"):
        await task.run(context)
    assert task.attempts == 1


@pytest.mark.asyncio
async def test_retry_then_succeed(context):
    """Test in-task retry with backoff."""
    task = FlakyTask(failures=2, config={"retry": {"max_retries": 2, "delay": 0.001}})

    await task.run(context)

    assert task.attempts == 3
    assert await context.get("attempts") == 3


@pytest.mark.asyncio
async def test_retry_exhausted(context):
    """Test that the last error is raised once retries are exhausted."""
    task = FlakyTask(failures=5, config={"retry": {"max_retries": 1, "delay": 0.001}})

    with pytest.raises(TaskExecutionFailed, match="attempt 2"):
        await task.run(context)
    assert task.attempts == 2


@pytest.mark.asyncio
async def test_timeout_task_fails(context):
    """Test that a timeout surfaces as TaskExecutionFailed."""
    task = TimeoutTask(SlowTask(id="slow"), seconds=0.01)

    with pytest.raises(TaskExecutionFailed, match="timed out"):
        await task.run(context)
    assert task.id == "slow"
    assert not await context.has("done")


def test_timeout_must_be_positive():
    """Test timeout validation."""
    with pytest.raises(ValueError, match="positive"):
        TimeoutTask(SlowTask(), seconds=0)
