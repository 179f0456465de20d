"""Base task protocol and implementation.

This module defines the Task protocol that every unit of work must implement,
along with a BaseTask class that provides common functionality like retry
logic, plus small wrappers for plain coroutine functions and timeouts.
"""

from typing import Protocol, Any, Awaitable, Callable, Dict, Optional, runtime_checkable
from abc import ABC, abstractmethod
import asyncio
import logging

from taskgraph.core.context import Context
from taskgraph.utils.errors import TaskExecutionFailed

logger = logging.getLogger(__name__)


@runtime_checkable
class Task(Protocol):
    """Protocol that all tasks must implement.

    A task succeeds by returning and fails by raising. Any class implementing
    this protocol can be registered in a TaskGraph.
    """

    id: str

    async def run(self, context: Context) -> None:
        """Execute the task against the shared context.

        Args:
            context: Context shared with the other tasks of the run

        Raises:
            TaskExecutionFailed: If the task's own work fails
        """
        ...


class BaseTask(ABC):
    """Base implementation with common functionality.

    This provides:
    - Retry logic with exponential backoff
    - Config management

    Retries happen inside the task; the executor never re-runs a task.
    Subclasses must implement _run_impl() with their core logic.
    """

    def __init__(self, id: Optional[str] = None, config: Optional[Dict[str, Any]] = None):
        """Initialize base task.

        Args:
            id: Unique identifier for this task (defaults to the class name)
            config: Configuration dictionary
        """
        self.id = id or self.__class__.__name__
        self.config = config or {}
        self.retry_config = self.config.get("retry", {})

    @abstractmethod
    async def _run_impl(self, context: Context) -> None:
        """Subclasses implement core logic here."""
        pass

    async def run(self, context: Context) -> None:
        """Run task with retry logic.

        Args:
            context: Shared context

        Raises:
            Exception: If all retry attempts fail
        """
        max_retries = self.retry_config.get("max_retries", 0)
        retry_delay = self.retry_config.get("delay", 1.0)
        retry_backoff = self.retry_config.get("backoff", 2.0)

        for attempt in range(max_retries + 1):
            try:
                await self._run_impl(context)
                return
            except Exception as e:
                if attempt < max_retries:
                    delay = retry_delay * (retry_backoff ** attempt)
                    logger.warning(
                        "Task %s failed (attempt %d/%d): %s; retrying in %.2fs",
                        self.id, attempt + 1, max_retries + 1, e, delay,
                    )
                    await asyncio.sleep(delay)
                    continue
                raise

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id='{self.id}')"


class FunctionTask(BaseTask):
    """Task that wraps an ``async def fn(context)`` coroutine function.

    Example:
        >>> async def write_x(context):
        ...     await context.set("x", 1)
        >>> task = FunctionTask("a", write_x)
    """

    def __init__(
        self,
        id: str,
        fn: Callable[[Context], Awaitable[None]],
        config: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(id=id, config=config)
        self.fn = fn

    async def _run_impl(self, context: Context) -> None:
        await self.fn(context)


class TimeoutTask:
    """Wraps another task and fails it if it runs longer than ``seconds``.

    The timeout surfaces as an ordinary TaskExecutionFailed, so dependents of
    a stalled task are skipped instead of waiting forever.
    """

    def __init__(self, inner: Task, seconds: float):
        if seconds <= 0:
            raise ValueError("timeout must be positive")
        self.inner = inner
        self.id = inner.id
        self.seconds = seconds

    async def run(self, context: Context) -> None:
        try:
            await asyncio.wait_for(self.inner.run(context), timeout=self.seconds)
        except asyncio.TimeoutError as e:
            raise TaskExecutionFailed(
                f"Task '{self.id}' timed out after {self.seconds}s", e
            ) from e

    def __repr__(self) -> str:
        return f"TimeoutTask({self.inner!r}, seconds={self.seconds})"
