"""
taskgraph: asynchronous task-graph execution engine

Runs units of async work ("tasks") in dependency order. Tasks exchange data
through a shared, concurrency-safe Context, and a failed task causes its
dependents to be skipped while independent branches keep running.

Example:
    >>> from taskgraph import TaskGraph, FunctionTask, Executor, Context
    >>>
    >>> async def produce(context):
    ...     await context.set("x", 1)
    >>>
    >>> async def consume(context):
    ...     await context.set("y", await context.get("x") + 1)
    >>>
    >>> graph = TaskGraph()
    >>> graph.add_node(FunctionTask("a", produce))
    >>> graph.add_node(FunctionTask("b", consume))
    >>> graph.add_edge("a", "b")
    >>>
    >>> context = Context()
    >>> result = await Executor(graph).run(context)
    >>> result.success, await context.get("y")
    (True, 2)
"""

__version__ = "0.1.0"

# Core components
from taskgraph.core.context import Context
from taskgraph.core.task import Task, BaseTask, FunctionTask, TimeoutTask
from taskgraph.core.graph import TaskGraph, Edge
from taskgraph.core.events import EventEmitter, EventType, ExecutionEvent
from taskgraph.core.result import NodeStatus, RunResult
from taskgraph.core.executor import Executor

# Errors
from taskgraph.utils.errors import (
    TaskGraphError,
    GraphValidationError,
    CycleDetectedError,
    UnknownNodeError,
    DuplicateNodeError,
    MissingKeyError,
    TaskExecutionFailed,
    GraphExecutionError,
    ExecutorInvariantError,
)

__all__ = [
    # Version
    "__version__",
    # Core
    "Context",
    "Task",
    "BaseTask",
    "FunctionTask",
    "TimeoutTask",
    "TaskGraph",
    "Edge",
    "EventEmitter",
    "EventType",
    "ExecutionEvent",
    "NodeStatus",
    "RunResult",
    "Executor",
    # Errors
    "TaskGraphError",
    "GraphValidationError",
    "CycleDetectedError",
    "UnknownNodeError",
    "DuplicateNodeError",
    "MissingKeyError",
    "TaskExecutionFailed",
    "GraphExecutionError",
    "ExecutorInvariantError",
]
