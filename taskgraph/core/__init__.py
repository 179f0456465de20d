"""Core execution engine components."""

from taskgraph.core.context import Context
from taskgraph.core.task import Task, BaseTask, FunctionTask, TimeoutTask
from taskgraph.core.graph import TaskGraph, Edge
from taskgraph.core.events import EventEmitter, EventType, ExecutionEvent
from taskgraph.core.result import NodeStatus, RunResult
from taskgraph.core.executor import Executor

__all__ = [
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
]
