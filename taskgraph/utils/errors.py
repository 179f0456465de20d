"""Custom error classes for taskgraph."""

from typing import Any, Optional


class TaskGraphError(Exception):
    """Base exception for all taskgraph errors."""

    pass


class GraphValidationError(TaskGraphError):
    """Raised when graph construction or validation fails."""

    pass


class CycleDetectedError(GraphValidationError):
    """Raised when an edge would close a cycle in the graph."""

    def __init__(self, source: str, target: str, path: Optional[list] = None):
        self.source = source
        self.target = target
        self.path = path or []
        cycle = " -> ".join(self.path) if self.path else f"{target} -> ... -> {source}"
        super().__init__(
            f"Edge {source} -> {target} would create a cycle: {cycle} -> {target}"
        )


class UnknownNodeError(GraphValidationError):
    """Raised when an edge references a node that is not registered."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Unknown node: {node_id}")


class DuplicateNodeError(GraphValidationError):
    """Raised when a task id is registered twice."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node '{node_id}' is already registered")


class MissingKeyError(TaskGraphError, KeyError):
    """Raised when a task reads a context key that was never written."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(key)

    def __str__(self) -> str:
        return f"Missing context key: '{self.key}'"


class TaskExecutionFailed(TaskGraphError):
    """Raised by a task when its own work fails."""

    def __init__(self, description: str, original_error: Optional[Exception] = None):
        self.description = description
        self.original_error = original_error
        super().__init__(description)


class GraphExecutionError(TaskGraphError):
    """Raised by RunResult.raise_for_failure() for a failed run."""

    def __init__(self, result: Any):
        self.result = result
        super().__init__(
            f"Node '{result.failed_node}' execution failed: {result.error}"
        )


class ExecutorInvariantError(TaskGraphError):
    """Raised when the executor detects a violation of its own bookkeeping."""

    pass
