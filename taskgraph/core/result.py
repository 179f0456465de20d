"""Terminal outcome of a graph run."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from taskgraph.utils.errors import GraphExecutionError


class NodeStatus(str, Enum):
    """Lifecycle status of a node within one run."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


@dataclass
class RunResult:
    """Result of executing a TaskGraph.

    Attributes:
        success: True if every node completed successfully
        failed_node: ID of the first node whose failure was recorded
        error: The error of failed_node
        skipped: Node IDs that never ran because an ancestor failed
        completed: Successfully completed node IDs, in completion order
        failures: Every (node_id, error) pair, in the order recorded
        cancelled: Node IDs cancelled mid-run (only with cancel_on_failure)
        statuses: Final status of every node
        duration: Wall-clock run time in seconds
    """

    success: bool
    failed_node: Optional[str] = None
    error: Optional[Exception] = None
    skipped: List[str] = field(default_factory=list)
    completed: List[str] = field(default_factory=list)
    failures: List[Tuple[str, Exception]] = field(default_factory=list)
    cancelled: List[str] = field(default_factory=list)
    statuses: Dict[str, NodeStatus] = field(default_factory=dict)
    duration: float = 0.0

    @property
    def is_success(self) -> bool:
        return self.success

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None

    def raise_for_failure(self) -> None:
        """Raise GraphExecutionError if the run failed."""
        if not self.success:
            raise GraphExecutionError(self)

    def summary(self) -> Dict[str, object]:
        """Compact, JSON-friendly summary of the run."""
        return {
            "success": self.success,
            "failed_node": self.failed_node,
            "error": self.error_message,
            "completed": list(self.completed),
            "skipped": list(self.skipped),
            "cancelled": list(self.cancelled),
            "duration": round(self.duration, 6),
        }
