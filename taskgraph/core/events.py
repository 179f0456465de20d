"""Event system for observing graph execution.

The executor publishes an ExecutionEvent at every run and node lifecycle
transition. Listeners are plain async callables registered on an EventEmitter.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional
from enum import Enum
import logging

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Event types emitted during execution."""

    # Run lifecycle
    EXECUTION_START = "execution-start"
    EXECUTION_COMPLETE = "execution-complete"
    EXECUTION_ERROR = "execution-error"

    # Node lifecycle
    NODE_START = "node-start"
    NODE_COMPLETE = "node-complete"
    NODE_ERROR = "node-error"
    NODE_SKIPPED = "node-skipped"


@dataclass
class ExecutionEvent:
    """A single execution event.

    Attributes:
        type: Event type
        node_id: Node the event refers to (None for run-level events)
        error: Error description for failure events
        timestamp: When the event was created
        metadata: Additional event data
    """

    type: EventType
    node_id: Optional[str] = None
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to a JSON-friendly dictionary."""
        data: Dict[str, Any] = {
            "type": self.type.value,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.node_id is not None:
            data["node_id"] = self.node_id
        if self.error is not None:
            data["error"] = self.error
        if self.metadata:
            data["metadata"] = {k: v for k, v in self.metadata.items() if k != "result"}
        return data


Listener = Callable[[ExecutionEvent], Awaitable[None]]


class EventEmitter:
    """Event emitter for publishing execution events.

    This class manages event listeners and provides methods for emitting
    events during graph execution.
    """

    def __init__(self):
        self._listeners: List[Listener] = []

    def on(self, listener: Listener) -> None:
        """Register an event listener.

        Args:
            listener: Async function that receives ExecutionEvent objects
        """
        self._listeners.append(listener)

    def off(self, listener: Listener) -> None:
        """Remove an event listener.

        Args:
            listener: The listener function to remove
        """
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def emit(self, event: ExecutionEvent) -> None:
        """Emit an event to all listeners.

        A listener that raises is logged and skipped; it never fails the run.

        Args:
            event: The event to emit
        """
        for listener in list(self._listeners):
            try:
                await listener(event)
            except Exception:
                logger.exception("Error in event listener for %s", event.type.value)

    def clear(self) -> None:
        """Remove all event listeners."""
        self._listeners.clear()

    def __len__(self) -> int:
        return len(self._listeners)
