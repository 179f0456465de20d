"""Shared run-scoped state for graph execution.

This module provides the Context that tasks use to exchange data during a
single graph run. Values produced by a task are written under string keys and
read back by its successors.
"""

from typing import Any, Dict, List, Optional
import asyncio
import uuid

from taskgraph.utils.errors import GraphValidationError, MissingKeyError


class Context:
    """Concurrency-safe key/value store shared by the tasks of one run.

    Every read and write acquires an internal ``asyncio.Lock`` for the duration
    of that single operation, so tasks running concurrently on the same event
    loop never observe a partially applied update.

    Each write is stamped with a monotonically increasing sequence number.
    When two tasks write the same key concurrently, the last completed write
    wins and carries the highest sequence number for that key.

    Attributes:
        run_id: Unique identifier for the run that owns this context

    Example:
        >>> context = Context({"query": "what is a DAG?"})
        >>> await context.set("answer", "a directed acyclic graph")
        >>> await context.get("answer")
        'a directed acyclic graph'
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None, run_id: Optional[str] = None):
        """Initialize context.

        Args:
            initial: Optional values to seed the store with
            run_id: Optional run identifier (generated if omitted)
        """
        self.run_id = run_id or str(uuid.uuid4())
        self._lock = asyncio.Lock()
        self._values: Dict[str, Any] = {}
        self._sequence: Dict[str, int] = {}
        self._write_counter = 0
        self._claimed = False

        for key, value in (initial or {}).items():
            self._write(key, value)

    def claim(self) -> None:
        """Mark this context as owned by a run.

        Raises:
            GraphValidationError: If another run already claimed it
        """
        if self._claimed:
            raise GraphValidationError(f"Context {self.run_id} was already used by another run")
        self._claimed = True

    @property
    def is_claimed(self) -> bool:
        return self._claimed

    def _write(self, key: str, value: Any) -> int:
        self._write_counter += 1
        self._values[key] = value
        self._sequence[key] = self._write_counter
        return self._write_counter

    async def set(self, key: str, value: Any) -> None:
        """Store a value, overwriting any previous value for the key.

        Args:
            key: Context key
            value: Value to store
        """
        async with self._lock:
            self._write(key, value)

    async def get(self, key: str) -> Any:
        """Get the current value for a key.

        Does not wait for a future writer: the graph topology must guarantee
        the key was written by a predecessor.

        Args:
            key: Context key

        Returns:
            Stored value

        Raises:
            MissingKeyError: If the key was never written
        """
        async with self._lock:
            if key not in self._values:
                raise MissingKeyError(key)
            return self._values[key]

    async def get_or_default(self, key: str, default: Any = None) -> Any:
        """Get a value with an optional default instead of raising."""
        async with self._lock:
            return self._values.get(key, default)

    async def has(self, key: str) -> bool:
        """Check if a key has been written."""
        async with self._lock:
            return key in self._values

    async def append(self, key: str, value: Any) -> List[Any]:
        """Append a value to a list, creating the list if needed.

        The read-modify-write happens under a single lock acquisition, so
        concurrent appends to the same key are never lost.

        Args:
            key: Context key to append to
            value: Value to append

        Returns:
            Copy of the updated list

        Example:
            >>> await context.append("observations", "found a document")
            >>> await context.append("observations", "verified source")
            >>> await context.get("observations")
            ['found a document', 'verified source']
        """
        async with self._lock:
            current = self._values.get(key)
            if current is None:
                items: List[Any] = []
            elif isinstance(current, list):
                items = current
            else:
                # Wrap existing scalar value
                items = [current]

            items.append(value)
            self._write(key, items)
            return list(items)

    async def update(self, values: Dict[str, Any]) -> None:
        """Write several keys at once under a single lock acquisition."""
        async with self._lock:
            for key, value in values.items():
                self._write(key, value)

    async def snapshot(self) -> Dict[str, Any]:
        """Return a shallow copy of the stored values."""
        async with self._lock:
            return dict(self._values)

    async def sequence_of(self, key: str) -> int:
        """Get the write sequence number of the last write to a key.

        Raises:
            MissingKeyError: If the key was never written
        """
        async with self._lock:
            if key not in self._sequence:
                raise MissingKeyError(key)
            return self._sequence[key]

    def keys(self) -> List[str]:
        """Get the sorted list of current keys."""
        return sorted(self._values)

    def __repr__(self) -> str:
        return f"Context(run_id='{self.run_id}', keys={self.keys()})"
