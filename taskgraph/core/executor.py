"""Concurrent DAG executor.

This module implements the engine that drives a TaskGraph to completion: it
tracks unsatisfied predecessors per node, dispatches every ready node as its
own asyncio task, collects completions as they arrive and propagates failures
to dependent nodes.

Failure policy:
    By default a failure does not cancel unrelated in-flight work. The failed
    node's descendants are skipped, while independent branches keep running
    and may still start new nodes that do not depend on the failure. With
    ``cancel_on_failure=True`` the first failure cancels every in-flight task
    and nothing new is dispatched.
"""

from typing import AsyncIterator, Dict, List, Optional
import asyncio
import logging
import time

from taskgraph.core.context import Context
from taskgraph.core.events import EventEmitter, EventType, ExecutionEvent
from taskgraph.core.graph import TaskGraph
from taskgraph.core.result import NodeStatus, RunResult
from taskgraph.utils.errors import (
    ExecutorInvariantError,
    TaskExecutionFailed,
    TaskGraphError,
)

logger = logging.getLogger(__name__)


class Executor:
    """Runs a TaskGraph against one Context.

    Key features:
    - Dependency-based dispatch with O(1) readiness checks
    - Unbounded concurrency among ready nodes (optionally capped)
    - Transitive skipping of dependents of a failed node
    - Lifecycle event emission
    """

    def __init__(
        self,
        graph: TaskGraph,
        event_emitter: Optional[EventEmitter] = None,
        max_concurrency: Optional[int] = None,
        cancel_on_failure: bool = False,
    ):
        """Initialize executor.

        Args:
            graph: TaskGraph to execute
            event_emitter: Optional event emitter for lifecycle events
            max_concurrency: Optional cap on concurrently running tasks
            cancel_on_failure: Cancel in-flight tasks on the first failure
        """
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

        self.graph = graph
        self.events = event_emitter or EventEmitter()
        self.max_concurrency = max_concurrency
        self.cancel_on_failure = cancel_on_failure

    async def run(self, context: Optional[Context] = None) -> RunResult:
        """Execute the graph to completion.

        Task failures never propagate out of this method; they are recorded
        in the returned RunResult.

        Args:
            context: Fresh context for this run (created if omitted)

        Returns:
            RunResult describing the terminal outcome

        Raises:
            GraphValidationError: If the context was already used by a run
            ExecutorInvariantError: If the executor's bookkeeping is corrupted
        """
        if context is None:
            context = Context()
        context.claim()

        self.graph.freeze()
        try:
            return await self._execute(context)
        finally:
            self.graph.unfreeze()

    async def _execute(self, context: Context) -> RunResult:
        graph = self.graph
        started = time.monotonic()

        statuses: Dict[str, NodeStatus] = {node_id: NodeStatus.PENDING for node_id in graph.nodes}
        unsatisfied: Dict[str, int] = {
            node_id: len(deps) for node_id, deps in graph.predecessors.items()
        }
        ready: List[str] = list(graph.starting_nodes)
        in_flight: Dict[asyncio.Task, str] = {}
        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        result = RunResult(success=True, statuses=statuses)

        logger.info("Run %s started (%d nodes)", context.run_id, len(graph))
        await self.events.emit(
            ExecutionEvent(
                type=EventType.EXECUTION_START,
                metadata={"run_id": context.run_id, "nodes": len(graph)},
            )
        )

        try:
            while ready or in_flight:
                # Dispatch every ready node
                while ready:
                    node_id = ready.pop(0)
                    if statuses[node_id] is not NodeStatus.PENDING:
                        raise ExecutorInvariantError(
                            f"Node '{node_id}' dispatched with status {statuses[node_id].value}"
                        )
                    statuses[node_id] = NodeStatus.RUNNING
                    logger.debug("Dispatching node %s", node_id)
                    task = asyncio.create_task(
                        self._run_node(node_id, context, semaphore),
                        name=f"taskgraph:{node_id}",
                    )
                    in_flight[task] = node_id

                done, _ = await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)

                # Process in dispatch order so simultaneous failures are recorded deterministically
                for task in [t for t in in_flight if t in done]:
                    node_id = in_flight.pop(task)
                    error = self._outcome(node_id, task)
                    if error is None:
                        await self._on_success(node_id, statuses, unsatisfied, ready, result)
                    else:
                        await self._on_failure(node_id, error, statuses, ready, result)

                if self.cancel_on_failure and result.failures and (in_flight or ready):
                    await self._cancel_remaining(in_flight, ready, statuses, unsatisfied, result)
        finally:
            # Only reached with work in flight if the run itself was cancelled
            for task in in_flight:
                task.cancel()

        result.success = not result.failures
        result.duration = time.monotonic() - started

        leftover = [n for n, s in statuses.items() if s in (NodeStatus.PENDING, NodeStatus.RUNNING)]
        if leftover:
            raise ExecutorInvariantError(f"Run finished with unresolved nodes: {leftover}")

        if result.success:
            logger.info(
                "Run %s completed: %d nodes in %.3fs",
                context.run_id, len(result.completed), result.duration,
            )
            await self.events.emit(
                ExecutionEvent(
                    type=EventType.EXECUTION_COMPLETE,
                    metadata={"run_id": context.run_id, "result": result},
                )
            )
        else:
            logger.warning(
                "Run %s failed at node %s: %s (%d skipped)",
                context.run_id, result.failed_node, result.error, len(result.skipped),
            )
            await self.events.emit(
                ExecutionEvent(
                    type=EventType.EXECUTION_ERROR,
                    node_id=result.failed_node,
                    error=result.error_message,
                    metadata={"run_id": context.run_id, "result": result},
                )
            )

        return result

    @staticmethod
    def _outcome(node_id: str, task: asyncio.Task) -> Optional[Exception]:
        """Error of a finished node task, or None on success."""
        if task.cancelled():
            # The task cancelled itself; the executor never cancels outside _cancel_remaining
            return TaskExecutionFailed(f"Task '{node_id}' was cancelled")
        return task.result()

    async def _run_node(
        self,
        node_id: str,
        context: Context,
        semaphore: Optional[asyncio.Semaphore],
    ) -> Optional[Exception]:
        """Run one node; returns its error instead of raising."""
        if semaphore is None:
            return await self._invoke(node_id, context)
        async with semaphore:
            return await self._invoke(node_id, context)

    async def _invoke(self, node_id: str, context: Context) -> Optional[Exception]:
        task = self.graph.get_task(node_id)
        await self.events.emit(ExecutionEvent(type=EventType.NODE_START, node_id=node_id))

        try:
            await task.run(context)
        except TaskGraphError as e:
            return e
        except Exception as e:
            wrapped = TaskExecutionFailed(str(e) or e.__class__.__name__, e)
            wrapped.__cause__ = e
            return wrapped
        return None

    async def _on_success(
        self,
        node_id: str,
        statuses: Dict[str, NodeStatus],
        unsatisfied: Dict[str, int],
        ready: List[str],
        result: RunResult,
    ) -> None:
        statuses[node_id] = NodeStatus.SUCCEEDED
        result.completed.append(node_id)
        logger.debug("Node %s completed", node_id)
        await self.events.emit(ExecutionEvent(type=EventType.NODE_COMPLETE, node_id=node_id))

        for child_id in self.graph.successors[node_id]:
            unsatisfied[child_id] -= 1
            if unsatisfied[child_id] < 0:
                raise ExecutorInvariantError(
                    f"Node '{child_id}' has more completed predecessors than declared"
                )
            if unsatisfied[child_id] == 0 and statuses[child_id] is NodeStatus.PENDING:
                ready.append(child_id)

    async def _on_failure(
        self,
        node_id: str,
        error: Exception,
        statuses: Dict[str, NodeStatus],
        ready: List[str],
        result: RunResult,
    ) -> None:
        statuses[node_id] = NodeStatus.FAILED
        result.failures.append((node_id, error))
        if result.failed_node is None:
            result.failed_node = node_id
            result.error = error
        logger.warning("Node %s failed: %s", node_id, error)
        await self.events.emit(
            ExecutionEvent(type=EventType.NODE_ERROR, node_id=node_id, error=str(error))
        )

        descendants = self.graph.descendants(node_id)
        for descendant_id in self.graph.get_execution_order():
            if descendant_id not in descendants:
                continue
            status = statuses[descendant_id]
            if status is NodeStatus.SKIPPED:
                continue
            if status is not NodeStatus.PENDING:
                raise ExecutorInvariantError(
                    f"Descendant '{descendant_id}' of failed node '{node_id}' is {status.value}"
                )
            await self._skip(descendant_id, statuses, ready, result, reason=node_id)

    async def _skip(
        self,
        node_id: str,
        statuses: Dict[str, NodeStatus],
        ready: List[str],
        result: RunResult,
        reason: str,
    ) -> None:
        statuses[node_id] = NodeStatus.SKIPPED
        result.skipped.append(node_id)
        if node_id in ready:
            ready.remove(node_id)
        logger.info("Skipping node %s (upstream failure at %s)", node_id, reason)
        await self.events.emit(
            ExecutionEvent(
                type=EventType.NODE_SKIPPED,
                node_id=node_id,
                metadata={"failed_ancestor": reason},
            )
        )

    async def _cancel_remaining(
        self,
        in_flight: Dict[asyncio.Task, str],
        ready: List[str],
        statuses: Dict[str, NodeStatus],
        unsatisfied: Dict[str, int],
        result: RunResult,
    ) -> None:
        """Cancel in-flight work and skip everything not yet dispatched."""
        for task in in_flight:
            task.cancel()
        await asyncio.gather(*in_flight, return_exceptions=True)

        for task, node_id in list(in_flight.items()):
            if task.cancelled():
                statuses[node_id] = NodeStatus.CANCELLED
                result.cancelled.append(node_id)
                logger.info("Cancelled node %s", node_id)
                continue

            # Finished before the cancellation reached it
            error = task.result()
            if error is None:
                await self._on_success(node_id, statuses, unsatisfied, ready, result)
            else:
                await self._on_failure(node_id, error, statuses, ready, result)
        in_flight.clear()
        ready.clear()

        reason = result.failed_node or ""
        for node_id in self.graph.get_execution_order():
            if statuses[node_id] is NodeStatus.PENDING:
                await self._skip(node_id, statuses, ready, result, reason=reason)

    async def stream(self, context: Optional[Context] = None) -> AsyncIterator[ExecutionEvent]:
        """Execute the graph and yield lifecycle events as they happen.

        The last event is EXECUTION_COMPLETE or EXECUTION_ERROR, carrying the
        RunResult in ``metadata["result"]``.

        Args:
            context: Fresh context for this run (created if omitted)

        Yields:
            ExecutionEvent: Execution events in emission order
        """
        queue: asyncio.Queue = asyncio.Queue()

        async def listener(event: ExecutionEvent) -> None:
            await queue.put(event)

        self.events.on(listener)
        runner = asyncio.create_task(self.run(context))
        try:
            while True:
                getter = asyncio.ensure_future(queue.get())
                done, _ = await asyncio.wait({getter, runner}, return_when=asyncio.FIRST_COMPLETED)

                if getter in done:
                    event = getter.result()
                    yield event
                    if event.type in (EventType.EXECUTION_COMPLETE, EventType.EXECUTION_ERROR):
                        break
                    continue

                # Run ended before its terminal event was queued
                getter.cancel()
                while not queue.empty():
                    yield queue.get_nowait()
                runner.result()
                break

            await runner
        finally:
            self.events.off(listener)
            if not runner.done():
                runner.cancel()
