"""Tests for execution events and streaming."""

import asyncio

import pytest

from taskgraph import (
    Context,
    EventEmitter,
    EventType,
    ExecutionEvent,
    Executor,
    FunctionTask,
    NodeStatus,
    RunResult,
    TaskGraph,
)
from taskgraph.utils.errors import GraphValidationError, TaskExecutionFailed


async def ok(context):
    await context.set("ok", True)


async def boom(context):
    raise TaskExecutionFailed("boom")


def failing_chain() -> TaskGraph:
    graph = TaskGraph()
    graph.chain(FunctionTask("a", boom), FunctionTask("b", ok))
    return graph


class TestEventEmitter:
    """Tests for EventEmitter."""

    @pytest.mark.asyncio
    async def test_on_off(self):
        """Test registering and removing listeners."""
        emitter = EventEmitter()
        received = []

        async def listener(event):
            received.append(event.type)

        emitter.on(listener)
        await emitter.emit(ExecutionEvent(type=EventType.NODE_START, node_id="a"))
        emitter.off(listener)
        await emitter.emit(ExecutionEvent(type=EventType.NODE_COMPLETE, node_id="a"))

        assert received == [EventType.NODE_START]
        assert len(emitter) == 0

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_emit(self):
        """Test that one broken listener does not stop the others."""
        emitter = EventEmitter()
        received = []

        async def broken(event):
            raise RuntimeError("listener bug")

        async def healthy(event):
            received.append(event)

        emitter.on(broken)
        emitter.on(healthy)
        await emitter.emit(ExecutionEvent(type=EventType.EXECUTION_START))

        assert len(received) == 1

    def test_to_dict(self):
        """Test JSON-friendly serialization."""
        event = ExecutionEvent(
            type=EventType.NODE_ERROR,
            node_id="a",
            error="boom",
            metadata={"result": object(), "run_id": "r1"},
        )
        data = event.to_dict()

        assert data["type"] == "node-error"
        assert data["node_id"] == "a"
        assert data["error"] == "boom"
        assert data["metadata"] == {"run_id": "r1"}
        assert "timestamp" in data


class TestExecutorEvents:
    """Tests for lifecycle events emitted by the executor."""

    @pytest.mark.asyncio
    async def test_success_event_sequence(self):
        """Test the events of a successful chain."""
        emitter = EventEmitter()
        events = []

        async def listener(event):
            events.append((event.type, event.node_id))

        emitter.on(listener)
        graph = TaskGraph()
        graph.chain(FunctionTask("a", ok), FunctionTask("b", ok))

        await Executor(graph, event_emitter=emitter).run()

        assert events == [
            (EventType.EXECUTION_START, None),
            (EventType.NODE_START, "a"),
            (EventType.NODE_COMPLETE, "a"),
            (EventType.NODE_START, "b"),
            (EventType.NODE_COMPLETE, "b"),
            (EventType.EXECUTION_COMPLETE, None),
        ]

    @pytest.mark.asyncio
    async def test_failure_event_sequence(self):
        """Test that failures emit node-error, node-skipped and execution-error."""
        emitter = EventEmitter()
        events = []

        async def listener(event):
            events.append(event)

        emitter.on(listener)

        await Executor(failing_chain(), event_emitter=emitter).run()

        types = [event.type for event in events]
        assert types == [
            EventType.EXECUTION_START,
            EventType.NODE_START,
            EventType.NODE_ERROR,
            EventType.NODE_SKIPPED,
            EventType.EXECUTION_ERROR,
        ]
        assert events[2].error == "boom"
        assert events[3].node_id == "b"
        assert events[3].metadata["failed_ancestor"] == "a"
        assert events[4].node_id == "a"

    @pytest.mark.asyncio
    async def test_failure_during_cancellation_is_reported(self):
        """A task that fails while being cancelled still emits node-error."""
        emitter = EventEmitter()
        errors = []

        async def listener(event):
            if event.type == EventType.NODE_ERROR:
                errors.append((event.node_id, event.error))

        async def fails_on_cancel(ctx):
            try:
                await asyncio.sleep(1)
            except asyncio.CancelledError:
                raise TaskExecutionFailed("interrupted mid-write")

        emitter.on(listener)
        graph = TaskGraph()
        graph.add_node(FunctionTask("a", boom))
        graph.chain(FunctionTask("slow", fails_on_cancel), FunctionTask("after", ok))

        result = await Executor(graph, event_emitter=emitter, cancel_on_failure=True).run()

        assert errors == [("a", "boom"), ("slow", "interrupted mid-write")]
        assert [node_id for node_id, _ in result.failures] == ["a", "slow"]
        assert result.statuses["slow"] is NodeStatus.FAILED
        assert result.skipped == ["after"]
        assert result.cancelled == []


class TestStream:
    """Tests for Executor.stream()."""

    @pytest.mark.asyncio
    async def test_stream_yields_until_terminal_event(self):
        """Test that stream ends with the terminal event carrying the result."""
        graph = TaskGraph()
        graph.add_node(FunctionTask("a", ok))
        context = Context()

        events = [event async for event in Executor(graph).stream(context)]

        assert events[0].type == EventType.EXECUTION_START
        assert events[-1].type == EventType.EXECUTION_COMPLETE
        result = events[-1].metadata["result"]
        assert isinstance(result, RunResult)
        assert result.success
        assert await context.get("ok") is True

    @pytest.mark.asyncio
    async def test_stream_failure(self):
        """Test streaming a failing run."""
        events = [event async for event in Executor(failing_chain()).stream()]

        assert events[-1].type == EventType.EXECUTION_ERROR
        assert events[-1].metadata["result"].skipped == ["b"]

    @pytest.mark.asyncio
    async def test_stream_removes_listener(self):
        """Test that the temporary listener is unregistered afterwards."""
        emitter = EventEmitter()
        executor = Executor(TaskGraph(), event_emitter=emitter)

        async for _ in executor.stream():
            pass

        assert len(emitter) == 0

    @pytest.mark.asyncio
    async def test_stream_propagates_run_errors(self):
        """Test that errors raised before the run starts reach the caller."""
        context = Context()
        await Executor(TaskGraph()).run(context)

        with pytest.raises(GraphValidationError):
            async for _ in Executor(TaskGraph()).stream(context):
                pass
