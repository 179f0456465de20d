"""Tests for the shared run context."""

import asyncio

import pytest

from taskgraph import Context
from taskgraph.utils.errors import GraphValidationError, MissingKeyError, TaskGraphError


class TestContextBasics:
    """Tests for single-task context access."""

    @pytest.mark.asyncio
    async def test_set_and_get(self, context):
        """Test that a written value is read back."""
        await context.set("x", 1)

        assert await context.get("x") == 1
        assert await context.has("x")

    @pytest.mark.asyncio
    async def test_overwrite(self, context):
        """Test that set replaces the previous value."""
        await context.set("x", 1)
        await context.set("x", {"nested": True})

        assert await context.get("x") == {"nested": True}

    @pytest.mark.asyncio
    async def test_missing_key(self, context):
        """Test that reading an unwritten key raises MissingKeyError."""
        with pytest.raises(MissingKeyError) as exc_info:
            await context.get("nope")

        assert exc_info.value.key == "nope"
        assert "nope" in str(exc_info.value)
        assert isinstance(exc_info.value, KeyError)
        assert isinstance(exc_info.value, TaskGraphError)

    @pytest.mark.asyncio
    async def test_get_or_default(self, context):
        """Test non-raising reads."""
        assert await context.get_or_default("nope") is None
        assert await context.get_or_default("nope", 5) == 5

        await context.set("x", 0)
        assert await context.get_or_default("x", 5) == 0

    @pytest.mark.asyncio
    async def test_seeded_context(self):
        """Test that initial values are readable."""
        context = Context({"query": "hello"})

        assert await context.get("query") == "hello"
        assert context.keys() == ["query"]
        assert await context.sequence_of("query") == 1

    @pytest.mark.asyncio
    async def test_append(self, context):
        """Test list accumulation."""
        await context.append("items", "a")
        items = await context.append("items", "b")

        assert items == ["a", "b"]
        assert await context.get("items") == ["a", "b"]

    @pytest.mark.asyncio
    async def test_append_wraps_scalar(self, context):
        """Test that appending to a scalar wraps it in a list."""
        await context.set("items", "first")
        await context.append("items", "second")

        assert await context.get("items") == ["first", "second"]

    @pytest.mark.asyncio
    async def test_update_and_snapshot(self, context):
        """Test multi-key writes and snapshots."""
        await context.update({"a": 1, "b": 2})
        snapshot = await context.snapshot()

        assert snapshot == {"a": 1, "b": 2}

        snapshot["a"] = 100
        assert await context.get("a") == 1

    @pytest.mark.asyncio
    async def test_sequence_numbers_increase(self, context):
        """Test that each write gets a higher sequence number."""
        await context.set("a", 1)
        await context.set("b", 2)
        await context.set("a", 3)

        assert await context.sequence_of("b") < await context.sequence_of("a")

        with pytest.raises(MissingKeyError):
            await context.sequence_of("never")

    def test_run_ids_are_unique(self):
        """Test that every context gets its own run id."""
        assert Context().run_id != Context().run_id
        assert Context(run_id="fixed").run_id == "fixed"

    def test_claim_only_once(self, context):
        """Test that a context can be claimed by a single run."""
        assert not context.is_claimed

        context.claim()

        assert context.is_claimed
        with pytest.raises(GraphValidationError, match="already used"):
            context.claim()


class TestContextConcurrency:
    """Tests for concurrent access from many tasks."""

    @pytest.mark.asyncio
    async def test_concurrent_distinct_keys_not_lost(self, context):
        """Test that concurrent writers to distinct keys never lose updates."""

        async def writer(i: int):
            await asyncio.sleep(0)
            await context.set(f"key_{i}", i)

        await asyncio.gather(*(writer(i) for i in range(200)))

        snapshot = await context.snapshot()
        assert snapshot == {f"key_{i}": i for i in range(200)}

    @pytest.mark.asyncio
    async def test_concurrent_appends_not_lost(self, context):
        """Test that concurrent read-modify-write appends are atomic."""

        async def appender(i: int):
            await asyncio.sleep(0)
            await context.append("items", i)

        await asyncio.gather(*(appender(i) for i in range(100)))

        assert sorted(await context.get("items")) == list(range(100))

    @pytest.mark.asyncio
    async def test_same_key_last_completed_write_wins(self, context):
        """Test that the surviving value carries the highest sequence number."""
        sequences = {}

        async def writer(value: str, delay: float):
            await asyncio.sleep(delay)
            await context.set("shared", value)
            sequences[value] = await context.sequence_of("shared")

        await asyncio.gather(writer("slow", 0.03), writer("fast", 0.0), writer("mid", 0.01))

        assert await context.get("shared") == "slow"
        assert sequences["slow"] == max(sequences.values())
