"""Tests for ContextWindowBuilder."""

import asyncio

import pytest

from services.context_window import ContextWindowBuilder

PERSONA = "Persona text"


def _fill(store, session_id, count):
    async def scenario():
        for i in range(count):
            await store.append(session_id, "user" if i % 2 == 0 else "assistant", f"m{i}")

    asyncio.run(scenario())


def test_empty_session_window(memory_store):
    """Test a new session yields persona plus the new text only."""
    builder = ContextWindowBuilder(memory_store, PERSONA, window_size=10)

    turns = asyncio.run(builder.build("s1", "Hello"))

    assert turns == [
        {"role": "system", "content": PERSONA},
        {"role": "user", "content": "Hello"},
    ]


def test_window_is_bounded_and_ordered(memory_store):
    """Test at most W-1 prior turns, chronological, persona first, new text last."""
    _fill(memory_store, "s1", 15)
    builder = ContextWindowBuilder(memory_store, PERSONA, window_size=10)

    turns = asyncio.run(builder.build("s1", "newest"))

    assert turns[0] == {"role": "system", "content": PERSONA}
    assert turns[-1] == {"role": "user", "content": "newest"}
    history = turns[1:-1]
    assert len(history) == 9
    assert [t["content"] for t in history] == [f"m{i}" for i in range(6, 15)]
    assert {t["role"] for t in history} <= {"user", "assistant"}


def test_fewer_messages_than_window_uses_all(memory_store):
    """Test no padding when history is short."""
    _fill(memory_store, "s1", 3)
    builder = ContextWindowBuilder(memory_store, PERSONA, window_size=10)

    turns = asyncio.run(builder.build("s1", "next"))

    assert len(turns) == 1 + 3 + 1


def test_anchor_keeps_new_text_single(memory_store):
    """Test the just-appended user turn is not duplicated when anchored."""
    builder = ContextWindowBuilder(memory_store, PERSONA, window_size=10)

    async def scenario():
        await memory_store.append("s1", "user", "earlier")
        await memory_store.append("s1", "assistant", "reply")
        anchor = await memory_store.append("s1", "user", "Hello again")
        return await builder.build("s1", "Hello again", before_id=anchor.id)

    turns = asyncio.run(scenario())

    contents = [t["content"] for t in turns]
    assert contents.count("Hello again") == 1
    assert contents == [PERSONA, "earlier", "reply", "Hello again"]


def test_window_size_one_sends_only_new_text(memory_store):
    """Test W=1 leaves room for the new text and no history."""
    _fill(memory_store, "s1", 4)
    builder = ContextWindowBuilder(memory_store, PERSONA, window_size=1)

    turns = asyncio.run(builder.build("s1", "solo"))

    assert turns == [{"role": "system", "content": PERSONA}, {"role": "user", "content": "solo"}]


def test_persona_is_identical_across_sessions(memory_store):
    """Test the persona entry is configuration, not session data."""
    _fill(memory_store, "a", 2)
    builder = ContextWindowBuilder(memory_store, PERSONA)

    first = asyncio.run(builder.build("a", "x"))
    second = asyncio.run(builder.build("b", "y"))

    assert first[0] == second[0] == {"role": "system", "content": PERSONA}


@pytest.mark.parametrize("window_size", [0, -3])
def test_invalid_window_size(memory_store, window_size):
    """Test non-positive window sizes are rejected."""
    with pytest.raises(ValueError):
        ContextWindowBuilder(memory_store, PERSONA, window_size=window_size)


def test_blank_persona_rejected(memory_store):
    """Test the persona must carry text."""
    with pytest.raises(ValueError):
        ContextWindowBuilder(memory_store, "   ")


def test_history_turns_use_stored_roles(memory_store):
    """Test prior messages are sent with their stored role and verbatim text."""
    builder = ContextWindowBuilder(memory_store, PERSONA)

    async def scenario():
        question = await memory_store.append("s1", "user", "  spaced  ")
        answer = await memory_store.append("s1", "assistant", "reply")
        return question, answer, await builder.build("s1", "next")

    question, answer, turns = asyncio.run(scenario())

    assert question.as_turn() == {"role": "user", "content": "  spaced  "}
    assert turns[1:3] == [question.as_turn(), answer.as_turn()]
