import pytest

from relaybot.schemas.conversation import Turn
from relaybot.services.conversation_service import ConversationStore, apply_window
from relaybot.storage.kv_store import CHATS, PROMPTS, SUBSCRIBERS


class TestLoadSeed:
    @pytest.mark.asyncio
    async def test_empty_without_transcript_or_directive(self, conversations):
        assert await conversations.load_seed(1) == []

    @pytest.mark.asyncio
    async def test_seeds_from_directive(self, conversations):
        await conversations.set_directive(1, "You are helpful")

        assert await conversations.load_seed(1) == [Turn(role="system", content="You are helpful")]

    @pytest.mark.asyncio
    async def test_transcript_supersedes_directive(self, conversations, store):
        await conversations.set_directive(1, "You are helpful")
        await store.set(CHATS, 1, [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}])

        seed = await conversations.load_seed(1)

        assert seed == [Turn.user("hi"), Turn.assistant("hello")]

    @pytest.mark.asyncio
    async def test_non_list_transcript_falls_back_to_directive(self, conversations, store):
        await store.set(CHATS, 1, {"unexpected": "shape"})
        await store.set(PROMPTS, 1, "Be brief")

        assert await conversations.load_seed(1) == [Turn.system("Be brief")]

    @pytest.mark.asyncio
    async def test_malformed_turns_fall_back_to_directive(self, conversations, store):
        await store.set(CHATS, 1, [{"role": "robot", "content": "beep"}])

        assert await conversations.load_seed(1) == []


class TestAppend:
    @pytest.mark.asyncio
    async def test_replaces_stored_transcript(self, conversations, store):
        await conversations.append(1, [Turn.user("a"), Turn.assistant("b")])
        await conversations.append(1, [Turn.user("c"), Turn.assistant("d")])

        assert await store.get(CHATS, 1) == [
            {"role": "user", "content": "c"},
            {"role": "assistant", "content": "d"},
        ]

    @pytest.mark.asyncio
    async def test_window_limits_stored_turns(self, store):
        conversations = ConversationStore(store, max_messages=3)
        turns = [Turn.system("sys"), Turn.user("1"), Turn.assistant("2"), Turn.user("3"), Turn.assistant("4")]

        await conversations.append(1, turns)

        assert await conversations.load_seed(1) == [Turn.system("sys"), Turn.user("3"), Turn.assistant("4")]


class TestClear:
    @pytest.mark.asyncio
    async def test_removes_only_transcript(self, conversations, store):
        await store.set(SUBSCRIBERS, 1, {"subscribe": True, "id": 1})
        await conversations.set_directive(1, "You are helpful")
        await conversations.append(1, [Turn.user("hi"), Turn.assistant("hello")])

        await conversations.clear(1)

        assert await store.get(CHATS, 1) is None
        assert await store.get(SUBSCRIBERS, 1) == {"subscribe": True, "id": 1}
        assert await conversations.get_directive(1) == "You are helpful"
        assert await conversations.load_seed(1) == [Turn.system("You are helpful")]


class TestApplyWindow:
    def test_unbounded_returns_all(self):
        turns = [Turn.user(str(i)) for i in range(10)]
        assert apply_window(turns, None) == turns

    def test_keeps_newest_without_system_turn(self):
        turns = [Turn.user("1"), Turn.assistant("2"), Turn.user("3"), Turn.assistant("4")]
        assert apply_window(turns, 2) == [Turn.user("3"), Turn.assistant("4")]

    def test_keeps_leading_system_turn(self):
        turns = [Turn.system("s"), Turn.user("1"), Turn.assistant("2"), Turn.user("3"), Turn.assistant("4")]
        assert apply_window(turns, 4) == [Turn.system("s"), Turn.assistant("2"), Turn.user("3"), Turn.assistant("4")]

    def test_short_transcript_untouched(self):
        turns = [Turn.system("s"), Turn.user("1")]
        assert apply_window(turns, 5) == turns
