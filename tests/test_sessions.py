"""Tests for the Session Manager and settings."""

import asyncio

import pytest

from dialogue_kernel.models.intent import FulfillmentResult, IntentDefinition, TermMatcher
from dialogue_kernel.models.results import ResultKind
from dialogue_kernel.orchestrator.dialogue import DialogueOrchestrator
from dialogue_kernel.orchestrator.sessions import SessionLockTimeout, SessionManager
from dialogue_kernel.registry.intents import IntentRegistry
from dialogue_kernel.settings import DialogueSettings, get_settings


def _make_manager(fulfill=None, lock_timeout: float = 5.0) -> SessionManager:
    registry = IntentRegistry()
    registry.register_intent(IntentDefinition(
        id="time_query",
        required_rules=[TermMatcher(nouns=["time"])],
        boosters=[{"condition": {"kind": "flag", "flag": "is_question"}, "weight": 0.2}],
        fulfill=fulfill or (lambda params: FulfillmentResult(text="It's noon")),
    ))
    return SessionManager(DialogueOrchestrator(registry=registry), lock_timeout=lock_timeout)


class TestSessionManager:
    def test_creates_sessions_on_demand(self):
        manager = _make_manager()
        result = asyncio.run(manager.execute("alice", "What time is it?"))

        assert result.kind == ResultKind.FULFILLMENT
        assert manager.keys() == ["alice"]
        assert manager.get("alice").session_id == "alice"
        assert len(manager.get("alice").context.history()) == 1

    def test_get_or_create_returns_same_session(self):
        manager = _make_manager()
        assert manager.get_or_create("alice") is manager.get_or_create("alice")
        assert len(manager) == 1

    def test_reset_and_delete(self):
        manager = _make_manager()
        asyncio.run(manager.execute("alice", "What time is it?"))

        assert asyncio.run(manager.reset("alice")) is True
        assert manager.get("alice").context.history() == []
        assert asyncio.run(manager.reset("bob")) is False

        assert asyncio.run(manager.delete("alice")) is True
        assert manager.get("alice") is None
        assert asyncio.run(manager.delete("alice")) is False

    def test_turns_of_one_session_are_serialized(self):
        active = []
        overlaps = []

        async def slow_fulfill(params):
            active.append(1)
            if len(active) > 1:
                overlaps.append(len(active))
            await asyncio.sleep(0.01)
            active.pop()
            return FulfillmentResult(text="It's noon")

        manager = _make_manager(slow_fulfill)

        async def scenario():
            return await asyncio.gather(
                manager.execute("alice", "What time is it?"),
                manager.execute("alice", "What time is it?"),
                manager.execute("alice", "What time is it?"),
            )

        results = asyncio.run(scenario())

        assert [r.kind for r in results] == [ResultKind.FULFILLMENT] * 3
        assert overlaps == []
        assert len(manager.get("alice").context.history()) == 3

    def test_lock_timeout(self):
        manager = _make_manager()

        async def scenario():
            async with manager.acquire("alice"):
                with pytest.raises(SessionLockTimeout):
                    async with manager.acquire("alice", timeout=0.01):
                        pass

        asyncio.run(scenario())


class TestSettings:
    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("DIALOGUE_HIGH_THRESHOLD", "0.8")
        monkeypatch.setenv("DIALOGUE_HISTORY_LIMIT", "4")

        config = DialogueSettings().to_config()

        assert config.high_threshold == 0.8
        assert config.history_limit == 4
        assert config.medium_threshold == 0.45

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        assert get_settings() is get_settings()
