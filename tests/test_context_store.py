"""Tests for the Context Store — lifespans and turn history."""

from datetime import datetime

import pytest

from dialogue_kernel.context.store import ContextStore
from dialogue_kernel.models.context import TurnRecord


def _make_turn(text: str, intent_id=None, params=None, result_data=None) -> TurnRecord:
    return TurnRecord(
        input_text=text,
        chosen_intent_id=intent_id,
        result_summary=f"handled {text}",
        params=params or {},
        result_data=result_data,
        timestamp=datetime.utcnow(),
    )


class TestContextLifespan:
    def setup_method(self):
        self.store = ContextStore()

    def test_set_and_get(self):
        self.store.set("weather-followup", {"location": "Paris"}, lifespan=2)
        assert self.store.get("weather-followup") == {"location": "Paris"}
        assert self.store.get_active() == ["weather-followup"]

    def test_lifespan_round_trip(self):
        """Active for exactly `lifespan` advances, then gone."""
        self.store.set("weather-followup", {"location": "Paris"}, lifespan=2)

        self.store.advance_turn()
        assert self.store.is_active("weather-followup")

        expired = self.store.advance_turn()
        assert expired == ["weather-followup"]
        assert self.store.get("weather-followup") is None
        assert self.store.get_active() == []

    def test_lifespan_one_expires_after_one_turn(self):
        self.store.set("c", {}, lifespan=1)
        self.store.advance_turn()
        assert not self.store.is_active("c")

    def test_zero_lifespan_is_never_visible(self):
        self.store.set("c", {"x": 1}, lifespan=0)
        assert self.store.get("c") is None
        assert self.store.get_active() == []

    def test_zero_lifespan_replaces_existing(self):
        self.store.set("c", {"x": 1}, lifespan=3)
        self.store.set("c", {"x": 2}, lifespan=0)
        assert not self.store.is_active("c")

    def test_set_replaces_and_resets_lifespan(self):
        self.store.set("c", {"x": 1}, lifespan=1)
        self.store.set("c", {"x": 2}, lifespan=2)
        self.store.advance_turn()
        assert self.store.get("c") == {"x": 2}

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            self.store.set("", {}, lifespan=1)
        with pytest.raises(ValueError):
            self.store.set("c", {}, lifespan=-1)

    def test_none_data_stored_as_empty_dict(self):
        self.store.set("c", None, lifespan=1)
        assert self.store.get("c") == {}

    def test_get_all_active_and_delete(self):
        self.store.set("a", {"n": 1}, lifespan=1)
        self.store.set("b", {"n": 2}, lifespan=3)
        assert self.store.get_all_active() == {"a": {"n": 1}, "b": {"n": 2}}

        assert self.store.delete("a") is True
        assert self.store.delete("a") is False
        assert self.store.get_active() == ["b"]

        self.store.clear_all()
        assert self.store.get_all_active() == {}


class TestTurnHistory:
    def setup_method(self):
        self.store = ContextStore(history_limit=3)

    def test_history_is_bounded(self):
        for i in range(5):
            self.store.record_turn(_make_turn(f"turn {i}"))
        history = self.store.history()
        assert len(history) == 3
        assert [t.input_text for t in history] == ["turn 2", "turn 3", "turn 4"]

    def test_recent_turns(self):
        for i in range(3):
            self.store.record_turn(_make_turn(f"turn {i}"))
        assert [t.input_text for t in self.store.recent_turns(2)] == ["turn 1", "turn 2"]
        assert self.store.recent_turns(0) == []

    def test_last_intent_turn(self):
        self.store.record_turn(_make_turn("a", intent_id="weather_query"))
        self.store.record_turn(_make_turn("b", intent_id="time_query"))
        self.store.record_turn(_make_turn("c", intent_id="weather_query"))
        assert self.store.last_intent_turn("weather_query").input_text == "c"
        assert self.store.last_intent_turn("news_query") is None

    def test_last_mentioned_prefers_newest(self):
        self.store.record_turn(_make_turn("a", params={"location": "Paris"}))
        self.store.record_turn(_make_turn("b", result_data={"location": "London"}))
        self.store.record_turn(_make_turn("c"))
        assert self.store.last_mentioned("location") == "London"
        assert self.store.last_mentioned("timeframe") is None

    def test_has_similar_recent_input(self):
        self.store.record_turn(_make_turn("what is the weather in paris"))
        assert self.store.has_similar_recent_input("the weather in paris")
        assert not self.store.has_similar_recent_input("set an alarm")
        assert not self.store.has_similar_recent_input("")


class TestIntrospection:
    def test_debug_info_and_reset(self):
        store = ContextStore()
        store.set("weather-followup", {"location": "Paris"}, lifespan=2)
        store.record_turn(_make_turn("hello"))

        info = store.debug_info()
        assert info["context_count"] == 1
        assert info["turn_count"] == 1
        assert info["active_contexts"][0]["name"] == "weather-followup"
        assert info["active_contexts"][0]["remaining_turns"] == 2

        store.reset()
        assert store.get_active() == []
        assert store.history() == []
