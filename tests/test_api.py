"""Tests for the FastAPI API endpoints."""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from dialogue_kernel.api.app import create_app
from dialogue_kernel.orchestrator.dialogue import DialogueOrchestrator
from dialogue_kernel.plugins.time_plugin import TimePlugin
from dialogue_kernel.plugins.weather_plugin import Forecast, WeatherPlugin
from dialogue_kernel.registry.intents import IntentRegistry
from dialogue_kernel.settings import get_settings


class _FakeForecast:
    async def forecast(self, location, timeframe):
        return Forecast(location=location, conditions="cloudy", temperature=55, humidity=70, wind_speed=10)


@pytest.fixture
def client():
    """Create a test client with fresh components."""
    registry = IntentRegistry()
    registry.register_plugin(TimePlugin(clock=lambda: datetime(2026, 10, 18, 15, 5)))
    registry.register_plugin(WeatherPlugin(_FakeForecast()))
    app = create_app(orchestrator=DialogueOrchestrator(registry=registry))
    return TestClient(app)


class TestIntentEndpoints:
    def test_list_intents(self, client):
        response = client.get("/intents")
        assert response.status_code == 200
        data = response.json()
        assert [i["id"] for i in data] == ["time_query", "weather_query"]
        assert data[1]["parameters"] == ["location", "timeframe"]


class TestExecuteEndpoints:
    def test_execute_fulfillment(self, client):
        response = client.post("/sessions/alice/execute", json={"text": "What time is it?"})
        assert response.status_code == 200
        assert response.json() == {
            "kind": "fulfillment",
            "text": "It's 3:05 PM",
            "intent_id": "time_query",
            "confidence": 0.7,
            "data": {
                "time": "3:05 PM",
                "timestamp": "2026-10-18T15:05:00",
                "hour": 15,
                "minute": 5,
            },
        }

    def test_execute_fallback(self, client):
        response = client.post("/sessions/alice/execute", json={"text": "Blorp zing"})
        data = response.json()
        assert data["kind"] == "fallback"
        assert data["fallback"] is True

    def test_empty_text_rejected(self, client):
        response = client.post("/sessions/alice/execute", json={"text": ""})
        assert response.status_code == 422

    def test_follow_up_over_http(self, client):
        client.post("/sessions/alice/execute", json={"text": "What's the weather in Paris?"})
        response = client.post("/sessions/alice/execute", json={"text": "And tomorrow?"})
        data = response.json()
        assert data["is_follow_up"] is True
        assert data["data"]["location"] == "Paris"
        assert data["data"]["timeframe"] == "tomorrow"


class TestSessionEndpoints:
    def test_contexts_and_history(self, client):
        client.post("/sessions/alice/execute", json={"text": "What's the weather in Paris?"})

        contexts = client.get("/sessions/alice/contexts").json()
        assert contexts["weather-followup"]["last_location"] == "Paris"

        history = client.get("/sessions/alice/history").json()
        assert len(history) == 1
        assert history[0]["chosen_intent_id"] == "weather_query"

    def test_debug(self, client):
        client.post("/sessions/alice/execute", json={"text": "What time is it?"})
        data = client.get("/sessions/alice/debug").json()
        assert data["session_id"] == "alice"
        assert data["pending_collection"] is None
        assert data["context"]["turn_count"] == 1

    def test_unknown_session_404(self, client):
        assert client.get("/sessions/nobody/contexts").status_code == 404
        assert client.get("/sessions/nobody/history").status_code == 404
        assert client.post("/sessions/nobody/reset").status_code == 404
        assert client.delete("/sessions/nobody").status_code == 404

    def test_reset_and_delete(self, client):
        client.post("/sessions/alice/execute", json={"text": "What's the weather in Paris?"})

        response = client.post("/sessions/alice/reset")
        assert response.json() == {"status": "reset", "session_key": "alice"}
        assert client.get("/sessions/alice/contexts").json() == {}

        response = client.delete("/sessions/alice")
        assert response.json() == {"status": "deleted", "session_key": "alice"}
        assert client.get("/sessions/alice/history").status_code == 404

    def test_sessions_are_isolated(self, client):
        client.post("/sessions/alice/execute", json={"text": "What's the weather in Paris?"})
        client.post("/sessions/bob/execute", json={"text": "What time is it?"})
        assert client.get("/sessions/bob/contexts").json() == {}


class TestAppSettings:
    @pytest.fixture(autouse=True)
    def _fresh_settings(self, monkeypatch):
        monkeypatch.setenv("DIALOGUE_APP_NAME", "Kiosk Assistant")
        monkeypatch.setenv("DIALOGUE_DEFAULT_LOCATION", "Oslo")
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()

    def test_title_from_settings(self):
        app = create_app()
        assert app.title == "Kiosk Assistant"
        assert app.debug is False

    def test_default_app_has_only_time(self):
        client = TestClient(create_app())
        assert [i["id"] for i in client.get("/intents").json()] == ["time_query"]

    def test_forecast_registers_weather_with_default_location(self):
        client = TestClient(create_app(forecast=_FakeForecast()))

        assert [i["id"] for i in client.get("/intents").json()] == ["time_query", "weather_query"]

        data = client.post("/sessions/alice/execute", json={"text": "What's the weather?"}).json()
        assert data["intent_id"] == "weather_query"
        assert data["data"]["location"] == "Oslo"
