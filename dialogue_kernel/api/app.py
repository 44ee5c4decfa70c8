"""
Dialogue Kernel API — FastAPI endpoints.

Exposes the engine via a REST API for:
- Registered intent inspection
- Executing utterances in keyed sessions
- Session context, history and debug inspection
- Session reset and deletion
"""

from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from dialogue_kernel.orchestrator.dialogue import DialogueOrchestrator
from dialogue_kernel.orchestrator.sessions import SessionLockTimeout, SessionManager
from dialogue_kernel.plugins.time_plugin import TimePlugin
from dialogue_kernel.plugins.weather_plugin import ForecastProvider, WeatherPlugin
from dialogue_kernel.registry.intents import IntentRegistry
from dialogue_kernel.settings import get_settings


# --- Request/Response Models ---

class ExecuteRequest(BaseModel):
    text: str = Field(min_length=1)


# --- Application Factory ---

def create_app(
    orchestrator: Optional[DialogueOrchestrator] = None,
    sessions: Optional[SessionManager] = None,
    forecast: Optional[ForecastProvider] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Without an orchestrator, the time plugin is registered, plus the weather
    plugin when a forecast provider is given.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Declarative dialogue-resolution engine",
        version="0.1.0",
        debug=settings.debug,
    )

    if orchestrator is None:
        registry = IntentRegistry()
        registry.register_plugin(TimePlugin())
        if forecast is not None:
            registry.register_plugin(
                WeatherPlugin(forecast, default_location=settings.default_location)
            )
        orchestrator = DialogueOrchestrator(registry=registry, config=settings.to_config())

    sm = sessions or SessionManager(orchestrator, lock_timeout=settings.session_lock_timeout)

    app.state.orchestrator = orchestrator
    app.state.sessions = sm

    def _session_or_404(session_key: str):
        session = sm.get(session_key)
        if session is None:
            raise HTTPException(404, "Session not found")
        return session

    # === INTENTS ===

    @app.get("/intents")
    def list_intents():
        """Registered intents in registration order."""
        return [
            {"id": d.id, "label": d.display_label, "parameters": list(d.parameters)}
            for d in orchestrator.registry.definitions()
        ]

    # === SESSIONS ===

    @app.post("/sessions/{session_key}/execute")
    async def execute(session_key: str, req: ExecuteRequest):
        """Process one utterance in the given session."""
        try:
            result = await sm.execute(session_key, req.text)
        except SessionLockTimeout:
            raise HTTPException(409, "Session is busy")
        return result.to_payload()

    @app.get("/sessions/{session_key}/contexts")
    def get_contexts(session_key: str):
        """Active contexts and their data."""
        return _session_or_404(session_key).context.get_all_active()

    @app.get("/sessions/{session_key}/history")
    def get_history(session_key: str):
        """Bounded turn history, oldest first."""
        session = _session_or_404(session_key)
        return [t.model_dump(mode="json") for t in session.context.history()]

    @app.get("/sessions/{session_key}/debug")
    def get_debug(session_key: str):
        return orchestrator.debug_info(_session_or_404(session_key))

    @app.post("/sessions/{session_key}/reset")
    async def reset_session(session_key: str):
        if not await sm.reset(session_key):
            raise HTTPException(404, "Session not found")
        return {"status": "reset", "session_key": session_key}

    @app.delete("/sessions/{session_key}")
    async def delete_session(session_key: str):
        if not await sm.delete(session_key):
            raise HTTPException(404, "Session not found")
        return {"status": "deleted", "session_key": session_key}

    return app


# Default application instance
app = create_app()
