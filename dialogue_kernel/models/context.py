"""Conversation state — context entries, turn records and pending parameter collection."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ContextEntry(BaseModel):
    """Named, turn-scoped memory written by an intent's fulfillment."""

    name: str                               # e.g., "weather-followup"
    data: dict = {}
    remaining_turns: int = Field(ge=0)
    created_at: datetime


class TurnRecord(BaseModel):
    """One completed conversational turn."""

    input_text: str
    chosen_intent_id: Optional[str] = None  # None for fallback / disambiguation
    result_summary: str
    params: Dict[str, Any] = {}
    result_data: Optional[dict] = None
    timestamp: datetime


class PendingCollection(BaseModel):
    """
    Outstanding slot-filling prompt. Exists only between "prompted for
    parameter" and "parameter satisfied"; at most one per session.
    """

    intent_id: str
    collected_params: Dict[str, Any] = {}
    awaiting_param: str
    original_input: str
    is_follow_up: bool = False
