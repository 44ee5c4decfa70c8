"""Dialogue configuration — routing thresholds and canned response texts."""

from pydantic import BaseModel, Field


class DialogueConfig(BaseModel):
    """Configuration for the Dialogue Orchestrator."""

    # Confidence routing
    high_threshold: float = Field(ge=0.0, le=1.0, default=0.7)
    medium_threshold: float = Field(ge=0.0, le=1.0, default=0.45)
    ambiguity_margin: float = Field(ge=0.0, le=1.0, default=0.15)

    # Intent scoring
    base_score: float = 0.5

    # Follow-up scoring
    follow_up_base: float = 0.4
    follow_up_very_short_words: int = 3
    follow_up_very_short_boost: float = 0.3
    follow_up_short_words: int = 5
    follow_up_short_boost: float = 0.15
    follow_up_self_sufficient_penalty: float = -0.3

    # Turn history
    history_limit: int = Field(ge=1, default=10)

    # Response texts
    hedge_phrase: str = "I think you're asking about this."
    disambiguation_text: str = "Did you want to:"
    fallback_question_text: str = (
        "I'm not sure how to answer that question. Could you rephrase it?"
    )
    fallback_statement_text: str = (
        "I'm not sure how to help with that. "
        "You can ask me about weather, time, or set reminders."
    )
    apology_text: str = (
        "I apologize, but I'm having trouble processing that right now. "
        "Could you try again?"
    )
