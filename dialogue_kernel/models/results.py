"""Dialogue Result — what execute() returns for one utterance."""

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class ResultKind(str, Enum):
    FULFILLMENT = "fulfillment"
    PROMPT = "prompt"
    DISAMBIGUATION = "disambiguation"
    FALLBACK = "fallback"
    ERROR = "error"         # Fulfillment raised; apology text


class DisambiguationChoice(BaseModel):
    label: str
    intent_id: str
    confidence: float = Field(ge=0.0, le=1.0)


class DialogueResult(BaseModel):
    """
    Union of the four result shapes. Fields that do not apply to a shape
    stay None and are dropped by to_payload().
    """

    kind: ResultKind
    text: str
    intent_id: Optional[str] = None
    confidence: Optional[float] = None
    data: Optional[dict] = None

    # Fulfillment
    hedged: Optional[bool] = None
    is_follow_up: Optional[bool] = None

    # Prompt
    awaiting_input: Optional[str] = None
    requires_user_input: Optional[bool] = None
    metadata: Optional[dict] = None

    # Disambiguation
    type: Optional[Literal["disambiguation"]] = None
    choices: Optional[List[DisambiguationChoice]] = None

    # Fallback
    fallback: Optional[bool] = None

    def to_payload(self) -> dict:
        """Serializable form for transport."""
        return self.model_dump(mode="json", exclude_none=True)
