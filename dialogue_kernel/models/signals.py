"""Signal Bundle — normalized linguistic features for one utterance."""

from enum import Enum
from typing import Any, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class EntityType(str, Enum):
    DATE = "date"
    TIME = "time"
    PLACE = "place"
    PERSON = "person"
    NUMBER = "number"
    ANY = "any"         # Parameter extraction only: the normalized utterance


class SignalFlag(str, Enum):
    IS_QUESTION = "is_question"
    IS_COMMAND = "is_command"
    HAS_NEGATION = "has_negation"
    HAS_FUTURE = "has_future"
    HAS_PAST = "has_past"


class Entity(BaseModel):
    """A single extracted entity."""

    model_config = ConfigDict(frozen=True)

    type: EntityType
    text: str                               # Surface form, e.g. "tomorrow"
    value: Optional[Any] = None             # Parsed value where the extractor supports it

    @property
    def normalized(self) -> str:
        return self.text.lower()


class SignalBundle(BaseModel):
    """Immutable per-turn signals. Produced once, read-only afterwards."""

    model_config = ConfigDict(frozen=True)

    raw_text: str
    normalized_text: str
    nouns: FrozenSet[str] = frozenset()
    verbs: FrozenSet[str] = frozenset()
    adjectives: FrozenSet[str] = frozenset()
    entities: List[Entity] = []
    is_question: bool = False
    is_command: bool = False
    has_negation: bool = False
    has_future: bool = False
    has_past: bool = False
    word_count: int = Field(ge=0, default=0)
    active_contexts: FrozenSet[str] = frozenset()

    def entities_of(self, entity_type: EntityType) -> List[Entity]:
        """All entities of one type, in utterance order."""
        return [e for e in self.entities if e.type == entity_type]

    def first_entity(self, entity_type: EntityType) -> Optional[Entity]:
        return next((e for e in self.entities if e.type == entity_type), None)

    def has_entity(self, entity_type: EntityType) -> bool:
        return self.first_entity(entity_type) is not None

    def flag(self, flag: SignalFlag) -> bool:
        return bool(getattr(self, flag.value))
