"""Intent Definition — the declarative record a plugin registers with the kernel."""

from typing import (
    Annotated,
    Any,
    Awaitable,
    Dict,
    List,
    Literal,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

from pydantic import BaseModel, ConfigDict, Field

from dialogue_kernel.models.signals import EntityType, SignalBundle, SignalFlag


# --- Behaviour hooks ---

class FulfillmentResult(BaseModel):
    """What an intent's fulfill hook hands back to the orchestrator."""

    text: str
    data: Optional[dict] = None


class ValidationOutcome(BaseModel):
    valid: bool
    error: Optional[str] = None             # Re-prompt text when invalid


@runtime_checkable
class Fulfiller(Protocol):
    def __call__(
        self, params: Dict[str, Any]
    ) -> Union[FulfillmentResult, Awaitable[FulfillmentResult]]: ...


@runtime_checkable
class ParameterExtractor(Protocol):
    def __call__(self, bundle: SignalBundle) -> Any: ...


@runtime_checkable
class ParameterValidator(Protocol):
    def __call__(self, value: Any) -> ValidationOutcome: ...


@runtime_checkable
class DefaultProducer(Protocol):
    def __call__(self) -> Any: ...


@runtime_checkable
class ContextDeriver(Protocol):
    def __call__(
        self, result: FulfillmentResult, params: Dict[str, Any]
    ) -> dict: ...


@runtime_checkable
class ParamModifier(Protocol):
    def __call__(
        self, context_data: dict, bundle: SignalBundle
    ) -> Dict[str, Any]: ...


# --- Rules ---

class TermMatcher(BaseModel):
    """
    OR-set over nouns, verbs and adjectives. Matches when any listed term
    is present in the corresponding bundle set.
    """

    model_config = ConfigDict(frozen=True)

    nouns: List[str] = []
    verbs: List[str] = []
    adjectives: List[str] = []

    def is_empty(self) -> bool:
        return not (self.nouns or self.verbs or self.adjectives)


class FlagCondition(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["flag"] = "flag"
    flag: SignalFlag


class EntityCondition(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["entity"] = "entity"
    entity: EntityType


class ContextCondition(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["context"] = "context"
    name: str                               # Active context name


class TermCondition(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["terms"] = "terms"
    matcher: TermMatcher


BoosterCondition = Annotated[
    Union[FlagCondition, EntityCondition, ContextCondition, TermCondition],
    Field(discriminator="kind"),
]


class Booster(BaseModel):
    model_config = ConfigDict(frozen=True)

    condition: BoosterCondition
    weight: float


class AntiPattern(BaseModel):
    model_config = ConfigDict(frozen=True)

    matcher: TermMatcher
    penalty: float                          # Negative; added to the score on match


# --- Parameters ---

class ByEntityType(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["entity"] = "entity"
    entity_type: EntityType


class CustomExtraction(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["custom"] = "custom"
    extract: ParameterExtractor


ExtractionStrategy = Annotated[
    Union[ByEntityType, CustomExtraction],
    Field(discriminator="kind"),
]


class ParameterSpec(BaseModel):
    """How one intent parameter is extracted, defaulted, validated and prompted for."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    extraction: ExtractionStrategy
    required: bool = False
    default_value: Optional[Any] = None
    default_producer: Optional[DefaultProducer] = None     # Evaluated lazily at fallback
    validator: Optional[ParameterValidator] = None
    prompt: Optional[str] = None


# --- Contexts and follow-ups ---

class OutputContext(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    lifespan: int = Field(ge=0, default=2)
    derive_data: ContextDeriver


class FollowUpSpec(BaseModel):
    """A short modification of a recently fulfilled intent, e.g. "And tomorrow?"."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    trigger_words: List[str]
    requires_context: str
    modify_params: ParamModifier
    reuse_intent_id: Optional[str] = None   # Defaults to the owning intent


class IntentDefinition(BaseModel):
    """Declarative intent: how to recognize, parameterize and fulfill a request."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str
    label: Optional[str] = None             # Disambiguation label
    required_rules: List[TermMatcher]
    boosters: List[Booster] = []
    anti_patterns: List[AntiPattern] = []
    parameters: Dict[str, ParameterSpec] = {}
    fulfill: Fulfiller
    output_contexts: List[OutputContext] = []
    follow_ups: Dict[str, FollowUpSpec] = {}

    @property
    def display_label(self) -> str:
        return self.label or f"Check {self.id.replace('_', ' ')}"


class ScoredIntent(BaseModel):
    """A scoring candidate for one turn."""

    intent_id: str
    confidence: float = Field(ge=0.0, le=1.0)


class FollowUpMatch(BaseModel):
    """The best follow-up found for one turn."""

    owner_intent_id: str
    follow_up_name: str
    context_name: str
    target_intent_id: str
    confidence: float = Field(ge=0.0, le=1.0)
