"""Dialogue Kernel data models."""

from dialogue_kernel.models.config import DialogueConfig
from dialogue_kernel.models.context import ContextEntry, PendingCollection, TurnRecord
from dialogue_kernel.models.intent import (
    AntiPattern,
    Booster,
    ByEntityType,
    ContextCondition,
    CustomExtraction,
    EntityCondition,
    FlagCondition,
    FollowUpMatch,
    FollowUpSpec,
    FulfillmentResult,
    IntentDefinition,
    OutputContext,
    ParameterSpec,
    ScoredIntent,
    TermCondition,
    TermMatcher,
    ValidationOutcome,
)
from dialogue_kernel.models.results import (
    DialogueResult,
    DisambiguationChoice,
    ResultKind,
)
from dialogue_kernel.models.signals import Entity, EntityType, SignalBundle, SignalFlag

__all__ = [
    "AntiPattern",
    "Booster",
    "ByEntityType",
    "ContextCondition",
    "ContextEntry",
    "CustomExtraction",
    "DialogueConfig",
    "DialogueResult",
    "DisambiguationChoice",
    "Entity",
    "EntityCondition",
    "EntityType",
    "FlagCondition",
    "FollowUpMatch",
    "FollowUpSpec",
    "FulfillmentResult",
    "IntentDefinition",
    "OutputContext",
    "ParameterSpec",
    "PendingCollection",
    "ResultKind",
    "ScoredIntent",
    "SignalBundle",
    "SignalFlag",
    "TermCondition",
    "TermMatcher",
    "TurnRecord",
    "ValidationOutcome",
]
