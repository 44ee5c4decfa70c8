"""
Scoring Engine — confidence scoring of intents against a Signal Bundle.

Behavioral Contract:
- score(definition, bundle) is always within [0, 1]
- An intent whose required rules all fail scores exactly 0 and is excluded
- Otherwise: base score + every holding booster + every matching anti-pattern
  penalty, clamped to [0, 1]
- Boosters and anti-patterns are evaluated independently; effects accumulate
- Malformed rules raise RuleDefinitionError; they are never scored as zero
"""

from typing import Callable, Dict, Iterable, List

from loguru import logger

from dialogue_kernel.models.intent import (
    Booster,
    IntentDefinition,
    ScoredIntent,
    TermMatcher,
)
from dialogue_kernel.models.signals import SignalBundle


class RuleDefinitionError(TypeError):
    """Raised when an intent rule cannot be evaluated."""
    pass


def _clamp(value: float) -> float:
    # Rounded so accumulated float error never flips a threshold comparison
    return round(max(0.0, min(1.0, value)), 10)


def matches_terms(matcher: TermMatcher, bundle: SignalBundle) -> bool:
    """OR within each term list, OR across the three lists."""
    if not isinstance(matcher, TermMatcher):
        raise RuleDefinitionError(
            f"Expected a TermMatcher, got {type(matcher).__name__}"
        )
    if any(n.lower() in bundle.nouns for n in matcher.nouns):
        return True
    if any(v.lower() in bundle.verbs for v in matcher.verbs):
        return True
    if any(a.lower() in bundle.adjectives for a in matcher.adjectives):
        return True
    return False


def matches_any_required(definition: IntentDefinition, bundle: SignalBundle) -> bool:
    """True if at least one of the intent's required matchers is satisfied."""
    return any(matches_terms(rule, bundle) for rule in definition.required_rules)


def _flag_holds(condition, bundle: SignalBundle) -> bool:
    return bundle.flag(condition.flag)


def _entity_present(condition, bundle: SignalBundle) -> bool:
    return bundle.has_entity(condition.entity)


def _context_active(condition, bundle: SignalBundle) -> bool:
    return condition.name in bundle.active_contexts


def _terms_present(condition, bundle: SignalBundle) -> bool:
    return matches_terms(condition.matcher, bundle)


# Condition registry — maps condition kinds to evaluation functions
_CONDITION_CHECKS: Dict[str, Callable[..., bool]] = {
    "flag": _flag_holds,
    "entity": _entity_present,
    "context": _context_active,
    "terms": _terms_present,
}


def booster_holds(booster: Booster, bundle: SignalBundle) -> bool:
    """Evaluate a booster's condition against the bundle."""
    kind = getattr(booster.condition, "kind", None)
    check_fn = _CONDITION_CHECKS.get(kind)
    if check_fn is None:
        raise RuleDefinitionError(f"Unknown booster condition kind: {kind!r}")
    return check_fn(booster.condition, bundle)


class ScoringEngine:
    """Scores intent definitions using their declarative rules."""

    def __init__(self, base_score: float = 0.5):
        self.base_score = base_score

    def score(self, definition: IntentDefinition, bundle: SignalBundle) -> float:
        """Confidence in [0, 1] that the bundle expresses this intent."""
        if not matches_any_required(definition, bundle):
            return 0.0

        score = self.base_score

        for booster in definition.boosters:
            if booster_holds(booster, bundle):
                score += booster.weight

        for anti in definition.anti_patterns:
            if matches_terms(anti.matcher, bundle):
                score += anti.penalty

        return _clamp(score)

    def score_all(
        self,
        definitions: Iterable[IntentDefinition],
        bundle: SignalBundle,
    ) -> List[ScoredIntent]:
        """
        Score every definition, drop zero scores, and sort descending.
        Equal scores keep registration order.
        """
        scored = []
        for definition in definitions:
            confidence = self.score(definition, bundle)
            if confidence > 0:
                scored.append(
                    ScoredIntent(intent_id=definition.id, confidence=confidence)
                )

        scored.sort(key=lambda s: s.confidence, reverse=True)
        logger.debug(
            "Scored intents: "
            + ", ".join(f"{s.intent_id}={s.confidence:.2f}" for s in scored)
        )
        return scored
