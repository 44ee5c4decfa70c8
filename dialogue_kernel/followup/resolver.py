"""
Follow-Up Resolver — detects utterances that continue a recently fulfilled intent.

Follow-ups are short modifications ("And tomorrow?", "What about Paris?")
that lack the primary intent's own required signals. The resolver only
finds the best candidate; routing between follow-up and primary intent is
the orchestrator's decision.
"""

import re
from typing import Iterable, List, Optional

from loguru import logger

from dialogue_kernel.models.config import DialogueConfig
from dialogue_kernel.models.intent import FollowUpMatch, FollowUpSpec, IntentDefinition
from dialogue_kernel.models.signals import EntityType, SignalBundle
from dialogue_kernel.scoring.engine import matches_any_required


def matches_trigger(follow_up: FollowUpSpec, bundle: SignalBundle) -> bool:
    """True if any trigger word appears in verbs, nouns, raw text or date text."""
    raw = bundle.raw_text.lower()
    dates = [d.normalized for d in bundle.entities_of(EntityType.DATE)]

    for trigger in follow_up.trigger_words:
        word = trigger.lower()
        if word in bundle.verbs or word in bundle.nouns:
            return True
        if re.search(rf"\b{re.escape(word)}\b", raw):
            return True
        if any(word in d for d in dates):
            return True
    return False


class FollowUpResolver:
    """Scores follow-up handlers against the active contexts."""

    def __init__(self, config: Optional[DialogueConfig] = None):
        self.config = config or DialogueConfig()

    def score_follow_up(
        self,
        follow_up: FollowUpSpec,
        owner: IntentDefinition,
        bundle: SignalBundle,
    ) -> float:
        """
        0 without a trigger match. Otherwise a base score, a brevity boost,
        and a penalty when the utterance independently satisfies the owner's
        required rules (a self-sufficient query is not a follow-up).
        """
        if not matches_trigger(follow_up, bundle):
            return 0.0

        cfg = self.config
        score = cfg.follow_up_base

        if bundle.word_count <= cfg.follow_up_very_short_words:
            score += cfg.follow_up_very_short_boost
        elif bundle.word_count <= cfg.follow_up_short_words:
            score += cfg.follow_up_short_boost

        if matches_any_required(owner, bundle):
            score += cfg.follow_up_self_sufficient_penalty

        return round(max(0.0, min(1.0, score)), 10)

    def resolve(
        self,
        bundle: SignalBundle,
        active_contexts: List[str],
        definitions: Iterable[IntentDefinition],
    ) -> Optional[FollowUpMatch]:
        """Globally best-scoring follow-up across all active contexts, or None."""
        if not active_contexts:
            return None

        definitions = list(definitions)
        best: Optional[FollowUpMatch] = None

        for context_name in active_contexts:
            for owner in definitions:
                for name, follow_up in owner.follow_ups.items():
                    if follow_up.requires_context != context_name:
                        continue

                    confidence = self.score_follow_up(follow_up, owner, bundle)
                    if confidence <= 0:
                        continue
                    if best is None or confidence > best.confidence:
                        best = FollowUpMatch(
                            owner_intent_id=owner.id,
                            follow_up_name=name,
                            context_name=context_name,
                            target_intent_id=follow_up.reuse_intent_id or owner.id,
                            confidence=confidence,
                        )

        if best:
            logger.info(
                f"Detected follow-up: {best.owner_intent_id}.{best.follow_up_name} "
                f"(confidence: {best.confidence:.2f})"
            )
        return best
