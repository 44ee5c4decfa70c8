"""
Dialogue Orchestrator — turns one utterance into one DialogueResult.

States per session:
  - Idle: score intents, check follow-ups, route by confidence
  - AwaitingParameter(intent, param): the next utterance answers the
    outstanding prompt instead of being treated as a fresh query

Routing in Idle (first match wins):
  1. no candidates                          → fallback
  2. runner-up within the ambiguity margin  → disambiguation (advisory, stays Idle)
  3. best >= HIGH                           → fulfill
  4. best >= MEDIUM                         → fulfill, hedged
  5. otherwise                              → fallback

A follow-up takes over when no primary intent reaches HIGH and the follow-up
is strictly more confident than the best primary candidate.

Turn bookkeeping: every completed turn (fulfillment, follow-up, fallback,
disambiguation, failed fulfillment) advances context lifespans once, then
writes output contexts, then records the turn. Prompts are not completed
turns and have no side effects beyond the pending collection.
"""

from __future__ import annotations

import inspect
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from loguru import logger

from dialogue_kernel.context.store import ContextStore
from dialogue_kernel.followup.resolver import FollowUpResolver
from dialogue_kernel.models.config import DialogueConfig
from dialogue_kernel.models.context import PendingCollection, TurnRecord
from dialogue_kernel.models.intent import (
    FollowUpMatch,
    FulfillmentResult,
    IntentDefinition,
    ScoredIntent,
)
from dialogue_kernel.models.results import (
    DialogueResult,
    DisambiguationChoice,
    ResultKind,
)
from dialogue_kernel.models.signals import SignalBundle
from dialogue_kernel.parameters.pipeline import ParameterPipeline
from dialogue_kernel.registry.intents import IntentRegistry
from dialogue_kernel.scoring.engine import ScoringEngine
from dialogue_kernel.signals.extractor import LexiconSignalExtractor, SignalExtractor


class DialogueSession:
    """
    Mutable state of one conversation: its context store and the pending
    parameter collection. Never shared between users.
    """

    def __init__(self, session_id: Optional[str] = None, history_limit: int = 10):
        self.session_id = session_id or f"sess_{uuid4().hex[:12]}"
        self.context = ContextStore(history_limit=history_limit)
        self.pending: Optional[PendingCollection] = None

    @property
    def is_awaiting_input(self) -> bool:
        return self.pending is not None


def _coerce_result(outcome: Any) -> FulfillmentResult:
    if isinstance(outcome, FulfillmentResult):
        return outcome
    if isinstance(outcome, dict):
        return FulfillmentResult.model_validate(outcome)
    if isinstance(outcome, str):
        return FulfillmentResult(text=outcome)
    raise TypeError(
        f"fulfill returned {type(outcome).__name__}, expected FulfillmentResult"
    )


class DialogueOrchestrator:
    """
    Drives the per-utterance pipeline: signals → scoring / follow-ups →
    routing → parameters → fulfillment → context update.

    The orchestrator holds no conversation state; everything mutable lives
    on the DialogueSession passed to execute(). The registry is shared
    read-only across sessions.
    """

    def __init__(
        self,
        registry: Optional[IntentRegistry] = None,
        extractor: Optional[SignalExtractor] = None,
        config: Optional[DialogueConfig] = None,
    ):
        self.registry = registry or IntentRegistry()
        self.extractor = extractor or LexiconSignalExtractor()
        self.config = config or DialogueConfig()
        self.scoring = ScoringEngine(base_score=self.config.base_score)
        self.follow_ups = FollowUpResolver(self.config)
        self.parameters = ParameterPipeline()

    def new_session(self, session_id: Optional[str] = None) -> DialogueSession:
        return DialogueSession(session_id, history_limit=self.config.history_limit)

    # --- Entry point ---

    async def execute(self, session: DialogueSession, utterance: str) -> DialogueResult:
        """
        Process one utterance. Must run to completion before the next
        utterance of the same session is accepted.
        """
        logger.info(f"[{session.session_id}] Processing: {utterance!r}")

        bundle = await self._analyze(session, utterance)

        if session.is_awaiting_input:
            return await self._collect_parameter(session, utterance, bundle)

        return await self._handle_idle(session, utterance, bundle)

    async def _analyze(self, session: DialogueSession, utterance: str) -> SignalBundle:
        bundle = self.extractor.analyze(utterance, session.context.get_active())
        if inspect.isawaitable(bundle):
            bundle = await bundle
        return bundle

    async def _handle_idle(
        self, session: DialogueSession, utterance: str, bundle: SignalBundle
    ) -> DialogueResult:
        definitions = self.registry.definitions()
        scored = self.scoring.score_all(definitions, bundle)

        follow_up = self.follow_ups.resolve(
            bundle, session.context.get_active(), definitions
        )
        if follow_up is not None:
            best_confidence = scored[0].confidence if scored else 0.0

            if best_confidence >= self.config.high_threshold:
                logger.debug(
                    f"Primary intent ({best_confidence:.2f}) stronger than "
                    f"follow-up - using primary"
                )
            elif follow_up.confidence > best_confidence:
                return await self._execute_follow_up(
                    session, follow_up, utterance, bundle
                )
            else:
                logger.debug("Follow-up detected but primary intent stronger")

        return await self._route(session, scored, utterance, bundle)

    # --- Routing ---

    async def _route(
        self,
        session: DialogueSession,
        scored: List[ScoredIntent],
        utterance: str,
        bundle: SignalBundle,
    ) -> DialogueResult:
        cfg = self.config

        if not scored:
            logger.info("No intents matched")
            return self._fallback(session, utterance, bundle)

        best = scored[0]
        second = scored[1] if len(scored) > 1 else None

        if second is not None:
            gap = round(best.confidence - second.confidence, 10)
            if gap < cfg.ambiguity_margin:
                logger.info(
                    f"AMBIGUOUS ({best.intent_id}={best.confidence:.2f}, "
                    f"{second.intent_id}={second.confidence:.2f}) - disambiguating"
                )
                return self._disambiguate(session, utterance, [best, second])

        definition = self.registry.get(best.intent_id)

        if best.confidence >= cfg.high_threshold:
            logger.info(f"HIGH confidence ({best.confidence:.2f}) - executing {best.intent_id}")
            return await self._fulfill(
                session, definition, utterance, bundle, confidence=best.confidence
            )

        if best.confidence >= cfg.medium_threshold:
            logger.info(f"MEDIUM confidence ({best.confidence:.2f}) - hedging {best.intent_id}")
            return await self._fulfill(
                session,
                definition,
                utterance,
                bundle,
                confidence=best.confidence,
                hedged=True,
            )

        logger.info(f"LOW confidence ({best.confidence:.2f}) - fallback")
        return self._fallback(session, utterance, bundle)

    async def _execute_follow_up(
        self,
        session: DialogueSession,
        match: FollowUpMatch,
        utterance: str,
        bundle: SignalBundle,
    ) -> DialogueResult:
        logger.info(f"Executing follow-up: {match.follow_up_name}")

        target = self.registry.get(match.target_intent_id)
        owner = self.registry.get(match.owner_intent_id)
        if target is None or owner is None:
            logger.warning(f"Follow-up target intent not found: {match.target_intent_id}")
            return self._fallback(session, utterance, bundle)

        follow_up = owner.follow_ups[match.follow_up_name]
        context_data = session.context.get(match.context_name) or {}
        params = dict(follow_up.modify_params(context_data, bundle))

        return await self._fulfill(
            session,
            target,
            utterance,
            bundle,
            confidence=match.confidence,
            params=params,
            is_follow_up=True,
        )

    # --- Parameters ---

    async def _fulfill(
        self,
        session: DialogueSession,
        definition: IntentDefinition,
        utterance: str,
        bundle: SignalBundle,
        confidence: Optional[float] = None,
        params: Optional[Dict[str, Any]] = None,
        hedged: bool = False,
        is_follow_up: bool = False,
    ) -> DialogueResult:
        """Extract parameters (unless a follow-up supplied them), then fulfill or prompt."""
        if params is None:
            params = self.parameters.extract_all(definition.parameters, bundle)

        missing = self.parameters.find_missing(definition.parameters, params)
        if missing is not None:
            return self._prompt(
                session, definition, missing, params, utterance, is_follow_up
            )

        return await self._run_fulfillment(
            session,
            definition,
            params,
            utterance,
            confidence=confidence,
            hedged=hedged,
            is_follow_up=is_follow_up,
        )

    def _prompt(
        self,
        session: DialogueSession,
        definition: IntentDefinition,
        param_name: str,
        collected: Dict[str, Any],
        original_input: str,
        is_follow_up: bool = False,
    ) -> DialogueResult:
        session.pending = PendingCollection(
            intent_id=definition.id,
            collected_params=dict(collected),
            awaiting_param=param_name,
            original_input=original_input,
            is_follow_up=is_follow_up,
        )
        logger.info(f"Prompting for parameter: {param_name} ({definition.id})")

        spec = definition.parameters[param_name]
        return DialogueResult(
            kind=ResultKind.PROMPT,
            text=self.parameters.prompt_for(param_name, spec),
            intent_id=definition.id,
            awaiting_input=param_name,
            requires_user_input=True,
        )

    async def _collect_parameter(
        self, session: DialogueSession, utterance: str, bundle: SignalBundle
    ) -> DialogueResult:
        """Treat the utterance as the answer to the outstanding prompt."""
        pending = session.pending
        definition = self.registry.get(pending.intent_id)
        if definition is None:
            logger.warning(
                f"Pending intent {pending.intent_id} is no longer registered; "
                f"dropping collection"
            )
            session.pending = None
            return await self._handle_idle(session, utterance, bundle)

        name = pending.awaiting_param
        spec = definition.parameters[name]
        logger.info(f"Collecting parameter: {name}")

        value = self.parameters.extract(spec, bundle)
        outcome = self.parameters.validate(spec, value)
        if not outcome.valid:
            logger.info(f"Validation failed for {name}: {outcome.error}")
            return DialogueResult(
                kind=ResultKind.PROMPT,
                text=outcome.error or self.parameters.prompt_for(name, spec),
                intent_id=definition.id,
                awaiting_input=name,
                requires_user_input=True,
                is_follow_up=True,
                metadata={"validation_error": True, "parameter": name},
            )

        collected = {**pending.collected_params, name: value}
        session.pending = None

        next_missing = self.parameters.find_missing(definition.parameters, collected)
        if next_missing is not None:
            return self._prompt(
                session,
                definition,
                next_missing,
                collected,
                pending.original_input,
                pending.is_follow_up,
            )

        return await self._run_fulfillment(
            session,
            definition,
            collected,
            utterance,
            is_follow_up=pending.is_follow_up,
        )

    # --- Fulfillment ---

    async def _run_fulfillment(
        self,
        session: DialogueSession,
        definition: IntentDefinition,
        params: Dict[str, Any],
        utterance: str,
        confidence: Optional[float] = None,
        hedged: bool = False,
        is_follow_up: bool = False,
    ) -> DialogueResult:
        logger.info(f"Fulfilling intent: {definition.id}")

        try:
            outcome = definition.fulfill(params)
            if inspect.isawaitable(outcome):
                outcome = await outcome
            result = _coerce_result(outcome)
            derived = [
                (output.name, output.derive_data(result, params), output.lifespan)
                for output in definition.output_contexts
            ]
        except Exception:
            logger.exception(f"Fulfillment failed for intent {definition.id}")
            session.context.advance_turn()
            self._record_turn(
                session, utterance, definition.id, self.config.apology_text, params
            )
            return DialogueResult(
                kind=ResultKind.ERROR,
                text=self.config.apology_text,
                intent_id=definition.id,
                confidence=confidence,
            )

        session.context.advance_turn()
        for name, data, lifespan in derived:
            session.context.set(name, data, lifespan)
        self._record_turn(
            session, utterance, definition.id, result.text, params, result.data
        )

        text = result.text
        if hedged:
            text = f"{self.config.hedge_phrase} {text}"

        return DialogueResult(
            kind=ResultKind.FULFILLMENT,
            text=text,
            intent_id=definition.id,
            confidence=confidence,
            data=result.data,
            hedged=True if hedged else None,
            is_follow_up=True if is_follow_up else None,
        )

    # --- Terminal results ---

    def _disambiguate(
        self,
        session: DialogueSession,
        utterance: str,
        candidates: List[ScoredIntent],
    ) -> DialogueResult:
        choices = []
        for candidate in candidates:
            definition = self.registry.get(candidate.intent_id)
            choices.append(
                DisambiguationChoice(
                    label=definition.display_label,
                    intent_id=candidate.intent_id,
                    confidence=candidate.confidence,
                )
            )

        text = self.config.disambiguation_text
        session.context.advance_turn()
        self._record_turn(session, utterance, None, text)

        return DialogueResult(
            kind=ResultKind.DISAMBIGUATION,
            type="disambiguation",
            text=text,
            choices=choices,
            requires_user_input=True,
        )

    def _fallback(
        self, session: DialogueSession, utterance: str, bundle: SignalBundle
    ) -> DialogueResult:
        if bundle.is_question:
            text = self.config.fallback_question_text
        else:
            text = self.config.fallback_statement_text

        session.context.advance_turn()
        self._record_turn(session, utterance, None, text)
        return DialogueResult(kind=ResultKind.FALLBACK, text=text, fallback=True)

    def _record_turn(
        self,
        session: DialogueSession,
        utterance: str,
        intent_id: Optional[str],
        summary: str,
        params: Optional[Dict[str, Any]] = None,
        result_data: Optional[dict] = None,
    ) -> None:
        session.context.record_turn(
            TurnRecord(
                input_text=utterance,
                chosen_intent_id=intent_id,
                result_summary=summary,
                params=params or {},
                result_data=result_data,
                timestamp=datetime.utcnow(),
            )
        )

    # --- Introspection ---

    def debug_info(self, session: DialogueSession) -> dict:
        pending = session.pending
        return {
            "session_id": session.session_id,
            "registered_intents": self.registry.intent_ids(),
            "intent_count": len(self.registry),
            "thresholds": {
                "high": self.config.high_threshold,
                "medium": self.config.medium_threshold,
                "ambiguous": self.config.ambiguity_margin,
            },
            "awaiting_input": session.is_awaiting_input,
            "context": session.context.debug_info(),
            "pending_collection": (
                {"intent_id": pending.intent_id, "awaiting_param": pending.awaiting_param}
                if pending else None
            ),
        }

    def reset(self, session: DialogueSession) -> None:
        """Drop the session's contexts, history and pending collection."""
        session.context.reset()
        session.pending = None
        logger.info(f"[{session.session_id}] Reset complete")


class Conversation:
    """One orchestrator bound to one session, for single-user callers."""

    def __init__(
        self,
        orchestrator: DialogueOrchestrator,
        session: Optional[DialogueSession] = None,
    ):
        self.orchestrator = orchestrator
        self.session = session or orchestrator.new_session()

    @property
    def context(self) -> ContextStore:
        return self.session.context

    async def execute(self, utterance: str) -> DialogueResult:
        return await self.orchestrator.execute(self.session, utterance)

    def debug_info(self) -> dict:
        return self.orchestrator.debug_info(self.session)

    def reset(self) -> None:
        self.orchestrator.reset(self.session)
