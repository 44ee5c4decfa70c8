"""
Intent Registry — holds the declarative Intent Definitions supplied by plugins.

Behavioral Contract:
- Validates every definition at registration time; malformed definitions never
  reach the scoring engine
- Registered definitions are immutable and shared read-only across sessions
- Registration order is preserved (ties in scoring keep that order)
"""

from typing import Dict, List, Optional, Protocol

from loguru import logger

from dialogue_kernel.models.intent import IntentDefinition


class IntentRegistrationError(ValueError):
    """Raised when an intent definition fails registration-time validation."""
    pass


class IntentPlugin(Protocol):
    """A plugin contributes one or more intent definitions."""

    id: str

    def intent_definitions(self) -> List[IntentDefinition]: ...


def _validate_definition(definition: IntentDefinition) -> List[str]:
    """Return a list of problems with a definition (empty when valid)."""
    problems = []

    if not definition.id:
        problems.append("missing id")

    if not definition.required_rules:
        problems.append("missing required_rules")
    for i, matcher in enumerate(definition.required_rules):
        if matcher.is_empty():
            problems.append(f"required_rules[{i}] lists no terms")

    if not callable(definition.fulfill):
        problems.append("missing or invalid fulfill")

    for i, anti in enumerate(definition.anti_patterns):
        if anti.matcher.is_empty():
            problems.append(f"anti_patterns[{i}] lists no terms")
        if anti.penalty > 0:
            problems.append(f"anti_patterns[{i}] penalty must be <= 0")

    for i, booster in enumerate(definition.boosters):
        condition = booster.condition
        if condition.kind == "terms" and condition.matcher.is_empty():
            problems.append(f"boosters[{i}] lists no terms")

    for name, spec in definition.parameters.items():
        if spec.default_value is not None and spec.default_producer is not None:
            problems.append(
                f"parameter '{name}' sets both default_value and default_producer"
            )

    for name, follow_up in definition.follow_ups.items():
        if not follow_up.trigger_words:
            problems.append(f"follow-up '{name}' has no trigger_words")
        if not follow_up.requires_context:
            problems.append(f"follow-up '{name}' has no requires_context")

    return problems


class IntentRegistry:
    """Registry of intent definitions, keyed by intent id."""

    def __init__(self):
        self._intents: Dict[str, IntentDefinition] = {}

    def register_intent(self, definition: IntentDefinition) -> None:
        """Register (or replace) an intent definition after validating it."""
        problems = _validate_definition(definition)
        if problems:
            raise IntentRegistrationError(
                f"Invalid intent definition '{definition.id}': {'; '.join(problems)}"
            )

        if definition.id in self._intents:
            logger.warning(f"Replacing registered intent: {definition.id}")
        self._intents[definition.id] = definition
        logger.info(f"Registered intent: {definition.id}")

    def register_plugin(self, plugin: IntentPlugin) -> List[str]:
        """
        Register every definition a plugin provides. Invalid definitions are
        logged and skipped so one bad intent does not take the plugin down.

        Returns the ids that were registered.
        """
        registered = []
        for definition in plugin.intent_definitions():
            try:
                self.register_intent(definition)
            except IntentRegistrationError as e:
                logger.warning(f"Plugin {plugin.id}: skipping {e}")
                continue
            registered.append(definition.id)

        logger.info(f"Plugin {plugin.id} registered intents: {registered}")
        return registered

    def unregister_intent(self, intent_id: str) -> bool:
        """Remove an intent from the registry."""
        if intent_id in self._intents:
            del self._intents[intent_id]
            return True
        return False

    def get(self, intent_id: str) -> Optional[IntentDefinition]:
        return self._intents.get(intent_id)

    def definitions(self) -> List[IntentDefinition]:
        """All registered definitions in registration order."""
        return list(self._intents.values())

    def intent_ids(self) -> List[str]:
        return list(self._intents.keys())

    def __contains__(self, intent_id: str) -> bool:
        return intent_id in self._intents

    def __len__(self) -> int:
        return len(self._intents)
