"""
Parameter Pipeline — extraction, defaulting and validation of intent parameters.

A parameter is missing iff it is required and its value is falsy. Empty
strings, None and numeric zero all count as missing; an intent that needs
to accept 0 must wrap the value in its custom extractor.
"""

from typing import Any, Dict, Optional

from dialogue_kernel.models.intent import (
    ByEntityType,
    CustomExtraction,
    ParameterSpec,
    ValidationOutcome,
)
from dialogue_kernel.models.signals import EntityType, SignalBundle


class ParameterPipeline:
    """Stateless; shared by all sessions."""

    def extract(self, spec: ParameterSpec, bundle: SignalBundle) -> Any:
        """Extract one parameter value from the bundle."""
        strategy = spec.extraction

        if isinstance(strategy, CustomExtraction):
            return strategy.extract(bundle)

        if isinstance(strategy, ByEntityType):
            value = self._extract_by_entity(strategy.entity_type, bundle)
            if not value:
                return self._default(spec)
            return value

        raise TypeError(f"Unknown extraction strategy: {type(strategy).__name__}")

    def extract_all(
        self, parameters: Dict[str, ParameterSpec], bundle: SignalBundle
    ) -> Dict[str, Any]:
        """Extract every declared parameter, in declaration order."""
        return {name: self.extract(spec, bundle) for name, spec in parameters.items()}

    def find_missing(
        self, parameters: Dict[str, ParameterSpec], params: Dict[str, Any]
    ) -> Optional[str]:
        """First required parameter (declaration order) whose value is falsy."""
        for name, spec in parameters.items():
            if spec.required and not params.get(name):
                return name
        return None

    def validate(self, spec: ParameterSpec, value: Any) -> ValidationOutcome:
        """Run the parameter's validator, if any."""
        if spec.validator is None:
            return ValidationOutcome(valid=True)
        outcome = spec.validator(value)
        if isinstance(outcome, dict):
            outcome = ValidationOutcome.model_validate(outcome)
        return outcome

    def prompt_for(self, name: str, spec: ParameterSpec) -> str:
        return spec.prompt or f"What {name}?"

    def _extract_by_entity(self, entity_type: EntityType, bundle: SignalBundle) -> Any:
        if entity_type == EntityType.ANY:
            return bundle.normalized_text

        entity = bundle.first_entity(entity_type)
        if entity is None:
            return None
        return entity.value if entity.value is not None else entity.text

    def _default(self, spec: ParameterSpec) -> Any:
        # Producer is evaluated at the moment of fallback, never precomputed
        if spec.default_producer is not None:
            return spec.default_producer()
        return spec.default_value
