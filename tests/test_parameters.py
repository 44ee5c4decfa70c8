"""Tests for the Parameter Pipeline — extraction, defaults, validation."""

from datetime import date

from dialogue_kernel.models.intent import (
    ByEntityType,
    CustomExtraction,
    ParameterSpec,
    ValidationOutcome,
)
from dialogue_kernel.models.signals import Entity, EntityType, SignalBundle
from dialogue_kernel.parameters.pipeline import ParameterPipeline


def _make_bundle(text: str = "remind me tomorrow", entities=()) -> SignalBundle:
    return SignalBundle(
        raw_text=text,
        normalized_text=text.lower(),
        entities=list(entities),
        word_count=len(text.split()),
    )


class TestExtract:
    def setup_method(self):
        self.pipeline = ParameterPipeline()

    def test_first_entity_of_type(self):
        bundle = _make_bundle(entities=[
            Entity(type=EntityType.PLACE, text="Paris"),
            Entity(type=EntityType.PLACE, text="London"),
        ])
        spec = ParameterSpec(extraction=ByEntityType(entity_type=EntityType.PLACE))
        assert self.pipeline.extract(spec, bundle) == "Paris"

    def test_parsed_value_preferred_over_text(self):
        bundle = _make_bundle(entities=[
            Entity(type=EntityType.DATE, text="tomorrow", value=date(2026, 10, 19)),
        ])
        spec = ParameterSpec(extraction=ByEntityType(entity_type=EntityType.DATE))
        assert self.pipeline.extract(spec, bundle) == date(2026, 10, 19)

    def test_any_uses_normalized_text(self):
        spec = ParameterSpec(extraction=ByEntityType(entity_type=EntityType.ANY))
        assert self.pipeline.extract(spec, _make_bundle("Buy MILK")) == "buy milk"

    def test_default_value_when_absent(self):
        spec = ParameterSpec(
            extraction=ByEntityType(entity_type=EntityType.PLACE),
            default_value="San Francisco",
        )
        assert self.pipeline.extract(spec, _make_bundle()) == "San Francisco"

    def test_default_producer_is_lazy(self):
        calls = []

        def produce():
            calls.append(1)
            return "San Francisco"

        spec = ParameterSpec(
            extraction=ByEntityType(entity_type=EntityType.PLACE),
            default_producer=produce,
        )
        with_place = _make_bundle(entities=[Entity(type=EntityType.PLACE, text="Paris")])
        assert self.pipeline.extract(spec, with_place) == "Paris"
        assert calls == []

        assert self.pipeline.extract(spec, _make_bundle()) == "San Francisco"
        assert calls == [1]

    def test_custom_extractor_used_as_is(self):
        spec = ParameterSpec(
            extraction=CustomExtraction(extract=lambda bundle: 0),
            default_value=5,
        )
        assert self.pipeline.extract(spec, _make_bundle()) == 0

    def test_extract_all_in_declaration_order(self):
        params = {
            "location": ParameterSpec(extraction=ByEntityType(entity_type=EntityType.PLACE)),
            "count": ParameterSpec(extraction=ByEntityType(entity_type=EntityType.NUMBER)),
        }
        bundle = _make_bundle(entities=[Entity(type=EntityType.NUMBER, text="3", value=3)])
        assert self.pipeline.extract_all(params, bundle) == {"location": None, "count": 3}


class TestMissingAndValidation:
    def setup_method(self):
        self.pipeline = ParameterPipeline()
        self.params = {
            "task": ParameterSpec(extraction=ByEntityType(entity_type=EntityType.ANY), required=True),
            "time": ParameterSpec(extraction=ByEntityType(entity_type=EntityType.TIME), required=True),
            "note": ParameterSpec(extraction=ByEntityType(entity_type=EntityType.ANY)),
        }

    def test_first_missing_in_declaration_order(self):
        assert self.pipeline.find_missing(self.params, {}) == "task"
        assert self.pipeline.find_missing(self.params, {"task": "call mom"}) == "time"
        assert self.pipeline.find_missing(self.params, {"task": "x", "time": "09:00"}) is None

    def test_falsy_values_count_as_missing(self):
        for value in ["", None, 0]:
            assert self.pipeline.find_missing(self.params, {"task": value, "time": "09:00"}) == "task"

    def test_validate_without_validator(self):
        assert self.pipeline.validate(self.params["task"], "anything").valid

    def test_validate_accepts_dict_outcome(self):
        spec = ParameterSpec(
            extraction=ByEntityType(entity_type=EntityType.NUMBER),
            validator=lambda v: {"valid": False, "error": "Too many"},
        )
        outcome = self.pipeline.validate(spec, 99)
        assert outcome == ValidationOutcome(valid=False, error="Too many")

    def test_prompt_text(self):
        assert self.pipeline.prompt_for("task", self.params["task"]) == "What task?"
        spec = ParameterSpec(
            extraction=ByEntityType(entity_type=EntityType.PLACE),
            prompt="Which location?",
        )
        assert self.pipeline.prompt_for("location", spec) == "Which location?"
