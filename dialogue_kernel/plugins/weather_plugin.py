"""
Weather plugin: parameters with defaults, a custom extractor, an output
context and two follow-ups.

    "What's the weather in Paris?"  → weather_query(location=Paris, timeframe=today)
    "And tomorrow?"                 → temporal follow-up, keeps Paris
    "What about London?"            → location follow-up, keeps the timeframe
"""

from typing import Any, Dict, List, Optional, Protocol

from loguru import logger
from pydantic import BaseModel

from dialogue_kernel.models.intent import (
    AntiPattern,
    Booster,
    ByEntityType,
    ContextCondition,
    CustomExtraction,
    EntityCondition,
    FlagCondition,
    FollowUpSpec,
    FulfillmentResult,
    IntentDefinition,
    OutputContext,
    ParameterSpec,
    TermCondition,
    TermMatcher,
)
from dialogue_kernel.models.signals import EntityType, SignalBundle, SignalFlag

WEATHER_CONTEXT = "weather-followup"

_TIMEFRAME_KEYWORDS = ["tomorrow", "today", "tonight", "next week", "next month"]


class Forecast(BaseModel):
    location: str
    conditions: str
    temperature: float                      # Fahrenheit
    humidity: int
    wind_speed: float                       # mph


class ForecastProvider(Protocol):
    """Pluggable weather backend."""

    async def forecast(self, location: str, timeframe: str) -> Forecast: ...


def timeframe_from(bundle: SignalBundle) -> Optional[str]:
    """The first date phrase, else a temporal keyword in the text, else None."""
    date = bundle.first_entity(EntityType.DATE)
    if date is not None:
        return date.normalized
    for keyword in _TIMEFRAME_KEYWORDS:
        if keyword in bundle.normalized_text:
            return keyword
    return None


class WeatherPlugin:
    id = "weather"
    name = "Weather"

    def __init__(self, forecast: ForecastProvider, default_location: str = "San Francisco"):
        self._forecast = forecast
        self.default_location = default_location

    def intent_definitions(self) -> List[IntentDefinition]:
        return [
            IntentDefinition(
                id="weather_query",
                label="Check the weather",
                required_rules=[
                    TermMatcher(nouns=["weather", "forecast", "temperature", "rain", "snow", "conditions"]),
                    TermMatcher(verbs=["weather", "rain", "snow"]),
                    TermMatcher(adjectives=["sunny", "cloudy", "rainy", "hot", "cold", "warm"]),
                ],
                boosters=[
                    Booster(condition=FlagCondition(flag=SignalFlag.IS_QUESTION), weight=0.2),
                    Booster(condition=EntityCondition(entity=EntityType.PLACE), weight=0.2),
                    Booster(condition=EntityCondition(entity=EntityType.DATE), weight=0.1),
                    Booster(
                        condition=TermCondition(matcher=TermMatcher(verbs=["rain", "snow"])),
                        weight=0.15,
                    ),
                    Booster(condition=ContextCondition(name=WEATHER_CONTEXT), weight=0.4),
                ],
                anti_patterns=[
                    AntiPattern(
                        matcher=TermMatcher(nouns=["reminder", "alarm", "time"]),
                        penalty=-0.5,
                    ),
                ],
                parameters={
                    "location": ParameterSpec(
                        extraction=ByEntityType(entity_type=EntityType.PLACE),
                        default_producer=lambda: self.default_location,
                        prompt="Which location?",
                    ),
                    "timeframe": ParameterSpec(
                        extraction=CustomExtraction(
                            extract=lambda bundle: timeframe_from(bundle) or "today"
                        ),
                    ),
                },
                fulfill=self.fulfill,
                output_contexts=[
                    OutputContext(
                        name=WEATHER_CONTEXT,
                        lifespan=2,
                        derive_data=self._context_data,
                    ),
                ],
                follow_ups={
                    "temporal_modifier": FollowUpSpec(
                        trigger_words=["tomorrow", "next", "week", "month", "today", "tonight"],
                        requires_context=WEATHER_CONTEXT,
                        modify_params=self._with_new_timeframe,
                        reuse_intent_id="weather_query",
                    ),
                    "location_modifier": FollowUpSpec(
                        trigger_words=["in", "at", "for", "about"],
                        requires_context=WEATHER_CONTEXT,
                        modify_params=self._with_new_location,
                        reuse_intent_id="weather_query",
                    ),
                },
            )
        ]

    async def fulfill(self, params: Dict[str, Any]) -> FulfillmentResult:
        location = params.get("location") or self.default_location
        timeframe = params.get("timeframe") or "today"
        logger.info(f"Fetching weather for {location} ({timeframe})")

        try:
            weather = await self._forecast.forecast(location, timeframe)
        except Exception as e:
            logger.warning(f"Forecast lookup failed for {location}: {e}")
            return FulfillmentResult(
                text=f"Sorry, I couldn't get the weather for {location}. Please try again.",
            )

        text = (
            f"The weather {timeframe} in {weather.location} will be {weather.conditions}, "
            f"{round(weather.temperature)}°F. Humidity {weather.humidity}%, "
            f"wind speed {round(weather.wind_speed)} mph."
        )
        return FulfillmentResult(
            text=text,
            data={
                "location": weather.location,
                "timeframe": timeframe,
                "weather": weather.model_dump(),
            },
        )

    def _context_data(self, result: FulfillmentResult, params: Dict[str, Any]) -> dict:
        return {
            "last_location": params.get("location"),
            "last_timeframe": params.get("timeframe"),
            "last_weather": (result.data or {}).get("weather"),
        }

    def _with_new_timeframe(self, context_data: dict, bundle: SignalBundle) -> Dict[str, Any]:
        return {
            "location": context_data.get("last_location") or self.default_location,
            "timeframe": timeframe_from(bundle) or "tomorrow",
        }

    def _with_new_location(self, context_data: dict, bundle: SignalBundle) -> Dict[str, Any]:
        place = bundle.first_entity(EntityType.PLACE)
        return {
            "location": place.text if place else context_data.get("last_location"),
            "timeframe": context_data.get("last_timeframe") or "today",
        }
