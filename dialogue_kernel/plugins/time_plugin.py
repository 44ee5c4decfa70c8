"""Time plugin: answers "What time is it?"."""

from datetime import datetime
from typing import Callable, List, Optional

from dialogue_kernel.models.intent import (
    AntiPattern,
    Booster,
    FlagCondition,
    FulfillmentResult,
    IntentDefinition,
    TermCondition,
    TermMatcher,
)
from dialogue_kernel.models.signals import SignalFlag


class TimePlugin:
    id = "time"
    name = "Time"

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or datetime.now

    def intent_definitions(self) -> List[IntentDefinition]:
        return [
            IntentDefinition(
                id="time_query",
                label="Check the time",
                required_rules=[TermMatcher(nouns=["time", "clock", "hour"])],
                boosters=[
                    Booster(condition=FlagCondition(flag=SignalFlag.IS_QUESTION), weight=0.2),
                    Booster(
                        condition=TermCondition(matcher=TermMatcher(verbs=["tell", "show", "give"])),
                        weight=0.1,
                    ),
                ],
                anti_patterns=[
                    AntiPattern(
                        matcher=TermMatcher(nouns=["weather", "reminder", "alarm"]),
                        penalty=-0.5,
                    ),
                ],
                fulfill=self.fulfill,
            )
        ]

    def fulfill(self, params: dict) -> FulfillmentResult:
        now = self._clock()
        time_str = now.strftime("%I:%M %p").lstrip("0")
        return FulfillmentResult(
            text=f"It's {time_str}",
            data={
                "time": time_str,
                "timestamp": now.isoformat(),
                "hour": now.hour,
                "minute": now.minute,
            },
        )
