"""
Context Store — named, turn-scoped conversation memory plus bounded turn history.

Written by: intent fulfillment (output contexts), the orchestrator (turn records)
Read by: Scoring Engine (active context names), Follow-Up Resolver (context data)

Lifespan policy:
- advance_turn() runs once per completed turn, before that turn's output
  contexts are written.
- A context set during turn N with lifespan L is therefore visible during
  turns N+1 .. N+L and purged when turn N+L completes.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger

from dialogue_kernel.models.context import ContextEntry, TurnRecord


class ContextStore:
    """
    In-memory context store for one conversation session.
    Never shared between sessions.
    """

    def __init__(self, history_limit: int = 10):
        self.history_limit = history_limit
        self._contexts: Dict[str, ContextEntry] = {}
        self._history: List[TurnRecord] = []

    # --- Contexts ---

    def set(self, name: str, data: Optional[dict], lifespan: int = 2) -> None:
        """Create or replace a context entry."""
        if not name or not isinstance(name, str):
            raise ValueError("Context name must be a non-empty string")
        if lifespan < 0:
            raise ValueError("Lifespan must be non-negative")

        if lifespan == 0:
            # Zero-lifespan entries are never visible
            self._contexts.pop(name, None)
            return

        self._contexts[name] = ContextEntry(
            name=name,
            data=data or {},
            remaining_turns=lifespan,
            created_at=datetime.utcnow(),
        )
        logger.debug(f"Context '{name}' set with lifespan {lifespan}")

    def get(self, name: str) -> Optional[dict]:
        """Context data, or None if expired or unknown."""
        entry = self._contexts.get(name)
        if entry is None or entry.remaining_turns <= 0:
            return None
        return entry.data

    def get_active(self) -> List[str]:
        """Names of all contexts with turns remaining."""
        return [
            name for name, entry in self._contexts.items()
            if entry.remaining_turns > 0
        ]

    def is_active(self, name: str) -> bool:
        entry = self._contexts.get(name)
        return entry is not None and entry.remaining_turns > 0

    def get_all_active(self) -> Dict[str, dict]:
        """Map of active context name to data."""
        return {
            name: entry.data for name, entry in self._contexts.items()
            if entry.remaining_turns > 0
        }

    def delete(self, name: str) -> bool:
        """Drop a context immediately."""
        if name in self._contexts:
            del self._contexts[name]
            logger.debug(f"Context '{name}' deleted")
            return True
        return False

    def clear_all(self) -> None:
        count = len(self._contexts)
        self._contexts.clear()
        logger.debug(f"Cleared {count} contexts")

    def advance_turn(self) -> List[str]:
        """
        Decrement every entry's remaining turns by one and purge the ones
        that reach zero. Returns the names of purged contexts.
        """
        expired = []
        for name, entry in self._contexts.items():
            entry.remaining_turns = max(0, entry.remaining_turns - 1)
            if entry.remaining_turns == 0:
                expired.append(name)

        for name in expired:
            del self._contexts[name]
            logger.debug(f"Context '{name}' expired")

        return expired

    # --- Turn history ---

    def record_turn(self, record: TurnRecord) -> None:
        """Append a completed turn, keeping only the last history_limit."""
        self._history.append(record)
        if len(self._history) > self.history_limit:
            self._history = self._history[-self.history_limit:]

    def history(self) -> List[TurnRecord]:
        """Snapshot of the bounded turn history, oldest first."""
        return list(self._history)

    def recent_turns(self, count: int = 3) -> List[TurnRecord]:
        if count <= 0:
            return []
        return self._history[-count:]

    def last_intent_turn(self, intent_id: str) -> Optional[TurnRecord]:
        """Most recent turn in which the given intent was chosen."""
        for turn in reversed(self._history):
            if turn.chosen_intent_id == intent_id:
                return turn
        return None

    def last_mentioned(self, key: str) -> Optional[Any]:
        """
        Most recent value stored under key, looking at turn params first
        and result data second. Used for reference resolution
        ("What about tomorrow?" reusing the last location).
        """
        for turn in reversed(self._history):
            if turn.params.get(key):
                return turn.params[key]
            if turn.result_data and turn.result_data.get(key):
                return turn.result_data[key]
        return None

    def has_similar_recent_input(self, text: str, within_turns: int = 3) -> bool:
        """True if more than half the words of text appeared in one recent input."""
        words = text.lower().split()
        if not words:
            return False

        for turn in self.recent_turns(within_turns):
            turn_words = set(turn.input_text.lower().split())
            matches = sum(1 for w in words if w in turn_words)
            if matches / len(words) > 0.5:
                return True
        return False

    # --- Introspection ---

    def debug_info(self) -> dict:
        now = datetime.utcnow()
        return {
            "active_contexts": [
                {
                    "name": entry.name,
                    "remaining_turns": entry.remaining_turns,
                    "data": entry.data,
                    "age_seconds": round((now - entry.created_at).total_seconds(), 3),
                }
                for entry in self._contexts.values()
            ],
            "context_count": len(self._contexts),
            "turn_count": len(self._history),
            "recent_turns": [
                {
                    "input_text": t.input_text,
                    "chosen_intent_id": t.chosen_intent_id,
                    "timestamp": t.timestamp.isoformat(),
                }
                for t in self.recent_turns(3)
            ],
        }

    def reset(self) -> None:
        """Drop all contexts and history."""
        self._contexts.clear()
        self._history = []
        logger.debug("Context store reset")
