"""
Signal extraction boundary.

The kernel consumes linguistic signals through the SignalExtractor protocol
and never inspects raw text itself. LexiconSignalExtractor is the
deterministic default backend: small word lists and regular expressions,
no statistical models. Production deployments plug in a real tagger.
"""

import re
from datetime import date, datetime, timedelta
from typing import Awaitable, Callable, Iterable, List, Optional, Protocol, Set, Union

from dialogue_kernel.models.signals import Entity, EntityType, SignalBundle


class SignalExtractor(Protocol):
    """Protocol for signal extraction — pluggable backend."""

    def analyze(
        self,
        text: str,
        active_contexts: Iterable[str] = (),
    ) -> Union[SignalBundle, Awaitable[SignalBundle]]: ...


# --- Lexicons ---

_STOPWORDS = {
    "a", "an", "the", "this", "that", "these", "those", "my", "your", "our",
    "their", "his", "her", "its", "me", "you", "i", "we", "they", "he", "she",
    "it", "us", "them", "him", "what", "when", "where", "who", "why", "how",
    "which", "and", "or", "but", "so", "if", "then", "of", "in", "on", "at",
    "to", "for", "from", "with", "about", "by", "up", "down", "out", "into",
    "please", "some", "any", "there", "here", "just", "now", "also", "too",
    "very", "really", "s", "t", "ll", "d", "re", "ve", "m",
}

_AUXILIARIES = {
    "is": "be", "are": "be", "was": "be", "were": "be", "am": "be", "be": "be",
    "been": "be", "being": "be", "do": "do", "does": "do", "did": "do",
    "have": "have", "has": "have", "had": "have", "can": "can", "could": "can",
    "will": "will", "would": "will", "shall": "shall", "should": "shall",
    "may": "may", "might": "may", "must": "must",
}

_VERBS = {
    "tell", "show", "give", "set", "create", "add", "remind", "alert",
    "notify", "rain", "snow", "play", "stop", "pause", "resume", "read",
    "call", "take", "check", "get", "find", "need", "want", "know", "go",
    "make", "turn", "open", "close", "cancel", "delete", "remove", "help",
    "say", "start", "schedule", "change", "move", "look", "let", "send",
    "listen", "hear", "see", "watch", "walk", "wake", "sleep", "eat", "drink",
    "like", "love", "think", "repeat", "update", "list", "clear",
}

# Words that are as often nouns as verbs
_NOUN_VERBS = {"rain", "snow", "call", "alert", "play", "walk", "help", "list", "change"}

_IRREGULAR_VERBS = {
    "told": "tell", "showed": "show", "shown": "show", "gave": "give",
    "given": "give", "took": "take", "taken": "take", "got": "get",
    "found": "find", "knew": "know", "went": "go", "gone": "go",
    "made": "make", "said": "say", "saw": "see", "seen": "see", "ate": "eat",
    "drank": "drink", "woke": "wake", "slept": "sleep", "thought": "think",
    "heard": "hear", "sent": "send", "read": "read", "set": "set",
}

_ADJECTIVES = {
    "sunny", "cloudy", "rainy", "snowy", "windy", "stormy", "foggy", "humid",
    "hot", "cold", "warm", "cool", "chilly", "freezing", "good", "bad",
    "nice", "new", "old", "big", "small", "loud", "quiet", "happy", "sad",
    "tired", "late", "early", "current", "latest", "local",
}

_NEGATIONS = {"not", "no", "never", "nothing", "nobody", "none", "nowhere", "neither", "nor"}

_QUESTION_STARTERS = {
    "what", "when", "where", "who", "why", "how", "which", "whose",
    "is", "are", "was", "were", "do", "does", "did", "can", "could",
    "will", "would", "should", "shall", "may", "might", "have", "has",
}

_FAMILY_TERMS = [
    "son-in-law", "daughter-in-law", "granddaughter", "grandson", "grandchild",
    "daughter", "son", "wife", "husband", "brother", "sister", "mother",
    "father", "mom", "dad", "grandma", "grandpa",
]

_WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

_MONTHS = {
    "january", "february", "march", "april", "may", "june", "july",
    "august", "september", "october", "november", "december",
}

_NUMBER_WORDS = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11,
    "twelve": 12, "fifteen": 15, "twenty": 20, "thirty": 30, "forty": 40,
    "fifty": 50, "sixty": 60, "hundred": 100,
}

_PLURAL_EXCEPTIONS = {"news", "series", "species", "glasses", "always", "this", "is", "was", "its", "yes"}

# --- Patterns ---

_TOKEN_RE = re.compile(r"[a-z]+(?:-[a-z]+)*|\d+(?:[.:]\d+)?")

_DATE_RE = re.compile(
    r"\b(today|tonight|tomorrow|yesterday"
    r"|(?:next|this|last) (?:week|weekend|month|year|morning|afternoon|evening|"
    + "|".join(_WEEKDAYS) + r")"
    r"|(?:on )?(?:" + "|".join(_WEEKDAYS) + r"))\b"
)

_CLOCK_RE = re.compile(r"\b(\d{1,2})(?::(\d{2}))?\s*(am|pm)\b|\b(\d{1,2}):(\d{2})\b")

_RELATIVE_TIME_RE = re.compile(r"\bin (\d+|an?|one|two|three|five|ten|fifteen|twenty|thirty) (minute|hour)s?\b")

_NAMED_TIME_RE = re.compile(r"\b(noon|midnight)\b")

_PLACE_RE = re.compile(
    r"\b(?:in|at|for|to|about|from|near)\s+((?:[A-Z][a-zA-Z]+)(?:\s+[A-Z][a-zA-Z]+)*)"
)

_CAPITALIZED_RE = re.compile(r"\b[A-Z][a-z]+\b")

_FUTURE_RE = re.compile(r"\b(will|shall|gonna|going to)\b|'ll\b")

_PAST_RE = re.compile(r"\b(was|were|did|yesterday|ago|had)\b")


def _lemmatize_verb(word: str) -> Optional[str]:
    """Base form of a known verb, or None."""
    if word in _IRREGULAR_VERBS:
        return _IRREGULAR_VERBS[word]
    if word in _VERBS:
        return word
    for suffix, replacement in (("ies", "y"), ("ing", ""), ("ing", "e"), ("ed", ""),
                                ("ed", "e"), ("es", ""), ("s", "")):
        if word.endswith(suffix):
            base = word[: -len(suffix)] + replacement
            if base in _VERBS:
                return base
            # Doubled consonant: "stopped", "setting"
            if len(base) > 2 and base[-1] == base[-2] and base[:-1] in _VERBS:
                return base[:-1]
    return None


def _singularize(word: str) -> str:
    if word in _PLURAL_EXCEPTIONS or len(word) <= 3:
        return word
    if word.endswith("ies"):
        return word[:-3] + "y"
    if word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def _number_value(token: str):
    if token in _NUMBER_WORDS:
        return _NUMBER_WORDS[token]
    try:
        return int(token)
    except ValueError:
        return float(token)


class LexiconSignalExtractor:
    """
    Deterministic signal extractor for the prototype.
    Tags words with fixed lexicons rather than a statistical model.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or datetime.now

    def analyze(self, text: str, active_contexts: Iterable[str] = ()) -> SignalBundle:
        """Extract all available signals from one utterance."""
        if not text or not isinstance(text, str) or not text.strip():
            raise ValueError("Input text must be a non-empty string")

        raw = text.strip()
        normalized = raw.lower()
        expanded = self._expand_contractions(normalized)
        tokens = _TOKEN_RE.findall(expanded)

        entities = self._extract_entities(raw, normalized)
        entity_words = {
            w for e in entities if e.type in (EntityType.PLACE, EntityType.PERSON)
            for w in e.text.lower().split()
        }

        nouns: Set[str] = set()
        verbs: Set[str] = set()
        adjectives: Set[str] = set()

        for i, token in enumerate(tokens):
            if token[0].isdigit() or token in _NUMBER_WORDS:
                continue
            if token in _AUXILIARIES:
                verbs.add(_AUXILIARIES[token])
                continue
            if token in _STOPWORDS or token in _NEGATIONS:
                continue
            if token in _ADJECTIVES:
                adjectives.add(token)
                continue

            if token in entity_words:
                nouns.add(token)
                continue

            lemma = _lemmatize_verb(token)
            if lemma is not None:
                verbs.add(lemma)
                # "will it rain", "the snow": only a sentence-initial use is purely a verb
                if lemma in _NOUN_VERBS and i > 0:
                    nouns.add(lemma)
                continue

            nouns.add(_singularize(token))

        first = tokens[0] if tokens else ""
        if first == "please" and len(tokens) > 1:
            first = tokens[1]

        is_question = raw.endswith("?") or first in _QUESTION_STARTERS
        is_command = (
            not is_question
            and first not in _AUXILIARIES
            and _lemmatize_verb(first) == first
        )

        return SignalBundle(
            raw_text=raw,
            normalized_text=normalized,
            nouns=frozenset(nouns),
            verbs=frozenset(verbs),
            adjectives=frozenset(adjectives),
            entities=entities,
            is_question=is_question,
            is_command=is_command,
            has_negation=self._has_negation(tokens, normalized),
            has_future=bool(_FUTURE_RE.search(normalized)),
            has_past=bool(_PAST_RE.search(expanded)) or any(
                t.endswith("ed") and _lemmatize_verb(t) not in (None, t) for t in tokens
            ),
            word_count=len(raw.split()),
            active_contexts=frozenset(active_contexts),
        )

    # --- Helpers ---

    def _expand_contractions(self, text: str) -> str:
        text = text.replace("’", "'")
        text = re.sub(r"\b(can)'t\b", r"\1 not", text)
        text = re.sub(r"\bwon't\b", "will not", text)
        text = re.sub(r"n't\b", " not", text)
        text = re.sub(r"'s\b", " is", text)
        text = re.sub(r"'re\b", " are", text)
        text = re.sub(r"'m\b", " am", text)
        text = re.sub(r"'ll\b", " will", text)
        text = re.sub(r"'ve\b", " have", text)
        text = re.sub(r"'d\b", " would", text)
        return text

    def _has_negation(self, tokens: List[str], normalized: str) -> bool:
        return any(t in _NEGATIONS for t in tokens) or "n't" in normalized

    def _extract_entities(self, raw: str, normalized: str) -> List[Entity]:
        entities: List[Entity] = []
        consumed: List[range] = []

        for match in _DATE_RE.finditer(normalized):
            phrase = match.group(1)
            entities.append(Entity(
                type=EntityType.DATE,
                text=raw[match.start(1):match.end(1)],
                value=self._resolve_date(phrase),
            ))

        for match in _CLOCK_RE.finditer(normalized):
            consumed.append(range(match.start(), match.end()))
            if match.group(3):
                hour, minute, meridiem = int(match.group(1)), int(match.group(2) or 0), match.group(3)
                if meridiem == "pm" and hour < 12:
                    hour += 12
                if meridiem == "am" and hour == 12:
                    hour = 0
            else:
                hour, minute = int(match.group(4)), int(match.group(5))
            if hour < 24 and minute < 60:
                entities.append(Entity(
                    type=EntityType.TIME,
                    text=raw[match.start():match.end()],
                    value=f"{hour:02d}:{minute:02d}",
                ))

        for match in _RELATIVE_TIME_RE.finditer(normalized):
            consumed.append(range(match.start(), match.end()))
            amount = match.group(1)
            count = 1 if amount in ("a", "an") else _number_value(amount)
            delta = (
                timedelta(minutes=count) if match.group(2) == "minute"
                else timedelta(hours=count)
            )
            entities.append(Entity(
                type=EntityType.TIME,
                text=raw[match.start():match.end()],
                value=delta,
            ))

        for match in _NAMED_TIME_RE.finditer(normalized):
            entities.append(Entity(
                type=EntityType.TIME,
                text=raw[match.start():match.end()],
                value="12:00" if match.group(1) == "noon" else "00:00",
            ))

        for match in re.finditer(r"\b\d+(?:\.\d+)?\b|\b[a-z]+\b", normalized):
            token = match.group(0)
            if any(match.start() in r for r in consumed):
                continue
            if token[0].isdigit() or token in _NUMBER_WORDS:
                entities.append(Entity(
                    type=EntityType.NUMBER,
                    text=raw[match.start():match.end()],
                    value=_number_value(token),
                ))

        place_words: Set[str] = set()
        for match in _PLACE_RE.finditer(raw):
            phrase = match.group(1)
            lowered = phrase.lower()
            if lowered in _WEEKDAYS or lowered in _MONTHS or lowered in _NUMBER_WORDS:
                continue
            place_words.update(phrase.split())
            entities.append(Entity(type=EntityType.PLACE, text=phrase))

        for term in _FAMILY_TERMS:
            if re.search(rf"\b{re.escape(term)}\b", normalized):
                entities.append(Entity(type=EntityType.PERSON, text=term))

        for match in _CAPITALIZED_RE.finditer(raw):
            word = match.group(0)
            lowered = word.lower()
            if match.start() == 0 or word in place_words:
                continue
            if (lowered in _WEEKDAYS or lowered in _MONTHS or lowered in _STOPWORDS
                    or lowered in _VERBS or lowered in _AUXILIARIES):
                continue
            entities.append(Entity(type=EntityType.PERSON, text=word))

        return entities

    def _resolve_date(self, phrase: str) -> Optional[date]:
        """Calendar date for single-day expressions; None for ranges like "next week"."""
        today = self._clock().date()
        phrase = phrase.replace("on ", "")

        if phrase in ("today", "tonight") or phrase.startswith("this ") and phrase.split()[1] in (
            "morning", "afternoon", "evening"
        ):
            return today
        if phrase == "tomorrow":
            return today + timedelta(days=1)
        if phrase == "yesterday":
            return today - timedelta(days=1)

        words = phrase.split()
        weekday = words[-1]
        if weekday in _WEEKDAYS:
            delta = (_WEEKDAYS.index(weekday) - today.weekday()) % 7
            if words[0] == "next":
                delta = delta or 7
            elif words[0] == "last":
                delta = delta - 7 if delta else -7
            return today + timedelta(days=delta)
        return None
