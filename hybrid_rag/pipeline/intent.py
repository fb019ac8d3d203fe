"""
Query understanding: rule-based intent extraction.

Splits a raw search query into
  * a "pure" semantic query for the vector index (filter words removed), and
  * structured predicates for the relational store.

Zero cost, no I/O.  Rules are data: each rule maps a set of trigger
phrases to one predicate, so new rules are additive and each rule is
independently testable.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from hybrid_rag.schemas.intent import Intent
from hybrid_rag.pipeline.predicates import parse_predicate
from hybrid_rag.utils.logging import get_logger

logger = get_logger("hybridrag.pipeline.intent")


@dataclass(frozen=True)
class IntentRule:
    triggers: tuple[str, ...]
    predicate: str
    strip: bool = True


# ── Calorie predicates referenced by conflict resolution ────────────
EXPLICIT_HIGH = "calories > 500"      # "high calorie"
EXPLICIT_LOW = "calories < 300"       # "low calorie"
QUALITATIVE_HEAVY = "calories > 400"  # "filling", "hearty", ...
QUALITATIVE_LIGHT = "calories < 350"  # "light", "small portion", ...


def _category(tag: str) -> str:
    return f"category @> ARRAY['{tag}']"


# Order matters: it is the order predicates appear in Intent.filters,
# and a rule only sees the query left over by the rules before it.
INTENT_RULES: tuple[IntentRule, ...] = (
    # ── Prep-time ──
    IntentRule(
        ("quick", "fast", "rapid", "instant", "speedy", "5 min", "10 min", "under 15"),
        "prep_time < 15",
    ),
    IntentRule(("slow cook", "long cook", "slow"), "prep_time > 30"),

    # ── Calorie / quantity ──
    IntentRule(("high calorie", "high-calorie", "high cal"), EXPLICIT_HIGH),
    IntentRule(("low calorie", "low-calorie", "low cal"), EXPLICIT_LOW),
    IntentRule(("filling", "hearty", "substantial", "heavy"), QUALITATIVE_HEAVY),
    IntentRule(
        ("light", "low quantity", "small portion", "small", "not too much", "not a lot"),
        QUALITATIVE_LIGHT,
    ),

    # ── Category ──
    IntentRule(("snack", "snacks"), _category("snack")),
    IntentRule(("breakfast",), _category("breakfast")),
    IntentRule(("dinner",), _category("dinner")),
    IntentRule(("italian",), _category("italian")),
    IntentRule(("indian",), _category("indian")),
    IntentRule(("comfort food", "comfort"), _category("comfort")),
    IntentRule(("japanese",), _category("japanese")),
    IntentRule(("asian",), _category("asian")),
    IntentRule(("salad",), _category("salad")),
)

# Connectors, politeness filler and generic nouns that only dilute the embedding
STOPWORDS: tuple[str, ...] = (
    "but", "and", "or", "for", "with", "that", "are", "is", "the", "a",
    "an", "of", "to", "in", "on", "at", "some", "me", "please", "give",
    "show", "want", "need", "find", "get", "recipe", "recipes", "dish",
    "dishes", "food", "foods", "meal", "meals", "something", "ideas",
)

MIN_SEMANTIC_LENGTH = 3

_MULTI_SPACE_RE = re.compile(r"\s{2,}")


def _phrase_regex(phrase: str) -> re.Pattern[str]:
    # Stripping is word-bounded so "light" never eats into "lightning"
    return re.compile(rf"\b{re.escape(phrase)}\b")


class IntentExtractor:
    """Turns a raw query into an :class:`Intent` using an ordered rule table."""

    def __init__(
        self,
        rules: tuple[IntentRule, ...] = INTENT_RULES,
        stopwords: tuple[str, ...] = STOPWORDS,
    ):
        self.rules = rules
        self._compiled = [
            (rule, [(phrase, _phrase_regex(phrase)) for phrase in rule.triggers])
            for rule in rules
        ]
        self._stop_re = re.compile(
            r"\b(" + "|".join(re.escape(w) for w in stopwords) + r")\b",
            re.IGNORECASE,
        )

    def scrub_stopwords(self, text: str) -> str:
        """Remove stop-words and collapse whitespace."""
        cleaned = self._stop_re.sub(" ", text)
        return _MULTI_SPACE_RE.sub(" ", cleaned).strip()

    def extract(self, query: str) -> Intent:
        lowered = query.lower()
        semantic = lowered
        filters: list[str] = []
        matched: list[str] = []

        for rule, phrases in self._compiled:
            for phrase, regex in phrases:
                # Plain substring test so plurals ("calories", "salads") still fire
                if phrase not in semantic:
                    continue
                if rule.predicate not in filters:
                    filters.append(rule.predicate)
                matched.append(phrase)
                if rule.strip:
                    semantic = regex.sub("", semantic).strip()
                break  # only the first phrase per rule is consumed

        semantic = self.scrub_stopwords(semantic)

        # Nothing meaningful left: fall back to the original minus generic words
        if len(semantic) < MIN_SEMANTIC_LENGTH:
            semantic = self.scrub_stopwords(lowered) or lowered.strip()

        resolved = resolve_conflicts(filters)

        logger.info(
            "[INTENT] semantic=%r | filters=%s | matched=%s",
            semantic, resolved or "None", matched,
        )
        return Intent(semantic_query=semantic, filters=resolved, matched_keywords=matched)


def resolve_conflicts(filters: list[str]) -> list[str]:
    """
    Remove contradictory and redundant calorie predicates.

    (a) explicit high + explicit low → both dropped (true contradiction)
    (b) qualitative heavy + qualitative light, no explicit high → heavy dropped
    (c) same column and direction → only the stricter bound survives
    """
    has_explicit_high = EXPLICIT_HIGH in filters
    has_explicit_low = EXPLICIT_LOW in filters
    has_heavy = QUALITATIVE_HEAVY in filters
    has_light = QUALITATIVE_LIGHT in filters

    result = list(filters)

    if has_explicit_high and has_explicit_low:
        result = [f for f in result if f not in (EXPLICIT_HIGH, EXPLICIT_LOW)]

    # The light/small signal is the hard portion filter; "filling" is left
    # to the semantic side.
    if has_heavy and has_light and not has_explicit_high:
        result = [f for f in result if f != QUALITATIVE_HEAVY]

    return _drop_redundant_bounds(result)


def _drop_redundant_bounds(filters: list[str]) -> list[str]:
    parsed = {f: parse_predicate(f) for f in filters}

    strictest: dict[tuple[str, str], float] = {}
    for pred in parsed.values():
        direction = pred.direction
        if direction is None:
            continue
        key = (pred.column, direction)
        best = strictest.get(key)
        if best is None:
            strictest[key] = pred.value
        elif direction == "upper":
            strictest[key] = min(best, pred.value)
        else:
            strictest[key] = max(best, pred.value)

    kept = []
    for f in filters:
        pred = parsed[f]
        direction = pred.direction
        if direction is not None and pred.value != strictest[(pred.column, direction)]:
            continue
        kept.append(f)
    return kept
