"""Structured response parsing and shape normalization for agent output.

Model replies are free-form text that usually, but not always, embed a JSON
object. This module pulls that JSON out with a typed fallback and then maps
the loosely-shaped items onto the pipeline schemas. All field aliases the
agents accept are listed here and nowhere else.

Nothing in this module raises to its caller: malformed input degrades to the
fallback value or to dropped items.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from storyboard_swarm.schemas.page import (
    ConceptExplanation,
    Difficulty,
    ExtractedFact,
    FactCategory,
)

logger = logging.getLogger(__name__)


# Accepted field aliases, in priority order
CONCEPT_LIST_KEYS = ("concepts",)
CONCEPT_TERM_ALIASES = ("term", "concept", "name")
CONCEPT_DEFINITION_ALIASES = ("definition", "technical_definition")
CONCEPT_ANALOGY_ALIASES = ("beginner_analogy", "analogy")
CONCEPT_DIFFICULTY_ALIASES = ("difficulty",)

FACT_LIST_KEYS = ("facts", "extracted_facts")
FACT_TEXT_ALIASES = ("fact", "claim", "content")
FACT_CATEGORY_ALIASES = ("category", "type")
FACT_CONFIDENCE_ALIASES = ("confidence_score", "confidence")

DEFAULT_CONFIDENCE = 0.9

_DECODER = json.JSONDecoder()


def _decode_span(text: str, opener: str, closer: str) -> Any:
    """Decode the first ``opener ... closer`` span in ``text``.

    The greedy span (first opener to last closer) is tried first. If the model
    wrote prose containing the closer after the JSON, that span will not
    decode, so a balanced decode from the first opener is tried next.

    Raises:
        LookupError: If the text has no such span
        ValueError: If neither attempt decodes
    """
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end <= start:
        raise LookupError(f"no {opener}...{closer} span")

    try:
        return json.loads(text[start:end + 1])
    except ValueError:
        value, _ = _DECODER.raw_decode(text, start)
        return value


def extract_json(raw_text: Optional[str], fallback: Any = None) -> Any:
    """Best-effort extraction of a JSON value embedded in model text.

    The first JSON object is looked for first and the first JSON array only
    when the text holds no object span at all. Parse failure or absence of any
    match yields ``fallback`` unchanged. When ``fallback`` is a dict or a list
    and the decoded value is a different container type, ``fallback`` is
    returned as well.

    Args:
        raw_text: Model output
        fallback: Value returned when nothing usable is found

    Returns:
        Decoded JSON value or ``fallback``
    """
    if not raw_text:
        return fallback

    value = None
    found = False
    for opener, closer in (("{", "}"), ("[", "]")):
        try:
            value = _decode_span(raw_text, opener, closer)
            found = True
        except LookupError:
            continue
        except ValueError as e:
            logger.error(f"JSON parse error: {e}")
            return fallback
        break

    if not found:
        return fallback
    if isinstance(fallback, dict) and not isinstance(value, dict):
        return fallback
    if isinstance(fallback, list) and not isinstance(value, list):
        return fallback
    return value


def _first_present(item: Dict[str, Any], aliases: Sequence[str]) -> Any:
    for key in aliases:
        value = item.get(key)
        if value not in (None, ""):
            return value
    return None


def pick_list(parsed: Any, keys: Sequence[str]) -> List[Any]:
    """Return the first list found under ``keys``; a bare list is returned as is."""
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict):
        for key in keys:
            value = parsed.get(key)
            if isinstance(value, list):
                return value
    return []


def _coerce_difficulty(value: Any) -> str:
    text = str(value).strip().lower() if value is not None else ""
    allowed = {d.value for d in Difficulty}
    return text if text in allowed else Difficulty.MEDIUM.value


def _coerce_category(value: Any) -> str:
    text = str(value).strip().lower() if value is not None else ""
    allowed = {c.value for c in FactCategory}
    return text if text in allowed else FactCategory.GENERAL.value


def _coerce_confidence(value: Any) -> float:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if score != score:  # NaN
        return DEFAULT_CONFIDENCE
    return min(1.0, max(0.0, score))


def coerce_concepts(items: Sequence[Any]) -> List[ConceptExplanation]:
    """Normalize raw concept items into ConceptExplanation objects.

    Items that are not objects or have no term under any alias are dropped.
    """
    concepts: List[ConceptExplanation] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        term = _first_present(item, CONCEPT_TERM_ALIASES)
        if term is None:
            continue
        try:
            concepts.append(ConceptExplanation(
                term=str(term),
                definition=str(_first_present(item, CONCEPT_DEFINITION_ALIASES) or ""),
                beginner_analogy=str(_first_present(item, CONCEPT_ANALOGY_ALIASES) or ""),
                difficulty=_coerce_difficulty(_first_present(item, CONCEPT_DIFFICULTY_ALIASES))
            ))
        except ValidationError as e:
            logger.debug(f"Dropping concept item {item!r}: {e}")
    return concepts


def coerce_facts(items: Sequence[Any]) -> List[ExtractedFact]:
    """Normalize raw fact items into ExtractedFact objects.

    A fact object with no text under any alias is kept with its JSON
    serialization as the fact text. Bare strings become ``general`` facts.
    """
    facts: List[ExtractedFact] = []
    for item in items:
        if isinstance(item, str):
            if item.strip():
                facts.append(ExtractedFact(fact=item))
            continue
        if not isinstance(item, dict):
            continue
        text = _first_present(item, FACT_TEXT_ALIASES)
        if text is None:
            text = json.dumps(item, ensure_ascii=False)
        facts.append(ExtractedFact(
            fact=str(text),
            category=_coerce_category(_first_present(item, FACT_CATEGORY_ALIASES)),
            confidence_score=_coerce_confidence(_first_present(item, FACT_CONFIDENCE_ALIASES))
        ))
    return facts
