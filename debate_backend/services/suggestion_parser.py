"""
Parsing of AI-check responses into objection suggestions.

The model is asked for a JSON array of ``{"category", "text"}`` objects, or
the literal ``null``. In practice it wraps the array in code fences and puts
raw newlines inside string values, so ``repair_and_parse`` cleans the text up
before decoding. Everything downstream works on the tagged result returned by
``parse_suggestions``.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Union

from debate_backend import config
from debate_backend.services.errors import UpstreamErrorKind

logger = logging.getLogger(__name__)

NO_ISSUES_SENTINEL = "no significant issues found"

_TEXT_VALUE = re.compile(r'"text":\s*"((?:[^"\\]|\\.)*)"', re.DOTALL)

# Applied in order after string values are escaped.
_WHITESPACE_RULES = (
    (re.compile(r"\n(\s*[}\]])"), r"\1"),
    (re.compile(r"\n(\s*,)"), r"\1"),
    (re.compile(r'\n(\s*"[^"]*":)'), r" \1"),
    (re.compile(r"\[\s*\n\s*"), "["),
    (re.compile(r"\{\s*\n\s*"), "{"),
    (re.compile(r",\s*\n\s*"), ", "),
    (re.compile(r"  +"), " "),
)


class ResponseRepairError(ValueError):
    """Raised when a response cannot be turned into JSON."""


@dataclass
class Suggestion:
    category: str
    text: str


@dataclass
class SuggestionsFound:
    suggestions: List[Suggestion]


@dataclass
class NoIssues:
    reason: str = ""


@dataclass
class ParseFailed:
    raw: str
    reason: str


@dataclass
class UpstreamFailed:
    kind: UpstreamErrorKind
    detail: str = ""


SuggestionResult = Union[SuggestionsFound, NoIssues, ParseFailed, UpstreamFailed]


def strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```json") and cleaned.endswith("```") and len(cleaned) >= 10:
        return cleaned[7:-3].strip()
    if cleaned.startswith("```") and cleaned.endswith("```") and len(cleaned) >= 6:
        return cleaned[3:-3].strip()
    return cleaned


def _escape_text_newlines(match) -> str:
    return '"text": "' + match.group(1).replace("\n", "\\n") + '"'


def repair_and_parse(raw: str) -> Any:
    """
    Decode a model response that is almost JSON.

    Steps: strip ``` / ```json fences, escape raw newlines inside ``"text"``
    values, then collapse newlines between tokens. Raises
    ``ResponseRepairError`` if the result still is not JSON.
    """
    cleaned = strip_code_fences(raw)
    cleaned = _TEXT_VALUE.sub(_escape_text_newlines, cleaned)
    for pattern, replacement in _WHITESPACE_RULES:
        cleaned = pattern.sub(replacement, cleaned)

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ResponseRepairError(f"{e.msg} at position {e.pos}") from e


def is_no_issues_response(text: str) -> bool:
    stripped = text.strip()
    return stripped == "null" or NO_ISSUES_SENTINEL in stripped.lower()


def filter_suggestions(items: List[Any], max_length: Optional[int] = None) -> List[Suggestion]:
    """Keep objects with string ``category`` and ``text`` whose text fits the objection limit."""
    limit = config.OBJECTION_CHAR_LIMIT if max_length is None else max_length
    kept = []
    for item in items:
        if not isinstance(item, dict):
            continue
        category = item.get("category")
        text = item.get("text")
        if not isinstance(category, str) or not isinstance(text, str):
            continue
        if len(text) > limit:
            continue
        kept.append(Suggestion(category=category, text=text))
    return kept


def parse_suggestions(raw: str) -> SuggestionResult:
    """
    Classify a raw model reply.

    Valid JSON that is not an array (a lone object, a string) is reported as
    ``ParseFailed`` rather than read as "no suggestions", so a malformed reply
    surfaces as an unparseable upstream error instead of a silent empty check.
    """
    if raw is None or is_no_issues_response(raw):
        return NoIssues(reason="model reported no significant issues")

    try:
        parsed = repair_and_parse(raw)
    except ResponseRepairError as e:
        logger.warning("Could not parse AI response: %s", e)
        return ParseFailed(raw=raw, reason=str(e))

    if parsed is None:
        return NoIssues(reason="model returned null")
    if not isinstance(parsed, list):
        return ParseFailed(raw=raw, reason=f"expected a JSON array, got {type(parsed).__name__}")

    suggestions = filter_suggestions(parsed)
    logger.info("Filtered suggestions: %d -> %d", len(parsed), len(suggestions))
    if not suggestions:
        return NoIssues(reason="no valid suggestions after filtering")
    return SuggestionsFound(suggestions=suggestions)
