"""
ScriptScope Output Normalizer

Turns provider text that is nominally JSON into structured data. The text
passes through named repair steps; each step that changes the text records
itself in repairs_applied. Nothing here raises: text that cannot be
recovered degrades to a {"_text": ...} fallback.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from scriptscope.core.logging_config import get_logger
from scriptscope.analysis.models import NormalizedResult

logger = get_logger("analysis.normalizer")

_LEADING_FENCE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\r?\n?")
_TRAILING_FENCE = re.compile(r"\r?\n?[ \t]*```\s*$")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)(\s*):")
_CLOSERS = {"{": "}", "[": "]"}


def _string_end(text: str, start: int) -> int:
    """Index just past the double-quoted string opening at start."""
    i = start + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
        elif ch == '"':
            return i + 1
        else:
            i += 1
    return len(text)


def _sub_outside_strings(pattern: re.Pattern, replacement: str, text: str) -> str:
    """Apply a regex substitution only to text outside double-quoted strings."""
    parts = []
    segment_start = 0
    i = 0
    while i < len(text):
        if text[i] == '"':
            parts.append(pattern.sub(replacement, text[segment_start:i]))
            end = _string_end(text, i)
            parts.append(text[i:end])
            segment_start = i = end
        else:
            i += 1
    parts.append(pattern.sub(replacement, text[segment_start:]))
    return "".join(parts)


# =============================================================================
# REPAIR STEPS
# =============================================================================

def strip_code_fences(text: str) -> str:
    """Remove a markdown fence the text opens and/or closes with."""
    stripped = text.strip()
    stripped = _LEADING_FENCE.sub("", stripped, count=1)
    stripped = _TRAILING_FENCE.sub("", stripped, count=1)
    return stripped.strip()


def slice_json_span(text: str) -> Optional[str]:
    """
    Slice from the first opening bracket to the last matching closer.

    Returns None when the text has no opening bracket at all. When the
    closer is missing the slice runs to the end of the text and is left to
    balance_brackets.
    """
    brace = text.find("{")
    bracket = text.find("[")
    candidates = [i for i in (brace, bracket) if i != -1]
    if not candidates:
        return None
    start = min(candidates)
    end = text.rfind(_CLOSERS[text[start]])
    if end < start:
        return text[start:]
    return text[start:end + 1]


def convert_single_quotes(text: str) -> str:
    """Rewrite single-quoted strings as double-quoted JSON strings."""
    out = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            end = _string_end(text, i)
            out.append(text[i:end])
            i = end
        elif ch == "'":
            j = i + 1
            buf = []
            while j < n and text[j] != "'":
                if text[j] == "\\" and j + 1 < n:
                    buf.append("'" if text[j + 1] == "'" else text[j:j + 2])
                    j += 2
                    continue
                buf.append('\\"' if text[j] == '"' else text[j])
                j += 1
            out.append('"' + "".join(buf) + '"')
            i = j + 1
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def remove_trailing_commas(text: str) -> str:
    return _sub_outside_strings(_TRAILING_COMMA, r"\1", text)


def quote_bare_keys(text: str) -> str:
    return _sub_outside_strings(_BARE_KEY, r'\1"\2"\3:', text)


def balance_brackets(text: str) -> str:
    """Close an unterminated string and append any missing closers."""
    stack: List[str] = []
    in_string = False
    i = 0
    while i < len(text):
        ch = text[i]
        if in_string:
            if ch == "\\":
                i += 1
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(_CLOSERS[ch])
        elif ch in ("}", "]") and stack and stack[-1] == ch:
            stack.pop()
        i += 1

    if not stack and not in_string:
        return text
    body = text + '"' if in_string else text.rstrip()
    if body.endswith(","):
        body = body[:-1]
    return body + "".join(reversed(stack))


@dataclass(frozen=True)
class RepairStep:
    """A named text transformation and the message logged when it applies."""
    name: str
    apply: Callable[[str], str]
    message: str


DEFAULT_REPAIR_STEPS: Tuple[RepairStep, ...] = (
    RepairStep("convert_single_quotes", convert_single_quotes, "converted single quotes to double quotes"),
    RepairStep("remove_trailing_commas", remove_trailing_commas, "removed trailing commas"),
    RepairStep("quote_bare_keys", quote_bare_keys, "quoted bare keys"),
    RepairStep("balance_brackets", balance_brackets, "appended missing closing brackets"),
)


def _try_parse(text: str) -> Tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except (json.JSONDecodeError, RecursionError):
        return False, None


class OutputNormalizer:
    """Fence stripping and span slicing, then repair steps if parsing fails."""

    def __init__(self, repair_steps: Optional[Tuple[RepairStep, ...]] = None):
        self.repair_steps = tuple(repair_steps) if repair_steps is not None else DEFAULT_REPAIR_STEPS

    def normalize(self, raw: Any) -> NormalizedResult:
        if isinstance(raw, (dict, list)):
            return NormalizedResult(data=raw, success=True)

        original = "" if raw is None else str(raw)
        trimmed = original.strip()
        repairs: List[str] = []

        text = strip_code_fences(trimmed)
        if text != trimmed:
            repairs.append("stripped code fences")

        sliced = slice_json_span(text)
        if sliced is None:
            return self._fallback(trimmed, "no opening bracket")
        if sliced != text:
            repairs.append("sliced JSON span")
        text = sliced

        ok, data = _try_parse(text)
        if not ok:
            for step in self.repair_steps:
                repaired = step.apply(text)
                if repaired != text:
                    repairs.append(step.message)
                    text = repaired
            ok, data = _try_parse(text)

        if not ok:
            return self._fallback(trimmed, "unparseable after repairs")

        if repairs:
            logger.debug(f"Normalized output with repairs: {', '.join(repairs)}")
        return NormalizedResult(
            data=data,
            success=True,
            repaired=bool(repairs),
            repairs_applied=repairs,
        )

    def _fallback(self, trimmed: str, reason: str) -> NormalizedResult:
        logger.debug(f"Falling back to text output ({reason})")
        return NormalizedResult(data={"_text": trimmed}, success=False, is_text=True)


_default_normalizer = OutputNormalizer()


def normalize(raw: Any) -> NormalizedResult:
    """Normalize provider output with the shared default pipeline."""
    return _default_normalizer.normalize(raw)
