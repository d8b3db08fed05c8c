"""
Tolerant JSON extraction for Gemini diagnosis replies.

The model is asked for pure JSON but sometimes wraps it in commentary or
markdown fences. Recovery is a fixed chain of strategies; no attempt is made
to repair JSON that is itself invalid.
"""
import json
import re
import logging
from typing import Callable, Optional

from .errors import MalformedResponse

logger = logging.getLogger(__name__)

_JSON_FENCE = re.compile(r'```json\s*([\s\S]*?)\s*```')
_ANY_FENCE = re.compile(r'```\s*([\s\S]*?)\s*```')
_BRACE_SPAN = re.compile(r'\{[\s\S]*\}')


def from_raw(text: str) -> Optional[str]:
    return text


def from_json_fence(text: str) -> Optional[str]:
    match = _JSON_FENCE.search(text)
    return match.group(1) if match else None


def from_any_fence(text: str) -> Optional[str]:
    match = _ANY_FENCE.search(text)
    return match.group(1) if match else None


def from_brace_span(text: str) -> Optional[str]:
    """First '{' through last '}'; nested or multiple objects are not split."""
    match = _BRACE_SPAN.search(text)
    return match.group(0) if match else None


STRATEGIES: list[tuple[str, Callable[[str], Optional[str]]]] = [
    ("direct", from_raw),
    ("json fence", from_json_fence),
    ("code fence", from_any_fence),
    ("brace span", from_brace_span),
]


def _parse_object(candidate: str) -> dict:
    value = json.loads(candidate)
    if not isinstance(value, dict):
        raise ValueError(f"expected a JSON object, got {type(value).__name__}")
    return value


def extract_json(text: str) -> dict:
    """Recover a JSON object from a model reply.

    Strategies run in order (direct parse, ```json fence, bare ``` fence,
    outermost brace span) and the first one that yields an object wins.

    Raises:
        MalformedResponse: carrying the direct-parse error message when no
            strategy succeeds
    """
    first_error: Optional[str] = None
    for name, strategy in STRATEGIES:
        candidate = strategy(text)
        if candidate is None:
            continue
        try:
            result = _parse_object(candidate)
        except ValueError as e:
            # json.JSONDecodeError is a ValueError subclass
            if first_error is None:
                first_error = str(e)
            logger.debug(f"JSON extraction via {name} failed: {e}")
            continue
        if name != "direct":
            logger.info(f"JSON recovered from model reply via {name}")
        return result

    logger.error(f"All JSON extraction attempts failed. Raw text: {text[:500]}...")
    raise MalformedResponse(first_error or "no JSON found")
