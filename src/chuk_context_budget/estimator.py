# chuk_context_budget/estimator.py
"""
Approximate token estimation.

The estimator is tokenizer-free: one token is counted for every
``CHARS_PER_TOKEN`` characters of text (rounded up). This tends to slightly
over-count English prose and source code against BPE tokenizers such as
``cl100k_base``. It is not meant to match any vendor tokenizer exactly; see
:mod:`chuk_context_budget.calibration` for measuring the error ratio against
a reference tokenizer.

Properties relied on elsewhere:

- pure and deterministic
- ``estimate_tokens(c) >= 0``
- monotone: ``estimate_tokens(a + b) >= estimate_tokens(a)``
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from typing import Any, Protocol

from chuk_context_budget.exceptions import EstimationError

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4

# Role markers and separators the backend adds around each segment
SEGMENT_OVERHEAD_TOKENS = 4


class _HasText(Protocol):
    text: str


def estimate_tokens(content: str | bytes) -> int:
    """
    Estimate the number of tokens in ``content``.

    Args:
        content: Text, or raw bytes treated as opaque data.

    Returns:
        Approximate token count (never negative).

    Raises:
        EstimationError: If ``content`` is not text/bytes or is text that
            cannot be encoded as UTF-8.
    """
    if isinstance(content, str):
        try:
            content.encode("utf-8")
        except UnicodeEncodeError as e:
            raise EstimationError(f"Content is not valid UTF-8 text: {e.reason}", content_type="str") from e
        length = len(content)
    elif isinstance(content, (bytes, bytearray, memoryview)):
        length = len(bytes(content))
    else:
        raise EstimationError(
            f"Cannot estimate tokens for {type(content).__name__}",
            content_type=type(content).__name__,
        )
    return math.ceil(length / CHARS_PER_TOKEN)


def estimate_bytes_fallback(content: Any) -> int:
    """Byte-length heuristic used when :func:`estimate_tokens` rejects content."""
    if isinstance(content, (bytes, bytearray, memoryview)):
        size = len(bytes(content))
    else:
        size = len(str(content).encode("utf-8", "surrogatepass"))
    return math.ceil(size / CHARS_PER_TOKEN)


def estimate_tokens_safe(content: Any) -> int:
    """Estimate tokens, falling back to the byte-length heuristic on malformed input."""
    try:
        return estimate_tokens(content)
    except EstimationError as e:
        fallback = estimate_bytes_fallback(content)
        logger.warning(f"Token estimation failed ({e}); using byte-length fallback of {fallback} tokens")
        return fallback


def estimate_segments(segments: Iterable[_HasText]) -> int:
    """Estimate the size of a role-tagged request, including per-segment overhead."""
    total = 0
    for segment in segments:
        total += SEGMENT_OVERHEAD_TOKENS + estimate_tokens_safe(segment.text)
    return total
