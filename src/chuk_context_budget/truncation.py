# chuk_context_budget/truncation.py
"""
Head/tail truncation for oversized items (typically tool output).

Result layout for text that has to be split::

    [first head_lines lines]
    [... omitted X of Y lines (Z bytes) ...]
    [last tail_lines lines]

Rules:

1. Content within both the byte and line caps is returned unchanged.
2. Text with at most ``head_lines + tail_lines + 1`` lines is never split;
   if it is still over the byte cap it is cut by bytes with a single
   ``[... truncated N bytes ...]`` marker.
3. After a split the byte cap is checked again and, if needed, the result is
   cut by bytes on a UTF-8 character boundary. When that cut would reach
   into the omission marker, the byte marker replaces it, so exactly one
   marker remains.
4. Bytes are opaque and only ever cut by byte count.

Every result fits ``max_bytes``. The line cap only decides when to split: a
split result has ``head_lines + tail_lines + 1`` lines (the marker line is
extra), so with the defaults (256 lines, 128 + 128) it has 257 lines, and
input of that length is returned as is. Applying the same parameters again
returns any result unchanged.

Usage::

    from chuk_context_budget.truncation import truncate

    result = truncate(output, max_bytes=10240, max_lines=256, head_lines=128, tail_lines=128)
    if result.was_truncated:
        ...
"""

from __future__ import annotations

import logging
from typing import NamedTuple

from chuk_context_budget.models.window_config import WindowConfig

logger = logging.getLogger(__name__)

OMISSION_MARKER = "[... omitted {omitted} of {total} lines ({omitted_bytes} bytes) ...]"
LENGTH_MARKER = " [... truncated {dropped} bytes ...]"


class TruncationResult(NamedTuple):
    """Bounded content plus whether anything was removed."""

    content: str | bytes
    was_truncated: bool


def truncate(
    content: str | bytes,
    max_bytes: int,
    max_lines: int,
    head_lines: int,
    tail_lines: int,
) -> TruncationResult:
    """
    Bound ``content`` to ``max_bytes`` and (where splitting applies) ``max_lines``.

    Args:
        content: Text, or bytes treated as opaque data.
        max_bytes: Byte cap (UTF-8 size for text).
        max_lines: Line cap.
        head_lines: Leading lines kept verbatim when splitting.
        tail_lines: Trailing lines kept verbatim when splitting.

    Returns:
        TruncationResult with the bounded content and a truncation flag.
    """
    if max_bytes <= 0:
        raise ValueError("max_bytes must be positive")
    if head_lines < 0 or tail_lines < 0:
        raise ValueError("head_lines and tail_lines must not be negative")

    if isinstance(content, (bytes, bytearray, memoryview)):
        return _truncate_bytes(bytes(content), max_bytes)
    if not isinstance(content, str):
        raise TypeError(f"Cannot truncate {type(content).__name__}")

    encoded = content.encode("utf-8", "surrogatepass")
    lines = content.split("\n")
    total_lines = len(lines)

    if len(encoded) <= max_bytes and total_lines <= max_lines:
        return TruncationResult(content, False)

    if total_lines <= head_lines + tail_lines + 1:
        if len(encoded) <= max_bytes:
            return TruncationResult(content, False)
        return TruncationResult(_truncate_text_by_bytes(encoded, max_bytes), True)

    head = lines[:head_lines]
    tail = lines[total_lines - tail_lines :] if tail_lines else []
    omitted = lines[head_lines : total_lines - tail_lines]
    omitted_bytes = len("\n".join(omitted).encode("utf-8", "surrogatepass"))
    marker = OMISSION_MARKER.format(omitted=len(omitted), total=total_lines, omitted_bytes=omitted_bytes)

    head_text = "\n".join([*head, marker])
    result = "\n".join([head_text, *tail]) if tail else head_text
    result_bytes = result.encode("utf-8", "surrogatepass")
    if len(result_bytes) > max_bytes:
        logger.debug(f"Head/tail result still {len(result_bytes)} bytes; cutting to {max_bytes}")
        if len(head_text.encode("utf-8", "surrogatepass")) <= max_bytes:
            result = _cut_utf8(result_bytes, max_bytes)
        else:
            # The cut would drop the omission marker; mark the cut instead
            result = _truncate_text_by_bytes(result_bytes, max_bytes, original_size=len(encoded))

    logger.debug(f"Truncated {total_lines} lines / {len(encoded)} bytes, omitted {len(omitted)} lines")
    return TruncationResult(result, True)


def _truncate_text_by_bytes(encoded: bytes, max_bytes: int, original_size: int | None = None) -> str:
    if original_size is None:
        original_size = len(encoded)
    # Reserve room for the widest marker this content could need
    marker_budget = len(LENGTH_MARKER.format(dropped=original_size))
    keep = max_bytes - marker_budget
    if keep <= 0:
        return _cut_utf8(encoded, max_bytes)
    kept = _cut_utf8(encoded, keep)
    dropped = original_size - len(kept.encode("utf-8", "surrogatepass"))
    return kept + LENGTH_MARKER.format(dropped=dropped)


def _truncate_bytes(data: bytes, max_bytes: int) -> TruncationResult:
    if len(data) <= max_bytes:
        return TruncationResult(data, False)
    marker_budget = len(LENGTH_MARKER.format(dropped=len(data)))
    keep = max_bytes - marker_budget
    if keep <= 0:
        return TruncationResult(data[:max_bytes], True)
    dropped = len(data) - keep
    return TruncationResult(data[:keep] + LENGTH_MARKER.format(dropped=dropped).encode("ascii"), True)


def _cut_utf8(data: bytes, limit: int) -> str:
    """Cut encoded text to at most ``limit`` bytes without splitting a character."""
    return data[:limit].decode("utf-8", "ignore")


class TruncationPolicy:
    """Truncation caps bound from a :class:`WindowConfig`."""

    def __init__(
        self,
        max_bytes: int,
        max_lines: int,
        head_lines: int,
        tail_lines: int,
    ) -> None:
        self.max_bytes = max_bytes
        self.max_lines = max_lines
        self.head_lines = head_lines
        self.tail_lines = tail_lines

    @classmethod
    def from_config(cls, config: WindowConfig) -> TruncationPolicy:
        return cls(
            max_bytes=config.max_output_bytes,
            max_lines=config.max_output_lines,
            head_lines=config.head_lines,
            tail_lines=config.tail_lines,
        )

    def apply(self, content: str | bytes) -> TruncationResult:
        """Truncate ``content`` with this policy's caps."""
        return truncate(content, self.max_bytes, self.max_lines, self.head_lines, self.tail_lines)

    def apply_text(self, content: str | bytes) -> tuple[str, bool]:
        """Truncate and return text suitable for a ledger item."""
        result = self.apply(content)
        text = result.content
        if isinstance(text, bytes):
            text = text.decode("utf-8", "replace")
        return text, result.was_truncated
