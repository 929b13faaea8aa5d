# tests/test_estimator.py
"""
Tests for approximate token estimation.

Covers:
- Character-ratio estimates for text and bytes
- Non-negativity and monotonicity under concatenation
- EstimationError on malformed input and the byte-length fallback
- Segment estimates with per-segment overhead
"""

import random
import string

import pytest

from chuk_context_budget.backend import MessageRole, Segment
from chuk_context_budget.estimator import (
    CHARS_PER_TOKEN,
    SEGMENT_OVERHEAD_TOKENS,
    estimate_bytes_fallback,
    estimate_segments,
    estimate_tokens,
    estimate_tokens_safe,
)
from chuk_context_budget.exceptions import EstimationError


def _random_texts(count: int = 200, seed: int = 7) -> list[str]:
    rng = random.Random(seed)
    alphabet = string.ascii_letters + string.digits + " \n\t.,;:()[]{}éß漢字🙂"
    return ["".join(rng.choice(alphabet) for _ in range(rng.randint(0, 300))) for _ in range(count)]


class TestEstimateTokens:
    def test_empty_is_zero(self):
        assert estimate_tokens("") == 0

    def test_exact_multiple(self):
        assert estimate_tokens("x" * 400) == 100

    def test_rounds_up(self):
        assert estimate_tokens("abc") == 1
        assert estimate_tokens("x" * (CHARS_PER_TOKEN + 1)) == 2

    def test_bytes_measured_by_length(self):
        assert estimate_tokens(b"\x00\xff" * 8) == 4

    def test_deterministic(self):
        text = "The quick brown fox jumps over the lazy dog."
        assert estimate_tokens(text) == estimate_tokens(text)

    def test_never_negative(self):
        for text in _random_texts():
            assert estimate_tokens(text) >= 0

    def test_monotonic_under_concatenation(self):
        texts = _random_texts()
        for first, second in zip(texts, reversed(texts), strict=True):
            combined = estimate_tokens(first + second)
            assert combined >= estimate_tokens(first)
            assert combined >= estimate_tokens(second)

    def test_large_content_is_not_an_error(self):
        assert estimate_tokens("a" * 5_000_000) == 1_250_000


class TestMalformedInput:
    def test_non_text_raises(self):
        with pytest.raises(EstimationError) as exc_info:
            estimate_tokens(12345)  # type: ignore[arg-type]
        assert exc_info.value.content_type == "int"

    def test_lone_surrogate_raises(self):
        with pytest.raises(EstimationError):
            estimate_tokens("ok \ud800 broken")

    def test_safe_falls_back_to_byte_length(self):
        text = "ok \ud800 broken"
        assert estimate_tokens_safe(text) == estimate_bytes_fallback(text)
        assert estimate_tokens_safe(text) > 0

    def test_safe_passes_through_valid_text(self):
        assert estimate_tokens_safe("x" * 40) == 10

    def test_fallback_handles_arbitrary_objects(self):
        assert estimate_bytes_fallback({"a": 1}) == estimate_tokens(str({"a": 1}))


class TestEstimateSegments:
    def test_includes_role_overhead(self):
        segments = [
            Segment(role=MessageRole.USER, text="x" * 40),
            Segment(role=MessageRole.ASSISTANT, text=""),
        ]
        assert estimate_segments(segments) == 10 + 2 * SEGMENT_OVERHEAD_TOKENS

    def test_empty_request(self):
        assert estimate_segments([]) == 0
