# chuk_context_budget/calibration.py
"""
Estimator calibration against a reference tokenizer.

The budget manager never tokenizes for real; this module measures how far
:func:`~chuk_context_budget.estimator.estimate_tokens` is from a BPE
tokenizer (tiktoken) on sample text, so the ``CHARS_PER_TOKEN`` ratio can be
checked. Requires the ``calibration`` extra.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pydantic import BaseModel

from chuk_context_budget.estimator import estimate_tokens

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "cl100k_base"


class CalibrationReport(BaseModel):
    """Estimate/reference ratios over a set of samples."""

    encoding: str
    samples: int
    estimated_tokens: int
    reference_tokens: int
    min_ratio: float
    max_ratio: float

    @property
    def overall_ratio(self) -> float:
        """Estimated over reference tokens across all samples (>1 means over-counting)."""
        if self.reference_tokens == 0:
            return 1.0
        return self.estimated_tokens / self.reference_tokens

    def within(self, lower: float, upper: float) -> bool:
        """Whether every sample's ratio lies in ``[lower, upper]``."""
        return lower <= self.min_ratio and self.max_ratio <= upper


def reference_token_count(text: str, encoding: str = DEFAULT_ENCODING) -> int:
    """Count tokens with tiktoken."""
    import tiktoken

    return len(tiktoken.get_encoding(encoding).encode(text, disallowed_special=()))


def calibrate(samples: Iterable[str], encoding: str = DEFAULT_ENCODING) -> CalibrationReport:
    """
    Compare the estimator with tiktoken on ``samples``.

    Empty samples are skipped.
    """
    import tiktoken

    encoder = tiktoken.get_encoding(encoding)
    ratios: list[float] = []
    estimated_total = 0
    reference_total = 0
    for text in samples:
        if not text:
            continue
        estimated = estimate_tokens(text)
        reference = len(encoder.encode(text, disallowed_special=()))
        estimated_total += estimated
        reference_total += reference
        ratios.append(estimated / max(reference, 1))

    if not ratios:
        raise ValueError("No non-empty samples to calibrate against")

    report = CalibrationReport(
        encoding=encoding,
        samples=len(ratios),
        estimated_tokens=estimated_total,
        reference_tokens=reference_total,
        min_ratio=min(ratios),
        max_ratio=max(ratios),
    )
    logger.debug(
        f"Calibration over {report.samples} samples: ratio {report.overall_ratio:.2f} "
        f"(min {report.min_ratio:.2f}, max {report.max_ratio:.2f})"
    )
    return report
