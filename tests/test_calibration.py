# tests/test_calibration.py
"""
Estimator calibration against tiktoken.

The four-characters-per-token heuristic should land within a factor of two
of a real BPE tokenizer on ordinary prose and source code.
"""

import pytest

tiktoken = pytest.importorskip("tiktoken")

from chuk_context_budget.calibration import CalibrationReport, calibrate, reference_token_count  # noqa: E402

PROSE = (
    "The compaction engine summarizes older conversation history while keeping the most recent "
    "turns verbatim, so the agent can continue working on long tasks without running out of context."
)

CODE = '''
def retention_boundary(items, retention_budget):
    total = 0
    boundary = len(items)
    for index in range(len(items) - 1, -1, -1):
        total += items[index].estimated_tokens
        if total > retention_budget:
            break
        boundary = index
    return boundary
'''


@pytest.fixture(scope="module")
def encoding_available():
    try:
        tiktoken.get_encoding("cl100k_base")
    except Exception as e:  # encoding files are downloaded on first use
        pytest.skip(f"cl100k_base encoding unavailable: {e}")


class TestCalibration:
    def test_ratio_bounds(self, encoding_available):
        report = calibrate([PROSE, CODE])
        assert report.samples == 2
        assert report.within(0.5, 2.0)

    def test_reference_count(self, encoding_available):
        assert reference_token_count("hello world") == 2

    def test_empty_samples_rejected(self, encoding_available):
        with pytest.raises(ValueError):
            calibrate(["", ""])


class TestCalibrationReport:
    def test_overall_ratio(self):
        report = CalibrationReport(
            encoding="cl100k_base", samples=1, estimated_tokens=120, reference_tokens=100, min_ratio=1.2, max_ratio=1.2
        )
        assert report.overall_ratio == pytest.approx(1.2)
        assert report.within(1.0, 1.5)
        assert not report.within(1.3, 2.0)
