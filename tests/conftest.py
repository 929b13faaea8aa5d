# tests/conftest.py
"""
Shared pytest fixtures for chuk_context_budget tests.
"""

import logging
from unittest.mock import AsyncMock

import pytest

from chuk_context_budget.backend import GenerateResult, TokenUsage
from chuk_context_budget.models.window_config import WindowConfig

# Configure logging for tests
logging.basicConfig(level=logging.WARNING)
logging.getLogger("chuk_context_budget").setLevel(logging.DEBUG)


@pytest.fixture
def small_config():
    """A 1000-token window: 100 reserved, compaction at 70% of 900."""
    return WindowConfig(
        model_name="test-model",
        window_size=1000,
        reserved_output_fraction=0.10,
        compaction_threshold=0.70,
        retention_budget=300,
        summary_max_tokens=64,
        summarization_timeout=1.0,
    )


@pytest.fixture
def mock_backend():
    """Backend whose generate() returns a short summary."""
    backend = AsyncMock()
    backend.generate.return_value = GenerateResult(
        text="User is refactoring the parser; tests pass.",
        usage=TokenUsage(prompt_tokens=700, completion_tokens=12),
    )
    return backend
