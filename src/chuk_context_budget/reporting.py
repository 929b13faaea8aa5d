# chuk_context_budget/reporting.py
"""User-facing budget reporting."""

from __future__ import annotations

from chuk_context_budget.models.budget import BudgetSnapshot

USAGE_LINE_TEMPLATE = "{used}/{total} tokens ({percent}%) • compaction at {threshold}%"


def format_usage_line(snapshot: BudgetSnapshot) -> str:
    """
    Render ``used/total tokens (percent%) • compaction at threshold%``.

    ``total`` is the effective window (window minus reserved output), the same
    denominator the compaction threshold applies to. Percentages are rounded
    for display only.
    """
    return USAGE_LINE_TEMPLATE.format(
        used=snapshot.used_tokens,
        total=snapshot.effective_window,
        percent=snapshot.display_percent,
        threshold=snapshot.display_threshold,
    )


def format_budget_details(snapshot: BudgetSnapshot) -> str:
    """Multi-line breakdown of a snapshot, for verbose status output."""
    lines = [
        f"Used:       {snapshot.used_tokens} tokens",
        f"Available:  {snapshot.available_tokens} tokens",
        f"Window:     {snapshot.window_size} tokens ({snapshot.reserved_tokens} reserved for output)",
        f"Usage:      {snapshot.percentage_used * 100:.1f}%",
        f"Compaction: at {snapshot.display_threshold}%" + (" (needed)" if snapshot.compaction_needed else ""),
        f"Items:      {snapshot.item_count}",
    ]
    return "\n".join(lines)
