"""Budget health: percent of budget spent vs percent of plan time elapsed."""

from __future__ import annotations

import math
from datetime import timedelta

from project_health.core.config import (
    BUDGET_AT_RISK_VARIANCE,
    BUDGET_FAST_BURN_VARIANCE,
    BUDGET_UNDER_PLAN_VARIANCE,
    RUNWAY_UNBOUNDED_WEEKS,
)
from project_health.core.models import BudgetInsight

from .schedule import percent_time_elapsed, plan_window, resolve_now

STATUS_HEALTHY = "healthy"
STATUS_AT_RISK = "at-risk"
STATUS_OVER_BUDGET = "over-budget"

_WEEK = timedelta(weeks=1)


def _as_hours(value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(number) or math.isinf(number) else number


def _budget_message(percent_spent: float, variance: float) -> tuple[str, str]:
    if percent_spent > 100:
        return STATUS_OVER_BUDGET, f"Budget exceeded by {percent_spent - 100:.1f}%"
    if variance > BUDGET_FAST_BURN_VARIANCE:
        return STATUS_AT_RISK, f"Burning {variance:.1f}% faster than schedule"
    if variance > BUDGET_AT_RISK_VARIANCE:
        return STATUS_AT_RISK, "Budget consumption slightly ahead of schedule"
    if variance < BUDGET_UNDER_PLAN_VARIANCE:
        return STATUS_HEALTHY, f"Budget consumption {abs(variance):.1f}% below plan"
    return STATUS_HEALTHY, "Budget on track"


def calculate_budget_insight(
    total_budget,
    total_spent,
    start_date,
    end_date,
    *,
    now=None,
    tz=None,
) -> BudgetInsight:
    """Compare spend against elapsed plan time and project the runway.

    A budget that is missing, zero or negative, or plan dates that are
    unparseable or empty, yield a neutral ``healthy`` insight. When nothing
    has been burnt yet the runway is ``RUNWAY_UNBOUNDED_WEEKS`` instead of
    an infinite value.
    """
    budget = _as_hours(total_budget)
    spent = _as_hours(total_spent)
    window = plan_window(start_date, end_date)
    if budget <= 0 or window is None:
        return BudgetInsight(
            status=STATUS_HEALTHY,
            percent_spent=0.0,
            percent_time_elapsed=0.0,
            variance=0.0,
            remaining_budget=budget,
            weekly_burn_rate=0.0,
            weeks_of_runway=0.0,
            message="Set budget and dates to see budget insights",
        )
    start, end = window
    current = resolve_now(now, tz)

    percent_spent = spent / budget * 100.0
    elapsed_pct = percent_time_elapsed(start, end, current)
    variance = percent_spent - elapsed_pct
    remaining = budget - spent
    weeks_elapsed = (current - start) / _WEEK
    weekly_burn = spent / weeks_elapsed if weeks_elapsed > 0 else 0.0
    runway = remaining / weekly_burn if weekly_burn > 0 else RUNWAY_UNBOUNDED_WEEKS

    status, message = _budget_message(percent_spent, variance)
    return BudgetInsight(
        status=status,
        percent_spent=percent_spent,
        percent_time_elapsed=elapsed_pct,
        variance=variance,
        remaining_budget=remaining,
        weekly_burn_rate=weekly_burn,
        weeks_of_runway=runway,
        message=message,
    )
