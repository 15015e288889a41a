"""Alert and recommendation rule tables.

Each table is an ordered tuple of rules. A rule contributes at most one item
when its predicate holds. Output is sorted by priority (highest first) with
ties kept in table order, then deduplicated by message.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from project_health.core.config import (
    BUDGET_AT_RISK_VARIANCE,
    BUDGET_FAST_BURN_VARIANCE,
    HEALTHY_RUNWAY_WEEKS,
    LOW_RUNWAY_WEEKS,
    SEVERE_DELAY_DAYS,
)
from project_health.core.models import Alert, BudgetInsight, EpicSummary, Recommendation, ScheduleInsight, round_half_up

ALERT_CRITICAL = "critical"
ALERT_WARNING = "warning"
ALERT_POSITIVE = "positive"

REC_ACTION = "action"
REC_OPPORTUNITY = "opportunity"
REC_OPTIMIZATION = "optimization"


@dataclass(slots=True, frozen=True)
class InsightInputs:
    schedule: ScheduleInsight
    budget: BudgetInsight
    stale_epics: int


Predicate = Callable[[InsightInputs], bool]
TextBuilder = Callable[[InsightInputs], str]


@dataclass(slots=True, frozen=True)
class AlertRule:
    kind: str
    priority: int
    applies: Predicate
    message: TextBuilder


@dataclass(slots=True, frozen=True)
class RecommendationRule:
    kind: str
    priority: int
    applies: Predicate
    title: str
    action: TextBuilder


def count_stale_epics(epics: Iterable[EpicSummary] | None) -> int:
    """Epics with children but none of them done."""
    return sum(1 for e in epics or [] if e.total_issues > 0 and e.done == 0)


def _behind_days(i: InsightInputs) -> int:
    return abs(i.schedule.days_ahead_behind)


def _work_remaining(i: InsightInputs) -> float:
    return 100.0 - i.schedule.percent_complete


def _is_behind(i: InsightInputs) -> bool:
    return i.schedule.status == "behind"


# ------------------ Alerts ------------------
ALERT_RULES: Sequence[AlertRule] = (
    AlertRule(ALERT_CRITICAL, 100, lambda i: i.schedule.status == "overtime", lambda i: i.schedule.message),
    AlertRule(ALERT_CRITICAL, 90, lambda i: i.budget.status == "over-budget", lambda i: i.budget.message),
    AlertRule(
        ALERT_CRITICAL,
        85,
        lambda i: _is_behind(i) and _behind_days(i) > SEVERE_DELAY_DAYS,
        lambda i: f"Project is {_behind_days(i)} days behind schedule",
    ),
    AlertRule(
        ALERT_WARNING,
        70,
        lambda i: i.budget.status == "at-risk" and i.budget.weeks_of_runway < LOW_RUNWAY_WEEKS,
        lambda i: f"Budget will run out in {i.budget.weeks_of_runway:.1f} weeks",
    ),
    AlertRule(
        ALERT_WARNING,
        60,
        lambda i: i.budget.status == "at-risk" and i.budget.weeks_of_runway >= LOW_RUNWAY_WEEKS,
        lambda i: i.budget.message,
    ),
    AlertRule(ALERT_WARNING, 65, _is_behind, lambda i: i.schedule.message),
    AlertRule(
        ALERT_WARNING,
        55,
        lambda i: i.stale_epics > 0,
        lambda i: f"{i.stale_epics} epic(s) have no progress",
    ),
    AlertRule(ALERT_POSITIVE, 30, lambda i: i.schedule.status == "ahead", lambda i: i.schedule.message),
    AlertRule(ALERT_POSITIVE, 25, lambda i: i.budget.variance < -10, lambda i: i.budget.message),
)


# ------------------ Recommendations ------------------
def _recovery_strategy(i: InsightInputs) -> str:
    scope_reduction = round_half_up(_work_remaining(i) * 0.3)
    days = _behind_days(i)
    man_months = days / 30 * 2
    return (
        f"Option 1: Reduce scope by {scope_reduction}% to align with budget | "
        f"Option 2: Secure {round_half_up(i.budget.variance)}% additional budget and add "
        f"{man_months:.1f} man-months of senior resources | "
        f"Option 3: Extend timeline by {days} days"
    )


def _catch_up_plan(i: InsightInputs) -> str:
    days = _behind_days(i)
    remaining = _work_remaining(i)
    man_months = remaining / 100 * days / 30 * 1.5
    scope_reduction = round_half_up(remaining * 0.2)
    return (
        f"Add {man_months:.1f} man-months to critical path "
        f"({math.ceil(man_months)} person for 1 month or {math.ceil(man_months * 2)} people for 0.5 months), "
        f"OR reduce non-essential features by {scope_reduction}%, OR extend deadline by {days} days"
    )


def _acceleration_options(i: InsightInputs) -> str:
    days = _behind_days(i)
    remaining = _work_remaining(i)
    man_months = remaining / 100 * days / 30 * 1.2
    scope_reduction = round_half_up(remaining * 0.1)
    return (
        f"Add {man_months:.1f} man-months (e.g., {math.ceil(man_months)} person for 1 month) "
        f"to accelerate delivery, OR identify and remove blockers, OR reduce scope by {scope_reduction}%"
    )


def _fixed(text: str) -> TextBuilder:
    return lambda _i: text


RECOMMENDATION_RULES: Sequence[RecommendationRule] = (
    RecommendationRule(
        REC_ACTION,
        100,
        lambda i: i.budget.status == "over-budget",
        "Budget Recovery Options",
        _fixed(
            "Request additional budget, reduce scope, or optimize resource allocation to bring costs under control"
        ),
    ),
    RecommendationRule(
        REC_ACTION,
        95,
        lambda i: i.schedule.status == "overtime",
        "Immediate Actions Required",
        _fixed("Add resources, work overtime, or negotiate timeline extension with stakeholders"),
    ),
    RecommendationRule(
        REC_ACTION,
        90,
        lambda i: 0 < i.budget.weeks_of_runway < LOW_RUNWAY_WEEKS,
        "Extend Budget Runway",
        _fixed("Secure additional funding immediately or reduce team size to extend runway"),
    ),
    RecommendationRule(
        REC_ACTION,
        85,
        lambda i: _is_behind(i) and i.budget.variance > 10,
        "Recovery Strategy",
        _recovery_strategy,
    ),
    RecommendationRule(
        REC_ACTION,
        80,
        lambda i: _is_behind(i) and _behind_days(i) > SEVERE_DELAY_DAYS,
        "Catch-Up Plan",
        _catch_up_plan,
    ),
    RecommendationRule(
        REC_ACTION,
        70,
        lambda i: _is_behind(i) and 0 < _behind_days(i) <= SEVERE_DELAY_DAYS,
        "Acceleration Options",
        _acceleration_options,
    ),
    RecommendationRule(
        REC_OPTIMIZATION,
        65,
        lambda i: i.budget.status == "at-risk" and i.budget.variance > BUDGET_FAST_BURN_VARIANCE,
        "Optimize Resource Allocation",
        _fixed("Review resource allocation, reduce non-essential work, or optimize team composition to slow burn rate"),
    ),
    RecommendationRule(
        REC_ACTION,
        60,
        lambda i: i.stale_epics > 0,
        "Address Stale Epics",
        _fixed("Review and prioritize stale epics, assign resources, or consider descoping"),
    ),
    RecommendationRule(
        REC_OPTIMIZATION,
        50,
        lambda i: i.budget.status == "at-risk"
        and BUDGET_AT_RISK_VARIANCE < i.budget.variance <= BUDGET_FAST_BURN_VARIANCE,
        "Monitor Budget Closely",
        _fixed("Monitor burn rate closely and optimize resource utilization to prevent budget overrun"),
    ),
    RecommendationRule(
        REC_OPPORTUNITY,
        40,
        lambda i: i.schedule.status == "ahead" and i.schedule.days_ahead_behind > 7,
        "Leverage Schedule Advantage",
        _fixed(
            "Consider adding value-add features, improving quality, or delivering early to exceed expectations"
        ),
    ),
    RecommendationRule(
        REC_OPPORTUNITY,
        35,
        lambda i: i.budget.variance < -15 and i.budget.status == "healthy",
        "Invest Budget Surplus",
        _fixed("Consider investing in quality improvements, technical debt reduction, or additional features"),
    ),
    RecommendationRule(
        REC_OPPORTUNITY,
        30,
        lambda i: i.budget.weeks_of_runway > HEALTHY_RUNWAY_WEEKS and i.budget.status == "healthy",
        "Maintain Quality Standards",
        _fixed("Project is well-funded - maintain current pace and quality standards"),
    ),
)


# ------------------ Evaluation ------------------
def _ranked(items: list, key=lambda item: item.message) -> list:
    # sorted() is stable, so equal priorities keep table order
    ordered = sorted(items, key=lambda item: item.priority, reverse=True)
    seen: set[str] = set()
    out = []
    for item in ordered:
        marker = key(item)
        if marker in seen:
            continue
        seen.add(marker)
        out.append(item)
    return out


def generate_alerts(
    schedule: ScheduleInsight,
    budget: BudgetInsight,
    epics: Iterable[EpicSummary] | None = None,
    *,
    rules: Sequence[AlertRule] = ALERT_RULES,
) -> list[Alert]:
    inputs = InsightInputs(schedule=schedule, budget=budget, stale_epics=count_stale_epics(epics))
    alerts = [
        Alert(type=rule.kind, message=rule.message(inputs), priority=rule.priority)
        for rule in rules
        if rule.applies(inputs)
    ]
    return _ranked(alerts)


def generate_recommendations(
    schedule: ScheduleInsight,
    budget: BudgetInsight,
    epics: Iterable[EpicSummary] | None = None,
    *,
    rules: Sequence[RecommendationRule] = RECOMMENDATION_RULES,
) -> list[Recommendation]:
    inputs = InsightInputs(schedule=schedule, budget=budget, stale_epics=count_stale_epics(epics))
    recommendations = [
        Recommendation(type=rule.kind, message=rule.title, priority=rule.priority, action=rule.action(inputs))
        for rule in rules
        if rule.applies(inputs)
    ]
    return _ranked(recommendations)
