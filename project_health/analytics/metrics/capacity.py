"""Allocation reconciliation, utilization classification and team capacity rows."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, timedelta

import pandas as pd

from project_health.core.config import (
    HOURS_PER_WORK_DAY,
    MAX_ALLOCATION_PERCENT,
    UTILIZATION_AT_RISK_ABOVE,
    UTILIZATION_OVERLOADED_ABOVE,
    UTILIZATION_UNDERLOADED_BELOW,
    WEEKEND_DAYS,
)
from project_health.core.models import (
    AllocationRecord,
    AssigneeHours,
    CapacityRow,
    TeamCapacitySummary,
    WeightedAllocationResult,
    round_hours,
)

STATUS_OPTIMAL = "optimal"
STATUS_OVERLOADED = "overloaded"
STATUS_UNDERLOADED = "underloaded"
STATUS_AT_RISK = "at-risk"

CAPACITY_COLUMNS = [
    "person_id",
    "display_name",
    "planned_allocation",
    "actual_hours",
    "available_hours",
    "utilization_percent",
    "status",
]


# ------------------ Allocation records ------------------
def validate_allocation(record: AllocationRecord) -> AllocationRecord:
    """Raise ``ValueError`` for an out-of-range percent or an inverted date range."""
    if not 0 <= record.allocation_percent <= MAX_ALLOCATION_PERCENT:
        raise ValueError(f"Allocation percent must be between 0 and {MAX_ALLOCATION_PERCENT:g}")
    if record.start_date > record.end_date:
        raise ValueError("Allocation start date must not be after end date")
    return record


def create_allocation(
    person_id: str,
    display_name: str,
    start_date: date,
    end_date: date,
    allocation_percent: float,
    note: str | None = None,
) -> AllocationRecord:
    return validate_allocation(
        AllocationRecord(
            person_id=person_id,
            display_name=display_name,
            start_date=start_date,
            end_date=end_date,
            allocation_percent=float(allocation_percent),
            note=note,
        )
    )


# ------------------ Reconciliation ------------------
def work_days(start: date, end: date) -> int:
    """Count weekdays in ``[start, end]`` (inclusive). Zero when ``start > end``."""
    if start > end:
        return 0
    total = (end - start).days + 1
    full_weeks, rest = divmod(total, 7)
    count = full_weeks * (7 - len(WEEKEND_DAYS))
    for offset in range(rest):
        if (start + timedelta(days=full_weeks * 7 + offset)).weekday() not in WEEKEND_DAYS:
            count += 1
    return count


def overlap_days(record: AllocationRecord, query_start: date, query_end: date) -> int:
    """Calendar days shared by the record and the window, both ends inclusive.

    Abutting records (one ends on the 10th, the next starts on the 11th) share
    no day. Records that both include a day each count that day once.
    """
    latest_start = max(query_start, record.start_date)
    earliest_end = min(query_end, record.end_date)
    return max(0, (earliest_end - latest_start).days + 1)


def reconcile_allocations(
    records: Iterable[AllocationRecord],
    query_start: date,
    query_end: date,
    *,
    person_id: str | None = None,
    display_name: str | None = None,
    hours_per_day: float = HOURS_PER_WORK_DAY,
) -> WeightedAllocationResult:
    """Blend a person's allocation records into one figure for a window.

    The weighted percent is ``Σ(percent × overlap) / Σ overlap`` (0 with no
    overlap); available hours are ``work_days × hours_per_day × weighted / 100``.
    """
    records = list(records)
    weighted_sum = 0.0
    total_overlap = 0
    for record in records:
        days = overlap_days(record, query_start, query_end)
        weighted_sum += record.allocation_percent * days
        total_overlap += days
    weighted = weighted_sum / total_overlap if total_overlap > 0 else 0.0
    days_in_window = work_days(query_start, query_end)
    first = records[0] if records else None
    return WeightedAllocationResult(
        person_id=person_id or (first.person_id if first else ""),
        display_name=display_name or (first.display_name if first else ""),
        weighted_allocation=weighted,
        total_available_hours=max(0.0, days_in_window * hours_per_day * weighted / 100.0),
        work_days=days_in_window,
        overlap_days=total_overlap,
    )


# ------------------ Utilization ------------------
def calculate_utilization(actual_hours: float, available_hours: float) -> float:
    if not available_hours or available_hours <= 0:
        return 0.0
    return actual_hours / available_hours * 100.0


def classify_utilization(utilization_percent: float, allocation_target: float) -> str:
    """Classify utilization (percent of allocation-weighted available hours).

    Rules, first match wins: ``overloaded`` above 110, ``underloaded`` below 50
    when the allocation target is positive, ``at-risk`` above 100, otherwise
    ``optimal``. A zero allocation target is never reported as underloaded.
    """
    if utilization_percent > UTILIZATION_OVERLOADED_ABOVE:
        return STATUS_OVERLOADED
    if utilization_percent < UTILIZATION_UNDERLOADED_BELOW and allocation_target > 0:
        return STATUS_UNDERLOADED
    if utilization_percent > UTILIZATION_AT_RISK_ABOVE:
        return STATUS_AT_RISK
    return STATUS_OPTIMAL


# ------------------ Team capacity ------------------
def _actual_for(actual_hours: Mapping[str, float | AssigneeHours], person_id: str) -> float:
    value = actual_hours.get(person_id, 0.0)
    if isinstance(value, AssigneeHours):
        return value.hours
    return float(value or 0.0)


def build_capacity_rows(
    records: Iterable[AllocationRecord],
    actual_hours: Mapping[str, float | AssigneeHours],
    query_start: date,
    query_end: date,
    *,
    hours_per_day: float = HOURS_PER_WORK_DAY,
) -> list[CapacityRow]:
    """One row per allocated person, rounded to one decimal, sorted by name."""
    by_person: dict[str, list[AllocationRecord]] = {}
    for record in records:
        by_person.setdefault(record.person_id, []).append(record)

    rows: list[CapacityRow] = []
    for person_id, person_records in by_person.items():
        result = reconcile_allocations(person_records, query_start, query_end, hours_per_day=hours_per_day)
        actual = _actual_for(actual_hours, person_id)
        utilization = calculate_utilization(actual, result.total_available_hours)
        rows.append(
            CapacityRow(
                person_id=person_id,
                display_name=result.display_name,
                planned_allocation=round_hours(result.weighted_allocation),
                actual_hours=round_hours(actual),
                available_hours=round_hours(result.total_available_hours),
                utilization_percent=round_hours(utilization),
                status=classify_utilization(utilization, result.weighted_allocation),
            )
        )
    rows.sort(key=lambda r: (r.display_name.lower(), r.person_id))
    return rows


def summarize_team_capacity(rows: Iterable[CapacityRow]) -> TeamCapacitySummary:
    rows = list(rows)
    if not rows:
        return TeamCapacitySummary()
    return TeamCapacitySummary(
        total_capacity=round_hours(sum(r.available_hours for r in rows)),
        total_actual=round_hours(sum(r.actual_hours for r in rows)),
        avg_utilization=round_hours(sum(r.utilization_percent for r in rows) / len(rows)),
        overloaded_count=sum(1 for r in rows if r.status == STATUS_OVERLOADED),
        underloaded_count=sum(1 for r in rows if r.status == STATUS_UNDERLOADED),
    )


def capacity_frame(rows: Iterable[CapacityRow]) -> pd.DataFrame:
    """Tabulate capacity rows for display or export."""
    data = [{col: getattr(r, col) for col in CAPACITY_COLUMNS} for r in rows]
    return pd.DataFrame(data, columns=CAPACITY_COLUMNS)
