"""Project overview feature: schedule, budget, alerts and burn-down for one project."""

from project_health.features.project_overview.context import ProjectOverviewContext, build_overview_context

__all__ = ["ProjectOverviewContext", "build_overview_context"]
