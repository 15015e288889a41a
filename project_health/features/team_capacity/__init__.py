"""Team capacity feature: allocation vs actual hours per person."""

from project_health.features.team_capacity.context import TeamCapacityContext, build_team_capacity_context

__all__ = ["TeamCapacityContext", "build_team_capacity_context"]
