"""Workspaces feature module"""

from app.features.workspaces.aggregator import WorkspaceMembershipAggregator

__all__ = [
    "WorkspaceMembershipAggregator",
]
