"""
Dashboard search workflow (LangGraph) and its collaborators.
"""

from .state import SearchState, initial_state
from .services import DashboardServices, create_services
from .sessions import SearchSessions, SupersededError
from .graph import build_search_workflow

__all__ = [
    "SearchState",
    "initial_state",
    "DashboardServices",
    "create_services",
    "SearchSessions",
    "SupersededError",
    "build_search_workflow",
]
