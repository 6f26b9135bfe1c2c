# Hidden Gem Scanner - API Package
"""
FastAPI route handlers for the dashboard API.

Routers:
- analysis: Trigger hidden gem analyses
- alerts: Browse, select and dismiss alerts
- watchlist: Watchlist management and scans
- settings: Dashboard settings
- tasks: Background task status
"""

from . import analysis
from . import alerts
from . import watchlist
from . import settings
from . import tasks

__all__ = [
    "analysis",
    "alerts",
    "watchlist",
    "settings",
    "tasks"
]
