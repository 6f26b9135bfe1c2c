# Hidden Gem Scanner - Main Package
"""
Hidden Gem Scanner: a multi-agent "hidden gem" stock analysis dashboard.

This package provides:
- Agent client: invokes the remote coordinator and specialist agents
- Orchestrator: gates on the coordinator's conviction score and fans out
  to the technical, fundamental, sentiment, industry and risk specialists
- Stores: alerts, settings and watchlist persisted as JSON blobs
- Dashboard API: FastAPI routes driving analyses and browsing alerts
"""

__version__ = "1.0.0"
