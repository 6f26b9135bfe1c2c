"""
Alerts API endpoints.

Browse, select and dismiss stored alerts.
"""

from datetime import datetime, timezone
from fastapi import APIRouter, HTTPException, Request
from typing import List, Optional

from ..database.models import AlertRecord, APIResponse

router = APIRouter()


def format_relative_time(timestamp: str, now: Optional[datetime] = None) -> str:
    """Format an ISO timestamp as '3h ago', '12m ago' or 'Just now'."""
    created = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    seconds = ((now or datetime.now(timezone.utc)) - created).total_seconds()

    hours = int(seconds // 3600)
    minutes = int(seconds // 60)
    if hours > 0:
        return f"{hours}h ago"
    if minutes > 0:
        return f"{minutes}m ago"
    return "Just now"


def conviction_band(score: float) -> str:
    """Colour band used by the dashboard for a conviction score."""
    if score >= 80:
        return "high"
    if score >= 60:
        return "medium"
    return "low"


@router.get("", response_model=List[AlertRecord])
async def list_alerts(request: Request):
    """Get all alerts, newest first."""
    return request.app.state.alerts.list_all()


@router.get("/stats")
async def get_alert_stats(request: Request):
    """Dashboard quick stats."""
    alerts = request.app.state.alerts
    settings = request.app.state.settings
    return {
        "total_alerts": len(alerts),
        "alerts_today": alerts.alerts_today(),
        "watchlist_count": len(settings.tickers),
        "scan_frequency": settings.settings.scan_frequency,
    }


@router.get("/selected")
async def get_selected_alert(request: Request):
    """The alert currently being viewed, or null."""
    return {"alert": request.app.state.alerts.selected}


@router.get("/{alert_id}")
async def get_alert(alert_id: str, request: Request):
    """Select an alert for viewing."""
    alert = request.app.state.alerts.select(alert_id)
    if alert is None:
        raise HTTPException(status_code=404, detail="Alert not found")

    return {
        "alert": alert,
        "age": format_relative_time(alert.timestamp),
        "conviction_band": conviction_band(alert.conviction_score),
    }


@router.delete("/{alert_id}", response_model=APIResponse)
async def dismiss_alert(alert_id: str, request: Request):
    """Dismiss an alert. Dismissing a missing alert is not an error."""
    removed = await request.app.state.alerts.remove(alert_id)
    return APIResponse(
        success=True,
        message="Alert dismissed" if removed else "Alert already dismissed",
    )
