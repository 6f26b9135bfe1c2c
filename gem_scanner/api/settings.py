"""
Settings API endpoints.

Provides endpoints for managing dashboard settings.
"""

from fastapi import APIRouter, Request

from ..database.models import Settings, SettingsUpdate, APIResponse

router = APIRouter()


@router.get("", response_model=Settings)
async def get_settings(request: Request):
    """Get current dashboard settings."""
    return request.app.state.settings.settings


@router.put("", response_model=APIResponse)
async def update_settings(changes: SettingsUpdate, request: Request):
    """Update dashboard settings."""
    settings = await request.app.state.settings.update(changes)
    return APIResponse(
        success=True,
        message="Settings saved successfully",
        data=settings.model_dump(),
    )


@router.post("/reset", response_model=APIResponse)
async def reset_settings(request: Request):
    """Reset all settings and the watchlist to defaults."""
    settings = await request.app.state.settings.reset()
    return APIResponse(
        success=True,
        message="Settings reset to defaults",
        data=settings.model_dump(),
    )
