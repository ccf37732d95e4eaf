"""Dashboard API endpoints."""

from fastapi import APIRouter, HTTPException
import logging

from surveychat.schemas.dashboard import (
    CategoryToggleRequest,
    ChartClickRequest,
    DashboardStateResponse,
)
from surveychat.services.dashboard_service import dashboard_service
from surveychat.utils.exceptions import SurveyChatException

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=DashboardStateResponse, response_model_exclude_none=True)
async def get_dashboard():
    """
    Get the dashboard recipes, or ``ready: false`` while they are generated.

    Returns:
        Ready flag and recipes
    """
    return dashboard_service.dashboard_state()


@router.post("/sessions")
async def create_session():
    """
    Start a page session with empty filters and default category selections.

    Returns:
        The initial dashboard view
    """
    try:
        session = dashboard_service.create_session()
        return session.view.to_dict()

    except SurveyChatException:
        raise
    except Exception as e:
        logger.error(f"Error creating dashboard session: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="Failed to create dashboard session"
        )


@router.get("/sessions/{session_id}")
async def get_session(session_id: str):
    """Get the current view of a session."""
    session = dashboard_service.get_session(session_id)
    return session.view.to_dict()


@router.delete("/sessions/{session_id}")
async def close_session(session_id: str):
    """Discard a session."""
    dashboard_service.close_session(session_id)
    return {"sessionId": session_id, "closed": True}


@router.post("/sessions/{session_id}/clicks")
async def click_chart(session_id: str, click: ChartClickRequest):
    """
    Toggle the cross-filter for a clicked bar or pie slice.

    Args:
        session_id: Dashboard session
        click: Card id and clicked label

    Returns:
        The re-rendered dashboard view
    """
    session = dashboard_service.get_session(session_id)
    async with dashboard_service.session_lock(session_id):
        changed = session.click(click.card_id, click.label)
        return {**session.view.to_dict(), "changed": changed}


@router.delete("/sessions/{session_id}/filters/{column}")
async def remove_filter(session_id: str, column: str):
    """Remove one filter chip."""
    session = dashboard_service.get_session(session_id)
    async with dashboard_service.session_lock(session_id):
        changed = session.remove_filter(column)
        return {**session.view.to_dict(), "changed": changed}


@router.delete("/sessions/{session_id}/filters")
async def clear_filters(session_id: str):
    """Clear every filter."""
    session = dashboard_service.get_session(session_id)
    async with dashboard_service.session_lock(session_id):
        changed = session.clear_filters()
        return {**session.view.to_dict(), "changed": changed}


@router.post("/sessions/{session_id}/cards/{card_id}/categories")
async def toggle_category(session_id: str, card_id: str, toggle: CategoryToggleRequest):
    """Show or collapse one category on a card."""
    session = dashboard_service.get_session(session_id)
    async with dashboard_service.session_lock(session_id):
        changed = session.toggle_category(card_id, toggle.label)
        return {**session.view.to_dict(), "changed": changed}


@router.post("/sessions/{session_id}/cards/{card_id}/categories/all")
async def toggle_all_categories(session_id: str, card_id: str):
    """Flip a card between every category and the default top categories."""
    session = dashboard_service.get_session(session_id)
    async with dashboard_service.session_lock(session_id):
        changed = session.toggle_all_categories(card_id)
        return {**session.view.to_dict(), "changed": changed}
