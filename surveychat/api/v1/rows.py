"""Row source API endpoint."""

from fastapi import APIRouter, HTTPException
import logging

from surveychat.schemas.dashboard import RowsResponse
from surveychat.services.dashboard_service import dashboard_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/rows", response_model=RowsResponse)
async def get_rows():
    """
    Get the full survey dataset.

    Returns:
        Every row as a column -> raw string mapping
    """
    try:
        return {"rows": dashboard_service.store.to_records()}

    except Exception as e:
        logger.error(f"Error getting rows: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="Failed to get rows"
        )
