"""Chat API endpoint."""

from fastapi import APIRouter, HTTPException
import logging

from surveychat.schemas.chat import ChatRequest, ChatResponse
from surveychat.services.chat_service import chat_service
from surveychat.utils.exceptions import SurveyChatException

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/chat", response_model=ChatResponse, response_model_exclude_none=True)
async def chat(request: ChatRequest):
    """
    Answer a question about the survey dataset.

    Args:
        request: Contains the question and the viz mode flag

    Returns:
        Reply text and, in viz mode, an optional chart
    """
    question = (request.question or "").strip()
    if not question:
        raise HTTPException(
            status_code=400,
            detail="Missing question"
        )

    try:
        return await chat_service.ask(question, viz_mode=request.viz_mode)

    except SurveyChatException:
        raise
    except Exception as e:
        logger.error(f"Error answering question: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="Failed to get response from the language model"
        )
