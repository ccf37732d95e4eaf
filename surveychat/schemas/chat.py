"""Chat-related Pydantic schemas."""

from pydantic import BaseModel, Field
from typing import Any, Dict, Optional


class ChatRequest(BaseModel):
    """Question sent from the chat panel."""
    question: Optional[str] = None
    viz_mode: bool = Field(default=False, alias="vizMode")

    class Config:
        populate_by_name = True


class ChartSpec(BaseModel):
    """Chart attached to a chat reply."""
    recipe: Dict[str, Any]
    figure: Dict[str, Any]


class ChatResponse(BaseModel):
    """Response schema for a chat question."""
    reply: str
    chart: Optional[ChartSpec] = None
