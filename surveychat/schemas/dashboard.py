"""Dashboard-related Pydantic schemas."""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class RowsResponse(BaseModel):
    """The full dataset."""
    rows: List[Dict[str, str]]


class DashboardStateResponse(BaseModel):
    """Recipe source payload polled by the page."""
    ready: bool
    recipes: Optional[List[Dict[str, Any]]] = None


class ChartClickRequest(BaseModel):
    """A click on a bar segment or pie slice."""
    card_id: str = Field(alias="cardId")
    label: str

    class Config:
        populate_by_name = True


class CategoryToggleRequest(BaseModel):
    """A click on a category pill."""
    label: str
