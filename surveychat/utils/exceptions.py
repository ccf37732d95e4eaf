"""Custom exception classes."""

from datetime import datetime, timezone
from typing import Optional


class SurveyChatException(Exception):
    """Base exception class for the SurveyChat application."""

    def __init__(
        self,
        detail: str,
        status_code: int = 500,
        error_code: Optional[str] = None,
        timestamp: Optional[datetime] = None
    ):
        self.detail = detail
        self.status_code = status_code
        self.error_code = error_code or "INTERNAL_ERROR"
        self.timestamp = timestamp or datetime.now(timezone.utc)
        super().__init__(self.detail)


class DatasetLoadException(SurveyChatException):
    """Exception raised when the survey dataset cannot be loaded."""

    def __init__(self, detail: str, error_code: str = "DATASET_LOAD_ERROR"):
        super().__init__(
            detail=detail,
            status_code=422,
            error_code=error_code
        )


class RecipeValidationException(SurveyChatException):
    """Exception raised when a chart recipe is malformed."""

    def __init__(self, detail: str, error_code: str = "RECIPE_VALIDATION_ERROR"):
        super().__init__(
            detail=detail,
            status_code=422,
            error_code=error_code
        )


class ExpressionEvaluationException(SurveyChatException):
    """Exception raised when a model-supplied expression is rejected or fails."""

    def __init__(self, detail: str, error_code: str = "EXPRESSION_ERROR"):
        super().__init__(
            detail=detail,
            status_code=422,
            error_code=error_code
        )


class LLMException(SurveyChatException):
    """Exception raised during LLM operations."""

    def __init__(self, detail: str, error_code: str = "LLM_ERROR"):
        super().__init__(
            detail=detail,
            status_code=503,
            error_code=error_code
        )


class DashboardNotReadyException(SurveyChatException):
    """Exception raised when the dashboard recipes are still being generated."""

    def __init__(self):
        super().__init__(
            detail="Dashboard not ready yet",
            status_code=202,
            error_code="DASHBOARD_NOT_READY"
        )


class SessionNotFoundException(SurveyChatException):
    """Exception raised when a dashboard session is not found."""

    def __init__(self, session_id: str):
        super().__init__(
            detail=f"Dashboard session not found: {session_id}",
            status_code=404,
            error_code="SESSION_NOT_FOUND"
        )


class CardNotFoundException(SurveyChatException):
    """Exception raised when a chart card is not part of the dashboard."""

    def __init__(self, card_id: str):
        super().__init__(
            detail=f"Chart card not found: {card_id}",
            status_code=404,
            error_code="CARD_NOT_FOUND"
        )
