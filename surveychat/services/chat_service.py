"""Chat service: asks the model, runs compute blocks, renders viz-mode charts."""

import json
import logging
import re
from typing import Any, Dict, Optional, Tuple

from surveychat.core.charts.aggregation import compute_series
from surveychat.core.charts.recipe import parse_recipe
from surveychat.core.charts.renderer import figure_to_dict, render_chart
from surveychat.core.compute.evaluator import ExpressionEvaluator
from surveychat.core.llm.client import LLMClient, llm_client
from surveychat.schemas.chat import ChartSpec, ChatResponse
from surveychat.services.dashboard_service import DashboardService, dashboard_service
from surveychat.config import get_settings
from surveychat.utils.exceptions import (
    ExpressionEvaluationException,
    RecipeValidationException,
)

logger = logging.getLogger(__name__)
settings = get_settings()

JSON_BLOCK_PATTERN = re.compile(r"```json\s*\n?(.*?)\n?```", re.DOTALL)


def _parse_block(body: str) -> Optional[Dict[str, Any]]:
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError as e:
        logger.warning(f"Ignoring malformed JSON block in reply: {e}")
        return None
    return parsed if isinstance(parsed, dict) else None


class ChatService:
    """Answers dataset questions through the language model."""

    def __init__(
        self,
        dashboard: Optional[DashboardService] = None,
        llm: Optional[LLMClient] = None,
    ):
        self.dashboard = dashboard or dashboard_service
        self.llm = llm or llm_client

    async def ask(self, question: str, viz_mode: bool = False) -> ChatResponse:
        """
        Answer one question.

        Args:
            question: User question
            viz_mode: Whether a chart should accompany the reply

        Returns:
            Reply text and optional chart
        """
        store = self.dashboard.store
        reply = await self.llm.answer_question(
            question=question,
            summary=self.dashboard.summary.to_prompt(),
            columns=store.columns,
            viz_mode=viz_mode,
        )

        reply, chart_data = self.extract_chart(reply)
        reply = self.substitute_compute(reply)

        chart = None
        if viz_mode and chart_data is not None:
            chart = self.render_chart_spec(chart_data)

        return ChatResponse(reply=reply, chart=chart)

    def extract_chart(self, reply: str) -> Tuple[str, Optional[Dict[str, Any]]]:
        """Strip the first chart block out of the reply and return its recipe."""
        for match in JSON_BLOCK_PATTERN.finditer(reply):
            parsed = _parse_block(match.group(1))
            if parsed and isinstance(parsed.get("chart"), dict):
                cleaned = (reply[: match.start()] + reply[match.end():]).strip()
                return cleaned, parsed["chart"]
        return reply, None

    def substitute_compute(self, reply: str) -> str:
        """
        Replace the first compute block with its evaluated result.

        On any failure the raw reply is returned unchanged.
        """
        for match in JSON_BLOCK_PATTERN.finditer(reply):
            parsed = _parse_block(match.group(1))
            if not parsed or "compute" not in parsed:
                continue

            try:
                evaluator = ExpressionEvaluator(self.dashboard.store)
                result = evaluator.evaluate_to_text(str(parsed["compute"]))
            except ExpressionEvaluationException as e:
                logger.error(f"Compute error: {e.detail}")
                return reply

            before = reply[: match.start()].strip()
            after = reply[match.end():].strip()
            return "\n\n".join(part for part in (before, result, after) if part)

        return reply

    def render_chart_spec(self, chart_data: Dict[str, Any]) -> Optional[ChartSpec]:
        """Render a model-proposed recipe over the full dataset; None on failure."""
        try:
            recipe = parse_recipe(chart_data)
            series = compute_series(recipe, self.dashboard.store.rows)
            figure = render_chart(recipe, series, height=settings.chart_height)
        except RecipeValidationException as e:
            logger.error(f"Chart recipe rejected: {e.detail}")
            return None
        except Exception as e:
            logger.error(f"Chart rendering failed: {e}", exc_info=True)
            return None

        return ChartSpec(recipe=recipe.to_wire(), figure=figure_to_dict(figure))


# Global chat service instance
chat_service = ChatService()
