"""Dashboard service: dataset, generated recipes and page sessions."""

import asyncio
import hashlib
import json
import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, List, Optional

from surveychat.config import get_settings
from surveychat.core.charts.controller import DashboardSession
from surveychat.core.charts.recipe import (
    Aggregation,
    CategoricalRecipe,
    ChartType,
    HistogramRecipe,
    Recipe,
    ScatterRecipe,
    parse_recipes,
)
from surveychat.core.llm.client import LLMClient, llm_client
from surveychat.core.profiler.summarizer import DatasetSummary, summarize_dataset
from surveychat.core.rows.store import RowStore
from surveychat.services.recipe_cache import RecipeCache, recipe_cache
from surveychat.utils.exceptions import (
    DashboardNotReadyException,
    DatasetLoadException,
    LLMException,
    SessionNotFoundException,
)

logger = logging.getLogger(__name__)
settings = get_settings()

# Categorical columns with more values than this make poor fallback charts
MAX_FALLBACK_CARDINALITY = 30
PIE_MAX_CATEGORIES = 5


class DashboardService:
    """Owns the row store, the recipe set and the in-memory session registry."""

    def __init__(
        self,
        llm: Optional[LLMClient] = None,
        cache: Optional[RecipeCache] = None,
        max_sessions: Optional[int] = None,
        session_ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.llm = llm or llm_client
        self.cache = cache or recipe_cache
        self.store: RowStore = RowStore.empty()
        self.summary: DatasetSummary = summarize_dataset(self.store)
        self.recipes: List[Recipe] = []
        self.ready = False
        self.max_sessions = settings.max_sessions if max_sessions is None else max_sessions
        self.session_ttl = settings.session_ttl_seconds if session_ttl is None else session_ttl
        self._clock = clock
        # least recently used first
        self.sessions: "OrderedDict[str, DashboardSession]" = OrderedDict()
        self._last_seen: Dict[str, float] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def load_dataset(self, csv_path: Optional[str] = None) -> RowStore:
        """
        Load the survey CSV; a failure leaves an empty store behind.

        Args:
            csv_path: Path to the CSV file, defaults to the configured path

        Returns:
            The active row store
        """
        path = csv_path or settings.csv_path
        try:
            store = RowStore.from_csv(path)
        except DatasetLoadException as e:
            logger.error(f"Failed to load dataset from {path}: {e.detail}")
            store = RowStore.empty()

        self.set_store(store)
        return store

    def set_store(self, store: RowStore) -> None:
        self.store = store
        self.summary = summarize_dataset(store)

    def dataset_fingerprint(self) -> str:
        """Stable hash of the dataset shape and contents."""
        digest = hashlib.md5()
        digest.update(json.dumps(self.store.columns).encode("utf-8"))
        for record in self.store.to_records():
            digest.update(json.dumps(record, sort_keys=True).encode("utf-8"))
        return digest.hexdigest()

    def set_recipes(self, recipes: List[Recipe]) -> None:
        self.recipes = list(recipes)
        self.ready = True

    async def generate_recipes(self) -> List[Recipe]:
        """
        Produce the dashboard recipes once, preferring the cache, then the
        model, then heuristic fallbacks. ``ready`` is set whatever happens.
        """
        fingerprint = self.dataset_fingerprint()
        recipes: List[Recipe] = []

        try:
            recipes = await self.cache.load(fingerprint) or []

            if not recipes and len(self.store) > 0:
                raw = await self.llm.generate_recipes(
                    summary=self.summary.to_prompt(),
                    columns=self.store.columns,
                    count=settings.recipe_count,
                )
                recipes = parse_recipes(raw)[: settings.recipe_count]
                if recipes:
                    await self.cache.store(fingerprint, recipes)

        except LLMException as e:
            logger.error(f"Recipe generation failed: {e.detail}. Using fallback recipes.")
        except Exception as e:
            logger.error(f"Unexpected error generating recipes: {e}", exc_info=True)

        if len(recipes) < 2 and len(self.store) > 0:
            logger.warning("Not enough recipes generated, adding fallback recipes")
            recipes.extend(self.fallback_recipes()[: settings.recipe_count - len(recipes)])

        self._warn_missing_columns(recipes)
        self.set_recipes(recipes)
        logger.info(f"Dashboard ready with {len(recipes)} charts")
        return recipes

    def _warn_missing_columns(self, recipes: List[Recipe]) -> None:
        columns = set(self.store.columns)
        for recipe in recipes:
            for column in (recipe.x_column, recipe.y_column):
                if column and column not in columns:
                    logger.warning(f"Recipe {recipe.title!r} references unknown column {column!r}")

    def fallback_recipes(self) -> List[Recipe]:
        """Heuristic recipes built from the column summary."""
        summary = self.summary
        recipes: List[Recipe] = []

        # identifier columns (one value per row) are skipped
        categorical = [
            col for col in summary.categorical_columns
            if 1 < col.unique_count <= MAX_FALLBACK_CARDINALITY
            and col.unique_count < summary.total_rows
        ]
        numeric = summary.numeric_names

        for col in categorical[:2]:
            chart_type = ChartType.PIE if col.unique_count <= PIE_MAX_CATEGORIES else ChartType.BAR
            recipes.append(
                CategoricalRecipe(
                    type=chart_type.value,
                    x_column=col.name,
                    aggregation=Aggregation.COUNT,
                    title=f"{col.name} Distribution",
                    description=f"Respondents by {col.name}",
                )
            )

        if categorical and numeric:
            recipes.append(
                CategoricalRecipe(
                    type=ChartType.BAR.value,
                    x_column=categorical[0].name,
                    y_column=numeric[0],
                    aggregation=Aggregation.AVERAGE,
                    title=f"Avg {numeric[0]} by {categorical[0].name}",
                    description=f"Mean {numeric[0]} for each {categorical[0].name}",
                )
            )

        for column in numeric[:2]:
            recipes.append(
                HistogramRecipe(
                    type=ChartType.HISTOGRAM.value,
                    x_column=column,
                    title=f"{column} Distribution",
                    description=f"Spread of {column}",
                )
            )

        if len(numeric) >= 2:
            recipes.append(
                ScatterRecipe(
                    type=ChartType.SCATTER.value,
                    x_column=numeric[0],
                    y_column=numeric[1],
                    title=f"{numeric[0]} vs {numeric[1]}",
                    description=f"Relationship between {numeric[0]} and {numeric[1]}",
                )
            )

        return recipes

    def dashboard_state(self) -> Dict[str, Any]:
        if not self.ready:
            return {"ready": False}
        return {"ready": True, "recipes": [recipe.to_wire() for recipe in self.recipes]}

    def create_session(self) -> DashboardSession:
        if not self.ready:
            raise DashboardNotReadyException()

        session = DashboardSession(
            self.store,
            self.recipes,
            top_k=settings.top_categories,
            chart_height=settings.chart_height,
        )

        self.prune_sessions()
        while self.sessions and len(self.sessions) >= self.max_sessions:
            oldest = next(iter(self.sessions))
            self._discard(oldest)
            logger.info(f"Evicted dashboard session {oldest}: limit of {self.max_sessions} reached")

        self.sessions[session.session_id] = session
        self._last_seen[session.session_id] = self._clock()
        logger.info(f"Created dashboard session {session.session_id}")
        return session

    def get_session(self, session_id: str) -> DashboardSession:
        self.prune_sessions()
        session = self.sessions.get(session_id)
        if session is None:
            raise SessionNotFoundException(session_id)

        self._last_seen[session_id] = self._clock()
        self.sessions.move_to_end(session_id)
        return session

    def close_session(self, session_id: str) -> None:
        if not self._discard(session_id):
            raise SessionNotFoundException(session_id)
        logger.info(f"Closed dashboard session {session_id}")

    def prune_sessions(self) -> int:
        """
        Drop sessions idle for longer than the session TTL.

        Returns:
            Number of sessions dropped
        """
        if not self.session_ttl:
            return 0

        cutoff = self._clock() - self.session_ttl
        expired = [sid for sid, seen in self._last_seen.items() if seen < cutoff]
        for session_id in expired:
            self._discard(session_id)
        if expired:
            logger.info(f"Expired {len(expired)} idle dashboard sessions")
        return len(expired)

    def _discard(self, session_id: str) -> bool:
        self._last_seen.pop(session_id, None)
        self._locks.pop(session_id, None)
        return self.sessions.pop(session_id, None) is not None

    def session_lock(self, session_id: str) -> asyncio.Lock:
        """Lock serialising mutations of one session."""
        return self._locks.setdefault(session_id, asyncio.Lock())


# Global dashboard service instance
dashboard_service = DashboardService()
