"""Async client for the row source and the recipe-source poll loop."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from surveychat.config import get_settings
from surveychat.core.charts.controller import DashboardSession
from surveychat.core.charts.recipe import Recipe, parse_recipes
from surveychat.core.rows.store import RowStore

logger = logging.getLogger(__name__)
settings = get_settings()

Sleep = Callable[[float], Awaitable[None]]


class DashboardClient:
    """
    Loads a dashboard the way the page does: fetch the rows once, then poll
    ``/api/dashboard`` until the recipes are ready.

    Polling never gives up; it waits ``poll_interval`` seconds while the
    server reports ``ready: false`` and ``error_interval`` seconds after a
    transport error or a reply that is not the expected JSON object.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        http_client: Optional[httpx.AsyncClient] = None,
        poll_interval: Optional[float] = None,
        error_interval: Optional[float] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.http = http_client or httpx.AsyncClient(base_url=base_url, timeout=15)
        self.poll_interval = poll_interval if poll_interval is not None else settings.poll_interval_seconds
        self.error_interval = (
            error_interval if error_interval is not None else settings.poll_error_interval_seconds
        )
        self._sleep = sleep

    async def __aenter__(self) -> "DashboardClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self.http.aclose()

    async def fetch_rows(self) -> RowStore:
        """Fetch the dataset; failures are logged and yield an empty store."""
        try:
            data = await self._get_object("/api/rows")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Row fetch failed: {e}")
            return RowStore.empty()

        records = data.get("rows") or []
        if not isinstance(records, list):
            logger.error(f"Row fetch failed: expected a row list, got {type(records).__name__}")
            return RowStore.empty()

        rows = [record for record in records if isinstance(record, dict)]
        if len(rows) < len(records):
            logger.warning(f"Skipped {len(records) - len(rows)} malformed rows")

        store = RowStore.from_records(rows)
        logger.info(f"Fetched {len(store)} rows")
        return store

    async def _get_object(self, path: str) -> Dict[str, Any]:
        """GET a JSON object; any other body is reported as a ValueError."""
        response = await self.http.get(path)
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object from {path}, got {type(data).__name__}")
        return data

    async def poll_recipes(self) -> List[Recipe]:
        """Poll until the server reports the recipes as ready."""
        while True:
            try:
                data = await self._get_object("/api/dashboard")
                items = data.get("recipes") or []
                if not isinstance(items, list):
                    raise ValueError(f"Expected a recipe list, got {type(items).__name__}")
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"Dashboard fetch error: {e}")
                await self._sleep(self.error_interval)
                continue

            if data.get("ready"):
                recipes = parse_recipes(items)
                logger.info(f"Dashboard ready with {len(recipes)} recipes")
                return recipes

            await self._sleep(self.poll_interval)

    async def load_session(self) -> DashboardSession:
        """Fetch rows and recipes and build a local dashboard session."""
        store = await self.fetch_rows()
        recipes = await self.poll_recipes()
        return DashboardSession(
            store,
            recipes,
            top_k=settings.top_categories,
            chart_height=settings.chart_height,
        )
