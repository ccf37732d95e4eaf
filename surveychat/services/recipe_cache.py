"""Recipe cache: generated dashboard recipes keyed by dataset fingerprint."""

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, List, Optional, Sequence

import aiofiles
import redis.asyncio as redis
from redis.exceptions import RedisError

from surveychat.config import get_settings
from surveychat.core.charts.recipe import Recipe, parse_recipes

logger = logging.getLogger(__name__)
settings = get_settings()

KEY_PREFIX = "surveychat:recipes:"


class RecipeCache:
    """
    Remembers the recipe set generated for a dataset so a restart skips the model.

    Entries live in Redis when it is reachable. A JSON file per fingerprint is
    written next to every Redis entry and read whenever Redis misses or is
    down. Loaded entries are validated again, so a stale or hand-edited
    entry can only shrink the recipe set, never break it.
    """

    def __init__(
        self,
        cache_dir: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
        redis_url: Optional[str] = None,
    ):
        self.cache_dir = Path(cache_dir or settings.cache_dir)
        self.ttl_seconds = settings.cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self.redis_url = redis_url or settings.redis_url
        self._redis: Optional[redis.Redis] = None

    @property
    def connected(self) -> bool:
        return self._redis is not None

    async def connect(self) -> None:
        """Attach to Redis; on failure the cache runs on files alone."""
        client = redis.from_url(self.redis_url, encoding="utf-8", decode_responses=True)
        try:
            await client.ping()
        except (RedisError, OSError) as e:
            logger.warning(f"Redis unavailable at {self.redis_url} ({e}); caching recipes on disk only")
            await client.aclose()
            return

        self._redis = client
        logger.info("Recipe cache connected to Redis")

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("Recipe cache disconnected from Redis")

    def _key(self, fingerprint: str) -> str:
        return f"{KEY_PREFIX}{fingerprint}"

    def _path(self, fingerprint: str) -> Path:
        return self.cache_dir / f"recipes-{fingerprint}.json"

    async def load(self, fingerprint: str) -> Optional[List[Recipe]]:
        """
        Cached recipes for a dataset.

        Args:
            fingerprint: Dataset fingerprint

        Returns:
            Validated recipes, or None on a miss or when nothing valid is left
        """
        items = await self._load_redis(fingerprint)
        if items is None:
            items = await self._load_file(fingerprint)
        if items is None:
            logger.debug(f"No cached recipes for {fingerprint}")
            return None

        recipes = parse_recipes(items)
        if not recipes:
            logger.warning(f"Cached recipes for {fingerprint} are all invalid, ignoring them")
            return None

        logger.info(f"Loaded {len(recipes)} cached recipes for {fingerprint}")
        return recipes

    async def store(self, fingerprint: str, recipes: Sequence[Recipe]) -> bool:
        """
        Cache the recipe set for a dataset.

        Returns:
            True if at least one backend accepted the entry
        """
        items = [recipe.to_wire() for recipe in recipes]
        stored = False

        if self._redis is not None:
            payload = json.dumps(items)
            try:
                if self.ttl_seconds:
                    await self._redis.setex(self._key(fingerprint), self.ttl_seconds, payload)
                else:
                    await self._redis.set(self._key(fingerprint), payload)
                stored = True
            except RedisError as e:
                logger.error(f"Failed to cache recipes in Redis for {fingerprint}: {e}")

        stored = await self._store_file(fingerprint, items) or stored
        if not stored:
            logger.warning(f"Recipes for {fingerprint} were not cached anywhere")
        return stored

    async def clear(self, fingerprint: str) -> bool:
        """Drop a dataset's entry from both backends."""
        removed = False
        if self._redis is not None:
            try:
                removed = await self._redis.delete(self._key(fingerprint)) > 0
            except RedisError as e:
                logger.error(f"Failed to delete cached recipes for {fingerprint}: {e}")

        path = self._path(fingerprint)
        if path.exists():
            path.unlink(missing_ok=True)
            removed = True
        return removed

    async def _load_redis(self, fingerprint: str) -> Optional[List[Any]]:
        if self._redis is None:
            return None
        try:
            raw = await self._redis.get(self._key(fingerprint))
        except RedisError as e:
            logger.error(f"Failed to read cached recipes from Redis for {fingerprint}: {e}")
            return None
        if raw is None:
            return None

        try:
            items = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Ignoring malformed Redis entry for {fingerprint}: {e}")
            return None
        return items if isinstance(items, list) else None

    async def _load_file(self, fingerprint: str) -> Optional[List[Any]]:
        path = self._path(fingerprint)
        if not path.exists():
            return None

        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                entry = json.loads(await f.read())
            expires_at = entry.get("expires_at")
            if expires_at and datetime.now(timezone.utc) > datetime.fromisoformat(expires_at):
                logger.debug(f"Cached recipes for {fingerprint} expired")
                path.unlink(missing_ok=True)
                return None
            items = entry.get("recipes")
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable recipe cache file {path}: {e}")
            return None

        return items if isinstance(items, list) else None

    async def _store_file(self, fingerprint: str, items: List[dict]) -> bool:
        now = datetime.now(timezone.utc)
        entry = {
            "fingerprint": fingerprint,
            "stored_at": now.isoformat(),
            "expires_at": (
                (now + timedelta(seconds=self.ttl_seconds)).isoformat()
                if self.ttl_seconds
                else None
            ),
            "recipes": items,
        }

        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self._path(fingerprint), "w", encoding="utf-8") as f:
                await f.write(json.dumps(entry, indent=2))
        except OSError as e:
            logger.error(f"Failed to write recipe cache file for {fingerprint}: {e}")
            return False
        return True


# Global recipe cache instance
recipe_cache = RecipeCache()
