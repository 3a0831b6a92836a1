"""
Read-through cache in front of a skill catalog.
"""

import asyncio
import time
from typing import Callable, Optional

from loguru import logger

from shared.errors import NotFoundError
from shared.models import Skill

from .catalog import SkillCatalog, rank_skills


class CachedSkillCatalog:
    """
    Caches ``list_skills`` of another catalog for ``ttl_seconds``.

    ``invalidate()`` drops the cached copy and bumps ``version``; catalog
    admin operations call it after creating, merging or deleting skills.
    A ``find_by_slug`` miss re-reads the underlying catalog once, unless the
    cached copy is younger than ``miss_reload_seconds``, then raises
    ``NotFoundError``. Concurrent callers share a single reload.
    """

    def __init__(
        self,
        inner: SkillCatalog,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
        miss_reload_seconds: float = 5.0,
    ):
        self.inner = inner
        self.ttl_seconds = ttl_seconds
        self.miss_reload_seconds = miss_reload_seconds
        self._clock = clock
        self._skills: Optional[list[Skill]] = None
        self._loaded_at = 0.0
        self._version = 0
        self._lock = asyncio.Lock()

    @property
    def version(self) -> int:
        """Incremented on every invalidation."""
        return self._version

    def invalidate(self) -> None:
        """Force the next lookup to re-read the underlying catalog."""
        self._skills = None
        self._version += 1
        logger.debug(f"Skill catalog cache invalidated (version {self._version})")

    def _is_fresh(self) -> bool:
        return (
            self._skills is not None
            and self._clock() - self._loaded_at < self.ttl_seconds
        )

    async def _reload(self, loaded_before: Optional[float] = None) -> list[Skill]:
        async with self._lock:
            # Another caller may have reloaded while this one waited
            stale = not self._is_fresh() or (
                loaded_before is not None and self._loaded_at <= loaded_before
            )
            if stale:
                self._skills = await self.inner.list_skills()
                self._loaded_at = self._clock()
                logger.debug(f"Skill catalog cache loaded {len(self._skills)} skills")
            return list(self._skills)

    async def list_skills(self) -> list[Skill]:
        if self._is_fresh():
            return list(self._skills)
        return await self._reload()

    async def find_by_slug(self, slug: str) -> Skill:
        skills = await self.list_skills()
        for skill in skills:
            if skill.slug == slug:
                return skill

        loaded_at = self._loaded_at
        if self._clock() - loaded_at >= self.miss_reload_seconds:
            for skill in await self._reload(loaded_before=loaded_at):
                if skill.slug == slug:
                    return skill

        raise NotFoundError(f"Skill not found: {slug}")

    async def search(self, text: str, limit: int = 20) -> list[Skill]:
        return rank_skills(await self.list_skills(), text, limit)
