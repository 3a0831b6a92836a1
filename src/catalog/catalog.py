"""
Skill catalog lookups.

The extractor only talks to the catalog through the ``SkillCatalog``
protocol, so the same code runs against the YAML catalog, the database or a
cached view of either.
"""

import asyncio
from pathlib import Path
from typing import Iterable, Optional, Protocol

import asyncpg
import yaml
from loguru import logger

from shared.database import Database
from shared.errors import CatalogUnavailableError, NotFoundError
from shared.models import Skill
from shared.text import fold_text, normalize_to_slug

# Connection refused, pool not connected, query timeout
_UNAVAILABLE_ERRORS = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    RuntimeError,
    asyncio.TimeoutError,
)


class SkillCatalog(Protocol):
    """Read-only view of the skill catalog."""

    async def find_by_slug(self, slug: str) -> Skill:
        ...

    async def search(self, text: str, limit: int = 20) -> list[Skill]:
        ...

    async def list_skills(self) -> list[Skill]:
        ...


def rank_skills(skills: Iterable[Skill], text: str, limit: int = 20) -> list[Skill]:
    """
    Order skills by relevance to a free-text query.

    Exact name/slug/alias matches come first, then prefix matches, then
    substring matches. Ties are broken by display name then slug.
    """
    query = fold_text(text).strip()
    if not query or limit <= 0:
        return []
    query_slug = normalize_to_slug(text)

    ranked = []
    for skill in skills:
        names = [fold_text(skill.display_name), skill.slug]
        names.extend(fold_text(alias) for alias in skill.aliases)

        if query in names or query_slug == skill.slug:
            rank = 0
        elif any(name.startswith(query) for name in names):
            rank = 1
        elif any(query in name for name in names):
            rank = 2
        else:
            continue
        ranked.append((rank, skill.display_name.casefold(), skill.slug, skill))

    ranked.sort(key=lambda item: item[:3])
    return [item[3] for item in ranked[:limit]]


class InMemorySkillCatalog:
    """Catalog held in memory, typically loaded from YAML."""

    def __init__(self, skills: Optional[Iterable[Skill]] = None):
        self._skills: dict[str, Skill] = {}
        for skill in skills or []:
            self.add(skill)

    @classmethod
    def from_yaml(cls, path: Path) -> "InMemorySkillCatalog":
        """Load catalog from YAML file."""
        if not path.exists():
            raise FileNotFoundError(f"Skill catalog not found: {path}")

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        skills = [
            Skill(
                display_name=entry["display_name"],
                slug=entry.get("slug") or normalize_to_slug(entry["display_name"]),
                category=entry.get("category"),
                aliases=entry.get("aliases", []),
                context_terms=entry.get("context_terms", []),
            )
            for entry in data.get("skills", [])
        ]

        logger.info(f"Loaded {len(skills)} catalog skills from {path}")
        return cls(skills)

    def add(self, skill: Skill) -> None:
        """Add a skill. Slugs are unique."""
        if skill.slug in self._skills:
            raise ValueError(f"Duplicate skill slug: {skill.slug}")
        self._skills[skill.slug] = skill

    def remove(self, slug: str) -> None:
        self._skills.pop(slug, None)

    async def find_by_slug(self, slug: str) -> Skill:
        try:
            return self._skills[slug]
        except KeyError:
            raise NotFoundError(f"Skill not found: {slug}") from None

    async def search(self, text: str, limit: int = 20) -> list[Skill]:
        return rank_skills(self._skills.values(), text, limit)

    async def list_skills(self) -> list[Skill]:
        return list(self._skills.values())

    def __len__(self) -> int:
        return len(self._skills)


class DatabaseSkillCatalog:
    """Catalog backed by the ``skills`` table."""

    def __init__(self, db: Database):
        self.db = db

    async def list_skills(self) -> list[Skill]:
        try:
            return await self.db.fetch_skills()
        except _UNAVAILABLE_ERRORS as e:
            logger.error(f"Skill catalog query failed: {e}")
            raise CatalogUnavailableError(str(e)) from e

    async def find_by_slug(self, slug: str) -> Skill:
        try:
            skill = await self.db.get_skill_by_slug(slug)
        except _UNAVAILABLE_ERRORS as e:
            logger.error(f"Skill lookup failed for {slug}: {e}")
            raise CatalogUnavailableError(str(e)) from e
        if skill is None:
            raise NotFoundError(f"Skill not found: {slug}")
        return skill

    async def search(self, text: str, limit: int = 20) -> list[Skill]:
        return rank_skills(await self.list_skills(), text, limit)
