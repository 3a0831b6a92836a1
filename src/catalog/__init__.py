"""
Skill catalog - canonical skills, slug normalization and lookups.
"""

from shared.text import normalize_to_slug

from .cache import CachedSkillCatalog
from .catalog import DatabaseSkillCatalog, InMemorySkillCatalog, SkillCatalog, rank_skills

__all__ = [
    "CachedSkillCatalog",
    "DatabaseSkillCatalog",
    "InMemorySkillCatalog",
    "SkillCatalog",
    "normalize_to_slug",
    "rank_skills",
]
