"""
Skill Extractor - rule-based skill detection in job offer text.
"""

from .config import ExtractionConfig
from .extractor import ExtractionResult, SkillExtractor
from .fetcher import FetchedPage, OfferPageFetcher

__all__ = [
    "ExtractionConfig",
    "ExtractionResult",
    "FetchedPage",
    "OfferPageFetcher",
    "SkillExtractor",
]
