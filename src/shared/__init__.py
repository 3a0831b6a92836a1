# Shared module for common utilities, models, errors and configuration
from .config import Settings, get_settings
from .errors import (
    CatalogUnavailableError,
    IncompleteProfileError,
    InvalidOfferUrlError,
    MatchingError,
    MissingContentError,
    NotFoundError,
    OfferFetchError,
)
from .models import (
    CandidateProfile,
    CandidateSkill,
    DetectedSkill,
    JobOffer,
    JobSkillRequirement,
    MatchResult,
    MatchTrace,
    OfferAnalysis,
    Recommendation,
    Skill,
)
from .text import fold_text, normalize_to_slug

__all__ = [
    "Settings",
    "get_settings",
    "CatalogUnavailableError",
    "IncompleteProfileError",
    "InvalidOfferUrlError",
    "MatchingError",
    "MissingContentError",
    "NotFoundError",
    "OfferFetchError",
    "CandidateProfile",
    "CandidateSkill",
    "DetectedSkill",
    "JobOffer",
    "JobSkillRequirement",
    "MatchResult",
    "MatchTrace",
    "OfferAnalysis",
    "Recommendation",
    "Skill",
    "fold_text",
    "normalize_to_slug",
]
