"""
Pydantic models for skills, candidates, offers and match results.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from .text import normalize_to_slug


class Skill(BaseModel):
    """Catalog skill. Single source of truth for candidate and offer skills."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = Field(default=None, description="Database id")
    slug: str = Field(..., description="Normalized ascii-lowercase-hyphenated id")
    display_name: str = Field(..., description="Human readable name")
    category: Optional[str] = Field(default=None)
    aliases: list[str] = Field(default_factory=list, description="Extra surface forms")
    context_terms: list[str] = Field(
        default_factory=list,
        description="If set, a mention only counts when one of these terms is in the text",
    )

    @model_validator(mode="before")
    @classmethod
    def _derive_slug(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("slug") and data.get("display_name"):
            data = {**data, "slug": normalize_to_slug(data["display_name"])}
        return data


class CandidateSkill(BaseModel):
    """Skill held by a candidate."""

    model_config = ConfigDict(frozen=True)

    skill: Skill
    proficiency_level: Optional[int] = Field(default=None, ge=1, le=5)
    last_used_on: Optional[date] = None


class JobSkillRequirement(BaseModel):
    """Skill declared on a job offer."""

    model_config = ConfigDict(frozen=True)

    skill: Skill
    is_required: bool = False
    weight: float = Field(default=1.0, gt=0)


class CandidateProfile(BaseModel):
    """Candidate attributes consumed by the scorer."""

    id: Optional[str] = None
    # None means the profile has no resolvable skill list; [] is a valid empty list
    skills: Optional[list[CandidateSkill]] = None
    mobility_km: Optional[float] = Field(default=None, ge=0)
    experience_years: Optional[float] = Field(default=None, ge=0)
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    preferred_contracts: list[str] = Field(default_factory=list)


class JobOffer(BaseModel):
    """Job offer attributes consumed by the extractor and the scorer."""

    id: Optional[str] = None
    title: str = ""
    description: str = ""
    company: Optional[str] = None
    # None means skills were never structured and must be extracted
    skills: Optional[list[JobSkillRequirement]] = None
    experience_min: Optional[float] = Field(default=None, ge=0)
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    contract_type: Optional[str] = None


class DetectedSkill(BaseModel):
    """Skill mention found by the extractor in a piece of text."""

    model_config = ConfigDict(frozen=True)

    skill: Skill
    required: bool
    confidence: float = Field(..., ge=0.0, le=1.0)
    matched_phrase: str
    span: tuple[int, int] = Field(..., description="Offsets in the folded text")
    occurrences: int = Field(default=1, ge=1)
    match_kind: Literal["exact", "alias"] = "exact"


class SkillMatch(BaseModel):
    """Per-skill outcome of a scoring call."""

    model_config = ConfigDict(frozen=True)

    slug: str
    display_name: str
    required: bool
    weight: float
    proficiency_level: Optional[int] = None


class HardFilterReport(BaseModel):
    """Outcome of the pass/fail preconditions."""

    model_config = ConfigDict(frozen=True)

    distance_km: Optional[float] = None
    max_distance_km: Optional[float] = None
    distance_checked: bool = False
    distance_passed: bool = True
    contract_type: Optional[str] = None
    contract_checked: bool = False
    contract_passed: bool = True

    @computed_field
    @property
    def passed(self) -> bool:
        return self.distance_passed and self.contract_passed


class RecommendationPriority(str, Enum):
    """Recommendation priority."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Recommendation(BaseModel):
    """Actionable hint shown next to a score."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    type: str
    message: str
    priority: RecommendationPriority


class MatchResult(BaseModel):
    """Result of scoring one candidate against one offer."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0, le=100)
    skill_score: float = Field(..., ge=0.0, le=100.0)
    experience_adjustment: float = 0.0
    matched_skills: list[SkillMatch] = Field(default_factory=list)
    missing_skills: list[SkillMatch] = Field(default_factory=list)
    hard_filters: HardFilterReport = Field(default_factory=HardFilterReport)
    ceiling_applied: Optional[int] = Field(
        default=None, description="Score ceiling imposed by a failed hard filter"
    )
    explanation: str = ""
    recommendations: list[Recommendation] = Field(default_factory=list)
    inputs_hash: str = ""

    def to_response(self) -> dict[str, Any]:
        """Shape used by ``GET /offers/:id/match``."""
        return {
            "matching": {
                "score": self.score,
                "explanation": self.explanation,
                "matched_skills": [m.model_dump() for m in self.matched_skills],
                "missing_skills": [m.model_dump() for m in self.missing_skills],
                "distance_km": self.hard_filters.distance_km,
            },
            "recommendations": [r.model_dump() for r in self.recommendations],
        }


class MatchTrace(BaseModel):
    """Append-only audit record of a scoring computation."""

    model_config = ConfigDict(frozen=True)

    candidate_id: Optional[str] = None
    offer_id: Optional[str] = None
    score: int
    explanation: str
    inputs_hash: str
    matched_skills: list[str] = Field(default_factory=list)
    missing_skills: list[str] = Field(default_factory=list)
    created_at: datetime


class DetectedSkillSummary(BaseModel):
    """Detected skill as returned to a candidate who pasted an offer."""

    model_config = ConfigDict(frozen=True)

    name: str
    slug: str
    category: Optional[str] = None
    importance: str
    confidence: float


class DetectedSkills(BaseModel):
    """Detected skills split by classification."""

    model_config = ConfigDict(frozen=True)

    required: list[DetectedSkillSummary] = Field(default_factory=list)
    optional: list[DetectedSkillSummary] = Field(default_factory=list)


class AnalysisMetadata(BaseModel):
    """Quality indicators of an offer parse."""

    model_config = ConfigDict(frozen=True)

    total_skills: int = 0
    confidence: float = 0.0
    source: Optional[str] = None
    text_length: int = 0
    categories: dict[str, int] = Field(default_factory=dict)


class OfferAnalysis(BaseModel):
    """Result of parsing an externally pasted offer."""

    model_config = ConfigDict(frozen=True)

    title: Optional[str] = None
    detected_skills: DetectedSkills = Field(default_factory=DetectedSkills)
    analysis_metadata: AnalysisMetadata = Field(default_factory=AnalysisMetadata)
    relevance_score: int = Field(default=0, ge=0, le=100)
    explanation: str = ""
    recommendations: list[Recommendation] = Field(default_factory=list)

    def to_response(self) -> dict[str, Any]:
        """Shape used by ``POST /offer/parse``."""
        return {
            "parsed_offer": {
                "title": self.title or "Offre externe",
                "source": self.analysis_metadata.source or "Texte collé",
                "skills_detected": self.detected_skills.model_dump(),
                "analysis_quality": self.analysis_metadata.model_dump(),
            },
            "score": self.relevance_score,
            "explanation": self.explanation,
            "recommendations": [r.model_dump() for r in self.recommendations],
        }
