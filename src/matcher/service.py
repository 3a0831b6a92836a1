"""
Matching service: offer parsing, candidate/offer scoring and ranking.
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

import httpx
from loguru import logger

from catalog.catalog import SkillCatalog
from extractor.config import ExtractionConfig
from extractor.extractor import ExtractionResult, SkillExtractor
from extractor.fetcher import OfferPageFetcher
from shared.config import Settings, get_settings
from shared.errors import (
    IncompleteProfileError,
    InvalidOfferUrlError,
    MissingContentError,
    OfferFetchError,
)
from shared.models import (
    AnalysisMetadata,
    CandidateProfile,
    DetectedSkill,
    DetectedSkills,
    DetectedSkillSummary,
    JobOffer,
    MatchResult,
    OfferAnalysis,
)

from .explainer import MatchExplainer
from .policy import ScoringPolicy
from .scorer import MatchScorer, round_half_up
from .trace import MatchTraceWriter, build_trace


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _summary(detected: DetectedSkill) -> DetectedSkillSummary:
    return DetectedSkillSummary(
        name=detected.skill.display_name,
        slug=detected.skill.slug,
        category=detected.skill.category,
        importance="required" if detected.required else "optional",
        confidence=detected.confidence,
    )


def relevance_score(result: ExtractionResult, expected_skills: int = 3) -> int:
    """Parse quality: aggregate confidence damped when few skills were found."""
    coverage = min(1.0, len(result.detected_skills) / expected_skills)
    return max(0, min(100, round_half_up(100 * result.confidence * coverage)))


class MatchingService:
    """Entry point used by the HTTP layer and the command line."""

    def __init__(
        self,
        catalog: SkillCatalog,
        extractor: Optional[SkillExtractor] = None,
        scorer: Optional[MatchScorer] = None,
        explainer: Optional[MatchExplainer] = None,
        trace_writer: Optional[MatchTraceWriter] = None,
        fetcher: Optional[OfferPageFetcher] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.catalog = catalog
        self.extractor = extractor or SkillExtractor(catalog)
        self.scorer = scorer or MatchScorer()
        self.explainer = explainer or MatchExplainer()
        self.trace_writer = trace_writer
        self.fetcher = fetcher
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        catalog: SkillCatalog,
        settings: Optional[Settings] = None,
        **kwargs,
    ) -> "MatchingService":
        """Build a service with extraction and scoring tuned from the YAML config."""
        settings = settings or get_settings()
        return cls(
            catalog,
            extractor=SkillExtractor(
                catalog, ExtractionConfig.from_yaml(settings.matching_config_path)
            ),
            scorer=MatchScorer(ScoringPolicy.from_yaml(settings.matching_config_path)),
            **kwargs,
        )

    async def parse_external_offer(
        self,
        text: Optional[str] = None,
        url: Optional[str] = None,
        title: Optional[str] = None,
    ) -> OfferAnalysis:
        """
        Detect the skills of an offer pasted or linked by a candidate.

        Args:
            text: Offer text
            url: Offer URL, fetched when no text is given
            title: Offer title, if known

        Returns:
            OfferAnalysis with detected skills and parse quality

        Raises:
            MissingContentError: Neither text nor url was given
            InvalidOfferUrlError: url is malformed or not a public http(s) URL
            OfferFetchError: The offer page could not be downloaded
        """
        has_text = bool(text and text.strip())
        has_url = bool(url and url.strip())
        if not has_text and not has_url:
            raise MissingContentError("Texte de l'offre ou URL requis")

        if not has_text and self.fetcher is not None:
            try:
                page = await self.fetcher.fetch(url.strip())
            except (ValueError, httpx.InvalidURL) as e:
                raise InvalidOfferUrlError(str(e)) from e
            except httpx.HTTPError as e:
                logger.warning(f"Offer fetch failed for {url.strip()}: {e}")
                raise OfferFetchError(f"Impossible de récupérer l'offre: {e}") from e
            text = page.text
            title = title or page.title or None

        result = await self.extractor.extract(text or "", title=title)
        explanation = self.explainer.explain_analysis(result)

        logger.info(
            f"Parsed offer: {len(result.detected_skills)} skills, "
            f"confidence {result.confidence}"
        )

        return OfferAnalysis(
            title=title,
            detected_skills=DetectedSkills(
                required=[_summary(d) for d in result.required],
                optional=[_summary(d) for d in result.optional],
            ),
            analysis_metadata=AnalysisMetadata(
                total_skills=len(result.detected_skills),
                confidence=result.confidence,
                source=url.strip() if has_url else None,
                text_length=result.text_length,
                categories=result.categories,
            ),
            relevance_score=relevance_score(result),
            explanation=explanation.explanation,
            recommendations=explanation.recommendations,
        )

    async def score_offer_for_candidate(
        self,
        candidate_profile: CandidateProfile,
        job_offer: JobOffer,
        distance_km: Optional[float] = None,
    ) -> MatchResult:
        """
        Score a candidate against an offer, with explanation.

        Offers without structured skills are run through the extractor first.
        The trace is written after scoring; a failing trace writer is logged
        and does not fail the call.

        Raises:
            IncompleteProfileError: Candidate skills could not be resolved
        """
        if candidate_profile.skills is None:
            raise IncompleteProfileError(
                f"Profil candidat incomplet: {candidate_profile.id or 'inconnu'}"
            )

        job_skills = job_offer.skills
        if job_skills is None:
            job_skills = await self.extractor.extract_requirements(
                job_offer.description, title=job_offer.title, company=job_offer.company
            )

        result = self.scorer.score(
            candidate_profile.skills,
            job_skills,
            candidate_profile,
            job_offer,
            distance_km=distance_km,
        )
        explanation = self.explainer.explain(result)
        result = result.model_copy(
            update={
                "explanation": explanation.explanation,
                "recommendations": explanation.recommendations,
            }
        )

        logger.info(
            f"Scored offer {job_offer.id} for candidate {candidate_profile.id}: "
            f"{result.score} ({len(result.matched_skills)} matched, "
            f"{len(result.missing_skills)} missing)"
        )

        await self._write_trace(result, candidate_profile, job_offer)
        return result

    async def rank_offers_for_candidate(
        self,
        candidate_profile: CandidateProfile,
        offers: Sequence[JobOffer],
        distances: Optional[dict[str, float]] = None,
    ) -> list[tuple[JobOffer, MatchResult]]:
        """
        Score several offers for one candidate.

        Args:
            candidate_profile: Candidate to rank offers for
            offers: Offers to score
            distances: Known distances keyed by offer id

        Returns:
            (offer, result) pairs sorted by score descending, then offer id
        """
        distances = distances or {}
        results = await asyncio.gather(
            *(
                self.score_offer_for_candidate(
                    candidate_profile, offer, distance_km=distances.get(offer.id or "")
                )
                for offer in offers
            )
        )
        ranked = list(zip(offers, results))
        ranked.sort(key=lambda pair: (-pair[1].score, pair[0].id or ""))
        return ranked

    async def _write_trace(
        self,
        result: MatchResult,
        candidate_profile: CandidateProfile,
        job_offer: JobOffer,
    ) -> None:
        if self.trace_writer is None:
            return

        trace = build_trace(result, candidate_profile.id, job_offer.id, self._clock())
        try:
            await self.trace_writer.write(trace)
        except Exception as e:
            logger.warning(f"Match trace not saved for offer {job_offer.id}: {e}")
