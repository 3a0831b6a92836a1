"""
Deterministic candidate/offer match scoring.

The score combines weighted skill overlap, an experience adjustment and
hard-filter ceilings (distance, contract type). Identical inputs always give
the identical MatchResult; input ordering never changes the number.
"""

import hashlib
import json
import math
from typing import Optional, Sequence

from shared.models import (
    CandidateProfile,
    CandidateSkill,
    HardFilterReport,
    JobOffer,
    JobSkillRequirement,
    MatchResult,
    SkillMatch,
)

from .policy import ScoringPolicy

EARTH_RADIUS_KM = 6371.0


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 going up."""
    return int(math.floor(value + 0.5))


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def merge_requirements(job_skills: Sequence[JobSkillRequirement]) -> list[JobSkillRequirement]:
    """
    Collapse duplicate requirements on the same skill and sort by slug.
    A merged skill is required if any duplicate is, with the largest weight.
    """
    merged: dict[str, JobSkillRequirement] = {}
    for req in job_skills:
        existing = merged.get(req.skill.slug)
        if existing is None:
            merged[req.skill.slug] = req
        else:
            merged[req.skill.slug] = JobSkillRequirement(
                skill=existing.skill,
                is_required=existing.is_required or req.is_required,
                weight=max(existing.weight, req.weight),
            )
    return [merged[slug] for slug in sorted(merged)]


def inputs_hash(
    candidate_skills: Sequence[CandidateSkill],
    job_skills: Sequence[JobSkillRequirement],
    candidate_profile: CandidateProfile,
    job_offer: JobOffer,
    distance_km: Optional[float],
) -> str:
    """Stable fingerprint of everything the score depends on."""
    payload = {
        "candidate_id": candidate_profile.id,
        "offer_id": job_offer.id,
        "candidate_skills": sorted(cs.skill.slug for cs in candidate_skills),
        "job_skills": [
            [req.skill.slug, req.is_required, req.weight]
            for req in merge_requirements(job_skills)
        ],
        "experience_years": candidate_profile.experience_years,
        "experience_min": job_offer.experience_min,
        "mobility_km": candidate_profile.mobility_km,
        "distance_km": distance_km,
        "contract_type": job_offer.contract_type,
        "preferred_contracts": sorted(candidate_profile.preferred_contracts),
    }
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


class MatchScorer:
    """Scores a candidate against a job offer."""

    def __init__(self, policy: Optional[ScoringPolicy] = None):
        self.policy = policy or ScoringPolicy()

    def score(
        self,
        candidate_skills: Sequence[CandidateSkill],
        job_skills: Sequence[JobSkillRequirement],
        candidate_profile: CandidateProfile,
        job_offer: JobOffer,
        distance_km: Optional[float] = None,
    ) -> MatchResult:
        """
        Compute the 0-100 compatibility score and its breakdown.

        Args:
            candidate_skills: Skills held by the candidate
            job_skills: Skills declared or extracted for the offer
            candidate_profile: Mobility, experience, contracts, coordinates
            job_offer: Experience minimum, location, contract type
            distance_km: Precomputed candidate/offer distance, if known

        Returns:
            MatchResult without explanation; see MatchExplainer
        """
        distance = self._resolve_distance(candidate_profile, job_offer, distance_km)
        hard_filters = self._check_hard_filters(candidate_profile, job_offer, distance)

        skill_score, matched, missing = self._score_skills(candidate_skills, job_skills)
        adjustment = self._experience_adjustment(candidate_profile, job_offer)
        total = min(100.0, max(0.0, skill_score + adjustment))

        # Failed hard filters cap the score, they do not exclude the offer
        ceilings = []
        if not hard_filters.distance_passed:
            ceilings.append(self.policy.distance_ceiling)
        if not hard_filters.contract_passed:
            ceilings.append(self.policy.contract_ceiling)
        ceiling = min(ceilings) if ceilings else None
        if ceiling is not None:
            total = min(total, float(ceiling))

        return MatchResult(
            score=max(0, min(100, round_half_up(total))),
            skill_score=round(skill_score, 4),
            experience_adjustment=round(adjustment, 4),
            matched_skills=matched,
            missing_skills=missing,
            hard_filters=hard_filters,
            ceiling_applied=ceiling,
            inputs_hash=inputs_hash(
                candidate_skills, job_skills, candidate_profile, job_offer, distance
            ),
        )

    @staticmethod
    def _resolve_distance(
        candidate_profile: CandidateProfile,
        job_offer: JobOffer,
        distance_km: Optional[float],
    ) -> Optional[float]:
        if distance_km is not None:
            return distance_km
        coordinates = (
            candidate_profile.latitude,
            candidate_profile.longitude,
            job_offer.latitude,
            job_offer.longitude,
        )
        if any(c is None for c in coordinates):
            return None
        return round(haversine_km(*coordinates), 1)

    @staticmethod
    def _check_hard_filters(
        candidate_profile: CandidateProfile,
        job_offer: JobOffer,
        distance_km: Optional[float],
    ) -> HardFilterReport:
        offer_located = bool(job_offer.location) or (
            job_offer.latitude is not None and job_offer.longitude is not None
        )
        distance_checked = (
            offer_located
            and candidate_profile.mobility_km is not None
            and distance_km is not None
        )
        distance_passed = (
            distance_km <= candidate_profile.mobility_km if distance_checked else True
        )

        contract_checked = bool(job_offer.contract_type and candidate_profile.preferred_contracts)
        contract_passed = True
        if contract_checked:
            accepted = {c.casefold() for c in candidate_profile.preferred_contracts}
            contract_passed = job_offer.contract_type.casefold() in accepted

        return HardFilterReport(
            distance_km=distance_km,
            max_distance_km=candidate_profile.mobility_km,
            distance_checked=distance_checked,
            distance_passed=distance_passed,
            contract_type=job_offer.contract_type,
            contract_checked=contract_checked,
            contract_passed=contract_passed,
        )

    def _score_skills(
        self,
        candidate_skills: Sequence[CandidateSkill],
        job_skills: Sequence[JobSkillRequirement],
    ) -> tuple[float, list[SkillMatch], list[SkillMatch]]:
        """Weighted overlap, 0-100. Neutral score when the offer declares no skills."""
        requirements = merge_requirements(job_skills)
        if not requirements:
            return self.policy.neutral_skill_score, [], []

        by_id = {cs.skill.id: cs for cs in candidate_skills if cs.skill.id is not None}
        by_slug = {cs.skill.slug: cs for cs in candidate_skills}

        numerator = 0.0
        denominator = 0.0
        matched: list[SkillMatch] = []
        missing: list[SkillMatch] = []

        for req in requirements:
            factor = 1.0 if req.is_required else self.policy.optional_weight_factor
            contribution = req.weight * factor
            denominator += contribution

            held = None
            if req.skill.id is not None:
                held = by_id.get(req.skill.id)
            if held is None:
                held = by_slug.get(req.skill.slug)

            entry = SkillMatch(
                slug=req.skill.slug,
                display_name=req.skill.display_name,
                required=req.is_required,
                weight=req.weight,
                proficiency_level=held.proficiency_level if held else None,
            )
            if held is not None:
                numerator += contribution
                matched.append(entry)
            else:
                missing.append(entry)

        if denominator > 0:
            base = min(100.0, max(0.0, 100.0 * numerator / denominator))
        else:
            base = self.policy.neutral_skill_score

        def sort_key(m: SkillMatch) -> tuple[str, str]:
            return (m.display_name.casefold(), m.slug)

        return base, sorted(matched, key=sort_key), sorted(missing, key=sort_key)

    def _experience_adjustment(
        self, candidate_profile: CandidateProfile, job_offer: JobOffer
    ) -> float:
        """Small bonus when the minimum is met, capped penalty per missing year."""
        required = job_offer.experience_min or 0
        if required <= 0:
            return 0.0

        years = candidate_profile.experience_years or 0
        if years >= required:
            return self.policy.experience_bonus

        gap = required - years
        return -min(
            self.policy.experience_penalty_cap,
            self.policy.experience_penalty_per_year * gap,
        )
