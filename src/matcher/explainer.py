"""
Human readable explanations and recommendations for scores and offer parses.
"""

from dataclasses import dataclass, field

from extractor.extractor import ExtractionResult
from shared.models import MatchResult, Recommendation, RecommendationPriority, SkillMatch

_PRIORITY_ORDER = {
    RecommendationPriority.HIGH.value: 0,
    RecommendationPriority.MEDIUM.value: 1,
    RecommendationPriority.LOW.value: 2,
}


@dataclass
class Explanation:
    """Explanation text plus ordered recommendations."""

    explanation: str
    recommendations: list[Recommendation] = field(default_factory=list)


def _format_km(value: float) -> str:
    return f"{value:g}"


def _plural(count: int, singular: str, plural: str) -> str:
    # French: 0 and 1 take the singular
    return singular if count <= 1 else plural


def _sort_recommendations(recommendations: list[Recommendation]) -> list[Recommendation]:
    return sorted(recommendations, key=lambda r: _PRIORITY_ORDER[r.priority])


class MatchExplainer:
    """Turns a MatchResult or an ExtractionResult into French text."""

    def __init__(
        self,
        low_match_threshold: int = 50,
        high_match_threshold: int = 80,
        max_named_matches: int = 3,
        max_named_missing: int = 2,
        max_recommended_skills: int = 3,
        min_required_skills: int = 3,
        min_parse_confidence: float = 0.6,
    ):
        self.low_match_threshold = low_match_threshold
        self.high_match_threshold = high_match_threshold
        self.max_named_matches = max_named_matches
        self.max_named_missing = max_named_missing
        self.max_recommended_skills = max_recommended_skills
        self.min_required_skills = min_required_skills
        self.min_parse_confidence = min_parse_confidence

    def explain(self, result: MatchResult) -> Explanation:
        """
        Explain a match score.

        Example:
            "Score 72 : vous correspondez sur 4 compétences (React, Node.js,
            SQL...), mais il manque Docker et vous êtes éloigné de 20 km."
        """
        return Explanation(
            explanation=self._explanation_text(result),
            recommendations=self._recommendations(result),
        )

    def explain_analysis(self, result: ExtractionResult) -> Explanation:
        """Explain the outcome of parsing an external offer."""
        total = len(result.detected_skills)
        required = len(result.required)
        optional = len(result.optional)

        if total == 0:
            text = "Aucune compétence n'a été détectée dans cette offre."
        else:
            text = (
                f"Cette offre contient {total} "
                f"{_plural(total, 'compétence détectée', 'compétences détectées')} avec "
                f"{round(result.confidence * 100)}% de confiance. "
                f"{required} "
                f"{_plural(required, 'compétence est obligatoire', 'compétences sont obligatoires')}"
                f" et {optional} {_plural(optional, 'est souhaitée', 'sont souhaitées')}."
            )

        recommendations = []
        if required < self.min_required_skills:
            recommendations.append(
                Recommendation(
                    type="skill_gap",
                    message=(
                        "Cette offre semble avoir peu de compétences techniques spécifiées. "
                        "Vérifiez si elle correspond à votre profil."
                    ),
                    priority=RecommendationPriority.MEDIUM,
                )
            )
        if result.confidence < self.min_parse_confidence:
            recommendations.append(
                Recommendation(
                    type="parsing_quality",
                    message=(
                        "L'analyse automatique a une confiance limitée. "
                        "Lisez attentivement l'offre originale."
                    ),
                    priority=RecommendationPriority.HIGH,
                )
            )

        return Explanation(
            explanation=text, recommendations=_sort_recommendations(recommendations)
        )

    def _explanation_text(self, result: MatchResult) -> str:
        positives = []
        negatives = []

        if not result.matched_skills and not result.missing_skills:
            positives.append("cette offre ne précise aucune compétence")
        elif result.matched_skills:
            count = len(result.matched_skills)
            shown = result.matched_skills[: self.max_named_matches]
            names = ", ".join(m.display_name for m in shown)
            more = "..." if count > self.max_named_matches else ""
            noun = "compétence" if count == 1 else "compétences"
            positives.append(f"vous correspondez sur {count} {noun} ({names}{more})")
        else:
            negatives.append("aucune de vos compétences ne correspond")

        missing_required = [m for m in result.missing_skills if m.required]
        if missing_required:
            named = [m.display_name for m in missing_required[: self.max_named_missing]]
            text = f"il manque {' et '.join(named)}"
            rest = len(missing_required) - len(named)
            if rest > 0:
                text += f" (et {rest} {'autre' if rest == 1 else 'autres'})"
            negatives.append(text)

        if result.experience_adjustment < 0:
            negatives.append("votre expérience est inférieure au minimum demandé")

        filters = result.hard_filters
        if filters.distance_km is not None:
            text = f"vous êtes éloigné de {_format_km(filters.distance_km)} km"
            if not filters.distance_passed and filters.max_distance_km is not None:
                text += f", au-delà de votre mobilité de {_format_km(filters.max_distance_km)} km"
            negatives.append(text)

        if not filters.contract_passed:
            negatives.append(f"le contrat {filters.contract_type} ne fait pas partie de vos choix")

        if positives and negatives:
            body = f"{', '.join(positives)}, mais {self._join(negatives)}"
        elif positives:
            body = ", ".join(positives)
        elif negatives:
            body = self._join(negatives)
        else:
            body = "profil compatible avec l'offre"

        return f"Score {result.score} : {body}."

    @staticmethod
    def _join(parts: list[str]) -> str:
        if len(parts) == 1:
            return parts[0]
        return f"{', '.join(parts[:-1])} et {parts[-1]}"

    def _recommendations(self, result: MatchResult) -> list[Recommendation]:
        recommendations = []

        if result.score < self.low_match_threshold:
            recommendations.append(
                Recommendation(
                    type="low_match",
                    message=(
                        "Ce poste semble peu adapté à votre profil. "
                        "Concentrez-vous sur des offres avec un score plus élevé."
                    ),
                    priority=RecommendationPriority.LOW,
                )
            )
        elif result.score > self.high_match_threshold:
            recommendations.append(
                Recommendation(
                    type="high_match",
                    message="Excellent matching ! N'hésitez pas à postuler rapidement.",
                    priority=RecommendationPriority.HIGH,
                )
            )

        if result.missing_skills:
            recommendations.append(
                Recommendation(
                    type="skill_development",
                    message=(
                        "Développez ces compétences pour améliorer votre profil : "
                        + ", ".join(m.display_name for m in self._skills_to_develop(result))
                    ),
                    priority=RecommendationPriority.MEDIUM,
                )
            )

        return _sort_recommendations(recommendations)

    def _skills_to_develop(self, result: MatchResult) -> list[SkillMatch]:
        """Missing skills, required ones first."""
        ordered = sorted(result.missing_skills, key=lambda m: not m.required)
        return ordered[: self.max_recommended_skills]
