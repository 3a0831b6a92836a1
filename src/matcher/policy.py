"""
Scoring policy: weights, bonuses and hard-filter ceilings.
"""

from dataclasses import dataclass
from pathlib import Path

import yaml
from loguru import logger


@dataclass(frozen=True)
class ScoringPolicy:
    """Tunable constants of the match scorer."""

    optional_weight_factor: float = 0.5
    neutral_skill_score: float = 50.0
    experience_bonus: float = 5.0
    experience_penalty_per_year: float = 5.0
    experience_penalty_cap: float = 15.0
    distance_ceiling: int = 30
    contract_ceiling: int = 0

    @classmethod
    def from_yaml(cls, path: Path) -> "ScoringPolicy":
        """Load the ``scoring`` section of the matching config file."""
        if not path.exists():
            logger.warning(f"Matching config not found: {path}, using defaults")
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        scoring = data.get("scoring", {})
        defaults = cls()
        return cls(
            optional_weight_factor=scoring.get(
                "optional_weight_factor", defaults.optional_weight_factor
            ),
            neutral_skill_score=scoring.get("neutral_skill_score", defaults.neutral_skill_score),
            experience_bonus=scoring.get("experience_bonus", defaults.experience_bonus),
            experience_penalty_per_year=scoring.get(
                "experience_penalty_per_year", defaults.experience_penalty_per_year
            ),
            experience_penalty_cap=scoring.get(
                "experience_penalty_cap", defaults.experience_penalty_cap
            ),
            distance_ceiling=scoring.get("distance_ceiling", defaults.distance_ceiling),
            contract_ceiling=scoring.get("contract_ceiling", defaults.contract_ceiling),
        )
