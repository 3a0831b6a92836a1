"""
Extraction settings: requirement markers, window size and confidence weights.
"""

from dataclasses import dataclass, field
from pathlib import Path

import yaml
from loguru import logger

DEFAULT_REQUIRED_MARKERS = [
    "obligatoire",
    "requis",
    "prérequis",
    "indispensable",
    "nécessaire",
    "impératif",
    "exigé",
    "maîtrise",
    "expertise",
    "expérience en",
    "connaissance approfondie",
    "required",
    "mandatory",
    "must have",
    "essential",
]

DEFAULT_OPTIONAL_MARKERS = [
    "souhaité",
    "apprécié",
    "un plus",
    "bonus",
    "idéalement",
    "de préférence",
    "atout",
    "optionnel",
    "nice to have",
    "is a plus",
    "preferred",
]


@dataclass
class ExtractionConfig:
    """Marker lists and confidence weights used by the skill extractor."""

    required_markers: list[str] = field(default_factory=lambda: list(DEFAULT_REQUIRED_MARKERS))
    optional_markers: list[str] = field(default_factory=lambda: list(DEFAULT_OPTIONAL_MARKERS))
    window_chars: int = 50
    exact_confidence: float = 0.8
    alias_confidence: float = 0.6
    occurrence_bonus: float = 0.1
    required_weight: float = 1.0
    optional_weight: float = 1.0

    @classmethod
    def from_yaml(cls, path: Path) -> "ExtractionConfig":
        """Load the ``extraction`` section of the matching config file."""
        if not path.exists():
            logger.warning(f"Matching config not found: {path}, using defaults")
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        section = data.get("extraction", {})
        defaults = cls()
        return cls(
            required_markers=section.get("required_markers", defaults.required_markers),
            optional_markers=section.get("optional_markers", defaults.optional_markers),
            window_chars=section.get("window_chars", defaults.window_chars),
            exact_confidence=section.get("exact_confidence", defaults.exact_confidence),
            alias_confidence=section.get("alias_confidence", defaults.alias_confidence),
            occurrence_bonus=section.get("occurrence_bonus", defaults.occurrence_bonus),
            required_weight=section.get("required_weight", defaults.required_weight),
            optional_weight=section.get("optional_weight", defaults.optional_weight),
        )
