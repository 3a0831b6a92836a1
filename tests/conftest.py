from pathlib import Path

import pytest

from catalog import InMemorySkillCatalog
from extractor.config import ExtractionConfig
from shared.models import CandidateSkill, JobSkillRequirement, Skill

ROOT = Path(__file__).resolve().parent.parent
SKILLS_PATH = ROOT / "config" / "skills.yaml"
MATCHING_PATH = ROOT / "config" / "matching.yaml"


@pytest.fixture
def catalog() -> InMemorySkillCatalog:
    return InMemorySkillCatalog.from_yaml(SKILLS_PATH)


@pytest.fixture
def extraction_config() -> ExtractionConfig:
    return ExtractionConfig.from_yaml(MATCHING_PATH)


def skill(name: str, **kwargs) -> Skill:
    return Skill(display_name=name, **kwargs)


def held(*names: str) -> list[CandidateSkill]:
    return [CandidateSkill(skill=skill(name)) for name in names]


def required(name: str, weight: float = 1.0) -> JobSkillRequirement:
    return JobSkillRequirement(skill=skill(name), is_required=True, weight=weight)


def optional(name: str, weight: float = 1.0) -> JobSkillRequirement:
    return JobSkillRequirement(skill=skill(name), is_required=False, weight=weight)
