"""
Rule-based skill extraction from job offer text.
Matches catalog skills in free text and classifies each one as required or
optional from nearby marker words.
"""

import re
from collections import Counter
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from loguru import logger

from catalog.catalog import SkillCatalog
from shared.models import DetectedSkill, JobSkillRequirement, Skill
from shared.text import fold_text

from .config import ExtractionConfig

_SEPARATORS = r"[\s\-./]"
_SEPARATOR_RUN = re.compile(_SEPARATORS + "+")
_LEADING_SEPARATORS = re.compile("^" + _SEPARATORS + "*")


@lru_cache(maxsize=4096)
def term_pattern(term: str) -> Optional[re.Pattern]:
    """
    Compile a skill term into a regex over folded text.

    Separators inside the term are optional and interchangeable, so
    "node.js" also matches "nodejs", "node js" and "node-js". Boundaries
    are symbol aware: "c++" matches in "C++," while "sql" does not match
    inside "postgresql". Returns None for a term made only of separators.
    """
    folded = fold_text(term).strip()
    prefix = _LEADING_SEPARATORS.match(folded).group()
    parts = [p for p in _SEPARATOR_RUN.split(folded[len(prefix):]) if p]
    if not parts:
        return None
    body = (_SEPARATORS + "?").join(re.escape(p) for p in parts)
    return re.compile(r"(?<![\w+#])" + re.escape(prefix) + body + r"(?![\w+#])")


@lru_cache(maxsize=1024)
def marker_pattern(marker: str) -> re.Pattern:
    """Compile a marker word, accepting French agreement suffixes."""
    folded = re.escape(fold_text(marker).strip())
    return re.compile(r"(?<!\w)" + folded + r"(?:e|s|es)?(?!\w)")


@dataclass
class _Mention:
    skill: Skill
    start: int
    end: int
    phrase: str
    exact: bool


@dataclass
class _Marker:
    start: int
    end: int
    required: bool


@dataclass
class ExtractionResult:
    """Skills detected in one piece of text."""

    detected_skills: list[DetectedSkill] = field(default_factory=list)
    confidence: float = 0.0
    text_length: int = 0

    @property
    def required(self) -> list[DetectedSkill]:
        return [d for d in self.detected_skills if d.required]

    @property
    def optional(self) -> list[DetectedSkill]:
        return [d for d in self.detected_skills if not d.required]

    @property
    def categories(self) -> dict[str, int]:
        """Detected skill count per catalog category."""
        counts = Counter(d.skill.category or "Autre" for d in self.detected_skills)
        return dict(sorted(counts.items()))

    def to_requirements(
        self, required_weight: float = 1.0, optional_weight: float = 1.0
    ) -> list[JobSkillRequirement]:
        return [
            JobSkillRequirement(
                skill=d.skill,
                is_required=d.required,
                weight=required_weight if d.required else optional_weight,
            )
            for d in self.detected_skills
        ]


class SkillExtractor:
    """Detects catalog skills in job offer text."""

    def __init__(
        self,
        catalog: SkillCatalog,
        config: Optional[ExtractionConfig] = None,
    ):
        self.catalog = catalog
        self.config = config or ExtractionConfig()

    async def extract(
        self,
        text: Optional[str],
        title: Optional[str] = None,
        company: Optional[str] = None,
    ) -> ExtractionResult:
        """
        Extract skills from an offer.

        Args:
            text: Offer description, may be empty
            title: Offer title; skills named in it are required
            company: Company name, only used as disambiguation context

        Returns:
            ExtractionResult ordered by first occurrence in the text,
            title-only skills last
        """
        body = fold_text(text or "")
        folded_title = fold_text(title or "")

        if not body.strip() and not folded_title.strip():
            return ExtractionResult(text_length=len(text or ""))

        # Re-resolved on every call so catalog edits are picked up
        skills = await self.catalog.list_skills()

        # The title sits on its own line after the body
        haystack = f"{body}\n{folded_title}"
        title_offset = len(body) + 1
        context = f"{haystack}\n{fold_text(company or '')}"

        mentions = self._find_mentions(haystack, skills, context)
        markers = self._find_markers(body)

        grouped: dict[str, list[_Mention]] = {}
        for mention in sorted(mentions, key=lambda m: m.start):
            grouped.setdefault(mention.skill.slug, []).append(mention)

        detected = []
        for skill_mentions in grouped.values():
            first = skill_mentions[0]
            in_title = any(m.start >= title_offset for m in skill_mentions)
            required = in_title or any(
                self._is_required(m, markers, haystack)
                for m in skill_mentions
                if m.start < title_offset
            )
            exact = any(m.exact for m in skill_mentions)
            base = self.config.exact_confidence if exact else self.config.alias_confidence
            confidence = min(
                1.0, base + self.config.occurrence_bonus * (len(skill_mentions) - 1)
            )

            detected.append(
                DetectedSkill(
                    skill=first.skill,
                    required=required,
                    confidence=round(confidence, 4),
                    matched_phrase=first.phrase,
                    span=(first.start, first.end),
                    occurrences=len(skill_mentions),
                    match_kind="exact" if exact else "alias",
                )
            )

        aggregate = (
            round(sum(d.confidence for d in detected) / len(detected), 4)
            if detected
            else 0.0
        )

        logger.debug(
            f"Extracted {len(detected)} skills "
            f"({sum(d.required for d in detected)} required, confidence {aggregate})"
        )
        return ExtractionResult(
            detected_skills=detected,
            confidence=aggregate,
            text_length=len(text or ""),
        )

    async def extract_requirements(
        self,
        text: Optional[str],
        title: Optional[str] = None,
        company: Optional[str] = None,
    ) -> list[JobSkillRequirement]:
        """Extract skills and turn them into offer requirements."""
        result = await self.extract(text, title=title, company=company)
        return result.to_requirements(self.config.required_weight, self.config.optional_weight)

    def _find_mentions(
        self, text: str, skills: list[Skill], context: str
    ) -> list[_Mention]:
        """Find non-overlapping skill mentions, longest terms first."""
        terms: list[tuple[str, bool, Skill]] = []
        for skill in skills:
            if skill.context_terms and not self._has_context(skill, context):
                continue
            terms.append((skill.display_name, True, skill))
            terms.extend((alias, False, skill) for alias in skill.aliases)

        # "spring boot" must win over "spring"; exact names before aliases
        terms.sort(key=lambda t: (-len(fold_text(t[0])), not t[1], t[2].slug))

        taken: list[tuple[int, int]] = []
        mentions = []
        for term, exact, skill in terms:
            pattern = term_pattern(term)
            if pattern is None:
                continue
            for match in pattern.finditer(text):
                start, end = match.span()
                if any(start < t_end and t_start < end for t_start, t_end in taken):
                    continue
                taken.append((start, end))
                mentions.append(_Mention(skill, start, end, match.group(), exact))

        return mentions

    @staticmethod
    def _has_context(skill: Skill, context: str) -> bool:
        for term in skill.context_terms:
            pattern = term_pattern(term)
            if pattern is not None and pattern.search(context):
                return True
        return False

    def _find_markers(self, text: str) -> list[_Marker]:
        markers = []
        for words, required in (
            (self.config.required_markers, True),
            (self.config.optional_markers, False),
        ):
            for word in words:
                for match in marker_pattern(word).finditer(text):
                    markers.append(_Marker(match.start(), match.end(), required))
        return markers

    def _is_required(self, mention: _Mention, markers: list[_Marker], text: str) -> bool:
        """
        Nearest marker within the window wins; on a tie the required marker
        wins. A marker placed after the mention only counts on the same line.
        No marker means optional.
        """
        best: Optional[tuple[tuple[int, int], bool]] = None
        for marker in markers:
            if marker.end <= mention.start:
                gap = mention.start - marker.end
            elif marker.start >= mention.end:
                if "\n" in text[mention.end:marker.start]:
                    continue
                gap = marker.start - mention.end
            else:
                gap = 0

            if gap > self.config.window_chars:
                continue

            key = (gap, 0 if marker.required else 1)
            if best is None or key < best[0]:
                best = (key, marker.required)

        return best[1] if best else False
