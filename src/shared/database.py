"""
PostgreSQL database connection and operations using asyncpg.
"""

import json
from typing import Any, Optional, Sequence

import asyncpg
from loguru import logger

from .config import Settings, get_settings
from .errors import NotFoundError
from .models import (
    CandidateProfile,
    CandidateSkill,
    JobOffer,
    JobSkillRequirement,
    MatchTrace,
    Skill,
)
from .text import normalize_to_slug


_SKILL_COLUMNS = "id, slug, display_name, category, aliases, context_terms"


def _row_to_skill(row: asyncpg.Record) -> Skill:
    return Skill(
        id=str(row["id"]),
        slug=row["slug"],
        display_name=row["display_name"],
        category=row["category"],
        aliases=list(row.get("aliases") or []),
        context_terms=list(row.get("context_terms") or []),
    )


class Database:
    """Async PostgreSQL database wrapper."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._pool: Optional[asyncpg.Pool] = None

    async def connect(self) -> None:
        """Establish database connection pool."""
        if self._pool is not None:
            return

        logger.info("Connecting to PostgreSQL")
        self._pool = await asyncpg.create_pool(
            self.settings.database_url,
            min_size=self.settings.database_pool_min_size,
            max_size=self.settings.database_pool_max_size,
        )
        logger.info("PostgreSQL connection established")

    async def disconnect(self) -> None:
        """Close database connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("PostgreSQL connection closed")

    @property
    def pool(self) -> asyncpg.Pool:
        """Get connection pool."""
        if self._pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._pool

    # -------------------------------------------------------------------------
    # Skills
    # -------------------------------------------------------------------------

    async def fetch_skills(self) -> list[Skill]:
        """Get the whole skill catalog, ordered by display name."""
        rows = await self.pool.fetch(
            f"SELECT {_SKILL_COLUMNS} FROM skills ORDER BY display_name"
        )
        return [_row_to_skill(row) for row in rows]

    async def get_skill_by_slug(self, slug: str) -> Optional[Skill]:
        """Get skill by slug."""
        row = await self.pool.fetchrow(
            f"SELECT {_SKILL_COLUMNS} FROM skills WHERE slug = $1",
            slug,
        )
        return _row_to_skill(row) if row else None

    async def create_skill(
        self, display_name: str, category: Optional[str] = None
    ) -> Skill:
        """
        Get or create a skill. The slug is always derived from the display name.
        """
        slug = normalize_to_slug(display_name)
        if not slug:
            raise ValueError(f"Cannot derive a slug from {display_name!r}")

        row = await self.pool.fetchrow(
            """
            INSERT INTO skills (slug, display_name, category)
            VALUES ($1, $2, $3)
            ON CONFLICT (slug) DO UPDATE SET slug = EXCLUDED.slug
            RETURNING id, slug, display_name, category, aliases, context_terms
            """,
            slug,
            display_name,
            category,
        )
        return _row_to_skill(row)

    async def merge_skills(self, source_slugs: Sequence[str], target_slug: str) -> int:
        """
        Merge several skills into one. References are repointed to the target
        and the source skills are deleted, all in one transaction.

        Returns:
            Number of candidate/offer references repointed
        """
        target = await self.get_skill_by_slug(target_slug)
        if target is None:
            raise NotFoundError(f"Skill not found: {target_slug}")

        sources = [s for s in source_slugs if s != target_slug]
        repointed = 0

        async with self.pool.acquire() as conn:
            async with conn.transaction():
                source_ids = [
                    row["id"]
                    for row in await conn.fetch(
                        "SELECT id FROM skills WHERE slug = ANY($1::text[])", sources
                    )
                ]
                if not source_ids:
                    return 0

                # Drop rows that would duplicate an existing link to the target
                await conn.execute(
                    """
                    DELETE FROM candidate_skills cs
                    WHERE cs.skill_id = ANY($1) AND EXISTS (
                        SELECT 1 FROM candidate_skills t
                        WHERE t.user_id = cs.user_id AND t.skill_id = $2
                    )
                    """,
                    source_ids,
                    target.id,
                )
                await conn.execute(
                    """
                    DELETE FROM job_offer_skills os
                    WHERE os.skill_id = ANY($1) AND EXISTS (
                        SELECT 1 FROM job_offer_skills t
                        WHERE t.job_offer_id = os.job_offer_id AND t.skill_id = $2
                    )
                    """,
                    source_ids,
                    target.id,
                )

                for table in ("candidate_skills", "job_offer_skills"):
                    status = await conn.execute(
                        f"UPDATE {table} SET skill_id = $2 WHERE skill_id = ANY($1)",
                        source_ids,
                        target.id,
                    )
                    repointed += int(status.split()[-1])

                await conn.execute("DELETE FROM skills WHERE id = ANY($1)", source_ids)

        logger.info(f"Merged {sources} into {target_slug} ({repointed} references)")
        return repointed

    async def delete_skill(self, slug: str) -> bool:
        """Delete a skill only if no candidate or offer references it."""
        status = await self.pool.execute(
            """
            DELETE FROM skills s
            WHERE s.slug = $1
              AND NOT EXISTS (SELECT 1 FROM candidate_skills cs WHERE cs.skill_id = s.id)
              AND NOT EXISTS (SELECT 1 FROM job_offer_skills os WHERE os.skill_id = s.id)
            """,
            slug,
        )
        deleted = status.endswith(" 1")
        if not deleted:
            logger.warning(f"Skill {slug} not deleted (missing or still referenced)")
        return deleted

    # -------------------------------------------------------------------------
    # Candidates
    # -------------------------------------------------------------------------

    async def get_candidate_profile(self, candidate_id: str) -> CandidateProfile:
        """Get candidate profile with its skills."""
        row = await self.pool.fetchrow(
            """
            SELECT cp.user_id, cp.experience_years, cp.mobility_km,
                   cp.preferred_contracts, u.city, u.latitude, u.longitude
            FROM candidate_profiles cp
            JOIN users u ON u.id = cp.user_id
            WHERE cp.user_id = $1
            """,
            candidate_id,
        )
        if row is None:
            raise NotFoundError(f"Candidate not found: {candidate_id}")

        skill_rows = await self.pool.fetch(
            """
            SELECT cs.level, cs.last_used_on,
                   s.id, s.slug, s.display_name, s.category
            FROM candidate_skills cs
            JOIN skills s ON s.id = cs.skill_id
            WHERE cs.user_id = $1
            """,
            candidate_id,
        )

        return CandidateProfile(
            id=str(row["user_id"]),
            skills=[
                CandidateSkill(
                    skill=_row_to_skill(r),
                    proficiency_level=r["level"],
                    last_used_on=r["last_used_on"],
                )
                for r in skill_rows
            ],
            mobility_km=row["mobility_km"],
            experience_years=row["experience_years"],
            location=row["city"],
            latitude=row["latitude"],
            longitude=row["longitude"],
            preferred_contracts=list(row["preferred_contracts"] or []),
        )

    # -------------------------------------------------------------------------
    # Job offers
    # -------------------------------------------------------------------------

    async def get_job_offer(self, offer_id: str) -> JobOffer:
        """
        Get job offer with its declared skills. An offer without any
        job_offer_skills row comes back with ``skills=None`` so that callers
        extract them from the description.
        """
        row = await self.pool.fetchrow(
            """
            SELECT o.id, o.title, o.description, o.experience_min, o.city,
                   o.latitude, o.longitude, o.contract_type, c.name AS company
            FROM job_offers o
            LEFT JOIN companies c ON c.id = o.company_id
            WHERE o.id = $1
            """,
            offer_id,
        )
        if row is None:
            raise NotFoundError(f"Offer not found: {offer_id}")

        skill_rows = await self.pool.fetch(
            """
            SELECT os.is_required, os.weight,
                   s.id, s.slug, s.display_name, s.category
            FROM job_offer_skills os
            JOIN skills s ON s.id = os.skill_id
            WHERE os.job_offer_id = $1
            """,
            offer_id,
        )

        return self._row_to_offer(row, skill_rows)

    async def get_offers(
        self, limit: int = 100, without_skills: bool = True
    ) -> list[JobOffer]:
        """Get offers, by default only those with no declared skills."""
        where = (
            "WHERE NOT EXISTS (SELECT 1 FROM job_offer_skills os WHERE os.job_offer_id = o.id)"
            if without_skills
            else ""
        )
        rows = await self.pool.fetch(
            f"""
            SELECT o.id, o.title, o.description, o.experience_min, o.city,
                   o.latitude, o.longitude, o.contract_type, c.name AS company
            FROM job_offers o
            LEFT JOIN companies c ON c.id = o.company_id
            {where}
            ORDER BY o.created_at DESC
            LIMIT $1
            """,
            limit,
        )
        return [self._row_to_offer(row, []) for row in rows]

    async def replace_offer_skills(
        self, offer_id: str, requirements: Sequence[JobSkillRequirement]
    ) -> int:
        """Replace the declared skills of an offer. Returns rows inserted."""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(
                    "DELETE FROM job_offer_skills WHERE job_offer_id = $1", offer_id
                )
                inserted = 0
                for req in requirements:
                    skill_id = req.skill.id
                    if skill_id is None:
                        skill_id = await conn.fetchval(
                            "SELECT id FROM skills WHERE slug = $1", req.skill.slug
                        )
                    if skill_id is None:
                        logger.warning(f"Skill not in database: {req.skill.slug}")
                        continue
                    await conn.execute(
                        """
                        INSERT INTO job_offer_skills (job_offer_id, skill_id, is_required, weight)
                        VALUES ($1, $2, $3, $4)
                        """,
                        offer_id,
                        skill_id,
                        req.is_required,
                        req.weight,
                    )
                    inserted += 1
        return inserted

    @staticmethod
    def _row_to_offer(row: asyncpg.Record, skill_rows: list[asyncpg.Record]) -> JobOffer:
        skills = [
            JobSkillRequirement(
                skill=_row_to_skill(r),
                is_required=r["is_required"],
                weight=r["weight"] or 1.0,
            )
            for r in skill_rows
        ]
        return JobOffer(
            id=str(row["id"]),
            title=row["title"] or "",
            description=row["description"] or "",
            company=row["company"],
            skills=skills or None,
            experience_min=row["experience_min"],
            location=row["city"],
            latitude=row["latitude"],
            longitude=row["longitude"],
            contract_type=row["contract_type"],
        )

    # -------------------------------------------------------------------------
    # Match traces
    # -------------------------------------------------------------------------

    async def insert_match_trace(self, trace: MatchTrace) -> None:
        """Append a match trace. Traces are never updated."""
        await self.pool.execute(
            """
            INSERT INTO match_traces
                (candidate_id, offer_id, score, explanation, inputs_hash, details, created_at)
            VALUES ($1, $2, $3, $4, $5, $6::jsonb, $7)
            """,
            trace.candidate_id,
            trace.offer_id,
            trace.score,
            trace.explanation,
            trace.inputs_hash,
            json.dumps(
                {"matched_skills": trace.matched_skills, "missing_skills": trace.missing_skills}
            ),
            trace.created_at,
        )

    async def upsert_skills(self, skills: Sequence[Skill]) -> int:
        """
        Insert catalog skills. Existing slugs keep their display name and
        category but get the catalog aliases and context terms.

        Returns:
            Number of skills inserted
        """
        records: list[tuple[Any, ...]] = [
            (s.slug, s.display_name, s.category, list(s.aliases), list(s.context_terms))
            for s in skills
        ]
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                before = await conn.fetchval("SELECT count(*) FROM skills")
                await conn.executemany(
                    """
                    INSERT INTO skills (slug, display_name, category, aliases, context_terms)
                    VALUES ($1, $2, $3, $4::text[], $5::text[])
                    ON CONFLICT (slug) DO UPDATE
                    SET aliases = EXCLUDED.aliases, context_terms = EXCLUDED.context_terms
                    """,
                    records,
                )
                after = await conn.fetchval("SELECT count(*) FROM skills")
        return after - before
