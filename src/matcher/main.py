"""
Matcher Service - Main entry point.
Parses external offers and scores stored offers for a candidate.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

import click
from loguru import logger

from catalog import CachedSkillCatalog, DatabaseSkillCatalog, InMemorySkillCatalog
from extractor.fetcher import OfferPageFetcher
from shared.config import get_settings
from shared.database import Database
from shared.log import setup_logging

from .service import MatchingService
from .trace import DatabaseTraceWriter


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


async def parse_offer(
    text: Optional[str],
    url: Optional[str],
    title: Optional[str],
) -> dict[str, Any]:
    """Parse an offer against the YAML skill catalog, no database needed."""
    settings = get_settings()

    catalog = InMemorySkillCatalog.from_yaml(settings.skills_catalog_path)
    fetcher = OfferPageFetcher(settings)
    service = MatchingService.from_settings(catalog, settings, fetcher=fetcher)

    try:
        analysis = await service.parse_external_offer(text=text, url=url, title=title)
        return analysis.to_response()
    finally:
        await fetcher.close()


async def score_offer(
    candidate_id: str,
    offer_id: str,
    distance_km: Optional[float],
) -> dict[str, Any]:
    """Score one stored offer for one candidate and record the trace."""
    settings = get_settings()

    db = Database(settings)
    await db.connect()

    try:
        catalog = CachedSkillCatalog(
            DatabaseSkillCatalog(db), ttl_seconds=settings.catalog_cache_ttl_seconds
        )
        service = MatchingService.from_settings(
            catalog, settings, trace_writer=DatabaseTraceWriter(db)
        )

        profile = await db.get_candidate_profile(candidate_id)
        offer = await db.get_job_offer(offer_id)

        result = await service.score_offer_for_candidate(
            profile, offer, distance_km=distance_km
        )
        return result.to_response()

    finally:
        await db.disconnect()


async def rank_offers(candidate_id: str, limit: int) -> list[dict[str, Any]]:
    """Rank the most recent stored offers for a candidate."""
    settings = get_settings()

    db = Database(settings)
    await db.connect()

    try:
        catalog = CachedSkillCatalog(
            DatabaseSkillCatalog(db), ttl_seconds=settings.catalog_cache_ttl_seconds
        )
        service = MatchingService.from_settings(
            catalog, settings, trace_writer=DatabaseTraceWriter(db)
        )

        profile = await db.get_candidate_profile(candidate_id)
        recent = await db.get_offers(limit, without_skills=False)
        offers = [await db.get_job_offer(o.id) for o in recent]

        logger.info(f"Ranking {len(offers)} offers for candidate {candidate_id}")

        ranked = await service.rank_offers_for_candidate(profile, offers)
        return [
            {"offer_id": offer.id, "title": offer.title, **result.to_response()}
            for offer, result in ranked
        ]

    finally:
        await db.disconnect()


@click.group()
def main():
    """Offer Matcher - skill extraction and candidate/offer scoring."""
    setup_logging()


@main.command()
@click.option("--text", "-t", default=None, help="Offer text")
@click.option(
    "--file",
    "-f",
    "text_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Read the offer text from a file",
)
@click.option("--url", "-u", default=None, help="Offer URL, fetched when no text is given")
@click.option("--title", default=None, help="Offer title")
def parse(
    text: Optional[str],
    text_file: Optional[Path],
    url: Optional[str],
    title: Optional[str],
):
    """Detect the skills of an external offer."""
    if text_file is not None:
        text = text_file.read_text(encoding="utf-8")

    _echo_json(asyncio.run(parse_offer(text, url, title)))


@main.command()
@click.option("--candidate", "-c", "candidate_id", required=True, help="Candidate user id")
@click.option("--offer", "-o", "offer_id", required=True, help="Job offer id")
@click.option(
    "--distance-km",
    type=float,
    default=None,
    help="Candidate/offer distance, computed from coordinates when omitted",
)
def score(candidate_id: str, offer_id: str, distance_km: Optional[float]):
    """Score a stored offer for a candidate."""
    _echo_json(asyncio.run(score_offer(candidate_id, offer_id, distance_km)))


@main.command()
@click.option("--candidate", "-c", "candidate_id", required=True, help="Candidate user id")
@click.option(
    "--limit",
    "-l",
    type=int,
    default=50,
    help="Number of recent offers to rank",
)
def rank(candidate_id: str, limit: int):
    """Rank recent offers for a candidate."""
    _echo_json(asyncio.run(rank_offers(candidate_id, limit)))


if __name__ == "__main__":
    main()
