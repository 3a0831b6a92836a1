"""
Skill Extractor - Main entry point.
Structures the skills of stored offers that were published without any.
"""

import asyncio

import click
from loguru import logger

from catalog import CachedSkillCatalog, DatabaseSkillCatalog
from shared.config import get_settings
from shared.database import Database
from shared.log import setup_logging

from .config import ExtractionConfig
from .extractor import SkillExtractor


async def extract_offers(limit: int = 100, force: bool = False) -> tuple[int, int, int]:
    """
    Extract and store skills for stored offers.

    Args:
        limit: Maximum offers to process
        force: Re-extract offers that already have skills

    Returns:
        Tuple of (with_skills_count, without_skills_count, error_count)
    """
    settings = get_settings()

    logger.info("Starting skill extraction")

    db = Database()
    await db.connect()

    catalog = CachedSkillCatalog(
        DatabaseSkillCatalog(db), ttl_seconds=settings.catalog_cache_ttl_seconds
    )
    extractor = SkillExtractor(
        catalog, ExtractionConfig.from_yaml(settings.matching_config_path)
    )

    try:
        offers = await db.get_offers(limit, without_skills=not force)
        logger.info(f"Processing {len(offers)} offers")

        with_skills = 0
        without_skills = 0
        errors = 0

        for offer in offers:
            try:
                requirements = await extractor.extract_requirements(
                    offer.description, title=offer.title, company=offer.company
                )
                if not requirements:
                    without_skills += 1
                    logger.debug(f"No skills found: {offer.title} ({offer.id})")
                    continue

                inserted = await db.replace_offer_skills(offer.id, requirements)
                with_skills += 1
                logger.info(
                    f"Extracted {inserted} skills: {offer.title} "
                    f"({sum(r.is_required for r in requirements)} required)"
                )
            except Exception as e:
                errors += 1
                logger.error(f"Extraction failed for offer {offer.id}: {e}")

        logger.info(
            f"Extraction complete: {with_skills} with skills, "
            f"{without_skills} without skills, {errors} errors"
        )

        return with_skills, without_skills, errors

    finally:
        await db.disconnect()


@click.command()
@click.option(
    "--limit",
    "-l",
    type=int,
    default=None,
    help="Maximum offers to process (defaults to EXTRACTOR_BATCH_SIZE)",
)
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Re-extract offers that already have skills",
)
@click.option(
    "--daemon",
    "-d",
    is_flag=True,
    help="Run continuously, processing new offers as they arrive",
)
@click.option(
    "--interval",
    "-i",
    type=int,
    default=None,
    help="Polling interval in seconds (daemon mode)",
)
def main(limit: int, force: bool, daemon: bool, interval: int):
    """Skill Extractor - Structures the skills of stored job offers."""
    setup_logging()
    settings = get_settings()
    limit = limit or settings.extractor_batch_size
    interval = interval or settings.extractor_interval_seconds

    if daemon:
        logger.info(f"Starting in daemon mode (interval: {interval}s)")

        async def run_daemon():
            while True:
                try:
                    await extract_offers(limit=limit, force=False)
                except Exception as e:
                    logger.error(f"Extraction failed: {e}")

                logger.info(f"Sleeping for {interval} seconds")
                await asyncio.sleep(interval)

        asyncio.run(run_daemon())
    else:
        with_skills, without_skills, errors = asyncio.run(
            extract_offers(limit=limit, force=force)
        )
        click.echo(
            f"With skills: {with_skills}, Without skills: {without_skills}, Errors: {errors}"
        )


if __name__ == "__main__":
    main()
