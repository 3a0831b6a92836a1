"""
Catalog Service - Main entry point.
Seeds the skills table from the YAML catalog and runs merge/delete admin tasks.
"""

import asyncio
from pathlib import Path
from typing import Optional

import click
from loguru import logger

from shared.config import get_settings
from shared.database import Database
from shared.log import setup_logging

from .catalog import InMemorySkillCatalog


async def seed_skills(path: Path) -> int:
    """
    Insert every catalog skill missing from the database.

    Returns:
        Number of skills inserted
    """
    catalog = InMemorySkillCatalog.from_yaml(path)
    skills = await catalog.list_skills()

    db = Database()
    await db.connect()
    try:
        inserted = await db.upsert_skills(skills)
        logger.info(f"Seeded {inserted} new skills ({len(skills)} in catalog)")
        return inserted
    finally:
        await db.disconnect()


async def merge_skills(sources: tuple[str, ...], target: str) -> int:
    db = Database()
    await db.connect()
    try:
        return await db.merge_skills(sources, target)
    finally:
        await db.disconnect()


async def delete_skill(slug: str) -> bool:
    db = Database()
    await db.connect()
    try:
        return await db.delete_skill(slug)
    finally:
        await db.disconnect()


@click.group()
def main():
    """Skill Catalog - seed and maintain the skills table."""
    setup_logging()


@main.command()
@click.option(
    "--catalog",
    "-c",
    "catalog_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML catalog (defaults to SKILLS_CATALOG_PATH)",
)
def seed(catalog_path: Optional[Path]):
    """Insert catalog skills missing from the database."""
    path = catalog_path or get_settings().skills_catalog_path
    inserted = asyncio.run(seed_skills(path))
    click.echo(f"Inserted: {inserted}")


@main.command()
@click.argument("sources", nargs=-1, required=True)
@click.option("--into", "target", required=True, help="Slug of the surviving skill")
def merge(sources: tuple[str, ...], target: str):
    """Merge SOURCES skills into one skill, repointing references."""
    repointed = asyncio.run(merge_skills(sources, target))
    click.echo(f"Repointed: {repointed}")


@main.command()
@click.argument("slug")
def delete(slug: str):
    """Delete a skill if nothing references it."""
    deleted = asyncio.run(delete_skill(slug))
    click.echo("Deleted" if deleted else "Not deleted (missing or still in use)")


if __name__ == "__main__":
    main()
