import asyncio

import pytest

from catalog import CachedSkillCatalog, DatabaseSkillCatalog, InMemorySkillCatalog
from shared.errors import CatalogUnavailableError, NotFoundError
from shared.models import Skill


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class CountingCatalog(InMemorySkillCatalog):
    def __init__(self, skills):
        super().__init__(skills)
        self.loads = 0

    async def list_skills(self):
        self.loads += 1
        await asyncio.sleep(0)
        return await super().list_skills()


class BrokenDatabase:
    def __init__(self, error):
        self.error = error

    async def fetch_skills(self):
        raise self.error

    async def get_skill_by_slug(self, slug):
        raise self.error


def test_yaml_catalog_loads(catalog):
    assert len(catalog) > 50
    python = asyncio.run(catalog.find_by_slug("python"))
    assert python.display_name == "Python"
    assert python.category == "Développement"


def test_find_by_slug_missing(catalog):
    with pytest.raises(NotFoundError):
        asyncio.run(catalog.find_by_slug("cobol"))


def test_duplicate_slug_rejected():
    catalog = InMemorySkillCatalog([Skill(display_name="Python")])
    with pytest.raises(ValueError):
        catalog.add(Skill(display_name="python"))


def test_search_ranks_exact_then_prefix_then_substring():
    catalog = InMemorySkillCatalog(
        [
            Skill(display_name="TypeScript"),
            Skill(display_name="JavaScript", aliases=["js"]),
            Skill(display_name="Java"),
            Skill(display_name="Scala"),
        ]
    )

    results = asyncio.run(catalog.search("java"))
    assert [s.slug for s in results] == ["java", "javascript"]

    results = asyncio.run(catalog.search("script"))
    assert [s.slug for s in results] == ["javascript", "typescript"]

    results = asyncio.run(catalog.search("JS"))
    assert [s.slug for s in results] == ["javascript"]

    assert asyncio.run(catalog.search("")) == []


def test_cache_serves_within_ttl_and_reloads_after():
    inner = CountingCatalog([Skill(display_name="Python")])
    clock = FakeClock()
    cache = CachedSkillCatalog(inner, ttl_seconds=60, clock=clock)

    asyncio.run(cache.list_skills())
    asyncio.run(cache.list_skills())
    assert inner.loads == 1

    clock.now = 61
    asyncio.run(cache.list_skills())
    assert inner.loads == 2


def test_cache_invalidate_bumps_version_and_reloads():
    inner = CountingCatalog([Skill(display_name="Python")])
    cache = CachedSkillCatalog(inner, ttl_seconds=60, clock=FakeClock())

    asyncio.run(cache.list_skills())
    inner.add(Skill(display_name="Docker"))
    assert len(asyncio.run(cache.list_skills())) == 1

    cache.invalidate()
    assert cache.version == 1
    assert len(asyncio.run(cache.list_skills())) == 2
    assert inner.loads == 2


def test_cache_miss_reloads_once():
    inner = CountingCatalog([Skill(display_name="Python")])
    clock = FakeClock()
    cache = CachedSkillCatalog(inner, ttl_seconds=60, clock=clock)
    asyncio.run(cache.list_skills())

    inner.add(Skill(display_name="Docker"))
    clock.now = 10
    docker = asyncio.run(cache.find_by_slug("docker"))
    assert docker.display_name == "Docker"
    assert inner.loads == 2
    assert cache.version == 0


def test_cache_misses_do_not_reload_a_recent_copy():
    inner = CountingCatalog([Skill(display_name="Python")])
    clock = FakeClock()
    cache = CachedSkillCatalog(inner, ttl_seconds=60, clock=clock, miss_reload_seconds=5)
    asyncio.run(cache.list_skills())

    for _ in range(3):
        with pytest.raises(NotFoundError):
            asyncio.run(cache.find_by_slug("cobol"))
    assert inner.loads == 1

    clock.now = 6
    with pytest.raises(NotFoundError):
        asyncio.run(cache.find_by_slug("cobol"))
    assert inner.loads == 2
    assert cache.version == 0


def test_concurrent_cold_lookups_share_one_load():
    inner = CountingCatalog([Skill(display_name="Python")])
    cache = CachedSkillCatalog(inner, ttl_seconds=60, clock=FakeClock())

    async def lookups():
        return await asyncio.gather(*(cache.list_skills() for _ in range(5)))

    results = asyncio.run(lookups())
    assert all(len(skills) == 1 for skills in results)
    assert inner.loads == 1


@pytest.mark.parametrize(
    "error",
    [
        OSError("connection refused"),
        RuntimeError("Database not connected. Call connect() first."),
        asyncio.TimeoutError(),
    ],
)
def test_database_catalog_maps_connection_errors(error):
    catalog = DatabaseSkillCatalog(BrokenDatabase(error))

    with pytest.raises(CatalogUnavailableError) as exc_info:
        asyncio.run(catalog.list_skills())
    assert exc_info.value.http_status == 503

    with pytest.raises(CatalogUnavailableError):
        asyncio.run(catalog.find_by_slug("python"))
