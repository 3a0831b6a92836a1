import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from conftest import held, optional, required
from extractor import OfferPageFetcher, SkillExtractor
from matcher.service import MatchingService
from shared.config import Settings
from shared.errors import (
    IncompleteProfileError,
    InvalidOfferUrlError,
    MatchingError,
    MissingContentError,
    OfferFetchError,
)
from shared.models import CandidateProfile, JobOffer

OFFER_TEXT = "Nous recherchons un développeur avec Python (requis) et Docker (un plus)"
NOW = datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc)


class RecordingTraceWriter:
    def __init__(self):
        self.traces = []

    async def write(self, trace):
        self.traces.append(trace)


class FailingTraceWriter:
    async def write(self, trace):
        raise ConnectionError("database is down")


@pytest.fixture
def service(catalog, extraction_config):
    return MatchingService(
        catalog,
        extractor=SkillExtractor(catalog, extraction_config),
        clock=lambda: NOW,
    )


def test_parse_requires_text_or_url(service):
    with pytest.raises(MissingContentError) as exc_info:
        asyncio.run(service.parse_external_offer())
    assert exc_info.value.http_status == 400

    with pytest.raises(MissingContentError):
        asyncio.run(service.parse_external_offer(text="   ", url=""))


def test_parse_pasted_offer(service):
    analysis = asyncio.run(service.parse_external_offer(text=OFFER_TEXT))

    assert [s.slug for s in analysis.detected_skills.required] == ["python"]
    assert [s.slug for s in analysis.detected_skills.optional] == ["docker"]
    assert analysis.analysis_metadata.total_skills == 2
    assert analysis.analysis_metadata.confidence == pytest.approx(0.8)
    # 100 * 0.8 * 2/3
    assert analysis.relevance_score == 53

    response = analysis.to_response()
    assert response["parsed_offer"]["title"] == "Offre externe"
    assert response["parsed_offer"]["source"] == "Texte collé"
    required_skills = response["parsed_offer"]["skills_detected"]["required"]
    assert required_skills[0]["importance"] == "required"
    assert response["score"] == 53
    assert response["explanation"].startswith("Cette offre contient 2 compétences")
    assert [r["type"] for r in response["recommendations"]] == ["skill_gap"]


def test_parse_offer_from_url(catalog, extraction_config):
    html = (
        "<html><head><title>Ingénieur DevOps</title></head>"
        "<body><p>Kubernetes obligatoire, Terraform apprécié.</p></body></html>"
    )
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, text=html, headers={"content-type": "text/html"})
    )
    fetcher = OfferPageFetcher(Settings(), transport=transport)
    service = MatchingService(
        catalog, extractor=SkillExtractor(catalog, extraction_config), fetcher=fetcher
    )

    analysis = asyncio.run(service.parse_external_offer(url="https://jobs.example.com/42"))

    assert analysis.title == "Ingénieur DevOps"
    assert analysis.analysis_metadata.source == "https://jobs.example.com/42"
    assert [s.slug for s in analysis.detected_skills.required] == ["kubernetes"]
    assert [s.slug for s in analysis.detected_skills.optional] == ["terraform"]


def test_parse_url_without_fetcher(service):
    analysis = asyncio.run(service.parse_external_offer(url="https://jobs.example.com/42"))
    assert analysis.analysis_metadata.total_skills == 0
    assert analysis.relevance_score == 0


def url_service(catalog, extraction_config, handler):
    fetcher = OfferPageFetcher(Settings(), transport=httpx.MockTransport(handler))
    return MatchingService(
        catalog, extractor=SkillExtractor(catalog, extraction_config), fetcher=fetcher
    )


@pytest.mark.parametrize(
    "url",
    ["ftp://jobs.example.com/42", "http://127.0.0.1/admin", "http://[invalid/42"],
)
def test_parse_rejects_unsafe_url(catalog, extraction_config, url):
    service = url_service(catalog, extraction_config, lambda request: httpx.Response(200))

    with pytest.raises(InvalidOfferUrlError) as exc_info:
        asyncio.run(service.parse_external_offer(url=url))
    assert isinstance(exc_info.value, MatchingError)
    assert exc_info.value.http_status == 400


def test_parse_reports_unreachable_offer(catalog, extraction_config):
    service = url_service(catalog, extraction_config, lambda request: httpx.Response(404))

    with pytest.raises(OfferFetchError) as exc_info:
        asyncio.run(service.parse_external_offer(url="https://jobs.example.com/gone"))
    assert exc_info.value.code == "OFFER_FETCH_FAILED"
    assert exc_info.value.http_status == 502


def test_parse_reports_connection_failure(catalog, extraction_config):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    service = url_service(catalog, extraction_config, refuse)

    with pytest.raises(OfferFetchError):
        asyncio.run(service.parse_external_offer(url="https://jobs.example.com/42"))

def test_score_requires_candidate_skills(service):
    profile = CandidateProfile(id="c1")
    offer = JobOffer(id="o1", skills=[required("Python")])

    with pytest.raises(IncompleteProfileError) as exc_info:
        asyncio.run(service.score_offer_for_candidate(profile, offer))
    assert exc_info.value.http_status == 422


def test_score_declared_skills(service):
    profile = CandidateProfile(id="c1", skills=held("Python"))
    offer = JobOffer(id="o1", skills=[required("Python"), required("Docker")])

    result = asyncio.run(service.score_offer_for_candidate(profile, offer))

    assert result.score == 50
    assert result.explanation.startswith("Score 50 : vous correspondez sur 1 compétence")
    assert [r.type for r in result.recommendations] == ["skill_development"]

    response = result.to_response()
    assert response["matching"]["score"] == 50
    assert response["matching"]["distance_km"] is None
    assert response["matching"]["missing_skills"][0]["slug"] == "docker"


def test_score_extracts_skills_when_missing(service):
    profile = CandidateProfile(id="c1", skills=held("Python"))
    offer = JobOffer(id="o1", title="Développeur backend", description=OFFER_TEXT)

    result = asyncio.run(service.score_offer_for_candidate(profile, offer))

    # python required (1) matched, docker optional (0.5) missing
    assert result.score == 67
    assert [m.slug for m in result.missing_skills] == ["docker"]


def test_score_writes_trace(catalog, extraction_config):
    writer = RecordingTraceWriter()
    service = MatchingService(
        catalog,
        extractor=SkillExtractor(catalog, extraction_config),
        trace_writer=writer,
        clock=lambda: NOW,
    )
    profile = CandidateProfile(id="c1", skills=held("Python"))
    offer = JobOffer(id="o1", skills=[required("Python"), optional("Docker")])

    result = asyncio.run(service.score_offer_for_candidate(profile, offer, distance_km=12))

    (trace,) = writer.traces
    assert trace.candidate_id == "c1"
    assert trace.offer_id == "o1"
    assert trace.score == result.score
    assert trace.inputs_hash == result.inputs_hash
    assert trace.matched_skills == ["python"]
    assert trace.missing_skills == ["docker"]
    assert trace.created_at == NOW


def test_trace_failure_does_not_fail_scoring(catalog):
    service = MatchingService(catalog, trace_writer=FailingTraceWriter())
    profile = CandidateProfile(id="c1", skills=held("Python"))
    offer = JobOffer(id="o1", skills=[required("Python")])

    result = asyncio.run(service.score_offer_for_candidate(profile, offer))
    assert result.score == 100


def test_rank_offers(service):
    profile = CandidateProfile(id="c1", skills=held("Python", "Docker"))
    offers = [
        JobOffer(id="b", skills=[required("Python"), required("Rust")]),
        JobOffer(id="c", skills=[required("Python"), required("Docker")]),
        JobOffer(id="a", skills=[required("Docker"), required("Go")]),
        JobOffer(id="d", skills=[required("Python")], location="Lyon"),
    ]
    profile = profile.model_copy(update={"mobility_km": 10})

    ranked = asyncio.run(
        service.rank_offers_for_candidate(profile, offers, distances={"d": 80})
    )

    assert [(offer.id, result.score) for offer, result in ranked] == [
        ("c", 100),
        ("a", 50),
        ("b", 50),
        ("d", 30),
    ]
