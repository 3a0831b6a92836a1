import pytest

from extractor.extractor import ExtractionResult
from matcher.explainer import MatchExplainer
from shared.models import DetectedSkill, HardFilterReport, MatchResult, Skill, SkillMatch


def match(name, required=True):
    skill = Skill(display_name=name)
    return SkillMatch(slug=skill.slug, display_name=name, required=required, weight=1.0)


def result(score, matched=(), missing=(), **kwargs):
    return MatchResult(
        score=score,
        skill_score=float(score),
        matched_skills=list(matched),
        missing_skills=list(missing),
        **kwargs,
    )


@pytest.fixture
def explainer():
    return MatchExplainer()


def test_explanation_text(explainer):
    explanation = explainer.explain(
        result(
            72,
            matched=[match("Node.js"), match("React"), match("SQL"), match("Git")],
            missing=[match("Docker")],
            hard_filters=HardFilterReport(distance_km=20.0, max_distance_km=30.0),
        )
    )
    assert explanation.explanation == (
        "Score 72 : vous correspondez sur 4 compétences (Node.js, React, SQL...), "
        "mais il manque Docker et vous êtes éloigné de 20 km."
    )


def test_explanation_counts_extra_missing(explainer):
    explanation = explainer.explain(
        result(
            10,
            matched=[match("Python")],
            missing=[match("Docker"), match("Go"), match("Rust"), match("Scala")],
        )
    )
    assert explanation.explanation == (
        "Score 10 : vous correspondez sur 1 compétence (Python), "
        "mais il manque Docker et Go (et 2 autres)."
    )


def test_explanation_hard_filters(explainer):
    explanation = explainer.explain(
        result(
            0,
            missing=[match("Python")],
            experience_adjustment=-10.0,
            hard_filters=HardFilterReport(
                distance_km=120.0,
                max_distance_km=50.0,
                distance_checked=True,
                distance_passed=False,
                contract_type="CDD",
                contract_checked=True,
                contract_passed=False,
            ),
        )
    )
    text = explanation.explanation
    assert text.startswith("Score 0 : aucune de vos compétences ne correspond, il manque Python")
    assert "votre expérience est inférieure au minimum demandé" in text
    assert "vous êtes éloigné de 120 km, au-delà de votre mobilité de 50 km" in text
    assert text.endswith("et le contrat CDD ne fait pas partie de vos choix.")


def test_explanation_without_job_skills(explainer):
    explanation = explainer.explain(result(50))
    assert explanation.explanation == "Score 50 : cette offre ne précise aucune compétence."


def test_low_match_recommendations(explainer):
    explanation = explainer.explain(
        result(
            30,
            missing=[
                match("Ansible", required=False),
                match("Docker"),
                match("Linux", required=False),
                match("Python"),
            ],
        )
    )
    recommendations = explanation.recommendations
    assert [r.type for r in recommendations] == ["skill_development", "low_match"]
    assert [r.priority for r in recommendations] == ["medium", "low"]
    assert recommendations[0].message.endswith(": Docker, Python, Ansible")


def test_high_match_recommendation_first(explainer):
    explanation = explainer.explain(
        result(90, matched=[match("Python")], missing=[match("Git", required=False)])
    )
    assert [r.type for r in explanation.recommendations] == ["high_match", "skill_development"]


def test_middle_score_without_missing_has_no_recommendation(explainer):
    explanation = explainer.explain(result(70, matched=[match("Python")]))
    assert explanation.recommendations == []


def detected(name, required, confidence=0.8):
    return DetectedSkill(
        skill=Skill(display_name=name),
        required=required,
        confidence=confidence,
        matched_phrase=name.lower(),
        span=(0, len(name)),
    )


def test_explain_analysis(explainer):
    analysis = ExtractionResult(
        detected_skills=[detected("Python", True), detected("Docker", False)],
        confidence=0.8,
        text_length=70,
    )
    explanation = explainer.explain_analysis(analysis)

    assert explanation.explanation == (
        "Cette offre contient 2 compétences détectées avec 80% de confiance. "
        "1 compétence est obligatoire et 1 est souhaitée."
    )
    assert [r.type for r in explanation.recommendations] == ["skill_gap"]


def test_explain_analysis_agrees_counts(explainer):
    single = ExtractionResult(detected_skills=[detected("Python", True)], confidence=0.9)
    assert explainer.explain_analysis(single).explanation == (
        "Cette offre contient 1 compétence détectée avec 90% de confiance. "
        "1 compétence est obligatoire et 0 est souhaitée."
    )

    several = ExtractionResult(
        detected_skills=[
            detected("Python", True),
            detected("Docker", True),
            detected("Git", False),
            detected("Linux", False),
        ],
        confidence=0.75,
    )
    assert explainer.explain_analysis(several).explanation == (
        "Cette offre contient 4 compétences détectées avec 75% de confiance. "
        "2 compétences sont obligatoires et 2 sont souhaitées."
    )


def test_explain_analysis_low_confidence(explainer):
    explanation = explainer.explain_analysis(ExtractionResult())

    assert explanation.explanation == "Aucune compétence n'a été détectée dans cette offre."
    assert [(r.type, r.priority) for r in explanation.recommendations] == [
        ("parsing_quality", "high"),
        ("skill_gap", "medium"),
    ]
