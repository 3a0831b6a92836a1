import pytest

from shared.models import Skill
from shared.text import fold_text, normalize_to_slug


@pytest.mark.parametrize(
    "name, slug",
    [
        ("Développement Web", "developpement-web"),
        ("Python", "python"),
        ("C#", "csharp"),
        ("C++", "cplusplus"),
        ("Node.js", "node-js"),
        (".NET", "net"),
        ("  Gestion -- de   projet ", "gestion-de-projet"),
        ("CI/CD", "ci-cd"),
        ("", ""),
    ],
)
def test_normalize_to_slug(name, slug):
    assert normalize_to_slug(name) == slug


def test_slug_is_idempotent():
    slug = normalize_to_slug("Maîtrise d'Élasticsearch")
    assert slug == "maitrise-d-elasticsearch"
    assert normalize_to_slug(slug) == slug


def test_fold_text_keeps_length():
    text = "Expérience exigée à Besançon"
    folded = fold_text(text)
    assert folded == "experience exigee a besancon"
    assert len(folded) == len(text)


def test_skill_derives_slug_from_display_name():
    assert Skill(display_name="Spring Boot").slug == "spring-boot"
    assert Skill(display_name="Spring Boot", slug="spring").slug == "spring"
