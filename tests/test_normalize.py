import pytest

from job_ingest.models import RawJobRecord
from job_ingest.normalize import (
    NEGATIVE_TERMS,
    POSITIVE_TERMS,
    classify,
    clean_description,
    compile_terms,
    find_evidence,
    is_early_career,
)


def _raw(title: str, description: str = "", company: str = "Acme GmbH") -> RawJobRecord:
    return RawJobRecord(
        title=title,
        company=company,
        location="Berlin, Germany",
        description=description,
        url="https://example.com/jobs/1",
        source="arbeitnow",
    )


@pytest.mark.parametrize("title", [
    "Graduate Software Engineer",
    "Junior Data Analyst",
    "Stagiaire Marketing Digital",
    "Praktikum im Bereich Controlling",
    "Prácticas en Desarrollo Web",
    "Werkstudent (m/w/d) IT-Support",
    "Trainee Programme 2025",
    "Software Engineering Intern",
    "Entry-Level Business Analyst",
    "Tirocinio Area Finanza",
])
def test_early_career_titles_are_kept(title: str) -> None:
    assert classify(title, "") is True


@pytest.mark.parametrize("title, description", [
    ("Senior Software Engineer", ""),
    ("Lead Developer", ""),
    ("Principal Data Scientist", ""),
    ("Director of Engineering", ""),
    ("Junior Developer", "Minimum 5 years of professional experience required."),
    ("Graduate Consultant", "We need a proven track record in client delivery."),
    ("Junior Backend Engineer", "3+ years of Python experience."),
    ("Junior Projektmanager", "Sie bringen langjährige Berufserfahrung mit."),
])
def test_seniority_signals_reject(title: str, description: str) -> None:
    assert classify(title, description) is False


# One phrase per NEGATIVE_TERMS entry, same order.
SENIORITY_PHRASES = [
    "Senior engineer",
    "Sr. engineer",
    "Lead developer",
    "Teamlead Backend",
    "Tech lead",
    "Principal engineer",
    "Director of engineering",
    "Head of Data",
    "VP Engineering",
    "Vice President, Sales",
    "Chief of Staff",
    "Staff Engineer",
    "Solutions Architect",
    "Distinguished engineer",
    "Executive level hire",
    "experienced professional wanted",
    "extensive experience in Python",
    "significant experience with AWS",
    "proven track record",
    "10+ years of experience",
    "3-5 years experience",
    "minimum of 4 years",
    "at least 5 years",
    "Teamleiterin",
    "mehrjährige Berufserfahrung",
    "mindestens 3 Jahre Erfahrung",
    "développeur expérimenté",
]


def test_every_seniority_term_has_a_phrase() -> None:
    assert len(SENIORITY_PHRASES) == len(NEGATIVE_TERMS)


@pytest.mark.parametrize("term, phrase", list(zip(NEGATIVE_TERMS, SENIORITY_PHRASES)))
def test_any_seniority_marker_flips_a_kept_posting(term: str, phrase: str) -> None:
    title, description = "Graduate Developer", "Join us."
    assert classify(title, description) is True
    assert compile_terms([term]).search(phrase), f"{phrase!r} does not exercise {term!r}"

    assert classify(title, f"{description} {phrase}") is False
    assert classify(f"{title} {phrase}", description) is False


def test_one_to_two_years_remains_eligible() -> None:
    assert classify("Junior Frontend Developer", "Ideally 1-2 years of experience with React.") is True


def test_no_positive_evidence_rejects() -> None:
    assert classify("Software Engineer", "Build APIs with our team.") is False


@pytest.mark.parametrize("title", ["", "   ", None])
def test_empty_title_rejects(title) -> None:
    assert classify(title, "Graduate programme for juniors") is False


def test_word_boundaries_avoid_false_positives() -> None:
    assert classify("International Sales Manager", "Internal tooling") is False
    assert classify("Graduate Engineer", "We want a self-starter.") is True


def test_description_is_considered() -> None:
    assert classify("Software Engineer", "Perfect for recent graduates.") is True


def test_find_evidence_reports_both_sides() -> None:
    pos, neg = find_evidence("Junior Engineer", "Reports to the Senior Lead")
    assert [p.lower() for p in pos] == ["junior"]
    assert [n.lower() for n in neg] == ["senior", "lead"]


def test_term_lists_are_data() -> None:
    pattern = compile_terms(POSITIVE_TERMS + (r"kandidat",))
    assert classify("Kandidat Vertrieb", "", positive=pattern) is True
    assert classify("Kandidat Vertrieb", "") is False


def test_is_early_career_requires_company() -> None:
    assert is_early_career(_raw("Junior Developer")) is True
    assert is_early_career(_raw("Junior Developer", company="  ")) is False


def test_clean_description_strips_html() -> None:
    text = clean_description("<p>Hello&nbsp;<b>world</b></p><ul><li>One</li><li>Two</li></ul>")
    assert "<" not in text
    assert text.startswith("Hello world")
    assert "One" in text and "Two" in text


def test_clean_description_truncates() -> None:
    assert len(clean_description("x" * 10_000, max_len=100)) == 100
    assert clean_description(None) == ""
