import pytest

from job_ingest.annotate import annotate, career_path, career_path_hits, location_type
from job_ingest.models import RawJobRecord


@pytest.mark.parametrize("location, expected", [
    ("Berlin", "europe"),
    ("London, UK", "europe"),
    ("Lausanne, Switzerland", "europe"),
    ("Zürich", "europe"),
    ("München, Bayern", "europe"),
    ("Remote", "remote-europe"),
    ("Remote (EU)", "remote-europe"),
    ("EMEA", "remote-europe"),
    ("Anywhere in Europe", "remote-europe"),
    ("New York, NY", "unknown"),
    ("Eugene, Oregon", "unknown"),
    ("Unknown", "unknown"),
    ("", "unknown"),
    (None, "unknown"),
])
def test_location_type(location, expected) -> None:
    assert location_type(location) == expected


def test_remote_wins_over_country() -> None:
    assert location_type("Germany (remote)") == "remote-europe"


def test_career_path_needs_two_hits() -> None:
    assert career_path("Junior Data Analyst", "Build reporting and insights dashboards.") == "Data & Analytics"
    assert career_path("Graduate Marketing Assistant", "") is None
    assert career_path("", "") is None


def test_acronyms_match_in_capitals_only() -> None:
    assert career_path("Junior IT Analyst", "First-line IT support.") == "Tech & Transformation"
    assert "Tech & Transformation" not in career_path_hits("Graduate Trainee", "it is a role with real impact")


def test_career_path_tie_goes_to_first_listed() -> None:
    hits = career_path_hits("Junior Sales and Marketing", "sales development and marketing content")
    assert hits["Sales & Client Success"] == hits["Marketing & Growth"] == 2
    assert career_path("Junior Sales and Marketing", "sales development and marketing content") == "Sales & Client Success"


def test_annotate_record() -> None:
    raw = RawJobRecord(
        title="Graduate Financial Analyst",
        company="Acme",
        location="Dublin, Ireland",
        description="Corporate finance and investment analysis.",
        url="https://example.com/jobs/1",
        source="remotive",
    )
    assert annotate(raw) == ("europe", "Finance & Investment")
