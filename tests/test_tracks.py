from datetime import date, datetime

import pytest

from job_ingest.tracks import DEFAULT_TRACK_QUERIES, TrackScheduler, day_of_year


def test_day_of_year_is_one_based() -> None:
    assert day_of_year(date(2024, 1, 1)) == 1
    assert day_of_year(date(2024, 12, 31)) == 366


def test_day_ten_selects_track_a() -> None:
    scheduler = TrackScheduler()
    track, query = scheduler.plan(date(2024, 1, 10))
    assert track == "A"
    assert query == "graduate developer OR junior software"


@pytest.mark.parametrize("day, expected", [
    (date(2024, 1, 1), "B"),
    (date(2024, 1, 2), "C"),
    (date(2024, 1, 3), "D"),
    (date(2024, 1, 4), "E"),
    (date(2024, 1, 5), "A"),
])
def test_rotation_cycles_through_tracks(day: date, expected: str) -> None:
    assert TrackScheduler().select_track(day) == expected


def test_selection_is_deterministic_for_datetimes() -> None:
    scheduler = TrackScheduler()
    assert scheduler.select_track(datetime(2024, 3, 1, 23, 59)) == scheduler.select_track(date(2024, 3, 1))


def test_custom_tracks() -> None:
    scheduler = TrackScheduler({"X": "werkstudent", "Y": "praktikum"})
    assert scheduler.tracks == ["X", "Y"]
    assert scheduler.select_track(date(2024, 1, 2)) == "X"
    assert scheduler.query_for("Y") == "praktikum"


def test_unknown_track_raises() -> None:
    with pytest.raises(KeyError):
        TrackScheduler().query_for("Z")


def test_default_tracks_are_a_to_e() -> None:
    assert TrackScheduler().tracks == list(DEFAULT_TRACK_QUERIES) == ["A", "B", "C", "D", "E"]


def test_empty_track_table_rejected() -> None:
    with pytest.raises(ValueError):
        TrackScheduler({})
