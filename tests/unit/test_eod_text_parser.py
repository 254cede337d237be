import pytest

from app.services.conversation.eod_text_parser import (
    extract_blockers,
    extract_hours,
    parse_bare_hours,
    parse_eod_text,
)


@pytest.mark.parametrize(
    "text, expected",
    [("6.5", 6.5), (" 8 ", 8.0), ("30", 30.0), ("6.5h", None), ("about 6", None), ("", None)],
)
def test_parse_bare_hours(text, expected):
    assert parse_bare_hours(text) == expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Hours: 7", 7.0),
        ("spent 6.5 hrs on the audit", 6.5),
        ("worked 8 today", 8.0),
        ("Fixed 40 tickets", None),
        ("Fixed 40 tickets in 7h", 7.0),
    ],
)
def test_extract_hours(text, expected):
    assert extract_hours(text) == expected


def test_no_blocker_values_mean_none():
    assert extract_blockers("Blockers: none") is None
    assert extract_blockers("Blocker: N/A") is None
    assert extract_blockers("Blocked by: legal review") == "legal review"
    assert extract_blockers("waiting on design assets\nother") == "design assets"


def test_parse_eod_text():
    parsed = parse_eod_text(
        "Finished the Q3 audit\nBlockers: waiting on finance\nTomorrow's priority: board deck\n7.5h"
    )

    assert parsed.tasks_completed.startswith("Finished the Q3 audit")
    assert parsed.blockers == "waiting on finance"
    assert parsed.tomorrow_priority == "board deck"
    assert parsed.hours_worked == 7.5
