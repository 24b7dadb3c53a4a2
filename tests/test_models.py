from datetime import datetime, timezone

import pytest

from prsweep.errors import ConfigError
from prsweep.models import Comment, LabelPredicate, PullRequest, StatusCheck, parse_timestamp

NOW = datetime(2024, 5, 2, 12, 0, tzinfo=timezone.utc)


def test_parse_timestamp() -> None:
    assert parse_timestamp("2024-05-01T10:00:00Z") == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
    assert parse_timestamp("2024-05-01T10:00:00") is None
    assert parse_timestamp("not a time") is None
    assert parse_timestamp("") is None


def test_label_predicate_from_name() -> None:
    assert LabelPredicate.from_name("") is LabelPredicate.NONE
    assert LabelPredicate.from_name(None) is LabelPredicate.NONE
    assert LabelPredicate.from_name("only_if_label_exists") is LabelPredicate.ONLY_IF_LABEL_EXISTS
    with pytest.raises(ConfigError, match="skip_if_label_exists"):
        LabelPredicate.from_name("always")


@pytest.mark.parametrize(
    "states,expected",
    [
        ((), "Passing"),
        (("SUCCESS", "NEUTRAL"), "Passing"),
        (("SUCCESS", "PENDING"), "Pending"),
        (("PENDING", "failure"), "Failing"),
    ],
)
def test_ci_status(states, expected) -> None:  # type: ignore
    pr = PullRequest(1, status_checks=tuple(StatusCheck(f"c{i}", s) for i, s in enumerate(states)))
    assert pr.ci_status() == expected


def test_last_comment_age() -> None:
    assert PullRequest(1).last_comment_age(NOW) == "never"
    pr = PullRequest(
        1,
        comments=(
            Comment("old", "2024-04-01T00:00:00Z"),
            Comment("new", "2024-05-02T10:30:00Z"),
            Comment("bad", "garbage"),
        ),
    )
    assert pr.last_comment_age(NOW) == "1h30m"
    assert PullRequest(1, comments=(Comment("x", "2024-05-02T11:59:30Z"),)).last_comment_age(NOW) == "30s"
    assert PullRequest(1, comments=(Comment("x", "2024-04-29T12:00:00Z"),)).last_comment_age(NOW) == "3d"


@pytest.mark.parametrize(
    "value,micros",
    [
        ("2024-05-01T10:00:00.5Z", 500000),
        ("2024-05-01T10:00:00.12Z", 120000),
        ("2024-05-01T10:00:00.123456789Z", 123456),
        ("2024-05-01T12:00:00.1234+02:00", 123400),
    ],
)
def test_parse_timestamp_fractional_seconds(value: str, micros: int) -> None:
    parsed = parse_timestamp(value)
    assert parsed is not None
    assert parsed.microsecond == micros
    assert parsed.astimezone(timezone.utc).hour == 10
