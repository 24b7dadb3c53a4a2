from datetime import datetime, timedelta, timezone

import pytest

from prsweep.errors import ConfigError
from prsweep.models import Comment, PullRequest
from prsweep.throttle import is_throttled, parse_throttle

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _pr(*comments: Comment) -> PullRequest:
    return PullRequest(number=1, comments=tuple(comments))


def _stamp(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


def test_zero_or_negative_window_never_throttles() -> None:
    pr = _pr(Comment("/approve", _stamp(NOW)))
    assert not is_throttled(pr, "/approve", timedelta(0), now=NOW)
    assert not is_throttled(pr, "/approve", timedelta(minutes=-5), now=NOW)


def test_recent_identical_comment_throttles() -> None:
    window = timedelta(minutes=30)
    pr = _pr(Comment("  /approve\n", _stamp(NOW - window / 2)))
    assert is_throttled(pr, "/approve", window, now=NOW)


def test_comment_outside_window_does_not_throttle() -> None:
    window = timedelta(minutes=30)
    pr = _pr(Comment("/approve", _stamp(NOW - window - timedelta(seconds=1))))
    assert not is_throttled(pr, "/approve", window, now=NOW)


def test_cutoff_is_exclusive() -> None:
    window = timedelta(minutes=30)
    pr = _pr(Comment("/approve", _stamp(NOW - window)))
    assert not is_throttled(pr, "/approve", window, now=NOW)


def test_different_body_or_bad_timestamp_does_not_throttle() -> None:
    window = timedelta(hours=1)
    pr = _pr(
        Comment("/lgtm", _stamp(NOW)),
        Comment("/approve", "yesterday"),
        Comment("/approve", "2024-05-01T11:59:00"),
    )
    assert not is_throttled(pr, "/approve", window, now=NOW)


def test_offset_timestamps_are_compared_in_utc() -> None:
    pr = _pr(Comment("/retest", "2024-05-01T13:50:00+02:00"))
    assert is_throttled(pr, "/retest", timedelta(minutes=15), now=NOW)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("", timedelta(0)),
        (None, timedelta(0)),
        ("5", timedelta(minutes=5)),
        ("30s", timedelta(seconds=30)),
        ("5m", timedelta(minutes=5)),
        ("2h", timedelta(hours=2)),
        ("1d", timedelta(days=1)),
        ("1h30m", timedelta(minutes=90)),
    ],
)
def test_parse_throttle(text, expected) -> None:  # type: ignore
    assert parse_throttle(text) == expected


@pytest.mark.parametrize("text", ["abc", "5x", "-5m", "1.5h"])
def test_parse_throttle_rejects(text: str) -> None:
    with pytest.raises(ConfigError, match="invalid throttle"):
        parse_throttle(text)


@pytest.mark.parametrize("text", ["٥", "٥m", "1h٣٠m"])
def test_parse_throttle_accepts_ascii_digits_only(text: str) -> None:
    with pytest.raises(ConfigError):
        parse_throttle(text)


def test_fractional_second_timestamps_throttle() -> None:
    pr = _pr(Comment("/retest", "2024-05-01T11:55:00.5Z"))
    assert is_throttled(pr, "/retest", timedelta(minutes=10), now=NOW)
