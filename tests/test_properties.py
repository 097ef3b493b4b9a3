"""Searches agree with a brute-force scan of every instant in a window."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from crontime import CronType, ExecutionTime

_UTC = timezone.utc

_Case = tuple[ExecutionTime, datetime, datetime, timedelta]

# Feb 26 to Mar 3, 2015: crosses a short month end and includes a Sunday the 1st.
_MINUTE_WINDOW = (datetime(2015, 2, 26, tzinfo=_UTC), datetime(2015, 3, 3, tzinfo=_UTC))

# Two hours around the turn of the year.
_SECOND_WINDOW = (
    datetime(2015, 12, 31, 23, 0, tzinfo=_UTC),
    datetime(2016, 1, 1, 1, 0, tzinfo=_UTC),
)

_CASES = [
    ("*/7 * * * *", CronType.UNIX, _MINUTE_WINDOW, timedelta(minutes=1)),
    ("0,30 22-2 * * *", CronType.UNIX, _MINUTE_WINDOW, timedelta(minutes=1)),
    ("15 */5 28-31,1 * 0", CronType.UNIX, _MINUTE_WINDOW, timedelta(minutes=1)),
    ("* 23 * 2,3 1-2", CronType.UNIX, _MINUTE_WINDOW, timedelta(minutes=1)),
    ("*/20 59 23 * * ?", CronType.QUARTZ, _SECOND_WINDOW, timedelta(seconds=1)),
    ("0 0-5/2 0 1 1 *", CronType.SPRING, _SECOND_WINDOW, timedelta(seconds=1)),
]


def _scan(
    execution_time: ExecutionTime, start: datetime, end: datetime, step: timedelta
) -> list[datetime]:
    found: list[datetime] = []
    t = start
    while t <= end:
        if execution_time.is_match(t):
            found.append(t)
        t += step
    return found


@pytest.fixture(params=_CASES, ids=[case[0] for case in _CASES])
def case(request: pytest.FixtureRequest) -> _Case:
    text, cron_type, (start, end), step = request.param
    return ExecutionTime.parse(text, cron_type), start, end, step


class TestAgainstScan:
    def test_forward_chain(self, case: _Case) -> None:
        execution_time, start, end, step = case
        expected = _scan(execution_time, start, end, step)
        assert expected

        chained = list(execution_time.between(start - step, end))
        assert chained == expected

    def test_backward_chain(self, case: _Case) -> None:
        execution_time, start, end, step = case
        expected = _scan(execution_time, start, end, step)

        chained: list[datetime] = []
        t = end + step
        while True:
            t = execution_time.last_execution(t)
            if t < start:
                break
            chained.append(t)
        assert chained == list(reversed(expected))

    def test_next_and_last_bracket_sampled_instants(self, case: _Case) -> None:
        execution_time, start, end, step = case
        # Sample every 37 steps to keep the check quick.
        t = start
        while t <= end:
            nxt = execution_time.next_execution(t)
            last = execution_time.last_execution(t)
            assert last < t < nxt
            assert execution_time.is_match(nxt)
            assert execution_time.is_match(last)
            assert execution_time.next_execution(last) >= t
            assert execution_time.last_execution(nxt) <= t
            t += step * 37


# =============================================================================
# Across DST transitions
# =============================================================================

_NEW_YORK = ZoneInfo("America/New_York")

# UTC windows around the 2015 New York transitions.
_SPRING_FORWARD = (
    datetime(2015, 3, 8, 5, 0, tzinfo=_UTC),
    datetime(2015, 3, 8, 9, 0, tzinfo=_UTC),
)
_FALL_BACK = (
    datetime(2015, 11, 1, 4, 0, tzinfo=_UTC),
    datetime(2015, 11, 1, 8, 0, tzinfo=_UTC),
)

_DST_CASES = [
    ("*/15 * * * *", _SPRING_FORWARD),
    ("30 2 * * *", _SPRING_FORWARD),
    ("*/15 * * * *", _FALL_BACK),
    ("30 1 * * *", _FALL_BACK),
    ("0,50 0-2 * * *", _FALL_BACK),
]


def _scan_utc(execution_time: ExecutionTime, start: datetime, end: datetime) -> list[float]:
    """Timestamps of matching minutes, stepping in UTC and checking in New York."""
    found: list[float] = []
    t = start
    while t <= end:
        if execution_time.is_match(t.astimezone(_NEW_YORK)):
            found.append(t.timestamp())
        t += timedelta(minutes=1)
    return found


@pytest.mark.parametrize(
    "text,window", _DST_CASES, ids=[f"{text} {w[0]:%b}" for text, w in _DST_CASES]
)
class TestAcrossTransitions:
    def test_forward_chain(self, text: str, window: tuple[datetime, datetime]) -> None:
        execution_time = ExecutionTime.parse(text)
        start, end = window
        expected = _scan_utc(execution_time, start, end)
        assert expected

        chained = list(
            execution_time.between(
                (start - timedelta(minutes=1)).astimezone(_NEW_YORK), end.astimezone(_NEW_YORK)
            )
        )
        assert [dt.timestamp() for dt in chained] == expected
        assert all(dt.tzinfo is _NEW_YORK for dt in chained)

    def test_backward_chain(self, text: str, window: tuple[datetime, datetime]) -> None:
        execution_time = ExecutionTime.parse(text)
        start, end = window
        expected = _scan_utc(execution_time, start, end)

        chained: list[float] = []
        t = (end + timedelta(minutes=1)).astimezone(_NEW_YORK)
        while True:
            t = execution_time.last_execution(t)
            if t.timestamp() < start.timestamp():
                break
            chained.append(t.timestamp())
        assert chained == list(reversed(expected))
