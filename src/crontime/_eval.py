from __future__ import annotations

import calendar
import itertools
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from enum import IntEnum

from ._cron import Cron
from ._definition import OPEN_YEAR_DOMAIN, SECOND_DOMAIN
from ._error import CronTimeError
from ._field import (
    Always,
    FieldDomain,
    FieldExpression,
    FieldName,
    On,
    is_restricted,
    matches,
    matches_weekday,
    next_match,
    previous_match,
)

logger = logging.getLogger("crontime.execution")

# =============================================================================
# Search Bounds
# =============================================================================
# SEARCH_HORIZON_YEARS (100): how far from the reference year a search may
# move before giving up. Every satisfiable schedule without a year field
# repeats within 28 years except for Feb 29 across a skipped century leap
# year (8 years), so the bound only trips on contradictory expressions such
# as "0 0 31 4,6,9,11 *". A cron with an explicit year field is searched
# across that field's whole domain instead.
#
# MAX_ITERATIONS (100000): cap on walk restarts per query, and on candidate
# wall times examined per query.
# =============================================================================

SEARCH_HORIZON_YEARS = 100
MAX_ITERATIONS = 100_000

# =============================================================================
# DST Handling
# =============================================================================
# Candidates are wall-clock times in the reference's tzinfo, resolved to
# instants afterwards:
#
# 1. Gap (spring forward): the wall time does not exist and is pushed past
#    the gap, 02:30 -> 03:30. is_match accepts the pushed instant.
#
# 2. Fold (fall back): the wall time occurs twice and both instants fire.
#
# Near a transition, wall-clock order and timeline order disagree, so the
# walk starts up to one offset change before the reference and keeps going
# until no later wall time can resolve to an earlier instant than the best
# one found. Away from transitions the shift is zero and the first candidate
# past the reference wins.
# =============================================================================

_TRANSITION_WINDOW = timedelta(days=1)

# =============================================================================
# Walk Order
# =============================================================================
# Units are visited finest first. When a unit moves, every finer unit is reset
# (to its minimum going forward, to its maximum going backward) and the walk
# restarts from the finest unit. A unit with no remaining match carries into
# (or borrows from) the next coarser unit. The walk ends on the first pass in
# which no unit moves.
#
# Day of month and day of week form a single "day" unit:
#   - both restricted: a day matches if either field matches (POSIX OR rule)
#   - one restricted: only that field decides
#   - neither restricted: every day matches
# =============================================================================


class _Unit(IntEnum):
    SECOND = 0
    MINUTE = 1
    HOUR = 2
    DAY = 3
    MONTH = 4
    YEAR = 5


_MAX_YEAR = 9999


@dataclass(frozen=True, slots=True)
class _Fields:
    """Expression and domain per unit, with defaults for fields a dialect omits."""

    second: tuple[FieldExpression, FieldDomain]
    minute: tuple[FieldExpression, FieldDomain]
    hour: tuple[FieldExpression, FieldDomain]
    day_of_month: tuple[FieldExpression, FieldDomain]
    month: tuple[FieldExpression, FieldDomain]
    day_of_week: tuple[FieldExpression, FieldDomain]
    year: tuple[FieldExpression, FieldDomain]
    has_seconds: bool

    @classmethod
    def of(cls, cron: Cron) -> _Fields:
        definition = cron.definition

        def lookup(
            field: FieldName, default: FieldExpression, domain: FieldDomain
        ) -> tuple[FieldExpression, FieldDomain]:
            if cron.has(field):
                return cron[field], definition.domain(field)
            return default, domain

        return cls(
            second=lookup(FieldName.SECOND, On(0), SECOND_DOMAIN),
            minute=(cron[FieldName.MINUTE], definition.domain(FieldName.MINUTE)),
            hour=(cron[FieldName.HOUR], definition.domain(FieldName.HOUR)),
            day_of_month=(
                cron[FieldName.DAY_OF_MONTH],
                definition.domain(FieldName.DAY_OF_MONTH),
            ),
            month=(cron[FieldName.MONTH], definition.domain(FieldName.MONTH)),
            day_of_week=(
                cron[FieldName.DAY_OF_WEEK],
                definition.domain(FieldName.DAY_OF_WEEK),
            ),
            year=lookup(FieldName.YEAR, Always(), OPEN_YEAR_DOMAIN),
            has_seconds=cron.has(FieldName.SECOND),
        )

    @property
    def unit(self) -> timedelta:
        return timedelta(seconds=1) if self.has_seconds else timedelta(minutes=1)

    def truncate(self, wall: datetime) -> datetime:
        if self.has_seconds:
            return wall.replace(microsecond=0)
        return wall.replace(second=0, microsecond=0)

    def for_unit(self, unit: _Unit) -> tuple[FieldExpression, FieldDomain]:
        match unit:
            case _Unit.SECOND:
                return self.second
            case _Unit.MINUTE:
                return self.minute
            case _Unit.HOUR:
                return self.hour
            case _Unit.MONTH:
                return self.month
            case _Unit.YEAR:
                return self.year
        raise ValueError(f"unit {unit} has no single expression")

    def day_matches(self, d: date) -> bool:
        dom_expr, dom_domain = self.day_of_month
        dow_expr, dow_domain = self.day_of_week
        dom_restricted = is_restricted(dom_expr)
        dow_restricted = is_restricted(dow_expr)
        if dom_restricted and dow_restricted:
            return matches(dom_expr, d.day, dom_domain) or matches_weekday(dow_expr, d, dow_domain)
        if dom_restricted:
            return matches(dom_expr, d.day, dom_domain)
        if dow_restricted:
            return matches_weekday(dow_expr, d, dow_domain)
        return True


# --- Helpers ---


def _require_aware(dt: datetime) -> tzinfo:
    tz = dt.tzinfo
    if tz is None or tz.utcoffset(dt) is None:
        raise ValueError(f"reference instant must be timezone-aware, got {dt.isoformat()}")
    return tz


def _utc(dt: datetime) -> datetime:
    return dt.astimezone(timezone.utc)


def _wall_values(wall: datetime) -> list[int]:
    return [wall.second, wall.minute, wall.hour, wall.day, wall.month, wall.year]


def _days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _offset(dt: datetime) -> timedelta:
    offset = dt.utcoffset()
    assert offset is not None
    return offset


def _offset_shift(instant: datetime, tz: tzinfo) -> timedelta:
    """Largest UTC offset change in `tz` within a day either side of `instant`."""
    u = _utc(instant)
    window = (-_TRANSITION_WINDOW, timedelta(0), _TRANSITION_WINDOW)
    offsets = [_offset((u + d).astimezone(tz)) for d in window]
    return max(offsets) - min(offsets)


def _instants(wall: datetime, tz: tzinfo) -> list[datetime]:
    """Instants whose wall-clock time in `tz` is `wall`, earliest first.

    Empty inside a DST gap, two instants inside a DST fold.
    """
    found: list[datetime] = []
    for fold in (0, 1):
        aware = wall.replace(tzinfo=tz, fold=fold)
        back = aware.astimezone(timezone.utc).astimezone(tz)
        if back.replace(tzinfo=None, fold=0) != wall:
            continue
        if any(f.utcoffset() == aware.utcoffset() for f in found):
            continue
        found.append(aware)
    return sorted(found, key=lambda dt: dt.timestamp())


def _localize(wall: datetime, tz: tzinfo) -> list[datetime]:
    """Like `_instants`, but a wall time inside a DST gap is pushed past the gap.

    Resolving with the pre-transition offset and normalizing through UTC
    turns 02:30 on a spring-forward night into 03:30.
    """
    found = _instants(wall, tz)
    if found:
        return found
    ts = wall.replace(tzinfo=tz, fold=0).timestamp()
    pushed = datetime.fromtimestamp(ts, tz=tz)
    logger.debug(f"{wall.isoformat()} falls in a DST gap in {tz}, using {pushed.isoformat()}")
    return [pushed]


def _gap_wall(dt: datetime, tz: tzinfo) -> datetime | None:
    """Wall time inside a DST gap that `_localize` resolves to `dt`, if any."""
    shift = _offset(dt) - _offset((_utc(dt) - _TRANSITION_WINDOW).astimezone(tz))
    if shift <= timedelta(0):
        return None
    wall = dt.replace(tzinfo=None, fold=0) - shift
    if _instants(wall, tz):
        return None
    if wall.replace(tzinfo=tz, fold=0).timestamp() != dt.timestamp():
        return None
    return wall


# --- Forward walk ---


def _next_in_unit(fields: _Fields, unit: _Unit, wall: datetime) -> int | None:
    values = _wall_values(wall)
    if unit == _Unit.DAY:
        _, last = fields.day_of_month[1].bounds(wall.year, wall.month)
        for day in range(wall.day, last + 1):
            if fields.day_matches(date(wall.year, wall.month, day)):
                return day
        return None
    expr, domain = fields.for_unit(unit)
    hi = domain.maximum
    if unit == _Unit.YEAR:
        hi = min(hi, _MAX_YEAR)
    return next_match(expr, values[unit], domain.minimum, hi, domain)


def _carry(unit: _Unit, wall: datetime) -> datetime | None:
    """First wall time of the next coarser unit."""
    match unit:
        case _Unit.SECOND:
            return wall.replace(second=0) + timedelta(minutes=1)
        case _Unit.MINUTE:
            return wall.replace(minute=0, second=0) + timedelta(hours=1)
        case _Unit.HOUR:
            return datetime(wall.year, wall.month, wall.day) + timedelta(days=1)
        case _Unit.DAY:
            if wall.month == 12:
                return None if wall.year >= _MAX_YEAR else datetime(wall.year + 1, 1, 1)
            return datetime(wall.year, wall.month + 1, 1)
        case _Unit.MONTH:
            return None if wall.year >= _MAX_YEAR else datetime(wall.year + 1, 1, 1)
    return None


def _advance_to(unit: _Unit, value: int, wall: datetime) -> datetime:
    """Move `unit` forward to `value`, every finer unit at its minimum."""
    match unit:
        case _Unit.SECOND:
            return wall.replace(second=value)
        case _Unit.MINUTE:
            return wall.replace(minute=value, second=0)
        case _Unit.HOUR:
            return wall.replace(hour=value, minute=0, second=0)
        case _Unit.DAY:
            return datetime(wall.year, wall.month, value)
        case _Unit.MONTH:
            return datetime(wall.year, value, 1)
    return datetime(value, 1, 1)


def _next_wall(fields: _Fields, start: datetime, until: datetime) -> datetime | None:
    """First matching wall time in `[start, until]`."""
    wall = start
    for _ in range(MAX_ITERATIONS):
        if wall > until:
            return None
        for unit in _Unit:
            current = _wall_values(wall)[unit]
            found = _next_in_unit(fields, unit, wall)
            if found is None:
                if unit == _Unit.YEAR:
                    return None
                carried = _carry(unit, wall)
                if carried is None:
                    return None
                wall = carried
                break
            if found != current:
                wall = _advance_to(unit, found, wall)
                break
        else:
            return wall if wall <= until else None
    return None


# --- Backward walk ---


def _previous_in_unit(fields: _Fields, unit: _Unit, wall: datetime) -> int | None:
    values = _wall_values(wall)
    if unit == _Unit.DAY:
        for day in range(wall.day, 0, -1):
            if fields.day_matches(date(wall.year, wall.month, day)):
                return day
        return None
    expr, domain = fields.for_unit(unit)
    hi = domain.maximum
    if unit == _Unit.YEAR:
        hi = min(hi, _MAX_YEAR)
    return previous_match(expr, values[unit], domain.minimum, hi, domain)


def _borrow(unit: _Unit, wall: datetime) -> datetime | None:
    """Last wall time of the previous coarser unit."""
    match unit:
        case _Unit.SECOND:
            return wall.replace(second=59) - timedelta(minutes=1)
        case _Unit.MINUTE:
            return wall.replace(minute=59, second=59) - timedelta(hours=1)
        case _Unit.HOUR:
            if wall.date() == date.min:
                return None
            return wall.replace(hour=23, minute=59, second=59) - timedelta(days=1)
        case _Unit.DAY:
            if wall.month == 1:
                return None if wall.year <= 1 else datetime(wall.year - 1, 12, 31, 23, 59, 59)
            month = wall.month - 1
            return datetime(wall.year, month, _days_in_month(wall.year, month), 23, 59, 59)
        case _Unit.MONTH:
            return None if wall.year <= 1 else datetime(wall.year - 1, 12, 31, 23, 59, 59)
    return None


def _retreat_to(unit: _Unit, value: int, wall: datetime) -> datetime:
    """Move `unit` backward to `value`, every finer unit at its maximum."""
    match unit:
        case _Unit.SECOND:
            return wall.replace(second=value)
        case _Unit.MINUTE:
            return wall.replace(minute=value, second=59)
        case _Unit.HOUR:
            return wall.replace(hour=value, minute=59, second=59)
        case _Unit.DAY:
            return datetime(wall.year, wall.month, value, 23, 59, 59)
        case _Unit.MONTH:
            return datetime(wall.year, value, _days_in_month(wall.year, value), 23, 59, 59)
    return datetime(value, 12, 31, 23, 59, 59)


def _previous_wall(fields: _Fields, start: datetime, since: datetime) -> datetime | None:
    """Last matching wall time in `[since, start]`."""
    wall = start
    for _ in range(MAX_ITERATIONS):
        if wall < since:
            return None
        for unit in _Unit:
            current = _wall_values(wall)[unit]
            found = _previous_in_unit(fields, unit, wall)
            if found is None:
                if unit == _Unit.YEAR:
                    return None
                borrowed = _borrow(unit, wall)
                if borrowed is None:
                    return None
                wall = borrowed
                break
            if found != current:
                wall = _retreat_to(unit, found, wall)
                break
        else:
            return wall if wall >= since else None
    return None


# --- Public API ---


def _horizon(cron: Cron, reference: datetime) -> tuple[int, int]:
    """Years a search from `reference` may visit."""
    if cron.has(FieldName.YEAR):
        domain = cron.definition.domain(FieldName.YEAR)
        return domain.minimum, min(domain.maximum, _MAX_YEAR)
    return (
        max(reference.year - SEARCH_HORIZON_YEARS, 1),
        min(reference.year + SEARCH_HORIZON_YEARS, _MAX_YEAR),
    )


def _wall_matches(fields: _Fields, wall: datetime) -> bool:
    values = _wall_values(wall)
    for unit in (_Unit.SECOND, _Unit.MINUTE, _Unit.HOUR, _Unit.MONTH, _Unit.YEAR):
        expr, domain = fields.for_unit(unit)
        if not matches(expr, values[unit], domain):
            return False
    return fields.day_matches(wall.date())


def next_execution(cron: Cron, reference: datetime) -> datetime:
    """First execution strictly after `reference`, in `reference`'s timezone."""
    tz = _require_aware(reference)
    fields = _Fields.of(cron)
    after = reference.timestamp()
    _, max_year = _horizon(cron, reference)
    until = datetime(max_year, 12, 31, 23, 59, 59)

    naive = reference.replace(tzinfo=None, fold=0)
    wall = fields.truncate(naive - _offset_shift(reference, tz))
    best: datetime | None = None
    for _ in range(MAX_ITERATIONS):
        candidate = _next_wall(fields, wall, until)
        if candidate is None:
            break
        for resolved in _localize(candidate, tz):
            ts = resolved.timestamp()
            if ts > after and (best is None or ts < best.timestamp()):
                best = resolved
        if best is not None:
            until = min(until, best.replace(tzinfo=None, fold=0) + _offset_shift(best, tz))
        wall = candidate + fields.unit
    if best is not None:
        return best
    logger.debug(f"No execution of '{cron}' after {reference} through year {max_year}")
    raise CronTimeError.no_match(
        f"no execution of '{cron}' after {reference.isoformat()} through year {max_year}"
    )


def last_execution(cron: Cron, reference: datetime) -> datetime:
    """Last execution strictly before `reference`, in `reference`'s timezone."""
    tz = _require_aware(reference)
    fields = _Fields.of(cron)
    before = reference.timestamp()
    min_year, _ = _horizon(cron, reference)
    since = datetime(min_year, 1, 1)

    naive = reference.replace(tzinfo=None, fold=0)
    wall = fields.truncate(naive + _offset_shift(reference, tz))
    best: datetime | None = None
    for _ in range(MAX_ITERATIONS):
        candidate = _previous_wall(fields, wall, since)
        if candidate is None:
            break
        for resolved in _localize(candidate, tz):
            ts = resolved.timestamp()
            if ts < before and (best is None or ts > best.timestamp()):
                best = resolved
        if best is not None:
            since = max(since, best.replace(tzinfo=None, fold=0) - _offset_shift(best, tz))
        wall = candidate - fields.unit
    if best is not None:
        return best
    logger.debug(f"No execution of '{cron}' before {reference} back to year {min_year}")
    raise CronTimeError.no_match(
        f"no execution of '{cron}' before {reference.isoformat()} back to year {min_year}"
    )


def is_match(cron: Cron, dt: datetime) -> bool:
    tz = _require_aware(dt)
    fields = _Fields.of(cron)
    if fields.truncate(dt) != dt:
        return False
    if _wall_matches(fields, dt.replace(tzinfo=None, fold=0)):
        return True
    gap = _gap_wall(dt, tz)
    return gap is not None and _wall_matches(fields, gap)


def time_to_next(cron: Cron, reference: datetime) -> timedelta:
    return _utc(next_execution(cron, reference)) - _utc(reference)


def time_from_last(cron: Cron, reference: datetime) -> timedelta:
    return _utc(reference) - _utc(last_execution(cron, reference))


def occurrences(cron: Cron, from_: datetime) -> Iterator[datetime]:
    current = from_
    while True:
        try:
            current = next_execution(cron, current)
        except CronTimeError:
            return
        yield current


def between(cron: Cron, from_: datetime, to: datetime) -> Iterator[datetime]:
    _require_aware(from_)
    _require_aware(to)
    return _until(occurrences(cron, from_), to.timestamp())


def _until(executions: Iterator[datetime], end: float) -> Iterator[datetime]:
    for dt in executions:
        if dt.timestamp() > end:
            return
        yield dt


def next_n(cron: Cron, reference: datetime, n: int) -> list[datetime]:
    if n < 0:
        raise ValueError(f"n must be >= 0, got {n}")
    return list(itertools.islice(occurrences(cron, reference), n))
