from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from enum import Enum

from ._error import CronTimeError


class Weekday(Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @property
    def number(self) -> int:
        """ISO 8601 day number: Monday=1, Sunday=7."""
        return _WEEKDAY_NUMBERS[self]

    @classmethod
    def of(cls, d: date) -> Weekday:
        return _NUMBER_TO_WEEKDAY[d.isoweekday()]

    def __str__(self) -> str:
        return self.value


_WEEKDAY_NUMBERS = {
    Weekday.MONDAY: 1,
    Weekday.TUESDAY: 2,
    Weekday.WEDNESDAY: 3,
    Weekday.THURSDAY: 4,
    Weekday.FRIDAY: 5,
    Weekday.SATURDAY: 6,
    Weekday.SUNDAY: 7,
}

_NUMBER_TO_WEEKDAY = {v: k for k, v in _WEEKDAY_NUMBERS.items()}


class FieldName(Enum):
    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    DAY_OF_MONTH = "day_of_month"
    MONTH = "month"
    DAY_OF_WEEK = "day_of_week"
    YEAR = "year"

    def __str__(self) -> str:
        return self.value


# --- Domains ---


@dataclass(frozen=True, slots=True)
class FieldDomain:
    """Inclusive numeric bounds of one field.

    For DAY_OF_MONTH the bounds are the validation bounds (1-31); the bound
    used while searching depends on the month, see `bounds`.

    For DAY_OF_WEEK, `first_weekday` is the weekday that `minimum` denotes.
    A domain spanning eight values (UNIX 0-7) treats `maximum` as an alias
    of `minimum`.
    """

    field: FieldName
    minimum: int
    maximum: int
    wraps: bool = False
    first_weekday: Weekday | None = None

    def __post_init__(self) -> None:
        if self.minimum > self.maximum:
            raise ValueError(f"empty domain for {self.field}: {self.minimum}-{self.maximum}")
        if self.field == FieldName.DAY_OF_WEEK and self.first_weekday is None:
            raise ValueError("day_of_week domain needs a first_weekday")

    @property
    def size(self) -> int:
        return self.maximum - self.minimum + 1

    def contains(self, value: int) -> bool:
        return self.minimum <= value <= self.maximum

    def bounds(self, year: int, month: int) -> tuple[int, int]:
        if self.field == FieldName.DAY_OF_MONTH:
            return self.minimum, min(self.maximum, calendar.monthrange(year, month)[1])
        return self.minimum, self.maximum

    def weekday_value(self, d: date) -> int:
        if self.first_weekday is None:
            raise ValueError(f"{self.field} is not a day_of_week domain")
        return self.minimum + (d.isoweekday() - self.first_weekday.number) % 7

    @property
    def weekday_alias(self) -> int | None:
        """Value that denotes the same weekday as `minimum`, if any."""
        if self.first_weekday is not None and self.maximum == self.minimum + 7:
            return self.maximum
        return None


# --- Field expressions ---


@dataclass(frozen=True, slots=True)
class Always:
    pass


@dataclass(frozen=True, slots=True)
class On:
    value: int


@dataclass(frozen=True, slots=True)
class Between:
    start: int
    end: int


@dataclass(frozen=True, slots=True)
class Every:
    """`base, base + step, ...` inside the base's range.

    An `On(v)` base stands for `v` up to the domain maximum (cron `v/step`).
    """

    base: Always | On | Between
    step: int

    def __post_init__(self) -> None:
        if self.step < 1:
            raise ValueError(f"step must be >= 1, got {self.step}")


@dataclass(frozen=True, slots=True)
class Union:
    members: tuple[FieldExpression, ...]

    def __post_init__(self) -> None:
        if not self.members:
            raise ValueError("union needs at least one member")


FieldExpression = Always | On | Between | Every | Union


# --- Validation ---


def validate(expr: FieldExpression, domain: FieldDomain) -> None:
    """Check every literal of `expr` against `domain`.

    Raises CronTimeError with kind "literal" for out-of-range values and
    kind "range" for inverted ranges on fields that do not wrap.
    """
    match expr:
        case Always():
            return
        case On(value=v):
            _check_literal(v, domain)
        case Between(start=s, end=e):
            _check_literal(s, domain)
            _check_literal(e, domain)
            if e < s and not domain.wraps:
                raise CronTimeError.range(
                    f"{domain.field} range start must be <= end: {s}-{e}", domain.field
                )
        case Every(base=base, step=step):
            validate(base, domain)
            if step > domain.size:
                raise CronTimeError.literal(
                    f"{domain.field} step must be 1-{domain.size}, got {step}", domain.field
                )
        case Union(members=members):
            for member in members:
                validate(member, domain)


def _check_literal(value: int, domain: FieldDomain) -> None:
    if not domain.contains(value):
        raise CronTimeError.literal(
            f"{domain.field} must be {domain.minimum}-{domain.maximum}, got {value}",
            domain.field,
        )


# --- Matchers ---


def matches(expr: FieldExpression, value: int, domain: FieldDomain) -> bool:
    match expr:
        case Always():
            return domain.contains(value)
        case On(value=v):
            return value == v
        case Between(start=s, end=e):
            if s <= e:
                return s <= value <= e
            return domain.contains(value) and (value >= s or value <= e)
        case Every(base=base, step=step):
            first, span = _every_range(base, domain)
            if not domain.contains(value):
                return False
            offset = (value - first) % domain.size
            return offset <= span and offset % step == 0
        case Union(members=members):
            return any(matches(m, value, domain) for m in members)
    return False  # pragma: no cover


def _every_range(base: Always | On | Between, domain: FieldDomain) -> tuple[int, int]:
    """First value and length (in steps of one, modulo the domain) of a step base."""
    match base:
        case Always():
            return domain.minimum, domain.maximum - domain.minimum
        case On(value=v):
            return v, domain.maximum - v
        case Between(start=s, end=e):
            return s, (e - s) % domain.size
    raise ValueError(f"unsupported step base: {base!r}")  # pragma: no cover


def next_match(
    expr: FieldExpression, value: int, lo: int, hi: int, domain: FieldDomain
) -> int | None:
    """Smallest value in `[max(value, lo), hi]` matching `expr`, or None."""
    start = max(value, lo)
    if start > hi:
        return None
    match expr:
        case Always():
            return start
        case On(value=v):
            return v if start <= v <= hi else None
        case Between(start=s, end=e) if s <= e:
            if start > e or s > hi:
                return None
            return max(start, s)
        case Union(members=members):
            found = [
                n for m in members if (n := next_match(m, start, lo, hi, domain)) is not None
            ]
            return min(found) if found else None
    # Stepped and wrapped expressions are scanned; domains are at most a few
    # hundred values wide.
    for candidate in range(start, hi + 1):
        if matches(expr, candidate, domain):
            return candidate
    return None


def previous_match(
    expr: FieldExpression, value: int, lo: int, hi: int, domain: FieldDomain
) -> int | None:
    """Largest value in `[lo, min(value, hi)]` matching `expr`, or None."""
    start = min(value, hi)
    if start < lo:
        return None
    match expr:
        case Always():
            return start
        case On(value=v):
            return v if lo <= v <= start else None
        case Between(start=s, end=e) if s <= e:
            if start < s or e < lo:
                return None
            return min(start, e)
        case Union(members=members):
            found = [
                n for m in members if (n := previous_match(m, start, lo, hi, domain)) is not None
            ]
            return max(found) if found else None
    for candidate in range(start, lo - 1, -1):
        if matches(expr, candidate, domain):
            return candidate
    return None


def matches_weekday(expr: FieldExpression, d: date, domain: FieldDomain) -> bool:
    value = domain.weekday_value(d)
    if matches(expr, value, domain):
        return True
    alias = domain.weekday_alias
    return alias is not None and value == domain.minimum and matches(expr, alias, domain)


def is_restricted(expr: FieldExpression) -> bool:
    return not isinstance(expr, Always)
