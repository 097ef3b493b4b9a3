from __future__ import annotations

from ._cron import Cron
from ._definition import UNIX, CronDefinition
from ._error import CronTimeError
from ._field import (
    Always,
    Between,
    Every,
    FieldDomain,
    FieldExpression,
    FieldName,
    On,
    Union,
    Weekday,
)

_SHORTCUTS: dict[str, str] = {
    "@yearly": "0 0 1 1 *",
    "@annually": "0 0 1 1 *",
    "@monthly": "0 0 1 * *",
    "@weekly": "0 0 * * 0",
    "@daily": "0 0 * * *",
    "@midnight": "0 0 * * *",
    "@hourly": "0 * * * *",
}

_MONTH_NAMES: dict[str, int] = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

_WEEKDAY_NAMES: dict[str, Weekday] = {
    "mon": Weekday.MONDAY,
    "tue": Weekday.TUESDAY,
    "wed": Weekday.WEDNESDAY,
    "thu": Weekday.THURSDAY,
    "fri": Weekday.FRIDAY,
    "sat": Weekday.SATURDAY,
    "sun": Weekday.SUNDAY,
}


def parse(text: str, definition: CronDefinition = UNIX) -> Cron:
    """Parse cron text written in `definition`'s dialect into a Cron."""
    trimmed = text.strip()

    if trimmed.startswith("@"):
        return _parse_shortcut(trimmed, definition)

    parts = trimmed.split()
    required = len(definition.domains) - len(definition.optional)
    if not required <= len(parts) <= len(definition.domains):
        expected = (
            str(required)
            if required == len(definition.domains)
            else f"{required}-{len(definition.domains)}"
        )
        raise CronTimeError.parse(
            f"expected {expected} {definition.cron_type} cron fields, got {len(parts)}", text
        )

    fields: dict[FieldName, FieldExpression] = {}
    for part, domain in zip(parts, definition.domains):
        fields[domain.field] = _parse_field(part, domain, definition, text)
    return Cron.of(definition, fields)


def _parse_shortcut(text: str, definition: CronDefinition) -> Cron:
    if not definition.shortcuts:
        raise CronTimeError.parse(f"{definition.cron_type} cron does not support @ shortcuts", text)
    expansion = _SHORTCUTS.get(text.lower())
    if expansion is None:
        raise CronTimeError.parse(f"unknown @ shortcut: {text}", text)
    return parse(expansion, definition)


def _parse_field(
    part: str, domain: FieldDomain, definition: CronDefinition, text: str
) -> FieldExpression:
    if part == "?":
        if definition.question_mark and domain.field in (
            FieldName.DAY_OF_MONTH,
            FieldName.DAY_OF_WEEK,
        ):
            return Always()
        raise CronTimeError.parse(
            f"? is not allowed in the {domain.field} field", text, domain.field
        )

    items = [_parse_item(item, domain, text) for item in part.split(",")]
    if len(items) == 1:
        return items[0]
    return Union(tuple(items))


def _parse_item(item: str, domain: FieldDomain, text: str) -> FieldExpression:
    if "/" in item:
        range_part, step_str = item.split("/", 1)
        if not (step_str.isascii() and step_str.isdigit()):
            raise CronTimeError.parse(
                f"invalid {domain.field} step: {step_str!r}", text, domain.field
            )
        step = int(step_str)
        if step < 1:
            raise CronTimeError.parse(
                f"{domain.field} step must be >= 1, got {step}", text, domain.field
            )
        return Every(_parse_range(range_part, domain, text), step)
    return _parse_range(item, domain, text)


def _parse_range(item: str, domain: FieldDomain, text: str) -> Always | On | Between:
    if item == "*":
        return Always()
    if "-" in item:
        start_str, end_str = item.split("-", 1)
        return Between(
            _parse_value(start_str, domain, text),
            _parse_value(end_str, domain, text),
        )
    return On(_parse_value(item, domain, text))


def _parse_value(s: str, domain: FieldDomain, text: str) -> int:
    """Parse a number, or a month or weekday name where the field allows one."""
    if s.isascii() and s.isdigit():
        return int(s)

    lowered = s.lower()
    if domain.field == FieldName.MONTH and lowered in _MONTH_NAMES:
        return _MONTH_NAMES[lowered]
    if domain.field == FieldName.DAY_OF_WEEK and lowered in _WEEKDAY_NAMES:
        first = domain.first_weekday
        assert first is not None
        return domain.minimum + (_WEEKDAY_NAMES[lowered].number - first.number) % 7
    raise CronTimeError.parse(f"invalid {domain.field} value: {s!r}", text, domain.field)
