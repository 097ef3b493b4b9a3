from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ._field import FieldDomain, FieldName, Weekday


class CronType(Enum):
    UNIX = "unix"
    QUARTZ = "quartz"
    SPRING = "spring"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class CronDefinition:
    """Fields of one cron dialect, in the order they are written.

    `optional` names trailing fields that may be left out of the text;
    `question_mark` allows `?` in the day fields and `shortcuts` allows the
    `@daily` family of macros.
    """

    cron_type: CronType
    domains: tuple[FieldDomain, ...]
    optional: frozenset[FieldName] = frozenset()
    question_mark: bool = False
    shortcuts: bool = False

    def __post_init__(self) -> None:
        fields = [d.field for d in self.domains]
        if len(set(fields)) != len(fields):
            raise ValueError(f"duplicate fields in {self.cron_type} definition")

    @property
    def fields(self) -> tuple[FieldName, ...]:
        return tuple(d.field for d in self.domains)

    def domain(self, field: FieldName) -> FieldDomain:
        for d in self.domains:
            if d.field == field:
                return d
        raise KeyError(field)

    def has(self, field: FieldName) -> bool:
        return any(d.field == field for d in self.domains)


SECOND_DOMAIN = FieldDomain(FieldName.SECOND, 0, 59, wraps=True)
MINUTE_DOMAIN = FieldDomain(FieldName.MINUTE, 0, 59, wraps=True)
HOUR_DOMAIN = FieldDomain(FieldName.HOUR, 0, 23, wraps=True)
DAY_OF_MONTH_DOMAIN = FieldDomain(FieldName.DAY_OF_MONTH, 1, 31)
MONTH_DOMAIN = FieldDomain(FieldName.MONTH, 1, 12)

# Sunday is 0, and 7 is accepted as a second spelling of Sunday.
SUNDAY_ZERO_DOMAIN = FieldDomain(FieldName.DAY_OF_WEEK, 0, 7, first_weekday=Weekday.SUNDAY)
# Quartz numbering: Sunday is 1, Saturday is 7.
SUNDAY_ONE_DOMAIN = FieldDomain(FieldName.DAY_OF_WEEK, 1, 7, first_weekday=Weekday.SUNDAY)

QUARTZ_YEAR_DOMAIN = FieldDomain(FieldName.YEAR, 1970, 2099)

# Used when a cron has no year field.
OPEN_YEAR_DOMAIN = FieldDomain(FieldName.YEAR, 1, 9999)


UNIX = CronDefinition(
    cron_type=CronType.UNIX,
    domains=(
        MINUTE_DOMAIN,
        HOUR_DOMAIN,
        DAY_OF_MONTH_DOMAIN,
        MONTH_DOMAIN,
        SUNDAY_ZERO_DOMAIN,
    ),
    shortcuts=True,
)

QUARTZ = CronDefinition(
    cron_type=CronType.QUARTZ,
    domains=(
        SECOND_DOMAIN,
        MINUTE_DOMAIN,
        HOUR_DOMAIN,
        DAY_OF_MONTH_DOMAIN,
        MONTH_DOMAIN,
        SUNDAY_ONE_DOMAIN,
        QUARTZ_YEAR_DOMAIN,
    ),
    optional=frozenset({FieldName.YEAR}),
    question_mark=True,
)

SPRING = CronDefinition(
    cron_type=CronType.SPRING,
    domains=(
        SECOND_DOMAIN,
        MINUTE_DOMAIN,
        HOUR_DOMAIN,
        DAY_OF_MONTH_DOMAIN,
        MONTH_DOMAIN,
        SUNDAY_ZERO_DOMAIN,
    ),
    question_mark=True,
)

_DEFINITIONS: dict[CronType, CronDefinition] = {
    CronType.UNIX: UNIX,
    CronType.QUARTZ: QUARTZ,
    CronType.SPRING: SPRING,
}


def definition_for(cron_type: CronType) -> CronDefinition:
    return _DEFINITIONS[cron_type]
