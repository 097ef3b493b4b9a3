from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta

from ._cron import Cron
from ._definition import (
    QUARTZ,
    SPRING,
    UNIX,
    CronDefinition,
    CronType,
    definition_for,
)
from ._display import display_expression
from ._error import CronTimeError, CronTimeErrorKind
from ._eval import between as _between
from ._eval import is_match as _is_match
from ._eval import last_execution as _last_execution
from ._eval import next_execution as _next_execution
from ._eval import next_n as _next_n
from ._eval import occurrences as _occurrences
from ._eval import time_from_last as _time_from_last
from ._eval import time_to_next as _time_to_next
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
    matches,
    next_match,
    previous_match,
    validate,
)
from ._parser import parse


class ExecutionTime:
    """Next/last execution queries for one Cron.

    Holds no state besides the Cron, so one instance can serve any number of
    queries from any number of threads.
    """

    _cron: Cron

    def __init__(self, cron: Cron) -> None:
        self._cron = cron

    @classmethod
    def for_cron(cls, cron: Cron) -> ExecutionTime:
        return cls(cron)

    @classmethod
    def parse(cls, text: str, cron_type: CronType = CronType.UNIX) -> ExecutionTime:
        return cls(parse(text, definition_for(cron_type)))

    @classmethod
    def validate(cls, text: str, cron_type: CronType = CronType.UNIX) -> bool:
        try:
            parse(text, definition_for(cron_type))
            return True
        except CronTimeError:
            return False

    def next_execution(self, reference: datetime) -> datetime:
        """First execution strictly after `reference`.

        The result carries `reference`'s tzinfo. Raises CronTimeError (kind
        "no_match") if nothing fires within the search horizon.
        """
        return _next_execution(self._cron, reference)

    def last_execution(self, reference: datetime) -> datetime:
        """Last execution strictly before `reference`.

        The result carries `reference`'s tzinfo. Raises CronTimeError (kind
        "no_match") if nothing fired within the search horizon.
        """
        return _last_execution(self._cron, reference)

    def is_match(self, dt: datetime) -> bool:
        return _is_match(self._cron, dt)

    def time_to_next(self, reference: datetime) -> timedelta:
        return _time_to_next(self._cron, reference)

    def time_from_last(self, reference: datetime) -> timedelta:
        return _time_from_last(self._cron, reference)

    def next_n(self, reference: datetime, n: int) -> list[datetime]:
        return _next_n(self._cron, reference, n)

    def occurrences(self, from_: datetime) -> Iterator[datetime]:
        """Returns a lazy iterator of executions strictly after `from_`.

        The iterator is unbounded unless the schedule runs out (for example a
        Quartz year field), in which case it simply stops.
        """
        return _occurrences(self._cron, from_)

    def between(self, from_: datetime, to: datetime) -> Iterator[datetime]:
        """Returns a bounded iterator of executions where `from_ < execution <= to`."""
        return _between(self._cron, from_, to)

    @property
    def cron(self) -> Cron:
        return self._cron

    def __str__(self) -> str:
        return str(self._cron)

    def __repr__(self) -> str:
        return f"ExecutionTime({str(self._cron)!r})"


__all__ = [
    "ExecutionTime",
    "Cron",
    "CronDefinition",
    "CronType",
    "UNIX",
    "QUARTZ",
    "SPRING",
    "definition_for",
    "parse",
    "display_expression",
    "CronTimeError",
    "CronTimeErrorKind",
    "FieldName",
    "FieldDomain",
    "FieldExpression",
    "Weekday",
    "Always",
    "On",
    "Between",
    "Every",
    "Union",
    "validate",
    "matches",
    "next_match",
    "previous_match",
]
