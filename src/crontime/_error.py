from __future__ import annotations

from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from ._field import FieldName


CronTimeErrorKind = Literal["literal", "range", "parse", "no_match"]


class CronTimeError(Exception):
    kind: CronTimeErrorKind
    field: FieldName | None
    input_text: str | None

    def __init__(
        self,
        kind: CronTimeErrorKind,
        message: str,
        field: FieldName | None = None,
        input_text: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.field = field
        self.input_text = input_text

    @classmethod
    def literal(cls, message: str, field: FieldName | None = None) -> CronTimeError:
        return cls("literal", message, field)

    @classmethod
    def range(cls, message: str, field: FieldName | None = None) -> CronTimeError:
        return cls("range", message, field)

    @classmethod
    def parse(
        cls,
        message: str,
        input_text: str,
        field: FieldName | None = None,
    ) -> CronTimeError:
        return cls("parse", message, field, input_text)

    @classmethod
    def no_match(cls, message: str) -> CronTimeError:
        return cls("no_match", message)

    def display_rich(self) -> str:
        out = f"error: {self}"
        if self.field is not None:
            out += f" (field: {self.field})"
        if self.kind == "parse" and self.input_text:
            out += f"\n  {self.input_text}"
        return out
