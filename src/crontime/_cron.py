from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass

from ._definition import CronDefinition
from ._display import display
from ._field import Always, FieldExpression, FieldName, validate


@dataclass(frozen=True, slots=True)
class Cron(Mapping[FieldName, FieldExpression]):
    """Immutable, ordered mapping from field name to its expression.

    Covers exactly the fields of `definition`, in definition order, and every
    literal has been checked against its field's domain.
    """

    definition: CronDefinition
    expressions: tuple[tuple[FieldName, FieldExpression], ...]

    def __post_init__(self) -> None:
        fields = tuple(name for name, _ in self.expressions)
        if fields != self.definition.fields:
            raise ValueError(
                f"{self.definition.cron_type} cron needs fields "
                f"{[str(f) for f in self.definition.fields]}, got {[str(f) for f in fields]}"
            )
        for name, expr in self.expressions:
            validate(expr, self.definition.domain(name))

    @classmethod
    def of(
        cls,
        definition: CronDefinition,
        fields: Mapping[FieldName, FieldExpression],
    ) -> Cron:
        """Build a Cron from an unordered mapping.

        Optional fields of the definition that are missing default to Always.
        """
        unknown = [f for f in fields if not definition.has(f)]
        if unknown:
            raise ValueError(
                f"{definition.cron_type} cron has no field(s) {[str(f) for f in unknown]}"
            )
        expressions: list[tuple[FieldName, FieldExpression]] = []
        for name in definition.fields:
            if name in fields:
                expressions.append((name, fields[name]))
            elif name in definition.optional:
                expressions.append((name, Always()))
            else:
                raise ValueError(f"missing {name} field for {definition.cron_type} cron")
        return cls(definition, tuple(expressions))

    def __getitem__(self, field: FieldName) -> FieldExpression:
        for name, expr in self.expressions:
            if name == field:
                return expr
        raise KeyError(field)

    def __iter__(self) -> Iterator[FieldName]:
        return (name for name, _ in self.expressions)

    def __len__(self) -> int:
        return len(self.expressions)

    def has(self, field: FieldName) -> bool:
        return self.definition.has(field)

    def __str__(self) -> str:
        return display(self)

    def __repr__(self) -> str:
        return f"Cron({str(self)!r}, {self.definition.cron_type})"
