from __future__ import annotations

from typing import TYPE_CHECKING

from ._field import Always, Between, Every, FieldExpression, On, Union

if TYPE_CHECKING:
    from ._cron import Cron


def display(cron: Cron) -> str:
    return " ".join(display_expression(expr) for _, expr in cron.expressions)


def display_expression(expr: FieldExpression) -> str:
    match expr:
        case Always():
            return "*"
        case On(value=v):
            return str(v)
        case Between(start=s, end=e):
            return f"{s}-{e}"
        case Every(base=base, step=step):
            return f"{display_expression(base)}/{step}"
        case Union(members=members):
            return ",".join(display_expression(m) for m in members)
    raise ValueError(f"unknown expression type: {type(expr)}")  # pragma: no cover
