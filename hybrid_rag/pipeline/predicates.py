"""
Structured filter predicates.

Predicates travel through the pipeline as strings (they are shown
verbatim in the search diagnostics), but they are never spliced into
SQL.  The relational store parses them with ``parse_predicate`` and
compiles them into column expressions.

Grammar:
    <column> <op> <number>          op ∈ {<, >, <=, >=, =}
    <column> @> ARRAY['<tag>']      tag-array containment
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_COMPARISON_RE = re.compile(r"^\s*(\w+)\s*(<=|>=|<|>|=)\s*(-?\d+(?:\.\d+)?)\s*$")
_CONTAINS_RE = re.compile(r"^\s*(\w+)\s*@>\s*ARRAY\['([^']*)'\]\s*$")

COMPARISON_OPS = ("<", ">", "<=", ">=", "=")
CONTAINS_OP = "@>"


@dataclass(frozen=True)
class Predicate:
    column: str
    op: str
    value: float | str

    @property
    def direction(self) -> str | None:
        """``upper`` for < / <=, ``lower`` for > / >=, else None."""
        if self.op in ("<", "<="):
            return "upper"
        if self.op in (">", ">="):
            return "lower"
        return None


def parse_predicate(text: str) -> Predicate:
    """Parse one predicate string; raises ValueError outside the grammar."""
    m = _COMPARISON_RE.match(text)
    if m:
        column, op, raw = m.groups()
        value = float(raw)
        return Predicate(column=column, op=op, value=int(value) if value.is_integer() else value)

    m = _CONTAINS_RE.match(text)
    if m:
        column, tag = m.groups()
        return Predicate(column=column, op=CONTAINS_OP, value=tag)

    raise ValueError(f"Unsupported filter predicate: {text!r}")


def build_sql_preview(filters: list[str]) -> str:
    """
    Human-readable filter clause for the UI.

    The id restriction coming from the vector hits is implied and not shown.
    """
    if not filters:
        return "None"
    return " AND ".join(filters)
