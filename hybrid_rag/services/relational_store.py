"""
Relational store adapter (SQLAlchemy).

A single filtered read: rows whose id is in the candidate set AND that
satisfy every structured predicate.  Predicates are parsed and compiled
into column expressions against a whitelist of the model's columns;
nothing from the query text reaches raw SQL.
"""

from __future__ import annotations

import asyncio
import operator
from typing import Any, Iterable

from sqlalchemy import String, type_coerce
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import sessionmaker

from hybrid_rag.pipeline.predicates import CONTAINS_OP, Predicate, parse_predicate
from hybrid_rag.utils.logging import get_logger
from hybrid_rag.utils.timing import timed

logger = get_logger("hybridrag.services.relational_store")

_COMPARATORS = {
    "<": operator.lt,
    ">": operator.gt,
    "<=": operator.le,
    ">=": operator.ge,
    "=": operator.eq,
}


class RelationalStore:
    """Filtered lookup by id set over one ORM model."""

    def __init__(self, session_factory: sessionmaker, model: type):
        self.session_factory = session_factory
        self.model = model
        self._columns = {c.key: getattr(model, c.key) for c in model.__table__.columns}

    @property
    def dialect_name(self) -> str:
        bind = self.session_factory.kw.get("bind")
        return bind.dialect.name if bind is not None else ""

    def compile_predicate(self, predicate: Predicate) -> Any:
        """Turn a parsed predicate into a SQLAlchemy boolean expression."""
        column = self._columns.get(predicate.column)
        if column is None:
            raise ValueError(
                f"Unknown column {predicate.column!r} for table {self.model.__tablename__}"
            )

        if predicate.op == CONTAINS_OP:
            if self.dialect_name == "postgresql":
                return column.op("@>")(postgresql.array([predicate.value]))
            # JSON-encoded tag list elsewhere: match the quoted element
            return type_coerce(column, String).contains(f'"{predicate.value}"', autoescape=True)

        return _COMPARATORS[predicate.op](column, predicate.value)

    def row_to_dict(self, row: Any) -> dict[str, Any]:
        return {key: getattr(row, key) for key in self._columns}

    async def fetch(self, ids: Iterable[int], filters: Iterable[str]) -> list[dict[str, Any]]:
        """Async wrapper; the synchronous query runs in an executor."""
        id_list = list(ids)
        clauses = [self.compile_predicate(parse_predicate(f)) for f in filters]
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._fetch_sync, id_list, clauses)

    @timed("relational_fetch")
    def _fetch_sync(self, ids: list[int], clauses: list[Any]) -> list[dict[str, Any]]:
        if not ids:
            return []
        db = self.session_factory()
        try:
            rows = (
                db.query(self.model)
                .filter(self.model.id.in_(ids), *clauses)
                .all()
            )
            logger.info(
                "[STORE] %s: %d candidate id(s), %d filter(s) → %d row(s)",
                self.model.__tablename__, len(ids), len(clauses), len(rows),
            )
            return [self.row_to_dict(r) for r in rows]
        finally:
            db.close()
