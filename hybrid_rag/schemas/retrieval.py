"""
Schemas for the retrieval stage.

Every hit carries a cosine similarity score (higher = more similar).
The order of a hit list is the canonical relevance order and is
preserved through the relational join.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class VectorHit(BaseModel):
    """One ANN result: primary key, similarity score, and output fields."""
    id: int
    score: float
    payload: dict[str, Any] = Field(default_factory=dict)


class FusedResult(BaseModel):
    """A relational record annotated with the score of the hit it came from."""
    record: dict[str, Any]
    score: float

    def as_row(self) -> dict[str, Any]:
        """Flatten into the record's columns plus ``score``."""
        return {**self.record, "score": self.score}
