"""
Schema for the query-understanding stage output.

Intent is the single structured object that flows from the intent
extractor into retrieval: the pure descriptive text for the vector
index, plus the hard predicates for the relational store.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class Intent(BaseModel):
    """
    Result of rule-based intent extraction.

    ``filters`` is ordered by the rule table and free of duplicates and
    of contradictory calorie bounds.  ``matched_keywords`` is diagnostic
    only and keeps the order in which phrases were found.
    """
    semantic_query: str
    filters: list[str] = Field(default_factory=list)
    matched_keywords: list[str] = Field(default_factory=list)
