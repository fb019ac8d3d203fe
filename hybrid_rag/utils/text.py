"""
Text helpers for document ingestion: frontmatter parsing and
sentence-aware chunking.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

from hybrid_rag.utils.logging import get_logger

logger = get_logger("hybridrag.utils.text")

MIN_CHUNK_WORDS = 100
MAX_CHUNK_WORDS = 300

_FRONTMATTER_RE = re.compile(r"^---\r?\n(.*?)\r?\n---\r?\n(.*)$", re.DOTALL)
_META_LINE_RE = re.compile(r"^(\w+)\s*:\s*(.+)$")
_SENTENCE_END_RE = re.compile(r"(?<=[.!?])\s+")


@dataclass
class DocumentMeta:
    title: str
    date: date
    topic: str = "General"
    tags: list[str] = field(default_factory=list)


def title_from_filename(filename: str) -> str:
    """``q1_planning-notes.md`` → ``Q1 Planning Notes``"""
    stem = re.sub(r"[_-]+", " ", Path(filename).stem)
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), stem)


def _parse_date(value: str | None, filename: str) -> date:
    if not value:
        return date.today()
    try:
        return date.fromisoformat(value)
    except ValueError:
        logger.warning("Invalid date %r in %s, using today", value, filename)
        return date.today()


def parse_frontmatter(raw: str, filename: str) -> tuple[DocumentMeta, str]:
    """
    Split an optional ``---`` fenced ``key: value`` header from the body.

    Args:
        raw: Full file content
        filename: Used to derive the title when the header has none

    Returns:
        (metadata, body) where body is stripped of the header and whitespace.
        Missing fields default to: title from filename, today's date,
        topic "General", no tags.
    """
    fields: dict[str, str] = {}
    body = raw

    match = _FRONTMATTER_RE.match(raw)
    if match:
        body = match.group(2)
        for line in match.group(1).split("\n"):
            kv = _META_LINE_RE.match(line.strip())
            if kv:
                fields[kv.group(1)] = kv.group(2).strip()

    tags = [t.strip() for t in fields["tags"].split(",")] if fields.get("tags") else []
    meta = DocumentMeta(
        title=fields.get("title") or title_from_filename(filename),
        date=_parse_date(fields.get("date"), filename),
        topic=fields.get("topic") or "General",
        tags=[t for t in tags if t],
    )
    return meta, body.strip()


def split_sentences(text: str) -> list[str]:
    """Split on whitespace that follows ``.``, ``!`` or ``?``."""
    normalized = text.replace("\r\n", "\n")
    return [s.strip() for s in _SENTENCE_END_RE.split(normalized) if s.strip()]


def chunk_text(
    text: str,
    min_words: int = MIN_CHUNK_WORDS,
    max_words: int = MAX_CHUNK_WORDS,
) -> list[str]:
    """
    Group whole sentences into chunks of roughly min_words..max_words.

    A chunk is closed only once it holds at least ``min_words`` and the
    next sentence would push it past ``max_words``; sentences are never
    split, so a single very long sentence becomes its own oversized chunk.
    """
    chunks: list[str] = []
    current: list[str] = []
    word_count = 0

    for sentence in split_sentences(text):
        words = len(sentence.split())
        if word_count + words > max_words and word_count >= min_words:
            chunks.append(" ".join(current))
            current = [sentence]
            word_count = words
        else:
            current.append(sentence)
            word_count += words

    if current:
        chunks.append(" ".join(current))
    return chunks
