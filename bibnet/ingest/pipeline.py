# bibnet/ingest/pipeline.py

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from bibnet.config.settings import settings
from bibnet.errors import RecordError
from bibnet.graph.schema import ConnectOutcome, EdgeType, NodeLabel
from bibnet.graph.store import GraphStore
from bibnet.ingest.records import (
    AuthorName,
    CollaborationRecord,
    PaperRecord,
    RecordBundle,
    ResearcherRecord,
)

logger = logging.getLogger(__name__)

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "of", "in", "on", "at", "to",
        "for", "with", "from", "by", "into", "via", "using", "based", "towards",
        "this", "that", "their", "its", "are", "is", "was", "were",
    }
)

_NON_WORD = re.compile(r"[^\w\s]")


# -----------------------------------------------------------------------------
# Public result type
# -----------------------------------------------------------------------------

@dataclass
class IngestStats:
    papers: int = 0
    skipped: int = 0
    authors: int = 0
    journals: int = 0
    keywords: int = 0
    researchers: int = 0
    collaborations: int = 0

    def merge(self, other: "IngestStats") -> "IngestStats":
        for name in self.__dataclass_fields__:
            setattr(self, name, getattr(self, name) + getattr(other, name))
        return self


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def title_keywords(title: Optional[str], min_length: Optional[int] = None) -> List[str]:
    """
    Cheap keyword extraction from a title: lowercase, drop punctuation and
    stop words, keep words of at least `min_length` characters. Order of first
    appearance is preserved and duplicates are dropped.
    """
    if not title:
        return []
    min_length = settings.KEYWORD_MIN_LENGTH if min_length is None else min_length

    words = _NON_WORD.sub("", title.lower()).split()
    seen: dict = {}
    for word in words:
        if len(word) >= min_length and word not in STOP_WORDS:
            seen.setdefault(word, None)
    return list(seen)


def _author_name(author: Union[AuthorName, str]) -> str:
    if isinstance(author, AuthorName):
        return author.display_name()
    return author.strip() or "Unknown Author"


def _record_keywords(record: PaperRecord, min_length: Optional[int]) -> List[str]:
    if record.keywords is None:
        return title_keywords(record.title, min_length)

    seen: dict = {}
    for kw in record.keywords:
        term = kw.strip().lower()
        if term:
            seen.setdefault(term, None)
    return list(seen)


def _paper_attributes(record: PaperRecord, known: bool) -> Dict[str, Any]:
    """
    Attributes written for a paper. A paper already in the store only
    receives the fields this record actually carries, so a partial record
    never blanks out a known title, year or URL.
    """
    supplied: Dict[str, Any] = {
        "doi": record.doi,
        "title": record.title,
        "type": record.type if record.type != "unknown" else None,
        "published": record.published,
        "url": record.url,
    }
    supplied = {k: v for k, v in supplied.items() if v is not None}
    if known:
        return supplied

    attrs: Dict[str, Any] = {
        "doi": record.doi,
        "title": "Untitled",
        "type": "unknown",
        "published": None,
        "url": record.doi_url,
    }
    attrs.update(supplied)
    return attrs


# -----------------------------------------------------------------------------
# Ingestion
# -----------------------------------------------------------------------------

def ingest_paper(
    store: GraphStore,
    record: PaperRecord,
    *,
    keyword_min_length: Optional[int] = None,
) -> IngestStats:
    """
    Upsert one paper with its journal, authors and keywords.

    Re-ingesting the same DOI refreshes the attributes the new record
    supplies, keeps the rest, and never duplicates nodes or edges.
    """
    stats = IngestStats()
    if not record.doi:
        logger.warning("Skipping record without DOI (title=%r)", record.title)
        stats.skipped += 1
        return stats

    with store.locked():
        known = store.find(NodeLabel.PAPER, record.doi) is not None
        paper = store.upsert_entity(
            NodeLabel.PAPER,
            record.doi,
            _paper_attributes(record, known),
            merge=True,
        )
        stats.papers += 1

        if record.journal:
            journal = store.upsert_entity(NodeLabel.JOURNAL, record.journal, {"name": record.journal})
            if store.connect(paper, journal, EdgeType.PUBLISHED_IN) is ConnectOutcome.CREATED:
                stats.journals += 1

        for position, author in enumerate(record.authors):
            name = _author_name(author)
            handle = store.upsert_entity(
                NodeLabel.AUTHOR,
                name,
                {"name": name, "id": str(uuid.uuid4())},
            )
            if store.connect(handle, paper, EdgeType.WROTE, order=position) is ConnectOutcome.CREATED:
                stats.authors += 1

        for term in _record_keywords(record, keyword_min_length):
            keyword = store.upsert_entity(NodeLabel.KEYWORD, term, {"term": term})
            if store.connect(paper, keyword, EdgeType.HAS_KEYWORD) is ConnectOutcome.CREATED:
                stats.keywords += 1

    return stats


def ingest_researchers(
    store: GraphStore,
    researchers: Iterable[ResearcherRecord],
    collaborations: Iterable[CollaborationRecord] = (),
) -> IngestStats:
    """
    Upsert researchers, then add COLLABORATED edges weighted by joint papers.

    Collaborations must only name researchers that exist (in this batch or
    already in the store); otherwise UnknownEntity is raised.
    """
    stats = IngestStats()
    with store.locked():
        for researcher in researchers:
            store.upsert_entity(
                NodeLabel.RESEARCHER,
                researcher.name,
                {"name": researcher.name, "speciality": researcher.speciality},
            )
            stats.researchers += 1

        for collab in collaborations:
            store.connect_keys(
                (NodeLabel.RESEARCHER, collab.researcher1),
                (NodeLabel.RESEARCHER, collab.researcher2),
                EdgeType.COLLABORATED,
                collab.papers,
            )
            stats.collaborations += 1

    return stats


def ingest_bundle(
    store: GraphStore,
    bundle: RecordBundle,
    *,
    keyword_min_length: Optional[int] = None,
) -> IngestStats:
    stats = IngestStats()
    for record in bundle.papers:
        stats.merge(ingest_paper(store, record, keyword_min_length=keyword_min_length))
    stats.merge(ingest_researchers(store, bundle.researchers, bundle.collaborations))

    logger.info(
        "Ingested %d papers (%d skipped), %d researchers, %d collaborations",
        stats.papers,
        stats.skipped,
        stats.researchers,
        stats.collaborations,
    )
    return stats


def load_bundle(path: Union[str, Path]) -> RecordBundle:
    """
    Read a local JSON record bundle.
    """
    p = Path(path)
    try:
        return RecordBundle.model_validate_json(p.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise RecordError(f"Record file not found: {p}", context={"path": str(p)}) from None
    except ValidationError as exc:
        raise RecordError(
            f"Invalid record bundle in {p}: {exc.error_count()} error(s)",
            context={"path": str(p), "errors": exc.errors()},
        ) from exc
