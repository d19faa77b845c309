# bibnet/ingest/__init__.py

"""
Ingestion of already-parsed bibliographic records into a GraphStore.
"""

from .pipeline import (
    IngestStats,
    ingest_bundle,
    ingest_paper,
    ingest_researchers,
    load_bundle,
    title_keywords,
)
from .records import AuthorName, CollaborationRecord, PaperRecord, RecordBundle, ResearcherRecord

__all__ = [
    "IngestStats",
    "ingest_bundle",
    "ingest_paper",
    "ingest_researchers",
    "load_bundle",
    "title_keywords",
    "AuthorName",
    "CollaborationRecord",
    "PaperRecord",
    "RecordBundle",
    "ResearcherRecord",
]
