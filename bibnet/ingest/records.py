# bibnet/ingest/records.py

from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator


class AuthorName(BaseModel):
    """
    A structured author name as found in bibliographic metadata.
    """
    given: Optional[str] = None
    family: Optional[str] = None

    def display_name(self, unknown: str = "Unknown Author") -> str:
        given = (self.given or "").strip()
        family = (self.family or "").strip()
        if given and family:
            return f"{given} {family}"
        return family or unknown


class PaperRecord(BaseModel):
    """
    One already-parsed bibliographic record.

    Records without a DOI are accepted by the model but skipped on ingestion,
    since the DOI is the paper's natural key.
    """
    doi: Optional[str] = Field(None, description="DOI, used as the Paper key.")
    title: Optional[str] = None
    type: str = Field("unknown", description="Work type, e.g. 'journal-article'.")
    published: Optional[int] = Field(None, description="Publication year, if known.")
    url: Optional[str] = None
    journal: Optional[str] = Field(None, description="Container / journal title.")
    authors: List[Union[AuthorName, str]] = Field(
        default_factory=list,
        description="Authors in byline order, structured or as plain names.",
    )
    keywords: Optional[List[str]] = Field(
        None,
        description="Explicit keywords. If None, keywords are derived from the title.",
    )

    @field_validator("doi", "journal", "title")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @property
    def doi_url(self) -> Optional[str]:
        if self.url:
            return self.url
        return f"https://doi.org/{self.doi}" if self.doi else None


class ResearcherRecord(BaseModel):
    name: str
    speciality: Optional[str] = None


class CollaborationRecord(BaseModel):
    """Joint publication count between two researchers."""
    researcher1: str
    researcher2: str
    papers: int = Field(1, ge=0)


class RecordBundle(BaseModel):
    """
    Everything a single build consumes: bibliographic records plus an
    optional researcher collaboration network.
    """
    papers: List[PaperRecord] = Field(default_factory=list)
    researchers: List[ResearcherRecord] = Field(default_factory=list)
    collaborations: List[CollaborationRecord] = Field(default_factory=list)
