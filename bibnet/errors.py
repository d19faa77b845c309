"""Error hierarchy for bibnet."""

from __future__ import annotations

from typing import Any, Mapping, Optional


class BibnetError(Exception):
    """Base exception for bibnet failures."""

    def __init__(
        self,
        message: str,
        *,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = dict(context) if context else {}

    def __str__(self) -> str:
        return self.message

    def log_message(self) -> str:
        if not self.context:
            return str(self)
        return f"{self}: {self.context}"


class DuplicateKeyConflict(BibnetError):
    """A key was upserted under a label incompatible with the one it already has."""


class UnknownEntity(BibnetError, KeyError):
    """An edge or lookup referenced an entity that was never upserted."""


class InvalidProjection(BibnetError):
    """A projection matched no nodes or no relationship types."""


class NonConvergence(BibnetError):
    """An iterative algorithm hit its iteration cap before converging."""


class InferenceRuleError(BibnetError):
    """An inference rule failed part-way; the rule can be re-run by name."""

    def __init__(self, rule: str, message: str, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.rule = rule


class RecordError(BibnetError):
    """An ingestion record bundle could not be read or validated."""


__all__ = [
    "BibnetError",
    "DuplicateKeyConflict",
    "UnknownEntity",
    "InvalidProjection",
    "NonConvergence",
    "InferenceRuleError",
    "RecordError",
]
