# bibnet/analytics/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from bibnet.config.settings import Settings
from bibnet.errors import NonConvergence


# ---------------------------------------------------------------------------
# Configs
# ---------------------------------------------------------------------------


class PageRankConfig(BaseModel):
    """
    Power-iteration parameters. Iteration stops at `max_iterations` or as soon
    as the L1 change between two score vectors drops below `tolerance`.
    """
    damping_factor: float = Field(0.85, gt=0.0, lt=1.0)
    max_iterations: int = Field(20, ge=1)
    tolerance: float = Field(1e-6, ge=0.0)
    weighted: bool = Field(
        True,
        description="Split outgoing mass by edge weight instead of evenly.",
    )

    @classmethod
    def from_settings(cls, s: Settings, **overrides) -> "PageRankConfig":
        values = dict(
            damping_factor=s.PAGERANK_DAMPING,
            max_iterations=s.PAGERANK_MAX_ITERATIONS,
            tolerance=s.PAGERANK_TOLERANCE,
        )
        values.update(overrides)
        return cls(**values)


class LouvainConfig(BaseModel):
    max_levels: int = Field(10, ge=1, description="Maximum number of aggregation levels.")
    max_iterations: int = Field(
        10,
        ge=1,
        description="Maximum local-moving sweeps per level.",
    )
    resolution: float = Field(1.0, gt=0.0)

    @classmethod
    def from_settings(cls, s: Settings, **overrides) -> "LouvainConfig":
        values = dict(
            max_levels=s.LOUVAIN_MAX_LEVELS,
            max_iterations=s.LOUVAIN_MAX_ITERATIONS,
            resolution=s.LOUVAIN_RESOLUTION,
        )
        values.update(overrides)
        return cls(**values)


class SimilarityConfig(BaseModel):
    top_k: Optional[int] = Field(None, ge=1, description="Keep only the k best pairs.")
    similarity_cutoff: float = Field(0.0, ge=0.0, lt=1.0)
    degree_cutoff: int = Field(1, ge=1, description="Ignore nodes with fewer neighbors.")
    weighted: bool = Field(
        False,
        description="Use weighted Jaccard (sum of min / sum of max edge weights).",
    )

    @classmethod
    def from_settings(cls, s: Settings, **overrides) -> "SimilarityConfig":
        values = dict(
            top_k=s.SIMILARITY_TOP_K,
            similarity_cutoff=s.SIMILARITY_CUTOFF,
        )
        values.update(overrides)
        return cls(**values)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class PageRankResult:
    scores: Dict[int, float]
    iterations: int
    converged: bool
    delta: float

    def ranked(self) -> List[Tuple[int, float]]:
        """(index, score) pairs, best first; ties by ascending index."""
        return sorted(self.scores.items(), key=lambda item: (-item[1], item[0]))

    def raise_for_convergence(self) -> "PageRankResult":
        if not self.converged:
            raise NonConvergence(
                f"PageRank stopped after {self.iterations} iterations (delta={self.delta:.3g})",
                context={"iterations": self.iterations, "delta": self.delta},
            )
        return self


@dataclass
class LouvainResult:
    communities: Dict[int, int]
    modularity: float
    levels: int
    converged: bool
    level_modularities: List[float] = field(default_factory=list)

    @property
    def community_count(self) -> int:
        return len(set(self.communities.values()))

    def members(self) -> Dict[int, List[int]]:
        """community id -> sorted node indices."""
        grouped: Dict[int, List[int]] = {}
        for index in sorted(self.communities):
            grouped.setdefault(self.communities[index], []).append(index)
        return grouped

    def raise_for_convergence(self) -> "LouvainResult":
        if not self.converged:
            raise NonConvergence(
                f"Louvain hit its level/iteration cap after {self.levels} level(s)",
                context={"levels": self.levels},
            )
        return self


@dataclass(frozen=True)
class SimilarityPair:
    index_a: int
    index_b: int
    score: float


@dataclass
class SimilarityResult:
    pairs: List[SimilarityPair]

    def __len__(self) -> int:
        return len(self.pairs)

    def __iter__(self):
        return iter(self.pairs)

    def as_tuples(self) -> List[Tuple[int, int, float]]:
        return [(p.index_a, p.index_b, p.score) for p in self.pairs]
