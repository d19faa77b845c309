# bibnet/analytics/__init__.py

"""
Graph analytics over projected graphs: PageRank centrality, Louvain
communities and neighbor-overlap similarity. None of them mutates its input,
so several may run over the same projection at once.
"""

from .louvain import louvain, modularity
from .models import (
    LouvainConfig,
    LouvainResult,
    PageRankConfig,
    PageRankResult,
    SimilarityConfig,
    SimilarityPair,
    SimilarityResult,
)
from .pagerank import pagerank
from .similarity import node_similarity

__all__ = [
    "pagerank",
    "louvain",
    "modularity",
    "node_similarity",
    "PageRankConfig",
    "PageRankResult",
    "LouvainConfig",
    "LouvainResult",
    "SimilarityConfig",
    "SimilarityPair",
    "SimilarityResult",
]
