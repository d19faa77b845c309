# bibnet/analytics/similarity.py

from __future__ import annotations

from collections import defaultdict
from itertools import combinations
from typing import Dict, List, Mapping, Optional, Set, Tuple

from bibnet.analytics.models import SimilarityConfig, SimilarityPair, SimilarityResult
from bibnet.graph.projection import ProjectedGraph


def jaccard(a: Set[int], b: Set[int]) -> float:
    union = len(a | b)
    return len(a & b) / union if union else 0.0


def weighted_jaccard(a: Mapping[int, float], b: Mapping[int, float]) -> float:
    """
    Weighted Jaccard: treat each node as a vector over neighbor -> weight and
    compare sum of element-wise minima with sum of maxima.
    """
    shared_min_sum = 0.0
    union_max_sum = 0.0
    for k in set(a) | set(b):
        w_a = a.get(k, 0.0)
        w_b = b.get(k, 0.0)
        union_max_sum += max(w_a, w_b)
        shared_min_sum += min(w_a, w_b)
    return shared_min_sum / union_max_sum if union_max_sum > 0 else 0.0


def node_similarity(
    graph: ProjectedGraph,
    config: Optional[SimilarityConfig] = None,
) -> SimilarityResult:
    """
    Pairwise Jaccard similarity of neighbor sets.

    Neighbors are the outgoing adjacency (for undirected projections, all
    neighbors). Only pairs sharing at least one neighbor are scored; each
    unordered pair is reported once with the smaller index first. Pairs are
    sorted by descending score, then ascending (index_a, index_b), and cut to
    `top_k` when set.
    """
    config = config or SimilarityConfig()
    n = graph.node_count

    neighborhoods: List[Dict[int, float]] = [
        {j: w for j, w in graph.adjacency[i] if j != i} for i in range(n)
    ]

    # neighbor -> nodes pointing at it; every pair in a bucket shares that neighbor
    buckets: Dict[int, List[int]] = defaultdict(list)
    for i in range(n):
        if len(neighborhoods[i]) < config.degree_cutoff:
            continue
        for j in neighborhoods[i]:
            buckets[j].append(i)

    candidates: Set[Tuple[int, int]] = set()
    for members in buckets.values():
        candidates.update(combinations(sorted(members), 2))

    cutoff = config.similarity_cutoff
    pairs: List[SimilarityPair] = []
    for a, b in candidates:
        if config.weighted:
            score = weighted_jaccard(neighborhoods[a], neighborhoods[b])
        else:
            score = jaccard(set(neighborhoods[a]), set(neighborhoods[b]))
        if score > cutoff and score > 0.0:
            pairs.append(SimilarityPair(a, b, min(score, 1.0)))

    pairs.sort(key=lambda p: (-p.score, p.index_a, p.index_b))
    if config.top_k is not None:
        pairs = pairs[: config.top_k]

    return SimilarityResult(pairs=pairs)
