# bibnet/analytics/pagerank.py

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from bibnet.analytics.models import PageRankConfig, PageRankResult
from bibnet.graph.projection import ProjectedGraph

logger = logging.getLogger(__name__)


def pagerank(
    graph: ProjectedGraph,
    config: Optional[PageRankConfig] = None,
) -> PageRankResult:
    """
    Damped PageRank by power iteration over a projected graph.

    Every node starts at 1/n. Each iteration builds a fresh score vector from
    the previous one only. Mass held by dangling nodes (no outgoing weight)
    is spread evenly over all nodes, so scores always sum to 1.

    Undirected graphs use their mirrored adjacency, i.e. each edge passes
    mass both ways.
    """
    config = config or PageRankConfig()
    n = graph.node_count
    if n == 0:
        return PageRankResult(scores={}, iterations=0, converged=True, delta=0.0)

    sources = []
    targets = []
    weights = []
    for i, row in enumerate(graph.adjacency):
        for j, w in row:
            w = w if config.weighted else 1.0
            if w <= 0:
                continue
            sources.append(i)
            targets.append(j)
            weights.append(w)

    src = np.asarray(sources, dtype=np.int64)
    dst = np.asarray(targets, dtype=np.int64)
    w = np.asarray(weights, dtype=float)

    out_weight = np.zeros(n, dtype=float)
    np.add.at(out_weight, src, w)
    dangling = out_weight == 0.0
    share = w / out_weight[src]

    d = config.damping_factor
    base = (1.0 - d) / n
    scores = np.full(n, 1.0 / n, dtype=float)

    converged = False
    delta = float("inf")
    iterations = 0
    for iterations in range(1, config.max_iterations + 1):
        incoming = np.zeros(n, dtype=float)
        np.add.at(incoming, dst, scores[src] * share)
        dangling_mass = scores[dangling].sum()

        updated = base + d * (incoming + dangling_mass / n)
        delta = float(np.abs(updated - scores).sum())
        scores = updated

        if delta < config.tolerance:
            converged = True
            break

    if not converged:
        logger.warning(
            "PageRank did not converge within %d iterations (delta=%.3g > %.3g); "
            "scores are approximate",
            config.max_iterations,
            delta,
            config.tolerance,
        )

    return PageRankResult(
        scores={i: float(s) for i, s in enumerate(scores)},
        iterations=iterations,
        converged=converged,
        delta=delta,
    )
