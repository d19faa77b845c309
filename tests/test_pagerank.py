# tests/test_pagerank.py

import math
from concurrent.futures import ThreadPoolExecutor

import networkx as nx
import numpy as np
import pytest

from bibnet.analytics import PageRankConfig, louvain, node_similarity, pagerank
from bibnet.errors import NonConvergence
from bibnet.graph.projection import ProjectedGraph


def _triangle_plus_isolated():
    return ProjectedGraph.from_edges(
        4,
        [(0, 1, 1.0), (1, 2, 1.0), (2, 0, 1.0)],
        "undirected",
        node_keys=["A", "B", "C", "D"],
    )


def _directed_sample():
    # node 4 is dangling, node 3 has no incoming edges
    return ProjectedGraph.from_edges(
        5,
        [(0, 1, 1.0), (0, 2, 3.0), (1, 2, 1.0), (2, 0, 1.0), (3, 2, 1.0), (1, 4, 2.0)],
        "directed",
    )


def test_scores_sum_to_one_with_dangling_nodes():
    graph = ProjectedGraph.from_edges(4, [(0, 1, 1.0), (1, 2, 1.0)], "directed")

    result = pagerank(graph, PageRankConfig(max_iterations=100, tolerance=1e-10))

    assert math.isclose(sum(result.scores.values()), 1.0, rel_tol=1e-9)
    assert all(s > 0 for s in result.scores.values())
    assert result.converged


def test_triangle_members_outrank_isolated_node():
    result = pagerank(_triangle_plus_isolated(), PageRankConfig(max_iterations=100))

    a, b, c, d = (result.scores[i] for i in range(4))
    assert a == pytest.approx(b) == pytest.approx(c)
    assert d < a
    ranked = [i for i, _ in result.ranked()]
    assert set(ranked[:3]) == {0, 1, 2}
    assert ranked[3] == 3


def test_matches_networkx_reference():
    graph = _directed_sample()

    result = pagerank(graph, PageRankConfig(max_iterations=1000, tolerance=1e-12))
    # stationary distribution of the networkx Google matrix
    M = np.asarray(
        nx.google_matrix(graph.to_networkx(), alpha=0.85, nodelist=list(range(graph.node_count)), weight="weight")
    )
    values, vectors = np.linalg.eig(M.T)
    expected = np.abs(vectors[:, np.argmax(values.real)].real)
    expected = expected / expected.sum()

    for i, score in result.scores.items():
        assert score == pytest.approx(expected[i], abs=1e-6)


def test_unweighted_mode_ignores_weights():
    weighted_input = _directed_sample()
    flat = ProjectedGraph.from_edges(
        5,
        [(0, 1, 1.0), (0, 2, 1.0), (1, 2, 1.0), (2, 0, 1.0), (3, 2, 1.0), (1, 4, 1.0)],
        "directed",
    )
    config = PageRankConfig(max_iterations=200, tolerance=1e-10, weighted=False)

    assert pagerank(weighted_input, config).scores == pytest.approx(pagerank(flat, config).scores)


def test_damping_factor_changes_scores():
    graph = _directed_sample()

    low = pagerank(graph, PageRankConfig(damping_factor=0.5, max_iterations=200))
    high = pagerank(graph, PageRankConfig(damping_factor=0.95, max_iterations=200))

    assert low.scores[2] != pytest.approx(high.scores[2])


def test_iteration_cap_reports_non_convergence():
    graph = _directed_sample()

    result = pagerank(graph, PageRankConfig(max_iterations=1, tolerance=0.0))

    assert result.converged is False
    assert result.iterations == 1
    assert math.isclose(sum(result.scores.values()), 1.0, rel_tol=1e-9)
    with pytest.raises(NonConvergence):
        result.raise_for_convergence()


def test_runs_are_deterministic():
    graph = _directed_sample()

    assert pagerank(graph).scores == pagerank(graph).scores


def test_empty_graph():
    result = pagerank(ProjectedGraph.empty())

    assert result.scores == {}
    assert result.converged


def test_config_validation():
    with pytest.raises(ValueError):
        PageRankConfig(damping_factor=1.0)
    with pytest.raises(ValueError):
        PageRankConfig(max_iterations=0)


def test_algorithms_share_a_projection_across_threads():
    graph = _directed_sample()
    expected = (
        pagerank(graph).scores,
        louvain(graph).communities,
        node_similarity(graph).as_tuples(),
    )

    with ThreadPoolExecutor(max_workers=3) as pool:
        futures = [
            pool.submit(lambda: pagerank(graph).scores),
            pool.submit(lambda: louvain(graph).communities),
            pool.submit(lambda: node_similarity(graph).as_tuples()),
        ]
        got = tuple(f.result() for f in futures)

    assert got == expected
