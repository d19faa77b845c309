# tests/test_projection.py

import dataclasses
import logging
import threading

import pytest

from bibnet.errors import InvalidProjection
from bibnet.graph.projection import ProjectedGraph, project, require_nonempty
from bibnet.graph.schema import EdgeType, NodeLabel, Orientation
from bibnet.graph.store import GraphStore


@pytest.fixture
def researcher_store():
    store = GraphStore()
    names = ["María", "Carlos", "Ana", "Luis"]
    handles = [
        store.upsert_entity(NodeLabel.RESEARCHER, n, {"name": n}) for n in names
    ]
    # unrelated label mixed in between
    store.upsert_entity(NodeLabel.PAPER, "10.1000/x")
    store.connect(handles[0], handles[1], EdgeType.COLLABORATED, 5)
    store.connect(handles[1], handles[2], EdgeType.COLLABORATED, 2)
    return store, handles


def test_index_follows_store_insertion_order(researcher_store):
    store, handles = researcher_store

    graph = project(store, NodeLabel.RESEARCHER, EdgeType.COLLABORATED)

    assert graph.node_handles == tuple(handles)
    assert graph.node_keys == ("María", "Carlos", "Ana", "Luis")
    assert graph.node_count == 4
    assert graph.index_of(handles[2]) == 2


def test_directed_projection_unweighted(researcher_store):
    store, _ = researcher_store

    graph = project(store, "Researcher", ["COLLABORATED"], "directed")

    assert graph.adjacency == (((1, 1.0),), ((2, 1.0),), (), ())
    assert graph.relationship_count == 2
    assert not graph.is_undirected


def test_undirected_projection_reads_weight_key(researcher_store):
    store, _ = researcher_store

    graph = project(
        store,
        NodeLabel.RESEARCHER,
        EdgeType.COLLABORATED,
        Orientation.UNDIRECTED,
        weight_key="weight",
    )

    assert graph.neighbors(0) == ((1, 5.0),)
    assert graph.neighbors(1) == ((0, 5.0), (2, 2.0))
    assert graph.neighbors(2) == ((1, 2.0),)
    assert graph.neighbors(3) == ()
    assert graph.relationship_count == 2
    assert graph.weighted_degree(1) == 7.0


def test_missing_weight_property_counts_as_one(researcher_store):
    store, _ = researcher_store

    graph = project(store, NodeLabel.RESEARCHER, EdgeType.COLLABORATED, weight_key="strength")

    assert graph.neighbors(0) == ((1, 1.0),)


def test_multiple_types_are_summed():
    store = GraphStore()
    p1 = store.upsert_entity(NodeLabel.PAPER, "p1")
    p2 = store.upsert_entity(NodeLabel.PAPER, "p2")
    store.connect(p1, p2, EdgeType.SHARES_AUTHOR, 1)
    store.connect(p1, p2, EdgeType.RELATED_TO, 2)

    weighted = project(
        store,
        NodeLabel.PAPER,
        [EdgeType.SHARES_AUTHOR, EdgeType.RELATED_TO],
        weight_key="weight",
    )
    unweighted = project(store, NodeLabel.PAPER, [EdgeType.SHARES_AUTHOR, EdgeType.RELATED_TO])

    assert weighted.neighbors(0) == ((1, 3.0),)
    assert unweighted.neighbors(0) == ((1, 2.0),)


def test_undirected_collapse_sums_both_directions():
    store = GraphStore()
    p1 = store.upsert_entity(NodeLabel.PAPER, "p1")
    p2 = store.upsert_entity(NodeLabel.PAPER, "p2")
    store.connect(p1, p2, EdgeType.SHARES_AUTHOR, 2)
    store.connect(p2, p1, EdgeType.SHARES_AUTHOR, 2)

    graph = project(store, NodeLabel.PAPER, EdgeType.SHARES_AUTHOR, "undirected", "weight")

    assert graph.neighbors(0) == ((1, 4.0),)
    assert graph.neighbors(1) == ((0, 4.0),)
    assert graph.relationship_count == 1


def test_edges_to_other_labels_are_dropped():
    store = GraphStore()
    author = store.upsert_entity(NodeLabel.AUTHOR, "Ana")
    paper = store.upsert_entity(NodeLabel.PAPER, "p1")
    store.connect(author, paper, EdgeType.WROTE)

    graph = project(store, NodeLabel.PAPER, EdgeType.WROTE)

    assert graph.node_count == 1
    assert graph.adjacency == ((),)


@pytest.mark.parametrize(
    "label, types",
    [
        ("Planet", [EdgeType.COLLABORATED]),
        (NodeLabel.JOURNAL, [EdgeType.COLLABORATED]),
        (NodeLabel.RESEARCHER, [EdgeType.POTENTIALLY_CITES]),
        (NodeLabel.RESEARCHER, ["TELEPORTED"]),
    ],
)
def test_unknown_or_absent_inputs_give_empty_graph(researcher_store, label, types):
    store, _ = researcher_store

    graph = project(store, label, types)

    assert graph.node_count == 0
    assert graph.adjacency == ()
    with pytest.raises(InvalidProjection):
        require_nonempty(graph)


def test_projection_is_a_snapshot(researcher_store):
    store, handles = researcher_store
    graph = project(store, NodeLabel.RESEARCHER, EdgeType.COLLABORATED)

    store.connect(handles[2], handles[3], EdgeType.COLLABORATED)
    store.upsert_entity(NodeLabel.RESEARCHER, "Elena")

    assert graph.node_count == 4
    assert graph.neighbors(2) == ()
    with pytest.raises(dataclasses.FrozenInstanceError):
        graph.node_keys = ()


def test_repeated_projection_is_identical(researcher_store):
    store, _ = researcher_store

    first = project(store, NodeLabel.RESEARCHER, EdgeType.COLLABORATED, "undirected", "weight")
    second = project(store, NodeLabel.RESEARCHER, EdgeType.COLLABORATED, "undirected", "weight")

    assert first == second


def test_from_edges_and_networkx_export():
    graph = ProjectedGraph.from_edges(
        3, [(0, 1, 2.0), (1, 2, 1.0)], "undirected", node_keys=["a", "b", "c"]
    )

    G = graph.to_networkx()

    assert G.number_of_nodes() == 3
    assert G.number_of_edges() == 2
    assert G[0][1]["weight"] == 2.0
    assert G.nodes[2]["key"] == "c"
    assert graph.incoming()[1] == ((0, 2.0), (2, 1.0))


def test_from_edges_rejects_out_of_range():
    with pytest.raises(ValueError):
        ProjectedGraph.from_edges(2, [(0, 2, 1.0)])


def test_non_numeric_weight_property_counts_as_one(researcher_store, caplog):
    store, _ = researcher_store

    with caplog.at_level(logging.WARNING, logger="bibnet.graph.projection"):
        graph = project(store, NodeLabel.RESEARCHER, EdgeType.COLLABORATED, weight_key="type")

    assert graph.neighbors(0) == ((1, 1.0),)
    assert graph.neighbors(1) == ((2, 1.0),)
    assert "not numeric" in caplog.text


def test_projection_waits_for_a_writer_holding_the_lock(researcher_store):
    store, handles = researcher_store
    held = threading.Event()
    release = threading.Event()
    result = {}

    def writer():
        with store.locked():
            store.connect(handles[2], handles[3], EdgeType.COLLABORATED, 4)
            held.set()
            release.wait(5)
            store.connect(handles[3], handles[0], EdgeType.COLLABORATED, 1)

    def reader():
        result["graph"] = project(store, NodeLabel.RESEARCHER, EdgeType.COLLABORATED, weight_key="weight")

    w = threading.Thread(target=writer)
    w.start()
    assert held.wait(5)

    r = threading.Thread(target=reader)
    r.start()
    r.join(0.2)
    # the writer still holds the store, so the projection cannot have run
    assert r.is_alive()

    release.set()
    w.join(5)
    r.join(5)

    graph = result["graph"]
    # both writes from the locked section are visible, never only one
    assert graph.neighbors(2) == ((3, 4.0),)
    assert graph.neighbors(3) == ((0, 1.0),)
