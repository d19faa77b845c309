# tests/test_graph_io.py

import os
import pickle

import pytest

from bibnet.graph.io import load_latest_store, load_store, save_store
from bibnet.graph.schema import EdgeType, NodeLabel
from bibnet.graph.store import GraphStore


def _store(title="Paper One"):
    store = GraphStore()
    paper = store.upsert_entity(NodeLabel.PAPER, "10.1000/p1", {"title": title, "published": 2021})
    author = store.upsert_entity(NodeLabel.AUTHOR, "Ana López")
    store.connect(author, paper, EdgeType.WROTE, order=0)
    return store


def test_save_and_load_roundtrip(tmp_path):
    store = _store()

    # no suffix given; .gpickle is appended
    saved_path = save_store(store, tmp_path / "bibnet")
    assert saved_path.exists()
    assert saved_path.suffix == ".gpickle"

    loaded = load_store(saved_path)

    paper = loaded.get(NodeLabel.PAPER, "10.1000/p1")
    author = loaded.get(NodeLabel.AUTHOR, "Ana López")
    assert loaded.attributes_of(paper) == {"title": "Paper One", "published": 2021}
    assert loaded.edge(author, paper, EdgeType.WROTE).order == 0
    assert loaded.node_count() == store.node_count()
    assert loaded.edge_count() == store.edge_count()


def test_save_creates_parent_directories(tmp_path):
    path = save_store(_store(), tmp_path / "nested" / "deeper" / "graph.gpickle")

    assert path.exists()


def test_save_without_overwrite_raises(tmp_path):
    path = save_store(_store(), tmp_path / "graph.gpickle")

    with pytest.raises(FileExistsError):
        save_store(_store(), path, overwrite=False)


def test_load_store_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_store(tmp_path / "does_not_exist.gpickle")


def test_load_store_rejects_other_objects(tmp_path):
    path = tmp_path / "not_a_store.gpickle"
    path.write_bytes(pickle.dumps({"nodes": []}))

    with pytest.raises(TypeError):
        load_store(path)


def test_load_latest_store_picks_newest(tmp_path):
    old = save_store(_store("Old"), tmp_path / "old.gpickle")
    new = save_store(_store("New"), tmp_path / "new.gpickle")
    os.utime(old, (1_000_000, 1_000_000))
    os.utime(new, (2_000_000, 2_000_000))

    latest = load_latest_store(tmp_path)

    paper = latest.get(NodeLabel.PAPER, "10.1000/p1")
    assert latest.attributes_of(paper)["title"] == "New"


def test_load_latest_store_empty_directory(tmp_path):
    assert load_latest_store(tmp_path) is None
    assert load_latest_store(tmp_path / "missing") is None
