# tests/test_cli.py

import json

import pytest
from typer.testing import CliRunner

from bibnet.cli.main import app as cli_app
from bibnet.graph.io import load_store
from bibnet.graph.schema import EdgeType, NodeLabel

runner = CliRunner()

RESEARCHERS = [
    ("María González", "Inteligencia Artificial"),
    ("Carlos Martínez", "Redes Neuronales"),
    ("Ana López", "Procesamiento de Lenguaje Natural"),
    ("Jorge Rodríguez", "Visión por Computadora"),
    ("Laura Sánchez", "Inteligencia Artificial"),
    ("Roberto Fernández", "Redes Neuronales"),
    ("Elena Torres", "Procesamiento de Lenguaje Natural"),
    ("Miguel Ramírez", "Visión por Computadora"),
]

COLLABORATIONS = [
    ("María González", "Carlos Martínez", 5),
    ("María González", "Ana López", 3),
    ("Carlos Martínez", "Jorge Rodríguez", 2),
    ("Ana López", "Laura Sánchez", 4),
    ("Laura Sánchez", "Roberto Fernández", 6),
    ("Roberto Fernández", "Elena Torres", 3),
    ("Elena Torres", "Miguel Ramírez", 2),
    ("Miguel Ramírez", "Jorge Rodríguez", 4),
    ("María González", "Laura Sánchez", 1),
]


@pytest.fixture
def records_file(tmp_path):
    bundle = {
        "papers": [
            {
                "doi": "10.1000/p1",
                "title": "Graph Mining Basics",
                "published": 2012,
                "journal": "Data Journal",
                "authors": [{"given": "Ana", "family": "López"}],
            },
            {
                "doi": "10.1000/p2",
                "title": "Neural Graph Mining",
                "published": 2021,
                "authors": [{"given": "Ana", "family": "López"}, "Juan Pérez"],
            },
        ],
        "researchers": [{"name": n, "speciality": s} for n, s in RESEARCHERS],
        "collaborations": [
            {"researcher1": a, "researcher2": b, "papers": n} for a, b, n in COLLABORATIONS
        ],
    }
    path = tmp_path / "records.json"
    path.write_text(json.dumps(bundle), encoding="utf-8")
    return path


@pytest.fixture
def built_graph(tmp_path, records_file):
    graph_file = tmp_path / "graph" / "test.gpickle"
    result = runner.invoke(cli_app, ["build", "run", str(records_file), "--graph-file", str(graph_file)])
    assert result.exit_code == 0, result.output
    return graph_file


def test_build_run_saves_store(built_graph):
    store = load_store(built_graph)

    assert store.node_count(NodeLabel.PAPER) == 2
    assert store.node_count(NodeLabel.RESEARCHER) == 8
    p1 = store.get(NodeLabel.PAPER, "10.1000/p1")
    p2 = store.get(NodeLabel.PAPER, "10.1000/p2")
    assert store.edge(p2, p1, EdgeType.POTENTIALLY_CITES) is not None
    assert store.edge(p1, p2, EdgeType.SHARES_AUTHOR).weight == 1


def test_build_skip_inference_then_infer(tmp_path, records_file):
    graph_file = tmp_path / "two_step.gpickle"

    result = runner.invoke(
        cli_app,
        ["build", "run", str(records_file), "-g", str(graph_file), "--skip-inference"],
    )
    assert result.exit_code == 0, result.output
    assert load_store(graph_file).edge_count(EdgeType.SHARES_AUTHOR) == 0

    result = runner.invoke(
        cli_app, ["build", "infer", "--rule", "shared_authors", "-g", str(graph_file)]
    )
    assert result.exit_code == 0, result.output
    assert "shared_authors" in result.output
    assert load_store(graph_file).edge_count(EdgeType.SHARES_AUTHOR) == 2


def test_build_rejects_unknown_rule(tmp_path, records_file):
    result = runner.invoke(
        cli_app,
        ["build", "run", str(records_file), "-g", str(tmp_path / "g.gpickle"), "--rule", "telepathy"],
    )

    assert result.exit_code == 1
    assert "Unknown rule" in result.output


def test_build_reports_bad_records(tmp_path):
    result = runner.invoke(
        cli_app, ["build", "run", str(tmp_path / "missing.json"), "-g", str(tmp_path / "g.gpickle")]
    )

    assert result.exit_code == 1
    assert "Error" in result.output


def test_analyze_pagerank(built_graph):
    result = runner.invoke(cli_app, ["analyze", "pagerank", "-g", str(built_graph), "-n", "3"])

    assert result.exit_code == 0, result.output
    assert "Projected" in result.output
    assert "PageRank" in result.output


def test_analyze_louvain_shows_attribute(built_graph):
    result = runner.invoke(
        cli_app, ["analyze", "louvain", "-g", str(built_graph), "--show", "speciality"]
    )

    assert result.exit_code == 0, result.output
    assert "communities" in result.output
    assert "Community 0" in result.output
    assert "María González" in result.output


def test_analyze_similarity_on_papers(built_graph):
    result = runner.invoke(
        cli_app,
        [
            "analyze", "similarity",
            "-g", str(built_graph),
            "--label", "Author",
            "--rel", "WROTE",
            "--orientation", "directed",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "similarity" in result.output.lower()


def test_analyze_empty_projection_is_not_an_error(tmp_path, records_file):
    graph_file = tmp_path / "raw.gpickle"
    runner.invoke(cli_app, ["build", "run", str(records_file), "-g", str(graph_file), "--skip-inference"])

    # no inference yet, so the store holds no POTENTIALLY_CITES edges
    result = runner.invoke(
        cli_app,
        ["analyze", "pagerank", "-g", str(graph_file), "--label", "Paper", "--rel", "POTENTIALLY_CITES"],
    )

    assert result.exit_code == 0
    assert "Empty projection" in result.output


def test_query_commands(built_graph):
    authors = runner.invoke(cli_app, ["query", "authors", "-g", str(built_graph)])
    keywords = runner.invoke(cli_app, ["query", "keywords", "-g", str(built_graph)])
    paths = runner.invoke(cli_app, ["query", "paths", "-g", str(built_graph)])

    assert authors.exit_code == 0, authors.output
    assert "Ana López" in authors.output
    assert keywords.exit_code == 0, keywords.output
    assert "graph" in keywords.output
    assert paths.exit_code == 0, paths.output
    assert "Neural Graph Mining -> Graph Mining Basics" in paths.output


def test_query_paths_unknown_doi(built_graph):
    result = runner.invoke(
        cli_app, ["query", "paths", "-g", str(built_graph), "--from", "10.1000/nope"]
    )

    assert result.exit_code == 1
    assert "Error" in result.output


def test_missing_graph_file_exits_with_error(tmp_path):
    result = runner.invoke(cli_app, ["query", "papers", "-g", str(tmp_path / "nope.gpickle")])

    assert result.exit_code == 1
    assert "Graph file not found" in result.output
