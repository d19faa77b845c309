# bibnet/api/query.py

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from bibnet.analytics.models import LouvainResult, PageRankResult, SimilarityResult
from bibnet.graph.inference import published_year
from bibnet.graph.projection import ProjectedGraph
from bibnet.graph.schema import Direction, EdgeType, NodeLabel
from bibnet.graph.store import GraphStore


# ---------------------------------------------------------------------------
# View models handed to downstream formatters / reports
# ---------------------------------------------------------------------------


class PaperView(BaseModel):
    """Everything a citation formatter needs about one paper."""

    doi: str
    title: Optional[str] = None
    authors: List[str] = Field(default_factory=list, description="Byline order.")
    journal: Optional[str] = None
    year: Optional[int] = None
    url: Optional[str] = None


class CountView(BaseModel):
    key: str
    papers: int


class KnowledgePath(BaseModel):
    """A chain of potential citations, newest paper first."""

    dois: List[str]
    titles: List[str]

    @property
    def length(self) -> int:
        return max(len(self.dois) - 1, 0)


class RankedEntity(BaseModel):
    key: str
    score: float
    attributes: Dict[str, Any] = Field(default_factory=dict)


class CommunityView(BaseModel):
    community_id: int
    members: List[str]
    attributes: List[Dict[str, Any]] = Field(default_factory=list)


class SimilarPairView(BaseModel):
    key_a: str
    key_b: str
    similarity: float = Field(..., gt=0.0, le=1.0)


# ---------------------------------------------------------------------------
# Papers
# ---------------------------------------------------------------------------


def paper_view(store: GraphStore, handle: int) -> PaperView:
    attrs = store.attributes_of(handle)

    wrote = []
    for author, _ in store.edges_of(handle, EdgeType.WROTE, Direction.INCOMING):
        order = store.edge_attribute(author, handle, EdgeType.WROTE, "order")
        wrote.append((order if order is not None else float("inf"), author))
    authors = [store.key_of(a) for _, a in sorted(wrote, key=lambda item: (item[0], item[1]))]

    journals = store.edges_of(handle, EdgeType.PUBLISHED_IN, Direction.OUTGOING)
    journal = store.key_of(journals[0][0]) if journals else None

    return PaperView(
        doi=store.key_of(handle),
        title=attrs.get("title"),
        authors=authors,
        journal=journal,
        year=published_year(attrs),
        url=attrs.get("url"),
    )


def paper_views(store: GraphStore) -> List[PaperView]:
    """All papers, most recent first; papers without a year come last."""
    with store.locked():
        views = [paper_view(store, h) for h in store.nodes(NodeLabel.PAPER)]
    return sorted(views, key=lambda v: (v.year is None, -(v.year or 0)))


# ---------------------------------------------------------------------------
# Network summaries
# ---------------------------------------------------------------------------


def _count_by_hub(
    store: GraphStore,
    label: NodeLabel,
    edge_type: EdgeType,
    direction: Direction,
    limit: int,
) -> List[CountView]:
    counts: Counter = Counter()
    with store.locked():
        for handle in store.nodes(label):
            counts[store.key_of(handle)] = len(store.edges_of(handle, edge_type, direction))
    ranked = sorted(
        ((key, n) for key, n in counts.items() if n > 0),
        key=lambda item: (-item[1], item[0]),
    )
    return [CountView(key=key, papers=n) for key, n in ranked[:limit]]


def top_authors(store: GraphStore, limit: int = 5) -> List[CountView]:
    """Most prolific authors by number of WROTE edges."""
    return _count_by_hub(store, NodeLabel.AUTHOR, EdgeType.WROTE, Direction.OUTGOING, limit)


def top_keywords(store: GraphStore, limit: int = 10) -> List[CountView]:
    """Most common keywords by number of tagged papers."""
    return _count_by_hub(store, NodeLabel.KEYWORD, EdgeType.HAS_KEYWORD, Direction.INCOMING, limit)


def knowledge_paths(
    store: GraphStore,
    start: Optional[int] = None,
    max_depth: int = 3,
    limit: int = 3,
) -> List[KnowledgePath]:
    """
    Longest chains of POTENTIALLY_CITES edges (1..max_depth hops) starting at
    `start`, or at the most recently published paper when not given.
    """
    with store.locked():
        if start is None:
            dated = [
                (published_year(store.attributes_of(h)), h) for h in store.nodes(NodeLabel.PAPER)
            ]
            dated = [(y, h) for y, h in dated if y is not None]
            if not dated:
                return []
            start = max(dated, key=lambda item: (item[0], -item[1]))[1]

        paths: List[List[int]] = []

        def walk(path: List[int]) -> None:
            if len(path) > 1:
                paths.append(list(path))
            if len(path) > max_depth:
                return
            for nxt, _ in store.edges_of(path[-1], EdgeType.POTENTIALLY_CITES, Direction.OUTGOING):
                if nxt not in path:
                    path.append(nxt)
                    walk(path)
                    path.pop()

        walk([start])

        paths.sort(key=len, reverse=True)
        return [
            KnowledgePath(
                dois=[store.key_of(h) for h in p],
                titles=[store.attributes_of(h).get("title") or store.key_of(h) for h in p],
            )
            for p in paths[:limit]
        ]


# ---------------------------------------------------------------------------
# Analytics result resolution
# ---------------------------------------------------------------------------


def ranked_entities(
    store: GraphStore,
    graph: ProjectedGraph,
    result: PageRankResult,
    limit: Optional[int] = None,
) -> List[RankedEntity]:
    ranked = result.ranked()
    if limit is not None:
        ranked = ranked[:limit]
    return [
        RankedEntity(
            key=graph.key_of(i),
            score=score,
            attributes=store.attributes_of(graph.node_handles[i]),
        )
        for i, score in ranked
    ]


def community_members(
    store: GraphStore,
    graph: ProjectedGraph,
    result: LouvainResult,
) -> List[CommunityView]:
    views = []
    for community_id, indices in sorted(result.members().items()):
        views.append(
            CommunityView(
                community_id=community_id,
                members=[graph.key_of(i) for i in indices],
                attributes=[store.attributes_of(graph.node_handles[i]) for i in indices],
            )
        )
    return views


def similar_pairs(graph: ProjectedGraph, result: SimilarityResult) -> List[SimilarPairView]:
    return [
        SimilarPairView(
            key_a=graph.key_of(p.index_a),
            key_b=graph.key_of(p.index_b),
            similarity=p.score,
        )
        for p in result.pairs
    ]
