# bibnet/graph/projection.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple, Type, TypeVar, Union

import networkx as nx

from bibnet.errors import InvalidProjection
from bibnet.graph.schema import EdgeType, NodeLabel, Orientation
from bibnet.graph.store import GraphStore

logger = logging.getLogger(__name__)

Adjacency = Tuple[Tuple[Tuple[int, float], ...], ...]

_E = TypeVar("_E", bound=Enum)


@dataclass(frozen=True)
class ProjectedGraph:
    """
    Homogeneous weighted graph snapshot used as algorithm input.

    Nodes are dense indices 0..n-1; `node_handles[i]` maps an index back to
    its store handle. `adjacency[i]` holds (neighbor index, weight) pairs
    sorted by neighbor index, with at most one entry per neighbor. For
    undirected projections the adjacency is symmetric.
    """
    node_handles: Tuple[int, ...]
    node_keys: Tuple[str, ...]
    adjacency: Adjacency
    orientation: Orientation = Orientation.DIRECTED
    node_label: Optional[NodeLabel] = None
    relationship_types: FrozenSet[EdgeType] = frozenset()

    @classmethod
    def empty(
        cls,
        orientation: Orientation = Orientation.DIRECTED,
        node_label: Optional[NodeLabel] = None,
    ) -> "ProjectedGraph":
        return cls((), (), (), orientation, node_label, frozenset())

    @classmethod
    def from_edges(
        cls,
        node_count: int,
        edges: Iterable[Tuple[int, int, float]],
        orientation: Union[Orientation, str] = Orientation.DIRECTED,
        node_keys: Optional[Iterable[str]] = None,
    ) -> "ProjectedGraph":
        """
        Build a graph directly from index-based edges.

        Handles are the indices themselves. Useful when the input does not
        come from a GraphStore.
        """
        orientation = Orientation(orientation)
        keys = tuple(node_keys) if node_keys is not None else tuple(str(i) for i in range(node_count))
        if len(keys) != node_count:
            raise ValueError("node_keys must have exactly node_count entries")

        rows: List[Dict[int, float]] = [{} for _ in range(node_count)]
        for a, b, w in edges:
            if not (0 <= a < node_count and 0 <= b < node_count):
                raise ValueError(f"Edge ({a}, {b}) is out of range for {node_count} nodes")
            _fold(rows, a, b, float(w), orientation)

        return cls(
            node_handles=tuple(range(node_count)),
            node_keys=keys,
            adjacency=_freeze(rows),
            orientation=orientation,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def node_count(self) -> int:
        return len(self.node_handles)

    @property
    def relationship_count(self) -> int:
        """Number of adjacency entries; each undirected pair counts once."""
        total = sum(len(row) for row in self.adjacency)
        if self.orientation is Orientation.UNDIRECTED:
            loops = sum(1 for i, row in enumerate(self.adjacency) for j, _ in row if i == j)
            return (total - loops) // 2 + loops
        return total

    @property
    def is_undirected(self) -> bool:
        return self.orientation is Orientation.UNDIRECTED

    def neighbors(self, index: int) -> Tuple[Tuple[int, float], ...]:
        return self.adjacency[index]

    def degree(self, index: int) -> int:
        return len(self.adjacency[index])

    def weighted_degree(self, index: int) -> float:
        return sum(w for _, w in self.adjacency[index])

    def index_of(self, handle: int) -> int:
        try:
            return self.node_handles.index(handle)
        except ValueError:
            raise KeyError(f"Handle {handle!r} is not part of this projection") from None

    def key_of(self, index: int) -> str:
        return self.node_keys[index]

    def incoming(self) -> Tuple[Tuple[Tuple[int, float], ...], ...]:
        """Reverse adjacency: for each index, the (source index, weight) pairs pointing at it."""
        rows: List[List[Tuple[int, float]]] = [[] for _ in range(self.node_count)]
        for source, row in enumerate(self.adjacency):
            for target, weight in row:
                rows[target].append((source, weight))
        return tuple(tuple(row) for row in rows)

    def to_networkx(self) -> Union[nx.Graph, nx.DiGraph]:
        """Export as a plain networkx graph keyed by index, weights under 'weight'."""
        G: Union[nx.Graph, nx.DiGraph] = nx.Graph() if self.is_undirected else nx.DiGraph()
        for i, key in enumerate(self.node_keys):
            G.add_node(i, key=key, handle=self.node_handles[i])
        for i, row in enumerate(self.adjacency):
            for j, weight in row:
                G.add_edge(i, j, weight=weight)
        return G


def _fold(
    rows: List[Dict[int, float]],
    a: int,
    b: int,
    weight: float,
    orientation: Orientation,
) -> None:
    rows[a][b] = rows[a].get(b, 0.0) + weight
    if orientation is Orientation.UNDIRECTED and a != b:
        rows[b][a] = rows[b].get(a, 0.0) + weight


def _edge_weight(raw: Any) -> Optional[float]:
    """Numeric edge weight, or None when the property is missing or not a number."""
    if raw is None:
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def _freeze(rows: List[Dict[int, float]]) -> Adjacency:
    return tuple(tuple(sorted(row.items())) for row in rows)


def _coerce_or_none(enum_cls: Type[_E], value: Any) -> Optional[_E]:
    try:
        return enum_cls(value)
    except ValueError:
        return None


def project(
    store: GraphStore,
    node_label: Union[NodeLabel, str],
    relationship_types: Union[EdgeType, str, Iterable[Union[EdgeType, str]]],
    orientation: Union[Orientation, str] = Orientation.DIRECTED,
    weight_key: Optional[str] = None,
) -> ProjectedGraph:
    """
    Materialize a homogeneous weighted graph from the store.

    Parameters
    ----------
    node_label:
        Only nodes with this label are projected. Index order is the store's
        insertion order, so repeated projections of an unchanged store
        produce identical graphs.
    relationship_types:
        One or more edge types; all are folded into a single adjacency and
        weights summed when several types connect the same pair.
    orientation:
        `undirected` mirrors every edge and merges both directions into a
        single neighbor entry per pair.
    weight_key:
        Edge property to read as weight (e.g. "weight"). None counts every
        edge as 1.0; edges lacking the property, or holding a non-numeric
        value, also count as 1.0 (the latter with a warning).

    An unknown label or relationship type yields an empty graph, not an error.
    """
    orientation = Orientation(orientation)

    label = _coerce_or_none(NodeLabel, node_label)
    if isinstance(relationship_types, (EdgeType, str)):
        relationship_types = [relationship_types]
    requested = list(relationship_types)
    types = frozenset(t for t in (_coerce_or_none(EdgeType, r) for r in requested) if t is not None)

    if label is None:
        logger.warning("Projection requested unknown node label %r; returning empty graph", node_label)
        return ProjectedGraph.empty(orientation)

    unknown = [r for r in requested if _coerce_or_none(EdgeType, r) is None]
    if unknown:
        logger.warning("Projection ignores unknown relationship type(s) %r", unknown)

    with store.locked():
        handles = list(store.nodes(label))
        if not handles:
            logger.warning("Projection found no %s nodes; returning empty graph", label.value)
            return ProjectedGraph.empty(orientation, label)

        present = types & store.relationship_types()
        if not present:
            logger.warning(
                "Projection found no %s relationships in the store; returning empty graph",
                ", ".join(sorted(getattr(r, "value", str(r)) for r in requested)) or "<none>",
            )
            return ProjectedGraph.empty(orientation, label)

        index: Dict[int, int] = {h: i for i, h in enumerate(handles)}
        keys = tuple(store.key_of(h) for h in handles)
        rows: List[Dict[int, float]] = [{} for _ in handles]

        matched = 0
        non_numeric = 0
        for edge in store.edges(present):
            a = index.get(edge.source)
            b = index.get(edge.target)
            if a is None or b is None:
                continue
            if weight_key is None:
                weight = 1.0
            else:
                raw = store.edge_attribute(edge.source, edge.target, edge.type, weight_key)
                weight = _edge_weight(raw)
                if weight is None:
                    if raw is not None:
                        non_numeric += 1
                    weight = 1.0
            _fold(rows, a, b, weight, orientation)
            matched += 1

    if non_numeric:
        logger.warning(
            "Edge property %r is not numeric on %d relationship(s); counted as 1.0",
            weight_key,
            non_numeric,
        )

    if matched == 0:
        logger.warning(
            "Projection of %s over %s matched no relationships",
            label.value,
            ", ".join(sorted(t.value for t in types)) or "<none>",
        )

    return ProjectedGraph(
        node_handles=tuple(handles),
        node_keys=keys,
        adjacency=_freeze(rows),
        orientation=orientation,
        node_label=label,
        relationship_types=types,
    )


def require_nonempty(graph: ProjectedGraph) -> ProjectedGraph:
    """Strict variant for callers that treat an empty projection as an error."""
    if graph.node_count == 0:
        raise InvalidProjection(
            "Projection is empty",
            context={"label": graph.node_label.value if graph.node_label else None},
        )
    return graph
