# bibnet/graph/store.py

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import (
    Any,
    Dict,
    FrozenSet,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Set,
    Tuple,
    Union,
)

import networkx as nx

from bibnet.config.settings import settings
from bibnet.errors import DuplicateKeyConflict, UnknownEntity
from bibnet.graph.schema import (
    ConnectOutcome,
    Direction,
    Edge,
    EdgeType,
    Node,
    NodeLabel,
    is_accumulating,
)

logger = logging.getLogger(__name__)

LabelLike = Union[NodeLabel, str]
EdgeTypeLike = Union[EdgeType, str]
EntityRef = Tuple[LabelLike, str]


def coerce_label(label: LabelLike) -> NodeLabel:
    try:
        return NodeLabel(label)
    except ValueError:
        raise ValueError(f"Unknown node label: {label!r}") from None


def coerce_edge_type(edge_type: EdgeTypeLike) -> EdgeType:
    try:
        return EdgeType(edge_type)
    except ValueError:
        raise ValueError(f"Unknown relationship type: {edge_type!r}") from None


def _edge_type_filter(
    edge_type: Union[None, EdgeTypeLike, Iterable[EdgeTypeLike]],
) -> Optional[FrozenSet[str]]:
    """
    Normalize an edge type argument into a set of edge keys, or None for "any".

    Accepts a single type (enum or string) or any iterable of them.
    """
    if edge_type is None:
        return None
    if isinstance(edge_type, (EdgeType, str)):
        return frozenset({coerce_edge_type(edge_type).value})
    return frozenset(coerce_edge_type(t).value for t in edge_type)


def _normalize_key(key: Any) -> str:
    if not isinstance(key, str):
        raise TypeError(f"Entity keys must be strings, got {type(key).__name__}")
    key = key.strip()
    if not key:
        raise ValueError("Entity keys must be non-empty")
    return key


class GraphStore:
    """
    Process-scoped heterogeneous graph of typed entities and relationships.

    Nodes live in a networkx MultiDiGraph under dense integer handles. Each
    relationship is stored with its type as the multigraph edge key, so a
    (source, target, type) triple can only ever hold a single edge.

    All mutations take a re-entrant lock; readers that need a consistent
    view across several calls (projection, inference) hold `locked()`.
    """

    def __init__(self, *, exclusive_keys: Optional[bool] = None) -> None:
        if exclusive_keys is None:
            exclusive_keys = settings.STORE_EXCLUSIVE_KEYS

        self.exclusive_keys = exclusive_keys
        self.graph = nx.MultiDiGraph()
        self._index: Dict[Tuple[NodeLabel, str], int] = {}
        self._key_labels: Dict[str, NodeLabel] = {}
        self._next_handle = 0
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Locking / pickling
    # ------------------------------------------------------------------

    @contextmanager
    def locked(self) -> Iterator["GraphStore"]:
        """Hold the store lock for a consistent multi-call view."""
        with self._lock:
            yield self

    def __getstate__(self) -> Dict[str, Any]:
        state = self.__dict__.copy()
        state.pop("_lock", None)
        return state

    def __setstate__(self, state: Dict[str, Any]) -> None:
        self.__dict__.update(state)
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    def upsert_entity(
        self,
        label: LabelLike,
        key: str,
        attributes: Optional[Mapping[str, Any]] = None,
        *,
        merge: bool = False,
    ) -> int:
        """
        Return the handle for (label, key), creating the node if needed.

        Existing nodes keep their attributes unless `merge` is True, in which
        case the given attributes are written over the stored ones.
        """
        label = coerce_label(label)
        key = _normalize_key(key)

        with self._lock:
            handle = self._index.get((label, key))
            if handle is not None:
                if merge and attributes:
                    self.graph.nodes[handle]["attributes"].update(attributes)
                return handle

            if self.exclusive_keys:
                owner = self._key_labels.get(key)
                if owner is not None and owner != label:
                    raise DuplicateKeyConflict(
                        f"Key {key!r} already belongs to a {owner.value} node; "
                        f"cannot upsert it as {label.value}",
                        context={"key": key, "existing": owner.value, "requested": label.value},
                    )

            handle = self._next_handle
            self._next_handle += 1
            self.graph.add_node(
                handle,
                label=label,
                key=key,
                attributes=dict(attributes or {}),
            )
            self._index[(label, key)] = handle
            self._key_labels.setdefault(key, label)
            return handle

    def find(self, label: LabelLike, key: str) -> Optional[int]:
        label = coerce_label(label)
        key = _normalize_key(key)
        return self._index.get((label, key))

    def get(self, label: LabelLike, key: str) -> int:
        handle = self.find(label, key)
        if handle is None:
            raise UnknownEntity(
                f"No {NodeLabel(label).value} entity with key {key!r}",
                context={"label": NodeLabel(label).value, "key": key},
            )
        return handle

    def _require(self, handle: int) -> Dict[str, Any]:
        try:
            return self.graph.nodes[handle]
        except KeyError:
            raise UnknownEntity(
                f"Unknown entity handle: {handle!r}", context={"handle": handle}
            ) from None

    def __contains__(self, handle: object) -> bool:
        return handle in self.graph

    def node(self, handle: int) -> Node:
        data = self._require(handle)
        return Node(
            handle=handle,
            label=data["label"],
            key=data["key"],
            attributes=dict(data["attributes"]),
        )

    def attributes_of(self, handle: int) -> Dict[str, Any]:
        return dict(self._require(handle)["attributes"])

    def key_of(self, handle: int) -> str:
        return self._require(handle)["key"]

    def label_of(self, handle: int) -> NodeLabel:
        return self._require(handle)["label"]

    def nodes(self, label: Optional[LabelLike] = None) -> Iterator[int]:
        """Yield handles in insertion order, optionally restricted to one label."""
        wanted = coerce_label(label) if label is not None else None
        for handle, data in self.graph.nodes(data=True):
            if wanted is None or data["label"] == wanted:
                yield handle

    def node_count(self, label: Optional[LabelLike] = None) -> int:
        if label is None:
            return self.graph.number_of_nodes()
        return sum(1 for _ in self.nodes(label))

    def labels(self) -> Set[NodeLabel]:
        return {data["label"] for _, data in self.graph.nodes(data=True)}

    # ------------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------------

    def connect(
        self,
        source: int,
        target: int,
        edge_type: EdgeTypeLike,
        weight_delta: float = 1,
        *,
        order: Optional[int] = None,
    ) -> ConnectOutcome:
        """
        Upsert a typed edge source -> target.

        Accumulating types add `weight_delta` to the stored weight; every
        other type is created once and left alone afterwards. Self-loops are
        never stored.
        """
        edge_type = coerce_edge_type(edge_type)
        if weight_delta < 0:
            raise ValueError(f"weight_delta must be non-negative, got {weight_delta}")

        with self._lock:
            self._require(source)
            self._require(target)

            if source == target:
                logger.debug("Skipping %s self-loop on node %s", edge_type.value, source)
                return ConnectOutcome.SKIPPED_SELF_LOOP

            key = edge_type.value
            if self.graph.has_edge(source, target, key=key):
                if not is_accumulating(edge_type):
                    return ConnectOutcome.UNCHANGED
                data = self.graph.edges[source, target, key]
                data["weight"] = data["weight"] + weight_delta
                return ConnectOutcome.STRENGTHENED

            attrs: Dict[str, Any] = {"type": edge_type, "weight": weight_delta}
            if order is not None:
                attrs["order"] = order
            self.graph.add_edge(source, target, key=key, **attrs)
            return ConnectOutcome.CREATED

    def connect_keys(
        self,
        source: EntityRef,
        target: EntityRef,
        edge_type: EdgeTypeLike,
        weight_delta: float = 1,
        *,
        order: Optional[int] = None,
    ) -> ConnectOutcome:
        """Like `connect`, addressing both endpoints by (label, key)."""
        src = self.get(*source)
        dst = self.get(*target)
        return self.connect(src, dst, edge_type, weight_delta, order=order)

    def edge(self, source: int, target: int, edge_type: EdgeTypeLike) -> Optional[Edge]:
        edge_type = coerce_edge_type(edge_type)
        data = self.graph.get_edge_data(source, target, key=edge_type.value)
        if data is None:
            return None
        return Edge(
            source=source,
            target=target,
            type=edge_type,
            weight=data.get("weight"),
            order=data.get("order"),
        )

    def edge_attribute(
        self,
        source: int,
        target: int,
        edge_type: EdgeTypeLike,
        name: str,
        default: Any = None,
    ) -> Any:
        """Read an arbitrary stored property of one edge."""
        edge_type = coerce_edge_type(edge_type)
        data = self.graph.get_edge_data(source, target, key=edge_type.value)
        if data is None:
            return default
        return data.get(name, default)

    def edges(
        self,
        edge_type: Union[None, EdgeTypeLike, Iterable[EdgeTypeLike]] = None,
    ) -> Iterator[Edge]:
        wanted = _edge_type_filter(edge_type)
        for u, v, key, data in self.graph.edges(keys=True, data=True):
            if wanted is not None and key not in wanted:
                continue
            yield Edge(
                source=u,
                target=v,
                type=data["type"],
                weight=data.get("weight"),
                order=data.get("order"),
            )

    def edges_of(
        self,
        handle: int,
        edge_type: Union[None, EdgeTypeLike, Iterable[EdgeTypeLike]] = None,
        direction: Union[Direction, str] = Direction.OUTGOING,
    ) -> List[Tuple[int, Optional[float]]]:
        """
        Return (neighbor handle, weight) pairs for edges touching `handle`.
        """
        self._require(handle)
        wanted = _edge_type_filter(edge_type)
        direction = Direction(direction)

        result: List[Tuple[int, Optional[float]]] = []
        if direction in (Direction.OUTGOING, Direction.BOTH):
            for _, v, key, data in self.graph.out_edges(handle, keys=True, data=True):
                if wanted is None or key in wanted:
                    result.append((v, data.get("weight")))
        if direction in (Direction.INCOMING, Direction.BOTH):
            for u, _, key, data in self.graph.in_edges(handle, keys=True, data=True):
                if wanted is None or key in wanted:
                    result.append((u, data.get("weight")))
        return result

    def edge_count(
        self,
        edge_type: Union[None, EdgeTypeLike, Iterable[EdgeTypeLike]] = None,
    ) -> int:
        if edge_type is None:
            return self.graph.number_of_edges()
        return sum(1 for _ in self.edges(edge_type))

    def relationship_types(self) -> Set[EdgeType]:
        return {data["type"] for _, _, data in self.graph.edges(data=True)}
