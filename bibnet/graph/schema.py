# bibnet/graph/schema.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional


class NodeLabel(str, Enum):
    AUTHOR = "Author"
    PAPER = "Paper"
    JOURNAL = "Journal"
    KEYWORD = "Keyword"
    RESEARCHER = "Researcher"


class EdgeType(str, Enum):
    # Direct edges written by ingestion
    WROTE = "WROTE"
    PUBLISHED_IN = "PUBLISHED_IN"
    HAS_KEYWORD = "HAS_KEYWORD"

    # Paper -> paper edges derived by inference
    SHARES_AUTHOR = "SHARES_AUTHOR"
    RELATED_TO = "RELATED_TO"
    POTENTIALLY_CITES = "POTENTIALLY_CITES"

    # Person -> person collaboration strength
    COLLABORATED = "COLLABORATED"


# Types whose weight counts supporting evidence; repeated connects add up.
ACCUMULATING_EDGE_TYPES: FrozenSet[EdgeType] = frozenset(
    {EdgeType.SHARES_AUTHOR, EdgeType.RELATED_TO, EdgeType.COLLABORATED}
)


class Orientation(str, Enum):
    DIRECTED = "directed"
    UNDIRECTED = "undirected"


class Direction(str, Enum):
    OUTGOING = "outgoing"
    INCOMING = "incoming"
    BOTH = "both"


class ConnectOutcome(str, Enum):
    CREATED = "created"
    STRENGTHENED = "strengthened"
    UNCHANGED = "unchanged"
    SKIPPED_SELF_LOOP = "skipped_self_loop"


@dataclass(frozen=True)
class Node:
    handle: int
    label: NodeLabel
    key: str
    attributes: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Edge:
    source: int
    target: int
    type: EdgeType
    weight: Optional[float] = None
    order: Optional[int] = None


def is_accumulating(edge_type: EdgeType) -> bool:
    return edge_type in ACCUMULATING_EDGE_TYPES
