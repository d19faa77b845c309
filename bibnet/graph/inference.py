# bibnet/graph/inference.py

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from bibnet.config.settings import settings
from bibnet.errors import InferenceRuleError
from bibnet.graph.schema import ConnectOutcome, Direction, EdgeType, NodeLabel
from bibnet.graph.store import GraphStore

logger = logging.getLogger(__name__)


@dataclass
class InferenceStats:
    """
    Counters for a single inference rule run.

    `created` and `strengthened` count edge upserts, so one shared author
    between two papers contributes two (one per direction).
    """
    rule: str
    created: int = 0
    strengthened: int = 0
    unchanged: int = 0
    skipped: int = 0

    def record(self, outcome: ConnectOutcome) -> None:
        if outcome is ConnectOutcome.CREATED:
            self.created += 1
        elif outcome is ConnectOutcome.STRENGTHENED:
            self.strengthened += 1
        elif outcome is ConnectOutcome.UNCHANGED:
            self.unchanged += 1
        else:
            self.skipped += 1

    @property
    def touched(self) -> int:
        return self.created + self.strengthened


def _neighbors_with_label(
    store: GraphStore,
    handle: int,
    edge_type: EdgeType,
    direction: Direction,
    label: NodeLabel,
) -> List[int]:
    """Distinct neighbors of `handle` over one edge type, filtered by label, in edge order."""
    seen: Dict[int, None] = {}
    for neighbor, _ in store.edges_of(handle, edge_type, direction):
        if store.label_of(neighbor) == label:
            seen.setdefault(neighbor, None)
    return list(seen)


def _link_all_pairs(
    store: GraphStore,
    members: Sequence[int],
    edge_type: EdgeType,
    stats: InferenceStats,
) -> None:
    """Connect every ordered pair of distinct members with +1 evidence."""
    for a in members:
        for b in members:
            if a == b:
                continue
            stats.record(store.connect(a, b, edge_type, 1))


def _infer_via_hub(
    store: GraphStore,
    *,
    rule: str,
    hub_label: NodeLabel,
    member_label: NodeLabel,
    via: EdgeType,
    via_direction: Direction,
    produces: EdgeType,
) -> InferenceStats:
    """
    Link members that share a hub node.

    For every hub (author, keyword, paper) the members reached over `via`
    are linked pairwise with `produces`, both directions.
    """
    stats = InferenceStats(rule=rule)
    with store.locked():
        for hub in list(store.nodes(hub_label)):
            members = _neighbors_with_label(store, hub, via, via_direction, member_label)
            if len(members) < 2:
                continue
            _link_all_pairs(store, members, produces, stats)
    return stats


def infer_shared_authors(store: GraphStore) -> InferenceStats:
    """
    SHARES_AUTHOR(p1, p2) += 1 for every author who wrote both p1 and p2.
    """
    return _infer_via_hub(
        store,
        rule="shared_authors",
        hub_label=NodeLabel.AUTHOR,
        member_label=NodeLabel.PAPER,
        via=EdgeType.WROTE,
        via_direction=Direction.OUTGOING,
        produces=EdgeType.SHARES_AUTHOR,
    )


def infer_shared_keywords(store: GraphStore) -> InferenceStats:
    """
    RELATED_TO(p1, p2) += 1 for every keyword attached to both p1 and p2.
    """
    return _infer_via_hub(
        store,
        rule="shared_keywords",
        hub_label=NodeLabel.KEYWORD,
        member_label=NodeLabel.PAPER,
        via=EdgeType.HAS_KEYWORD,
        via_direction=Direction.INCOMING,
        produces=EdgeType.RELATED_TO,
    )


def infer_collaborations(store: GraphStore) -> InferenceStats:
    """
    COLLABORATED(a1, a2) += 1 for every paper written by both a1 and a2.
    """
    return _infer_via_hub(
        store,
        rule="collaborations",
        hub_label=NodeLabel.PAPER,
        member_label=NodeLabel.AUTHOR,
        via=EdgeType.WROTE,
        via_direction=Direction.INCOMING,
        produces=EdgeType.COLLABORATED,
    )


def published_year(attributes: Dict[str, Any], attribute: str = "published") -> Optional[int]:
    """
    Read a publication year from node attributes.

    Returns None for missing values and for values that are not integer-like,
    so such papers drop out of temporal comparisons entirely.
    """
    value = attributes.get(attribute)
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def expand(
    store: GraphStore,
    start: int,
    edge_types: Iterable[EdgeType],
    *,
    max_depth: int,
    direction: Direction = Direction.BOTH,
) -> Dict[int, int]:
    """
    Breadth-first expansion from `start` over the given edge types.

    Returns a mapping of every reached node (excluding `start`) to its hop
    distance, for distances 1..max_depth.
    """
    if max_depth < 1:
        return {}

    edge_types = list(edge_types)
    depth: Dict[int, int] = {start: 0}
    frontier = deque([start])
    while frontier:
        current = frontier.popleft()
        d = depth[current]
        if d >= max_depth:
            continue
        for neighbor, _ in store.edges_of(current, edge_types, direction):
            if neighbor not in depth:
                depth[neighbor] = d + 1
                frontier.append(neighbor)

    del depth[start]
    return depth


def infer_citation_candidates(
    store: GraphStore,
    *,
    max_depth: Optional[int] = None,
    published_attribute: Optional[str] = None,
) -> InferenceStats:
    """
    POTENTIALLY_CITES(p1 -> p2) when p2 is within `max_depth` hops of p1 over
    SHARES_AUTHOR / RELATED_TO and p1 was published strictly after p2.

    Papers without a known publication year never take part, on either side.
    This is a proximity heuristic, not evidence of an actual citation.
    """
    max_depth = settings.CITATION_MAX_DEPTH if max_depth is None else max_depth
    published_attribute = published_attribute or settings.PUBLISHED_ATTRIBUTE

    stats = InferenceStats(rule="citation_candidates")
    via = (EdgeType.SHARES_AUTHOR, EdgeType.RELATED_TO)

    with store.locked():
        papers = list(store.nodes(NodeLabel.PAPER))
        years = {
            p: published_year(store.attributes_of(p), published_attribute) for p in papers
        }

        for p1 in papers:
            y1 = years[p1]
            if y1 is None:
                continue
            reached = expand(store, p1, via, max_depth=max_depth)
            for p2 in sorted(reached):
                y2 = years.get(p2)
                if y2 is None or not y1 > y2:
                    continue
                stats.record(store.connect(p1, p2, EdgeType.POTENTIALLY_CITES))

    return stats


InferenceRule = Callable[[GraphStore], InferenceStats]

INFERENCE_RULES: Dict[str, InferenceRule] = {
    "shared_authors": infer_shared_authors,
    "shared_keywords": infer_shared_keywords,
    "citation_candidates": infer_citation_candidates,
    "collaborations": infer_collaborations,
}

# citation_candidates reads the edges the two sharing rules write.
DEFAULT_RULE_ORDER = (
    "shared_authors",
    "shared_keywords",
    "citation_candidates",
    "collaborations",
)


def run_inference(
    store: GraphStore,
    rules: Optional[Sequence[str]] = None,
) -> Dict[str, InferenceStats]:
    """
    Run each named rule exactly once, in the given order.

    Running a rule twice doubles accumulated weights, so callers should invoke
    this once per relationship-build phase. A failing rule is logged and
    re-raised as InferenceRuleError; edges already written by earlier rules
    (or by the failing rule itself) are kept.
    """
    names = list(rules) if rules is not None else list(DEFAULT_RULE_ORDER)

    unknown = [name for name in names if name not in INFERENCE_RULES]
    if unknown:
        raise ValueError(
            f"Unknown inference rule(s): {', '.join(unknown)}. "
            f"Available: {', '.join(INFERENCE_RULES)}"
        )

    if len(set(names)) != len(names):
        raise ValueError("Each inference rule may only be requested once per run")

    results: Dict[str, InferenceStats] = {}
    for name in names:
        try:
            stats = INFERENCE_RULES[name](store)
        except Exception as exc:
            logger.exception("Inference rule %s failed; it can be re-run on its own", name)
            raise InferenceRuleError(
                name,
                f"Inference rule {name!r} failed: {exc}",
                context={"rule": name, "completed": list(results)},
            ) from exc

        logger.info(
            "Inference rule %s: %d created, %d strengthened, %d skipped",
            name,
            stats.created,
            stats.strengthened,
            stats.skipped,
        )
        results[name] = stats

    return results
