"""
Connectivity checks over a collection of route nodes.

The navigation graph is undirected: every edge must be listed on both
endpoints, exactly once, and never on a node pointing at itself. These
checks run on decoded nodes or on raw wire features (whose connection lists
may still contain duplicates) and report problems instead of raising, so a
floor can be loaded, inspected and repaired.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union

from indoor_editor.model.entities import NodeType, RouteNode
from indoor_editor.model.transport import raw_connection_ids, read_property
from .core import ValidationResult
from . import rules

NodeLike = Union[RouteNode, Dict[str, Any]]


def _normalize(node: NodeLike) -> Tuple[Optional[int], str, List[int]]:
    if isinstance(node, RouteNode):
        return node.id, node.node_type.value, sorted(node.connections)
    properties = node.get('properties', node)
    node_type = read_property(properties, 'node_type', NodeType.WAYPOINT.value)
    return properties.get('id'), node_type, raw_connection_ids(properties)


def asymmetric_edges(nodes: Iterable[NodeLike]) -> List[Tuple[int, int]]:
    """Edges (a, b) where a lists b, b is in the collection, and b does not list a."""
    adjacency: Dict[int, Set[int]] = {}
    for node in nodes:
        node_id, _, connections = _normalize(node)
        if node_id is not None:
            adjacency[node_id] = set(connections)

    missing = []
    for node_id, targets in adjacency.items():
        for target in sorted(targets):
            if target != node_id and target in adjacency and node_id not in adjacency[target]:
                missing.append((node_id, target))
    return missing


def check_node_graph(nodes: Iterable[NodeLike]) -> ValidationResult:
    """Check symmetry, uniqueness and self-references of node connections.

    Targets missing from ``nodes`` are reported as INFO only: connector
    nodes legitimately reach nodes on other floors.
    """
    nodes = list(nodes)
    result = ValidationResult(subject="RouteNode graph")
    normalized = [_normalize(n) for n in nodes]
    known = {node_id for node_id, _, _ in normalized if node_id is not None}

    for node_id, node_type, connections in normalized:
        counts = Counter(connections)
        for target, count in counts.items():
            if target == node_id:
                result.add_issue(rules.GRAPH_001.issue(entity_id=node_id, node=node_id))
            elif count > 1:
                result.add_issue(rules.GRAPH_002.issue(
                    entity_id=node_id, node=node_id, target=target, count=count))
            elif target not in known:
                result.add_issue(rules.GRAPH_004.issue(entity_id=node_id, node=node_id, target=target))

        if node_type in (NodeType.ELEVATOR.value, NodeType.STAIRS.value) and not connections:
            result.add_issue(rules.GRAPH_005.issue(
                entity_id=node_id, node=node_id, node_type=node_type.capitalize()))

    for node_id, target in asymmetric_edges(nodes):
        result.add_issue(rules.GRAPH_003.issue(entity_id=node_id, node=node_id, target=target))

    return result
