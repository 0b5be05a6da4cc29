"""Tests for entity value types."""

from indoor_editor.model.entities import (
    EntityKind, EntityRef, NodeType, Polygon, RouteNode, edge_key,
)


def test_edge_key_is_order_independent():
    assert edge_key(3, 7) == edge_key(7, 3) == "3-7"


def test_connector_node_types():
    assert NodeType.ELEVATOR.is_connector
    assert NodeType.STAIRS.is_connector
    assert not NodeType.WAYPOINT.is_connector
    assert NodeType.ELEVATOR.glyph == "E"
    assert NodeType.STAIRS.glyph == "S"
    assert NodeType.WAYPOINT.glyph is None


def test_route_node_ignores_self_connection():
    node = RouteNode(floor_id=1, id=5)
    assert node.with_connection(5) is node
    assert node.with_connection(6).connections == frozenset({6})


def test_route_node_without_connection():
    node = RouteNode(floor_id=1, id=5, connections=frozenset({6, 7}))
    assert node.without_connection(6).connections == frozenset({7})
    assert node.without_connection(9) is node


def test_polygon_closed_ring_repeats_first_vertex():
    ring = ((0.0, 0.0), (1.0, 0.0), (1.0, 1.0))
    polygon = Polygon(floor_id=1, name="A", ring=ring)
    assert polygon.closed_ring == ring + ((0.0, 0.0),)


def test_entity_ref_key():
    assert EntityRef(EntityKind.BEACON, 4).key == "beacon-4"
    assert RouteNode(floor_id=1, id=2).ref == EntityRef(EntityKind.NODE, 2)
