"""Tests for the feature codec."""

import pytest

from indoor_editor.model import transport
from indoor_editor.model.entities import Beacon, Floor, NodeType, Polygon, PolygonType, RouteNode
from indoor_editor.validation.core import ValidationError

from conftest import SQUARE


def _node_feature(**properties):
    props = {'id': 1, 'floor_id': 2, 'is_visible': True, 'node_type': 'waypoint'}
    props.update(properties)
    return {'type': 'Feature',
            'geometry': {'type': 'Point', 'coordinates': [50.0, 26.0]},
            'properties': props}


class TestReadProperty:

    def test_alias_is_accepted(self):
        assert transport.read_property({'floorId': 3}, 'floor_id') == 3

    def test_canonical_key_wins(self):
        assert transport.read_property({'floor_id': 1, 'floorId': 3}, 'floor_id') == 1

    def test_null_canonical_falls_back_to_alias(self):
        assert transport.read_property({'is_visible': None, 'isVisible': False},
                                       'is_visible', True) is False

    def test_default(self):
        assert transport.read_property({}, 'node_type', 'waypoint') == 'waypoint'


class TestNodes:

    def test_decode_connection_spellings(self):
        for key in ('connections', 'connected_node_ids', 'connectedNodeIds'):
            node = transport.node_from_feature(_node_feature(**{key: [4, 5]}))
            assert node.connections == frozenset({4, 5})

    def test_decode_drops_self_reference_and_duplicates(self):
        node = transport.node_from_feature(_node_feature(connections=[1, 4, 4]))
        assert node.connections == frozenset({4})

    def test_decode_unplaced_node(self):
        feature = _node_feature()
        feature['geometry'] = None
        assert transport.node_from_feature(feature).location is None

    def test_decode_invalid_node_raises(self):
        with pytest.raises(ValidationError):
            transport.node_from_feature(_node_feature(node_type='lift'))

    def test_encode_uses_snake_case(self):
        node = RouteNode(floor_id=2, id=9, location=(50.0, 26.0),
                         node_type=NodeType.ELEVATOR, connections=frozenset({3, 1}))
        feature = transport.node_to_feature(node)
        assert feature['geometry'] == {'type': 'Point', 'coordinates': [50.0, 26.0]}
        assert feature['properties'] == {
            'id': 9, 'floor_id': 2, 'is_visible': True,
            'connections': [1, 3], 'node_type': 'elevator',
        }
        assert transport.node_from_feature(feature) == node

    def test_strip_identifier(self):
        feature = transport.node_to_feature(RouteNode(floor_id=2, id=9))
        stripped = transport.strip_identifier(feature)
        assert 'id' not in stripped['properties']
        assert feature['properties']['id'] == 9


class TestPolygons:

    def test_ring_closed_on_wire_open_in_model(self):
        polygon = Polygon(floor_id=1, id=3, name="Lab", ring=tuple(SQUARE))
        feature = transport.polygon_to_feature(polygon)
        ring = feature['geometry']['coordinates'][0]
        assert len(ring) == 5
        assert ring[0] == ring[-1]
        decoded = transport.polygon_from_feature(feature)
        assert decoded.ring == polygon.ring

    def test_zero_category_is_absent(self):
        feature = transport.polygon_to_feature(
            Polygon(floor_id=1, id=3, name="Lab", ring=tuple(SQUARE)))
        feature['properties']['category_id'] = 0
        assert transport.polygon_from_feature(feature).category_id is None

    def test_wall_type_round_trips(self):
        polygon = Polygon(floor_id=1, id=3, name="W", ring=tuple(SQUARE),
                          polygon_type=PolygonType.WALL, color="#6b7280")
        decoded = transport.polygon_from_feature(transport.polygon_to_feature(polygon))
        assert decoded.polygon_type is PolygonType.WALL


class TestBeacons:

    def test_decode_camel_case(self):
        feature = {
            'type': 'Feature',
            'geometry': {'type': 'Point', 'coordinates': [50.0, 26.0]},
            'properties': {
                'id': 8, 'floorId': 1, 'name': 'B', 'majorId': 10, 'minorId': 20,
                'isActive': False, 'batteryLevel': 55,
                'beaconType': {'id': 2, 'name': 'Kontakt'},
            },
        }
        beacon = transport.beacon_from_feature(feature)
        assert beacon.floor_id == 1
        assert (beacon.major_id, beacon.minor_id) == (10, 20)
        assert beacon.is_active is False
        assert beacon.battery_level == 55
        assert beacon.beacon_type_name == 'Kontakt'

    def test_encode_snake_case(self):
        beacon = Beacon(floor_id=1, id=8, name="B", location=(50.0, 26.0))
        properties = transport.beacon_to_feature(beacon)['properties']
        assert 'battery_level' in properties
        assert 'batteryLevel' not in properties


class TestFloors:

    def test_floor_with_building(self):
        data = {
            'id': 2, 'name': 'First', 'floorNumber': 1, 'buildingId': 1,
            'building': {'id': 1, 'name': 'HQ', 'createdAt': 'a', 'updatedAt': 'b'},
            'nodes': [_node_feature(floor_id=2)],
        }
        floor = transport.floor_from_dict(data)
        assert floor.floor_number == 1
        assert floor.building.name == 'HQ'
        assert len(floor.nodes) == 1
        assert floor.polygons is None

    def test_floor_to_dict(self):
        data = transport.floor_to_dict(Floor(id=2, name="First", floor_number=1, building_id=1))
        assert data == {'id': 2, 'name': 'First', 'floor_number': 1, 'building_id': 1}

    def test_decode_all_null_payload(self):
        assert transport.decode_all(transport.floor_from_dict, None) == []
