"""
Feature codec between entities and their wire representation.

Spatial entities travel as geometry/properties pairs:

    {"type": "Feature",
     "geometry": {"type": "Point", "coordinates": [lng, lat]} | None,
     "properties": {"id": 7, "floor_id": 2, "is_visible": true, ...}}

The server and older clients spell some property keys differently. Reading
accepts every spelling listed in PROPERTY_ALIASES; writing always emits the
canonical snake-case key. Polygon rings are closed on the wire and open in
the model.

Decoding goes through the drafts in update mode, so a decoded entity is
always fully valid.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .drafts import BeaconDraft, BuildingDraft, FloorDraft, NodeDraft, PolygonDraft
from .entities import Beacon, Building, CatalogItem, Floor, NodeType, Polygon, RouteNode

logger = logging.getLogger(__name__)


# Canonical key -> alternate spellings accepted when reading.
PROPERTY_ALIASES: Dict[str, Tuple[str, ...]] = {
    'connections': ('connected_node_ids', 'connectedNodeIds'),
    'floor_id': ('floorId',),
    'node_type': ('nodeType',),
    'is_visible': ('isVisible',),
    'is_active': ('isActive',),
    'beacon_type_id': ('beaconTypeId',),
    'major_id': ('majorId',),
    'minor_id': ('minorId',),
    'battery_level': ('batteryLevel',),
    'last_seen': ('lastSeen',),
    'beacon_type': ('beaconType',),
    'category_id': ('categoryId',),
    'floor_number': ('floorNumber',),
    'building_id': ('buildingId',),
    'created_at': ('createdAt',),
    'updated_at': ('updatedAt',),
}

_MISSING = object()


def read_property(data: Dict[str, Any], key: str, default: Any = None) -> Any:
    """Read ``key`` from ``data``, falling back to its alternate spellings.

    The canonical spelling wins when both are present. An explicit null in
    the canonical key counts as absent so an alias can still supply a value.
    """
    value = data.get(key, _MISSING)
    if value is not _MISSING and value is not None:
        return value
    for alias in PROPERTY_ALIASES.get(key, ()):
        alias_value = data.get(alias, _MISSING)
        if alias_value is not _MISSING and alias_value is not None:
            return alias_value
    return default


def raw_connection_ids(properties: Dict[str, Any]) -> List[int]:
    """Connection list exactly as listed on the wire (may hold duplicates)."""
    return list(read_property(properties, 'connections', []) or [])


def strip_identifier(feature: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``feature`` without ``properties.id``.

    Creation requests must not carry a placeholder identifier; the server
    assigns one.
    """
    properties = {k: v for k, v in feature.get('properties', {}).items() if k != 'id'}
    stripped = dict(feature)
    stripped['properties'] = properties
    return stripped


# =============================================================================
# GEOMETRY
# =============================================================================

def _point_geometry(location) -> Optional[Dict[str, Any]]:
    if location is None:
        return None
    return {'type': 'Point', 'coordinates': [location[0], location[1]]}


def _point_from_geometry(geometry: Optional[Dict[str, Any]]):
    if not geometry:
        return None
    coordinates = geometry.get('coordinates')
    if coordinates is None:
        return None
    return tuple(coordinates)


def _polygon_geometry(polygon: Polygon) -> Dict[str, Any]:
    return {
        'type': 'Polygon',
        'coordinates': [[[lng, lat] for lng, lat in polygon.closed_ring]],
    }


def _ring_from_geometry(geometry: Optional[Dict[str, Any]]) -> List[Any]:
    if not geometry:
        return []
    rings = geometry.get('coordinates') or []
    # Only the outer ring is edited; holes are not part of the model.
    return list(rings[0]) if rings else []


def _feature(geometry, properties: Dict[str, Any]) -> Dict[str, Any]:
    return {'type': 'Feature', 'geometry': geometry, 'properties': properties}


# =============================================================================
# ROUTE NODES
# =============================================================================

def node_to_feature(node: RouteNode) -> Dict[str, Any]:
    properties: Dict[str, Any] = {
        'floor_id': node.floor_id,
        'is_visible': node.is_visible,
        'connections': sorted(node.connections),
        'node_type': node.node_type.value,
    }
    if node.id is not None:
        properties['id'] = node.id
    if node.level is not None:
        properties['level'] = node.level
    return _feature(_point_geometry(node.location), properties)


def node_from_feature(feature: Dict[str, Any]) -> RouteNode:
    properties = feature.get('properties') or {}
    node_id = properties.get('id')
    connections = []
    for target in raw_connection_ids(properties):
        if target == node_id:
            logger.warning("Dropping self-reference on node %s", node_id)
            continue
        connections.append(target)

    draft = NodeDraft(
        floor_id=read_property(properties, 'floor_id'),
        location=_point_from_geometry(feature.get('geometry')),
        is_visible=read_property(properties, 'is_visible', True),
        node_type=read_property(properties, 'node_type', NodeType.WAYPOINT.value),
        level=properties.get('level'),
    ).with_id(node_id).with_connections(connections)
    return draft.build()


# =============================================================================
# POLYGONS
# =============================================================================

def polygon_to_feature(polygon: Polygon) -> Dict[str, Any]:
    properties: Dict[str, Any] = {
        'floor_id': polygon.floor_id,
        'name': polygon.name,
        'description': polygon.description,
        'type': polygon.polygon_type.value,
        'is_visible': polygon.is_visible,
        'color': polygon.color,
        'category_id': polygon.category_id,
    }
    if polygon.id is not None:
        properties['id'] = polygon.id
    return _feature(_polygon_geometry(polygon), properties)


def polygon_from_feature(feature: Dict[str, Any]) -> Polygon:
    properties = feature.get('properties') or {}
    draft = PolygonDraft(
        floor_id=read_property(properties, 'floor_id'),
        name=properties.get('name'),
        description=properties.get('description') or "",
        polygon_type=properties.get('type', 'Room'),
        is_visible=read_property(properties, 'is_visible', True),
        color=properties.get('color') or "#3b82f6",
        category_id=read_property(properties, 'category_id') or None,
    ).with_id(properties.get('id')).with_ring(_ring_from_geometry(feature.get('geometry')))
    return draft.build()


# =============================================================================
# BEACONS
# =============================================================================

def beacon_to_feature(beacon: Beacon) -> Dict[str, Any]:
    properties: Dict[str, Any] = {
        'floor_id': beacon.floor_id,
        'beacon_type_id': beacon.beacon_type_id,
        'name': beacon.name,
        'uuid': beacon.uuid,
        'major_id': beacon.major_id,
        'minor_id': beacon.minor_id,
        'is_active': beacon.is_active,
        'is_visible': beacon.is_visible,
        'battery_level': beacon.battery_level,
        'last_seen': beacon.last_seen,
    }
    if beacon.id is not None:
        properties['id'] = beacon.id
    return _feature(_point_geometry(beacon.location), properties)


def beacon_from_feature(feature: Dict[str, Any]) -> Beacon:
    properties = feature.get('properties') or {}
    beacon_type = read_property(properties, 'beacon_type') or {}
    draft = BeaconDraft(
        floor_id=read_property(properties, 'floor_id'),
        name=properties.get('name'),
        beacon_type_id=read_property(properties, 'beacon_type_id'),
        uuid=properties.get('uuid'),
        major_id=read_property(properties, 'major_id'),
        minor_id=read_property(properties, 'minor_id'),
        location=_point_from_geometry(feature.get('geometry')),
        is_active=read_property(properties, 'is_active', True),
        is_visible=read_property(properties, 'is_visible', True),
        battery_level=read_property(properties, 'battery_level', 100),
        last_seen=read_property(properties, 'last_seen'),
        beacon_type_name=beacon_type.get('name') if isinstance(beacon_type, dict) else None,
    ).with_id(properties.get('id'))
    return draft.build()


# =============================================================================
# FLOORS / BUILDINGS / CATALOGS
# =============================================================================

def building_to_dict(building: Building) -> Dict[str, Any]:
    return {
        'id': building.id,
        'name': building.name,
        'description': building.description,
        'created_at': building.created_at,
        'updated_at': building.updated_at,
    }


def building_from_dict(data: Dict[str, Any]) -> Building:
    draft = BuildingDraft(
        name=data.get('name'),
        description=data.get('description'),
        created_at=read_property(data, 'created_at'),
        updated_at=read_property(data, 'updated_at'),
    ).with_id(data.get('id'))
    return draft.build()


def floor_to_dict(floor: Floor) -> Dict[str, Any]:
    result: Dict[str, Any] = {
        'id': floor.id,
        'name': floor.name,
        'floor_number': floor.floor_number,
        'building_id': floor.building_id,
    }
    if floor.building is not None:
        result['building'] = building_to_dict(floor.building)
    if floor.nodes is not None:
        result['nodes'] = [node_to_feature(n) for n in floor.nodes]
    if floor.polygons is not None:
        result['polygons'] = [polygon_to_feature(p) for p in floor.polygons]
    return result


def floor_from_dict(data: Dict[str, Any]) -> Floor:
    building = data.get('building')
    nodes = data.get('nodes')
    polygons = data.get('polygons')
    draft = FloorDraft(
        name=data.get('name'),
        floor_number=read_property(data, 'floor_number'),
        building_id=read_property(data, 'building_id'),
        building=building_from_dict(building) if building else None,
    ).with_id(data.get('id'))
    if nodes is not None:
        draft = draft.with_nodes(node_from_feature(f) for f in nodes)
    if polygons is not None:
        draft = draft.with_polygons(polygon_from_feature(f) for f in polygons)
    return draft.build()


def catalog_item_from_dict(data: Dict[str, Any]) -> CatalogItem:
    return CatalogItem(
        id=data['id'],
        name=data.get('name', ''),
        description=data.get('description'),
        color=data.get('color'),
    )


def decode_all(decoder, items: Optional[Iterable[Dict[str, Any]]]) -> List[Any]:
    """Decode a list payload; a null payload decodes to an empty list."""
    return [decoder(item) for item in (items or [])]
