"""
Immutable drafts for validated entity construction.

A draft is a frozen record that is refined through pure ``with_*`` steps
and turned into an entity by a single validating constructor:

    polygon = (PolygonDraft()
               .with_floor(3)
               .with_name("Lobby")
               .with_ring(points)
               .build())

``validate()`` returns every issue found, in field order. ``build()`` either
returns a fully valid entity or raises ValidationError naming the first
invalid field; it never returns a partially valid value.

Create mode vs update mode:
- Drafts start in create mode: server-only fields (identifier, timestamps,
  last-seen) are never required.
- ``from_entity`` and ``with_id`` switch to update mode, which additionally
  requires a valid identifier (and timestamps, for buildings).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Iterable, Optional, Sequence, Tuple

from indoor_editor.validation.core import ValidationError, ValidationResult
from indoor_editor.validation import rules
from .entities import (
    Beacon, Building, Floor, LngLat, NodeType, Polygon, PolygonType, RouteNode,
)


# =============================================================================
# FIELD CHECKS
# =============================================================================

def _is_number(value: Any) -> bool:
    return (isinstance(value, (int, float)) and not isinstance(value, bool)
            and math.isfinite(value))


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_required(result: ValidationResult, field: str, value: Any) -> bool:
    missing = value is None or (isinstance(value, str) and not value.strip())
    if missing:
        result.add_issue(rules.ENT_001.issue(field=field))
    return not missing


def _check_identifier(result: ValidationResult, field: str, value: Any) -> None:
    if not _is_int(value) or not rules.ID_MIN <= value <= rules.ID_MAX:
        result.add_issue(rules.ENT_011.issue(field=field, value=value))


def _check_range(result: ValidationResult, field: str, value: Any,
                 low: float, high: float) -> None:
    if not _is_number(value) or not low <= value <= high:
        result.add_issue(rules.ENT_002.issue(field=field, value=value, min=low, max=high))


def _check_int_range(result: ValidationResult, field: str, value: Any,
                     low: int, high: int) -> None:
    if not _is_int(value) or not low <= value <= high:
        result.add_issue(rules.ENT_002.issue(field=field, value=value, min=low, max=high))


def _check_max_length(result: ValidationResult, field: str, value: Optional[str],
                      limit: int) -> None:
    if value is not None and len(value) > limit:
        result.add_issue(rules.ENT_008.issue(field=field, max=limit))


def _valid_lnglat(point: Any) -> bool:
    if not isinstance(point, (tuple, list)) or len(point) != 2:
        return False
    lng, lat = point
    return (_is_number(lng) and _is_number(lat)
            and rules.LONGITUDE_MIN <= lng <= rules.LONGITUDE_MAX
            and rules.LATITUDE_MIN <= lat <= rules.LATITUDE_MAX)


def _check_location(result: ValidationResult, field: str, point: Any) -> None:
    if not _valid_lnglat(point):
        result.add_issue(rules.ENT_006.issue(field=field, value=point))


def _coerce_enum(result: ValidationResult, field: str, enum_cls, value: Any):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        choices = [member.value for member in enum_cls]
        result.add_issue(rules.ENT_007.issue(field=field, value=value, choices=choices))
        return None


def _as_point(point: Sequence[float]) -> LngLat:
    return (float(point[0]), float(point[1]))


def _open_ring(points: Iterable[Sequence[float]]) -> Tuple[Tuple[Any, ...], ...]:
    """Normalize a ring to its open form (closing vertex removed)."""
    ring = tuple(tuple(p) for p in points)
    if len(ring) > 1 and ring[0] == ring[-1]:
        ring = ring[:-1]
    return ring


def _raise_on_failure(result: ValidationResult) -> None:
    if result.failed:
        raise ValidationError(result)


# =============================================================================
# ROUTE NODE
# =============================================================================

@dataclass(frozen=True)
class NodeDraft:
    """Draft of a RouteNode."""
    floor_id: Optional[int] = None
    id: Optional[int] = None
    location: Optional[Tuple[Any, ...]] = None
    is_visible: bool = True
    node_type: Any = NodeType.WAYPOINT
    connections: Tuple[int, ...] = ()
    level: Optional[int] = None
    for_update: bool = False

    @staticmethod
    def from_entity(node: RouteNode) -> 'NodeDraft':
        return NodeDraft(
            floor_id=node.floor_id,
            id=node.id,
            location=node.location,
            is_visible=node.is_visible,
            node_type=node.node_type,
            connections=tuple(sorted(node.connections)),
            level=node.level,
            for_update=True,
        )

    def with_id(self, node_id: int) -> 'NodeDraft':
        return replace(self, id=node_id, for_update=True)

    def with_floor(self, floor_id: int) -> 'NodeDraft':
        return replace(self, floor_id=floor_id)

    def with_location(self, lng: float, lat: float) -> 'NodeDraft':
        return replace(self, location=(lng, lat))

    def without_location(self) -> 'NodeDraft':
        return replace(self, location=None)

    def with_visibility(self, is_visible: bool) -> 'NodeDraft':
        return replace(self, is_visible=is_visible)

    def with_node_type(self, node_type: Any) -> 'NodeDraft':
        return replace(self, node_type=node_type)

    def with_connections(self, node_ids: Iterable[int]) -> 'NodeDraft':
        return replace(self, connections=tuple(dict.fromkeys(node_ids)))

    def with_connection(self, node_id: int) -> 'NodeDraft':
        if node_id in self.connections:
            return self
        return replace(self, connections=self.connections + (node_id,))

    def without_connection(self, node_id: int) -> 'NodeDraft':
        return replace(self, connections=tuple(c for c in self.connections if c != node_id))

    def with_level(self, level: Optional[int]) -> 'NodeDraft':
        return replace(self, level=level)

    def validate(self) -> ValidationResult:
        result = ValidationResult(subject="RouteNode")
        if self.for_update and _check_required(result, "id", self.id):
            _check_identifier(result, "id", self.id)
        if _check_required(result, "floor_id", self.floor_id):
            _check_identifier(result, "floor_id", self.floor_id)
        if self.location is not None:
            _check_location(result, "location", self.location)
        _coerce_enum(result, "node_type", NodeType, self.node_type)
        for target in self.connections:
            if not _is_int(target):
                result.add_issue(rules.ENT_011.issue(field="connections", value=target))
            elif self.id is not None and target == self.id:
                result.add_issue(rules.ENT_010.issue(field="connections", value=target))
        if self.level is not None and not _is_int(self.level):
            result.add_issue(rules.ENT_011.issue(field="level", value=self.level))
        return result

    def build(self) -> RouteNode:
        result = self.validate()
        _raise_on_failure(result)
        return RouteNode(
            floor_id=self.floor_id,
            id=self.id,
            location=_as_point(self.location) if self.location is not None else None,
            is_visible=bool(self.is_visible),
            node_type=NodeType(self.node_type),
            connections=frozenset(self.connections),
            level=self.level,
        )


# =============================================================================
# POLYGON
# =============================================================================

@dataclass(frozen=True)
class PolygonDraft:
    """Draft of a Polygon. Rings may be given open or closed."""
    floor_id: Optional[int] = None
    id: Optional[int] = None
    name: Optional[str] = None
    description: str = ""
    polygon_type: Any = PolygonType.ROOM
    is_visible: bool = True
    color: str = "#3b82f6"
    category_id: Optional[int] = None
    ring: Tuple[Tuple[Any, ...], ...] = ()
    for_update: bool = False

    @staticmethod
    def from_entity(polygon: Polygon) -> 'PolygonDraft':
        return PolygonDraft(
            floor_id=polygon.floor_id,
            id=polygon.id,
            name=polygon.name,
            description=polygon.description,
            polygon_type=polygon.polygon_type,
            is_visible=polygon.is_visible,
            color=polygon.color,
            category_id=polygon.category_id,
            ring=polygon.ring,
            for_update=True,
        )

    def with_id(self, polygon_id: int) -> 'PolygonDraft':
        return replace(self, id=polygon_id, for_update=True)

    def with_floor(self, floor_id: int) -> 'PolygonDraft':
        return replace(self, floor_id=floor_id)

    def with_name(self, name: str) -> 'PolygonDraft':
        return replace(self, name=name)

    def with_description(self, description: str) -> 'PolygonDraft':
        return replace(self, description=description)

    def with_type(self, polygon_type: Any) -> 'PolygonDraft':
        return replace(self, polygon_type=polygon_type)

    def with_visibility(self, is_visible: bool) -> 'PolygonDraft':
        return replace(self, is_visible=is_visible)

    def with_color(self, color: str) -> 'PolygonDraft':
        return replace(self, color=color)

    def with_category(self, category_id: Optional[int]) -> 'PolygonDraft':
        return replace(self, category_id=category_id)

    def with_ring(self, points: Iterable[Sequence[float]]) -> 'PolygonDraft':
        return replace(self, ring=_open_ring(points))

    def validate(self) -> ValidationResult:
        result = ValidationResult(subject="Polygon")
        if self.for_update and _check_required(result, "id", self.id):
            _check_identifier(result, "id", self.id)
        if _check_required(result, "floor_id", self.floor_id):
            _check_identifier(result, "floor_id", self.floor_id)
        if _check_required(result, "name", self.name):
            _check_max_length(result, "name", self.name, rules.NAME_MAX_LENGTH)
        _check_max_length(result, "description", self.description, rules.DESCRIPTION_MAX_LENGTH)
        _coerce_enum(result, "type", PolygonType, self.polygon_type)
        if not isinstance(self.color, str) or not rules.HEX_COLOR_PATTERN.match(self.color):
            result.add_issue(rules.ENT_004.issue(field="color", value=self.color))
        if self.category_id is not None:
            _check_identifier(result, "category_id", self.category_id)
        self._validate_ring(result)
        return result

    def _validate_ring(self, result: ValidationResult) -> None:
        count = len(self.ring)
        if count < rules.POLYGON_MIN_POINTS:
            result.add_issue(rules.ENT_005.issue(
                field="ring", count=count, min=rules.POLYGON_MIN_POINTS))
            return
        if count > rules.POLYGON_MAX_POINTS:
            result.add_issue(rules.ENT_009.issue(
                field="ring", count=count, max=rules.POLYGON_MAX_POINTS))
            return
        for index, point in enumerate(self.ring):
            if not _valid_lnglat(point):
                result.add_issue(rules.ENT_006.issue(field=f"ring[{index}]", value=point))
                return

    def build(self) -> Polygon:
        _raise_on_failure(self.validate())
        return Polygon(
            floor_id=self.floor_id,
            name=self.name.strip(),
            ring=tuple(_as_point(p) for p in self.ring),
            id=self.id,
            description=self.description or "",
            polygon_type=PolygonType(self.polygon_type),
            is_visible=bool(self.is_visible),
            color=self.color,
            category_id=self.category_id,
        )


# =============================================================================
# BEACON
# =============================================================================

@dataclass(frozen=True)
class BeaconDraft:
    """Draft of a Beacon."""
    floor_id: Optional[int] = None
    id: Optional[int] = None
    name: Optional[str] = None
    beacon_type_id: Optional[int] = None
    uuid: Optional[str] = None
    major_id: Optional[int] = None
    minor_id: Optional[int] = None
    location: Optional[Tuple[Any, ...]] = None
    is_active: bool = True
    is_visible: bool = True
    battery_level: Any = 100
    last_seen: Optional[str] = None
    beacon_type_name: Optional[str] = None
    for_update: bool = False

    @staticmethod
    def from_entity(beacon: Beacon) -> 'BeaconDraft':
        return BeaconDraft(
            floor_id=beacon.floor_id,
            id=beacon.id,
            name=beacon.name,
            beacon_type_id=beacon.beacon_type_id,
            uuid=beacon.uuid,
            major_id=beacon.major_id,
            minor_id=beacon.minor_id,
            location=beacon.location,
            is_active=beacon.is_active,
            is_visible=beacon.is_visible,
            battery_level=beacon.battery_level,
            last_seen=beacon.last_seen,
            beacon_type_name=beacon.beacon_type_name,
            for_update=True,
        )

    def with_id(self, beacon_id: int) -> 'BeaconDraft':
        return replace(self, id=beacon_id, for_update=True)

    def with_floor(self, floor_id: int) -> 'BeaconDraft':
        return replace(self, floor_id=floor_id)

    def with_name(self, name: str) -> 'BeaconDraft':
        return replace(self, name=name)

    def with_beacon_type(self, beacon_type_id: Optional[int]) -> 'BeaconDraft':
        return replace(self, beacon_type_id=beacon_type_id)

    def with_ibeacon(self, uuid: Optional[str], major_id: Optional[int],
                     minor_id: Optional[int]) -> 'BeaconDraft':
        return replace(self, uuid=uuid, major_id=major_id, minor_id=minor_id)

    def with_uuid(self, uuid: Optional[str]) -> 'BeaconDraft':
        return replace(self, uuid=uuid)

    def with_major(self, major_id: Optional[int]) -> 'BeaconDraft':
        return replace(self, major_id=major_id)

    def with_minor(self, minor_id: Optional[int]) -> 'BeaconDraft':
        return replace(self, minor_id=minor_id)

    def with_location(self, lng: float, lat: float) -> 'BeaconDraft':
        return replace(self, location=(lng, lat))

    def with_active(self, is_active: bool) -> 'BeaconDraft':
        return replace(self, is_active=is_active)

    def with_visibility(self, is_visible: bool) -> 'BeaconDraft':
        return replace(self, is_visible=is_visible)

    def with_battery(self, level: int) -> 'BeaconDraft':
        return replace(self, battery_level=level)

    def with_last_seen(self, timestamp: Optional[str]) -> 'BeaconDraft':
        return replace(self, last_seen=timestamp)

    def validate(self) -> ValidationResult:
        result = ValidationResult(subject="Beacon")
        if self.for_update and _check_required(result, "id", self.id):
            _check_identifier(result, "id", self.id)
        if _check_required(result, "floor_id", self.floor_id):
            _check_identifier(result, "floor_id", self.floor_id)
        if _check_required(result, "name", self.name):
            _check_max_length(result, "name", self.name, rules.NAME_MAX_LENGTH)
        if self.beacon_type_id is not None:
            _check_identifier(result, "beacon_type_id", self.beacon_type_id)
        if self.uuid is not None and (not isinstance(self.uuid, str)
                                      or not rules.UUID_PATTERN.match(self.uuid)):
            result.add_issue(rules.ENT_003.issue(field="uuid", value=self.uuid))
        if self.major_id is not None:
            _check_int_range(result, "major_id", self.major_id,
                             rules.IBEACON_ID_MIN, rules.IBEACON_ID_MAX)
        if self.minor_id is not None:
            _check_int_range(result, "minor_id", self.minor_id,
                             rules.IBEACON_ID_MIN, rules.IBEACON_ID_MAX)
        if self.location is not None:
            _check_location(result, "location", self.location)
        _check_range(result, "battery_level", self.battery_level,
                     rules.BATTERY_LEVEL_MIN, rules.BATTERY_LEVEL_MAX)
        return result

    def build(self) -> Beacon:
        _raise_on_failure(self.validate())
        return Beacon(
            floor_id=self.floor_id,
            name=self.name.strip(),
            id=self.id,
            beacon_type_id=self.beacon_type_id,
            uuid=self.uuid.lower() if self.uuid else None,
            major_id=self.major_id,
            minor_id=self.minor_id,
            location=_as_point(self.location) if self.location is not None else None,
            is_active=bool(self.is_active),
            is_visible=bool(self.is_visible),
            battery_level=int(self.battery_level),
            last_seen=self.last_seen,
            beacon_type_name=self.beacon_type_name,
        )


# =============================================================================
# FLOOR / BUILDING
# =============================================================================

@dataclass(frozen=True)
class FloorDraft:
    id: Optional[int] = None
    name: Optional[str] = None
    floor_number: Optional[int] = None
    building_id: Optional[int] = None
    building: Optional[Building] = None
    nodes: Optional[Tuple[RouteNode, ...]] = None
    polygons: Optional[Tuple[Polygon, ...]] = None
    for_update: bool = False

    @staticmethod
    def from_entity(floor: Floor) -> 'FloorDraft':
        return FloorDraft(
            id=floor.id,
            name=floor.name,
            floor_number=floor.floor_number,
            building_id=floor.building_id,
            building=floor.building,
            nodes=floor.nodes,
            polygons=floor.polygons,
            for_update=True,
        )

    def with_id(self, floor_id: int) -> 'FloorDraft':
        return replace(self, id=floor_id, for_update=True)

    def with_name(self, name: str) -> 'FloorDraft':
        return replace(self, name=name)

    def with_floor_number(self, floor_number: int) -> 'FloorDraft':
        return replace(self, floor_number=floor_number)

    def with_building(self, building_id: int,
                      building: Optional[Building] = None) -> 'FloorDraft':
        return replace(self, building_id=building_id, building=building)

    def with_nodes(self, nodes: Optional[Iterable[RouteNode]]) -> 'FloorDraft':
        return replace(self, nodes=tuple(nodes) if nodes is not None else None)

    def with_polygons(self, polygons: Optional[Iterable[Polygon]]) -> 'FloorDraft':
        return replace(self, polygons=tuple(polygons) if polygons is not None else None)

    def validate(self) -> ValidationResult:
        result = ValidationResult(subject="Floor")
        if self.for_update and _check_required(result, "id", self.id):
            _check_identifier(result, "id", self.id)
        if _check_required(result, "name", self.name):
            _check_max_length(result, "name", self.name, rules.NAME_MAX_LENGTH)
        if _check_required(result, "floor_number", self.floor_number):
            _check_int_range(result, "floor_number", self.floor_number,
                             rules.FLOOR_NUMBER_MIN, rules.FLOOR_NUMBER_MAX)
        if _check_required(result, "building_id", self.building_id):
            _check_identifier(result, "building_id", self.building_id)
        return result

    def build(self) -> Floor:
        _raise_on_failure(self.validate())
        return Floor(
            id=self.id,
            name=self.name.strip(),
            floor_number=self.floor_number,
            building_id=self.building_id,
            building=self.building,
            nodes=self.nodes,
            polygons=self.polygons,
        )


@dataclass(frozen=True)
class BuildingDraft:
    id: Optional[int] = None
    name: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    for_update: bool = False

    @staticmethod
    def from_entity(building: Building) -> 'BuildingDraft':
        return BuildingDraft(
            id=building.id,
            name=building.name,
            description=building.description,
            created_at=building.created_at,
            updated_at=building.updated_at,
            for_update=True,
        )

    def with_id(self, building_id: int) -> 'BuildingDraft':
        return replace(self, id=building_id, for_update=True)

    def with_name(self, name: str) -> 'BuildingDraft':
        return replace(self, name=name)

    def with_description(self, description: Optional[str]) -> 'BuildingDraft':
        return replace(self, description=description)

    def with_timestamps(self, created_at: str, updated_at: str) -> 'BuildingDraft':
        return replace(self, created_at=created_at, updated_at=updated_at)

    def validate(self) -> ValidationResult:
        result = ValidationResult(subject="Building")
        if self.for_update and _check_required(result, "id", self.id):
            _check_identifier(result, "id", self.id)
        if _check_required(result, "name", self.name):
            _check_max_length(result, "name", self.name, rules.NAME_MAX_LENGTH)
        _check_max_length(result, "description", self.description, rules.DESCRIPTION_MAX_LENGTH)
        if self.for_update:
            _check_required(result, "created_at", self.created_at)
            _check_required(result, "updated_at", self.updated_at)
        return result

    def build(self) -> Building:
        _raise_on_failure(self.validate())
        return Building(
            id=self.id,
            name=self.name.strip(),
            description=self.description,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
