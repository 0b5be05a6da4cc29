"""
Spatial entities for the indoor floor-plan editor.

Defines the value types the editor reads and writes:
- NodeType / PolygonType / EntityKind: closed vocabularies
- EntityRef: (kind, id) tag used for selection and bulk deletion
- RouteNode: routable graph vertex with an undirected connection set
- Polygon: closed-ring area feature (room, wall, vertical transit footprint)
- Beacon: positioning transmitter with optional iBeacon identification
- Floor / Building: containers referenced by the entities above
- CatalogItem: beacon type / POI category entry, listed but never edited here

All entities are frozen. They are produced by the drafts in ``drafts`` (or
decoded by ``transport``) and are never partially valid. Polygon rings are
stored open: the closing vertex is added on the wire only.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import FrozenSet, Optional, Tuple

LngLat = Tuple[float, float]


class NodeType(Enum):
    """Kind of route node."""
    WAYPOINT = "waypoint"
    ELEVATOR = "elevator"
    STAIRS = "stairs"

    @property
    def is_connector(self) -> bool:
        """True for node types that join floors."""
        return self in (NodeType.ELEVATOR, NodeType.STAIRS)

    @property
    def glyph(self) -> Optional[str]:
        """Single-letter marker glyph, None for plain waypoints."""
        return {NodeType.ELEVATOR: "E", NodeType.STAIRS: "S"}.get(self)


class PolygonType(Enum):
    """Kind of area feature."""
    ROOM = "Room"
    STAIRS = "Stairs"
    ELEVATOR = "Elevator"
    WALL = "Wall"


class EntityKind(Enum):
    """Tag for the three floor-scoped entity kinds."""
    POLYGON = "polygon"
    BEACON = "beacon"
    NODE = "node"


@dataclass(frozen=True)
class EntityRef:
    """Reference to a persisted entity by kind and identifier."""
    kind: EntityKind
    id: int

    @property
    def key(self) -> str:
        return f"{self.kind.value}-{self.id}"


def edge_key(a: int, b: int) -> str:
    """Order-independent key for the undirected edge between two nodes."""
    low, high = sorted((a, b))
    return f"{low}-{high}"


@dataclass(frozen=True)
class RouteNode:
    """A routable vertex of the pedestrian navigation graph.

    ``id`` is None until the server assigns one. ``location`` is None while
    the node has not been geometrically placed.
    """
    floor_id: int
    id: Optional[int] = None
    location: Optional[LngLat] = None
    is_visible: bool = True
    node_type: NodeType = NodeType.WAYPOINT
    connections: FrozenSet[int] = field(default_factory=frozenset)
    level: Optional[int] = None

    @property
    def is_placed(self) -> bool:
        return self.location is not None

    @property
    def ref(self) -> EntityRef:
        return EntityRef(EntityKind.NODE, self.id)

    def is_connected_to(self, other_id: int) -> bool:
        return other_id in self.connections

    def with_connection(self, other_id: int) -> 'RouteNode':
        """Return a copy listing ``other_id``; self-references are ignored."""
        if other_id == self.id or other_id in self.connections:
            return self
        return replace(self, connections=self.connections | {other_id})

    def without_connection(self, other_id: int) -> 'RouteNode':
        if other_id not in self.connections:
            return self
        return replace(self, connections=self.connections - {other_id})


@dataclass(frozen=True)
class Polygon:
    """A closed-ring area feature. ``ring`` holds at least three vertices."""
    floor_id: int
    name: str
    ring: Tuple[LngLat, ...]
    id: Optional[int] = None
    description: str = ""
    polygon_type: PolygonType = PolygonType.ROOM
    is_visible: bool = True
    color: str = "#3b82f6"
    category_id: Optional[int] = None

    @property
    def ref(self) -> EntityRef:
        return EntityRef(EntityKind.POLYGON, self.id)

    @property
    def closed_ring(self) -> Tuple[LngLat, ...]:
        """The ring with its first vertex repeated at the end."""
        return self.ring + (self.ring[0],)


@dataclass(frozen=True)
class Beacon:
    """A fixed positioning transmitter."""
    floor_id: int
    name: str
    id: Optional[int] = None
    beacon_type_id: Optional[int] = None
    uuid: Optional[str] = None
    major_id: Optional[int] = None
    minor_id: Optional[int] = None
    location: Optional[LngLat] = None
    is_active: bool = True
    is_visible: bool = True
    battery_level: int = 100
    last_seen: Optional[str] = None
    beacon_type_name: Optional[str] = None

    @property
    def ref(self) -> EntityRef:
        return EntityRef(EntityKind.BEACON, self.id)

    @property
    def has_ibeacon_identity(self) -> bool:
        return self.uuid is not None and self.major_id is not None and self.minor_id is not None


@dataclass(frozen=True)
class Building:
    name: str
    id: Optional[int] = None
    description: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass(frozen=True)
class Floor:
    """A floor of a building.

    ``nodes`` and ``polygons`` are optional cached collections; the editor
    normally loads them per floor through the persistence collaborator.
    """
    name: str
    floor_number: int
    building_id: int
    id: Optional[int] = None
    building: Optional[Building] = None
    nodes: Optional[Tuple[RouteNode, ...]] = None
    polygons: Optional[Tuple[Polygon, ...]] = None


@dataclass(frozen=True)
class CatalogItem:
    """Read-only catalog entry (beacon type or POI category)."""
    id: int
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
