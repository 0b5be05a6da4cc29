"""
Spatial graph model: entities, validated drafts, wire codec and per-floor
layouts.
"""

from .entities import (
    LngLat,
    NodeType,
    PolygonType,
    EntityKind,
    EntityRef,
    RouteNode,
    Polygon,
    Beacon,
    Floor,
    Building,
    CatalogItem,
    edge_key,
)
from .drafts import (
    NodeDraft,
    PolygonDraft,
    BeaconDraft,
    FloorDraft,
    BuildingDraft,
)
from .layout import FloorLayout

__all__ = [
    # Entities
    'LngLat',
    'NodeType',
    'PolygonType',
    'EntityKind',
    'EntityRef',
    'RouteNode',
    'Polygon',
    'Beacon',
    'Floor',
    'Building',
    'CatalogItem',
    'edge_key',
    # Drafts
    'NodeDraft',
    'PolygonDraft',
    'BeaconDraft',
    'FloorDraft',
    'BuildingDraft',
    # Layout
    'FloorLayout',
]
