"""
Per-floor entity collections held by the host.

FloorLayout is the in-memory snapshot of one floor: its polygons, route
nodes and beacons. It is immutable; every change returns a new layout.
Hit testing for the Select and PlaceRouteNode tools lives here too.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from indoor_editor.errors import InvalidActionError
from .drafts import BeaconDraft, NodeDraft, PolygonDraft
from .entities import Beacon, EntityKind, EntityRef, LngLat, Polygon, RouteNode

Entity = Union[Polygon, Beacon, RouteNode]


def point_in_ring(point: LngLat, ring: Sequence[LngLat]) -> bool:
    """Even-odd test of ``point`` against an open or closed ring."""
    pts = np.asarray(ring, dtype=float)
    x, y = point
    xi, yi = pts[:, 0], pts[:, 1]
    xj, yj = np.roll(xi, 1), np.roll(yi, 1)

    crosses = (yi > y) != (yj > y)
    with np.errstate(divide='ignore', invalid='ignore'):
        x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
    inside = crosses & (x < x_cross)
    return bool(np.count_nonzero(inside) % 2)


def ring_centroid(ring: Sequence[LngLat]) -> LngLat:
    """Area centroid of a ring; vertex mean when the ring is degenerate."""
    pts = np.asarray(ring, dtype=float)
    x, y = pts[:, 0], pts[:, 1]
    x_next, y_next = np.roll(x, -1), np.roll(y, -1)
    cross = x * y_next - x_next * y
    area = cross.sum() / 2.0
    if abs(area) < 1e-18:
        mean = pts.mean(axis=0)
        return (float(mean[0]), float(mean[1]))
    cx = ((x + x_next) * cross).sum() / (6.0 * area)
    cy = ((y + y_next) * cross).sum() / (6.0 * area)
    return (float(cx), float(cy))


def _nearest(items: Sequence, point: LngLat, threshold: float):
    """Item whose location is nearest to ``point`` and strictly within ``threshold``."""
    candidates = [item for item in items if item.is_visible and item.location is not None]
    if not candidates:
        return None
    coords = np.array([item.location for item in candidates], dtype=float)
    distances = np.hypot(coords[:, 0] - point[0], coords[:, 1] - point[1])
    index = int(np.argmin(distances))
    if distances[index] < threshold:
        return candidates[index]
    return None


@dataclass(frozen=True)
class FloorLayout:
    """Entities of one floor, in draw order (later polygons are on top)."""
    floor_id: int
    polygons: Tuple[Polygon, ...] = ()
    nodes: Tuple[RouteNode, ...] = ()
    beacons: Tuple[Beacon, ...] = ()

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def node(self, node_id: int) -> Optional[RouteNode]:
        return next((n for n in self.nodes if n.id == node_id), None)

    def polygon(self, polygon_id: int) -> Optional[Polygon]:
        return next((p for p in self.polygons if p.id == polygon_id), None)

    def beacon(self, beacon_id: int) -> Optional[Beacon]:
        return next((b for b in self.beacons if b.id == beacon_id), None)

    def get(self, ref: EntityRef) -> Optional[Entity]:
        lookup = {
            EntityKind.POLYGON: self.polygon,
            EntityKind.BEACON: self.beacon,
            EntityKind.NODE: self.node,
        }
        return lookup[ref.kind](ref.id)

    def node_index(self) -> Dict[int, RouteNode]:
        return {n.id: n for n in self.nodes if n.id is not None}

    def refs(self) -> List[EntityRef]:
        """References to every persisted entity on the floor."""
        entities: List[Entity] = [*self.polygons, *self.beacons, *self.nodes]
        return [e.ref for e in entities if e.id is not None]

    @property
    def is_empty(self) -> bool:
        return not (self.polygons or self.nodes or self.beacons)

    # -------------------------------------------------------------------------
    # Picking
    # -------------------------------------------------------------------------

    def node_at(self, point: LngLat, threshold: float) -> Optional[RouteNode]:
        return _nearest(self.nodes, point, threshold)

    def beacon_at(self, point: LngLat, threshold: float) -> Optional[Beacon]:
        return _nearest(self.beacons, point, threshold)

    def polygon_at(self, point: LngLat) -> Optional[Polygon]:
        """Top-most visible polygon containing ``point``."""
        for polygon in reversed(self.polygons):
            if polygon.is_visible and point_in_ring(point, polygon.ring):
                return polygon
        return None

    def pick(self, point: LngLat, threshold: float) -> Optional[EntityRef]:
        """Entity under ``point``: nodes, then beacons, then polygons."""
        hit = self.node_at(point, threshold) or self.beacon_at(point, threshold)
        if hit is None:
            hit = self.polygon_at(point)
        return hit.ref if hit is not None else None

    # -------------------------------------------------------------------------
    # Derived layouts
    # -------------------------------------------------------------------------

    def with_visibility(self, ref: EntityRef, visible: bool) -> 'FloorLayout':
        entity = self.get(ref)
        if entity is None:
            raise InvalidActionError(f"No {ref.kind.value} {ref.id} on floor {self.floor_id}")
        if ref.kind is EntityKind.POLYGON:
            return self.with_polygon(PolygonDraft.from_entity(entity).with_visibility(visible).build())
        if ref.kind is EntityKind.BEACON:
            return self.with_beacon(BeaconDraft.from_entity(entity).with_visibility(visible).build())
        return self.with_node(NodeDraft.from_entity(entity).with_visibility(visible).build())

    def with_polygon(self, polygon: Polygon) -> 'FloorLayout':
        return replace(self, polygons=_upsert(self.polygons, polygon))

    def with_beacon(self, beacon: Beacon) -> 'FloorLayout':
        return replace(self, beacons=_upsert(self.beacons, beacon))

    def with_node(self, node: RouteNode) -> 'FloorLayout':
        return replace(self, nodes=_upsert(self.nodes, node))

    def with_edge(self, a: int, b: int) -> 'FloorLayout':
        """Mirror a persisted edge onto whichever endpoints are on this floor."""
        nodes = tuple(
            n.with_connection(b) if n.id == a else n.with_connection(a) if n.id == b else n
            for n in self.nodes
        )
        return replace(self, nodes=nodes)

    def without(self, ref: EntityRef) -> 'FloorLayout':
        if ref.kind is EntityKind.POLYGON:
            return replace(self, polygons=tuple(p for p in self.polygons if p.id != ref.id))
        if ref.kind is EntityKind.BEACON:
            return replace(self, beacons=tuple(b for b in self.beacons if b.id != ref.id))
        nodes = tuple(n.without_connection(ref.id) for n in self.nodes if n.id != ref.id)
        return replace(self, nodes=nodes)


def _upsert(items: Tuple, entity) -> Tuple:
    """Replace the item with the same id in place, or append."""
    for index, item in enumerate(items):
        if item.id is not None and item.id == entity.id:
            return items[:index] + (entity,) + items[index + 1:]
    return items + (entity,)
