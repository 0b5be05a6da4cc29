"""
Connectivity service: the only writer of persisted floor-plan state.

Orchestrates entity creation, symmetric node connection, multi-floor
connector replication, partial updates and bulk deletion on top of a
Persistence collaborator.

Multi-step operations are best effort, not transactional. When
``create_multi_floor_nodes`` or ``bulk_delete`` raises, some steps may
already have taken effect on the server; callers reconcile by reloading the
floor (``load_floor``) and, if needed, ``repair_connections``.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from indoor_editor.errors import (
    ConnectionFailedError, InvalidActionError, PersistenceError,
)
from indoor_editor.model.drafts import BeaconDraft, NodeDraft, PolygonDraft
from indoor_editor.model.entities import (
    Beacon, EntityKind, EntityRef, LngLat, NodeType, Polygon, PolygonType, RouteNode,
)
from indoor_editor.model.layout import FloorLayout
from indoor_editor.validation.graph_checks import asymmetric_edges
from .persistence import Persistence

logger = logging.getLogger(__name__)

DEFAULT_POLYGON_COLOR = "#3b82f6"

# Marker for "field not supplied" in partial updates
_UNSET: Any = object()


@contextmanager
def _logged(operation: str, **context) -> Iterator[None]:
    logger.info("%s %s", operation, context)
    try:
        yield
    except Exception as e:
        logger.error("Failed to %s: %s", operation, e)
        raise
    logger.info("%s succeeded", operation)


class ConnectivityService:
    """Persists editor actions while keeping the node graph undirected.

    Args:
        persistence: Server boundary
        symmetric_connections: True when one ``add_connection`` call lists
            the edge on both nodes; False issues one call per direction.
    """

    def __init__(self, persistence: Persistence, symmetric_connections: bool = True):
        self.persistence = persistence
        self.symmetric_connections = symmetric_connections
        self._deleters = {
            EntityKind.POLYGON: persistence.polygons.delete,
            EntityKind.BEACON: persistence.beacons.delete,
            EntityKind.NODE: persistence.nodes.delete,
        }

    # -------------------------------------------------------------------------
    # Route nodes
    # -------------------------------------------------------------------------

    async def connect(self, node_id: int, target_id: int) -> None:
        """Establish the undirected edge node_id <-> target_id."""
        if node_id == target_id:
            raise InvalidActionError(f"Node {node_id} cannot be connected to itself")
        await self.persistence.add_connection(node_id, target_id)
        if not self.symmetric_connections:
            await self.persistence.add_connection(target_id, node_id)

    async def create_route_node(self, floor_id: int, location: LngLat,
                                node_type: NodeType = NodeType.WAYPOINT,
                                connect_to: Optional[int] = None) -> RouteNode:
        """Create a node and, optionally, connect it to ``connect_to``.

        Not atomic. If the edge fails after the node was created the node
        stays persisted and ConnectionFailedError carries its id.
        """
        node = (NodeDraft()
                .with_floor(floor_id)
                .with_location(*location)
                .with_visibility(True)
                .with_node_type(node_type)
                .build())

        with _logged("create route node", floor_id=floor_id, location=location,
                     node_type=node.node_type.value, connect_to=connect_to):
            created = await self.persistence.nodes.create(node)
            if created.id is None:
                raise PersistenceError("Server did not return a node id")

            if connect_to is not None:
                try:
                    await self.connect(created.id, connect_to)
                except PersistenceError as e:
                    raise ConnectionFailedError(created.id, connect_to, e) from e
                created = created.with_connection(connect_to)
        return created

    async def create_multi_floor_nodes(self, floor_ids: Sequence[int], location: LngLat,
                                       node_type: NodeType, current_floor_id: int,
                                       connect_to: Optional[int] = None) -> List[RouteNode]:
        """Create one connector node per floor and connect them all pairwise.

        Nodes are created strictly in ``floor_ids`` order; only the node on
        ``current_floor_id`` is connected to ``connect_to``. The complete
        graph over the new nodes is built after every node exists.
        """
        floor_ids = list(floor_ids)
        if len(set(floor_ids)) != len(floor_ids):
            raise InvalidActionError(f"Duplicate floors in connector request: {floor_ids}")
        if current_floor_id not in floor_ids:
            raise InvalidActionError(f"Connector must include the current floor {current_floor_id}")

        with _logged("create multi-floor nodes", floor_ids=floor_ids, location=location,
                     node_type=NodeType(node_type).value, connect_to=connect_to):
            created: List[RouteNode] = []
            for floor_id in floor_ids:
                target = connect_to if floor_id == current_floor_id else None
                created.append(await self.create_route_node(floor_id, location, node_type, target))

            for a, b in itertools.combinations(range(len(created)), 2):
                await self.connect(created[a].id, created[b].id)
                created[a] = created[a].with_connection(created[b].id)
                created[b] = created[b].with_connection(created[a].id)
        return created

    async def repair_connections(self, layout: FloorLayout) -> int:
        """Add the missing reverse edge for every asymmetric edge on a floor.

        Returns:
            Number of edges repaired
        """
        missing = asymmetric_edges(layout.nodes)
        with _logged("repair connections", floor_id=layout.floor_id, missing=len(missing)):
            for node_id, target_id in missing:
                await self.connect(target_id, node_id)
        return len(missing)

    # -------------------------------------------------------------------------
    # Polygons / beacons
    # -------------------------------------------------------------------------

    async def create_polygon(self, floor_id: int, name: str, ring: Iterable[LngLat],
                             description: str = "",
                             polygon_type: PolygonType = PolygonType.ROOM,
                             color: str = DEFAULT_POLYGON_COLOR,
                             category_id: Optional[int] = None) -> Polygon:
        polygon = (PolygonDraft()
                   .with_floor(floor_id)
                   .with_name(name)
                   .with_description(description)
                   .with_type(polygon_type)
                   .with_visibility(True)
                   .with_color(color)
                   .with_category(category_id)
                   .with_ring(ring)
                   .build())

        with _logged("create polygon", floor_id=floor_id, name=name,
                     points=len(polygon.ring)):
            return await self.persistence.polygons.create(polygon)

    async def create_beacon(self, floor_id: int, name: str, location: LngLat,
                            beacon_type_id: Optional[int] = None,
                            uuid: Optional[str] = None,
                            major_id: Optional[int] = None,
                            minor_id: Optional[int] = None,
                            is_active: bool = True,
                            battery_level: int = 100) -> Beacon:
        beacon = (BeaconDraft()
                  .with_floor(floor_id)
                  .with_name(name)
                  .with_location(*location)
                  .with_beacon_type(beacon_type_id)
                  .with_ibeacon(uuid, major_id, minor_id)
                  .with_active(is_active)
                  .with_visibility(True)
                  .with_battery(battery_level)
                  .build())

        with _logged("create beacon", floor_id=floor_id, name=name):
            return await self.persistence.beacons.create(beacon)

    async def update_polygon(self, polygon: Polygon, *, name: str = _UNSET,
                             description: str = _UNSET,
                             polygon_type: PolygonType = _UNSET,
                             color: str = _UNSET,
                             category_id: Optional[int] = _UNSET,
                             is_visible: bool = _UNSET) -> Polygon:
        """Merge the supplied fields into ``polygon`` and persist the result."""
        draft = PolygonDraft.from_entity(polygon)
        if name is not _UNSET:
            draft = draft.with_name(name)
        if description is not _UNSET:
            draft = draft.with_description(description)
        if polygon_type is not _UNSET:
            draft = draft.with_type(polygon_type)
        if color is not _UNSET:
            draft = draft.with_color(color)
        if category_id is not _UNSET:
            draft = draft.with_category(category_id)
        if is_visible is not _UNSET:
            draft = draft.with_visibility(is_visible)
        merged = draft.build()

        with _logged("update polygon", polygon_id=polygon.id):
            return await self.persistence.polygons.update(merged)

    async def update_beacon(self, beacon: Beacon, *, name: str = _UNSET,
                            is_active: bool = _UNSET,
                            battery_level: int = _UNSET,
                            is_visible: bool = _UNSET) -> Beacon:
        """Merge the supplied fields into ``beacon`` and persist the result."""
        draft = BeaconDraft.from_entity(beacon)
        if name is not _UNSET:
            draft = draft.with_name(name)
        if is_active is not _UNSET:
            draft = draft.with_active(is_active)
        if battery_level is not _UNSET:
            draft = draft.with_battery(battery_level)
        if is_visible is not _UNSET:
            draft = draft.with_visibility(is_visible)
        merged = draft.build()

        with _logged("update beacon", beacon_id=beacon.id):
            return await self.persistence.beacons.update(merged)

    # -------------------------------------------------------------------------
    # Deletion / floor-level operations
    # -------------------------------------------------------------------------

    async def bulk_delete(self, refs: Iterable[EntityRef]) -> None:
        """Delete every referenced entity; all deletes are dispatched together.

        Any failure rejects the whole call. Deletes that already completed
        are not restored and no partial success is reported.
        """
        refs = list(refs)
        with _logged("bulk delete", count=len(refs)):
            await asyncio.gather(*(self._deleters[ref.kind](ref.id) for ref in refs))

    async def recalculate_poi_nodes(self, floor_id: int) -> Dict[str, Any]:
        """Reassign POIs on a floor to their nearest node (server side)."""
        with _logged("recalculate POI nodes", floor_id=floor_id):
            result = await self.persistence.recalculate_closest_nodes(floor_id)
        return {'updated_pois': result.get('updated_pois', 0),
                'message': result.get('message', '')}

    async def load_floor(self, floor_id: int) -> FloorLayout:
        """Fetch polygons, nodes and beacons of a floor concurrently."""
        with _logged("load floor", floor_id=floor_id):
            polygons, nodes, beacons = await asyncio.gather(
                self.persistence.polygons.list_by_floor(floor_id),
                self.persistence.nodes.list_by_floor(floor_id),
                self.persistence.beacons.list_by_floor(floor_id),
            )
        return FloorLayout(floor_id, tuple(polygons), tuple(nodes), tuple(beacons))
