"""
Drawing mode state machine.

Interprets tool selection and projected pointer clicks into pending and
committed entities:

- PlacePolygon accumulates ring points until a click lands near the first
  point of a ring with at least three points; the ring is then named through
  the host dialog and handed to the connectivity service.
- PlaceRouteNode places nodes and chains them. A new node connects to the
  node explicitly picked for connection, else to the last placed node, and
  becomes the new last placed node.
- PlaceConnector asks the host for a node type and floor set, then
  replicates a connector node on every selected floor.
- Select picks the entity under the pointer; Pan ignores clicks.

Node placements are serialized. A placement issued while another one is in
flight waits for it and then chains to its result. Chaining state is only
promoted once persistence resolves and is restored to its pre-attempt value
when persistence fails.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

from indoor_editor.errors import InvalidActionError
from indoor_editor.model.entities import (
    Beacon, EntityKind, EntityRef, LngLat, NodeType, Polygon, PolygonType, RouteNode,
)
from indoor_editor.model.layout import FloorLayout
from indoor_editor.services.connectivity import DEFAULT_POLYGON_COLOR, ConnectivityService
from .dialog_host import WALL_COLOR, ConnectorSelection, DialogHost
from .tools import Tool

logger = logging.getLogger(__name__)

DEFAULT_CLOSE_THRESHOLD = 0.0001
DEFAULT_PICK_THRESHOLD = 0.0001

ClickResult = Union[Polygon, Beacon, RouteNode, List[RouteNode], EntityRef, None]


@dataclass(frozen=True)
class PendingPlacement:
    """A node placement whose persistence has not resolved yet."""
    location: LngLat
    node_type: NodeType
    connect_to: Optional[int]


class DrawingStateMachine:
    """Editing state of one floor.

    Args:
        service: Connectivity service used for every mutation
        dialogs: Host dialogs
        layout: Entities currently on the floor
        available_floor_ids: Floors of the building, offered to connectors
        close_threshold: Per-axis distance at which a click closes a ring
        pick_threshold: Distance at which a click hits a node or beacon
    """

    def __init__(self, service: ConnectivityService, dialogs: DialogHost,
                 layout: FloorLayout, available_floor_ids: Sequence[int] = (),
                 close_threshold: float = DEFAULT_CLOSE_THRESHOLD,
                 pick_threshold: float = DEFAULT_PICK_THRESHOLD):
        self._service = service
        self._dialogs = dialogs
        self.layout = layout
        self.available_floor_ids: Tuple[int, ...] = tuple(available_floor_ids)
        self.close_threshold = close_threshold
        self.pick_threshold = pick_threshold

        self.tool = Tool.SELECT
        self._points: List[LngLat] = []
        self._selected: Optional[EntityRef] = None
        self._selected_node_for_connection: Optional[int] = None
        self._last_placed_node_id: Optional[int] = None
        self._pending: Optional[PendingPlacement] = None
        self._dialog_open = False
        # Bumped whenever chaining state is reset, so late results are not promoted
        self._chain_epoch = 0
        self._placement_lock = asyncio.Lock()
        self._listeners: List[Callable[[], None]] = []

    # -------------------------------------------------------------------------
    # Observable state
    # -------------------------------------------------------------------------

    @property
    def floor_id(self) -> int:
        return self.layout.floor_id

    @property
    def pending_points(self) -> Tuple[LngLat, ...]:
        return tuple(self._points)

    @property
    def pending_point_count(self) -> int:
        return len(self._points)

    @property
    def is_drawing(self) -> bool:
        return bool(self._points)

    @property
    def selected(self) -> Optional[EntityRef]:
        return self._selected

    @property
    def selected_node_for_connection(self) -> Optional[int]:
        return self._selected_node_for_connection

    @property
    def last_placed_node_id(self) -> Optional[int]:
        return self._last_placed_node_id

    @property
    def pending_placement(self) -> Optional[PendingPlacement]:
        return self._pending

    def add_listener(self, callback: Callable[[], None]) -> None:
        """Register a callback invoked after every state or layout change."""
        self._listeners.append(callback)

    def _notify(self) -> None:
        for callback in self._listeners:
            callback()

    # -------------------------------------------------------------------------
    # Host actions
    # -------------------------------------------------------------------------

    def select_tool(self, tool: Tool) -> None:
        if tool is self.tool:
            return
        previous = self.tool
        if previous is Tool.PLACE_POLYGON:
            self._points.clear()
        if previous.places_nodes and not tool.places_nodes:
            self._reset_chaining()
        self._selected = None
        self.tool = tool
        logger.debug("Tool %s -> %s", previous.value, tool.value)
        self._notify()

    def select_entity(self, ref: Optional[EntityRef]) -> None:
        self._selected = ref
        self._notify()

    def cancel(self) -> None:
        """Discard pending points, the selection and chaining state.

        An in-flight persistence call is not cancelled; its result is still
        added to the layout but no longer promoted into chaining state.
        """
        if self._points:
            logger.info("Polygon drawing cancelled (%d points discarded)", len(self._points))
        self._points.clear()
        self._selected = None
        self._reset_chaining()
        self._notify()

    def set_layout(self, layout: FloorLayout) -> None:
        """Replace the floor snapshot (floor switch or reload)."""
        if layout.floor_id != self.layout.floor_id:
            self._points.clear()
            self._selected = None
            self._reset_chaining()
        else:
            self._drop_stale_references(layout)
        self.layout = layout
        self._notify()

    def set_available_floors(self, floor_ids: Sequence[int]) -> None:
        self.available_floor_ids = tuple(floor_ids)

    async def click(self, point: Sequence[float]) -> ClickResult:
        """Handle one projected click with the active tool.

        Returns whatever the click produced: a picked reference, a created
        entity, the connector nodes, or None.
        """
        point = (float(point[0]), float(point[1]))
        if self._dialog_open:
            logger.debug("Click ignored while a dialog is open")
            return None

        if self.tool is Tool.SELECT:
            self._selected = self.layout.pick(point, self.pick_threshold)
            self._notify()
            return self._selected
        if self.tool is Tool.PLACE_POLYGON:
            return await self._polygon_click(point)
        if self.tool is Tool.PLACE_BEACON:
            return await self._place_beacon(point)
        if self.tool is Tool.PLACE_ROUTE_NODE:
            existing = self.layout.node_at(point, self.pick_threshold)
            if existing is not None:
                self._pick_for_connection(existing.id)
                return existing.ref
            return await self._place_node(point)
        if self.tool is Tool.PLACE_CONNECTOR:
            return await self._place_connector(point)
        return None

    async def clear_all(self) -> int:
        """Discard pending state and delete every entity on the floor.

        Returns:
            Number of entities deleted
        """
        self.cancel()
        floor_id = self.floor_id
        refs = self.layout.refs()
        if refs:
            await self._service.bulk_delete(refs)
        if self.floor_id == floor_id:
            self.layout = FloorLayout(floor_id)
        self._notify()
        return len(refs)

    async def delete_selected(self) -> EntityRef:
        ref = self._selected
        if ref is None:
            raise InvalidActionError("Nothing is selected")
        await self._service.bulk_delete([ref])
        self._selected = None
        self.layout = self.layout.without(ref)
        if ref.kind is EntityKind.NODE:
            if self._selected_node_for_connection == ref.id:
                self._selected_node_for_connection = None
            if self._last_placed_node_id == ref.id:
                self._last_placed_node_id = None
        self._notify()
        return ref

    # -------------------------------------------------------------------------
    # Polygons / beacons
    # -------------------------------------------------------------------------

    def _closes_ring(self, point: LngLat) -> bool:
        if len(self._points) < 3:
            return False
        first = self._points[0]
        return (abs(point[0] - first[0]) < self.close_threshold
                and abs(point[1] - first[1]) < self.close_threshold)

    async def _polygon_click(self, point: LngLat) -> Optional[Polygon]:
        if not self._closes_ring(point):
            self._points.append(point)
            self._notify()
            return None

        floor_id = self.floor_id
        ring = tuple(self._points)
        self._dialog_open = True
        try:
            details = await self._dialogs.polygon_details(ring)
        finally:
            self._dialog_open = False
            self._points.clear()
            self._notify()

        if details is None:
            logger.info("Polygon dialog cancelled")
            return None

        polygon_type = PolygonType.WALL if details.is_wall else PolygonType.ROOM
        color = details.color or (WALL_COLOR if details.is_wall else DEFAULT_POLYGON_COLOR)
        polygon = await self._service.create_polygon(
            floor_id, details.name, ring,
            description=details.description,
            polygon_type=polygon_type,
            color=color,
            category_id=details.category_id,
        )
        if polygon.floor_id == self.floor_id:
            self.layout = self.layout.with_polygon(polygon)
        self._notify()
        return polygon

    async def _place_beacon(self, point: LngLat) -> Optional[Beacon]:
        floor_id = self.floor_id
        self._dialog_open = True
        try:
            details = await self._dialogs.beacon_details(point)
        finally:
            self._dialog_open = False

        if details is None:
            logger.info("Beacon dialog cancelled")
            return None

        beacon = await self._service.create_beacon(
            floor_id, details.name, point,
            beacon_type_id=details.beacon_type_id,
            uuid=details.uuid,
            major_id=details.major_id,
            minor_id=details.minor_id,
            is_active=details.is_active,
            battery_level=details.battery_level,
        )
        if beacon.floor_id == self.floor_id:
            self.layout = self.layout.with_beacon(beacon)
        self._notify()
        return beacon

    # -------------------------------------------------------------------------
    # Route nodes
    # -------------------------------------------------------------------------

    def _pick_for_connection(self, node_id: int) -> None:
        self._selected_node_for_connection = node_id
        self._last_placed_node_id = None
        logger.info("Node %s selected for connection", node_id)
        self._notify()

    def _reset_chaining(self) -> None:
        self._selected_node_for_connection = None
        self._last_placed_node_id = None
        self._chain_epoch += 1

    def _drop_stale_references(self, layout: FloorLayout) -> None:
        if self._selected is not None and layout.get(self._selected) is None:
            self._selected = None
        if (self._selected_node_for_connection is not None
                and layout.node(self._selected_node_for_connection) is None):
            self._selected_node_for_connection = None
        if (self._last_placed_node_id is not None
                and layout.node(self._last_placed_node_id) is None):
            self._last_placed_node_id = None

    def _chain_target(self) -> Optional[int]:
        if self._selected_node_for_connection is not None:
            return self._selected_node_for_connection
        return self._last_placed_node_id

    async def _place_node(self, point: LngLat) -> RouteNode:
        floor_id = self.floor_id
        async with self._placement_lock:
            target = self._chain_target()
            node, confirmed = await self._run_placement(
                PendingPlacement(point, NodeType.WAYPOINT, target),
                lambda: self._service.create_route_node(
                    floor_id, point, NodeType.WAYPOINT, target),
            )
            self._add_placed_node(node, target, confirmed)
            return node

    async def _place_connector(self, point: LngLat) -> Optional[List[RouteNode]]:
        floor_id = self.floor_id
        selection = ConnectorSelection(floor_id, self.available_floor_ids)
        self._dialog_open = True
        try:
            request = await self._dialogs.connector_details(selection)
        finally:
            self._dialog_open = False

        if request is None:
            logger.info("Connector dialog cancelled")
            return None
        if floor_id not in request.floor_ids:
            raise InvalidActionError("The current floor cannot be removed from a connector")

        node_type = NodeType(request.node_type)
        async with self._placement_lock:
            target = self._chain_target()
            nodes, confirmed = await self._run_placement(
                PendingPlacement(point, node_type, target),
                lambda: self._service.create_multi_floor_nodes(
                    request.floor_ids, point, node_type, floor_id, target),
            )
            current = next(n for n in nodes if n.floor_id == floor_id)
            self._add_placed_node(current, target, confirmed)
            return nodes

    async def _run_placement(self, pending: PendingPlacement, persist):
        """Run one placement with pending/confirmed chaining semantics.

        The explicit pick is consumed while the call is in flight. On failure
        the pre-attempt chaining state is restored, unless chaining was reset
        in the meantime.

        Returns:
            Tuple of (result, confirmed) where ``confirmed`` tells whether the
            result may be promoted into chaining state
        """
        epoch = self._chain_epoch
        before = (self._selected_node_for_connection, self._last_placed_node_id)
        self._pending = pending
        self._selected_node_for_connection = None
        self._notify()
        try:
            result = await persist()
        except BaseException:
            # includes CancelledError when the host shuts down mid-call
            if epoch == self._chain_epoch:
                self._selected_node_for_connection, self._last_placed_node_id = before
            raise
        finally:
            self._pending = None
            self._notify()
        return result, epoch == self._chain_epoch

    def _add_placed_node(self, node: RouteNode, target: Optional[int], confirmed: bool) -> None:
        # The floor may have been switched while the call was in flight
        if node.floor_id == self.floor_id:
            self.layout = self.layout.with_node(node)
            if target is not None:
                self.layout = self.layout.with_edge(node.id, target)
        if confirmed:
            self._last_placed_node_id = node.id
        self._notify()
