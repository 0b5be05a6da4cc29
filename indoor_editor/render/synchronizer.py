"""
Rendering synchronizer: mirrors one floor onto a persistent canvas.

Every resource the synchronizer creates is recorded in its registry under a
tracking key:

    polygon-{id}          fill layer and its source
    polygon-border-{id}   outline layer (shares the polygon source)
    polygon-label-{id}    centroid label marker of the selected polygon
    beacon-{id}           beacon marker
    node-{id}             route node marker
    edge-{a}-{b}          connection line layer and its source (a < b)

Render calls assume ``teardown`` ran immediately before them. Rendering the
same entity twice without a teardown raises CanvasResourceError instead of
drawing a duplicate.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, Optional, Sequence

from indoor_editor.errors import CanvasResourceError
from indoor_editor.model.entities import (
    Beacon, EntityRef, Polygon, RouteNode, edge_key,
)
from indoor_editor.model.layout import FloorLayout, ring_centroid
from .canvas import FILL, LINE, Canvas, LayerStyle, MarkerStyle
from .registry import ResourceRegistry

logger = logging.getLogger(__name__)

# Palette
SELECTED_COLOR = "#ef4444"
CONNECTION_PICK_COLOR = "#22c55e"
NODE_COLOR = "#3b82f6"
BEACON_COLOR = "#fbbf24"
EDGE_COLOR = "#3b82f6"

POLYGON_FILL_OPACITY = 0.6
POLYGON_SELECTED_FILL_OPACITY = 0.8
POLYGON_BORDER_WIDTH = 2
POLYGON_SELECTED_BORDER_WIDTH = 4
EDGE_WIDTH = 3
EDGE_OPACITY = 0.8
SELECTED_MARKER_SCALE = 1.2


class RenderingSynchronizer:
    """Keeps a canvas consistent with a floor layout.

    The registry is exclusively owned by this synchronizer; nothing else
    writes it.
    """

    def __init__(self, canvas: Canvas, registry: Optional[ResourceRegistry] = None):
        self.canvas = canvas
        self.registry = registry if registry is not None else ResourceRegistry()

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    def teardown(self) -> int:
        """Remove every tracked resource, each removal guarded on its own.

        Layers go before sources since layers reference them. A resource
        that is already gone is logged and skipped. All tables are empty
        afterwards.

        Returns:
            Number of resources actually removed
        """
        removed = 0
        try:
            removed += self._remove_all(self.registry.markers, "marker",
                                        self.canvas.has_marker, self.canvas.remove_marker)
            removed += self._remove_all(self.registry.layers, "layer",
                                        self.canvas.has_layer, self.canvas.remove_layer)
            removed += self._remove_all(self.registry.sources, "source",
                                        self.canvas.has_source, self.canvas.remove_source)
        finally:
            self.registry.reset()
        return removed

    @staticmethod
    def _remove_all(table: Dict[str, str], kind: str,
                    has: Callable[[str], bool], remove: Callable[[str], None]) -> int:
        removed = 0
        for key, resource_id in list(table.items()):
            try:
                if not has(resource_id):
                    logger.warning("Teardown: %s %s (%s) already gone", kind, key, resource_id)
                    continue
                remove(resource_id)
                removed += 1
            except CanvasResourceError as e:
                logger.warning("Teardown: could not remove %s %s: %s", kind, key, e)
            except Exception as e:
                # e.g. RuntimeError when Qt already deleted the item
                logger.error("Teardown: removing %s %s failed: %s", kind, key, e, exc_info=e)
        return removed

    # -------------------------------------------------------------------------
    # Low-level creation (always tracked)
    # -------------------------------------------------------------------------

    def _add_source(self, key: str, geometry: dict) -> None:
        self.registry.require_untracked("source", key)
        self.canvas.add_source(key, geometry)
        self.registry.track_source(key, key)

    def _add_layer(self, key: str, source_id: str, style: LayerStyle) -> None:
        self.registry.require_untracked("layer", key)
        self.canvas.add_layer(key, source_id, style)
        self.registry.track_layer(key, key)

    def _add_marker(self, key: str, location, style: MarkerStyle) -> None:
        self.registry.require_untracked("marker", key)
        marker_id = self.canvas.add_marker(location, style)
        self.registry.track_marker(key, marker_id)

    # -------------------------------------------------------------------------
    # Entity rendering
    # -------------------------------------------------------------------------

    def render_polygons(self, polygons: Iterable[Polygon],
                        selected: Optional[EntityRef] = None) -> int:
        """Fill and outline every visible polygon; label the selected one."""
        count = 0
        for polygon in polygons:
            if polygon.id is None or not polygon.is_visible or len(polygon.ring) < 3:
                continue
            is_selected = selected is not None and selected == polygon.ref
            key = f"polygon-{polygon.id}"
            self._add_source(key, {
                'type': 'Polygon',
                'coordinates': [[list(p) for p in polygon.closed_ring]],
            })
            self._add_layer(key, key, LayerStyle(
                FILL, polygon.color,
                opacity=POLYGON_SELECTED_FILL_OPACITY if is_selected else POLYGON_FILL_OPACITY,
            ))
            self._add_layer(f"polygon-border-{polygon.id}", key, LayerStyle(
                LINE, SELECTED_COLOR if is_selected else polygon.color,
                width=POLYGON_SELECTED_BORDER_WIDTH if is_selected else POLYGON_BORDER_WIDTH,
            ))
            if is_selected:
                self._add_marker(f"polygon-label-{polygon.id}", ring_centroid(polygon.ring),
                                 MarkerStyle(SELECTED_COLOR, label=polygon.name))
            count += 1
        return count

    def render_beacons(self, beacons: Iterable[Beacon],
                       selected: Optional[EntityRef] = None) -> int:
        count = 0
        for beacon in beacons:
            if beacon.id is None or not beacon.is_visible or beacon.location is None:
                continue
            is_selected = selected is not None and selected == beacon.ref
            self._add_marker(f"beacon-{beacon.id}", beacon.location, MarkerStyle(
                SELECTED_COLOR if is_selected else BEACON_COLOR,
                scale=SELECTED_MARKER_SCALE if is_selected else 1.0,
                label=beacon.name,
            ))
            count += 1
        return count

    def render_nodes(self, nodes: Iterable[RouteNode],
                     selected: Optional[EntityRef] = None,
                     connection_pick: Optional[int] = None) -> int:
        """One marker per visible placed node.

        Elevator/stairs nodes carry their glyph. The node picked for
        connection is green; the selected node is red and enlarged.
        """
        count = 0
        for node in nodes:
            if not _drawable(node):
                continue
            is_selected = selected is not None and selected == node.ref
            if node.id == connection_pick:
                color, scale = CONNECTION_PICK_COLOR, 1.0
            elif is_selected:
                color, scale = SELECTED_COLOR, SELECTED_MARKER_SCALE
            else:
                color, scale = NODE_COLOR, 1.0
            self._add_marker(f"node-{node.id}", node.location,
                             MarkerStyle(color, scale=scale, glyph=node.node_type.glyph))
            count += 1
        return count

    def render_connections(self, nodes: Sequence[RouteNode]) -> int:
        """Draw each undirected edge once, between drawable endpoints only."""
        index = {n.id: n for n in nodes if n.id is not None}
        drawn = set()
        for node in nodes:
            if not _drawable(node):
                continue
            for target_id in sorted(node.connections):
                target = index.get(target_id)
                if target is None or not _drawable(target):
                    continue
                key = edge_key(node.id, target_id)
                if key in drawn:
                    continue
                drawn.add(key)
                resource = f"edge-{key}"
                self._add_source(resource, {
                    'type': 'LineString',
                    'coordinates': [list(node.location), list(target.location)],
                })
                self._add_layer(resource, resource, LayerStyle(
                    LINE, EDGE_COLOR, opacity=EDGE_OPACITY, width=EDGE_WIDTH))
        return len(drawn)

    def redraw(self, layout: FloorLayout, selected: Optional[EntityRef] = None,
               connection_pick: Optional[int] = None) -> Dict[str, int]:
        """Teardown, then draw the whole floor (edges under markers)."""
        self.teardown()
        summary = {
            'polygons': self.render_polygons(layout.polygons, selected),
            'connections': self.render_connections(layout.nodes),
            'beacons': self.render_beacons(layout.beacons, selected),
            'nodes': self.render_nodes(layout.nodes, selected, connection_pick),
        }
        logger.debug("Redrew floor %s: %s", layout.floor_id, summary)
        return summary


def _drawable(node: RouteNode) -> bool:
    return node.id is not None and node.is_visible and node.location is not None
