"""
Canvas implementation over a QGraphicsScene.

Sources are kept as geometry dicts; each layer becomes a QGraphicsPathItem
built from its source, and each marker a MarkerItem. Coordinates are mapped
to scene units through a ScenePointMapper. Line widths and markers are
cosmetic (constant on-screen size under zoom).
"""

from __future__ import annotations

import itertools
from typing import Any, Dict

from PyQt5.QtWidgets import (
    QGraphicsItem, QGraphicsPathItem, QGraphicsScene, QStyleOptionGraphicsItem, QWidget,
)
from PyQt5.QtCore import Qt, QPointF, QRectF
from PyQt5.QtGui import QBrush, QColor, QFont, QPainter, QPainterPath, QPen

from indoor_editor.errors import CanvasResourceError
from indoor_editor.model.entities import LngLat
from indoor_editor.ui.projection import ScenePointMapper
from .canvas import FILL, Canvas, LayerStyle, MarkerStyle

# Stacking order
Z_FILL = 0.0
Z_LINE = 1.0
Z_MARKER = 10.0

MARKER_RADIUS = 8.0
MARKER_OUTLINE = QColor(255, 255, 255)
LABEL_COLOR = QColor(230, 230, 230)


class MarkerItem(QGraphicsItem):
    """Round point marker with an optional glyph and label.

    Ignores view transformations so it keeps its pixel size when zooming.
    """

    def __init__(self, style: MarkerStyle):
        super().__init__()
        self.style = style
        self.setFlag(QGraphicsItem.ItemIgnoresTransformations, True)
        self.setZValue(Z_MARKER)
        self._radius = MARKER_RADIUS * style.scale
        self._font = QFont()
        self._font.setPointSizeF(8.0)
        self._font.setBold(True)

    def boundingRect(self) -> QRectF:
        r = self._radius + 2
        label_width = 8.0 * len(self.style.label) if self.style.label else 0.0
        return QRectF(-r, -r, 2 * r + 4 + label_width, 2 * r)

    def paint(self, painter: QPainter, option: QStyleOptionGraphicsItem,
              widget: QWidget = None):
        painter.setRenderHint(QPainter.Antialiasing)
        painter.setPen(QPen(MARKER_OUTLINE, 2))
        painter.setBrush(QBrush(QColor(self.style.color)))
        painter.drawEllipse(QPointF(0, 0), self._radius, self._radius)

        painter.setFont(self._font)
        if self.style.glyph:
            painter.setPen(QPen(MARKER_OUTLINE))
            r = self._radius
            painter.drawText(QRectF(-r, -r, 2 * r, 2 * r), Qt.AlignCenter, self.style.glyph)
        if self.style.label:
            painter.setPen(QPen(LABEL_COLOR))
            painter.drawText(QPointF(self._radius + 4, 4), self.style.label)


class QtSceneCanvas(Canvas):
    """Canvas whose resources are items of ``scene``."""

    def __init__(self, scene: QGraphicsScene, mapper: ScenePointMapper):
        self.scene = scene
        self.mapper = mapper
        self._sources: Dict[str, Dict[str, Any]] = {}
        self._layers: Dict[str, QGraphicsPathItem] = {}
        self._layer_sources: Dict[str, str] = {}
        self._markers: Dict[str, MarkerItem] = {}
        self._marker_ids = itertools.count(1)

    # -------------------------------------------------------------------------
    # Sources
    # -------------------------------------------------------------------------

    def add_source(self, source_id: str, geometry: Dict[str, Any]) -> None:
        if source_id in self._sources:
            raise CanvasResourceError(f"Source '{source_id}' already exists")
        self._sources[source_id] = geometry

    def remove_source(self, source_id: str) -> None:
        if source_id not in self._sources:
            raise CanvasResourceError(f"Source '{source_id}' does not exist")
        users = [lid for lid, sid in self._layer_sources.items() if sid == source_id]
        if users:
            raise CanvasResourceError(f"Source '{source_id}' is still used by layers {users}")
        del self._sources[source_id]

    def has_source(self, source_id: str) -> bool:
        return source_id in self._sources

    # -------------------------------------------------------------------------
    # Layers
    # -------------------------------------------------------------------------

    def add_layer(self, layer_id: str, source_id: str, style: LayerStyle) -> None:
        if layer_id in self._layers:
            raise CanvasResourceError(f"Layer '{layer_id}' already exists")
        if source_id not in self._sources:
            raise CanvasResourceError(f"Layer '{layer_id}' references missing source '{source_id}'")

        item = QGraphicsPathItem(self._build_path(self._sources[source_id]))
        color = QColor(style.color)
        color.setAlphaF(max(0.0, min(1.0, style.opacity)))
        if style.kind == FILL:
            item.setBrush(QBrush(color))
            item.setPen(QPen(Qt.NoPen))
            item.setZValue(Z_FILL)
        else:
            pen = QPen(color, style.width)
            pen.setCosmetic(True)
            pen.setCapStyle(Qt.RoundCap)
            pen.setJoinStyle(Qt.RoundJoin)
            item.setPen(pen)
            item.setBrush(QBrush(Qt.NoBrush))
            item.setZValue(Z_LINE)
        item.setData(0, layer_id)

        self.scene.addItem(item)
        self._layers[layer_id] = item
        self._layer_sources[layer_id] = source_id

    def remove_layer(self, layer_id: str) -> None:
        item = self._layers.pop(layer_id, None)
        if item is None:
            raise CanvasResourceError(f"Layer '{layer_id}' does not exist")
        del self._layer_sources[layer_id]
        self.scene.removeItem(item)

    def has_layer(self, layer_id: str) -> bool:
        return layer_id in self._layers

    def _build_path(self, geometry: Dict[str, Any]) -> QPainterPath:
        path = QPainterPath()
        kind = geometry.get('type')
        if kind == 'Polygon':
            for ring in geometry.get('coordinates', []):
                self._add_polyline(path, ring, close=True)
        elif kind == 'LineString':
            self._add_polyline(path, geometry.get('coordinates', []), close=False)
        else:
            raise CanvasResourceError(f"Unsupported source geometry '{kind}'")
        return path

    def _add_polyline(self, path: QPainterPath, coords, close: bool) -> None:
        if len(coords) == 0:
            return
        pts = self.mapper.coords_to_scene(coords)
        path.moveTo(QPointF(pts[0, 0], pts[0, 1]))
        for x, y in pts[1:]:
            path.lineTo(QPointF(x, y))
        if close:
            path.closeSubpath()

    # -------------------------------------------------------------------------
    # Markers
    # -------------------------------------------------------------------------

    def add_marker(self, location: LngLat, style: MarkerStyle) -> str:
        marker_id = f"marker-{next(self._marker_ids)}"
        item = MarkerItem(style)
        x, y = self.mapper.to_scene(*location)
        item.setPos(x, y)
        item.setData(0, marker_id)
        self.scene.addItem(item)
        self._markers[marker_id] = item
        return marker_id

    def remove_marker(self, marker_id: str) -> None:
        item = self._markers.pop(marker_id, None)
        if item is None:
            raise CanvasResourceError(f"Marker '{marker_id}' does not exist")
        self.scene.removeItem(item)

    def has_marker(self, marker_id: str) -> bool:
        return marker_id in self._markers

    def marker_item(self, marker_id: str) -> MarkerItem:
        return self._markers[marker_id]

    def layer_item(self, layer_id: str) -> QGraphicsPathItem:
        return self._layers[layer_id]
