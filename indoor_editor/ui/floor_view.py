"""
QGraphicsView showing one floor.

Provides:
- Grid background with zoom (wheel) and pan (middle/right button or Alt+Left)
- Left clicks projected to [lng, lat] and emitted as ``clicked``
- Esc / Delete forwarded as ``cancel_requested`` / ``delete_requested``
"""

from PyQt5.QtWidgets import QGraphicsScene, QGraphicsView
from PyQt5.QtCore import Qt, QPointF, QRectF, pyqtSignal
from PyQt5.QtGui import (
    QBrush, QColor, QKeyEvent, QMouseEvent, QPainter, QPen, QWheelEvent,
)

from .projection import ScenePointMapper
from . import style_constants as sc


class FloorView(QGraphicsView):
    """Canvas widget of the floor editor."""

    clicked = pyqtSignal(float, float)      # lng, lat
    pointer_moved = pyqtSignal(float, float)
    cancel_requested = pyqtSignal()
    delete_requested = pyqtSignal()

    def __init__(self, mapper: ScenePointMapper, parent=None):
        super().__init__(parent)
        self.mapper = mapper

        self._scene = QGraphicsScene(self)
        self.setScene(self._scene)

        # View settings
        self._zoom = 1.0
        self._min_zoom = 0.05
        self._max_zoom = 40.0
        self._pan_active = False
        self._pan_start = QPointF()
        self._crosshair = False

        self._setup_view()

    def _setup_view(self):
        """Configure view settings."""
        self.setRenderHints(QPainter.Antialiasing | QPainter.SmoothPixmapTransform)
        self.setViewportUpdateMode(QGraphicsView.FullViewportUpdate)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        self.setVerticalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        self.setTransformationAnchor(QGraphicsView.AnchorUnderMouse)
        self.setResizeAnchor(QGraphicsView.AnchorViewCenter)
        self.setDragMode(QGraphicsView.NoDrag)
        self.setFocusPolicy(Qt.StrongFocus)
        self.setMouseTracking(True)
        self.setBackgroundBrush(QBrush(QColor(sc.CANVAS_BACKGROUND)))

        # Large scene rect for an "infinite" canvas
        self._scene.setSceneRect(-100000, -100000, 200000, 200000)
        self.centerOn(0, 0)

    @property
    def graphics_scene(self) -> QGraphicsScene:
        return self._scene

    def set_placing(self, placing: bool):
        """Show a crosshair cursor while a placement tool is active."""
        self._crosshair = placing
        self.setCursor(Qt.CrossCursor if placing else Qt.ArrowCursor)

    # ---------------------------------------------------------------
    # Painting
    # ---------------------------------------------------------------

    def drawBackground(self, painter: QPainter, rect: QRectF):
        """Draw the background grid."""
        super().drawBackground(painter, rect)

        step = sc.GRID_STEP
        # Skip the grid once lines would be denser than a few pixels
        if step * self._zoom < 4:
            return

        minor_pen = QPen(QColor(sc.CANVAS_GRID), 0)
        major_pen = QPen(QColor(sc.CANVAS_GRID_MAJOR), 0)

        left = int(rect.left() // step) - 1
        right = int(rect.right() // step) + 1
        top = int(rect.top() // step) - 1
        bottom = int(rect.bottom() // step) + 1

        for i in range(left, right + 1):
            painter.setPen(major_pen if i % 10 == 0 else minor_pen)
            x = i * step
            painter.drawLine(QPointF(x, rect.top()), QPointF(x, rect.bottom()))
        for j in range(top, bottom + 1):
            painter.setPen(major_pen if j % 10 == 0 else minor_pen)
            y = j * step
            painter.drawLine(QPointF(rect.left(), y), QPointF(rect.right(), y))

    # ---------------------------------------------------------------
    # Mouse events
    # ---------------------------------------------------------------

    def mousePressEvent(self, event: QMouseEvent):
        """Pan with middle/right button or Alt+Left; project other left clicks."""
        if (event.button() == Qt.MiddleButton or
            event.button() == Qt.RightButton or
            (event.button() == Qt.LeftButton and event.modifiers() & Qt.AltModifier)):
            self._pan_active = True
            self._pan_start = event.pos()
            self.setCursor(Qt.ClosedHandCursor)
            event.accept()
            return

        if event.button() == Qt.LeftButton:
            scene_pos = self.mapToScene(event.pos())
            lng, lat = self.mapper.to_lnglat(scene_pos.x(), scene_pos.y())
            self.clicked.emit(lng, lat)
            event.accept()
            return

        super().mousePressEvent(event)

    def mouseReleaseEvent(self, event: QMouseEvent):
        if self._pan_active and event.button() in (
            Qt.MiddleButton, Qt.RightButton, Qt.LeftButton
        ):
            self._pan_active = False
            self.setCursor(Qt.CrossCursor if self._crosshair else Qt.ArrowCursor)
            event.accept()
            return
        super().mouseReleaseEvent(event)

    def mouseMoveEvent(self, event: QMouseEvent):
        if self._pan_active:
            delta = event.pos() - self._pan_start
            self._pan_start = event.pos()
            self.horizontalScrollBar().setValue(
                self.horizontalScrollBar().value() - delta.x()
            )
            self.verticalScrollBar().setValue(
                self.verticalScrollBar().value() - delta.y()
            )
            event.accept()
            return

        scene_pos = self.mapToScene(event.pos())
        lng, lat = self.mapper.to_lnglat(scene_pos.x(), scene_pos.y())
        self.pointer_moved.emit(lng, lat)
        super().mouseMoveEvent(event)

    def wheelEvent(self, event: QWheelEvent):
        """Zoom with the scroll wheel."""
        # Trackpad two-finger click while panning produces wheel noise
        if self._pan_active:
            event.accept()
            return

        delta = event.angleDelta().y()
        if abs(delta) < 10:
            event.accept()
            return

        # ~15% per full notch (120 units), clamped
        base_factor = min(1.0 + (abs(delta) / 120.0) * 0.15, 1.25)
        zoom_factor = base_factor if delta > 0 else 1.0 / base_factor

        new_zoom = self._zoom * zoom_factor
        if self._min_zoom <= new_zoom <= self._max_zoom:
            self._zoom = new_zoom
            self.scale(zoom_factor, zoom_factor)

        event.accept()

    # ---------------------------------------------------------------
    # Keyboard events
    # ---------------------------------------------------------------

    def keyPressEvent(self, event: QKeyEvent):
        key = event.key()

        if key == Qt.Key_Escape:
            self.cancel_requested.emit()
            event.accept()
            return

        if key in (Qt.Key_Delete, Qt.Key_Backspace):
            self.delete_requested.emit()
            event.accept()
            return

        super().keyPressEvent(event)

    # ---------------------------------------------------------------
    # View control
    # ---------------------------------------------------------------

    def zoom_in(self):
        if self._zoom * 1.15 <= self._max_zoom:
            self._zoom *= 1.15
            self.scale(1.15, 1.15)

    def zoom_out(self):
        if self._zoom / 1.15 >= self._min_zoom:
            self._zoom /= 1.15
            self.scale(1 / 1.15, 1 / 1.15)

    def reset_view(self):
        """Reset zoom and center on the map center."""
        self.resetTransform()
        self._zoom = 1.0
        self.centerOn(0, 0)

    def fit_to_content(self):
        """Fit the view to everything drawn on the scene."""
        items_rect = self._scene.itemsBoundingRect()
        if items_rect.isNull() or not items_rect.isValid():
            self.reset_view()
            return
        padding = max(items_rect.width(), items_rect.height()) * 0.1 + sc.GRID_STEP
        items_rect.adjust(-padding, -padding, padding, padding)
        self.fitInView(items_rect, Qt.KeepAspectRatio)
        self._zoom = self.transform().m11()
