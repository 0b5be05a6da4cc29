"""
Main window of the floor editor.

Wires the drawing state machine, the rendering synchronizer and the
connectivity service to a FloorView. Every mutation goes through the
AsyncBridge; failures are reported in a message box and the floor is
reloaded so the canvas matches the server again.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from PyQt5.QtWidgets import (
    QAction, QActionGroup, QComboBox, QLabel, QMainWindow, QMessageBox, QToolBar,
)
from PyQt5.QtCore import Qt, QSettings
from PyQt5.QtGui import QKeySequence

from indoor_editor.editor import DrawingStateMachine, Tool
from indoor_editor.errors import ConnectionFailedError, EditorError
from indoor_editor.model.entities import Building, Floor
from indoor_editor.model.layout import FloorLayout
from indoor_editor.render.qt_canvas import QtSceneCanvas
from indoor_editor.render.synchronizer import RenderingSynchronizer
from indoor_editor.services.connectivity import ConnectivityService
from indoor_editor.settings import EditorSettings
from indoor_editor.validation.graph_checks import check_node_graph
from .async_bridge import AsyncBridge
from .dialogs import QtDialogHost
from .floor_view import FloorView
from .projection import ScenePointMapper
from . import style_constants as sc

logger = logging.getLogger(__name__)

TOOL_SHORTCUTS = {
    Tool.SELECT: "S",
    Tool.PAN: "H",
    Tool.PLACE_POLYGON: "P",
    Tool.PLACE_BEACON: "B",
    Tool.PLACE_ROUTE_NODE: "N",
    Tool.PLACE_CONNECTOR: "E",
}


class FloorEditorWindow(QMainWindow):
    # Settings keys
    SETTINGS_ORG = "IndoorEditor"
    SETTINGS_APP = "FloorEditor"

    def __init__(self, service: ConnectivityService, settings: EditorSettings):
        super().__init__()
        self.service = service
        self.settings = settings
        self.bridge = AsyncBridge(self)
        self.mapper = ScenePointMapper(settings.map_center, settings.scene_scale)
        self.dialogs = QtDialogHost(self)
        self.machine: Optional[DrawingStateMachine] = None

        self._buildings: List[Building] = []
        self._floors: List[Floor] = []
        self._requested_floor_id: Optional[int] = None
        self._qsettings = QSettings(self.SETTINGS_ORG, self.SETTINGS_APP)

        self._setup_ui()
        self._setup_menu_bar()
        self._connect_signals()
        self._restore_geometry()
        self._update_status()

        self._load_catalogs()
        self._load_buildings()

    # ---------------------------------------------------------------
    # UI setup
    # ---------------------------------------------------------------

    def _setup_ui(self):
        self.setWindowTitle("Indoor Floor Editor")
        self.setMinimumSize(900, 600)
        self.resize(1280, 800)

        self.view = FloorView(self.mapper, self)
        self.setCentralWidget(self.view)
        self.canvas = QtSceneCanvas(self.view.graphics_scene, self.mapper)
        self.synchronizer = RenderingSynchronizer(self.canvas)

        # Tool bar
        self.tool_bar = QToolBar("Tools", self)
        self.tool_bar.setMovable(False)
        self.addToolBar(Qt.TopToolBarArea, self.tool_bar)

        self._tool_group = QActionGroup(self)
        self._tool_group.setExclusive(True)
        self._tool_actions: Dict[Tool, QAction] = {}
        for tool in Tool:
            action = QAction(tool.label, self)
            action.setCheckable(True)
            action.setShortcut(QKeySequence(TOOL_SHORTCUTS[tool]))
            action.setToolTip(f"{tool.label} ({TOOL_SHORTCUTS[tool]})")
            action.setData(tool.value)
            self._tool_group.addAction(action)
            self.tool_bar.addAction(action)
            self._tool_actions[tool] = action
        self._tool_actions[Tool.SELECT].setChecked(True)

        self.tool_bar.addSeparator()
        self.tool_bar.addWidget(QLabel(" Building: "))
        self.building_combo = QComboBox()
        self.building_combo.setMinimumWidth(160)
        self.tool_bar.addWidget(self.building_combo)
        self.tool_bar.addWidget(QLabel(" Floor: "))
        self.floor_combo = QComboBox()
        self.floor_combo.setMinimumWidth(140)
        self.tool_bar.addWidget(self.floor_combo)

        # Status bar
        self.tool_label = QLabel()
        self.points_label = QLabel()
        self.selection_label = QLabel()
        self.busy_label = QLabel()
        self.cursor_label = QLabel()
        for label in (self.tool_label, self.points_label, self.selection_label,
                      self.busy_label):
            self.statusBar().addWidget(label)
        self.statusBar().addPermanentWidget(self.cursor_label)
        self.busy_label.setStyleSheet(f"color: {sc.TEXT_SECONDARY};")

    def _setup_menu_bar(self):
        menu_bar = self.menuBar()

        # File menu
        file_menu = menu_bar.addMenu("&File")
        reload_action = QAction("&Reload Floor", self)
        reload_action.setShortcut(QKeySequence("F5"))
        reload_action.triggered.connect(self.reload_floor)
        file_menu.addAction(reload_action)
        file_menu.addSeparator()
        quit_action = QAction("&Quit", self)
        quit_action.setShortcut(QKeySequence.Quit)
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

        # Edit menu
        edit_menu = menu_bar.addMenu("&Edit")
        cancel_action = QAction("&Cancel Drawing", self)
        cancel_action.triggered.connect(self._on_cancel)
        edit_menu.addAction(cancel_action)
        delete_action = QAction("De&lete Selected", self)
        delete_action.triggered.connect(self._on_delete)
        edit_menu.addAction(delete_action)
        edit_menu.addSeparator()
        clear_action = QAction("Clear &All on Floor...", self)
        clear_action.triggered.connect(self._on_clear_all)
        edit_menu.addAction(clear_action)

        # Graph menu
        graph_menu = menu_bar.addMenu("&Graph")
        check_action = QAction("&Check Connections", self)
        check_action.triggered.connect(self._on_check_graph)
        graph_menu.addAction(check_action)
        repair_action = QAction("&Repair One-Way Connections", self)
        repair_action.triggered.connect(self._on_repair_graph)
        graph_menu.addAction(repair_action)
        recalc_action = QAction("Recalculate &POI Nodes", self)
        recalc_action.triggered.connect(self._on_recalculate)
        graph_menu.addAction(recalc_action)

        # View menu
        view_menu = menu_bar.addMenu("&View")
        for text, shortcut, slot in (
            ("Zoom &In", QKeySequence.ZoomIn, self.view.zoom_in),
            ("Zoom &Out", QKeySequence.ZoomOut, self.view.zoom_out),
            ("&Fit to Content", QKeySequence("F"), self.view.fit_to_content),
            ("&Reset View", QKeySequence("Home"), self.view.reset_view),
        ):
            action = QAction(text, self)
            action.setShortcut(shortcut)
            action.triggered.connect(slot)
            view_menu.addAction(action)

    def _connect_signals(self):
        self._tool_group.triggered.connect(self._on_tool_triggered)
        self.building_combo.currentIndexChanged.connect(self._on_building_changed)
        self.floor_combo.currentIndexChanged.connect(self._on_floor_changed)
        self.view.clicked.connect(self._on_canvas_clicked)
        self.view.pointer_moved.connect(self._on_pointer_moved)
        self.view.cancel_requested.connect(self._on_cancel)
        self.view.delete_requested.connect(self._on_delete)
        self.bridge.busy_changed.connect(self._on_busy_changed)

    # ---------------------------------------------------------------
    # Loading
    # ---------------------------------------------------------------

    def _load_catalogs(self):
        persistence = self.service.persistence

        def loaded_types(items):
            self.dialogs.beacon_types = items

        def loaded_categories(items):
            self.dialogs.poi_categories = items

        self.bridge.submit(persistence.list_beacon_types(), loaded_types, self._on_error)
        self.bridge.submit(persistence.list_poi_categories(), loaded_categories, self._on_error)

    def _load_buildings(self):
        self.bridge.submit(self.service.persistence.list_buildings(),
                           self._on_buildings_loaded, self._on_error)

    def _on_buildings_loaded(self, buildings: List[Building]):
        self._buildings = list(buildings)
        self.building_combo.blockSignals(True)
        self.building_combo.clear()
        for building in self._buildings:
            self.building_combo.addItem(building.name, building.id)
        self.building_combo.blockSignals(False)
        if self._buildings:
            self._on_building_changed(0)
        else:
            self.statusBar().showMessage("No buildings on the server", 5000)

    def _on_building_changed(self, index: int):
        building_id = self.building_combo.itemData(index)
        if building_id is None:
            return
        self.bridge.submit(self.service.persistence.list_floors(building_id),
                           self._on_floors_loaded, self._on_error)

    def _on_floors_loaded(self, floors: List[Floor]):
        self._floors = list(floors)
        self.dialogs.floor_names = {f.id: f.name for f in self._floors}
        self.floor_combo.blockSignals(True)
        self.floor_combo.clear()
        for floor in self._floors:
            self.floor_combo.addItem(f"{floor.floor_number}: {floor.name}", floor.id)
        self.floor_combo.blockSignals(False)
        if self.machine is not None:
            self.machine.set_available_floors([f.id for f in self._floors])
        if self._floors:
            self._on_floor_changed(0)

    def _on_floor_changed(self, index: int):
        floor_id = self.floor_combo.itemData(index)
        if floor_id is None:
            return
        self._load_floor(floor_id)

    def _load_floor(self, floor_id: int):
        self._requested_floor_id = floor_id
        self.bridge.submit(self.service.load_floor(floor_id),
                           self._on_floor_loaded, self._on_error)

    def reload_floor(self):
        if self.machine is not None:
            self._load_floor(self.machine.floor_id)

    def _on_floor_loaded(self, layout: FloorLayout):
        # A later floor switch supersedes this result
        if layout.floor_id != self._requested_floor_id:
            return
        if self.machine is None:
            self.machine = DrawingStateMachine(
                self.service, self.dialogs, layout,
                available_floor_ids=[f.id for f in self._floors],
                close_threshold=self.settings.close_ring_threshold,
                pick_threshold=self.settings.node_pick_threshold,
            )
            self.machine.add_listener(self._on_state_changed)
            checked = self._tool_group.checkedAction()
            if checked is not None:
                self.machine.select_tool(Tool(checked.data()))
            self._on_state_changed()
        else:
            self.machine.set_layout(layout)

    # ---------------------------------------------------------------
    # Editing
    # ---------------------------------------------------------------

    def _on_tool_triggered(self, action: QAction):
        tool = Tool(action.data())
        self.view.set_placing(tool not in (Tool.SELECT, Tool.PAN))
        if self.machine is not None:
            self.machine.select_tool(tool)
        self._update_status()

    def _on_canvas_clicked(self, lng: float, lat: float):
        if self.machine is None:
            return
        self.bridge.submit(self.machine.click((lng, lat)), on_error=self._on_error)

    def _on_cancel(self):
        if self.machine is not None:
            self.machine.cancel()

    def _on_delete(self):
        if self.machine is None or self.machine.selected is None:
            return
        self.bridge.submit(self.machine.delete_selected(), on_error=self._on_error)

    def _on_clear_all(self):
        if self.machine is None:
            return
        count = len(self.machine.layout.refs())
        reply = QMessageBox.question(
            self, "Clear Floor",
            f"Delete all {count} entities on this floor? This cannot be undone.",
            QMessageBox.Yes | QMessageBox.No, QMessageBox.No,
        )
        if reply != QMessageBox.Yes:
            return

        def cleared(deleted: int):
            self.statusBar().showMessage(f"Deleted {deleted} entities", 5000)

        self.bridge.submit(self.machine.clear_all(), cleared, self._on_error)

    def _on_check_graph(self):
        if self.machine is None:
            return
        result = check_node_graph(self.machine.layout.nodes)
        if result.passed and not result.warnings:
            QMessageBox.information(self, "Connections", "All connections are consistent.")
        else:
            QMessageBox.warning(self, "Connections", result.report())

    def _on_repair_graph(self):
        if self.machine is None:
            return

        def repaired(count: int):
            self.statusBar().showMessage(f"Repaired {count} connections", 5000)
            self.reload_floor()

        self.bridge.submit(self.service.repair_connections(self.machine.layout),
                           repaired, self._on_error)

    def _on_recalculate(self):
        if self.machine is None:
            return

        def recalculated(result: dict):
            self.statusBar().showMessage(
                result.get('message') or f"Updated {result.get('updated_pois', 0)} POIs", 5000)

        self.bridge.submit(self.service.recalculate_poi_nodes(self.machine.floor_id),
                           recalculated, self._on_error)

    def _on_error(self, error: BaseException):
        if isinstance(error, EditorError):
            logger.warning("%s error: %s", error.kind, error.message)
            title = "Connection failed" if isinstance(error, ConnectionFailedError) else "Error"
            QMessageBox.warning(self, title, f"[{error.kind}] {error.message}")
        else:
            logger.error("Unexpected error: %s", error, exc_info=error)
            QMessageBox.critical(self, "Unexpected error", str(error))
        self.reload_floor()

    # ---------------------------------------------------------------
    # Presentation
    # ---------------------------------------------------------------

    def _on_state_changed(self):
        machine = self.machine
        try:
            self.synchronizer.redraw(machine.layout, machine.selected,
                                     machine.selected_node_for_connection)
        except EditorError as e:
            logger.error("Redraw failed: %s", e)
        self._update_status()

    def _update_status(self):
        machine = self.machine
        if machine is None:
            self.tool_label.setText("Loading...")
            self.points_label.clear()
            self.selection_label.clear()
            return
        self.tool_label.setText(f"Tool: {machine.tool.label}")
        if machine.tool is Tool.PLACE_POLYGON:
            self.points_label.setText(f"Points: {machine.pending_point_count}")
        elif machine.tool.places_nodes:
            pick = machine.selected_node_for_connection
            last = machine.last_placed_node_id
            chain = pick if pick is not None else last
            self.points_label.setText(f"Connect to: {chain if chain is not None else '-'}")
        else:
            self.points_label.clear()
        selected = machine.selected
        self.selection_label.setText(f"Selected: {selected.key}" if selected else "")

    def _on_busy_changed(self, busy: bool):
        self.busy_label.setText("Saving..." if busy else "")

    def _on_pointer_moved(self, lng: float, lat: float):
        self.cursor_label.setText(f"{lng:.6f}, {lat:.6f}")

    # ---------------------------------------------------------------
    # Window state
    # ---------------------------------------------------------------

    def _restore_geometry(self):
        geometry = self._qsettings.value("window_geometry")
        if geometry is not None:
            self.restoreGeometry(geometry)
        state = self._qsettings.value("window_state")
        if state is not None:
            self.restoreState(state)

    def _save_settings(self):
        self._qsettings.setValue("window_geometry", self.saveGeometry())
        self._qsettings.setValue("window_state", self.saveState())

    def closeEvent(self, event):
        if self.bridge.busy:
            reply = QMessageBox.question(
                self, "Saving", "Changes are still being saved. Exit anyway?",
                QMessageBox.Yes | QMessageBox.No, QMessageBox.No,
            )
            if reply != QMessageBox.Yes:
                event.ignore()
                return

        self._save_settings()
        self.bridge.shutdown(self.service.persistence.close())
        event.accept()
