"""
Qt dialogs behind the editor's DialogHost boundary.

Dialogs are shown window-modal with ``open()`` and awaited through a future,
so the asyncio loop driven by AsyncBridge keeps running while they are up.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Dict, Optional, Sequence, TypeVar

from PyQt5.QtWidgets import (
    QCheckBox, QComboBox, QDialog, QDialogButtonBox, QFormLayout, QGroupBox,
    QLabel, QLineEdit, QSpinBox, QVBoxLayout, QWidget,
)

from indoor_editor.editor.dialog_host import (
    BeaconDetails, ConnectorRequest, ConnectorSelection, DialogHost, PolygonDetails,
)
from indoor_editor.model.entities import CatalogItem, LngLat, NodeType
from indoor_editor.validation.rules import (
    BATTERY_LEVEL_MAX, DESCRIPTION_MAX_LENGTH, IBEACON_ID_MAX, NAME_MAX_LENGTH,
)
from . import style_constants as sc

DIALOG_STYLE = f"""
    QDialog {{
        background: {sc.BG_DARK};
        color: {sc.TEXT_PRIMARY};
    }}
    QGroupBox {{
        border: 1px solid {sc.BORDER_MEDIUM};
        border-radius: {sc.BORDER_RADIUS_MD};
        margin-top: 8px;
        padding-top: 8px;
    }}
"""

T = TypeVar('T')


def _button_box(dialog: QDialog) -> QDialogButtonBox:
    buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
    buttons.accepted.connect(dialog.accept)
    buttons.rejected.connect(dialog.reject)
    return buttons


def _catalog_combo(items: Sequence[CatalogItem], none_label: str) -> QComboBox:
    combo = QComboBox()
    combo.addItem(none_label, None)
    for item in items:
        combo.addItem(item.name, item.id)
    return combo


class PolygonDialog(QDialog):
    """Names a closed ring and chooses between room and wall."""

    def __init__(self, point_count: int, categories: Sequence[CatalogItem] = (),
                 parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.setWindowTitle("New Polygon")
        self.setMinimumWidth(360)
        self.setStyleSheet(DIALOG_STYLE)

        layout = QVBoxLayout(self)
        layout.setSpacing(sc.SPACING_MD)
        layout.addWidget(QLabel(f"Ring with {point_count} points"))

        form = QFormLayout()
        self._name_edit = QLineEdit()
        self._name_edit.setMaxLength(NAME_MAX_LENGTH)
        self._name_edit.setPlaceholderText("Room 101")
        form.addRow("Name:", self._name_edit)

        self._description_edit = QLineEdit()
        self._description_edit.setMaxLength(DESCRIPTION_MAX_LENGTH)
        form.addRow("Description:", self._description_edit)

        self._category_combo = _catalog_combo(categories, "(none)")
        form.addRow("Category:", self._category_combo)

        self._wall_check = QCheckBox("Wall")
        form.addRow("", self._wall_check)
        layout.addLayout(form)

        self._buttons = _button_box(self)
        layout.addWidget(self._buttons)
        self._name_edit.textChanged.connect(self._update_ok)
        self._update_ok()

    def _update_ok(self):
        ok = self._buttons.button(QDialogButtonBox.Ok)
        ok.setEnabled(bool(self._name_edit.text().strip()))

    def details(self) -> PolygonDetails:
        return PolygonDetails(
            name=self._name_edit.text().strip(),
            is_wall=self._wall_check.isChecked(),
            description=self._description_edit.text().strip(),
            category_id=self._category_combo.currentData(),
        )


class BeaconDialog(QDialog):
    """Beacon name, type and optional iBeacon identity."""

    def __init__(self, location: LngLat, beacon_types: Sequence[CatalogItem] = (),
                 parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.setWindowTitle("New Beacon")
        self.setMinimumWidth(380)
        self.setStyleSheet(DIALOG_STYLE)

        layout = QVBoxLayout(self)
        layout.setSpacing(sc.SPACING_MD)
        layout.addWidget(QLabel(f"At {location[0]:.6f}, {location[1]:.6f}"))

        form = QFormLayout()
        self._name_edit = QLineEdit()
        self._name_edit.setMaxLength(NAME_MAX_LENGTH)
        form.addRow("Name:", self._name_edit)

        self._type_combo = _catalog_combo(beacon_types, "(unspecified)")
        form.addRow("Type:", self._type_combo)

        self._active_check = QCheckBox("Active")
        self._active_check.setChecked(True)
        form.addRow("", self._active_check)

        self._battery_spin = QSpinBox()
        self._battery_spin.setRange(0, BATTERY_LEVEL_MAX)
        self._battery_spin.setValue(BATTERY_LEVEL_MAX)
        self._battery_spin.setSuffix(" %")
        form.addRow("Battery:", self._battery_spin)
        layout.addLayout(form)

        # iBeacon identity
        self._ibeacon_group = QGroupBox("iBeacon identity")
        self._ibeacon_group.setCheckable(True)
        self._ibeacon_group.setChecked(False)
        ibeacon_form = QFormLayout(self._ibeacon_group)
        self._uuid_edit = QLineEdit()
        self._uuid_edit.setPlaceholderText("xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx")
        ibeacon_form.addRow("UUID:", self._uuid_edit)
        self._major_spin = QSpinBox()
        self._major_spin.setRange(0, IBEACON_ID_MAX)
        ibeacon_form.addRow("Major:", self._major_spin)
        self._minor_spin = QSpinBox()
        self._minor_spin.setRange(0, IBEACON_ID_MAX)
        ibeacon_form.addRow("Minor:", self._minor_spin)
        layout.addWidget(self._ibeacon_group)

        self._buttons = _button_box(self)
        layout.addWidget(self._buttons)
        self._name_edit.textChanged.connect(self._update_ok)
        self._update_ok()

    def _update_ok(self):
        ok = self._buttons.button(QDialogButtonBox.Ok)
        ok.setEnabled(bool(self._name_edit.text().strip()))

    def details(self) -> BeaconDetails:
        with_identity = self._ibeacon_group.isChecked()
        return BeaconDetails(
            name=self._name_edit.text().strip(),
            beacon_type_id=self._type_combo.currentData(),
            uuid=(self._uuid_edit.text().strip() or None) if with_identity else None,
            major_id=self._major_spin.value() if with_identity else None,
            minor_id=self._minor_spin.value() if with_identity else None,
            is_active=self._active_check.isChecked(),
            battery_level=self._battery_spin.value(),
        )


class ConnectorDialog(QDialog):
    """Edits a ConnectorSelection: node type and floors to replicate on."""

    def __init__(self, selection: ConnectorSelection, floor_names: Dict[int, str],
                 parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.selection = selection
        self.setWindowTitle("Elevator / Stairs")
        self.setMinimumWidth(320)
        self.setStyleSheet(DIALOG_STYLE)

        layout = QVBoxLayout(self)
        layout.setSpacing(sc.SPACING_MD)

        form = QFormLayout()
        self._type_combo = QComboBox()
        for node_type in (NodeType.ELEVATOR, NodeType.STAIRS):
            self._type_combo.addItem(node_type.value.capitalize(), node_type.value)
        self._type_combo.setCurrentIndex(
            self._type_combo.findData(NodeType(selection.node_type).value))
        self._type_combo.currentIndexChanged.connect(self._on_type_changed)
        form.addRow("Type:", self._type_combo)
        layout.addLayout(form)

        floors_group = QGroupBox("Floors")
        floors_layout = QVBoxLayout(floors_group)
        self._floor_checks: Dict[int, QCheckBox] = {}
        for floor_id in selection.available_floor_ids:
            check = QCheckBox(floor_names.get(floor_id, f"Floor {floor_id}"))
            check.setChecked(selection.is_selected(floor_id))
            if floor_id == selection.current_floor_id:
                check.setEnabled(False)
                check.setToolTip("The current floor is always included")
            check.toggled.connect(
                lambda checked, fid=floor_id: self._on_floor_toggled(fid, checked))
            floors_layout.addWidget(check)
            self._floor_checks[floor_id] = check
        layout.addWidget(floors_group)

        self._buttons = _button_box(self)
        layout.addWidget(self._buttons)
        self._update_ok()

    def _on_type_changed(self, index: int):
        self.selection.set_node_type(NodeType(self._type_combo.itemData(index)))

    def _on_floor_toggled(self, floor_id: int, checked: bool):
        self.selection.set_selected(floor_id, checked)
        self._update_ok()

    def _update_ok(self):
        self._buttons.button(QDialogButtonBox.Ok).setEnabled(self.selection.can_confirm)

    def request(self) -> ConnectorRequest:
        return self.selection.confirm()


async def _run(dialog: QDialog, collect: Callable[[], T]) -> Optional[T]:
    """Show ``dialog`` window-modal; return ``collect()`` if it was accepted."""
    future = asyncio.get_running_loop().create_future()

    def finished(code: int):
        if not future.done():
            future.set_result(code == QDialog.Accepted)

    dialog.finished.connect(finished)
    dialog.open()
    try:
        accepted = await future
        return collect() if accepted else None
    finally:
        dialog.deleteLater()


class QtDialogHost(DialogHost):
    """DialogHost backed by the dialogs above.

    ``floor_names``, ``beacon_types`` and ``poi_categories`` are refreshed by
    the main window whenever the building or the catalogs are reloaded.
    """

    def __init__(self, parent: Optional[QWidget] = None):
        self.parent = parent
        self.floor_names: Dict[int, str] = {}
        self.beacon_types: Sequence[CatalogItem] = ()
        self.poi_categories: Sequence[CatalogItem] = ()

    async def polygon_details(self, points: Sequence[LngLat]) -> Optional[PolygonDetails]:
        dialog = PolygonDialog(len(points), self.poi_categories, self.parent)
        return await _run(dialog, dialog.details)

    async def beacon_details(self, location: LngLat) -> Optional[BeaconDetails]:
        dialog = BeaconDialog(location, self.beacon_types, self.parent)
        return await _run(dialog, dialog.details)

    async def connector_details(self, selection: ConnectorSelection) -> Optional[ConnectorRequest]:
        dialog = ConnectorDialog(selection, self.floor_names, self.parent)
        return await _run(dialog, dialog.request)
