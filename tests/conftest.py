"""Shared fixtures: in-memory backends, a recording canvas and scripted dialogs."""

import asyncio
import itertools
from typing import Any, Dict, List, Optional, Sequence

import pytest

from indoor_editor.editor.dialog_host import (
    BeaconDetails, ConnectorRequest, ConnectorSelection, DialogHost, PolygonDetails,
)
from indoor_editor.errors import CanvasResourceError, PersistenceError
from indoor_editor.model.entities import Building, Floor, LngLat
from indoor_editor.render.canvas import Canvas, LayerStyle, MarkerStyle
from indoor_editor.services.connectivity import ConnectivityService
from indoor_editor.services.memory import InMemoryPersistence


SQUARE = [(50.0, 26.0), (50.001, 26.0), (50.001, 26.001), (50.0, 26.001)]


class FailingPersistence(InMemoryPersistence):
    """In-memory backend that records every call and fails on request.

    ``fail_on`` maps an operation name (``"node.create"``, ``"add_connection"``)
    to the number of upcoming calls that should fail; -1 fails forever.
    ``fail_at`` maps an operation name to the 1-based call number that fails.
    ``gates`` maps an operation name to an asyncio.Event the call waits on.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls: List[str] = []
        self.fail_on: Dict[str, int] = {}
        self.fail_at: Dict[str, int] = {}
        self.gates: Dict[str, asyncio.Event] = {}

    async def _before(self, operation: str) -> None:
        self.calls.append(operation)
        gate = self.gates.get(operation)
        if gate is not None:
            await gate.wait()
        await super()._before(operation)
        if self.fail_at.get(operation) == self.count(operation):
            raise PersistenceError(f"{operation} call {self.count(operation)} rejected", status=500)
        remaining = self.fail_on.get(operation, 0)
        if remaining:
            if remaining > 0:
                self.fail_on[operation] = remaining - 1
            raise PersistenceError(f"{operation} rejected", status=500)

    def count(self, operation: str) -> int:
        return self.calls.count(operation)


class RecordingCanvas(Canvas):
    """Canvas keeping resources in dictionaries."""

    def __init__(self):
        self.sources: Dict[str, Dict[str, Any]] = {}
        self.layers: Dict[str, LayerStyle] = {}
        self.layer_sources: Dict[str, str] = {}
        self.markers: Dict[str, Any] = {}
        self._ids = itertools.count(1)

    def add_source(self, source_id, geometry):
        if source_id in self.sources:
            raise CanvasResourceError(f"source {source_id} exists")
        self.sources[source_id] = geometry

    def remove_source(self, source_id):
        if source_id not in self.sources:
            raise CanvasResourceError(f"source {source_id} missing")
        del self.sources[source_id]

    def has_source(self, source_id):
        return source_id in self.sources

    def add_layer(self, layer_id, source_id, style):
        if layer_id in self.layers:
            raise CanvasResourceError(f"layer {layer_id} exists")
        if source_id not in self.sources:
            raise CanvasResourceError(f"layer {layer_id} has no source {source_id}")
        self.layers[layer_id] = style
        self.layer_sources[layer_id] = source_id

    def remove_layer(self, layer_id):
        if layer_id not in self.layers:
            raise CanvasResourceError(f"layer {layer_id} missing")
        del self.layers[layer_id]
        del self.layer_sources[layer_id]

    def has_layer(self, layer_id):
        return layer_id in self.layers

    def add_marker(self, location: LngLat, style: MarkerStyle) -> str:
        marker_id = f"m{next(self._ids)}"
        self.markers[marker_id] = (location, style)
        return marker_id

    def remove_marker(self, marker_id):
        if marker_id not in self.markers:
            raise CanvasResourceError(f"marker {marker_id} missing")
        del self.markers[marker_id]

    def has_marker(self, marker_id):
        return marker_id in self.markers

    @property
    def resource_count(self) -> int:
        return len(self.sources) + len(self.layers) + len(self.markers)


class ScriptedDialogHost(DialogHost):
    """Dialog host answering from preset values.

    ``polygon`` / ``beacon`` are returned as-is (None means cancelled).
    ``connector_floors`` are toggled on the selection before confirming;
    None cancels the connector dialog.
    """

    def __init__(self):
        self.polygon: Optional[PolygonDetails] = PolygonDetails(name="Room")
        self.beacon: Optional[BeaconDetails] = BeaconDetails(name="Beacon")
        self.connector_floors: Optional[Sequence[int]] = ()
        self.connector_type = None
        self.connector_request: Optional[ConnectorRequest] = None
        self.polygon_calls: List[Sequence[LngLat]] = []
        self.selections: List[ConnectorSelection] = []
        self.gate: Optional[asyncio.Event] = None

    async def polygon_details(self, points):
        self.polygon_calls.append(tuple(points))
        if self.gate is not None:
            await self.gate.wait()
        return self.polygon

    async def beacon_details(self, location):
        return self.beacon

    async def connector_details(self, selection):
        self.selections.append(selection)
        if self.connector_request is not None:
            return self.connector_request
        if self.connector_floors is None:
            return None
        for floor_id in self.connector_floors:
            selection.set_selected(floor_id, True)
        if self.connector_type is not None:
            selection.set_node_type(self.connector_type)
        return selection.confirm()


def make_floors() -> List[Floor]:
    return [
        Floor(id=1, name="Ground", floor_number=0, building_id=1),
        Floor(id=2, name="First", floor_number=1, building_id=1),
        Floor(id=3, name="Second", floor_number=2, building_id=1),
    ]


@pytest.fixture
def persistence():
    return FailingPersistence(
        floors=make_floors(),
        buildings=[Building(id=1, name="HQ", created_at="2024-01-01", updated_at="2024-01-02")],
    )


@pytest.fixture
def asymmetric_persistence():
    return FailingPersistence(symmetric_connections=False, floors=make_floors())


@pytest.fixture
def service(persistence):
    return ConnectivityService(persistence)


@pytest.fixture
def canvas():
    return RecordingCanvas()


@pytest.fixture
def dialogs():
    return ScriptedDialogHost()
