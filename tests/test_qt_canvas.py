"""Qt-backed canvas and async bridge, run on the offscreen platform."""

import asyncio
import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
QtWidgets = pytest.importorskip("PyQt5.QtWidgets")

from indoor_editor.errors import CanvasResourceError  # noqa: E402
from indoor_editor.model.entities import RouteNode  # noqa: E402
from indoor_editor.model.layout import FloorLayout  # noqa: E402
from indoor_editor.render.canvas import FILL, LINE, LayerStyle, MarkerStyle  # noqa: E402
from indoor_editor.render.qt_canvas import QtSceneCanvas  # noqa: E402
from indoor_editor.render.synchronizer import RenderingSynchronizer  # noqa: E402
from indoor_editor.ui.async_bridge import AsyncBridge  # noqa: E402
from indoor_editor.ui.projection import ScenePointMapper  # noqa: E402

from conftest import SQUARE  # noqa: E402


@pytest.fixture(scope="module")
def qapp():
    app = QtWidgets.QApplication.instance() or QtWidgets.QApplication([])
    yield app


@pytest.fixture
def qt_canvas(qapp):
    scene = QtWidgets.QGraphicsScene()
    return QtSceneCanvas(scene, ScenePointMapper((50.0, 26.0), scale=1000.0))


def test_layers_and_markers_become_scene_items(qt_canvas):
    qt_canvas.add_source("room", {'type': 'Polygon', 'coordinates': [[list(p) for p in SQUARE]]})
    qt_canvas.add_layer("room", "room", LayerStyle(FILL, "#3b82f6", opacity=0.6))
    qt_canvas.add_layer("room-border", "room", LayerStyle(LINE, "#3b82f6", width=2))
    marker_id = qt_canvas.add_marker((50.001, 26.001), MarkerStyle("#fbbf24", label="B1"))

    assert len(qt_canvas.scene.items()) == 3
    item = qt_canvas.marker_item(marker_id)
    assert item.pos().x() == pytest.approx(1.0)
    assert item.pos().y() == pytest.approx(-1.0)
    assert qt_canvas.layer_item("room").zValue() < item.zValue()


def test_duplicates_and_missing_resources_raise(qt_canvas):
    qt_canvas.add_source("edge", {'type': 'LineString', 'coordinates': [[50.0, 26.0], [50.001, 26.0]]})
    with pytest.raises(CanvasResourceError):
        qt_canvas.add_source("edge", {'type': 'LineString', 'coordinates': []})
    with pytest.raises(CanvasResourceError):
        qt_canvas.add_layer("orphan", "nowhere", LayerStyle(LINE, "#000000"))
    with pytest.raises(CanvasResourceError):
        qt_canvas.remove_marker("marker-99")

    qt_canvas.add_layer("edge", "edge", LayerStyle(LINE, "#3b82f6"))
    with pytest.raises(CanvasResourceError):
        qt_canvas.remove_source("edge")


def test_synchronizer_leaves_empty_scene_after_teardown(qt_canvas):
    nodes = (
        RouteNode(floor_id=1, id=1, location=(50.0, 26.0), connections=frozenset({2})),
        RouteNode(floor_id=1, id=2, location=(50.001, 26.0), connections=frozenset({1})),
    )
    sync = RenderingSynchronizer(qt_canvas)
    sync.redraw(FloorLayout(1, nodes=nodes))
    sync.redraw(FloorLayout(1, nodes=nodes))
    # one edge layer plus two markers
    assert len(qt_canvas.scene.items()) == 3
    assert sync.teardown() == 4
    assert qt_canvas.scene.items() == []


def test_bridge_runs_coroutines(qapp):
    bridge = AsyncBridge()
    results = []
    busy = []
    bridge.busy_changed.connect(busy.append)

    async def work():
        await asyncio.sleep(0)
        return 42

    task = bridge.submit(work(), on_done=results.append)
    for _ in range(10):
        if task.done():
            break
        bridge._pump()
    bridge._pump()
    bridge.shutdown()

    assert results == [42]
    assert busy == [True, False]
    assert bridge.loop.is_closed()


def test_bridge_reports_errors(qapp):
    bridge = AsyncBridge()
    errors = []

    async def fail():
        raise CanvasResourceError("gone")

    bridge.submit(fail(), on_error=errors.append)
    for _ in range(5):
        bridge._pump()
    bridge.shutdown()

    assert len(errors) == 1
    assert errors[0].kind == "canvas"
