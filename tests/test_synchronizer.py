"""Tests for RenderingSynchronizer against a recording canvas."""

import pytest

from indoor_editor.errors import CanvasResourceError
from indoor_editor.model.entities import Beacon, NodeType, Polygon, RouteNode
from indoor_editor.model.layout import FloorLayout
from indoor_editor.render.canvas import LINE
from indoor_editor.render.synchronizer import (
    CONNECTION_PICK_COLOR, POLYGON_SELECTED_BORDER_WIDTH, SELECTED_COLOR, RenderingSynchronizer,
)

from conftest import SQUARE, RecordingCanvas


def make_layout():
    polygon = Polygon(floor_id=1, name="Lab", ring=tuple(SQUARE), id=1)
    beacon = Beacon(floor_id=1, name="B1", id=2, location=(50.0005, 26.0005))
    nodes = (
        RouteNode(floor_id=1, id=3, location=(50.0001, 26.0001), connections=frozenset({7, 9})),
        RouteNode(floor_id=1, id=7, location=(50.0009, 26.0001), connections=frozenset({3}),
                  node_type=NodeType.ELEVATOR),
        RouteNode(floor_id=1, id=9, location=(50.0009, 26.0009), connections=frozenset({3}),
                  is_visible=False),
    )
    return FloorLayout(1, polygons=(polygon,), nodes=nodes, beacons=(beacon,))


EXPECTED_KEYS = {"polygon-1", "polygon-border-1", "beacon-2", "node-3", "node-7", "edge-3-7"}


@pytest.fixture
def sync(canvas):
    return RenderingSynchronizer(canvas)


def test_redraw_tracks_every_resource(sync, canvas):
    summary = sync.redraw(make_layout())
    assert summary == {'polygons': 1, 'connections': 1, 'beacons': 1, 'nodes': 2}
    assert sync.registry.keys() == EXPECTED_KEYS
    # 2 sources, 3 layers, 3 markers
    assert canvas.resource_count == 8


def test_repeated_redraw_leaves_no_stale_resources(sync, canvas):
    layout = make_layout()
    sync.redraw(layout)
    sync.redraw(layout)
    assert canvas.resource_count == 8
    assert sync.registry.keys() == EXPECTED_KEYS

    smaller = layout.without(layout.polygons[0].ref)
    sync.redraw(smaller)
    assert not canvas.sources.keys() & {"polygon-1"}
    assert canvas.resource_count == 5


def test_teardown_removes_everything(sync, canvas):
    sync.redraw(make_layout())
    assert sync.teardown() == 8
    assert canvas.resource_count == 0
    assert sync.registry.is_empty


def test_teardown_skips_resources_removed_elsewhere(sync, canvas):
    sync.redraw(make_layout())
    canvas.remove_marker(sync.registry.markers["node-3"])
    assert sync.teardown() == 7
    assert canvas.resource_count == 0
    assert sync.registry.is_empty


def test_render_without_teardown_raises(sync, canvas):
    layout = make_layout()
    assert sync.render_nodes(layout.nodes) == 2
    with pytest.raises(CanvasResourceError):
        sync.render_nodes(layout.nodes)
    assert len(canvas.markers) == 2


def test_edge_drawn_once_with_ordered_key(sync, canvas):
    layout = make_layout()
    assert sync.render_connections(layout.nodes) == 1
    assert set(canvas.sources) == {"edge-3-7"}
    assert canvas.sources["edge-3-7"]['coordinates'] == [[50.0001, 26.0001], [50.0009, 26.0001]]
    assert canvas.layers["edge-3-7"].kind == LINE


def test_edge_to_node_on_other_floor_is_skipped(sync, canvas):
    nodes = (RouteNode(floor_id=1, id=3, location=(50.0, 26.0), connections=frozenset({40})),)
    assert sync.render_connections(nodes) == 0
    assert canvas.resource_count == 0


def test_polygon_source_is_closed(sync, canvas):
    sync.redraw(make_layout())
    ring = canvas.sources["polygon-1"]['coordinates'][0]
    assert len(ring) == 5
    assert ring[0] == ring[-1]


def test_selected_polygon_gets_label(sync, canvas):
    layout = make_layout()
    polygon = layout.polygons[0]
    sync.redraw(layout, selected=polygon.ref)
    assert "polygon-label-1" in sync.registry.keys()
    border = canvas.layers["polygon-border-1"]
    assert border.color == SELECTED_COLOR
    assert border.width == POLYGON_SELECTED_BORDER_WIDTH
    location, style = canvas.markers[sync.registry.markers["polygon-label-1"]]
    assert style.label == "Lab"
    assert location == pytest.approx((50.0005, 26.0005))


def test_unselected_polygons_have_no_label(sync):
    sync.redraw(make_layout())
    assert not any(key.startswith("polygon-label") for key in sync.registry.keys())


def test_node_marker_styles(sync, canvas):
    layout = make_layout()
    sync.redraw(layout, selected=layout.nodes[0].ref, connection_pick=7)
    _, selected = canvas.markers[sync.registry.markers["node-3"]]
    _, picked = canvas.markers[sync.registry.markers["node-7"]]
    assert selected.color == SELECTED_COLOR
    assert selected.scale > 1.0
    assert picked.color == CONNECTION_PICK_COLOR
    assert picked.glyph == "E"


def test_hidden_and_unplaced_entities_are_skipped(sync, canvas):
    nodes = (
        RouteNode(floor_id=1, id=1, location=None),
        RouteNode(floor_id=1, id=2, location=(50.0, 26.0), is_visible=False),
    )
    beacons = (Beacon(floor_id=1, name="B", id=3, location=None),)
    hidden = (Polygon(floor_id=1, name="X", ring=tuple(SQUARE), id=4, is_visible=False),)
    summary = sync.redraw(FloorLayout(1, polygons=hidden, nodes=nodes, beacons=beacons))
    assert summary == {'polygons': 0, 'connections': 0, 'beacons': 0, 'nodes': 0}
    assert canvas.resource_count == 0


class FlakyCanvas(RecordingCanvas):
    """Canvas whose layer removal raises a backend error for chosen ids."""

    def __init__(self, failing_layers, remove_before_failing=False):
        super().__init__()
        self.failing_layers = set(failing_layers)
        self.remove_before_failing = remove_before_failing

    def remove_layer(self, layer_id):
        if layer_id in self.failing_layers:
            if self.remove_before_failing:
                super().remove_layer(layer_id)
            raise ValueError("backend hiccup")
        super().remove_layer(layer_id)


def _two_rooms_and_a_node():
    shifted = tuple((lng + 0.002, lat) for lng, lat in SQUARE)
    return FloorLayout(
        1,
        polygons=(Polygon(floor_id=1, name="A", ring=tuple(SQUARE), id=1),
                  Polygon(floor_id=1, name="B", ring=shifted, id=2)),
        nodes=(RouteNode(floor_id=1, id=5, location=(50.0005, 26.0005)),),
    )


def test_teardown_continues_past_backend_errors():
    canvas = FlakyCanvas({"polygon-1"})
    sync = RenderingSynchronizer(canvas)
    sync.redraw(_two_rooms_and_a_node())
    assert canvas.resource_count == 7

    assert sync.teardown() == 6
    assert sync.registry.is_empty
    # only the layer that refused removal is left behind
    assert set(canvas.layers) == {"polygon-1"}
    assert not canvas.markers
    assert not canvas.sources


def test_redraw_recovers_after_failed_removal():
    canvas = FlakyCanvas({"polygon-1"}, remove_before_failing=True)
    sync = RenderingSynchronizer(canvas)
    layout = _two_rooms_and_a_node()
    sync.redraw(layout)

    summary = sync.redraw(layout)
    assert summary['polygons'] == 2
    assert summary['nodes'] == 1
    assert canvas.resource_count == 7
    assert sync.registry.keys() == {
        "polygon-1", "polygon-border-1", "polygon-2", "polygon-border-2", "node-5",
    }
