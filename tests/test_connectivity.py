"""Tests for ConnectivityService over the in-memory backend."""

import asyncio

import pytest

from indoor_editor.errors import ConnectionFailedError, InvalidActionError, PersistenceError
from indoor_editor.model.entities import EntityKind, EntityRef, NodeType, PolygonType
from indoor_editor.services.connectivity import ConnectivityService
from indoor_editor.validation.core import ValidationError

from conftest import SQUARE

HERE = (50.0005, 26.0005)


def _connection_sets(persistence):
    return {node_id: node.connections for node_id, node in persistence.nodes.items.items()}


class TestRouteNodes:

    def test_create_without_connection(self, service, persistence):
        node = asyncio.run(service.create_route_node(1, HERE))
        assert node.id is not None
        assert node.connections == frozenset()
        assert persistence.calls == ["node.create"]

    def test_create_connected_node(self, service, persistence):
        async def scenario():
            first = await service.create_route_node(1, HERE)
            second = await service.create_route_node(1, (50.0006, 26.0006), connect_to=first.id)
            return first, second

        first, second = asyncio.run(scenario())
        assert second.connections == frozenset({first.id})
        assert _connection_sets(persistence) == {
            first.id: frozenset({second.id}),
            second.id: frozenset({first.id}),
        }
        assert persistence.count("add_connection") == 1

    def test_asymmetric_server_gets_both_directions(self, asymmetric_persistence):
        service = ConnectivityService(asymmetric_persistence, symmetric_connections=False)

        async def scenario():
            first = await service.create_route_node(1, HERE)
            return first, await service.create_route_node(1, HERE, connect_to=first.id)

        first, second = asyncio.run(scenario())
        assert asymmetric_persistence.count("add_connection") == 2
        assert asymmetric_persistence.nodes.items[first.id].is_connected_to(second.id)
        assert asymmetric_persistence.nodes.items[second.id].is_connected_to(first.id)

    def test_failed_edge_reports_created_node(self, service, persistence):
        async def scenario():
            first = await service.create_route_node(1, HERE)
            persistence.fail_on["add_connection"] = 1
            await service.create_route_node(1, HERE, connect_to=first.id)

        with pytest.raises(ConnectionFailedError) as exc:
            asyncio.run(scenario())
        error = exc.value
        assert error.node_id in persistence.nodes.items
        assert error.target_id == 1
        assert error.status == 500
        assert error.kind == "connection"

    def test_self_connection_is_rejected(self, service):
        with pytest.raises(InvalidActionError):
            asyncio.run(service.connect(4, 4))

    def test_invalid_location_never_reaches_persistence(self, service, persistence):
        with pytest.raises(ValidationError):
            asyncio.run(service.create_route_node(1, (500.0, 26.0)))
        assert persistence.calls == []


class TestMultiFloorNodes:

    def test_connector_spans_floors_and_chains(self, service, persistence):
        async def scenario():
            anchor = await service.create_route_node(1, HERE)
            nodes = await service.create_multi_floor_nodes(
                [1, 2, 3], HERE, NodeType.ELEVATOR, current_floor_id=1, connect_to=anchor.id)
            return anchor, nodes

        anchor, nodes = asyncio.run(scenario())
        assert [n.floor_id for n in nodes] == [1, 2, 3]
        assert all(n.node_type is NodeType.ELEVATOR for n in nodes)
        f1, f2, f3 = (n.id for n in nodes)

        assert nodes[0].connections == frozenset({anchor.id, f2, f3})
        assert nodes[1].connections == frozenset({f1, f3})
        assert nodes[2].connections == frozenset({f1, f2})

        stored = _connection_sets(persistence)
        assert stored[anchor.id] == frozenset({f1})
        assert stored[f1] == frozenset({anchor.id, f2, f3})
        assert stored[f2] == frozenset({f1, f3})
        assert stored[f3] == frozenset({f1, f2})
        # one edge to the anchor plus the three pairwise edges
        assert persistence.count("add_connection") == 4

    def test_nodes_created_in_floor_order(self, service, persistence):
        asyncio.run(service.create_multi_floor_nodes([3, 1], HERE, NodeType.STAIRS, 1))
        floors = [n.floor_id for n in persistence.nodes.items.values()]
        assert floors == [3, 1]

    def test_failed_create_keeps_earlier_floors(self, service, persistence):
        async def scenario():
            anchor = await service.create_route_node(1, HERE)
            # third node.create is the floor-2 connector node
            persistence.fail_at["node.create"] = 3
            await service.create_multi_floor_nodes(
                [1, 2, 3], HERE, NodeType.ELEVATOR, current_floor_id=1, connect_to=anchor.id)

        with pytest.raises(PersistenceError) as exc:
            asyncio.run(scenario())
        assert not isinstance(exc.value, ConnectionFailedError)

        stored = {node_id: (node.floor_id, sorted(node.connections))
                  for node_id, node in persistence.nodes.items.items()}
        assert stored == {1: (1, [2]), 2: (1, [1])}
        assert persistence.count("node.create") == 3
        assert persistence.count("add_connection") == 1

    def test_failed_pairwise_edge_leaves_graph_partial(self, service, persistence):
        persistence.fail_at["add_connection"] = 2
        with pytest.raises(PersistenceError):
            asyncio.run(service.create_multi_floor_nodes([1, 2, 3], HERE, NodeType.STAIRS, 1))

        stored = {node_id: sorted(node.connections)
                  for node_id, node in persistence.nodes.items.items()}
        assert stored == {1: [2], 2: [1], 3: []}
        assert persistence.count("add_connection") == 2

    def test_duplicate_floors_rejected(self, service, persistence):
        with pytest.raises(InvalidActionError):
            asyncio.run(service.create_multi_floor_nodes([1, 1], HERE, NodeType.ELEVATOR, 1))
        assert persistence.calls == []

    def test_current_floor_required(self, service, persistence):
        with pytest.raises(InvalidActionError):
            asyncio.run(service.create_multi_floor_nodes([2, 3], HERE, NodeType.ELEVATOR, 1))
        assert persistence.calls == []


class TestPolygonsAndBeacons:

    def test_create_polygon(self, service, persistence):
        polygon = asyncio.run(service.create_polygon(1, "Lab", SQUARE))
        assert polygon.id in persistence.polygons.items
        assert polygon.polygon_type is PolygonType.ROOM
        assert polygon.color == "#3b82f6"

    def test_update_polygon_merges_fields(self, service, persistence):
        async def scenario():
            polygon = await service.create_polygon(1, "Lab", SQUARE, description="Wet lab")
            return await service.update_polygon(polygon, name="Dry lab", is_visible=False)

        updated = asyncio.run(scenario())
        assert updated.name == "Dry lab"
        assert updated.description == "Wet lab"
        assert updated.is_visible is False
        assert persistence.polygons.items[updated.id] == updated

    def test_update_beacon_validates_before_persisting(self, service, persistence):
        async def scenario():
            beacon = await service.create_beacon(1, "B1", HERE)
            await service.update_beacon(beacon, battery_level=150)

        with pytest.raises(ValidationError) as exc:
            asyncio.run(scenario())
        assert exc.value.field == "battery_level"
        assert "beacon.update" not in persistence.calls

    def test_update_missing_beacon(self, service, persistence):
        async def scenario():
            beacon = await service.create_beacon(1, "B1", HERE)
            del persistence.beacons.items[beacon.id]
            await service.update_beacon(beacon, name="B2")

        with pytest.raises(PersistenceError) as exc:
            asyncio.run(scenario())
        assert exc.value.status == 404


class TestFloorOperations:

    def _populate(self, service):
        async def scenario():
            await service.create_polygon(1, "Lab", SQUARE)
            await service.create_beacon(1, "B1", HERE)
            a = await service.create_route_node(1, HERE)
            await service.create_route_node(1, HERE, connect_to=a.id)
            await service.create_route_node(2, HERE)
        asyncio.run(scenario())

    def test_load_floor(self, service):
        self._populate(service)
        layout = asyncio.run(service.load_floor(1))
        assert layout.floor_id == 1
        assert len(layout.polygons) == 1
        assert len(layout.beacons) == 1
        assert len(layout.nodes) == 2

    def test_bulk_delete_dispatches_concurrently(self, service, persistence):
        self._populate(service)
        layout = asyncio.run(service.load_floor(1))
        persistence.calls.clear()

        async def scenario():
            gate = asyncio.Event()
            persistence.gates["polygon.delete"] = gate
            task = asyncio.create_task(service.bulk_delete(layout.refs()))
            for _ in range(5):
                await asyncio.sleep(0)
            started_while_blocked = list(persistence.calls)
            gate.set()
            await task
            return started_while_blocked

        started = asyncio.run(scenario())
        assert sorted(started) == ["beacon.delete", "node.delete", "node.delete", "polygon.delete"]
        assert asyncio.run(service.load_floor(1)).is_empty
        assert len(persistence.nodes.items) == 1

    def test_bulk_delete_failure_rejects_call(self, service, persistence):
        self._populate(service)
        layout = asyncio.run(service.load_floor(1))
        persistence.fail_on["beacon.delete"] = 1
        with pytest.raises(PersistenceError):
            asyncio.run(service.bulk_delete(layout.refs()))
        assert not persistence.polygons.items

    def test_bulk_delete_nothing(self, service, persistence):
        asyncio.run(service.bulk_delete([]))
        assert persistence.calls == []

    def test_recalculate_poi_nodes(self, service, persistence):
        self._populate(service)
        result = asyncio.run(service.recalculate_poi_nodes(1))
        assert result['updated_pois'] == 1
        assert persistence.recalculations == [1]

    def test_repair_connections(self, asymmetric_persistence):
        service = ConnectivityService(asymmetric_persistence)

        async def scenario():
            a = await service.create_route_node(1, HERE)
            b = await service.create_route_node(1, HERE)
            await asymmetric_persistence.add_connection(a.id, b.id)
            layout = await service.load_floor(1)
            repaired = await service.repair_connections(layout)
            return a, b, repaired

        a, b, repaired = asyncio.run(scenario())
        assert repaired == 1
        assert asymmetric_persistence.nodes.items[b.id].is_connected_to(a.id)

    def test_delete_node_cascades_connections(self, service, persistence):
        self._populate(service)
        layout = asyncio.run(service.load_floor(1))
        first, second = layout.nodes
        asyncio.run(service.bulk_delete([EntityRef(EntityKind.NODE, first.id)]))
        assert persistence.nodes.items[second.id].connections == frozenset()
