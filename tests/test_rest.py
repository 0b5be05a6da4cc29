"""Tests for the HTTP persistence backend with a scripted session."""

import asyncio
import json

import pytest
import requests

from indoor_editor.errors import NotFoundError, PersistenceError
from indoor_editor.model.entities import NodeType, RouteNode
from indoor_editor.services.rest import RestPersistence
from indoor_editor.settings import EditorSettings


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        if text is None:
            text = json.dumps(body) if body is not None else ""
        self.text = text
        self.content = text.encode('utf-8')

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """Stands in for requests.Session; answers from a queue."""

    def __init__(self, *responses):
        self.headers = {}
        self.responses = list(responses)
        self.requests = []
        self.closed = False

    def request(self, method, url, json=None, timeout=None):
        self.requests.append((method, url, json, timeout))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self):
        self.closed = True


def node_feature(node_id, floor_id=1, connections=()):
    return {
        'type': 'Feature',
        'geometry': {'type': 'Point', 'coordinates': [50.0, 26.0]},
        'properties': {'id': node_id, 'floorId': floor_id, 'connectedNodeIds': list(connections)},
    }


def make_client(*responses, token=None):
    session = FakeSession(*responses)
    return RestPersistence("http://server/", token=token, timeout=3.0, session=session), session


def test_session_headers():
    _, session = make_client(token="secret")
    assert session.headers['Authorization'] == "Bearer secret"
    assert session.headers['Content-Type'] == "application/json"


def test_no_token_no_authorization_header():
    _, session = make_client()
    assert 'Authorization' not in session.headers


def test_from_settings():
    client = RestPersistence.from_settings(
        EditorSettings(api_base_url="http://api.local/", request_timeout=4.5))
    assert client.base_url == "http://api.local"
    assert client.timeout == 4.5


def test_create_node_strips_identifier():
    client, session = make_client(FakeResponse(201, node_feature(5)))
    node = RouteNode(floor_id=1, location=(50.0, 26.0), node_type=NodeType.STAIRS)
    created = asyncio.run(client.nodes.create(node))

    method, url, payload, timeout = session.requests[0]
    assert (method, url, timeout) == ('POST', "http://server/api/Node", 3.0)
    assert 'id' not in payload['properties']
    assert payload['properties']['node_type'] == "stairs"
    assert created.id == 5


def test_create_without_body_fails():
    client, _ = make_client(FakeResponse(200))
    with pytest.raises(PersistenceError):
        asyncio.run(client.nodes.create(RouteNode(floor_id=1, location=(50.0, 26.0))))


def test_list_by_floor_accepts_camel_case():
    client, session = make_client(FakeResponse(200, [node_feature(1, connections=[2, 2]),
                                                     node_feature(2, connections=[1])]))
    nodes = asyncio.run(client.nodes.list_by_floor(1))
    assert session.requests[0][1] == "http://server/api/Node/floor/1"
    assert [n.id for n in nodes] == [1, 2]
    assert nodes[0].connections == frozenset({2})
    assert nodes[0].floor_id == 1


def test_null_list_is_empty():
    client, _ = make_client(FakeResponse(200, text="null"))
    assert asyncio.run(client.beacons.list_by_floor(1)) == []


def test_update_with_empty_body_returns_entity():
    client, session = make_client(FakeResponse(204))
    node = RouteNode(floor_id=1, id=9, location=(50.0, 26.0))
    assert asyncio.run(client.nodes.update(node)) is node
    method, url, payload, _ = session.requests[0]
    assert (method, url) == ('PUT', "http://server/api/Node/9")
    assert payload['properties']['id'] == 9


def test_add_connection_and_delete_paths():
    client, session = make_client(FakeResponse(200), FakeResponse(204))
    asyncio.run(client.add_connection(3, 4))
    asyncio.run(client.polygons.delete(8))
    assert [(m, u) for m, u, _, _ in session.requests] == [
        ('POST', "http://server/api/Node/3/connections/4"),
        ('DELETE', "http://server/api/Poi/8"),
    ]


def test_recalculate_reads_camel_case_count():
    client, session = make_client(FakeResponse(200, {'updatedPois': 4, 'message': "ok"}))
    result = asyncio.run(client.recalculate_closest_nodes(2))
    assert result == {'updated_pois': 4, 'message': "ok"}
    assert session.requests[0][1] == "http://server/api/Poi/floor/2/recalculate-closest-nodes"


def test_list_floors():
    body = [{'id': 1, 'name': "Ground", 'floorNumber': 0, 'buildingId': 7}]
    client, session = make_client(FakeResponse(200, body))
    floors = asyncio.run(client.list_floors(7))
    assert session.requests[0][1] == "http://server/api/Floor/building/7"
    assert floors[0].floor_number == 0
    assert floors[0].building_id == 7


def test_not_found():
    client, _ = make_client(FakeResponse(404, text="missing"))
    with pytest.raises(NotFoundError) as exc:
        asyncio.run(client.nodes.delete(1))
    assert exc.value.status == 404
    assert exc.value.kind == "not_found"


def test_server_error_carries_status_and_body():
    client, _ = make_client(FakeResponse(500, text="boom"))
    with pytest.raises(PersistenceError) as exc:
        asyncio.run(client.add_connection(1, 2))
    assert exc.value.status == 500
    assert "boom" in exc.value.message


def test_connection_error_becomes_persistence_error():
    client, _ = make_client(requests.ConnectionError("refused"))
    with pytest.raises(PersistenceError) as exc:
        asyncio.run(client.list_buildings())
    assert exc.value.status is None


def test_invalid_json():
    client, _ = make_client(FakeResponse(200, text="<html>"))
    with pytest.raises(PersistenceError):
        asyncio.run(client.list_beacon_types())


def test_close_closes_session():
    client, session = make_client()
    asyncio.run(client.close())
    assert session.closed
