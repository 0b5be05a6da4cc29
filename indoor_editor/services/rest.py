"""
HTTP persistence backend.

Talks JSON to the floor-plan server with a ``requests.Session``. Requests
block, so every call runs in a worker thread via ``asyncio.to_thread``;
the coroutine resumes on the caller's event loop and the interaction loop
stays responsive while a request is outstanding.

Endpoints (relative to the base URL):
    /api/Poi, /api/Beacon, /api/Node          POST create, PUT/DELETE /{id}
    /api/<kind>/floor/{floor_id}              GET list by floor
    /api/Node/{id}/connections/{target_id}    POST add connection
    /api/Poi/floor/{floor_id}/recalculate-closest-nodes   POST
    /api/Floor/building/{building_id}         GET floors of a building
    /api/Building, /api/BeaconType, /api/PoiCategory      GET catalogs

Every transport failure (connection error, timeout, non-2xx status,
undecodable body) is raised as PersistenceError; 404 as NotFoundError.
No retries.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

import requests

from indoor_editor.errors import NotFoundError, PersistenceError
from indoor_editor.model import transport
from indoor_editor.model.entities import Beacon, Building, CatalogItem, Floor, Polygon, RouteNode
from .persistence import EntityStore, Persistence

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Longest slice of an error body carried into the exception message
ERROR_BODY_LIMIT = 200


class RestStore(EntityStore[T], Generic[T]):
    """CRUD for one resource endpoint."""

    def __init__(self, client: 'RestPersistence', endpoint: str,
                 encode: Callable[[T], Dict[str, Any]],
                 decode: Callable[[Dict[str, Any]], T]):
        self._client = client
        self.endpoint = endpoint
        self._encode = encode
        self._decode = decode

    async def list_by_floor(self, floor_id: int) -> List[T]:
        data = await self._client.call('GET', f"{self.endpoint}/floor/{floor_id}")
        return transport.decode_all(self._decode, data)

    async def create(self, entity: T) -> T:
        payload = transport.strip_identifier(self._encode(entity))
        data = await self._client.call('POST', self.endpoint, payload)
        if not data:
            raise PersistenceError(f"POST {self.endpoint} returned no entity")
        return self._decode(data)

    async def update(self, entity: T) -> T:
        data = await self._client.call('PUT', f"{self.endpoint}/{entity.id}", self._encode(entity))
        # The server may answer an update with an empty body
        return self._decode(data) if data else entity

    async def delete(self, entity_id: int) -> None:
        await self._client.call('DELETE', f"{self.endpoint}/{entity_id}")


class RestPersistence(Persistence):
    """Persistence over the floor-plan server's HTTP API."""

    def __init__(self, base_url: str, token: Optional[str] = None,
                 timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({'Content-Type': 'application/json',
                                      'Accept': 'application/json'})
        if token:
            self._session.headers['Authorization'] = f"Bearer {token}"

        self.polygons: RestStore[Polygon] = RestStore(
            self, '/api/Poi', transport.polygon_to_feature, transport.polygon_from_feature)
        self.beacons: RestStore[Beacon] = RestStore(
            self, '/api/Beacon', transport.beacon_to_feature, transport.beacon_from_feature)
        self.nodes: RestStore[RouteNode] = RestStore(
            self, '/api/Node', transport.node_to_feature, transport.node_from_feature)

    @classmethod
    def from_settings(cls, settings) -> 'RestPersistence':
        return cls(settings.api_base_url, token=settings.api_token,
                   timeout=settings.request_timeout)

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def request(self, method: str, path: str, payload: Any = None) -> Any:
        """Blocking request; returns decoded JSON or None for an empty body."""
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            response = self._session.request(method, url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise PersistenceError(f"{method} {path} failed: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(f"{method} {path}: not found", status=404)
        if not response.ok:
            body = response.text[:ERROR_BODY_LIMIT]
            raise PersistenceError(
                f"{method} {path} returned {response.status_code}: {body}",
                status=response.status_code,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise PersistenceError(f"{method} {path} returned invalid JSON: {e}",
                                   status=response.status_code) from e

    async def call(self, method: str, path: str, payload: Any = None) -> Any:
        return await asyncio.to_thread(self.request, method, path, payload)

    async def close(self) -> None:
        self._session.close()

    # -------------------------------------------------------------------------
    # Specialized operations
    # -------------------------------------------------------------------------

    async def add_connection(self, node_id: int, target_id: int) -> None:
        await self.call('POST', f"/api/Node/{node_id}/connections/{target_id}")

    async def recalculate_closest_nodes(self, floor_id: int) -> Dict[str, Any]:
        data = await self.call('POST', f"/api/Poi/floor/{floor_id}/recalculate-closest-nodes")
        data = data or {}
        return {
            'updated_pois': data.get('updated_pois', data.get('updatedPois', 0)),
            'message': data.get('message', ''),
        }

    async def list_floors(self, building_id: int) -> List[Floor]:
        data = await self.call('GET', f"/api/Floor/building/{building_id}")
        return transport.decode_all(transport.floor_from_dict, data)

    async def list_buildings(self) -> List[Building]:
        data = await self.call('GET', '/api/Building')
        return transport.decode_all(transport.building_from_dict, data)

    async def list_beacon_types(self) -> List[CatalogItem]:
        data = await self.call('GET', '/api/BeaconType')
        return transport.decode_all(transport.catalog_item_from_dict, data)

    async def list_poi_categories(self) -> List[CatalogItem]:
        data = await self.call('GET', '/api/PoiCategory')
        return transport.decode_all(transport.catalog_item_from_dict, data)
