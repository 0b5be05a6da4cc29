"""
In-process persistence backend.

Behaves like the editor's server: integer ids are assigned on create,
``add_connection`` lists the edge on both nodes (unless constructed with
``symmetric_connections=False``), and deleting a node removes it from every
other node's connection list. Each call yields to the event loop once, so
callers observe real suspension points.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import replace
from typing import Any, Dict, Generic, Iterable, List, Optional, TypeVar

from indoor_editor.errors import NotFoundError, PersistenceError
from indoor_editor.model.entities import (
    Beacon, Building, CatalogItem, Floor, Polygon, RouteNode,
)
from .persistence import EntityStore, Persistence

T = TypeVar('T')


class MemoryStore(EntityStore[T], Generic[T]):
    """Dictionary-backed store for one entity kind."""

    def __init__(self, owner: 'InMemoryPersistence', kind: str):
        self._owner = owner
        self.kind = kind
        self.items: Dict[int, T] = {}

    async def list_by_floor(self, floor_id: int) -> List[T]:
        await self._owner._before(f"{self.kind}.list")
        return [e for e in self.items.values() if e.floor_id == floor_id]

    async def create(self, entity: T) -> T:
        await self._owner._before(f"{self.kind}.create")
        if entity.id is not None:
            raise PersistenceError(f"Create request for {self.kind} carries id {entity.id}", status=400)
        created = replace(entity, id=self._owner._next_id())
        self.items[created.id] = created
        return created

    async def update(self, entity: T) -> T:
        await self._owner._before(f"{self.kind}.update")
        self._require(entity.id)
        self.items[entity.id] = entity
        return entity

    async def delete(self, entity_id: int) -> None:
        await self._owner._before(f"{self.kind}.delete")
        self._require(entity_id)
        del self.items[entity_id]

    def _require(self, entity_id: Optional[int]) -> T:
        if entity_id not in self.items:
            raise NotFoundError(f"No {self.kind} with id {entity_id}", status=404)
        return self.items[entity_id]


class NodeMemoryStore(MemoryStore[RouteNode]):
    """Node store that keeps listed connections symmetric."""

    async def create(self, entity: RouteNode) -> RouteNode:
        created = await super().create(entity)
        for target in created.connections:
            if target in self.items:
                self.items[target] = self.items[target].with_connection(created.id)
        return created

    async def delete(self, entity_id: int) -> None:
        await super().delete(entity_id)
        for node_id, node in list(self.items.items()):
            self.items[node_id] = node.without_connection(entity_id)


class InMemoryPersistence(Persistence):
    """Persistence backend holding everything in dictionaries."""

    def __init__(self, symmetric_connections: bool = True,
                 floors: Iterable[Floor] = (),
                 buildings: Iterable[Building] = (),
                 beacon_types: Iterable[CatalogItem] = (),
                 poi_categories: Iterable[CatalogItem] = ()):
        self.symmetric_connections = symmetric_connections
        self._ids = itertools.count(1)
        self.polygons: MemoryStore[Polygon] = MemoryStore(self, "polygon")
        self.beacons: MemoryStore[Beacon] = MemoryStore(self, "beacon")
        self.nodes: NodeMemoryStore = NodeMemoryStore(self, "node")
        self.floors: List[Floor] = list(floors)
        self.buildings: List[Building] = list(buildings)
        self.beacon_types: List[CatalogItem] = list(beacon_types)
        self.poi_categories: List[CatalogItem] = list(poi_categories)
        self.recalculations: List[int] = []

    def _next_id(self) -> int:
        return next(self._ids)

    async def _before(self, operation: str) -> None:
        """Suspension point taken before every operation."""
        await asyncio.sleep(0)

    async def add_connection(self, node_id: int, target_id: int) -> None:
        await self._before("add_connection")
        if node_id == target_id:
            raise PersistenceError(f"Node {node_id} cannot connect to itself", status=400)
        node = self.nodes._require(node_id)
        target = self.nodes._require(target_id)
        self.nodes.items[node_id] = node.with_connection(target_id)
        if self.symmetric_connections:
            self.nodes.items[target_id] = target.with_connection(node_id)

    async def recalculate_closest_nodes(self, floor_id: int) -> Dict[str, Any]:
        await self._before("recalculate_closest_nodes")
        self.recalculations.append(floor_id)
        count = sum(1 for p in self.polygons.items.values() if p.floor_id == floor_id)
        return {'updated_pois': count, 'message': f"Recalculated closest nodes for {count} POIs"}

    async def list_floors(self, building_id: int) -> List[Floor]:
        await self._before("floor.list")
        return sorted((f for f in self.floors if f.building_id == building_id),
                      key=lambda f: f.floor_number)

    async def list_buildings(self) -> List[Building]:
        await self._before("building.list")
        return list(self.buildings)

    async def list_beacon_types(self) -> List[CatalogItem]:
        await self._before("beacon_type.list")
        return list(self.beacon_types)

    async def list_poi_categories(self) -> List[CatalogItem]:
        await self._before("poi_category.list")
        return list(self.poi_categories)
