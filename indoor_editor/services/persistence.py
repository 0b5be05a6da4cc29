"""
Persistence collaborator interface.

Every call is a coroutine. Implementations translate their own failures
into PersistenceError (or a subclass) and never retry.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, TypeVar

from indoor_editor.model.entities import Beacon, Building, CatalogItem, Floor, Polygon, RouteNode

T = TypeVar('T')


class EntityStore(ABC, Generic[T]):
    """Floor-scoped CRUD for one entity kind."""

    @abstractmethod
    async def list_by_floor(self, floor_id: int) -> List[T]:
        pass

    @abstractmethod
    async def create(self, entity: T) -> T:
        """Persist an unidentified entity and return it with its new id."""
        pass

    @abstractmethod
    async def update(self, entity: T) -> T:
        """Replace the stored entity with the same id; return the stored value."""
        pass

    @abstractmethod
    async def delete(self, entity_id: int) -> None:
        pass


class Persistence(ABC):
    """Server boundary used by the connectivity service.

    Attributes:
        polygons: Store for area features
        beacons: Store for beacons
        nodes: Store for route nodes
    """

    polygons: EntityStore[Polygon]
    beacons: EntityStore[Beacon]
    nodes: EntityStore[RouteNode]

    @abstractmethod
    async def add_connection(self, node_id: int, target_id: int) -> None:
        """Connect two route nodes.

        Servers that keep connections symmetric list the edge on both nodes;
        others list it on ``node_id`` only.
        """
        pass

    @abstractmethod
    async def recalculate_closest_nodes(self, floor_id: int) -> Dict[str, Any]:
        """Ask the server to reassign every POI on the floor to its nearest node."""
        pass

    @abstractmethod
    async def list_floors(self, building_id: int) -> List[Floor]:
        pass

    @abstractmethod
    async def list_buildings(self) -> List[Building]:
        pass

    @abstractmethod
    async def list_beacon_types(self) -> List[CatalogItem]:
        pass

    @abstractmethod
    async def list_poi_categories(self) -> List[CatalogItem]:
        pass

    async def close(self) -> None:
        """Release transport resources. Default: nothing to release."""
