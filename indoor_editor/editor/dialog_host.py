"""
Host dialog boundary.

The state machine asks the host for the details it cannot infer from a
click: polygon naming and wall flag, beacon naming and identity, connector
type and floor set. Dialogs are coroutines returning the confirmed payload,
or None when the operator cancels.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from indoor_editor.errors import InvalidActionError
from indoor_editor.model.entities import LngLat, NodeType

WALL_COLOR = "#6b7280"


@dataclass(frozen=True)
class PolygonDetails:
    """Confirmed polygon dialog. ``is_wall`` creates a Wall instead of a Room."""
    name: str
    is_wall: bool = False
    description: str = ""
    color: Optional[str] = None
    category_id: Optional[int] = None


@dataclass(frozen=True)
class BeaconDetails:
    name: str
    beacon_type_id: Optional[int] = None
    uuid: Optional[str] = None
    major_id: Optional[int] = None
    minor_id: Optional[int] = None
    is_active: bool = True
    battery_level: int = 100


@dataclass(frozen=True)
class ConnectorRequest:
    """Confirmed connector dialog: node type and the floors to replicate on."""
    node_type: NodeType
    floor_ids: Tuple[int, ...]

    def __post_init__(self):
        if not NodeType(self.node_type).is_connector:
            raise InvalidActionError(f"{self.node_type} is not a connector node type")
        if len(self.floor_ids) < 2:
            raise InvalidActionError("A connector must span at least two floors")


class ConnectorSelection:
    """Editable state behind the connector dialog.

    The current floor is always selected and cannot be deselected; the
    selection can be confirmed once at least two floors are selected.
    """

    def __init__(self, current_floor_id: int, available_floor_ids: Sequence[int],
                 node_type: NodeType = NodeType.ELEVATOR):
        self.current_floor_id = current_floor_id
        self.available_floor_ids: List[int] = list(available_floor_ids)
        if current_floor_id not in self.available_floor_ids:
            self.available_floor_ids.insert(0, current_floor_id)
        self._selected = {current_floor_id}
        self.node_type = node_type

    @property
    def selected_floor_ids(self) -> Tuple[int, ...]:
        """Selected floors in available order."""
        return tuple(f for f in self.available_floor_ids if f in self._selected)

    def is_selected(self, floor_id: int) -> bool:
        return floor_id in self._selected

    def set_selected(self, floor_id: int, selected: bool) -> None:
        if floor_id not in self.available_floor_ids:
            raise InvalidActionError(f"Floor {floor_id} is not in this building")
        if floor_id == self.current_floor_id:
            return
        if selected:
            self._selected.add(floor_id)
        else:
            self._selected.discard(floor_id)

    def toggle(self, floor_id: int) -> None:
        self.set_selected(floor_id, not self.is_selected(floor_id))

    def set_node_type(self, node_type: NodeType) -> None:
        if not NodeType(node_type).is_connector:
            raise InvalidActionError(f"{node_type} is not a connector node type")
        self.node_type = NodeType(node_type)

    @property
    def can_confirm(self) -> bool:
        return len(self._selected) >= 2

    def confirm(self) -> ConnectorRequest:
        if not self.can_confirm:
            raise InvalidActionError("Select at least one other floor")
        return ConnectorRequest(self.node_type, self.selected_floor_ids)


class DialogHost(ABC):
    """Dialogs owned by the host UI."""

    @abstractmethod
    async def polygon_details(self, points: Sequence[LngLat]) -> Optional[PolygonDetails]:
        pass

    @abstractmethod
    async def beacon_details(self, location: LngLat) -> Optional[BeaconDetails]:
        pass

    @abstractmethod
    async def connector_details(self, selection: ConnectorSelection) -> Optional[ConnectorRequest]:
        pass
