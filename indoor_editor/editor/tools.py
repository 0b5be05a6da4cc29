"""
Editing tools offered by the host tool bar.
"""

from enum import Enum


class Tool(Enum):
    """Drawing mode, entered by explicit tool selection."""
    SELECT = "select"
    PAN = "pan"
    PLACE_POLYGON = "polygon"
    PLACE_BEACON = "beacon"
    PLACE_ROUTE_NODE = "node"
    PLACE_CONNECTOR = "connector"

    @property
    def places_nodes(self) -> bool:
        """Tools that share route-node chaining state."""
        return self in (Tool.PLACE_ROUTE_NODE, Tool.PLACE_CONNECTOR)

    @property
    def label(self) -> str:
        return TOOL_LABELS[self]


TOOL_LABELS = {
    Tool.SELECT: "Select",
    Tool.PAN: "Pan",
    Tool.PLACE_POLYGON: "Polygon",
    Tool.PLACE_BEACON: "Beacon",
    Tool.PLACE_ROUTE_NODE: "Route Node",
    Tool.PLACE_CONNECTOR: "Elevator / Stairs",
}
