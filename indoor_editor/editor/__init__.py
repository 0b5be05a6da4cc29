"""
Interactive editing: tools, host dialog boundary and the drawing state
machine.
"""

from .tools import Tool
from .dialog_host import (
    DialogHost,
    PolygonDetails,
    BeaconDetails,
    ConnectorRequest,
    ConnectorSelection,
)
from .drawing_state import DrawingStateMachine, PendingPlacement

__all__ = [
    'Tool',
    'DialogHost',
    'PolygonDetails',
    'BeaconDetails',
    'ConnectorRequest',
    'ConnectorSelection',
    'DrawingStateMachine',
    'PendingPlacement',
]
