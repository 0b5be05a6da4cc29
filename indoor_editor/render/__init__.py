"""
Rendering: canvas interface, resource registry and the synchronizer that
mirrors a floor layout onto a canvas.

The Qt canvas lives in ``qt_canvas`` and is imported explicitly by the
desktop host, so the core stays importable without PyQt5.
"""

from .canvas import Canvas, LayerStyle, MarkerStyle, FILL, LINE
from .registry import ResourceRegistry
from .synchronizer import RenderingSynchronizer

__all__ = [
    'Canvas',
    'LayerStyle',
    'MarkerStyle',
    'FILL',
    'LINE',
    'ResourceRegistry',
    'RenderingSynchronizer',
]
