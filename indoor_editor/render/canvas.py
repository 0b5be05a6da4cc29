"""
Visual canvas interface.

A canvas holds three kinds of resources, addressed by id:
- sources: geometry (GeoJSON-like dicts with lng/lat coordinates)
- layers: a styled rendering of one source (fill or line)
- markers: point markers; the canvas assigns their ids

Adding a source or layer whose id exists, or removing any resource that is
absent, raises CanvasResourceError. Canvases never deduplicate silently.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from indoor_editor.model.entities import LngLat

FILL = "fill"
LINE = "line"


@dataclass(frozen=True)
class LayerStyle:
    """Paint for one layer.

    Attributes:
        kind: FILL or LINE
        color: Hex color
        opacity: 0..1
        width: Line width in pixels (LINE layers)
    """
    kind: str
    color: str
    opacity: float = 1.0
    width: float = 1.0


@dataclass(frozen=True)
class MarkerStyle:
    """Paint for one point marker.

    Attributes:
        color: Hex color of the marker body
        scale: Size multiplier (selection enlarges markers)
        glyph: Single character drawn inside the marker
        label: Text drawn beside the marker
    """
    color: str
    scale: float = 1.0
    glyph: Optional[str] = None
    label: Optional[str] = None


class Canvas(ABC):
    """Persistent drawing surface the synchronizer mirrors a floor onto."""

    @abstractmethod
    def add_source(self, source_id: str, geometry: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def remove_source(self, source_id: str) -> None:
        pass

    @abstractmethod
    def has_source(self, source_id: str) -> bool:
        pass

    @abstractmethod
    def add_layer(self, layer_id: str, source_id: str, style: LayerStyle) -> None:
        pass

    @abstractmethod
    def remove_layer(self, layer_id: str) -> None:
        pass

    @abstractmethod
    def has_layer(self, layer_id: str) -> bool:
        pass

    @abstractmethod
    def add_marker(self, location: LngLat, style: MarkerStyle) -> str:
        """Create a marker and return its canvas id."""
        pass

    @abstractmethod
    def remove_marker(self, marker_id: str) -> None:
        pass

    @abstractmethod
    def has_marker(self, marker_id: str) -> bool:
        pass
