"""
Tracking tables for visual resources created by one editor session.
"""

from __future__ import annotations

from typing import Dict, Set

from indoor_editor.errors import CanvasResourceError


class ResourceRegistry:
    """Maps tracking keys (e.g. ``node-7``) to canvas resource ids.

    Owned by a single RenderingSynchronizer. Tracking a key twice is an
    error: it means a render ran without the teardown that must precede it.
    """

    def __init__(self):
        self.markers: Dict[str, str] = {}
        self.layers: Dict[str, str] = {}
        self.sources: Dict[str, str] = {}

    def track_marker(self, key: str, marker_id: str) -> None:
        self.require_untracked("marker", key)
        self.markers[key] = marker_id

    def track_layer(self, key: str, layer_id: str) -> None:
        self.require_untracked("layer", key)
        self.layers[key] = layer_id

    def track_source(self, key: str, source_id: str) -> None:
        self.require_untracked("source", key)
        self.sources[key] = source_id

    def require_untracked(self, kind: str, key: str) -> None:
        """Raise unless ``key`` is free in the ``kind`` table."""
        table = {"marker": self.markers, "layer": self.layers, "source": self.sources}[kind]
        if key in table:
            raise CanvasResourceError(f"{kind} '{key}' is already drawn; teardown did not run")

    def keys(self) -> Set[str]:
        """Every tracked key across the three tables."""
        return set(self.markers) | set(self.layers) | set(self.sources)

    def reset(self) -> None:
        self.markers.clear()
        self.layers.clear()
        self.sources.clear()

    def __len__(self) -> int:
        return len(self.markers) + len(self.layers) + len(self.sources)

    @property
    def is_empty(self) -> bool:
        return len(self) == 0
