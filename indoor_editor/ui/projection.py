"""
Scene <-> geographic coordinate mapping.

The desktop host draws in QGraphicsScene units and the core works in
[longitude, latitude]. ScenePointMapper is the affine map between them:
scene x grows eastwards, scene y grows southwards (Qt's y axis points down),
and ``scale`` scene units span one degree.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

from indoor_editor.model.entities import LngLat


class ScenePointMapper:
    """Affine projection centered on ``center`` (lng, lat)."""

    def __init__(self, center: LngLat = (50.142335, 26.313387), scale: float = 1_000_000.0):
        if scale <= 0:
            raise ValueError(f"scale must be positive, got {scale}")
        self.center = (float(center[0]), float(center[1]))
        self.scale = float(scale)

    def to_lnglat(self, x: float, y: float) -> LngLat:
        return (self.center[0] + x / self.scale,
                self.center[1] - y / self.scale)

    def to_scene(self, lng: float, lat: float) -> Tuple[float, float]:
        return ((lng - self.center[0]) * self.scale,
                (self.center[1] - lat) * self.scale)

    def coords_to_scene(self, coords: Sequence[Sequence[float]]) -> np.ndarray:
        """Vectorized ``to_scene`` over an (N, 2) sequence of [lng, lat]."""
        pts = np.asarray(coords, dtype=float).reshape(-1, 2)
        out = np.empty_like(pts)
        out[:, 0] = (pts[:, 0] - self.center[0]) * self.scale
        out[:, 1] = (self.center[1] - pts[:, 1]) * self.scale
        return out

    def distance_to_scene(self, degrees: float) -> float:
        return degrees * self.scale
