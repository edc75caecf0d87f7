from __future__ import annotations

from typing import Protocol

import numpy as np


class TerrainProvider(Protocol):
    def has_terrain_data(self) -> bool:
        ...

    def terrain_height(self, xy: np.ndarray) -> float:
        ...


class NoTerrain(TerrainProvider):
    """No height-map registered; footholds fall back to flat terrain."""

    def has_terrain_data(self) -> bool:
        return False

    def terrain_height(self, xy: np.ndarray) -> float:
        raise NotImplementedError("NoTerrain has no height data")


class HeightMap(TerrainProvider):
    """Regular-grid height-map with nearest-cell lookup.

    `heights[i, j]` is the terrain height of the cell centred at
    `origin + (i * resolution, j * resolution)`. Queries outside the grid
    return `default_height`.
    """

    def __init__(
        self,
        heights: np.ndarray,
        resolution: float,
        origin: np.ndarray = (0.0, 0.0),
        default_height: float = 0.0,
    ) -> None:
        heights = np.asarray(heights, dtype=np.float64)
        if heights.ndim != 2 or heights.size == 0:
            raise ValueError(f"heights must be a non-empty 2D array, got shape {heights.shape}")
        if resolution <= 0.0:
            raise ValueError(f"resolution must be > 0, got {resolution}")
        self._heights = heights.copy()
        self._resolution = float(resolution)
        self._origin = np.asarray(origin, dtype=np.float64).reshape(2).copy()
        self._default_height = float(default_height)

    @classmethod
    def flat(cls, height: float, size: float = 10.0, resolution: float = 0.04) -> "HeightMap":
        """Square flat patch of side `size` centred on the world origin."""
        n = int(round(size / resolution)) + 1
        half = 0.5 * (n - 1) * resolution
        return cls(
            np.full((n, n), float(height)),
            resolution,
            origin=(-half, -half),
            default_height=float(height),
        )

    def has_terrain_data(self) -> bool:
        return True

    def terrain_height(self, xy: np.ndarray) -> float:
        xy = np.asarray(xy, dtype=np.float64).reshape(-1)[:2]
        idx = np.rint((xy - self._origin) / self._resolution).astype(int)
        i, j = int(idx[0]), int(idx[1])
        if 0 <= i < self._heights.shape[0] and 0 <= j < self._heights.shape[1]:
            return float(self._heights[i, j])
        return self._default_height
