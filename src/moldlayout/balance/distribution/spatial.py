"""
Spatial occupancy: how evenly the layout fills a uniform grid.

Cells are half the average footprint's longer edge. Every cell a rectangle
touches is marked; uniformity is the fraction of the 8-neighbourhood of
occupied cells that is itself occupied.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Sequence

import numpy as np

from moldlayout.models import PlacedRectangle

UNIFORMITY_BONUS = 1.2
DENSITY_BONUS = 1.1


@dataclass
class SpatialResult:
    uniformity: float = 100.0
    density: float = 100.0
    grid_cells: int = 1
    occupied_cells: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def occupancy_grid(rectangles: Sequence[PlacedRectangle]) -> np.ndarray:
    """Boolean (rows x cols) grid over the layout bounds."""
    min_x = min(r.x for r in rectangles)
    min_y = min(r.y for r in rectangles)
    max_x = max(r.x_max for r in rectangles)
    max_y = max(r.y_max for r in rectangles)
    cell = sum(max(r.width, r.length) for r in rectangles) / len(rectangles) / 2
    if cell <= 0:
        return np.zeros((0, 0), dtype=bool)

    cols = max(1, math.ceil((max_x - min_x) / cell))
    rows = max(1, math.ceil((max_y - min_y) / cell))
    grid = np.zeros((rows, cols), dtype=bool)
    for r in rectangles:
        x0 = max(0, math.floor((r.x - min_x) / cell))
        y0 = max(0, math.floor((r.y - min_y) / cell))
        x1 = min(cols, math.ceil((r.x_max - min_x) / cell))
        y1 = min(rows, math.ceil((r.y_max - min_y) / cell))
        grid[y0:y1, x0:x1] = True
    return grid


def calculate_spatial(rectangles: Sequence[PlacedRectangle]) -> SpatialResult:
    if len(rectangles) <= 1:
        return SpatialResult(occupied_cells=len(rectangles))

    grid = occupancy_grid(rectangles)
    if grid.size == 0:
        return SpatialResult(uniformity=0.0, density=0.0, grid_cells=0, occupied_cells=0)

    # Count occupied neighbours of every cell by summing shifted copies
    padded = np.pad(grid, 1).astype(int)
    rows, cols = grid.shape
    neighbours = sum(
        padded[1 + dy:1 + dy + rows, 1 + dx:1 + dx + cols]
        for dy in (-1, 0, 1)
        for dx in (-1, 0, 1)
        if dx or dy
    )
    occupied = int(grid.sum())
    uniformity = float(neighbours[grid].sum()) / (8 * occupied) if occupied else 0.0
    density = occupied / grid.size

    return SpatialResult(
        uniformity=min(100.0, uniformity * 100 * UNIFORMITY_BONUS),
        density=min(100.0, density * 100 * DENSITY_BONUS),
        grid_cells=int(grid.size),
        occupied_cells=occupied,
    )
