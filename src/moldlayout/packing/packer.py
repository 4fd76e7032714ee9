"""
Layout packer: near-minimal bounding rectangle for a set of footprints.

Algorithm
─────────
1. Spacing between items comes from the spacing step table, keyed by the
   largest footprint dimension (30 → 70 mm for ≤200 → ≤1000 mm).
2. Footprints are sorted by area, largest first. Areas within ``tie_area``
   of each other are ordered by squareness.
3. Each item gets a preferred rotation: long edge horizontal, near-square
   items never rotated.
4. Rotation candidates: preferred, its complement, all unrotated, all
   rotated, and one single-flip variant for each of the first distinct
   large areas.
5. Each candidate is packed ``max_iterations`` times; every round after the
   first flips up to two random items. Boxes are inflated by the spacing and
   handed to a skyline bottom-left rectangle packer (rectpack).
6. Attempts are scored by ``area * (1 + 0.1 * |w/h - 1|)``; near ties
   (within ``tie_area``) go to the higher fill ratio.
7. The trailing spacing is removed from the winning bounding box.

The mutation RNG is seeded from the config, so packing the same footprints
twice gives the same layout.
"""

from __future__ import annotations

import functools
import logging
import math
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import rectpack
from rectpack import PackingMode, float2dec, newPacker

from moldlayout.config import LookupTables, PackerConfig, load_lookup_tables
from moldlayout.errors import InvalidInputError
from moldlayout.models import Footprint, Layout, PlacedRectangle

logger = logging.getLogger(__name__)

# Decimal places handed to rectpack; it packs exactly in Decimal arithmetic.
PACK_PRECISION = 3


def calculate_spacing(max_dimension: float, tables: Optional[LookupTables] = None) -> float:
    """
    Inter-item spacing for a layout whose largest footprint edge is ``max_dimension``.

    Raises:
        InvalidInputError: beyond the largest supported dimension.
    """
    tables = tables or load_lookup_tables()
    return tables.spacing.lookup(max_dimension)


# ─────────────────────────────────────────────────────────────────────────────
# Rectangle-packing primitive
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class StripPack:
    """Result of one primitive call: positions by box index plus bounding box."""
    positions: Tuple[Tuple[float, float], ...]
    width: float
    height: float


def _skyline_pack_at(boxes: Sequence[Tuple[float, float]], order: Sequence[int],
                     strip_width: float) -> Optional[StripPack]:
    """Skyline bottom-left pack into a strip; None when something did not fit."""
    packer = newPacker(
        mode=PackingMode.Offline,
        pack_algo=rectpack.SkylineBl,
        sort_algo=rectpack.SORT_NONE,
        rotation=False,
    )
    total_height = sum(h for _, h in boxes)
    packer.add_bin(float2dec(strip_width, PACK_PRECISION), float2dec(total_height, PACK_PRECISION))
    for idx in order:
        w, h = boxes[idx]
        packer.add_rect(float2dec(w, PACK_PRECISION), float2dec(h, PACK_PRECISION), rid=idx)
    packer.pack()

    placed = packer.rect_list()
    if len(placed) != len(boxes):
        return None
    positions: List[Tuple[float, float]] = [(0.0, 0.0)] * len(boxes)
    bw = bh = 0.0
    for _, x, y, w, h, rid in placed:
        positions[rid] = (float(x), float(y))
        bw = max(bw, float(x + w))
        bh = max(bh, float(y + h))
    return StripPack(positions=tuple(positions), width=bw, height=bh)


def skyline_pack(boxes: Sequence[Tuple[float, float]], fill_target: float = 0.95,
                 max_widths: int = 12) -> StripPack:
    """
    Pack fixed-size boxes minimising the bounding box.

    Boxes go in tallest first. A handful of strip widths are tried: the
    ``sqrt(area / fill_target)`` estimate, the widest box, running sums of
    box widths and the widest box next to each other box. The smallest
    bounding area wins.
    """
    order = sorted(range(len(boxes)), key=lambda i: -boxes[i][1])
    widths = [w for w, _ in boxes]
    max_w = max(widths)
    total_w = sum(widths)
    area = sum(w * h for w, h in boxes)

    estimate = min(total_w, max(float(math.ceil(math.sqrt(area / fill_target))), max_w))
    candidates = set()
    running = 0.0
    for idx in order:
        running += boxes[idx][0]
        candidates.add(running)
    for w in widths:
        candidates.add(min(total_w, max_w + w))
    strip_widths = sorted(c for c in candidates if max_w <= c <= total_w)
    if len(strip_widths) > max_widths:
        step = len(strip_widths) / max_widths
        strip_widths = [strip_widths[int(i * step)] for i in range(max_widths)]
    strip_widths = sorted(set(strip_widths) | {estimate, max_w, total_w})

    best: Optional[StripPack] = None
    for strip_width in strip_widths:
        result = _skyline_pack_at(boxes, order, strip_width)
        if result is None:
            continue
        if best is None or result.width * result.height < best.width * best.height:
            best = result
    if best is None:
        # A single row always fits
        logger.warning("Skyline packing failed for all strip widths; using a single row")
        best = _skyline_pack_at(boxes, order, total_w)
        if best is None:
            raise InvalidInputError("Rectangle packing failed")
    return best


# ─────────────────────────────────────────────────────────────────────────────
# Layout packer
# ─────────────────────────────────────────────────────────────────────────────

class LayoutPacker:
    """
    Heuristic minimum-area packer with rotation search.

    Usage:
        packer = LayoutPacker()
        layout = packer.pack([Footprint(300, 100), Footprint(250, 100)])
    """

    def __init__(self, config: Optional[PackerConfig] = None,
                 tables: Optional[LookupTables] = None):
        self.config = config or PackerConfig()
        self.tables = tables or load_lookup_tables()

    # ── Public API ──────────────────────────────────────────────────────────

    def pack(self, footprints: Sequence[Footprint]) -> Layout:
        """
        Pack footprints into a near-minimal bounding rectangle.

        Returns:
            Layout with one PlacedRectangle per footprint, ordered by input
            index. Empty input returns an empty, zero-area Layout.

        Raises:
            InvalidInputError: malformed footprint, or largest dimension past
                               the spacing table.
        """
        if not footprints:
            return Layout()
        for i, fp in enumerate(footprints):
            if not (math.isfinite(fp.width) and math.isfinite(fp.length)) or fp.width <= 0 or fp.length <= 0:
                raise InvalidInputError(f"Footprint #{i} has invalid dimensions {fp.width}x{fp.length}")

        spacing = calculate_spacing(max(fp.max_dimension for fp in footprints), self.tables)
        order = self.sort_footprints(footprints)
        ordered = [footprints[i] for i in order]
        preferred = self.preferred_rotations(ordered)

        rng = random.Random(self.config.seed)
        n = len(ordered)
        candidates = self.rotation_candidates(ordered, preferred)
        cache: Dict[Tuple[bool, ...], Tuple[float, float, StripPack]] = {}
        # The first candidate, unmutated, is the baseline every attempt must beat
        best_rotations = candidates[0]
        cache[best_rotations] = self._attempt(ordered, best_rotations, spacing)
        best_quality, best_fill, best = cache[best_rotations]

        for base in candidates:
            for iteration in range(self.config.max_iterations):
                rotations = list(base)
                if iteration > 0:
                    for _ in range(min(2, n // 3)):
                        idx = rng.randrange(n)
                        rotations[idx] = not rotations[idx]
                key = tuple(rotations)
                if key not in cache:
                    cache[key] = self._attempt(ordered, key, spacing)
                quality, fill, attempt = cache[key]

                if quality < best_quality or (
                    abs(quality - best_quality) < self.config.tie_area and fill > best_fill
                ):
                    best_quality, best_fill = quality, fill
                    best_rotations, best = key, attempt

        logger.debug(
            "Packed %d footprints: %.0fx%.0f (quality %.1f, fill %.3f, %d distinct attempts)",
            n, best.width, best.height, best_quality, best_fill, len(cache),
        )
        return self._to_layout(footprints, order, best_rotations, best, spacing)

    # ── Heuristics ──────────────────────────────────────────────────────────

    def sort_footprints(self, footprints: Sequence[Footprint]) -> List[int]:
        """Indices by area descending; near-equal areas put the squarer item first."""
        tie = self.config.tie_area

        def squareness(fp: Footprint) -> float:
            return max(fp.width / fp.length, fp.length / fp.width)

        def compare(i: int, j: int) -> int:
            a, b = footprints[i], footprints[j]
            if abs(a.area - b.area) > tie:
                return -1 if a.area > b.area else 1
            diff = squareness(a) - squareness(b)
            return (diff > 0) - (diff < 0)

        return sorted(range(len(footprints)), key=functools.cmp_to_key(compare))

    def preferred_rotations(self, footprints: Sequence[Footprint]) -> List[bool]:
        """Rotate so the long edge lies along x; near-square items stay put."""
        rotations = []
        for fp in footprints:
            near_square = abs(fp.width - fp.length) < min(fp.width, fp.length) * self.config.near_square_ratio
            rotations.append(False if near_square else not fp.width > fp.length)
        return rotations

    def rotation_candidates(self, footprints: Sequence[Footprint],
                            preferred: Sequence[bool]) -> List[Tuple[bool, ...]]:
        n = len(footprints)
        candidates = [
            tuple(preferred),
            tuple(not r for r in preferred),
            (False,) * n,
            (True,) * n,
        ]
        seen_areas: List[float] = []
        for idx, fp in enumerate(footprints):
            if len(seen_areas) >= self.config.perturbed_areas:
                break
            if fp.area in seen_areas:
                continue
            seen_areas.append(fp.area)
            candidates.append(tuple(not r if i == idx else r for i, r in enumerate(preferred)))
        return candidates

    # ── Internals ───────────────────────────────────────────────────────────

    def _attempt(self, footprints: Sequence[Footprint], rotations: Tuple[bool, ...],
                 spacing: float) -> Tuple[float, float, StripPack]:
        boxes = [
            ((fp.length if rot else fp.width) + spacing, (fp.width if rot else fp.length) + spacing)
            for fp, rot in zip(footprints, rotations)
        ]
        result = skyline_pack(boxes, self.config.fill_target, self.config.max_strip_widths)
        area = result.width * result.height
        used = sum(w * h for w, h in boxes)
        quality = area * (1 + abs(result.width / result.height - 1) * self.config.aspect_penalty)
        return quality, used / area, result

    def _to_layout(self, footprints: Sequence[Footprint], order: Sequence[int],
                   rotations: Sequence[bool], result: StripPack, spacing: float) -> Layout:
        rectangles = []
        for pos, (original, rotated) in enumerate(zip(order, rotations)):
            fp = footprints[original]
            x, y = result.positions[pos]
            rectangles.append(PlacedRectangle(
                x=x,
                y=y,
                width=fp.length if rotated else fp.width,
                length=fp.width if rotated else fp.length,
                rotated=rotated,
                original_index=original,
            ))
        rectangles.sort(key=lambda r: r.original_index)
        return Layout(
            rectangles=rectangles,
            width=result.width - spacing,
            length=result.height - spacing,
            spacing=spacing,
            rotation=any(rotations),
        )


def pack(footprints: Sequence[Footprint], config: Optional[PackerConfig] = None,
         tables: Optional[LookupTables] = None) -> Layout:
    """Convenience wrapper around ``LayoutPacker(config, tables).pack``."""
    return LayoutPacker(config, tables).pack(footprints)
