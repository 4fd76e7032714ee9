"""
Core data models for mold layout planning.

Inputs (validated with pydantic):
    Product, Dimensions, CadData, BoundingBox, Point3D, FlowData

Outputs and intermediate values (plain dataclasses):
    Footprint, PlacedRectangle, Layout, MoldDimensions, BalanceScore,
    GroupResult, Scheme, SearchResult

Products accept both the nested form (``dimensions: {length, width, height}``)
and the flat form used by order sheets (``length``, ``width``, ``height`` at the
top level), and camelCase keys (``cadData``, ``surfaceArea``) as well as
snake_case.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from moldlayout.errors import InvalidInputError


# ─────────────────────────────────────────────────────────────────────────────
# Input models
# ─────────────────────────────────────────────────────────────────────────────

class _InputModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Point3D(_InputModel):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class Dimensions(_InputModel):
    """Product extent in mm."""
    length: float = Field(ge=0)
    width: float = Field(ge=0)
    height: float = Field(default=0.0, ge=0)


class BoundingBox(_InputModel):
    center: Point3D = Field(default_factory=Point3D)
    dimensions: Point3D = Field(default_factory=Point3D)


class CadData(_InputModel):
    """Attributes extracted from a CAD model."""
    bounding_box: BoundingBox = Field(default_factory=BoundingBox)
    volume: float = Field(default=0.0, ge=0)
    surface_area: float = Field(default=0.0, ge=0)
    center_of_mass: Optional[Point3D] = None

    @property
    def is_complete(self) -> bool:
        d = self.bounding_box.dimensions
        return self.volume > 0 and self.surface_area > 0 and d.x > 0 and d.y > 0 and d.z > 0


class FlowPath(_InputModel):
    length: float = Field(ge=0)


class FlowData(_InputModel):
    """Flow length overrides; the manual value wins over a calculated path."""
    manual_flow_length: Optional[float] = Field(default=None, ge=0)
    calculated_flow_path: Optional[FlowPath] = None

    @property
    def flow_length(self) -> Optional[float]:
        if self.manual_flow_length is not None:
            return self.manual_flow_length
        if self.calculated_flow_path is not None:
            return self.calculated_flow_path.length
        return None


class Product(_InputModel):
    """
    A product to be moulded.

    Weight may be omitted; ``effective_weight`` then derives it from
    volume x density.
    """
    id: int = 0
    name: str = ""
    dimensions: Optional[Dimensions] = None
    weight: Optional[float] = Field(default=None, ge=0)
    density: Optional[float] = Field(default=None, ge=0)
    volume: Optional[float] = Field(default=None, ge=0)
    material: Optional[str] = None
    color: Optional[str] = None
    quantity: int = Field(default=0, ge=0)
    cad_data: Optional[CadData] = None
    flow_data: Optional[FlowData] = None

    @model_validator(mode="before")
    @classmethod
    def _lift_flat_dimensions(cls, data: Any) -> Any:
        if not isinstance(data, dict) or data.get("dimensions") is not None:
            return data
        if any(k in data for k in ("length", "width", "height")):
            data = dict(data)
            data["dimensions"] = {
                "length": data.pop("length", 0) or 0,
                "width": data.pop("width", 0) or 0,
                "height": data.pop("height", 0) or 0,
            }
        return data

    # ── Derived geometry ────────────────────────────────────────────────────

    @property
    def length(self) -> float:
        if self.dimensions is not None:
            return self.dimensions.length
        if self.cad_data is not None:
            return self.cad_data.bounding_box.dimensions.x
        return 0.0

    @property
    def width(self) -> float:
        if self.dimensions is not None:
            return self.dimensions.width
        if self.cad_data is not None:
            return self.cad_data.bounding_box.dimensions.y
        return 0.0

    @property
    def height(self) -> float:
        if self.dimensions is not None:
            return self.dimensions.height
        if self.cad_data is not None:
            return self.cad_data.bounding_box.dimensions.z
        return 0.0

    @property
    def footprint(self) -> "Footprint":
        return Footprint(width=self.width, length=self.length)

    @property
    def effective_volume(self) -> float:
        """Declared volume, else CAD volume, else the bounding box volume."""
        if self.volume:
            return self.volume
        if self.cad_data is not None and self.cad_data.volume > 0:
            return self.cad_data.volume
        return self.length * self.width * self.height

    @property
    def effective_weight(self) -> Optional[float]:
        if self.weight is not None:
            return self.weight
        if self.density:
            return self.effective_volume * self.density
        return None

    @property
    def has_complete_cad(self) -> bool:
        return self.cad_data is not None and self.cad_data.is_complete


def parse_products(items: Sequence[Any]) -> List[Product]:
    """Validate raw mappings (or Products) into Products; errors become InvalidInputError."""
    products = []
    for i, item in enumerate(items):
        if isinstance(item, Product):
            products.append(item)
            continue
        try:
            products.append(Product.model_validate(item))
        except ValidationError as exc:
            raise InvalidInputError(f"Product #{i} is invalid: {exc}") from exc
    return products


# ─────────────────────────────────────────────────────────────────────────────
# Layout types
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Footprint:
    """Planar extent of a product (mm)."""
    width: float
    length: float

    @property
    def area(self) -> float:
        return self.width * self.length

    @property
    def max_dimension(self) -> float:
        return max(self.width, self.length)

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.length if self.length else math.inf


@dataclass(frozen=True)
class PlacedRectangle:
    """
    A footprint placed in the cavity plane.

    ``width`` / ``length`` are the placed (possibly swapped) extents along x / y.
    """
    x: float
    y: float
    width: float
    length: float
    rotated: bool = False
    original_index: int = 0

    @property
    def x_max(self) -> float:
        return self.x + self.width

    @property
    def y_max(self) -> float:
        return self.y + self.length

    @property
    def center(self) -> tuple:
        return (self.x + self.width / 2.0, self.y + self.length / 2.0)

    @property
    def area(self) -> float:
        return self.width * self.length

    def mirrored(self, cx: float, cy: float) -> "PlacedRectangle":
        """Point-mirror about (cx, cy)."""
        return PlacedRectangle(
            x=2 * cx - self.x_max,
            y=2 * cy - self.y_max,
            width=self.width,
            length=self.length,
            rotated=self.rotated,
            original_index=self.original_index,
        )


@dataclass
class Layout:
    """Packed arrangement; ``rectangles`` are ordered by ``original_index``."""
    rectangles: List[PlacedRectangle] = field(default_factory=list)
    width: float = 0.0
    length: float = 0.0
    spacing: float = 0.0
    rotation: bool = False

    @property
    def area(self) -> float:
        return self.width * self.length

    @property
    def fill_ratio(self) -> float:
        if self.area <= 0:
            return 0.0
        return sum(r.area for r in self.rectangles) / self.area

    def __len__(self) -> int:
        return len(self.rectangles)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["area"] = self.area
        return d


@dataclass
class MoldDimensions:
    """Outer mold block derived from a layout plus margins."""
    length: float
    width: float
    height: float
    mold_material: str
    mold_weight: float
    mold_price: float
    max_inner_length: float
    max_inner_width: float
    vertical_margin: float
    horizontal_margin: float

    def to_dict(self) -> dict:
        return asdict(self)


# ─────────────────────────────────────────────────────────────────────────────
# Scores and search results
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class BalanceScore:
    """Composite balance score; sub-scores in [0, 100], confidence in [0, 1]."""
    total: float
    geometry: float
    flow: float
    distribution: float
    confidence: float
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ProductPrice:
    """Per-product price line returned by a pricing collaborator."""
    product_id: int
    name: str
    quantity: int
    material_price: float
    machining_cost: float
    unit_price: float
    total_price: float


@dataclass
class GroupResult:
    """One group of a scheme plus its evaluation."""
    products: List[Product]
    score: float = 100.0
    layout: Optional[Layout] = None
    balance: Optional[BalanceScore] = None
    mold: Optional[MoldDimensions] = None
    product_prices: List[ProductPrice] = field(default_factory=list)

    @property
    def mold_price(self) -> float:
        return self.mold.mold_price if self.mold else 0.0

    @property
    def product_price(self) -> float:
        return sum(p.total_price for p in self.product_prices)

    @property
    def product_ids(self) -> List[int]:
        return [p.id for p in self.products]


@dataclass
class Scheme:
    """A complete partition of the input products into groups."""
    groups: List[GroupResult]
    name: str = ""
    score: float = 0.0
    total_mold_price: float = 0.0
    total_product_price: float = 0.0
    total_price: float = 0.0
    evaluated: bool = False


@dataclass
class SearchResult:
    """Schemes found by a search; ``truncated`` is set when a cap was hit."""
    schemes: List[Scheme] = field(default_factory=list)
    truncated: bool = False
    enumerated: int = 0

    def __len__(self) -> int:
        return len(self.schemes)

    def __iter__(self):
        return iter(self.schemes)
