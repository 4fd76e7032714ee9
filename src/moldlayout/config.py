"""
Configuration for the mold layout core.

Two kinds of configuration live here:

  * Scorer / packer / search settings: frozen dataclasses whose defaults are
    the nominal weights and thresholds of the scoring model. Every scorer
    receives its config explicitly, so a caller can override any value per
    call without touching module state.
  * Lookup tables: monotonic step functions (spacing, margins, weight rules)
    plus material and pricing data. They ship as a YAML document inside the
    package and can be replaced with another file.

Usage:
    from moldlayout.config import ScoringConfig, load_lookup_tables

    tables = load_lookup_tables()                 # packaged defaults
    tables = load_lookup_tables("my_tables.yaml") # site-specific
    cfg = ScoringConfig.from_dict({"flow": {"symmetric_threshold": 0.2}})
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import asdict, dataclass, field, fields, replace
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml

from moldlayout.errors import InvalidInputError

logger = logging.getLogger(__name__)

DEFAULT_TABLES_RESOURCE = "lookup_tables.yaml"


def _from_mapping(cls, data: Optional[Mapping[str, Any]]):
    """Build a flat frozen dataclass from a mapping, ignoring unknown keys."""
    if not data:
        return cls()
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        logger.warning("Ignoring unknown %s keys: %s", cls.__name__, sorted(unknown))
    return cls(**{k: v for k, v in data.items() if k in known})


# ─────────────────────────────────────────────────────────────────────────────
# Layout packer
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PackerConfig:
    """
    Layout packer settings.

    Attributes:
        max_iterations:     Mutation rounds per rotation candidate (round 0
                            packs the candidate unchanged).
        tie_area:           Two areas within this many square units are tied
                            (sorting and attempt selection).
        near_square_ratio:  Items with |w - l| < min(w, l) * ratio are never
                            auto-rotated.
        aspect_penalty:     Quality = area * (1 + aspect_penalty * |w/h - 1|).
        fill_target:        Strip width estimate = sqrt(area / fill_target).
        perturbed_areas:    Distinct large areas that get a single-flip variant.
        max_strip_widths:   Upper bound on candidate strip widths per pack.
        seed:               Seed of the mutation RNG; same seed, same layout.
    """
    max_iterations: int = 8
    tie_area: float = 100.0
    near_square_ratio: float = 0.1
    aspect_penalty: float = 0.1
    fill_target: float = 0.95
    perturbed_areas: int = 2
    max_strip_widths: int = 12
    seed: int = 0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Optional[Mapping[str, Any]]) -> "PackerConfig":
        return _from_mapping(cls, d)


# ─────────────────────────────────────────────────────────────────────────────
# Balance scorers
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class GeometryConfig:
    """Weights and curve constants of the geometry sub-score."""
    # Final blend
    shape_weight: float = 0.2
    dimension_weight: float = 0.2
    efficiency_weight: float = 0.6
    # Efficiency blend
    planar_density_weight: float = 0.35
    volume_utilization_weight: float = 0.35
    height_distribution_weight: float = 0.3
    # Shape similarity blend
    aspect_ratio_weight: float = 1.25
    volume_similarity_weight: float = 0.15
    area_similarity_weight: float = 0.06
    # Curves
    near_perfect_threshold: float = 0.65
    slope_factor: float = 10.0
    base_penalty_exponent: float = 4.0
    volume_exponent: float = 3.5
    height_exponent: float = 4.0
    extreme_aspect_ratio: float = 3.0
    max_aspect_difference: float = 1.5
    # Equality tolerance
    tolerance_ratio: float = 0.02
    tolerance_minimum: float = 0.05

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Optional[Mapping[str, Any]]) -> "GeometryConfig":
        return _from_mapping(cls, d)


@dataclass(frozen=True)
class FlowConfig:
    """Pattern thresholds, penalty factors and weights of the flow sub-score."""
    symmetric_threshold: float = 0.15
    symmetric_min: float = 0.1
    symmetric_max: float = 0.3
    progressive_threshold: float = 0.6
    progressive_min: float = 0.4
    progressive_max: float = 0.8
    max_difference_variation: float = 0.5
    flow_path_weight: float = 0.7
    flow_path_range: Tuple[float, float] = (0.6, 0.8)
    surface_area_weight: float = 0.15
    surface_area_range: Tuple[float, float] = (0.1, 0.2)
    volume_weight: float = 0.15
    volume_range: Tuple[float, float] = (0.1, 0.2)
    # Full penalties when no pattern is detected
    range_penalty: float = 90.0
    variance_penalty: float = 110.0
    penalty_exponent: float = 1.5
    # Reduced penalties for recognised patterns
    symmetric_range_penalty: float = 20.0
    symmetric_variance_penalty: float = 25.0
    progressive_range_penalty: float = 35.0
    progressive_variance_penalty: float = 45.0
    pattern_penalty_exponent: float = 1.2
    symmetric_boost_above: float = 70.0
    progressive_boost_above: float = 60.0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Optional[Mapping[str, Any]]) -> "FlowConfig":
        cfg = _from_mapping(cls, d)
        # YAML / JSON hand ranges back as lists
        for name in ("flow_path_range", "surface_area_range", "volume_range"):
            value = getattr(cfg, name)
            if not isinstance(value, tuple):
                cfg = replace(cfg, **{name: tuple(value)})
        return cfg


@dataclass(frozen=True)
class DistributionConfig:
    """Weights of the distribution sub-score and its volume-balance part."""
    # Final blend
    physics_weight: float = 0.3
    spatial_weight: float = 0.3
    volume_weight: float = 0.4
    balance_bonus: float = 5.0
    balance_bonus_min: float = 70.0
    balance_bonus_spread: float = 20.0
    pattern_bonus: float = 20.0
    spacing_bonus: float = 5.0
    # Volume balance blend
    isotropy_weight: float = 0.3
    center_deviation_weight: float = 0.3
    density_weight: float = 0.1
    height_weight: float = 0.1
    mass_weight: float = 0.1
    symmetry_weight: float = 0.1
    # Physics
    dominance_ratio: float = 1.5
    degenerate_moment: float = 1e-10
    degenerate_isotropy: float = 100.0
    single_axis_isotropy: float = 20.0
    min_pattern_score: float = 65.0
    variance_penalty: float = 120.0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Optional[Mapping[str, Any]]) -> "DistributionConfig":
        return _from_mapping(cls, d)


@dataclass(frozen=True)
class ScoringConfig:
    """Top-level balance score config: sub-score weights plus each sub-config."""
    geometry_weight: float = 0.3
    flow_weight: float = 0.4
    distribution_weight: float = 0.3
    geometry: GeometryConfig = field(default_factory=GeometryConfig)
    flow: FlowConfig = field(default_factory=FlowConfig)
    distribution: DistributionConfig = field(default_factory=DistributionConfig)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Optional[Mapping[str, Any]]) -> "ScoringConfig":
        d = dict(d or {})
        return cls(
            geometry_weight=d.get("geometry_weight", 0.3),
            flow_weight=d.get("flow_weight", 0.4),
            distribution_weight=d.get("distribution_weight", 0.3),
            geometry=GeometryConfig.from_dict(d.get("geometry")),
            flow=FlowConfig.from_dict(d.get("flow")),
            distribution=DistributionConfig.from_dict(d.get("distribution")),
        )


# ─────────────────────────────────────────────────────────────────────────────
# Partition search
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SearchConfig:
    """
    Partition search settings.

    Attributes:
        max_products:  Larger inputs raise in strict mode; otherwise a warning
                       is logged and only ``max_schemes`` bounds the search.
        max_schemes:   Enumeration stops after this many schemes.
        strict:        Raise EnumerationOverflowError instead of truncating.
        min_group_score: Schemes with any group below this are discarded.
        max_workers:   Process pool size; None = 70% of the CPUs, 0 = inline.
        mold_material: Mold steel used for weight and price.
    """
    max_products: int = 12
    max_schemes: int = 5000
    strict: bool = False
    min_group_score: float = 50.0
    max_workers: Optional[int] = None
    mold_material: str = "NAK80"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Optional[Mapping[str, Any]]) -> "SearchConfig":
        return _from_mapping(cls, d)


# ─────────────────────────────────────────────────────────────────────────────
# Lookup tables
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class StepTable:
    """
    Monotonic step function over sorted thresholds.

    ``lookup(key)`` returns the value of the first rule whose threshold is
    >= key (or > key when ``strict``). Past the last threshold it returns
    ``default``, or raises InvalidInputError when ``error`` is set.
    """
    thresholds: Tuple[float, ...]
    values: Tuple[float, ...]
    strict: bool = False
    default: float = 0.0
    error: Optional[str] = None

    def lookup(self, key: float) -> float:
        if self.strict:
            idx = bisect.bisect_right(self.thresholds, key)
        else:
            idx = bisect.bisect_left(self.thresholds, key)
        if idx < len(self.values):
            return self.values[idx]
        if self.error:
            raise InvalidInputError(f"{self.error}: {key}")
        return self.default

    def to_dict(self) -> dict:
        d: Dict[str, Any] = {
            "rules": [[t, v] for t, v in zip(self.thresholds, self.values)],
            "strict": self.strict,
            "default": self.default,
        }
        if self.error:
            d["error"] = self.error
        return d

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "StepTable":
        rules = sorted((float(t), float(v)) for t, v in d.get("rules", []))
        return cls(
            thresholds=tuple(t for t, _ in rules),
            values=tuple(v for _, v in rules),
            strict=bool(d.get("strict", False)),
            default=float(d.get("default", 0.0)),
            error=d.get("error"),
        )


@dataclass(frozen=True)
class MaterialSpec:
    """Density and unit price of a product or mold material."""
    density: float
    price: float


@dataclass(frozen=True)
class MachineSpec:
    """Injection moulding machine capacity and hourly machining fee."""
    name: str
    injection_volume: float
    mold_width: float
    mold_height: float
    machining_fee: float

    @property
    def tonnage(self) -> int:
        return int(self.name.rstrip("Tt"))


@dataclass(frozen=True)
class PricingTables:
    """Constants and tables consumed by the table-driven pricing collaborator."""
    exchange_rate: float
    profit_coefficient: float
    fixed_loss_rate: float
    machine_utilization: float
    heavy_mold_weight: float
    heavy_mold_rate: float
    light_mold_rate: float
    light_mold_min_weight: float
    operating_fee: StepTable
    price_differ: Dict[str, float]
    materials: Dict[str, MaterialSpec]
    machines: Tuple[MachineSpec, ...]

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "PricingTables":
        return cls(
            exchange_rate=float(d["exchange_rate"]),
            profit_coefficient=float(d["profit_coefficient"]),
            fixed_loss_rate=float(d["fixed_loss_rate"]),
            machine_utilization=float(d["machine_utilization"]),
            heavy_mold_weight=float(d["heavy_mold_weight"]),
            heavy_mold_rate=float(d["heavy_mold_rate"]),
            light_mold_rate=float(d["light_mold_rate"]),
            light_mold_min_weight=float(d["light_mold_min_weight"]),
            operating_fee=StepTable.from_dict(d["operating_fee"]),
            price_differ={str(k).strip(): float(v) for k, v in d.get("price_differ", {}).items()},
            materials={str(k): MaterialSpec(**v) for k, v in d.get("materials", {}).items()},
            machines=tuple(
                sorted((MachineSpec(**m) for m in d.get("machines", [])), key=lambda m: m.tonnage)
            ),
        )


@dataclass(frozen=True)
class LookupTables:
    """All externally configured tables, loaded once and shared read-only."""
    spacing: StepTable
    border_margin: StepTable
    height_bracket: StepTable
    weight_difference: StepTable
    weight_ratio: StepTable
    separate_mold_weight: float
    min_volume_utilization: float
    default_mold_density: float
    mold_materials: Dict[str, MaterialSpec]
    pricing: PricingTables

    def mold_density(self, material: Optional[str]) -> float:
        spec = self.mold_materials.get(material or "")
        return spec.density if spec else self.default_mold_density

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "LookupTables":
        try:
            return cls(
                spacing=StepTable.from_dict(d["spacing"]),
                border_margin=StepTable.from_dict(d["border_margin"]),
                height_bracket=StepTable.from_dict(d["height_bracket"]),
                weight_difference=StepTable.from_dict(d["weight_difference"]),
                weight_ratio=StepTable.from_dict(d["weight_ratio"]),
                separate_mold_weight=float(d["separate_mold_weight"]),
                min_volume_utilization=float(d["min_volume_utilization"]),
                default_mold_density=float(d["default_mold_density"]),
                mold_materials={
                    str(k): MaterialSpec(**v) for k, v in d.get("mold_materials", {}).items()
                },
                pricing=PricingTables.from_dict(d["pricing"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidInputError(f"Malformed lookup tables: {exc}") from exc


def _read_yaml(path: Optional[Union[str, Path]]) -> dict:
    if path is None:
        text = resources.files("moldlayout.data").joinpath(DEFAULT_TABLES_RESOURCE).read_text(
            encoding="utf-8"
        )
    else:
        text = Path(path).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise InvalidInputError(f"Expected a mapping at the top of {path or DEFAULT_TABLES_RESOURCE}")
    return data


_DEFAULT_TABLES: Optional[LookupTables] = None


def load_lookup_tables(path: Optional[Union[str, Path]] = None) -> LookupTables:
    """
    Load lookup tables from YAML.

    Args:
        path: Alternative YAML file. None loads the packaged defaults, which
              are parsed once and reused.
    """
    global _DEFAULT_TABLES
    if path is None and _DEFAULT_TABLES is not None:
        return _DEFAULT_TABLES
    tables = LookupTables.from_dict(_read_yaml(path))
    if path is None:
        _DEFAULT_TABLES = tables
    else:
        logger.info("Loaded lookup tables from %s", path)
    return tables


def load_scoring_config(path: Union[str, Path]) -> ScoringConfig:
    """Load a ScoringConfig override document (only the keys it names change)."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    return ScoringConfig.from_dict(data)
