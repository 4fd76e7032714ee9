"""
Pricing collaborator used by scheme evaluation.

The search only talks to the ``PricingCollaborator`` protocol. ``TablePricing``
is the table-driven implementation over ``LookupTables.pricing``:

    material weight  = volume x density
    material price   = weight x fixed loss rate x unit price
    machining cost   = fee of the smallest machine that fits x utilization
    unit price       = (material price + weight share of machining)
                       x profit coefficient / exchange rate
    mold price       = (rate x weight + operating fee) / exchange rate
                       + weight x material differential / exchange rate

Light molds (<= 1000 kg) are charged at least 100 kg.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol, Sequence

from moldlayout.config import LookupTables, MachineSpec, load_lookup_tables
from moldlayout.models import MoldDimensions, Product, ProductPrice
from moldlayout.search.grouping import group_by_color_material

logger = logging.getLogger(__name__)


class PricingCollaborator(Protocol):
    def mold_price(self, material: str, weight: float) -> float:
        ...

    def product_prices(self, mold: MoldDimensions, group: Sequence[Product]) -> List[ProductPrice]:
        ...


class TablePricing:
    """
    Usage:
        pricing = TablePricing()
        price = pricing.mold_price("NAK80", mold.mold_weight)
        lines = pricing.product_prices(mold, products)
    """

    def __init__(self, tables: Optional[LookupTables] = None):
        self.tables = (tables or load_lookup_tables()).pricing

    # ── Materials ───────────────────────────────────────────────────────────

    def material_weight(self, product: Product) -> float:
        spec = self.tables.materials.get(product.material or "")
        if spec is None:
            return 0.0
        return product.effective_volume * spec.density

    def material_price(self, product: Product) -> float:
        spec = self.tables.materials.get(product.material or "")
        if spec is None:
            return 0.0
        weight = product.effective_volume * spec.density
        return weight * self.tables.fixed_loss_rate * spec.price

    # ── Machines ────────────────────────────────────────────────────────────

    def select_machine(self, mold: MoldDimensions, total_weight: float) -> Optional[MachineSpec]:
        """Smallest-tonnage machine that takes the mold and the shot weight."""
        mold_width = min(mold.length, mold.width)
        for machine in self.tables.machines:
            if (mold_width <= machine.mold_width
                    and mold.height <= machine.mold_height
                    and total_weight / self.tables.machine_utilization <= machine.injection_volume):
                return machine
        return None

    def machining_cost(self, mold: MoldDimensions, products: Sequence[Product]) -> float:
        total_weight = sum(self.material_weight(p) for p in products)
        machine = self.select_machine(mold, total_weight)
        if machine is None:
            logger.debug(
                "No machine for a %.0fx%.0fx%.0f mold with %.1f g shot",
                mold.length, mold.width, mold.height, total_weight,
            )
            return 0.0
        return machine.machining_fee * self.tables.machine_utilization

    # ── Collaborator API ────────────────────────────────────────────────────

    def mold_price(self, material: str, weight: float) -> float:
        t = self.tables
        fee = t.operating_fee.lookup(weight)
        coefficient = t.price_differ.get((material or "").strip(), 0.0)
        differ = weight * coefficient / t.exchange_rate
        if weight > t.heavy_mold_weight:
            return (weight * t.heavy_mold_rate + fee) / t.exchange_rate + differ
        return (max(weight, t.light_mold_min_weight) * t.light_mold_rate + fee) / t.exchange_rate + differ

    def price_products(self, mold: MoldDimensions, products: Sequence[Product],
                       machining_cost: float) -> List[ProductPrice]:
        """Price one batch, sharing ``machining_cost`` by material weight."""
        t = self.tables
        weights = [self.material_weight(p) for p in products]
        total_weight = sum(weights)
        lines = []
        for product, weight in zip(products, weights):
            share = machining_cost * weight / total_weight if total_weight > 0 else 0.0
            material = self.material_price(product)
            unit = (material + share) * t.profit_coefficient / t.exchange_rate
            lines.append(ProductPrice(
                product_id=product.id,
                name=product.name,
                quantity=product.quantity,
                material_price=material,
                machining_cost=share,
                unit_price=unit,
                total_price=unit * product.quantity,
            ))
        return lines

    def product_prices(self, mold: MoldDimensions, group: Sequence[Product]) -> List[ProductPrice]:
        """
        Price a group. Each color-material batch runs separately; the most
        expensive batch sets the machining cost charged to every batch.
        """
        batches: Dict[str, List[Product]] = group_by_color_material(group)
        if not batches:
            return []
        cost = max(self.machining_cost(mold, batch) for batch in batches.values())
        priced: Dict[int, ProductPrice] = {}
        for batch in batches.values():
            for product, line in zip(batch, self.price_products(mold, batch, cost)):
                priced[id(product)] = line
        return [priced[id(p)] for p in group]
