"""
Pricing rules for quote lines
Category markups, volume discounts and quote numbering
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

LINE_TYPES = ("charger", "accessory", "installation", "service", "custom")
UNITS = ("each", "hour", "meter", "sqm", "linear_meter")


@dataclass(frozen=True)
class VolumeDiscount:
    minimum_quantity: int
    discount_percentage: float
    applicable_categories: tuple

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VolumeDiscount":
        """Accepts the camelCase rows stored in global_settings as well as snake_case."""
        categories = data.get("applicableCategories", data.get("applicable_categories", []))
        return cls(
            minimum_quantity=int(data.get("minimumQuantity", data.get("minimum_quantity", 0))),
            discount_percentage=float(data.get("discountPercentage", data.get("discount_percentage", 0))),
            applicable_categories=tuple(categories),
        )


@dataclass(frozen=True)
class MarginSettings:
    default_markup: float = 35.0
    category_markups: Dict[str, float] = field(default_factory=lambda: {
        "chargers": 30.0,
        "accessories": 40.0,
        "installation": 50.0,
        "service": 60.0,
        "custom": 35.0,
    })
    minimum_margin: float = 15.0
    maximum_discount: float = 25.0
    volume_discounts: tuple = (
        VolumeDiscount(5, 5.0, ("chargers",)),
        VolumeDiscount(10, 10.0, ("chargers",)),
        VolumeDiscount(20, 15.0, ("chargers",)),
    )

    def markup_for_category(self, category: str) -> float:
        # a zero category markup falls back to the default
        return self.category_markups.get(category) or self.default_markup


DEFAULT_MARGIN_SETTINGS = MarginSettings()


@dataclass(frozen=True)
class QuoteLine:
    """Quote line priced from cost/unit price with a percentage markup."""

    id: str
    name: str
    quantity: int
    unit_price: float
    category: str = "custom"
    markup: float = 0.0
    description: str = ""
    cost: float = 0.0
    type: str = "custom"
    unit: str = "each"
    product_id: Optional[str] = None

    @property
    def total(self) -> float:
        return line_total(self.quantity, self.unit_price, self.markup)


def line_total(quantity: float, unit_price: float, markup: float = 0.0) -> float:
    return quantity * unit_price * (1 + markup / 100.0)


def apply_volume_discounts(
    lines: Iterable[QuoteLine],
    volume_discounts: Iterable[VolumeDiscount] = DEFAULT_MARGIN_SETTINGS.volume_discounts,
) -> List[QuoteLine]:
    """
    Reduce unit prices where a category's combined quantity meets a volume tier.

    Quantities are summed per category across all lines. The highest
    percentage among the tiers that apply wins; lines without a tier are
    returned unchanged.
    """
    lines = list(lines)
    tiers = list(volume_discounts)

    category_quantities: Dict[str, int] = {}
    for line in lines:
        category_quantities[line.category] = category_quantities.get(line.category, 0) + line.quantity

    discounted: List[QuoteLine] = []
    for line in lines:
        quantity = category_quantities[line.category]
        applicable = [
            tier for tier in tiers
            if line.category in tier.applicable_categories and quantity >= tier.minimum_quantity
        ]
        if not applicable:
            discounted.append(line)
            continue

        best = max(applicable, key=lambda tier: tier.discount_percentage)
        new_price = line.unit_price * (1 - best.discount_percentage / 100.0)
        logger.debug(
            f"Volume discount {best.discount_percentage}% on {line.id} "
            f"({line.category} qty {quantity})"
        )
        discounted.append(replace(line, unit_price=new_price))

    return discounted


def generate_quote_number(now: Optional[datetime] = None) -> str:
    """QT<yy><mm>-<6 digits>, e.g. QT2510-482913."""
    now = now or datetime.now()
    suffix = f"{int(now.timestamp() * 1000) % 1_000_000:06d}"
    return f"QT{now:%y%m}-{suffix}"
