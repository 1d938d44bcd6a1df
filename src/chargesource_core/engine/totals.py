"""Quote totals: subtotal, discount, GST (10%) and grand total."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Dict, Iterable, Literal, Mapping

logger = logging.getLogger(__name__)

# Australian GST, fixed
GST_RATE = 0.10
GST_RATE_PERCENT = 10

DiscountType = Literal["fixed", "percentage"]
DISCOUNT_TYPES = ("fixed", "percentage")


def round_currency(amount: float) -> float:
    """
    Round half-up to cents. Only used at the display/serialisation step.

    Works across the whole float range; inf and NaN are returned unchanged.
    """
    value = float(amount)
    if not math.isfinite(value):
        return value
    with localcontext() as ctx:
        # largest float has 309 integer digits, plus two for cents
        ctx.prec = 320
        return float(Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def format_currency(amount: float) -> str:
    """$8,030.00 style display string."""
    return f"${round_currency(amount):,.2f}"


def _line_total(item: Any) -> float:
    if isinstance(item, Mapping):
        value = item.get("total", item.get("total_price", 0.0))
    else:
        value = getattr(item, "total", 0.0)
    try:
        return float(value or 0.0)
    except (OverflowError, TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric line total {value!r}")
        return 0.0


@dataclass(frozen=True)
class QuoteTotals:
    """Totals at full precision; use `rounded()` for display."""

    subtotal: float
    discount: float
    discount_type: str
    total_ex_gst: float
    gst: float
    total: float
    gst_rate: int = GST_RATE_PERCENT

    def rounded(self) -> Dict[str, Any]:
        return {
            "subtotal": round_currency(self.subtotal),
            "discount": round_currency(self.discount),
            "discount_type": self.discount_type,
            "total_ex_gst": round_currency(self.total_ex_gst),
            "gst": round_currency(self.gst),
            "gst_rate": self.gst_rate,
            "total": round_currency(self.total),
        }

    def formatted(self) -> Dict[str, str]:
        return {
            "subtotal": format_currency(self.subtotal),
            "discount": format_currency(self.discount),
            "gst": format_currency(self.gst),
            "total": format_currency(self.total),
        }


def discount_amount(subtotal: float, discount: float, discount_type: str = "fixed") -> float:
    """
    Resolve a discount to a dollar amount within [0, subtotal].

    `fixed` is an absolute amount, `percentage` a percent of the subtotal.
    """
    if discount_type not in DISCOUNT_TYPES:
        raise ValueError(f"Unknown discount type '{discount_type}'")
    try:
        value = float(discount or 0.0)
    except (OverflowError, TypeError, ValueError):
        value = 0.0
    if not math.isfinite(value) or value < 0:
        value = 0.0

    amount = subtotal * (value / 100.0) if discount_type == "percentage" else value
    return min(amount, max(subtotal, 0.0))


def compute_totals(
    items: Iterable[Any],
    discount: float = 0.0,
    discount_type: str = "fixed",
) -> QuoteTotals:
    """
    Derive quote totals from line items.

    Args:
        items: LineItem objects, or mappings carrying a `total`
        discount: Discount value, absolute unless discount_type is percentage
        discount_type: "fixed" or "percentage"

    Returns:
        QuoteTotals where total == subtotal - discount + gst
    """
    subtotal = sum(_line_total(item) for item in items)
    amount = discount_amount(subtotal, discount, discount_type)
    total_ex_gst = subtotal - amount
    gst = total_ex_gst * GST_RATE
    return QuoteTotals(
        subtotal=subtotal,
        discount=amount,
        discount_type=discount_type,
        total_ex_gst=total_ex_gst,
        gst=gst,
        total=total_ex_gst + gst,
    )
