"""Line item collection for the quote builder."""

from __future__ import annotations

import logging
import math
import re
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .totals import QuoteTotals, compute_totals

logger = logging.getLogger(__name__)

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

# Accepted spellings for editable fields
FIELD_ALIASES: Dict[str, str] = {
    "description": "description",
    "quantity": "quantity",
    "qty": "quantity",
    "unit_price": "unit_price",
    "unitPrice": "unit_price",
    "price": "unit_price",
}


def _finite_or_zero(value: Any) -> float:
    """float(value) when finite and non-negative, else 0. Integers too large for a float count as 0."""
    try:
        number = float(value)
    except (OverflowError, TypeError, ValueError):
        logger.debug(f"Value {value!r} out of range, using 0")
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def coerce_quantity(value: Any) -> int:
    """
    Parse a quantity the way a form field does: leading integer digits only.

    "3" -> 3, "3.7" -> 3, "12 units" -> 12, "abc" -> 0, -2 -> 0, 10**400 -> 0
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(_finite_or_zero(value))
    match = _INT_PREFIX.match(str(value)) if value is not None else None
    if not match:
        logger.debug(f"Quantity {value!r} is not numeric, using 0")
        return 0
    return int(_finite_or_zero(match.group(1)))


def coerce_price(value: Any) -> float:
    """
    Parse a unit price: leading decimal number, 0 for anything unusable.

    "750" -> 750.0, "99.95ea" -> 99.95, "" -> 0.0, "-5" -> 0.0
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return _finite_or_zero(value)
    match = _FLOAT_PREFIX.match(str(value)) if value is not None else None
    if not match:
        logger.debug(f"Price {value!r} is not numeric, using 0")
        return 0.0
    return _finite_or_zero(match.group(1))


@dataclass
class LineItem:
    """A single priced row in a quote. `total` follows quantity and unit_price."""

    id: str
    description: str = ""
    quantity: int = 1
    unit_price: float = 0.0

    @property
    def total(self) -> float:
        return self.quantity * self.unit_price

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total": self.total,
        }


def new_line_id() -> str:
    return f"line-{uuid.uuid4().hex[:12]}"


class LineItemTotalizer:
    """In-memory list of line items owned by a single quote being edited."""

    def __init__(self, items: Optional[List[LineItem]] = None):
        self._items: List[LineItem] = list(items or [])

    @property
    def items(self) -> List[LineItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def add_item(self, description: str = "") -> LineItem:
        """Append a blank row: quantity 1, unit price 0."""
        item = LineItem(id=new_line_id(), description=description, quantity=1, unit_price=0.0)
        self._items.append(item)
        return item

    def find(self, item_id: str) -> Optional[LineItem]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def update_item(self, item_id: str, field: str, value: Any) -> Optional[LineItem]:
        """
        Set one field on the item with the given id.

        Args:
            item_id: Line item id
            field: description, quantity or unit_price (camelCase accepted)
            value: Raw value, usually straight from a form input

        Returns:
            The updated item, or None when no item has that id

        Raises:
            ValueError: if the field cannot be edited
        """
        name = FIELD_ALIASES.get(field)
        if name is None:
            raise ValueError(f"Line item field '{field}' cannot be edited")

        item = self.find(item_id)
        if item is None:
            return None

        if name == "quantity":
            item.quantity = coerce_quantity(value)
        elif name == "unit_price":
            item.unit_price = coerce_price(value)
        else:
            item.description = "" if value is None else str(value)
        return item

    def remove_item(self, item_id: str) -> bool:
        before = len(self._items)
        self._items = [item for item in self._items if item.id != item_id]
        return len(self._items) != before

    def compute_totals(self, discount: float = 0.0, discount_type: str = "fixed") -> QuoteTotals:
        return compute_totals(self._items, discount=discount, discount_type=discount_type)
