"""
Product comparison table
Side-by-side feature rows with best-value highlighting
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

DEFAULT_MAX_PRODUCTS = 4
MISSING = "-"
LEAD_TIME_KEY = "inventory.leadTime"

_LEADING_DIGITS = re.compile(r"^\s*(\d+)")


class FeatureType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    CURRENCY = "currency"
    BOOLEAN = "boolean"
    ARRAY = "array"
    RATING = "rating"


@dataclass(frozen=True)
class ComparisonFeature:
    key: str
    label: str
    type: FeatureType = FeatureType.TEXT
    important: bool = False


COMPARISON_FEATURES: Tuple[ComparisonFeature, ...] = (
    ComparisonFeature("name", "Product Name", FeatureType.TEXT, True),
    ComparisonFeature("brand", "Brand", FeatureType.TEXT, True),
    ComparisonFeature("model", "Model"),
    ComparisonFeature("specifications.powerRating", "Power Rating", FeatureType.TEXT, True),
    ComparisonFeature("specifications.inputVoltage", "Input Voltage"),
    ComparisonFeature("specifications.outputVoltage", "Output Voltage"),
    ComparisonFeature("specifications.connectorType", "Connector Type", FeatureType.TEXT, True),
    ComparisonFeature("specifications.connectorTypes", "Connector Types", FeatureType.ARRAY),
    ComparisonFeature("specifications.dimensions", "Dimensions"),
    ComparisonFeature("specifications.weight", "Weight"),
    ComparisonFeature("specifications.protection", "Protection Rating"),
    ComparisonFeature("specifications.efficiency", "Efficiency"),
    ComparisonFeature("specifications.temperature", "Operating Temperature"),
    ComparisonFeature("specifications.warranty", "Warranty"),
    ComparisonFeature("pricing.recommendedRetail", "Recommended Retail Price", FeatureType.CURRENCY, True),
    ComparisonFeature("pricing.listPrice", "List Price", FeatureType.CURRENCY),
    ComparisonFeature("inventory.available", "Available Stock", FeatureType.NUMBER, True),
    ComparisonFeature(LEAD_TIME_KEY, "Lead Time", FeatureType.TEXT, True),
    ComparisonFeature("category", "Category"),
    ComparisonFeature("subcategory", "Subcategory"),
)


def get_field_value(product: Any, path: str) -> Any:
    """
    Resolve a dotted path ("specifications.powerRating") on a product.

    Each segment is looked up as a mapping key first, then as an attribute.
    Returns None as soon as a segment is missing; never raises.
    """
    current = product
    for segment in path.split("."):
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(segment)
        else:
            current = getattr(current, segment, None)
    return current


def is_missing(value: Any) -> bool:
    return value is None or value == ""


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) or math.isinf(number) else number


def _group_thousands(number: float) -> str:
    """1500 -> "1,500"; 1599.5 -> "1,599.5"; at most three decimals."""
    if number == int(number):
        return f"{int(number):,}"
    return f"{number:,.3f}".rstrip("0").rstrip(".")


def format_value(value: Any, feature_type: FeatureType | str) -> str:
    """Render one comparison cell."""
    if is_missing(value):
        return MISSING

    kind = FeatureType(feature_type)
    if kind in (FeatureType.CURRENCY, FeatureType.NUMBER):
        number = _to_number(value)
        if number is None:
            return str(value)
        text = _group_thousands(number)
        return f"${text}" if kind is FeatureType.CURRENCY else text
    if kind is FeatureType.BOOLEAN:
        return "Yes" if value else "No"
    if kind is FeatureType.ARRAY:
        if isinstance(value, (list, tuple)):
            return ", ".join(str(v) for v in value)
        return str(value)
    if kind is FeatureType.RATING:
        number = _to_number(value)
        if number is None:
            return str(value)
        filled = min(max(int(math.floor(number)), 0), 5)
        return "★" * filled + "☆" * (5 - filled)
    return str(value)


def parse_lead_time(value: Any) -> Optional[int]:
    """Leading digit run of a lead time: "2-3 weeks" -> 2, "TBC" -> None."""
    if is_missing(value):
        return None
    match = _LEADING_DIGITS.match(str(value))
    return int(match.group(1)) if match else None


def _product_id(product: Any, index: int) -> str:
    pid = get_field_value(product, "id")
    return str(pid) if not is_missing(pid) else f"#{index}"


def best_value_for(feature: ComparisonFeature, products: Sequence[Any]) -> FrozenSet[str]:
    """
    Ids of the products holding the best value for a feature.

    Lowest price/number wins; for lead time the smallest leading number wins.
    Every tying product is included. Features with no notion of "best"
    return an empty set.
    """
    scores: List[Tuple[str, float]] = []
    kind = FeatureType(feature.type)

    for index, product in enumerate(products):
        value = get_field_value(product, feature.key)
        if is_missing(value):
            continue
        if kind in (FeatureType.CURRENCY, FeatureType.NUMBER):
            score = _to_number(value)
        elif kind is FeatureType.TEXT and feature.key == LEAD_TIME_KEY:
            score = parse_lead_time(value)
        else:
            return frozenset()
        if score is not None:
            scores.append((_product_id(product, index), score))

    if not scores:
        return frozenset()
    best = min(score for _, score in scores)
    return frozenset(pid for pid, score in scores if score == best)


@dataclass(frozen=True)
class ComparisonCell:
    product_id: str
    value: Any
    display: str
    is_best: bool = False


@dataclass(frozen=True)
class ComparisonRow:
    feature: ComparisonFeature
    cells: Tuple[ComparisonCell, ...]

    @property
    def best_product_ids(self) -> List[str]:
        return [cell.product_id for cell in self.cells if cell.is_best]


@dataclass
class ComparisonTable:
    product_ids: List[str] = field(default_factory=list)
    rows: List[ComparisonRow] = field(default_factory=list)
    truncated: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.product_ids

    def row(self, key: str) -> Optional[ComparisonRow]:
        for row in self.rows:
            if row.feature.key == key:
                return row
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_ids": list(self.product_ids),
            "is_empty": self.is_empty,
            "truncated": self.truncated,
            "rows": [
                {
                    "key": row.feature.key,
                    "label": row.feature.label,
                    "type": row.feature.type.value,
                    "important": row.feature.important,
                    "cells": [
                        {
                            "product_id": cell.product_id,
                            "value": cell.value,
                            "display": cell.display,
                            "is_best": cell.is_best,
                        }
                        for cell in row.cells
                    ],
                }
                for row in self.rows
            ],
        }


def build_comparison(
    products: Sequence[Any],
    features: Sequence[ComparisonFeature] = COMPARISON_FEATURES,
    max_products: int = DEFAULT_MAX_PRODUCTS,
) -> ComparisonTable:
    """
    Build the comparison matrix for the given products.

    Rows where no product has a value are left out. More than max_products
    products are cut down to the first max_products.
    """
    products = list(products)
    truncated = len(products) > max_products
    if truncated:
        logger.warning(f"Comparing {len(products)} products, keeping first {max_products}")
        products = products[:max_products]

    ids = [_product_id(product, index) for index, product in enumerate(products)]
    table = ComparisonTable(product_ids=ids, truncated=truncated)
    if not products:
        return table

    for feature in features:
        values = [get_field_value(product, feature.key) for product in products]
        if all(is_missing(value) for value in values):
            continue
        best = best_value_for(feature, products)
        cells = tuple(
            ComparisonCell(
                product_id=pid,
                value=value,
                display=format_value(value, feature.type),
                is_best=pid in best,
            )
            for pid, value in zip(ids, values)
        )
        table.rows.append(ComparisonRow(feature=feature, cells=cells))

    return table


class ComparisonSelection:
    """Ordered set of product ids picked for comparison, capped at max_products."""

    def __init__(self, max_products: int = DEFAULT_MAX_PRODUCTS):
        if max_products < 1:
            raise ValueError("max_products must be at least 1")
        self.max_products = max_products
        self._ids: List[str] = []

    @property
    def product_ids(self) -> List[str]:
        return list(self._ids)

    @property
    def is_full(self) -> bool:
        return len(self._ids) >= self.max_products

    def add(self, product_id: str) -> bool:
        """False when already selected or the selection is full."""
        if product_id in self._ids:
            return False
        if self.is_full:
            logger.info(f"Comparison full ({self.max_products}), not adding {product_id}")
            return False
        self._ids.append(product_id)
        return True

    def toggle(self, product_id: str) -> bool:
        """Add or remove; returns whether the id is selected afterwards."""
        if product_id in self._ids:
            self.remove(product_id)
            return False
        return self.add(product_id)

    def remove(self, product_id: str) -> bool:
        if product_id not in self._ids:
            return False
        self._ids.remove(product_id)
        return True

    def clear(self) -> None:
        self._ids.clear()
