"""Product catalogue filtering over an injected, already-fetched product list."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Literal, Optional

from .comparison import get_field_value

Availability = Literal["in-stock", "low-stock", "back-order", "all"]

LOW_STOCK_THRESHOLD = 10


def _available(product: Dict[str, Any]) -> float:
    value = get_field_value(product, "inventory.available")
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _text(product: Dict[str, Any], path: str) -> str:
    value = get_field_value(product, path)
    return "" if value is None else str(value)


def availability_status(product: Dict[str, Any]) -> str:
    """In Stock above 10 units, Low Stock for 1-10, Back Order at 0."""
    available = _available(product)
    if available > LOW_STOCK_THRESHOLD:
        return "In Stock"
    if available > 0:
        return "Low Stock"
    return "Back Order"


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


@dataclass
class ProductFilter:
    category: Optional[str] = None
    subcategory: Optional[str] = None
    brand: Optional[str] = None
    power_ratings: List[str] = field(default_factory=list)
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    availability: Availability = "all"
    search_term: Optional[str] = None

    def matches(self, product: Dict[str, Any]) -> bool:
        if self.category and product.get("category") != self.category:
            return False
        if self.subcategory and product.get("subcategory") != self.subcategory:
            return False
        if self.brand and self.brand.lower() not in _text(product, "brand").lower():
            return False
        if self.power_ratings:
            rating = _text(product, "specifications.powerRating")
            if not rating or not any(r in rating for r in self.power_ratings):
                return False
        if self.price_min is not None or self.price_max is not None:
            try:
                price = float(get_field_value(product, "pricing.recommendedRetail"))
            except (TypeError, ValueError):
                return False
            if self.price_min is not None and price < self.price_min:
                return False
            if self.price_max is not None and price > self.price_max:
                return False
        if self.availability != "all":
            available = _available(product)
            if self.availability == "in-stock" and not available > LOW_STOCK_THRESHOLD:
                return False
            if self.availability == "low-stock" and not 0 < available <= LOW_STOCK_THRESHOLD:
                return False
            if self.availability == "back-order" and available != 0:
                return False
        if self.search_term:
            needle = self.search_term.lower()
            haystack = ("name", "description", "sku", "brand", "model")
            if not any(needle in _text(product, key).lower() for key in haystack):
                return False
        return True


class ProductCatalogue:
    """
    Read-only view over catalogue rows as fetched from the database.

    Products are plain dicts in the stored camelCase shape
    (pricing.recommendedRetail, inventory.leadTime, ...).
    """

    def __init__(self, products: Iterable[Dict[str, Any]]):
        self._products: List[Dict[str, Any]] = list(products)

    def __len__(self) -> int:
        return len(self._products)

    def _active(self) -> List[Dict[str, Any]]:
        return [p for p in self._products if p.get("isActive", True)]

    def get_products(self, product_filter: Optional[ProductFilter] = None) -> List[Dict[str, Any]]:
        products = self._active()
        if product_filter is None:
            return products
        return [p for p in products if product_filter.matches(p)]

    def get_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        return next((p for p in self._products if p.get("id") == product_id), None)

    def get_product_by_sku(self, sku: str) -> Optional[Dict[str, Any]]:
        return next((p for p in self._products if p.get("sku") == sku), None)

    def get_many(self, product_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """Products for the given ids in the given order; unknown ids are skipped."""
        found = []
        for product_id in product_ids:
            product = self.get_product(product_id)
            if product is not None:
                found.append(product)
        return found

    def get_brands(self) -> List[str]:
        return sorted({p["brand"] for p in self._products if p.get("brand")})

    def get_power_ratings(self) -> List[str]:
        ratings = {_text(p, "specifications.powerRating") for p in self._products}
        return sorted(r for r in ratings if r)

    def get_product_count(self, product_filter: Optional[ProductFilter] = None) -> int:
        return len(self.get_products(product_filter))

    def get_popular_products(self, limit: int = 10) -> List[Dict[str, Any]]:
        # reserved stock stands in for demand until quote analytics exist
        def reserved(p: Dict[str, Any]) -> float:
            try:
                return float(get_field_value(p, "inventory.reserved") or 0)
            except (TypeError, ValueError):
                return 0.0

        return sorted(self._active(), key=reserved, reverse=True)[:limit]

    def get_low_stock_products(self, threshold: int = LOW_STOCK_THRESHOLD) -> List[Dict[str, Any]]:
        low = [p for p in self._active() if _available(p) <= threshold]
        return sorted(low, key=_available)

    def get_new_products(self, days: int = 30, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=days)
        dated = []
        for p in self._active():
            created = _parse_timestamp(p.get("createdAt"))
            if created is not None and created > cutoff:
                dated.append((created, p))
        dated.sort(key=lambda pair: pair[0], reverse=True)
        return [p for _, p in dated]
