"""
Catalogue Service
Loads products from Supabase into an in-memory catalogue per request
"""

import logging
from typing import Any, Dict, List, Optional

from chargesource_core.engine.catalogue import ProductCatalogue, availability_status
from chargesource_core.engine.comparison import build_comparison

from api.config import config
from api.integrations.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

# Stored column -> catalogue key
_ROW_RENAMES = {
    "is_active": "isActive",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}


def row_to_product(row: Dict[str, Any]) -> Dict[str, Any]:
    """Normalise a products row to the camelCase catalogue shape"""
    product = {}
    for key, value in row.items():
        product[_ROW_RENAMES.get(key, key)] = value
    product.setdefault("specifications", {})
    product.setdefault("pricing", {})
    product.setdefault("inventory", {})
    return product


class CatalogueService:
    """Service for catalogue browsing and product comparison"""

    def __init__(self, db: SupabaseClient, max_products: Optional[int] = None):
        self.db = db
        self.max_products = max_products or config.MAX_COMPARISON_PRODUCTS

    async def load_catalogue(self, category: Optional[str] = None) -> ProductCatalogue:
        rows = await self.db.get_catalog_items(category=category, page_size=config.CATALOG_PAGE_LIMIT)
        logger.debug(f"Loaded {len(rows)} catalogue rows")
        return ProductCatalogue(row_to_product(row) for row in rows)

    async def compare(self, product_ids: List[str]) -> Dict[str, Any]:
        """
        Comparison table for the requested products

        Unknown ids are reported in missing_ids rather than failing the
        request. Duplicates are compared once.

        Args:
            product_ids: Ids in display order

        Returns:
            ComparisonTable as dict plus missing_ids and availability badges
        """
        unique_ids = list(dict.fromkeys(product_ids))
        rows = await self.db.get_catalog_items_by_ids(unique_ids)
        products = ProductCatalogue(row_to_product(row) for row in rows).get_many(unique_ids)
        found = {p.get("id") for p in products}
        missing = [pid for pid in unique_ids if pid not in found]
        if missing:
            logger.info(f"Comparison skipped unknown products: {missing}")

        table = build_comparison(products, max_products=self.max_products)
        result = table.to_dict()
        result["missing_ids"] = missing
        result["availability"] = {
            str(p.get("id")): availability_status(p)
            for p in products
            if str(p.get("id")) in table.product_ids
        }
        return result
