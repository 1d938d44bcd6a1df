"""Catalog Router - Product catalogue browsing and comparison"""
import logging
import math
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from chargesource_core.engine.catalogue import ProductFilter

from api.auth import require_permission
from api.integrations.supabase_client import SupabaseClient, get_supabase_client
from api.models.catalog_schemas import CatalogListResponse, CompareRequest, CompareResponse
from api.services.catalogue_service import CatalogueService, row_to_product

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/v1/catalog", tags=["catalog"])


def get_catalogue_service(db: SupabaseClient = Depends(get_supabase_client)) -> CatalogueService:
    return CatalogueService(db)


@router.get("", response_model=CatalogListResponse)
async def list_catalog(
    category: Optional[str] = None,
    subcategory: Optional[str] = None,
    brand: Optional[str] = None,
    powerRating: Optional[List[str]] = Query(None),
    minPrice: Optional[float] = Query(None, ge=0),
    maxPrice: Optional[float] = Query(None, ge=0),
    availability: Literal["in-stock", "low-stock", "back-order", "all"] = "all",
    q: Optional[str] = None,
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    service: CatalogueService = Depends(get_catalogue_service),
    user: dict = Depends(require_permission("products.view")),
):
    """Search catalogue products"""
    catalogue = await service.load_catalogue(category=category)
    product_filter = ProductFilter(
        category=category,
        subcategory=subcategory,
        brand=brand,
        power_ratings=powerRating or [],
        price_min=minPrice,
        price_max=maxPrice,
        availability=availability,
        search_term=q,
    )
    products = catalogue.get_products(product_filter)
    total = len(products)
    start = (page - 1) * size
    return {
        "items": products[start:start + size],
        "pagination": {"page": page, "size": size, "total": total, "pages": math.ceil(total / size)},
    }


@router.get("/brands")
async def list_brands(
    service: CatalogueService = Depends(get_catalogue_service),
    user: dict = Depends(require_permission("products.view")),
):
    """Distinct brands, sorted"""
    catalogue = await service.load_catalogue()
    return {"brands": catalogue.get_brands()}


@router.get("/power-ratings")
async def list_power_ratings(
    service: CatalogueService = Depends(get_catalogue_service),
    user: dict = Depends(require_permission("products.view")),
):
    """Distinct power ratings, sorted"""
    catalogue = await service.load_catalogue()
    return {"powerRatings": catalogue.get_power_ratings()}


@router.post("/compare", response_model=CompareResponse)
async def compare_products(
    req: CompareRequest,
    service: CatalogueService = Depends(get_catalogue_service),
    user: dict = Depends(require_permission("quotes.compare")),
):
    """
    Side-by-side comparison with best-value flags

    - Lowest price / number wins; ties are all flagged
    - Shortest lead time wins (leading number of the lead time text)
    - Rows without any value are omitted
    """
    if len(set(req.productIds)) > service.max_products:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "code": "TOO_MANY_PRODUCTS",
                "message": f"At most {service.max_products} products can be compared",
                "hint": "Remove products from the comparison and try again"
            }
        )
    return await service.compare(req.productIds)


@router.get("/{product_id}")
async def get_product(
    product_id: str,
    db: SupabaseClient = Depends(get_supabase_client),
    user: dict = Depends(require_permission("products.view")),
):
    """Single product by id"""
    row = await db.get_catalog_item(product_id)
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "code": "PRODUCT_NOT_FOUND",
                "message": f"Product {product_id} not found",
            }
        )
    return row_to_product(row)
