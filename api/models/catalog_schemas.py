"""
Catalogue Pydantic Schemas
"""

from typing import List, Dict, Any, Optional
from pydantic import BaseModel, Field


class CompareRequest(BaseModel):
    """Product comparison request"""
    productIds: List[str] = Field(default_factory=list, description="Catalogue product ids, in display order")

    class Config:
        json_schema_extra = {
            "example": {"productIds": ["prod-001", "prod-002"]}
        }


class ComparisonCellResult(BaseModel):
    product_id: str
    value: Any = None
    display: str
    is_best: bool


class ComparisonRowResult(BaseModel):
    key: str
    label: str
    type: str
    important: bool
    cells: List[ComparisonCellResult]


class CompareResponse(BaseModel):
    """Comparison table; empty when none of the ids exist"""
    product_ids: List[str]
    is_empty: bool
    truncated: bool
    missing_ids: List[str] = Field(default_factory=list)
    availability: Dict[str, str] = Field(default_factory=dict)
    rows: List[ComparisonRowResult]


class CatalogListResponse(BaseModel):
    items: List[Dict[str, Any]]
    pagination: Dict[str, int]
