"""
Quote Pydantic Schemas
Request/response contracts for the quote endpoints
"""

from typing import List, Dict, Any, Optional, Literal
from pydantic import BaseModel, Field


# === Request schemas ===

class QuoteLineInput(BaseModel):
    """A quote line as entered in the builder"""
    id: Optional[str] = Field(None, description="Line id (generated when missing)")
    name: str = Field("", description="Line name")
    description: str = Field("", description="Free text description")
    type: Literal["charger", "accessory", "installation", "service", "custom"] = Field("custom")
    category: str = Field("custom", description="Category used for markup and volume tiers")
    quantity: Any = Field(1, description="Quantity; non-numeric or negative input counts as 0")
    unitPrice: Any = Field(0, description="Unit price ex GST; non-numeric or negative input counts as 0")
    markup: Optional[float] = Field(None, ge=0, description="Markup percent (category default when omitted)")
    cost: float = Field(0, ge=0, description="Base cost before markup")
    unit: Literal["each", "hour", "meter", "sqm", "linear_meter"] = Field("each")
    productId: Optional[str] = Field(None, description="Catalogue product id")


class QuoteCalculationRequest(BaseModel):
    """Totals calculation request"""
    lineItems: List[QuoteLineInput] = Field(default_factory=list)
    discount: float = Field(0, ge=0, description="Discount value")
    discountType: Literal["fixed", "percentage"] = Field("fixed")
    applyVolumeDiscounts: bool = Field(True)

    class Config:
        json_schema_extra = {
            "example": {
                "lineItems": [
                    {"name": "Zappi V2 7.4kW", "category": "chargers", "quantity": 4, "unitPrice": 750, "markup": 0},
                    {"name": "Switchboard upgrade", "category": "installation", "quantity": 1, "unitPrice": 2500, "markup": 0},
                    {"name": "Trenching", "category": "installation", "quantity": 1, "unitPrice": 1800, "markup": 0},
                ],
                "discount": 0,
                "discountType": "fixed",
                "applyVolumeDiscounts": False
            }
        }


class ClientInfo(BaseModel):
    """Quote recipient"""
    name: str = Field(..., min_length=1)
    company: str = ""
    contactPerson: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    abn: Optional[str] = None


class QuoteCreateRequest(QuoteCalculationRequest):
    """Quote creation request"""
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    clientInfo: ClientInfo
    projectId: Optional[str] = None
    validityDays: int = Field(30, ge=1, le=365)


class QuoteLinePatch(BaseModel):
    """Partial line edit; only the fields sent are changed"""
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[Literal["charger", "accessory", "installation", "service", "custom"]] = None
    category: Optional[str] = None
    quantity: Any = None
    unitPrice: Any = None
    markup: Optional[float] = Field(None, ge=0)
    cost: Optional[float] = Field(None, ge=0)
    unit: Optional[Literal["each", "hour", "meter", "sqm", "linear_meter"]] = None
    productId: Optional[str] = None


class QuoteUpdateRequest(BaseModel):
    """Quote edit; lineItems, when sent, replace every line"""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    clientInfo: Optional[ClientInfo] = None
    projectId: Optional[str] = None
    lineItems: Optional[List[QuoteLineInput]] = None
    discount: Optional[float] = Field(None, ge=0)
    discountType: Optional[Literal["fixed", "percentage"]] = None
    applyVolumeDiscounts: Optional[bool] = None
    validityDays: Optional[int] = Field(None, ge=1, le=365)

    class Config:
        json_schema_extra = {
            "example": {"title": "Basement car park - 6 bays", "discount": 5, "discountType": "percentage"}
        }


class QuoteDecisionRequest(BaseModel):
    """Client decision recorded against a sent quote"""
    comments: Optional[str] = Field(None, max_length=2000)


# === Response schemas ===

class QuoteLineResult(BaseModel):
    """Processed quote line"""
    id: str
    name: str
    description: str
    type: str
    category: str
    quantity: int
    unitPrice: float
    markup: float
    cost: float
    unit: str
    productId: Optional[str] = None
    listPrice: float = Field(0, description="Unit price before volume discounts")
    totalPrice: float


class QuoteTotalsResult(BaseModel):
    """Rounded totals"""
    subtotal: float
    discount: float
    discountType: Literal["fixed", "percentage"]
    totalExGst: float
    gst: float
    gstRate: int
    total: float


class QuoteCalculationResponse(BaseModel):
    """Totals calculation response"""
    lineItems: List[QuoteLineResult]
    totals: QuoteTotalsResult
    volumeDiscountsApplied: bool


class QuoteRecord(BaseModel):
    """Stored quote"""
    id: str
    quoteNumber: str
    title: str
    status: str
    clientInfo: Dict[str, Any]
    lineItems: List[Dict[str, Any]]
    totals: Dict[str, Any]
    validUntil: str
    description: str = ""
    projectId: Optional[str] = None
    discount: float = 0
    discountType: str = "fixed"
    applyVolumeDiscounts: bool = True
    comments: List[Dict[str, Any]] = Field(default_factory=list)
    createdBy: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None
    sentAt: Optional[str] = None
    acceptedAt: Optional[str] = None
