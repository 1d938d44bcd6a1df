"""
Quote Service
Line pricing, volume discounts and totals, plus quote persistence and workflow
"""

import logging
import math
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status

from chargesource_core.engine.line_items import coerce_price, coerce_quantity, new_line_id
from chargesource_core.engine.pricing import (
    DEFAULT_MARGIN_SETTINGS,
    MarginSettings,
    QuoteLine,
    VolumeDiscount,
    apply_volume_discounts,
    generate_quote_number,
)
from chargesource_core.engine.totals import compute_totals, round_currency
from chargesource_core.engine.workflow import StatusTransitionError, check_transition, is_editable

from api.auth import has_permission
from api.integrations.supabase_client import SupabaseClient, SupabaseError
from api.models.quote_schemas import (
    QuoteCalculationRequest,
    QuoteCreateRequest,
    QuoteDecisionRequest,
    QuoteLineInput,
    QuoteLinePatch,
    QuoteUpdateRequest,
)

logger = logging.getLogger(__name__)

DEFAULT_VALIDITY_DAYS = 30


def _line_from_input(line, margins: MarginSettings) -> QuoteLine:
    markup = line.markup if line.markup is not None else margins.markup_for_category(line.category)
    return QuoteLine(
        id=line.id or new_line_id(),
        name=line.name,
        description=line.description,
        type=line.type,
        category=line.category,
        quantity=coerce_quantity(line.quantity),
        unit_price=coerce_price(line.unitPrice),
        markup=markup,
        cost=line.cost,
        unit=line.unit,
        product_id=line.productId,
    )


def _line_to_result(line: QuoteLine, list_price: float) -> Dict[str, Any]:
    return {
        "id": line.id,
        "name": line.name,
        "description": line.description,
        "type": line.type,
        "category": line.category,
        "quantity": line.quantity,
        "unitPrice": round_currency(line.unit_price),
        "listPrice": round_currency(list_price),
        "markup": line.markup,
        "cost": line.cost,
        "unit": line.unit,
        "productId": line.product_id,
        "totalPrice": round_currency(line.total),
    }


def _stored_line_input(stored: Dict[str, Any]) -> QuoteLineInput:
    """Rebuild the entered line from a stored one; volume tiers are applied again on save"""
    data = dict(stored)
    data["unitPrice"] = stored.get("listPrice", stored.get("unitPrice", 0))
    return QuoteLineInput(**data)


def _not_found(quote_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={
            "code": "QUOTE_NOT_FOUND",
            "message": f"Quote {quote_id} not found",
        }
    )


class QuoteService:
    """Service layer for quote calculation, storage and workflow"""

    def __init__(self, db: SupabaseClient, margins: MarginSettings = DEFAULT_MARGIN_SETTINGS):
        self.db = db
        self.margins = margins

    async def load_volume_discounts(self) -> List[VolumeDiscount]:
        """
        Volume tiers from global_settings, falling back to the built-in tiers

        A missing row, an unreadable row or an unavailable settings table all
        fall back to the defaults; totals are still calculated.
        """
        try:
            raw = await self.db.get_global_setting("volume_discounts")
        except SupabaseError as e:
            logger.warning(f"Volume discount settings unavailable, using defaults: {e}")
            return list(self.margins.volume_discounts)

        if not raw:
            return list(self.margins.volume_discounts)

        try:
            return [VolumeDiscount.from_dict(tier) for tier in raw]
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Malformed volume_discounts setting ignored: {e}")
            return list(self.margins.volume_discounts)

    async def price_lines(
        self,
        line_inputs: List[QuoteLineInput],
        discount: float = 0,
        discount_type: str = "fixed",
        apply_volume: bool = True,
    ) -> Dict[str, Any]:
        """
        Price every line and derive quote totals

        Raises:
            HTTPException: 400 when the totals overflow the representable range
        """
        lines = [_line_from_input(line, self.margins) for line in line_inputs]
        list_prices = [line.unit_price for line in lines]

        volume_applied = False
        if apply_volume and lines:
            tiers = await self.load_volume_discounts()
            discounted = apply_volume_discounts(lines, tiers)
            volume_applied = discounted != lines
            lines = discounted

        totals = compute_totals(lines, discount=discount, discount_type=discount_type)
        if not math.isfinite(totals.total):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "code": "TOTALS_OUT_OF_RANGE",
                    "message": "Quote totals are too large to calculate",
                    "hint": "Check line quantities and unit prices"
                }
            )
        rounded = totals.rounded()

        logger.info(
            f"Calculated quote: {len(lines)} lines, subtotal {rounded['subtotal']}, "
            f"total {rounded['total']}"
        )

        return {
            "lineItems": [_line_to_result(line, price) for line, price in zip(lines, list_prices)],
            "totals": {
                "subtotal": rounded["subtotal"],
                "discount": rounded["discount"],
                "discountType": rounded["discount_type"],
                "totalExGst": rounded["total_ex_gst"],
                "gst": rounded["gst"],
                "gstRate": rounded["gst_rate"],
                "total": rounded["total"],
            },
            "volumeDiscountsApplied": volume_applied,
        }

    async def calculate(self, request: QuoteCalculationRequest) -> Dict[str, Any]:
        """
        Price every line and derive quote totals

        Args:
            request: Lines, discount and discount type

        Returns:
            dict: {lineItems, totals, volumeDiscountsApplied}
        """
        return await self.price_lines(
            request.lineItems,
            discount=request.discount,
            discount_type=request.discountType,
            apply_volume=request.applyVolumeDiscounts,
        )

    async def create_quote(
        self,
        request: QuoteCreateRequest,
        user: Dict[str, Any],
        trace_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Recalculate and store a new draft quote

        Totals sent by the client are never trusted; they are recomputed here.
        """
        calculation = await self.calculate(request)
        now = datetime.now(timezone.utc)

        record = {
            "quote_number": generate_quote_number(now),
            "title": request.title,
            "description": request.description,
            "status": "draft",
            "client_info": request.clientInfo.model_dump(),
            "project_id": request.projectId,
            "line_items": calculation["lineItems"],
            "totals": calculation["totals"],
            "discount": request.discount,
            "discount_type": request.discountType,
            "apply_volume_discounts": request.applyVolumeDiscounts,
            "comments": [],
            "valid_until": (now + timedelta(days=request.validityDays)).isoformat(),
            "created_by": user.get("user_id"),
            "trace_id": trace_id,
        }

        stored = await self.db.create_quote(record)
        logger.info(f"Quote {stored.get('quote_number')} created by {user.get('user_id')}")
        return to_quote_record(stored)

    async def get_quote(self, quote_id: str) -> Optional[Dict[str, Any]]:
        row = await self.db.get_quote(quote_id)
        return to_quote_record(row) if row else None

    async def list_quotes(
        self,
        created_by: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        rows = await self.db.list_quotes(created_by=created_by, status=status, limit=limit, offset=offset)
        return [to_quote_record(row) for row in rows]

    # ==========================================
    # Access checks
    # ==========================================

    async def _get_visible_row(self, quote_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
        """Stored row when the user may see it; otherwise 404 so existence is not revealed"""
        row = await self.db.get_quote(quote_id)
        if row is None:
            raise _not_found(quote_id)
        if not has_permission(user, "quotes.view.all") and row.get("created_by") != user.get("user_id"):
            raise _not_found(quote_id)
        return row

    async def _get_row_for(self, quote_id: str, user: Dict[str, Any], action: str) -> Dict[str, Any]:
        """Visible row the user may `action` ("edit" or "delete"), via the .all or .own permission"""
        row = await self._get_visible_row(quote_id, user)
        owner = row.get("created_by") == user.get("user_id")
        allowed = has_permission(user, f"quotes.{action}.all") or (
            owner and has_permission(user, f"quotes.{action}.own")
        )
        if not allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "code": "INSUFFICIENT_PERMISSIONS",
                    "message": f"Not allowed to {action} quote {quote_id}",
                    "hint": f"Your role is '{user.get('app_role')}'"
                }
            )
        return row

    @staticmethod
    def _require_editable(row: Dict[str, Any]) -> None:
        current = row.get("status", "draft")
        if not is_editable(current):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={
                    "code": "QUOTE_NOT_EDITABLE",
                    "message": f"Quote {row.get('quote_number')} is '{current}' and can no longer be edited",
                    "hint": "Duplicate the quote to make a new revision"
                }
            )

    # ==========================================
    # Content edits
    # ==========================================

    async def _save_content(
        self,
        row: Dict[str, Any],
        line_inputs: List[QuoteLineInput],
        user: Dict[str, Any],
        trace_id: Optional[str],
        discount: Optional[float] = None,
        discount_type: Optional[str] = None,
        apply_volume: Optional[bool] = None,
        fields: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Recompute totals for the new lines and store them with any other changed fields"""
        discount = row.get("discount", 0) if discount is None else discount
        discount_type = (row.get("discount_type") or "fixed") if discount_type is None else discount_type
        apply_volume = row.get("apply_volume_discounts", True) if apply_volume is None else apply_volume

        calculation = await self.price_lines(line_inputs, discount, discount_type, apply_volume)

        updates = dict(fields or {})
        updates.update({
            "line_items": calculation["lineItems"],
            "totals": calculation["totals"],
            "discount": discount,
            "discount_type": discount_type,
            "apply_volume_discounts": apply_volume,
            "trace_id": trace_id,
        })
        stored = await self.db.update_quote(str(row["id"]), updates, actor=user.get("user_id"))
        return to_quote_record(stored)

    async def update_quote(
        self,
        quote_id: str,
        request: QuoteUpdateRequest,
        user: Dict[str, Any],
        trace_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Edit header fields, lines or discount of a draft quote; totals are recomputed"""
        row = await self._get_row_for(quote_id, user, "edit")
        self._require_editable(row)

        fields: Dict[str, Any] = {}
        if request.title is not None:
            fields["title"] = request.title
        if request.description is not None:
            fields["description"] = request.description
        if request.clientInfo is not None:
            fields["client_info"] = request.clientInfo.model_dump()
        if request.projectId is not None:
            fields["project_id"] = request.projectId
        if request.validityDays is not None:
            valid_until = datetime.now(timezone.utc) + timedelta(days=request.validityDays)
            fields["valid_until"] = valid_until.isoformat()

        if request.lineItems is not None:
            line_inputs = list(request.lineItems)
        else:
            line_inputs = [_stored_line_input(line) for line in row.get("line_items") or []]

        quote = await self._save_content(
            row, line_inputs, user, trace_id,
            discount=request.discount,
            discount_type=request.discountType,
            apply_volume=request.applyVolumeDiscounts,
            fields=fields,
        )
        logger.info(f"Quote {quote['quoteNumber']} updated by {user.get('user_id')}")
        return quote

    async def add_line_item(
        self,
        quote_id: str,
        line: QuoteLineInput,
        user: Dict[str, Any],
        trace_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        row = await self._get_row_for(quote_id, user, "edit")
        self._require_editable(row)

        line_inputs = [_stored_line_input(stored) for stored in row.get("line_items") or []]
        if line.id is None:
            line = line.model_copy(update={"id": new_line_id()})
        line_inputs.append(line)
        return await self._save_content(row, line_inputs, user, trace_id)

    async def update_line_item(
        self,
        quote_id: str,
        line_id: str,
        patch: QuoteLinePatch,
        user: Dict[str, Any],
        trace_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Change some fields of one line; the line total and quote totals follow"""
        row = await self._get_row_for(quote_id, user, "edit")
        self._require_editable(row)

        changes = patch.model_dump(exclude_unset=True)
        line_inputs = []
        found = False
        for stored in row.get("line_items") or []:
            line = _stored_line_input(stored)
            if line.id == line_id:
                line = QuoteLineInput(**{**line.model_dump(), **changes})
                found = True
            line_inputs.append(line)

        if not found:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={
                    "code": "LINE_ITEM_NOT_FOUND",
                    "message": f"Line {line_id} not found on quote {quote_id}",
                }
            )
        return await self._save_content(row, line_inputs, user, trace_id)

    async def remove_line_item(
        self,
        quote_id: str,
        line_id: str,
        user: Dict[str, Any],
        trace_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        row = await self._get_row_for(quote_id, user, "edit")
        self._require_editable(row)

        stored_lines = row.get("line_items") or []
        kept = [_stored_line_input(stored) for stored in stored_lines if stored.get("id") != line_id]
        if len(kept) == len(stored_lines):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={
                    "code": "LINE_ITEM_NOT_FOUND",
                    "message": f"Line {line_id} not found on quote {quote_id}",
                }
            )
        return await self._save_content(row, kept, user, trace_id)

    # ==========================================
    # Status workflow
    # ==========================================

    async def _transition(
        self,
        quote_id: str,
        target: str,
        user: Dict[str, Any],
        trace_id: Optional[str],
        fields: Optional[Dict[str, Any]] = None,
        comment: Optional[str] = None,
    ) -> Dict[str, Any]:
        row = await self._get_row_for(quote_id, user, "edit")
        current = row.get("status", "draft")
        try:
            check_transition(current, target)
        except StatusTransitionError as e:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={
                    "code": "INVALID_STATUS_TRANSITION",
                    "message": str(e),
                    "hint": f"A '{current}' quote cannot become '{target}'"
                }
            )

        now = datetime.now(timezone.utc).isoformat()
        updates = dict(fields or {})
        updates["status"] = target
        updates["trace_id"] = trace_id
        if comment is not None:
            client_name = (row.get("client_info") or {}).get("contactPerson") or "client"
            updates["comments"] = list(row.get("comments") or []) + [{
                "id": f"comment-{uuid.uuid4().hex[:12]}",
                "userId": "client",
                "userName": client_name,
                "message": comment,
                "timestamp": now,
                "isInternal": False,
            }]

        stored = await self.db.update_quote(str(row["id"]), updates, actor=user.get("user_id"))
        logger.info(f"Quote {row.get('quote_number')} moved {current} -> {target}")
        return to_quote_record(stored)

    async def send_quote(self, quote_id: str, user: Dict[str, Any], trace_id: Optional[str] = None):
        now = datetime.now(timezone.utc).isoformat()
        return await self._transition(quote_id, "sent", user, trace_id, fields={"sent_at": now})

    async def accept_quote(
        self,
        quote_id: str,
        decision: QuoteDecisionRequest,
        user: Dict[str, Any],
        trace_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        now = datetime.now(timezone.utc).isoformat()
        return await self._transition(
            quote_id, "accepted", user, trace_id,
            fields={"accepted_at": now},
            comment=decision.comments or "Quote accepted",
        )

    async def reject_quote(
        self,
        quote_id: str,
        decision: QuoteDecisionRequest,
        user: Dict[str, Any],
        trace_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self._transition(
            quote_id, "rejected", user, trace_id,
            comment=decision.comments or "Quote rejected",
        )

    # ==========================================
    # Duplicate / delete
    # ==========================================

    async def duplicate_quote(
        self,
        quote_id: str,
        user: Dict[str, Any],
        trace_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """New draft with the same content, a new number and a fresh validity period"""
        row = await self._get_visible_row(quote_id, user)
        now = datetime.now(timezone.utc)

        record = {
            "quote_number": generate_quote_number(now),
            "title": row.get("title", ""),
            "description": row.get("description", ""),
            "status": "draft",
            "client_info": row.get("client_info") or {},
            "project_id": row.get("project_id"),
            "line_items": row.get("line_items") or [],
            "totals": row.get("totals") or {},
            "discount": row.get("discount", 0),
            "discount_type": row.get("discount_type", "fixed"),
            "apply_volume_discounts": row.get("apply_volume_discounts", True),
            "comments": [],
            "valid_until": (now + timedelta(days=DEFAULT_VALIDITY_DAYS)).isoformat(),
            "created_by": user.get("user_id"),
            "trace_id": trace_id,
        }

        stored = await self.db.create_quote(record)
        logger.info(f"Quote {row.get('quote_number')} duplicated as {stored.get('quote_number')}")
        return to_quote_record(stored)

    async def delete_quote(self, quote_id: str, user: Dict[str, Any]) -> None:
        await self._get_row_for(quote_id, user, "delete")
        if not await self.db.delete_quote(quote_id, actor=user.get("user_id")):
            raise _not_found(quote_id)
        logger.info(f"Quote {quote_id} deleted by {user.get('user_id')}")


def to_quote_record(row: Dict[str, Any]) -> Dict[str, Any]:
    """Database row (snake_case) to API shape (camelCase)"""
    return {
        "id": str(row.get("id")),
        "quoteNumber": row.get("quote_number", ""),
        "title": row.get("title", ""),
        "description": row.get("description") or "",
        "status": row.get("status", "draft"),
        "clientInfo": row.get("client_info") or {},
        "projectId": row.get("project_id"),
        "lineItems": row.get("line_items") or [],
        "totals": row.get("totals") or {},
        "discount": row.get("discount") or 0,
        "discountType": row.get("discount_type") or "fixed",
        "applyVolumeDiscounts": row.get("apply_volume_discounts", True),
        "comments": row.get("comments") or [],
        "validUntil": row.get("valid_until", ""),
        "createdBy": row.get("created_by"),
        "createdAt": row.get("created_at"),
        "updatedAt": row.get("updated_at"),
        "sentAt": row.get("sent_at"),
        "acceptedAt": row.get("accepted_at"),
    }
