"""Quotes Router - Totals calculation, quote storage and workflow"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from api.auth import has_permission, require_permission
from api.integrations.supabase_client import SupabaseClient, get_supabase_client
from api.models.quote_schemas import (
    QuoteCalculationRequest,
    QuoteCalculationResponse,
    QuoteCreateRequest,
    QuoteDecisionRequest,
    QuoteLineInput,
    QuoteLinePatch,
    QuoteRecord,
    QuoteUpdateRequest,
)
from api.services.quote_service import QuoteService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/v1/quotes", tags=["quotes"])


def get_quote_service(db: SupabaseClient = Depends(get_supabase_client)) -> QuoteService:
    return QuoteService(db)


@router.post("/calculate", response_model=QuoteCalculationResponse)
async def calculate_totals(
    req: QuoteCalculationRequest,
    service: QuoteService = Depends(get_quote_service),
    user: dict = Depends(require_permission("quotes.create")),
):
    """
    Price lines and compute totals

    line total = quantity x unit price x (1 + markup/100), after volume tiers
    GST = 10% of (subtotal - discount)
    """
    return await service.calculate(req)


@router.post("", response_model=QuoteRecord, status_code=status.HTTP_201_CREATED)
async def create_quote(
    req: QuoteCreateRequest,
    request: Request,
    service: QuoteService = Depends(get_quote_service),
    user: dict = Depends(require_permission("quotes.create")),
):
    """Create a draft quote; totals are recomputed server-side"""
    trace_id = getattr(request.state, "trace_id", None)
    return await service.create_quote(req, user, trace_id=trace_id)


@router.get("")
async def list_quotes(
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    service: QuoteService = Depends(get_quote_service),
    user: dict = Depends(require_permission("quotes.view.own")),
):
    """List quotes; users without quotes.view.all only see their own"""
    created_by = None if has_permission(user, "quotes.view.all") else user.get("user_id")
    quotes = await service.list_quotes(created_by=created_by, status=status_filter, limit=limit, offset=offset)
    return {"items": quotes, "count": len(quotes)}


@router.get("/{quote_id}", response_model=QuoteRecord)
async def get_quote(
    quote_id: str,
    service: QuoteService = Depends(get_quote_service),
    user: dict = Depends(require_permission("quotes.view.own")),
):
    """Retrieve a quote by id"""
    quote = await service.get_quote(quote_id)
    not_visible = (
        quote is not None
        and not has_permission(user, "quotes.view.all")
        and quote.get("createdBy") != user.get("user_id")
    )
    if quote is None or not_visible:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "code": "QUOTE_NOT_FOUND",
                "message": f"Quote {quote_id} not found",
            }
        )
    return quote


@router.patch("/{quote_id}", response_model=QuoteRecord)
async def update_quote(
    quote_id: str,
    req: QuoteUpdateRequest,
    request: Request,
    service: QuoteService = Depends(get_quote_service),
    user: dict = Depends(require_permission("quotes.edit.own")),
):
    """Edit a draft quote; totals are recomputed from the resulting lines"""
    trace_id = getattr(request.state, "trace_id", None)
    return await service.update_quote(quote_id, req, user, trace_id=trace_id)


@router.post("/{quote_id}/line-items", response_model=QuoteRecord, status_code=status.HTTP_201_CREATED)
async def add_line_item(
    quote_id: str,
    line: QuoteLineInput,
    request: Request,
    service: QuoteService = Depends(get_quote_service),
    user: dict = Depends(require_permission("quotes.edit.own")),
):
    trace_id = getattr(request.state, "trace_id", None)
    return await service.add_line_item(quote_id, line, user, trace_id=trace_id)


@router.patch("/{quote_id}/line-items/{line_id}", response_model=QuoteRecord)
async def update_line_item(
    quote_id: str,
    line_id: str,
    patch: QuoteLinePatch,
    request: Request,
    service: QuoteService = Depends(get_quote_service),
    user: dict = Depends(require_permission("quotes.edit.own")),
):
    """Change fields of one line; its total and the quote totals follow"""
    trace_id = getattr(request.state, "trace_id", None)
    return await service.update_line_item(quote_id, line_id, patch, user, trace_id=trace_id)


@router.delete("/{quote_id}/line-items/{line_id}", response_model=QuoteRecord)
async def remove_line_item(
    quote_id: str,
    line_id: str,
    request: Request,
    service: QuoteService = Depends(get_quote_service),
    user: dict = Depends(require_permission("quotes.edit.own")),
):
    trace_id = getattr(request.state, "trace_id", None)
    return await service.remove_line_item(quote_id, line_id, user, trace_id=trace_id)


@router.post("/{quote_id}/send", response_model=QuoteRecord)
async def send_quote(
    quote_id: str,
    request: Request,
    service: QuoteService = Depends(get_quote_service),
    user: dict = Depends(require_permission("quotes.edit.own")),
):
    """Mark a draft quote as sent to the client"""
    trace_id = getattr(request.state, "trace_id", None)
    return await service.send_quote(quote_id, user, trace_id=trace_id)


@router.post("/{quote_id}/accept", response_model=QuoteRecord)
async def accept_quote(
    quote_id: str,
    decision: QuoteDecisionRequest,
    request: Request,
    service: QuoteService = Depends(get_quote_service),
    user: dict = Depends(require_permission("quotes.edit.own")),
):
    """Record client acceptance of a sent quote"""
    trace_id = getattr(request.state, "trace_id", None)
    return await service.accept_quote(quote_id, decision, user, trace_id=trace_id)


@router.post("/{quote_id}/reject", response_model=QuoteRecord)
async def reject_quote(
    quote_id: str,
    decision: QuoteDecisionRequest,
    request: Request,
    service: QuoteService = Depends(get_quote_service),
    user: dict = Depends(require_permission("quotes.edit.own")),
):
    """Record client rejection of a sent quote"""
    trace_id = getattr(request.state, "trace_id", None)
    return await service.reject_quote(quote_id, decision, user, trace_id=trace_id)


@router.post("/{quote_id}/duplicate", response_model=QuoteRecord, status_code=status.HTTP_201_CREATED)
async def duplicate_quote(
    quote_id: str,
    request: Request,
    service: QuoteService = Depends(get_quote_service),
    user: dict = Depends(require_permission("quotes.create")),
):
    """Copy a quote into a new draft owned by the caller"""
    trace_id = getattr(request.state, "trace_id", None)
    return await service.duplicate_quote(quote_id, user, trace_id=trace_id)


@router.delete("/{quote_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quote(
    quote_id: str,
    service: QuoteService = Depends(get_quote_service),
    user: dict = Depends(require_permission("quotes.view.own")),
):
    """Delete a quote; needs quotes.delete.all, or quotes.delete.own on your own quote"""
    await service.delete_quote(quote_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
