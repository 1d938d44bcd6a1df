"""
Supabase Client Integration
Catalogue, settings and quote persistence for ChargeSource
"""

import logging
import uuid
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone

from supabase import create_client, Client

from api.config import config

logger = logging.getLogger(__name__)


class SupabaseError(Exception):
    """Raised when a Supabase call fails or returns nothing it should have"""
    pass


class SupabaseClient:
    """Client for Supabase database operations"""

    def __init__(self, client: Optional[Client] = None):
        self.url = config.SUPABASE_URL
        self.key = config.SUPABASE_SERVICE_ROLE_KEY
        self._client = client

    @property
    def client(self) -> Client:
        """Create the underlying client on first use"""
        if self._client is None:
            self._client = create_client(self.url, self.key)
        return self._client

    def _execute(self, query, action: str):
        try:
            return query.execute()
        except Exception as e:
            logger.error(f"Supabase {action} failed: {e}")
            raise SupabaseError(f"{action} failed: {e}") from e

    # ==========================================
    # Catalogue Operations
    # ==========================================

    async def get_catalog_items(
        self,
        category: Optional[str] = None,
        page_size: int = 500
    ) -> List[Dict[str, Any]]:
        """Fetch all active products, ordered by name, page_size rows per request"""
        rows: List[Dict[str, Any]] = []
        offset = 0

        while True:
            query = self.client.table("products").select("*").eq("is_active", True)

            if category:
                query = query.eq("category", category)

            query = query.order("name").range(offset, offset + page_size - 1)

            batch = self._execute(query, "get_catalog_items").data or []
            rows.extend(batch)
            if len(batch) < page_size:
                break
            offset += page_size

        return rows

    async def get_catalog_items_by_ids(self, product_ids: List[str]) -> List[Dict[str, Any]]:
        """Active products with the given ids, in no particular order"""
        if not product_ids:
            return []
        query = (
            self.client.table("products")
            .select("*")
            .in_("id", product_ids)
            .eq("is_active", True)
        )
        response = self._execute(query, "get_catalog_items_by_ids")
        return response.data or []

    async def get_catalog_item(self, product_id: str) -> Optional[Dict[str, Any]]:
        """Get single product by ID"""
        query = self.client.table("products").select("*").eq("id", product_id)
        response = self._execute(query, "get_catalog_item")
        return response.data[0] if response.data else None

    # ==========================================
    # Settings Operations
    # ==========================================

    async def get_global_setting(self, key: str) -> Optional[Any]:
        """Value of a global_settings row, or None when unset"""
        query = self.client.table("global_settings").select("value").eq("key", key)
        response = self._execute(query, "get_global_setting")
        return response.data[0].get("value") if response.data else None

    # ==========================================
    # Quote Operations
    # ==========================================

    async def create_quote(self, quote_data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a new quote"""
        now = datetime.now(timezone.utc).isoformat()
        quote_data["created_at"] = now
        quote_data["updated_at"] = now

        response = self._execute(
            self.client.table("quotes").insert(quote_data), "create_quote"
        )

        if response.data:
            quote_id = response.data[0]["id"]

            await self.create_audit_log(
                actor=quote_data.get("created_by") or "system",
                action="create_quote",
                target=f"quote:{quote_id}",
                trace_id=quote_data.get("trace_id")
            )

            return response.data[0]

        raise SupabaseError("Failed to create quote")

    async def get_quote(self, quote_id: str) -> Optional[Dict[str, Any]]:
        """Get quote by ID"""
        query = self.client.table("quotes").select("*").eq("id", quote_id)
        response = self._execute(query, "get_quote")
        return response.data[0] if response.data else None

    async def update_quote(
        self,
        quote_id: str,
        updates: Dict[str, Any],
        actor: Optional[str] = None
    ) -> Dict[str, Any]:
        """Update existing quote"""
        updates["updated_at"] = datetime.now(timezone.utc).isoformat()

        response = self._execute(
            self.client.table("quotes").update(updates).eq("id", quote_id), "update_quote"
        )

        if response.data:
            await self.create_audit_log(
                actor=actor or "system",
                action="update_quote",
                target=f"quote:{quote_id}",
                trace_id=updates.get("trace_id"),
                meta={"fields": sorted(k for k in updates if k != "updated_at")}
            )

            return response.data[0]

        raise SupabaseError(f"Failed to update quote {quote_id}")

    async def delete_quote(self, quote_id: str, actor: Optional[str] = None) -> bool:
        """Delete quote; False when nothing was deleted"""
        response = self._execute(
            self.client.table("quotes").delete().eq("id", quote_id), "delete_quote"
        )

        if not response.data:
            return False

        await self.create_audit_log(
            actor=actor or "system",
            action="delete_quote",
            target=f"quote:{quote_id}"
        )
        return True

    async def list_quotes(
        self,
        created_by: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[Dict[str, Any]]:
        """List quotes with filters"""
        query = self.client.table("quotes").select("*")

        if created_by:
            query = query.eq("created_by", created_by)

        if status:
            query = query.eq("status", status)

        query = query.order("created_at", desc=True).range(offset, offset + limit - 1)

        response = self._execute(query, "list_quotes")
        return response.data or []

    # ==========================================
    # Audit Operations
    # ==========================================

    async def create_audit_log(
        self,
        actor: str,
        action: str,
        target: str,
        trace_id: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        """Create activity log entry; failures are logged, not raised"""
        audit_data = {
            "actor": actor,
            "action": action,
            "target": target,
            "trace_id": trace_id or str(uuid.uuid4()),
            "meta": meta or {},
            "created_at": datetime.now(timezone.utc).isoformat()
        }

        try:
            response = self.client.table("activity_logs").insert(audit_data).execute()
        except Exception as e:
            logger.warning(f"Audit log for {action} on {target} not written: {e}")
            return None
        return response.data[0] if response.data else None

    # ==========================================
    # Health
    # ==========================================

    async def check_health(self) -> Dict[str, Any]:
        """Cheap read against the products table"""
        try:
            self.client.table("products").select("id").limit(1).execute()
            return {"status": "ok"}
        except Exception as e:
            logger.error(f"Supabase health check failed: {e}")
            return {"status": "error", "error": str(e)}


# Singleton instance
supabase_client = SupabaseClient()


def get_supabase_client() -> SupabaseClient:
    """FastAPI dependency; overridden in tests"""
    return supabase_client
