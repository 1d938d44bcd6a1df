"""Supabase Integration Tests (against the fake client)"""
import pytest

from api.integrations.supabase_client import SupabaseClient, SupabaseError

pytestmark = pytest.mark.integration


@pytest.fixture
def db(fake_supabase):
    return SupabaseClient(client=fake_supabase)


@pytest.mark.asyncio
async def test_catalog_items_active_only(db):
    """Only active products, ordered by name"""
    rows = await db.get_catalog_items()
    assert [row["id"] for row in rows] == ["prod-003", "prod-002", "prod-001"]


@pytest.mark.asyncio
async def test_catalog_items_by_category(db):
    """Category narrows the query"""
    assert await db.get_catalog_items(category="accessories") == []


@pytest.mark.asyncio
async def test_catalog_items_paged(db, fake_supabase):
    """Every active row is returned, one page_size range per request"""
    fake_supabase.db.reset_query_count()
    rows = await db.get_catalog_items(page_size=2)

    assert [row["id"] for row in rows] == ["prod-003", "prod-002", "prod-001"]
    assert fake_supabase.db.reset_query_count() == 2


@pytest.mark.asyncio
async def test_catalog_items_exact_page_multiple(db, fake_supabase):
    """A full last page costs one extra, empty request"""
    fake_supabase.db.reset_query_count()
    rows = await db.get_catalog_items(page_size=3)

    assert len(rows) == 3
    assert fake_supabase.db.reset_query_count() == 2


@pytest.mark.asyncio
async def test_catalog_items_by_ids(db, fake_supabase):
    """Id lookup skips inactive and unknown products in one request"""
    fake_supabase.db.reset_query_count()
    rows = await db.get_catalog_items_by_ids(["prod-001", "prod-004", "nope"])

    assert [row["id"] for row in rows] == ["prod-001"]
    assert fake_supabase.db.reset_query_count() == 1
    assert await db.get_catalog_items_by_ids([]) == []


@pytest.mark.asyncio
async def test_global_setting_missing(db):
    """Unset settings read as None"""
    assert await db.get_global_setting("volume_discounts") is None


@pytest.mark.asyncio
async def test_failure_wrapped(db, fake_supabase):
    """Client errors surface as SupabaseError"""
    fake_supabase.db.fail("products")
    with pytest.raises(SupabaseError):
        await db.get_catalog_items()


@pytest.mark.asyncio
async def test_audit_log_failure_is_not_fatal(db, fake_supabase):
    """Quotes are stored even when the activity log is down"""
    fake_supabase.db.fail("activity_logs")
    stored = await db.create_quote({"quote_number": "QT2510-000001", "created_by": "user-1"})

    assert stored["quote_number"] == "QT2510-000001"
    assert len(fake_supabase.db.tables["quotes"]) == 1


@pytest.mark.asyncio
async def test_list_quotes_paging(db):
    """offset/limit map to a row range"""
    for n in range(5):
        await db.create_quote({"quote_number": f"QT2510-00000{n}", "created_by": "user-1", "status": "draft"})

    page = await db.list_quotes(created_by="user-1", limit=2, offset=2)
    assert len(page) == 2


@pytest.mark.asyncio
async def test_health(db, fake_supabase):
    """Health check reports the failure text"""
    assert (await db.check_health())["status"] == "ok"
    fake_supabase.db.fail("products")
    assert (await db.check_health())["status"] == "error"


@pytest.mark.asyncio
async def test_update_quote(db, fake_supabase):
    """Updates stamp updated_at and write an audit entry naming the fields"""
    stored = await db.create_quote({"quote_number": "QT2510-000001", "created_by": "user-1", "title": "Old"})

    updated = await db.update_quote(stored["id"], {"title": "New"}, actor="user-1")

    assert updated["title"] == "New"
    assert updated["updated_at"] >= stored["updated_at"]
    log = fake_supabase.db.tables["activity_logs"][-1]
    assert log["action"] == "update_quote"
    assert log["actor"] == "user-1"
    assert log["meta"] == {"fields": ["title"]}


@pytest.mark.asyncio
async def test_update_missing_quote(db):
    """Updating nothing is an error"""
    with pytest.raises(SupabaseError):
        await db.update_quote("nope", {"title": "New"})


@pytest.mark.asyncio
async def test_delete_quote(db, fake_supabase):
    """Delete reports whether a row went away"""
    stored = await db.create_quote({"quote_number": "QT2510-000001", "created_by": "user-1"})

    assert await db.delete_quote(stored["id"], actor="user-1") is True
    assert await db.delete_quote(stored["id"]) is False
    assert fake_supabase.db.tables["quotes"] == []
    assert fake_supabase.db.tables["activity_logs"][-1]["action"] == "delete_quote"
