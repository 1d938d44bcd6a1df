"""
Pytest configuration and fixtures
"""

import os
import sys
from pathlib import Path
import pytest

# api.config validates these at import time
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "mock-secret-key-for-testing-only-not-for-production")
os.environ.setdefault("APP_ENV", "development")

# Add src and the mock clients to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from mock_clients.fake_supabase import FakeSupabase

JWT_SECRET = os.environ["SUPABASE_JWT_SECRET"]


@pytest.fixture
def sample_products():
    """Catalogue products in the stored camelCase shape"""
    return [
        {
            "id": "prod-001",
            "sku": "ZAP-V2-7",
            "name": "Zappi V2 7.4kW",
            "brand": "myenergi",
            "model": "ZAPPI-2H07UW",
            "category": "chargers",
            "subcategory": "ac-single-phase",
            "description": "Solar-aware home charger",
            "specifications": {
                "powerRating": "7.4kW",
                "connectorType": "Type 2",
                "protection": "IP65",
                "warranty": "3 years",
            },
            "pricing": {"recommendedRetail": 1500, "listPrice": 1299},
            "inventory": {"available": 25, "reserved": 8, "leadTime": "2-3 weeks"},
            "isActive": True,
            "createdAt": "2025-09-20T00:00:00Z",
        },
        {
            "id": "prod-002",
            "sku": "WB-PULSAR-22",
            "name": "Wallbox Pulsar Plus 22kW",
            "brand": "Wallbox",
            "model": "PLP1",
            "category": "chargers",
            "subcategory": "ac-three-phase",
            "description": "Compact three phase charger",
            "specifications": {
                "powerRating": "22kW",
                "connectorType": "Type 2",
                "protection": "IP54",
            },
            "pricing": {"recommendedRetail": 1500, "listPrice": 1350},
            "inventory": {"available": 4, "reserved": 12, "leadTime": "1 week"},
            "isActive": True,
            "createdAt": "2025-06-01T00:00:00Z",
        },
        {
            "id": "prod-003",
            "sku": "ABB-TERRA-50",
            "name": "ABB Terra 54 DC",
            "brand": "ABB",
            "model": "Terra 54",
            "category": "chargers",
            "subcategory": "dc-fast",
            "description": "50kW DC fast charger",
            "specifications": {
                "powerRating": "50kW",
                "connectorType": "CCS2",
            },
            "pricing": {"recommendedRetail": 35000},
            "inventory": {"available": 0, "reserved": 1, "leadTime": "8 weeks"},
            "isActive": True,
            "createdAt": "2025-10-10T00:00:00Z",
        },
        {
            "id": "prod-004",
            "sku": "CBL-T2-5M",
            "name": "Type 2 Cable 5m",
            "brand": "myenergi",
            "category": "accessories",
            "subcategory": "cables",
            "specifications": {},
            "pricing": {"recommendedRetail": 250},
            "inventory": {"available": 40, "reserved": 0},
            "isActive": False,
            "createdAt": "2024-01-01T00:00:00Z",
        },
    ]


@pytest.fixture
def sample_product_rows(sample_products):
    """The same products as stored rows (snake_case housekeeping columns)"""
    rows = []
    for product in sample_products:
        row = dict(product)
        row["is_active"] = row.pop("isActive")
        row["created_at"] = row.pop("createdAt")
        rows.append(row)
    return rows


@pytest.fixture
def sample_line_items():
    """Quote lines for the 4 x 750 + 2500 + 1800 installation quote"""
    return [
        {"name": "Zappi V2 7.4kW", "type": "charger", "category": "chargers",
         "quantity": 4, "unitPrice": 750, "markup": 0},
        {"name": "Switchboard upgrade", "type": "installation", "category": "installation",
         "quantity": 1, "unitPrice": 2500, "markup": 0},
        {"name": "Trenching", "type": "installation", "category": "installation",
         "quantity": 1, "unitPrice": 1800, "markup": 0},
    ]


@pytest.fixture
def fake_supabase(sample_product_rows):
    """Fake Supabase seeded with the sample catalogue"""
    fake = FakeSupabase(secret=JWT_SECRET)
    fake.db.seed("products", sample_product_rows)
    return fake


@pytest.fixture
def app_client(fake_supabase):
    """TestClient with the Supabase dependency pointed at the fake"""
    from fastapi.testclient import TestClient

    from api.integrations.supabase_client import SupabaseClient, get_supabase_client
    from api.main import app, app_context

    app.dependency_overrides[get_supabase_client] = lambda: SupabaseClient(client=fake_supabase)
    app.state.limiter.reset()
    # lifespan does not run without a `with TestClient(...)` block
    app_context.ready = True
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
    app_context.ready = False


@pytest.fixture
def auth_headers(fake_supabase):
    """Build Authorization headers for a given application role"""
    def _headers(app_role="sales", user_id="user-sales-1"):
        token = fake_supabase.auth.generate_token(user_id, app_role=app_role)
        return {"Authorization": f"Bearer {token}"}
    return _headers


# Test markers
def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, isolated)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (API with fake Supabase)"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests (full workflow)"
    )
    config.addinivalue_line(
        "markers", "slow: Slow running tests"
    )
    config.addinivalue_line(
        "markers", "regression: Regression tests"
    )
    config.addinivalue_line(
        "markers", "critical: Critical path tests that must pass"
    )
