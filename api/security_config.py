"""
Security Configuration for ChargeSource API
Centralizes security settings for CORS, Trusted Hosts, and authentication
"""

import os

# CORS Configuration
ALLOWED_ORIGINS = [
    "https://chargesource.com.au",
    "https://app.chargesource.com.au",
]

# Trusted Host Configuration
ALLOWED_HOSTS = [
    "chargesource.com.au",
    "*.chargesource.com.au",
    "localhost",
    "127.0.0.1",
]

# Response Headers to Expose
EXPOSE_HEADERS = ["X-Trace-Id", "X-Process-Time"]

# Development overrides
def get_allowed_origins() -> list[str]:
    """Get allowed origins based on environment"""
    env = os.getenv("APP_ENV", "development")
    if env == "production":
        return ALLOWED_ORIGINS
    else:
        return ["http://localhost:8080", "http://localhost:5173", "http://127.0.0.1:8080"]

def get_allowed_hosts() -> list[str]:
    """Get allowed hosts based on environment"""
    env = os.getenv("APP_ENV", "development")
    if env == "production":
        return ALLOWED_HOSTS
    else:
        return ["localhost", "127.0.0.1", "testserver"]

# Rate Limiting Configuration
RATE_LIMIT_DEFAULT = "100/minute"

# JWT Configuration
JWT_ALGORITHM = "HS256"
JWT_AUDIENCE = "authenticated"

# Role -> permission map for the quote and catalogue endpoints
_STAFF_BASE = {"products.view", "quotes.view.all", "quotes.view.own", "quotes.create", "quotes.compare"}

ROLE_PERMISSIONS = {
    "global_admin": _STAFF_BASE | {"quotes.edit.all", "quotes.edit.own", "quotes.delete.all", "quotes.delete.own"},
    "admin": _STAFF_BASE | {"quotes.edit.all", "quotes.edit.own", "quotes.delete.all", "quotes.delete.own"},
    "sales": _STAFF_BASE | {"quotes.edit.all", "quotes.edit.own", "quotes.delete.own"},
    "partner": {"products.view", "quotes.view.own", "quotes.create", "quotes.edit.own", "quotes.delete.own", "quotes.compare"},
    "user": {"products.view", "quotes.view.own", "quotes.create", "quotes.edit.own", "quotes.compare"},
}
DEFAULT_APP_ROLE = "user"
