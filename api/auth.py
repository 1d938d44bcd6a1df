"""
JWT Authentication Module for ChargeSource API
Provides Supabase JWT token verification and permission checks
"""

import os
from typing import Dict, Any

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from api.security_config import (
    DEFAULT_APP_ROLE,
    JWT_ALGORITHM,
    JWT_AUDIENCE,
    ROLE_PERMISSIONS,
)

# HTTP Bearer security scheme
security = HTTPBearer()

# JWT Configuration from environment
JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")
JWT_AUD = os.getenv("JWT_AUD", JWT_AUDIENCE)


def verify_token(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> Dict[str, Any]:
    """
    Verify JWT token from Supabase

    Args:
        credentials: HTTP Bearer credentials from request header

    Returns:
        Decoded JWT payload with user information

    Raises:
        HTTPException: 500 if JWT secret not configured
        HTTPException: 401 if token is invalid or expired
    """
    if not JWT_SECRET:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "code": "JWT_NOT_CONFIGURED",
                "message": "JWT secret not configured",
                "hint": "Set SUPABASE_JWT_SECRET environment variable"
            }
        )

    token = credentials.credentials

    try:
        payload = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            audience=JWT_AUD
        )
        return payload
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "code": "TOKEN_EXPIRED",
                "message": "Token has expired",
                "hint": "Please login again to get a new token"
            }
        )
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "code": "INVALID_TOKEN",
                "message": "Invalid authentication token",
                "hint": str(e)
            }
        )


def get_current_user(token_payload: Dict[str, Any] = Depends(verify_token)) -> Dict[str, Any]:
    """
    Extract current user information from verified token

    The application role lives in app_metadata.role; the top-level `role`
    claim is Supabase's database role ("authenticated").

    Args:
        token_payload: Decoded JWT payload

    Returns:
        User information dictionary
    """
    app_metadata = token_payload.get("app_metadata") or {}
    return {
        "user_id": token_payload.get("sub"),
        "email": token_payload.get("email"),
        "role": token_payload.get("role", "authenticated"),
        "app_role": app_metadata.get("role", DEFAULT_APP_ROLE),
    }


def has_permission(user: Dict[str, Any], permission: str) -> bool:
    return permission in ROLE_PERMISSIONS.get(user.get("app_role", DEFAULT_APP_ROLE), set())


def require_permission(permission: str):
    """
    Dependency for permission-based access control

    Args:
        permission: Permission id, e.g. "quotes.compare"

    Returns:
        Dependency function that checks the user's application role
    """
    def permission_checker(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if not has_permission(user, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "code": "INSUFFICIENT_PERMISSIONS",
                    "message": f"Permission '{permission}' required",
                    "hint": f"Your role is '{user.get('app_role')}'"
                }
            )
        return user

    return permission_checker
