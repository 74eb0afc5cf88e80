# SPDX-License-Identifier: Apache-2.0

"""
Authorization domain logic for admin and department principals.

This module contains pure functions deciding whether a verified token or an
authenticated identity may act as an administrator or as a department.
"""

from typing import Dict, Any, Optional
from dataclasses import dataclass

from models.entities import Administrator, UserIdentity
from models.enums import AdminStatus

ADMIN_TOKEN_TYPE = "admin"
REFRESH_TOKEN_KIND = "refresh"

UNAUTHENTICATED = "unauthenticated"
FORBIDDEN = "forbidden"


@dataclass
class AuthorizationResult:
    """Result of an authorization check."""
    allowed: bool
    reason: Optional[str] = None
    failure: Optional[str] = None


def _deny(reason: str, failure: str) -> AuthorizationResult:
    return AuthorizationResult(allowed=False, reason=reason, failure=failure)


def check_admin_claims(payload: Dict[str, Any]) -> AuthorizationResult:
    """
    Check the claims of a signature-verified admin token.

    Args:
        payload: Decoded token payload

    Returns:
        AuthorizationResult; a token of another type is forbidden, a refresh
        token or a token without subject is unauthenticated
    """
    if payload.get("typ") != ADMIN_TOKEN_TYPE:
        return _deny("Admin access required", FORBIDDEN)

    if payload.get("tok") == REFRESH_TOKEN_KIND:
        return _deny("Invalid token", UNAUTHENTICATED)

    if not payload.get("sub"):
        return _deny("Invalid token", UNAUTHENTICATED)

    return AuthorizationResult(allowed=True)


def check_admin_status(admin: Optional[Administrator]) -> AuthorizationResult:
    """Check that a resolved administrator exists and is not suspended."""
    if admin is None:
        return _deny("Admin not found", UNAUTHENTICATED)

    if admin.status == AdminStatus.SUSPENDED.value:
        return _deny("Admin account suspended", FORBIDDEN)

    return AuthorizationResult(allowed=True)


def check_department_role(identity: Optional[UserIdentity]) -> AuthorizationResult:
    """Check that an authenticated identity operates a department account."""
    if identity is None or not identity.id:
        return _deny("Authentication required", UNAUTHENTICATED)

    if not identity.is_department_account():
        return _deny("Department access required", FORBIDDEN)

    return AuthorizationResult(allowed=True)


def check_refresh_claims(payload: Dict[str, Any]) -> AuthorizationResult:
    """Check that a signature-verified token is an admin refresh token."""
    if payload.get("typ") != ADMIN_TOKEN_TYPE or payload.get("tok") != REFRESH_TOKEN_KIND:
        return _deny("Invalid refresh token", UNAUTHENTICATED)

    if not payload.get("sub"):
        return _deny("Invalid refresh token", UNAUTHENTICATED)

    return AuthorizationResult(allowed=True)
