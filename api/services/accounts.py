# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Account lookups for administrators and citizen-side users.
"""

import logging
from typing import Optional, Dict, Any
from opentelemetry import trace

from domain.authorization import check_admin_status, check_refresh_claims
from models.base import is_object_id, to_object_id, utcnow
from models.entities import Administrator, UserIdentity
from models.enums import AdminStatus
from middleware.error_handler import AuthenticationException, AuthorizationException
from services.auth import TokenValidationError

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

ADMINS_COLLECTION = "admins"
USERS_COLLECTION = "users"


class AdminDirectory:
    """Administrator accounts stored in the admins collection."""

    def __init__(self, mongodb_service, auth_service):
        self.mongodb_service = mongodb_service
        self.auth_service = auth_service

    @property
    def collection(self):
        return self.mongodb_service.get_collection(ADMINS_COLLECTION)

    def get_by_id(self, admin_id: str) -> Optional[Administrator]:
        """Look up an administrator; malformed ids resolve to None."""
        if not is_object_id(admin_id):
            return None

        with tracer.start_as_current_span("admins.get_by_id") as span:
            span.set_attribute("admin.id", str(admin_id))
            document = self.collection.find_one({"_id": to_object_id(admin_id)})
            return Administrator.from_document(document) if document else None

    def authenticate(self, identifier: str, password: str) -> Dict[str, Any]:
        """
        Verify administrator credentials and issue admin tokens.

        Args:
            identifier: Administrator email or username (case-insensitive)
            password: Plain text password

        Returns:
            Token dictionary plus the administrator under "admin"

        Raises:
            AuthenticationException: Unknown identifier or wrong password
            AuthorizationException: Suspended account
        """
        with tracer.start_as_current_span("admins.authenticate") as span:
            login = identifier.strip().lower()
            document = self.collection.find_one({"$or": [{"email": login}, {"username": login}]})
            if not document:
                span.set_attribute("auth.result", "unknown_identifier")
                logger.warning("Admin login failed: unknown identifier")
                raise AuthenticationException("Invalid credentials")

            admin = Administrator.from_document(document)

            if not self.auth_service.verify_password(password, admin.password_hash):
                span.set_attribute("auth.result", "bad_password")
                logger.warning("Admin login failed: bad password", extra={"admin_id": admin.id})
                raise AuthenticationException("Invalid credentials")

            if admin.status == AdminStatus.SUSPENDED.value:
                span.set_attribute("auth.result", "suspended")
                logger.warning("Admin login refused: account suspended", extra={"admin_id": admin.id})
                raise AuthorizationException("Admin account suspended")

            now = utcnow()
            self.collection.update_one(
                {"_id": to_object_id(admin.id)},
                {"$set": {"lastLoginAt": now}}
            )
            admin.last_login_at = now

            span.set_attribute("auth.result", "success")
            logger.info("Admin logged in", extra={"admin_id": admin.id})

            session = self.auth_service.generate_admin_tokens(admin)
            session["admin"] = admin
            return session

    def refresh(self, refresh_token: Optional[str]) -> Dict[str, Any]:
        """
        Issue a new admin access token from a refresh token.

        The administrator is looked up again so a suspended or removed account
        cannot keep renewing its session.

        Raises:
            AuthenticationException: Missing or invalid refresh token, unknown admin
            AuthorizationException: Suspended account
        """
        with tracer.start_as_current_span("admins.refresh") as span:
            if not refresh_token:
                span.set_attribute("auth.result", "missing_token")
                raise AuthenticationException("No refresh token")

            try:
                payload = self.auth_service.validate_admin_refresh_token(refresh_token)
            except TokenValidationError:
                span.set_attribute("auth.result", "invalid_token")
                raise AuthenticationException("Invalid refresh token")

            claims = check_refresh_claims(payload)
            if not claims.allowed:
                span.set_attribute("auth.result", claims.failure)
                raise AuthenticationException(claims.reason)

            admin = self.get_by_id(payload["sub"])
            status = check_admin_status(admin)
            if not status.allowed:
                span.set_attribute("auth.result", status.failure)
                logger.warning(f"Admin token refresh refused: {status.reason}", extra={"admin_id": payload["sub"]})
                if admin is None:
                    raise AuthenticationException("Invalid refresh token")
                raise AuthorizationException(status.reason)

            span.set_attribute("auth.result", "success")
            logger.info("Admin access token refreshed", extra={"admin_id": admin.id})
            return self.auth_service.generate_admin_token(admin)


class UserDirectory:
    """Read-only view of citizen-side user accounts."""

    def __init__(self, mongodb_service):
        self.mongodb_service = mongodb_service

    def get_active_identity(self, user_id: str) -> Optional[UserIdentity]:
        """Resolve an active user to an identity; missing or inactive users give None."""
        if not is_object_id(user_id):
            return None

        document = self.mongodb_service.get_collection(USERS_COLLECTION).find_one(
            {"_id": to_object_id(user_id)},
            {"email": 1, "role": 1, "isActive": 1}
        )
        if not document or document.get("isActive") is False:
            return None

        return UserIdentity(
            id=str(document["_id"]),
            email=document.get("email"),
            role=document.get("role", "citizen")
        )
