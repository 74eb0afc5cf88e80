# SPDX-License-Identifier: Apache-2.0

"""
Authentication middleware for admin and department principals.

This module provides the bearer token guards that turn a request into a
verified principal: the admin guard, the generic user authenticator and the
department guard that builds on it.

Protected views stack flask-openapi3's validate_request() below these
decorators, so credentials are checked before path, query and body.
"""

from functools import wraps
from flask import g, current_app
from typing import Optional, Callable
from opentelemetry import trace
import logging

from domain.authorization import (
    FORBIDDEN,
    AuthorizationResult,
    check_admin_claims,
    check_admin_status,
    check_department_role
)
from models.entities import AdminPrincipal, UserIdentity, DepartmentPrincipal
from middleware.error_handler import AuthenticationException, AuthorizationException
from services.auth import TokenValidationError
from utils.request import HeaderUtils

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


def _raise_for(result: AuthorizationResult) -> None:
    if result.allowed:
        return
    if result.failure == FORBIDDEN:
        raise AuthorizationException(result.reason)
    raise AuthenticationException(result.reason)


class AuthMiddleware:
    """
    Bearer token authentication for Flask views.

    Resolves tokens to principals; the decorators below attach them to the
    request and pass them to the protected view.
    """

    def __init__(self, auth_service, admin_directory, user_directory, department_registry):
        """
        Initialize the authentication middleware.

        Args:
            auth_service: JWT authentication service
            admin_directory: Administrator lookups
            user_directory: Citizen-side user lookups
            department_registry: Department lookups by owning account
        """
        self.auth_service = auth_service
        self.admin_directory = admin_directory
        self.user_directory = user_directory
        self.department_registry = department_registry

    def extract_token_from_request(self) -> Optional[str]:
        """
        Extract JWT token from the Authorization header.

        Returns:
            JWT token string or None if not found
        """
        return HeaderUtils.get_bearer_token()

    def authenticate_admin(self, token: Optional[str]) -> AdminPrincipal:
        """
        Verify an admin bearer token and resolve the administrator.

        Raises:
            AuthenticationException: Missing, invalid or expired token, or unknown admin
            AuthorizationException: Token of another type, or suspended admin
        """
        with tracer.start_as_current_span("auth.middleware.authenticate_admin") as span:
            if not token:
                span.set_attribute("auth.result", "missing_token")
                raise AuthenticationException("Access token required")

            try:
                payload = self.auth_service.validate_admin_token(token)
            except TokenValidationError:
                span.set_attribute("auth.result", "invalid_token")
                raise AuthenticationException("Invalid or expired token")

            claims = check_admin_claims(payload)
            if not claims.allowed:
                span.set_attribute("auth.result", claims.failure)
                logger.warning(f"Admin authentication refused: {claims.reason}")
            _raise_for(claims)

            admin = self.admin_directory.get_by_id(payload["sub"])
            status = check_admin_status(admin)
            if not status.allowed:
                span.set_attribute("auth.result", status.failure)
                logger.warning(
                    f"Admin authentication refused: {status.reason}",
                    extra={"admin_id": payload.get("sub")}
                )
            _raise_for(status)

            span.set_attributes({"auth.result": "success", "admin.id": admin.id})
            return AdminPrincipal.from_admin(admin)

    def authenticate_user(self, token: Optional[str]) -> UserIdentity:
        """
        Verify a citizen-side access token and resolve the active user.

        Raises:
            AuthenticationException: Missing or invalid token, unknown or inactive user
        """
        with tracer.start_as_current_span("auth.middleware.authenticate_user") as span:
            if not token:
                span.set_attribute("auth.result", "missing_token")
                raise AuthenticationException("Access token required")

            try:
                payload = self.auth_service.validate_token(token)
            except TokenValidationError:
                span.set_attribute("auth.result", "invalid_token")
                raise AuthenticationException("Invalid or expired token")

            user_id = payload.get("userId") or payload.get("sub")
            identity = self.user_directory.get_active_identity(str(user_id))
            if identity is None:
                span.set_attribute("auth.result", "unknown_user")
                raise AuthenticationException("User not found or inactive")

            span.set_attributes({"auth.result": "success", "user.id": identity.id})
            return identity

    def resolve_department(self, identity: Optional[UserIdentity]) -> DepartmentPrincipal:
        """
        Resolve the department operated by an authenticated identity.

        The department id is cached on the identity for the rest of the request.

        Raises:
            AuthenticationException: No authenticated identity
            AuthorizationException: Not a department account, or no department linked
        """
        with tracer.start_as_current_span("auth.middleware.resolve_department") as span:
            result = check_department_role(identity)
            if not result.allowed:
                span.set_attribute("auth.result", result.failure)
            _raise_for(result)

            if not identity.department_id:
                department_id = self.department_registry.find_id_by_account_user(identity.id)
                if not department_id:
                    span.set_attribute("auth.result", "no_department")
                    logger.warning(
                        "Department account has no linked department",
                        extra={"user_id": identity.id}
                    )
                    raise AuthorizationException("No department linked to this account")
                identity.department_id = department_id

            span.set_attributes({"auth.result": "success", "department.id": identity.department_id})
            return DepartmentPrincipal(user_id=identity.id, department_id=identity.department_id)


def require_admin(f: Callable) -> Callable:
    """Require a verified administrator; the view receives the AdminPrincipal first."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_middleware = current_app.auth_middleware
        admin = auth_middleware.authenticate_admin(auth_middleware.extract_token_from_request())
        g.admin = admin

        logger.debug("Admin authenticated", extra={"admin_id": admin.id})
        return f(admin, *args, **kwargs)

    return decorated_function


def require_auth(f: Callable) -> Callable:
    """Require an authenticated user; the identity is stored on g.current_user."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_middleware = current_app.auth_middleware
        g.current_user = auth_middleware.authenticate_user(auth_middleware.extract_token_from_request())
        return f(*args, **kwargs)

    return decorated_function


def require_department(f: Callable) -> Callable:
    """
    Require a department account; the view receives the DepartmentPrincipal first.

    Must run after require_auth.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        principal = current_app.auth_middleware.resolve_department(g.get('current_user'))
        g.department = principal
        return f(principal, *args, **kwargs)

    return decorated_function
