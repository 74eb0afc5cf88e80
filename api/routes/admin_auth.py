# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Administrator session endpoints.
"""

from flask import current_app, jsonify, make_response, request
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from pydantic import ValidationError
import logging

from models.entities import AdminPrincipal
from models.requests import AdminLoginRequest, AdminRefreshRequest
from models.responses import (
    AdminToken,
    AdminSession,
    AdminSessionResponse,
    AdminTokenResponse,
    ApiResponse,
    ErrorResponse
)
from middleware.auth import require_admin
from middleware.error_handler import ValidationException, format_validation_errors
from utils.request import ResponseBuilder

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

REFRESH_COOKIE = "admin_refresh_token"
REFRESH_COOKIE_PATH = "/api/admin/auth/refresh"

admin_auth_tag = Tag(name="Admin Authentication", description="Administrator console sessions")
admin_auth_bp = APIBlueprint(
    'admin_auth',
    __name__,
    url_prefix='/api/admin/auth',
    abp_tags=[admin_auth_tag]
)


@admin_auth_bp.post('/login', responses={200: AdminSessionResponse, 401: ErrorResponse, 403: ErrorResponse})
def admin_login(body: AdminLoginRequest):
    """
    Administrator login with email or username.

    Returns a short-lived admin access token and a refresh token, which is
    also set as an httpOnly cookie scoped to the refresh endpoint.
    """
    with tracer.start_as_current_span("routes.admin_auth.login"):
        session = current_app.admin_directory.authenticate(body.identifier, body.password)
        payload = AdminSession(
            access_token=session["access_token"],
            token_type=session["token_type"],
            expires_in=session["expires_in"],
            refresh_token=session["refresh_token"],
            refresh_expires_in=session["refresh_expires_in"],
            admin=session["admin"]
        )

        envelope, status_code, headers = ResponseBuilder.success(
            payload.model_dump(by_alias=True, mode="json"), "Login successful"
        )
        response = make_response(jsonify(envelope), status_code, headers)
        production = current_app.config.get("ENVIRONMENT") == "production"
        response.set_cookie(
            REFRESH_COOKIE,
            session["refresh_token"],
            max_age=session["refresh_expires_in"],
            path=REFRESH_COOKIE_PATH,
            httponly=True,
            secure=production,
            samesite="Strict" if production else "Lax"
        )
        return response


@admin_auth_bp.post('/refresh', responses={200: AdminTokenResponse, 401: ErrorResponse, 403: ErrorResponse})
def refresh_admin_token():
    """
    Renew the admin access token.

    The refresh token is read from the refresh cookie, or from the
    refreshToken field of a JSON body.
    """
    with tracer.start_as_current_span("routes.admin_auth.refresh"):
        refresh_token = request.cookies.get(REFRESH_COOKIE)

        if not refresh_token:
            try:
                refresh_request = AdminRefreshRequest.model_validate(request.get_json(silent=True) or {})
            except ValidationError as e:
                raise ValidationException("Validation failed", format_validation_errors(e))
            refresh_token = refresh_request.refresh_token

        tokens = current_app.admin_directory.refresh(refresh_token)
        payload = AdminToken(
            access_token=tokens["access_token"],
            token_type=tokens["token_type"],
            expires_in=tokens["expires_in"]
        )
        return ResponseBuilder.success(payload.model_dump(by_alias=True, mode="json"), "Token refreshed")


@admin_auth_bp.get('/me', responses={200: ApiResponse, 401: ErrorResponse, 403: ErrorResponse})
@require_admin
def current_admin(admin: AdminPrincipal):
    """Profile of the signed-in administrator."""
    return ResponseBuilder.success(admin.model_dump())
