# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with structured envelope responses.
Provides centralized error handling and formatting for Flask applications.
"""

from flask import Flask, request, jsonify, make_response
from werkzeug.exceptions import HTTPException
from pydantic import ValidationError
from pymongo.errors import PyMongoError
from typing import Dict, Any, List, Optional, Tuple
from opentelemetry import trace
import logging

from utils.request import ResponseBuilder

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class CustomException(Exception):
    """Base class for custom application exceptions."""

    def __init__(self, message: str, status_code: int = 500, error_type: str = "application-error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type

    def to_errors(self) -> Optional[List[Dict[str, Any]]]:
        """Field-level entries for the response envelope."""
        return None


class ValidationException(CustomException):
    """Exception for validation errors."""

    def __init__(self, message: str, validation_errors: list = None):
        super().__init__(message, 422, "validation-error")
        self.validation_errors = validation_errors or []

    def to_errors(self):
        return self.validation_errors or None


class AuthenticationException(CustomException):
    """Exception for authentication errors."""

    def __init__(self, message: str):
        super().__init__(message, 401, "authentication-required")


class AuthorizationException(CustomException):
    """Exception for authorization errors."""

    def __init__(self, message: str):
        super().__init__(message, 403, "insufficient-permissions")


class NotFoundException(CustomException):
    """Exception for resource not found errors."""

    def __init__(self, message: str):
        super().__init__(message, 404, "resource-not-found")


class ConflictException(CustomException):
    """Exception for uniqueness conflicts, carrying the colliding field/value pairs."""

    def __init__(self, message: str, conflicts: Dict[str, Any] = None):
        super().__init__(message, 409, "resource-conflict")
        self.conflicts = conflicts or {}

    @property
    def fields(self) -> List[str]:
        return list(self.conflicts.keys())

    def to_errors(self):
        return [
            {"field": field, "value": value, "message": f"{field} already exists"}
            for field, value in self.conflicts.items()
        ] or None


def format_validation_errors(error: ValidationError) -> List[Dict[str, Any]]:
    """
    Flatten a pydantic ValidationError into field-level entries.

    Args:
        error: pydantic validation error

    Returns:
        List of {field, message, type} dictionaries
    """
    formatted = []
    for entry in error.errors():
        field = ".".join(str(part) for part in entry.get("loc", ()))
        formatted.append({
            "field": field or "body",
            "message": entry.get("msg", "Invalid value"),
            "type": entry.get("type", "value_error")
        })
    return formatted


def validation_error_response(error: ValidationError):
    """Render request validation failures raised before a view runs."""
    errors = format_validation_errors(error)

    logger.warning(
        "Request validation failed",
        extra={
            "error_type": "validation-error",
            "path": request.path,
            "method": request.method,
            "fields": [entry["field"] for entry in errors]
        }
    )

    body, status_code, _ = ResponseBuilder.error("Validation failed", 422, errors)
    return make_response(jsonify(body), status_code)


class ErrorHandlerMiddleware:
    """Centralized error handling for HTTP, store and unexpected errors."""

    def __init__(self, app: Flask):
        self.app = app
        self.register_error_handlers()

    def register_error_handlers(self):
        """Register error handlers with Flask application."""

        @self.app.errorhandler(HTTPException)
        def handle_http_exception(error):
            return self.handle_http_error(error)

        @self.app.errorhandler(PyMongoError)
        def handle_store_error(error):
            return self.handle_upstream_error(error)

        # Handle generic exceptions
        @self.app.errorhandler(Exception)
        def handle_generic_exception(error):
            return self.handle_unexpected_error(error)

    def _is_production(self) -> bool:
        return self.app.config.get('ENVIRONMENT') == 'production'

    def handle_http_error(self, error: HTTPException) -> Tuple[Any, int]:
        """
        Handle werkzeug HTTP errors (unknown routes, bad methods, malformed bodies).

        Args:
            error: HTTP exception

        Returns:
            Tuple of (error response, status code)
        """
        status_code = error.code or 500
        message = error.description or error.name

        if status_code >= 500:
            logger.error(
                f"Server error: {error.name}",
                extra={"status_code": status_code, "path": request.path, "method": request.method}
            )
            if self._is_production():
                message = "An internal server error occurred"
        else:
            logger.warning(
                f"Client error: {error.name}",
                extra={"status_code": status_code, "path": request.path, "method": request.method}
            )

        body, status_code, _ = ResponseBuilder.error(message, status_code)
        return jsonify(body), status_code

    def handle_upstream_error(self, error: PyMongoError) -> Tuple[Any, int]:
        """
        Handle document store failures without leaking driver details.

        Args:
            error: pymongo error

        Returns:
            Tuple of (error response, status code)
        """
        with tracer.start_as_current_span("error_handler.upstream_error") as span:
            span.set_attributes({
                "error.type": "service-unavailable",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })
            span.record_exception(error)

            logger.error(
                f"Upstream store error: {error.__class__.__name__}",
                extra={
                    "error_type": "service-unavailable",
                    "error_class": error.__class__.__name__,
                    "path": request.path,
                    "method": request.method
                },
                exc_info=True
            )

            body, status_code, _ = ResponseBuilder.error("Service temporarily unavailable", 503)
            return jsonify(body), status_code

    def handle_unexpected_error(self, error: Exception) -> Tuple[Any, int]:
        """
        Handle unexpected exceptions not caught by specific handlers.

        Args:
            error: Unexpected exception

        Returns:
            Tuple of (error response, status code)
        """
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "unexpected-error",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })

            # Record exception in span
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={
                    "error_type": "unexpected-error",
                    "error_class": error.__class__.__name__,
                    "error_message": str(error),
                    "path": request.path,
                    "method": request.method,
                    "user_agent": request.headers.get('User-Agent'),
                    "ip_address": request.remote_addr
                },
                exc_info=True
            )

            # Don't expose internal error details
            message = "An unexpected error occurred"
            if not self._is_production():
                message = f"{error.__class__.__name__}: {str(error)}"

            body, status_code, _ = ResponseBuilder.error(message, 500)
            return jsonify(body), status_code


def register_custom_error_handlers(app: Flask):
    """
    Register handlers for custom exceptions.

    Args:
        app: Flask application
    """

    @app.errorhandler(CustomException)
    def handle_custom_exception(error: CustomException):
        with tracer.start_as_current_span("error_handler.custom_exception") as span:
            span.set_attributes({
                "error.type": error.error_type,
                "error.status": error.status_code,
                "http.method": request.method,
                "http.path": request.path
            })

            log = logger.error if error.status_code >= 500 else logger.warning
            log(
                f"Custom exception: {error.error_type}",
                extra={
                    "error_type": error.error_type,
                    "status_code": error.status_code,
                    "error_message": error.message,
                    "path": request.path,
                    "method": request.method
                }
            )

            body, status_code, _ = ResponseBuilder.error(
                error.message,
                error.status_code,
                error.to_errors()
            )
            return jsonify(body), status_code
