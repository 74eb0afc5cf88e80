# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for error handling and the response envelope.
"""

from flask import Flask
from pydantic import BaseModel, ValidationError
from pymongo.errors import ServerSelectionTimeoutError

from middleware.error_handler import (
    ErrorHandlerMiddleware,
    register_custom_error_handlers,
    format_validation_errors,
    validation_error_response,
    ConflictException,
    NotFoundException,
    ValidationException
)
from utils.request import ResponseBuilder


def build_app(environment='test'):
    app = Flask(__name__)
    app.config['ENVIRONMENT'] = environment
    ErrorHandlerMiddleware(app)
    register_custom_error_handlers(app)

    @app.route('/not-found')
    def not_found():
        raise NotFoundException("Department not found")

    @app.route('/conflict')
    def conflict():
        raise ConflictException("Department with this code already exists", {"code": "PW"})

    @app.route('/invalid')
    def invalid():
        raise ValidationException("Invalid status", [{"field": "status", "message": "Unknown status: lost"}])

    @app.route('/store-down')
    def store_down():
        raise ServerSelectionTimeoutError("localhost:27017: connection refused")

    @app.route('/boom')
    def boom():
        raise RuntimeError("secret internals")

    return app


class TestErrorHandlers:
    """Test error envelopes produced by the handlers."""

    def setup_method(self):
        self.client = build_app().test_client()

    def test_not_found(self):
        response = self.client.get('/not-found')

        assert response.status_code == 404
        assert response.get_json() == {"success": False, "message": "Department not found"}

    def test_conflict_lists_fields(self):
        response = self.client.get('/conflict')

        assert response.status_code == 409
        body = response.get_json()
        assert body["errors"] == [{"field": "code", "value": "PW", "message": "code already exists"}]

    def test_validation(self):
        response = self.client.get('/invalid')

        assert response.status_code == 422
        assert response.get_json()["errors"][0]["field"] == "status"

    def test_store_unavailable_hides_details(self):
        response = self.client.get('/store-down')

        assert response.status_code == 503
        assert response.get_json()["message"] == "Service temporarily unavailable"

    def test_unknown_route(self):
        response = self.client.get('/missing')

        assert response.status_code == 404
        assert response.get_json()["success"] is False

    def test_unexpected_error_detail_outside_production(self):
        response = self.client.get('/boom')

        assert response.status_code == 500
        assert "RuntimeError" in response.get_json()["message"]

    def test_unexpected_error_hidden_in_production(self):
        client = build_app('production').test_client()

        response = client.get('/boom')

        assert response.status_code == 500
        assert "secret" not in response.get_json()["message"]


class TestValidationErrorFormatting:
    """Test request validation error rendering."""

    class Body(BaseModel):
        status: str
        cost: float

    def _error(self):
        try:
            self.Body.model_validate({"cost": "lots"})
        except ValidationError as e:
            return e

    def test_format_validation_errors(self):
        errors = format_validation_errors(self._error())

        assert sorted(error["field"] for error in errors) == ["cost", "status"]
        assert all(error["message"] for error in errors)

    def test_validation_error_response(self):
        app = Flask(__name__)

        with app.test_request_context('/api/departments', method='POST'):
            response = validation_error_response(self._error())

        assert response.status_code == 422
        body = response.get_json()
        assert body["success"] is False
        assert body["message"] == "Validation failed"
        assert len(body["errors"]) == 2


class TestResponseBuilder:
    """Test envelope construction."""

    def test_success(self):
        body, status, headers = ResponseBuilder.success({"id": "1"}, "Created", 201)

        assert body == {"success": True, "message": "Created", "data": {"id": "1"}}
        assert status == 201
        assert headers == {}

    def test_paginated(self):
        body, status, _ = ResponseBuilder.paginated([], 0, 1, 20, 0)

        assert status == 200
        assert body["data"] == []
        assert body["pagination"] == {"page": 1, "limit": 20, "total": 0, "pages": 0}
