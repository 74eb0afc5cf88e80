# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request utilities for extracting request data and building response envelopes.
"""

from flask import request
from typing import Dict, Any, Optional, List
import logging

from models.responses import PaginationInfo

logger = logging.getLogger(__name__)


class ResponseBuilder:
    """Utility for building the {success, data, message, errors, pagination} envelope."""

    @staticmethod
    def success(
        data: Any = None,
        message: Optional[str] = None,
        status_code: int = 200,
        headers: Optional[Dict[str, str]] = None
    ) -> tuple:
        """
        Build success response.

        Args:
            data: Response data
            message: Success message
            status_code: HTTP status code
            headers: Additional headers

        Returns:
            Tuple of (response_data, status_code, headers)
        """
        response = {'success': True}

        if message:
            response['message'] = message

        if data is not None:
            response['data'] = data

        return response, status_code, headers or {}

    @staticmethod
    def error(
        message: str,
        status_code: int = 400,
        errors: Optional[List[Dict[str, Any]]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> tuple:
        """
        Build error response.

        Args:
            message: Error message
            status_code: HTTP status code
            errors: Field-level error entries
            headers: Additional headers

        Returns:
            Tuple of (response_data, status_code, headers)
        """
        response = {
            'success': False,
            'message': message
        }

        if errors:
            response['errors'] = errors

        return response, status_code, headers or {}

    @staticmethod
    def paginated(
        items: List[Any],
        total: int,
        page: int,
        limit: int,
        pages: int,
        message: Optional[str] = None
    ) -> tuple:
        """
        Build paginated response.

        Args:
            items: Serialized items for the current page
            total: Total number of matching items
            page: Current page number
            limit: Items per page
            pages: Total number of pages

        Returns:
            Tuple of (response_data, status_code, headers)
        """
        response, status_code, headers = ResponseBuilder.success(items, message)
        response['pagination'] = PaginationInfo(
            page=page,
            limit=limit,
            total=total,
            pages=pages
        ).model_dump()
        return response, status_code, headers


class HeaderUtils:
    """Utilities for working with HTTP headers."""

    @staticmethod
    def get_bearer_token() -> Optional[str]:
        """
        Extract Bearer token from Authorization header.

        Returns:
            Token string or None if not found
        """
        auth_header = request.headers.get('Authorization', '')
        if auth_header.startswith('Bearer '):
            token = auth_header[7:].strip()
            return token or None
        return None
