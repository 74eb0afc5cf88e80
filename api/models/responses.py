# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Response envelope models for API endpoints.
"""

from typing import Any, List, Optional
from pydantic import BaseModel, Field

from .base import CamelModel
from .entities import Department, Issue, Administrator


class FieldError(BaseModel):
    """Single field-level error entry."""

    field: str = Field(..., description="Offending field (camelCase)")
    message: str = Field(..., description="Human-readable error message")
    type: Optional[str] = Field(None, description="Error type identifier")
    value: Optional[Any] = Field(None, description="Conflicting value")


class PaginationInfo(BaseModel):
    """Pagination block attached to list responses."""

    page: int = Field(..., description="Current page number")
    limit: int = Field(..., description="Items per page")
    total: int = Field(..., description="Total number of matching items")
    pages: int = Field(..., description="Total number of pages")


class ApiResponse(BaseModel):
    """Envelope shared by every endpoint."""

    success: bool = Field(..., description="Whether the request succeeded")
    message: Optional[str] = Field(None, description="Summary message")
    data: Optional[Any] = Field(None, description="Response payload")
    errors: Optional[List[FieldError]] = Field(None, description="Field-level errors")
    pagination: Optional[PaginationInfo] = Field(None, description="Pagination details")


class DepartmentResponse(ApiResponse):
    data: Optional[Department] = None


class DepartmentCollection(ApiResponse):
    data: List[Department] = Field(default_factory=list)


class IssueResponse(ApiResponse):
    data: Optional[Issue] = None


class IssueCollection(ApiResponse):
    data: List[Issue] = Field(default_factory=list)


class AdminToken(CamelModel):
    """Admin access token, as returned by a refresh."""

    access_token: str = Field(..., description="Signed admin access token")
    token_type: str = Field(default="Bearer", description="Token type")
    expires_in: int = Field(..., description="Lifetime in seconds")


class AdminSession(AdminToken):
    """Tokens issued on administrator login."""

    refresh_token: str = Field(..., description="Signed admin refresh token")
    refresh_expires_in: int = Field(..., description="Refresh token lifetime in seconds")
    admin: Administrator = Field(..., description="Administrator profile")


class AdminSessionResponse(ApiResponse):
    data: Optional[AdminSession] = None


class AdminTokenResponse(ApiResponse):
    data: Optional[AdminToken] = None


class ErrorResponse(ApiResponse):
    """Envelope returned on any failure."""

    success: bool = False
