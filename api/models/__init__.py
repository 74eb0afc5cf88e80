# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the civic issues API.
"""

# Base helpers
from .base import BaseEntity, CamelModel, is_object_id, to_object_id

# Enumerations
from .enums import IssueStatus, UserRole, AdminRole, AdminStatus

# Core entities
from .entities import (
    Department,
    ResponseTime,
    WorkingHours,
    GeoPoint,
    Location,
    Issue,
    IssueTimeline,
    Resolution,
    Administrator,
    AdminPrincipal,
    UserIdentity,
    DepartmentPrincipal
)

# Request models
from .requests import (
    CreateDepartmentRequest,
    UpdateDepartmentRequest,
    PaginationQuery,
    DepartmentListQuery,
    IssueListQuery,
    UpdateIssueStatusRequest,
    ResolveIssueRequest,
    DepartmentPath,
    IssuePath,
    AdminLoginRequest,
    AdminRefreshRequest
)

# Response models
from .responses import (
    FieldError,
    PaginationInfo,
    ApiResponse,
    DepartmentResponse,
    DepartmentCollection,
    IssueResponse,
    IssueCollection,
    AdminToken,
    AdminSession,
    AdminSessionResponse,
    AdminTokenResponse,
    ErrorResponse
)

__all__ = [
    "BaseEntity", "CamelModel", "is_object_id", "to_object_id",
    "IssueStatus", "UserRole", "AdminRole", "AdminStatus",
    "Department", "ResponseTime", "WorkingHours", "GeoPoint", "Location",
    "Issue", "IssueTimeline", "Resolution", "Administrator",
    "AdminPrincipal", "UserIdentity", "DepartmentPrincipal",
    "CreateDepartmentRequest", "UpdateDepartmentRequest", "PaginationQuery",
    "DepartmentListQuery", "IssueListQuery", "UpdateIssueStatusRequest",
    "ResolveIssueRequest", "DepartmentPath", "IssuePath", "AdminLoginRequest",
    "AdminRefreshRequest",
    "FieldError", "PaginationInfo", "ApiResponse", "DepartmentResponse",
    "DepartmentCollection", "IssueResponse", "IssueCollection",
    "AdminToken", "AdminSession", "AdminSessionResponse", "AdminTokenResponse",
    "ErrorResponse"
]
