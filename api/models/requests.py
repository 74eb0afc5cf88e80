# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.
"""

import re
from typing import List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .base import is_object_id
from .entities import ResponseTime, WorkingHours, Location
from .enums import IssueStatus

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


def _coerce_positive_int(value, default: int) -> int:
    """Parse a positive integer, falling back to the default on anything else."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


def _normalize_categories(values: List[str]) -> List[str]:
    """Strip tags and drop blanks and repeats, keeping first-seen order."""
    seen = []
    for value in values:
        tag = value.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class RequestModel(BaseModel):
    """Base for JSON bodies: camelCase keys, trimmed strings, unknown keys rejected."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra='forbid'
    )


class CreateDepartmentRequest(RequestModel):
    """Request model for creating a department."""

    name: str = Field(..., min_length=2, max_length=100, description="Department name")
    code: str = Field(..., min_length=2, max_length=20, description="Unique department code")
    description: Optional[str] = Field(None, max_length=1000, description="Department description")
    contact_email: str = Field(..., description="Contact email address")
    contact_phone: Optional[str] = Field(None, max_length=30, description="Contact phone number")
    categories: List[str] = Field(default_factory=list, description="Issue categories handled")
    priority: int = Field(default=3, ge=1, le=5, description="Routing priority (1-5)")
    response_time: Optional[ResponseTime] = Field(None, description="Response time targets")
    working_hours: Optional[WorkingHours] = Field(None, description="Working hours")
    location: Optional[Location] = Field(None, description="Office location")
    account_user: Optional[str] = Field(None, description="Department account user ID")

    @field_validator('code')
    @classmethod
    def validate_code(cls, v):
        return v.upper() if v is not None else v

    @field_validator('contact_email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        if v is None:
            return v
        if not re.match(EMAIL_PATTERN, v.lower()):
            raise ValueError('Invalid email format')
        return v.lower()

    @field_validator('categories')
    @classmethod
    def validate_categories(cls, v):
        return _normalize_categories(v) if v is not None else v

    @field_validator('account_user')
    @classmethod
    def validate_account_user(cls, v):
        if v is not None and not is_object_id(v):
            raise ValueError('Invalid account user ID')
        return v


class UpdateDepartmentRequest(CreateDepartmentRequest):
    """
    Request model for partially updating a department.

    Only keys present in the body are applied; nested objects replace the
    stored value as a whole.
    """

    name: Optional[str] = Field(None, min_length=2, max_length=100, description="Department name")
    code: Optional[str] = Field(None, min_length=2, max_length=20, description="Unique department code")
    contact_email: Optional[str] = Field(None, description="Contact email address")
    categories: Optional[List[str]] = Field(None, description="Issue categories handled")
    priority: Optional[int] = Field(None, ge=1, le=5, description="Routing priority (1-5)")
    is_active: Optional[bool] = Field(None, description="Whether the department is active")

    @model_validator(mode='after')
    def reject_null_required_fields(self):
        required = ('name', 'code', 'contact_email', 'categories', 'priority', 'is_active')
        for field_name in required:
            if field_name in self.model_fields_set and getattr(self, field_name) is None:
                raise ValueError(f'{to_camel(field_name)} cannot be null')
        return self


class PaginationQuery(BaseModel):
    """Page/limit query parameters; invalid values fall back to the defaults."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True
    )

    page: int = Field(DEFAULT_PAGE, description="Page number (1-based)")
    limit: int = Field(DEFAULT_LIMIT, description="Items per page (max 100)")

    @field_validator('page', mode='before')
    @classmethod
    def coerce_page(cls, v):
        return _coerce_positive_int(v, DEFAULT_PAGE)

    @field_validator('limit', mode='before')
    @classmethod
    def coerce_limit(cls, v):
        return min(_coerce_positive_int(v, DEFAULT_LIMIT), MAX_LIMIT)


class DepartmentListQuery(PaginationQuery):
    """Query parameters for listing departments."""

    is_active: Optional[bool] = Field(None, description="Filter by active flag")
    search: Optional[str] = Field(None, max_length=100, description="Search name, code and description")
    category: Optional[str] = Field(None, description="Filter by handled category")


class IssueListQuery(PaginationQuery):
    """Query parameters for a department's own issue queue."""

    status: Optional[IssueStatus] = Field(None, description="Filter by issue status")
    category: Optional[str] = Field(None, description="Filter by issue category")
    search: Optional[str] = Field(None, max_length=100, description="Search title and description")


class UpdateIssueStatusRequest(RequestModel):
    """Request model for moving an issue to a new status."""

    status: IssueStatus = Field(..., description="Target status")


class ResolveIssueRequest(RequestModel):
    """Request model for resolving an issue with resolution details."""

    description: str = Field(..., min_length=5, max_length=2000, description="What was done")
    images: List[str] = Field(default_factory=list, description="Evidence image references")
    cost: Optional[float] = Field(None, ge=0, description="Resolution cost")
    resources: List[str] = Field(default_factory=list, description="Resources used")


class DepartmentPath(BaseModel):
    """Path parameters for department endpoints."""

    department_id: str = Field(..., description="Department ID")

    @field_validator('department_id')
    @classmethod
    def validate_department_id(cls, v):
        if not is_object_id(v):
            raise ValueError('Invalid department ID')
        return v


class IssuePath(BaseModel):
    """Path parameters for issue endpoints."""

    issue_id: str = Field(..., description="Issue ID")

    @field_validator('issue_id')
    @classmethod
    def validate_issue_id(cls, v):
        if not is_object_id(v):
            raise ValueError('Invalid issue ID')
        return v


class AdminLoginRequest(RequestModel):
    """Request model for administrator login with email or username."""

    identifier: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("identifier", "email"),
        description="Administrator email or username"
    )
    password: str = Field(..., min_length=1, description="Administrator password")

    @field_validator('identifier')
    @classmethod
    def validate_identifier(cls, v):
        return v.lower()


class AdminRefreshRequest(RequestModel):
    """Refresh token sent in the body when the refresh cookie is not available."""

    refresh_token: Optional[str] = Field(None, description="Admin refresh token")
