# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the civic issues platform.
"""

import re
from datetime import datetime
from typing import List, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .base import BaseEntity, CamelModel
from .enums import IssueStatus, AdminRole, AdminStatus, UserRole

HOUR_MINUTE_PATTERN = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')


class ResponseTime(CamelModel):
    """Service level targets a department commits to."""

    acknowledge_hours: Optional[int] = Field(None, ge=0, description="Hours to acknowledge an issue")
    resolve_hours: Optional[int] = Field(None, ge=0, description="Hours to resolve an issue")


class WorkingHours(CamelModel):
    """Opening days and hours of a department."""

    days: List[str] = Field(default_factory=list, description="Working days")
    start: Optional[str] = Field(None, description="Opening time (HH:MM)")
    end: Optional[str] = Field(None, description="Closing time (HH:MM)")

    @field_validator('days')
    @classmethod
    def validate_days(cls, v):
        days = [day.strip().lower() for day in v]
        if any(not day for day in days):
            raise ValueError('Working days cannot be empty')
        return days

    @field_validator('start', 'end')
    @classmethod
    def validate_time(cls, v):
        """Validate 24h HH:MM format."""
        if v is not None and not HOUR_MINUTE_PATTERN.match(v):
            raise ValueError('Time must use HH:MM 24-hour format')
        return v


class GeoPoint(CamelModel):
    """GeoJSON point, coordinates ordered [longitude, latitude]."""

    type: Literal['Point'] = 'Point'
    coordinates: List[float] = Field(..., min_length=2, max_length=2)

    @field_validator('coordinates')
    @classmethod
    def validate_coordinates(cls, v):
        lng, lat = v
        if not -180 <= lng <= 180:
            raise ValueError('Longitude must be between -180 and 180')
        if not -90 <= lat <= 90:
            raise ValueError('Latitude must be between -90 and 90')
        return v


class Location(CamelModel):
    """Department office location."""

    address: Optional[str] = Field(None, max_length=500, description="Street address")
    point: Optional[GeoPoint] = Field(None, description="GeoJSON point")


class Department(BaseEntity):
    """Municipal department that receives and resolves civic issues."""

    name: str = Field(..., description="Department name")
    code: str = Field(..., description="Unique upper-case department code")
    description: Optional[str] = Field(None, description="Department description")
    contact_email: str = Field(..., description="Contact email address")
    contact_phone: Optional[str] = Field(None, description="Contact phone number")
    categories: List[str] = Field(default_factory=list, description="Issue categories handled")
    priority: int = Field(default=3, description="Routing priority (1-5)")
    response_time: Optional[ResponseTime] = None
    working_hours: Optional[WorkingHours] = None
    location: Optional[Location] = None
    is_active: bool = Field(default=True, description="Whether the department is active")
    account_user: Optional[str] = Field(None, description="User account operating this department")


class IssueTimeline(CamelModel):
    """First-reach timestamps of each lifecycle state."""

    reported: Optional[datetime] = None
    acknowledged: Optional[datetime] = None
    started: Optional[datetime] = None
    resolved: Optional[datetime] = None
    closed: Optional[datetime] = None
    rejected: Optional[datetime] = None


class Resolution(CamelModel):
    """
    Resolution details recorded when a department resolves an issue.

    Issues filed by the citizen app carry an empty resolution subdocument
    until they are resolved, so every field is optional here.
    """

    description: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    cost: Optional[float] = None
    resources: List[str] = Field(default_factory=list)
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None


class Issue(BaseEntity):
    """
    Civic issue as seen by the department workflow.

    Issues are filed by the citizen subsystem, so fields this service does not
    manage are carried through untouched.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        extra='allow'
    )

    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    status: IssueStatus = IssueStatus.PENDING
    assigned_department: Optional[str] = None
    timeline: Optional[IssueTimeline] = None
    resolution: Optional[Resolution] = None
    actual_resolution: Optional[datetime] = None
    status_updated_at: Optional[datetime] = None


class Administrator(BaseEntity):
    """Administrator account of the management console."""

    name: str
    email: str
    username: Optional[str] = None
    password_hash: Optional[str] = Field(None, alias="password", exclude=True)
    role: AdminRole = AdminRole.ADMIN
    status: AdminStatus = AdminStatus.ACTIVE
    last_login_at: Optional[datetime] = None


class AdminPrincipal(BaseModel):
    """Verified administrator attached to an admin request."""

    id: str = Field(..., description="Administrator ID")
    name: str = Field(..., description="Administrator display name")
    email: str = Field(..., description="Administrator email")
    role: AdminRole = Field(..., description="Administrator role")
    status: AdminStatus = Field(..., description="Administrator account status")

    model_config = ConfigDict(
        use_enum_values=True
    )

    @classmethod
    def from_admin(cls, admin: Administrator) -> "AdminPrincipal":
        return cls(
            id=admin.id,
            name=admin.name,
            email=admin.email,
            role=admin.role,
            status=admin.status
        )


class UserIdentity(BaseModel):
    """Authenticated citizen-side user, as produced by the generic authenticator."""

    id: str = Field(..., description="Authenticated user ID")
    email: Optional[str] = Field(None, description="User email")
    role: str = Field(..., description="User role")
    department_id: Optional[str] = Field(None, description="Resolved department, cached per request")

    def is_department_account(self) -> bool:
        return self.role == UserRole.DEPARTMENT.value


class DepartmentPrincipal(BaseModel):
    """User acting on behalf of exactly one department."""

    user_id: str = Field(..., description="Department account user ID")
    department_id: str = Field(..., description="Department the user operates")
