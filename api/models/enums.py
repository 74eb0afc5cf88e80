# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the civic issues platform.
"""

from enum import Enum


class IssueStatus(str, Enum):
    """Issue lifecycle status enumeration."""
    PENDING = "pending"
    ACKNOWLEDGED = "acknowledged"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"
    REJECTED = "rejected"


class UserRole(str, Enum):
    """Roles carried by citizen-side user accounts."""
    CITIZEN = "citizen"
    DEPARTMENT = "department"
    ADMIN = "admin"


class AdminRole(str, Enum):
    """Administrator console roles."""
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class AdminStatus(str, Enum):
    """Administrator account status enumeration."""
    ACTIVE = "active"
    SUSPENDED = "suspended"
    INVITED = "invited"
