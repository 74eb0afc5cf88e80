# SPDX-License-Identifier: Apache-2.0

"""
Query building for department and issue listings.

Pure functions translating listing filters into MongoDB filter documents.
"""

import math
import re
from typing import Dict, Any, List, Optional, Tuple
from dataclasses import dataclass

from bson import ObjectId

DEPARTMENT_SEARCH_FIELDS = ("name", "code", "description")
ISSUE_SEARCH_FIELDS = ("title", "description")

DEPARTMENT_SORT: List[Tuple[str, int]] = [("name", 1)]
ISSUE_SORT: List[Tuple[str, int]] = [("createdAt", -1), ("_id", -1)]


@dataclass
class DepartmentFilters:
    """Filters for department listings."""
    is_active: Optional[bool] = None
    category: Optional[str] = None
    search: Optional[str] = None


@dataclass
class IssueFilters:
    """Filters for a department's issue queue."""
    status: Optional[str] = None
    category: Optional[str] = None
    search: Optional[str] = None


def build_search_clause(fields: Tuple[str, ...], term: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Case-insensitive substring match of a literal term across several fields.

    Returns None for an empty term.
    """
    term = (term or "").strip()
    if not term:
        return None
    pattern = re.escape(term)
    return {"$or": [{name: {"$regex": pattern, "$options": "i"}} for name in fields]}


def build_department_query(filters: DepartmentFilters) -> Dict[str, Any]:
    """Build the department listing filter document."""
    query: Dict[str, Any] = {}

    if filters.is_active is not None:
        query["isActive"] = filters.is_active

    if filters.category:
        query["categories"] = filters.category

    search = build_search_clause(DEPARTMENT_SEARCH_FIELDS, filters.search)
    if search:
        query.update(search)

    return query


def build_issue_query(department_id: ObjectId, filters: IssueFilters) -> Dict[str, Any]:
    """Build the filter document for issues assigned to one department."""
    query: Dict[str, Any] = {"assignedDepartment": department_id}

    if filters.status:
        query["status"] = filters.status

    if filters.category:
        query["category"] = filters.category

    search = build_search_clause(ISSUE_SEARCH_FIELDS, filters.search)
    if search:
        query.update(search)

    return query


def total_pages(total: int, limit: int) -> int:
    """Number of pages needed for total items at limit per page."""
    if limit <= 0:
        return 0
    return math.ceil(total / limit)


def skip_for(page: int, limit: int) -> int:
    """Documents to skip to reach the start of a page."""
    return max(page - 1, 0) * limit
