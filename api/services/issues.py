# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Issue workflow service scoped to the acting department.

Every mutation is a single conditional update matching both the issue and
the principal's department, so ownership cannot change between the check
and the write.
"""

import logging
from typing import List, Optional
from pymongo import ReturnDocument
from opentelemetry import trace

from domain.queries import IssueFilters, ISSUE_SORT, build_issue_query
from domain.workflow import (
    allowed_sources,
    build_status_update,
    check_transition,
    validate_resolution
)
from models.base import is_object_id, to_object_id, utcnow
from models.entities import DepartmentPrincipal, Issue
from models.enums import IssueStatus
from middleware.error_handler import ValidationException, NotFoundException
from services.mongodb import PaginationResult

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

ISSUES_COLLECTION = "issues"


class IssueWorkflow:
    """Status transitions and listings of a department's issue queue."""

    def __init__(self, mongodb_service, strict_transitions: bool = True):
        """
        Args:
            mongodb_service: Document store access
            strict_transitions: Enforce forward-only status progression
        """
        self.mongodb_service = mongodb_service
        self.strict_transitions = strict_transitions

    @property
    def collection(self):
        return self.mongodb_service.get_collection(ISSUES_COLLECTION)

    @staticmethod
    def _scope(principal: DepartmentPrincipal, issue_id: str) -> dict:
        # A malformed id cannot match any issue
        if not is_object_id(issue_id):
            raise NotFoundException("Issue not found")
        return {
            "_id": to_object_id(issue_id),
            "assignedDepartment": to_object_id(principal.department_id)
        }

    def list_mine(
        self,
        principal: DepartmentPrincipal,
        filters: IssueFilters,
        page: int = 1,
        limit: int = 20
    ) -> PaginationResult:
        """
        List issues assigned to the principal's department, newest first.

        Raises:
            ValidationException: Unknown status filter
        """
        if filters.status is not None:
            try:
                filters.status = IssueStatus(filters.status).value
            except ValueError:
                raise ValidationException(
                    "Invalid status filter",
                    [{"field": "status", "message": f"Unknown status: {filters.status}"}]
                )

        with tracer.start_as_current_span("issues.list_mine") as span:
            span.set_attributes({
                "department.id": principal.department_id,
                "pagination.page": page,
                "pagination.limit": limit,
                "issues.status_filter": filters.status or ""
            })

            query = build_issue_query(to_object_id(principal.department_id), filters)
            result = self.mongodb_service.paginate(ISSUES_COLLECTION, query, page, limit, sort=ISSUE_SORT)
            result.items = [Issue.from_document(document) for document in result.items]
            return result

    def _apply(
        self,
        principal: DepartmentPrincipal,
        issue_id: str,
        target: IssueStatus,
        resolution: Optional[dict] = None
    ) -> Issue:
        scope = self._scope(principal, issue_id)
        query = dict(scope)

        sources = allowed_sources(target, self.strict_transitions)
        if sources is not None:
            query["status"] = {"$in": sources}

        document = self.collection.find_one_and_update(
            query,
            build_status_update(target, utcnow(), resolution),
            return_document=ReturnDocument.AFTER
        )
        if document:
            return Issue.from_document(document)

        # No match: either the issue is not ours or the transition is not allowed
        current = self.collection.find_one(scope, {"status": 1})
        if not current:
            raise NotFoundException("Issue not found")

        outcome = check_transition(current["status"], target, self.strict_transitions)
        reason = outcome.reason or f"Issue status changed concurrently from {current['status']}"
        raise ValidationException(reason, [{"field": "status", "message": reason}])

    def update_status(self, principal: DepartmentPrincipal, issue_id: str, status: str) -> Issue:
        """
        Move an issue of the principal's department to a new status.

        Raises:
            ValidationException: Unknown status or disallowed transition
            NotFoundException: Issue missing or assigned to another department
        """
        try:
            target = IssueStatus(status)
        except ValueError:
            raise ValidationException(
                "Invalid status",
                [{"field": "status", "message": f"Unknown status: {status}"}]
            )

        with tracer.start_as_current_span("issues.update_status") as span:
            span.set_attributes({
                "department.id": principal.department_id,
                "issue.id": str(issue_id),
                "issue.target_status": target.value
            })

            issue = self._apply(principal, issue_id, target)

        logger.info(
            "Issue status updated",
            extra={
                "issue_id": str(issue_id),
                "department_id": principal.department_id,
                "status": target.value,
                "user_id": principal.user_id
            }
        )
        return issue

    def resolve(
        self,
        principal: DepartmentPrincipal,
        issue_id: str,
        description: str,
        evidence_refs: Optional[List[str]] = None,
        cost: Optional[float] = None,
        resources_used: Optional[List[str]] = None
    ) -> Issue:
        """
        Resolve an issue of the principal's department with resolution details.

        Input is validated before the store is touched.

        Raises:
            ValidationException: Invalid resolution details or disallowed transition
            NotFoundException: Issue missing or assigned to another department
        """
        validation = validate_resolution(description, evidence_refs, cost, resources_used)
        if not validation.is_valid:
            raise ValidationException("Invalid resolution details", validation.errors)

        now = utcnow()
        resolution = {
            "description": description.strip(),
            "images": list(evidence_refs or []),
            "cost": cost,
            "resources": list(resources_used or []),
            "resolvedBy": to_object_id(principal.user_id),
            "resolvedAt": now
        }

        with tracer.start_as_current_span("issues.resolve") as span:
            span.set_attributes({
                "department.id": principal.department_id,
                "issue.id": str(issue_id)
            })

            issue = self._apply(principal, issue_id, IssueStatus.RESOLVED, resolution)

        logger.info(
            "Issue resolved",
            extra={
                "issue_id": str(issue_id),
                "department_id": principal.department_id,
                "user_id": principal.user_id
            }
        )
        return issue
