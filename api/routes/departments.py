# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Department endpoints: public directory, admin management and the
department-scoped issue queue.
"""

from flask import current_app
from flask_openapi3 import APIBlueprint, Tag, validate_request
from opentelemetry import trace
import logging

from domain.queries import DepartmentFilters, IssueFilters
from models.entities import AdminPrincipal, DepartmentPrincipal
from models.requests import (
    CreateDepartmentRequest,
    UpdateDepartmentRequest,
    DepartmentListQuery,
    IssueListQuery,
    UpdateIssueStatusRequest,
    ResolveIssueRequest,
    DepartmentPath,
    IssuePath
)
from models.responses import (
    DepartmentResponse,
    DepartmentCollection,
    IssueResponse,
    IssueCollection,
    ErrorResponse
)
from middleware.auth import require_admin, require_auth, require_department
from utils.request import ResponseBuilder

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

department_tag = Tag(name="Departments", description="Department directory and management")
department_issue_tag = Tag(name="Department Issues", description="Issue queue of the signed-in department")

departments_bp = APIBlueprint(
    'departments',
    __name__,
    url_prefix='/api/departments',
    abp_tags=[department_tag]
)

ERROR_RESPONSES = {401: ErrorResponse, 403: ErrorResponse, 404: ErrorResponse, 422: ErrorResponse}


@departments_bp.get('', responses={200: DepartmentCollection})
def list_departments(query: DepartmentListQuery):
    """
    List departments.

    Filter by active flag and category, search name/code/description, ordered
    by name.
    """
    with tracer.start_as_current_span("routes.departments.list"):
        result = current_app.department_registry.list(
            DepartmentFilters(
                is_active=query.is_active,
                category=query.category,
                search=query.search
            ),
            query.page,
            query.limit
        )
        return ResponseBuilder.paginated(
            [department.to_response() for department in result.items],
            result.total,
            result.page,
            result.limit,
            result.pages
        )


@departments_bp.get('/me/issues', tags=[department_issue_tag], responses={200: IssueCollection, **ERROR_RESPONSES})
@require_auth
@require_department
@validate_request()
def list_my_issues(department: DepartmentPrincipal, query: IssueListQuery):
    """
    List issues assigned to the signed-in department, newest first.
    """
    with tracer.start_as_current_span("routes.departments.list_my_issues"):
        result = current_app.issue_workflow.list_mine(
            department,
            IssueFilters(
                status=query.status,
                category=query.category,
                search=query.search
            ),
            query.page,
            query.limit
        )
        return ResponseBuilder.paginated(
            [issue.to_response() for issue in result.items],
            result.total,
            result.page,
            result.limit,
            result.pages
        )


@departments_bp.patch(
    '/issues/<issue_id>/status',
    tags=[department_issue_tag],
    responses={200: IssueResponse, **ERROR_RESPONSES}
)
@require_auth
@require_department
@validate_request()
def update_issue_status(department: DepartmentPrincipal, path: IssuePath, body: UpdateIssueStatusRequest):
    """
    Move an issue of the signed-in department to a new status.
    """
    with tracer.start_as_current_span("routes.departments.update_issue_status"):
        issue = current_app.issue_workflow.update_status(department, path.issue_id, body.status)
        return ResponseBuilder.success(issue.to_response(), "Issue status updated")


@departments_bp.post(
    '/issues/<issue_id>/resolve',
    tags=[department_issue_tag],
    responses={200: IssueResponse, **ERROR_RESPONSES}
)
@require_auth
@require_department
@validate_request()
def resolve_issue(department: DepartmentPrincipal, path: IssuePath, body: ResolveIssueRequest):
    """
    Resolve an issue of the signed-in department with resolution details.
    """
    with tracer.start_as_current_span("routes.departments.resolve_issue"):
        issue = current_app.issue_workflow.resolve(
            department,
            path.issue_id,
            body.description,
            evidence_refs=body.images,
            cost=body.cost,
            resources_used=body.resources
        )
        return ResponseBuilder.success(issue.to_response(), "Issue resolved")


@departments_bp.get('/<department_id>', responses={200: DepartmentResponse, 404: ErrorResponse, 422: ErrorResponse})
def get_department(path: DepartmentPath):
    """Get a department by ID."""
    department = current_app.department_registry.get_by_id(path.department_id)
    return ResponseBuilder.success(department.to_response())


@departments_bp.post('', responses={201: DepartmentResponse, 409: ErrorResponse, **ERROR_RESPONSES})
@require_admin
@validate_request()
def create_department(admin: AdminPrincipal, body: CreateDepartmentRequest):
    """
    Create a department.

    Code, name and contact email must be unique.
    """
    with tracer.start_as_current_span("routes.departments.create"):
        department = current_app.department_registry.create(admin, body)
        return ResponseBuilder.success(department.to_response(), "Department created", 201)


@departments_bp.patch('/<department_id>', responses={200: DepartmentResponse, 409: ErrorResponse, **ERROR_RESPONSES})
@require_admin
@validate_request()
def update_department(admin: AdminPrincipal, path: DepartmentPath, body: UpdateDepartmentRequest):
    """Partially update a department."""
    with tracer.start_as_current_span("routes.departments.update"):
        department = current_app.department_registry.update(admin, path.department_id, body)
        return ResponseBuilder.success(department.to_response(), "Department updated")


@departments_bp.delete('/<department_id>', responses={200: DepartmentResponse, **ERROR_RESPONSES})
@require_admin
@validate_request()
def deactivate_department(admin: AdminPrincipal, path: DepartmentPath):
    """Deactivate a department. Records are never removed."""
    with tracer.start_as_current_span("routes.departments.deactivate"):
        department = current_app.department_registry.deactivate(admin, path.department_id)
        return ResponseBuilder.success(department.to_response(), "Department deactivated")
