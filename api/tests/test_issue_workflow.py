# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for the department-scoped issue workflow service.
"""

import pytest
from bson import ObjectId

from domain.queries import IssueFilters
from middleware.error_handler import NotFoundException, ValidationException
from models.entities import DepartmentPrincipal
from services.issues import IssueWorkflow
from services.mongodb import PaginationResult


class TestIssueWorkflow:
    """Test issue status updates and listings."""

    @pytest.fixture(autouse=True)
    def setup(self, mongodb_service, department_id):
        self.mongodb_service = mongodb_service
        self.collection = mongodb_service.get_collection("issues")
        self.workflow = IssueWorkflow(mongodb_service)
        self.user_id = str(ObjectId())
        self.principal = DepartmentPrincipal(user_id=self.user_id, department_id=department_id)

    # Listing

    def test_list_mine_scopes_to_department(self, sample_issue_document, department_id):
        self.mongodb_service.paginate.return_value = PaginationResult([sample_issue_document], 1, 1, 20)

        result = self.workflow.list_mine(self.principal, IssueFilters(status="pending"), 1, 20)

        args, kwargs = self.mongodb_service.paginate.call_args
        assert args[0] == "issues"
        assert args[1] == {"assignedDepartment": ObjectId(department_id), "status": "pending"}
        assert kwargs["sort"] == [("createdAt", -1), ("_id", -1)]
        assert result.items[0].title == "Pothole on Main St"

    def test_list_mine_with_unresolved_citizen_issue(self, citizen_issue_document):
        self.mongodb_service.paginate.return_value = PaginationResult([citizen_issue_document], 1, 1, 20)

        result = self.workflow.list_mine(self.principal, IssueFilters(), 1, 20)

        assert result.items[0].resolution.description is None
        assert result.items[0].to_response()["resolution"] == {
            "description": None,
            "images": [],
            "cost": None,
            "resources": [],
            "resolvedBy": None,
            "resolvedAt": None
        }

    def test_list_mine_unknown_status(self):
        with pytest.raises(ValidationException) as exc_info:
            self.workflow.list_mine(self.principal, IssueFilters(status="lost"))

        assert exc_info.value.validation_errors[0]["field"] == "status"
        self.mongodb_service.paginate.assert_not_called()

    # Status updates

    def test_update_status(self, sample_issue_document, department_id):
        issue_id = str(sample_issue_document["_id"])
        sample_issue_document["status"] = "acknowledged"
        self.collection.find_one_and_update.return_value = sample_issue_document

        issue = self.workflow.update_status(self.principal, issue_id, "acknowledged")

        query, pipeline = self.collection.find_one_and_update.call_args[0]
        assert query == {
            "_id": ObjectId(issue_id),
            "assignedDepartment": ObjectId(department_id),
            "status": {"$in": ["pending"]}
        }
        assert pipeline[0]["$set"]["status"] == "acknowledged"
        assert issue.status == "acknowledged"
        self.collection.find_one.assert_not_called()

    def test_update_status_with_unresolved_citizen_issue(self, citizen_issue_document):
        issue_id = str(citizen_issue_document["_id"])
        citizen_issue_document["status"] = "acknowledged"
        self.collection.find_one_and_update.return_value = citizen_issue_document

        issue = self.workflow.update_status(self.principal, issue_id, "acknowledged")

        assert issue.status == "acknowledged"
        assert issue.resolution.resources == []

    def test_update_status_unknown_target(self):
        with pytest.raises(ValidationException):
            self.workflow.update_status(self.principal, str(ObjectId()), "archived")

        self.collection.find_one_and_update.assert_not_called()

    def test_update_status_other_department(self):
        self.collection.find_one_and_update.return_value = None
        self.collection.find_one.return_value = None

        with pytest.raises(NotFoundException) as exc_info:
            self.workflow.update_status(self.principal, str(ObjectId()), "acknowledged")

        assert exc_info.value.message == "Issue not found"

    def test_update_status_malformed_id(self):
        with pytest.raises(NotFoundException):
            self.workflow.update_status(self.principal, "abc", "acknowledged")

        self.collection.find_one_and_update.assert_not_called()

    def test_update_status_disallowed(self):
        self.collection.find_one_and_update.return_value = None
        self.collection.find_one.return_value = {"_id": ObjectId(), "status": "resolved"}

        with pytest.raises(ValidationException) as exc_info:
            self.workflow.update_status(self.principal, str(ObjectId()), "in_progress")

        assert exc_info.value.message == "Cannot change status from resolved to in_progress"
        assert exc_info.value.validation_errors[0]["field"] == "status"

    def test_update_status_terminal(self):
        self.collection.find_one_and_update.return_value = None
        self.collection.find_one.return_value = {"_id": ObjectId(), "status": "closed"}

        with pytest.raises(ValidationException) as exc_info:
            self.workflow.update_status(self.principal, str(ObjectId()), "rejected")

        assert exc_info.value.message == "Issue is already closed and cannot change status"

    def test_update_status_lost_race(self):
        # Allowed when re-read, so the status changed between update and read
        self.collection.find_one_and_update.return_value = None
        self.collection.find_one.return_value = {"_id": ObjectId(), "status": "pending"}

        with pytest.raises(ValidationException) as exc_info:
            self.workflow.update_status(self.principal, str(ObjectId()), "acknowledged")

        assert "concurrently" in exc_info.value.message

    def test_lenient_mode_has_no_status_precondition(self, mongodb_service, sample_issue_document):
        workflow = IssueWorkflow(mongodb_service, strict_transitions=False)
        sample_issue_document["status"] = "pending"
        self.collection.find_one_and_update.return_value = sample_issue_document

        workflow.update_status(self.principal, str(sample_issue_document["_id"]), "pending")

        query = self.collection.find_one_and_update.call_args[0][0]
        assert "status" not in query

    # Resolution

    def test_resolve(self, sample_issue_document):
        issue_id = str(sample_issue_document["_id"])
        sample_issue_document["status"] = "resolved"
        self.collection.find_one_and_update.return_value = sample_issue_document

        issue = self.workflow.resolve(
            self.principal,
            issue_id,
            "  Filled the pothole  ",
            evidence_refs=["img-1"],
            cost=150.0,
            resources_used=["asphalt"]
        )

        query, pipeline = self.collection.find_one_and_update.call_args[0]
        assert set(query["status"]["$in"]) == {"pending", "acknowledged", "in_progress"}
        resolution = pipeline[0]["$set"]["resolution"]["$literal"]
        assert resolution["description"] == "Filled the pothole"
        assert resolution["images"] == ["img-1"]
        assert resolution["cost"] == 150.0
        assert resolution["resolvedBy"] == ObjectId(self.user_id)
        assert "actualResolution" in pipeline[0]["$set"]
        assert issue.status == "resolved"

    def test_resolve_invalid_details_touch_nothing(self):
        with pytest.raises(ValidationException) as exc_info:
            self.workflow.resolve(self.principal, str(ObjectId()), "ok", cost=-3)

        fields = [error["field"] for error in exc_info.value.validation_errors]
        assert fields == ["description", "cost"]
        self.collection.find_one_and_update.assert_not_called()

    def test_resolve_already_closed(self):
        self.collection.find_one_and_update.return_value = None
        self.collection.find_one.return_value = {"_id": ObjectId(), "status": "closed"}

        with pytest.raises(ValidationException):
            self.workflow.resolve(self.principal, str(ObjectId()), "Filled the pothole")
