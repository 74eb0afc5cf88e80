# SPDX-License-Identifier: Apache-2.0

"""
Tests for the issue status state machine and resolution rules.
"""

import pytest
from datetime import datetime

from domain.workflow import (
    STATUS_TRANSITIONS,
    TERMINAL_STATES,
    allowed_sources,
    build_status_update,
    check_transition,
    validate_resolution
)
from models.enums import IssueStatus


class TestStatusTransitions:
    """Test forward-only progression."""

    @pytest.mark.parametrize("current,target", [
        ("pending", "acknowledged"),
        ("pending", "in_progress"),
        ("pending", "resolved"),
        ("acknowledged", "in_progress"),
        ("in_progress", "resolved"),
        ("resolved", "closed"),
        ("pending", "rejected"),
        ("in_progress", "rejected"),
        ("resolved", "rejected"),
    ])
    def test_allowed(self, current, target):
        assert check_transition(current, target).allowed

    @pytest.mark.parametrize("current,target", [
        ("acknowledged", "pending"),
        ("resolved", "in_progress"),
        ("in_progress", "in_progress"),
        ("pending", "pending"),
    ])
    def test_backward_or_same_refused(self, current, target):
        result = check_transition(current, target)

        assert not result.allowed
        assert result.reason == f"Cannot change status from {current} to {target}"

    @pytest.mark.parametrize("current", ["closed", "rejected"])
    def test_terminal_states_frozen(self, current):
        for target in IssueStatus:
            result = check_transition(current, target)
            assert not result.allowed
            assert result.reason == f"Issue is already {current} and cannot change status"

    def test_lenient_mode_allows_anything(self):
        assert check_transition("closed", "pending", strict=False).allowed

    def test_terminal_states_have_no_targets(self):
        for status in TERMINAL_STATES:
            assert STATUS_TRANSITIONS[status] == frozenset()

    def test_unknown_status_raises(self):
        with pytest.raises(ValueError):
            check_transition("pending", "archived")


class TestAllowedSources:
    """Test the status precondition used by conditional updates."""

    def test_resolved_sources(self):
        assert sorted(allowed_sources(IssueStatus.RESOLVED)) == ["acknowledged", "in_progress", "pending"]

    def test_rejected_sources_exclude_terminal(self):
        sources = allowed_sources(IssueStatus.REJECTED)

        assert "closed" not in sources
        assert "rejected" not in sources
        assert set(sources) == {"pending", "acknowledged", "in_progress", "resolved"}

    def test_pending_has_no_sources(self):
        assert allowed_sources(IssueStatus.PENDING) == []

    def test_lenient_mode_has_no_precondition(self):
        assert allowed_sources(IssueStatus.PENDING, strict=False) is None


class TestValidateResolution:
    """Test resolution detail validation."""

    def test_valid(self):
        result = validate_resolution("Filled the hole", ["img-1"], 120.5, ["asphalt"])

        assert result.is_valid
        assert result.errors == []

    def test_short_description(self):
        result = validate_resolution("  ok  ")

        assert not result.is_valid
        assert result.errors[0]["field"] == "description"

    def test_missing_description(self):
        assert not validate_resolution(None).is_valid

    def test_long_description(self):
        assert not validate_resolution("x" * 2001).is_valid

    def test_negative_cost(self):
        result = validate_resolution("Filled the hole", cost=-5)

        assert [error["field"] for error in result.errors] == ["cost"]

    def test_boolean_cost_rejected(self):
        assert not validate_resolution("Filled the hole", cost=True).is_valid

    def test_non_string_images(self):
        result = validate_resolution("Filled the hole", evidence_refs=["a", 3])

        assert result.errors[0]["field"] == "images"


class TestBuildStatusUpdate:
    """Test update pipelines."""

    def setup_method(self):
        self.now = datetime(2024, 5, 3, 10, 0, 0)

    def test_acknowledge_sets_first_stamp_only(self):
        pipeline = build_status_update(IssueStatus.ACKNOWLEDGED, self.now)

        stage = pipeline[0]["$set"]
        assert stage["status"] == "acknowledged"
        assert stage["statusUpdatedAt"] == self.now
        assert stage["updatedAt"] == self.now
        assert stage["timeline.acknowledged"] == {"$ifNull": ["$timeline.acknowledged", self.now]}
        assert "actualResolution" not in stage

    def test_in_progress_uses_started_stamp(self):
        stage = build_status_update(IssueStatus.IN_PROGRESS, self.now)[0]["$set"]

        assert "timeline.started" in stage

    def test_resolved_with_resolution(self):
        resolution = {"description": "$cost was zero", "images": []}

        stage = build_status_update(IssueStatus.RESOLVED, self.now, resolution)[0]["$set"]

        assert stage["actualResolution"] == {"$ifNull": ["$actualResolution", self.now]}
        assert stage["resolution"] == {"$literal": resolution}

    def test_pending_has_no_timeline_stamp(self):
        stage = build_status_update(IssueStatus.PENDING, self.now)[0]["$set"]

        assert not any(key.startswith("timeline.") for key in stage)
