# SPDX-License-Identifier: Apache-2.0

"""
Issue workflow domain logic.

This module contains pure functions for the issue status state machine,
resolution validation and the conditional update documents used to apply a
transition atomically.
"""

from typing import List, Dict, Any, Optional, FrozenSet
from dataclasses import dataclass, field
from datetime import datetime

from models.enums import IssueStatus


MAIN_LINE = (
    IssueStatus.PENDING,
    IssueStatus.ACKNOWLEDGED,
    IssueStatus.IN_PROGRESS,
    IssueStatus.RESOLVED,
    IssueStatus.CLOSED,
)

TERMINAL_STATES = frozenset({IssueStatus.CLOSED, IssueStatus.REJECTED})

# Timeline stamp written the first time an issue reaches each state
TIMELINE_FIELDS = {
    IssueStatus.ACKNOWLEDGED: "acknowledged",
    IssueStatus.IN_PROGRESS: "started",
    IssueStatus.RESOLVED: "resolved",
    IssueStatus.CLOSED: "closed",
    IssueStatus.REJECTED: "rejected",
}

MIN_RESOLUTION_DESCRIPTION = 5
MAX_RESOLUTION_DESCRIPTION = 2000


def _build_transitions() -> Dict[IssueStatus, FrozenSet[IssueStatus]]:
    transitions = {}
    for index, status in enumerate(MAIN_LINE):
        targets = set(MAIN_LINE[index + 1:])
        if status not in TERMINAL_STATES:
            targets.add(IssueStatus.REJECTED)
        transitions[status] = frozenset(targets)
    transitions[IssueStatus.REJECTED] = frozenset()
    return transitions


# Forward-only moves along the main line, skipping allowed; rejection from any open state
STATUS_TRANSITIONS = _build_transitions()


@dataclass
class TransitionResult:
    """Result of a status transition check."""
    allowed: bool
    reason: Optional[str] = None


@dataclass
class ValidationResult:
    """Result of resolution payload validation."""
    is_valid: bool
    errors: List[Dict[str, str]] = field(default_factory=list)


def check_transition(
    current: IssueStatus,
    target: IssueStatus,
    strict: bool = True
) -> TransitionResult:
    """
    Check whether an issue may move from one status to another.

    Args:
        current: Status the issue is in
        target: Requested status
        strict: Enforce forward-only progression; when False any status is accepted

    Returns:
        TransitionResult with the reason when the move is refused
    """
    current = IssueStatus(current)
    target = IssueStatus(target)

    if not strict:
        return TransitionResult(allowed=True)

    if target in STATUS_TRANSITIONS[current]:
        return TransitionResult(allowed=True)

    if current in TERMINAL_STATES:
        reason = f"Issue is already {current.value} and cannot change status"
    else:
        reason = f"Cannot change status from {current.value} to {target.value}"
    return TransitionResult(allowed=False, reason=reason)


def allowed_sources(target: IssueStatus, strict: bool = True) -> Optional[List[str]]:
    """
    States from which the target status can be reached.

    Returns None when transitions are not restricted.
    """
    if not strict:
        return None
    target = IssueStatus(target)
    return [
        source.value
        for source, targets in STATUS_TRANSITIONS.items()
        if target in targets
    ]


def validate_resolution(
    description: Optional[str],
    evidence_refs: Optional[List[str]] = None,
    cost: Optional[float] = None,
    resources_used: Optional[List[str]] = None
) -> ValidationResult:
    """
    Validate resolution details before anything is written.

    Args:
        description: What was done to resolve the issue
        evidence_refs: References to evidence images
        cost: Cost of the resolution
        resources_used: Resources used

    Returns:
        ValidationResult with per-field errors
    """
    errors = []

    text = (description or "").strip()
    if len(text) < MIN_RESOLUTION_DESCRIPTION:
        errors.append({
            "field": "description",
            "message": f"Resolution description must be at least {MIN_RESOLUTION_DESCRIPTION} characters"
        })
    elif len(text) > MAX_RESOLUTION_DESCRIPTION:
        errors.append({
            "field": "description",
            "message": f"Resolution description cannot exceed {MAX_RESOLUTION_DESCRIPTION} characters"
        })

    if cost is not None:
        if isinstance(cost, bool) or not isinstance(cost, (int, float)):
            errors.append({"field": "cost", "message": "Cost must be a number"})
        elif cost < 0:
            errors.append({"field": "cost", "message": "Cost cannot be negative"})

    for field_name, values in (("images", evidence_refs), ("resources", resources_used)):
        if values is not None and not all(isinstance(value, str) for value in values):
            errors.append({"field": field_name, "message": f"{field_name.capitalize()} must be a list of strings"})

    return ValidationResult(is_valid=not errors, errors=errors)


def build_status_update(
    target: IssueStatus,
    now: datetime,
    resolution: Optional[Dict[str, Any]] = None
) -> List[Dict[str, Any]]:
    """
    Build the update pipeline applying a status change.

    Timeline stamps and the actual resolution date are only written the first
    time the issue reaches a state.

    Args:
        target: Status to move to
        now: Timestamp of the change
        resolution: Resolution subdocument to store, if any

    Returns:
        Aggregation pipeline usable with find_one_and_update
    """
    target = IssueStatus(target)
    stage: Dict[str, Any] = {
        "status": target.value,
        "statusUpdatedAt": now,
        "updatedAt": now,
    }

    timeline_field = TIMELINE_FIELDS.get(target)
    if timeline_field:
        path = f"timeline.{timeline_field}"
        stage[path] = {"$ifNull": [f"${path}", now]}

    if target == IssueStatus.RESOLVED:
        stage["actualResolution"] = {"$ifNull": ["$actualResolution", now]}

    if resolution is not None:
        # $literal keeps user text starting with "$" from being read as a field path
        stage["resolution"] = {"$literal": resolution}

    return [{"$set": stage}]
