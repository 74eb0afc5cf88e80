# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Department registry: creation, partial update, soft deactivation and listing
of department records, with read-through caching.
"""

import re
import json
import time
from dataclasses import asdict
import logging
from typing import Dict, Any, Optional
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
from opentelemetry import trace

from domain.queries import DepartmentFilters, DEPARTMENT_SORT, build_department_query
from models.base import is_object_id, to_object_id, utcnow
from models.entities import Department, AdminPrincipal
from models.requests import CreateDepartmentRequest, UpdateDepartmentRequest
from middleware.error_handler import ValidationException, NotFoundException, ConflictException
from services.mongodb import PaginationResult

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

DEPARTMENTS_COLLECTION = "departments"
CACHE_PREFIX = "departments:"
GENERATION_KEY = f"{CACHE_PREFIX}generation"

DUPLICATE_INDEX_PATTERN = re.compile(r"index: (?P<index>[\w.]+) dup key")


def conflict_from_duplicate_key(error: DuplicateKeyError, document: Dict[str, Any]) -> ConflictException:
    """
    Translate a unique index violation into a ConflictException naming the field.

    Servers report the colliding key in keyValue; older ones only name the
    index in the error message, in which case the value is taken from the
    document that was being written.
    """
    details = error.details or {}
    key_value = details.get("keyValue")

    if not key_value:
        match = DUPLICATE_INDEX_PATTERN.search(details.get("errmsg") or str(error))
        key_value = {}
        if match:
            field = re.sub(r"(_unique|_-?1)$", "", match.group("index"))
            key_value = {field: document.get(field)}

    conflicts = {
        field: str(value) if isinstance(value, ObjectId) else value
        for field, value in key_value.items()
    }
    names = ", ".join(conflicts) or "identifier"
    return ConflictException(f"Department with this {names} already exists", conflicts)


class DepartmentRegistry:
    """Owns department records in the departments collection."""

    def __init__(self, mongodb_service, redis_service=None, cache_ttl: int = 300):
        self.mongodb_service = mongodb_service
        self.redis_service = redis_service
        self.cache_ttl = cache_ttl
        self._bypass_until = 0.0

    @property
    def collection(self):
        return self.mongodb_service.get_collection(DEPARTMENTS_COLLECTION)

    # Cache helpers
    #
    # Keys live under departments:g<generation>: and every write bumps the
    # generation, so one INCR retires all cached lists and records at once.

    def _cache_key(self, suffix: str) -> Optional[str]:
        """Key under the current generation, or None when the cache must be skipped."""
        if self.redis_service is None or time.monotonic() < self._bypass_until:
            return None
        generation = self.redis_service.get_counter(GENERATION_KEY)
        if generation is None:
            return None
        return f"{CACHE_PREFIX}g{generation}:{suffix}"

    def _cache_get(self, key: Optional[str]):
        if key is None:
            return None
        return self.redis_service.get_json(key)

    def _cache_set(self, key: Optional[str], value) -> None:
        if key is not None:
            self.redis_service.set_with_ttl(key, value, self.cache_ttl)

    def _invalidate(self) -> None:
        if self.redis_service is None:
            return
        if self.redis_service.incr(GENERATION_KEY) is None:
            # Entries of the current generation may outlive this write; stop
            # reading them on this worker until they have expired.
            self._bypass_until = time.monotonic() + self.cache_ttl
            logger.error(
                "Department cache invalidation failed, bypassing cache",
                extra={"bypass_seconds": self.cache_ttl}
            )

    @staticmethod
    def _parse_id(department_id: str) -> ObjectId:
        if not is_object_id(department_id):
            raise ValidationException(
                "Invalid department ID",
                [{"field": "id", "message": "Must be a valid ObjectId"}]
            )
        return to_object_id(department_id)

    # Queries

    def list(self, filters: DepartmentFilters, page: int = 1, limit: int = 20) -> PaginationResult:
        """
        List departments ordered by name.

        Args:
            filters: Active flag, category and free-text search filters
            page: 1-based page number
            limit: Items per page

        Returns:
            PaginationResult whose items are Department models
        """
        with tracer.start_as_current_span("departments.list") as span:
            span.set_attributes({
                "pagination.page": page,
                "pagination.limit": limit,
                "search.query": filters.search or ""
            })

            cache_key = self._cache_key("list:" + json.dumps(
                {**asdict(filters), "page": page, "limit": limit},
                sort_keys=True
            ))
            cached = self._cache_get(cache_key)
            if cached is not None:
                span.set_attribute("cache.hit", True)
                items = [Department.model_validate(item) for item in cached["items"]]
                return PaginationResult(items, cached["total"], page, limit)

            query = build_department_query(filters)
            result = self.mongodb_service.paginate(
                DEPARTMENTS_COLLECTION, query, page, limit, sort=DEPARTMENT_SORT
            )
            result.items = [Department.from_document(document) for document in result.items]

            self._cache_set(cache_key, {
                "items": [item.to_response() for item in result.items],
                "total": result.total
            })
            return result

    def get_by_id(self, department_id: str) -> Department:
        """
        Fetch one department.

        Raises:
            ValidationException: Malformed identifier
            NotFoundException: No department with that identifier
        """
        object_id = self._parse_id(department_id)
        cache_key = self._cache_key(f"id:{object_id}")

        cached = self._cache_get(cache_key)
        if cached is not None:
            return Department.model_validate(cached)

        with tracer.start_as_current_span("departments.get_by_id") as span:
            span.set_attribute("department.id", str(object_id))
            document = self.collection.find_one({"_id": object_id})

        if not document:
            raise NotFoundException("Department not found")

        department = Department.from_document(document)
        self._cache_set(cache_key, department.to_response())
        return department

    def find_id_by_account_user(self, user_id: str) -> Optional[str]:
        """Department operated by a user account, if any."""
        if not is_object_id(user_id):
            return None
        document = self.collection.find_one({"accountUser": to_object_id(user_id)}, {"_id": 1})
        return str(document["_id"]) if document else None

    # Commands

    def create(self, admin: AdminPrincipal, request: CreateDepartmentRequest) -> Department:
        """
        Create an active department.

        Raises:
            ConflictException: code, name, contact email or account user already used
        """
        with tracer.start_as_current_span("departments.create") as span:
            span.set_attributes({"admin.id": admin.id, "department.code": request.code})

            now = utcnow()
            document = request.model_dump(by_alias=True, exclude_none=True)
            if "accountUser" in document:
                document["accountUser"] = to_object_id(document["accountUser"])
            document.update({
                "isActive": True,
                "createdAt": now,
                "updatedAt": now,
                "createdBy": to_object_id(admin.id),
                "updatedBy": to_object_id(admin.id)
            })

            try:
                result = self.collection.insert_one(document)
            except DuplicateKeyError as e:
                conflict = conflict_from_duplicate_key(e, document)
                logger.warning(
                    "Department create conflict",
                    extra={"fields": conflict.fields, "admin_id": admin.id}
                )
                raise conflict

            document["_id"] = result.inserted_id
            self._invalidate()

            logger.info(
                "Department created",
                extra={"department_id": str(result.inserted_id), "code": request.code, "admin_id": admin.id}
            )
            return Department.from_document(document)

    def update(self, admin: AdminPrincipal, department_id: str, request: UpdateDepartmentRequest) -> Department:
        """
        Apply the fields present in the request and return the updated record.

        Raises:
            ValidationException: Malformed identifier
            NotFoundException: No department with that identifier
            ConflictException: Changed unique field collides with another department
        """
        object_id = self._parse_id(department_id)
        changes = request.model_dump(by_alias=True, exclude_unset=True)

        if not changes:
            return self.get_by_id(department_id)

        with tracer.start_as_current_span("departments.update") as span:
            span.set_attributes({
                "admin.id": admin.id,
                "department.id": str(object_id),
                "department.fields": ",".join(sorted(changes))
            })

            if changes.get("accountUser") is not None:
                changes["accountUser"] = to_object_id(changes["accountUser"])
            changes.update({"updatedAt": utcnow(), "updatedBy": to_object_id(admin.id)})

            try:
                document = self.collection.find_one_and_update(
                    {"_id": object_id},
                    {"$set": changes},
                    return_document=ReturnDocument.AFTER
                )
            except DuplicateKeyError as e:
                conflict = conflict_from_duplicate_key(e, changes)
                logger.warning(
                    "Department update conflict",
                    extra={"fields": conflict.fields, "department_id": str(object_id)}
                )
                raise conflict

        if not document:
            raise NotFoundException("Department not found")

        self._invalidate()
        logger.info("Department updated", extra={"department_id": str(object_id), "admin_id": admin.id})
        return Department.from_document(document)

    def deactivate(self, admin: AdminPrincipal, department_id: str) -> Department:
        """
        Soft delete: mark the department inactive, keeping the record.

        Raises:
            ValidationException: Malformed identifier
            NotFoundException: No department with that identifier
        """
        object_id = self._parse_id(department_id)

        with tracer.start_as_current_span("departments.deactivate") as span:
            span.set_attributes({"admin.id": admin.id, "department.id": str(object_id)})

            document = self.collection.find_one_and_update(
                {"_id": object_id},
                {"$set": {
                    "isActive": False,
                    "updatedAt": utcnow(),
                    "updatedBy": to_object_id(admin.id)
                }},
                return_document=ReturnDocument.AFTER
            )

        if not document:
            raise NotFoundException("Department not found")

        self._invalidate()
        logger.info("Department deactivated", extra={"department_id": str(object_id), "admin_id": admin.id})
        return Department.from_document(document)
