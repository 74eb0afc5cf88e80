# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import jwt
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock
from bson import ObjectId

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'
os.environ['MONGODB_DATABASE'] = 'civic_issues_test'

ACCESS_SECRET = 'test-access-secret-0123456789abcdef'
ADMIN_SECRET = 'test-admin-secret-0123456789abcdef'


def make_admin_token(admin_id, typ='admin', secret=ADMIN_SECRET, expires_in=900, tok=None):
    """Sign an admin token the way the admin console receives it."""
    now = datetime.now(timezone.utc)
    payload = {
        'sub': admin_id,
        'role': 'admin',
        'typ': typ,
        'iat': now,
        'exp': now + timedelta(seconds=expires_in)
    }
    if tok:
        payload['tok'] = tok
    return jwt.encode(payload, secret, algorithm='HS256')


def make_user_token(user_id, role='department', secret=ACCESS_SECRET, expires_in=900):
    """Sign a citizen-side access token."""
    now = datetime.now(timezone.utc)
    payload = {
        'userId': user_id,
        'role': role,
        'iat': now,
        'exp': now + timedelta(seconds=expires_in)
    }
    return jwt.encode(payload, secret, algorithm='HS256')


def bearer(token):
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def mongodb_service():
    """MongoDB service double handing out one mock per collection."""
    service = MagicMock()
    collections = {}

    def get_collection(name):
        if name not in collections:
            collections[name] = MagicMock(name=name)
        return collections[name]

    service.get_collection.side_effect = get_collection
    service.health_check.return_value = {'status': 'healthy', 'ping': True, 'database': 'civic_issues_test'}
    return service


@pytest.fixture
def redis_service():
    """Redis service double that always misses."""
    service = MagicMock()
    service.get_json.return_value = None
    service.get_counter.return_value = 0
    service.incr.return_value = 1
    service.health_check.return_value = {'status': 'disabled'}
    return service


@pytest.fixture
def app(mongodb_service, redis_service):
    """Application wired to service doubles."""
    from app import create_app

    application = create_app(
        config={
            'ENVIRONMENT': 'test',
            'OTEL_ENABLED': False,
            'JWT_ACCESS_SECRET': ACCESS_SECRET,
            'ADMIN_JWT_SECRET': ADMIN_SECRET,
            'ADMIN_REFRESH_JWT_SECRET': ADMIN_SECRET,
            'TESTING': True
        },
        mongodb_service=mongodb_service,
        redis_service=redis_service
    )
    return application


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_id():
    return str(ObjectId())


@pytest.fixture
def department_id():
    return str(ObjectId())


@pytest.fixture
def account_user_id():
    return str(ObjectId())


@pytest.fixture
def sample_department_document(department_id, account_user_id, admin_id):
    """Department document as stored in MongoDB."""
    now = datetime(2024, 5, 1, 12, 0, 0)
    return {
        "_id": ObjectId(department_id),
        "name": "Public Works",
        "code": "PW",
        "description": "Roads, sidewalks and drainage",
        "contactEmail": "works@city.gov",
        "contactPhone": "+1 555 0100",
        "categories": ["pothole", "drainage"],
        "priority": 2,
        "responseTime": {"acknowledgeHours": 24, "resolveHours": 72},
        "workingHours": {"days": ["mon", "tue"], "start": "08:00", "end": "17:00"},
        "location": {"address": "1 Main St", "point": {"type": "Point", "coordinates": [-46.63, -23.55]}},
        "isActive": True,
        "accountUser": ObjectId(account_user_id),
        "createdAt": now,
        "updatedAt": now,
        "createdBy": ObjectId(admin_id),
        "updatedBy": ObjectId(admin_id)
    }


@pytest.fixture
def sample_issue_document(department_id):
    """Issue document as filed by the citizen subsystem."""
    now = datetime(2024, 5, 2, 9, 30, 0)
    return {
        "_id": ObjectId(),
        "title": "Pothole on Main St",
        "description": "Deep pothole near the school crossing",
        "category": "pothole",
        "status": "pending",
        "assignedDepartment": ObjectId(department_id),
        "reportedBy": ObjectId(),
        "timeline": {"reported": now},
        "createdAt": now,
        "updatedAt": now
    }


@pytest.fixture
def citizen_issue_document(department_id):
    """Unresolved issue as the citizen app stores it, schema defaults included."""
    now = datetime(2024, 5, 2, 9, 30, 0)
    return {
        "_id": ObjectId(),
        "title": "Streetlight out",
        "description": "Lamp post 14 has been dark for a week",
        "category": "streetlight",
        "priority": "medium",
        "status": "pending",
        "reportedBy": ObjectId(),
        "assignedTo": None,
        "assignedDepartment": ObjectId(department_id),
        "location": {
            "address": "14 Station Rd",
            "city": "Ranchi",
            "state": "Jharkhand",
            "pincode": "834001",
            "coordinates": {"latitude": 23.34, "longitude": 85.31}
        },
        "media": {"images": [], "videos": [], "audio": None},
        "timeline": {"reported": now, "acknowledged": None, "started": None, "resolved": None, "closed": None},
        "estimatedResolution": None,
        "actualResolution": None,
        "resolution": {"images": [], "resources": []},
        "votes": {"upvotes": [], "downvotes": []},
        "comments": [],
        "tags": [],
        "isPublic": True,
        "urgencyScore": 0,
        "duplicateOf": None,
        "createdAt": now,
        "updatedAt": now,
        "__v": 0
    }
