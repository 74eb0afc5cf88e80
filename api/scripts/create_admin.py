#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Create or re-activate an administrator account for the admin console.

Usage:
    python scripts/create_admin.py <email> <name> [super_admin]

The password is read from ADMIN_PASSWORD; ADMIN_USERNAME optionally sets
a login username.
"""

import sys
import os
import logging

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models.base import utcnow
from models.enums import AdminRole, AdminStatus
from services.auth import AuthService
from services.mongodb import MongoDBService

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def main():
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(2)

    email = sys.argv[1].strip().lower()
    name = sys.argv[2].strip()
    role = AdminRole.SUPER_ADMIN if len(sys.argv) > 3 and sys.argv[3] == 'super_admin' else AdminRole.ADMIN

    username = os.getenv('ADMIN_USERNAME', '').strip().lower()
    password = os.getenv('ADMIN_PASSWORD')
    if not password or len(password) < 8:
        logger.error("ADMIN_PASSWORD must be set to at least 8 characters")
        sys.exit(2)

    mongodb_service = MongoDBService()
    auth_service = AuthService()
    try:
        now = utcnow()
        fields = {
            "name": name,
            "password": auth_service.hash_password(password),
            "passwordUpdatedAt": now,
            "role": role.value,
            "status": AdminStatus.ACTIVE.value,
            "updatedAt": now
        }
        if username:
            fields["username"] = username

        result = mongodb_service.get_collection("admins").update_one(
            {"email": email},
            {
                "$set": fields,
                "$setOnInsert": {"email": email, "createdAt": now}
            },
            upsert=True
        )
        if result.upserted_id:
            logger.info(f"Administrator created: {email} ({role.value})")
        else:
            logger.info(f"Administrator updated: {email} ({role.value})")
    finally:
        mongodb_service.close_connection()


if __name__ == "__main__":
    main()
