# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer with connection pooling, pagination and index bootstrap.
"""

import os
import logging
from typing import List, Dict, Optional, Any, Tuple
from pymongo import MongoClient, ASCENDING, DESCENDING, GEOSPHERE
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError
from opentelemetry import trace

from domain.queries import total_pages, skip_for

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class PaginationResult:
    """Result container for paginated queries."""

    def __init__(self, items: List[Dict], total: int, page: int, limit: int):
        self.items = items
        self.total = total
        self.page = page
        self.limit = limit
        self.pages = total_pages(total, limit)
        self.has_next = page < self.pages
        self.has_prev = page > 1


class MongoDBService:
    """MongoDB service with connection pooling."""

    def __init__(
        self,
        connection_string: str = None,
        database_name: str = None,
        server_selection_timeout_ms: int = None
    ):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/civic_issues_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'civic_issues_dev')
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None

        # Connection pool settings
        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.max_idle_time_ms = int(os.getenv('MONGODB_MAX_IDLE_TIME_MS', '30000'))
        self.server_selection_timeout_ms = server_selection_timeout_ms or int(
            os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000')
        )

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            client = MongoClient(
                self.connection_string,
                maxPoolSize=self.max_pool_size,
                minPoolSize=self.min_pool_size,
                maxIdleTimeMS=self.max_idle_time_ms,
                serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                retryWrites=True,
                retryReads=True
            )
            try:
                client.admin.command('ping')
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                client.close()
                raise
            self._client = client
            logger.info("MongoDB connection established successfully")

        return self._client

    @property
    def database(self) -> Database:
        """Get MongoDB database."""
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def connect(self) -> MongoClient:
        """Open the connection eagerly, bounded by the server selection timeout."""
        return self.client

    def get_collection(self, collection_name: str) -> Collection:
        """Get MongoDB collection."""
        return self.database[collection_name]

    def close_connection(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.client.admin.command('ping')
            return {
                'status': 'healthy',
                'ping': result.get('ok') == 1,
                'database': self.database_name,
                'connection_pool_size': self.max_pool_size
            }
        except Exception as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }

    def paginate(
        self,
        collection: str,
        query: Dict,
        page: int = 1,
        limit: int = 20,
        sort: List[Tuple[str, int]] = None,
        projection: Dict = None
    ) -> PaginationResult:
        """Paginate documents matching a query with a deterministic sort."""
        with tracer.start_as_current_span("mongodb.paginate") as span:
            span.set_attributes({
                "db.collection": collection,
                "db.operation": "paginate",
                "pagination.page": page,
                "pagination.limit": limit
            })

            collection_obj = self.get_collection(collection)

            total = collection_obj.count_documents(query)

            cursor = collection_obj.find(query, projection)
            if sort:
                cursor = cursor.sort(sort)
            documents = list(cursor.skip(skip_for(page, limit)).limit(limit))

            span.set_attributes({
                "db.total_count": total,
                "db.returned_count": len(documents)
            })
            logger.debug(f"Paginated {len(documents)} documents from {collection} (page {page})")
            return PaginationResult(documents, total, page, limit)

    # Index Management

    def create_indexes(self) -> None:
        """Create uniqueness and performance indexes for all collections."""
        try:
            logger.info("Creating MongoDB indexes...")

            # Departments indexes
            departments = self.get_collection("departments")
            departments.create_index("code", unique=True, name="code_unique")
            departments.create_index("name", unique=True, name="name_unique")
            departments.create_index("contactEmail", unique=True, name="contactEmail_unique")
            departments.create_index(
                "accountUser",
                unique=True,
                name="accountUser_unique",
                partialFilterExpression={"accountUser": {"$type": "objectId"}}
            )
            departments.create_index("isActive")
            departments.create_index("categories")
            departments.create_index([("location.point", GEOSPHERE)])

            # Issues indexes
            issues = self.get_collection("issues")
            issues.create_index([("assignedDepartment", ASCENDING), ("status", ASCENDING), ("createdAt", DESCENDING)])
            issues.create_index([("assignedDepartment", ASCENDING), ("category", ASCENDING)])

            # Admins indexes
            admins = self.get_collection("admins")
            admins.create_index("email", unique=True, name="email_unique")
            admins.create_index("username", unique=True, sparse=True, name="username_unique")

            logger.info("MongoDB indexes created successfully")

        except Exception as e:
            logger.error(f"Failed to create MongoDB indexes: {e}")
            raise
