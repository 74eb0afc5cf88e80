# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for MongoDB service layer.
"""

import pytest
from unittest.mock import MagicMock, patch
from pymongo.errors import ServerSelectionTimeoutError

from services.mongodb import MongoDBService, PaginationResult


class TestPaginationResult:

    def test_page_flags(self):
        result = PaginationResult([{}] * 20, 45, 2, 20)

        assert result.pages == 3
        assert result.has_next
        assert result.has_prev

    def test_empty(self):
        result = PaginationResult([], 0, 1, 20)

        assert result.pages == 0
        assert not result.has_next
        assert not result.has_prev


class TestMongoDBService:
    """Test MongoDB service functionality against a client double."""

    def setup_method(self):
        self.service = MongoDBService("mongodb://localhost:27017/civic_issues_test", "civic_issues_test", 100)

    @patch("services.mongodb.MongoClient")
    def test_client_pings_on_connect(self, mongo_client):
        client = self.service.connect()

        assert client is mongo_client.return_value
        client.admin.command.assert_called_once_with('ping')
        assert mongo_client.call_args[1]["serverSelectionTimeoutMS"] == 100

    @patch("services.mongodb.MongoClient")
    def test_failed_ping_closes_client(self, mongo_client):
        mongo_client.return_value.admin.command.side_effect = ServerSelectionTimeoutError("no servers")

        with pytest.raises(ServerSelectionTimeoutError):
            self.service.connect()

        mongo_client.return_value.close.assert_called_once()
        assert self.service._client is None

    @patch("services.mongodb.MongoClient")
    def test_health_check(self, mongo_client):
        mongo_client.return_value.admin.command.return_value = {"ok": 1}

        health = self.service.health_check()

        assert health["status"] == "healthy"
        assert health["database"] == "civic_issues_test"

    @patch("services.mongodb.MongoClient")
    def test_health_check_unreachable(self, mongo_client):
        mongo_client.return_value.admin.command.side_effect = ServerSelectionTimeoutError("no servers")

        assert self.service.health_check()["status"] == "unhealthy"

    def test_paginate(self):
        collection = MagicMock()
        collection.count_documents.return_value = 45
        cursor = collection.find.return_value
        cursor.sort.return_value = cursor
        cursor.skip.return_value = cursor
        cursor.limit.return_value = iter([{"_id": 1}, {"_id": 2}])
        self.service.get_collection = MagicMock(return_value=collection)

        result = self.service.paginate("departments", {"isActive": True}, page=3, limit=20, sort=[("name", 1)])

        collection.count_documents.assert_called_once_with({"isActive": True})
        cursor.sort.assert_called_once_with([("name", 1)])
        cursor.skip.assert_called_once_with(40)
        cursor.limit.assert_called_once_with(20)
        assert result.items == [{"_id": 1}, {"_id": 2}]
        assert result.total == 45
        assert result.pages == 3

    def test_create_indexes(self):
        collections = {}
        self.service.get_collection = MagicMock(side_effect=lambda name: collections.setdefault(name, MagicMock()))

        self.service.create_indexes()

        names = [
            call[1].get("name")
            for call in collections["departments"].create_index.call_args_list
        ]
        assert {"code_unique", "name_unique", "contactEmail_unique", "accountUser_unique"} <= set(names)
        admins = collections["admins"].create_index
        admins.assert_any_call("email", unique=True, name="email_unique")
        admins.assert_any_call("username", unique=True, sparse=True, name="username_unique")
