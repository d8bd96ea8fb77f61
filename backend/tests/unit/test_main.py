"""
Unit tests for the application entry point: root, health and exception handlers.
"""

import json
import pytest
from unittest.mock import Mock, patch

import httpx
from sqlalchemy.exc import OperationalError

from main import global_exception_handler, http_status_error_handler, value_error_handler


class TestRootAndHealth:
    """Test the informational endpoints."""

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["message"] == "Shop Planner Backend API"

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "database": "ok"}

    def test_health_reports_database_failure(self, client):
        failing_engine = Mock()
        failing_engine.connect.side_effect = OperationalError("SELECT 1", {}, Exception("down"))

        with patch("main.engine", failing_engine):
            response = client.get("/health")

        assert response.status_code == 503
        assert response.json() == {"status": "unhealthy", "database": "unavailable"}


class TestExceptionHandlers:
    """Test the global exception handlers."""

    @pytest.mark.asyncio
    async def test_value_error(self):
        response = await value_error_handler(Mock(), ValueError("bad date"))

        assert response.status_code == 400
        assert json.loads(response.body) == {"detail": "bad date", "type": "validation_error"}

    @pytest.mark.asyncio
    async def test_unhandled_exception_hides_detail(self):
        response = await global_exception_handler(Mock(), RuntimeError("secret stack"))

        assert response.status_code == 500
        assert b"secret stack" not in response.body

    @pytest.mark.asyncio
    async def test_external_service_error(self):
        request = httpx.Request("GET", "http://upstream.test")
        error = httpx.HTTPStatusError("boom", request=request, response=httpx.Response(500, request=request))

        response = await http_status_error_handler(Mock(), error)

        assert response.status_code == 502
        assert json.loads(response.body)["type"] == "external_service_error"
