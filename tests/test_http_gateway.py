"""Tests for RequestGateway authenticated calls and the connectivity probe."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import aiohttp
import pytest

from workcraft_client.credentials import CredentialManager, HashedKeyCredentialStrategy
from workcraft_client.errors import (
    NotInitializedError,
    WorkcraftConnectionError,
    WorkcraftTimeout,
)
from workcraft_client.http import GatewayResponse, RequestGateway

from .conftest import create_mock_response


@pytest.fixture
def credentials() -> CredentialManager:
    manager = CredentialManager(HashedKeyCredentialStrategy())
    manager.establish("abcd")
    return manager


def make_gateway(session: MagicMock, credentials: CredentialManager) -> RequestGateway:
    return RequestGateway(session, "http://localhost:6112", credentials)


class TestRequest:
    """Tests for RequestGateway.request()."""

    async def test_attaches_credential_header(self, mock_session, credentials):
        mock_session.request.return_value = create_mock_response(
            status=200, text_data='{"ok": true}'
        )
        gateway = make_gateway(mock_session, credentials)

        response = await gateway.request("GET", "/api/task/t1")

        assert response == GatewayResponse(200, '{"ok": true}')
        assert response.json() == {"ok": True}
        call = mock_session.request.call_args
        assert call.args == ("GET", "http://localhost:6112/api/task/t1")
        assert call.kwargs["headers"] == {"WORKCRAFT_API_KEY": credentials.credential}

    async def test_sends_json_body(self, mock_session, credentials):
        mock_session.request.return_value = create_mock_response(status=201)
        gateway = make_gateway(mock_session, credentials)

        await gateway.request("POST", "/api/task", json={"task_name": "x"})

        assert mock_session.request.call_args.kwargs["json"] == {"task_name": "x"}

    async def test_non_2xx_returned_not_raised(self, mock_session, credentials):
        mock_session.request.return_value = create_mock_response(
            status=404, text_data="Task not found"
        )
        gateway = make_gateway(mock_session, credentials)

        response = await gateway.request("GET", "/api/task/t1")

        assert not response.ok
        assert response.body == "Task not found"

    async def test_not_initialized(self, mock_session):
        gateway = make_gateway(
            mock_session, CredentialManager(HashedKeyCredentialStrategy())
        )

        with pytest.raises(NotInitializedError):
            await gateway.request("GET", "/api/task/t1")
        mock_session.request.assert_not_called()

    async def test_timeout(self, mock_session, credentials):
        mock_session.request.side_effect = TimeoutError()
        gateway = make_gateway(mock_session, credentials)

        with pytest.raises(WorkcraftTimeout, match="timed out"):
            await gateway.request("GET", "/api/task/t1")

    async def test_client_error(self, mock_session, credentials):
        mock_session.request.side_effect = aiohttp.ClientConnectionError()
        gateway = make_gateway(mock_session, credentials)

        with pytest.raises(WorkcraftConnectionError, match="failed"):
            await gateway.request("GET", "/api/task/t1")


class TestProbe:
    """Tests for RequestGateway.probe()."""

    async def test_probe_success(self, mock_session, credentials, caplog):
        mock_session.get.return_value = create_mock_response(status=200)
        gateway = make_gateway(mock_session, credentials)

        with caplog.at_level(logging.INFO, logger="workcraft_client.http"):
            assert await gateway.probe("/api/test", 5.0) is True

        assert "Stronghold server is online" in caplog.text
        call = mock_session.get.call_args
        assert call.args[0] == "http://localhost:6112/api/test"
        assert call.kwargs["timeout"].total == 5.0

    async def test_probe_server_error_logged(self, mock_session, credentials, caplog):
        mock_session.get.return_value = create_mock_response(status=500)
        gateway = make_gateway(mock_session, credentials)

        with caplog.at_level(logging.ERROR, logger="workcraft_client.http"):
            assert await gateway.probe("/api/test", 5.0) is False

        assert "Server responded with status 500" in caplog.text

    async def test_probe_timeout_logged(self, mock_session, credentials, caplog):
        mock_session.get.side_effect = TimeoutError()
        gateway = make_gateway(mock_session, credentials)

        with caplog.at_level(logging.ERROR, logger="workcraft_client.http"):
            assert await gateway.probe("/api/test", 0.1) is False

        assert "Connection timeout" in caplog.text

    async def test_probe_connection_error_logged(
        self, mock_session, credentials, caplog
    ):
        mock_session.get.side_effect = aiohttp.ClientConnectionError("refused")
        gateway = make_gateway(mock_session, credentials)

        with caplog.at_level(logging.ERROR, logger="workcraft_client.http"):
            assert await gateway.probe("/api/test", 5.0) is False

        assert "Failed to connect to the stronghold server" in caplog.text
