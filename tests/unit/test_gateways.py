"""
Unit Tests for the HTTP identity and session gateways
=====================================================

The transport is mocked at ChatServiceClient.request so each test states
exactly which body the service answered with.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from travochat.core.exceptions import ServiceError, ValidationError
from travochat.infrastructure.config.settings import ApiSettings, EndpointSettings, ResponseLayout
from travochat.infrastructure.gateways.http_client import ChatServiceClient
from travochat.infrastructure.gateways.identity_gateway import HttpIdentityGateway
from travochat.infrastructure.gateways.response_parsing import parse_session_id, parse_user_id
from travochat.infrastructure.gateways.session_gateway import HttpSessionGateway


@pytest.fixture
def settings():
    return ApiSettings()


@pytest.fixture
def client():
    mock_client = MagicMock(spec=ChatServiceClient)
    mock_client.request = AsyncMock()
    return mock_client


@pytest.fixture
def identity_gateway(client, settings, logger):
    return HttpIdentityGateway(client, settings, logger=logger)


@pytest.fixture
def session_gateway(client, settings, logger):
    return HttpSessionGateway(client, settings, logger=logger)


class TestRegister:

    @pytest.mark.asyncio
    async def test_accepted_registration(self, identity_gateway, client):
        client.request.return_value = {
            "statusCode": 200, "message": "Registered", "data": {"id": "42", "session": 7}
        }

        result = await identity_gateway.register(" Ann ", "a@x.com")

        assert result.accepted is True
        assert result.user_id == "42"
        assert result.session_id == 7
        assert result.message == "Registered"
        name, endpoint, params = client.request.call_args.args
        assert name == "register"
        assert endpoint.path == "/register"
        assert params == {"name": "Ann", "email": "a@x.com"}

    @pytest.mark.asyncio
    async def test_numeric_user_id_kept_as_string(self, identity_gateway, client):
        client.request.return_value = {"statusCode": 200, "message": "ok", "data": {"id": 42, "session": "7"}}

        result = await identity_gateway.register("Ann", "a@x.com")

        assert result.user_id == "42"
        assert result.session_id == 7

    @pytest.mark.asyncio
    async def test_declined_registration_is_a_result(self, identity_gateway, client):
        client.request.return_value = {"statusCode": 409, "message": "Email already registered"}

        result = await identity_gateway.register("Ann", "a@x.com")

        assert result.accepted is False
        assert result.status_code == 409
        assert result.message == "Email already registered"

    @pytest.mark.parametrize("name,email", [("", "a@x.com"), ("Ann", ""), ("   ", "a@x.com"), ("Ann", None)])
    @pytest.mark.asyncio
    async def test_blank_input_fails_locally(self, identity_gateway, client, name, email):
        with pytest.raises(ValidationError) as exc_info:
            await identity_gateway.register(name, email)

        assert exc_info.value.reason == "Please provide both name and email."
        client.request.assert_not_called()

    @pytest.mark.asyncio
    async def test_accepted_without_user_id_is_service_error(self, identity_gateway, client):
        client.request.return_value = {"statusCode": 200, "message": "ok", "data": {"session": 7}}

        with pytest.raises(ServiceError):
            await identity_gateway.register("Ann", "a@x.com")

    @pytest.mark.asyncio
    async def test_non_integer_session_is_service_error(self, identity_gateway, client):
        client.request.return_value = {"statusCode": 200, "message": "ok", "data": {"id": "1", "session": "abc"}}

        with pytest.raises(ServiceError):
            await identity_gateway.register("Ann", "a@x.com")

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self, identity_gateway, client):
        client.request.side_effect = ServiceError("register", "boom", status=500)

        with pytest.raises(ServiceError) as exc_info:
            await identity_gateway.register("Ann", "a@x.com")

        assert exc_info.value.status == 500


class TestCheckIdentity:

    @pytest.mark.asyncio
    async def test_existing_user_with_session(self, identity_gateway, client):
        client.request.return_value = {"data": {"userId": "42", "session": 7}}

        status = await identity_gateway.check_identity("a@x.com")

        assert status.exists is True
        assert status.user_id == "42"
        assert status.has_session
        assert client.request.call_args.args[2] == {"email": "a@x.com"}

    @pytest.mark.asyncio
    async def test_unknown_user(self, identity_gateway, client):
        client.request.return_value = {"data": {"userId": None, "session": 0}}

        status = await identity_gateway.check_identity("a@x.com")

        assert status.exists is False
        assert status.session_id == 0

    @pytest.mark.asyncio
    async def test_missing_envelope_means_unknown(self, identity_gateway, client):
        client.request.return_value = {"message": "not found"}

        status = await identity_gateway.check_identity("a@x.com")

        assert status.exists is False

    @pytest.mark.asyncio
    async def test_top_level_layout(self, client, logger):
        settings = ApiSettings(check=EndpointSettings(
            path="/checkUser",
            layout=ResponseLayout.TOP_LEVEL,
            response_fields={"user_id": "userId", "session_id": "session"},
        ))
        gateway = HttpIdentityGateway(client, settings, logger=logger)
        client.request.return_value = {"userId": "9", "session": 3}

        status = await gateway.check_identity("a@x.com")

        assert status.user_id == "9"
        assert status.session_id == 3


class TestActivate:

    @pytest.mark.asyncio
    async def test_activation(self, session_gateway, client):
        client.request.return_value = {"statusCode": 200, "userId": "42", "session": 7}

        result = await session_gateway.activate("42")

        assert result.session_id == 7
        assert result.user_id == "42"
        assert result.is_active
        assert client.request.call_args.args[2] == {"userId": "42"}

    @pytest.mark.asyncio
    async def test_missing_user_id_falls_back_to_request(self, session_gateway, client):
        client.request.return_value = {"session": 7}

        result = await session_gateway.activate("42")

        assert result.user_id == "42"

    @pytest.mark.asyncio
    async def test_repeated_activation_returns_same_session(self, session_gateway, client):
        client.request.return_value = {"statusCode": 200, "userId": "42", "session": 7}

        first = await session_gateway.activate("42")
        second = await session_gateway.activate("42")

        assert first.session_id == second.session_id == 7

    @pytest.mark.asyncio
    async def test_non_success_status_code_is_service_error(self, session_gateway, client):
        client.request.return_value = {"statusCode": 404, "message": "unknown user"}

        with pytest.raises(ServiceError) as exc_info:
            await session_gateway.activate("42")

        assert exc_info.value.status == 404
        assert "unknown user" in str(exc_info.value)


class TestResponseParsing:

    @pytest.mark.parametrize("value,expected", [(None, 0), ("", 0), (7, 7), ("12", 12), (3.0, 3), (" 5 ", 5)])
    def test_parse_session_id(self, value, expected):
        assert parse_session_id(value) == expected

    @pytest.mark.parametrize("value", [True, "x", 1.5, [1]])
    def test_parse_session_id_rejects(self, value):
        with pytest.raises(ValueError):
            parse_session_id(value)

    @pytest.mark.parametrize("value,expected", [(None, None), (42, "42"), (42.0, "42"), (" 7 ", "7"), ("", None)])
    def test_parse_user_id(self, value, expected):
        assert parse_user_id(value) == expected
