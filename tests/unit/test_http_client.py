"""
Unit Tests for ChatServiceClient
================================

Runs the client against a local aiohttp test server so request encoding
(GET query vs POST JSON) and every failure mapping go through real HTTP.
"""

import asyncio

import pytest
from aiohttp import web
from aiohttp import test_utils

from travochat.core.exceptions import ServiceError
from travochat.infrastructure.config.settings import ApiSettings, EndpointSettings, HttpMethod
from travochat.infrastructure.gateways.http_client import ChatServiceClient


async def _echo_json(request: web.Request) -> web.Response:
    body = await request.json()
    return web.json_response({"statusCode": 200, "echo": body})


async def _echo_query(request: web.Request) -> web.Response:
    return web.json_response({"echo": dict(request.query)})


async def _server_error(request: web.Request) -> web.Response:
    return web.Response(status=500, text="internal failure")


async def _not_json(request: web.Request) -> web.Response:
    return web.Response(status=200, text="<html>oops</html>", content_type="text/html")


async def _json_list(request: web.Request) -> web.Response:
    return web.json_response([1, 2, 3])


async def _slow(request: web.Request) -> web.Response:
    await asyncio.sleep(1)
    return web.json_response({})


@pytest.fixture
async def server():
    app = web.Application()
    app.router.add_post("/register", _echo_json)
    app.router.add_get("/check", _echo_query)
    app.router.add_post("/broken", _server_error)
    app.router.add_post("/html", _not_json)
    app.router.add_post("/list", _json_list)
    app.router.add_post("/slow", _slow)
    test_server = test_utils.TestServer(app)
    await test_server.start_server()
    yield test_server
    await test_server.close()


@pytest.fixture
async def client(server, logger):
    settings = ApiSettings(base_url=str(server.make_url("/")), timeout_seconds=0.3)
    chat_client = ChatServiceClient(settings, logger=logger)
    yield chat_client
    await chat_client.stop()


def _post(path: str) -> EndpointSettings:
    return EndpointSettings(method=HttpMethod.POST, path=path)


@pytest.mark.asyncio
async def test_post_sends_json_body(client):
    body = await client.request("register", _post("/register"), {"name": "Ann", "email": "a@x.com"})

    assert body == {"statusCode": 200, "echo": {"name": "Ann", "email": "a@x.com"}}
    assert client.get_statistics()["successful_requests"] == 1


@pytest.mark.asyncio
async def test_get_sends_query_string(client):
    endpoint = EndpointSettings(method=HttpMethod.GET, path="/check")

    body = await client.request("check", endpoint, {"email": "a@x.com"})

    assert body == {"echo": {"email": "a@x.com"}}


@pytest.mark.asyncio
async def test_non_2xx_raises_service_error(client):
    with pytest.raises(ServiceError) as exc_info:
        await client.request("broken", _post("/broken"), {})

    assert exc_info.value.status == 500
    assert exc_info.value.endpoint == "broken"
    assert "internal failure" in exc_info.value.reason
    assert client.get_statistics()["failed_requests"] == 1


@pytest.mark.asyncio
async def test_invalid_json_raises_service_error(client):
    with pytest.raises(ServiceError) as exc_info:
        await client.request("html", _post("/html"), {})

    assert "not valid JSON" in exc_info.value.reason


@pytest.mark.asyncio
async def test_non_object_body_raises_service_error(client):
    with pytest.raises(ServiceError):
        await client.request("list", _post("/list"), {})


@pytest.mark.asyncio
async def test_timeout_raises_service_error(client):
    with pytest.raises(ServiceError) as exc_info:
        await client.request("slow", _post("/slow"), {})

    assert "timed out" in exc_info.value.reason


@pytest.mark.asyncio
async def test_connection_refused_raises_service_error(logger):
    chat_client = ChatServiceClient(ApiSettings(base_url="http://127.0.0.1:9"), logger=logger)
    try:
        with pytest.raises(ServiceError) as exc_info:
            await chat_client.request("register", _post("/register"), {})
        assert exc_info.value.status is None
    finally:
        await chat_client.stop()


@pytest.mark.asyncio
async def test_context_manager_closes_session(server, logger):
    settings = ApiSettings(base_url=str(server.make_url("/")))

    async with ChatServiceClient(settings, logger=logger) as chat_client:
        assert chat_client.session is not None
        session = chat_client.session

    assert session.closed
    assert chat_client.session is None
