"""Tests for the Ollama API client against a mocked transport."""

import json

import httpx
import pytest

from ollamactl.core.models import CreateRequest
from ollamactl.core.ollama_client import OllamaClient, OllamaError, UnauthorizedError


def client_for(handler):
    return OllamaClient("http://ollama.test", transport=httpx.MockTransport(handler))


def ndjson(*events):
    return "".join(json.dumps(event) + "\n" for event in events)


@pytest.mark.asyncio
async def test_show_sends_model_and_parses_response():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "details": {"family": "llama", "parameter_size": "8B", "quantization_level": "Q4_0"},
            "model_info": {"general.architecture": "llama"},
            "capabilities": ["completion"],
        })

    async with client_for(handler) as client:
        description = await client.show("llama3", verbose=True)

    assert seen == {"path": "/api/show", "body": {"model": "llama3", "verbose": True}}
    assert description.details.family == "llama"
    assert description.capabilities == ("completion",)


@pytest.mark.asyncio
async def test_list_models():
    def handler(request):
        assert request.method == "GET"
        assert request.url.path == "/api/tags"
        return httpx.Response(200, json={"models": [
            {"name": "model1", "digest": "sha256:abc123", "size": 1024, "modified_at": "2024-05-01T10:00:00Z"},
        ]})

    async with client_for(handler) as client:
        models = await client.list_models()

    assert [m.name for m in models] == ["model1"]
    assert models[0].size == 1024


@pytest.mark.asyncio
async def test_server_error_message_is_surfaced():
    def handler(request):
        return httpx.Response(500, text="server error\n")

    async with client_for(handler) as client:
        with pytest.raises(OllamaError, match="server error") as excinfo:
            await client.list_models()

    assert excinfo.value.status_code == 500


@pytest.mark.asyncio
async def test_json_error_body():
    def handler(request):
        return httpx.Response(404, json={"error": "model 'nope' not found"})

    async with client_for(handler) as client:
        with pytest.raises(OllamaError, match="model 'nope' not found"):
            await client.show("nope")


@pytest.mark.asyncio
async def test_delete_and_unload_requests():
    calls = []

    def handler(request):
        calls.append((request.method, request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={"done": True})

    async with client_for(handler) as client:
        await client.unload_model("test-model")
        await client.delete_model("test-model")

    assert calls == [
        ("POST", "/api/generate", {"model": "test-model", "keep_alive": 0}),
        ("DELETE", "/api/delete", {"model": "test-model"}),
    ]


@pytest.mark.asyncio
async def test_push_streams_progress():
    def handler(request):
        assert json.loads(request.content)["model"] == "test-model"
        return httpx.Response(200, text=ndjson(
            {"status": "preparing manifest"},
            {"digest": "sha256:abc123456789", "total": 100, "completed": 50},
            {"digest": "sha256:abc123456789", "total": 100, "completed": 100},
        ))

    async with client_for(handler) as client:
        events = [event async for event in client.push_model("test-model")]

    assert [e.status for e in events] == ["preparing manifest", "", ""]
    assert events[-1].completed == 100


@pytest.mark.asyncio
async def test_push_unauthorized():
    def handler(request):
        return httpx.Response(401, json={"error": "access denied"})

    async with client_for(handler) as client:
        with pytest.raises(UnauthorizedError, match="access denied"):
            async for _ in client.push_model("unauthorized-model"):
                pass


@pytest.mark.asyncio
async def test_error_inside_stream():
    def handler(request):
        return httpx.Response(200, text=ndjson({"status": "reading model"}, {"error": "no FROM line"}))

    async with client_for(handler) as client:
        with pytest.raises(OllamaError, match="no FROM line"):
            async for _ in client.create_model(CreateRequest(model="m", from_="base")):
                pass


@pytest.mark.asyncio
async def test_connection_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with client_for(handler) as client:
        with pytest.raises(OllamaError, match="could not connect"):
            await client.list_models()
