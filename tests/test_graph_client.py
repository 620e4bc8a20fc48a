# tests/test_graph_client.py

from __future__ import annotations

import json

import httpx
import pytest

from todo_tree.core.errors import GatewayError
from todo_tree.core.materializer import TreeMaterializer
from todo_tree.core.nodes import StatusNode
from todo_tree.graph.client import GraphClientFactory, friendly_gateway_error_message

BASE = "https://graph.test/v1.0/me/todo"


class Recorder:
    def __init__(self, routes: dict[str, httpx.Response]) -> None:
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = f"{request.method} {request.url.path}"
        skip = request.url.params.get("$skiptoken")
        if skip:
            key += f"?{skip}"
        return self.routes.get(key, httpx.Response(404, json={"error": {"code": "NotFound"}}))


def _factory(settings, recorder: Recorder) -> GraphClientFactory:
    return GraphClientFactory(settings, transport=httpx.MockTransport(recorder))


@pytest.mark.asyncio
async def test_fetch_all_follows_next_link(settings) -> None:
    recorder = Recorder(
        {
            "GET /v1.0/me/todo/lists": httpx.Response(
                200,
                json={"value": [{"id": "L1"}], "@odata.nextLink": f"{BASE}/lists?$skiptoken=p2"},
            ),
            "GET /v1.0/me/todo/lists?p2": httpx.Response(200, json={"value": [{"id": "L2"}, {"id": "L3"}]}),
        }
    )
    factory = _factory(settings, recorder)
    gateway = await factory.get_client()

    items = await gateway.fetch_all("/lists")

    assert [i["id"] for i in items] == ["L1", "L2", "L3"]
    assert len(recorder.requests) == 2
    assert recorder.requests[0].headers["Authorization"] == "Bearer test-token"
    await factory.aclose()


@pytest.mark.asyncio
async def test_status_query_reaches_the_wire(settings) -> None:
    recorder = Recorder(
        {
            "GET /v1.0/me/todo/lists": httpx.Response(200, json={"value": [{"id": "L1", "displayName": "G"}]}),
            "GET /v1.0/me/todo/lists/L1/tasks": httpx.Response(200, json={"value": [{"id": "T1", "title": "Milk"}]}),
        }
    )
    factory = _factory(settings, recorder)
    mat = TreeMaterializer(factory)

    lst = (await mat.expand(None))[0]
    in_progress, completed = await mat.expand(lst)
    tasks = await mat.expand(in_progress)
    await mat.expand(completed)

    assert isinstance(in_progress, StatusNode)
    assert [t.entity.title for t in tasks] == ["Milk"]
    filters = [r.url.params.get("$filter") for r in recorder.requests[1:]]
    assert filters == ["status ne 'completed'", "status eq 'completed'"]
    await factory.aclose()


@pytest.mark.asyncio
async def test_patch_sends_json_body(settings) -> None:
    recorder = Recorder(
        {"PATCH /v1.0/me/todo/lists/L1/tasks/T1": httpx.Response(200, json={"id": "T1", "importance": "high"})}
    )
    factory = _factory(settings, recorder)
    gateway = await factory.get_client()

    entity = await gateway.patch("/lists/L1/tasks/T1", {"importance": "high"})

    assert entity["importance"] == "high"
    assert json.loads(recorder.requests[0].content) == {"importance": "high"}
    await factory.aclose()


@pytest.mark.asyncio
async def test_http_errors_become_gateway_errors(settings) -> None:
    factory = _factory(settings, Recorder({}))
    gateway = await factory.get_client()

    with pytest.raises(GatewayError) as info:
        await gateway.patch("/lists/L1/tasks/missing", {"status": "completed"})

    assert info.value.status_code == 404
    assert "Not found" in friendly_gateway_error_message(info.value)
    await factory.aclose()


@pytest.mark.asyncio
async def test_transport_errors_become_gateway_errors(settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("no route", request=request)

    factory = GraphClientFactory(settings, transport=httpx.MockTransport(handler))
    gateway = await factory.get_client()

    with pytest.raises(GatewayError) as info:
        await gateway.fetch_all("/lists")

    assert info.value.status_code is None
    assert isinstance(info.value.__cause__, httpx.ConnectError)
    await factory.aclose()


@pytest.mark.asyncio
async def test_no_token_means_no_client(settings) -> None:
    settings.access_token = ""
    factory = GraphClientFactory(settings)

    assert await factory.get_client() is None
    assert await TreeMaterializer(factory).expand(None) is None


@pytest.mark.asyncio
async def test_client_is_cached(settings) -> None:
    factory = _factory(settings, Recorder({}))

    first = await factory.get_client()
    second = await factory.get_client()

    assert first is second
    await factory.aclose()
