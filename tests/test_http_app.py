# tests/test_http_app.py
import importlib

import pytest
from fastapi.testclient import TestClient

TOKEN = "test-token"
AUTH = {"Authorization": f"Bearer {TOKEN}"}


@pytest.fixture
def http_app(monkeypatch):
    monkeypatch.setenv("REDIS_URL", "memory://")
    monkeypatch.setenv("MCP_HTTP_BEARER_TOKEN", TOKEN)
    monkeypatch.setenv("FLUSH_ON_STARTUP", "false")
    import server.http_app as module
    # Module-level settings and container are read at import; rebuild them per test
    return importlib.reload(module)


@pytest.fixture
def client(http_app):
    with TestClient(http_app.app) as c:
        yield c


def call(client, name, arguments, id_=1):
    body = {"jsonrpc": "2.0", "id": id_, "method": "tools/call",
            "params": {"name": name, "arguments": arguments}}
    resp = client.post("/mcp", json=body, headers=AUTH)
    assert resp.status_code == 200
    return resp.json()


def test_save_and_get_over_http(client):
    out = call(client, "product_save", {"id": 101, "name": "Laptop", "price": 65000})
    assert out["result"]["isError"] is False

    got = call(client, "product_get", {"id": 101})
    block = got["result"]["content"][0]
    assert block == {"type": "json", "json": {"id": 101, "name": "Laptop", "price": 65000.0}}


def test_missing_product_maps_to_not_found(client):
    out = call(client, "product_update", {"id": 5, "name": "x", "encoding": "hash"})
    assert out["error"]["code"] == -32004
    assert "5" in out["error"]["data"]

    out = call(client, "product_replace", {"id": 5, "name": "x", "price": 1})
    assert out["error"]["code"] == -32004


def test_malformed_hash_maps_to_decode_error(http_app, client):
    backend = http_app.container.backend
    backend.hash_set("product:hashOps:3", "id", b"3")
    backend.hash_set("product:hashOps:3", "name", b"Lamp")
    backend.hash_set("product:hashOps:3", "price", b"cheap")

    out = call(client, "product_get", {"id": 3, "encoding": "hash"})
    assert out["error"]["code"] == -32005


def test_bad_arguments_map_to_invalid_params(client):
    out = call(client, "product_save", {"id": 1, "name": "a", "price": -1})
    assert out["error"]["code"] == -32602
    assert out["error"]["data"][0]["loc"] == ["price"]


def test_infinite_price_literal_rejected(client):
    raw = ('{"jsonrpc": "2.0", "id": 7, "method": "tools/call", "params": '
           '{"name": "product_save", "arguments": {"id": 1, "name": "a", "price": Infinity}}}')
    resp = client.post("/mcp", content=raw,
                       headers={**AUTH, "Content-Type": "application/json"})
    assert resp.json()["error"]["code"] == -32602


def test_unknown_tool_and_method(client):
    assert call(client, "fs_read", {})["error"]["code"] == -32601

    resp = client.post("/mcp", json={"jsonrpc": "2.0", "id": 2, "method": "resources/list"},
                       headers=AUTH)
    assert resp.json()["error"]["code"] == -32601


def test_tools_list(client):
    resp = client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"},
                       headers=AUTH)
    names = [t["name"] for t in resp.json()["result"]["tools"]]
    assert "product_replace" in names


def test_requires_bearer_token(client):
    resp = client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
    assert resp.status_code == 401

    resp = client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"},
                       headers={"Authorization": "Bearer wrong"})
    assert resp.status_code == 401
