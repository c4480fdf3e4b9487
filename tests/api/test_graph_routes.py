from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from tests.helpers.graphs import API_BASE

if TYPE_CHECKING:
    from fastapi.testclient import TestClient

GRAPHS = f"{API_BASE}/agent-graphs"


def _create_graph(client: TestClient, graph_id: str, name: str = "Graph") -> None:
    response = client.post(GRAPHS, json={"id": graph_id, "name": name})
    assert response.status_code == 201, response.text


def test_health_is_open(client: TestClient) -> None:
    assert client.get("/health").status_code == 204


def test_create_and_get_graph(client: TestClient) -> None:
    response = client.post(GRAPHS, json={"id": "g1", "name": "Graph one", "description": "First"})

    assert response.status_code == 201
    data = response.json()["data"]
    assert (data["id"], data["name"], data["description"]) == ("g1", "Graph one", "First")
    assert data["defaultAgentId"] is None
    assert client.get(f"{GRAPHS}/g1").json()["data"] == data


def test_create_graph_generates_id(client: TestClient) -> None:
    data = client.post(GRAPHS, json={"name": "Anonymous"}).json()["data"]

    assert data["id"]
    assert client.get(f"{GRAPHS}/{data['id']}").status_code == 200


def test_create_graph_with_default_agent_is_rejected(client: TestClient) -> None:
    response = client.post(GRAPHS, json={"id": "g1", "name": "Graph", "defaultAgentId": "router"})

    assert response.status_code == 400
    (error,) = response.json()["errors"]
    assert (error["kind"], error["pointer"]) == ("defaultAgent", "/defaultAgentId")


def test_duplicate_graph_is_a_permanent_conflict(client: TestClient) -> None:
    _create_graph(client, "g1")

    response = client.post(GRAPHS, json={"id": "g1", "name": "Again"})

    assert response.status_code == 409
    body = response.json()
    assert body["type"] == "urn:agentgraph:error:conflict"
    assert body["retryable"] is False


def test_list_graphs_paginates(client: TestClient) -> None:
    for index in range(3):
        _create_graph(client, f"g{index}")

    response = client.get(GRAPHS, params={"page": 2, "limit": 2})

    body = response.json()
    assert [graph["id"] for graph in body["data"]] == ["g2"]
    assert body["pagination"] == {"page": 2, "limit": 2, "total": 3, "pages": 2}


@pytest.mark.parametrize(
    ("params", "pointer"),
    [({"limit": 0}, "/limit"), ({"limit": 101}, "/limit"), ({"page": 0}, "/page"), ({"page": "two"}, "/page")],
)
def test_invalid_pagination_is_a_schema_error(client: TestClient, params: dict[str, object], pointer: str) -> None:
    response = client.get(GRAPHS, params=params)

    assert response.status_code == 400
    assert [error["pointer"] for error in response.json()["errors"]] == [pointer]


def test_update_graph_preserves_omitted_fields(client: TestClient) -> None:
    client.post(GRAPHS, json={"id": "g1", "name": "Graph", "description": "Keep me"})
    client.post(f"{API_BASE}/graphs/g1/agents", json={"id": "a", "name": "A"})

    updated = client.put(f"{GRAPHS}/g1", json={"name": "Renamed", "defaultAgentId": "a"})
    cleared = client.put(f"{GRAPHS}/g1", json={"defaultAgentId": None})

    assert updated.status_code == 200
    assert updated.json()["data"]["description"] == "Keep me"
    assert updated.json()["data"]["defaultAgentId"] == "a"
    assert cleared.json()["data"]["defaultAgentId"] is None
    assert cleared.json()["data"]["name"] == "Renamed"


def test_update_graph_rejects_null_name_and_unknown_default(client: TestClient) -> None:
    _create_graph(client, "g1")

    null_name = client.put(f"{GRAPHS}/g1", json={"name": None})
    unknown_default = client.put(f"{GRAPHS}/g1", json={"defaultAgentId": "ghost"})

    assert null_name.status_code == 400
    assert null_name.json()["errors"][0]["pointer"] == "/name"
    assert unknown_default.status_code == 400
    assert unknown_default.json()["errors"][0]["kind"] == "defaultAgent"


def test_delete_graph(client: TestClient) -> None:
    _create_graph(client, "g1")

    assert client.delete(f"{GRAPHS}/g1").status_code == 204
    missing = client.get(f"{GRAPHS}/g1")
    assert missing.status_code == 404
    assert missing.json()["title"] == "Not Found"


def test_related_agents(client: TestClient) -> None:
    client.put(
        f"{GRAPHS}/g1/full",
        json={
            "name": "Graph",
            "agents": {
                "a": {"name": "A", "canTransferTo": ["b"], "canDelegateTo": ["x"]},
                "b": {"name": "B"},
                "x": {"name": "X", "baseUrl": "https://x.example.com"},
            },
        },
    )

    response = client.get(f"{GRAPHS}/g1/agents/a/related")

    body = response.json()
    assert [(agent["id"], agent["type"], agent["relationType"]) for agent in body["data"]] == [
        ("b", "internal", "transfer"),
        ("x", "external", "delegate"),
    ]
    assert body["pagination"] == {"page": 1, "limit": 2, "total": 2, "pages": 1}
    assert client.get(f"{GRAPHS}/missing/agents/a/related").status_code == 404
