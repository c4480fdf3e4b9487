from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from agentgraph.domain.model import ResourceKind
from tests.helpers.graphs import API_BASE

if TYPE_CHECKING:
    from collections.abc import Callable

    from fastapi.testclient import TestClient

AGENTS = f"{API_BASE}/graphs/g1/agents"
EXTERNAL = f"{API_BASE}/graphs/g1/external-agents"
RELATIONS = f"{API_BASE}/graphs/g1/agent-relations"


@pytest.fixture
def graph(client: TestClient, seed_resources: Callable[..., None]) -> None:
    seed_resources(ResourceKind.TOOL, "search")
    for graph_id in ("g1", "g2"):
        client.post(f"{API_BASE}/agent-graphs", json={"id": graph_id, "name": graph_id})
    client.post(AGENTS, json={"id": "a", "name": "A"})
    client.post(AGENTS, json={"id": "b", "name": "B"})
    client.post(EXTERNAL, json={"id": "x", "name": "X", "baseUrl": "https://x.example.com"})
    client.post(f"{API_BASE}/graphs/g2/agents", json={"id": "elsewhere", "name": "Elsewhere"})


@pytest.mark.usefixtures("graph")
def test_agent_crud(client: TestClient) -> None:
    created = client.post(AGENTS, json={"id": "c", "name": "C", "tools": ["search"], "prompt": "Hi"})
    updated = client.put(f"{AGENTS}/c", json={"name": "Charlie", "tools": None})
    listed = client.get(AGENTS)

    assert created.status_code == 201
    assert created.json()["data"]["tools"] == ["search"]
    assert updated.json()["data"]["name"] == "Charlie"
    assert updated.json()["data"]["prompt"] == "Hi"
    assert updated.json()["data"]["tools"] == []
    assert [agent["id"] for agent in listed.json()["data"]] == ["a", "b", "c"]
    assert client.delete(f"{AGENTS}/c").status_code == 204
    missing = client.get(f"{AGENTS}/c")
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Agent not found"


@pytest.mark.usefixtures("graph")
def test_agent_with_unknown_tool_is_rejected(client: TestClient) -> None:
    response = client.post(AGENTS, json={"id": "c", "name": "C", "canUse": [{"toolId": "nope"}]})

    assert response.status_code == 400
    (error,) = response.json()["errors"]
    assert (error["kind"], error["id"], error["pointer"]) == ("tool", "nope", "/canUse/0/toolId")


@pytest.mark.usefixtures("graph")
def test_agent_ids_are_shared_between_variants(client: TestClient) -> None:
    response = client.post(EXTERNAL, json={"id": "a", "name": "Clash", "baseUrl": "https://a.example.com"})

    assert response.status_code == 409
    assert client.get(f"{AGENTS}/x").status_code == 404
    assert client.get(f"{EXTERNAL}/a").json()["detail"] == "External agent not found"


@pytest.mark.usefixtures("graph")
def test_external_agent_crud(client: TestClient) -> None:
    updated = client.put(f"{EXTERNAL}/x", json={"baseUrl": "https://moved.example.com"})
    missing_url = client.post(EXTERNAL, json={"id": "y", "name": "Y"})

    assert updated.json()["data"]["baseUrl"] == "https://moved.example.com"
    assert updated.json()["data"]["name"] == "X"
    assert missing_url.status_code == 400
    assert [error["pointer"] for error in missing_url.json()["errors"]] == ["/baseUrl"]
    assert [agent["id"] for agent in client.get(EXTERNAL).json()["data"]] == ["x"]
    assert client.delete(f"{EXTERNAL}/x").status_code == 204


@pytest.mark.usefixtures("graph")
def test_relation_crud_and_filters(client: TestClient) -> None:
    created = client.post(
        RELATIONS,
        json={"id": "r1", "sourceAgentId": "a", "targetAgentId": "b", "relationType": "transfer"},
    )
    client.post(RELATIONS, json={"id": "r2", "sourceAgentId": "a", "targetAgentId": "x", "relationType": "delegate"})
    client.post(RELATIONS, json={"id": "r3", "sourceAgentId": "b", "targetAgentId": "a", "relationType": "transfer"})

    assert created.status_code == 201
    assert created.json()["data"]["graphId"] == "g1"
    filtered = client.get(RELATIONS, params={"sourceAgentId": "a", "relationType": "transfer"}).json()
    assert [relation["id"] for relation in filtered["data"]] == ["r1"]
    assert filtered["pagination"]["total"] == 1

    retyped = client.put(f"{RELATIONS}/r1", json={"relationType": "delegate"})
    assert retyped.json()["data"]["relationType"] == "delegate"
    assert client.get(f"{RELATIONS}/r1").json()["data"]["targetAgentId"] == "b"
    assert client.delete(f"{RELATIONS}/r1").status_code == 204
    assert client.get(f"{RELATIONS}/r1").json()["detail"] == "Agent relation not found"


@pytest.mark.usefixtures("graph")
def test_cross_graph_relation_is_rejected(client: TestClient) -> None:
    response = client.post(
        RELATIONS,
        json={"sourceAgentId": "a", "targetAgentId": "elsewhere", "relationType": "transfer"},
    )

    assert response.status_code == 400
    body = response.json()
    assert body["detail"] == "Agent relationship validation failed"
    assert body["errors"][0]["pointer"] == "/targetAgentId"


@pytest.mark.usefixtures("graph")
def test_duplicate_relation_is_a_conflict_and_bad_type_a_schema_error(client: TestClient) -> None:
    payload = {"sourceAgentId": "a", "targetAgentId": "b", "relationType": "transfer"}
    client.post(RELATIONS, json=payload)

    duplicate = client.post(RELATIONS, json=payload)
    bad_type = client.post(RELATIONS, json={**payload, "relationType": "teleport"})
    empty_update = client.put(f"{RELATIONS}/anything", json={})

    assert duplicate.status_code == 409
    assert duplicate.json()["retryable"] is False
    assert bad_type.status_code == 400
    assert bad_type.json()["errors"][0]["pointer"] == "/relationType"
    assert empty_update.status_code in (400, 404)


@pytest.mark.usefixtures("graph")
def test_scoped_writes_show_up_in_full_graph(client: TestClient) -> None:
    client.post(RELATIONS, json={"sourceAgentId": "a", "targetAgentId": "x", "relationType": "delegate"})
    client.post(RELATIONS, json={"sourceAgentId": "a", "targetAgentId": "b", "relationType": "transfer"})

    before = client.get(f"{API_BASE}/agent-graphs/g1/full").json()["data"]
    client.delete(f"{AGENTS}/b")
    after = client.get(f"{API_BASE}/agent-graphs/g1/full").json()["data"]

    assert before["agents"]["a"]["canTransferTo"] == ["b"]
    assert before["agents"]["a"]["canDelegateTo"] == ["x"]
    assert sorted(after["agents"]) == ["a", "x"]
    assert after["agents"]["a"]["canTransferTo"] == []
    assert client.get(RELATIONS).json()["pagination"]["total"] == 1


def test_routes_under_missing_graph_are_not_found(client: TestClient) -> None:
    for url in (AGENTS, EXTERNAL, RELATIONS):
        response = client.get(url)
        assert response.status_code == 404
        assert response.json()["detail"] == "Agent graph not found"
