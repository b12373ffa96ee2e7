import pytest
from fastapi.testclient import TestClient

from conftest import ScriptedCompletion
from property_insights.api import app, get_insights_service
from property_insights.services.insights_service import InsightsService


@pytest.fixture
def client(repo, settings):
    backend = ScriptedCompletion(label="COMPARISON", answer="Oak Ridge rents above its peers.")
    service = InsightsService(repo, backend, settings, warmup_timeout_s=0.05)
    app.dependency_overrides[get_insights_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_property_insights_endpoint(client):
    resp = client.post(
        "/api/property-insights",
        json={"question": "How does it compare?", "propertyData": {"id": "P1", "Name": "Oak Ridge",
                                                                   "YearBuilt": 2010, "Submarket": "East"}},
    )
    assert resp.status_code == 200
    payload = resp.json()
    assert set(payload) == {"response", "questionType", "property", "contextSummary"}
    assert payload["questionType"] == "COMPARISON"
    assert payload["property"]["Property_ID"] == "P1"
    assert set(payload["contextSummary"]) == {"dataTypes", "recordsUsed"}
    assert "similarProperties" in payload["contextSummary"]["dataTypes"]
    assert payload["contextSummary"]["recordsUsed"] == 3 + 2 + 3


def test_invalid_body_returns_400(client):
    resp = client.post("/api/property-insights", content=b"not json", headers={"content-type": "application/json"})
    assert resp.status_code == 400
    assert set(resp.json()) == {"error", "details"}

    resp = client.post("/api/property-insights", json={"question": "Hi", "propertyData": 5})
    assert resp.status_code == 400


def test_warmup_endpoint_is_always_200(client):
    resp = client.get("/api/property-insights/warmup")
    assert resp.status_code == 200
    assert resp.json()["status"] in {"ready", "partially_initialized"}


def test_properties_endpoints(client):
    resp = client.get("/api/properties", params={"submarket": "East"})
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["total"] == 3
    assert {item["Name"] for item in payload["items"]} == {"Oak Ridge", "Maple Court", "Cedar Point"}

    resp = client.get("/api/properties/P4")
    assert resp.status_code == 200
    assert resp.json()["Submarket"] == "West"

    assert client.get("/api/properties/missing").status_code == 404


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}
