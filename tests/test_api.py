"""
End-to-end tests of the HTTP API over a sample project
"""

import json
import time
from urllib.parse import quote

import pytest
from fastapi.testclient import TestClient

from spring_twin.core.app import create_app

from conftest import CONTROLLER, ORDER_SERVICE, PRICING_SERVICE

API = "/api/v1"


@pytest.fixture
def client(test_settings):
    with TestClient(create_app(test_settings)) as test_client:
        yield test_client


def wait_for_terminal(client, job_id, timeout=20.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        status = client.get(f"{API}/analysis/jobs/{job_id}/status").json()
        if status["state"] in ("Completed", "Failed", "Cancelled"):
            return status
        time.sleep(0.05)
    raise AssertionError(f"job {job_id} did not finish within {timeout}s")


@pytest.fixture
def analysed(client, sample_project):
    response = client.post(f"{API}/projects", json={"name": "shop", "root_path": str(sample_project), "project_id": "shop"})
    assert response.status_code == 201
    response = client.post(f"{API}/projects/shop/analysis")
    assert response.status_code == 202
    job_id = response.json()["job_id"]
    status = wait_for_terminal(client, job_id)
    assert status == {"state": "Completed", "progress": 100}
    return job_id


@pytest.mark.integration
class TestAnalysisFlow:
    def test_health(self, client):
        response = client.get(f"{API}/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_info_lists_features_and_tools(self, client):
        info = client.get(f"{API}/info").json()
        assert info["features"]["mcp_gateway"] is True
        assert info["features"]["neo4j_mirror"] is True
        assert "trigger_analysis" not in info["tools"]

    def test_project_and_job_records(self, client, analysed):
        project = client.get(f"{API}/projects/shop").json()
        assert project["graph_version"] == 1
        assert project["active_job_id"] is None

        job = client.get(f"{API}/analysis/jobs/{analysed}").json()
        assert job["state"] == "Completed"
        assert job["result"]["commit"]["version"] == 1
        assert client.get(f"{API}/analysis/jobs", params={"project_id": "shop"}).json()["total"] == 1

    def test_listings(self, client, analysed):
        classes = client.get(f"{API}/projects/shop/classes", params={"label": "controller"}).json()
        assert [c["id"] for c in classes["classes"]] == [CONTROLLER]

        endpoints = client.get(f"{API}/projects/shop/endpoints").json()
        assert endpoints["total"] == 4
        posts = client.get(f"{API}/projects/shop/endpoints", params={"http_method": "POST"}).json()
        assert {e["path"] for e in posts["endpoints"]} == {"/api/orders", "/api/orders/search"}

        methods = client.get(f"{API}/projects/shop/methods", params={"class_id": ORDER_SERVICE}).json()
        assert methods["total"] == 3

    def test_dependency_report_endpoint(self, client, analysed):
        response = client.get(f"{API}/projects/shop/reports/dependencies/{CONTROLLER}")
        assert response.status_code == 200
        assert response.headers["x-graph-version"] == "1"
        report = response.json()
        assert report["direct"] == [ORDER_SERVICE]
        assert [ORDER_SERVICE, PRICING_SERVICE, ORDER_SERVICE] in report["cycles"]

        again = client.get(f"{API}/projects/shop/reports/dependencies/{CONTROLLER}")
        assert again.content == response.content

    def test_explain_and_context(self, client, analysed):
        endpoint_id = client.get(f"{API}/projects/shop/endpoints").json()["endpoints"][0]["id"]
        response = client.get(f"{API}/projects/shop/reports/endpoints/{quote(endpoint_id, safe='/')}")
        assert response.status_code == 200
        assert json.loads(response.content)["endpoint"]["id"] == endpoint_id

        context = client.get(f"{API}/projects/shop/reports/context")
        assert context.headers["content-type"].startswith("text/markdown")
        assert "## Endpoints" in context.text

    def test_rerun_is_a_no_op(self, client, analysed):
        job_id = client.post(f"{API}/projects/shop/analysis").json()["job_id"]
        assert wait_for_terminal(client, job_id)["state"] == "Completed"
        assert client.get(f"{API}/projects/shop").json()["graph_version"] == 1

    def test_tools_over_http(self, client, analysed):
        names = [tool["name"] for tool in client.get(f"{API}/tools").json()["tools"]]
        assert "trigger_analysis" not in names

        result = client.post(f"{API}/tools/list_classes", json={"project_id": "shop", "package": "com.acme.shop.service"})
        assert result.json()["data"]["count"] == 2

        denied = client.post(f"{API}/tools/trigger_analysis", json={"project_id": "shop"})
        assert denied.json()["error"]["code"] == "PERMISSION_DENIED"

    def test_delete_project(self, client, analysed):
        assert client.delete(f"{API}/projects/shop").json()["deleted"] is True
        assert client.get(f"{API}/projects/shop").status_code == 404


@pytest.mark.integration
class TestErrors:
    def test_unknown_project(self, client):
        response = client.get(f"{API}/projects/missing/classes")
        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"

    def test_unknown_job(self, client):
        assert client.get(f"{API}/analysis/jobs/job-nope/status").status_code == 404

    def test_invalid_root(self, client, tmp_path):
        response = client.post(f"{API}/projects", json={"name": "x", "root_path": str(tmp_path / "missing")})
        assert response.status_code == 400
        assert response.json()["error"] == "CONFIGURATION_ERROR"

    def test_invalid_body(self, client):
        response = client.post(f"{API}/projects", json={"name": "x"})
        assert response.status_code == 422
        assert response.json()["error"] == "INVALID_ARGUMENTS"

    def test_unknown_class_report(self, client, analysed):
        response = client.get(f"{API}/projects/shop/reports/classes/com.acme.Nope")
        assert response.status_code == 404

    def test_invalid_override_pattern(self, client, analysed):
        response = client.post(f"{API}/projects/shop/analysis", json={"include_packages": ["com..acme"]})
        assert response.status_code == 400

    def test_tool_call_for_unknown_project_matches_http_code(self, client):
        http = client.get(f"{API}/projects/missing/classes").json()
        tool = client.post(f"{API}/tools/list_classes", json={"project_id": "missing"}).json()
        assert tool["success"] is False
        assert tool["error"]["code"] == http["error"] == "NOT_FOUND"
