"""
Test cases for the health endpoints and the command line entry point
"""

import pytest
from fastapi.testclient import TestClient

from insurance_server.config import Settings
from insurance_server.health import create_health_app
from insurance_server.main import parse_args, print_banner
from insurance_server.server import ProofServer
from insurance_server.services.result_store import ResultStore


@pytest.fixture
def client(make_pipeline, tmp_path):
    """Health app test client over an unstarted TCP server"""
    server = ProofServer(make_pipeline(), ResultStore(str(tmp_path / "results")), port=9999)
    return TestClient(create_health_app(server))


def test_root_endpoint(client):
    """Test root endpoint returns correct response"""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert "service" in data
    assert "version" in data


def test_health_check_endpoint(client):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] in ("healthy", "degraded")
    assert "timestamp" in data
    assert data["tcpPort"] == 9999
    assert data["sessions"] == {"active": 0, "completed": 0}
    assert set(data["toolchain"]) == {"nargo", "bb"}
    assert "cleanup" in data


def test_health_reports_degraded_without_toolchain(client, monkeypatch):
    """Missing binaries make the service report degraded"""
    monkeypatch.setattr("insurance_server.health.shutil.which", lambda name: None)
    response = client.get("/health")
    assert response.json()["status"] == "degraded"


def test_parse_args_port_override():
    assert parse_args(["--port", "9001"]).port == 9001
    assert parse_args(["-p", "9002"]).port == 9002


def test_print_banner_lists_requirements(capsys):
    print_banner(Settings(_env_file=None), 8080)
    out = capsys.readouterr().out
    assert "Listening on 0.0.0.0:8080" in out
    assert "Valid age range: 10-25" in out
    assert "multiplied by 10: 185-249" in out
