"""
Pytest configuration and fixtures for orbit tests.
"""
import pytest
from starlette.testclient import TestClient

from sample_services import make_app


@pytest.fixture
def app():
    """Application with the sample services mapped under v1."""
    return make_app()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def sample_file(tmp_path):
    path = tmp_path / "report.bin"
    path.write_bytes(b"0123456789" * 10)
    return path
