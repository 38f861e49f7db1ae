import pytest
from fastapi.testclient import TestClient

from rippermod_installer.main import app


@pytest.fixture
def staging_dir(tmp_path, monkeypatch):
    staging = tmp_path / "staging"
    staging.mkdir()
    monkeypatch.setattr("rippermod_installer.config.settings.staging_dir", staging)
    return staging


@pytest.fixture
def client(staging_dir):
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc


@pytest.fixture
def anyio_backend():
    return "asyncio"
