"""Shared test fixtures and configuration for backend tests."""
import pytest
from fastapi.testclient import TestClient

from app.config import reset_config
from app.identify.base import ImagePart, PlantIdentifier
from app.identify.wrapper import set_identifier
from app.main import app
from app.storage.service import UploadStorage


class StubIdentifier(PlantIdentifier):
    """Identifier returning a canned answer, or raising *error* if set."""

    def __init__(self, result: str = "Rose, Rosaceae", error: Exception = None):
        self.result = result
        self.error = error
        self.calls = []

    def health_check(self) -> bool:
        return True

    def identify(self, image: ImagePart) -> str:
        self.calls.append(image)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Run every test from an empty directory so no local YAML leaks in."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("PORT", raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def api_client():
    """Provide a TestClient for the main FastAPI app (lifespan not run)."""
    return TestClient(app)


@pytest.fixture
def upload_dir(tmp_path):
    directory = tmp_path / "public" / "uploads"
    directory.mkdir(parents=True)
    (directory / ".gitkeep").touch()
    return directory


@pytest.fixture
def storage(upload_dir):
    """Install an UploadStorage rooted at a temp uploads directory."""
    UploadStorage.reset_instance()
    service = UploadStorage(upload_dir=upload_dir)
    UploadStorage.set_instance(service)
    yield service
    UploadStorage.reset_instance()


@pytest.fixture
def stub_identifier():
    identifier = StubIdentifier()
    set_identifier(identifier)
    yield identifier
    set_identifier(None)
