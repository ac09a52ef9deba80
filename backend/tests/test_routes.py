"""Tests for the HTTP surface: health, form page, upload and static files."""
import re
from unittest.mock import patch

from fastapi.testclient import TestClient
from starlette.datastructures import UploadFile

from app.identify.errors import GENERIC_ANALYSIS_ERROR
from app.identify.gemini import GeminiIdentifier
from app.main import app
from app.storage.service import UploadStorage

RESULT_MARKER = 'class="result"'


def _uploads(upload_dir):
    return sorted(p.name for p in upload_dir.iterdir() if p.name != ".gitkeep")


class TestHealth:
    """Tests for GET /health."""

    def test_health_ok(self, api_client):
        response = api_client.get("/health")
        assert response.status_code == 200
        assert response.text == "OK"

    def test_health_ok_without_storage(self, api_client):
        UploadStorage.reset_instance()
        assert api_client.get("/health").status_code == 200


class TestIndex:
    """Tests for GET /."""

    def test_renders_form_without_result(self, api_client):
        response = api_client.get("/")

        assert response.status_code == 200
        assert 'name="plantImage"' in response.text
        assert 'enctype="multipart/form-data"' in response.text
        assert RESULT_MARKER not in response.text
        assert 'role="alert"' not in response.text


class TestUpload:
    """Tests for POST /upload."""

    def test_no_file_field(self, api_client, storage, stub_identifier, upload_dir):
        response = api_client.post("/upload", data={"note": "nothing attached"})

        assert response.status_code == 200
        assert "Please select an image to analyze." in response.text
        assert RESULT_MARKER not in response.text
        assert stub_identifier.calls == []
        assert _uploads(upload_dir) == []

    def test_empty_body(self, api_client, storage, stub_identifier):
        response = api_client.post("/upload")

        assert response.status_code == 200
        assert "Please select an image to analyze." in response.text
        assert RESULT_MARKER not in response.text

    def test_empty_filename(self, api_client, storage, stub_identifier):
        response = api_client.post(
            "/upload",
            files={"plantImage": ("", b"", "application/octet-stream")},
        )

        assert response.status_code == 200
        assert "Please select an image to analyze." in response.text
        assert RESULT_MARKER not in response.text

    def test_successful_identification(self, api_client, storage, stub_identifier, upload_dir):
        response = api_client.post(
            "/upload",
            files={"plantImage": ("rose.JPG", b"\xff\xd8rose", "image/jpeg")},
        )

        assert response.status_code == 200
        assert "Rose, Rosaceae" in response.text
        assert RESULT_MARKER in response.text

        stored = _uploads(upload_dir)
        assert len(stored) == 1
        assert re.match(r"^plant-\d+\.jpg$", stored[0])
        assert f'src="/uploads/{stored[0]}"' in response.text
        assert stub_identifier.calls[0].data == b"\xff\xd8rose"
        assert stub_identifier.calls[0].mime_type == "image/jpeg"

    def test_result_is_escaped(self, api_client, storage, stub_identifier):
        stub_identifier.result = "<script>alert(1)</script>"

        response = api_client.post(
            "/upload",
            files={"plantImage": ("rose.jpg", b"data", "image/jpeg")},
        )

        assert "<script>alert(1)</script>" not in response.text
        assert "&lt;script&gt;" in response.text

    def test_markdown_result_rendered_as_html(self, api_client, storage, stub_identifier):
        stub_identifier.result = "## Plant Identification\n**Rose** (*Rosa*)\n\n- Family: Rosaceae"

        response = api_client.post(
            "/upload",
            files={"plantImage": ("rose.jpg", b"data", "image/jpeg")},
        )

        assert "<h2>Plant Identification</h2>" in response.text
        assert "<strong>Rose</strong>" in response.text
        assert "<em>Rosa</em>" in response.text
        assert "<li>Family: Rosaceae</li>" in response.text
        assert "**Rose**" not in response.text

    def test_oversized_upload_rejected_before_read(self, api_client, upload_dir, stub_identifier):
        UploadStorage.set_instance(UploadStorage(upload_dir=upload_dir, max_upload_bytes=16))
        try:
            with patch.object(UploadFile, "read") as mock_read:
                response = api_client.post(
                    "/upload",
                    files={"plantImage": ("big.jpg", b"x" * 64, "image/jpeg")},
                )
        finally:
            UploadStorage.reset_instance()

        assert response.status_code == 200
        assert "Image is too large (64 bytes)" in response.text
        assert RESULT_MARKER not in response.text
        mock_read.assert_not_called()
        assert stub_identifier.calls == []
        assert _uploads(upload_dir) == []

    def test_identifier_failure_keeps_file(self, api_client, storage, stub_identifier, upload_dir):
        stub_identifier.error = RuntimeError("upstream exploded")

        response = api_client.post(
            "/upload",
            files={"plantImage": ("fern.png", b"png", "image/png")},
        )

        assert response.status_code == 200
        assert GENERIC_ANALYSIS_ERROR in response.text
        assert "upstream exploded" not in response.text
        assert RESULT_MARKER not in response.text
        assert len(_uploads(upload_dir)) == 1

    def test_no_identifier_configured(self, api_client, storage, upload_dir):
        response = api_client.post(
            "/upload",
            files={"plantImage": ("fern.png", b"png", "image/png")},
        )

        assert response.status_code == 200
        assert GENERIC_ANALYSIS_ERROR in response.text
        assert RESULT_MARKER not in response.text

    def test_unsupported_type_rejected(self, api_client, upload_dir, stub_identifier):
        UploadStorage.set_instance(UploadStorage(upload_dir=upload_dir, allowed_mime_types=["image/jpeg"]))
        try:
            response = api_client.post(
                "/upload",
                files={"plantImage": ("notes.txt", b"hello", "text/plain")},
            )
        finally:
            UploadStorage.reset_instance()

        assert response.status_code == 200
        assert "Unsupported file type" in response.text
        assert RESULT_MARKER not in response.text
        assert stub_identifier.calls == []
        assert _uploads(upload_dir) == []

    def test_rapid_uploads_get_distinct_files(self, api_client, storage, stub_identifier, upload_dir):
        for name in ("a.webp", "b.webp"):
            api_client.post("/upload", files={"plantImage": (name, b"img", "image/webp")})

        stored = _uploads(upload_dir)
        assert len(stored) == 2
        assert all(name.endswith(".webp") for name in stored)


class TestPublicFiles:
    """Tests for GET /uploads/{filename} and GET /css/{filename}."""

    def test_serves_upload(self, api_client, storage):
        record = storage.save_upload("rose.jpg", b"jpeg-bytes", "image/jpeg")

        response = api_client.get(record.url)

        assert response.status_code == 200
        assert response.content == b"jpeg-bytes"

    def test_missing_upload(self, api_client, storage):
        assert api_client.get("/uploads/plant-1.jpg").status_code == 404

    def test_serves_stylesheet(self, api_client, tmp_path):
        css_dir = tmp_path / "public" / "css"
        css_dir.mkdir(parents=True)
        (css_dir / "style.css").write_text("body { color: green; }")

        response = api_client.get("/css/style.css")

        assert response.status_code == 200
        assert "color: green" in response.text
        assert response.headers["content-type"].startswith("text/css")

    def test_missing_stylesheet(self, api_client):
        assert api_client.get("/css/nope.css").status_code == 404


class TestLifespan:
    """Tests for startup and shutdown."""

    def test_startup_bootstraps_and_starts_sweeper(self, tmp_path):
        with TestClient(app) as client:
            assert client.get("/health").status_code == 200
            assert (tmp_path / "public" / "uploads" / ".gitkeep").is_file()
            assert (tmp_path / "public" / "css").is_dir()
            assert app.state.sweeper.running
            sweeper = app.state.sweeper

        assert not sweeper.running

    def test_upload_without_api_key_renders_error(self, tmp_path):
        with TestClient(app) as client:
            response = client.post(
                "/upload",
                files={"plantImage": ("rose.jpg", b"data", "image/jpeg")},
            )

        assert response.status_code == 200
        assert GENERIC_ANALYSIS_ERROR in response.text
        assert len(list((tmp_path / "public" / "uploads").glob("plant-*.jpg"))) == 1

    def test_startup_checks_model_when_key_present(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")

        with patch.object(GeminiIdentifier, "health_check", return_value=False) as mock_check:
            with TestClient(app) as client:
                assert client.get("/health").status_code == 200

        mock_check.assert_called_once_with()

    def test_startup_skips_model_check_without_key(self):
        with patch.object(GeminiIdentifier, "health_check") as mock_check:
            with TestClient(app):
                pass

        mock_check.assert_not_called()
