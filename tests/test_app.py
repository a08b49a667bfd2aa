"""End-to-end tests for the Flask adapter."""

from __future__ import annotations

import io
import json
import zipfile

import pytest

import font_thumbnailer.session as session_module
from app import create_app
from font_thumbnailer.ocr import OcrExtraction


@pytest.fixture
def client():
    app = create_app()
    app.config["TESTING"] = True
    return app.test_client()


def _upload(client, font_bytes):
    return client.post(
        "/fonts",
        data={
            "fonts": [
                (io.BytesIO(font_bytes), "Alpha.ttf"),
                (io.BytesIO(b"broken"), "Broken.otf"),
                (io.BytesIO(b"notes"), "notes.txt"),
            ]
        },
        content_type="multipart/form-data",
    )


def test_upload_renders_fonts_and_reports_failures(client, font_bytes) -> None:
    response = _upload(client, font_bytes)
    assert response.status_code == 200
    payload = response.get_json()

    assert [item["filename"] for item in payload["items"]] == ["Alpha.ttf", "Broken.otf"]
    alpha, broken = payload["items"]
    assert alpha["ok"] is True and alpha["height"] == 128
    assert alpha["image"].startswith("data:image/png;base64,")
    assert broken["ok"] is False and broken["error"]
    assert payload["progress"] == {"processed": 2, "total": 2, "percent": 100, "label": "Done!"}


def test_upload_without_fonts_is_rejected(client) -> None:
    response = client.post(
        "/fonts",
        data={"fonts": [(io.BytesIO(b"x"), "readme.md")]},
        content_type="multipart/form-data",
    )
    assert response.status_code == 400


def test_mapping_text_updates_rendered_fonts(client, font_bytes) -> None:
    _upload(client, font_bytes)
    response = client.post("/mapping", data={"mapping": "Alpha.ttf\tHello\nOther.ttf,Ignored"})
    payload = response.get_json()

    assert response.status_code == 200
    assert payload["source"] == "delimited"
    assert payload["entries"] == 2
    assert list(payload["updated"]) == ["Alpha.ttf"]


def test_mapping_document_errors_are_config_errors(client) -> None:
    response = client.post(
        "/mapping",
        data={"config": (io.BytesIO(b"{broken"), "mapping.json")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 400
    assert "Invalid JSON" in response.get_json()["error"]


def test_mapping_document_is_echoed_as_text(client) -> None:
    document = json.dumps({"Alpha.ttf": "Hi"}).encode("utf-8")
    response = client.post(
        "/mapping",
        data={"config": (io.BytesIO(document), "mapping.json")},
        content_type="multipart/form-data",
    )
    payload = response.get_json()
    assert payload["source"] == "document"
    assert json.loads(payload["mapping_text"]) == {"Alpha.ttf": "Hi"}


def test_empty_mapping_text_is_rejected(client) -> None:
    assert client.post("/mapping", data={"mapping": "   "}).status_code == 400


def test_ocr_appends_to_existing_mapping_text(client, monkeypatch) -> None:
    monkeypatch.setattr(
        session_module,
        "extract_from_image",
        lambda image_bytes, languages=None: OcrExtraction("b.ttf\tBeta\n", 1, False),
    )
    response = client.post(
        "/ocr",
        data={"image": (io.BytesIO(b"png"), "shot.png"), "mapping": "a.ttf\tAlpha"},
        content_type="multipart/form-data",
    )
    payload = response.get_json()
    assert payload == {"matched": 1, "degraded": False, "mapping_text": "a.ttf\tAlpha\nb.ttf\tBeta\n"}


def test_edit_and_export_roundtrip(client, font_bytes) -> None:
    _upload(client, font_bytes)

    edit = client.post("/edit", json={"filename": "Alpha.ttf", "text": "Edited"})
    assert edit.status_code == 200
    assert edit.get_json()["image"].startswith("data:image/png;base64,")

    missing = client.post("/edit", json={"filename": "Broken.otf", "text": "x"})
    assert missing.status_code == 404

    response = client.get("/export")
    assert response.status_code == 200
    assert "font_thumbnails.zip" in response.headers["Content-Disposition"]
    with zipfile.ZipFile(io.BytesIO(response.data)) as archive:
        assert archive.namelist() == ["Alpha.ttf.png"]


def test_export_before_upload_is_rejected(client) -> None:
    assert client.get("/export").status_code == 400
