"""Flask app exposing the font thumbnail workflow."""

from __future__ import annotations

import asyncio
import io
from typing import Any, Dict, List, Optional

from flask import Flask, Response, jsonify, request, send_file

from font_thumbnailer import (
    EXPORT_FILENAME,
    ExportError,
    MappingFormatError,
    ThumbnailSession,
)
from font_thumbnailer.config import get_settings
from font_thumbnailer.models import BatchItem, BatchProgress
from font_thumbnailer.ocr import OcrError


def _item_payload(item: BatchItem) -> Dict[str, Any]:
    if item.ok:
        return {
            "filename": item.asset.filename,
            "ok": True,
            "width": item.raster.width,
            "height": item.raster.height,
            "image": item.raster.to_data_uri(),
        }
    return {"filename": item.asset.filename, "ok": False, "error": str(item.error)}


def _error(message: str, status: int) -> Response:
    response = jsonify({"error": message})
    response.status_code = status
    return response


def create_app(session: Optional[ThumbnailSession] = None) -> Flask:
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = get_settings().max_upload_bytes
    app.extensions["thumbnail_session"] = session or ThumbnailSession()

    def current_session() -> ThumbnailSession:
        return app.extensions["thumbnail_session"]

    @app.get("/health")
    def health() -> Response:
        return jsonify({"status": "ok"})

    @app.post("/fonts")
    def upload_fonts() -> Response:
        uploads = request.files.getlist("fonts")
        files = [(upload.filename or "", upload.read()) for upload in uploads]

        reports: List[BatchProgress] = []
        items = asyncio.run(current_session().load_fonts(files, reports.append))
        if not items:
            return _error("No .ttf or .otf files were uploaded.", 400)

        final = reports[-1]
        return jsonify(
            {
                "items": [_item_payload(item) for item in items],
                "progress": {
                    "processed": final.processed,
                    "total": final.total,
                    "percent": final.percent,
                    "label": final.label,
                },
            }
        )

    @app.post("/mapping")
    def apply_mapping() -> Response:
        session = current_session()
        config = request.files.get("config")
        try:
            if config is not None and config.filename:
                resolution, updated = asyncio.run(session.apply_mapping_document(config.read()))
            else:
                text = request.form.get("mapping", "")
                if not text.strip():
                    return _error("Please paste some mapping data first.", 400)
                resolution, updated = asyncio.run(session.apply_mapping_text(text))
        except MappingFormatError as exc:
            return _error(str(exc), 400)

        return jsonify(
            {
                "source": resolution.source,
                "entries": resolution.count,
                "table_size": len(session.mapping),
                "mapping_text": session.mapping_text,
                "updated": {name: raster.to_data_uri() for name, raster in updated.items()},
            }
        )

    @app.post("/ocr")
    def ocr_mapping() -> Response:
        session = current_session()
        image = request.files.get("image")
        if image is None or not image.filename:
            return _error("Please choose an image to read.", 400)
        if "mapping" in request.form:
            session.mapping_text = request.form["mapping"]

        try:
            extraction = session.add_ocr_image(image.read())
        except OcrError as exc:
            return _error(str(exc), 500)
        except RuntimeError as exc:
            return _error(str(exc), 503)

        return jsonify(
            {
                "matched": extraction.matched_count,
                "degraded": extraction.degraded,
                "mapping_text": session.mapping_text,
            }
        )

    @app.post("/edit")
    def edit_text() -> Response:
        payload = request.get_json(silent=True) or {}
        filename = payload.get("filename")
        if not filename:
            return _error("filename is required", 400)
        try:
            raster = asyncio.run(current_session().edit(filename, str(payload.get("text", ""))))
        except KeyError:
            return _error(f"No rendered font named {filename}", 404)
        return jsonify({"filename": filename, "width": raster.width, "image": raster.to_data_uri()})

    @app.get("/export")
    def export_zip() -> Response:
        session = current_session()
        if not session.renderer.current_texts():
            return _error("Nothing to export yet; upload fonts first.", 400)
        try:
            archive = asyncio.run(session.export())
        except ExportError as exc:
            return _error(str(exc), 500)

        output = io.BytesIO(archive)
        output.seek(0)
        return send_file(
            output,
            mimetype="application/zip",
            download_name=EXPORT_FILENAME,
            as_attachment=True,
        )

    return app


app = create_app()


if __name__ == "__main__":
    app.run(debug=True, port=5001)
