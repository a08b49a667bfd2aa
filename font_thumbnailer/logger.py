"""Run-scoped logging for thumbnail batches, mapping updates and exports."""

import json
import logging
from datetime import datetime
from typing import Dict, List, Optional

from .config import get_settings


class ThumbnailRunLogger:
    """Logger for tracking one rendering session with its steps and errors."""

    def __init__(self, run_id: Optional[str] = None):
        settings = get_settings()
        self.run_id = run_id or datetime.now().strftime("%Y%m%d_%H%M%S_%f")[:-3]
        self.run_dir = settings.runs_dir / self.run_id
        self.run_dir.mkdir(parents=True, exist_ok=True)
        settings.logs_dir.mkdir(parents=True, exist_ok=True)

        log_file = settings.logs_dir / f"thumbnails_{self.run_id}.log"
        self.logger = logging.getLogger(f"font_thumbnailer_{self.run_id}")
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False

        self.logger.handlers.clear()

        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        formatter = logging.Formatter(
            '%(asctime)s | %(levelname)8s | %(funcName)20s:%(lineno)4d | %(message)s'
        )
        file_handler.setFormatter(formatter)
        self.logger.addHandler(file_handler)

        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
        self.logger.addHandler(console_handler)

        self.run_metadata = {
            "run_id": self.run_id,
            "start_time": datetime.now().isoformat(),
            "assets": [],
            "mapping_updates": [],
            "steps": [],
            "errors": [],
            "results": {}
        }

        self.logger.info(f"=== Starting thumbnail run: {self.run_id} ===")

    def log_assets(self, filenames: List[str]):
        """Log the font files accepted into a batch."""
        self.logger.info(f"Batch accepted {len(filenames)} font files")
        for name in filenames:
            self.logger.debug(f"  asset: {name}")
        self.run_metadata["assets"] = list(filenames)

    def log_mapping_update(self, source: str, entries: Dict[str, str]):
        """Log entries merged into the mapping table."""
        self.logger.info(f"Mapping update from {source}: {len(entries)} entries")
        for font, text in entries.items():
            self.logger.debug(f"  '{font}' → '{text}'")
        self.run_metadata["mapping_updates"].append({
            "source": source,
            "count": len(entries),
            "timestamp": datetime.now().isoformat()
        })

    def log_ocr_extraction(self, matched_count: int, degraded: bool):
        if degraded:
            self.logger.warning("OCR found no .ttf/.otf filenames; returning raw text for manual editing")
        else:
            self.logger.info(f"OCR extraction matched {matched_count} filename lines")
        self.run_metadata["steps"].append({
            "type": "ocr_extraction",
            "matched": matched_count,
            "degraded": degraded,
            "timestamp": datetime.now().isoformat()
        })

    def log_progress(self, processed: int, total: int, label: str):
        self.logger.debug(f"Progress {processed}/{total}: {label}")

    def log_render(self, filename: str, text: str, width: int, height: int):
        """Log a successful render."""
        self.logger.info(f"✅ Rendered {filename} ({width}x{height}) with text {repr(text)}")
        self.run_metadata["steps"].append({
            "type": "render",
            "filename": filename,
            "size": [width, height],
            "timestamp": datetime.now().isoformat()
        })

    def log_error(self, error: Exception, context: str):
        """Log errors with context."""
        error_msg = f"Error in {context}: {type(error).__name__}: {error}"
        self.logger.error(error_msg)
        self.run_metadata["errors"].append({
            "context": context,
            "error_type": type(error).__name__,
            "error_message": str(error),
            "timestamp": datetime.now().isoformat()
        })

    def log_batch_complete(self, succeeded: int, failed: int):
        self.logger.info(f"Batch complete: {succeeded} rendered, {failed} failed")
        self.run_metadata["results"]["batch"] = {"succeeded": succeeded, "failed": failed}

    def log_export(self, archive: bytes, entries: int):
        """Save and log the exported archive."""
        output_path = self.run_dir / "font_thumbnails.zip"
        output_path.write_bytes(archive)

        self.logger.info(f"Export archive saved: {output_path} ({entries} entries, {len(archive)} bytes)")
        self.run_metadata["results"]["export"] = {
            "entries": entries,
            "size_bytes": len(archive),
            "path": str(output_path)
        }

    def finalize_run(self):
        """Finalize the run, save metadata and release the log handlers."""
        self.run_metadata["end_time"] = datetime.now().isoformat()

        start = datetime.fromisoformat(self.run_metadata["start_time"])
        end = datetime.fromisoformat(self.run_metadata["end_time"])
        duration = (end - start).total_seconds()
        self.run_metadata["duration_seconds"] = duration

        metadata_file = self.run_dir / "run_metadata.json"
        with open(metadata_file, 'w', encoding='utf-8') as f:
            json.dump(self.run_metadata, f, indent=2, ensure_ascii=False)

        self.logger.info(f"=== Run complete: {self.run_id} (Duration: {duration:.2f}s) ===")
        self.logger.info(f"Metadata saved: {metadata_file}")

        errors_count = len(self.run_metadata["errors"])
        if errors_count > 0:
            self.logger.warning(f"Run completed with {errors_count} errors")

        for handler in list(self.logger.handlers):
            handler.close()
            self.logger.removeHandler(handler)


_current_logger: Optional[ThumbnailRunLogger] = None

def get_logger() -> ThumbnailRunLogger:
    """Get the current logger instance."""
    global _current_logger
    if _current_logger is None:
        _current_logger = ThumbnailRunLogger()
    return _current_logger

def start_new_run(run_id: Optional[str] = None) -> ThumbnailRunLogger:
    """Start a new logging run, finalizing the previous one."""
    global _current_logger
    if _current_logger is not None:
        _current_logger.finalize_run()
    _current_logger = ThumbnailRunLogger(run_id)
    return _current_logger

def finish_current_run():
    """Finalize the current run."""
    global _current_logger
    if _current_logger:
        _current_logger.finalize_run()
        _current_logger = None
