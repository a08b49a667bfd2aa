"""Runtime settings for thumbnail rendering, OCR and the web adapter."""

from __future__ import annotations

import dataclasses
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

CONFIG_ENV_VAR = "FONT_THUMBNAILER_CONFIG"
HOME_ENV_VAR = "FONT_THUMBNAILER_HOME"

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Settings:
    reference_size: int = 150
    line_height_factor: float = 1.5
    canvas_padding: int = 100
    text_offset_x: int = 50
    min_canvas_width: int = 10
    target_height: int = 128
    fill_color: str = "white"
    ocr_languages: str = "eng+kor+jpn"
    ocr_min_confidence: float = -1.0
    max_upload_bytes: int = 25 * 1024 * 1024
    home_dir: Path = Path.home() / ".font_thumbnailer"

    @property
    def logs_dir(self) -> Path:
        return self.home_dir / "logs"

    @property
    def runs_dir(self) -> Path:
        return self.home_dir / "runs"


def _coerce(overrides: Dict[str, Any]) -> Dict[str, Any]:
    known = {field.name for field in dataclasses.fields(Settings)}
    cleaned: Dict[str, Any] = {}
    for key, value in overrides.items():
        if key not in known:
            logger.warning("Ignoring unknown setting %r", key)
            continue
        cleaned[key] = Path(value).expanduser() if key == "home_dir" else value
    return cleaned


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """Build settings from defaults, an optional JSON file and the environment.

    The JSON file is taken from ``config_path`` or ``$FONT_THUMBNAILER_CONFIG``.
    A missing or unreadable file leaves the defaults in place.
    ``$FONT_THUMBNAILER_HOME`` always wins for the log/run directory root.
    """
    overrides: Dict[str, Any] = {}

    path = config_path or (Path(os.environ[CONFIG_ENV_VAR]) if os.environ.get(CONFIG_ENV_VAR) else None)
    if path is not None:
        try:
            with open(path, "r", encoding="utf-8") as handle:
                loaded = json.load(handle)
            if isinstance(loaded, dict):
                overrides.update(loaded)
            else:
                logger.error("Config file %s must contain a JSON object; using defaults", path)
        except FileNotFoundError:
            logger.warning("Config file %s not found; using defaults", path)
        except json.JSONDecodeError as exc:
            logger.error("Could not decode JSON from %s (%s); using defaults", path, exc)

    home = os.environ.get(HOME_ENV_VAR)
    if home:
        overrides["home_dir"] = home

    return Settings(**_coerce(overrides))


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next ``get_settings`` reloads them."""
    global _settings
    _settings = None
