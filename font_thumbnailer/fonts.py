"""Register uploaded font binaries as renderable families."""

from __future__ import annotations

import asyncio
import io
from typing import Dict, Optional

from fontTools.ttLib import TTFont
from PIL import ImageFont

from .config import get_settings
from .logger import get_logger


class FontRegistrationError(RuntimeError):
    """Raised when a font binary cannot be turned into a renderable family."""


class FontNotRegisteredError(KeyError):
    """Raised when rendering is requested for a family that was never registered."""


def _read_family_name(font: TTFont) -> Optional[str]:
    name_table = font.get("name")
    if name_table is None:
        return None
    return name_table.getBestFamilyName()


def inspect_font_bytes(font_bytes: bytes) -> Optional[str]:
    """Validate ``font_bytes`` with fontTools and return the embedded family name."""
    if not font_bytes:
        raise FontRegistrationError("Font file is empty")
    try:
        font = TTFont(io.BytesIO(font_bytes), lazy=True)
        try:
            if font.get("cmap") is None:
                raise FontRegistrationError("Font lacks cmap table")
            return _read_family_name(font)
        finally:
            font.close()
    except FontRegistrationError:
        raise
    except Exception as exc:
        raise FontRegistrationError(f"Unreadable font data: {exc}") from exc


class FontHandle:
    """A registered family: the raw binary plus Pillow fonts opened from it."""

    def __init__(self, family_id: str, font_bytes: bytes, family_name: Optional[str] = None) -> None:
        self.family_id = family_id
        self.family_name = family_name
        self._font_bytes = font_bytes
        self._fonts: Dict[int, ImageFont.FreeTypeFont] = {}

    def font(self, size: int) -> ImageFont.FreeTypeFont:
        cached = self._fonts.get(size)
        if cached is None:
            try:
                cached = ImageFont.truetype(io.BytesIO(self._font_bytes), size)
            except OSError as exc:
                raise FontRegistrationError(
                    f"FreeType could not open family {self.family_id!r}: {exc}"
                ) from exc
            self._fonts[size] = cached
        return cached

    def __repr__(self) -> str:
        return f"FontHandle({self.family_id!r}, family_name={self.family_name!r})"


class FontRegistry:
    """Key -> handle table. Registering a key again replaces its handle.

    The key defaults to the family id. Callers that may hold several binaries
    for one family id (``a.ttf`` and ``a.otf``) register each under its own key.
    """

    def __init__(self) -> None:
        self._handles: Dict[str, FontHandle] = {}

    def register(self, family_id: str, font_bytes: bytes, key: Optional[str] = None) -> FontHandle:
        logger = get_logger()
        key = key or family_id
        family_name = inspect_font_bytes(font_bytes)
        handle = FontHandle(family_id, font_bytes, family_name)
        # Opening at the reference size surfaces FreeType errors at registration time.
        handle.font(get_settings().reference_size)

        if key in self._handles:
            logger.logger.warning("Font %r registered again; replacing previous font", key)
        self._handles[key] = handle
        logger.logger.debug("Registered %r as family %r (embedded name %r)", key, family_id, family_name)
        return handle

    async def register_async(self, family_id: str, font_bytes: bytes, key: Optional[str] = None) -> FontHandle:
        await asyncio.sleep(0)
        return self.register(family_id, font_bytes, key)

    def get(self, key: str) -> FontHandle:
        try:
            return self._handles[key]
        except KeyError:
            raise FontNotRegisteredError(key) from None

    def __contains__(self, key: object) -> bool:
        return key in self._handles

    def clear(self) -> None:
        self._handles.clear()
