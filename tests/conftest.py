"""Shared fixtures: an isolated log home and small real TrueType fonts."""

from __future__ import annotations

import io
import string

import pytest
from fontTools.fontBuilder import FontBuilder
from fontTools.pens.ttGlyphPen import TTGlyphPen

from font_thumbnailer.config import reset_settings
from font_thumbnailer.logger import finish_current_run

# glyph name -> (advance width, box) in font units; box is (x0, y0, x1, y1)
_GLYPHS = {
    ".notdef": (600, (50, 0, 550, 700)),
    "space": (300, None),
    "wide": (700, (50, 0, 650, 700)),
    "narrow": (300, (50, 0, 250, 500)),
    "tall": (400, (50, -200, 350, 900)),
}


def _draw_box(pen: TTGlyphPen, box) -> None:
    x0, y0, x1, y1 = box
    pen.moveTo((x0, y0))
    pen.lineTo((x0, y1))
    pen.lineTo((x1, y1))
    pen.lineTo((x1, y0))
    pen.closePath()


def build_box_font(family: str = "Boxy", capitals: str = "wide") -> bytes:
    """Uppercase letters draw ``capitals`` boxes, lowercase narrow ones, digits tall ones."""
    builder = FontBuilder(1000, isTTF=True)
    builder.setupGlyphOrder(list(_GLYPHS))

    cmap = {ord(" "): "space"}
    cmap.update({ord(ch): capitals for ch in string.ascii_uppercase})
    cmap.update({ord(ch): "narrow" for ch in string.ascii_lowercase})
    cmap.update({ord(ch): "tall" for ch in string.digits})
    builder.setupCharacterMap(cmap)

    glyphs = {}
    metrics = {}
    for name, (advance, box) in _GLYPHS.items():
        pen = TTGlyphPen(None)
        if box is not None:
            _draw_box(pen, box)
        glyphs[name] = pen.glyph()
        metrics[name] = (advance, box[0] if box else 0)
    builder.setupGlyf(glyphs)
    builder.setupHorizontalMetrics(metrics)
    builder.setupHorizontalHeader(ascent=900, descent=-200)
    builder.setupNameTable({"familyName": family, "styleName": "Regular"})
    builder.setupOS2(sTypoAscender=900, sTypoDescender=-200, usWinAscent=900, usWinDescent=200)
    builder.setupPost()

    buffer = io.BytesIO()
    builder.save(buffer)
    return buffer.getvalue()


@pytest.fixture(scope="session")
def font_bytes() -> bytes:
    return build_box_font()


@pytest.fixture(scope="session")
def narrow_caps_font_bytes() -> bytes:
    return build_box_font("Narrow Caps", capitals="narrow")


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    home = tmp_path / "home"
    monkeypatch.setenv("FONT_THUMBNAILER_HOME", str(home))
    monkeypatch.delenv("FONT_THUMBNAILER_CONFIG", raising=False)
    reset_settings()
    yield home
    finish_current_run()
    reset_settings()
