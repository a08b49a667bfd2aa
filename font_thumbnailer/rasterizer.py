"""Render sample text into tightly cropped, height-normalized thumbnails."""

from __future__ import annotations

import asyncio
import math
import re
from typing import Optional, Tuple

from PIL import Image, ImageDraw

from .config import Settings, get_settings
from .fonts import FontRegistry
from .models import Raster

BBox = Tuple[int, int, int, int]

_WHITESPACE = re.compile(r"[\t\n\r\f\v]")


def tight_bbox(image: Image.Image) -> Optional[BBox]:
    """Return the smallest box holding every pixel with non-zero alpha, or ``None``."""
    return image.getchannel("A").getbbox()


def crop_to_ink(image: Image.Image) -> Image.Image:
    """Crop ``image`` to its inked pixels; a blank image yields a 0x0 image."""
    bbox = tight_bbox(image)
    if bbox is None:
        return Image.new("RGBA", (0, 0))
    return image.crop(bbox)


def normalize_height(cropped: Image.Image, target_height: int) -> Image.Image:
    """Scale ``cropped`` to ``target_height`` keeping its aspect ratio.

    Empty crops become a 1 px wide transparent strip so the result is always drawable.
    """
    if cropped.width == 0 or cropped.height == 0:
        return Image.new("RGBA", (1, target_height), (0, 0, 0, 0))
    target_width = max(1, round(cropped.width * target_height / cropped.height))
    return cropped.resize((target_width, target_height), Image.Resampling.LANCZOS)


class TextRasterizer:
    """Turns (registered font key, text) into a 128 px high RGBA raster.

    Fonts report advance widths and line heights that rarely match the ink
    they actually put down, so text is drawn on an oversized canvas first and
    the thumbnail is cut from the real pixel extent.
    """

    def __init__(self, registry: FontRegistry, settings: Optional[Settings] = None) -> None:
        self.registry = registry
        self.settings = settings or get_settings()

    def canvas_size(self, advance_width: float) -> Tuple[int, int]:
        s = self.settings
        width = max(math.ceil(advance_width) + s.canvas_padding, s.min_canvas_width)
        height = math.ceil(s.reference_size * s.line_height_factor) + s.canvas_padding
        return width, height

    def draw(self, key: str, text: str) -> Image.Image:
        """Draw ``text`` on the working canvas, uncropped."""
        s = self.settings
        font = self.registry.get(key).font(s.reference_size)
        # Single line only, like a canvas fillText.
        text = _WHITESPACE.sub(" ", text)

        advance = font.getlength(text or " ")
        width, height = self.canvas_size(advance)
        canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        if text:
            draw = ImageDraw.Draw(canvas)
            draw.text((s.text_offset_x, height / 2), text, font=font, fill=s.fill_color, anchor="lm")
        return canvas

    def render(self, key: str, text: str) -> Raster:
        canvas = self.draw(key, text)
        cropped = crop_to_ink(canvas)
        return Raster(normalize_height(cropped, self.settings.target_height))

    async def render_async(self, key: str, text: str) -> Raster:
        """Same as :meth:`render`, yielding to the event loop between stages."""
        canvas = self.draw(key, text)
        await asyncio.sleep(0)
        cropped = crop_to_ink(canvas)
        await asyncio.sleep(0)
        return Raster(normalize_height(cropped, self.settings.target_height))
