"""Data model shared by the mapping, rendering and export stages."""

from __future__ import annotations

import base64
import dataclasses
import io
import os
from typing import Iterable, List, Optional, Tuple

from PIL import Image

FONT_EXTENSIONS: Tuple[str, ...] = (".ttf", ".otf")


def is_font_filename(filename: str) -> bool:
    return filename.lower().endswith(FONT_EXTENSIONS)


def family_id_for(filename: str) -> str:
    """Return ``filename`` without its final extension component."""
    stem, _ = os.path.splitext(filename)
    return stem or filename


@dataclasses.dataclass(frozen=True)
class FontAsset:
    filename: str
    binary: bytes = dataclasses.field(repr=False)
    family_id: str

    @classmethod
    def from_upload(cls, filename: str, binary: bytes) -> "FontAsset":
        return cls(filename=filename, binary=binary, family_id=family_id_for(filename))


def filter_font_files(files: Iterable[Tuple[str, bytes]]) -> List[FontAsset]:
    """Keep ``.ttf``/``.otf`` uploads (any case) in order, dropping everything else."""
    return [
        FontAsset.from_upload(filename, binary)
        for filename, binary in files
        if filename and is_font_filename(filename)
    ]


@dataclasses.dataclass(frozen=True)
class Raster:
    """Immutable RGBA thumbnail."""

    image: Image.Image = dataclasses.field(repr=False)

    def __post_init__(self) -> None:
        if self.image.mode != "RGBA":
            object.__setattr__(self, "image", self.image.convert("RGBA"))

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def pixels(self) -> bytes:
        return self.image.tobytes()

    def to_png(self) -> bytes:
        buffer = io.BytesIO()
        self.image.save(buffer, format="PNG")
        return buffer.getvalue()

    def to_data_uri(self) -> str:
        encoded = base64.b64encode(self.to_png()).decode("ascii")
        return f"data:image/png;base64,{encoded}"


@dataclasses.dataclass
class RenderState:
    current_text: str
    last_image: Raster


@dataclasses.dataclass(frozen=True)
class BatchProgress:
    processed: int
    total: int
    label: str = ""

    def __post_init__(self) -> None:
        if not 0 <= self.processed <= self.total:
            raise ValueError(f"processed={self.processed} outside 0..{self.total}")

    @property
    def percent(self) -> int:
        if self.total == 0:
            return 0
        return round(self.processed * 100 / self.total)

    @property
    def done(self) -> bool:
        return self.processed == self.total


@dataclasses.dataclass
class BatchItem:
    """Outcome of one asset in a batch: a raster on success, an error otherwise."""

    asset: FontAsset
    raster: Optional[Raster] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.raster is not None and self.error is None
