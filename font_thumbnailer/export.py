"""Re-render the current texts and pack the thumbnails into a ZIP archive."""

from __future__ import annotations

import asyncio
import io
import zipfile
from typing import List, Mapping, Sequence, Tuple

from .batch import BatchRenderer
from .logger import get_logger
from .models import FontAsset
from .rasterizer import TextRasterizer

EXPORT_FILENAME = "font_thumbnails.zip"


class ExportError(RuntimeError):
    """Raised when any thumbnail of an export cannot be rendered."""

    def __init__(self, filename: str, cause: Exception) -> None:
        super().__init__(f"Export failed while rendering {filename}: {type(cause).__name__}: {cause}")
        self.filename = filename
        self.cause = cause


def entry_name(asset: FontAsset) -> str:
    return f"{asset.filename}.png"


class ExportPackager:
    def __init__(self, rasterizer: TextRasterizer) -> None:
        self.rasterizer = rasterizer

    async def _render_entry(self, asset: FontAsset, text: str) -> Tuple[str, bytes]:
        try:
            raster = await self.rasterizer.render_async(asset.filename, text)
        except Exception as exc:
            raise ExportError(asset.filename, exc) from exc
        return entry_name(asset), raster.to_png()

    async def export(self, assets: Sequence[FontAsset], current_text_by_asset: Mapping[str, str]) -> bytes:
        """Render every asset with its current text and return the ZIP bytes.

        Assets without a current text (never rendered) are left out. Any render
        failure aborts the whole export; no partial archive is produced.
        """
        logger = get_logger()
        jobs = [
            self._render_entry(asset, current_text_by_asset[asset.filename])
            for asset in assets
            if asset.filename in current_text_by_asset
        ]
        results = await asyncio.gather(*jobs, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                logger.log_error(result, "export")
                raise result
        entries: List[Tuple[str, bytes]] = list(results)

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for name, payload in entries:
                archive.writestr(name, payload)
        data = buffer.getvalue()
        logger.log_export(data, len(entries))
        return data

    @classmethod
    async def export_batch(cls, renderer: BatchRenderer) -> bytes:
        """Export the renderer's current batch with that batch's own fonts."""
        batch = renderer.batch
        return await cls(batch.rasterizer).export(batch.assets, batch.current_texts())
