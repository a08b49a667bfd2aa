"""One user's working state: the mapping table, its text box and the current batch."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .batch import BatchRenderer, ProgressCallback
from .export import ExportPackager
from .logger import get_logger, start_new_run
from .mapping import MappingResolution, MappingTable, load_mapping_document, resolve
from .models import BatchItem, FontAsset, Raster, filter_font_files
from .ocr import OcrExtraction, append_mapping_text, extract_from_image


class ThumbnailSession:
    def __init__(self, renderer: Optional[BatchRenderer] = None) -> None:
        self.mapping = MappingTable()
        self.mapping_text = ""
        self.renderer = renderer or BatchRenderer()

    @property
    def assets(self) -> List[FontAsset]:
        return self.renderer.batch.assets

    async def load_fonts(
        self,
        files: Iterable[Tuple[str, bytes]],
        progress: Optional[ProgressCallback] = None,
    ) -> List[BatchItem]:
        """Replace the batch with the font files among ``files`` and render them."""
        assets = filter_font_files(files)
        start_new_run()
        return await self.renderer.run_batch(assets, self.mapping, progress)

    async def apply_mapping_text(self, text: Optional[str] = None) -> Tuple[MappingResolution, Dict[str, Raster]]:
        if text is not None:
            self.mapping_text = text
        resolution = resolve(self.mapping_text.strip(), self.mapping)
        updated = await self.renderer.apply_mapping(self.mapping)
        return resolution, updated

    async def apply_mapping_document(self, data: bytes) -> Tuple[MappingResolution, Dict[str, Raster]]:
        resolution = load_mapping_document(data, self.mapping)
        self.mapping_text = resolution.document or ""
        updated = await self.renderer.apply_mapping(self.mapping)
        return resolution, updated

    def add_ocr_image(self, image_bytes: bytes, languages: Optional[Sequence[str]] = None) -> OcrExtraction:
        """OCR ``image_bytes`` and append the result to the mapping text box."""
        extraction = extract_from_image(image_bytes, languages)
        self.mapping_text = append_mapping_text(self.mapping_text, extraction.text)
        return extraction

    async def edit(self, filename: str, text: str) -> Raster:
        return await self.renderer.on_edit(filename, text)

    async def export(self) -> bytes:
        get_logger().logger.info("Exporting %d thumbnails", len(self.renderer.current_texts()))
        return await ExportPackager.export_batch(self.renderer)
