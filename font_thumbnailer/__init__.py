"""Font thumbnail rendering, mapping resolution and export."""

from .batch import BatchRenderer, BatchSupersededError
from .export import EXPORT_FILENAME, ExportError, ExportPackager
from .fonts import FontNotRegisteredError, FontRegistrationError, FontRegistry
from .mapping import MappingFormatError, MappingTable, load_mapping_document, resolve
from .models import BatchProgress, FontAsset, Raster, filter_font_files
from .ocr import OcrLine, append_mapping_text, extract
from .rasterizer import TextRasterizer
from .session import ThumbnailSession

__all__ = [
    "BatchProgress",
    "BatchRenderer",
    "BatchSupersededError",
    "EXPORT_FILENAME",
    "ExportError",
    "ExportPackager",
    "FontAsset",
    "FontNotRegisteredError",
    "FontRegistrationError",
    "FontRegistry",
    "MappingFormatError",
    "MappingTable",
    "OcrLine",
    "Raster",
    "TextRasterizer",
    "ThumbnailSession",
    "append_mapping_text",
    "extract",
    "filter_font_files",
    "load_mapping_document",
    "resolve",
]
