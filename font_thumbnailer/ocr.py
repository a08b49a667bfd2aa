"""OCR helpers turning recognised lines into mapping text."""

from __future__ import annotations

import dataclasses
import io
import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .config import get_settings
from .logger import get_logger

try:  # Optional OCR dependencies
    import pytesseract
    from pytesseract import Output as _TESS_OUTPUT
except ImportError:  # pragma: no cover - optional dependency not installed
    pytesseract = None
    _TESS_OUTPUT = None

try:  # Pillow is required for pytesseract image handling
    from PIL import Image
except ImportError:  # pragma: no cover - optional dependency not installed
    Image = None


OCR_AVAILABLE: bool = pytesseract is not None and Image is not None

_EXTENSION_PATTERN = re.compile(r"\.(?:ttf|otf)", re.IGNORECASE)
# Leading OCR junk between the filename and the sample text: hyphens, underscores, dashes.
_NOISE_PATTERN = re.compile(r"^[-_—–\s]+")


class OcrError(RuntimeError):
    """Raised when the OCR engine fails to read an image."""


@dataclasses.dataclass(frozen=True)
class OcrLine:
    text: str


@dataclasses.dataclass
class OcrResult:
    text: str
    lines: List[OcrLine]


@dataclasses.dataclass
class OcrExtraction:
    text: str
    matched_count: int
    degraded: bool


def strip_ocr_noise(text: str) -> str:
    return _NOISE_PATTERN.sub("", text)


def split_filename_line(line: str) -> Optional[Tuple[str, str]]:
    """Split ``line`` after its first ``.ttf``/``.otf`` marker.

    Returns ``(filename, remainder)`` or ``None`` when the line carries no marker.
    The remainder may be empty.
    """
    match = _EXTENSION_PATTERN.search(line)
    if match is None:
        return None
    filename = line[: match.end()].strip()
    remainder = strip_ocr_noise(line[match.end():].strip())
    return filename, remainder


def extract(lines: Iterable[OcrLine], full_text: Optional[str] = None) -> OcrExtraction:
    """Build ``filename<TAB>text`` records from OCR lines.

    When no line contains a font extension the raw OCR text is handed back
    with ``degraded`` set, for the user to fix by hand.
    """
    lines = list(lines)
    records: List[str] = []
    any_marker = False

    for line in lines:
        line_text = line.text.strip()
        if not line_text:
            continue
        split = split_filename_line(line_text)
        if split is None:
            continue
        any_marker = True
        filename, display = split
        if filename and display:
            records.append(f"{filename}\t{display}\n")

    if not any_marker:
        raw = full_text if full_text is not None else "\n".join(line.text for line in lines)
        return OcrExtraction(text=raw, matched_count=0, degraded=True)

    return OcrExtraction(text="".join(records), matched_count=len(records), degraded=False)


def append_mapping_text(existing: str, addition: str) -> str:
    """Append ``addition`` below any existing mapping text instead of replacing it."""
    current = existing.strip()
    if current:
        return f"{current}\n{addition}"
    return addition


def _ensure_ocr_dependencies() -> None:
    if not OCR_AVAILABLE:
        raise RuntimeError("pytesseract and Pillow are required for OCR-based mapping")


def _group_lines(data: Dict[str, list], min_confidence: float) -> List[OcrLine]:
    grouped: Dict[Tuple[int, int, int], List[str]] = {}
    n_items = len(data.get("text", []))
    for idx in range(n_items):
        raw = str(data["text"][idx]).strip()
        if not raw:
            continue
        try:
            conf = float(data["conf"][idx])
        except (KeyError, ValueError):
            conf = -1
        if conf < min_confidence:
            continue
        key = (int(data["block_num"][idx]), int(data["par_num"][idx]), int(data["line_num"][idx]))
        grouped.setdefault(key, []).append(raw)
    return [OcrLine(" ".join(words)) for _, words in sorted(grouped.items())]


def recognize(image_bytes: bytes, languages: Optional[Sequence[str]] = None) -> OcrResult:
    """Run Tesseract over ``image_bytes`` and return its text and lines."""
    _ensure_ocr_dependencies()

    settings = get_settings()
    lang = "+".join(languages) if languages else settings.ocr_languages
    logger = get_logger()

    try:
        image = Image.open(io.BytesIO(image_bytes)).convert("RGB")
        data = pytesseract.image_to_data(image, lang=lang, output_type=_TESS_OUTPUT.DICT)  # type: ignore[arg-type]
    except Exception as exc:
        logger.log_error(exc, "ocr.recognize")
        raise OcrError(f"OCR failed: {exc}") from exc

    lines = _group_lines(data, settings.ocr_min_confidence)
    logger.logger.info("OCR recognised %d lines (lang=%s)", len(lines), lang)
    return OcrResult(text="\n".join(line.text for line in lines), lines=lines)


def extract_from_image(image_bytes: bytes, languages: Optional[Sequence[str]] = None) -> OcrExtraction:
    result = recognize(image_bytes, languages)
    extraction = extract(result.lines, full_text=result.text)
    get_logger().log_ocr_extraction(extraction.matched_count, extraction.degraded)
    return extraction
