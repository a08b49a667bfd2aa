"""Resolve mapping input into the filename -> display text table."""

from __future__ import annotations

import dataclasses
import json
import re
from typing import Any, Dict, Iterator, MutableMapping, Optional, Union

from .logger import get_logger
from .models import FontAsset

MappingInput = Union[str, list, dict]

_LINE_SPLIT = re.compile(r"\r\n|\r|\n")


class MappingFormatError(ValueError):
    """Raised when a structured mapping document cannot be used."""


class MappingTable(MutableMapping[str, str]):
    """Session-wide filename -> text table with last-write-wins merges."""

    def __init__(self, entries: Optional[Dict[str, str]] = None) -> None:
        self._entries: Dict[str, str] = {}
        if entries:
            self.merge(entries)

    def __getitem__(self, filename: str) -> str:
        return self._entries[filename]

    def __setitem__(self, filename: str, text: str) -> None:
        self._entries[filename] = text

    def __delitem__(self, filename: str) -> None:
        del self._entries[filename]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"MappingTable({self._entries!r})"

    def merge(self, entries: Dict[str, str]) -> int:
        for filename, text in entries.items():
            self._entries[filename] = text
        return len(entries)

    def lookup(self, asset: FontAsset) -> str:
        """Exact filename match, else the asset's family id. Never fuzzy."""
        text = self._entries.get(asset.filename)
        return text if text else asset.family_id


@dataclasses.dataclass
class MappingResolution:
    entries: Dict[str, str]
    source: str
    document: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.entries)


def parse_structured(data: Any) -> Optional[Dict[str, str]]:
    """Read a list of ``{font, text}`` records or a key/value object.

    Returns ``None`` when ``data`` has neither shape.
    """
    entries: Dict[str, str] = {}
    if isinstance(data, list):
        for item in data:
            if not isinstance(item, dict):
                continue
            font = item.get("font")
            text = item.get("text")
            if font and text:
                entries[str(font)] = str(text)
        return entries
    if isinstance(data, dict):
        for key, value in data.items():
            if value is None:
                continue
            entries[str(key)] = value if isinstance(value, str) else str(value)
        return entries
    return None


def parse_delimited(text: str) -> Dict[str, str]:
    """Parse TAB- or comma-separated two column text, one entry per line."""
    entries: Dict[str, str] = {}
    for line in _LINE_SPLIT.split(text):
        if not line.strip():
            continue
        parts = line.split("\t")
        if len(parts) < 2:
            parts = line.split(",")
        if len(parts) < 2:
            continue
        font = parts[0].strip()
        display = " ".join(parts[1:]).strip()
        if font and display:
            entries[font] = display
    return entries


def _try_json(raw: str) -> Optional[Any]:
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return None


def resolve(raw: MappingInput, table: MappingTable) -> MappingResolution:
    """Merge ``raw`` into ``table``, trying structured data before delimited text."""
    logger = get_logger()

    data = raw if isinstance(raw, (list, dict)) else _try_json(raw.strip())
    entries = parse_structured(data) if data is not None else None

    if entries is not None:
        source = "structured"
    else:
        logger.logger.debug("Mapping input is not structured data; parsing as delimited text")
        entries = parse_delimited(raw)
        source = "delimited"

    table.merge(entries)
    logger.log_mapping_update(source, entries)
    return MappingResolution(entries=entries, source=source)


def load_mapping_document(data: Union[bytes, str], table: MappingTable) -> MappingResolution:
    """Strictly load an uploaded JSON mapping document into ``table``."""
    logger = get_logger()

    try:
        text = data.decode("utf-8-sig") if isinstance(data, bytes) else data
        document = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        error = MappingFormatError(f"Invalid JSON mapping file: {exc}")
        logger.log_error(error, "load_mapping_document")
        raise error from exc

    entries = parse_structured(document)
    if entries is None:
        error = MappingFormatError(
            "Mapping file must contain a list of {font, text} records or an object"
        )
        logger.log_error(error, "load_mapping_document")
        raise error

    table.merge(entries)
    logger.log_mapping_update("document", entries)
    return MappingResolution(
        entries=entries,
        source="document",
        document=json.dumps(document, indent=2, ensure_ascii=False),
    )
