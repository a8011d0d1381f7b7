from __future__ import annotations

import math

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")

# First match wins
_ICONS = (
    (("image",), "🖼️"),
    (("video",), "🎥"),
    (("audio",), "🎵"),
    (("pdf",), "📄"),
    (("document", "word"), "📝"),
    (("spreadsheet", "excel"), "📊"),
    (("presentation", "powerpoint"), "📋"),
    (("zip", "rar"), "📦"),
)
_DEFAULT_ICON = "📁"


def format_file_size(size: int | float) -> str:
    """Human readable size in base 1024, e.g. ``1536 -> '1.5 KB'``."""
    if size < 0:
        raise ValueError("size must be non-negative")
    if size == 0:
        return "0 Bytes"
    k = 1024
    i = 0
    while i < len(_SIZE_UNITS) - 1 and size >= math.pow(k, i + 1):
        i += 1
    value = ("%.2f" % (size / math.pow(k, i))).rstrip("0").rstrip(".")
    return f"{value} {_SIZE_UNITS[i]}"


def get_file_icon(mime_type: str | None) -> str:
    kind = (mime_type or "").lower()
    for needles, icon in _ICONS:
        if any(n in kind for n in needles):
            return icon
    return _DEFAULT_ICON


def is_image(mime_type: str | None) -> bool:
    return (mime_type or "").lower().startswith("image/")
