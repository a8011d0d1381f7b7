from __future__ import annotations

import re

# watch?v=, youtu.be/, embed/, v/, e/ and /user/.../ forms
_VIDEO_ID_RE = re.compile(
    r"(?:youtube\.com/(?:[^/]+/.+/|(?:v|e(?:mbed)?)/|.*[?&]v=)|youtu\.be/)([^\"&?/\s]{11})"
)

_THUMBNAIL_FILES = {
    "default": "default",
    "medium": "mqdefault",
    "high": "hqdefault",
    "standard": "sddefault",
    "maxres": "maxresdefault",
}


def extract_video_id(url: str | None) -> str:
    """Return the 11-character YouTube id in ``url`` or ``''``."""
    if not url:
        return ""
    match = _VIDEO_ID_RE.search(url)
    return match.group(1) if match else ""


def get_thumbnail_url(video_id: str, quality: str = "medium") -> str:
    name = _THUMBNAIL_FILES.get(quality, "default")
    return f"https://img.youtube.com/vi/{video_id}/{name}.jpg"


def embed_url(video_id: str) -> str:
    return f"https://www.youtube.com/embed/{video_id}"
