import pytest

from pathshala.common.files import format_file_size, get_file_icon, is_image
from pathshala.common.youtube import embed_url, extract_video_id, get_thumbnail_url


@pytest.mark.parametrize(
    "url",
    [
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "https://youtube.com/watch?feature=share&v=dQw4w9WgXcQ",
        "https://youtu.be/dQw4w9WgXcQ",
        "https://youtu.be/dQw4w9WgXcQ?t=42",
        "https://www.youtube.com/embed/dQw4w9WgXcQ",
        "https://www.youtube.com/v/dQw4w9WgXcQ",
    ],
)
def test_extract_video_id_known_forms(url):
    assert extract_video_id(url) == "dQw4w9WgXcQ"


@pytest.mark.parametrize("url", ["", None, "https://vimeo.com/12345", "not a url", "https://youtu.be/short"])
def test_extract_video_id_rejects_other_urls(url):
    assert extract_video_id(url) == ""


def test_thumbnail_and_embed_urls():
    assert get_thumbnail_url("dQw4w9WgXcQ") == "https://img.youtube.com/vi/dQw4w9WgXcQ/mqdefault.jpg"
    assert get_thumbnail_url("dQw4w9WgXcQ", "maxres").endswith("/maxresdefault.jpg")
    assert get_thumbnail_url("dQw4w9WgXcQ", "unknown").endswith("/default.jpg")
    assert embed_url("dQw4w9WgXcQ") == "https://www.youtube.com/embed/dQw4w9WgXcQ"


@pytest.mark.parametrize(
    "size,expected",
    [
        (0, "0 Bytes"),
        (512, "512 Bytes"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (1048576, "1 MB"),
        (5 * 1024 ** 3, "5 GB"),
    ],
)
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


def test_format_file_size_rejects_negative():
    with pytest.raises(ValueError):
        format_file_size(-1)


def test_file_icons():
    assert get_file_icon("image/png") == "🖼️"
    assert get_file_icon("application/pdf") == "📄"
    assert get_file_icon("application/vnd.ms-excel") == "📊"
    assert get_file_icon("application/zip") == "📦"
    assert get_file_icon(None) == "📁"
    assert is_image("image/jpeg")
    assert not is_image("application/pdf")
