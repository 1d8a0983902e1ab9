import pytest

from services import file_storage
from services.exceptions import NotFoundOnDisk
from utils.security import display_filename, is_safe_path, sanitize_filename
from utils.sizes import BYTES_PER_GB, BYTES_PER_MB, bytes_to_gb, format_size_mb, parse_size


@pytest.mark.parametrize("value, expected", [
    ("586.051 MB", int(round(586.051 * BYTES_PER_MB))),
    ("1.2 GB", int(round(1.2 * BYTES_PER_GB))),
    ("512KB", 512 * 1024),
    ("42", 42 * BYTES_PER_MB),
    ("100 b", 100),
])
def test_parse_size(value, expected):
    assert parse_size(value) == expected


@pytest.mark.parametrize("value", ["", "MB", "ten MB", "5 PB"])
def test_parse_size_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_size(value)


def test_size_formatting():
    assert bytes_to_gb(2048 * BYTES_PER_MB) == 2.0
    assert format_size_mb(int(586.051 * BYTES_PER_MB)) == "586.05 MB"


def test_sanitize_filename():
    assert sanitize_filename("../../etc/passwd") == "passwd"
    assert sanitize_filename("my holiday video.zip") == "my_holiday_video.zip"
    assert sanitize_filename("..") == "unnamed"
    assert sanitize_filename(None) == "unnamed"


def test_display_filename():
    assert display_filename("1740559919539_catmeme.zip") == "catmeme.zip"
    assert display_filename("catmeme.zip") == "catmeme.zip"
    assert display_filename("v2_catmeme.zip") == "v2_catmeme.zip"


def test_is_safe_path(tmp_path):
    assert is_safe_path(tmp_path, tmp_path / "a.zip")
    assert not is_safe_path(tmp_path, tmp_path / ".." / "a.zip")


def test_resolve_download_stays_in_uploads(uploads):
    (uploads / "1740559919539_a.zip").write_bytes(b"a")
    assert file_storage.resolve_download("1740559919539_a.zip") == str(uploads / "1740559919539_a.zip")
    assert file_storage.resolve_download("../../1740559919539_a.zip") == str(uploads / "1740559919539_a.zip")

    with pytest.raises(NotFoundOnDisk):
        file_storage.resolve_download("missing.zip")
    with pytest.raises(NotFoundOnDisk):
        file_storage.resolve_download("")
