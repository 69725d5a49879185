import re
import pytest
from doxie_upload.exceptions import StorageError
from doxie_upload.utils.file_utils import (
    MAX_FILENAME_BYTES,
    derive_filename,
    guess_extension,
    resolve_upload_path,
    sanitize_client_filename,
    split_extension,
)

TOKEN = r"[0-9a-f]{32}"


@pytest.mark.parametrize("filename, expected", [
    ("scan.pdf", "scan.pdf"),
    ("../../etc/passwd", "passwd"),
    ("/absolute/path/scan.pdf", "scan.pdf"),
    ("C:\\Users\\scanner\\scan.pdf", "scan.pdf"),
    ("..\\..\\boot.ini", "boot.ini"),
    ("scan\x00.pdf", "scan.pdf"),
    ("..", None),
    ("uploads/", None),
    ("", None),
    (None, None),
])
def test_sanitize_client_filename(filename, expected):
    assert sanitize_client_filename(filename) == expected


@pytest.mark.parametrize("name, expected", [
    ("report.PDF", ("report", "pdf")),
    ("archive.tar.gz", ("archive.tar", "gz")),
    ("README", ("README", None)),
    (".hidden", ("", "hidden")),
    (".PDF", ("", "pdf")),
    ("weird.ta r", ("weird.ta r", None)),
    ("trailing.", ("trailing", None)),
    ("scan..PNG", ("scan", "png")),
    ("...", ("", None)),
])
def test_split_extension(name, expected):
    assert split_extension(name) == expected


def test_guess_extension():
    assert guess_extension("image/png") == "png"
    assert guess_extension("application/pdf; charset=binary") == "pdf"
    assert guess_extension("application/octet-stream") is None
    assert guess_extension(None) is None


def test_derive_filename_keeps_client_stem():
    assert derive_filename("Scan 2022-01-04.PNG") == "Scan 2022-01-04.png"
    assert derive_filename("../../etc/passwd") == "passwd.pdf"
    assert derive_filename("notes", "image/png") == "notes.png"


def test_derive_filename_trailing_dots():
    assert derive_filename("foo.") == "foo.pdf"
    assert derive_filename("foo...") == "foo.pdf"
    assert derive_filename("foo..PNG") == "foo.png"


def test_derive_filename_generates_token():
    assert re.fullmatch(TOKEN + r"\.pdf", derive_filename(None))
    assert re.fullmatch(TOKEN + r"\.pdf", derive_filename(".."))
    assert re.fullmatch(TOKEN + r"\.pdf", derive_filename(".PDF"))
    assert re.fullmatch(TOKEN + r"\.pdf", derive_filename("..."))
    assert re.fullmatch(TOKEN + r"\.png", derive_filename(None, "image/png"))
    assert derive_filename(None) != derive_filename(None)


def test_derive_filename_fits_filesystem_limit():
    filename = derive_filename("é" * 300 + ".pdf")
    assert filename.endswith(".pdf")
    assert len(filename.encode("utf-8")) <= MAX_FILENAME_BYTES


def test_resolve_upload_path(tmp_path):
    assert resolve_upload_path(tmp_path, "scan.pdf") == tmp_path / "scan.pdf"
    for filename in ("../scan.pdf", "sub/scan.pdf", "..", "a\\b.pdf"):
        with pytest.raises(StorageError):
            resolve_upload_path(tmp_path, filename)
