import mimetypes
import uuid
from pathlib import Path
from typing import Optional, Tuple
from doxie_upload.exceptions import StorageError

DEFAULT_EXTENSION = "pdf"

# Longest file name most filesystems accept, in bytes
MAX_FILENAME_BYTES = 255

MAX_EXTENSION_LENGTH = 16

GENERIC_CONTENT_TYPES = {"", "application/octet-stream"}


def sanitize_client_filename(filename: Optional[str]) -> Optional[str]:
    """
    Reduce a client-supplied filename to its final path component.

    Returns None when nothing usable is left.
    """
    if not filename:
        return None
    name = filename.replace("\\", "/").rsplit("/", 1)[-1]
    name = "".join(ch for ch in name if ch.isprintable()).strip()
    if name in ("", ".", ".."):
        return None
    return name


def split_extension(name: str) -> Tuple[str, Optional[str]]:
    """
    Split a file name into its stem and lowercased extension.

    Trailing dots are dropped from both the name and the stem, so the stored
    name never ends up with an empty extension or doubled dots.
    """
    name = name.rstrip(".")
    stem, dot, extension = name.rpartition(".")
    if not dot or not extension.isalnum() or len(extension) > MAX_EXTENSION_LENGTH:
        return name, None
    # ".PDF" is an extension with an empty stem
    return stem.rstrip("."), extension.lower()


def guess_extension(content_type: Optional[str]) -> Optional[str]:
    """
    Guess an extension from the media type a form field declares.
    """
    if not content_type:
        return None
    media_type = content_type.split(";", 1)[0].strip().lower()
    if media_type in GENERIC_CONTENT_TYPES:
        return None
    extension = mimetypes.guess_extension(media_type)
    return extension.lstrip(".").lower() if extension else None


def _truncate(stem: str, limit: int) -> str:
    while len(stem.encode("utf-8")) > limit:
        stem = stem[:-1]
    return stem


def derive_filename(client_filename: Optional[str], content_type: Optional[str] = None) -> str:
    """
    Pick the name an upload is stored under.

    The client's filename is used when it leaves a usable stem once reduced to a
    single path segment, otherwise a random token is generated. The extension
    comes from the client's filename, then the field's media type, and defaults
    to pdf.
    """
    name = sanitize_client_filename(client_filename)
    stem, extension = split_extension(name) if name else (None, None)

    if extension is None:
        extension = guess_extension(content_type) or DEFAULT_EXTENSION
    if stem:
        stem = _truncate(stem, MAX_FILENAME_BYTES - len(extension.encode("utf-8")) - 1).rstrip(".")
    if not stem:
        stem = uuid.uuid4().hex
    return f"{stem}.{extension}"


def resolve_upload_path(root: Path, filename: str) -> Path:
    """
    Join a derived filename onto the upload root, refusing anything but a single path segment.
    """
    if filename in ("", ".", "..") or Path(filename).name != filename or "\\" in filename:
        raise StorageError(f"refusing to store outside the upload root ({filename!r})")
    return root / filename
