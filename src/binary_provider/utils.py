"""Archive naming and hashing utilities.

Central helpers so packaging, installing and platform checks agree on how an
archive name maps to its base name and how its digest is computed.
"""

import hashlib
from pathlib import Path
from urllib.parse import urlparse

ARCHIVE_EXTENSION = ".tar.gz"

_CHUNK_SIZE = 65536


def strip_archive_extension(name: str | Path) -> str:
    """Return the archive's base name without directory or archive extension.

    Works for local paths and URLs.

    Examples:
        >>> strip_archive_extension("/tmp/libfoo.x86_64-linux-gnu.tar.gz")
        'libfoo.x86_64-linux-gnu'
        >>> strip_archive_extension("https://host/dl/libfoo.tar.gz?raw=1")
        'libfoo'
    """
    text = str(name)
    if is_url(text):
        text = urlparse(text).path
    base = text.replace("\\", "/").rsplit("/", 1)[-1]
    if base.endswith(ARCHIVE_EXTENSION):
        return base[: -len(ARCHIVE_EXTENSION)]
    if base.endswith(".tgz"):
        return base[: -len(".tgz")]
    return base


def is_url(source: str | Path) -> bool:
    """True if source is an http(s) URL rather than a local path."""
    if isinstance(source, Path):
        return False
    return urlparse(source).scheme in ("http", "https")


def sha256_file(path: Path) -> str:
    """Compute the lowercase hex SHA-256 of a file's exact bytes.

    Args:
        path: File to hash

    Returns:
        64-character lowercase hex digest
    """
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def normalize_member_name(name: str) -> str:
    """Archive member name as a prefix-relative POSIX path ("./bin/x" -> "bin/x")."""
    while name.startswith("./"):
        name = name[2:]
    return name
