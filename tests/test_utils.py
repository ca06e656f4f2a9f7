"""Tests for archive naming and hashing utilities."""

import hashlib
import tempfile
from pathlib import Path

from binary_provider.utils import is_url
from binary_provider.utils import normalize_member_name
from binary_provider.utils import sha256_file
from binary_provider.utils import strip_archive_extension


def test_strip_archive_extension():
    """Base names drop directories, query strings and the archive extension."""
    assert strip_archive_extension("libfoo.tar.gz") == "libfoo"
    assert strip_archive_extension(Path("/tmp/out/libfoo.x86_64-linux-gnu.tar.gz")) == "libfoo.x86_64-linux-gnu"
    assert strip_archive_extension("https://example.com/dl/libfoo.tar.gz?raw=true") == "libfoo"
    assert strip_archive_extension("libfoo.tgz") == "libfoo"
    assert strip_archive_extension("C:\\builds\\libfoo.tar.gz") == "libfoo"


def test_is_url():
    """Only http(s) strings count as URLs."""
    assert is_url("https://example.com/libfoo.tar.gz")
    assert is_url("http://localhost:1/libfoo.tar.gz")
    assert not is_url("./libfoo.tar.gz")
    assert not is_url(Path("https:/example.com/libfoo.tar.gz"))
    assert not is_url("C:\\libfoo.tar.gz")


def test_sha256_file_matches_hashlib():
    """Digest covers the exact bytes and is lowercase hex."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "blob.bin"
        data = bytes(range(256)) * 1000
        path.write_bytes(data)

        digest = sha256_file(path)

        assert digest == hashlib.sha256(data).hexdigest()
        assert len(digest) == 64
        assert digest == digest.lower()


def test_normalize_member_name():
    """Leading ./ components are dropped."""
    assert normalize_member_name("./bin/fooifier") == "bin/fooifier"
    assert normalize_member_name("././lib/libfoo.so") == "lib/libfoo.so"
    assert normalize_member_name("include/foo.h") == "include/foo.h"
