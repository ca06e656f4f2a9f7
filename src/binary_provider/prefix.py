"""Install root (prefix) directory conventions.

A Prefix is an absolute directory acting as the root of an installation tree.
Conventional subpaths are derived from it deterministically:

    bin/        executables (and libraries on Windows)
    lib/        shared libraries
    include/    headers
    manifests/  install records, one .list file per installed archive

Directories are created lazily by whoever first writes into them; the prefix
itself is never deleted here.
"""

import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import field_validator

from .platforms import Platform
from .platforms import resolve_host_platform

MANIFEST_DIRNAME = "manifests"


class Prefix(BaseModel):
    """Root of an installation tree (immutable)."""

    model_config = ConfigDict(frozen=True)

    path: Path

    @field_validator("path")
    @classmethod
    def _absolute(cls, value: Path) -> Path:
        return Path(value).expanduser().absolute()

    def __init__(self, path: str | Path, **data):
        super().__init__(path=path, **data)

    def bindir(self) -> Path:
        return self.path / "bin"

    def libdir(self, platform: Platform | None = None) -> Path:
        """Library directory; the same as bindir on Windows targets.

        Args:
            platform: Target platform (defaults to the host)
        """
        platform = platform or resolve_host_platform()
        if platform.is_windows:
            return self.bindir()
        return self.path / "lib"

    def includedir(self) -> Path:
        return self.path / "include"

    def manifest_dir(self) -> Path:
        return self.path / MANIFEST_DIRNAME

    def __str__(self) -> str:
        return str(self.path)


@contextmanager
def temp_prefix() -> Iterator[Prefix]:
    """Yield a Prefix rooted in a fresh temporary directory, removed on exit.

    Example:
        >>> with temp_prefix() as prefix:
        ...     install(tarball, digest, prefix)
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Prefix(tmpdir)
