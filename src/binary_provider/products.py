"""Products - declared expectations of installed artifacts.

A Product is a closed union of three immutable variants:

- LibraryProduct: a directory plus a base library name (no extension or
  version); satisfied by a versioned shared library that can be loaded.
- ExecutableProduct: a file that exists and has an execute bit set.
- FileProduct: a file that simply exists.

locate() returns the artifact's path or None; satisfied() is locate() is not
None. Nothing is cached: the filesystem may change between queries, so each
call looks again. Absence is a normal result, never an exception.
"""

import ctypes
import logging
import os
import re
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated
from typing import Literal

import _ctypes
from pydantic import BaseModel
from pydantic import BeforeValidator
from pydantic import ConfigDict
from pydantic import Field

from .platforms import Platform
from .platforms import resolve_host_platform
from .prefix import Prefix

logger = logging.getLogger(__name__)

# Dynamic library filename grammar, keyed by Platform.dlext:
#   so:    libfoo.so, libfoo.so.1, libfoo.so.1.2, libfoo.so.1.2.3 (libfoo.1.so too)
#   dylib: libfoo.dylib, libfoo.1.dylib, libfoo.1.2.3.dylib
#   dll:   libfoo.dll, libfoo-1.dll
_DL_PATTERNS = {
    "so": re.compile(r"^.+\.so(\.\d+){0,3}$"),
    "dylib": re.compile(r"^.+?(\.\d+){0,3}\.dylib$"),
    "dll": re.compile(r"^.+?(-\d+)?\.dll$"),
}

# What may follow the libname itself; anything else is another library
_DL_SUFFIXES = {
    "so": re.compile(r"^(\.\d+)*\.so(\.\d+){0,3}$"),
    "dylib": re.compile(r"^(\.\d+){0,3}\.dylib$"),
    "dll": re.compile(r"^(-\d+)?\.dll$"),
}


def _non_empty(value):
    if value is None or str(value) == "":
        raise ValueError("must not be empty")
    return value


NonEmptyStr = Annotated[str, BeforeValidator(_non_empty)]
NonEmptyPath = Annotated[Path, BeforeValidator(_non_empty)]


class LibraryProduct(BaseModel):
    """A shared library that must exist and be loadable.

    Given dir_path "/usr/lib" and libname "libnettle", any of these satisfy it
    (on their respective platforms):

        /usr/lib/libnettle.so
        /usr/lib/libnettle.so.6
        /usr/lib/libnettle.6.dylib
        /usr/lib/libnettle-6.dll
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["library"] = "library"
    dir_path: NonEmptyPath
    libname: NonEmptyStr

    @classmethod
    def from_prefix(cls, prefix: Prefix, libname: str, platform: Platform | None = None) -> "LibraryProduct":
        """Library named libname inside libdir(prefix)."""
        return cls(dir_path=prefix.libdir(platform), libname=libname)


class ExecutableProduct(BaseModel):
    """An executable file.

    If path does not exist but "path.exe" does, the .exe satisfies it
    (unless path already ends in .exe).
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["executable"] = "executable"
    path: NonEmptyPath

    @classmethod
    def from_prefix(cls, prefix: Prefix, binname: str) -> "ExecutableProduct":
        """Executable named binname inside bindir(prefix)."""
        return cls(path=prefix.bindir() / _non_empty(binname))


class FileProduct(BaseModel):
    """A file that simply must exist."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["file"] = "file"
    path: NonEmptyPath


Product = Annotated[LibraryProduct | ExecutableProduct | FileProduct, Field(discriminator="kind")]

PRODUCT_TYPES = (LibraryProduct, ExecutableProduct, FileProduct)


def valid_dl_path(name: str, platform: Platform) -> bool:
    """Check a filename against the platform's dynamic library grammar.

    Examples:
        >>> valid_dl_path("libfoo.so.1.2.3", Platform.LINUX64)
        True
        >>> valid_dl_path("libfoo.so.1.a", Platform.LINUX64)
        False
    """
    return _DL_PATTERNS[platform.dlext].match(name) is not None


def _matches_libname(name: str, libname: str, platform: Platform) -> bool:
    """True if name is libname followed only by a version and library extension."""
    if not name.startswith(libname):
        return False
    return _DL_SUFFIXES[platform.dlext].match(name[len(libname) :]) is not None


def _dlopen(path: Path):
    return ctypes.CDLL(str(path), mode=ctypes.RTLD_LOCAL)


# ctypes has no public unload; _ctypes exposes the same dlclose/FreeLibrary
# that CPython uses internally
def _dlclose(library) -> None:
    if sys.platform == "win32":
        _ctypes.FreeLibrary(library._handle)
    else:
        _ctypes.dlclose(library._handle)


@contextmanager
def load_probe(path: Path) -> Iterator[bool]:
    """Try to load a shared library into this process, yielding success.

    The library is released before the with-block exits, on every path
    including errors raised inside the block. A failed load yields False.

    Example:
        >>> with load_probe(Path("/usr/lib/libz.so.1")) as loaded:
        ...     print(loaded)
        True
    """
    try:
        library = _dlopen(path)
    except OSError as e:
        logger.debug(f"{path} cannot be loaded: {e}")
        library = None

    if library is None:
        yield False
        return

    try:
        yield True
    finally:
        _dlclose(library)


def can_load(path: Path) -> bool:
    """Load-and-release check for a single library file."""
    with load_probe(path) as loaded:
        return loaded


def _locate_library(product: LibraryProduct, platform: Platform) -> Path | None:
    if not product.dir_path.is_dir():
        logger.debug(f"Directory {product.dir_path} does not exist")
        return None

    probe = platform == resolve_host_platform()

    for entry in sorted(product.dir_path.iterdir()):
        name = entry.name
        if not entry.is_file():
            continue
        if not valid_dl_path(name, platform):
            continue
        if not _matches_libname(name, product.libname, platform):
            continue

        dl_path = entry.absolute()
        logger.debug(f"{dl_path} matches our search criteria of {product.libname}")

        # Foreign binaries cannot be loaded here; existence is all we can check
        if not probe:
            return dl_path
        if can_load(dl_path):
            return dl_path

    logger.debug(f"Could not locate {product.libname} inside {product.dir_path}")
    return None


def _locate_executable(product: ExecutableProduct) -> Path | None:
    path = product.path
    if not path.is_file():
        exe_path = path.with_name(path.name + ".exe")
        if path.suffix != ".exe" and exe_path.is_file():
            path = exe_path
        else:
            logger.debug(f"{product.path} does not exist, reporting unsatisfied")
            return None

    # Windows filesystems have no execute bit; existence suffices there
    if os.name != "nt" and not path.stat().st_mode & 0o111:
        logger.debug(f"{path} is not executable, reporting unsatisfied")
        return None

    return path


def _locate_file(product: FileProduct) -> Path | None:
    if product.path.is_file():
        return product.path
    logger.debug(f"FileProduct {product.path} does not exist")
    return None


def locate(product: Product, platform: Platform | None = None) -> Path | None:
    """
    Find the artifact a Product describes.

    Args:
        product: LibraryProduct, ExecutableProduct or FileProduct
        platform: Target platform of the artifact (defaults to the host).
                  Libraries are only load-probed when this is the host.

    Returns:
        Path to the artifact, or None if it is absent or unusable

    Raises:
        TypeError: If product is not a Product variant
    """
    platform = platform or resolve_host_platform()
    if isinstance(product, LibraryProduct):
        return _locate_library(product, platform)
    if isinstance(product, ExecutableProduct):
        return _locate_executable(product)
    if isinstance(product, FileProduct):
        return _locate_file(product)
    raise TypeError(f"Not a Product: {product!r} ({type(product).__name__})")


def satisfied(product: Product, platform: Platform | None = None) -> bool:
    """True if locate() finds the product's artifact."""
    return locate(product, platform) is not None
