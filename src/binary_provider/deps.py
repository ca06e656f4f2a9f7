"""Generated dependency files.

A build script installs its binaries, then calls write_deps_file() with a
mapping of names to Products. Every product must be satisfied at that moment;
the resolved paths are written to a JSON file the package reads at import
time, validating it with check_deps().

Format (JSON):
{
  "version": "1.0",
  "generated_at": "2025-10-26T12:00:00+00:00",
  "platform": "x86_64-linux-gnu",
  "products": {
    "fooifier": {"kind": "executable", "path": "/pkg/deps/usr/bin/fooifier"},
    "libfoo": {"kind": "library", "path": "/pkg/deps/usr/lib/libfoo.so"}
  }
}
"""

import logging
from collections.abc import Mapping
from datetime import UTC
from datetime import datetime
from pathlib import Path
from typing import ClassVar
from typing import Literal

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from .exceptions import ArtifactNotFoundError
from .exceptions import UnsatisfiedProductError
from .platforms import Platform
from .platforms import resolve_host_platform
from .products import PRODUCT_TYPES
from .products import Product
from .products import can_load
from .products import locate

logger = logging.getLogger(__name__)

REBUILD_HINT = "please re-run the package build step"


class DepsEntry(BaseModel):
    """Resolved location of one product."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["library", "executable", "file"]
    path: Path


class DepsFile(BaseModel):
    """Contents of a generated deps file."""

    model_config = ConfigDict(frozen=True)

    VERSION: ClassVar[str] = "1.0"

    version: str = VERSION
    generated_at: str
    platform: str
    products: dict[str, DepsEntry] = Field(default_factory=dict)


def write_deps_file(
    deps_path: Path,
    products: Mapping[str, Product],
    platform: Platform | None = None,
) -> Path:
    """
    Resolve every product and record its path in deps_path.

    Args:
        deps_path: JSON file to write (parent directories are created)
        products: Mapping of names to Products
        platform: Target platform of the products (defaults to the host)

    Returns:
        deps_path

    Raises:
        TypeError: If a value is not a Product
        UnsatisfiedProductError: If a product cannot be located right now
    """
    platform = platform or resolve_host_platform()

    entries: dict[str, DepsEntry] = {}
    for name, product in products.items():
        if not isinstance(product, PRODUCT_TYPES):
            raise TypeError(f"Cannot write deps file entry {name!r}: {type(product).__name__} is not a Product")

        path = locate(product, platform)
        if path is None:
            raise UnsatisfiedProductError(
                f"{name} ({product!r}) is not satisfied, cannot generate deps file",
                context={"name": name},
            )
        entries[name] = DepsEntry(kind=product.kind, path=path.absolute())
        logger.debug(f"Resolved {name} to {path}")

    deps = DepsFile(
        generated_at=datetime.now(UTC).isoformat(),
        platform=platform.value,
        products=entries,
    )

    deps_path = Path(deps_path)
    deps_path.parent.mkdir(parents=True, exist_ok=True)
    deps_path.write_text(deps.model_dump_json(indent=2), encoding="utf-8")
    logger.info(f"Wrote deps file {deps_path} with {len(entries)} products")
    return deps_path


def load_deps_file(deps_path: Path) -> DepsFile:
    """
    Parse a deps file without validating the recorded paths.

    Raises:
        ArtifactNotFoundError: If deps_path does not exist
    """
    deps_path = Path(deps_path)
    if not deps_path.is_file():
        raise ArtifactNotFoundError(f"{deps_path} does not exist, {REBUILD_HINT}", context={"path": str(deps_path)})

    deps = DepsFile.model_validate_json(deps_path.read_text(encoding="utf-8"))
    if deps.version != DepsFile.VERSION:
        logger.warning(f"Deps file version mismatch: expected {DepsFile.VERSION}, got {deps.version}")
    return deps


def check_deps(deps_path: Path) -> dict[str, Path]:
    """
    Validate a deps file: every path exists and every library still loads.

    Libraries are only load-probed when the file was written for the host.

    Returns:
        Mapping of names to resolved paths

    Raises:
        ArtifactNotFoundError: If the deps file or a recorded path is missing
        UnsatisfiedProductError: If a recorded library cannot be loaded
    """
    deps = load_deps_file(deps_path)
    probe = deps.platform == resolve_host_platform().value

    resolved = {}
    for name, entry in deps.products.items():
        if not entry.path.is_file():
            raise ArtifactNotFoundError(
                f"{entry.path} does not exist, {REBUILD_HINT}",
                context={"path": str(entry.path), "name": name},
            )
        if probe and entry.kind == "library" and not can_load(entry.path):
            raise UnsatisfiedProductError(
                f"{entry.path} cannot be opened, {REBUILD_HINT}",
                context={"path": str(entry.path), "name": name},
            )
        resolved[name] = entry.path
    return resolved
