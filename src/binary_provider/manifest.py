"""Install manifests - one record per installed archive.

A manifest lists, one per line, the prefix-relative paths of the files that a
single install wrote, followed by the directories that install created (with a
trailing slash). Manifests live in <prefix>/manifests/ and are named after the
archive's base name:

    <prefix>/manifests/libfoo.x86_64-linux-gnu.list
        bin/fooifier
        lib/libfoo.so
        lib/

Invariant: each installed file is listed in exactly one manifest. A file on
disk that no manifest lists is an orphan.
"""

import logging
from pathlib import Path

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from .exceptions import ArtifactNotFoundError
from .exceptions import OrphanFileError
from .prefix import Prefix
from .utils import strip_archive_extension

logger = logging.getLogger(__name__)

MANIFEST_EXTENSION = ".list"


class Manifest(BaseModel):
    """File list of one install operation (immutable)."""

    model_config = ConfigDict(frozen=True)

    path: Path
    files: list[str] = Field(default_factory=list)
    # Directories the install created; removed again on uninstall if empty
    directories: list[str] = Field(default_factory=list)

    @property
    def name(self) -> str:
        """Archive base name this manifest was written for."""
        return self.path.name[: -len(MANIFEST_EXTENSION)]

    @classmethod
    def read(cls, path: Path) -> "Manifest":
        """
        Load a manifest from disk.

        Only line endings are stripped; paths may contain any other whitespace.

        Raises:
            ArtifactNotFoundError: If the manifest does not exist
        """
        path = Path(path)
        if not path.is_file():
            raise ArtifactNotFoundError(f"Manifest not found: {path}", context={"path": str(path)})

        files = []
        directories = []
        for line in path.read_text(encoding="utf-8").split("\n"):
            if not line:
                continue
            if line.endswith("/"):
                directories.append(line.rstrip("/"))
            else:
                files.append(line)
        return cls(path=path, files=files, directories=directories)

    def write(self) -> None:
        """Write the manifest, creating the manifest directory if needed."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        lines = [f"{f}\n" for f in self.files] + [f"{d}/\n" for d in self.directories]
        self.path.write_text("".join(lines), encoding="utf-8")
        logger.debug(f"Wrote manifest {self.path} with {len(self.files)} files")

    def contains(self, relative_path: str) -> bool:
        return relative_path in self.files


def manifest_path_for(prefix: Prefix, source: str | Path) -> Path:
    """Manifest location for an archive source (local path or URL)."""
    return prefix.manifest_dir() / f"{strip_archive_extension(source)}{MANIFEST_EXTENSION}"


def list_manifests(prefix: Prefix) -> list[Manifest]:
    """
    All manifests recorded in a prefix, ordered by name.

    Returns:
        List of manifests (empty if nothing was ever installed)
    """
    manifest_dir = prefix.manifest_dir()
    if not manifest_dir.is_dir():
        return []
    return [Manifest.read(p) for p in sorted(manifest_dir.glob(f"*{MANIFEST_EXTENSION}")) if p.is_file()]


def relative_to_prefix(path: Path, prefix: Prefix) -> str | None:
    """Prefix-relative POSIX path of a file, or None if it lies outside the prefix."""
    try:
        # Resolve the parent only, so symlinked files keep their own name
        absolute = Path(path).absolute()
        return (absolute.parent.resolve() / absolute.name).relative_to(prefix.path.resolve()).as_posix()
    except ValueError:
        return None


def manifest_for_file(path: str | Path, prefix: Prefix) -> Path:
    """
    Find the manifest that owns an installed file.

    Args:
        path: File path, absolute or relative to the prefix
        prefix: Prefix the file was installed into

    Returns:
        Path to the owning manifest

    Raises:
        ArtifactNotFoundError: If the file does not exist
        OrphanFileError: If the file exists but no manifest lists it
    """
    path = Path(path)
    if not path.is_absolute():
        path = prefix.path / path

    if not path.is_file():
        raise ArtifactNotFoundError(f"File not found: {path}", context={"path": str(path)})

    relative_path = relative_to_prefix(path, prefix)
    if relative_path is not None:
        for manifest in list_manifests(prefix):
            if manifest.contains(relative_path):
                return manifest.path

    raise OrphanFileError(
        f"{path} is not listed in any manifest in {prefix.manifest_dir()}",
        context={"path": str(path), "prefix": str(prefix.path)},
    )


def release_paths(prefix: Prefix, relative_paths: set[str], keep: Path | None = None) -> None:
    """
    Drop paths from every manifest that lists them (except keep).

    Used when an overwriting install takes ownership of files another install
    wrote, so no two manifests list the same path.
    """
    for manifest in list_manifests(prefix):
        if keep is not None and manifest.path == keep:
            continue
        remaining = [f for f in manifest.files if f not in relative_paths]
        if len(remaining) != len(manifest.files):
            logger.info(f"Transferring {len(manifest.files) - len(remaining)} files out of {manifest.path.name}")
            manifest.model_copy(update={"files": remaining}).write()
