"""Archive creation and inspection.

package() turns a populated prefix into a gzip-compressed tarball whose
entries are paths relative to the prefix, ready for install() elsewhere.
"""

import logging
import tarfile
from pathlib import Path

from .exceptions import DestinationExistsError
from .platforms import Platform
from .prefix import MANIFEST_DIRNAME
from .prefix import Prefix
from .utils import ARCHIVE_EXTENSION
from .utils import normalize_member_name

logger = logging.getLogger(__name__)


def _collect_files(prefix: Prefix, exclude: Path) -> list[Path]:
    """Files and symlinks under the prefix, sorted, without install records."""
    files = []
    for path in sorted(prefix.path.rglob("*")):
        relative = path.relative_to(prefix.path)
        if relative.parts[0] == MANIFEST_DIRNAME:
            continue
        if path == exclude:
            continue
        if path.is_symlink() or path.is_file():
            files.append(path)
    return files


def package(prefix: Prefix, output_base: str | Path, platform: Platform | str | None = None) -> Path:
    """
    Package every file in a prefix into <output_base>.tar.gz.

    Args:
        prefix: Prefix whose contents are archived
        output_base: Output path without the archive extension
        platform: Optional target platform; its triplet is embedded in the
                  filename as <output_base>.<triplet>.tar.gz

    Returns:
        Absolute path of the written tarball

    Raises:
        DestinationExistsError: If the tarball already exists (remove it first)

    Example:
        >>> tarball = package(prefix, "./libfoo", platform=Platform.LINUX64)
        >>> tarball.name
        'libfoo.x86_64-linux-gnu.tar.gz'
    """
    base = str(output_base)
    if platform is not None:
        base = f"{base}.{Platform.parse(platform).value}"
    tarball_path = Path(f"{base}{ARCHIVE_EXTENSION}").absolute()

    if tarball_path.exists():
        raise DestinationExistsError(
            f"{tarball_path} already exists, refusing to package into it",
            context={"paths": [str(tarball_path)]},
        )

    files = _collect_files(prefix, exclude=tarball_path)
    tarball_path.parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"Packaging {len(files)} files from {prefix} into {tarball_path}")
    with tarfile.open(tarball_path, "w:gz") as tar:
        for path in files:
            arcname = path.relative_to(prefix.path).as_posix()
            tar.add(path, arcname=arcname, recursive=False)
            logger.debug(f"  + {arcname}")

    return tarball_path


def list_tarball_files(tarball_path: Path) -> list[str]:
    """
    List the file (non-directory) members of a tarball.

    Returns:
        Member paths relative to the install root, in archive order
    """
    with tarfile.open(tarball_path, "r:*") as tar:
        return [normalize_member_name(m.name) for m in tar.getmembers() if not m.isdir()]
