"""Archive installation and removal.

install() verifies an archive's SHA-256 and platform tag, checks every target
path for conflicts before writing anything, extracts into the prefix and
records the written files in a manifest. uninstall() reverses it from the
manifest alone.

No locking is performed: callers must serialize installs and uninstalls
against the same prefix. A failure mid-extraction (disk full, permissions)
is reported but not rolled back.
"""

import logging
import os
import tarfile
import tempfile
from pathlib import Path

from .exceptions import ArtifactNotFoundError
from .exceptions import BinaryProviderError
from .exceptions import DestinationExistsError
from .exceptions import HashMismatchError
from .exceptions import PlatformMismatchError
from .fetchers import HttpFetcher
from .manifest import Manifest
from .manifest import manifest_path_for
from .manifest import release_paths
from .platforms import platform_from_filename
from .platforms import resolve_host_platform
from .prefix import Prefix
from .protocols import ArchiveFetcherProtocol
from .utils import is_url
from .utils import normalize_member_name
from .utils import sha256_file
from .utils import strip_archive_extension

logger = logging.getLogger(__name__)


def _obtain_archive(source: str | Path, workdir: Path, fetcher: ArchiveFetcherProtocol | None) -> Path:
    """Local path of the archive, downloading into workdir if source is a URL."""
    if is_url(source):
        fetcher = fetcher or HttpFetcher()
        destination = workdir / f"{strip_archive_extension(source)}.tar.gz"
        fetcher.fetch(str(source), destination)
        return destination

    tarball_path = Path(source)
    if not tarball_path.is_file():
        raise ArtifactNotFoundError(f"Archive not found: {tarball_path}", context={"path": str(tarball_path)})
    return tarball_path


def _verify_digest(tarball_path: Path, expected_digest: str, source: str | Path) -> None:
    actual = sha256_file(tarball_path)
    if actual != expected_digest.strip().lower():
        raise HashMismatchError(
            f"Hash mismatch for {source}!\n  Expected SHA256: {expected_digest}\n  Calculated SHA256: {actual}",
            context={"path": str(source), "expected": expected_digest, "actual": actual},
        )
    logger.debug(f"Verified SHA256 {actual} for {source}")


def _verify_platform(source: str | Path) -> None:
    archive_platform = platform_from_filename(str(source))
    if archive_platform is None:
        return

    host = resolve_host_platform()
    if archive_platform != host.value:
        raise PlatformMismatchError(
            f"Will not install a tarball built for {archive_platform} on {host.value}: {source}",
            context={"path": str(source), "archive_platform": archive_platform, "host_platform": host.value},
        )


def _preflight(tar: tarfile.TarFile, prefix: Prefix, force: bool) -> list[tarfile.TarInfo]:
    """Check every member before anything is written.

    Returns:
        File (non-directory) members to extract

    Raises:
        BinaryProviderError: If a member would land outside the prefix
        DestinationExistsError: If targets exist and force is False
    """
    members = []
    conflicts = []
    for member in tar.getmembers():
        try:
            tarfile.data_filter(member, str(prefix.path))
        except tarfile.FilterError as e:
            raise BinaryProviderError(
                f"Refusing unsafe archive member {member.name}: {e}",
                context={"member": member.name},
            ) from e
        if member.isdir():
            continue
        members.append(member)
        if os.path.lexists(prefix.path / normalize_member_name(member.name)):
            conflicts.append(normalize_member_name(member.name))

    if conflicts and not force:
        raise DestinationExistsError(
            f"{len(conflicts)} files already exist in {prefix}, refusing to overwrite: {', '.join(conflicts)}",
            context={"paths": conflicts},
        )
    return members


def install(
    source: str | Path,
    expected_digest: str,
    prefix: Prefix,
    force: bool = False,
    fetcher: ArchiveFetcherProtocol | None = None,
) -> bool:
    """
    Verify and extract an archive into a prefix, recording a manifest.

    Process:
    1. Read the local archive, or download it with fetcher
    2. Compare its SHA-256 to expected_digest (case-insensitive)
    3. Refuse archives whose filename names another platform
    4. Refuse if any target file exists (unless force)
    5. Extract, keeping recorded permissions
    6. Write <prefix>/manifests/<base name>.list

    Args:
        source: Local path or http(s) URL of a .tar.gz archive
        expected_digest: Hex SHA-256 of the archive bytes
        prefix: Prefix to install into
        force: Overwrite existing files (ownership moves to this manifest)
        fetcher: Transport for URLs (defaults to HttpFetcher)

    Returns:
        True on success

    Raises:
        HashMismatchError: Digest comparison failed; nothing installed
        PlatformMismatchError: Archive targets another platform; nothing installed
        DestinationExistsError: Files already present; nothing installed
        ArtifactNotFoundError: Local archive missing
        FetchError: Download failed
        BinaryProviderError: Any other failure

    Example:
        >>> install(
        ...     "https://example.com/libfoo.x86_64-linux-gnu.tar.gz",
        ...     "b9d57a6e032a56b1f8641771fa707523caa72f1a2e322ab99eeeb011f13ad9f3",
        ...     Prefix("./deps/usr"),
        ... )
        True
    """
    manifest_path = manifest_path_for(prefix, source)

    try:
        with tempfile.TemporaryDirectory() as workdir:
            # Step 1: Obtain bytes; downloads vanish with workdir on any failure
            tarball_path = _obtain_archive(source, Path(workdir), fetcher)

            # Step 2-3: Integrity and provenance before touching the prefix
            _verify_digest(tarball_path, expected_digest, source)
            _verify_platform(source)

            if manifest_path.exists() and not force:
                raise DestinationExistsError(
                    f"{strip_archive_extension(source)} is already installed (manifest {manifest_path})",
                    context={"paths": [str(manifest_path)]},
                )

            with tarfile.open(tarball_path, "r:*") as tar:
                # Step 4: Dry-run existence pass
                members = _preflight(tar, prefix, force)
                installed = [normalize_member_name(m.name) for m in members]
                created_dirs = _missing_directories(prefix, installed)

                # Step 5: Extraction pass
                logger.info(f"Installing {len(members)} files from {source} into {prefix}")
                prefix.path.mkdir(parents=True, exist_ok=True)
                for name in installed:
                    target = prefix.path / name
                    if os.path.lexists(target):
                        target.unlink()
                tar.extractall(prefix.path, members=members, filter="data")

        # Step 6: Record ownership
        previous = Manifest.read(manifest_path) if manifest_path.exists() else Manifest(path=manifest_path)
        if force:
            release_paths(prefix, set(installed), keep=manifest_path)
        files = [f for f in previous.files if f not in installed and os.path.lexists(prefix.path / f)] + installed
        kept_dirs = {d for d in previous.directories if (prefix.path / d).is_dir()}
        directories = sorted(kept_dirs | set(created_dirs))
        Manifest(path=manifest_path, files=files, directories=directories).write()

        logger.info(f"Successfully installed {strip_archive_extension(source)} ({len(installed)} files)")
        return True

    except Exception as e:
        if isinstance(e, BinaryProviderError):
            raise
        raise BinaryProviderError(f"Failed to install {source}: {e}", context={"path": str(source)}) from e


def _missing_directories(prefix: Prefix, relative_paths: list[str]) -> list[str]:
    """Prefix-relative directories that extracting relative_paths will create."""
    missing = set()
    for relative_path in relative_paths:
        directory = (prefix.path / relative_path).parent
        while directory != prefix.path and prefix.path in directory.parents and not directory.exists():
            missing.add(directory.relative_to(prefix.path).as_posix())
            directory = directory.parent
    return sorted(missing)


def _remove_created_dirs(manifest: Manifest, root: Path) -> None:
    """Remove the directories an install created, deepest first, if now empty."""
    for relative_dir in sorted(manifest.directories, key=lambda d: d.count("/"), reverse=True):
        directory = root / relative_dir
        try:
            directory.rmdir()
        except OSError:
            logger.debug(f"Keeping {directory}: not empty or already removed")


def uninstall(manifest_path: str | Path) -> bool:
    """
    Remove every file a manifest lists, then the manifest itself.

    Files already missing are skipped with a warning. Directories the install
    created are removed once empty; directories that existed before it stay.

    Args:
        manifest_path: Path returned by manifest_for_file() or found in
                       <prefix>/manifests/

    Returns:
        True on success

    Raises:
        ArtifactNotFoundError: If the manifest does not exist
        BinaryProviderError: If the manifest is unreadable or removal fails
    """
    manifest_path = Path(manifest_path)
    root = manifest_path.absolute().parent.parent

    try:
        manifest = Manifest.read(manifest_path)
        logger.info(f"Uninstalling {manifest.name} ({len(manifest.files)} files)")
        for relative_path in manifest.files:
            target = root / relative_path
            if not os.path.lexists(target):
                logger.warning(f"{target} listed in {manifest_path.name} does not exist, skipping")
                continue
            target.unlink()
            logger.debug(f"  - {relative_path}")
        _remove_created_dirs(manifest, root)

        manifest_path.unlink()
        logger.info(f"Successfully uninstalled: {manifest.name}")
        return True

    except Exception as e:
        if isinstance(e, BinaryProviderError):
            raise
        raise BinaryProviderError(
            f"Failed to uninstall {manifest_path}: {e}", context={"path": str(manifest_path)}
        ) from e
