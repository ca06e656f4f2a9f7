"""binary-provider - Install, locate and remove precompiled binary artifacts.

Verifies and extracts archives of prebuilt libraries and executables into a
prefix, tracks each install in a manifest so it can be reversed, and checks
that expected products are present and loadable.

This is library mechanism: callers inject policy (prefix paths, target
platform, transport).
"""

from .activation import Activation
from .activation import activate
from .deps import check_deps
from .deps import write_deps_file
from .exceptions import ArtifactNotFoundError
from .exceptions import BinaryProviderError
from .exceptions import DestinationExistsError
from .exceptions import FetchError
from .exceptions import HashMismatchError
from .exceptions import OrphanFileError
from .exceptions import PlatformMismatchError
from .exceptions import UnsatisfiedProductError
from .fetchers import HttpFetcher
from .installer import install
from .installer import uninstall
from .manifest import Manifest
from .manifest import list_manifests
from .manifest import manifest_for_file
from .packaging import list_tarball_files
from .packaging import package
from .platforms import Platform
from .platforms import platform_from_filename
from .platforms import resolve_host_platform
from .prefix import Prefix
from .prefix import temp_prefix
from .products import ExecutableProduct
from .products import FileProduct
from .products import LibraryProduct
from .products import Product
from .products import locate
from .products import satisfied
from .products import valid_dl_path
from .protocols import ArchiveFetcherProtocol
from .utils import sha256_file

__all__ = [
    # Platforms
    "Platform",
    "resolve_host_platform",
    "platform_from_filename",
    # Prefixes
    "Prefix",
    "temp_prefix",
    "Activation",
    "activate",
    # Products
    "Product",
    "LibraryProduct",
    "ExecutableProduct",
    "FileProduct",
    "locate",
    "satisfied",
    "valid_dl_path",
    # Deps files
    "write_deps_file",
    "check_deps",
    # Packaging and installation
    "package",
    "list_tarball_files",
    "install",
    "uninstall",
    "manifest_for_file",
    "list_manifests",
    "Manifest",
    "sha256_file",
    "ArchiveFetcherProtocol",
    "HttpFetcher",
    # Exceptions
    "BinaryProviderError",
    "HashMismatchError",
    "PlatformMismatchError",
    "DestinationExistsError",
    "OrphanFileError",
    "ArtifactNotFoundError",
    "UnsatisfiedProductError",
    "FetchError",
]

__version__ = "0.1.0"
