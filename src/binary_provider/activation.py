"""Scoped search-path activation for a prefix.

activate() prepends a prefix's bindir and libdir to the executable and
library search variables of an environment mapping and returns an Activation
holding the prior values. Activation.deactivate() restores them. Nothing is
mutated implicitly: the caller owns the Activation and pairs the calls (or
uses it as a context manager).
"""

import logging
import os
from collections.abc import MutableMapping

from .platforms import Platform
from .platforms import resolve_host_platform
from .prefix import Prefix

logger = logging.getLogger(__name__)

_LIBRARY_PATH_VARS = {
    "linux": "LD_LIBRARY_PATH",
    "macos": "DYLD_FALLBACK_LIBRARY_PATH",
    "windows": "PATH",
}


def library_path_variable(platform: Platform | None = None) -> str:
    """Name of the dynamic-loader search variable for a platform."""
    platform = platform or resolve_host_platform()
    return _LIBRARY_PATH_VARS.get(platform.os_family, "LD_LIBRARY_PATH")


class Activation:
    """Handle for an activated prefix; restores the environment on deactivate()."""

    def __init__(self, prefix: Prefix, environ: MutableMapping[str, str], saved: dict[str, str | None]):
        self.prefix = prefix
        self.environ = environ
        self._saved = saved
        self.active = True

    def deactivate(self) -> None:
        """Restore every variable touched by activate(); no-op if already restored."""
        if not self.active:
            return
        for name, value in self._saved.items():
            if value is None:
                self.environ.pop(name, None)
            else:
                self.environ[name] = value
        self.active = False
        logger.debug(f"Deactivated prefix {self.prefix}")

    def __enter__(self) -> "Activation":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.deactivate()


def _prepend(environ: MutableMapping[str, str], name: str, directory: str) -> None:
    current = environ.get(name)
    entries = [directory] + [p for p in (current or "").split(os.pathsep) if p and p != directory]
    environ[name] = os.pathsep.join(entries)


def activate(
    prefix: Prefix,
    environ: MutableMapping[str, str] | None = None,
    platform: Platform | None = None,
) -> Activation:
    """
    Put a prefix's binaries and libraries first on the search paths.

    Args:
        prefix: Prefix to activate
        environ: Environment mapping to modify (defaults to os.environ)
        platform: Platform whose conventions apply (defaults to the host)

    Returns:
        Activation whose deactivate() restores the prior values

    Example:
        >>> with activate(prefix):
        ...     subprocess.run(["fooifier", "1.5", "2.0"])
    """
    environ = os.environ if environ is None else environ
    platform = platform or resolve_host_platform()
    lib_var = library_path_variable(platform)

    saved = {name: environ.get(name) for name in {"PATH", lib_var}}

    # On Windows lib_var is PATH; libdir == bindir there, so one prepend suffices
    _prepend(environ, lib_var, str(prefix.libdir(platform)))
    _prepend(environ, "PATH", str(prefix.bindir()))

    logger.debug(f"Activated prefix {prefix} (PATH, {lib_var})")
    return Activation(prefix, environ, saved)
