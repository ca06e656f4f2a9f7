"""Platform identity - canonical target triplets for hosts and archives.

A Platform is a stable tag combining OS family, CPU architecture and, where it
matters, the libc/ABI variant (glibc vs musl, hard-float vs soft-float ARM).
Archives may embed the triplet in their filename (<name>.<triplet>.tar.gz)
so installs can refuse binaries built for another platform.
"""

import logging
import platform as _platform
import re
import struct
import sys
import sysconfig
from enum import StrEnum

from .utils import strip_archive_extension

logger = logging.getLogger(__name__)


class Platform(StrEnum):
    """Known build targets, valued by their canonical triplet."""

    LINUX32 = "i686-linux-gnu"
    LINUX64 = "x86_64-linux-gnu"
    LINUX64_MUSL = "x86_64-linux-musl"
    LINUX_AARCH64 = "aarch64-linux-gnu"
    LINUX_ARMV7L = "arm-linux-gnueabihf"
    LINUX_ARMV7L_SOFTFLOAT = "arm-linux-gnueabi"
    LINUX_PPC64LE = "powerpc64le-linux-gnu"
    MAC64 = "x86_64-apple-darwin14"
    MAC_AARCH64 = "aarch64-apple-darwin20"
    WIN32 = "i686-w64-mingw32"
    WIN64 = "x86_64-w64-mingw32"
    UNKNOWN = "unknown"

    @property
    def key(self) -> str:
        """Short key, e.g. 'linux64' or 'win32'."""
        return _KEYS[self]

    @property
    def os_family(self) -> str:
        """One of 'linux', 'macos', 'windows' or 'unknown'."""
        if "linux" in self.value:
            return "linux"
        if "apple-darwin" in self.value:
            return "macos"
        if "mingw" in self.value:
            return "windows"
        return "unknown"

    @property
    def is_windows(self) -> bool:
        return self.os_family == "windows"

    @property
    def dlext(self) -> str:
        """Dynamic library extension used by this platform."""
        return {"macos": "dylib", "windows": "dll"}.get(self.os_family, "so")

    @classmethod
    def parse(cls, value: "str | Platform") -> "Platform":
        """Parse a member, a triplet or a short key.

        Raises:
            ValueError: If value names no known platform
        """
        if isinstance(value, Platform):
            return value
        normalized = value.strip().lower()
        for member in cls:
            if normalized in (member.value, member.key):
                return member
        raise ValueError(f"Unknown platform: {value!r}")


_KEYS = {
    Platform.LINUX32: "linux32",
    Platform.LINUX64: "linux64",
    Platform.LINUX64_MUSL: "linux64musl",
    Platform.LINUX_AARCH64: "linuxaarch64",
    Platform.LINUX_ARMV7L: "linuxarmv7l",
    Platform.LINUX_ARMV7L_SOFTFLOAT: "linuxarmel",
    Platform.LINUX_PPC64LE: "linuxppc64le",
    Platform.MAC64: "mac64",
    Platform.MAC_AARCH64: "macaarch64",
    Platform.WIN32: "win32",
    Platform.WIN64: "win64",
    Platform.UNKNOWN: "unknown",
}

_MACHINE_ALIASES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "i386": "i686",
    "i486": "i686",
    "i586": "i686",
    "i686": "i686",
    "x86": "i686",
    "aarch64": "aarch64",
    "arm64": "aarch64",
    "armv6l": "arm",
    "armv7l": "arm",
    "armv7": "arm",
    "arm": "arm",
    "ppc64le": "powerpc64le",
    "powerpc64le": "powerpc64le",
}

_TRIPLET_PATTERN = re.compile(r"^[a-z][a-z0-9_]*-[a-z][a-z0-9]*(-[a-z][a-z0-9_]*)?$")

# Leading triplet components that mark a filename segment as a platform tag
_KNOWN_ARCHES = frozenset(_MACHINE_ALIASES) | frozenset(_MACHINE_ALIASES.values())

# (sys.platform, machine) pairs already reported as undetectable
_reported_unknown_hosts: set[tuple[str, str]] = set()


def _host_machine() -> str:
    machine = _MACHINE_ALIASES.get(_platform.machine().lower(), "")
    # 32-bit interpreter on a 64-bit kernel loads 32-bit libraries
    if machine == "x86_64" and struct.calcsize("P") == 4:
        return "i686"
    return machine


def _host_abi() -> str:
    """Interpreter build triplet(s), used to tell musl and hard-float apart."""
    parts = [sysconfig.get_config_var(name) or "" for name in ("MULTIARCH", "HOST_GNU_TYPE")]
    return " ".join(parts).lower()


def _is_musl() -> bool:
    libc, _ = _platform.libc_ver()
    if libc == "glibc":
        return False
    return "musl" in _host_abi() or libc == "musl"


def resolve_host_platform() -> Platform:
    """Compute the canonical platform of the running interpreter.

    Never raises. An undetectable host is mapped to Platform.UNKNOWN, which
    matches no archive triplet, and reported at error level once per process.

    Returns:
        Platform of the running host
    """
    machine = _host_machine()
    result = Platform.UNKNOWN

    if sys.platform.startswith("linux"):
        if machine == "x86_64":
            result = Platform.LINUX64_MUSL if _is_musl() else Platform.LINUX64
        elif machine == "i686":
            result = Platform.LINUX32
        elif machine == "aarch64":
            result = Platform.LINUX_AARCH64
        elif machine == "arm":
            abi = _host_abi()
            softfloat = "gnueabi" in abi and "gnueabihf" not in abi
            result = Platform.LINUX_ARMV7L_SOFTFLOAT if softfloat else Platform.LINUX_ARMV7L
        elif machine == "powerpc64le":
            result = Platform.LINUX_PPC64LE
    elif sys.platform == "darwin":
        if machine == "x86_64":
            result = Platform.MAC64
        elif machine == "aarch64":
            result = Platform.MAC_AARCH64
    elif sys.platform in ("win32", "cygwin"):
        if machine == "x86_64":
            result = Platform.WIN64
        elif machine == "i686":
            result = Platform.WIN32

    if result is Platform.UNKNOWN:
        host = (sys.platform, _platform.machine())
        if host not in _reported_unknown_hosts:
            _reported_unknown_hosts.add(host)
            logger.error(f"Could not determine host platform (sys.platform={host[0]}, machine={host[1]})")
    return result


def platform_from_filename(name: str) -> str | None:
    """Extract the platform tag embedded in an archive filename.

    Convention: <name>.<tag>.tar.gz, where the tag is a known triplet, a
    short key (normalized to its triplet) or an unknown triplet whose first
    component is a recognized CPU architecture. Unknown triplets are returned
    as-is; callers compare the result to the host.

    Args:
        name: Archive filename or path

    Returns:
        The embedded triplet, or None if the filename carries none

    Example:
        >>> platform_from_filename("libfoo.x86_64-linux-gnu.tar.gz")
        'x86_64-linux-gnu'
        >>> platform_from_filename("libfoo.linuxaarch64.tar.gz")
        'aarch64-linux-gnu'
        >>> platform_from_filename("zlib.static-build.tar.gz") is None
        True
    """
    base = strip_archive_extension(name)
    if "." not in base:
        return None
    candidate = base.rsplit(".", 1)[1].lower()

    try:
        tagged = Platform.parse(candidate)
    except ValueError:
        tagged = None
    if tagged is not None:
        return None if tagged is Platform.UNKNOWN else tagged.value

    if _TRIPLET_PATTERN.match(candidate) and candidate.split("-", 1)[0] in _KNOWN_ARCHES:
        return candidate
    return None
