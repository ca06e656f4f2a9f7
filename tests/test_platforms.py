"""Tests for platform identity."""

import logging
from types import SimpleNamespace

import pytest
from binary_provider import Platform
from binary_provider import platform_from_filename
from binary_provider import resolve_host_platform


def _fake_host(monkeypatch, system: str, machine: str, libc: str = "glibc", abi: str = ""):
    monkeypatch.setattr("binary_provider.platforms.sys", SimpleNamespace(platform=system))
    monkeypatch.setattr(
        "binary_provider.platforms._platform",
        SimpleNamespace(machine=lambda: machine, libc_ver=lambda: (libc, "2.35" if libc else "")),
    )
    monkeypatch.setattr("binary_provider.platforms._host_abi", lambda: abi)


def test_resolve_host_platform_is_stable():
    """Test repeated resolution gives the same tag."""
    assert resolve_host_platform() == resolve_host_platform()
    assert isinstance(resolve_host_platform(), Platform)


@pytest.mark.parametrize(
    ("system", "machine", "libc", "abi", "expected"),
    [
        ("linux", "x86_64", "glibc", "x86_64-linux-gnu", Platform.LINUX64),
        ("linux", "x86_64", "", "x86_64-linux-musl", Platform.LINUX64_MUSL),
        ("linux", "i686", "glibc", "", Platform.LINUX32),
        ("linux", "aarch64", "glibc", "", Platform.LINUX_AARCH64),
        ("linux", "armv7l", "glibc", "arm-linux-gnueabihf", Platform.LINUX_ARMV7L),
        ("linux", "armv7l", "glibc", "arm-linux-gnueabi", Platform.LINUX_ARMV7L_SOFTFLOAT),
        ("linux", "ppc64le", "glibc", "", Platform.LINUX_PPC64LE),
        ("darwin", "x86_64", "", "", Platform.MAC64),
        ("darwin", "arm64", "", "", Platform.MAC_AARCH64),
        ("win32", "AMD64", "", "", Platform.WIN64),
        ("win32", "x86", "", "", Platform.WIN32),
    ],
)
def test_resolve_host_platform(monkeypatch, system, machine, libc, abi, expected):
    """Test host detection across OS, architecture and ABI variants."""
    _fake_host(monkeypatch, system, machine, libc, abi)
    assert resolve_host_platform() is expected


def test_undetectable_host_is_reported_once(monkeypatch, caplog):
    """Test an unknown host maps to UNKNOWN and logs a single error."""
    monkeypatch.setattr("binary_provider.platforms._reported_unknown_hosts", set())
    _fake_host(monkeypatch, "sunos5", "sparc64", "")

    with caplog.at_level(logging.ERROR, logger="binary_provider.platforms"):
        assert resolve_host_platform() is Platform.UNKNOWN
        assert resolve_host_platform() is Platform.UNKNOWN

    errors = [r for r in caplog.records if "Could not determine host platform" in r.message]
    assert len(errors) == 1


def test_platform_properties():
    """Test OS family and library extension per platform."""
    assert Platform.LINUX64.dlext == "so"
    assert Platform.MAC_AARCH64.dlext == "dylib"
    assert Platform.WIN32.dlext == "dll"
    assert Platform.WIN64.is_windows
    assert not Platform.LINUX_ARMV7L.is_windows
    assert Platform.MAC64.os_family == "macos"
    assert Platform.UNKNOWN.os_family == "unknown"
    assert Platform.LINUX_ARMV7L.key == "linuxarmv7l"
    assert str(Platform.LINUX64) == "x86_64-linux-gnu"


def test_parse_accepts_triplets_and_keys():
    """Test parsing from canonical triplets and short keys."""
    assert Platform.parse("x86_64-w64-mingw32") is Platform.WIN64
    assert Platform.parse("linux64") is Platform.LINUX64
    assert Platform.parse(" MAC64 ") is Platform.MAC64
    assert Platform.parse(Platform.WIN32) is Platform.WIN32

    with pytest.raises(ValueError, match="Unknown platform"):
        Platform.parse("juliaos64")


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("libfoo.x86_64-linux-gnu.tar.gz", "x86_64-linux-gnu"),
        ("/downloads/libfoo.arm-linux-gnueabihf.tar.gz", "arm-linux-gnueabihf"),
        ("https://host/raw/libfoo.x86_64-apple-darwin14.tar.gz", "x86_64-apple-darwin14"),
        ("libfoo.x86_64-juliaos-gnu.tar.gz", "x86_64-juliaos-gnu"),
        ("libfoo.tar.gz", None),
        ("libfoo-1.2.tar.gz", None),
        ("libfoo_juliaos64.tar.gz", None),
        ("libfoo.v1-2.tar.gz", None),
        ("zlib.static-build.tar.gz", None),
        ("libfoo.unknown.tar.gz", None),
        ("libfoo.linuxaarch64.tar.gz", "aarch64-linux-gnu"),
        ("libfoo.WIN64.tar.gz", "x86_64-w64-mingw32"),
        ("libfoo.armv7l-linux-gnueabihf.tar.gz", "armv7l-linux-gnueabihf"),
    ],
)
def test_platform_from_filename(name, expected):
    """Test triplets and short keys are tags and other dotted segments are not."""
    assert platform_from_filename(name) == expected
