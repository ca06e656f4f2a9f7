"""Tests for generated deps files."""

import json
import os
import tempfile
from pathlib import Path

import pytest
from binary_provider import ArtifactNotFoundError
from binary_provider import ExecutableProduct
from binary_provider import FileProduct
from binary_provider import LibraryProduct
from binary_provider import Platform
from binary_provider import UnsatisfiedProductError
from binary_provider import check_deps
from binary_provider import resolve_host_platform
from binary_provider import temp_prefix
from binary_provider import write_deps_file

HOST = resolve_host_platform()
FOREIGN = Platform.LINUX_PPC64LE if HOST == Platform.LINUX_AARCH64 else Platform.LINUX_AARCH64


def _install_fake_binaries(prefix):
    prefix.bindir().mkdir(parents=True)
    fooifier = prefix.bindir() / "fooifier"
    fooifier.write_text("#!/bin/sh\n")
    fooifier.chmod(0o755)

    data = prefix.path / "share" / "foo.dat"
    data.parent.mkdir()
    data.write_text("data")
    return fooifier, data


def test_write_and_check_deps():
    """Test a deps file records resolved paths and validates them."""
    with temp_prefix() as prefix:
        fooifier, data = _install_fake_binaries(prefix)
        deps_path = prefix.path / "deps" / "deps.json"

        write_deps_file(
            deps_path,
            {
                "fooifier": ExecutableProduct.from_prefix(prefix, "fooifier"),
                "foo_data": FileProduct(path=data),
            },
        )

        recorded = json.loads(deps_path.read_text())
        assert recorded["version"] == "1.0"
        assert recorded["platform"] == HOST.value
        assert recorded["products"]["fooifier"] == {"kind": "executable", "path": str(fooifier)}

        assert check_deps(deps_path) == {"fooifier": fooifier, "foo_data": data}


def test_write_deps_refuses_unsatisfied():
    """Test nothing is written when a product is missing."""
    with temp_prefix() as prefix:
        deps_path = prefix.path / "deps.json"

        with pytest.raises(UnsatisfiedProductError) as exc_info:
            write_deps_file(deps_path, {"libfoo": LibraryProduct.from_prefix(prefix, "libfoo")})

        assert exc_info.value.context["name"] == "libfoo"
        assert not deps_path.exists()


def test_write_deps_refuses_non_products():
    """Test values must be Products."""
    with temp_prefix() as prefix:
        with pytest.raises(TypeError, match="not a Product"):
            write_deps_file(prefix.path / "deps.json", {"libfoo": "/usr/lib/libfoo.so"})


def test_check_deps_detects_removed_file():
    """Test validation fails once a recorded file disappears."""
    with temp_prefix() as prefix:
        _, data = _install_fake_binaries(prefix)
        deps_path = prefix.path / "deps.json"
        write_deps_file(deps_path, {"foo_data": FileProduct(path=data)})

        data.unlink()

        with pytest.raises(ArtifactNotFoundError, match="re-run"):
            check_deps(deps_path)


def test_check_deps_missing_file():
    """Test a deps file that was never generated is reported."""
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(ArtifactNotFoundError):
            check_deps(Path(tmpdir) / "deps.json")


def test_foreign_library_deps_not_probed():
    """Test libraries recorded for another platform only need to exist."""
    with temp_prefix() as prefix:
        libfoo = LibraryProduct.from_prefix(prefix, "libfoo", platform=FOREIGN)
        libfoo.dir_path.mkdir(parents=True)
        (libfoo.dir_path / "libfoo.so.1").touch()
        deps_path = prefix.path / "deps.json"

        write_deps_file(deps_path, {"libfoo": libfoo}, platform=FOREIGN)

        assert check_deps(deps_path) == {"libfoo": (libfoo.dir_path / "libfoo.so.1").absolute()}


def test_check_deps_probes_host_libraries(monkeypatch):
    """Test a host library that no longer loads fails validation."""
    with temp_prefix() as prefix:
        libfoo = LibraryProduct.from_prefix(prefix, "libfoo")
        libfoo.dir_path.mkdir(parents=True)
        (libfoo.dir_path / f"libfoo.{HOST.dlext}").touch()
        deps_path = prefix.path / "deps.json"

        # Loadable while the deps file is generated...
        monkeypatch.setattr("binary_provider.products._dlopen", lambda path: object())
        monkeypatch.setattr("binary_provider.products._dlclose", lambda library: None)
        write_deps_file(deps_path, {"libfoo": libfoo})

        # ...but the real loader rejects the empty file
        monkeypatch.undo()
        with pytest.raises(UnsatisfiedProductError, match="cannot be opened"):
            check_deps(deps_path)


@pytest.mark.skipif(os.name == "nt", reason="Windows has no execute bit")
def test_write_deps_executable_must_be_executable():
    """Test a non-executable file does not satisfy an executable entry."""
    with temp_prefix() as prefix:
        fooifier, _ = _install_fake_binaries(prefix)
        fooifier.chmod(0o644)

        with pytest.raises(UnsatisfiedProductError):
            write_deps_file(prefix.path / "deps.json", {"fooifier": ExecutableProduct(path=fooifier)})
