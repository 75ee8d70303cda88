"""Tests for nativeloader.bootstrap.resources."""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from nativeloader.bootstrap.platform import OsFamily, PlatformKey
from nativeloader.bootstrap.resources import (
    ArchiveResourceProvider,
    DirectoryResourceProvider,
    PackageResourceProvider,
    SysPathResourceProvider,
    build_resource_path,
    library_file_name,
)
from nativeloader.core.errors import ResourceNotFoundError

RESOURCE = "/native/com/acme/codec/linux/amd64/fastz.so"


class TestBuildResourcePath:
    """Tests for build_resource_path."""

    def test_linux_scenario(self, linux_amd64: PlatformKey) -> None:
        assert build_resource_path("com.acme.codec", "fastz", linux_amd64) == RESOURCE

    def test_windows_uses_dll(self) -> None:
        platform = PlatformKey(OsFamily.WINDOWS, "x86")
        assert build_resource_path("acme", "fastz", platform) == "/native/acme/windows/x86/fastz.dll"

    def test_mac_os_uses_jnilib_and_marker(self) -> None:
        platform = PlatformKey(OsFamily.MAC_OS, "aarch64")
        assert build_resource_path("acme", "fastz", platform) == "/native/acme/os x/aarch64/fastz.jnilib"

    def test_solaris_uses_so(self) -> None:
        platform = PlatformKey(OsFamily.SOLARIS, "sparcv9")
        assert build_resource_path("a.b", "z", platform) == "/native/a/b/solaris/sparcv9/z.so"

    def test_library_file_name(self, linux_amd64: PlatformKey) -> None:
        assert library_file_name("fastz", linux_amd64) == "fastz.so"


class TestDirectoryResourceProvider:
    """Tests for DirectoryResourceProvider."""

    def test_opens_existing_resource(self, bundle_dir: Path) -> None:
        provider = DirectoryResourceProvider(bundle_dir)
        assert provider.exists(RESOURCE)
        with provider.open(RESOURCE) as stream:
            assert stream.read().startswith(b"\x7fELF")

    def test_missing_resource_raises(self, bundle_dir: Path) -> None:
        provider = DirectoryResourceProvider(bundle_dir)
        missing = "/native/com/acme/codec/linux/amd64/nope.so"
        assert not provider.exists(missing)
        with pytest.raises(ResourceNotFoundError) as exc_info:
            provider.open(missing)
        assert exc_info.value.resource_path == missing

    def test_missing_resource_is_file_not_found(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            DirectoryResourceProvider(tmp_path).open(RESOURCE)

    def test_directory_is_not_a_resource(self, bundle_dir: Path) -> None:
        provider = DirectoryResourceProvider(bundle_dir)
        assert not provider.exists("/native/com/acme/codec")


class TestArchiveResourceProvider:
    """Tests for ArchiveResourceProvider."""

    @pytest.fixture
    def archive(self, tmp_path: Path) -> Path:
        path = tmp_path / "bundle.jar"
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("native/com/acme/codec/linux/amd64/fastz.so", b"zipped")
        return path

    def test_opens_member(self, archive: Path) -> None:
        provider = ArchiveResourceProvider(archive)
        assert provider.exists(RESOURCE)
        with provider.open(RESOURCE) as stream:
            assert stream.read() == b"zipped"

    def test_missing_member_raises(self, archive: Path) -> None:
        provider = ArchiveResourceProvider(archive)
        with pytest.raises(ResourceNotFoundError):
            provider.open("/native/other.so")

    def test_missing_archive(self, tmp_path: Path) -> None:
        assert not ArchiveResourceProvider(tmp_path / "absent.zip").exists(RESOURCE)


class TestPackageResourceProvider:
    """Tests for PackageResourceProvider."""

    @pytest.fixture
    def package(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
        package_dir = tmp_path / "site" / "acme_codec_bundle"
        library_dir = package_dir / "native" / "com" / "acme" / "codec" / "linux" / "amd64"
        library_dir.mkdir(parents=True)
        (package_dir / "__init__.py").write_text("")
        (library_dir / "fastz.so").write_bytes(b"packaged")
        monkeypatch.syspath_prepend(str(tmp_path / "site"))
        return "acme_codec_bundle"

    def test_opens_package_resource(self, package: str) -> None:
        provider = PackageResourceProvider(package)
        assert provider.exists(RESOURCE)
        with provider.open(RESOURCE) as stream:
            assert stream.read() == b"packaged"

    def test_unknown_package(self) -> None:
        provider = PackageResourceProvider("no_such_package_for_nativeloader")
        assert not provider.exists(RESOURCE)
        with pytest.raises(ResourceNotFoundError):
            provider.open(RESOURCE)

    def test_plain_module_is_not_a_resource_source(self) -> None:
        provider = PackageResourceProvider("json.decoder")
        assert not provider.exists(RESOURCE)
        with pytest.raises(ResourceNotFoundError):
            provider.open(RESOURCE)


class TestSysPathResourceProvider:
    """Tests for SysPathResourceProvider."""

    def test_searches_entries_in_order(self, tmp_path: Path, bundle_dir: Path) -> None:
        archive = tmp_path / "app.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("native/com/acme/codec/linux/amd64/fastz.so", b"from zip")

        provider = SysPathResourceProvider([str(tmp_path / "missing"), str(archive), str(bundle_dir)])
        with provider.open(RESOURCE) as stream:
            assert stream.read() == b"from zip"

    def test_falls_through_to_directory(self, tmp_path: Path, bundle_dir: Path) -> None:
        provider = SysPathResourceProvider([str(tmp_path / "missing"), str(bundle_dir)])
        with provider.open(RESOURCE) as stream:
            assert stream.read().startswith(b"\x7fELF")

    def test_not_found_anywhere(self, tmp_path: Path) -> None:
        provider = SysPathResourceProvider([str(tmp_path)])
        assert not provider.exists(RESOURCE)
        with pytest.raises(ResourceNotFoundError):
            provider.open(RESOURCE)
