"""Tests for nativeloader.bootstrap.cache."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from nativeloader.bootstrap.cache import ExtractionCache
from nativeloader.bootstrap.cleanup import ScratchCleanup
from nativeloader.bootstrap.paths import ScratchPaths
from nativeloader.bootstrap.platform import OsFamily, PlatformKey
from nativeloader.bootstrap.resources import DirectoryResourceProvider
from nativeloader.core.errors import ResourceNotFoundError, ScratchDirUnavailableError


@pytest.fixture
def cleanup() -> ScratchCleanup:
    cleanup = ScratchCleanup()
    with patch("atexit.register"):
        yield cleanup
    cleanup.run()


@pytest.fixture
def cache(
    provider: DirectoryResourceProvider,
    scratch_root: Path,
    linux_amd64: PlatformKey,
    cleanup: ScratchCleanup,
) -> ExtractionCache:
    return ExtractionCache(
        provider,
        paths=ScratchPaths(scratch_root),
        platform=linux_amd64,
        cleanup=cleanup,
    )


class TestExtract:
    """Tests for ExtractionCache.extract."""

    def test_extracts_to_indexed_scratch_dir(self, cache: ExtractionCache, scratch_root: Path) -> None:
        path = cache.extract("com.acme.codec", "fastz")

        assert path == scratch_root / "com" / "acme" / "codec" / "0" / "fastz.so"
        assert path.read_bytes().startswith(b"\x7fELF")
        assert path.is_absolute()

    def test_second_call_returns_same_path_without_io(self, cache: ExtractionCache) -> None:
        first = cache.extract("com.acme.codec", "fastz")

        with patch.object(cache.provider, "open") as mock_open, \
                patch.object(cache, "_create_scratch_dir") as mock_create:
            second = cache.extract("com.acme.codec", "fastz")

        assert second == first
        mock_open.assert_not_called()
        mock_create.assert_not_called()

    def test_libraries_in_namespace_share_scratch_dir(self, cache: ExtractionCache) -> None:
        fastz = cache.extract("com.acme.codec", "fastz")
        slowz = cache.extract("com.acme.codec", "slowz")

        assert fastz.parent == slowz.parent
        assert cache.namespace_dir("com.acme.codec") == fastz.parent

    def test_lookup(self, cache: ExtractionCache) -> None:
        assert cache.lookup("com.acme.codec", "fastz") is None
        path = cache.extract("com.acme.codec", "fastz")
        assert cache.lookup("com.acme.codec", "fastz") == path
        assert cache.lookup("com.acme.codec", "FASTZ") is None

    def test_missing_resource(self, cache: ExtractionCache) -> None:
        with pytest.raises(ResourceNotFoundError) as exc_info:
            cache.extract("com.acme.codec", "absent")
        assert exc_info.value.resource_path == "/native/com/acme/codec/linux/amd64/absent.so"
        assert cache.lookup("com.acme.codec", "absent") is None

    def test_uses_platform_extension(
        self, tmp_path: Path, scratch_root: Path, cleanup: ScratchCleanup
    ) -> None:
        library_dir = tmp_path / "win" / "native" / "acme" / "windows" / "x86"
        library_dir.mkdir(parents=True)
        (library_dir / "fastz.dll").write_bytes(b"MZ")
        cache = ExtractionCache(
            DirectoryResourceProvider(tmp_path / "win"),
            paths=ScratchPaths(scratch_root),
            platform=PlatformKey(OsFamily.WINDOWS, "x86"),
            cleanup=cleanup,
        )

        path = cache.extract("acme", "fastz")

        assert path.name == "fastz.dll"

    def test_registers_extracted_file_for_cleanup(
        self, cache: ExtractionCache, cleanup: ScratchCleanup
    ) -> None:
        path = cache.extract("com.acme.codec", "fastz")
        assert path in cleanup.paths
        assert path.parent in cleanup.paths

    def test_resolves_platform_lazily(
        self, provider: DirectoryResourceProvider, scratch_root: Path, linux_amd64: PlatformKey
    ) -> None:
        with patch(
            "nativeloader.bootstrap.cache.get_platform_info", return_value=linux_amd64
        ) as mock_info:
            cache = ExtractionCache(provider, paths=ScratchPaths(scratch_root))
            mock_info.assert_not_called()
            assert cache.platform == linux_amd64
        mock_info.assert_called_once()


class TestScratchDirRotation:
    """Tests for scratch directory creation and index rotation."""

    def test_stale_directory_is_replaced(self, cache: ExtractionCache, scratch_root: Path) -> None:
        stale = scratch_root / "com" / "acme" / "codec" / "0"
        (stale / "nested").mkdir(parents=True)
        (stale / "old.so").write_bytes(b"old")
        (stale / "nested" / "older.so").write_bytes(b"older")

        path = cache.extract("com.acme.codec", "fastz")

        assert path.parent == stale
        assert not (stale / "old.so").exists()
        assert not (stale / "nested").exists()

    def test_undeletable_directory_falls_back_to_next_index(
        self, cache: ExtractionCache, scratch_root: Path
    ) -> None:
        namespace_dir = scratch_root / "com" / "acme" / "codec"
        (namespace_dir / "0").mkdir(parents=True)

        locked = namespace_dir / "0"

        def fake_delete(path: Path) -> None:
            if path == locked:
                raise PermissionError("in use")

        with patch("nativeloader.bootstrap.cache.delete_directory", side_effect=fake_delete):
            path = cache.extract("com.acme.codec", "fastz")

        assert path.parent == namespace_dir / "1"
        assert locked.exists()

    def test_all_indexes_unavailable(self, cache: ExtractionCache, scratch_root: Path) -> None:
        namespace_dir = scratch_root / "com" / "acme" / "codec"
        for index in range(20):
            (namespace_dir / str(index)).mkdir(parents=True)

        failing = MagicMock(side_effect=PermissionError("in use"))
        with patch("nativeloader.bootstrap.cache.delete_directory", failing):
            with pytest.raises(ScratchDirUnavailableError) as exc_info:
                cache.extract("com.acme.codec", "fastz")

        assert failing.call_count == 20
        assert exc_info.value.attempts == 20
        assert isinstance(exc_info.value.__cause__, PermissionError)
        assert cache.namespace_dir("com.acme.codec") is None

    def test_twenty_first_index_never_tried(self, cache: ExtractionCache, scratch_root: Path) -> None:
        namespace_dir = scratch_root / "com" / "acme" / "codec"
        for index in range(20):
            (namespace_dir / str(index)).mkdir(parents=True)

        with patch(
            "nativeloader.bootstrap.cache.delete_directory",
            side_effect=PermissionError("in use"),
        ):
            with pytest.raises(ScratchDirUnavailableError):
                cache.extract("com.acme.codec", "fastz")

        assert not (namespace_dir / "20").exists()


    def test_candidate_holding_other_namespace_is_skipped(
        self, cache: ExtractionCache, scratch_root: Path, tmp_path: Path
    ) -> None:
        nested_dir = tmp_path / "bundle" / "native" / "com" / "acme" / "codec" / "0" / "linux" / "amd64"
        nested_dir.mkdir(parents=True)
        (nested_dir / "inner.so").write_bytes(b"inner")

        inner = cache.extract("com.acme.codec.0", "inner")
        fastz = cache.extract("com.acme.codec", "fastz")

        assert inner == scratch_root / "com" / "acme" / "codec" / "0" / "0" / "inner.so"
        assert fastz.parent == scratch_root / "com" / "acme" / "codec" / "1"
        assert cache.extract("com.acme.codec.0", "inner") == inner
        assert inner.read_bytes() == b"inner"

    def test_nested_namespace_after_parent_namespace(
        self, cache: ExtractionCache, scratch_root: Path, tmp_path: Path
    ) -> None:
        nested_dir = tmp_path / "bundle" / "native" / "com" / "acme" / "codec" / "0" / "linux" / "amd64"
        nested_dir.mkdir(parents=True)
        (nested_dir / "inner.so").write_bytes(b"inner")

        fastz = cache.extract("com.acme.codec", "fastz")
        inner = cache.extract("com.acme.codec.0", "inner")

        assert fastz.exists()
        assert inner.exists()
        assert fastz.parent == scratch_root / "com" / "acme" / "codec" / "0"


class TestClear:
    """Tests for ExtractionCache.clear."""

    def test_removes_directories_and_forgets(self, cache: ExtractionCache) -> None:
        path = cache.extract("com.acme.codec", "fastz")

        cache.clear()

        assert not path.parent.exists()
        assert cache.lookup("com.acme.codec", "fastz") is None
        assert cache.namespace_dir("com.acme.codec") is None
