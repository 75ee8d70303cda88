"""Shared fixtures for nativeloader unit tests."""

from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from nativeloader.bootstrap.platform import OsFamily, PlatformKey
from nativeloader.bootstrap.resources import DirectoryResourceProvider
from nativeloader.config.models import LoaderConfig

LIBRARY_BYTES = b"\x7fELF fake shared object"


@pytest.fixture
def linux_amd64() -> PlatformKey:
    return PlatformKey(OsFamily.LINUX, "amd64")


@pytest.fixture
def bundle_dir(tmp_path: Path) -> Path:
    """Directory laid out like a bundle holding com.acme.codec/fastz."""
    root = tmp_path / "bundle"
    library_dir = root / "native" / "com" / "acme" / "codec" / "linux" / "amd64"
    library_dir.mkdir(parents=True)
    (library_dir / "fastz.so").write_bytes(LIBRARY_BYTES)
    (library_dir / "slowz.so").write_bytes(b"slow")
    return root


@pytest.fixture
def provider(bundle_dir: Path) -> DirectoryResourceProvider:
    return DirectoryResourceProvider(bundle_dir)


@pytest.fixture
def scratch_root(tmp_path: Path) -> Path:
    return tmp_path / "native_library_loader"


@pytest.fixture
def loader_config(scratch_root: Path) -> LoaderConfig:
    return LoaderConfig(scratch_root=scratch_root, install_signal_handler=False)


class RecordingLoadFunction:
    """Stand-in for ctypes.CDLL that records the paths it was given."""

    def __init__(self) -> None:
        self.calls: List[str] = []

    def __call__(self, path: str) -> object:
        self.calls.append(path)
        return object()


@pytest.fixture
def load_function() -> RecordingLoadFunction:
    return RecordingLoadFunction()
