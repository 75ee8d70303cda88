"""nativeloader - load native libraries bundled as package resources.

Native libraries are bundled per caller namespace, operating system and
CPU architecture::

    /native/com/acme/codec/linux/amd64/fastz.so

and extracted on first use into a scratch directory under the system temp
directory, then loaded with ``ctypes``.

Usage::

    import nativeloader

    lib = nativeloader.load_library("com.acme.codec", "fastz")
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from nativeloader.bootstrap.platform import OsFamily, PlatformKey, get_platform_info
from nativeloader.bootstrap.resources import (
    ArchiveResourceProvider,
    DirectoryResourceProvider,
    PackageResourceProvider,
    ResourceProvider,
    SysPathResourceProvider,
)
from nativeloader.core.errors import (
    AbiDetectionError,
    ConfigError,
    InvalidNamespaceError,
    LibraryLoadError,
    NativeLoaderError,
    ResourceNotFoundError,
    ScratchDirUnavailableError,
    UnsupportedPlatformError,
)
from nativeloader.loader import NativeLibraryLoader

__version__ = "0.1.0"


def load_library(namespace: str, library: str) -> Any:
    """Load a bundled native library with the process-wide loader.

    See :meth:`NativeLibraryLoader.load_library`.
    """
    return NativeLibraryLoader.default().load_library(namespace, library)


def extract_library(namespace: str, library: str) -> Path:
    """Extract a bundled native library with the process-wide loader.

    See :meth:`NativeLibraryLoader.extract_library`.
    """
    return NativeLibraryLoader.default().extract_library(namespace, library)


__all__ = [
    "load_library",
    "extract_library",
    "NativeLibraryLoader",
    "OsFamily",
    "PlatformKey",
    "get_platform_info",
    "ResourceProvider",
    "PackageResourceProvider",
    "DirectoryResourceProvider",
    "ArchiveResourceProvider",
    "SysPathResourceProvider",
    "NativeLoaderError",
    "InvalidNamespaceError",
    "UnsupportedPlatformError",
    "AbiDetectionError",
    "ResourceNotFoundError",
    "ScratchDirUnavailableError",
    "LibraryLoadError",
    "ConfigError",
]
