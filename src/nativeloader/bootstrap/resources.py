"""Bundled resource lookup for native libraries.

Native libraries are bundled under a fixed layout::

    /native/<namespace as path>/<os>/<architecture>/<library>.<ext>

for example ``/native/com/acme/codec/linux/amd64/fastz.so``. The lookup
path is a key into a resource provider, not a filesystem path. Providers
expose the bundled bytes as a readable binary stream.
"""

from __future__ import annotations

import io
import sys
import zipfile
from abc import ABC, abstractmethod
from importlib import resources
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Sequence, Union

from nativeloader.bootstrap.platform import PlatformKey
from nativeloader.core.errors import ResourceNotFoundError
from nativeloader.core.logging import get_logger

LOGGER = get_logger(__name__)

# First segment of every bundled native resource path
RESOURCE_ROOT = "native"


def library_file_name(library: str, platform: PlatformKey) -> str:
    """File name of a native library on the given platform."""
    return f"{library}.{platform.extension}"


def build_resource_path(namespace: str, library: str, platform: PlatformKey) -> str:
    """Compose the bundled resource path of a native library.

    Args:
        namespace: Dotted namespace, e.g. ``"com.acme.codec"``.
        library: Library name without extension, e.g. ``"fastz"``.
        platform: Resolved platform.

    Returns:
        Path string such as ``/native/com/acme/codec/linux/amd64/fastz.so``.
    """
    return "/".join([
        "",
        RESOURCE_ROOT,
        namespace.replace(".", "/"),
        platform.os,
        platform.architecture,
        library_file_name(library, platform),
    ])


def _relative_parts(resource_path: str) -> list:
    return [part for part in resource_path.split("/") if part]


class ResourceProvider(ABC):
    """Source of bundled native library bytes keyed by resource path."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Human readable name of the resource source."""

    @abstractmethod
    def exists(self, resource_path: str) -> bool:
        """Check whether a resource is present."""

    @abstractmethod
    def _open(self, resource_path: str) -> BinaryIO:
        """Open an existing resource for reading."""

    def open(self, resource_path: str) -> BinaryIO:
        """Open a resource as a binary stream.

        Raises:
            ResourceNotFoundError: If the resource is absent.
        """
        if not self.exists(resource_path):
            raise ResourceNotFoundError(resource_path, self.description)
        LOGGER.debug(f"Opening resource {resource_path} from {self.description}")
        return self._open(resource_path)


class PackageResourceProvider(ResourceProvider):
    """Resources shipped inside an installed Python package.

    Works for packages installed as plain directories as well as those
    imported from zip archives.
    """

    def __init__(self, package: str) -> None:
        self._package = package

    @property
    def description(self) -> str:
        return f"package '{self._package}'"

    def _traversable(self, resource_path: str):
        node = resources.files(self._package)
        for part in _relative_parts(resource_path):
            node = node.joinpath(part)
        return node

    def exists(self, resource_path: str) -> bool:
        try:
            return self._traversable(resource_path).is_file()
        except (ModuleNotFoundError, FileNotFoundError, TypeError):
            return False

    def _open(self, resource_path: str) -> BinaryIO:
        return self._traversable(resource_path).open("rb")


class DirectoryResourceProvider(ResourceProvider):
    """Resources laid out in a plain directory tree."""

    def __init__(self, root: Union[str, Path]) -> None:
        self._root = Path(root)

    @property
    def description(self) -> str:
        return f"directory '{self._root}'"

    def _path(self, resource_path: str) -> Path:
        return self._root.joinpath(*_relative_parts(resource_path))

    def exists(self, resource_path: str) -> bool:
        return self._path(resource_path).is_file()

    def _open(self, resource_path: str) -> BinaryIO:
        return open(self._path(resource_path), "rb")


class ArchiveResourceProvider(ResourceProvider):
    """Resources stored inside a zip-format archive (zip, wheel, jar)."""

    def __init__(self, archive: Union[str, Path]) -> None:
        self._archive = Path(archive)

    @property
    def description(self) -> str:
        return f"archive '{self._archive}'"

    def _member(self, resource_path: str) -> str:
        return "/".join(_relative_parts(resource_path))

    def exists(self, resource_path: str) -> bool:
        if not self._archive.is_file():
            return False
        with zipfile.ZipFile(self._archive) as archive:
            try:
                archive.getinfo(self._member(resource_path))
            except KeyError:
                return False
        return True

    def _open(self, resource_path: str) -> BinaryIO:
        # Archive handle is closed before the stream is returned
        with zipfile.ZipFile(self._archive) as archive:
            data = archive.read(self._member(resource_path))
        return io.BytesIO(data)


class SysPathResourceProvider(ResourceProvider):
    """Resources found on the import path.

    Each ``sys.path`` entry is searched in order: directories directly,
    zip-format files (eggs, zipped wheels, zipapps) as archives. The first
    entry holding the resource wins.
    """

    def __init__(self, search_path: Optional[Sequence[str]] = None) -> None:
        self._search_path = search_path

    @property
    def description(self) -> str:
        return "sys.path"

    def _providers(self) -> Iterator[ResourceProvider]:
        entries = sys.path if self._search_path is None else self._search_path
        for entry in entries:
            path = Path(entry or ".")
            if path.is_dir():
                yield DirectoryResourceProvider(path)
            elif path.is_file() and zipfile.is_zipfile(path):
                yield ArchiveResourceProvider(path)

    def _find(self, resource_path: str) -> Optional[ResourceProvider]:
        for provider in self._providers():
            if provider.exists(resource_path):
                return provider
        return None

    def exists(self, resource_path: str) -> bool:
        return self._find(resource_path) is not None

    def _open(self, resource_path: str) -> BinaryIO:
        provider = self._find(resource_path)
        if provider is None:
            raise ResourceNotFoundError(resource_path, self.description)
        return provider.open(resource_path)
