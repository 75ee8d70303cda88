"""Extraction cache for bundled native libraries.

Copies a bundled native library into a scratch directory owned by the
current process and remembers the resulting path, so each
(namespace, library) pair is extracted at most once per cache.

Scratch directories are indexed per namespace
(``<root>/com/acme/codec/0``, ``.../1``, ...). A stale directory left
behind by a crashed run is deleted and recreated; a directory that cannot
be deleted (for example because another live process still has a library
in it open) is skipped in favour of the next index. So is a candidate that
holds the scratch directory of another namespace in this cache.
"""

from __future__ import annotations

import shutil
import threading
from pathlib import Path
from typing import Dict, Optional

from nativeloader.bootstrap.cleanup import ScratchCleanup, delete_directory
from nativeloader.bootstrap.paths import ScratchPaths
from nativeloader.bootstrap.platform import PlatformKey, get_platform_info
from nativeloader.bootstrap.resources import (
    ResourceProvider,
    build_resource_path,
    library_file_name,
)
from nativeloader.core.errors import ScratchDirUnavailableError
from nativeloader.core.logging import get_logger
from nativeloader.core.models import LibraryKey

LOGGER = get_logger(__name__)


class ExtractionCache:
    """Materializes bundled native libraries on the local filesystem.

    Args:
        provider: Source of the bundled library bytes.
        paths: Scratch directory layout. Defaults to the system temp root.
        platform: Platform used to select binaries. Resolved lazily from the
            running process when omitted.
        cleanup: Teardown registry for extracted files and directories.
    """

    def __init__(
        self,
        provider: ResourceProvider,
        paths: Optional[ScratchPaths] = None,
        platform: Optional[PlatformKey] = None,
        cleanup: Optional[ScratchCleanup] = None,
    ) -> None:
        self._provider = provider
        self._paths = paths or ScratchPaths.default()
        self._platform = platform
        self._cleanup = cleanup or ScratchCleanup()
        self._lock = threading.Lock()
        self._libraries: Dict[LibraryKey, Path] = {}
        self._namespaces: Dict[str, Path] = {}

    @property
    def paths(self) -> ScratchPaths:
        return self._paths

    @property
    def provider(self) -> ResourceProvider:
        return self._provider

    @property
    def platform(self) -> PlatformKey:
        """Platform of the binaries this cache extracts."""
        if self._platform is None:
            self._platform = get_platform_info()
        return self._platform

    def lookup(self, namespace: str, library: str) -> Optional[Path]:
        """Return the extracted path of a library, without any I/O."""
        with self._lock:
            return self._libraries.get(LibraryKey(namespace, library))

    def namespace_dir(self, namespace: str) -> Optional[Path]:
        """Scratch directory in use for a namespace, if one was created."""
        with self._lock:
            return self._namespaces.get(namespace)

    def extract(self, namespace: str, library: str) -> Path:
        """Extract a bundled library, reusing an earlier extraction.

        Args:
            namespace: Dotted namespace of the caller.
            library: Library name without extension.

        Returns:
            Absolute path of the extracted library file.

        Raises:
            UnsupportedPlatformError: If the platform cannot be resolved.
            AbiDetectionError: If ARM float ABI probing fails.
            ScratchDirUnavailableError: If no scratch directory can be created.
            ResourceNotFoundError: If the bundled resource is absent.
            OSError: If copying the library fails.
        """
        key = LibraryKey(namespace, library)
        cached = self.lookup(namespace, library)
        if cached is not None:
            LOGGER.debug(f"Native library '{key}' already extracted to {cached}")
            return cached

        platform = self.platform
        resource_path = build_resource_path(namespace, library, platform)
        LOGGER.debug(
            f"Extract native library '{key}' from resource path: '{resource_path}'"
        )

        scratch_dir = self._get_scratch_dir(namespace)
        target = scratch_dir / library_file_name(library, platform)

        with self._provider.open(resource_path) as source:
            self._cleanup.register(target)
            with open(target, "wb") as destination:
                shutil.copyfileobj(source, destination)

        with self._lock:
            # First writer wins
            result = self._libraries.setdefault(key, target)

        LOGGER.debug(f"Native library '{key}' extracted to: '{result}'")
        return result

    def _get_scratch_dir(self, namespace: str) -> Path:
        with self._lock:
            existing = self._namespaces.get(namespace)
        if existing is not None:
            return existing

        created = self._create_scratch_dir(namespace)
        with self._lock:
            return self._namespaces.setdefault(namespace, created)

    def _create_scratch_dir(self, namespace: str) -> Path:
        """Create a fresh indexed scratch directory for a namespace.

        Raises:
            ScratchDirUnavailableError: If every index is unusable.
        """
        attempts = self._paths.MAX_SCRATCH_DIRS
        last_error: Optional[OSError] = None
        with self._lock:
            live = list(self._namespaces.values())

        for index in range(attempts):
            candidate = self._paths.scratch_dir(namespace, index)
            # "a.b" index 0 is the parent of namespace "a.b.0"'s directories
            if any(candidate == d or candidate in d.parents for d in live):
                LOGGER.debug(f"Scratch directory '{candidate}' holds another namespace, skipping")
                continue
            try:
                if candidate.exists():
                    delete_directory(candidate)
                LOGGER.debug(
                    f"Create scratch directory: '{candidate}' for namespace: '{namespace}'"
                )
                candidate.mkdir(parents=True)
            except OSError as e:
                LOGGER.debug(f"Scratch directory '{candidate}' unavailable: {e}")
                last_error = e
                continue

            self._cleanup.register(candidate)
            return candidate

        raise ScratchDirUnavailableError(namespace, attempts) from last_error

    def clear(self) -> None:
        """Remove all scratch directories and forget every extraction."""
        with self._lock:
            directories = list(self._namespaces.values())
            self._namespaces.clear()
            self._libraries.clear()

        for directory in directories:
            try:
                if directory.exists():
                    delete_directory(directory)
            except OSError as e:
                LOGGER.debug(f"Could not remove scratch directory '{directory}': {e}")
