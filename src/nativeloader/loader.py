"""Load coordinator for bundled native libraries.

:class:`NativeLibraryLoader` is the entry point applications use:

    loader = NativeLibraryLoader(PackageResourceProvider("acme_codec"))
    lib = loader.load_library("com.acme.codec", "fastz")

Loading resolves a local file (custom resource override first, then the
extraction cache), hands it to the dynamic loader and returns the handle.
All load and extract operations in the process are serialized by a single
lock.
"""

from __future__ import annotations

import ctypes
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from nativeloader.bootstrap.cache import ExtractionCache
from nativeloader.bootstrap.cleanup import ScratchCleanup
from nativeloader.bootstrap.paths import ScratchPaths
from nativeloader.bootstrap.platform import PlatformKey
from nativeloader.bootstrap.resources import ResourceProvider, SysPathResourceProvider
from nativeloader.config.loader import load_config
from nativeloader.config.models import LoaderConfig
from nativeloader.core.errors import LibraryLoadError
from nativeloader.core.logging import get_logger
from nativeloader.core.models import LibraryKey, validate_namespace
from nativeloader.override import resolve_override

LOGGER = get_logger(__name__)

LoadFunction = Callable[[str], Any]


class NativeLibraryLoader:
    """Resolves, extracts and loads namespaced native libraries.

    Args:
        provider: Source of bundled library bytes.
        config: Loader configuration. Loaded from the environment and
            config file when omitted.
        platform: Platform override, mainly for tests. Detected from the
            running process when omitted.
        load_function: Dynamic-loading primitive called with the absolute
            library path. Defaults to ``ctypes.CDLL``.
        environ: Environment consulted for per-namespace overrides.
    """

    # Serializes loading across every loader in the process
    _lock = threading.RLock()

    _default: Optional["NativeLibraryLoader"] = None
    _default_lock = threading.Lock()

    def __init__(
        self,
        provider: ResourceProvider,
        config: Optional[LoaderConfig] = None,
        platform: Optional[PlatformKey] = None,
        load_function: LoadFunction = ctypes.CDLL,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._config = config if config is not None else load_config(environ=environ)
        self._environ = environ
        self._load_function = load_function
        self._cleanup = ScratchCleanup()
        self._cache = ExtractionCache(
            provider,
            paths=ScratchPaths.default(self._config.scratch_root),
            platform=platform,
            cleanup=self._cleanup,
        )
        self._overrides: Dict[LibraryKey, Path] = {}
        self._handles: Dict[LibraryKey, Any] = {}

        if self._config.install_signal_handler:
            self._cleanup.install_signal_handler()

    @classmethod
    def default(cls, provider: Optional[ResourceProvider] = None) -> "NativeLibraryLoader":
        """Return the process-wide loader, creating it on first use.

        The provider is only used when the loader is first created; it
        defaults to searching the import path.
        """
        with cls._default_lock:
            if cls._default is None:
                cls._default = cls(provider or SysPathResourceProvider())
            return cls._default

    @property
    def config(self) -> LoaderConfig:
        return self._config

    @property
    def cache(self) -> ExtractionCache:
        return self._cache

    @property
    def platform(self) -> PlatformKey:
        return self._cache.platform

    def extract_library(self, namespace: str, library: str) -> Path:
        """Extract a bundled library without loading it.

        Args:
            namespace: Dotted namespace, e.g. ``"com.acme.codec"``.
            library: Library name without extension.

        Returns:
            Absolute path of the extracted file.

        Raises:
            InvalidNamespaceError: If the namespace is malformed.
            NativeLoaderError: Any platform, resource or scratch failure.
        """
        validate_namespace(namespace)
        with self._lock:
            return self._cache.extract(namespace, library)

    def load_library(self, namespace: str, library: str) -> Any:
        """Load a native library, extracting it first if needed.

        Args:
            namespace: Dotted namespace, e.g. ``"com.acme.codec"``.
            library: Library name without extension.

        Returns:
            Handle returned by the load function (a ``ctypes.CDLL`` by
            default). Repeated calls return the same handle.

        Raises:
            InvalidNamespaceError: If the namespace is malformed.
            LibraryLoadError: If the dynamic loader rejects the file.
            NativeLoaderError: Any platform, resource or scratch failure.
        """
        validate_namespace(namespace)
        key = LibraryKey(namespace, library)

        with self._lock:
            handle = self._handles.get(key)
            if handle is not None:
                LOGGER.debug(f"Native library: '{key}' already loaded")
                return handle

            LOGGER.info(f"Load native library: '{key}'")
            path = self._resolve_path(key)
            LOGGER.debug(f"Path to native library: '{path}'")

            try:
                handle = self._load_function(str(path))
            except Exception as e:
                raise LibraryLoadError(namespace, library, str(path)) from e

            self._handles[key] = handle
            LOGGER.info(f"Native library: '{key}' loaded")
            return handle

    def _resolve_path(self, key: LibraryKey) -> Path:
        path = self._overrides.get(key) or self._cache.lookup(key.namespace, key.library)
        if path is not None:
            return path

        path = resolve_override(
            key.namespace,
            key.library,
            self.platform,
            config=self._config,
            environ=self._environ,
        )
        if path is not None:
            self._overrides[key] = path
            return path

        LOGGER.info(f"Load native library: '{key}' from bundled resource")
        return self._cache.extract(key.namespace, key.library)

    def close(self) -> None:
        """Remove extracted files and forget loaded libraries.

        Libraries already mapped into the process stay loaded.
        """
        with self._lock:
            self._handles.clear()
            self._overrides.clear()
            self._cache.clear()
            self._cleanup.close()

    def __enter__(self) -> "NativeLibraryLoader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
