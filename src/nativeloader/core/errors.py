"""Error taxonomy for nativeloader.

Every failure surfaced by :mod:`nativeloader` derives from
:class:`NativeLoaderError`. Classes also inherit the closest builtin so
callers that already catch ``OSError`` or ``ValueError`` keep working.
"""

from __future__ import annotations

from typing import Optional


class NativeLoaderError(Exception):
    """Base class for all nativeloader errors."""


class InvalidNamespaceError(NativeLoaderError, ValueError):
    """Namespace does not match the dotted-identifier syntax."""

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace
        super().__init__(
            f"Invalid namespace: '{namespace}' - expected a dotted name like "
            "'com.company.library'"
        )


class UnsupportedPlatformError(NativeLoaderError):
    """Operating system does not belong to any known OS family."""

    def __init__(self, raw_os: str) -> None:
        self.raw_os = raw_os
        super().__init__(f"Unsupported operating system: '{raw_os}'")


class AbiDetectionError(NativeLoaderError):
    """Probing the ARM float ABI of the running process failed."""


class ResourceNotFoundError(NativeLoaderError, FileNotFoundError):
    """The bundled resource is absent at the computed lookup path."""

    def __init__(self, resource_path: str, source: Optional[str] = None) -> None:
        self.resource_path = resource_path
        self.source = source
        message = f"Native resource not found: '{resource_path}'"
        if source:
            message += f" in {source}"
        super().__init__(message)


class ScratchDirUnavailableError(NativeLoaderError, OSError):
    """No scratch directory could be created for a namespace."""

    def __init__(self, namespace: str, attempts: int) -> None:
        self.namespace = namespace
        self.attempts = attempts
        super().__init__(
            f"Creating a scratch directory for '{namespace}' failed after "
            f"{attempts} attempts"
        )


class LibraryLoadError(NativeLoaderError, OSError):
    """The dynamic loader rejected a native library file."""

    def __init__(self, namespace: str, library: str, path: Optional[str] = None) -> None:
        self.namespace = namespace
        self.library = library
        self.path = path
        message = f"Loading the library '{namespace}.{library}' has failed"
        if path:
            message += f" (path: {path})"
        super().__init__(message)

    def __str__(self) -> str:
        cause = self.__cause__
        if cause is not None:
            return f"{self.args[0]}: {cause}"
        return self.args[0]


class ConfigError(NativeLoaderError):
    """Configuration loading or parsing error."""
