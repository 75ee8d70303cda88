"""Custom resource override.

Operators can point a namespace at a directory that already holds its
native libraries, bypassing extraction:

    native_library_loader_com.acme.codec_path=/opt/acme/lib
    native_library_loader_com.acme.codec_arch_detect=true

With ``arch_detect`` the library is expected at
``<path>/<os>/<arch>/<library>.<ext>``, otherwise at
``<path>/<library>.<ext>``. The override is advisory: a missing file is
logged and the caller falls back to the bundled resource.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Optional

from nativeloader.bootstrap.platform import PlatformKey
from nativeloader.bootstrap.resources import library_file_name
from nativeloader.config.loader import get_override_config
from nativeloader.config.models import LoaderConfig, OverrideConfig
from nativeloader.core.logging import get_logger
from nativeloader.core.models import LibraryKey

LOGGER = get_logger(__name__)


def override_candidate(
    library: str,
    platform: PlatformKey,
    override: OverrideConfig,
) -> Path:
    """Path where an override expects a library file."""
    assert override.path is not None
    file_name = library_file_name(library, platform)
    if override.arch_detect:
        return override.path / platform.os / platform.architecture / file_name
    return override.path / file_name


def resolve_override(
    namespace: str,
    library: str,
    platform: PlatformKey,
    config: Optional[LoaderConfig] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[Path]:
    """Find a library in the namespace's custom resource directory.

    Args:
        namespace: Dotted namespace.
        library: Library name without extension.
        platform: Resolved platform.
        config: Loaded configuration.
        environ: Environment mapping (defaults to ``os.environ``).

    Returns:
        Path of the existing library file, or None when no override is
        configured or the file is not there.
    """
    override = get_override_config(namespace, config, environ)
    if override is None:
        return None

    key = LibraryKey(namespace, library)
    LOGGER.info(f"Load native library: '{key}' from custom resource")

    candidate = override_candidate(library, platform, override)
    if not candidate.is_file():
        LOGGER.warning(
            f"Native library: '{key}' not available at custom resource: '{candidate}'"
        )
        return None

    return candidate.absolute()
