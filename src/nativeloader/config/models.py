"""Configuration data models for nativeloader.

Defines typed configuration classes that represent the
``native_library_loader.yml`` structure and the equivalent
environment variables.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

# Prefix shared by environment keys and the config file name
PROPERTY_KEY = "native_library_loader"
PATH_KEY = "path"
ARCH_DETECT_KEY = "arch_detect"


@dataclass
class OverrideConfig:
    """Custom resource location for one namespace.

    Example:
        overrides:
          com.acme.codec:
            path: /opt/acme/lib
            arch_detect: true   # expect <path>/<os>/<arch>/ beneath path
    """

    path: Optional[Path] = None
    arch_detect: bool = False


@dataclass
class LoaderConfig:
    """Complete nativeloader configuration.

    Example native_library_loader.yml:
        scratch_root: /var/tmp/native
        install_signal_handler: true
        overrides:
          com.acme.codec:
            path: ${ACME_HOME}/lib
            arch_detect: true
    """

    # Root scratch directory (None = <tmp>/native_library_loader)
    scratch_root: Optional[Path] = None

    # Remove extracted files when the process receives SIGTERM
    install_signal_handler: bool = True

    # Custom resource overrides keyed by namespace
    overrides: Dict[str, OverrideConfig] = field(default_factory=dict)

    # Metadata (not from YAML, set by loader)
    _config_sources: List[str] = field(default_factory=list, repr=False)

    def get_override(self, namespace: str) -> Optional[OverrideConfig]:
        """Get the override configured for a namespace, if any.

        Args:
            namespace: Dotted namespace.

        Returns:
            OverrideConfig with a path, or None.
        """
        override = self.overrides.get(namespace)
        if override is None or override.path is None:
            return None
        return override
