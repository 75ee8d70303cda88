"""Configuration loading for nativeloader.

Supports native_library_loader.yml files and per-namespace environment
keys (``native_library_loader_<namespace>_path`` and
``native_library_loader_<namespace>_arch_detect``).
"""

from nativeloader.config.loader import get_override_config, load_config
from nativeloader.config.models import LoaderConfig, OverrideConfig

__all__ = [
    "LoaderConfig",
    "OverrideConfig",
    "get_override_config",
    "load_config",
]
