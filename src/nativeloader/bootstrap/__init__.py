"""
Bootstrap module for native library materialization.

This module handles:
- Platform detection (OS family + architecture, ARM float ABI)
- Bundled resource lookup (/native/<namespace>/<os>/<arch>/<library>.<ext>)
- Scratch directory management (<tmp>/native_library_loader/)
- Extraction caching and exit-time cleanup
"""

from nativeloader.bootstrap.cache import ExtractionCache
from nativeloader.bootstrap.paths import ScratchPaths, get_scratch_root
from nativeloader.bootstrap.platform import OsFamily, PlatformKey, get_platform_info
from nativeloader.bootstrap.resources import build_resource_path

__all__ = [
    "ExtractionCache",
    "ScratchPaths",
    "get_scratch_root",
    "OsFamily",
    "PlatformKey",
    "get_platform_info",
    "build_resource_path",
]
