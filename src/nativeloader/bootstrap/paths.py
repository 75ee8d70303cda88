"""Path management for the native library scratch area.

Handles the ``<tmp>/native_library_loader`` directory structure and path
resolution. Each namespace gets indexed scratch directories beneath the
root::

    <tmp>/native_library_loader/
        com/acme/codec/
            0/fastz.so      - scratch directory owned by one process
            1/              - fallback when 0 is held by another process
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, Optional, Union

# Fixed directory name under the system temp directory
DEFAULT_ROOT_DIR_NAME = "native_library_loader"

# Environment variable to override the scratch root
NATIVE_LIBRARY_LOADER_TMPDIR_ENV = "NATIVE_LIBRARY_LOADER_TMPDIR"


def get_scratch_root() -> Path:
    """Get the root scratch directory path.

    Resolution order:
    1. NATIVE_LIBRARY_LOADER_TMPDIR environment variable (if set)
    2. <system temp dir>/native_library_loader (default)

    Returns:
        Path to the root scratch directory.
    """
    env_root = os.environ.get(NATIVE_LIBRARY_LOADER_TMPDIR_ENV)
    if env_root:
        return Path(env_root)
    return Path(tempfile.gettempdir()) / DEFAULT_ROOT_DIR_NAME


@dataclass
class ScratchPaths:
    """Manages paths within the root scratch directory."""

    root: Path

    # Number of indexed scratch directories tried per namespace
    MAX_SCRATCH_DIRS: ClassVar[int] = 20

    @classmethod
    def default(cls, root: Optional[Union[str, Path]] = None) -> "ScratchPaths":
        """Create paths from an explicit root or the default scratch root."""
        return cls(Path(os.path.abspath(root or get_scratch_root())))

    def namespace_dir(self, namespace: str) -> Path:
        """Directory holding all scratch directories of a namespace.

        Args:
            namespace: Dotted namespace, e.g. ``"com.acme.codec"``.

        Returns:
            ``<root>/com/acme/codec``.
        """
        return self.root.joinpath(*[part for part in namespace.split(".") if part])

    def scratch_dir(self, namespace: str, index: int) -> Path:
        """Indexed scratch directory candidate for a namespace."""
        return self.namespace_dir(namespace) / str(index)
