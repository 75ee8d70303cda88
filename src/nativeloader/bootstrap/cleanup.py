"""Removal of extracted files and scratch directories.

Extracted libraries are disposable. :class:`ScratchCleanup` collects the
paths a process created and removes them, best effort, at interpreter exit
or when the process is terminated by SIGTERM.
"""

from __future__ import annotations

import atexit
import os
import signal
import sys
import threading
from pathlib import Path
from typing import Any, List, Optional

from nativeloader.core.logging import get_logger

LOGGER = get_logger(__name__)


def delete_directory(path: Path) -> None:
    """Recursively delete a directory tree.

    Post-order walk: the files of a directory are removed before the
    directory itself, bottom-up. Any error aborts the walk.

    Args:
        path: Directory to delete.

    Raises:
        OSError: If any file or directory cannot be removed.
    """
    LOGGER.debug(f"Delete: '{path}'")

    def _raise(error: OSError) -> None:
        raise error

    for dirpath, dirnames, filenames in os.walk(path, topdown=False, onerror=_raise):
        current = Path(dirpath)
        for filename in filenames:
            (current / filename).unlink()
        for dirname in dirnames:
            child = current / dirname
            # os.walk does not descend into symlinked directories
            if child.is_symlink():
                child.unlink()
        current.rmdir()

    LOGGER.debug(f"Deleted: '{path}'")


class ScratchCleanup:
    """Best-effort teardown of paths created by the extraction cache.

    Paths are removed in reverse registration order so files go before the
    directories that contain them.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._paths: List[Path] = []
        self._atexit_registered = False
        self._original_sigterm: Optional[Any] = None
        self._signal_handler_installed = False

    @property
    def paths(self) -> List[Path]:
        """Paths currently scheduled for removal."""
        with self._lock:
            return list(self._paths)

    def register(self, path: Path) -> None:
        """Schedule a file or directory for removal at exit."""
        with self._lock:
            if path not in self._paths:
                self._paths.append(path)
            if not self._atexit_registered:
                atexit.register(self.run)
                self._atexit_registered = True

    def run(self) -> None:
        """Remove every registered path, logging failures instead of raising."""
        with self._lock:
            paths = list(reversed(self._paths))
            self._paths.clear()

        for path in paths:
            try:
                if path.is_dir() and not path.is_symlink():
                    delete_directory(path)
                else:
                    path.unlink(missing_ok=True)
            except OSError as e:
                LOGGER.debug(f"Could not remove '{path}': {e}")

    def close(self) -> None:
        """Run the cleanup now and detach it from interpreter shutdown."""
        self.run()
        with self._lock:
            if self._atexit_registered:
                atexit.unregister(self.run)
                self._atexit_registered = False
        self.restore_signal_handler()

    def install_signal_handler(self) -> bool:
        """Run the cleanup when the process receives SIGTERM.

        Only installs when called from the main thread and when no other
        SIGTERM handler has been set by the application.

        Returns:
            True if the handler was installed.
        """
        if self._signal_handler_installed:
            return True
        if threading.current_thread() is not threading.main_thread():
            return False
        current = signal.getsignal(signal.SIGTERM)
        if current not in (signal.SIG_DFL, None):
            LOGGER.debug("SIGTERM handler already set, not installing scratch cleanup")
            return False
        self._original_sigterm = current
        signal.signal(signal.SIGTERM, self._signal_handler)
        self._signal_handler_installed = True
        return True

    def restore_signal_handler(self) -> None:
        """Restore the SIGTERM handler that was active before installation."""
        if not self._signal_handler_installed:
            return
        if threading.current_thread() is not threading.main_thread():
            return
        signal.signal(signal.SIGTERM, self._original_sigterm or signal.SIG_DFL)
        self._signal_handler_installed = False
        self._original_sigterm = None

    def _signal_handler(self, signum, frame) -> None:
        LOGGER.warning(f"Received signal {signum}, removing extracted native libraries...")
        self.run()
        self.restore_signal_handler()
        sys.exit(128 + signum)
