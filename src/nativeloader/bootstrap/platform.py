"""Platform detection for native library selection.

Maps raw operating-system and CPU-architecture strings onto the
(OS family, architecture) pair that names a directory in the bundled
resource layout. ARM needs extra care: hard-float (``armhf``) and
soft-float (``armel``) binaries are not interchangeable, so the float
ABI of the running executable is read from its ELF attributes.
"""

from __future__ import annotations

import platform
import subprocess
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Callable, Optional

from nativeloader.core.errors import AbiDetectionError, UnsupportedPlatformError
from nativeloader.core.logging import get_logger

LOGGER = get_logger(__name__)

# readelf prints this attribute only for hard-float executables
HF_ABI_SUPPORT = "Tag_ABI_VFP_args: VFP registers"

READELF_COMMAND = ["readelf", "-A", "/proc/self/exe"]

# Python reports some systems under names the marker table does not know
_RAW_OS_ALIASES = {
    "darwin": "Mac OS X",
    "sunos": "Solaris",
}

_RAW_ARCH_ALIASES = {
    "x86_64": "amd64",
    "arm64": "aarch64",
    "i686": "i386",
    "i586": "i386",
}


class OsFamily(Enum):
    """Supported operating system families.

    Each member carries the marker matched against the raw OS name (also the
    directory name in the resource layout) and the file extension of native
    libraries on that system.
    """

    WINDOWS = ("windows", "dll")
    LINUX = ("linux", "so")
    SOLARIS = ("solaris", "so")
    MAC_OS = ("os x", "jnilib")

    def __init__(self, marker: str, extension: str) -> None:
        self.marker = marker
        self.extension = extension


@dataclass(frozen=True)
class PlatformKey:
    """Resolved platform: OS family plus lowercase architecture token."""

    os_family: OsFamily
    architecture: str

    @property
    def os(self) -> str:
        """Directory name of the OS family in the resource layout."""
        return self.os_family.marker

    @property
    def extension(self) -> str:
        """Native library file extension for this platform."""
        return self.os_family.extension

    def __str__(self) -> str:
        return f"{self.os}/{self.architecture}"


def resolve_os_family(raw_os: str) -> OsFamily:
    """Match a raw OS name against the known family markers.

    Matching is a case-insensitive substring test, in declaration order.

    Raises:
        UnsupportedPlatformError: If no marker matches.
    """
    lowered = raw_os.lower()
    for family in OsFamily:
        if family.marker in lowered:
            return family
    raise UnsupportedPlatformError(raw_os)


def resolve_platform(raw_os: str, architecture: str) -> PlatformKey:
    """Build a PlatformKey from a raw OS name and a resolved architecture.

    Args:
        raw_os: OS name such as ``"Linux"`` or ``"Windows 10"``.
        architecture: Architecture token from :func:`resolve_architecture`.

    Raises:
        UnsupportedPlatformError: If the OS matches no known family.
    """
    return PlatformKey(resolve_os_family(raw_os), architecture.lower())


def is_hard_float_abi() -> bool:
    """Check whether the running executable uses the ARM hard-float ABI.

    Returns:
        True if the hard-float VFP attribute is present, False otherwise.

    Raises:
        AbiDetectionError: If readelf is unavailable or fails.
    """
    LOGGER.debug(f"Probing float ABI: {' '.join(READELF_COMMAND)}")
    try:
        result = subprocess.run(
            READELF_COMMAND,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        raise AbiDetectionError(f"The ABI request has failed: {e}") from e

    if result.returncode != 0:
        raise AbiDetectionError(
            f"The ABI request has failed (exit code {result.returncode}): "
            f"{result.stderr.strip()}"
        )

    return any(HF_ABI_SUPPORT in line for line in result.stdout.splitlines())


def resolve_architecture(
    raw_arch: str,
    abi_probe: Optional[Callable[[], bool]] = None,
) -> str:
    """Resolve a raw architecture string into a layout token.

    ARM architectures become ``armhf`` or ``armel`` depending on the float
    ABI; everything else is returned lowercased.

    Args:
        raw_arch: Architecture such as ``"amd64"`` or ``"armv7l"``.
        abi_probe: Callable returning True for hard-float. Defaults to
            :func:`is_hard_float_abi`.

    Raises:
        AbiDetectionError: If the ABI probe fails.
    """
    lowered = raw_arch.lower()
    if "arm" not in lowered:
        return lowered

    probe = abi_probe or is_hard_float_abi
    try:
        hard_float = probe()
    except AbiDetectionError:
        raise
    except Exception as e:
        raise AbiDetectionError(f"Detecting ARM architecture has failed: {e}") from e

    return "armhf" if hard_float else "armel"


def _raw_os_name() -> str:
    system = platform.system()
    return _RAW_OS_ALIASES.get(system.lower(), system)


def _raw_architecture() -> str:
    machine = platform.machine()
    return _RAW_ARCH_ALIASES.get(machine.lower(), machine)


@lru_cache(maxsize=1)
def get_platform_info() -> PlatformKey:
    """Resolve the platform of the running process.

    The result is computed once per process and reused afterwards.

    Raises:
        UnsupportedPlatformError: If the OS is not supported.
        AbiDetectionError: If ARM float ABI probing fails.
    """
    raw_os = _raw_os_name()
    family = resolve_os_family(raw_os)
    architecture = resolve_architecture(_raw_architecture())
    info = PlatformKey(family, architecture)
    LOGGER.info(f"OS: {raw_os}")
    LOGGER.info(f"Architecture: {architecture}")
    return info
