"""Core data models shared across nativeloader."""

from __future__ import annotations

import re
from dataclasses import dataclass

from nativeloader.core.errors import InvalidNamespaceError

# Dotted identifier, e.g. "com.acme.codec"; segments are non-empty
NAMESPACE_PATTERN = re.compile(r"\w+(?:\.\w+)*")


def validate_namespace(namespace: str) -> str:
    """Check a namespace against the dotted-identifier syntax.

    Args:
        namespace: Namespace supplied by the caller.

    Returns:
        The namespace, unchanged.

    Raises:
        InvalidNamespaceError: If the namespace is not a dot-separated
            sequence of non-empty ``\\w+`` segments.
    """
    if not isinstance(namespace, str) or not NAMESPACE_PATTERN.fullmatch(namespace):
        raise InvalidNamespaceError(str(namespace))
    return namespace


@dataclass(frozen=True)
class LibraryKey:
    """Identity of a native library: caller namespace plus library name.

    Comparison is by exact, case-sensitive string pair.
    """

    namespace: str
    library: str

    def __str__(self) -> str:
        return f"{self.namespace}.{self.library}"
