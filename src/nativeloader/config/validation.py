"""Configuration validation for nativeloader.

Warns on unknown or mistyped keys instead of failing, so a typo in a
config file never prevents a library from loading.
"""

from __future__ import annotations

from dataclasses import dataclass
from difflib import get_close_matches
from typing import Any, Dict, List, Optional, Set

from nativeloader.core.logging import get_logger
from nativeloader.core.models import NAMESPACE_PATTERN

LOGGER = get_logger(__name__)

# Valid top-level keys
VALID_TOP_LEVEL_KEYS: Set[str] = {
    "scratch_root",
    "install_signal_handler",
    "overrides",
}

# Valid keys under overrides.<namespace>
VALID_OVERRIDE_KEYS: Set[str] = {
    "path",
    "arch_detect",
}


@dataclass
class ConfigValidationWarning:
    """A validation warning for configuration."""

    message: str
    source: str
    key: Optional[str] = None
    suggestion: Optional[str] = None


def validate_config(
    data: Dict[str, Any],
    source: str,
) -> List[ConfigValidationWarning]:
    """Validate a configuration dictionary.

    Does not raise exceptions - returns (and logs) warnings instead.

    Args:
        data: Config dictionary to validate.
        source: Source file path for warning messages.

    Returns:
        List of validation warnings.
    """
    warnings: List[ConfigValidationWarning] = []

    if not isinstance(data, dict):
        warnings.append(ConfigValidationWarning(
            message=f"Config must be a mapping, got {type(data).__name__}",
            source=source,
        ))
        return warnings

    for key in data.keys():
        if key not in VALID_TOP_LEVEL_KEYS:
            _add(warnings, ConfigValidationWarning(
                message=f"Unknown top-level key '{key}'",
                source=source,
                key=key,
                suggestion=_suggest_key(key, VALID_TOP_LEVEL_KEYS),
            ))

    scratch_root = data.get("scratch_root")
    if scratch_root is not None and not isinstance(scratch_root, str):
        _add(warnings, ConfigValidationWarning(
            message=f"'scratch_root' must be a string, got {type(scratch_root).__name__}",
            source=source,
            key="scratch_root",
        ))

    overrides = data.get("overrides")
    if overrides is not None:
        if not isinstance(overrides, dict):
            _add(warnings, ConfigValidationWarning(
                message=f"'overrides' must be a mapping, got {type(overrides).__name__}",
                source=source,
                key="overrides",
            ))
        else:
            for namespace, override in overrides.items():
                warnings.extend(_validate_override(str(namespace), override, source))

    return warnings


def _validate_override(
    namespace: str,
    override: Any,
    source: str,
) -> List[ConfigValidationWarning]:
    warnings: List[ConfigValidationWarning] = []
    prefix = f"overrides.{namespace}"

    if not NAMESPACE_PATTERN.fullmatch(namespace):
        _add(warnings, ConfigValidationWarning(
            message=f"Invalid namespace '{namespace}' in 'overrides'",
            source=source,
            key=prefix,
        ))

    if not isinstance(override, dict):
        _add(warnings, ConfigValidationWarning(
            message=f"'{prefix}' must be a mapping, got {type(override).__name__}",
            source=source,
            key=prefix,
        ))
        return warnings

    for key in override.keys():
        if key not in VALID_OVERRIDE_KEYS:
            _add(warnings, ConfigValidationWarning(
                message=f"Unknown key '{prefix}.{key}'",
                source=source,
                key=f"{prefix}.{key}",
                suggestion=_suggest_key(str(key), VALID_OVERRIDE_KEYS),
            ))

    if "path" not in override:
        _add(warnings, ConfigValidationWarning(
            message=f"'{prefix}' has no 'path' and will be ignored",
            source=source,
            key=f"{prefix}.path",
        ))
    elif not isinstance(override["path"], str):
        _add(warnings, ConfigValidationWarning(
            message=f"'{prefix}.path' must be a string, got {type(override['path']).__name__}",
            source=source,
            key=f"{prefix}.path",
        ))

    arch_detect = override.get("arch_detect")
    if arch_detect is not None and not isinstance(arch_detect, (bool, str)):
        _add(warnings, ConfigValidationWarning(
            message=f"'{prefix}.arch_detect' must be a boolean",
            source=source,
            key=f"{prefix}.arch_detect",
        ))

    return warnings


def _add(warnings: List[ConfigValidationWarning], warning: ConfigValidationWarning) -> None:
    warnings.append(warning)
    _log_warning(warning)


def _suggest_key(invalid_key: str, valid_keys: Set[str]) -> Optional[str]:
    """Suggest a valid key for a potential typo.

    Args:
        invalid_key: The invalid key entered.
        valid_keys: Set of valid keys.

    Returns:
        Closest matching valid key, or None if no good match.
    """
    matches = get_close_matches(invalid_key, list(valid_keys), n=1, cutoff=0.6)
    return matches[0] if matches else None


def _log_warning(warning: ConfigValidationWarning) -> None:
    """Log a validation warning."""
    msg = f"{warning.message} in {warning.source}"
    if warning.suggestion:
        msg += f" (did you mean '{warning.suggestion}'?)"
    LOGGER.warning(msg)
