"""Configuration file and environment loading.

Handles loading configuration with:
- Config file (native_library_loader.yml, or NATIVE_LIBRARY_LOADER_CONFIG)
- Environment variable expansion in file values (${VAR})
- Per-namespace override keys read from the environment
"""

from __future__ import annotations

import os
import re
from functools import partial
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from nativeloader.config.models import (
    ARCH_DETECT_KEY,
    PATH_KEY,
    PROPERTY_KEY,
    LoaderConfig,
    OverrideConfig,
)
from nativeloader.config.validation import validate_config
from nativeloader.core.errors import ConfigError
from nativeloader.core.logging import get_logger

LOGGER = get_logger(__name__)

# Config file names searched in the working directory
CONFIG_FILE_NAMES = [f"{PROPERTY_KEY}.yml", f"{PROPERTY_KEY}.yaml"]

# Environment variable naming an explicit config file
CONFIG_PATH_ENV = "NATIVE_LIBRARY_LOADER_CONFIG"

# Environment variable pattern: ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


def load_config(
    config_path: Optional[Path] = None,
    search_dir: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> LoaderConfig:
    """Load configuration from a file, if one is available.

    Resolution order for the file:
    1. ``config_path`` argument
    2. NATIVE_LIBRARY_LOADER_CONFIG environment variable
    3. native_library_loader.yml / .yaml in ``search_dir`` (default: cwd)

    Per-namespace environment keys are not read here; they are looked up
    when a namespace is loaded, see :func:`get_override_config`.

    Args:
        config_path: Optional explicit config file.
        search_dir: Directory searched for a config file.
        environ: Environment mapping (defaults to ``os.environ``).

    Returns:
        LoaderConfig instance (defaults when no file is found).

    Raises:
        ConfigError: If an explicit config file is missing or invalid.
    """
    env = os.environ if environ is None else environ
    sources: List[str] = []

    explicit = config_path or (Path(env[CONFIG_PATH_ENV]) if env.get(CONFIG_PATH_ENV) else None)
    if explicit is not None:
        if not explicit.exists():
            raise ConfigError(f"Config file not found: {explicit}")
        path: Optional[Path] = explicit
    else:
        path = find_config_file(search_dir or Path.cwd())

    data: Dict[str, Any] = {}
    if path is not None:
        try:
            data = load_yaml_file(path, env)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        validate_config(data, source=str(path))
        sources.append(f"file:{path}")
        LOGGER.debug(f"Loaded config from {path}")

    config = dict_to_config(data)
    config._config_sources = sources
    return config


def find_config_file(directory: Path) -> Optional[Path]:
    """Find a config file in a directory.

    Args:
        directory: Directory to search in.

    Returns:
        Path to config file if found, None otherwise.
    """
    for name in CONFIG_FILE_NAMES:
        config_path = directory / name
        if config_path.exists():
            return config_path
    return None


def load_yaml_file(
    path: Path,
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """Load and parse a YAML config file.

    Performs environment variable expansion on string values.

    Args:
        path: Path to YAML file.
        environ: Environment used for expansion (defaults to ``os.environ``).

    Returns:
        Parsed dictionary.

    Raises:
        yaml.YAMLError: If YAML parsing fails.
        ConfigError: If the document is not a mapping.
    """
    with open(path, "r", encoding="utf-8") as f:
        content = f.read()

    data = yaml.safe_load(content)

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ConfigError(f"Config file must be a YAML mapping, got {type(data).__name__}")

    return expand_env_vars(data, environ)


def expand_env_vars(data: Any, environ: Optional[Mapping[str, str]] = None) -> Any:
    """Recursively expand environment variables in config values.

    Supports ${VAR} and ${VAR:-default} syntax.
    """
    env = os.environ if environ is None else environ
    if isinstance(data, dict):
        return {k: expand_env_vars(v, env) for k, v in data.items()}
    elif isinstance(data, list):
        return [expand_env_vars(item, env) for item in data]
    elif isinstance(data, str):
        return ENV_VAR_PATTERN.sub(partial(_env_var_replacer, env), data)
    else:
        return data


def _env_var_replacer(env: Mapping[str, str], match: re.Match) -> str:
    """Replace environment variable reference with its value."""
    var_name = match.group(1)
    default_value = match.group(2)

    value = env.get(var_name)
    if value is not None:
        return value
    if default_value is not None:
        return default_value

    LOGGER.warning(f"Environment variable ${var_name} is not set and has no default")
    return ""


def is_truthy(value: Any) -> bool:
    """Interpret a config flag: YAML booleans or the string "true"."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def dict_to_config(data: Dict[str, Any]) -> LoaderConfig:
    """Convert a validated dict to a typed LoaderConfig.

    Values of the wrong type were already reported by validation and are
    left at their defaults.

    Args:
        data: Configuration dictionary.

    Returns:
        Typed LoaderConfig instance.
    """
    overrides: Dict[str, OverrideConfig] = {}
    override_section = data.get("overrides")
    if not isinstance(override_section, dict):
        override_section = {}
    for namespace, override_data in override_section.items():
        if not isinstance(override_data, dict):
            continue
        overrides[str(namespace)] = OverrideConfig(
            path=_path_value(override_data.get(PATH_KEY)),
            arch_detect=is_truthy(override_data.get(ARCH_DETECT_KEY, False)),
        )

    return LoaderConfig(
        scratch_root=_path_value(data.get("scratch_root")),
        install_signal_handler=is_truthy(data.get("install_signal_handler", True)),
        overrides=overrides,
    )


def _path_value(value: Any) -> Optional[Path]:
    if isinstance(value, str) and value:
        return Path(value)
    return None


def env_keys(namespace: str, key: str) -> List[str]:
    """Environment keys consulted for a namespace setting.

    The exact form ``native_library_loader_<namespace>_<key>`` comes first,
    followed by its upper-case form with dots replaced by underscores.
    """
    exact = f"{PROPERTY_KEY}_{namespace}_{key}"
    return [exact, exact.replace(".", "_").upper()]


def _lookup_env(env: Mapping[str, str], namespace: str, key: str) -> Optional[str]:
    for name in env_keys(namespace, key):
        value = env.get(name)
        if value:
            return value
    return None


def get_override_config(
    namespace: str,
    config: Optional[LoaderConfig] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[OverrideConfig]:
    """Resolve the custom resource override of a namespace.

    Environment keys take precedence over the config file. ``arch_detect``
    from the environment applies to a path from either source.

    Args:
        namespace: Dotted namespace.
        config: Loaded configuration (file values).
        environ: Environment mapping (defaults to ``os.environ``).

    Returns:
        OverrideConfig with a path, or None when no override is configured.
    """
    env = os.environ if environ is None else environ
    file_override = config.get_override(namespace) if config else None

    env_path = _lookup_env(env, namespace, PATH_KEY)
    env_arch_detect = _lookup_env(env, namespace, ARCH_DETECT_KEY)

    if env_path:
        path: Optional[Path] = Path(env_path)
    elif file_override is not None:
        path = file_override.path
    else:
        return None

    if env_arch_detect is not None:
        arch_detect = is_truthy(env_arch_detect)
    else:
        arch_detect = file_override.arch_detect if file_override else False

    return OverrideConfig(path=path, arch_detect=arch_detect)
