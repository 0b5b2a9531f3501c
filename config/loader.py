import os
import re
import yaml
from typing import Any, Dict, IO

from utils.errors import ConfigError

# Regex for environment variable substitution, with an optional ":-default"
ENV_VAR_MATCHER = re.compile(r"^\$\{(\w+)(?::-([^}]*))?\}$")


class EnvVarLoader(yaml.SafeLoader):
    """SafeLoader that resolves ${VAR} and ${VAR:-default} scalars."""


def _env_var_constructor(loader: yaml.SafeLoader, node: yaml.ScalarNode) -> str:
    """
    Custom YAML constructor to substitute environment variables.
    e.g., ${VAR_NAME} will be replaced by the value of the VAR_NAME environment variable,
    and ${VAR_NAME:-fallback} falls back to "fallback" when VAR_NAME is unset.
    """
    value = loader.construct_scalar(node)
    match = ENV_VAR_MATCHER.match(value)
    if not match:
        return value

    env_var, default = match.group(1), match.group(2)
    replacement = os.getenv(env_var)
    if replacement is None:
        if default is not None:
            return default
        raise ConfigError(f"Environment variable '{env_var}' not found for substitution in config.")

    return replacement


EnvVarLoader.add_constructor("!env", _env_var_constructor)
EnvVarLoader.add_implicit_resolver("!env", ENV_VAR_MATCHER, None)


def load_config(config_file: IO[str]) -> Dict[str, Any]:
    """
    Loads a YAML configuration file.

    Args:
        config_file: A file-like object representing the YAML configuration.

    Returns:
        A dictionary containing the configuration.

    Raises:
        ConfigError: If the file cannot be parsed.
    """
    try:
        config = yaml.load(config_file, Loader=EnvVarLoader)
        return config if config else {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML configuration: {e}") from e
