from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from config.loader import load_config
from config.models import Config
from utils.errors import ConfigError
from utils.logger import logger

DEFAULT_CONFIG_PATH = Path(__file__).parent / "default.yaml"
USER_CONFIG_PATH = Path.home() / ".continuous-agent" / "config.yaml"
PROJECT_CONFIG_FILENAME = ".continuous-agent.yaml"
PROJECT_ROOT_MARKERS = (".git", "pyproject.toml")


def deep_merge(target: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """Merges `overrides` into `target` section by section; lists and scalars are replaced."""
    for key, value in overrides.items():
        current = target.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            deep_merge(current, value)
        else:
            target[key] = value
    return target


def find_project_config(start_dir: Path = Path(".")) -> Optional[Path]:
    """
    Walks up from `start_dir` to the first directory holding a .git directory
    or a pyproject.toml, and returns its .continuous-agent.yaml if there is one.
    """
    start = start_dir.resolve()
    for directory in (start, *start.parents):
        if any((directory / marker).exists() for marker in PROJECT_ROOT_MARKERS):
            candidate = directory / PROJECT_CONFIG_FILENAME
            return candidate if candidate.is_file() else None
    return None


def config_layers(custom_config_path: Optional[str] = None) -> List[Path]:
    """
    The files to merge, lowest precedence first.

    `--config` stands alone; otherwise the packaged defaults are overlaid by
    the user file and then the project file, whichever of them exist.
    """
    if custom_config_path:
        path = Path(custom_config_path)
        if not path.is_file():
            raise ConfigError(f"Custom config file not found at: {custom_config_path}")
        logger.info(f"Using custom configuration from: {custom_config_path}")
        return [path]

    if not DEFAULT_CONFIG_PATH.is_file():
        raise ConfigError("Default configuration file not found.")
    layers = [DEFAULT_CONFIG_PATH]
    if USER_CONFIG_PATH.is_file():
        layers.append(USER_CONFIG_PATH)
    project_config = find_project_config()
    if project_config:
        layers.append(project_config)
    return layers


def load_and_merge_configs(custom_config_path: Optional[str] = None) -> Config:
    """
    Builds the run configuration from the config layers.

    `${GITHUB_REPOSITORY}` and `${GH_PAT}` in the YAML are resolved from the
    environment while loading, so the repository identity and token end up in
    `Config.repository` like any other value.
    """
    merged: Dict[str, Any] = {}
    for path in config_layers(custom_config_path):
        logger.info(f"Loading configuration from: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                deep_merge(merged, load_config(f))
        except OSError as e:
            logger.warning(f"Could not read config at {path}: {e}")

    try:
        config = Config(**merged)
    except Exception as e:
        raise ConfigError(f"Configuration validation failed: {e}") from e

    if config.source.type == "github" and not config.repository.repository:
        logger.warning("No repository configured; set GITHUB_REPOSITORY or pass --repository.")
    logger.debug(f"Final merged config: {config.model_dump_json(indent=2, exclude={'repository': {'token'}})}")
    return config
