"""
Locating and reading the interviewer's YAML configuration.

``${VAR}`` and ``$VAR`` references are expanded from the environment before
parsing; references to unset variables are left as written.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

# Repository root (parent of the interviewer package)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

CONFIG_PATH_ENV = "INTERVIEWER_CONFIG"
DEFAULT_CONFIG_PATH = "config/interviewer.yaml"


def resolve_config_path(path: Optional[Union[str, Path]] = None) -> str:
    """
    Absolute path of the configuration file.

    Without ``path``, ``INTERVIEWER_CONFIG`` is used, then the default file.
    Relative paths are taken from the project root, not the working directory.
    """
    if path is None:
        path = os.getenv(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH
    candidate = Path(path).expanduser()
    if not candidate.is_absolute():
        candidate = PROJECT_ROOT / candidate
    return str(candidate)


def load_yaml_with_env_expansion(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a YAML mapping with environment references expanded.

    Returns:
        The parsed mapping ({} for an empty file)

    Raises:
        FileNotFoundError: If the file does not exist
        yaml.YAMLError: If the text does not parse, or is not a mapping
    """
    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise FileNotFoundError(f"Configuration file not found at: {config_path}") from None

    try:
        data = yaml.safe_load(os.path.expandvars(text))
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Error parsing YAML configuration {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise yaml.YAMLError(
            f"Error parsing YAML configuration {config_path}: top level must be a mapping, "
            f"got {type(data).__name__}"
        )
    return data
