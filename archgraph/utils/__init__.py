"""
Utility functions for configuration and logging.
"""

import os
import re
import logging
import yaml
from pathlib import Path
from typing import Dict, Any, Union
from dotenv import load_dotenv, find_dotenv


PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


def load_config(config_path: Union[str, Path] = "config.yaml") -> Dict[str, Any]:
    """
    Load configuration from a YAML file.

    Environment variables are loaded from the project-local `.env` first so
    `${VAR}` placeholders in the file resolve to the values the developer edits.

    Args:
        config_path: Path to config file

    Returns:
        Configuration dictionary
    """
    explicit_env = PROJECT_ROOT / ".env"
    dotenv_loaded = False

    if explicit_env.exists():
        load_dotenv(explicit_env, override=True)
        dotenv_loaded = True

    if not dotenv_loaded:
        env_path = find_dotenv(usecwd=True)
        if env_path:
            load_dotenv(env_path, override=True)
            dotenv_loaded = True

    if not dotenv_loaded:
        load_dotenv(override=False)

    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f) or {}

    # Expand environment variables
    config = _expand_env_vars(config)

    return config


_ENV_PLACEHOLDER = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def _expand_env_vars(value: Any) -> Any:
    """
    Replace `${VAR}` placeholders anywhere inside string values.

    Unset variables leave the placeholder untouched.
    """
    if isinstance(value, dict):
        return {key: _expand_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand_env_vars(item) for item in value]
    if isinstance(value, str):
        return _ENV_PLACEHOLDER.sub(lambda match: os.getenv(match.group(1), match.group(0)), value)
    return value


def setup_logging(config: Dict[str, Any]):
    """
    Setup logging configuration.

    Args:
        config: Configuration dictionary
    """
    log_level = config.get('logging', {}).get('level', 'INFO')
    log_file = config.get('logging', {}).get('file', 'data/archgraph.log')

    # Create log directory
    log_path = Path(log_file)
    if not log_path.is_absolute():
        log_path = PROJECT_ROOT / log_path
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, str(log_level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_path),
            logging.StreamHandler(),
        ]
    )

    # Reduce noise from some libraries
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('neo4j').setLevel(logging.WARNING)
