"""
Config context helpers.

Bundles the raw configuration with its validated accessor and the typed
settings every graph component reads, so a misconfigured engine fails when
the context is built rather than on the first request.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..config_validator import ConfigAccessor
from ..utils import PROJECT_ROOT, load_config
from .models import EngineSettings, Neo4jSettings, StoreSettings


@dataclass(frozen=True)
class ConfigContext:
    """Raw config data, its accessor, and the settings resolved from them."""

    data: Dict[str, Any]
    accessor: ConfigAccessor
    store: StoreSettings = field(init=False)
    engine: EngineSettings = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "store", self.accessor.get_store_settings())
        object.__setattr__(self, "engine", self.accessor.get_engine_settings())

    @property
    def neo4j(self) -> Neo4jSettings:
        return self.accessor.get_neo4j_settings()


def get_config_context(config_path: Optional[Union[str, Path]] = None) -> ConfigContext:
    """
    Load configuration and return a validated context bundle.

    Relative paths resolve against the project root, not the working directory.

    Raises:
        FileNotFoundError: config file is missing.
        ConfigValidationError: a section or value is invalid.
    """
    path = Path(config_path) if config_path else Path("config.yaml")
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    config = load_config(path)
    return ConfigContext(data=config, accessor=ConfigAccessor(config))
