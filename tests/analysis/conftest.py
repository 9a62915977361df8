import textwrap
from pathlib import Path
from typing import Dict

import pytest

from archgraph.config.context import ConfigContext
from archgraph.config.models import EngineSettings
from archgraph.config_validator import ConfigAccessor


@pytest.fixture
def architecture_file(tmp_path: Path) -> Path:
    path = tmp_path / "architecture.yaml"
    path.write_text(
        textwrap.dedent(
            """
            entities:
              - {id: X, name: Checkout, type: Application, criticality: 50}
              - {id: Y, name: Payments API, type: Interface, criticality: 60}
              - {id: Z, name: Ledger DB, type: ITComponent, criticality: 70}
              - {id: W, name: Intranet, type: Application, criticality: 10}
            relationships:
              - {source: X, target: Y, type: depends_on, strength: 0.8}
              - {source: Y, target: Z, type: depends_on, strength: 0.5}
            """
        ).strip()
    )
    return path


@pytest.fixture
def engine_config(base_config, architecture_file) -> Dict[str, object]:
    base_config["store"]["files"] = [str(architecture_file)]
    return base_config


@pytest.fixture
def engine_config_context(engine_config: Dict[str, object]) -> ConfigContext:
    accessor = ConfigAccessor(engine_config)
    return ConfigContext(data=engine_config, accessor=accessor)


@pytest.fixture
def engine_settings(engine_config_context: ConfigContext) -> EngineSettings:
    return engine_config_context.accessor.get_engine_settings()


@pytest.fixture
def scenario_index(index_factory):
    """X depends_on Y (0.8), Y depends_on Z (0.5), plus an isolated W."""
    return index_factory(
        [("X", "Y", "depends_on", 0.8), ("Y", "Z", "depends_on", 0.5)],
        isolated=["W"],
    )
