from pathlib import Path

import pandas as pd
import pytest

from mageplan.core.config import ProjectConfig
from mageplan.core.data import load_table


ROOT = Path(__file__).resolve().parents[1]
EXAMPLE_CONFIG = ROOT / "examples" / "configs" / "mage_demo.yaml"
EXAMPLE_TABLE = ROOT / "examples" / "datasets" / "mage_3loci.csv"


@pytest.fixture
def example_cfg() -> ProjectConfig:
    return ProjectConfig.from_yaml(EXAMPLE_CONFIG)


@pytest.fixture
def example_table() -> pd.DataFrame:
    return load_table(EXAMPLE_TABLE)


@pytest.fixture
def example_config_path() -> Path:
    return EXAMPLE_CONFIG


@pytest.fixture
def example_table_path() -> Path:
    return EXAMPLE_TABLE
