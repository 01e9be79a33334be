import pytest

from probcells.config import SimulationConfig
from probcells.manager import CalculationManager


@pytest.fixture
def config():
    return SimulationConfig(sample_count=1000, seed=1234)


@pytest.fixture
def manager(config):
    return CalculationManager(config)
