"""Pool configuration and deployment parameters"""

from .config import PoolConfig, PoolParameters, SimulationConfig, StressTestScenarios, setup_logging

__all__ = ["PoolConfig", "PoolParameters", "SimulationConfig", "StressTestScenarios", "setup_logging"]
