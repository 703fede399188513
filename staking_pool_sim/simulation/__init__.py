"""Pool simulation engine"""

from .engine import PoolSimulationEngine

__all__ = ["PoolSimulationEngine"]
