"""
Staking Pool Simulation

A staking pool engine that values native and staked holdings, prices trades
with a utilization-based dynamic fee, accounts LP shares, and the tooling to
stress test it.
"""

__version__ = "1.0.0"

# Core components
from .core.pool import StakingPool
from .core.state import PoolState
from .core.ledger import Asset, InMemoryTokenLedger, ShareToken, TokenLedger
from .core.auction import AuctionFeeOracle, Bid, StaticAuctionFeeOracle
from .core.math import BASIS_POINTS, PoolMath
from .core import errors

# Agents
from .agents.base_agent import BaseAgent, AgentAction, AgentState
from .agents.liquidity_provider import LiquidityProvider
from .agents.trader import StakedTrader

# Engine
from .engine.config import PoolConfig, PoolParameters, SimulationConfig, StressTestScenarios, setup_logging
from .simulation.engine import PoolSimulationEngine

# Stress Testing
from .stress_testing.runner import StressTestRunner, QuickStressTest
from .stress_testing.scenarios import PoolStressTestSuite

# Analysis
from .analysis.metrics import PoolMetricsCalculator, round_trip

__all__ = [
    # Core
    "StakingPool", "PoolState", "Asset", "InMemoryTokenLedger", "ShareToken", "TokenLedger",
    "AuctionFeeOracle", "Bid", "StaticAuctionFeeOracle", "BASIS_POINTS", "PoolMath", "errors",

    # Agents
    "BaseAgent", "AgentAction", "AgentState", "LiquidityProvider", "StakedTrader",

    # Simulation
    "PoolConfig", "PoolParameters", "SimulationConfig", "StressTestScenarios", "setup_logging",
    "PoolSimulationEngine",

    # Stress Testing
    "StressTestRunner", "QuickStressTest", "PoolStressTestSuite",

    # Analysis
    "PoolMetricsCalculator", "round_trip"
]
