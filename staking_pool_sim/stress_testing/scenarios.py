#!/usr/bin/env python3
"""
Stress Test Scenario Definitions

Priority scenarios for the pool's fee curve, liquidity accounting and
staked issuance under one-sided flow.
"""

import copy
from typing import Callable, Dict, List, Optional

from ..core.fees import AUCTION
from ..engine.config import SimulationConfig, StressTestScenarios
from ..simulation.engine import PoolSimulationEngine


class StressTestScenario:
    """Individual stress test scenario"""

    def __init__(self, name: str, description: str, setup_func: Callable[[PoolSimulationEngine], None],
                 duration: Optional[int] = None, config_overrides: Optional[Dict] = None):
        self.name = name
        self.description = description
        self.setup_func = setup_func
        self.duration = duration
        self.config_overrides = config_overrides or {}
        self.results = None

    def build_config(self, base_config: SimulationConfig) -> SimulationConfig:
        """Copy of `base_config` with this scenario's overrides applied"""
        config = copy.deepcopy(base_config)
        for param, value in self.config_overrides.items():
            target = config.pool if hasattr(config.pool, param) else config
            setattr(target, param, value)
        return config

    def apply_to_engine(self, engine: PoolSimulationEngine):
        """Apply scenario to simulation engine"""
        self.setup_func(engine)

    def run(self, base_config: SimulationConfig) -> dict:
        """Run the stress test scenario"""
        config = self.build_config(base_config)
        engine = PoolSimulationEngine(config)
        self.apply_to_engine(engine)

        results = engine.run_simulation(self.duration or config.simulation_steps)
        results["scenario"] = self.name
        self.results = results
        return results


class PoolStressTestSuite:
    """Complete stress test suite for the staking pool"""

    def __init__(self):
        self.scenarios = self._create_scenarios()
        self.results = {}

    def _create_scenarios(self) -> List[StressTestScenario]:
        """Create all stress test scenarios"""
        bank_run = StressTestScenarios.BANK_RUN
        dump = StressTestScenarios.STAKED_DUMP
        pressure = StressTestScenarios.BUY_PRESSURE
        spike = StressTestScenarios.AUCTION_FEE_SPIKE
        squeeze = StressTestScenarios.BONDING_SQUEEZE

        return [
            StressTestScenario(
                bank_run["name"], bank_run["description"],
                lambda engine: engine.schedule(
                    bank_run["trigger_step"],
                    lambda e: e.withdraw_fraction(bank_run["withdraw_fraction"]),
                ),
            ),
            StressTestScenario(
                dump["name"], dump["description"],
                lambda engine: engine.schedule(
                    dump["trigger_step"],
                    lambda e: e.sell_fraction(dump["sell_fraction"]),
                ),
            ),
            StressTestScenario(
                pressure["name"], pressure["description"],
                lambda engine: engine.schedule(
                    pressure["trigger_step"],
                    lambda e: e.buy_fraction(pressure["buy_fraction"]),
                ),
            ),
            StressTestScenario(
                spike["name"], spike["description"],
                lambda engine: engine.schedule(
                    spike["trigger_step"],
                    lambda e: e.set_auction_fee(spike["swap_fee_bp"]),
                ),
                config_overrides={"fee_source": AUCTION},
            ),
            StressTestScenario(
                squeeze["name"], squeeze["description"],
                lambda engine: engine.schedule(
                    squeeze["trigger_step"],
                    lambda e: e.bond_fraction(squeeze["bond_fraction"]),
                ),
            ),
        ]

    def get_scenario_names(self) -> List[str]:
        return [scenario.name for scenario in self.scenarios]

    def get_scenario(self, name: str) -> StressTestScenario:
        for scenario in self.scenarios:
            if scenario.name == name:
                return scenario
        raise KeyError(f"Unknown scenario: {name}. Available: {self.get_scenario_names()}")

    def run_scenario(self, name: str, config: Optional[SimulationConfig] = None) -> dict:
        """Run one scenario by name"""
        results = self.get_scenario(name).run(config or SimulationConfig())
        self.results[name] = results
        return results
