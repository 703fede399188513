#!/usr/bin/env python3
"""
Parameter definitions and scenarios

Simple parameter classes and dictionaries; environment variables only tune logging.
"""

import logging
import os
import sys
from typing import Dict, List, Optional

from ..core.errors import InvalidConfiguration
from ..core.fees import FEE_SOURCES, FORMULA
from ..core.math import BASIS_POINTS


class PoolParameters:
    """Default deployment parameters"""

    TARGET_UTILIZATION_BP = 5_000   # 50% committed-to-native target
    BASE_FEE = 100                  # flat fee per trade, smallest unit
    INITIAL_DYNAMIC_FEE_BP = 100    # 1% until utilization is defined
    NATIVE_ASSET = "ETH"
    STAKED_ASSET = "stETH"
    SHARE_NAME = "Staking Pool Share"
    SHARE_SYMBOL = "SPS"
    FEE_SOURCE = FORMULA
    POOL_ACCOUNT = "pool"
    HISTORY_LIMIT = 10_000          # committed operations kept in pool.history


class PoolConfig:
    """Construction-time configuration of one pool deployment"""

    def __init__(
        self,
        target_utilization_bp: int = PoolParameters.TARGET_UTILIZATION_BP,
        base_fee: int = PoolParameters.BASE_FEE,
        initial_dynamic_fee_bp: int = PoolParameters.INITIAL_DYNAMIC_FEE_BP,
        native_asset: str = PoolParameters.NATIVE_ASSET,
        staked_asset: str = PoolParameters.STAKED_ASSET,
        share_name: str = PoolParameters.SHARE_NAME,
        share_symbol: str = PoolParameters.SHARE_SYMBOL,
        fee_source: str = PoolParameters.FEE_SOURCE,
        history_limit: int = PoolParameters.HISTORY_LIMIT,
    ):
        self.target_utilization_bp = target_utilization_bp
        self.base_fee = base_fee
        self.initial_dynamic_fee_bp = initial_dynamic_fee_bp
        self.native_asset = native_asset
        self.staked_asset = staked_asset
        self.share_name = share_name
        self.share_symbol = share_symbol
        self.fee_source = fee_source
        self.history_limit = history_limit

    def validate(self) -> None:
        """Raise InvalidConfiguration listing every invalid parameter"""
        errors = []

        if not isinstance(self.target_utilization_bp, int) or not 0 < self.target_utilization_bp < BASIS_POINTS:
            errors.append(f"target_utilization_bp must be an integer within (0, {BASIS_POINTS})")

        if not isinstance(self.base_fee, int) or self.base_fee < 0:
            errors.append("base_fee must be a non-negative integer")

        if not isinstance(self.initial_dynamic_fee_bp, int) or self.initial_dynamic_fee_bp < 0:
            errors.append("initial_dynamic_fee_bp must be a non-negative integer")

        if self.fee_source not in FEE_SOURCES:
            errors.append(f"fee_source must be one of {FEE_SOURCES}")

        if not self.native_asset or not self.staked_asset:
            errors.append("native_asset and staked_asset must be named")
        elif self.native_asset == self.staked_asset:
            errors.append("native_asset and staked_asset must differ")

        if not self.share_symbol:
            errors.append("share_symbol must be set")

        if not isinstance(self.history_limit, int) or self.history_limit <= 0:
            errors.append("history_limit must be a positive integer")

        if errors:
            raise InvalidConfiguration(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )

    def to_dict(self) -> Dict:
        return dict(vars(self))

    @classmethod
    def from_dict(cls, params: Dict) -> "PoolConfig":
        return cls(**params)


class SimulationConfig:
    """Simple simulation configuration"""

    def __init__(self, pool: Optional[PoolConfig] = None):
        self.pool = pool or PoolConfig()

        # Agent configuration
        self.num_liquidity_providers = 5
        self.num_buyers = 3
        self.num_sellers = 3

        # Initial balances (smallest units)
        self.lp_initial_native = 1_000_000
        self.buyer_initial_native = 200_000
        self.seller_initial_staked = 200_000

        # Simulation parameters
        self.simulation_steps = 200
        self.seed = 42
        self.metrics_recording_frequency = 1

        # Agent behaviour
        self.trade_probability = 0.3     # chance an agent trades in a step
        self.max_trade_fraction = 0.05   # max share of a balance per trade
        self.lp_rebalance_probability = 0.05

        # Auction fee rights, used when pool.fee_source is "auction"
        self.auction_swap_fee_bp = 30
        self.auction_manager = "manager_0"

        # Portion of pool-held staked value bonded at each bonding step
        self.bond_fraction = 0.0
        self.bond_frequency = 25


class StressTestScenarios:
    """Priority stress test scenarios"""

    BANK_RUN = {
        "name": "Bank_Run",
        "description": "Every LP withdraws all shares at once",
        "withdraw_fraction": 1.0,
        "trigger_step": 50,
    }

    STAKED_DUMP = {
        "name": "Staked_Dump",
        "description": "Sellers dump half of their staked holdings",
        "sell_fraction": 0.5,
        "trigger_step": 50,
    }

    BUY_PRESSURE = {
        "name": "Buy_Pressure",
        "description": "Buyers spend 80% of their native balance, forcing staked issuance",
        "buy_fraction": 0.8,
        "trigger_step": 50,
    }

    AUCTION_FEE_SPIKE = {
        "name": "Auction_Fee_Spike",
        "description": "Auction winner raises the swap fee to 30%",
        "fee_source": "auction",
        "swap_fee_bp": 3_000,
        "trigger_step": 50,
    }

    BONDING_SQUEEZE = {
        "name": "Bonding_Squeeze",
        "description": "90% of pool-held staked value is bonded, pushing utilization past target",
        "bond_fraction": 0.9,
        "trigger_step": 50,
    }

    @classmethod
    def get_all_scenarios(cls) -> List[dict]:
        """Get all stress test scenarios"""
        return [
            cls.BANK_RUN,
            cls.STAKED_DUMP,
            cls.BUY_PRESSURE,
            cls.AUCTION_FEE_SPIKE,
            cls.BONDING_SQUEEZE,
        ]

    @classmethod
    def get_scenario_by_name(cls, name: str) -> Optional[dict]:
        """Get specific scenario by name"""
        for scenario in cls.get_all_scenarios():
            if scenario["name"] == name:
                return scenario
        return None


LOG_FORMATS = {
    "json": '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}',
    "detailed": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    "simple": "%(levelname)s: %(message)s",
}


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """Configure logging from arguments or LOG_LEVEL / LOG_FORMAT"""
    level_name = (level or os.getenv("LOG_LEVEL", "WARNING")).upper()
    format_string = LOG_FORMATS.get(fmt or os.getenv("LOG_FORMAT", "simple"), LOG_FORMATS["simple"])

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(format_string))

    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        handlers=[handler],
        force=True,
    )

    # Reduce noise from plotting libraries
    logging.getLogger("matplotlib").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)
