#!/usr/bin/env python3
"""
Pool Stability Metrics

Summary metrics of a simulation run and the fee leakage of a buy/sell round trip.
"""

from typing import Dict, Optional

import numpy as np
import pandas as pd

from ..core.ledger import InMemoryTokenLedger
from ..core.pool import StakingPool
from ..engine.config import PoolConfig


class PoolMetricsCalculator:
    """Pool stability metrics calculator"""

    def __init__(self, results: Dict):
        self.results = results
        self.metrics = pd.DataFrame(results.get("metrics_history", []))

    def summarize(self) -> Dict:
        """Key metrics of one run"""
        metrics = self.metrics
        summary = {
            "failed_actions": self.results.get("failed_actions", 0),
            "clamped_withdrawals": self.results.get("clamped_withdrawals", 0),
            "clamp_shortfall": self.results.get("clamp_shortfall", 0),
            "lp_return_rate": self.lp_return_rate(),
        }
        if metrics.empty:
            return summary

        utilization = metrics["utilization_bp"].dropna()
        summary.update({
            "final_share_price": float(metrics["share_price"].iloc[-1]),
            "min_native_balance": int(metrics["native_balance"].min()),
            "max_utilization_bp": float(utilization.max()) if not utilization.empty else 0.0,
            "mean_fee_bp": float(metrics["dynamic_fee_bp"].mean()),
            "max_fee_bp": int(metrics["dynamic_fee_bp"].max()),
            "total_buy_volume": int(metrics["buy_volume"].sum()),
            "total_sell_volume": int(metrics["sell_volume"].sum()),
            "total_minted": int(metrics["minted"].sum()),
            "total_fees": int(metrics["fees"].sum()),
        })
        return summary

    def lp_return_rate(self) -> float:
        """Mean profit of LPs relative to their initial native balance"""
        lps = [a for a in self.results.get("agent_summaries", []) if a["agent_type"] == "liquidity_provider"]
        if not lps:
            return 0.0
        returns = [a["profit_loss"] / max(a["total_value"] - a["profit_loss"], 1) for a in lps]
        return float(np.mean(returns))

    def fee_rate_percentiles(self, percentiles=(5, 50, 95)) -> Dict[str, float]:
        if self.metrics.empty:
            return {}
        values = self.metrics["dynamic_fee_bp"].to_numpy()
        return {f"p{p}": float(np.percentile(values, p)) for p in percentiles}


def round_trip(amount: int, config: Optional[PoolConfig] = None, liquidity: Optional[int] = None) -> Dict:
    """
    Deposit liquidity, buy with `amount` native and sell the proceeds back.

    Runs against fresh in-memory ledgers. Fees only ever destroy value, so
    `native_back` is always below `amount`.
    """
    config = config or PoolConfig()
    liquidity = amount if liquidity is None else liquidity

    native = InMemoryTokenLedger(config.native_asset, mintable=True)
    staked = InMemoryTokenLedger(config.staked_asset, mintable=True)
    pool = StakingPool(config, native, staked)

    native.mint("lp", liquidity)
    native.mint("trader", amount)
    native.approve("lp", pool.account, liquidity)
    native.approve("trader", pool.account, amount)

    pool.provide_liquidity("lp", liquidity)
    bought = pool.buy("trader", amount)
    staked.approve("trader", pool.account, bought.amount_out)
    sold = pool.sell("trader", bought.amount_out)

    return {
        "native_in": amount,
        "staked_out": bought.amount_out,
        "native_back": sold.amount_out,
        "leakage": amount - sold.amount_out,
        "leakage_rate": (amount - sold.amount_out) / amount,
        "minted": bought.minted,
    }
