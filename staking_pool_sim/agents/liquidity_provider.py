#!/usr/bin/env python3
"""
Liquidity Provider Agent

Deposits native liquidity early and occasionally adds to or trims its position.
"""

from typing import Dict, Tuple

import numpy as np

from .base_agent import AgentAction, Asset, BaseAgent


class LiquidityProvider(BaseAgent):
    """Native-only LP"""

    def __init__(self, agent_id: str, initial_native: int, rebalance_probability: float = 0.05):
        super().__init__(agent_id, "liquidity_provider", {Asset.NATIVE: initial_native})

        self.initial_deposit_fraction = 0.8
        self.rebalance_probability = rebalance_probability
        self.rebalance_fraction = 0.1
        self.has_deposited = False

    def decide_action(self, pool_state: dict, balances: Dict[Asset, int],
                      rng: np.random.Generator) -> Tuple[AgentAction, dict]:
        native = balances.get(Asset.NATIVE, 0)
        shares = balances.get(Asset.SHARE, 0)

        if not self.has_deposited:
            amount = int(native * self.initial_deposit_fraction)
            if amount > 0:
                return AgentAction.PROVIDE_LIQUIDITY, {"amount": amount}
            return AgentAction.HOLD, {}

        if rng.random() > self.rebalance_probability:
            return AgentAction.HOLD, {}

        # Trim when the native reserve covers less than half of the pool value
        if shares > 0 and pool_state.get("native_balance", 0) * 2 < (pool_state.get("total") or 0):
            return AgentAction.REMOVE_LIQUIDITY, {"shares": int(shares * self.rebalance_fraction)}

        amount = int(native * self.rebalance_fraction)
        if amount > 0:
            return AgentAction.PROVIDE_LIQUIDITY, {"amount": amount}
        return AgentAction.HOLD, {}

    def record_result(self, action_type: AgentAction, result) -> None:
        super().record_result(action_type, result)
        if action_type == AgentAction.PROVIDE_LIQUIDITY:
            self.has_deposited = True
