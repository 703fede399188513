#!/usr/bin/env python3
"""
Staked Trader Agent

Buys the staked asset with native, or sells it back, in random sizes.
Focuses on generating flow through the pool rather than on strategy.
"""

from typing import Dict, Tuple

import numpy as np

from .base_agent import AgentAction, Asset, BaseAgent

BUYER = "buyer"
SELLER = "seller"


class StakedTrader(BaseAgent):
    """One-directional trader: buyers spend native, sellers spend staked"""

    def __init__(self, agent_id: str, side: str, initial_balance: int,
                 trade_probability: float = 0.3, max_trade_fraction: float = 0.05):
        if side not in (BUYER, SELLER):
            raise ValueError(f"side must be '{BUYER}' or '{SELLER}', got {side!r}")

        asset = Asset.NATIVE if side == BUYER else Asset.STAKED
        super().__init__(agent_id, side, {asset: initial_balance})

        self.side = side
        self.trade_probability = trade_probability
        self.max_trade_fraction = max_trade_fraction

        # Skip trades whose dynamic fee would round to zero
        self.min_trade_size = 1_000

    def decide_action(self, pool_state: dict, balances: Dict[Asset, int],
                      rng: np.random.Generator) -> Tuple[AgentAction, dict]:
        """
        Trading decision logic:
        1. Trade with a fixed probability per step
        2. Sellers back off when the fee curve is past its target (fee > 100%)
        3. Size the trade as a random slice of the funding balance
        """
        if rng.random() > self.trade_probability:
            return AgentAction.HOLD, {}

        if self.side == BUYER:
            amount = self._trade_size(balances.get(Asset.NATIVE, 0), self.max_trade_fraction, rng)
            if amount >= self.min_trade_size:
                return AgentAction.BUY, {"amount": amount}
            return AgentAction.HOLD, {}

        if pool_state.get("dynamic_fee_bp", 0) >= 10_000:
            return AgentAction.HOLD, {}

        amount = self._trade_size(balances.get(Asset.STAKED, 0), self.max_trade_fraction, rng)
        if amount >= self.min_trade_size:
            return AgentAction.SELL, {"amount": amount}
        return AgentAction.HOLD, {}
