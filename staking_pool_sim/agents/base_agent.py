#!/usr/bin/env python3
"""
Minimal Agent Interface

Base class for all staking pool agents. Token balances live on the ledgers;
agents only keep their own activity counters.
"""

from abc import ABC, abstractmethod
from typing import Dict, Tuple
from enum import Enum

import numpy as np

from ..core.ledger import Asset


class AgentAction(Enum):
    """Agent action types"""
    PROVIDE_LIQUIDITY = "provide_liquidity"
    REMOVE_LIQUIDITY = "remove_liquidity"
    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"


class AgentState:
    """Activity counters for one agent"""

    def __init__(self, agent_id: str, initial_balances: Dict[Asset, int]):
        self.agent_id = agent_id
        self.initial_balances = dict(initial_balances)

        self.actions_executed = 0
        self.actions_failed = 0
        self.last_error = ""

        # Flows through the pool, smallest units
        self.native_in = 0
        self.native_out = 0
        self.staked_in = 0
        self.staked_out = 0


class BaseAgent(ABC):
    """Minimal agent interface"""

    def __init__(self, agent_id: str, agent_type: str, initial_balances: Dict[Asset, int]):
        self.agent_id = agent_id
        self.agent_type = agent_type
        self.state = AgentState(agent_id, initial_balances)
        self.active = True

    @abstractmethod
    def decide_action(self, pool_state: dict, balances: Dict[Asset, int],
                      rng: np.random.Generator) -> Tuple[AgentAction, dict]:
        """
        Decide what action to take based on current pool state

        Returns:
            Tuple of (action_type, params)
        """
        pass

    def record_result(self, action_type: AgentAction, result) -> None:
        """Track flows of an executed action (pool perspective: in = paid to the pool)"""
        self.state.actions_executed += 1

        if action_type == AgentAction.PROVIDE_LIQUIDITY:
            self.state.native_in += result.amount
        elif action_type == AgentAction.REMOVE_LIQUIDITY:
            self.state.native_out += result.amount
        elif action_type == AgentAction.BUY:
            self.state.native_in += result.amount_in
            self.state.staked_out += result.amount_out
        elif action_type == AgentAction.SELL:
            self.state.staked_in += result.amount_in
            self.state.native_out += result.amount_out

    def record_failure(self, action_type: AgentAction, error: Exception) -> None:
        self.state.actions_failed += 1
        self.state.last_error = f"{action_type.value}: {error}"

    @staticmethod
    def _trade_size(balance: int, max_fraction: float, rng: np.random.Generator) -> int:
        """Random trade size up to `max_fraction` of a balance"""
        if balance <= 0:
            return 0
        return int(balance * rng.uniform(0.1, 1.0) * max_fraction)

    def get_portfolio_summary(self, balances: Dict[Asset, int], share_price: float) -> dict:
        """Get summary of agent's portfolio valued in native units (staked at par)"""
        value = (
            balances.get(Asset.NATIVE, 0)
            + balances.get(Asset.STAKED, 0)
            + balances.get(Asset.SHARE, 0) * share_price
        )
        initial_value = sum(
            amount for asset, amount in self.state.initial_balances.items() if asset != Asset.SHARE
        )
        return {
            "agent_id": self.agent_id,
            "agent_type": self.agent_type,
            "native_balance": balances.get(Asset.NATIVE, 0),
            "staked_balance": balances.get(Asset.STAKED, 0),
            "share_balance": balances.get(Asset.SHARE, 0),
            "total_value": value,
            "profit_loss": value - initial_value,
            "actions_executed": self.state.actions_executed,
            "actions_failed": self.state.actions_failed,
        }
