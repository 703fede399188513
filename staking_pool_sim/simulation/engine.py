#!/usr/bin/env python3
"""
Streamlined Simulation Engine

Drives a single staking pool with LP and trader agents through direct function
calls and records per-step pool metrics.
"""

import logging
from collections import defaultdict
from typing import Callable, Dict, List, Optional

import numpy as np
import pandas as pd

from ..agents.base_agent import AgentAction, BaseAgent
from ..agents.liquidity_provider import LiquidityProvider
from ..agents.trader import BUYER, SELLER, StakedTrader
from ..core.auction import Bid, StaticAuctionFeeOracle, encode_payload
from ..core.errors import InvalidConfiguration, PoolError
from ..core.fees import AUCTION
from ..core.ledger import Asset, InMemoryTokenLedger
from ..core.pool import StakingPool
from ..engine.config import SimulationConfig

logger = logging.getLogger(__name__)

# Effectively unlimited allowance granted by every agent to the pool
UNLIMITED = 2 ** 255


class PoolSimulationEngine:
    """Simulation runner with direct function calls into the pool"""

    def __init__(self, config: SimulationConfig):
        self.config = config
        self.rng = np.random.default_rng(config.seed)
        self.current_step = 0
        self.event_log: List[Dict] = []

        pool_config = config.pool
        self.native_ledger = InMemoryTokenLedger(pool_config.native_asset, mintable=True)
        self.staked_ledger = InMemoryTokenLedger(pool_config.staked_asset, mintable=True)

        self.auction_oracle = None
        if pool_config.fee_source == AUCTION:
            self.auction_oracle = StaticAuctionFeeOracle()
            self.set_auction_fee(config.auction_swap_fee_bp)

        self.pool = StakingPool(
            pool_config, self.native_ledger, self.staked_ledger,
            auction_oracle=self.auction_oracle,
        )
        self.agents = self._initialize_agents()

        # Events scheduled by stress scenarios: step -> callbacks
        self.scheduled_events: Dict[int, List[Callable[["PoolSimulationEngine"], None]]] = defaultdict(list)

        self.metrics_history: List[Dict] = []
        self.agent_actions_history: List[Dict] = []
        self.clamped_withdrawals: List[Dict] = []
        self._step_volumes = self._empty_volumes()

    def _initialize_agents(self) -> Dict[str, BaseAgent]:
        """Initialize and fund agents based on configuration"""
        config = self.config
        agents: Dict[str, BaseAgent] = {}

        for i in range(config.num_liquidity_providers):
            agent = LiquidityProvider(f"lp_{i}", config.lp_initial_native, config.lp_rebalance_probability)
            agents[agent.agent_id] = agent

        for i in range(config.num_buyers):
            agent = StakedTrader(f"buyer_{i}", BUYER, config.buyer_initial_native,
                                 config.trade_probability, config.max_trade_fraction)
            agents[agent.agent_id] = agent

        for i in range(config.num_sellers):
            agent = StakedTrader(f"seller_{i}", SELLER, config.seller_initial_staked,
                                 config.trade_probability, config.max_trade_fraction)
            agents[agent.agent_id] = agent

        for agent in agents.values():
            initial = agent.state.initial_balances
            if initial.get(Asset.NATIVE):
                self.native_ledger.mint(agent.agent_id, initial[Asset.NATIVE])
            if initial.get(Asset.STAKED):
                self.staked_ledger.mint(agent.agent_id, initial[Asset.STAKED])
            self.native_ledger.approve(agent.agent_id, self.pool.account, UNLIMITED)
            self.staked_ledger.approve(agent.agent_id, self.pool.account, UNLIMITED)

        return agents

    def schedule(self, step: int, callback: Callable[["PoolSimulationEngine"], None]) -> None:
        """Run `callback(engine)` before agents act at `step`"""
        self.scheduled_events[step].append(callback)

    def set_auction_fee(self, swap_fee_bp: int, manager: Optional[str] = None) -> None:
        """Install a new winning bid carrying `swap_fee_bp`"""
        if self.auction_oracle is None:
            raise InvalidConfiguration("Pool is not configured with the auction fee source")
        manager = manager or self.config.auction_manager
        self.auction_oracle.set_top_bid(Bid(manager=manager, payload=encode_payload(swap_fee_bp)))
        self._log_event("auction_fee", manager=manager, swap_fee_bp=swap_fee_bp)

    def run_simulation(self, steps: Optional[int] = None) -> Dict:
        """Run simulation for specified number of steps"""
        steps = steps or self.config.simulation_steps

        for step in range(steps):
            self.current_step = step
            self._step_volumes = self._empty_volumes()

            for callback in self.scheduled_events.get(step, []):
                callback(self)

            self._process_agent_actions()

            if self.config.bond_fraction and step % self.config.bond_frequency == 0:
                self.bond_fraction(self.config.bond_fraction)

            if step % self.config.metrics_recording_frequency == 0:
                self._record_metrics()

            if step % 100 == 0:
                logger.info("Simulation step %d/%d", step, steps)

        return self._generate_results()

    def _process_agent_actions(self):
        """Process actions for all agents in random order"""
        agent_ids = list(self.agents)
        self.rng.shuffle(agent_ids)

        for agent_id in agent_ids:
            agent = self.agents[agent_id]
            if not agent.active:
                continue

            action_type, params = agent.decide_action(
                self.pool.get_state(), self.get_balances(agent_id), self.rng
            )
            if action_type != AgentAction.HOLD:
                self.execute_agent_action(agent, action_type, params)

    def execute_agent_action(self, agent: BaseAgent, action_type: AgentAction, params: dict) -> bool:
        """Execute agent action through the pool; rejected actions are recorded, not raised"""
        try:
            if action_type == AgentAction.PROVIDE_LIQUIDITY:
                result = self.pool.provide_liquidity(agent.agent_id, params["amount"])
            elif action_type == AgentAction.REMOVE_LIQUIDITY:
                result = self.pool.remove_liquidity(agent.agent_id, params["shares"])
                if result.clamped:
                    self.clamped_withdrawals.append({
                        "step": self.current_step,
                        "entitled_amount": result.entitled_amount,
                        "amount": result.amount,
                    })
            elif action_type == AgentAction.BUY:
                result = self.pool.buy(agent.agent_id, params["amount"])
                self._step_volumes["buy_volume"] += result.amount_in
                self._step_volumes["minted"] += result.minted
                self._step_volumes["fees"] += result.total_fee
            elif action_type == AgentAction.SELL:
                result = self.pool.sell(agent.agent_id, params["amount"])
                self._step_volumes["sell_volume"] += result.amount_in
                self._step_volumes["fees"] += result.total_fee
            else:
                return False
        except PoolError as e:
            agent.record_failure(action_type, e)
            self._step_volumes["failed_actions"] += 1
            logger.debug("Action %s for %s rejected: %s", action_type.value, agent.agent_id, e)
            return False

        agent.record_result(action_type, result)
        self._record_agent_action(agent.agent_id, action_type, params)
        return True

    def withdraw_fraction(self, fraction: float, agent_type: str = "liquidity_provider") -> None:
        """Every agent of `agent_type` burns `fraction` of its shares"""
        for agent in self._agents_of_type(agent_type):
            shares = int(self.pool.share_balance(agent.agent_id) * fraction)
            if shares > 0:
                self.execute_agent_action(agent, AgentAction.REMOVE_LIQUIDITY, {"shares": shares})
        self._log_event("withdraw_fraction", fraction=fraction)

    def sell_fraction(self, fraction: float) -> None:
        """Every seller sells `fraction` of its staked balance"""
        for agent in self._agents_of_type(SELLER):
            amount = int(self.staked_ledger.balance_of(agent.agent_id) * fraction)
            if amount > 0:
                self.execute_agent_action(agent, AgentAction.SELL, {"amount": amount})
        self._log_event("sell_fraction", fraction=fraction)

    def buy_fraction(self, fraction: float) -> None:
        """Every buyer spends `fraction` of its native balance"""
        for agent in self._agents_of_type(BUYER):
            amount = int(self.native_ledger.balance_of(agent.agent_id) * fraction)
            if amount > 0:
                self.execute_agent_action(agent, AgentAction.BUY, {"amount": amount})
        self._log_event("buy_fraction", fraction=fraction)

    def bond_fraction(self, fraction: float) -> None:
        """Bond `fraction` of the staked value the pool currently holds"""
        amount = int(self.pool.state.staked_balance * fraction)
        if amount <= 0:
            return
        try:
            self.pool.bond(amount)
        except PoolError as e:
            logger.debug("Bonding %d rejected: %s", amount, e)
            return
        self._log_event("bond", amount=amount)

    def get_balances(self, account: str) -> Dict[Asset, int]:
        return {
            Asset.NATIVE: self.native_ledger.balance_of(account),
            Asset.STAKED: self.staked_ledger.balance_of(account),
            Asset.SHARE: self.pool.share_balance(account),
        }

    def metrics_dataframe(self) -> pd.DataFrame:
        """Per-step metrics as a DataFrame indexed by step"""
        if not self.metrics_history:
            return pd.DataFrame()
        return pd.DataFrame(self.metrics_history).set_index("step")

    def _agents_of_type(self, agent_type: str) -> List[BaseAgent]:
        return [agent for agent in self.agents.values() if agent.agent_type == agent_type]

    @staticmethod
    def _empty_volumes() -> Dict[str, int]:
        return {"buy_volume": 0, "sell_volume": 0, "minted": 0, "fees": 0, "failed_actions": 0}

    def _log_event(self, event: str, **details) -> None:
        entry = {"step": self.current_step, "event": event}
        entry.update(details)
        self.event_log.append(entry)

    def _record_agent_action(self, agent_id: str, action_type: AgentAction, params: dict):
        self.agent_actions_history.append({
            "step": self.current_step,
            "agent_id": agent_id,
            "action": action_type.value,
            **params,
        })

    def _record_metrics(self):
        """Record pool metrics for the current step"""
        state = self.pool.get_state()
        utilization = state["utilization_bp"]
        self.metrics_history.append({
            "step": self.current_step,
            "native_balance": state["native_balance"],
            "staked_balance": state["staked_balance"],
            "bonded_balance": state["bonded_balance"],
            "share_supply": state["share_supply"],
            "dynamic_fee_bp": state["dynamic_fee_bp"],
            "utilization_bp": np.nan if utilization is None else utilization,
            "total": np.nan if state["total"] is None else state["total"],
            "share_price": state["share_price"],
            "staked_supply": self.staked_ledger.total_supply,
            **self._step_volumes,
        })

    def _generate_results(self) -> dict:
        """Generate simulation results summary"""
        share_price = self.pool.share_price()
        agent_summaries = [
            agent.get_portfolio_summary(self.get_balances(agent_id), share_price)
            for agent_id, agent in self.agents.items()
        ]

        action_counts: Dict[str, int] = defaultdict(int)
        for action in self.agent_actions_history:
            action_counts[action["action"]] += 1

        return {
            "config": self.config.pool.to_dict(),
            "steps": self.current_step + 1,
            "metrics_history": self.metrics_history,
            "final_state": self.pool.get_state(),
            "agent_summaries": agent_summaries,
            "action_counts": dict(action_counts),
            "failed_actions": sum(agent.state.actions_failed for agent in self.agents.values()),
            "clamped_withdrawals": len(self.clamped_withdrawals),
            "clamp_shortfall": sum(
                entry["entitled_amount"] - entry["amount"] for entry in self.clamped_withdrawals
            ),
            "events": self.event_log,
        }
