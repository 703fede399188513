#!/usr/bin/env python3
"""
Single-Sided Staking Pool

Composes valuation, liquidity accounting and swaps over one shared pool state.
LPs deposit only the native asset; traders buy the staked asset with native or
sell it back. Each public operation:

- runs under a single-writer guard (concurrent callers wait, re-entrant calls fail)
- refreshes the dynamic fee once from the balances seen at call start
- writes the pool state before any ledger is touched
- on failure, restores the pool state and undoes only its own ledger calls

Reads take the same guard, so they never see a half-applied operation.
"""

import logging
import threading
from collections import deque
from contextlib import contextmanager
from dataclasses import asdict, fields
from typing import Deque, Dict, List, Optional

from ..engine.config import PoolConfig, PoolParameters
from .auction import AuctionFeeOracle
from .errors import AmountZero, InsufficientLiquidity, ReentrantCall, ValuationUnderflow
from .fees import create_fee_source
from .ledger import JournaledLedger, LedgerJournal, ShareToken, TokenLedger
from .liquidity import LiquidityAccounting, LiquidityResult, WithdrawalResult
from .math import PoolMath
from .state import PoolState
from .swap import SwapEngine, SwapResult
from .valuation import ValuationEngine

logger = logging.getLogger(__name__)


class StakingPool:
    """Pricing, fee and liquidity-accounting engine of one pool deployment"""

    def __init__(
        self,
        config: PoolConfig,
        native_ledger: TokenLedger,
        staked_ledger: TokenLedger,
        account: str = PoolParameters.POOL_ACCOUNT,
        auction_oracle: Optional[AuctionFeeOracle] = None,
    ):
        config.validate()
        self.config = config
        self.account = account
        self.bond_account = f"{account}.bonded"

        self.native_ledger = native_ledger
        self.staked_ledger = staked_ledger
        self.share_token = ShareToken(config.share_name, config.share_symbol)

        # operations write through these so a failure undoes exactly its own calls
        self._journal = LedgerJournal()
        self._native = JournaledLedger(native_ledger, self._journal)
        self._staked = JournaledLedger(staked_ledger, self._journal)
        self._shares = JournaledLedger(self.share_token, self._journal)

        self.state = PoolState(dynamic_fee_bp=config.initial_dynamic_fee_bp)
        self.valuation = ValuationEngine(self.state, config.base_fee)
        self.fee_source = create_fee_source(config.fee_source, auction_oracle)
        self.liquidity = LiquidityAccounting(
            self.state, self.valuation, self._native, self._shares, account
        )
        self.swaps = SwapEngine(
            self.state, self.valuation, self.fee_source, self._native, self._staked, account
        )

        # committed operations only, oldest dropped first
        self.history: Deque[Dict] = deque(maxlen=config.history_limit)
        self._pending: List[Dict] = []
        self._lock = threading.RLock()
        self._depth = 0

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    def provide_liquidity(self, provider: str, amount: int) -> LiquidityResult:
        """Deposit native tokens and receive pool shares"""
        with self._operation("provide_liquidity"):
            self._refresh_fee()
            result = self.liquidity.provide(provider, amount)
            self._record("provide_liquidity", result)
        logger.info("%s provided %d native for %d shares", provider, amount, result.shares_minted)
        return result

    def remove_liquidity(self, provider: str, shares: int) -> WithdrawalResult:
        """Burn pool shares and receive their native value"""
        with self._operation("remove_liquidity"):
            self._refresh_fee()
            result = self.liquidity.remove(provider, shares)
            self._record("remove_liquidity", result)
        logger.info("%s burned %d shares for %d native", provider, shares, result.amount)
        return result

    def buy(self, trader: str, amount: int) -> SwapResult:
        """Pay native tokens, receive staked tokens"""
        with self._operation("buy"):
            self._refresh_fee()
            result = self.swaps.buy(trader, amount)
            self._record("buy", result)
        logger.info("%s bought %d %s for %d native (minted %d)",
                    trader, result.amount_out, self.config.staked_asset, amount, result.minted)
        return result

    def sell(self, trader: str, amount: int) -> SwapResult:
        """Pay staked tokens, receive native tokens"""
        with self._operation("sell"):
            self._refresh_fee()
            result = self.swaps.sell(trader, amount)
            self._record("sell", result)
        logger.info("%s sold %d %s for %d native",
                    trader, amount, self.config.staked_asset, result.amount_out)
        return result

    def sync(self) -> Dict[str, int]:
        """Reset native and staked balances to what the ledgers report for the pool"""
        with self._operation("sync"):
            native = self.native_ledger.balance_of(self.account)
            staked = self.staked_ledger.balance_of(self.account)
            drift = {
                "native_drift": native - self.state.native_balance,
                "staked_drift": staked - self.state.staked_balance,
            }
            self.state.native_balance = native
            self.state.staked_balance = staked
            self._record("sync", drift)
        if drift["native_drift"] or drift["staked_drift"]:
            logger.warning("Sync corrected balance drift: %s", drift)
        return drift

    def bond(self, amount: int) -> None:
        """Pledge pool-held staked tokens elsewhere; they keep counting toward utilization"""
        with self._operation("bond"):
            if amount <= 0:
                raise AmountZero("Bond amount must be positive")
            if amount > self.state.staked_balance:
                raise InsufficientLiquidity(
                    f"Cannot bond {amount}, pool holds {self.state.staked_balance} staked"
                )
            self.state.staked_balance -= amount
            self.state.bonded_balance += amount
            self._staked.transfer(self.account, self.bond_account, amount)
            self._record("bond", {"amount": amount})
        logger.info("Bonded %d %s", amount, self.config.staked_asset)

    def unbond(self, amount: int) -> None:
        """Return bonded staked tokens to the pool's holding"""
        with self._operation("unbond"):
            if amount <= 0:
                raise AmountZero("Unbond amount must be positive")
            if amount > self.state.bonded_balance:
                raise InsufficientLiquidity(
                    f"Cannot unbond {amount}, only {self.state.bonded_balance} is bonded"
                )
            self.state.bonded_balance -= amount
            self.state.staked_balance += amount
            self._staked.transfer(self.bond_account, self.account, amount)
            self._record("unbond", {"amount": amount})
        logger.info("Unbonded %d %s", amount, self.config.staked_asset)

    def refresh_fee(self) -> int:
        """Recompute and store the dynamic fee from current balances"""
        with self._operation("refresh_fee"):
            return self._refresh_fee()

    # ------------------------------------------------------------------
    # Reads (never mutate state; wait for any in-flight operation)
    # ------------------------------------------------------------------

    calculate_utilization = staticmethod(PoolMath.calculate_utilization)

    def quote_fee(self, utilization_bp: int) -> int:
        return PoolMath.quote_fee(utilization_bp, self.config.target_utilization_bp)

    def calculate_dynamic_fee(self, amount: int) -> int:
        with self._lock:
            return self.valuation.dynamic_fee(amount)

    def calculate_total_fee(self, amount: int) -> int:
        with self._lock:
            return self.valuation.total_fee(amount)

    def total(self) -> int:
        with self._lock:
            return self.valuation.total()

    def utilization(self) -> Optional[int]:
        """Current utilization, or None while it is undefined"""
        with self._lock:
            if self.state.native_balance == 0 or self.state.committed == 0:
                return None
            return self.valuation.utilization()

    def share_balance(self, account: str) -> int:
        with self._lock:
            return self.share_token.balance_of(account)

    def share_price(self) -> float:
        """Native value per share, for reporting; 0.0 while the total underflows"""
        with self._lock:
            if self.state.share_supply == 0:
                return 1.0
            total = self._reported_total()
            if total is None:
                return 0.0
            return total / self.state.share_supply

    def get_state(self) -> Dict:
        """Get summary of current pool state"""
        with self._lock:
            summary = self.state.as_dict()
            summary.update({
                "utilization_bp": self.utilization(),
                "total": self._reported_total(),
                "share_price": self.share_price(),
                "fee_source": self.fee_source.name,
            })
        return summary

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reported_total(self) -> Optional[int]:
        try:
            return self.total()
        except ValuationUnderflow:
            return None

    def _refresh_fee(self) -> int:
        state = self.state
        if state.native_balance == 0 or state.committed == 0:
            logger.debug("Utilization undefined (native=%d, committed=%d), keeping fee at %d bp",
                         state.native_balance, state.committed, state.dynamic_fee_bp)
            return state.dynamic_fee_bp

        utilization = PoolMath.calculate_utilization(
            state.staked_balance, state.bonded_balance, state.native_balance
        )
        state.dynamic_fee_bp = PoolMath.quote_fee(utilization, self.config.target_utilization_bp)
        logger.debug("Utilization %d bp -> dynamic fee %d bp", utilization, state.dynamic_fee_bp)
        return state.dynamic_fee_bp

    @contextmanager
    def _operation(self, name: str):
        """Serialize an operation and make it all-or-nothing"""
        with self._lock:
            if self._depth:
                raise ReentrantCall(f"{name} invoked while another pool operation is running")
            self._depth += 1
            state_snapshot = self.state.copy()
            self._journal.clear()
            self._pending.clear()
            try:
                yield
            except Exception as e:
                self._restore(state_snapshot)
                self._pending.clear()
                logger.warning("%s rolled back (%d ledger calls undone): %s", name, len(self._journal), e)
                self._journal.rollback()
                raise
            else:
                self.history.extend(self._pending)
            finally:
                self._journal.clear()
                self._pending.clear()
                self._depth -= 1

    def _restore(self, snapshot: PoolState) -> None:
        # in place: valuation, liquidity and swaps hold this same state object
        for field in fields(PoolState):
            setattr(self.state, field.name, getattr(snapshot, field.name))

    def _record(self, operation: str, result) -> None:
        entry = {"operation": operation}
        entry.update(result if isinstance(result, dict) else asdict(result))
        entry["state"] = self.state.as_dict()
        self._pending.append(entry)
