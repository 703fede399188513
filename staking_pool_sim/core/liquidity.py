#!/usr/bin/env python3
"""
Liquidity Accounting

LPs deposit only the native asset and receive shares proportional to the
value they add to the pool total. Every operation writes the pool state
before it touches a ledger.
"""

import logging
from dataclasses import dataclass

from .errors import AmountZero, InsufficientBalance
from .ledger import TokenLedger
from .math import mul_div
from .state import PoolState
from .valuation import ValuationEngine

logger = logging.getLogger(__name__)


@dataclass
class LiquidityResult:
    """Result of a liquidity deposit"""
    provider: str
    amount: int
    shares_minted: int
    total_before: int
    share_supply: int
    bootstrap: bool


@dataclass
class WithdrawalResult:
    """Result of a liquidity withdrawal"""
    provider: str
    shares_burned: int
    amount: int
    entitled_amount: int  # before clamping to the native reserve
    total_before: int
    share_supply: int
    clamped: bool


class LiquidityAccounting:
    """Mints and burns pool shares against the pool total"""

    def __init__(self, state: PoolState, valuation: ValuationEngine,
                 native_ledger: TokenLedger, share_token: TokenLedger, account: str):
        self.state = state
        self.valuation = valuation
        self.native_ledger = native_ledger
        self.share_token = share_token
        self.account = account

    def provide(self, provider: str, amount: int) -> LiquidityResult:
        """Deposit `amount` native tokens and mint shares to `provider`"""
        if amount <= 0:
            raise AmountZero("Liquidity amount must be positive")

        share_supply = self.state.share_supply
        bootstrap = share_supply == 0
        if bootstrap:
            total_before = amount
            shares = amount
        else:
            # priced against the total before the deposit lands
            total_before = self.valuation.total()
            shares = mul_div(amount, share_supply, total_before)

        if shares == 0:
            logger.warning("Deposit of %d from %s mints no shares (total %d)", amount, provider, total_before)

        self.state.native_balance += amount
        self.state.share_supply += shares

        if shares > 0:
            self.share_token.mint(provider, shares)
        self.native_ledger.transfer_from(self.account, provider, self.account, amount)

        return LiquidityResult(
            provider=provider,
            amount=amount,
            shares_minted=shares,
            total_before=total_before,
            share_supply=self.state.share_supply,
            bootstrap=bootstrap,
        )

    def remove(self, provider: str, shares: int) -> WithdrawalResult:
        """Burn `shares` from `provider` and pay out their native value"""
        if shares <= 0:
            raise AmountZero("Shares to burn must be positive")

        held = self.share_token.balance_of(provider)
        if held < shares:
            raise InsufficientBalance(f"{provider} holds {held} shares, cannot burn {shares}")

        share_supply = self.state.share_supply
        total_before = self.valuation.total()
        entitled = mul_div(shares, total_before, share_supply)

        amount = entitled
        clamped = entitled > self.state.native_balance
        if clamped:
            amount = self.state.native_balance
            logger.warning(
                "Withdrawal by %s clamped to native reserve: entitled %d, paid %d",
                provider, entitled, amount,
            )

        self.state.native_balance -= amount
        self.state.share_supply -= shares

        self.share_token.burn(provider, shares)
        if amount > 0:
            self.native_ledger.transfer(self.account, provider, amount)

        return WithdrawalResult(
            provider=provider,
            shares_burned=shares,
            amount=amount,
            entitled_amount=entitled,
            total_before=total_before,
            share_supply=self.state.share_supply,
            clamped=clamped,
        )
