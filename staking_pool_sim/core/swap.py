#!/usr/bin/env python3
"""
Swap Engine

Converts between the native and staked assets. Sells pay the dynamic fee plus
the flat base fee; buys are priced by the deployment's fee source and mint new
staked supply 1:1 when the pool holds too little to pay out.
"""

import logging
from dataclasses import dataclass

from .errors import (
    AmountZero,
    FeeTooLow,
    InsufficientLiquidity,
    MintingFailed,
    NativeTokenTransferAmountZero,
    StakedTokenTransferAmountZero,
)
from .fees import FeeSource
from .ledger import TokenLedger
from .state import PoolState
from .valuation import ValuationEngine

logger = logging.getLogger(__name__)

BUY = "buy"
SELL = "sell"


@dataclass
class SwapResult:
    """Result of a buy or sell"""
    side: str
    trader: str
    amount_in: int
    amount_out: int
    fee_bp: int
    dynamic_fee: int = 0
    base_fee: int = 0
    manager_fee: int = 0
    minted: int = 0

    @property
    def total_fee(self) -> int:
        return self.amount_in - self.amount_out


class SwapEngine:
    """Executes buys and sells against the pool state"""

    def __init__(self, state: PoolState, valuation: ValuationEngine, fee_source: FeeSource,
                 native_ledger: TokenLedger, staked_ledger: TokenLedger, account: str):
        self.state = state
        self.valuation = valuation
        self.fee_source = fee_source
        self.native_ledger = native_ledger
        self.staked_ledger = staked_ledger
        self.account = account

    def sell(self, trader: str, amount: int) -> SwapResult:
        """Take `amount` staked tokens from `trader` and pay out native tokens"""
        if amount <= 0:
            raise AmountZero("Sell amount must be positive")

        dynamic_fee = self.valuation.dynamic_fee(amount)
        if dynamic_fee == 0:
            raise FeeTooLow(
                f"Dynamic fee on {amount} rounds to zero at {self.state.dynamic_fee_bp} bp"
            )
        base_fee = self.valuation.base_fee
        native_out = amount - (dynamic_fee + base_fee)
        if native_out <= 0:
            raise NativeTokenTransferAmountZero(
                f"Fees of {dynamic_fee + base_fee} consume the whole sell of {amount}"
            )
        if native_out > self.state.native_balance:
            raise InsufficientLiquidity(
                f"Sell pays {native_out} native but the reserve holds {self.state.native_balance}"
            )

        self.state.staked_balance += amount
        self.state.native_balance -= native_out

        self.staked_ledger.transfer_from(self.account, trader, self.account, amount)
        self.native_ledger.transfer(self.account, trader, native_out)

        return SwapResult(
            side=SELL,
            trader=trader,
            amount_in=amount,
            amount_out=native_out,
            fee_bp=self.state.dynamic_fee_bp,
            dynamic_fee=dynamic_fee,
            base_fee=base_fee,
        )

    def buy(self, trader: str, amount: int) -> SwapResult:
        """Take `amount` native tokens from `trader` and pay out staked tokens"""
        if amount <= 0:
            raise AmountZero("Buy amount must be positive")

        manager_fee = self.fee_source.manager_fee(self.valuation, amount)
        staked_out = amount + manager_fee
        if staked_out <= 0:
            raise StakedTokenTransferAmountZero(
                f"Manager fee of {manager_fee} consumes the whole buy of {amount}"
            )

        shortfall = max(0, staked_out - self.state.staked_balance)

        self.state.staked_balance += shortfall - staked_out
        self.state.native_balance += amount

        if shortfall:
            self._mint_staked(shortfall)
        self.staked_ledger.transfer(self.account, trader, staked_out)
        self.native_ledger.transfer_from(self.account, trader, self.account, amount)

        return SwapResult(
            side=BUY,
            trader=trader,
            amount_in=amount,
            amount_out=staked_out,
            fee_bp=self.state.dynamic_fee_bp,
            manager_fee=manager_fee,
            minted=shortfall,
        )

    def _mint_staked(self, amount: int) -> None:
        """Issue `amount` staked tokens to the pool at 1:1"""
        before = self.staked_ledger.balance_of(self.account)
        self.staked_ledger.mint(self.account, amount)
        after = self.staked_ledger.balance_of(self.account)
        if after <= before:
            raise MintingFailed(
                f"Minting {amount} {self.staked_ledger.symbol} left the pool balance at {after}"
            )
        logger.debug("Minted %d %s to cover a buy", amount, self.staked_ledger.symbol)
