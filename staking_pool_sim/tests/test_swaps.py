#!/usr/bin/env python3
"""
Swap Test Suite

Buys with staked issuance, sells against the native reserve, fee refresh
ordering and the checks that abort a trade.
"""

import pytest

from staking_pool_sim.analysis.metrics import round_trip
from staking_pool_sim.core.errors import (
    AmountZero, FeeTooLow, InsufficientAllowance, InsufficientLiquidity, MintingFailed, MintingNotSupported,
    NativeTokenTransferAmountZero, StakedTokenTransferAmountZero,
)
from staking_pool_sim.core.ledger import InMemoryTokenLedger
from staking_pool_sim.core.pool import StakingPool
from staking_pool_sim.engine.config import PoolConfig


class BrokenMintLedger(InMemoryTokenLedger):
    """Accepts mint calls without issuing anything"""

    def mint(self, recipient: str, amount: int) -> None:
        pass


class TestRoundTrip:
    """Deposit 1000, buy with 1000, sell the proceeds back"""

    def setup_method(self):
        self.native = InMemoryTokenLedger("ETH", mintable=True)
        self.staked = InMemoryTokenLedger("stETH", mintable=True)
        self.pool = StakingPool(PoolConfig(), self.native, self.staked)

        for account, amount in (("lp", 1000), ("trader", 2000)):
            self.native.mint(account, amount)
            self.native.approve(account, self.pool.account, amount)
        self.staked.approve("trader", self.pool.account, 10_000)
        self.pool.provide_liquidity("lp", 1000)

    def test_buy_pays_dynamic_fee_less_base_fee(self):
        result = self.pool.buy("trader", 1000)

        # 1000 + 10 dynamic - 100 base
        assert result.amount_out == 910
        assert result.manager_fee == -90
        assert result.minted == 910
        assert self.staked.balance_of("trader") == 910
        assert self.staked.total_supply == 910
        assert self.pool.state.native_balance == 2000
        assert self.pool.state.staked_balance == 0

    def test_sell_back_returns_less_than_paid(self):
        bought = self.pool.buy("trader", 1000)
        sold = self.pool.sell("trader", bought.amount_out)

        # 910 - 9 dynamic - 100 base
        assert sold.amount_out == 801
        assert sold.dynamic_fee == 9
        assert sold.base_fee == 100
        assert sold.fee_bp == 100
        assert self.pool.state.native_balance == 1199
        assert self.pool.state.staked_balance == 910
        assert self.staked.balance_of(self.pool.account) == 910

    def test_round_trip_helper_matches(self):
        result = round_trip(1000)
        assert result["staked_out"] == 910
        assert result["native_back"] == 801
        assert result["leakage"] == 199

    @pytest.mark.parametrize("amount", [1000, 25_000, 1_000_000])
    def test_round_trip_never_creates_value(self, amount):
        assert round_trip(amount)["native_back"] < amount

    def test_fee_is_refreshed_at_the_start_of_the_next_operation(self):
        bought = self.pool.buy("trader", 1000)
        self.pool.sell("trader", bought.amount_out)
        assert self.pool.state.dynamic_fee_bp == 100

        # utilization 910 * 10000 / 1199 = 7589 bp, past the 5000 bp target
        assert self.pool.utilization() == 7589
        assert self.pool.quote_fee(7589) == 15_178
        assert self.pool.state.dynamic_fee_bp == 100

        assert self.pool.refresh_fee() == 15_178
        assert self.pool.state.dynamic_fee_bp == 15_178

    def test_buy_mints_only_the_shortfall(self):
        bought = self.pool.buy("trader", 1000)
        self.pool.sell("trader", bought.amount_out)

        result = self.pool.buy("trader", 500)

        # 500 + (758 dynamic - 100 base) against 910 held
        assert result.fee_bp == 15_178
        assert result.amount_out == 1158
        assert result.minted == 248
        assert self.pool.state.staked_balance == 0
        assert self.staked.balance_of(self.pool.account) == 0


class TestSwapChecks:

    def setup_method(self):
        self.native = InMemoryTokenLedger("ETH", mintable=True)
        self.staked = InMemoryTokenLedger("stETH", mintable=True)
        self.pool = StakingPool(PoolConfig(), self.native, self.staked)

        self.native.mint("lp", 1000)
        self.native.approve("lp", self.pool.account, 1000)
        self.pool.provide_liquidity("lp", 1000)

        self.native.mint("trader", 10_000)
        self.native.approve("trader", self.pool.account, 10_000)
        self.staked.mint("trader", 10_000)
        self.staked.approve("trader", self.pool.account, 10_000)

    def test_sell_with_zero_dynamic_fee(self):
        with pytest.raises(FeeTooLow):
            self.pool.sell("trader", 99)

    @pytest.mark.parametrize("amount", [100, 101])
    def test_sell_consumed_by_fees(self, amount):
        with pytest.raises(NativeTokenTransferAmountZero):
            self.pool.sell("trader", amount)

    def test_sell_beyond_native_reserve(self):
        before = self.pool.state.copy()

        with pytest.raises(InsufficientLiquidity):
            self.pool.sell("trader", 5000)

        assert self.pool.state == before
        assert self.staked.balance_of("trader") == 10_000

    def test_buy_consumed_by_base_fee(self):
        with pytest.raises(StakedTokenTransferAmountZero):
            self.pool.buy("trader", 99)

    def test_smallest_buy_that_pays_out(self):
        assert self.pool.buy("trader", 100).amount_out == 1

    @pytest.mark.parametrize("operation", ["buy", "sell"])
    def test_zero_amount_leaves_state_unchanged(self, operation):
        before = self.pool.state.copy()

        with pytest.raises(AmountZero):
            getattr(self.pool, operation)("trader", 0)

        assert self.pool.state == before
        assert self.native.balance_of("trader") == 10_000
        assert self.staked.balance_of("trader") == 10_000

    def test_sell_without_staked_balance_rolls_back(self):
        before = self.pool.state.copy()

        with pytest.raises(InsufficientAllowance):
            self.pool.sell("lp", 1000)

        assert self.pool.state == before
        assert self.native.balance_of(self.pool.account) == 1000


class TestStakedIssuance:

    def _pool(self, staked_ledger):
        native = InMemoryTokenLedger("ETH", mintable=True)
        pool = StakingPool(PoolConfig(), native, staked_ledger)
        for account in ("lp", "trader"):
            native.mint(account, 1000)
            native.approve(account, pool.account, 1000)
        pool.provide_liquidity("lp", 1000)
        return pool, native

    def test_mint_that_issues_nothing_fails_the_buy(self):
        pool, native = self._pool(BrokenMintLedger("stETH", mintable=True))
        before = pool.state.copy()

        with pytest.raises(MintingFailed):
            pool.buy("trader", 1000)

        assert pool.state == before
        assert native.balance_of("trader") == 1000

    def test_non_mintable_staked_asset_fails_the_buy(self):
        pool, native = self._pool(InMemoryTokenLedger("stETH"))

        with pytest.raises(MintingNotSupported):
            pool.buy("trader", 1000)

        assert pool.state.native_balance == 1000
        assert native.balance_of("trader") == 1000
