#!/usr/bin/env python3
"""
Liquidity Accounting Test Suite

Share minting on deposit, proportional redemption on withdrawal and the
native-reserve clamp.
"""

import pytest

from staking_pool_sim.core.errors import AmountZero, InsufficientAllowance, InsufficientBalance
from staking_pool_sim.core.ledger import InMemoryTokenLedger
from staking_pool_sim.core.pool import StakingPool
from staking_pool_sim.engine.config import PoolConfig


class TestProvideLiquidity:

    def setup_method(self):
        self.native = InMemoryTokenLedger("ETH", mintable=True)
        self.staked = InMemoryTokenLedger("stETH", mintable=True)
        self.pool = StakingPool(PoolConfig(), self.native, self.staked)

        for account in ("lp_0", "lp_1"):
            self.native.mint(account, 10_000)
            self.native.approve(account, self.pool.account, 10_000)

    def test_first_deposit_mints_one_share_per_native(self):
        result = self.pool.provide_liquidity("lp_0", 1000)

        assert result.bootstrap
        assert result.shares_minted == 1000
        assert self.pool.share_balance("lp_0") == 1000
        assert self.pool.state.native_balance == 1000
        assert self.pool.state.share_supply == 1000
        assert self.native.balance_of(self.pool.account) == 1000

    def test_second_deposit_is_priced_against_total_before(self):
        self.pool.provide_liquidity("lp_0", 1000)
        assert self.pool.total() == 1010

        result = self.pool.provide_liquidity("lp_1", 1000)

        # floor(1000 * 1000 / 1010)
        assert result.shares_minted == 990
        assert result.total_before == 1010
        assert not result.bootstrap
        assert self.pool.state.share_supply == 1990
        assert self.pool.state.native_balance == 2000

    def test_dust_deposit_mints_no_shares(self):
        self.pool.provide_liquidity("lp_0", 1000)

        result = self.pool.provide_liquidity("lp_1", 1)

        assert result.shares_minted == 0
        assert self.pool.share_balance("lp_1") == 0
        assert self.pool.state.native_balance == 1001

    def test_zero_deposit_rejected_without_side_effects(self):
        self.pool.provide_liquidity("lp_0", 1000)
        before = self.pool.state.copy()

        with pytest.raises(AmountZero):
            self.pool.provide_liquidity("lp_1", 0)

        assert self.pool.state == before
        assert len(self.pool.history) == 1

    def test_deposit_without_allowance_rolls_back(self):
        self.native.mint("stranger", 500)

        with pytest.raises(InsufficientAllowance):
            self.pool.provide_liquidity("stranger", 500)

        assert self.pool.state.native_balance == 0
        assert self.pool.state.share_supply == 0
        assert self.pool.share_balance("stranger") == 0
        assert self.pool.share_token.total_supply == 0
        assert len(self.pool.history) == 0


class TestRemoveLiquidity:

    def setup_method(self):
        self.native = InMemoryTokenLedger("ETH", mintable=True)
        self.staked = InMemoryTokenLedger("stETH", mintable=True)
        self.pool = StakingPool(PoolConfig(), self.native, self.staked)

        self.native.mint("lp", 1000)
        self.native.approve("lp", self.pool.account, 1000)
        self.pool.provide_liquidity("lp", 1000)

    def test_partial_withdrawal_is_proportional_to_total(self):
        result = self.pool.remove_liquidity("lp", 500)

        # floor(500 * 1010 / 1000)
        assert result.amount == 505
        assert not result.clamped
        assert self.pool.state.native_balance == 495
        assert self.pool.state.share_supply == 500
        assert self.native.balance_of("lp") == 505

    def test_burning_more_than_held_rejected(self):
        before = self.pool.state.copy()

        with pytest.raises(InsufficientBalance):
            self.pool.remove_liquidity("lp", 1001)

        assert self.pool.state == before
        assert self.pool.share_balance("lp") == 1000

    def test_zero_shares_rejected(self):
        before = self.pool.state.copy()

        with pytest.raises(AmountZero):
            self.pool.remove_liquidity("lp", 0)

        assert self.pool.state == before
        assert self.pool.share_balance("lp") == 1000
        assert self.native.balance_of("lp") == 0
        assert self.native.balance_of(self.pool.account) == 1000
        assert len(self.pool.history) == 1

    def test_full_withdrawal_is_clamped_to_native_reserve(self):
        # total() = 984 + 9 = 993 against 990 shares
        state = self.pool.state
        self.native.transfer(self.pool.account, "elsewhere", 16)
        self.pool.share_token.burn("lp", 10)
        state.native_balance = 984
        state.share_supply = 990
        assert self.pool.total() == 993

        result = self.pool.remove_liquidity("lp", 990)

        assert result.entitled_amount == 993
        assert result.amount == 984
        assert result.clamped
        assert self.pool.state.native_balance == 0
        assert self.pool.state.share_supply == 0
        assert self.native.balance_of("lp") == 984

    def test_clamped_withdrawal_is_recorded(self):
        self.pool.state.native_balance = 1000
        self.pool.state.staked_balance = 400
        self.staked.mint(self.pool.account, 400)

        result = self.pool.remove_liquidity("lp", 1000)

        assert result.clamped
        assert self.pool.history[-1]["operation"] == "remove_liquidity"
        assert self.pool.history[-1]["clamped"] is True
        assert self.pool.history[-1]["entitled_amount"] > self.pool.history[-1]["amount"]
