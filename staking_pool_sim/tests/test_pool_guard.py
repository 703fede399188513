#!/usr/bin/env python3
"""
Pool Guard Test Suite

Single-writer guard, all-or-nothing rollback, balance sync and bonding.
"""

import threading

import pytest

from staking_pool_sim.core.errors import (
    AmountZero, DivisionUndefined, InsufficientAllowance, InsufficientLiquidity, InvalidConfiguration,
    ReentrantCall,
)
from staking_pool_sim.core.ledger import InMemoryTokenLedger
from staking_pool_sim.core.pool import StakingPool
from staking_pool_sim.engine.config import PoolConfig


class ReentrantLedger(InMemoryTokenLedger):
    """Calls back into the pool while a transfer is in flight"""

    pool = None

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        if self.pool is not None:
            self.pool.provide_liquidity(owner, amount)
        super().transfer_from(spender, owner, recipient, amount)


class BlockingLedger(InMemoryTokenLedger):
    """Holds pulls from one owner until the test releases them"""

    def __init__(self, symbol: str, blocked_owner: str):
        super().__init__(symbol, mintable=True)
        self.blocked_owner = blocked_owner
        self.entered = threading.Event()
        self.release = threading.Event()

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        if owner == self.blocked_owner:
            self.entered.set()
            self.release.wait(timeout=5)
        super().transfer_from(spender, owner, recipient, amount)


def run_in_thread(call, errors):
    def target():
        try:
            call()
        except Exception as e:
            errors.append(e)
    thread = threading.Thread(target=target)
    thread.start()
    return thread


class TestOperationGuard:

    def test_reentrant_call_fails_and_rolls_back(self):
        native = ReentrantLedger("ETH", mintable=True)
        pool = StakingPool(PoolConfig(), native, InMemoryTokenLedger("stETH", mintable=True))
        native.mint("lp", 1000)
        native.approve("lp", pool.account, 1000)
        native.pool = pool

        with pytest.raises(ReentrantCall):
            pool.provide_liquidity("lp", 1000)

        assert pool.state.native_balance == 0
        assert pool.state.share_supply == 0
        assert pool.share_balance("lp") == 0
        assert native.balance_of("lp") == 1000

        # the guard is released after the failure
        native.pool = None
        assert pool.provide_liquidity("lp", 1000).shares_minted == 1000

    def test_concurrent_deposits_are_serialized(self):
        native = InMemoryTokenLedger("ETH", mintable=True)
        pool = StakingPool(PoolConfig(), native, InMemoryTokenLedger("stETH", mintable=True))
        providers = [f"lp_{i}" for i in range(8)]
        for provider in providers:
            native.mint(provider, 10_000)
            native.approve(provider, pool.account, 10_000)

        def deposit(provider):
            for _ in range(10):
                pool.provide_liquidity(provider, 1000)

        threads = [threading.Thread(target=deposit, args=(p,)) for p in providers]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert pool.state.native_balance == 80_000
        assert native.balance_of(pool.account) == 80_000
        assert pool.state.share_supply == sum(pool.share_balance(p) for p in providers)
        assert len(pool.history) == 80

    def test_failed_operation_keeps_other_pools_transfers(self):
        native = BlockingLedger("ETH", blocked_owner="slow")
        staked = InMemoryTokenLedger("stETH", mintable=True)
        pool_a = StakingPool(PoolConfig(), native, staked, account="pool_a")
        pool_b = StakingPool(PoolConfig(), native, staked, account="pool_b")
        native.mint("slow", 1000)
        native.mint("lp", 1000)
        native.approve("lp", "pool_b", 1000)

        # "slow" never approved pool_a, so this deposit fails after pool_b commits
        errors = []
        thread = run_in_thread(lambda: pool_a.provide_liquidity("slow", 1000), errors)
        assert native.entered.wait(timeout=5)
        pool_b.provide_liquidity("lp", 1000)
        native.release.set()
        thread.join(timeout=5)

        assert len(errors) == 1 and isinstance(errors[0], InsufficientAllowance)
        assert pool_a.state.native_balance == 0
        assert pool_a.share_balance("slow") == 0
        assert native.balance_of("slow") == 1000

        assert pool_b.state.native_balance == 1000
        assert native.balance_of("pool_b") == 1000
        assert native.balance_of("lp") == 0
        assert pool_b.share_balance("lp") == 1000

    def test_reads_wait_for_in_flight_operation(self):
        native = BlockingLedger("ETH", blocked_owner="slow")
        pool = StakingPool(PoolConfig(), native, InMemoryTokenLedger("stETH", mintable=True))
        native.mint("slow", 1000)

        errors = []
        writer = run_in_thread(lambda: pool.provide_liquidity("slow", 1000), errors)
        assert native.entered.wait(timeout=5)

        observed = []
        reader = run_in_thread(lambda: observed.append(pool.get_state()), errors)
        reader.join(timeout=0.2)
        assert reader.is_alive()

        native.release.set()
        writer.join(timeout=5)
        reader.join(timeout=5)

        assert len(errors) == 1 and isinstance(errors[0], InsufficientAllowance)
        assert observed[0]["native_balance"] == 0
        assert observed[0]["share_supply"] == 0


class TestFeeRefresh:

    def setup_method(self):
        self.native = InMemoryTokenLedger("ETH", mintable=True)
        self.staked = InMemoryTokenLedger("stETH", mintable=True)
        self.pool = StakingPool(PoolConfig(initial_dynamic_fee_bp=250), self.native, self.staked)

    def test_fee_kept_while_utilization_is_undefined(self):
        assert self.pool.utilization() is None
        assert self.pool.refresh_fee() == 250
        assert self.pool.state.dynamic_fee_bp == 250

    def test_strict_utilization_still_raises(self):
        with pytest.raises(DivisionUndefined):
            self.pool.calculate_utilization(0, 0, 0)

    def test_reads_do_not_mutate(self):
        before = self.pool.state.copy()
        self.pool.quote_fee(9000)
        self.pool.calculate_dynamic_fee(1000)
        self.pool.calculate_total_fee(1000)
        self.pool.total()
        self.pool.get_state()
        assert self.pool.state == before

    def test_total_fee_adds_base_fee(self):
        assert self.pool.calculate_dynamic_fee(1000) == 25
        assert self.pool.calculate_total_fee(1000) == 125


class TestSyncAndBonding:
    """Pool holding 910 staked after a buy/sell round trip"""

    def setup_method(self):
        self.native = InMemoryTokenLedger("ETH", mintable=True)
        self.staked = InMemoryTokenLedger("stETH", mintable=True)
        self.pool = StakingPool(PoolConfig(), self.native, self.staked)

        for account, amount in (("lp", 1000), ("trader", 1000)):
            self.native.mint(account, amount)
            self.native.approve(account, self.pool.account, amount)
        self.staked.approve("trader", self.pool.account, 1000)

        self.pool.provide_liquidity("lp", 1000)
        bought = self.pool.buy("trader", 1000)
        self.pool.sell("trader", bought.amount_out)

    def test_sync_without_drift(self):
        assert self.pool.sync() == {"native_drift": 0, "staked_drift": 0}

    def test_sync_picks_up_direct_transfers(self):
        self.native.mint(self.pool.account, 50)
        total_before = self.pool.total()

        drift = self.pool.sync()

        assert drift == {"native_drift": 50, "staked_drift": 0}
        assert self.pool.state.native_balance == 1249
        assert self.pool.total() > total_before

    def test_second_sync_finds_no_drift(self):
        self.native.mint(self.pool.account, 50)
        self.staked.mint(self.pool.account, 7)

        first = self.pool.sync()
        state_after_first = self.pool.state.copy()
        second = self.pool.sync()

        assert first == {"native_drift": 50, "staked_drift": 7}
        assert second == {"native_drift": 0, "staked_drift": 0}
        assert self.pool.state == state_after_first

    def test_bond_keeps_utilization(self):
        utilization = self.pool.utilization()

        self.pool.bond(500)

        assert self.pool.state.staked_balance == 410
        assert self.pool.state.bonded_balance == 500
        assert self.pool.utilization() == utilization
        assert self.staked.balance_of(self.pool.account) == 410
        assert self.staked.balance_of(self.pool.bond_account) == 500
        assert self.pool.sync() == {"native_drift": 0, "staked_drift": 0}

    def test_unbond_returns_staked(self):
        self.pool.bond(500)
        self.pool.unbond(200)

        assert self.pool.state.staked_balance == 610
        assert self.pool.state.bonded_balance == 300
        assert self.staked.balance_of(self.pool.account) == 610

    def test_bond_limits(self):
        with pytest.raises(AmountZero):
            self.pool.bond(0)
        with pytest.raises(InsufficientLiquidity):
            self.pool.bond(911)
        with pytest.raises(InsufficientLiquidity):
            self.pool.unbond(1)

    def test_history_records_each_operation(self):
        operations = [entry["operation"] for entry in self.pool.history]
        assert operations == ["provide_liquidity", "buy", "sell"]
        assert self.pool.history[-1]["state"]["staked_balance"] == 910


class TestHistory:

    def setup_method(self):
        self.native = InMemoryTokenLedger("ETH", mintable=True)
        self.pool = StakingPool(
            PoolConfig(history_limit=3), self.native, InMemoryTokenLedger("stETH", mintable=True)
        )
        self.native.mint("lp", 10_000)
        self.native.approve("lp", self.pool.account, 10_000)

    def test_oldest_entries_are_dropped(self):
        for _ in range(5):
            self.pool.provide_liquidity("lp", 1000)

        assert len(self.pool.history) == 3
        assert [entry["state"]["native_balance"] for entry in self.pool.history] == [3000, 4000, 5000]

    def test_failed_operation_leaves_history_untouched(self):
        for _ in range(3):
            self.pool.provide_liquidity("lp", 1000)
        before = list(self.pool.history)

        with pytest.raises(InsufficientAllowance):
            self.pool.provide_liquidity("lp", 8000)

        assert list(self.pool.history) == before

    def test_limit_must_be_positive(self):
        with pytest.raises(InvalidConfiguration):
            PoolConfig(history_limit=0).validate()
