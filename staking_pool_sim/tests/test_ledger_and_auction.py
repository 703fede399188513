#!/usr/bin/env python3
"""
Ledger and Auction Fee Test Suite

In-memory token ledgers, auction payload decoding and the two buy-side
fee sources.
"""

import pytest

from staking_pool_sim.core.auction import (
    PAYLOAD_LENGTH, Bid, StaticAuctionFeeOracle, decode_swap_fee, encode_payload,
)
from staking_pool_sim.core.errors import (
    AmountZero, InsufficientAllowance, InsufficientBalance, InvalidConfiguration,
    InvalidPayload, MintingNotSupported,
)
from staking_pool_sim.core.fees import AUCTION, AuctionFeeSource, FormulaFeeSource, create_fee_source
from staking_pool_sim.core.ledger import InMemoryTokenLedger, JournaledLedger, LedgerJournal
from staking_pool_sim.core.pool import StakingPool
from staking_pool_sim.core.state import PoolState
from staking_pool_sim.core.valuation import ValuationEngine
from staking_pool_sim.engine.config import PoolConfig


class TestInMemoryTokenLedger:

    def setup_method(self):
        self.ledger = InMemoryTokenLedger("ETH", mintable=True)
        self.ledger.mint("alice", 1000)

    def test_transfer_moves_balance(self):
        self.ledger.transfer("alice", "bob", 400)
        assert self.ledger.balance_of("alice") == 600
        assert self.ledger.balance_of("bob") == 400
        assert self.ledger.total_supply == 1000

    def test_transfer_beyond_balance(self):
        with pytest.raises(InsufficientBalance):
            self.ledger.transfer("alice", "bob", 1001)

    def test_transfer_from_requires_allowance(self):
        with pytest.raises(InsufficientAllowance):
            self.ledger.transfer_from("pool", "alice", "pool", 1)

    def test_transfer_from_spends_allowance(self):
        self.ledger.approve("alice", "pool", 500)
        self.ledger.transfer_from("pool", "alice", "pool", 300)
        assert self.ledger.balance_of("pool") == 300
        assert self.ledger.allowance("alice", "pool") == 200

    def test_non_mintable_ledger_refuses_mint(self):
        ledger = InMemoryTokenLedger("stETH")
        with pytest.raises(MintingNotSupported):
            ledger.mint("pool", 1)

    def test_zero_mint_rejected(self):
        with pytest.raises(AmountZero):
            self.ledger.mint("alice", 0)

    def test_burn(self):
        self.ledger.burn("alice", 250)
        assert self.ledger.balance_of("alice") == 750
        assert self.ledger.total_supply == 750
        with pytest.raises(InsufficientBalance):
            self.ledger.burn("alice", 751)

    def test_journal_undoes_its_own_calls(self):
        journal = LedgerJournal()
        journaled = JournaledLedger(self.ledger, journal)
        self.ledger.approve("alice", "pool", 300)

        journaled.transfer_from("pool", "alice", "pool", 200)
        journaled.transfer("alice", "bob", 100)
        journaled.mint("carol", 5)
        journaled.burn("bob", 40)
        assert len(journal) == 4

        journal.rollback()

        assert self.ledger.balance_of("alice") == 1000
        assert self.ledger.balance_of("bob") == 0
        assert self.ledger.balance_of("carol") == 0
        assert self.ledger.balance_of("pool") == 0
        assert self.ledger.allowance("alice", "pool") == 300
        assert self.ledger.total_supply == 1000
        assert len(journal) == 0

    def test_journal_leaves_other_writers_alone(self):
        journal = LedgerJournal()
        journaled = JournaledLedger(self.ledger, journal)

        journaled.transfer("alice", "bob", 100)
        self.ledger.transfer("alice", "carol", 300)
        journal.rollback()

        assert self.ledger.balance_of("alice") == 700
        assert self.ledger.balance_of("bob") == 0
        assert self.ledger.balance_of("carol") == 300

    def test_failed_call_is_not_journaled(self):
        journal = LedgerJournal()
        journaled = JournaledLedger(self.ledger, journal)

        with pytest.raises(InsufficientAllowance):
            journaled.transfer_from("pool", "alice", "pool", 1)

        assert len(journal) == 0


class TestAuctionPayload:

    def test_fee_is_big_endian_in_first_three_bytes(self):
        payload = encode_payload(30)
        assert len(payload) == PAYLOAD_LENGTH
        assert payload[:3] == b"\x00\x00\x1e"
        assert decode_swap_fee(payload) == 30

    def test_tail_bytes_are_ignored(self):
        payload = bytes([0x00, 0x01, 0x00, 0xFF, 0xFF, 0xFF, 0xFF])
        assert decode_swap_fee(payload) == 256

    def test_wrong_length_payload(self):
        with pytest.raises(InvalidPayload):
            decode_swap_fee(b"\x00\x00\x1e")

    def test_fee_must_fit_24_bits(self):
        with pytest.raises(InvalidPayload):
            encode_payload(1 << 24)

    def test_oracle_without_bid_reports_zero(self):
        assert StaticAuctionFeeOracle().current_swap_fee() == 0

    def test_oracle_reports_top_bid(self):
        oracle = StaticAuctionFeeOracle()
        oracle.set_top_bid(Bid(manager="manager_0", payload=encode_payload(75)))
        assert oracle.current_swap_fee() == 75
        oracle.clear()
        assert oracle.current_swap_fee() == 0

    def test_oracle_rejects_malformed_bid(self):
        with pytest.raises(InvalidPayload):
            StaticAuctionFeeOracle().set_top_bid(Bid(manager="m", payload=b"\x01"))


class TestFeeSources:

    def setup_method(self):
        self.valuation = ValuationEngine(PoolState(dynamic_fee_bp=100), base_fee=100)

    def test_formula_is_dynamic_fee_less_base_fee(self):
        assert FormulaFeeSource().manager_fee(self.valuation, 1000) == 10 - 100

    def test_auction_fee_is_a_discount_on_the_buy(self):
        oracle = StaticAuctionFeeOracle(Bid(manager="m", payload=encode_payload(30)))
        assert AuctionFeeSource(oracle).manager_fee(self.valuation, 1000) == -3

    def test_auction_fee_above_100_percent_rejected(self):
        oracle = StaticAuctionFeeOracle(Bid(manager="m", payload=encode_payload(10_001)))
        with pytest.raises(InvalidPayload):
            AuctionFeeSource(oracle).manager_fee(self.valuation, 1000)

    def test_auction_source_needs_an_oracle(self):
        with pytest.raises(InvalidConfiguration):
            create_fee_source(AUCTION)

    def test_unknown_source(self):
        with pytest.raises(InvalidConfiguration):
            create_fee_source("oracle")


class TestAuctionPricedBuys:
    """Buys on a deployment whose fee rights are auctioned"""

    def setup_method(self):
        self.oracle = StaticAuctionFeeOracle(Bid(manager="manager_0", payload=encode_payload(30)))
        self.native = InMemoryTokenLedger("ETH", mintable=True)
        self.staked = InMemoryTokenLedger("stETH", mintable=True)
        self.pool = StakingPool(PoolConfig(fee_source=AUCTION), self.native, self.staked,
                                auction_oracle=self.oracle)

        for account, amount in (("lp", 1000), ("trader", 1000)):
            self.native.mint(account, amount)
            self.native.approve(account, self.pool.account, amount)
        self.pool.provide_liquidity("lp", 1000)

    def test_swap_fee_is_charged_on_the_buy(self):
        result = self.pool.buy("trader", 1000)
        assert result.amount_out == 997
        assert result.manager_fee == -3
        assert self.staked.balance_of("trader") == 997

    def test_no_bid_means_no_fee(self):
        self.oracle.clear()
        assert self.pool.buy("trader", 1000).amount_out == 1000

    def test_unusable_swap_fee_aborts_the_buy(self):
        self.oracle.set_top_bid(Bid(manager="manager_1", payload=encode_payload(20_000)))
        before = self.pool.state.copy()

        with pytest.raises(InvalidPayload):
            self.pool.buy("trader", 1000)

        assert self.pool.state == before
        assert self.native.balance_of("trader") == 1000

    def test_pool_requires_oracle_for_auction_source(self):
        with pytest.raises(InvalidConfiguration):
            StakingPool(PoolConfig(fee_source=AUCTION), self.native, self.staked)
