#!/usr/bin/env python3
"""
Auction Fee Oracle

The auction subsystem sells the right to set the pool's swap fee. The winning
bid carries a 7-byte payload whose first 3 bytes hold the swap fee as a
big-endian unsigned 24-bit integer. The pool only reads that value; bidding,
rent accrual and epochs belong to the auction subsystem.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from .errors import InvalidPayload

logger = logging.getLogger(__name__)

PAYLOAD_LENGTH = 7
SWAP_FEE_BYTES = 3
MAX_SWAP_FEE = (1 << (8 * SWAP_FEE_BYTES)) - 1


@dataclass
class Bid:
    """Currently accepted bid for the pool's fee rights"""
    manager: str
    payload: bytes
    rent: int = 0
    deposit: int = 0

    @property
    def swap_fee(self) -> int:
        return decode_swap_fee(self.payload)


def encode_payload(swap_fee: int, extra: bytes = b"") -> bytes:
    """Pack a swap fee into the high 3 bytes of a 7-byte payload"""
    if not 0 <= swap_fee <= MAX_SWAP_FEE:
        raise InvalidPayload(f"swap fee {swap_fee} does not fit in {SWAP_FEE_BYTES} bytes")
    tail_length = PAYLOAD_LENGTH - SWAP_FEE_BYTES
    if len(extra) > tail_length:
        raise InvalidPayload(f"payload tail is limited to {tail_length} bytes")
    return swap_fee.to_bytes(SWAP_FEE_BYTES, "big") + extra.ljust(tail_length, b"\x00")


def decode_swap_fee(payload: bytes) -> int:
    """Read the unsigned 24-bit swap fee from the first 3 bytes of a payload"""
    if len(payload) != PAYLOAD_LENGTH:
        raise InvalidPayload(f"expected a {PAYLOAD_LENGTH}-byte payload, got {len(payload)} bytes")
    return int.from_bytes(payload[:SWAP_FEE_BYTES], "big")


class AuctionFeeOracle(ABC):
    """Read-only view of the auction's winning bid"""

    @abstractmethod
    def top_bid(self) -> Optional[Bid]:
        pass

    def current_swap_fee(self) -> int:
        """Swap fee of the top bid, or 0 when nobody holds the fee rights"""
        bid = self.top_bid()
        if bid is None:
            return 0
        return bid.swap_fee


class StaticAuctionFeeOracle(AuctionFeeOracle):
    """In-memory oracle whose top bid is pushed in by the auction subsystem"""

    def __init__(self, bid: Optional[Bid] = None):
        self._bid = bid

    def top_bid(self) -> Optional[Bid]:
        return self._bid

    def set_top_bid(self, bid: Bid) -> None:
        # validate eagerly so a bad payload never reaches a buy
        decode_swap_fee(bid.payload)
        logger.debug("Top bid now held by %s (swap fee %d)", bid.manager, bid.swap_fee)
        self._bid = bid

    def clear(self) -> None:
        self._bid = None
