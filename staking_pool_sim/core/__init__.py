"""Core staking pool components"""

from .pool import StakingPool
from .state import PoolState
from .ledger import Asset, InMemoryTokenLedger, ShareToken, TokenLedger
from .auction import AuctionFeeOracle, Bid, StaticAuctionFeeOracle

__all__ = [
    "StakingPool", "PoolState",
    "Asset", "InMemoryTokenLedger", "ShareToken", "TokenLedger",
    "AuctionFeeOracle", "Bid", "StaticAuctionFeeOracle"
]
