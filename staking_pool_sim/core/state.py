#!/usr/bin/env python3
"""
Pool State

Mutable balance sheet of a single staking pool.
"""

from dataclasses import asdict, dataclass, replace


@dataclass
class PoolState:
    """Balances and current fee of the pool"""
    dynamic_fee_bp: int
    native_balance: int = 0   # native reserve (T)
    staked_balance: int = 0   # staked asset held by the pool (Ts)
    bonded_balance: int = 0   # staked asset pledged elsewhere (Tu)
    share_supply: int = 0

    @property
    def committed(self) -> int:
        """Staked value counted toward utilization"""
        return self.staked_balance + self.bonded_balance

    def copy(self) -> "PoolState":
        return replace(self)

    def as_dict(self) -> dict:
        return asdict(self)
