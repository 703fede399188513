#!/usr/bin/env python3
"""
Staking Pool Mathematical Functions

Pure integer functions for utilization, the two-slope dynamic fee curve
and basis-point fee application. Amounts are integers in the smallest unit
of their asset; rates are basis points.
"""

from .errors import AmountZero, DivisionUndefined, InvalidConfiguration

BASIS_POINTS = 10_000


def mul_div(a: int, b: int, denominator: int) -> int:
    """Multiply two numbers and divide by denominator, rounding down"""
    if denominator == 0:
        raise DivisionUndefined("Division by zero")
    return (a * b) // denominator


class PoolMath:
    """Pure mathematical functions for staking pool calculations"""

    BASIS_POINTS = BASIS_POINTS

    @staticmethod
    def calculate_utilization(staked: int, bonded: int, native: int) -> int:
        """
        Ratio of committed (staked + bonded) value to native value in basis points.

        Over-utilization is representable: the result is not capped at 10000.
        """
        if native == 0:
            raise DivisionUndefined("Utilization is undefined with a zero native reserve")
        committed = staked + bonded
        if committed == 0:
            raise AmountZero("Utilization requires a non-zero committed balance")
        return mul_div(committed, BASIS_POINTS, native)

    @staticmethod
    def quote_fee(utilization_bp: int, target_bp: int) -> int:
        """
        Two-slope fee curve anchored at the target utilization.

        Below target the fee rises linearly to 10000 bp at the target; at or
        above target each extra basis point of utilization is penalized by
        10000 / (10000 - target).
        """
        if utilization_bp < target_bp:
            return mul_div(utilization_bp, BASIS_POINTS, target_bp)

        at_target = mul_div(target_bp, BASIS_POINTS, target_bp)
        overshoot = utilization_bp - target_bp
        return at_target + mul_div(overshoot, BASIS_POINTS, BASIS_POINTS - target_bp)

    @staticmethod
    def apply_fee(amount: int, fee_bp: int) -> int:
        """Fee amount charged on `amount` at `fee_bp` basis points"""
        return mul_div(amount, fee_bp, BASIS_POINTS)

    @staticmethod
    def validate_target_utilization(target_bp: int) -> None:
        # slope 2 divides by (10000 - target), slope 1 by target
        if not 0 < target_bp < BASIS_POINTS:
            raise InvalidConfiguration(
                f"target utilization must be within (0, {BASIS_POINTS}) bp, got {target_bp}"
            )
