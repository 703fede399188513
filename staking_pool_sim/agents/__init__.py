"""Streamlined agent system"""

from .base_agent import BaseAgent, AgentAction, AgentState
from .liquidity_provider import LiquidityProvider
from .trader import StakedTrader, BUYER, SELLER

__all__ = [
    "BaseAgent", "AgentAction", "AgentState",
    "LiquidityProvider", "StakedTrader", "BUYER", "SELLER"
]
