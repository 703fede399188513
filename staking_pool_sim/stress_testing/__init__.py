"""Stress testing framework"""

from .runner import StressTestRunner, QuickStressTest
from .scenarios import PoolStressTestSuite, StressTestScenario
from .analyzer import StressTestAnalyzer

__all__ = ["StressTestRunner", "QuickStressTest", "PoolStressTestSuite", "StressTestScenario", "StressTestAnalyzer"]
