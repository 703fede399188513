#!/usr/bin/env python3
"""
Results Analysis

Analysis tools for stress test results focusing on pool stability metrics.
"""

from typing import Dict, List

import numpy as np

from ..analysis.metrics import PoolMetricsCalculator

AGGREGATED_METRICS = (
    "final_share_price",
    "min_native_balance",
    "max_utilization_bp",
    "max_fee_bp",
    "total_minted",
    "total_fees",
    "clamp_shortfall",
    "failed_actions",
    "lp_return_rate",
)


class StressTestAnalyzer:
    """Results analysis and metrics calculation"""

    def analyze_single_scenario(self, scenario_name: str, result: Dict) -> Dict:
        """Summary statistics and assessment of one run"""
        summary = PoolMetricsCalculator(result).summarize()
        return {
            "scenario_name": scenario_name,
            "summary_statistics": summary,
            "assessment": self._assess(summary),
        }

    def analyze_monte_carlo_results(self, scenario_name: str, runs_results: List[Dict]) -> Dict:
        """Distribution of key metrics across Monte Carlo runs"""
        if not runs_results:
            return {"error": "No results to analyze"}

        summaries = [PoolMetricsCalculator(result).summarize() for result in runs_results]

        stats = {}
        for metric_name in AGGREGATED_METRICS:
            values = [s[metric_name] for s in summaries if metric_name in s]
            if not values:
                continue
            stats[metric_name] = {
                "mean": float(np.mean(values)),
                "std": float(np.std(values)),
                "min": float(np.min(values)),
                "max": float(np.max(values)),
                "p5": float(np.percentile(values, 5)),
                "p95": float(np.percentile(values, 95)),
            }

        mean_summary = {name: values["mean"] for name, values in stats.items()}
        return {
            "scenario_name": scenario_name,
            "num_runs": len(runs_results),
            "statistics": stats,
            "assessment": self._assess(mean_summary),
        }

    def generate_suite_summary(self, suite_results: Dict[str, Dict]) -> Dict:
        """Rank scenarios by risk score"""
        scores = {
            name: result.get("assessment", {}).get("risk_score", 0.0)
            for name, result in suite_results.items()
            if "error" not in result
        }
        ranked = sorted(scores, key=scores.get, reverse=True)
        return {
            "scenarios_run": len(suite_results),
            "scenarios_failed": sum(1 for r in suite_results.values() if "error" in r),
            "risk_ranking": ranked,
            "highest_risk": ranked[0] if ranked else None,
        }

    def _assess(self, summary: Dict) -> Dict:
        """Score 0-1: reserve drain, clamped withdrawals and LP losses"""
        concerns = []
        score = 0.0

        if summary.get("min_native_balance", 1) == 0:
            score += 0.4
            concerns.append("Native reserve fully drained")
        if summary.get("clamp_shortfall", 0) > 0:
            score += 0.3
            concerns.append("Withdrawals clamped to the native reserve; last LPs were shortchanged")
        if summary.get("lp_return_rate", 0.0) < 0:
            score += 0.2
            concerns.append("LPs lost value over the run")
        if summary.get("max_fee_bp", 0) >= 10_000:
            score += 0.1
            concerns.append("Dynamic fee reached 100% or more")

        if score >= 0.6:
            risk_level = "High"
        elif score >= 0.3:
            risk_level = "Medium"
        else:
            risk_level = "Low"

        return {"risk_score": score, "risk_level": risk_level, "key_concerns": concerns}
