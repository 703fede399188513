#!/usr/bin/env python3
"""
Stress Test Execution Engine

Runs stress tests with Monte Carlo simulation capabilities.
Enhanced with automatic results storage and visualization.
"""

import copy
import json
import time
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

from .analyzer import StressTestAnalyzer
from .scenarios import PoolStressTestSuite
from ..analysis.charts import ScenarioChartGenerator
from ..analysis.results_manager import ResultsManager, RunMetadata, make_serializable
from ..engine.config import SimulationConfig


class StressTestRunner:
    """Stress test execution engine with Monte Carlo capabilities and automatic results storage"""

    def __init__(self, config: SimulationConfig = None, auto_save: bool = True,
                 results_dir: str = "results"):
        self.config = config or SimulationConfig()
        self.test_suite = PoolStressTestSuite()
        self.analyzer = StressTestAnalyzer()
        self.results = {}

        # Results management components
        self.auto_save = auto_save
        self.results_manager = ResultsManager(results_dir) if self.auto_save else None
        self.chart_generator = ScenarioChartGenerator() if self.auto_save else None

    def run_monte_carlo_stress_test(self, scenario_name: str, num_runs: int = 20,
                                    vary_params: bool = True) -> Dict:
        """
        Run Monte Carlo stress test for a specific scenario

        Args:
            scenario_name: Name of stress scenario to run
            num_runs: Number of Monte Carlo runs
            vary_params: Whether to vary parameters across runs

        Returns:
            Aggregated results across all runs
        """
        print(f"Running Monte Carlo stress test: {scenario_name}")
        print(f"Number of runs: {num_runs}")
        print("=" * 50)

        param_rng = np.random.default_rng(self.config.seed)
        runs_results = []
        start_time = time.time()

        for run in range(num_runs):
            try:
                config = self._create_varied_config(run, param_rng) if vary_params else self.config
                runs_results.append(self.test_suite.run_scenario(scenario_name, config))

                if (run + 1) % 10 == 0:
                    elapsed = time.time() - start_time
                    print(f"Completed {run + 1}/{num_runs} runs ({elapsed:.1f}s)")

            except Exception as e:
                print(f"Run {run} failed: {str(e)}")
                continue

        aggregated_results = self.analyzer.analyze_monte_carlo_results(scenario_name, runs_results)

        # Keep one run for chart generation
        if runs_results:
            aggregated_results["sample_scenario_results"] = runs_results[-1]

        total_time = time.time() - start_time
        print(f"Monte Carlo stress test completed in {total_time:.1f}s")

        self.results[scenario_name] = aggregated_results
        if self.auto_save:
            self._save_scenario_results(scenario_name, aggregated_results, total_time, num_runs)

        return aggregated_results

    def run_full_stress_test_suite(self, num_monte_carlo_runs: int = 20) -> Dict:
        """Run complete stress test suite with Monte Carlo analysis"""
        print("Running Full Staking Pool Stress Test Suite")
        print("=" * 60)

        suite_results = {}
        scenario_names = self.test_suite.get_scenario_names()

        for i, scenario_name in enumerate(scenario_names):
            print(f"\n[{i+1}/{len(scenario_names)}] Testing: {scenario_name}")
            try:
                suite_results[scenario_name] = self.run_monte_carlo_stress_test(
                    scenario_name, num_monte_carlo_runs
                )
            except Exception as e:
                print(f"Failed to run {scenario_name}: {str(e)}")
                suite_results[scenario_name] = {"error": str(e)}

        summary = self.analyzer.generate_suite_summary(suite_results)

        print("\n" + "=" * 60)
        print("STRESS TEST SUITE COMPLETED")
        print("=" * 60)

        return {
            "individual_results": suite_results,
            "suite_summary": summary
        }

    def run_targeted_scenario(self, scenario_name: str, custom_params: Optional[Dict] = None) -> Dict:
        """
        Run a single targeted stress test scenario

        Args:
            scenario_name: Name of scenario to run
            custom_params: Custom parameters to override defaults

        Returns:
            Scenario results and analysis
        """
        print(f"Running targeted stress test: {scenario_name}")

        config = self.config
        if custom_params:
            config = self._apply_custom_params(copy.deepcopy(config), custom_params)

        start_time = time.time()
        results = self.test_suite.run_scenario(scenario_name, config)
        analysis = self.analyzer.analyze_single_scenario(scenario_name, results)

        final_results = {
            "scenario_results": results,
            "analysis": analysis
        }

        self.results[scenario_name] = final_results
        if self.auto_save:
            self._save_scenario_results(scenario_name, final_results, time.time() - start_time, 1, config)

        return final_results

    def _create_varied_config(self, run: int, rng: np.random.Generator) -> SimulationConfig:
        """Create configuration with parameter variations for Monte Carlo"""
        config = copy.deepcopy(self.config)
        config.seed = self.config.seed + run

        # Agent counts
        config.num_buyers = max(1, config.num_buyers + int(rng.integers(-1, 2)))   # ±1
        config.num_sellers = max(1, config.num_sellers + int(rng.integers(-1, 2)))  # ±1

        # Initial balances (±20% variation)
        balance_multiplier = rng.uniform(0.8, 1.2)
        config.lp_initial_native = int(config.lp_initial_native * balance_multiplier)
        config.buyer_initial_native = int(config.buyer_initial_native * balance_multiplier)
        config.seller_initial_staked = int(config.seller_initial_staked * balance_multiplier)

        # Trading intensity (±50% variation)
        config.trade_probability = min(1.0, config.trade_probability * rng.uniform(0.5, 1.5))

        return config

    def _apply_custom_params(self, config: SimulationConfig, custom_params: Dict) -> SimulationConfig:
        """Apply custom parameters to configuration"""
        for param, value in custom_params.items():
            if hasattr(config, param):
                setattr(config, param, value)
            elif hasattr(config.pool, param):
                setattr(config.pool, param, value)
            else:
                print(f"Warning: Unknown parameter '{param}' ignored")

        return config

    def export_results(self, filepath: str):
        """Export results to file"""
        export_data = {
            "test_results": self.results,
            "summary": self.analyzer.generate_suite_summary(self.results),
            "config": {
                "pool": self.config.pool.to_dict(),
                "num_liquidity_providers": self.config.num_liquidity_providers,
                "num_buyers": self.config.num_buyers,
                "num_sellers": self.config.num_sellers,
                "simulation_steps": self.config.simulation_steps
            }
        }

        with open(filepath, 'w') as f:
            json.dump(make_serializable(export_data), f, indent=2)

        print(f"Results exported to: {filepath}")

    def _save_scenario_results(self, scenario_name: str, results: Dict, execution_time: float,
                               num_runs: int, config: Optional[SimulationConfig] = None) -> Optional[Path]:
        """Save scenario results with automatic directory management and chart generation"""
        config = config or self.config
        try:
            run_dir = self.results_manager.create_run_directory(scenario_name)

            metadata = RunMetadata(
                run_id=run_dir.name,
                scenario_name=scenario_name,
                timestamp=time.strftime("%Y-%m-%d %H:%M:%S"),
                parameters={
                    "num_monte_carlo_runs": num_runs,
                    "simulation_steps": config.simulation_steps,
                    "pool": config.pool.to_dict(),
                },
                execution_time=execution_time
            )

            self.results_manager.save_results(run_dir, results, metadata)

            chart_data = results.get("scenario_results", results.get("sample_scenario_results", {}))
            charts_generated = self.chart_generator.generate_scenario_charts(
                scenario_name, chart_data, run_dir / "charts"
            )

            summary_data = {
                "metadata": metadata.__dict__,
                "key_metrics": self._extract_key_metrics(results),
                "risk_assessment": self._extract_risk_assessment(results),
                "charts_generated": [chart.name for chart in charts_generated]
            }
            self.results_manager.save_summary_report(run_dir, summary_data)

            print(f"\nResults saved to: {run_dir}")
            if charts_generated:
                print(f"Charts generated: {len(charts_generated)} charts saved to charts/ subfolder")

            return run_dir

        except OSError as e:
            print(f"Warning: Could not save results - {str(e)}")
            return None

    def _extract_key_metrics(self, results: Dict) -> Dict:
        """Extract key metrics from results for summary"""
        if "analysis" in results:
            return dict(results["analysis"].get("summary_statistics", {}))
        return {name: values["mean"] for name, values in results.get("statistics", {}).items()}

    def _extract_risk_assessment(self, results: Dict) -> Dict:
        """Extract risk assessment from results"""
        if "analysis" in results:
            return results["analysis"].get("assessment", {})
        return results.get("assessment", {})

    def list_scenario_results(self, scenario_name: str) -> List[Dict]:
        """List all saved results for a scenario"""
        if not self.auto_save:
            return []
        return self.results_manager.list_scenario_runs(scenario_name)


class QuickStressTest:
    """Quick stress tests for development and debugging"""

    @staticmethod
    def run_bank_run_test(steps: int = 100) -> Dict:
        """Quick check of withdrawal clamping under a full bank run"""
        config = SimulationConfig()
        config.simulation_steps = steps
        results = PoolStressTestSuite().run_scenario("Bank_Run", config)

        return {
            "clamped_withdrawals": results["clamped_withdrawals"],
            "clamp_shortfall": results["clamp_shortfall"],
            "final_native_balance": results["final_state"]["native_balance"],
        }

    @staticmethod
    def run_buy_pressure_test(steps: int = 100) -> Dict:
        """Quick check of staked issuance under heavy buying"""
        config = SimulationConfig()
        config.simulation_steps = steps
        results = PoolStressTestSuite().run_scenario("Buy_Pressure", config)

        return {
            "total_minted": sum(m["minted"] for m in results["metrics_history"]),
            "final_fee_bp": results["final_state"]["dynamic_fee_bp"],
            "failed_actions": results["failed_actions"],
        }
