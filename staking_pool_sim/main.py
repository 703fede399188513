#!/usr/bin/env python3
"""
Staking Pool Stress Testing - Main Entry Point

Command-line entry point for stress scenarios, Monte Carlo suites, fee
curve analysis and browsing saved results.
"""

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional

from .analysis.fee_curve import fee_at_marks, plot_fee_curve, sweep_fee_curve
from .analysis.metrics import round_trip
from .analysis.results_manager import ResultsManager, make_serializable
from .core.errors import PoolError
from .engine.config import PoolConfig, SimulationConfig, setup_logging
from .stress_testing.runner import QuickStressTest, StressTestRunner
from .stress_testing.scenarios import PoolStressTestSuite


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with command-line interface"""

    parser = argparse.ArgumentParser(
        description="Staking Pool Stress Testing Framework",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  staking-pool-sim --quick                            # Quick stress tests
  staking-pool-sim --scenario Bank_Run                # Run specific scenario
  staking-pool-sim --full-suite --monte-carlo 50      # Full suite with 50 MC runs
  staking-pool-sim --fee-curve 3000 5000 8000         # Fee curve for three targets
  staking-pool-sim --round-trip 1000                  # Fee leakage of a buy/sell round trip
  staking-pool-sim --list-results Bank_Run            # List saved runs for a scenario
        """
    )

    parser.add_argument('--quick', action='store_true',
                        help='Run quick stress tests for development')

    parser.add_argument('--scenario', type=str,
                        help='Run specific stress test scenario')

    parser.add_argument('--full-suite', action='store_true',
                        help='Run complete stress test suite')

    parser.add_argument('--fee-curve', type=int, nargs='*', metavar='TARGET_BP',
                        help='Tabulate and plot the fee curve (default target: config value)')

    parser.add_argument('--round-trip', type=int, metavar='AMOUNT',
                        help='Buy with AMOUNT native, sell the proceeds back and report the leakage')

    parser.add_argument('--list-scenarios', action='store_true',
                        help='List all available stress test scenarios')

    parser.add_argument('--list-results', type=str, metavar='SCENARIO',
                        help='List all saved results for a specific scenario')

    # Configuration arguments
    parser.add_argument('--monte-carlo', type=int, default=1,
                        help='Number of Monte Carlo runs (default: 1)')

    parser.add_argument('--steps', type=int, default=200,
                        help='Number of simulation steps (default: 200)')

    parser.add_argument('--seed', type=int, default=42,
                        help='Random seed (default: 42)')

    parser.add_argument('--target-utilization', type=int,
                        help='Target utilization in basis points')

    parser.add_argument('--base-fee', type=int,
                        help='Flat fee per trade in the smallest native unit')

    parser.add_argument('--results-dir', type=str, default='results',
                        help='Directory for saved results (default: results)')

    parser.add_argument('--no-save', action='store_true',
                        help='Do not save results and charts')

    parser.add_argument('--output', type=str,
                        help='Export results to JSON file')

    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Verbose output with debug logging')

    args = parser.parse_args(argv)

    setup_logging("DEBUG" if args.verbose else None)

    if not any([args.quick, args.scenario, args.full_suite, args.fee_curve is not None,
                args.round_trip, args.list_scenarios, args.list_results]):
        parser.print_help()
        return 1

    try:
        config = create_simulation_config(args)

        if args.list_scenarios:
            list_scenarios()
            return 0

        elif args.quick:
            print("Running Quick Stress Tests")
            print("=" * 50)
            return run_quick_tests(args.steps)

        elif args.scenario:
            print(f"Running Stress Test Scenario: {args.scenario}")
            print("=" * 60)
            return run_single_scenario(args.scenario, config, args)

        elif args.full_suite:
            print("Running Full Stress Test Suite")
            print("=" * 50)
            return run_full_suite(config, args)

        elif args.fee_curve is not None:
            return run_fee_curve(args.fee_curve or [config.pool.target_utilization_bp], args)

        elif args.round_trip:
            return run_round_trip(args.round_trip, config.pool)

        elif args.list_results:
            return list_scenario_results(args.list_results, args.results_dir)

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 1
    except PoolError as e:
        print(f"Error: {type(e).__name__}: {str(e)}")
        return 1

    return 0


def create_simulation_config(args) -> SimulationConfig:
    """Create simulation configuration from command-line arguments"""
    pool = PoolConfig()
    if args.target_utilization is not None:
        pool.target_utilization_bp = args.target_utilization
    if args.base_fee is not None:
        pool.base_fee = args.base_fee
    pool.validate()

    config = SimulationConfig(pool)
    config.simulation_steps = args.steps
    config.seed = args.seed
    return config


def list_scenarios():
    """List all available stress test scenarios"""
    test_suite = PoolStressTestSuite()

    print("Available Stress Test Scenarios:")
    print("-" * 40)

    for i, scenario in enumerate(test_suite.scenarios, 1):
        print(f"{i:2d}. {scenario.name}")
        print(f"    {scenario.description}")
        print()


def run_quick_tests(steps: int) -> int:
    """Run quick stress tests for development"""
    start_time = time.time()

    print("1. Quick Bank Run Test")
    print("-" * 25)
    bank_run = QuickStressTest.run_bank_run_test(steps)
    print(f"Clamped withdrawals: {bank_run['clamped_withdrawals']}")
    print(f"Clamp shortfall: {bank_run['clamp_shortfall']:,}")
    print(f"Final native balance: {bank_run['final_native_balance']:,}")

    print("\n2. Quick Buy Pressure Test")
    print("-" * 25)
    pressure = QuickStressTest.run_buy_pressure_test(steps)
    print(f"Staked minted: {pressure['total_minted']:,}")
    print(f"Final dynamic fee: {pressure['final_fee_bp']} bp")
    print(f"Failed actions: {pressure['failed_actions']}")

    print(f"\nQuick tests completed in {time.time() - start_time:.1f}s")
    return 0


def run_single_scenario(scenario_name: str, config: SimulationConfig, args) -> int:
    """Run a single stress test scenario"""
    runner = StressTestRunner(config, auto_save=not args.no_save, results_dir=args.results_dir)

    try:
        runner.test_suite.get_scenario(scenario_name)
        if args.monte_carlo > 1:
            print(f"Running Monte Carlo analysis ({args.monte_carlo} runs)")
            results = runner.run_monte_carlo_stress_test(scenario_name, args.monte_carlo)
        else:
            print("Running single scenario")
            results = runner.run_targeted_scenario(scenario_name)
    except KeyError as e:
        print(f"Error: {e.args[0]}")
        print("\nUse --list-scenarios to see available scenarios")
        return 1

    display_scenario_results(scenario_name, results, args.verbose)

    if args.output:
        export_results({scenario_name: results}, args.output)

    return 0


def run_full_suite(config: SimulationConfig, args) -> int:
    """Run complete stress test suite"""
    runner = StressTestRunner(config, auto_save=not args.no_save, results_dir=args.results_dir)

    print("Configuration:")
    print(f"  Monte Carlo runs: {args.monte_carlo}")
    print(f"  Simulation steps: {args.steps}")
    print(f"  Target utilization: {config.pool.target_utilization_bp} bp")
    print()

    start_time = time.time()
    results = runner.run_full_stress_test_suite(args.monte_carlo)

    display_suite_summary(results["suite_summary"], results["individual_results"])

    if args.output:
        export_results(results, args.output)

    print(f"\nFull stress test suite completed in {(time.time() - start_time) / 60:.1f} minutes")
    return 0


def run_fee_curve(targets: List[int], args) -> int:
    """Print fee quotes at utilization marks and save the fee curve chart"""
    print("Dynamic Fee Curve")
    print("=" * 40)

    for target in targets:
        marks = fee_at_marks(target)
        print(f"\nTarget utilization {target} bp:")
        for utilization, fee in marks.items():
            print(f"  utilization {utilization:>6} bp -> fee {fee:>6} bp")

    if not args.no_save:
        curve = sweep_fee_curve(targets)
        chart_path = plot_fee_curve(curve, Path(args.results_dir) / "fee_curve" / "fee_curve.png")
        print(f"\nChart saved: {chart_path}")
        if args.output:
            curve.to_csv(args.output, index=False)
            print(f"Curve exported to: {args.output}")

    return 0


def run_round_trip(amount: int, pool_config: PoolConfig) -> int:
    """Report what a buy followed by a sell of the proceeds costs"""
    result = round_trip(amount, pool_config)

    print("Round Trip")
    print("=" * 30)
    print(f"Native in:     {result['native_in']:,}")
    print(f"Staked out:    {result['staked_out']:,}")
    print(f"Native back:   {result['native_back']:,}")
    print(f"Leakage:       {result['leakage']:,} ({result['leakage_rate']:.2%})")
    print(f"Staked minted: {result['minted']:,}")
    return 0


def display_scenario_results(scenario_name: str, results: Dict, verbose: bool):
    """Display results for single scenario"""
    print(f"\nResults for {scenario_name}:")
    print("=" * (len(scenario_name) + 12))

    analysis = results.get("analysis", results)
    assessment = analysis.get("assessment", {})
    if assessment:
        print(f"Risk Score: {assessment['risk_score']:.3f}")
        print(f"Risk Level: {assessment['risk_level']}")
        if assessment["key_concerns"]:
            print("\nKey Concerns:")
            for concern in assessment["key_concerns"]:
                print(f"  - {concern}")

    if "summary_statistics" in analysis:
        print("\nSummary:")
        for metric, value in analysis["summary_statistics"].items():
            print(f"  {metric.replace('_', ' ').title()}: {value:,.3f}")

    if verbose and "statistics" in analysis:
        print("\nDetailed Statistics:")
        for metric, stat_dict in analysis["statistics"].items():
            print(f"  {metric.replace('_', ' ').title()}:")
            print(f"    Mean: {stat_dict['mean']:,.2f}")
            print(f"    Range: {stat_dict['min']:,.2f} - {stat_dict['max']:,.2f}")


def display_suite_summary(summary: Dict, individual_results: Dict):
    """Display summary for full test suite"""
    print("\nSTRESS TEST SUITE SUMMARY")
    print("=" * 30)
    print(f"Scenarios run: {summary['scenarios_run']}")
    print(f"Scenarios failed: {summary['scenarios_failed']}")

    if summary["risk_ranking"]:
        print("\nScenarios by risk:")
        for i, name in enumerate(summary["risk_ranking"], 1):
            assessment = individual_results[name]["assessment"]
            print(f"  {i}. {name} ({assessment['risk_level']}, score: {assessment['risk_score']:.3f})")


def export_results(results: Dict, filepath: str):
    """Export results to JSON file"""
    serializable = make_serializable(results)
    try:
        with open(filepath, 'w') as f:
            json.dump(serializable, f, indent=2)
        print(f"\nResults exported to: {filepath}")
    except OSError as e:
        print(f"Warning: Could not export results - {str(e)}")


def list_scenario_results(scenario_name: str, results_dir: str) -> int:
    """List all saved results for a specific scenario"""
    results_manager = ResultsManager(results_dir)
    runs = results_manager.list_scenario_runs(scenario_name)

    if not runs:
        print(f"No saved results found for scenario: {scenario_name}")
        scenarios = results_manager.list_all_scenarios()
        if scenarios:
            print("\nAvailable scenarios:")
            for scenario in scenarios:
                print(f"  - {scenario}")
        return 1

    print(f"Saved results for scenario: {scenario_name}")
    print("=" * (len(scenario_name) + 28))

    for run in runs:
        print(f"\n{run['run_id']}")
        print(f"   Timestamp: {run.get('timestamp', 'Unknown')}")
        print(f"   Status: {run.get('status', 'Unknown')}")
        if 'execution_time' in run:
            print(f"   Execution Time: {run['execution_time']:.2f}s")
        params = run.get('parameters', {})
        if params:
            print(f"   Monte Carlo Runs: {params.get('num_monte_carlo_runs', 1)}")
            print(f"   Simulation Steps: {params.get('simulation_steps', 'Unknown')}")

    print(f"\nTotal runs: {len(runs)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
