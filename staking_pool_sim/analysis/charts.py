#!/usr/bin/env python3
"""
Streamlined Chart Generator

Creates a single time-series chart per scenario showing how the pool's fee,
utilization, reserves and share price evolve.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


class ScenarioChartGenerator:
    """Generates one time-series chart per scenario"""

    def __init__(self):
        self._setup_styling()

    def _setup_styling(self):
        """Setup clean, professional chart styling"""
        plt.style.use('default')

        plt.rcParams.update({
            'figure.figsize': (12, 8),
            'font.size': 11,
            'axes.titlesize': 14,
            'axes.labelsize': 12,
            'legend.fontsize': 10,
            'xtick.labelsize': 10,
            'ytick.labelsize': 10
        })

    def generate_scenario_charts(
        self,
        scenario_name: str,
        results: Dict[str, Any],
        charts_dir: Path
    ) -> List[Path]:
        """Generate the time-series chart; returns the written paths"""
        charts_dir.mkdir(parents=True, exist_ok=True)

        # Monte Carlo results carry one sample run
        scenario_results = results.get("scenario_results", results)
        if not scenario_results.get("metrics_history") and "sample_scenario_results" in results:
            scenario_results = results["sample_scenario_results"]

        metrics_history = scenario_results.get("metrics_history", [])
        if not metrics_history:
            logger.warning("No time-series data for %s, skipping chart", scenario_name)
            return []

        metrics = pd.DataFrame(metrics_history).set_index("step")
        return [self._create_simulation_time_series(metrics, scenario_results, charts_dir, scenario_name)]

    def _create_simulation_time_series(self, metrics: pd.DataFrame, scenario_results: Dict,
                                       charts_dir: Path, scenario_name: str) -> Path:
        fig, ((ax1, ax2), (ax3, ax4)) = plt.subplots(2, 2, figsize=(14, 10))
        fig.suptitle(f'{scenario_name.replace("_", " ")} - Pool Dynamics Over Time',
                     fontsize=16, fontweight='bold')

        self._plot_fee_and_utilization(ax1, metrics)
        self._plot_balances(ax2, metrics)
        self._plot_share_price(ax3, metrics)
        self._plot_trade_activity(ax4, metrics, scenario_results.get("events", []))

        plt.tight_layout()

        chart_path = charts_dir / f"{scenario_name.lower()}_pool_dynamics.png"
        fig.savefig(chart_path, dpi=150, bbox_inches='tight')
        plt.close(fig)

        logger.info("Chart saved: %s", chart_path)
        return chart_path

    def _plot_fee_and_utilization(self, ax, metrics: pd.DataFrame):
        """Dynamic fee on the left axis, utilization on the right"""
        line1 = ax.plot(metrics.index, metrics["dynamic_fee_bp"] / 100, linewidth=2,
                        color='#E74C3C', label='Dynamic Fee %')

        ax2 = ax.twinx()
        line2 = ax2.plot(metrics.index, metrics["utilization_bp"] / 100, linewidth=2,
                         color='#3498DB', label='Utilization %', alpha=0.8)

        ax.set_title('Dynamic Fee & Utilization')
        ax.set_xlabel('Simulation Step')
        ax.set_ylabel('Fee (%)', color='#E74C3C')
        ax2.set_ylabel('Utilization (%)', color='#3498DB')

        lines = line1 + line2
        ax.legend(lines, [l.get_label() for l in lines], loc='upper left')
        ax.grid(True, alpha=0.3)

    def _plot_balances(self, ax, metrics: pd.DataFrame):
        ax.stackplot(
            metrics.index,
            metrics["native_balance"], metrics["staked_balance"], metrics["bonded_balance"],
            labels=['Native', 'Staked', 'Bonded'],
            colors=['#2ECC71', '#F39C12', '#9B59B6'], alpha=0.8,
        )
        ax.set_title('Pool Reserves')
        ax.set_xlabel('Simulation Step')
        ax.set_ylabel('Balance')
        ax.yaxis.set_major_formatter(plt.FuncFormatter(lambda x, p: f'{x:,.0f}'))
        ax.legend(loc='upper left')
        ax.grid(True, alpha=0.3)

    def _plot_share_price(self, ax, metrics: pd.DataFrame):
        ax.plot(metrics.index, metrics["share_price"], linewidth=3, color='#27AE60', label='Share Price')
        ax.axhline(y=1.0, color='gray', linestyle='--', alpha=0.7, label='Initial Price')
        ax.set_title('LP Share Price')
        ax.set_xlabel('Simulation Step')
        ax.set_ylabel('Native per Share')
        ax.legend()
        ax.grid(True, alpha=0.3)

    def _plot_trade_activity(self, ax, metrics: pd.DataFrame, events: List[Dict]):
        """Per-step buy and sell volume with scenario events marked"""
        width = max(1, len(metrics) // 100)
        ax.bar(metrics.index, metrics["buy_volume"], width=width, alpha=0.7, color='#3498DB', label='Buy Volume')
        ax.bar(metrics.index, -metrics["sell_volume"], width=width, alpha=0.7, color='#E74C3C', label='Sell Volume')

        for step in np.unique([event["step"] for event in events]):
            ax.axvline(x=step, color='black', linestyle=':', alpha=0.6)

        ax.set_title('Trading Activity Over Time')
        ax.set_xlabel('Simulation Step')
        ax.set_ylabel('Native Volume')
        ax.legend()
        ax.grid(True, alpha=0.3)
