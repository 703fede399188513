#!/usr/bin/env python3
"""
Dynamic Fee Curve Analysis

Sweeps utilization across a range of target utilizations and tabulates or
plots the resulting two-slope fee curve.
"""

from pathlib import Path
from typing import Iterable, Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from ..core.math import BASIS_POINTS, PoolMath
from ..engine.config import PoolParameters


def sweep_fee_curve(target_utilizations: Optional[Iterable[int]] = None,
                    max_utilization_bp: int = 15_000, num_points: int = 301) -> pd.DataFrame:
    """
    Quote the fee for evenly spaced utilizations at each target.

    Returns a long-format DataFrame with columns `target_bp`,
    `utilization_bp`, `fee_bp` and `slope` ("below" or "above" target).
    """
    targets = list(target_utilizations or [PoolParameters.TARGET_UTILIZATION_BP])
    for target in targets:
        PoolMath.validate_target_utilization(target)

    utilizations = np.linspace(0, max_utilization_bp, num_points).astype(int)
    rows = []
    for target in targets:
        for utilization in utilizations:
            utilization = int(utilization)
            rows.append({
                "target_bp": target,
                "utilization_bp": utilization,
                "fee_bp": PoolMath.quote_fee(utilization, target),
                "slope": "below" if utilization < target else "above",
            })
    return pd.DataFrame(rows)


def fee_at_marks(target_bp: int, marks=(0, 2_500, 5_000, 7_500, 10_000)) -> pd.Series:
    """Fee quoted at a handful of utilization marks, indexed by utilization"""
    PoolMath.validate_target_utilization(target_bp)
    return pd.Series(
        [PoolMath.quote_fee(mark, target_bp) for mark in marks],
        index=pd.Index(marks, name="utilization_bp"),
        name=f"fee_bp@{target_bp}",
    )


def plot_fee_curve(curve: pd.DataFrame, output_path: Path) -> Path:
    """Line chart of fee vs utilization, one line per target"""
    plt.style.use('default')
    sns.set_palette("husl")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig, ax = plt.subplots(figsize=(12, 7))

    plot_data = curve.assign(
        utilization_pct=curve["utilization_bp"] / 100,
        fee_pct=curve["fee_bp"] / 100,
        target=curve["target_bp"].map(lambda t: f"target {t / 100:.0f}%"),
    )
    sns.lineplot(data=plot_data, x="utilization_pct", y="fee_pct", hue="target", linewidth=2.5, ax=ax)

    for target in curve["target_bp"].unique():
        ax.axvline(x=target / 100, color='gray', linestyle=':', alpha=0.5)
    ax.axhline(y=BASIS_POINTS / 100, color='red', linestyle='--', alpha=0.6, label='100% fee')

    ax.set_title('Dynamic Fee Curve')
    ax.set_xlabel('Utilization (%)')
    ax.set_ylabel('Dynamic Fee (%)')
    ax.grid(True, alpha=0.3)
    ax.legend()

    plt.tight_layout()
    fig.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close(fig)

    return output_path
