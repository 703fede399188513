#!/usr/bin/env python3
"""
Results Management System

Stores each stress test run in its own numbered directory: JSON results,
run metadata, the per-step metrics as CSV and a markdown summary.
"""

import json
import threading
from dataclasses import asdict, dataclass, is_dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd


@dataclass
class RunMetadata:
    """Metadata for a single stress test run"""
    run_id: str
    scenario_name: str
    timestamp: str
    parameters: Dict[str, Any]
    execution_time: float
    status: str = "completed"


class ResultsManager:
    """Handles results storage under `<base>/<scenario>/run_NNN_<timestamp>/`"""

    def __init__(self, base_results_dir: str = "results"):
        self.base_results_dir = Path(base_results_dir)
        self._lock = threading.Lock()
        self.base_results_dir.mkdir(parents=True, exist_ok=True)

    def create_run_directory(self, scenario_name: str) -> Path:
        """Create the next sequentially numbered run directory for a scenario"""
        with self._lock:
            scenario_dir = self.base_results_dir / scenario_name
            scenario_dir.mkdir(exist_ok=True)

            run_number = self._get_next_run_number(scenario_dir)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

            run_dir = scenario_dir / f"run_{run_number:03d}_{timestamp}"
            run_dir.mkdir(exist_ok=True)
            (run_dir / "charts").mkdir(exist_ok=True)
            return run_dir

    def _get_next_run_number(self, scenario_dir: Path) -> int:
        run_numbers = []
        for run_dir in scenario_dir.iterdir():
            parts = run_dir.name.split("_")
            if run_dir.is_dir() and len(parts) >= 2 and parts[0] == "run" and parts[1].isdigit():
                run_numbers.append(int(parts[1]))
        return max(run_numbers) + 1 if run_numbers else 1

    def save_results(self, run_dir: Path, results: Dict[str, Any], metadata: RunMetadata) -> Path:
        """
        Save results, metadata and (when present) per-step metrics

        Returns:
            Path to the saved results file
        """
        results_file = run_dir / "results.json"
        with open(results_file, 'w') as f:
            json.dump(self._make_serializable(results), f, indent=2)

        with open(run_dir / "metadata.json", 'w') as f:
            json.dump(self._make_serializable(asdict(metadata)), f, indent=2)

        metrics_history = self._find_metrics_history(results)
        if metrics_history:
            pd.DataFrame(metrics_history).to_csv(run_dir / "metrics.csv", index=False)

        return results_file

    @staticmethod
    def _find_metrics_history(results: Dict[str, Any]) -> List[Dict]:
        for key in ("scenario_results", "sample_scenario_results"):
            if key in results:
                return results[key].get("metrics_history", [])
        return results.get("metrics_history", [])

    def save_summary_report(self, run_dir: Path, summary: Dict[str, Any]) -> Path:
        """Save a markdown summary report"""
        summary_file = run_dir / "summary.md"
        with open(summary_file, 'w') as f:
            f.write(self._generate_markdown_summary(summary))
        return summary_file

    def _generate_markdown_summary(self, summary: Dict[str, Any]) -> str:
        md_content = ["# Staking Pool Stress Test Summary\n"]

        if "metadata" in summary:
            metadata = summary["metadata"]
            md_content.append("## Run Information")
            md_content.append(f"- **Scenario**: {metadata.get('scenario_name', 'Unknown')}")
            md_content.append(f"- **Timestamp**: {metadata.get('timestamp', 'Unknown')}")
            md_content.append(f"- **Execution Time**: {metadata.get('execution_time', 0):.2f}s")
            md_content.append("")

        if "key_metrics" in summary:
            md_content.append("## Key Metrics")
            for key, value in summary["key_metrics"].items():
                label = key.replace('_', ' ').title()
                if not isinstance(value, (int, float)):
                    md_content.append(f"- **{label}**: {value}")
                elif key.endswith("_rate"):
                    md_content.append(f"- **{label}**: {value:.2%}")
                elif key.endswith("_bp"):
                    md_content.append(f"- **{label}**: {value / 100:.2f}%")
                elif key.endswith("_price"):
                    md_content.append(f"- **{label}**: {value:.6f}")
                else:
                    md_content.append(f"- **{label}**: {value:,.0f}")
            md_content.append("")

        if "risk_assessment" in summary:
            assessment = summary["risk_assessment"]
            md_content.append("## Risk Assessment")
            md_content.append(f"- **Overall Risk Level**: {assessment.get('risk_level', 'Unknown')}")
            md_content.append(f"- **Risk Score**: {assessment.get('risk_score', 0):.3f}")
            if assessment.get("key_concerns"):
                md_content.append("\n### Key Concerns")
                md_content.extend(f"- {concern}" for concern in assessment["key_concerns"])
            md_content.append("")

        charts = summary.get("charts_generated", [])
        if charts:
            md_content.append("## Generated Charts")
            md_content.extend(f"- `charts/{chart}`" for chart in charts)

        return "\n".join(md_content)

    def list_scenario_runs(self, scenario_name: str) -> List[Dict[str, Any]]:
        """List all saved runs for a scenario, ordered by run number"""
        scenario_dir = self.base_results_dir / scenario_name
        if not scenario_dir.exists():
            return []

        runs = []
        for run_dir in scenario_dir.iterdir():
            if not run_dir.is_dir() or not run_dir.name.startswith("run_"):
                continue
            entry = {"run_id": run_dir.name, "path": str(run_dir), "scenario_name": scenario_name}
            metadata = self.load_metadata(run_dir)
            if metadata is not None:
                entry.update(asdict(metadata))
            runs.append(entry)

        runs.sort(key=lambda x: x["run_id"])
        return runs

    def list_all_scenarios(self) -> List[str]:
        return sorted(
            item.name for item in self.base_results_dir.iterdir()
            if item.is_dir() and not item.name.startswith('.')
        )

    def load_results(self, run_path: Path) -> Optional[Dict[str, Any]]:
        results_file = run_path / "results.json"
        if not results_file.exists():
            return None
        try:
            with open(results_file, 'r') as f:
                return json.load(f)
        except json.JSONDecodeError:
            return None

    def load_metadata(self, run_path: Path) -> Optional[RunMetadata]:
        metadata_file = run_path / "metadata.json"
        if not metadata_file.exists():
            return None
        try:
            with open(metadata_file, 'r') as f:
                return RunMetadata(**json.load(f))
        except (json.JSONDecodeError, TypeError):
            return None

    def _make_serializable(self, obj: Any) -> Any:
        return make_serializable(obj)


def make_serializable(obj: Any) -> Any:
    """Convert results to JSON-serializable values"""
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj) and not isinstance(obj, type):
        return make_serializable(asdict(obj))
    if hasattr(obj, 'tolist'):  # numpy arrays and scalars
        return make_serializable(obj.tolist())
    if isinstance(obj, float) and obj != obj:  # NaN
        return None
    if isinstance(obj, dict):
        return {
            (k.value if isinstance(k, Enum) else k if isinstance(k, (str, int)) else str(k)):
                make_serializable(v)
            for k, v in obj.items()
        }
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [make_serializable(item) for item in obj]
    if isinstance(obj, (str, int, float, bool)) or obj is None:
        return obj
    return str(obj)
