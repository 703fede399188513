"""Pool metrics, fee curve analysis, charts and results storage"""

from .metrics import PoolMetricsCalculator, round_trip
from .fee_curve import sweep_fee_curve, fee_at_marks, plot_fee_curve
from .charts import ScenarioChartGenerator
from .results_manager import ResultsManager, RunMetadata

__all__ = [
    "PoolMetricsCalculator", "round_trip",
    "sweep_fee_curve", "fee_at_marks", "plot_fee_curve",
    "ScenarioChartGenerator", "ResultsManager", "RunMetadata"
]
