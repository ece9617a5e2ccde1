"""KPI extraction and analysis for yard simulations."""

from yard_sim.analysis.kpis import YardKPIs, compute_yard_kpis

__all__ = [
    "YardKPIs",
    "compute_yard_kpis",
]
