"""
Edge of Chaos: when does verifiable effort stay informative about reward
in an economy with reinforced advantage?

This package provides simulation tools to show that:
1. Reinforcement (alpha) concentrates reward and erodes the effort signal I(V;R)
2. Effort weight (lambda) keeps effort informative; churn prevents lock-in
3. Income and wealth taxes trade revenue against allocation concentration
"""

__version__ = "0.1.0"

from edge_of_chaos.config import (
    PRESETS,
    Preset,
    SimulationParams,
    get_preset,
    validate_params,
)
from edge_of_chaos.process import (
    ReinforcementProcess,
    SimulationRun,
    StepMetrics,
    simulate,
)
from edge_of_chaos.regimes import Regime, classify_regime
from edge_of_chaos.simulate import (
    SweepCancelled,
    generate_phase_map,
    generate_tax_curve,
    locate_phase_cell,
    run_seed_ensemble,
    summarize_tax_curve,
)
from edge_of_chaos.metrics import (
    compute_gini,
    estimate_binned_mutual_information,
)
from edge_of_chaos.rng import Mulberry32

__all__ = [
    "PRESETS",
    "Preset",
    "SimulationParams",
    "get_preset",
    "validate_params",
    "ReinforcementProcess",
    "SimulationRun",
    "StepMetrics",
    "simulate",
    "Regime",
    "classify_regime",
    "SweepCancelled",
    "generate_phase_map",
    "generate_tax_curve",
    "locate_phase_cell",
    "run_seed_ensemble",
    "summarize_tax_curve",
    "compute_gini",
    "estimate_binned_mutual_information",
    "Mulberry32",
]
