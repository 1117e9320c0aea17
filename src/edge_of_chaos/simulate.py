"""
Parameter sweeps over the reinforcement process.

This module provides high-level functions to:
1. Build a phase map over (alpha, lambda) with regime labels and terminal metrics
2. Trace tax revenue and concentration as an income or wealth tax rate grows
3. Average terminal metrics over seeds for one parameter set

Every inner run uses the same seed, so only the swept parameter varies the
outcome. Points are independent: they can run in worker processes, and the
results are reassembled in the documented order either way.
"""

import logging
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

import numpy as np

from edge_of_chaos.config import (
    PHASE_MAP_T,
    SWEEP_BINS,
    SWEEP_SEED,
    TAX_CURVE_MAX_T,
    SimulationParams,
)
from edge_of_chaos.process import simulate
from edge_of_chaos.regimes import classify_regime

logger = logging.getLogger(__name__)

TAX_KINDS = ("income", "wealth")


class SweepCancelled(RuntimeError):
    """Raised when a sweep is cancelled; partial results are discarded."""


class CancelEvent(Protocol):
    def is_set(self) -> bool: ...


@dataclass(frozen=True)
class PointResult:
    """Terminal scalars of one inner run."""
    mi_bits: float
    gini: float
    top1: float
    tax_revenue: float


def _run_point(params: SimulationParams) -> PointResult:
    run = simulate(params)
    final = run.final
    if final is None:
        return PointResult(0.0, 0.0, 0.0, run.total_tax_revenue)
    return PointResult(final.mi_bits, final.gini, final.top1, run.total_tax_revenue)


def _check_cancelled(cancel_event: Optional[CancelEvent], done: int, total: int) -> None:
    if cancel_event is not None and cancel_event.is_set():
        logger.info("Sweep cancelled after %d/%d points", done, total)
        raise SweepCancelled(f"sweep cancelled after {done}/{total} points")


def _run_points(
    points: Sequence[SimulationParams],
    cancel_event: Optional[CancelEvent] = None,
    max_workers: Optional[int] = None,
) -> list[PointResult]:
    """Run each parameter set once, returning results in input order."""
    total = len(points)
    _check_cancelled(cancel_event, 0, total)

    if max_workers is None or max_workers <= 1:
        results = []
        for i, params in enumerate(points):
            _check_cancelled(cancel_event, i, total)
            results.append(_run_point(params))
            logger.debug("Point %d/%d done", i + 1, total)
        return results

    results: list[Optional[PointResult]] = [None] * total
    executor = ProcessPoolExecutor(max_workers=max_workers)
    try:
        futures = {executor.submit(_run_point, p): i for i, p in enumerate(points)}
        for done, future in enumerate(as_completed(futures)):
            _check_cancelled(cancel_event, done, total)
            results[futures[future]] = future.result()
    except BaseException:
        executor.shutdown(wait=False, cancel_futures=True)
        raise
    executor.shutdown(wait=True)
    return results


@dataclass(frozen=True)
class PhasePoint:
    """
    One cell of the phase map.

    Attributes:
        row: Row index (0 = highest lambda)
        col: Column index (0 = lowest alpha)
        alpha: Cell-midpoint reinforcement exponent
        lambda_effect: Cell-midpoint effort weight
        regime: Regime name from `classify_regime`
        color: Regime display color
        mi: Terminal I(V;R) in bits
        gini: Terminal reward-count Gini
    """
    row: int
    col: int
    alpha: float
    lambda_effect: float
    regime: str
    color: str
    mi: float
    gini: float


def generate_phase_map(
    alpha_range: tuple[float, float] = (0.0, 2.0),
    lambda_range: tuple[float, float] = (0.0, 2.0),
    churn: float = 0.0,
    resolution: int = 10,
    T: int = PHASE_MAP_T,
    bins: int = SWEEP_BINS,
    seed: int = SWEEP_SEED,
    A0: float = 1.0,
    cancel_event: Optional[CancelEvent] = None,
    max_workers: Optional[int] = None,
) -> list[PhasePoint]:
    """
    Build a resolution x resolution phase map over (alpha, lambda).

    Cells are ordered row by row from high lambda to low lambda, and within
    a row from low alpha to high alpha. Callers index cells positionally
    (see `locate_phase_cell`), so this order is part of the contract.

    Args:
        alpha_range: (low, high) reinforcement exponent
        lambda_range: (low, high) effort weight
        churn: Churn held fixed across the map
        resolution: Cells per axis
        T: Horizon of each cell's run (short, for responsiveness)
        bins: Effort bins for the MI estimate
        seed: Seed shared by every cell
        A0: Initial attachment
        cancel_event: Object with is_set(); checked between cells
        max_workers: Run cells in this many worker processes when > 1

    Returns:
        resolution**2 PhasePoints in row-major order

    Raises:
        SweepCancelled: if cancel_event is set before the map completes
    """
    if resolution < 1:
        raise ValueError(f"resolution must be >= 1, got {resolution}")

    alpha_step = (alpha_range[1] - alpha_range[0]) / resolution
    lambda_step = (lambda_range[1] - lambda_range[0]) / resolution

    cells = []
    for row in range(resolution):
        lam = lambda_range[1] - (row + 0.5) * lambda_step
        for col in range(resolution):
            alpha = alpha_range[0] + (col + 0.5) * alpha_step
            cells.append((row, col, alpha, lam))

    logger.info(
        "Phase map: %dx%d cells, churn=%.4f, T=%d", resolution, resolution, churn, T
    )
    results = _run_points(
        [
            SimulationParams(T=T, alpha=alpha, lambda_effect=lam, churn=churn,
                             A0=A0, bins=bins, seed=seed)
            for _, _, alpha, lam in cells
        ],
        cancel_event=cancel_event,
        max_workers=max_workers,
    )

    points = []
    for (row, col, alpha, lam), result in zip(cells, results):
        regime = classify_regime(alpha, lam, churn)
        points.append(PhasePoint(
            row=row,
            col=col,
            alpha=alpha,
            lambda_effect=lam,
            regime=regime.name,
            color=regime.color,
            mi=result.mi_bits,
            gini=result.gini,
        ))
    logger.info("Phase map complete")
    return points


def locate_phase_cell(
    alpha: float,
    lambda_effect: float,
    alpha_range: tuple[float, float] = (0.0, 2.0),
    lambda_range: tuple[float, float] = (0.0, 2.0),
    resolution: int = 10,
) -> int:
    """
    Index of the phase-map cell containing (alpha, lambda_effect).

    Values outside the ranges are clamped onto the border cells.
    """
    def axis_index(value: float, lo: float, hi: float) -> int:
        step = (hi - lo) / resolution
        if step <= 0:
            return 0
        return int(min(resolution - 1, max(0, np.floor((value - lo) / step))))

    alpha_idx = axis_index(alpha, *alpha_range)
    lambda_idx = axis_index(lambda_effect, *lambda_range)
    # Rows run from high lambda to low lambda
    return (resolution - 1 - lambda_idx) * resolution + alpha_idx


@dataclass(frozen=True)
class TaxCurvePoint:
    """
    One point of a tax-rate curve.

    Attributes:
        rate: Tax rate in percent
        revenue: Cumulative tax revenue at the end of the run
        gini: Terminal reward-count Gini (allocation concentration)
    """
    rate: float
    revenue: float
    gini: float


def generate_tax_curve(
    alpha: float,
    lambda_effect: float,
    churn: float,
    T: int,
    tax_kind: str = "income",
    max_rate: float = 0.5,
    steps: int = 10,
    bins: int = SWEEP_BINS,
    seed: int = SWEEP_SEED,
    A0: float = 1.0,
    max_horizon: Optional[int] = TAX_CURVE_MAX_T,
    cancel_event: Optional[CancelEvent] = None,
    max_workers: Optional[int] = None,
) -> list[TaxCurvePoint]:
    """
    Trace revenue and concentration from rate 0 to max_rate inclusive.

    Only the selected tax rate varies; every other parameter and the seed
    are held fixed. Concentration is the reward-count Gini for both tax
    kinds so the income and wealth curves stay comparable.

    Args:
        alpha: Reinforcement exponent
        lambda_effect: Effort weight
        churn: Per-step attachment decay
        T: Requested horizon; capped at max_horizon when given
        tax_kind: "income" (flow) or "wealth" (stock)
        max_rate: Highest rate, as a fraction
        steps: Number of intervals; steps + 1 points are produced
        bins: Effort bins
        seed: Seed shared by every point
        A0: Initial attachment
        max_horizon: Horizon cap for responsiveness (None = no cap)
        cancel_event: Object with is_set(); checked between points
        max_workers: Run points in this many worker processes when > 1

    Returns:
        steps + 1 TaxCurvePoints in ascending rate order

    Raises:
        SweepCancelled: if cancel_event is set before the curve completes
    """
    if tax_kind not in TAX_KINDS:
        raise ValueError(f"tax_kind must be one of {TAX_KINDS}, got {tax_kind!r}")
    if steps < 1:
        raise ValueError(f"steps must be >= 1, got {steps}")

    curve_T = T if max_horizon is None else min(T, max_horizon)
    rate_step = max_rate / steps
    rates = [i * rate_step for i in range(steps + 1)]
    rate_field = "income_tax_rate" if tax_kind == "income" else "wealth_tax_rate"

    base = SimulationParams(
        T=curve_T, alpha=alpha, lambda_effect=lambda_effect, churn=churn,
        A0=A0, bins=bins, seed=seed,
    )
    logger.info(
        "Tax curve: %s tax, %d points up to %.0f%%, T=%d",
        tax_kind, len(rates), max_rate * 100, curve_T,
    )
    results = _run_points(
        [base.with_overrides(**{rate_field: rate}) for rate in rates],
        cancel_event=cancel_event,
        max_workers=max_workers,
    )
    return [
        TaxCurvePoint(rate=rate * 100, revenue=result.tax_revenue, gini=result.gini)
        for rate, result in zip(rates, results)
    ]


@dataclass(frozen=True)
class TaxCurveSummary:
    """
    Notable points of a tax curve.

    Attributes:
        peak_revenue_rate: Rate (percent) with the highest revenue
        peak_revenue: Highest revenue on the curve
        min_gini_rate: Rate (percent) with the lowest concentration
        min_gini: Lowest concentration on the curve
        base_gini: Concentration at the first (zero) rate
    """
    peak_revenue_rate: float
    peak_revenue: float
    min_gini_rate: float
    min_gini: float
    base_gini: float


def summarize_tax_curve(points: Sequence[TaxCurvePoint]) -> Optional[TaxCurveSummary]:
    """Find the revenue peak and concentration minimum; earliest point wins ties."""
    if not points:
        return None
    peak = points[0]
    lowest = points[0]
    for point in points[1:]:
        if point.revenue > peak.revenue:
            peak = point
        if point.gini < lowest.gini:
            lowest = point
    return TaxCurveSummary(
        peak_revenue_rate=peak.rate,
        peak_revenue=peak.revenue,
        min_gini_rate=lowest.rate,
        min_gini=lowest.gini,
        base_gini=points[0].gini,
    )


@dataclass
class EnsembleSummary:
    """
    Terminal metrics of one parameter set averaged over seeds.

    Attributes:
        params: Parameters shared by every run (seed field is the base seed)
        n_runs: Number of runs
        mi_values: Terminal I(V;R) per run, in seed order
        mi_mean, mi_std: Mean and std of terminal I(V;R)
        gini_mean, gini_std: Mean and std of terminal reward-count Gini
        top1_mean, top1_std: Mean and std of terminal top-1 share

    Note:
        With lambda=0 reward is independent of effort, so mi_mean estimates
        the upward bias of the plug-in estimator rather than a real signal.
    """
    params: SimulationParams
    n_runs: int
    mi_values: np.ndarray
    mi_mean: float
    mi_std: float
    gini_mean: float
    gini_std: float
    top1_mean: float
    top1_std: float


def run_seed_ensemble(
    params: SimulationParams,
    n_runs: int = 50,
    base_seed: int = SWEEP_SEED,
    cancel_event: Optional[CancelEvent] = None,
    max_workers: Optional[int] = None,
) -> EnsembleSummary:
    """
    Run one parameter set with seeds base_seed + i, i = 0..n_runs-1.

    Args:
        params: Parameters for every run (its seed is replaced)
        n_runs: Number of seeds
        base_seed: First seed
        cancel_event: Object with is_set(); checked between runs
        max_workers: Run seeds in this many worker processes when > 1

    Returns:
        EnsembleSummary with per-metric mean and std
    """
    if n_runs < 1:
        raise ValueError(f"n_runs must be >= 1, got {n_runs}")

    logger.info("Seed ensemble: %d runs from seed %d", n_runs, base_seed)
    results = _run_points(
        [params.with_overrides(seed=base_seed + i) for i in range(n_runs)],
        cancel_event=cancel_event,
        max_workers=max_workers,
    )
    mi = np.array([r.mi_bits for r in results])
    gini = np.array([r.gini for r in results])
    top1 = np.array([r.top1 for r in results])

    return EnsembleSummary(
        params=params.with_overrides(seed=base_seed),
        n_runs=n_runs,
        mi_values=mi,
        mi_mean=float(mi.mean()),
        mi_std=float(mi.std()),
        gini_mean=float(gini.mean()),
        gini_std=float(gini.std()),
        top1_mean=float(top1.mean()),
        top1_std=float(top1.std()),
    )
