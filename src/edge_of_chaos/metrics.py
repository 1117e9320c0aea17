"""
Metrics for measuring reinforcement effects.

This module provides:
- Concentration index (Gini coefficient) over non-negative distributions
- Binned mutual information between continuous effort and a binary reward
- Top-k and top-fraction reward shares
- Effort-bin reward probabilities for the terminal effort curve

All functions are pure and operate on column arrays. The key behavior:
as alpha grows and churn vanishes, I(V;R) shrinks toward the estimator
floor even when lambda > 0, while concentration rises toward 1.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

import numpy as np

from edge_of_chaos.regimes import classify_regime

if TYPE_CHECKING:
    from edge_of_chaos.process import SimulationRun


@dataclass(frozen=True)
class EffortBin:
    """
    Reward probability within one equal-width effort bin.

    Attributes:
        bin: 1-based bin number
        lower: Inclusive lower effort edge
        upper: Exclusive upper effort edge (the last bin also holds 1.0)
        n_agents: Agents whose effort falls in the bin
        p_rewarded: Fraction of those agents ever rewarded (0 if empty)
    """
    bin: int
    lower: float
    upper: float
    n_agents: int
    p_rewarded: float


def compute_gini(values: Sequence[float] | np.ndarray) -> float:
    """
    Compute the Gini coefficient of a non-negative distribution.

    Gini = 0 means perfect equality (all entries equal)
    Gini -> 1 means perfect inequality (one entry holds everything)

    Args:
        values: Non-negative numbers (reward counts, wealth, ...)

    Returns:
        Gini coefficient; 0 for an empty sequence or a non-positive total
    """
    x = np.asarray(values, dtype=float)
    n = len(x)
    if n == 0:
        return 0.0

    total = x.sum()
    if total <= 0:
        return 0.0

    # Sort ascending
    sorted_x = np.sort(x)

    # Gini formula: G = (2 * sum(i * x_i)) / (n * sum(x_i)) - (n + 1) / n
    indices = np.arange(1, n + 1)
    gini = (2 * np.sum(indices * sorted_x)) / (n * total) - (n + 1) / n

    return float(max(0.0, min(1.0, gini)))


def bin_effort(effort: Sequence[float] | np.ndarray, bins: int) -> np.ndarray:
    """
    Map effort values in [0, 1] to equal-width bin indices.

    The top edge (effort == 1.0) falls into the last bin.

    Args:
        effort: Effort values
        bins: Number of bins over [0, 1)

    Returns:
        Integer array of bin indices in [0, bins - 1]
    """
    if bins < 1:
        raise ValueError(f"bins must be >= 1, got {bins}")
    v = np.asarray(effort, dtype=float)
    return np.clip(np.floor(v * bins), 0, bins - 1).astype(int)


def estimate_binned_mutual_information(
    effort: Sequence[float] | np.ndarray,
    rewarded: Sequence[int] | np.ndarray,
    bins: int = 10,
) -> float:
    """
    Estimate I(V;R) between binned effort V and binary reward R.

    Uses the conditional form:
        I(V;R) = sum_v p(v) * sum_r p(r|v) * log2(p(r|v) / p(r))

    Terms with a zero conditional or marginal probability contribute 0.

    Args:
        effort: Effort values in [0, 1]
        rewarded: Binary indicator per agent (truthy = ever rewarded)
        bins: Number of equal-width effort bins

    Returns:
        Mutual information in bits; 0 when there are no samples

    Note:
        This is a population plug-in estimate with positive bias for small
        samples. When lambda=0 the true value is zero and small positive
        values are estimator noise. No bias correction is applied.
    """
    v = np.asarray(effort, dtype=float)
    r = np.asarray(rewarded).astype(bool)
    n = len(v)
    if len(r) != n:
        raise ValueError("effort and rewarded must have same length")
    if n == 0:
        return 0.0

    bin_idx = bin_effort(v, bins)
    n_bin = np.bincount(bin_idx, minlength=bins)
    r1_bin = np.bincount(bin_idx, weights=r.astype(float), minlength=bins)

    p_r1 = r.sum() / n
    p_r0 = 1.0 - p_r1

    mi = 0.0
    for b in range(bins):
        nb = n_bin[b]
        if nb == 0:
            continue
        p_v = nb / n
        p_r1_given_v = r1_bin[b] / nb
        p_r0_given_v = 1.0 - p_r1_given_v
        if p_r1_given_v > 0 and p_r1 > 0:
            mi += p_v * p_r1_given_v * np.log(p_r1_given_v / p_r1)
        if p_r0_given_v > 0 and p_r0 > 0:
            mi += p_v * p_r0_given_v * np.log(p_r0_given_v / p_r0)

    # Convert nats to bits
    return float(mi / np.log(2))


def compute_top_share(values: Sequence[float] | np.ndarray, k: int = 1) -> float:
    """
    Compute the fraction of the total held by the top k entries.

    Args:
        values: Non-negative numbers
        k: Number of top entries to consider

    Returns:
        Top-k share; 0 when empty or the total is zero
    """
    x = np.asarray(values, dtype=float)
    if len(x) == 0:
        return 0.0

    total = x.sum()
    if total == 0:
        return 0.0

    # Sort descending and take top k
    sorted_x = np.sort(x)[::-1]
    return float(sorted_x[:k].sum() / total)


def compute_top_fraction_share(
    values: Sequence[float] | np.ndarray,
    fraction: float = 0.1,
) -> float:
    """
    Share held by the top `fraction` of entries (at least one entry).

    With 25 agents and fraction=0.1 this is the top-2 share.
    """
    n = len(values)
    k = max(1, int(np.floor(n * fraction)))
    return compute_top_share(values, k=k)


def compute_effort_reward_curve(
    effort: Sequence[float] | np.ndarray,
    rewarded: Sequence[int] | np.ndarray,
    bins: int = 10,
) -> list[EffortBin]:
    """
    Compute P(ever rewarded | effort bin) for each equal-width bin.

    Bins with no agents report probability 0.

    Args:
        effort: Effort values in [0, 1]
        rewarded: Binary indicator per agent
        bins: Number of bins

    Returns:
        One EffortBin per bin, in ascending effort order
    """
    v = np.asarray(effort, dtype=float)
    r = np.asarray(rewarded).astype(bool)
    if len(r) != len(v):
        raise ValueError("effort and rewarded must have same length")

    bin_idx = bin_effort(v, bins)
    n_bin = np.bincount(bin_idx, minlength=bins)
    r1_bin = np.bincount(bin_idx, weights=r.astype(float), minlength=bins)

    curve = []
    for b in range(bins):
        nb = int(n_bin[b])
        curve.append(EffortBin(
            bin=b + 1,
            lower=b / bins,
            upper=(b + 1) / bins,
            n_agents=nb,
            p_rewarded=float(r1_bin[b] / nb) if nb else 0.0,
        ))
    return curve


def compute_run_summary(run: SimulationRun) -> dict:
    """
    Compute a flat summary of a simulation run.

    Args:
        run: SimulationRun from `simulate`

    Returns:
        Dictionary with parameters, terminal metrics and the regime label
    """
    params = run.params
    final = run.final
    regime = classify_regime(params.alpha, params.lambda_effect, params.churn)
    n_agents = len(run.effort)

    return {
        **params.as_dict(),
        "n_agents": n_agents,
        "total_rewards": int(run.reward_count.sum()),
        "mi_bits": final.mi_bits if final else 0.0,
        "gini": final.gini if final else 0.0,
        "post_tax_gini": final.post_tax_gini if final else 0.0,
        "top_1_share": final.top1 if final else 0.0,
        "top_10pct_share": final.top10 if final else 0.0,
        "total_tax_revenue": run.total_tax_revenue,
        "fraction_ever_rewarded": float(run.ever_rewarded.mean()) if n_agents else 0.0,
        "regime": regime.name,
    }
