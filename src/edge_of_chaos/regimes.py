"""
Qualitative regime labels over (alpha, lambda, churn).

A coarse, hand-tuned partition for display. Regions are tested in priority
order and the first match wins; nothing measured from a run feeds back
into the label.
"""

from typing import NamedTuple


class Regime(NamedTuple):
    name: str
    color: str


ORDERED = Regime("Ordered", "#3b82f6")
PERIODIC = Regime("Periodic", "#10b981")
COMPLEX = Regime("Complex", "#f59e0b")
CHAOTIC = Regime("Chaotic", "#ef4444")
TRANSITIONAL = Regime("Transitional", "#8b5cf6")

REGIMES = (ORDERED, PERIODIC, COMPLEX, CHAOTIC, TRANSITIONAL)


def classify_regime(alpha: float, lambda_effect: float, churn: float) -> Regime:
    """
    Map model parameters to a named regime and its display color.

    Args:
        alpha: Reinforcement exponent
        lambda_effect: Effort weight
        churn: Per-step attachment decay

    Returns:
        Regime(name, color)
    """
    # Weak reinforcement, visible effort, some mixing
    if alpha < 0.5 and lambda_effect > 0.8 and churn > 0.005:
        return ORDERED
    if 0.5 <= alpha < 1.0 and lambda_effect > 0.6 and churn < 0.01:
        return PERIODIC
    # Edge of chaos: balanced reinforcement, effort and churn
    if 0.9 <= alpha <= 1.2 and 0.4 <= lambda_effect <= 0.8 and 0.005 <= churn <= 0.015:
        return COMPLEX
    if alpha > 1.2 and lambda_effect < 0.5 and churn < 0.005:
        return CHAOTIC
    return TRANSITIONAL
