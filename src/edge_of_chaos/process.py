"""
Core reinforcement process with effort modulation, churn and taxation.

Each time step t = 1..T, in this order:
1. Entry: one agent enters with effort V ~ U[0,1) and attachment A0
2. Churn: every attachment decays by (1 - churn)
3. Wealth tax: a fraction of every attachment (collected) and wealth (removed)
4. Weights: w_i = max(A_i, eps)^alpha * exp(lambda * (V_i - mean V))
5. Winner: one agent drawn with probability proportional to w_i
6. Reward: winner gets 1 * (1 - income tax); the tax share is collected
7. Metrics: Gini, post-tax Gini, I(V;R), top shares, cumulative tax revenue

The order defines the semantics; changing it changes every trajectory.
Agent state lives in parallel columns (effort, attachment, wealth,
ever_rewarded, reward_count) that always have the same length.
"""

import logging
from dataclasses import dataclass, fields
from typing import Optional

import numpy as np

from edge_of_chaos.config import (
    TOP_FRACTION,
    TOP_N_BARS,
    WEIGHT_FLOOR,
    SimulationParams,
)
from edge_of_chaos.metrics import (
    EffortBin,
    compute_effort_reward_curve,
    compute_gini,
    compute_top_fraction_share,
    compute_top_share,
    estimate_binned_mutual_information,
)
from edge_of_chaos.rng import Mulberry32

logger = logging.getLogger(__name__)

REWARD = 1.0


@dataclass(frozen=True)
class StepMetrics:
    """
    Metrics recorded at the end of one time step.

    Attributes:
        t: Step index, 1-based
        mi_bits: Binned I(V;R) with R = ever rewarded
        gini: Gini of reward counts (allocation concentration)
        top1: Largest reward-count share
        top10: Reward-count share of the top 10% of agents (at least one)
        tax_revenue: Cumulative tax revenue so far
        post_tax_gini: Gini of wealth; equals `gini` while total wealth is 0
    """
    t: int
    mi_bits: float
    gini: float
    top1: float
    top10: float
    tax_revenue: float
    post_tax_gini: float


@dataclass(frozen=True)
class RankShare:
    """Terminal reward share of one agent at a given rank (1 = largest)."""
    rank: int
    agent_id: int
    share: float


@dataclass(frozen=True, eq=False)
class SimulationRun:
    """
    Complete, immutable result of a single simulation run.

    Attributes:
        params: Parameters the run was made with
        series: One StepMetrics per completed step
        bars: Top agents by terminal reward share
        effort_curve: P(ever rewarded | effort bin) at the end of the run
        total_tax_revenue: Cumulative tax revenue at the end of the run
        effort: Effort per agent (read-only)
        attachment: Terminal attachment per agent (read-only)
        wealth: Terminal post-tax wealth per agent (read-only)
        ever_rewarded: Whether each agent was ever rewarded (read-only)
        reward_count: Rewards received per agent (read-only)
        reward_history: Winner index per step (read-only)
        attachment_history: Optional [step, agent] attachment matrix,
            zero-padded for agents that had not entered yet
    """
    params: SimulationParams
    series: tuple[StepMetrics, ...]
    bars: tuple[RankShare, ...]
    effort_curve: tuple[EffortBin, ...]
    total_tax_revenue: float
    effort: np.ndarray
    attachment: np.ndarray
    wealth: np.ndarray
    ever_rewarded: np.ndarray
    reward_count: np.ndarray
    reward_history: np.ndarray
    attachment_history: Optional[np.ndarray] = None

    @property
    def final(self) -> Optional[StepMetrics]:
        """Metrics of the last step, or None when T = 0."""
        return self.series[-1] if self.series else None

    def series_column(self, name: str) -> np.ndarray:
        """Return one StepMetrics field across all steps."""
        if name not in _STEP_FIELDS:
            raise ValueError(f"Unknown metric {name!r}; expected one of {_STEP_FIELDS}")
        return np.array([getattr(m, name) for m in self.series], dtype=float)


_STEP_FIELDS = tuple(f.name for f in fields(StepMetrics))


def _frozen(array: np.ndarray) -> np.ndarray:
    out = array.copy()
    out.flags.writeable = False
    return out


class ReinforcementProcess:
    """
    Attachment-weighted reward allocation with effort modulation.

    Implements:
    - Pr(winner = i) = w_i / sum_j w_j
    - w_i = max(A_i, eps)^alpha * exp(lambda * (V_i - mean V))
    - A_i <- A_i * (1 - churn) every step, then the wealth tax, then + reward

    Parameters:
        params: Simulation parameters (defaults to SimulationParams())
        track_history: Whether to store the attachment vector after each step

    Parameters are used as given. Out-of-domain values (negative churn,
    tax rates above 1, ...) give undefined results; see `validate_params`.
    """

    def __init__(
        self,
        params: Optional[SimulationParams] = None,
        track_history: bool = False,
    ):
        self.params = params if params is not None else SimulationParams()
        self.track_history = track_history
        self.rng = Mulberry32(self.params.seed)
        self._init_state()

    def _init_state(self) -> None:
        capacity = max(self.params.T, 1)
        self._effort = np.zeros(capacity)
        self._attachment = np.zeros(capacity)
        self._wealth = np.zeros(capacity)
        self._ever_rewarded = np.zeros(capacity, dtype=bool)
        self._reward_count = np.zeros(capacity, dtype=np.int64)
        self.n_agents = 0
        self.current_time = 0
        self.total_tax_revenue = 0.0
        self.series: list[StepMetrics] = []
        self.reward_history: list[int] = []
        self.attachment_history: list[np.ndarray] = []

    def reset(self, seed: Optional[int] = None) -> None:
        """Reset the process to its initial state with optional new seed."""
        if seed is not None:
            self.params = self.params.with_overrides(seed=seed)
        self.rng = Mulberry32(self.params.seed)
        self._init_state()

    # Views over the live columns; all have length n_agents
    @property
    def effort(self) -> np.ndarray:
        return self._effort[:self.n_agents]

    @property
    def attachment(self) -> np.ndarray:
        return self._attachment[:self.n_agents]

    @property
    def wealth(self) -> np.ndarray:
        return self._wealth[:self.n_agents]

    @property
    def ever_rewarded(self) -> np.ndarray:
        return self._ever_rewarded[:self.n_agents]

    @property
    def reward_count(self) -> np.ndarray:
        return self._reward_count[:self.n_agents]

    def _grow(self) -> None:
        """Double column capacity when stepping past the planned horizon."""
        extra = len(self._effort)
        self._effort = np.concatenate([self._effort, np.zeros(extra)])
        self._attachment = np.concatenate([self._attachment, np.zeros(extra)])
        self._wealth = np.concatenate([self._wealth, np.zeros(extra)])
        self._ever_rewarded = np.concatenate([self._ever_rewarded, np.zeros(extra, dtype=bool)])
        self._reward_count = np.concatenate([self._reward_count, np.zeros(extra, dtype=np.int64)])

    def _add_agent(self) -> int:
        """Add one entrant and return its index."""
        if self.n_agents == len(self._effort):
            self._grow()
        i = self.n_agents
        self._effort[i] = self.rng.next()
        self._attachment[i] = self.params.A0
        self._wealth[i] = 0.0
        self._ever_rewarded[i] = False
        self._reward_count[i] = 0
        self.n_agents += 1
        return i

    def _apply_churn(self) -> None:
        if self.params.churn > 0:
            self.attachment[:] *= 1 - self.params.churn

    def _apply_wealth_tax(self) -> None:
        """
        Tax attachment and wealth by the same rate.

        Only the attachment tax is counted as revenue; the wealth tax just
        shrinks the realized-holdings ledger so it is not counted twice.
        """
        rate = self.params.wealth_tax_rate
        if rate <= 0:
            return
        attachment_tax = self.attachment * rate
        self.attachment[:] -= attachment_tax
        self.total_tax_revenue += float(attachment_tax.sum())
        self.wealth[:] -= self.wealth * rate

    def _compute_weights(self) -> np.ndarray:
        """Reinforcement base times effort modulation; strictly positive."""
        effort = self.effort
        base = np.power(np.maximum(self.attachment, WEIGHT_FLOOR), self.params.alpha)
        modulation = np.exp(self.params.lambda_effect * (effort - effort.mean()))
        return base * modulation

    def _select_winner(self, weights: np.ndarray) -> int:
        """
        Weight-proportional draw: first agent whose cumulative weight
        reaches u * total. A non-positive total selects agent 0.
        """
        total = weights.sum()
        if not total > 0:
            return 0
        draw = self.rng.next() * total
        cumulative = np.cumsum(weights)
        idx = int(np.searchsorted(cumulative, draw, side="left"))
        return min(idx, len(weights) - 1)

    def _allocate_reward(self, winner: int) -> None:
        rate = self.params.income_tax_rate
        after_tax = REWARD * (1 - rate)
        self.total_tax_revenue += REWARD * rate
        self._attachment[winner] += after_tax
        self._wealth[winner] += after_tax
        self._ever_rewarded[winner] = True
        self._reward_count[winner] += 1

    def _record_metrics(self) -> StepMetrics:
        reward_count = self.reward_count
        gini = compute_gini(reward_count)
        wealth = self.wealth
        post_tax_gini = compute_gini(wealth) if wealth.sum() > 0 else gini
        metrics = StepMetrics(
            t=self.current_time,
            mi_bits=estimate_binned_mutual_information(
                self.effort, self.ever_rewarded, bins=self.params.bins
            ),
            gini=gini,
            top1=compute_top_share(reward_count, k=1),
            top10=compute_top_fraction_share(reward_count, fraction=TOP_FRACTION),
            tax_revenue=self.total_tax_revenue,
            post_tax_gini=post_tax_gini,
        )
        self.series.append(metrics)
        return metrics

    def step(self) -> int:
        """
        Execute one time step and return the winner's index.
        """
        self.current_time += 1

        self._add_agent()
        self._apply_churn()
        self._apply_wealth_tax()

        winner = self._select_winner(self._compute_weights())
        self._allocate_reward(winner)
        self.reward_history.append(winner)

        self._record_metrics()

        if self.track_history:
            self.attachment_history.append(self.attachment.copy())

        return winner

    def _terminal_bars(self) -> tuple[RankShare, ...]:
        reward_count = self.reward_count
        total = reward_count.sum()
        if total > 0:
            shares = reward_count / total
        else:
            shares = np.zeros(len(reward_count))
        # Stable sort keeps lower agent index first on ties
        order = np.argsort(-shares, kind="stable")[:TOP_N_BARS]
        return tuple(
            RankShare(rank=rank + 1, agent_id=int(i), share=float(shares[i]))
            for rank, i in enumerate(order)
        )

    def run(self) -> SimulationRun:
        """
        Run the full simulation for T time steps.

        Returns:
            SimulationRun with the metric series and terminal distributions
        """
        self.reset()

        for _ in range(self.params.T):
            self.step()

        # Padded [step, agent] matrix; agents not yet entered hold 0
        attachment_hist = None
        if self.track_history and self.attachment_history:
            attachment_hist = np.zeros((len(self.attachment_history), self.n_agents))
            for t, attachments in enumerate(self.attachment_history):
                attachment_hist[t, :len(attachments)] = attachments

        run = SimulationRun(
            params=self.params,
            series=tuple(self.series),
            bars=self._terminal_bars(),
            effort_curve=tuple(compute_effort_reward_curve(
                self.effort, self.ever_rewarded, bins=self.params.bins
            )),
            total_tax_revenue=self.total_tax_revenue,
            effort=_frozen(self.effort),
            attachment=_frozen(self.attachment),
            wealth=_frozen(self.wealth),
            ever_rewarded=_frozen(self.ever_rewarded),
            reward_count=_frozen(self.reward_count),
            reward_history=_frozen(np.array(self.reward_history, dtype=np.int64)),
            attachment_history=attachment_hist,
        )
        if run.final is not None:
            logger.debug(
                "Run T=%d alpha=%.3f lambda=%.3f churn=%.4f seed=%d: gini=%.4f mi=%.4f bits",
                self.params.T, self.params.alpha, self.params.lambda_effect,
                self.params.churn, self.params.seed, run.final.gini, run.final.mi_bits,
            )
        return run


def simulate(
    params: Optional[SimulationParams] = None,
    track_history: bool = False,
    **overrides,
) -> SimulationRun:
    """
    Convenience function to run a single simulation.

    Args:
        params: Base parameters (defaults to SimulationParams())
        track_history: Whether to track the full attachment history
        **overrides: Field overrides applied on top of `params`,
            e.g. simulate(T=500, alpha=1.8, seed=7)

    Returns:
        SimulationRun for the resulting parameters
    """
    if params is None:
        params = SimulationParams()
    if overrides:
        params = params.with_overrides(**overrides)
    return ReinforcementProcess(params, track_history=track_history).run()
