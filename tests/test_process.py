"""
Tests for edge_of_chaos.process module.

These tests verify core invariants of the reinforcement process:
1. Determinism: Same parameters and seed produce identical runs
2. Conservation: Total rewards equal the number of completed steps
3. Non-negativity: Attachment, wealth and tax revenue never go negative
4. Path dependence: Higher alpha concentrates, churn loosens lock-in
"""

import numpy as np
import pytest

from edge_of_chaos.config import SimulationParams
from edge_of_chaos.process import (
    RankShare,
    ReinforcementProcess,
    SimulationRun,
    StepMetrics,
    simulate,
)


class _FixedDraw:
    """Stand-in PRNG returning a constant draw."""

    def __init__(self, value: float):
        self.value = value

    def next(self) -> float:
        return self.value


class TestReinforcementProcess:
    """Tests for the core reinforcement process."""

    def test_determinism_same_seed(self):
        """Same parameters should produce identical results."""
        params = SimulationParams(T=120, alpha=1.3, lambda_effect=0.5, churn=0.01,
                                  income_tax_rate=0.2, wealth_tax_rate=0.01, seed=12345)
        run1 = simulate(params)
        run2 = simulate(params)

        assert run1.series == run2.series
        assert run1.bars == run2.bars
        assert run1.effort_curve == run2.effort_curve
        assert run1.total_tax_revenue == run2.total_tax_revenue
        assert np.array_equal(run1.reward_history, run2.reward_history)
        assert np.array_equal(run1.effort, run2.effort)
        assert np.array_equal(run1.attachment, run2.attachment)
        assert np.array_equal(run1.wealth, run2.wealth)

    def test_determinism_different_seeds(self):
        """Different seeds should (typically) produce different results."""
        run1 = simulate(T=50, alpha=1.0, seed=12345)
        run2 = simulate(T=50, alpha=1.0, seed=54321)

        assert not np.array_equal(run1.effort, run2.effort)
        assert not np.array_equal(run1.reward_history, run2.reward_history)

    def test_reward_conservation_every_step(self):
        """After step t, rewards across all agents sum to t."""
        process = ReinforcementProcess(
            SimulationParams(T=80, alpha=1.2, lambda_effect=0.4, churn=0.01, seed=3)
        )
        for t in range(1, 81):
            process.step()
            assert process.reward_count.sum() == t
            assert process.n_agents == t

    def test_columns_same_length(self):
        """All per-agent columns have one entry per entrant."""
        process = ReinforcementProcess(SimulationParams(T=30, seed=1))
        for _ in range(30):
            process.step()
            n = process.n_agents
            assert len(process.effort) == n
            assert len(process.attachment) == n
            assert len(process.wealth) == n
            assert len(process.ever_rewarded) == n
            assert len(process.reward_count) == n

    def test_agent_count_matches_T(self):
        """One entrant per step: number of agents equals T."""
        for T in [10, 50, 100]:
            run = simulate(T=T, alpha=1.0, seed=42)
            assert len(run.effort) == T
            assert len(run.series) == T
            assert run.reward_count.sum() == T

    def test_attachment_is_A0_plus_rewards(self):
        """Without churn or tax, attachment = A0 + rewards and wealth = rewards."""
        A0 = 5.0
        run = simulate(T=60, A0=A0, alpha=1.0, seed=42)

        assert np.array_equal(run.attachment, A0 + run.reward_count)
        assert np.array_equal(run.wealth, run.reward_count.astype(float))

    def test_effort_in_unit_interval(self):
        """Effort is drawn in [0, 1)."""
        run = simulate(T=300, seed=5)
        assert run.effort.min() >= 0.0
        assert run.effort.max() < 1.0

    def test_effort_fixed_at_entry(self):
        """An agent's effort never changes after entry."""
        process = ReinforcementProcess(SimulationParams(T=40, churn=0.02, wealth_tax_rate=0.1, seed=8))
        process.step()
        first = process.effort[0]
        for _ in range(39):
            process.step()
            assert process.effort[0] == first

    def test_ever_rewarded_matches_counts(self):
        """ever_rewarded is exactly reward_count > 0."""
        run = simulate(T=150, alpha=1.4, seed=9)
        assert np.array_equal(run.ever_rewarded, run.reward_count > 0)

    def test_high_alpha_concentration(self):
        """Higher alpha should lead to more concentrated rewards on average."""
        low, high = [], []
        for i in range(20):
            low.append(simulate(T=100, alpha=0.5, seed=42 + i).final.gini)
            high.append(simulate(T=100, alpha=2.0, seed=42 + i).final.gini)

        assert np.mean(high) > np.mean(low), \
            "Higher alpha should produce higher concentration on average"

    def test_extreme_alpha_near_max_concentration(self):
        """Very strong reinforcement without churn is close to winner-take-all."""
        run = simulate(T=300, alpha=3.0, lambda_effect=0.0, churn=0.0, seed=7)
        assert run.final.gini > 0.95

    def test_churn_reduces_lock_in_seed_7(self):
        """At T=500, alpha=1.8, lambda=0.1, seed 7, churn 0.02 ends less concentrated."""
        base = SimulationParams(T=500, alpha=1.8, lambda_effect=0.1, churn=0.0, seed=7)
        locked = simulate(base)
        churned = simulate(base.with_overrides(churn=0.02))

        assert churned.final.gini < locked.final.gini

    def test_churn_reduces_lock_in(self):
        """Churn lowers terminal concentration under strong reinforcement."""
        locked, churned = [], []
        for seed in range(7, 17):
            base = SimulationParams(T=500, alpha=1.8, lambda_effect=0.1, churn=0.0, seed=seed)
            locked.append(simulate(base).final.gini)
            churned.append(simulate(base.with_overrides(churn=0.02)).final.gini)

        assert np.mean(churned) < np.mean(locked)

    def test_step_past_horizon_grows(self):
        """Stepping beyond T keeps working and keeps columns aligned."""
        process = ReinforcementProcess(SimulationParams(T=2, seed=4))
        for _ in range(9):
            process.step()
        assert process.n_agents == 9
        assert len(process.attachment) == 9
        assert process.reward_count.sum() == 9


class TestWinnerSelection:
    """Tests for weight-proportional winner selection."""

    def test_zero_weights_select_first_agent(self):
        """A non-positive total weight falls back to agent 0."""
        process = ReinforcementProcess()
        assert process._select_winner(np.zeros(4)) == 0
        assert process._select_winner(np.array([np.nan, 1.0])) == 0

    def test_first_agent_reaching_draw_wins(self):
        """The draw lands on the first agent whose cumulative weight reaches it."""
        process = ReinforcementProcess()
        process.rng = _FixedDraw(0.5)
        # draw = 0.5 * 2 = 1.0 equals the first cumulative weight
        assert process._select_winner(np.array([1.0, 1.0])) == 0

        process.rng = _FixedDraw(0.75)
        assert process._select_winner(np.array([1.0, 1.0])) == 1

        process.rng = _FixedDraw(0.0)
        assert process._select_winner(np.array([0.2, 0.3, 0.5])) == 0

    def test_weights_strictly_positive(self):
        """Zero attachment still yields a positive weight."""
        process = ReinforcementProcess(SimulationParams(T=5, alpha=2.0, wealth_tax_rate=1.0, seed=2))
        process.step()
        process.step()
        process._attachment[:process.n_agents] = 0.0
        weights = process._compute_weights()
        assert np.all(weights > 0)


class TestLocalWorkEffect:
    """Tests for effort modulation (lambda > 0)."""

    def test_lambda_positive_favors_high_effort(self):
        """With lambda > 0, high-effort agents are rewarded more often."""
        high, low = [], []
        for seed in range(30):
            run = simulate(T=100, alpha=0.5, lambda_effect=3.0, churn=0.01, seed=seed)
            high.extend(run.ever_rewarded[run.effort >= 0.5])
            low.extend(run.ever_rewarded[run.effort < 0.5])

        assert np.mean(high) > np.mean(low)


class TestTaxation:
    """Tests for income and wealth taxes."""

    def test_income_tax_revenue(self):
        """Income tax collects rate x reward every step."""
        run = simulate(T=200, alpha=1.0, income_tax_rate=0.3, seed=11)
        assert run.total_tax_revenue == pytest.approx(200 * 0.3)
        assert run.wealth.sum() == pytest.approx(200 * 0.7)

    def test_full_income_tax_leaves_no_wealth(self):
        """At 100% income tax, post-tax Gini falls back to the reward Gini."""
        run = simulate(T=80, alpha=1.5, income_tax_rate=1.0, seed=11)
        assert np.all(run.wealth == 0)
        assert np.all(run.attachment == 1.0)
        for m in run.series:
            assert m.post_tax_gini == m.gini

    def test_wealth_tax_counts_attachment_only(self):
        """Wealth-tax revenue equals the attachment removed, not the wealth removed."""
        process = ReinforcementProcess(SimulationParams(T=3, wealth_tax_rate=0.5, seed=6))
        process.step()
        # One agent: attachment 1.0 -> taxed to 0.5, then wins 1.0
        assert process.total_tax_revenue == pytest.approx(0.5)
        assert process.attachment[0] == pytest.approx(1.5)
        assert process.wealth[0] == pytest.approx(1.0)

        process.step()
        # Agent 0: attachment 1.5 -> 0.75 (tax 0.75); agent 1: 1.0 -> 0.5 (tax 0.5)
        assert process.total_tax_revenue == pytest.approx(0.5 + 0.75 + 0.5)
        # Wealth 1.0 -> 0.5 from the tax, plus the reward if agent 0 won again
        won_again = process.reward_history[-1] == 0
        assert process.wealth[0] == pytest.approx(0.5 + (1.0 if won_again else 0.0))

    def test_non_negative_state(self):
        """Attachment, wealth and revenue stay non-negative under heavy taxes."""
        run = simulate(T=200, alpha=1.5, churn=0.03, income_tax_rate=0.6,
                       wealth_tax_rate=0.2, seed=13)
        assert np.all(run.attachment >= 0)
        assert np.all(run.wealth >= 0)
        revenue = run.series_column("tax_revenue")
        assert np.all(revenue >= 0)
        assert np.all(np.diff(revenue) >= 0)

    def test_no_tax_no_revenue(self):
        """Without taxes, revenue is zero and post-tax Gini equals Gini."""
        run = simulate(T=100, alpha=1.2, seed=2)
        assert run.total_tax_revenue == 0
        for m in run.series:
            assert m.post_tax_gini == pytest.approx(m.gini)


class TestSimulationRun:
    """Tests for the SimulationRun result."""

    def test_single_step_scenario(self):
        """One step: one agent, one reward, no inequality, no information."""
        run = simulate(T=1, alpha=1.0, lambda_effect=0.0, churn=0.0, seed=7)

        assert len(run.effort) == 1
        assert list(run.reward_count) == [1]
        assert run.final == StepMetrics(t=1, mi_bits=0.0, gini=0.0, top1=1.0, top10=1.0,
                                        tax_revenue=0.0, post_tax_gini=0.0)
        assert run.bars == (RankShare(rank=1, agent_id=0, share=1.0),)

    def test_zero_steps(self):
        """T = 0 yields an empty series rather than an error."""
        run = simulate(T=0, bins=5)
        assert run.series == ()
        assert run.final is None
        assert run.bars == ()
        assert len(run.effort) == 0
        assert len(run.effort_curve) == 5
        assert run.total_tax_revenue == 0

    def test_series_fields(self):
        """Series rows are 1-indexed and bounded."""
        run = simulate(T=150, alpha=1.3, lambda_effect=0.6, churn=0.01,
                       income_tax_rate=0.1, wealth_tax_rate=0.02, seed=21)
        assert [m.t for m in run.series] == list(range(1, 151))
        for m in run.series:
            assert 0 <= m.gini <= 1
            assert 0 <= m.post_tax_gini <= 1
            assert 0 < m.top1 <= m.top10 <= 1
            assert m.mi_bits >= -1e-12

    def test_series_column(self):
        """series_column extracts one metric as an array."""
        run = simulate(T=40, seed=1)
        gini = run.series_column("gini")
        assert gini.shape == (40,)
        assert gini[-1] == run.final.gini
        with pytest.raises(ValueError):
            run.series_column("not_a_metric")

    def test_bars(self):
        """Bars list at most 20 agents by descending share."""
        run = simulate(T=200, alpha=0.8, seed=17)
        shares = [b.share for b in run.bars]
        assert len(run.bars) == 20
        assert [b.rank for b in run.bars] == list(range(1, 21))
        assert shares == sorted(shares, reverse=True)
        assert shares[0] == pytest.approx(run.final.top1)
        for b in run.bars:
            assert b.share == pytest.approx(run.reward_count[b.agent_id] / 200)

    def test_effort_curve(self):
        """Effort curve covers every agent once and matches the columns."""
        run = simulate(T=250, alpha=1.0, lambda_effect=1.0, bins=5, seed=4)
        assert len(run.effort_curve) == 5
        assert sum(b.n_agents for b in run.effort_curve) == 250
        first = run.effort_curve[0]
        in_bin = run.effort < 0.2
        assert first.n_agents == in_bin.sum()
        assert first.p_rewarded == pytest.approx(run.ever_rewarded[in_bin].mean())

    def test_result_is_read_only(self):
        """Terminal columns cannot be modified."""
        run = simulate(T=20, seed=1)
        with pytest.raises(ValueError):
            run.attachment[0] = 100.0
        with pytest.raises(AttributeError):
            run.total_tax_revenue = 5.0

    def test_result_fields(self):
        """SimulationRun should carry its parameters."""
        run = simulate(SimulationParams(T=50, alpha=1.0, seed=42))
        assert isinstance(run, SimulationRun)
        assert run.params.T == 50
        assert run.params.seed == 42
        assert len(run.reward_history) == 50

    def test_track_history(self):
        """With track_history=True, should record attachment over time."""
        run = simulate(T=50, seed=42, track_history=True)
        assert run.attachment_history is not None
        assert run.attachment_history.shape == (50, 50)
        assert np.array_equal(run.attachment_history[-1], run.attachment)
        # Agents not yet entered are zero-padded
        assert run.attachment_history[0, 1] == 0

    def test_no_track_history(self):
        """With track_history=False, attachment_history should be None."""
        run = simulate(T=50, seed=42, track_history=False)
        assert run.attachment_history is None

    def test_overrides_on_params(self):
        """Keyword overrides apply on top of a base record."""
        base = SimulationParams(T=30, alpha=1.5, seed=3)
        run = simulate(base, seed=4)
        assert run.params.seed == 4
        assert run.params.alpha == 1.5
        assert base.seed == 3
