"""
Plotting utilities for the reinforcement explorer.

Creates figures for:
1. Single-run dynamics: I(V;R), concentration and top shares over time
2. Terminal distributions: top reward shares and the effort curve
3. Phase map over (alpha, lambda) with regime colors
4. Income and wealth tax curves
"""

from pathlib import Path
from typing import Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.colors import to_rgb
from matplotlib.figure import Figure

from edge_of_chaos.process import SimulationRun
from edge_of_chaos.simulate import PhasePoint, TaxCurvePoint


STYLE_CONFIG = {
    "figure.facecolor": "#0d1117",
    "axes.facecolor": "#161b22",
    "axes.edgecolor": "#30363d",
    "axes.labelcolor": "#c9d1d9",
    "axes.titlecolor": "#f0f6fc",
    "text.color": "#c9d1d9",
    "xtick.color": "#8b949e",
    "ytick.color": "#8b949e",
    "grid.color": "#21262d",
    "grid.alpha": 0.8,
    "legend.facecolor": "#21262d",
    "legend.edgecolor": "#30363d",
    "legend.labelcolor": "#c9d1d9",
}

COLORS = {
    "primary": "#58a6ff",      # Electric blue
    "secondary": "#f778ba",    # Hot pink
    "tertiary": "#7ee787",     # Neon green
    "quaternary": "#ffa657",   # Orange
    "quinary": "#a371f7",      # Purple
    "highlight": "#f0f6fc",
    "neutral": "#8b949e",
}

BACKGROUND = "#0d1117"


def apply_style() -> None:
    """Apply custom dark style to matplotlib."""
    plt.rcParams.update(STYLE_CONFIG)
    plt.rcParams["font.family"] = "monospace"
    plt.rcParams["font.size"] = 10


def ensure_figures_dir(path: str = "figures") -> Path:
    """Create figures directory if it doesn't exist."""
    fig_path = Path(path)
    fig_path.mkdir(parents=True, exist_ok=True)
    return fig_path


def _finish(fig: Figure, output_path: Optional[str], show: bool) -> Figure:
    plt.tight_layout()
    if output_path:
        ensure_figures_dir(str(Path(output_path).parent))
        fig.savefig(output_path, dpi=150, bbox_inches="tight", facecolor=BACKGROUND)
    if show:
        plt.show()
    else:
        plt.close(fig)
    return fig


def plot_run_dynamics(
    run: SimulationRun,
    output_path: Optional[str] = None,
    show: bool = False,
) -> Figure:
    """
    Plot metric series and terminal distributions of one run.

    Args:
        run: SimulationRun from `simulate`
        output_path: Path to save figure (optional)
        show: Whether to display figure

    Returns:
        Matplotlib Figure object
    """
    apply_style()

    fig, axes = plt.subplots(2, 2, figsize=(13, 9))
    fig.patch.set_facecolor(BACKGROUND)
    p = run.params
    t = run.series_column("t")

    # Top left: information vs concentration
    ax1 = axes[0, 0]
    ax1.plot(t, run.series_column("mi_bits"), color=COLORS["primary"], linewidth=2, label="I(V;R) [bits]")
    ax1.plot(t, run.series_column("gini"), color=COLORS["secondary"], linewidth=2, label="Gini")
    if p.income_tax_rate > 0 or p.wealth_tax_rate > 0:
        ax1.plot(t, run.series_column("post_tax_gini"), color=COLORS["quinary"],
                 linewidth=1.5, linestyle="--", label="Post-tax Gini")
    ax1.set_xlabel("Time", fontsize=11)
    ax1.set_title(
        f"Signal vs Lock-in\n(α={p.alpha}, λ={p.lambda_effect}, churn={p.churn})",
        fontsize=12,
        fontweight="bold",
    )
    ax1.legend(loc="upper right", fontsize=9)
    ax1.grid(True, alpha=0.3)

    # Top right: top shares
    ax2 = axes[0, 1]
    ax2.plot(t, run.series_column("top1"), color=COLORS["tertiary"], linewidth=2, label="Top-1 share")
    ax2.plot(t, run.series_column("top10"), color=COLORS["quaternary"], linewidth=2, label="Top-10% share")
    ax2.set_xlabel("Time", fontsize=11)
    ax2.set_ylim(0, 1)
    ax2.set_title("Reward Concentration", fontsize=12, fontweight="bold")
    ax2.legend(loc="upper right", fontsize=9)
    ax2.grid(True, alpha=0.3)

    # Bottom left: terminal top-N shares
    ax3 = axes[1, 0]
    ax3.bar(
        [b.rank for b in run.bars],
        [b.share for b in run.bars],
        color=COLORS["primary"],
        edgecolor=COLORS["secondary"],
        alpha=0.85,
    )
    ax3.set_xlabel("Agent Rank", fontsize=11)
    ax3.set_ylabel("Reward Share", fontsize=11)
    ax3.set_title("Final Reward Distribution", fontsize=12, fontweight="bold")
    ax3.grid(True, alpha=0.3)

    # Bottom right: effort curve
    ax4 = axes[1, 1]
    ax4.bar(
        [b.bin for b in run.effort_curve],
        [b.p_rewarded for b in run.effort_curve],
        color=COLORS["tertiary"],
        edgecolor=COLORS["neutral"],
        alpha=0.85,
    )
    ax4.set_xlabel("Effort Bin (low → high)", fontsize=11)
    ax4.set_ylabel("P(ever rewarded)", fontsize=11)
    ax4.set_ylim(0, 1)
    ax4.set_title("Does Effort Predict Reward?", fontsize=12, fontweight="bold")
    ax4.grid(True, alpha=0.3)

    return _finish(fig, output_path, show)


def plot_attachment_history(
    run: SimulationRun,
    n_show: int = 20,
    output_path: Optional[str] = None,
    show: bool = False,
) -> Figure:
    """
    Plot attachment trajectories of the first entrants.

    Requires a run made with track_history=True.
    """
    if run.attachment_history is None:
        raise ValueError("run has no attachment history; simulate with track_history=True")

    apply_style()

    fig, ax = plt.subplots(figsize=(8, 5))
    fig.patch.set_facecolor(BACKGROUND)
    history = run.attachment_history
    T = max(1, len(history))

    for i in range(min(n_show, history.shape[1])):
        # Agent i enters at step i + 1
        traj = history[i:, i]
        times = np.arange(i + 1, i + 1 + len(traj))
        alpha_val = 0.3 + 0.7 * min(1.0, run.reward_count[i] / T)
        ax.plot(times, traj, alpha=alpha_val, linewidth=1.5)

    ax.set_xlabel("Time", fontsize=11)
    ax.set_ylabel("Attachment A(t)", fontsize=11)
    ax.set_title(f"Path-Dependent Dynamics\n(α={run.params.alpha})", fontsize=12, fontweight="bold")
    ax.grid(True, alpha=0.3)

    return _finish(fig, output_path, show)


def plot_phase_map(
    points: Sequence[PhasePoint],
    resolution: int,
    highlight_index: Optional[int] = None,
    output_path: Optional[str] = None,
    show: bool = False,
) -> Figure:
    """
    Plot the phase map as a grid of regime-colored cells annotated with MI.

    Args:
        points: PhasePoints from `generate_phase_map`
        resolution: Cells per axis used to build `points`
        highlight_index: Positional index of the cell to outline
        output_path: Path to save figure
        show: Whether to display figure

    Returns:
        Matplotlib Figure object
    """
    apply_style()

    fig, ax = plt.subplots(figsize=(8, 7))
    fig.patch.set_facecolor(BACKGROUND)

    image = np.zeros((resolution, resolution, 3))
    for point in points:
        image[point.row, point.col] = to_rgb(point.color)
    ax.imshow(image, aspect="auto")

    for idx, point in enumerate(points):
        ax.text(point.col, point.row, f"{point.mi:.2f}", ha="center", va="center",
                color=BACKGROUND, fontsize=7)
        if idx == highlight_index:
            ax.add_patch(plt.Rectangle(
                (point.col - 0.5, point.row - 0.5), 1, 1,
                fill=False, edgecolor=COLORS["highlight"], linewidth=2.5,
            ))

    cols = [p for p in points if p.row == 0]
    rows = [p for p in points if p.col == 0]
    ax.set_xticks([p.col for p in cols])
    ax.set_xticklabels([f"{p.alpha:.1f}" for p in cols])
    ax.set_yticks([p.row for p in rows])
    ax.set_yticklabels([f"{p.lambda_effect:.1f}" for p in rows])
    ax.set_xlabel("α (Reinforcement)", fontsize=11)
    ax.set_ylabel("λ (Effort Weight)", fontsize=11)
    ax.set_title("Regime Map (cell text: I(V;R) bits)", fontsize=12, fontweight="bold")

    # Legend from the regimes present
    seen = {}
    for point in points:
        seen.setdefault(point.regime, point.color)
    handles = [plt.Rectangle((0, 0), 1, 1, color=c) for c in seen.values()]
    ax.legend(handles, list(seen.keys()), loc="upper left", bbox_to_anchor=(1.01, 1), fontsize=9)

    return _finish(fig, output_path, show)


def plot_tax_curves(
    income_curve: Sequence[TaxCurvePoint],
    wealth_curve: Sequence[TaxCurvePoint],
    output_path: Optional[str] = None,
    show: bool = False,
) -> Figure:
    """
    Plot revenue and concentration against tax rate for both tax kinds.

    Args:
        income_curve: Points from generate_tax_curve(..., tax_kind="income")
        wealth_curve: Points from generate_tax_curve(..., tax_kind="wealth")
        output_path: Path to save figure
        show: Whether to display figure

    Returns:
        Matplotlib Figure object
    """
    apply_style()

    fig, axes = plt.subplots(1, 2, figsize=(12, 5))
    fig.patch.set_facecolor(BACKGROUND)

    for ax, curve, title in (
        (axes[0], income_curve, "Income Tax"),
        (axes[1], wealth_curve, "Wealth Tax"),
    ):
        rates = [p.rate for p in curve]
        ax.plot(rates, [p.revenue for p in curve], marker="o", linewidth=2.5,
                color=COLORS["primary"], label="Revenue")
        ax.set_xlabel("Tax Rate [%]", fontsize=11)
        ax.set_ylabel("Cumulative Revenue", fontsize=11)
        ax.grid(True, alpha=0.3)

        twin = ax.twinx()
        twin.plot(rates, [p.gini for p in curve], marker="s", linewidth=2,
                  color=COLORS["secondary"], label="Gini")
        twin.set_ylabel("Reward Gini", fontsize=11)
        twin.set_ylim(0, 1)

        lines = ax.get_lines() + twin.get_lines()
        ax.legend(lines, [line.get_label() for line in lines], loc="upper left", fontsize=9)
        ax.set_title(title, fontsize=12, fontweight="bold")

    return _finish(fig, output_path, show)
