"""
Command-line interface for the reinforcement explorer.

Provides four commands:
1. simulate: Run one simulation and output summary JSON, CSV and figures
2. phase-map: Build the (alpha, lambda) regime map with CSV and heatmap
3. tax-curve: Trace income and wealth tax curves with CSV and plot
4. presets: List the named parameter presets
"""

import argparse
import csv
import json
import logging
import sys
import textwrap
from pathlib import Path

from edge_of_chaos.config import (
    PHASE_MAP_T,
    PRESETS,
    SimulationParams,
    get_preset,
    validate_params,
)
from edge_of_chaos.metrics import compute_run_summary
from edge_of_chaos.plots import (
    ensure_figures_dir,
    plot_attachment_history,
    plot_phase_map,
    plot_run_dynamics,
    plot_tax_curves,
)
from edge_of_chaos.process import simulate
from edge_of_chaos.regimes import classify_regime
from edge_of_chaos.simulate import (
    generate_phase_map,
    generate_tax_curve,
    locate_phase_cell,
    summarize_tax_curve,
)

logger = logging.getLogger(__name__)


def params_from_args(args: argparse.Namespace) -> SimulationParams:
    """Start from the preset (if any) and apply explicitly given options."""
    if args.preset:
        params = get_preset(args.preset).to_params(seed=args.seed)
    else:
        params = SimulationParams(seed=args.seed)
    overrides = {
        name: getattr(args, name)
        for name in ("T", "alpha", "lambda_effect", "churn", "A0", "bins",
                     "income_tax_rate", "wealth_tax_rate")
        if getattr(args, name, None) is not None
    }
    params = params.with_overrides(**overrides)
    validate_params(params)
    return params


def cmd_simulate(args: argparse.Namespace) -> int:
    """Run simulation and output summary."""
    params = params_from_args(args)
    run = simulate(params, track_history=args.plot)
    summary = compute_run_summary(run)

    if args.csv or args.plot:
        fig_dir = ensure_figures_dir(args.output_dir)

    if args.csv:
        # Per-step series
        series_path = fig_dir / "simulation_series.csv"
        with open(series_path, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(["t", "mi_bits", "gini", "top1", "top10", "tax_revenue", "post_tax_gini"])
            for m in run.series:
                writer.writerow([m.t, m.mi_bits, m.gini, m.top1, m.top10, m.tax_revenue, m.post_tax_gini])
        print(f"Series CSV saved to: {series_path}")

        # Per-agent columns
        agents_path = fig_dir / "simulation_agents.csv"
        with open(agents_path, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(["agent_id", "effort", "attachment", "wealth", "ever_rewarded", "reward_count"])
            for i in range(len(run.effort)):
                writer.writerow([
                    i,
                    run.effort[i],
                    run.attachment[i],
                    run.wealth[i],
                    int(run.ever_rewarded[i]),
                    int(run.reward_count[i]),
                ])
        print(f"Per-agent CSV saved to: {agents_path}")

        # Effort curve
        curve_path = fig_dir / "simulation_effort_curve.csv"
        with open(curve_path, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(["bin", "lower", "upper", "n_agents", "p_rewarded"])
            for b in run.effort_curve:
                writer.writerow([b.bin, b.lower, b.upper, b.n_agents, b.p_rewarded])
        print(f"Effort curve CSV saved to: {curve_path}")

    if args.plot:
        dynamics_path = fig_dir / "dynamics.png"
        plot_run_dynamics(run, output_path=str(dynamics_path))
        print(f"Dynamics plot saved to: {dynamics_path}")
        history_path = fig_dir / "attachment_history.png"
        plot_attachment_history(run, output_path=str(history_path))
        print(f"Attachment plot saved to: {history_path}")

    # Output JSON to file or stdout
    if args.output:
        ensure_figures_dir(str(Path(args.output).parent) or ".")
        with open(args.output, "w") as f:
            json.dump(summary, f, indent=2)
        print(f"Summary JSON written to {args.output}")
    elif not (args.csv or args.plot):
        print(json.dumps(summary, indent=2))

    return 0


def cmd_phase_map(args: argparse.Namespace) -> int:
    """Generate the regime phase map."""
    alpha_range = (args.alpha_min, args.alpha_max)
    lambda_range = (args.lambda_min, args.lambda_max)
    # Every cell midpoint lies between the range ends
    for alpha, lam in ((args.alpha_min, args.lambda_min), (args.alpha_max, args.lambda_max)):
        validate_params(SimulationParams(T=args.T, alpha=alpha, lambda_effect=lam,
                                         churn=args.churn, seed=args.seed))
    print("Running phase map...")
    print(f"  alpha in {alpha_range}, lambda in {lambda_range}, churn={args.churn}")
    print(f"  {args.resolution}x{args.resolution} cells, T={args.T}")

    points = generate_phase_map(
        alpha_range=alpha_range,
        lambda_range=lambda_range,
        churn=args.churn,
        resolution=args.resolution,
        T=args.T,
        seed=args.seed,
        max_workers=args.workers,
    )

    fig_dir = ensure_figures_dir(args.output_dir)
    csv_path = fig_dir / "phase_map.csv"
    with open(csv_path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["row", "col", "alpha", "lambda", "regime", "color", "mi_bits", "gini"])
        for p in points:
            writer.writerow([p.row, p.col, p.alpha, p.lambda_effect, p.regime, p.color, p.mi, p.gini])
    print(f"  CSV saved: {csv_path}")

    highlight = None
    if args.highlight_alpha is not None and args.highlight_lambda is not None:
        highlight = locate_phase_cell(
            args.highlight_alpha, args.highlight_lambda,
            alpha_range, lambda_range, args.resolution,
        )
        cell = points[highlight]
        print(f"  Current cell: alpha={cell.alpha:.2f}, lambda={cell.lambda_effect:.2f} -> {cell.regime}")

    if not args.no_plot:
        map_path = fig_dir / "phase_map.png"
        plot_phase_map(points, args.resolution, highlight_index=highlight, output_path=str(map_path))
        print(f"  Saved: {map_path}")

    counts: dict[str, int] = {}
    for p in points:
        counts[p.regime] = counts.get(p.regime, 0) + 1
    print("\n=== Regime Counts ===")
    for name, count in counts.items():
        print(f"  {name:<13} {count:4d}")

    return 0


def _print_tax_summary(label: str, points) -> None:
    summary = summarize_tax_curve(points)
    if summary is None:
        return
    print(f"\n{label}:")
    print(f"  Peak revenue {summary.peak_revenue:.2f} at {summary.peak_revenue_rate:.0f}%")
    print(f"  Min Gini {summary.min_gini:.3f} at {summary.min_gini_rate:.0f}% (untaxed {summary.base_gini:.3f})")


def cmd_tax_curve(args: argparse.Namespace) -> int:
    """Generate income and wealth tax curves."""
    kinds = ["income", "wealth"] if args.kind == "both" else [args.kind]
    validate_params(SimulationParams(
        T=args.T, alpha=args.alpha, lambda_effect=args.lambda_effect, churn=args.churn,
        seed=args.seed, income_tax_rate=args.max_rate, wealth_tax_rate=args.max_rate,
    ))
    print("Running tax curves...")
    print(f"  alpha={args.alpha}, lambda={args.lambda_effect}, churn={args.churn}, T={args.T}")

    curves = {}
    for kind in kinds:
        curves[kind] = generate_tax_curve(
            alpha=args.alpha,
            lambda_effect=args.lambda_effect,
            churn=args.churn,
            T=args.T,
            tax_kind=kind,
            max_rate=args.max_rate,
            steps=args.steps,
            seed=args.seed,
            max_workers=args.workers,
        )

    fig_dir = ensure_figures_dir(args.output_dir)
    csv_path = fig_dir / "tax_curves.csv"
    with open(csv_path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["kind", "rate_pct", "revenue", "gini"])
        for kind, points in curves.items():
            for p in points:
                writer.writerow([kind, p.rate, p.revenue, p.gini])
    print(f"  CSV saved: {csv_path}")

    if not args.no_plot and len(curves) == 2:
        plot_path = fig_dir / "tax_curves.png"
        plot_tax_curves(curves["income"], curves["wealth"], output_path=str(plot_path))
        print(f"  Saved: {plot_path}")

    print("\n=== Tax Curve Summary ===")
    for kind, points in curves.items():
        _print_tax_summary(f"{kind.capitalize()} tax", points)

    return 0


def cmd_presets(args: argparse.Namespace) -> int:
    """List presets with their regime."""
    for p in PRESETS:
        regime = classify_regime(p.alpha, p.lambda_effect, p.churn)
        print(f"{p.key:<11} {p.name:<20} α={p.alpha:<5} λ={p.lambda_effect:<5} "
              f"churn={p.churn:<6} [{regime.name}]")
        print(f"{'':<11} {p.description}")
        if args.details and p.interpretation:
            for line in textwrap.wrap(p.interpretation, width=68):
                print(f"{'':<11} {line}")
            print()
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        prog="edge-of-chaos",
        description="Edge of chaos: when does verifiable effort stay informative under reinforcement?",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # === simulate command ===
    sim_parser = subparsers.add_parser("simulate", help="Run single simulation and output summary")
    sim_parser.add_argument("--preset", choices=[p.key for p in PRESETS], default=None,
                            help="Start from a named preset")
    sim_parser.add_argument("--T", type=int, default=None, help="Time steps (default: 400, preset: 200)")
    sim_parser.add_argument("--alpha", type=float, default=None, help="Reinforcement exponent (default: 1.0)")
    sim_parser.add_argument("--lambda-effect", type=float, default=None, help="Effort weight (default: 0.0)")
    sim_parser.add_argument("--churn", type=float, default=None, help="Per-step attachment decay (default: 0.0)")
    sim_parser.add_argument("--A0", type=float, default=None, help="Initial attachment (default: 1.0)")
    sim_parser.add_argument("--bins", type=int, default=None, help="Effort bins (default: 10)")
    sim_parser.add_argument("--income-tax-rate", type=float, default=None, help="Income tax rate (default: 0.0)")
    sim_parser.add_argument("--wealth-tax-rate", type=float, default=None, help="Wealth tax rate (default: 0.0)")
    sim_parser.add_argument("--seed", type=int, default=7, help="Random seed (default: 7)")
    sim_parser.add_argument("--output", "-o", type=str, default=None, help="Output JSON file")
    sim_parser.add_argument("--csv", action="store_true", help="Save detailed CSV files to output-dir")
    sim_parser.add_argument("--plot", action="store_true", help="Save figures to output-dir")
    sim_parser.add_argument("--output-dir", type=str, default="figures", help="Output directory (default: figures)")
    sim_parser.set_defaults(func=cmd_simulate)

    # === phase-map command ===
    pm_parser = subparsers.add_parser("phase-map", help="Generate the (alpha, lambda) regime map")
    pm_parser.add_argument("--alpha-min", type=float, default=0.0, help="Lowest alpha (default: 0.0)")
    pm_parser.add_argument("--alpha-max", type=float, default=2.0, help="Highest alpha (default: 2.0)")
    pm_parser.add_argument("--lambda-min", type=float, default=0.0, help="Lowest lambda (default: 0.0)")
    pm_parser.add_argument("--lambda-max", type=float, default=2.0, help="Highest lambda (default: 2.0)")
    pm_parser.add_argument("--churn", type=float, default=0.0, help="Churn held fixed (default: 0.0)")
    pm_parser.add_argument("--resolution", type=int, default=10, help="Cells per axis (default: 10)")
    pm_parser.add_argument("--T", type=int, default=PHASE_MAP_T, help=f"Steps per cell (default: {PHASE_MAP_T})")
    pm_parser.add_argument("--seed", type=int, default=42, help="Seed for every cell (default: 42)")
    pm_parser.add_argument("--highlight-alpha", type=float, default=None, help="Alpha of the cell to highlight")
    pm_parser.add_argument("--highlight-lambda", type=float, default=None, help="Lambda of the cell to highlight")
    pm_parser.add_argument("--workers", type=int, default=None, help="Worker processes (default: serial)")
    pm_parser.add_argument("--no-plot", action="store_true", help="Skip the heatmap")
    pm_parser.add_argument("--output-dir", type=str, default="figures", help="Output directory (default: figures)")
    pm_parser.set_defaults(func=cmd_phase_map)

    # === tax-curve command ===
    tax_parser = subparsers.add_parser("tax-curve", help="Generate tax revenue and concentration curves")
    tax_parser.add_argument("--alpha", type=float, default=1.0, help="Reinforcement exponent (default: 1.0)")
    tax_parser.add_argument("--lambda-effect", type=float, default=0.0, help="Effort weight (default: 0.0)")
    tax_parser.add_argument("--churn", type=float, default=0.0, help="Churn (default: 0.0)")
    tax_parser.add_argument("--T", type=int, default=200, help="Time steps, capped at 300 (default: 200)")
    tax_parser.add_argument("--kind", choices=["income", "wealth", "both"], default="both",
                            help="Tax kind (default: both)")
    tax_parser.add_argument("--max-rate", type=float, default=1.0, help="Highest rate as a fraction (default: 1.0)")
    tax_parser.add_argument("--steps", type=int, default=15, help="Rate intervals (default: 15)")
    tax_parser.add_argument("--seed", type=int, default=42, help="Seed for every point (default: 42)")
    tax_parser.add_argument("--workers", type=int, default=None, help="Worker processes (default: serial)")
    tax_parser.add_argument("--no-plot", action="store_true", help="Skip the plot")
    tax_parser.add_argument("--output-dir", type=str, default="figures", help="Output directory (default: figures)")
    tax_parser.set_defaults(func=cmd_tax_curve)

    # === presets command ===
    presets_parser = subparsers.add_parser("presets", help="List named parameter presets")
    presets_parser.add_argument("--details", action="store_true", help="Also print each preset's interpretation")
    presets_parser.set_defaults(func=cmd_presets)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if args.command is None:
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except ValueError as exc:
        logger.debug("Invalid arguments", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
