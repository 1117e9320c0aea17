"""
Parameter records and named presets for the reinforcement model.

SimulationParams is the only input to a simulation run. It is frozen:
callers derive variants with `with_overrides` instead of mutating a shared
record. Sweep constants below fix the reference sweep policy (seed, horizon,
histogram resolution) so every inner run differs only in the swept parameter.
"""

from dataclasses import dataclass, replace


# Reference sweep policy
SWEEP_SEED = 42
SWEEP_BINS = 10
PHASE_MAP_T = 100
TAX_CURVE_MAX_T = 300

# Terminal distribution and step metrics
TOP_N_BARS = 20
TOP_FRACTION = 0.1

# Floor on attachment before raising to alpha; keeps every weight positive
WEIGHT_FLOOR = 1e-9


@dataclass(frozen=True)
class SimulationParams:
    """
    Parameters of a single simulation run.

    Attributes:
        T: Number of time steps (one entrant and one reward per step)
        alpha: Reinforcement exponent on attachment (>= 0)
        lambda_effect: Effort weight in the exponential modulation (>= 0)
        churn: Per-step decay fraction of attachment, in [0, 1)
        A0: Initial attachment of every entrant (> 0)
        bins: Number of equal-width effort bins over [0, 1)
        seed: PRNG seed (reduced to 32 bits)
        income_tax_rate: Fraction of each reward collected as tax, in [0, 1]
        wealth_tax_rate: Per-step fraction of stocks collected as tax, in [0, 1]

    The engine does not validate these; see `validate_params`.
    """
    T: int = 400
    alpha: float = 1.0
    lambda_effect: float = 0.0
    churn: float = 0.0
    A0: float = 1.0
    bins: int = 10
    seed: int = 7
    income_tax_rate: float = 0.0
    wealth_tax_rate: float = 0.0

    def with_overrides(self, **changes) -> "SimulationParams":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def as_dict(self) -> dict:
        return {
            "T": self.T,
            "alpha": self.alpha,
            "lambda_effect": self.lambda_effect,
            "churn": self.churn,
            "A0": self.A0,
            "bins": self.bins,
            "seed": self.seed,
            "income_tax_rate": self.income_tax_rate,
            "wealth_tax_rate": self.wealth_tax_rate,
        }


def validate_params(params: SimulationParams) -> None:
    """
    Check a parameter record against the documented domains.

    Out-of-domain values are a caller error; the engine runs them without
    repair and the results are undefined. Callers that accept user input
    (the CLI) run this check first.

    Raises:
        ValueError: describing the first violated constraint
    """
    if params.T < 0:
        raise ValueError(f"T must be >= 0, got {params.T}")
    if params.alpha < 0:
        raise ValueError(f"alpha must be >= 0, got {params.alpha}")
    if params.lambda_effect < 0:
        raise ValueError(f"lambda_effect must be >= 0, got {params.lambda_effect}")
    if not 0 <= params.churn < 1:
        raise ValueError(f"churn must be in [0, 1), got {params.churn}")
    if params.A0 <= 0:
        raise ValueError(f"A0 must be > 0, got {params.A0}")
    if params.bins < 1:
        raise ValueError(f"bins must be >= 1, got {params.bins}")
    for name in ("income_tax_rate", "wealth_tax_rate"):
        rate = getattr(params, name)
        if not 0 <= rate <= 1:
            raise ValueError(f"{name} must be in [0, 1], got {rate}")


@dataclass(frozen=True)
class Preset:
    """A named (alpha, lambda, churn, T) combination. Labels are narrative, not historical claims."""
    key: str
    name: str
    description: str
    alpha: float
    lambda_effect: float
    churn: float
    T: int = 200
    interpretation: str = ""

    def to_params(self, seed: int = 7, **overrides) -> SimulationParams:
        params = SimulationParams(
            T=self.T,
            alpha=self.alpha,
            lambda_effect=self.lambda_effect,
            churn=self.churn,
            seed=seed,
        )
        return params.with_overrides(**overrides) if overrides else params


PRESETS: tuple[Preset, ...] = (
    Preset(
        key="agrarian",
        name="18th c. agrarian",
        description="Weak reinforcement, effort visible, moderate mixing",
        alpha=0.35,
        lambda_effect=1.2,
        churn=0.012,
        interpretation=(
            "Local production with limited scale. Output tracks labor and "
            "advantages fade under moderate churn. Weak reinforcement keeps "
            "early luck from dominating, and a high effort weight keeps effort "
            "transcripts informative."
        ),
    ),
    Preset(
        key="industrial",
        name="Industrial",
        description="Some scale effects, effort matters, low mixing",
        alpha=0.8,
        lambda_effect=0.8,
        churn=0.004,
        interpretation=(
            "Mechanization brings scale effects. Early success helps but effort "
            "and skill still matter. Reinforcement stays below 1 and low churn "
            "lets advantage accumulate while effort remains partly identifiable."
        ),
    ),
    Preset(
        key="platform",
        name="High-tech platform",
        description="Preferential attachment, weak mixing, transcripts fade",
        alpha=1.25,
        lambda_effect=0.25,
        churn=0.002,
        interpretation=(
            "Platforms amplify visibility and network position. Preferential "
            "attachment dominates, so early winners gain outsized reach. Effort "
            "matters locally but its signal decays quickly, and similar effort "
            "meets very different outcomes."
        ),
    ),
    Preset(
        key="winner",
        name="Winner-take-most",
        description="Strong increasing returns, near lock-in",
        alpha=1.6,
        lambda_effect=0.15,
        churn=0.0,
        interpretation=(
            "Extreme scale economies with almost no turnover. Once dominance "
            "emerges it is rarely overturned. Verified work mostly certifies "
            "participation rather than value created."
        ),
    ),
    Preset(
        key="agentic",
        name="Far-future agentic",
        description="Extreme reinforcement, pooling, low human identifiability",
        alpha=1.85,
        lambda_effect=0.05,
        churn=0.0,
        interpretation=(
            "Automated agents and capital pools act at massive scale with "
            "negligible mixing. Individual effort becomes statistically "
            "irrelevant to outcomes and attribution all but collapses."
        ),
    ),
    Preset(
        key="edge",
        name="Edge regime",
        description="Mixed: reinforcement + mixing keeps signals alive",
        alpha=1.05,
        lambda_effect=0.6,
        churn=0.01,
        interpretation=(
            "Near the edge of chaos. Reinforcement is balanced by churn and a "
            "real effort channel, so outcomes are neither random nor locked in. "
            "Effort is most informative here."
        ),
    ),
)


def get_preset(key: str) -> Preset:
    """Look up a preset by key."""
    for preset in PRESETS:
        if preset.key == key:
            return preset
    known = ", ".join(p.key for p in PRESETS)
    raise KeyError(f"Unknown preset {key!r} (known: {known})")
