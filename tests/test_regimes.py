"""
Tests for edge_of_chaos.regimes and the presets in edge_of_chaos.config.
"""

import pytest

from edge_of_chaos.config import (
    PRESETS,
    SimulationParams,
    get_preset,
    validate_params,
)
from edge_of_chaos.regimes import (
    CHAOTIC,
    COMPLEX,
    ORDERED,
    PERIODIC,
    REGIMES,
    TRANSITIONAL,
    classify_regime,
)


class TestClassifyRegime:
    """Tests for the priority-ordered regime classifier."""

    def test_ordered(self):
        assert classify_regime(0.3, 1.0, 0.01) == ORDERED

    def test_periodic(self):
        assert classify_regime(0.7, 0.9, 0.0) == PERIODIC

    def test_complex(self):
        assert classify_regime(1.05, 0.6, 0.01) == COMPLEX

    def test_chaotic(self):
        assert classify_regime(1.5, 0.2, 0.0) == CHAOTIC

    def test_transitional_fallback(self):
        """Anything outside the named regions is Transitional."""
        assert classify_regime(1.5, 1.5, 0.05) == TRANSITIONAL
        assert classify_regime(0.3, 1.0, 0.0) == TRANSITIONAL

    def test_priority_periodic_before_complex(self):
        """alpha in [0.9, 1.0) can match both; Periodic is tested first."""
        assert classify_regime(0.95, 0.7, 0.007) == PERIODIC

    def test_boundaries(self):
        """Boundary values follow the strict and inclusive comparisons."""
        # Ordered needs alpha < 0.5 strictly
        assert classify_regime(0.5, 1.0, 0.01) != ORDERED
        # Complex bounds are inclusive
        assert classify_regime(1.2, 0.8, 0.015) == COMPLEX
        assert classify_regime(0.9, 0.4, 0.005) == COMPLEX
        # Chaotic needs alpha > 1.2 strictly
        assert classify_regime(1.2, 0.1, 0.0) == TRANSITIONAL

    def test_colors(self):
        """Each regime carries its display color."""
        colors = {r.name: r.color for r in REGIMES}
        assert colors == {
            "Ordered": "#3b82f6",
            "Periodic": "#10b981",
            "Complex": "#f59e0b",
            "Chaotic": "#ef4444",
            "Transitional": "#8b5cf6",
        }

    def test_returns_name_and_color(self):
        name, color = classify_regime(1.5, 0.2, 0.0)
        assert name == "Chaotic"
        assert color == "#ef4444"


class TestPresets:
    """Tests for the named presets."""

    def test_keys_unique(self):
        keys = [p.key for p in PRESETS]
        assert len(keys) == len(set(keys)) == 6

    @pytest.mark.parametrize("key,expected", [
        ("agrarian", ORDERED),
        ("industrial", PERIODIC),
        ("platform", CHAOTIC),
        ("winner", CHAOTIC),
        ("agentic", CHAOTIC),
        ("edge", COMPLEX),
    ])
    def test_preset_regimes(self, key, expected):
        """Presets land in the regime their description suggests."""
        preset = get_preset(key)
        assert classify_regime(preset.alpha, preset.lambda_effect, preset.churn) == expected

    def test_to_params(self):
        params = get_preset("edge").to_params(seed=3, T=50)
        assert params == SimulationParams(T=50, alpha=1.05, lambda_effect=0.6,
                                          churn=0.01, seed=3)

    def test_presets_are_valid(self):
        for preset in PRESETS:
            validate_params(preset.to_params())

    def test_interpretations(self):
        """Every preset carries a longer interpretation than its description."""
        for preset in PRESETS:
            assert len(preset.interpretation) > len(preset.description)

    def test_unknown_preset(self):
        with pytest.raises(KeyError):
            get_preset("utopia")


class TestValidateParams:
    """Tests for parameter domain checks."""

    def test_defaults_valid(self):
        validate_params(SimulationParams())

    @pytest.mark.parametrize("changes", [
        {"T": -1},
        {"alpha": -0.1},
        {"lambda_effect": -1.0},
        {"churn": 1.0},
        {"churn": -0.01},
        {"A0": 0.0},
        {"bins": 0},
        {"income_tax_rate": 1.5},
        {"wealth_tax_rate": -0.2},
    ])
    def test_out_of_domain(self, changes):
        with pytest.raises(ValueError):
            validate_params(SimulationParams().with_overrides(**changes))

    def test_edges_valid(self):
        """Closed ends of the domains are accepted."""
        validate_params(SimulationParams(T=0, alpha=0.0, churn=0.0,
                                         income_tax_rate=1.0, wealth_tax_rate=1.0))
