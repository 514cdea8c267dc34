"""Tests for the two-peak scale factor solve."""

import math

import pytest

from hcp_calibration.core.lattice import (
    merge_manual_override,
    ring_radius,
    solve_scale_factors,
)
from hcp_calibration.models import Peak, ScaleFactors


def peak(x, y):
    return Peak(x=x, y=y, z=1.0)


class TestRingRadius:
    """Tests for the first-ring radius."""

    def test_graphite(self):
        """Graphite (a = 0.246 nm) has its first ring near 4.69 1/nm."""
        assert ring_radius(0.246) == pytest.approx(2 / (math.sqrt(3) * 0.246))
        assert ring_radius(0.246) == pytest.approx(4.694, abs=1e-3)


class TestSolve:
    """Tests for non-degenerate solves."""

    def test_triangle(self):
        """A non-degenerate pair gives positive factors and no warnings."""
        result = solve_scale_factors(peak(3.0, 1.0), peak(1.0, 3.0), 0.246)

        assert result.xscale > 0
        assert result.yscale > 0
        assert not result.xwarning
        assert not result.ywarning

    def test_defining_equations(self):
        """Corrected peaks both lie on the first ring."""
        p1, p2 = peak(3.0, 1.0), peak(1.5, 2.5)
        result = solve_scale_factors(p1, p2, 0.3)
        r = ring_radius(0.3)

        for p in (p1, p2):
            corrected = (p.x / result.xscale) ** 2 + (p.y / result.yscale) ** 2
            assert corrected == pytest.approx(r * r, rel=1e-12)

    def test_ideal_lattice_gives_unity(self):
        """Peaks already on the ring at 0 and 60 degrees need no correction."""
        r = ring_radius(0.25)
        p1 = peak(r, 0.0)
        p2 = peak(r * math.cos(math.pi / 3), r * math.sin(math.pi / 3))
        result = solve_scale_factors(p1, p2, 0.25)

        assert result.xscale == pytest.approx(1.0)
        assert result.yscale == pytest.approx(1.0)

    def test_sign_of_coordinates_irrelevant(self):
        """Only squared coordinates enter the solve."""
        a = solve_scale_factors(peak(3.0, 1.0), peak(1.0, 3.0), 0.246)
        b = solve_scale_factors(peak(-3.0, 1.0), peak(1.0, -3.0), 0.246)

        assert a.xscale == pytest.approx(b.xscale)
        assert a.yscale == pytest.approx(b.yscale)


class TestDegeneracy:
    """Tests for the advisory warning flags."""

    def test_equal_x_sets_xwarning(self):
        """Equal |x| makes the X factor undetermined."""
        result = solve_scale_factors(peak(2.0, 1.0), peak(2.0, 3.0), 0.246)

        assert result.xwarning

    def test_equal_y_sets_ywarning(self):
        """Equal |y| makes the Y factor undetermined."""
        result = solve_scale_factors(peak(1.0, 2.0), peak(3.0, -2.0), 0.246)

        assert result.ywarning

    def test_zero_x_sets_xwarning(self):
        """A first peak on the Y axis cannot fix X."""
        result = solve_scale_factors(peak(0.0, 2.0), peak(1.0, 3.0), 0.246)

        assert result.xwarning

    def test_collinear_sets_both(self):
        """Peaks on one line through the origin make the system singular."""
        result = solve_scale_factors(peak(1.0, 2.0), peak(2.0, 4.0), 0.246)

        assert result.xwarning
        assert result.ywarning

    def test_non_finite_result_flagged_without_raising(self):
        """Division by zero yields non-finite factors and warnings, not errors."""
        result = solve_scale_factors(peak(0.0, 0.0), peak(0.0, 0.0), 0.246)

        assert result.xwarning
        assert result.ywarning
        assert not math.isfinite(result.xscale)

    def test_axis_aligned_pair(self):
        """Peaks on the two axes give finite factors without warnings."""
        result = solve_scale_factors(peak(4.0, 0.0), peak(0.5, 4.0), 0.246)

        assert math.isfinite(result.xscale)
        assert math.isfinite(result.yscale)
        assert not result.has_warning


class TestManualOverride:
    """Tests for operator-entered factors."""

    def test_positive_values_replace(self):
        """Positive entries replace the solved factors."""
        solved = ScaleFactors(0.9, 1.1, False, True)
        result = merge_manual_override(solved, xscale=1.05, yscale=0.95)

        assert (result.xscale, result.yscale) == (1.05, 0.95)
        assert result.ywarning

    def test_non_positive_ignored(self):
        """Zero, negative and missing entries keep the solved value."""
        solved = ScaleFactors(0.9, 1.1)

        assert merge_manual_override(solved, xscale=0.0).xscale == 0.9
        assert merge_manual_override(solved, yscale=-2.0).yscale == 1.1
        assert merge_manual_override(solved).xscale == 0.9

    def test_solved_not_modified(self):
        """The input factors are left untouched."""
        solved = ScaleFactors(0.9, 1.1)
        merge_manual_override(solved, xscale=2.0)

        assert solved.xscale == 0.9


class TestExtremeFactors:
    """Tests for the plausibility bound."""

    def test_normal_factors(self):
        assert not ScaleFactors(0.8, 1.3).is_extreme()

    def test_huge_factor(self):
        assert ScaleFactors(1e4, 1.0).is_extreme()

    def test_nan_factor(self):
        assert ScaleFactors(float("nan"), 1.0).is_extreme()
