"""
Tests for interpolation functions.
"""

import numpy as np
import pytest

from isdacurve.curves import HazardRateCurve, ZeroCurve
from isdacurve.exceptions import CurveError
from isdacurve.interpolation import flat_forward_rt, flat_forward_rt_array
from isdacurve.interpolation import integration_points, truncate_inclusive


class TestFlatForwardRt:
    """Tests for flat forward interpolation of the integrated rate."""

    times = np.array([1.0, 2.0, 4.0])
    rt = np.array([0.02, 0.06, 0.10])

    def test_at_nodes(self):
        """Exact values at knots."""
        for t, r in zip(self.times, self.rt):
            assert flat_forward_rt(t, self.times, self.rt) == r

    def test_between_nodes(self):
        """Linear in rt between knots."""
        assert abs(flat_forward_rt(3.0, self.times, self.rt) - 0.08) < 1e-15

    def test_before_first_node(self):
        """First zero rate from time zero."""
        assert abs(flat_forward_rt(0.5, self.times, self.rt) - 0.01) < 1e-15
        assert flat_forward_rt(0.0, self.times, self.rt) == 0.0

    def test_after_last_node(self):
        """Last forward rate extrapolated."""
        assert abs(flat_forward_rt(6.0, self.times, self.rt) - 0.14) < 1e-15

    def test_array_matches_scalar(self):
        """Vectorised version agrees exactly."""
        t = np.array([0.0, 0.5, 1.0, 1.7, 2.0, 3.9, 4.0, 7.5])
        expected = [flat_forward_rt(x, self.times, self.rt) for x in t]
        assert np.array_equal(flat_forward_rt_array(t, self.times, self.rt), expected)

    def test_empty_curve(self):
        """No knots."""
        with pytest.raises(CurveError):
            flat_forward_rt(1.0, np.array([]), np.array([]))


class TestIntegrationPoints:
    """Tests for integration grid construction."""

    def test_truncate_inclusive(self):
        """Interior points kept, ends added."""
        grid = truncate_inclusive(0.5, 3.0, np.array([0.25, 1.0, 2.0, 3.0, 4.0]))
        assert np.array_equal(grid, [0.5, 1.0, 2.0, 3.0])

    def test_near_duplicates_dropped(self):
        """Points within tolerance of an end are not repeated."""
        grid = truncate_inclusive(0.0, 1.0, np.array([1e-14, 0.5, 1.0 - 1e-14]))
        assert np.array_equal(grid, [0.0, 0.5, 1.0])

    def test_union_of_curves(self):
        """Knots of every curve are merged."""
        yc = ZeroCurve([1.0, 2.0, 5.0], [0.01, 0.02, 0.03])
        cc = HazardRateCurve([1.5, 2.0, 4.0], [0.01, 0.02, 0.03])
        grid = integration_points(0.0, 4.5, yc, cc)
        assert np.array_equal(grid, [0.0, 1.0, 1.5, 2.0, 4.0, 4.5])

    def test_empty_interval(self):
        """End must be after start."""
        yc = ZeroCurve.flat(0.01)
        with pytest.raises(CurveError):
            integration_points(1.0, 1.0, yc)
