"""
Unit tests for recalibration.py: null distribution, r-values, duplicate resolution.
"""

import numpy as np
import pytest

from recap.exceptions import DataError
from recap.recalibration import (
    build_null_distribution,
    compute_rvalues,
    resolve_duplicates,
)


# ---------------------------------------------------------------------------
# build_null_distribution
# ---------------------------------------------------------------------------

class TestBuildNullDistribution:

    def test_pools_and_sorts(self):
        null = build_null_distribution([np.array([0.4, 0.1]), np.array([0.3, 0.2, 0.5])])
        np.testing.assert_array_equal(null, [0.1, 0.2, 0.3, 0.4, 0.5])

    def test_read_only(self):
        null = build_null_distribution([np.array([0.2, 0.1])])
        with pytest.raises(ValueError):
            null[0] = 0.9

    def test_does_not_modify_input(self):
        bg = np.array([0.3, 0.1, 0.2])
        build_null_distribution([bg])
        np.testing.assert_array_equal(bg, [0.3, 0.1, 0.2])

    def test_empty_raises(self):
        with pytest.raises(DataError):
            build_null_distribution([np.array([]), np.array([])])

    def test_no_replicates_raises(self):
        with pytest.raises(DataError):
            build_null_distribution([])


# ---------------------------------------------------------------------------
# compute_rvalues
# ---------------------------------------------------------------------------

class TestComputeRvalues:

    def test_worked_example(self):
        """
        Null [0.1 .. 0.5], p = [0.05, 0.25, 0.45, 0.6]
        → 0/5, 2/5, 4/5, 5/5.
        """
        null = build_null_distribution([np.array([0.3, 0.5, 0.1, 0.4, 0.2])])
        r = compute_rvalues(np.array([0.05, 0.25, 0.45, 0.6]), null)
        np.testing.assert_allclose(r, [0.0, 0.4, 0.8, 1.0])

    def test_ties_count_inclusively(self):
        """All null values equal to p are counted."""
        null = build_null_distribution([np.array([0.1, 0.2, 0.2, 0.2, 0.3])])
        r = compute_rvalues(np.array([0.2]), null)
        assert r[0] == pytest.approx(0.8)

    def test_exact_match_with_smallest(self):
        null = build_null_distribution([np.array([0.1, 0.2])])
        assert compute_rvalues(np.array([0.1]), null)[0] == pytest.approx(0.5)

    def test_bounds(self):
        rng = np.random.default_rng(0)
        null = build_null_distribution([rng.uniform(size=500)])
        r = compute_rvalues(rng.uniform(-0.1, 1.1, size=1000), null)
        assert np.all(r >= 0)
        assert np.all(r <= 1)

    def test_monotone_in_p(self):
        rng = np.random.default_rng(1)
        null = build_null_distribution([rng.uniform(size=200), rng.uniform(size=200)])
        p = np.sort(rng.uniform(size=300))
        r = compute_rvalues(p, null)
        assert np.all(np.diff(r) >= 0)

    def test_preserves_shape_and_order(self):
        null = build_null_distribution([np.array([0.1, 0.2, 0.3, 0.4])])
        r = compute_rvalues(np.array([0.35, 0.05, 0.15]), null)
        np.testing.assert_allclose(r, [0.75, 0.0, 0.25])


# ---------------------------------------------------------------------------
# resolve_duplicates
# ---------------------------------------------------------------------------

class TestResolveDuplicates:

    def test_interpolates_between_knots(self):
        """
        Knots (p, r): (0.1, 0.25), (0.3, 0.5), (0.4, 0.75).
        Duplicate at p = 0.2 → halfway between the first two knots = 0.375.
        """
        p = np.array([0.1, 0.2, 0.3, 0.4])
        r = np.array([0.25, 0.25, 0.5, 0.75])
        out = resolve_duplicates(p, r)
        np.testing.assert_allclose(out, [0.25, 0.375, 0.5, 0.75])

    def test_extrapolates_beyond_last_knot(self):
        """Knots (0.1, 0.2), (0.2, 0.4): slope 2, so p = 0.3 → 0.6."""
        p = np.array([0.1, 0.2, 0.3])
        r = np.array([0.2, 0.4, 0.4])
        out = resolve_duplicates(p, r)
        assert out[2] == pytest.approx(0.6)

    def test_extrapolation_clipped_to_one(self):
        p = np.array([0.1, 0.2, 0.9])
        r = np.array([0.5, 0.9, 0.9])
        out = resolve_duplicates(p, r)
        assert out[2] == pytest.approx(1.0)

    def test_restores_original_order(self):
        """Same data as test_interpolates_between_knots, shuffled."""
        p = np.array([0.3, 0.2, 0.4, 0.1])
        r = np.array([0.5, 0.25, 0.75, 0.25])
        out = resolve_duplicates(p, r)
        np.testing.assert_allclose(out, [0.5, 0.375, 0.75, 0.25])

    def test_no_duplicates_unchanged(self):
        p = np.array([0.1, 0.2, 0.3])
        r = np.array([0.2, 0.5, 0.9])
        np.testing.assert_array_equal(resolve_duplicates(p, r), r)

    def test_single_knot_unchanged(self):
        p = np.array([0.1, 0.2, 0.3])
        r = np.array([0.5, 0.5, 0.5])
        np.testing.assert_array_equal(resolve_duplicates(p, r), r)

    def test_identical_p_values_keep_knot_value(self):
        p = np.array([0.1, 0.1, 0.3])
        r = np.array([0.2, 0.2, 0.6])
        np.testing.assert_allclose(resolve_duplicates(p, r), [0.2, 0.2, 0.6])

    def test_does_not_modify_input(self):
        p = np.array([0.1, 0.2, 0.3, 0.4])
        r = np.array([0.25, 0.25, 0.5, 0.75])
        resolve_duplicates(p, r)
        np.testing.assert_array_equal(r, [0.25, 0.25, 0.5, 0.75])

    def test_result_monotone_in_p(self):
        rng = np.random.default_rng(3)
        null = build_null_distribution([rng.uniform(size=20), rng.uniform(size=20)])
        p = rng.uniform(size=500)
        out = resolve_duplicates(p, compute_rvalues(p, null))
        order = np.argsort(p)
        assert np.all(np.diff(out[order]) >= -1e-12)
        assert np.all((out >= 0) & (out <= 1))
