"""
Unit tests for the Nelder-Mead wrapper.
"""

import numpy as np
import pytest

from bdrates.optimize.fminsearch import FMinSearch


def test_quadratic_minimum():
    fm = FMinSearch(lambda x: float(np.sum((x - np.array([1.0, -2.0])) ** 2)), tolx=1e-8, tolf=1e-10)
    result = fm.minimize(np.array([0.0, 0.0]))

    np.testing.assert_allclose(result.x, [1.0, -2.0], atol=1e-4)
    assert result.fun < 1e-8
    assert result.iterations > 0
    assert result.evaluations >= result.iterations
    assert fm.iters == result.iterations


def test_rejected_region():
    """Test infinite values steer the search back to the boundary."""
    def objective(x):
        if x[0] < 0:
            return np.inf
        return float(x[0])

    result = FMinSearch(objective).minimize(np.array([0.5]))

    assert 0.0 <= result.x[0] < 1e-3


def test_start_not_modified():
    x0 = np.array([3.0])
    FMinSearch(lambda x: float(x[0] ** 2)).minimize(x0)
    assert x0[0] == 3.0


def test_objective_swap_resets_state():
    """Test one instance can be reused with a new objective."""
    fm = FMinSearch(lambda x: float((x[0] - 1.0) ** 2), tolx=1e-8, tolf=1e-10)
    first = fm.minimize(np.array([0.0]))

    fm.objective = lambda x: float((x[0] - 5.0) ** 2)
    second = fm.minimize(np.array([0.0]))

    assert first.x[0] == pytest.approx(1.0, abs=1e-4)
    assert second.x[0] == pytest.approx(5.0, abs=1e-4)
    assert fm.result is second


def test_iteration_budget():
    fm = FMinSearch(lambda x: float(np.sum(x ** 2)), tolx=1e-12, tolf=1e-12, maxiter=5)
    result = fm.minimize(np.array([3.0, 4.0]))

    assert result.iterations <= 5
    assert not result.converged
