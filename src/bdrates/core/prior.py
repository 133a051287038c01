"""
Empirical prior on root family size.

Root sizes are assumed to follow the distribution of observed leaf sizes.
A Poisson rate is fitted to every non-zero leaf count minus one, and the
prior for root size ``n`` is the Poisson mass at ``n - 1``.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy.stats import poisson

from ..io.families import FamilyTable
from ..optimize.fminsearch import FMinSearch

FAMILYSIZEMAX = 1000


@dataclass
class PoissonFit:
    """Fitted Poisson rate for the root size prior."""

    lam: float
    score: float
    iterations: int


def collect_leaf_sizes(families: FamilyTable) -> np.ndarray:
    """
    All non-zero leaf counts minus one, across families and species.

    Zero counts are skipped since the root size is at least one.
    """
    if len(families) == 0:
        return np.zeros(0, dtype=int)
    counts = np.concatenate([family.counts for family in families])
    return counts[counts > 0] - 1


def poisson_negative_log_likelihood(params: np.ndarray, leaf_sizes: np.ndarray) -> float:
    """
    Negative Poisson log-likelihood of ``leaf_sizes`` at rate ``params[0]``.

    Points whose probability is not a number contribute probability zero.
    Works in log space so large sizes at small rates stay finite.
    """
    with np.errstate(divide='ignore', invalid='ignore'):
        logpmf = poisson.logpmf(leaf_sizes, params[0])
        logpmf = np.where(np.isnan(logpmf), -np.inf, logpmf)
        return float(-np.sum(logpmf))


def fit_poisson_lambda(
    leaf_sizes: np.ndarray,
    rng: np.random.Generator,
    tolx: float = 1e-6,
    tolf: float = 1e-6,
) -> PoissonFit:
    """Fit a Poisson rate to ``leaf_sizes`` by simplex search from a random start."""
    fm = FMinSearch(lambda p: poisson_negative_log_likelihood(p, leaf_sizes), tolx=tolx, tolf=tolf)
    result = fm.minimize(np.array([rng.uniform()]))
    return PoissonFit(lam=float(result.x[0]), score=result.fun, iterations=result.iterations)


def poisson_prior(shift: int, lam: float, size: int = FAMILYSIZEMAX) -> np.ndarray:
    """
    Shifted Poisson prior over root sizes.

    Entry ``i`` is the prior of root size ``shift + i``, i.e. the Poisson
    mass at ``shift - 1 + i``.
    """
    return poisson.pmf(shift - 1 + np.arange(size), lam)


def estimate_empirical_prior(
    families: FamilyTable,
    root_min: int,
    rng: Optional[np.random.Generator] = None,
    size: int = FAMILYSIZEMAX,
) -> tuple[np.ndarray, PoissonFit]:
    """
    Fit the root size prior to the observed leaf sizes.

    Parameters
    ----------
    families : FamilyTable
        Observed family sizes
    root_min : int
        Smallest candidate root size; entry 0 of the prior belongs to it
    rng : numpy Generator, optional
        Source for the random starting rate
    size : int
        Number of root sizes covered by the prior

    Returns
    -------
    prior : ndarray, shape (size,)
        Prior probabilities of root sizes ``root_min .. root_min + size - 1``
    fit : PoissonFit
        Fitted rate, score and iteration count
    """
    if rng is None:
        rng = np.random.default_rng()
    fit = fit_poisson_lambda(collect_leaf_sizes(families), rng)
    return poisson_prior(root_min, fit.lam, size), fit
