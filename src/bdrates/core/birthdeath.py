"""
Birth-death transition probabilities and the per-candidate transition cache.

Computing transition matrices is the dominant cost of a likelihood pass, so
one cache is built for each candidate parameter vector and shared read-only
by every family evaluated under that vector.
"""

from typing import Optional, Sequence

import numpy as np
from scipy.special import gammaln, xlogy

from ..io.trees import Tree, TreeNode
from ..models.parameters import ModelParameters
from ..models.partition import RatePartition


def _log_choose(n: np.ndarray, k: np.ndarray) -> np.ndarray:
    return gammaln(n + 1) - gammaln(k + 1) - gammaln(n - k + 1)


def birthdeath_coefficients(lam: float, mu: Optional[float], t: float) -> tuple[float, float, float]:
    """
    Coefficients (alpha, beta, 1 - alpha - beta) of the birth-death process.

    Parameters
    ----------
    lam : float
        Birth rate
    mu : float or None
        Death rate; None means equal to ``lam``
    t : float
        Branch length

    Notes
    -----
    With equal rates, ``alpha = beta = lam*t / (1 + lam*t)``. Otherwise::

        alpha = mu  (e^{(lam-mu)t} - 1) / (lam e^{(lam-mu)t} - mu)
        beta  = lam (e^{(lam-mu)t} - 1) / (lam e^{(lam-mu)t} - mu)

    The last coefficient goes negative once ``lam * t > 1`` for equal
    rates, which is why rates are bounded by the longest branch.
    """
    if mu is None or mu == lam:
        a = lam * t / (1.0 + lam * t)
        return a, a, 1.0 - 2.0 * a
    e = np.exp((lam - mu) * t)
    denom = lam * e - mu
    alpha = mu * (e - 1.0) / denom
    beta = lam * (e - 1.0) / denom
    return alpha, beta, 1.0 - alpha - beta


def birthdeath_matrix(lam: float, mu: Optional[float], t: float, n_states: int) -> np.ndarray:
    """
    Transition probabilities between family sizes over one branch.

    Parameters
    ----------
    lam : float
        Birth rate (lambda)
    mu : float or None
        Death rate; None ties it to ``lam``
    t : float
        Branch length
    n_states : int
        Number of tracked family sizes (0 .. n_states - 1)

    Returns
    -------
    P : ndarray, shape (n_states, n_states)
        ``P[s, c]`` is the probability that a family of size ``s`` at the
        parent has size ``c`` at the child

    Notes
    -----
    For ``s > 0``::

        P[s, c] = sum_j C(s, j) C(s+c-j-1, s-1) alpha^(s-j) beta^(c-j) (1-alpha-beta)^j

    summed over ``j = 0 .. min(s, c)``. Size 0 is absorbing. Values are
    clipped to [0, 1].

    Examples
    --------
    >>> P = birthdeath_matrix(0.0, None, 1.0, 5)
    >>> np.allclose(P, np.eye(5))
    True
    """
    alpha, beta, coeff = birthdeath_coefficients(lam, mu, t)

    s = np.arange(1, n_states, dtype=float)[:, np.newaxis]
    c = np.arange(n_states, dtype=float)[np.newaxis, :]
    sign = np.sign(coeff)
    log_abs_coeff = np.log(abs(coeff)) if coeff != 0 else -np.inf

    P = np.zeros((n_states, n_states))
    body = np.zeros((n_states - 1, n_states))
    with np.errstate(over='ignore', invalid='ignore', divide='ignore'):
        for j in range(n_states):
            valid = (s >= j) & (c >= j)
            if not valid.any():
                break
            log_term = (
                _log_choose(s, np.minimum(j, s))
                + _log_choose(s + c - j - 1, s - 1)
                + xlogy(s - j, alpha)
                + xlogy(c - j, beta)
                + (j * log_abs_coeff if j > 0 else 0.0)
            )
            term = np.exp(log_term) * (sign ** j if j > 0 else 1.0)
            body += np.where(valid, term, 0.0)

    P[0, 0] = 1.0
    P[1:, :] = body
    return np.clip(np.nan_to_num(P, nan=0.0, posinf=1.0, neginf=0.0), 0.0, 1.0)


class TransitionCache:
    """
    Read-only transition matrices for one parameter vector.

    Matrices are keyed by ``(branch_length, lambda, mu)`` so branches that
    share a length and rate share one matrix. Each (cluster, branch) pair
    resolves to one of those keys. The cache must be released before the
    next candidate vector is evaluated; a released cache refuses reads.

    Use :func:`build_transition_cache` to construct one.
    """

    def __init__(self, matrices: dict, branch_keys: dict, n_states: int):
        self._matrices = matrices
        self._branch_keys = branch_keys
        self.n_states = n_states
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    @property
    def n_matrices(self) -> int:
        """Number of distinct matrices held."""
        return len(self._matrices)

    def matrix(self, node: TreeNode, cluster: int = 0) -> np.ndarray:
        """Transition matrix for the branch above ``node`` under ``cluster``."""
        if self._released:
            raise RuntimeError("Transition cache has been released")
        return self._matrices[self._branch_keys[(cluster, node.id)]]

    def release(self) -> None:
        """Drop all matrices. The cache cannot be read afterwards."""
        self._matrices = {}
        self._branch_keys = {}
        self._released = True

    def __enter__(self) -> "TransitionCache":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


def build_transition_cache(
    tree: Tree,
    partition: RatePartition,
    params: ModelParameters,
    n_states: int,
    clusters: Optional[Sequence[int]] = None,
) -> TransitionCache:
    """
    Compute every transition matrix needed for one parameter vector.

    Parameters
    ----------
    tree : Tree
        Species tree
    partition : RatePartition
        Branch to rate-class assignment
    params : ModelParameters
        Rates for every cluster
    n_states : int
        Number of tracked family sizes
    clusters : sequence of int, optional
        Clusters to build (default: all)

    Returns
    -------
    TransitionCache
        Frozen cache; matrices are not writeable
    """
    if clusters is None:
        clusters = range(params.n_clusters)

    matrices = {}
    branch_keys = {}
    for k in clusters:
        for node in tree.branch_nodes():
            c = partition.class_of(node) - 1
            lam = float(params.lambdas[k, c])
            mu = None if params.mus is None else float(params.mus[k, c])
            key = (node.branch_length, lam, mu)
            if key not in matrices:
                P = birthdeath_matrix(lam, mu, node.branch_length, n_states)
                P.flags.writeable = False
                matrices[key] = P
            branch_keys[(k, node.id)] = key
    return TransitionCache(matrices, branch_keys, n_states)
