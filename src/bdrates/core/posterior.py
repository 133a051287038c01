"""
Posterior scoring of families.

Each family's root likelihood vector is weighted by the root size prior.
The best posterior over root sizes is the family's contribution to the
score, and the total score is the sum of their logarithms.
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from ..errors import ZeroLikelihoodError
from ..io.families import FamilyTable
from .likelihood import FamilySizeRange


@dataclass
class FamilyPosterior:
    """
    Posterior summary for one family.

    Attributes
    ----------
    max_likelihood : float
        Largest likelihood over candidate root sizes
    max_posterior : float
        Largest prior-weighted likelihood over candidate root sizes
    best_root_size : int
        Root size attaining ``max_posterior``
    """

    max_likelihood: float
    max_posterior: float
    best_root_size: int


def compute_posterior(
    likelihood: np.ndarray,
    prior: np.ndarray,
    size_range: FamilySizeRange,
) -> FamilyPosterior:
    """
    Combine a root likelihood vector with the prior.

    ``likelihood[i]`` and ``prior[i]`` both refer to root size
    ``size_range.root_min + i``.
    """
    n = likelihood.shape[0]
    if prior.shape[0] < n:
        raise ValueError(
            f"Prior covers {prior.shape[0]} root sizes, likelihood needs {n}"
        )
    posterior = likelihood * prior[:n]
    best = int(np.argmax(posterior))
    return FamilyPosterior(
        max_likelihood=float(likelihood.max()),
        max_posterior=float(posterior[best]),
        best_root_size=size_range.root_min + best,
    )


def _log(value: float) -> float:
    with np.errstate(divide='ignore'):
        return float(np.log(value))


def score_families(
    families: FamilyTable,
    likelihoods: Sequence[np.ndarray],
    prior: np.ndarray,
    size_range: FamilySizeRange,
) -> tuple[float, list[FamilyPosterior]]:
    """
    Total log posterior of all families.

    Duplicate families copy the canonical family's posterior.

    Returns
    -------
    score : float
        Sum over families of log(max posterior)
    posteriors : list[FamilyPosterior]
        Per-family summaries, in table order

    Raises
    ------
    ZeroLikelihoodError
        If any family has zero likelihood for every root size
    """
    posteriors: list[FamilyPosterior] = []
    score = 0.0
    for family, likelihood in zip(families, likelihoods):
        if family.is_canonical:
            post = compute_posterior(likelihood, prior, size_range)
        else:
            post = posteriors[family.ref]
        if post.max_likelihood == 0:
            raise ZeroLikelihoodError(family.id)
        posteriors.append(post)
        score += _log(post.max_posterior)
    return score, posteriors


def score_clustered_families(
    families: FamilyTable,
    cluster_likelihoods: Sequence[Sequence[np.ndarray]],
    prior: np.ndarray,
    size_range: FamilySizeRange,
    weights: np.ndarray,
) -> tuple[float, np.ndarray, list[FamilyPosterior]]:
    """
    Total log posterior under a mixture of rate clusters.

    For each family the best posterior is taken separately under every
    cluster; the family's contribution is ``log(sum_k w_k * post_k)`` and
    its membership in cluster ``k`` is ``w_k * post_k`` normalized over
    clusters.

    Parameters
    ----------
    cluster_likelihoods : sequence
        ``cluster_likelihoods[k][i]`` is family ``i``'s root likelihood
        vector under cluster ``k``
    weights : ndarray, shape (k,)
        Mixture weights

    Returns
    -------
    score : float
        Mixture log posterior
    memberships : ndarray, shape (n_families, k)
        Row-normalized soft cluster memberships
    posteriors : list[FamilyPosterior]
        Per-family summary from the cluster with the largest membership

    Raises
    ------
    ZeroLikelihoodError
        If a family has zero likelihood under every cluster
    """
    n_clusters = len(weights)
    memberships = np.zeros((len(families), n_clusters))
    posteriors: list[FamilyPosterior] = []
    score_contribution: dict[int, float] = {}
    score = 0.0
    for i, family in enumerate(families):
        if not family.is_canonical:
            memberships[i] = memberships[family.ref]
            posteriors.append(posteriors[family.ref])
            score += score_contribution[family.ref]
            continue

        per_cluster = [
            compute_posterior(cluster_likelihoods[k][i], prior, size_range)
            for k in range(n_clusters)
        ]
        if max(p.max_likelihood for p in per_cluster) == 0:
            raise ZeroLikelihoodError(family.id)

        weighted = weights * np.array([p.max_posterior for p in per_cluster])
        total = weighted.sum()
        memberships[i] = weighted / total if total > 0 else weights
        posteriors.append(per_cluster[int(np.argmax(memberships[i]))])
        contribution = _log(total)
        score_contribution[i] = contribution
        score += contribution
    return score, memberships, posteriors
