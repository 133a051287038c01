"""
Objective functions minimized by the lambda searches.

Every objective takes a flat parameter vector and returns the negative log
posterior (or log likelihood) so the simplex minimizer can work on it.
Invalid vectors are rejected with ``inf`` before any transition matrix is
built. A family with zero likelihood also yields ``inf``, after a warning.
"""

import warnings
from typing import Callable, Optional

import numpy as np

from ..context import LambdaContext
from ..core.birthdeath import build_transition_cache
from ..core.likelihood import FamilySizeRange, compute_family_likelihoods, compute_tree_likelihood
from ..core.posterior import FamilyPosterior, score_clustered_families, score_families
from ..errors import ZeroLikelihoodError
from ..io.families import GeneFamily
from ..models.parameters import ParameterLayout

# Objective value of an invalid or degenerate vector
REJECTED = np.inf


def _format_vector(vector: np.ndarray) -> str:
    return ','.join(f"{v:f}" for v in vector)


def _record_root_sizes(ctx: LambdaContext, posteriors: list[FamilyPosterior]) -> None:
    for family, post in zip(ctx.families, posteriors):
        family.best_root_size = post.best_root_size


def evaluate_global(ctx: LambdaContext, layout: ParameterLayout, vector: np.ndarray) -> float:
    """
    Negative log posterior of all families under one shared model.

    Parameters
    ----------
    ctx : LambdaContext
        Tree, families, partition and prior
    layout : ParameterLayout
        Unclustered layout matching ``ctx.partition``
    vector : ndarray
        Candidate rates

    Returns
    -------
    float
        ``-score``, or ``inf`` when the vector is rejected or a family has
        zero likelihood
    """
    vector = np.asarray(vector, dtype=float)
    if not layout.is_valid(vector):
        score = -REJECTED
    else:
        params = layout.split(vector)
        prior = ctx.ensure_prior()
        with build_transition_cache(ctx.tree, ctx.partition, params, ctx.size_range.n_states) as cache:
            try:
                likelihoods = compute_family_likelihoods(ctx.tree, ctx.families, cache, ctx.size_range)
                score, posteriors = score_families(ctx.families, likelihoods, prior, ctx.size_range)
                _record_root_sizes(ctx, posteriors)
            except ZeroLikelihoodError as e:
                warnings.warn(str(e), UserWarning)
                score = -REJECTED
    ctx.trace(f"Lambda : {_format_vector(vector)} & Score: {score:f}")
    return -score


def evaluate_clustered(
    ctx: LambdaContext,
    layout: ParameterLayout,
    vector: np.ndarray,
) -> tuple[float, Optional[np.ndarray]]:
    """
    Negative mixture log posterior and the implied cluster memberships.

    Returns
    -------
    value : float
        ``-score``, or ``inf`` when rejected
    memberships : Optional[ndarray], shape (n_families, k)
        Soft memberships, or None when rejected
    """
    vector = np.asarray(vector, dtype=float)
    memberships = None
    if not layout.is_valid(vector):
        score = -REJECTED
    else:
        params = layout.split(vector)
        prior = ctx.ensure_prior()
        with build_transition_cache(ctx.tree, ctx.partition, params, ctx.size_range.n_states) as cache:
            try:
                per_cluster = [
                    compute_family_likelihoods(ctx.tree, ctx.families, cache, ctx.size_range, cluster=k)
                    for k in range(params.n_clusters)
                ]
                score, memberships, posteriors = score_clustered_families(
                    ctx.families, per_cluster, prior, ctx.size_range, params.weights
                )
                _record_root_sizes(ctx, posteriors)
            except ZeroLikelihoodError as e:
                warnings.warn(str(e), UserWarning)
                score = -REJECTED
    ctx.trace(f"Lambda : {_format_vector(vector)} & Score: {score:f}")
    return -score, memberships


def evaluate_family(
    ctx: LambdaContext,
    layout: ParameterLayout,
    family: GeneFamily,
    size_range: FamilySizeRange,
    vector: np.ndarray,
) -> float:
    """
    Negative log of one family's best root likelihood (no prior).

    Used by per-family search. A zero likelihood simply gives ``inf``.
    """
    vector = np.asarray(vector, dtype=float)
    if not layout.is_valid(vector):
        score = -REJECTED
    else:
        params = layout.split(vector)
        with build_transition_cache(ctx.tree, ctx.partition, params, size_range.n_states) as cache:
            likelihood = compute_tree_likelihood(ctx.tree, family.counts, cache, size_range)
        with np.errstate(divide='ignore'):
            score = float(np.log(likelihood.max()))
    ctx.trace(f"\tLambda : {_format_vector(vector)} & Score: {score:f}")
    return -score


def global_objective(ctx: LambdaContext, layout: ParameterLayout) -> Callable[[np.ndarray], float]:
    """Objective for global and branch-partitioned search."""
    def objective(vector: np.ndarray) -> float:
        return evaluate_global(ctx, layout, vector)
    return objective


def clustered_objective(ctx: LambdaContext, layout: ParameterLayout) -> Callable[[np.ndarray], float]:
    """Objective for clustered search; memberships are not stored."""
    def objective(vector: np.ndarray) -> float:
        return evaluate_clustered(ctx, layout, vector)[0]
    return objective


def family_objective(
    ctx: LambdaContext,
    layout: ParameterLayout,
    family: GeneFamily,
    size_range: FamilySizeRange,
) -> Callable[[np.ndarray], float]:
    """Objective for fitting rates to a single family."""
    def objective(vector: np.ndarray) -> float:
        return evaluate_family(ctx, layout, family, size_range, vector)
    return objective
