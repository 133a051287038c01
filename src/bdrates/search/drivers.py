"""
Lambda search modes.

- **Global / partitioned**: one rate vector for the whole dataset
- **Clustered**: a mixture of rate vectors with alternating weight updates
- **Per-family**: independent rates for every unique family
"""

from dataclasses import replace
from typing import Optional

import numpy as np

from ..analysis.report import near_boundary, tree_string_with_rates
from ..analysis.results import FamilyFit
from ..context import LambdaContext
from ..core.likelihood import family_size_range
from ..models.parameters import ParameterLayout
from ..optimize.fminsearch import FMinResult, FMinSearch
from .objectives import (
    clustered_objective,
    evaluate_clustered,
    family_objective,
    global_objective,
)

MAX_OUTER_ITERATIONS = 100


def search_global(
    ctx: LambdaContext,
    layout: ParameterLayout,
    x0: np.ndarray,
    tolx: float = 1e-6,
    tolf: float = 1e-6,
    maxiter: Optional[int] = None,
) -> FMinResult:
    """
    Minimize the negative log posterior over one shared rate vector.

    Parameters
    ----------
    ctx : LambdaContext
        Command state
    layout : ParameterLayout
        Unclustered layout matching ``ctx.partition``
    x0 : ndarray
        Starting vector
    tolx, tolf : float
        Simplex tolerances
    maxiter : int, optional
        Iteration budget

    Returns
    -------
    FMinResult
        Best vector, its negative log posterior and iteration count
    """
    fm = FMinSearch(global_objective(ctx, layout), tolx=tolx, tolf=tolf, maxiter=maxiter)
    return fm.minimize(x0)


def cluster_memberships(
    ctx: LambdaContext,
    layout: ParameterLayout,
    vector: np.ndarray,
) -> Optional[np.ndarray]:
    """Soft memberships of every family at ``vector`` (None if rejected)."""
    return evaluate_clustered(ctx, layout, vector)[1]


def search_clustered(
    ctx: LambdaContext,
    layout: ParameterLayout,
    x0: np.ndarray,
    tolx: float = 1e-5,
    tolf: float = 1e-5,
    maxiter: Optional[int] = None,
    max_outer: int = MAX_OUTER_ITERATIONS,
) -> FMinResult:
    """
    Fit a mixture of rate clusters.

    After an initial simplex search, alternates between

    1. recomputing each family's soft membership at the current vector,
    2. setting the free mixture weights to the mean memberships, and
    3. re-running the simplex search from the updated vector,

    until the first mixture weight changes by no more than ``tolx`` between
    rounds (or ``max_outer`` rounds have run). The change is taken as an
    absolute difference, so a falling weight keeps the loop going just as a
    rising one does. Memberships are only written to ``ctx.memberships``
    between simplex runs.
    """
    fm = FMinSearch(clustered_objective(ctx, layout), tolx=tolx, tolf=tolf, maxiter=maxiter)
    result = fm.minimize(x0)
    x = result.x.copy()

    if layout.n_weights > 0:
        w0 = layout.weight_offset
        current = x[w0]
        for _ in range(max_outer):
            memberships = cluster_memberships(ctx, layout, x)
            if memberships is None:
                break
            ctx.memberships = memberships
            x[w0:] = memberships.mean(axis=0)[:layout.n_weights]

            result = fm.minimize(x)
            x = result.x.copy()

            previous, current = current, x[w0]
            if abs(current - previous) <= tolx:
                break

    ctx.memberships = cluster_memberships(ctx, layout, x)
    return result


def search_each(
    ctx: LambdaContext,
    tolx: float = 1e-6,
    tolf: float = 1e-6,
    maxiter: Optional[int] = None,
) -> list[FamilyFit]:
    """
    Fit rates to every family independently.

    Each unique family is optimized from ``0.5 / max_branch_length`` for
    every rate class, maximizing its best root likelihood. Duplicate
    families take the fitted rates of their canonical family. Fitted rates
    are stored on each family's ``lambdas``.

    Returns
    -------
    list[FamilyFit]
        One fit per family, in table order
    """
    layout = ParameterLayout(n_lambdas=ctx.partition.n_classes)
    max_bl = ctx.max_branch_length
    x0 = np.full(layout.n_params, 0.5 / max_bl if max_bl > 0 else 0.5)
    n_families = len(ctx.families)
    ctx.log(f"{n_families} families, {len(ctx.families.canonical())} unique")

    fm = FMinSearch(None, tolx=tolx, tolf=tolf, maxiter=maxiter)
    fits: list[FamilyFit] = []
    for i, family in enumerate(ctx.families):
        if not family.is_canonical:
            canonical = fits[family.ref]
            family.lambdas = ctx.families[family.ref].lambdas.copy()
            fit = replace(
                canonical,
                family_id=family.id,
                description=family.description,
                lambdas=family.lambdas,
                iterations=0,
            )
            ctx.log(f"{family.id}: Lambda Search Result of {i + 1}/{n_families} "
                    f"copied from {canonical.family_id}")
            ctx.log(f"{family.id}: {fit.tree}")
            fits.append(fit)
            continue

        ctx.log(f"{family.id}:")
        fm.objective = family_objective(ctx, layout, family, family_size_range(family))
        result = fm.minimize(x0)
        family.lambdas = result.x.copy()

        boundary = near_boundary(family.lambdas, max_bl)
        fit = FamilyFit(
            family_id=family.id,
            description=family.description,
            lambdas=family.lambdas,
            score=-result.fun,
            iterations=result.iterations,
            near_boundary=boundary,
            tree=tree_string_with_rates(ctx.tree, ctx.partition, family.counts, family.lambdas),
        )
        ctx.log(f"Lambda Search Result of {i + 1}/{n_families} in {result.iterations} iteration")
        if boundary:
            ctx.log("Caution : at least one lambda near boundary")
        ctx.log(fit.line())
        fits.append(fit)
    return fits
