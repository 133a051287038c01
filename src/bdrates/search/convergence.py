"""
Repeated lambda searches from random starts, with convergence detection.
"""

from typing import Optional

import numpy as np

from ..analysis.results import LambdaSearchResult
from ..context import LambdaContext
from ..models.parameters import ParameterLayout
from ..optimize.fminsearch import FMinResult
from .drivers import cluster_memberships, search_clustered, search_global
from .objectives import evaluate_global

MAX_RUNS = 10


def _log_run(ctx: LambdaContext, layout: ParameterLayout, result: FMinResult) -> None:
    params = layout.split(result.x)
    ctx.log("")
    ctx.log(f"Lambda Search Result: {result.iterations}")
    lambdas = ','.join(f"{v:f}" for v in np.ravel(params.lambdas))
    if layout.clustered:
        ctx.log(f"Lambda : {lambdas}")
        ctx.log("p : " + ','.join(f"{w:f}" for w in params.weights))
        ctx.log(f"p0 : {params.weights[0]:f}")
        ctx.log(f"Score: {-result.fun:f}")
    else:
        ctx.log(f"Lambda : {lambdas} & Score: {-result.fun:f}")


def best_lambda_by_fminsearch(
    ctx: LambdaContext,
    layout: ParameterLayout,
    checkconv: bool = False,
    max_runs: int = MAX_RUNS,
    tolx: Optional[float] = None,
    tolf: Optional[float] = None,
    maxiter: Optional[int] = None,
) -> LambdaSearchResult:
    """
    Search for the best rates, optionally restarting until scores agree.

    Each run starts from a fresh random vector. With ``checkconv``, runs are
    repeated until a run's score is within ``10 * tolf`` of the best earlier
    score, or ``max_runs`` runs have been made. The best vector over all
    runs is returned either way, and the fitted parameters are stored on
    ``ctx``.

    Parameters
    ----------
    ctx : LambdaContext
        Command state
    layout : ParameterLayout
        Parameter layout; clustered layouts use clustered search
    checkconv : bool
        Repeat runs until convergence
    max_runs : int
        Upper bound on runs
    tolx, tolf : float, optional
        Simplex tolerances (default 1e-6, or 1e-5 when clustered)
    maxiter : int, optional
        Iteration budget per simplex run

    Returns
    -------
    LambdaSearchResult
        Best rates and score, with run bookkeeping
    """
    default_tol = 1e-5 if layout.clustered else 1e-6
    tolx = default_tol if tolx is None else tolx
    tolf = default_tol if tolf is None else tolf

    ctx.ensure_prior()
    ctx.log(f"Lambda structure: {ctx.partition.to_structure(ctx.tree)}")
    run_scores: list[float] = []
    best: Optional[FMinResult] = None
    converged = False
    runs = 0

    while True:
        x0 = layout.randomize(ctx.rng, ctx.max_branch_length)
        if layout.clustered:
            result = search_clustered(ctx, layout, x0, tolx=tolx, tolf=tolf, maxiter=maxiter)
        else:
            result = search_global(ctx, layout, x0, tolx=tolx, tolf=tolf, maxiter=maxiter)
        runs += 1
        _log_run(ctx, layout, result)

        if run_scores and abs(min(run_scores) - result.fun) < 10 * tolf:
            converged = True
        run_scores.append(result.fun)
        if best is None or result.fun < best.fun:
            best = result

        if not checkconv or converged or runs >= max_runs:
            break

    if checkconv:
        if converged:
            ctx.log(f"score converged in {runs} runs.")
        else:
            ctx.log(f"score failed to converge in {max_runs} runs.")

    params = layout.split(best.x)
    memberships = None
    if layout.clustered:
        memberships = cluster_memberships(ctx, layout, best.x)
        ctx.memberships = memberships
    else:
        evaluate_global(ctx, layout, best.x)

    ctx.lambdas = params.lambdas
    ctx.mus = params.mus
    ctx.weights = params.weights

    return LambdaSearchResult(
        lambdas=params.lambdas,
        mus=params.mus,
        weights=params.weights,
        score=-best.fun,
        vector=best.x.copy(),
        iterations=best.iterations,
        runs=runs,
        run_scores=run_scores,
        converged=converged if checkconv else None,
        memberships=memberships,
        family_ids=[f.id for f in ctx.families],
        best_root_sizes=[f.best_root_size for f in ctx.families],
    )
