"""
Lambda search modes built on the core engine.

- :func:`search_global`: one rate vector shared by all families
- :func:`search_clustered`: mixture of rate clusters
- :func:`search_each`: independent rates per family
- :func:`evaluate_grid`: scores over a grid of rates (no optimization)
- :func:`best_lambda_by_fminsearch`: repeated runs with convergence check
"""

from bdrates.search.convergence import MAX_RUNS, best_lambda_by_fminsearch
from bdrates.search.drivers import cluster_memberships, search_clustered, search_each, search_global
from bdrates.search.grid import LambdaRange, evaluate_grid
from bdrates.search.objectives import (
    REJECTED,
    evaluate_clustered,
    evaluate_family,
    evaluate_global,
)

__all__ = [
    "MAX_RUNS",
    "best_lambda_by_fminsearch",
    "cluster_memberships",
    "search_clustered",
    "search_each",
    "search_global",
    "LambdaRange",
    "evaluate_grid",
    "REJECTED",
    "evaluate_clustered",
    "evaluate_family",
    "evaluate_global",
]
