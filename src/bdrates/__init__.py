"""
bdrates: birth-death rate estimation for gene family sizes.

Estimates the rate (lambda) at which gene families gain and lose members
along the branches of a species tree, by maximizing the posterior
probability of observed family sizes under a birth-death model with an
empirical prior on root family size.

Quick Start
-----------
Estimate one rate for the whole tree:

>>> from bdrates import estimate_lambda
>>> result = estimate_lambda("tree.nwk", "families.tab", checkconv=True)
>>> print(result.summary())

Score a grid of rates for a two-class partition:

>>> from bdrates import lambda_grid
>>> grid = lambda_grid("tree.nwk", "families.tab",
...                    ["0.001:0.001:0.01", "0.001:0.001:0.01"],
...                    structure="((1,1)1,2)")
>>> print(grid.best())

Examples
--------
>>> # Two rate clusters, first cluster fixed at zero
>>> result = estimate_lambda("tree.nwk", "families.tab", k=2, fixcluster0=True)
>>> print(result.weights)

>>> # Fit every family separately and write <out>.lambda / <out>.tsv
>>> from bdrates import estimate_lambda_each
>>> fits = estimate_lambda_each("tree.nwk", "families.tab", output="out")
"""

__version__ = "0.1.0"

# High-level API
from .api import (
    estimate_lambda,
    estimate_lambda_each,
    lambda_grid,
    make_context,
    score_context,
    score_lambda,
    set_lambdas,
)

# Result objects
from .analysis import FamilyFit, GridResult, LambdaSearchResult

# State and errors
from .context import LambdaContext
from .errors import BDRatesError, LambdaStructureError, ParameterCountError, ZeroLikelihoodError

# I/O classes (for advanced users)
from .io import FamilyTable, GeneFamily, Tree

__all__ = [
    # Simple API
    "estimate_lambda",
    "estimate_lambda_each",
    "lambda_grid",
    "score_lambda",
    "set_lambdas",
    "make_context",
    "score_context",

    # Result objects
    "LambdaSearchResult",
    "GridResult",
    "FamilyFit",

    # State
    "LambdaContext",

    # Errors
    "BDRatesError",
    "LambdaStructureError",
    "ParameterCountError",
    "ZeroLikelihoodError",

    # I/O (advanced)
    "FamilyTable",
    "GeneFamily",
    "Tree",

    # Version
    "__version__",
]
