"""
High-level API for bdrates.

This module wraps the search drivers in a few functions that accept file
paths, Newick strings or already loaded objects, build a
:class:`~bdrates.context.LambdaContext` and return result objects.
"""

from pathlib import Path
from typing import Optional, Sequence, TextIO, Union

import numpy as np

from .analysis.report import write_family_fits
from .analysis.results import FamilyFit, GridResult, LambdaSearchResult
from .context import LambdaContext
from .io.families import FamilyTable
from .io.trees import Tree
from .models.parameters import ModelParameters, ParameterLayout
from .models.partition import RatePartition
from .search.convergence import MAX_RUNS, best_lambda_by_fminsearch
from .search.drivers import search_each
from .search.grid import LambdaRange, evaluate_grid
from .search.objectives import evaluate_clustered, evaluate_global


def _load_tree(tree: Union[str, Path, Tree]) -> Tree:
    """
    Load tree from Newick file or string.

    Parameters
    ----------
    tree : str, Path, or Tree
        Path to tree file, Newick string, or Tree object

    Raises
    ------
    ValueError
        If tree parsing fails
    """
    if isinstance(tree, Tree):
        return tree

    path = Path(str(tree))
    if path.exists():
        newick_str = path.read_text().strip()
    else:
        newick_str = str(tree)

    try:
        return Tree.from_newick(newick_str)
    except ValueError as e:
        raise ValueError(f"Failed to parse tree: {e}")


def _load_families(families: Union[str, Path, FamilyTable], tree: Tree) -> FamilyTable:
    if isinstance(families, FamilyTable):
        return families
    return FamilyTable.from_file(families, tree=tree)


def make_context(
    tree: Union[str, Path, Tree],
    families: Union[str, Path, FamilyTable],
    structure: Optional[str] = None,
    seed: Optional[int] = None,
    verbose: bool = False,
    quiet: bool = True,
    stream: Optional[TextIO] = None,
) -> LambdaContext:
    """
    Build the state for one lambda command.

    Parameters
    ----------
    tree : str, Path, or Tree
        Species tree (file, Newick string, or Tree)
    families : str, Path, or FamilyTable
        Family table (file or loaded table)
    structure : str, optional
        Rate partition in the lambda structure language, e.g.
        ``"(((1,1)1,(2,2)2)2,2)"``. One shared rate when omitted.
    seed : int, optional
        Seed for random starting points and prior fitting
    verbose : bool
        Log every objective evaluation
    quiet : bool
        Suppress progress output
    stream : TextIO, optional
        Progress destination (default stderr)
    """
    tree_obj = _load_tree(tree)
    table = _load_families(families, tree_obj)
    partition = RatePartition.from_structure(tree_obj, structure) if structure else None
    return LambdaContext(
        tree=tree_obj,
        families=table,
        partition=partition,
        verbose=verbose,
        quiet=quiet,
        stream=stream,
        seed=seed,
    )


def _layout(ctx: LambdaContext, k: int, fixcluster0: bool, estimate_mu: bool) -> ParameterLayout:
    n = ctx.partition.n_classes
    return ParameterLayout(n_lambdas=n, n_mus=n if estimate_mu else 0, k=k, fixcluster0=fixcluster0)


def estimate_lambda(
    tree: Union[str, Path, Tree],
    families: Union[str, Path, FamilyTable],
    structure: Optional[str] = None,
    k: int = 0,
    fixcluster0: bool = False,
    estimate_mu: bool = False,
    checkconv: bool = False,
    max_runs: int = MAX_RUNS,
    maxiter: Optional[int] = None,
    seed: Optional[int] = None,
    verbose: bool = False,
    quiet: bool = True,
) -> LambdaSearchResult:
    """
    Estimate birth-death rates by maximum posterior.

    Parameters
    ----------
    tree : str, Path, or Tree
        Species tree with branch lengths
    families : str, Path, or FamilyTable
        Gene family sizes per species
    structure : str, optional
        Rate partition; one rate for all branches when omitted
    k : int
        Number of rate clusters (0 disables clustering)
    fixcluster0 : bool
        Fix every rate of the first cluster at zero
    estimate_mu : bool
        Estimate death rates separately from birth rates
    checkconv : bool
        Repeat runs from random starts until the score converges
    max_runs : int
        Maximum runs when checking convergence
    maxiter : int, optional
        Iteration budget per simplex run
    seed : int, optional
        Random seed
    verbose, quiet : bool
        Progress output settings

    Returns
    -------
    LambdaSearchResult
        Best rates, weights and score

    Examples
    --------
    >>> from bdrates import estimate_lambda
    >>> result = estimate_lambda("tree.nwk", "families.tab", checkconv=True)
    >>> print(result.summary())
    """
    ctx = make_context(tree, families, structure, seed=seed, verbose=verbose, quiet=quiet)
    layout = _layout(ctx, k, fixcluster0, estimate_mu)
    return best_lambda_by_fminsearch(ctx, layout, checkconv=checkconv, max_runs=max_runs, maxiter=maxiter)


def estimate_lambda_each(
    tree: Union[str, Path, Tree],
    families: Union[str, Path, FamilyTable],
    structure: Optional[str] = None,
    output: Optional[Union[str, Path]] = None,
    maxiter: Optional[int] = None,
    verbose: bool = False,
    quiet: bool = True,
) -> list[FamilyFit]:
    """
    Fit rates to every family on its own.

    When ``output`` is given, ``<output>.lambda`` and ``<output>.tsv`` are
    written after fitting.

    Returns
    -------
    list[FamilyFit]
        One fit per family, in table order
    """
    ctx = make_context(tree, families, structure, verbose=verbose, quiet=quiet)
    fits = search_each(ctx, maxiter=maxiter)
    if output is not None:
        write_family_fits(fits, output)
    return fits


def lambda_grid(
    tree: Union[str, Path, Tree],
    families: Union[str, Path, FamilyTable],
    ranges: Sequence[Union[str, LambdaRange]],
    structure: Optional[str] = None,
    seed: Optional[int] = None,
    verbose: bool = False,
    quiet: bool = True,
) -> GridResult:
    """
    Score every point of a lambda grid.

    Parameters
    ----------
    ranges : sequence of str or LambdaRange
        One ``start:step:end`` range per rate class

    Examples
    --------
    >>> grid = lambda_grid("tree.nwk", "families.tab", ["0.001:0.001:0.01"])
    >>> point, score = grid.best()
    """
    ctx = make_context(tree, families, structure, seed=seed, verbose=verbose, quiet=quiet)
    parsed = [r if isinstance(r, LambdaRange) else LambdaRange.parse(r) for r in ranges]
    return evaluate_grid(ctx, parsed)


def set_lambdas(
    ctx: LambdaContext,
    lambdas: Sequence[float],
    mus: Optional[Sequence[float]] = None,
    weights: Optional[Sequence[float]] = None,
    k: int = 0,
    fixcluster0: bool = False,
) -> tuple[ParameterLayout, np.ndarray]:
    """
    Validate user rates and store them on ``ctx``.

    Raises
    ------
    ParameterCountError
        If the number of lambdas, mus or weights does not fit the partition
        and cluster count

    Returns
    -------
    layout : ParameterLayout
        Layout describing the stored parameters
    vector : ndarray
        Flat parameter vector
    """
    layout = _layout(ctx, k, fixcluster0, mus is not None)
    vector = layout.assemble(lambdas, mus, weights)
    params: ModelParameters = layout.split(vector)
    ctx.lambdas = params.lambdas
    ctx.mus = params.mus
    ctx.weights = params.weights
    return layout, vector


def score_lambda(
    tree: Union[str, Path, Tree],
    families: Union[str, Path, FamilyTable],
    lambdas: Sequence[float],
    mus: Optional[Sequence[float]] = None,
    weights: Optional[Sequence[float]] = None,
    structure: Optional[str] = None,
    k: int = 0,
    fixcluster0: bool = False,
    seed: Optional[int] = None,
    verbose: bool = False,
    quiet: bool = True,
) -> LambdaSearchResult:
    """
    Log posterior at fixed rates, without searching.

    Returns
    -------
    LambdaSearchResult
        The given rates and their score (``-inf`` when rejected)
    """
    ctx = make_context(tree, families, structure, seed=seed, verbose=verbose, quiet=quiet)
    layout, vector = set_lambdas(ctx, lambdas, mus=mus, weights=weights, k=k, fixcluster0=fixcluster0)
    return score_context(ctx, layout, vector)


def score_context(ctx: LambdaContext, layout: ParameterLayout, vector: np.ndarray) -> LambdaSearchResult:
    """Evaluate ``vector`` once on an existing context."""
    memberships = None
    if layout.clustered:
        value, memberships = evaluate_clustered(ctx, layout, vector)
        ctx.memberships = memberships
    else:
        value = evaluate_global(ctx, layout, vector)
    params = layout.split(vector)
    return LambdaSearchResult(
        lambdas=params.lambdas,
        mus=params.mus,
        weights=params.weights,
        score=-value,
        vector=np.asarray(vector, dtype=float).copy(),
        iterations=0,
        runs=0,
        memberships=memberships,
        family_ids=[f.id for f in ctx.families],
        best_root_sizes=[f.best_root_size for f in ctx.families],
    )
