"""Lambda command implementation."""

import sys
from contextlib import ExitStack
from pathlib import Path
from typing import List, Optional

from bdrates.analysis.report import family_fit_paths, write_family_lines
from bdrates.api import score_context, set_lambdas
from bdrates.context import LambdaContext
from bdrates.errors import BDRatesError
from bdrates.io.families import FamilyTable
from bdrates.io.trees import Tree
from bdrates.models.parameters import ParameterLayout
from bdrates.models.partition import RatePartition
from bdrates.search.convergence import best_lambda_by_fminsearch
from bdrates.search.drivers import search_each
from bdrates.search.grid import LambdaRange, evaluate_grid


def _fail(message: str, details: Optional[Exception] = None):
    print(f"Error: {message}", file=sys.stderr)
    if details is not None:
        print(f"Details: {details}", file=sys.stderr)
    sys.exit(1)


def _load_context(
    tree: Path,
    families: Path,
    structure: Optional[str],
    seed: Optional[int],
    verbose: bool,
    quiet: bool,
) -> LambdaContext:
    try:
        tree_obj = Tree.from_file(tree)
    except (OSError, ValueError) as e:
        _fail(f"Could not load tree from {tree}", e)

    try:
        table = FamilyTable.from_file(families, tree=tree_obj)
    except (OSError, ValueError) as e:
        _fail(f"Could not load families from {families}", e)

    try:
        partition = RatePartition.from_structure(tree_obj, structure) if structure else None
    except BDRatesError as e:
        _fail("Invalid lambda structure", e)

    return LambdaContext(
        tree=tree_obj,
        families=table,
        partition=partition,
        verbose=verbose,
        quiet=quiet,
        seed=seed,
    )


def run_lambda(
    tree: Path,
    families: Path,
    value: Optional[float],
    lambdas: List[float],
    mus: List[float],
    search: bool,
    estimate_mu: bool,
    ranges: List[str],
    structure: Optional[str],
    k: int,
    weights: List[float],
    fix_cluster0: bool,
    each: bool,
    checkconv: bool,
    output: Optional[Path],
    score: bool,
    format: str,
    seed: Optional[int],
    maxiter: Optional[int],
    verbose: bool,
    quiet: bool,
):
    """Estimate, set or score lambdas."""
    ctx = _load_context(tree, families, structure, seed, verbose, quiet)

    # Cluster count follows the weights when only weights are given
    if weights and k == 0:
        k = len(weights)

    try:
        if ranges:
            _run_range(ctx, ranges, output)
        elif each:
            _run_each(ctx, output, maxiter)
        else:
            _run_global(ctx, value, lambdas, mus, search, estimate_mu, k, weights,
                        fix_cluster0, checkconv, output, score, format, maxiter)
    except (BDRatesError, ValueError) as e:
        _fail("Lambda command failed", e)
    except OSError as e:
        _fail("Could not write output", e)

    ctx.log("DONE: Lambda Search or setting")


def _run_range(ctx: LambdaContext, ranges: List[str], output: Optional[Path]):
    parsed = [LambdaRange.parse(r) for r in ranges]
    with ExitStack() as stack:
        fp = stack.enter_context(open(output, 'w')) if output else sys.stdout
        grid = evaluate_grid(ctx, parsed)
        grid.write(fp)


def _run_each(ctx: LambdaContext, output: Optional[Path], maxiter: Optional[int]):
    with ExitStack() as stack:
        if output:
            lambda_path, report_path = family_fit_paths(output)
            fpout = stack.enter_context(open(lambda_path, 'w'))
            freport = stack.enter_context(open(report_path, 'w'))
        else:
            fpout, freport = sys.stdout, None
        fits = search_each(ctx, maxiter=maxiter)
        write_family_lines(fits, fpout, freport)


def _run_global(
    ctx: LambdaContext,
    value: Optional[float],
    lambdas: List[float],
    mus: List[float],
    search: bool,
    estimate_mu: bool,
    k: int,
    weights: List[float],
    fix_cluster0: bool,
    checkconv: bool,
    output: Optional[Path],
    score: bool,
    format: str,
    maxiter: Optional[int],
):
    if not search:
        if value is not None and value > 0:
            free = (k if k > 0 else 1) - int(fix_cluster0)
            lambdas = [value] * (ctx.partition.n_classes * free)
        if not lambdas:
            raise ValueError("No lambda given: use --value, --lambdas, --search, --range or --each")
        layout, vector = set_lambdas(ctx, lambdas, mus=mus or None,
                                     weights=weights or None, k=k, fixcluster0=fix_cluster0)
        if not score:
            ctx.log("Lambda : " + ','.join(f"{v:f}" for v in lambdas))
            return

    with ExitStack() as stack:
        fp = stack.enter_context(open(output, 'w')) if output else sys.stdout

        if search:
            n = ctx.partition.n_classes
            layout = ParameterLayout(n_lambdas=n, n_mus=n if estimate_mu else 0,
                                     k=k, fixcluster0=fix_cluster0)
            result = best_lambda_by_fminsearch(ctx, layout, checkconv=checkconv, maxiter=maxiter)
        else:
            result = score_context(ctx, layout, vector)

        if format == "json":
            fp.write(result.to_json() + '\n')
        else:
            fp.write(result.summary() + '\n')
