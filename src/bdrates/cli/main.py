"""Main CLI application for bdrates."""

import typer
from pathlib import Path
from typing import List, Optional
from enum import Enum

from bdrates import __version__

app = typer.Typer(
    name="bdrates",
    help="Birth-death rate estimation for gene family sizes",
    no_args_is_help=True,
)


class OutputFormat(str, Enum):
    """Output format."""
    TEXT = "text"
    JSON = "json"


def _version_callback(value: bool):
    if value:
        typer.echo(f"bdrates {__version__}")
        raise typer.Exit()


@app.callback()
def callback(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show the version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """Birth-death rate estimation for gene family sizes."""


@app.command(name="lambda")
def lambda_(
    tree: Path = typer.Option(
        ...,
        "--tree",
        help="Species tree with branch lengths (Newick format)",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    families: Path = typer.Option(
        ...,
        "--families",
        help="Family size table (tab-separated: Desc, Family ID, species...)",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    value: Optional[float] = typer.Option(
        None,
        "--value", "-v",
        help="Set a single lambda for every branch",
    ),
    lambdas: Optional[List[float]] = typer.Option(
        None,
        "--lambdas", "-l",
        help="Lambda per rate class (and cluster); repeat the option",
    ),
    mus: Optional[List[float]] = typer.Option(
        None,
        "--mu", "-m",
        help="Death rate per rate class, paired with --lambdas",
    ),
    search: bool = typer.Option(
        False,
        "--search", "-s",
        help="Search for the lambdas maximizing the posterior",
    ),
    estimate_mu: bool = typer.Option(
        False,
        "--estimate-mu",
        help="Search death rates separately from birth rates",
    ),
    ranges: Optional[List[str]] = typer.Option(
        None,
        "--range", "-r",
        help="Score a grid of lambdas, start:step:end per rate class",
    ),
    structure: Optional[str] = typer.Option(
        None,
        "--structure", "-t",
        help="Rate classes as a Newick tree of integer labels, e.g. '(((1,1)1,(2,2)2)2,2)'",
    ),
    k: int = typer.Option(
        0,
        "--k", "-k",
        help="Number of rate clusters (0 disables clustering)",
        min=0,
    ),
    weights: Optional[List[float]] = typer.Option(
        None,
        "--weights", "-p",
        help="Cluster weights; repeat the option",
    ),
    fix_cluster0: bool = typer.Option(
        False,
        "--fix-cluster0", "-f",
        help="Fix all rates of the first cluster at zero",
    ),
    each: bool = typer.Option(
        False,
        "--each", "-e",
        help="Search lambdas for every family separately",
    ),
    checkconv: bool = typer.Option(
        False,
        "--checkconv",
        help="Repeat the search until the score converges",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Output file (default: stdout)",
        file_okay=True,
        dir_okay=False,
    ),
    score: bool = typer.Option(
        False,
        "--score",
        help="Score the data at the given lambdas",
    ),
    format: OutputFormat = typer.Option(
        OutputFormat.TEXT,
        "--format",
        help="Output format",
    ),
    seed: Optional[int] = typer.Option(
        None,
        "--seed",
        help="Random seed for starting points",
    ),
    maxiter: Optional[int] = typer.Option(
        None,
        "--maxiter",
        help="Maximum simplex iterations per run",
        min=1,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Show every objective evaluation",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet", "-q",
        help="Minimal output",
    ),
):
    """
    Estimate, set or score birth-death rates (lambda).

    Example:
        bdrates lambda --tree tree.nwk --families fams.tab -s --checkconv
        bdrates lambda --tree tree.nwk --families fams.tab -t '((1,1)1,2)' -r 0.001:0.001:0.01 -r 0.001:0.001:0.01
        bdrates lambda --tree tree.nwk --families fams.tab -s -k 2 -f
        bdrates lambda --tree tree.nwk --families fams.tab -l 0.01 --score
    """
    from .commands.lambda_search import run_lambda

    run_lambda(
        tree=tree,
        families=families,
        value=value,
        lambdas=lambdas or [],
        mus=mus or [],
        search=search,
        estimate_mu=estimate_mu,
        ranges=ranges or [],
        structure=structure,
        k=k,
        weights=weights or [],
        fix_cluster0=fix_cluster0,
        each=each,
        checkconv=checkconv,
        output=output,
        score=score,
        format=format.value,
        seed=seed,
        maxiter=maxiter,
        verbose=verbose,
        quiet=quiet,
    )


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
