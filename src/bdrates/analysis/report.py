"""
Text output for per-family searches.
"""

from pathlib import Path
from typing import Optional, Sequence, TextIO

import numpy as np

from ..io.trees import Tree, TreeNode
from ..models.partition import RatePartition
from .results import FamilyFit

# rate * max branch length at which a fitted rate is flagged
BOUNDARY = 0.5
BOUNDARY_TOL = 1e-3


def near_boundary(lambdas: np.ndarray, max_branch_length: float) -> bool:
    """Whether any rate is at, within tolerance of, or past the boundary."""
    a = np.asarray(lambdas, dtype=float) * max_branch_length
    return bool(np.any((a >= BOUNDARY) | (np.abs(a - BOUNDARY) < BOUNDARY_TOL)))


def tree_string_with_rates(
    tree: Tree,
    partition: RatePartition,
    counts: np.ndarray,
    lambdas: np.ndarray,
) -> str:
    """
    Newick string annotated with leaf sizes and branch rates.

    Leaves are written ``name_size``; every branch is written
    ``:length_rate``.

    Examples
    --------
    >>> tree = Tree.from_newick("(A:1,B:1);")
    >>> tree_string_with_rates(tree, RatePartition.uniform(tree), np.array([3, 2]), np.array([0.1]))
    '(A_3:1_0.1,B_2:1_0.1);'
    """
    sizes = {node.id: int(c) for node, c in zip(tree.leaves(), counts)}
    rates = partition.branch_rates(lambdas)

    def label(node: TreeNode) -> str:
        text = node.name or ''
        if node.is_leaf:
            text += f"_{sizes[node.id]}"
        if node.parent is not None:
            text += f":{node.branch_length:g}_{rates[node.id]:g}"
        return text

    return tree.to_newick(label)


def family_fit_paths(output: Path | str) -> tuple[Path, Path]:
    """Paths of ``<output>.lambda`` and ``<output>.tsv``."""
    output = Path(output)
    return output.with_name(output.name + ".lambda"), output.with_name(output.name + ".tsv")


def write_family_fits(fits: Sequence[FamilyFit], output: Path | str) -> tuple[Path, Path]:
    """
    Write per-family results next to ``output``.

    Creates ``<output>.lambda`` with one line per family and
    ``<output>.tsv`` with identifier, description and tree per family.
    Both files are opened before anything is written.

    Returns
    -------
    tuple[Path, Path]
        Paths of the lambda file and the report
    """
    lambda_path, report_path = family_fit_paths(output)
    with open(lambda_path, 'w') as fpout, open(report_path, 'w') as freport:
        write_family_lines(fits, fpout, freport)
    return lambda_path, report_path


def write_family_lines(fits: Sequence[FamilyFit], fpout: TextIO, freport: Optional[TextIO] = None) -> None:
    """Write one line per fit to ``fpout`` and, if given, report rows to ``freport``."""
    if freport is not None:
        freport.write("Family ID\tDesc\tTree\n")
    for fit in fits:
        fpout.write(fit.line() + '\n')
        if freport is not None:
            freport.write(fit.report_row() + '\n')
