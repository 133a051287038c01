"""
Pytest configuration and shared fixtures.
"""

import pytest
from typer.testing import CliRunner

from bdrates.context import LambdaContext
from bdrates.io.families import FamilyTable
from bdrates.io.trees import Tree


SMALL_COUNTS = [
    [1, 1, 1],
    [2, 1, 2],
    [1, 3, 2],
    [2, 2, 2],
    [1, 1, 1],  # duplicate of the first family
]


@pytest.fixture
def cli_runner():
    """CLI test runner for Typer apps."""
    return CliRunner()


@pytest.fixture
def two_leaf_tree():
    """Root with two leaves, both branches of length one."""
    return Tree.from_newick("(A:1,B:1);")


@pytest.fixture
def three_leaf_tree():
    """Small rooted tree with unequal branch lengths."""
    return Tree.from_newick("((A:1,B:1):1,C:2);")


@pytest.fixture
def small_families(three_leaf_tree):
    """Five families on the three-leaf tree, the last a duplicate."""
    return FamilyTable.from_counts(
        SMALL_COUNTS,
        three_leaf_tree.leaf_names,
        ids=[f"fam{i + 1}" for i in range(len(SMALL_COUNTS))],
        descriptions=["kinase", None, "transporter", None, "kinase copy"],
    )


@pytest.fixture
def small_context(three_leaf_tree, small_families):
    """Quiet, seeded context over the small dataset."""
    return LambdaContext(tree=three_leaf_tree, families=small_families, quiet=True, seed=1)


@pytest.fixture
def tree_file(tmp_path):
    """Temporary Newick file with the three-leaf tree."""
    path = tmp_path / "species.nwk"
    path.write_text("((A:1,B:1):1,C:2);\n")
    return path


@pytest.fixture
def families_file(tmp_path):
    """
    Temporary family table for the three-leaf tree.

    Species columns are out of tree order and include an extra species.
    """
    lines = [
        "Desc\tFamily ID\tC\tB\tA\tD",
        "kinase\tfam1\t1\t1\t1\t4",
        "\tfam2\t2\t1\t2\t0",
        "transporter\tfam3\t2\t3\t1\t1",
        "\tfam4\t2\t2\t2\t2",
        "kinase copy\tfam5\t1\t1\t1\t7",
    ]
    path = tmp_path / "families.tab"
    path.write_text("\n".join(lines) + "\n")
    return path
