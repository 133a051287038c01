"""
Unit tests for the per-command context.
"""

import io

import numpy as np
import pytest

from bdrates.context import LambdaContext
from bdrates.core.posterior import compute_posterior
from bdrates.core.prior import FAMILYSIZEMAX
from bdrates.io.families import FamilyTable


def test_defaults(small_context):
    assert small_context.partition.n_classes == 1
    assert small_context.size_range.root_min == 1
    assert small_context.max_branch_length == 2.0
    assert small_context.lambdas is None
    assert small_context.prior is None


def test_species_must_match_tree(three_leaf_tree):
    table = FamilyTable.from_counts([[1, 1, 1]], ["A", "C", "B"])
    with pytest.raises(ValueError, match="species must match"):
        LambdaContext(tree=three_leaf_tree, families=table)


def test_prior_estimated_once(small_context):
    """Test the prior is kept until explicitly refreshed."""
    first = small_context.ensure_prior()
    assert small_context.ensure_prior() is first
    assert small_context.prior_fit is not None

    refreshed = small_context.ensure_prior(refresh=True)
    np.testing.assert_allclose(refreshed, first, atol=1e-4)


def test_log_to_stream(three_leaf_tree, small_families):
    out = io.StringIO()
    ctx = LambdaContext(tree=three_leaf_tree, families=small_families, stream=out, seed=0)

    ctx.log("hello")
    ctx.trace("hidden")

    assert out.getvalue() == "hello\n"


def test_quiet_silences_everything(three_leaf_tree, small_families):
    out = io.StringIO()
    ctx = LambdaContext(tree=three_leaf_tree, families=small_families, stream=out,
                        verbose=True, quiet=True)

    ctx.log("a")
    ctx.trace("b")

    assert out.getvalue() == ""


def test_trace_when_verbose(three_leaf_tree, small_families):
    out = io.StringIO()
    ctx = LambdaContext(tree=three_leaf_tree, families=small_families, stream=out, verbose=True)

    ctx.trace("step")

    assert out.getvalue() == "step\n"


def test_prior_covers_large_root_range(two_leaf_tree):
    """Test the prior spans every root size when counts exceed the default window."""
    table = FamilyTable.from_counts([[810, 805], [1, 2]], ["A", "B"])
    ctx = LambdaContext(tree=two_leaf_tree, families=table, quiet=True, seed=0)

    prior = ctx.ensure_prior()
    n = ctx.size_range.n_root_sizes

    assert n > FAMILYSIZEMAX
    assert prior.shape[0] >= n
    post = compute_posterior(np.full(n, 1e-3), prior, ctx.size_range)
    assert post.best_root_size >= ctx.size_range.root_min
