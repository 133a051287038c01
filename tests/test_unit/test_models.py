"""
Unit tests for rate partitions and parameter vector layouts.
"""

import numpy as np
import pytest

from bdrates.errors import LambdaStructureError, ParameterCountError
from bdrates.io.trees import Tree
from bdrates.models.parameters import ParameterLayout
from bdrates.models.partition import RatePartition


@pytest.fixture
def four_leaf_tree():
    return Tree.from_newick("(((A:1,B:1):1,(C:1,D:1):1):1,E:3);")


class TestRatePartition:
    """Test the lambda structure language."""

    def test_uniform(self, four_leaf_tree):
        partition = RatePartition.uniform(four_leaf_tree)

        assert partition.n_classes == 1
        assert len(partition.classes) == four_leaf_tree.n_nodes - 1
        assert set(partition.classes.values()) == {1}

    def test_from_structure(self, four_leaf_tree):
        """Test labels are assigned to the matching branches."""
        partition = RatePartition.from_structure(four_leaf_tree, "(((1,1)1,(2,2)2)2,2)")

        assert partition.n_classes == 2
        by_name = {node.name: partition.class_of(node) for node in four_leaf_tree.leaves()}
        assert by_name == {"A": 1, "B": 1, "C": 2, "D": 2, "E": 2}

    def test_branch_rates(self, four_leaf_tree):
        partition = RatePartition.from_structure(four_leaf_tree, "(((1,1)1,(2,2)2)2,2)")
        rates = partition.branch_rates(np.array([0.01, 0.05]))

        a = four_leaf_tree.leaves()[0]
        e = four_leaf_tree.leaves()[4]
        assert rates[a.id] == 0.01
        assert rates[e.id] == 0.05

    def test_to_structure(self, four_leaf_tree):
        structure = "(((1,1)1,(2,2)2)2,2)"
        partition = RatePartition.from_structure(four_leaf_tree, structure)
        assert partition.to_structure(four_leaf_tree) == structure + ";"

    def test_gap_in_classes(self, four_leaf_tree):
        """Test class ids must be contiguous from one."""
        with pytest.raises(LambdaStructureError, match="without gaps") as excinfo:
            RatePartition.from_structure(four_leaf_tree, "(((1,1)1,(3,3)3)3,3)")
        assert excinfo.value.structure == "(((1,1)1,(3,3)3)3,3)"

    def test_topology_mismatch(self, four_leaf_tree):
        with pytest.raises(LambdaStructureError, match="topology"):
            RatePartition.from_structure(four_leaf_tree, "((1,1)1,2)")

    def test_missing_label(self, four_leaf_tree):
        with pytest.raises(LambdaStructureError, match="positive integer"):
            RatePartition.from_structure(four_leaf_tree, "(((1,1),(2,2)2)2,2)")

    def test_zero_label(self, four_leaf_tree):
        with pytest.raises(LambdaStructureError, match="positive integer"):
            RatePartition.from_structure(four_leaf_tree, "(((0,1)1,(2,2)2)2,2)")

    def test_unparseable(self, four_leaf_tree):
        """Test the offending string is reported."""
        with pytest.raises(LambdaStructureError, match=r"\(\(\(1,1"):
            RatePartition.from_structure(four_leaf_tree, "(((1,1")

    def test_structure_error_is_value_error(self, four_leaf_tree):
        with pytest.raises(ValueError):
            RatePartition.from_structure(four_leaf_tree, "((1,1)1,2)")


class TestParameterLayout:
    """Test flat parameter vectors."""

    def test_global_layout(self):
        layout = ParameterLayout(n_lambdas=2)

        assert not layout.clustered
        assert layout.n_clusters == 1
        assert layout.n_params == 2

        params = layout.split(np.array([0.1, 0.2]))
        np.testing.assert_array_equal(params.lambdas, [[0.1, 0.2]])
        assert params.mus is None
        np.testing.assert_array_equal(params.weights, [1.0])

    def test_mu_layout(self):
        layout = ParameterLayout(n_lambdas=2, n_mus=2)
        params = layout.split(np.array([0.1, 0.2, 0.3, 0.4]))

        np.testing.assert_array_equal(params.lambdas, [[0.1, 0.2]])
        np.testing.assert_array_equal(params.mus, [[0.3, 0.4]])

    def test_clustered_layout(self):
        """Test k clusters carry k - 1 free weights."""
        layout = ParameterLayout(n_lambdas=2, k=3)

        assert layout.n_params == 6 + 2
        params = layout.split(np.array([1, 2, 3, 4, 5, 6, 0.2, 0.3]))
        np.testing.assert_array_equal(params.lambdas, [[1, 2], [3, 4], [5, 6]])
        np.testing.assert_allclose(params.weights, [0.2, 0.3, 0.5])

    def test_fixcluster0(self):
        """Test the first cluster is fixed at zero and not in the vector."""
        layout = ParameterLayout(n_lambdas=2, k=3, fixcluster0=True)

        assert layout.free_clusters == 2
        assert layout.n_params == 4 + 2
        params = layout.split(np.array([1, 2, 3, 4, 0.1, 0.6]))
        np.testing.assert_array_equal(params.lambdas, [[0, 0], [1, 2], [3, 4]])
        np.testing.assert_allclose(params.weights, [0.1, 0.6, 0.3])

    def test_fixcluster0_needs_clusters(self):
        with pytest.raises(ValueError, match="fixcluster0"):
            ParameterLayout(n_lambdas=1, k=1, fixcluster0=True)

    def test_mus_must_match_lambdas(self):
        with pytest.raises(ValueError):
            ParameterLayout(n_lambdas=2, n_mus=1)

    def test_split_wrong_size(self):
        with pytest.raises(ParameterCountError):
            ParameterLayout(n_lambdas=2).split(np.array([0.1]))

    def test_is_valid(self):
        layout = ParameterLayout(n_lambdas=1, k=3)

        assert layout.is_valid(np.array([0.1, 0.2, 0.3, 0.4, 0.5]))
        assert not layout.is_valid(np.array([0.1, -0.2, 0.3, 0.4, 0.5]))
        assert not layout.is_valid(np.array([0.1, 0.2, 0.3, 0.6, 0.5]))
        assert not layout.is_valid(np.array([0.1, 0.2, 0.3, -0.1, 0.5]))

    def test_assemble(self):
        layout = ParameterLayout(n_lambdas=1, k=2)

        np.testing.assert_allclose(layout.assemble([0.1, 0.2]), [0.1, 0.2, 0.5])
        np.testing.assert_allclose(layout.assemble([0.1, 0.2], weights=[0.3, 0.7]), [0.1, 0.2, 0.3])

    def test_assemble_wrong_count(self):
        """Test too few lambdas for the partition is a validation error."""
        layout = ParameterLayout(n_lambdas=3)
        with pytest.raises(ParameterCountError, match="Expected 3 lambda"):
            layout.assemble([0.1, 0.2])

    def test_assemble_wrong_weight_count(self):
        layout = ParameterLayout(n_lambdas=1, k=2)
        with pytest.raises(ParameterCountError):
            layout.assemble([0.1, 0.2], weights=[1.0])

    def test_assemble_missing_mus(self):
        layout = ParameterLayout(n_lambdas=1, n_mus=1)
        with pytest.raises(ParameterCountError):
            layout.assemble([0.1])

    def test_randomize(self):
        """Test random starts are valid and under the rate bound."""
        layout = ParameterLayout(n_lambdas=2, k=3)
        rng = np.random.default_rng(11)

        for _ in range(20):
            x = layout.randomize(rng, max_branch_length=4.0)
            assert x.shape == (layout.n_params,)
            assert layout.is_valid(x)
            assert np.all(x[:layout.n_rate_params] < 0.25)
