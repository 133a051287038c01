"""
Unit tests for posterior scoring.
"""

import numpy as np
import pytest

from bdrates.core.likelihood import FamilySizeRange
from bdrates.core.posterior import compute_posterior, score_clustered_families, score_families
from bdrates.errors import ZeroLikelihoodError
from bdrates.io.families import FamilyTable


@pytest.fixture
def size_range():
    return FamilySizeRange(min=0, max=6, root_min=1, root_max=4)


@pytest.fixture
def prior():
    return np.array([0.4, 0.3, 0.2, 0.1, 0.0, 0.0])


def test_compute_posterior(size_range, prior):
    """Test the best root size maximizes likelihood times prior."""
    likelihood = np.array([0.1, 0.5, 0.4, 0.9])

    post = compute_posterior(likelihood, prior, size_range)

    assert post.max_likelihood == 0.9
    assert post.max_posterior == pytest.approx(0.15)
    assert post.best_root_size == 2


def test_compute_posterior_short_prior(size_range):
    with pytest.raises(ValueError, match="Prior covers"):
        compute_posterior(np.ones(4), np.ones(2), size_range)


def test_score_families(size_range, prior):
    """Test the score is the sum of log max posteriors."""
    table = FamilyTable.from_counts([[1, 1], [2, 3]], ["A", "B"])
    likelihoods = [np.array([0.1, 0.5, 0.4, 0.9]), np.array([0.2, 0.2, 0.2, 0.2])]

    score, posteriors = score_families(table, likelihoods, prior, size_range)

    assert score == pytest.approx(np.log(0.15) + np.log(0.08))
    assert [p.best_root_size for p in posteriors] == [2, 1]


def test_duplicates_copy_canonical(size_range, prior):
    """Test duplicates get the canonical family's posterior unchanged."""
    table = FamilyTable.from_counts([[1, 1], [2, 3], [1, 1]], ["A", "B"])
    vector = np.array([0.1, 0.5, 0.4, 0.9])
    likelihoods = [vector, np.array([0.2, 0.2, 0.2, 0.2]), vector]

    score, posteriors = score_families(table, likelihoods, prior, size_range)

    assert posteriors[2] == posteriors[0]
    assert posteriors[2].max_posterior == posteriors[0].max_posterior
    assert score == pytest.approx(2 * np.log(0.15) + np.log(0.08))


def test_zero_likelihood_raises(size_range, prior):
    table = FamilyTable.from_counts([[1, 1], [1, 3]], ["A", "B"], ids=["ok", "bad"])
    likelihoods = [np.array([0.1, 0.5, 0.4, 0.9]), np.zeros(4)]

    with pytest.raises(ZeroLikelihoodError, match="bad") as excinfo:
        score_families(table, likelihoods, prior, size_range)
    assert excinfo.value.family_id == "bad"


class TestClusteredScore:
    """Test mixture scoring and memberships."""

    def test_single_cluster_matches_global(self, size_range, prior):
        table = FamilyTable.from_counts([[1, 1], [2, 3], [1, 1]], ["A", "B"])
        vector = np.array([0.1, 0.5, 0.4, 0.9])
        likelihoods = [vector, np.array([0.2, 0.2, 0.2, 0.2]), vector]

        score, _ = score_families(table, likelihoods, prior, size_range)
        mixed, memberships, _ = score_clustered_families(
            table, [likelihoods], prior, size_range, np.ones(1)
        )

        assert mixed == pytest.approx(score)
        np.testing.assert_allclose(memberships, 1.0)

    def test_memberships(self, size_range, prior):
        """Test memberships are weight times posterior, normalized."""
        table = FamilyTable.from_counts([[1, 1], [2, 3]], ["A", "B"])
        cluster0 = [np.array([1.0, 0.0, 0.0, 0.0]), np.array([0.1, 0.1, 0.1, 0.1])]
        cluster1 = [np.array([0.5, 0.0, 0.0, 0.0]), np.array([0.3, 0.3, 0.3, 0.3])]
        weights = np.array([0.25, 0.75])

        score, memberships, posteriors = score_clustered_families(
            table, [cluster0, cluster1], prior, size_range, weights
        )

        w0 = 0.25 * 0.4 * 1.0
        w1 = 0.75 * 0.4 * 0.5
        np.testing.assert_allclose(memberships[0], [w0 / (w0 + w1), w1 / (w0 + w1)])
        np.testing.assert_allclose(memberships.sum(axis=1), 1.0)
        expected = np.log(w0 + w1) + np.log(0.25 * 0.04 + 0.75 * 0.12)
        assert score == pytest.approx(expected)
        assert posteriors[1].max_posterior == pytest.approx(0.12)

    def test_duplicate_rows_match(self, size_range, prior):
        table = FamilyTable.from_counts([[1, 2], [1, 2]], ["A", "B"])
        cluster0 = [np.array([0.2, 0.1, 0.0, 0.0])] * 2
        cluster1 = [np.array([0.4, 0.1, 0.0, 0.0])] * 2

        score, memberships, _ = score_clustered_families(
            table, [cluster0, cluster1], prior, size_range, np.array([0.5, 0.5])
        )

        np.testing.assert_array_equal(memberships[0], memberships[1])
        assert score == pytest.approx(2 * np.log(0.5 * 0.08 + 0.5 * 0.16))

    def test_zero_under_every_cluster(self, size_range, prior):
        table = FamilyTable.from_counts([[1, 3]], ["A", "B"])
        with pytest.raises(ZeroLikelihoodError):
            score_clustered_families(
                table, [[np.zeros(4)], [np.zeros(4)]], prior, size_range, np.array([0.5, 0.5])
            )
