"""
Tests for LambdaSearchResult, FamilyFit and GridResult.
"""

import json

import numpy as np
import pytest

from bdrates.analysis.results import FamilyFit, GridResult, LambdaSearchResult, format_memberships


def _result(**overrides):
    values = dict(
        lambdas=np.array([[0.01, 0.02]]),
        mus=None,
        weights=np.ones(1),
        score=-123.456,
        vector=np.array([0.01, 0.02]),
        iterations=42,
        family_ids=["f1", "f2"],
        best_root_sizes=[3, 1],
    )
    values.update(overrides)
    return LambdaSearchResult(**values)


class TestLambdaSearchResult:
    """Tests for the LambdaSearchResult dataclass."""

    def test_summary(self):
        """Test the summary lists rates, score and iterations."""
        text = _result().summary()

        assert "LAMBDA SEARCH" in text
        assert "Lambda : 0.010000,0.020000" in text
        assert "Score: -123.456000" in text
        assert "Iterations: 42" in text
        assert "Mu" not in text
        assert "converge" not in text

    def test_summary_convergence(self):
        assert "Score converged in 3 runs." in _result(converged=True, runs=3).summary()
        assert "Score failed to converge in 10 runs." in _result(converged=False, runs=10).summary()

    def test_summary_clustered(self):
        """Test clustered results show weights and memberships."""
        result = _result(
            lambdas=np.array([[0.0], [0.05]]),
            weights=np.array([0.25, 0.75]),
            vector=np.array([0.05, 0.25]),
            memberships=np.array([[0.9, 0.1], [0.2, 0.8]]),
        )
        text = result.summary()

        assert result.clustered
        assert "p : 0.250000,0.750000" in text
        assert "f1\t0.900000\t0.100000" in text

    def test_summary_with_mu(self):
        text = _result(mus=np.array([[0.03, 0.04]])).summary()
        assert "Mu : 0.030000,0.040000" in text

    def test_str_is_summary(self):
        result = _result()
        assert str(result) == result.summary()

    def test_lambda_values(self):
        assert _result().lambda_values == [0.01, 0.02]

    def test_to_dict(self):
        data = _result(run_scores=[5.0, 4.0]).to_dict()

        assert data["lambdas"] == [[0.01, 0.02]]
        assert data["mus"] is None
        assert data["memberships"] is None
        assert data["run_scores"] == [5.0, 4.0]
        assert data["families"] == {"f1": 3, "f2": 1}

    def test_to_json_file(self, tmp_path):
        path = tmp_path / "out.json"
        text = _result().to_json(str(path))

        assert json.loads(path.read_text()) == json.loads(text)


class TestFamilyFit:

    def _fit(self, near_boundary=False, description="kinase"):
        return FamilyFit(
            family_id="fam7",
            description=description,
            lambdas=np.array([0.1]),
            score=-2.5,
            iterations=12,
            near_boundary=near_boundary,
            tree="(A_1:1_0.1,B_2:1_0.1);",
        )

    def test_line(self):
        assert self._fit().line() == "fam7\t(A_1:1_0.1,B_2:1_0.1);"

    def test_line_flagged(self):
        """Test fits at the boundary are prefixed with @@."""
        assert self._fit(near_boundary=True).line().startswith("@@ fam7\t")

    def test_report_row(self):
        assert self._fit().report_row() == "fam7\tkinase\t(A_1:1_0.1,B_2:1_0.1);"
        assert self._fit(description=None).report_row().split("\t")[1] == "NONE"


class TestGridResult:

    def _grid(self):
        return GridResult(
            points=[(0.1, 0.2), (0.1, 0.3), (0.2, 0.2)],
            scores=[-10.0, -8.5, -9.0],
            degenerate=[False, False, False],
        )

    def test_best(self):
        assert self._grid().best() == ((0.1, 0.3), -8.5)

    def test_lines(self):
        assert self._grid().lines()[0] == "0.100000\t0.200000\t-10.000000"

    def test_to_dataframe(self):
        pytest.importorskip("pandas")
        df = self._grid().to_dataframe()

        assert list(df.columns) == ["lambda1", "lambda2", "score"]
        assert df["score"].max() == -8.5


def test_format_memberships():
    lines = format_memberships(["a"], np.array([[0.5, 0.5]]))
    assert lines == ["a\t0.500000\t0.500000"]
