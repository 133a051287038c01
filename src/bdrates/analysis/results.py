"""
Result objects for lambda searches.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TextIO

import numpy as np

try:
    import pandas as pd
    PANDAS_AVAILABLE = True
except ImportError:
    PANDAS_AVAILABLE = False


def _join(values) -> str:
    return ','.join(f"{v:f}" for v in np.ravel(values))


@dataclass
class LambdaSearchResult:
    """
    Outcome of a global, partitioned or clustered lambda search.

    Attributes
    ----------
    lambdas : ndarray, shape (n_clusters, n_classes)
        Fitted birth rates (a fixed first cluster shows as zeros)
    mus : Optional[ndarray]
        Fitted death rates when estimated separately
    weights : ndarray, shape (n_clusters,)
        Mixture weights (``[1.0]`` without clustering)
    score : float
        Log posterior at the best vector
    vector : ndarray
        Best flat parameter vector
    iterations : int
        Simplex iterations of the best run
    runs : int
        Independent runs performed
    run_scores : list[float]
        Negative log posterior of each run, in order
    converged : Optional[bool]
        Whether repeated runs agreed; None when not checked
    memberships : Optional[ndarray], shape (n_families, n_clusters)
        Soft cluster memberships at the best vector
    family_ids : list[str]
        Family identifiers, in table order
    best_root_sizes : list[Optional[int]]
        Maximum posterior root size per family
    """

    lambdas: np.ndarray
    mus: Optional[np.ndarray]
    weights: np.ndarray
    score: float
    vector: np.ndarray
    iterations: int
    runs: int = 1
    run_scores: List[float] = field(default_factory=list)
    converged: Optional[bool] = None
    memberships: Optional[np.ndarray] = None
    family_ids: List[str] = field(default_factory=list)
    best_root_sizes: List[Optional[int]] = field(default_factory=list)

    @property
    def clustered(self) -> bool:
        return self.memberships is not None

    @property
    def lambda_values(self) -> List[float]:
        """All fitted lambdas, cluster by cluster."""
        return [float(v) for v in np.ravel(self.lambdas)]

    def summary(self) -> str:
        """
        Human-readable summary.

        Returns
        -------
        str
            Multi-line summary of rates, weights, score and convergence
        """
        lines = []
        lines.append("=" * 70)
        lines.append("LAMBDA SEARCH")
        lines.append("=" * 70)
        lines.append("")
        lines.append(f"Lambda : {_join(self.lambdas)}")
        if self.mus is not None:
            lines.append(f"Mu : {_join(self.mus)}")
        if self.clustered:
            lines.append(f"p : {_join(self.weights)}")
        lines.append(f"Score: {self.score:f}")
        lines.append(f"Iterations: {self.iterations}")
        if self.converged is not None:
            if self.converged:
                lines.append(f"Score converged in {self.runs} runs.")
            else:
                lines.append(f"Score failed to converge in {self.runs} runs.")
        if self.clustered:
            lines.append("")
            lines.append("Cluster membership:")
            lines.extend(format_memberships(self.family_ids, self.memberships))
        return '\n'.join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Export results as a JSON-compatible dictionary."""
        return {
            'lambdas': np.asarray(self.lambdas).tolist(),
            'mus': None if self.mus is None else np.asarray(self.mus).tolist(),
            'weights': np.asarray(self.weights).tolist(),
            'score': self.score,
            'iterations': self.iterations,
            'runs': self.runs,
            'run_scores': list(self.run_scores),
            'converged': self.converged,
            'memberships': None if self.memberships is None else self.memberships.tolist(),
            'families': {
                fid: size for fid, size in zip(self.family_ids, self.best_root_sizes)
            },
        }

    def to_json(self, filepath: Optional[str] = None, indent: int = 2) -> str:
        """
        Export results as JSON.

        Parameters
        ----------
        filepath : str, optional
            If given, also write the JSON to this file
        indent : int
            JSON indentation
        """
        text = json.dumps(self.to_dict(), indent=indent)
        if filepath:
            with open(filepath, 'w') as f:
                f.write(text)
        return text

    def __str__(self) -> str:
        return self.summary()


def format_memberships(family_ids: List[str], memberships: np.ndarray) -> List[str]:
    """One line per family: identifier followed by its membership vector."""
    return [
        f"{fid}\t" + '\t'.join(f"{p:f}" for p in row)
        for fid, row in zip(family_ids, memberships)
    ]


@dataclass
class FamilyFit:
    """
    Rates fitted to a single family.

    Attributes
    ----------
    family_id : str
        Family identifier
    description : Optional[str]
        Family description
    lambdas : ndarray, shape (n_classes,)
        Fitted rates
    score : float
        Log of the best root likelihood at the fitted rates
    iterations : int
        Simplex iterations (0 for families copied from a duplicate)
    near_boundary : bool
        Whether any rate sits at or beyond the stability boundary
    tree : str
        Tree annotated with leaf sizes and fitted rates
    """

    family_id: str
    description: Optional[str]
    lambdas: np.ndarray
    score: float
    iterations: int
    near_boundary: bool
    tree: str

    def line(self) -> str:
        """Output line; flagged with ``@@`` when near the boundary."""
        prefix = "@@ " if self.near_boundary else ""
        return f"{prefix}{self.family_id}\t{self.tree}"

    def report_row(self) -> str:
        """Companion report row: identifier, description and tree."""
        return f"{self.family_id}\t{self.description or 'NONE'}\t{self.tree}"


@dataclass
class GridResult:
    """
    Scores over a grid of lambda values.

    Attributes
    ----------
    points : list[tuple[float, ...]]
        Lambda values of each grid point, in enumeration order
    scores : list[float]
        Log posterior at each point
    degenerate : list[bool]
        Points whose score was catastrophically bad
    """

    points: List[tuple] = field(default_factory=list)
    scores: List[float] = field(default_factory=list)
    degenerate: List[bool] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.points)

    def best(self) -> tuple:
        """Grid point with the highest score and that score."""
        i = int(np.argmax(self.scores))
        return self.points[i], self.scores[i]

    def lines(self) -> List[str]:
        """Tab-separated lambda values followed by the score, one per point."""
        return [
            '\t'.join(f"{v:f}" for v in point) + f"\t{score:f}"
            for point, score in zip(self.points, self.scores)
        ]

    def write(self, fp: TextIO) -> None:
        for line in self.lines():
            fp.write(line + '\n')

    def to_dataframe(self) -> 'pd.DataFrame':
        """
        Export the grid as a pandas DataFrame.

        Columns are ``lambda1 .. lambdaN`` and ``score``.

        Raises
        ------
        ImportError
            If pandas is not installed
        """
        if not PANDAS_AVAILABLE:
            raise ImportError(
                "pandas is required for to_dataframe(). "
                "Install with: pip install pandas"
            )
        n = len(self.points[0]) if self.points else 0
        rows = [
            {**{f"lambda{j + 1}": v for j, v in enumerate(point)}, 'score': score}
            for point, score in zip(self.points, self.scores)
        ]
        return pd.DataFrame(rows, columns=[f"lambda{j + 1}" for j in range(n)] + ['score'])
