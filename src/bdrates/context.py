"""
Per-command state shared by the search operations.
"""

import sys
from dataclasses import dataclass, field
from typing import Optional, TextIO

import numpy as np

from .core.likelihood import FamilySizeRange
from .core.prior import FAMILYSIZEMAX, PoissonFit, estimate_empirical_prior
from .io.families import FamilyTable
from .io.trees import Tree
from .models.partition import RatePartition


@dataclass
class LambdaContext:
    """
    Everything one lambda command works on.

    A context lives for one command invocation and is passed explicitly to
    every search operation.

    Attributes
    ----------
    tree : Tree
        Species tree with branch lengths
    families : FamilyTable
        Family sizes in tree leaf order
    partition : RatePartition
        Branch to rate-class assignment (default: one class)
    size_range : FamilySizeRange
        Tracked family sizes (default: derived from the largest count)
    prior : Optional[ndarray]
        Root size prior; estimated on first use
    verbose : bool
        Log every objective evaluation
    quiet : bool
        Suppress progress output
    stream : TextIO
        Destination of progress lines (default: stderr)
    seed : Optional[int]
        Seed for random starting points
    """

    tree: Tree
    families: FamilyTable
    partition: Optional[RatePartition] = None
    size_range: Optional[FamilySizeRange] = None
    prior: Optional[np.ndarray] = None
    verbose: bool = False
    quiet: bool = False
    stream: Optional[TextIO] = field(default=None, repr=False)
    seed: Optional[int] = None

    lambdas: Optional[np.ndarray] = field(default=None, init=False)
    mus: Optional[np.ndarray] = field(default=None, init=False)
    weights: Optional[np.ndarray] = field(default=None, init=False)
    memberships: Optional[np.ndarray] = field(default=None, init=False)
    prior_fit: Optional[PoissonFit] = field(default=None, init=False)
    rng: np.random.Generator = field(init=False, repr=False)

    def __post_init__(self):
        if self.families.species != self.tree.leaf_names:
            raise ValueError(
                "Family table species must match the tree leaves in order: "
                f"{self.families.species} vs {self.tree.leaf_names}"
            )
        if self.partition is None:
            self.partition = RatePartition.uniform(self.tree)
        if self.size_range is None:
            self.size_range = FamilySizeRange.from_max_count(self.families.max_count)
        self.rng = np.random.default_rng(self.seed)

    @property
    def max_branch_length(self) -> float:
        return self.tree.max_branch_length()

    def log(self, message: str) -> None:
        """Write a progress line unless quiet."""
        if not self.quiet:
            print(message, file=self.stream or sys.stderr)

    def trace(self, message: str) -> None:
        """Write a per-evaluation line when verbose."""
        if self.verbose and not self.quiet:
            print(message, file=self.stream or sys.stderr)

    def ensure_prior(self, refresh: bool = False) -> np.ndarray:
        """
        Root size prior, estimated from leaf sizes on first call.

        The prior is kept for the rest of the command unless ``refresh``. It
        covers at least every candidate root size of ``size_range``.
        """
        if self.prior is None or refresh:
            size = max(FAMILYSIZEMAX, self.size_range.n_root_sizes)
            self.prior, self.prior_fit = estimate_empirical_prior(
                self.families, self.size_range.root_min, self.rng, size=size
            )
            self.log(f"Empirical Prior Estimation Result: ({self.prior_fit.iterations} iterations)")
            self.log(f"Poisson lambda: {self.prior_fit.lam:f} & Score: {self.prior_fit.score:f}")
        return self.prior
