"""
Core algorithms of the birth-death rate engine.

- **Transition probabilities**: birth-death matrices and the per-candidate cache
- **Tree likelihood**: post-order pruning over family sizes
- **Prior**: empirical shifted-Poisson prior on root size
- **Posterior**: prior-weighted scoring of families

These are expert-level functions; :mod:`bdrates.api` wraps them.
"""

from bdrates.core.birthdeath import (
    TransitionCache,
    birthdeath_matrix,
    build_transition_cache,
)
from bdrates.core.likelihood import (
    FamilySizeRange,
    compute_family_likelihoods,
    compute_tree_likelihood,
)
from bdrates.core.posterior import (
    FamilyPosterior,
    compute_posterior,
    score_clustered_families,
    score_families,
)
from bdrates.core.prior import FAMILYSIZEMAX, estimate_empirical_prior

__all__ = [
    "TransitionCache",
    "birthdeath_matrix",
    "build_transition_cache",
    "FamilySizeRange",
    "compute_family_likelihoods",
    "compute_tree_likelihood",
    "FamilyPosterior",
    "compute_posterior",
    "score_clustered_families",
    "score_families",
    "FAMILYSIZEMAX",
    "estimate_empirical_prior",
]
