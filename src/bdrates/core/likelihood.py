"""
Tree likelihood of gene family sizes (post-order dynamic programming).
"""

from dataclasses import dataclass

import numpy as np

from ..io.families import FamilyTable, GeneFamily
from ..io.trees import Tree
from .birthdeath import TransitionCache


@dataclass(frozen=True)
class FamilySizeRange:
    """
    Family sizes tracked by the likelihood computation.

    Attributes
    ----------
    min : int
        Smallest size at internal nodes
    max : int
        Largest size at internal nodes
    root_min : int
        Smallest candidate root size (at least one)
    root_max : int
        Largest candidate root size
    """

    min: int
    max: int
    root_min: int
    root_max: int

    @classmethod
    def from_max_count(cls, max_count: int) -> "FamilySizeRange":
        """
        Default range for data whose largest observed size is ``max_count``.

        Small families get fifty sizes of headroom and at least thirty
        candidate root sizes; very large families get twenty percent.
        """
        if max_count >= 1250:
            upper = max_count + max_count // 5
            return cls(min=0, max=upper, root_min=1, root_max=upper)
        return cls(
            min=0,
            max=max_count + 50,
            root_min=1,
            root_max=max(30, int(np.rint(max_count * 1.25))),
        )

    @property
    def n_states(self) -> int:
        """Size of the transition matrices (sizes 0 .. n_states - 1)."""
        return max(self.max, self.root_max) + 1

    @property
    def root_sizes(self) -> np.ndarray:
        return np.arange(self.root_min, self.root_max + 1)

    @property
    def n_root_sizes(self) -> int:
        return self.root_max - self.root_min + 1


def compute_tree_likelihood(
    tree: Tree,
    counts: np.ndarray,
    cache: TransitionCache,
    size_range: FamilySizeRange,
    cluster: int = 0,
) -> np.ndarray:
    """
    Likelihood of one family's leaf counts for every candidate root size.

    Nodes are visited in post-order. A leaf's vector is one at its observed
    size and zero elsewhere; an internal node's vector at size ``s`` is the
    product over its children of ``sum_c P_child[s, c] * L_child[c]``.

    Parameters
    ----------
    tree : Tree
        Species tree
    counts : ndarray, shape (n_leaves,)
        Observed sizes in tree leaf order
    cache : TransitionCache
        Transition matrices for the current parameters (read only)
    size_range : FamilySizeRange
        Tracked sizes
    cluster : int
        Mixture cluster whose rates are used

    Returns
    -------
    ndarray, shape (n_root_sizes,)
        Likelihood indexed by root size ``root_min + i``
    """
    n_states = cache.n_states
    leaf_index = {node.id: i for i, node in enumerate(tree.leaves())}
    internal = np.zeros(n_states)
    internal[size_range.min:size_range.max + 1] = 1.0

    partial = {}
    for node in tree.postorder():
        if node.is_leaf:
            vec = np.zeros(n_states)
            count = int(counts[leaf_index[node.id]])
            if count < n_states:
                vec[count] = 1.0
        else:
            vec = np.ones(n_states)
            for child in node.children:
                vec *= cache.matrix(child, cluster) @ partial.pop(child.id)
            if not node.is_root:
                vec *= internal
        partial[node.id] = vec

    return partial[tree.root.id][size_range.root_min:size_range.root_max + 1]


def compute_family_likelihoods(
    tree: Tree,
    families: FamilyTable,
    cache: TransitionCache,
    size_range: FamilySizeRange,
    cluster: int = 0,
) -> list[np.ndarray]:
    """
    Root likelihood vectors for every family.

    Duplicate families reuse the canonical family's vector instead of
    recomputing it.
    """
    results: list[np.ndarray] = []
    for family in families:
        if family.is_canonical:
            results.append(compute_tree_likelihood(tree, family.counts, cache, size_range, cluster))
        else:
            results.append(results[family.ref])
    return results


def family_size_range(family: GeneFamily) -> FamilySizeRange:
    """Size range sized for a single family (per-family search)."""
    return FamilySizeRange.from_max_count(family.max_count)
