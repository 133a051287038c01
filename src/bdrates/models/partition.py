"""
Rate partitions (lambda structures).

A rate partition assigns every branch of the species tree to one of N rate
classes, numbered 1..N. The default partition puts every branch in class 1.
"""

from dataclasses import dataclass

import numpy as np

from ..errors import LambdaStructureError
from ..io.trees import Tree, TreeNode


@dataclass(frozen=True)
class RatePartition:
    """
    Mapping of tree branches to rate classes.

    Attributes
    ----------
    classes : dict[int, int]
        Node id -> rate class id (1-based) for every non-root node
    n_classes : int
        Number of rate classes

    Examples
    --------
    >>> tree = Tree.from_newick("((A:1,B:1):2,C:3);")
    >>> partition = RatePartition.from_structure(tree, "((1,1)2,2)")
    >>> partition.n_classes
    2
    """

    classes: dict
    n_classes: int

    @classmethod
    def uniform(cls, tree: Tree) -> "RatePartition":
        """Single rate class shared by every branch."""
        return cls(classes={node.id: 1 for node in tree.branch_nodes()}, n_classes=1)

    @classmethod
    def from_structure(cls, tree: Tree, structure: str) -> "RatePartition":
        """
        Parse a lambda structure string against a species tree.

        The structure is the species tree topology in Newick form with
        branch lengths omitted and each node labelled by its integer rate
        class, e.g. ``(((1,1)1,(2,2)2)2,2)``. Class ids must run
        contiguously from 1.

        Raises
        ------
        LambdaStructureError
            If the string cannot be parsed, its topology differs from the
            tree, a branch is unlabelled or the class ids are not contiguous
        """
        try:
            shape = Tree.from_newick(structure)
        except ValueError as e:
            raise LambdaStructureError(f"Cannot parse lambda structure ({e})", structure)

        classes = {}

        def walk(node: TreeNode, label_node: TreeNode) -> None:
            if len(node.children) != len(label_node.children):
                raise LambdaStructureError(
                    "Lambda structure topology does not match the tree", structure
                )
            if node.parent is not None:
                try:
                    class_id = int(label_node.name)
                except (TypeError, ValueError):
                    raise LambdaStructureError(
                        f"Branch label must be a positive integer, got {label_node.name!r}",
                        structure,
                    )
                if class_id < 1:
                    raise LambdaStructureError(
                        f"Branch label must be a positive integer, got {class_id}", structure
                    )
                classes[node.id] = class_id
            for child, label_child in zip(node.children, label_node.children):
                walk(child, label_child)

        walk(tree.root, shape.root)

        used = sorted(set(classes.values()))
        if used != list(range(1, len(used) + 1)):
            raise LambdaStructureError(
                f"Rate classes must be numbered 1..N without gaps, found {used}", structure
            )
        return cls(classes=classes, n_classes=len(used))

    def class_of(self, node: TreeNode) -> int:
        """Rate class (1-based) of the branch above ``node``."""
        return self.classes[node.id]

    def branch_rates(self, rates: np.ndarray) -> dict[int, float]:
        """
        Map a per-class rate vector onto branches.

        Parameters
        ----------
        rates : ndarray, shape (n_classes,)
            One rate per class, class 1 first

        Returns
        -------
        dict[int, float]
            Node id -> rate of the branch above that node
        """
        return {node_id: float(rates[c - 1]) for node_id, c in self.classes.items()}

    def to_structure(self, tree: Tree) -> str:
        """Render the partition back into lambda structure notation."""
        def label(node: TreeNode) -> str:
            return '' if node.parent is None else str(self.classes[node.id])
        return tree.to_newick(label)
