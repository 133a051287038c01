"""
Species tree parsing and traversal.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional


@dataclass(eq=False)
class TreeNode:
    """
    Species tree node.

    Attributes
    ----------
    id : int
        Node identifier (preorder position)
    name : Optional[str]
        Node name (species name for leaves, optional label for internals)
    parent : Optional[TreeNode]
        Parent node
    children : list[TreeNode]
        Child nodes
    branch_length : float
        Branch length to parent
    """

    id: int
    name: Optional[str] = None
    parent: Optional["TreeNode"] = None
    children: list["TreeNode"] = field(default_factory=list)
    branch_length: float = 0.0

    @property
    def is_leaf(self) -> bool:
        """Check if node is a leaf."""
        return len(self.children) == 0

    @property
    def is_root(self) -> bool:
        return self.parent is None


@dataclass
class Tree:
    """
    Rooted species tree.

    Attributes
    ----------
    root : TreeNode
        Root node of the tree
    n_nodes : int
        Total number of nodes
    n_leaves : int
        Number of leaf nodes
    leaf_names : list[str]
        Names of leaf nodes, left to right
    """

    root: TreeNode
    n_nodes: int
    n_leaves: int
    leaf_names: list[str]

    @classmethod
    def from_newick(cls, newick_string: str) -> "Tree":
        """
        Parse Newick format tree string.

        The trailing semicolon is optional. Bracketed comments are ignored.

        Parameters
        ----------
        newick_string : str
            Newick format tree

        Returns
        -------
        Tree
            Parsed tree

        Raises
        ------
        ValueError
            If the string is not a well-formed tree or a branch length is
            negative
        """
        newick = re.sub(r'\[.*?\]', '', newick_string)
        newick = ''.join(newick.split())
        if not newick:
            raise ValueError("Invalid Newick format: no tree found")
        if newick.endswith(';'):
            newick = newick[:-1]
        if ';' in newick:
            raise ValueError("Invalid Newick format: unexpected ';'")

        node_id_counter = [0]

        def parse_node(s: str, start: int, parent: Optional[TreeNode] = None) -> tuple[TreeNode, int]:
            """Parse a node from position start in string s."""
            node = TreeNode(id=node_id_counter[0], parent=parent)
            node_id_counter[0] += 1
            pos = start

            if pos < len(s) and s[pos] == '(':
                pos += 1
                while True:
                    child, pos = parse_node(s, pos, node)
                    node.children.append(child)
                    if pos < len(s) and s[pos] == ',':
                        pos += 1
                        continue
                    elif pos < len(s) and s[pos] == ')':
                        pos += 1
                        break
                    else:
                        raise ValueError(f"Expected ',' or ')' at position {pos}")

            name_start = pos
            while pos < len(s) and s[pos] not in ',:();':
                pos += 1
            if pos > name_start:
                node.name = s[name_start:pos]

            if pos < len(s) and s[pos] == ':':
                pos += 1
                length_start = pos
                while pos < len(s) and s[pos] not in ',();':
                    pos += 1
                try:
                    node.branch_length = float(s[length_start:pos])
                except ValueError:
                    raise ValueError(f"Invalid branch length: {s[length_start:pos]}")
                if node.branch_length < 0:
                    raise ValueError(f"Negative branch length: {s[length_start:pos]}")

            return node, pos

        root, pos = parse_node(newick, 0, None)
        if pos != len(newick):
            raise ValueError(f"Unexpected trailing characters at position {pos}")

        leaf_names = []
        stack = [root]
        n_nodes = 0
        while stack:
            node = stack.pop()
            n_nodes += 1
            if node.is_leaf:
                leaf_names.append(node.name if node.name else str(node.id))
            stack.extend(reversed(node.children))

        return cls(
            root=root,
            n_nodes=n_nodes,
            n_leaves=len(leaf_names),
            leaf_names=leaf_names,
        )

    @classmethod
    def from_file(cls, filepath: Path | str) -> "Tree":
        """Read a Newick tree from a file."""
        return cls.from_newick(Path(filepath).read_text())

    def postorder(self) -> list[TreeNode]:
        """
        Return nodes in post-order traversal (leaves to root).

        Returns
        -------
        list[TreeNode]
            Nodes in post-order
        """
        result = []

        def traverse(node: TreeNode) -> None:
            for child in node.children:
                traverse(child)
            result.append(node)

        traverse(self.root)
        return result

    def preorder(self) -> list[TreeNode]:
        """Return nodes in pre-order traversal (root first)."""
        result = []
        stack = [self.root]
        while stack:
            node = stack.pop()
            result.append(node)
            stack.extend(reversed(node.children))
        return result

    def leaves(self) -> list[TreeNode]:
        """Leaf nodes, left to right (same order as ``leaf_names``)."""
        return [node for node in self.preorder() if node.is_leaf]

    def branch_nodes(self) -> list[TreeNode]:
        """Nodes that own a branch to their parent, in post-order."""
        return [node for node in self.postorder() if node.parent is not None]

    def max_branch_length(self) -> float:
        """
        Longest branch in the tree.

        Rates are only valid while ``rate * max_branch_length < 1``.
        """
        lengths = [node.branch_length for node in self.branch_nodes()]
        return max(lengths) if lengths else 0.0

    def to_newick(self, label: Optional[Callable[[TreeNode], str]] = None) -> str:
        """
        Render the tree as a Newick string.

        Parameters
        ----------
        label : callable, optional
            Returns the text written for a node (name plus any branch
            annotation). Defaults to ``name:branch_length``.
        """
        if label is None:
            def label(node: TreeNode) -> str:
                text = node.name or ''
                if node.parent is not None:
                    text += f":{node.branch_length:g}"
                return text

        def render(node: TreeNode) -> str:
            if node.is_leaf:
                return label(node)
            inner = ','.join(render(child) for child in node.children)
            return f"({inner}){label(node)}"

        return render(self.root) + ';'
