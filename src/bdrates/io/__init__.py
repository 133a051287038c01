"""
Input modules for species trees and gene family tables.

- **Species trees**: Newick format, with branch lengths
- **Family tables**: tab-separated per-species family sizes
"""

from bdrates.io.families import FamilyTable, GeneFamily
from bdrates.io.trees import Tree, TreeNode

__all__ = ["FamilyTable", "GeneFamily", "Tree", "TreeNode"]
