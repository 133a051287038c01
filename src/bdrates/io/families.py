"""
Gene family count tables.

A family table holds, for every gene family, its observed size in each
species of the tree. Families with identical count vectors are linked to
the first such family so the likelihood engine evaluates them only once.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional, Sequence

import numpy as np

from .trees import Tree


@dataclass
class GeneFamily:
    """
    One gene family.

    Attributes
    ----------
    id : str
        Family identifier
    counts : ndarray, shape (n_species,)
        Observed family size per species, in tree leaf order
    description : Optional[str]
        Free-text description
    index : int
        Position of the family in its table
    ref : int
        Index of the canonical family with the same counts (equal to
        ``index`` for canonical families)
    best_root_size : Optional[int]
        Root size with the highest posterior at the last evaluation, or None
        when unset
    lambdas : Optional[ndarray]
        Rates fitted for this family in per-family search
    """

    id: str
    counts: np.ndarray
    description: Optional[str] = None
    index: int = 0
    ref: int = 0
    best_root_size: Optional[int] = None
    lambdas: Optional[np.ndarray] = None

    @property
    def is_canonical(self) -> bool:
        return self.ref == self.index

    @property
    def max_count(self) -> int:
        return int(self.counts.max()) if self.counts.size else 0


@dataclass
class FamilyTable:
    """
    Per-species gene family sizes for a set of families.

    Attributes
    ----------
    species : list[str]
        Species names, in tree leaf order
    families : list[GeneFamily]
        Families in input order, with duplicate references resolved
    """

    species: list[str]
    families: list[GeneFamily] = field(default_factory=list)

    def __post_init__(self):
        self._link_duplicates()

    def _link_duplicates(self) -> None:
        first_seen = {}
        for i, family in enumerate(self.families):
            family.index = i
            key = tuple(int(c) for c in family.counts)
            family.ref = first_seen.setdefault(key, i)

    def __len__(self) -> int:
        return len(self.families)

    def __iter__(self) -> Iterator[GeneFamily]:
        return iter(self.families)

    def __getitem__(self, i: int) -> GeneFamily:
        return self.families[i]

    @property
    def max_count(self) -> int:
        """Largest family size observed anywhere in the table."""
        return max((f.max_count for f in self.families), default=0)

    def canonical(self) -> list[GeneFamily]:
        """Families that are not duplicates of an earlier family."""
        return [f for f in self.families if f.is_canonical]

    def reset_root_sizes(self) -> None:
        """Mark every family's best root size as unset."""
        for family in self.families:
            family.best_root_size = None

    @classmethod
    def from_counts(
        cls,
        counts: Sequence[Sequence[int]] | np.ndarray,
        species: Sequence[str],
        ids: Optional[Sequence[str]] = None,
        descriptions: Optional[Sequence[Optional[str]]] = None,
    ) -> "FamilyTable":
        """
        Build a table from an in-memory count matrix.

        Parameters
        ----------
        counts : array-like, shape (n_families, n_species)
            Non-negative integer family sizes
        species : sequence of str
            Species names matching the columns of ``counts``
        ids : sequence of str, optional
            Family identifiers (default ``family_<i>``)
        descriptions : sequence of str, optional
            Family descriptions
        """
        matrix = np.asarray(counts, dtype=int)
        if matrix.ndim != 2 or matrix.shape[1] != len(species):
            raise ValueError(
                f"Count matrix must have shape (n_families, {len(species)}), "
                f"got {matrix.shape}"
            )
        if (matrix < 0).any():
            raise ValueError("Family sizes must be non-negative")
        n = matrix.shape[0]
        if ids is None:
            ids = [f"family_{i}" for i in range(n)]
        if descriptions is None:
            descriptions = [None] * n
        families = [
            GeneFamily(id=str(ids[i]), counts=matrix[i].copy(), description=descriptions[i])
            for i in range(n)
        ]
        return cls(species=list(species), families=families)

    @classmethod
    def from_file(cls, filepath: Path | str, tree: Optional[Tree] = None) -> "FamilyTable":
        """
        Read a tab-separated family table.

        The first line is a header ``Desc<TAB>Family ID<TAB>species...``;
        each following line holds a description, an identifier and one
        count per species. When ``tree`` is given, columns are reordered to
        the tree's leaf order and columns for species not in the tree are
        dropped.

        Raises
        ------
        ValueError
            If the table is malformed or a tree leaf has no column
        """
        filepath = Path(filepath)
        with open(filepath) as f:
            lines = [line.rstrip('\r\n') for line in f if line.strip()]
        if not lines:
            raise ValueError(f"Empty family table: {filepath}")

        header = lines[0].split('\t')
        if len(header) < 3:
            raise ValueError(f"Family table header needs Desc, ID and species columns: {filepath}")
        columns = header[2:]

        if tree is not None:
            missing = [name for name in tree.leaf_names if name not in columns]
            if missing:
                raise ValueError(f"Species missing from family table: {', '.join(missing)}")
            species = list(tree.leaf_names)
            order = [columns.index(name) for name in species]
        else:
            species = columns
            order = list(range(len(columns)))

        ids, descriptions, rows = [], [], []
        for lineno, line in enumerate(lines[1:], start=2):
            fields = line.split('\t')
            if len(fields) != len(header):
                raise ValueError(
                    f"Line {lineno}: expected {len(header)} fields, got {len(fields)}"
                )
            try:
                values = [int(v) for v in fields[2:]]
            except ValueError:
                raise ValueError(f"Line {lineno}: family sizes must be integers")
            descriptions.append(fields[0] or None)
            ids.append(fields[1])
            rows.append([values[j] for j in order])

        return cls.from_counts(
            np.array(rows, dtype=int).reshape(len(rows), len(species)),
            species,
            ids=ids,
            descriptions=descriptions,
        )
