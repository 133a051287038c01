"""
Result objects and report writers for lambda searches.
"""

from bdrates.analysis.report import (
    family_fit_paths,
    near_boundary,
    tree_string_with_rates,
    write_family_fits,
    write_family_lines,
)
from bdrates.analysis.results import FamilyFit, GridResult, LambdaSearchResult, format_memberships

__all__ = [
    "FamilyFit",
    "GridResult",
    "LambdaSearchResult",
    "family_fit_paths",
    "format_memberships",
    "near_boundary",
    "tree_string_with_rates",
    "write_family_fits",
    "write_family_lines",
]
