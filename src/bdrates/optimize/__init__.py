"""
Derivative-free minimization shared by every search mode.
"""

from bdrates.optimize.fminsearch import FMinResult, FMinSearch

__all__ = ["FMinResult", "FMinSearch"]
