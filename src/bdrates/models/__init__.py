"""
Model structure: rate partitions and parameter vector layouts.
"""

from bdrates.models.parameters import ModelParameters, ParameterLayout
from bdrates.models.partition import RatePartition

__all__ = ["ModelParameters", "ParameterLayout", "RatePartition"]
