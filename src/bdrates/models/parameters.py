"""
Flat parameter vectors for the birth-death rate search.

The optimizer works on a single real vector laid out as::

    [lambdas..., mus..., weights...]

- lambdas: one rate per rate class, for every free cluster
- mus: optional extinction rates, same shape as the lambdas
- weights: k - 1 free mixture weights when clustering with k clusters;
  the last weight is implied by the sum-to-one constraint

With ``fixcluster0`` the first cluster has all rates fixed at zero and
contributes no lambdas or mus to the vector.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from ..errors import ParameterCountError


@dataclass
class ModelParameters:
    """
    Parameters unpacked from a flat vector.

    Attributes
    ----------
    lambdas : ndarray, shape (n_clusters, n_lambdas)
        Birth rates per cluster and rate class
    mus : Optional[ndarray], shape (n_clusters, n_lambdas)
        Death rates, or None when birth and death rates are equal
    weights : ndarray, shape (n_clusters,)
        Mixture weights (``[1.0]`` without clustering)
    """

    lambdas: np.ndarray
    mus: Optional[np.ndarray]
    weights: np.ndarray

    @property
    def n_clusters(self) -> int:
        return self.lambdas.shape[0]


@dataclass(frozen=True)
class ParameterLayout:
    """
    Shape of the parameter vector for one search.

    Parameters
    ----------
    n_lambdas : int
        Number of rate classes in the rate partition
    n_mus : int
        0 (mu tied to lambda) or ``n_lambdas`` (separate extinction rates)
    k : int
        Number of mixture clusters; 0 disables clustering
    fixcluster0 : bool
        Fix all rates of the first cluster at zero
    """

    n_lambdas: int
    n_mus: int = 0
    k: int = 0
    fixcluster0: bool = False

    def __post_init__(self):
        if self.n_lambdas < 1:
            raise ValueError("At least one rate class is required")
        if self.n_mus not in (0, self.n_lambdas):
            raise ValueError("n_mus must be 0 or equal to n_lambdas")
        if self.k < 0:
            raise ValueError("Cluster count must be non-negative")
        if self.fixcluster0 and self.k < 2:
            raise ValueError("fixcluster0 requires at least two clusters")

    @property
    def clustered(self) -> bool:
        return self.k > 0

    @property
    def n_clusters(self) -> int:
        return self.k if self.k > 0 else 1

    @property
    def free_clusters(self) -> int:
        """Clusters whose rates are free parameters."""
        return self.n_clusters - int(self.fixcluster0)

    @property
    def n_lambda_params(self) -> int:
        return self.n_lambdas * self.free_clusters

    @property
    def n_mu_params(self) -> int:
        return self.n_mus * self.free_clusters

    @property
    def n_rate_params(self) -> int:
        return self.n_lambda_params + self.n_mu_params

    @property
    def n_weights(self) -> int:
        return self.k - 1 if self.k > 0 else 0

    @property
    def weight_offset(self) -> int:
        """Index of the first mixture weight in the vector."""
        return self.n_rate_params

    @property
    def n_params(self) -> int:
        return self.n_rate_params + self.n_weights

    def validate(
        self,
        lambdas: Sequence[float],
        mus: Optional[Sequence[float]] = None,
        weights: Optional[Sequence[float]] = None,
    ) -> None:
        """
        Check user-supplied values against the layout.

        Raises
        ------
        ParameterCountError
            If the number of lambdas, mus or weights does not match
        """
        if len(lambdas) != self.n_lambda_params:
            raise ParameterCountError("lambda", self.n_lambda_params, len(lambdas))
        if self.n_mus and (mus is None or len(mus) != self.n_mu_params):
            raise ParameterCountError("mu", self.n_mu_params, 0 if mus is None else len(mus))
        if self.clustered and weights is not None and len(weights) != self.k:
            raise ParameterCountError("cluster weight", self.k, len(weights))

    def assemble(
        self,
        lambdas: Sequence[float],
        mus: Optional[Sequence[float]] = None,
        weights: Optional[Sequence[float]] = None,
    ) -> np.ndarray:
        """
        Build a flat vector from user-supplied values.

        ``weights`` holds all k cluster weights; the last one is dropped
        from the vector. Without weights, clusters start equally weighted.
        """
        self.validate(lambdas, mus, weights)
        parts = [np.asarray(lambdas, dtype=float)]
        if self.n_mus:
            parts.append(np.asarray(mus, dtype=float))
        if self.clustered:
            w = np.full(self.k, 1.0 / self.k) if weights is None else np.asarray(weights, dtype=float)
            parts.append(w[:-1])
        return np.concatenate(parts)

    def split(self, vector: np.ndarray) -> ModelParameters:
        """Unpack a flat vector into per-cluster rates and weights."""
        vector = np.asarray(vector, dtype=float)
        if vector.shape != (self.n_params,):
            raise ParameterCountError("parameter", self.n_params, vector.size)

        def rates(offset: int, count: int) -> np.ndarray:
            free = vector[offset:offset + count].reshape(self.free_clusters, self.n_lambdas)
            if self.fixcluster0:
                return np.vstack([np.zeros((1, self.n_lambdas)), free])
            return free

        lambdas = rates(0, self.n_lambda_params)
        mus = rates(self.n_lambda_params, self.n_mu_params) if self.n_mus else None

        if self.clustered:
            free_weights = vector[self.weight_offset:]
            weights = np.append(free_weights, 1.0 - free_weights.sum())
        else:
            weights = np.ones(1)
        return ModelParameters(lambdas=lambdas, mus=mus, weights=weights)

    def is_valid(self, vector: np.ndarray) -> bool:
        """
        Whether a vector describes a usable model.

        Every rate and weight must be non-negative and the free weights must
        not sum past one.
        """
        vector = np.asarray(vector, dtype=float)
        if (vector < 0).any():
            return False
        if self.clustered and vector[self.weight_offset:].sum() > 1:
            return False
        return True

    def randomize(self, rng: np.random.Generator, max_branch_length: float) -> np.ndarray:
        """
        Draw a random starting vector.

        Each rate is drawn uniformly from ``[0, 1 / max_branch_length)`` so
        that ``rate * max_branch_length`` stays under one. Cluster weights
        are drawn uniformly and renormalized.
        """
        scale = 1.0 / max_branch_length if max_branch_length > 0 else 1.0
        parts = [rng.uniform(size=self.n_rate_params) * scale]
        if self.clustered:
            w = rng.uniform(size=self.k)
            w /= w.sum()
            parts.append(w[:-1])
        return np.concatenate(parts)
