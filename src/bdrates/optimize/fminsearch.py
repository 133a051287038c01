"""
Derivative-free simplex minimization.

Thin stateful wrapper around scipy's Nelder-Mead so every search mode
configures tolerances and reads results the same way.
"""

from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
from scipy.optimize import minimize


@dataclass
class FMinResult:
    """
    Outcome of one simplex minimization.

    Attributes
    ----------
    x : ndarray
        Best vector found
    fun : float
        Objective value at ``x``
    iterations : int
        Simplex iterations performed
    evaluations : int
        Objective evaluations performed
    converged : bool
        False when the iteration or evaluation budget ran out first
    """

    x: np.ndarray
    fun: float
    iterations: int
    evaluations: int
    converged: bool
    message: str = ""


class FMinSearch:
    """
    Nelder-Mead minimizer with absolute x and f tolerances.

    The search stops when both the spread of simplex vertices falls below
    ``tolx`` and the spread of their objective values falls below ``tolf``,
    or when the iteration budget is exhausted. The objective may return
    ``inf`` to reject a point.

    Parameters
    ----------
    objective : callable
        Function of a 1-D vector returning a float to minimize
    tolx : float
        Vertex spread tolerance
    tolf : float
        Objective spread tolerance
    maxiter : int, optional
        Iteration budget (default ``1000 * n_params``)

    Examples
    --------
    >>> fm = FMinSearch(lambda x: float((x[0] - 2.0) ** 2), tolx=1e-8, tolf=1e-8)
    >>> result = fm.minimize(np.array([0.5]))
    >>> round(result.x[0], 4)
    2.0
    """

    def __init__(
        self,
        objective: Callable[[np.ndarray], float],
        tolx: float = 1e-6,
        tolf: float = 1e-6,
        maxiter: Optional[int] = None,
    ):
        self.objective = objective
        self.tolx = tolx
        self.tolf = tolf
        self.maxiter = maxiter
        self.result: Optional[FMinResult] = None

    @property
    def iters(self) -> int:
        return self.result.iterations if self.result is not None else 0

    def minimize(self, x0: np.ndarray) -> FMinResult:
        """
        Run a fresh search from ``x0``.

        State from any previous run is discarded. ``x0`` is copied and never
        modified.
        """
        self.result = None
        x0 = np.array(x0, dtype=float, copy=True)
        options = {'xatol': self.tolx, 'fatol': self.tolf, 'disp': False}
        maxiter = self.maxiter if self.maxiter is not None else 1000 * x0.size
        options['maxiter'] = maxiter
        options['maxfev'] = maxiter * (x0.size + 1) * 2

        opt = minimize(self.objective, x0, method='Nelder-Mead', options=options)

        self.result = FMinResult(
            x=np.asarray(opt.x, dtype=float).reshape(x0.shape),
            fun=float(opt.fun),
            iterations=int(opt.nit),
            evaluations=int(opt.nfev),
            converged=bool(opt.success),
            message=str(opt.message),
        )
        return self.result
