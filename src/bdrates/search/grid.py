"""
Score evaluation over a grid of lambda values.
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from ..analysis.results import GridResult
from ..context import LambdaContext
from ..errors import ParameterCountError
from ..models.parameters import ParameterLayout
from .objectives import evaluate_global

# Negative scores beyond this are treated as the worst possible value
CATASTROPHIC = 1e300


@dataclass(frozen=True)
class LambdaRange:
    """
    Evenly spaced values ``start, start + step, ..., end`` for one rate class.

    Examples
    --------
    >>> LambdaRange.parse("0.003:0.001:0.005").values()
    [0.003, 0.004, 0.005]
    """

    start: float
    step: float
    end: float

    @classmethod
    def parse(cls, text: str) -> "LambdaRange":
        """Parse ``start:step:end``."""
        parts = text.split(':')
        if len(parts) != 3:
            raise ValueError(f"Lambda range must look like start:step:end, got {text!r}")
        try:
            start, step, end = (float(p) for p in parts)
        except ValueError:
            raise ValueError(f"Lambda range values must be numbers, got {text!r}")
        return cls(start, step, end)

    @property
    def n_points(self) -> int:
        if self.step == 0 or self.start == self.end:
            return 1
        n = 1 + int(np.rint((self.end - self.start) / self.step))
        if n < 1:
            raise ValueError(f"Lambda range step has the wrong sign: {self}")
        return n

    def value(self, i: int) -> float:
        return self.start + self.step * i

    def values(self) -> list[float]:
        return [round(self.value(i), 12) for i in range(self.n_points)]

    def __str__(self) -> str:
        return f"{self.start:g} : {self.step:g} : {self.end:g}"


def evaluate_grid(ctx: LambdaContext, ranges: Sequence[LambdaRange]) -> GridResult:
    """
    Log posterior at every point of the Cartesian product of ``ranges``.

    Points are enumerated with the last rate class varying fastest. When a
    point's score is catastrophically bad, every family's best root size is
    reset to unset; the recorded score is left as is.

    Raises
    ------
    ParameterCountError
        If the number of ranges differs from the number of rate classes
    """
    if len(ranges) != ctx.partition.n_classes:
        raise ParameterCountError("lambda range", ctx.partition.n_classes, len(ranges))

    layout = ParameterLayout(n_lambdas=len(ranges))
    ctx.ensure_prior()
    for j, r in enumerate(ranges, start=1):
        ctx.log(f"Distribution {j}: {r}")

    grid = GridResult()
    shape = tuple(r.n_points for r in ranges)
    for idx in np.ndindex(*shape):
        point = tuple(r.value(i) for r, i in zip(ranges, idx))
        value = -evaluate_global(ctx, layout, np.array(point))
        bad = -value > CATASTROPHIC
        if bad:
            ctx.families.reset_root_sizes()
        grid.points.append(point)
        grid.scores.append(value)
        grid.degenerate.append(bad)
    return grid
