import random
from typing import Callable, Optional


class Sampler:
    """Per-trace probabilistic sampling.

    Parameters
    ----------
    rate : float
        Fraction of traces to keep. Values are clamped to [0, 1].
    random_source : Callable[[], float], optional
        Returns a uniform value in [0, 1). Defaults to ``random.random``.
    """

    def __init__(
        self, rate: float, random_source: Optional[Callable[[], float]] = None
    ):
        self.rate = max(0.0, min(1.0, float(rate)))
        self._random = random_source or random.random

    def should_sample(self, force: bool = False) -> bool:
        if force or self.rate >= 1.0:
            return True
        if self.rate <= 0.0:
            return False
        return self._random() < self.rate

    @property
    def rate_percent(self) -> float:
        return self.rate * 100
