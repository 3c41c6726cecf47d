#!/usr/bin/env python3
"""
State kept for a variable sampled by Gibbs sampling.
"""

import numpy as np
from typing import Any, List, Optional


class GibbsMarginal:
    """Last conditional, last sample and the retained samples of one variable.

    Args:
        like: A message of the variable's type, used as the initial conditional
        burn_in: Number of initial samples to discard
        thin: Keep every ``thin``-th sample after burn-in
        rng: numpy random generator
    """

    def __init__(self, like: Any, burn_in: int = 0, thin: int = 1,
                 rng: Optional[np.random.Generator] = None):
        if burn_in < 0 or thin < 1:
            raise ValueError(f"Invalid burn_in={burn_in} / thin={thin}")
        self.last_conditional = like.to_uniform()
        self.last_sample = None
        self.samples: List[Any] = []
        self.burn_in = burn_in
        self.thin = thin
        self.rng = np.random.default_rng() if rng is None else rng
        self.count = 0

    def post_update(self, conditional: Any) -> Any:
        """Record a new conditional and draw the next sample from it."""
        self.last_conditional = conditional
        self.last_sample = conditional.sample(self.rng)
        self.count += 1
        kept = self.count - self.burn_in
        if kept > 0 and (kept - 1) % self.thin == 0:
            self.samples.append(self.last_sample)
        return self.last_sample
