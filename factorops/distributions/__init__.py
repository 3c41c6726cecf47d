#!/usr/bin/env python3
"""
Message types the operator families run on
"""

from .bernoulli import Bernoulli
from .discrete import Discrete
from .gaussian import Gaussian
from .gaussian_array import GaussianArray
from .string_distribution import StringDistribution

__all__ = [
    'Bernoulli',
    'Discrete',
    'Gaussian',
    'GaussianArray',
    'StringDistribution'
]
