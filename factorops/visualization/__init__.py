#!/usr/bin/env python3
"""
Visualization modules for equality-network EP
"""

from .sweep_plot import SweepVisualization

__all__ = [
    'SweepVisualization'
]
