#!/usr/bin/env python3
"""
Convergence and belief plots for EP on equality networks
"""

import numpy as np
import matplotlib.pyplot as plt
from typing import Dict, Optional

from ..distributions import Discrete
from ..inference import EqualityNetworkEP


class SweepVisualization:
    """Plots the per-sweep message change and the final beliefs of a run."""

    def __init__(self, ep: EqualityNetworkEP, exact_marginals: Optional[Dict[str, Discrete]] = None):
        self.ep = ep
        self.exact_marginals = exact_marginals
        self.fig = None
        self.conv_ax = None
        self.belief_ax = None

    def setup_figure(self):
        self.fig, (self.conv_ax, self.belief_ax) = plt.subplots(1, 2, figsize=(13, 5))
        self.fig.suptitle('EP on observed-equality network')

    def plot_convergence(self, ax=None):
        """Largest message change per sweep on a log scale."""
        ax = ax if ax is not None else self.conv_ax
        ax.clear()
        history = np.asarray(self.ep.history, dtype=float)
        if history.size:
            sweeps = np.arange(1, history.size + 1)
            # Zero changes cannot be drawn on a log axis
            floor = np.finfo(float).tiny
            ax.semilogy(sweeps, np.maximum(history, floor), 'b-o', linewidth=2, markersize=4,
                        label='Max message change')
            ax.axhline(max(self.ep.settings.tolerance, floor), color='r', linestyle='--',
                       alpha=0.7, label='Tolerance')
        ax.set_xlabel('Sweep')
        ax.set_ylabel('Max |change|')
        ax.set_title('Message convergence')
        ax.grid(True, alpha=0.3)
        ax.legend(loc='upper right')

    def plot_beliefs(self, ax=None):
        """Grouped bars of each variable's belief, with exact marginals as markers."""
        ax = ax if ax is not None else self.belief_ax
        ax.clear()
        beliefs = self.ep.beliefs or self.ep.compute_beliefs()
        variables = list(beliefs)
        num_states = max(b.dimension for b in beliefs.values())
        width = 0.8 / num_states
        positions = np.arange(len(variables))
        colors = plt.cm.viridis(np.linspace(0.15, 0.85, num_states))

        for k in range(num_states):
            heights = [beliefs[v].probs[k] if k < beliefs[v].dimension else 0.0 for v in variables]
            offsets = positions - 0.4 + (k + 0.5) * width
            ax.bar(offsets, heights, width, color=colors[k], alpha=0.8, label=f'state {k}')
            if self.exact_marginals is not None:
                exact = [self.exact_marginals[v].probs[k] if k < self.exact_marginals[v].dimension else 0.0
                         for v in variables]
                ax.plot(offsets, exact, 'kx', markersize=7)

        ax.set_xticks(positions)
        ax.set_xticklabels(variables)
        ax.set_ylim(0.0, 1.05)
        ax.set_ylabel('Probability')
        title = 'Beliefs'
        if self.exact_marginals is not None:
            title += ' (x: exact)'
        ax.set_title(title)
        ax.legend(loc='upper right', fontsize='small')

    def show(self, block: bool = True):
        """Draw both panels and open the window."""
        if self.fig is None:
            self.setup_figure()
        self.plot_convergence()
        self.plot_beliefs()
        self.fig.tight_layout()
        plt.show(block=block)
