#!/usr/bin/env python3
"""
Expectation propagation over a network of discrete variables tied by
observed pairwise equalities.

Each variable is a replicate factor (its prior is the definition, its
factors are the uses). Each factor node is an equality factor whose
``are_equal`` output is observed.
"""

import logging
import numpy as np
import networkx as nx
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .buffers import Buffer
from .distributions import Discrete
from .errors import ShapeMismatchError
from .evidence import EvidenceAccumulator
from .metadata import should_skip
from .operators import DiscreteAreEqualOp, ReplicateOp, ReplicateOpDivide, ReplicateOpNoDivide
from .utils.graph_utils import factor_nodes, variable_nodes

logger = logging.getLogger(__name__)


@dataclass
class SweepSettings:
    """Schedule options.

    Attributes:
        use_divide: Send variable-to-factor messages by dividing a buffered
            marginal instead of recomputing leave-one-out products
        max_sweeps: Upper bound on sweeps in ``run``
        tolerance: Stop once no message moves by more than this
    """
    use_divide: bool = True
    max_sweeps: int = 50
    tolerance: float = 1e-10


class EqualityNetworkEP:
    """EP message passing for observed-equality networks."""

    def __init__(self, graph: nx.Graph, priors: Dict[str, Discrete],
                 observations: Dict[str, bool], settings: Optional[SweepSettings] = None):
        self.graph = graph
        self.priors = priors
        self.observations = observations
        self.settings = settings if settings is not None else SweepSettings()
        self.variables = variable_nodes(graph)
        self.factors = factor_nodes(graph)
        self._validate()

        self.messages: Dict[Tuple[str, str], Discrete] = {}
        self.marginals: Dict[str, Buffer] = {}
        self.to_defs: Dict[str, Buffer] = {}
        self.beliefs: Dict[str, Discrete] = {}
        self.history: List[float] = []
        self.initialize_messages()

    def _validate(self):
        missing = [v for v in self.variables if v not in self.priors]
        if missing:
            raise ValueError(f"No prior for variables {missing}")
        missing = [f for f in self.factors if f not in self.observations]
        if missing:
            raise ValueError(f"No observation for factors {missing}")
        for factor in self.factors:
            a, b = self.graph.nodes[factor]['variables']
            if self.priors[a].dimension != self.priors[b].dimension:
                raise ShapeMismatchError(
                    f"{factor} compares {a} ({self.priors[a].dimension} states) "
                    f"with {b} ({self.priors[b].dimension} states)")

    def _factors_of(self, var_node: str) -> List[str]:
        return sorted(self.graph.neighbors(var_node))

    def initialize_messages(self):
        """Initialize all messages to uniform and rebuild the replicate buffers."""
        for factor in self.factors:
            for var_node in self.graph.nodes[factor]['variables']:
                uniform = self.priors[var_node].to_uniform()
                self.messages[(var_node, factor)] = uniform
                self.messages[(factor, var_node)] = uniform.clone()
        for var_node in self.variables:
            prior = self.priors[var_node]
            self.to_defs[var_node] = ReplicateOpDivide.to_def_init(prior)
            self.marginals[var_node] = ReplicateOpDivide.marginal_init(prior)
        self.history = []

    def _uses(self, var_node: str) -> List[Discrete]:
        return [self.messages[(f, var_node)] for f in self._factors_of(var_node)]

    def variable_to_factor_messages(self, var_node: str) -> Dict[Tuple[str, str], Discrete]:
        """Messages from one variable to each of its factors.

        With ``use_divide`` the ``to_def`` and ``marginal`` buffers are
        refreshed first and each message is ``marginal / use``.
        """
        factors = self._factors_of(var_node)
        uses = self._uses(var_node)
        prior = self.priors[var_node]
        if not factors:
            return {}

        if self.settings.use_divide:
            to_def = self.to_defs[var_node]
            marginal = self.marginals[var_node]
            if should_skip(ReplicateOpDivide.to_def, uses=uses):
                to_def.write(prior.to_uniform())
            else:
                ReplicateOpDivide.to_def(uses, to_def)
            ReplicateOpDivide.marginal(to_def, prior, marginal)
            # A uniform marginal can still hide non-uniform leave-one-out messages
            return {(var_node, factor): ReplicateOpDivide.uses_average_conditional(uses, prior, marginal, i)
                    for i, factor in enumerate(factors)}

        return {(var_node, factor): ReplicateOpNoDivide.uses_average_conditional(uses, prior, i)
                for i, factor in enumerate(factors)}

    def factor_to_variable_messages(self, factor_node: str) -> Dict[Tuple[str, str], Discrete]:
        """Messages from one observed equality factor to both of its variables."""
        a, b = self.graph.nodes[factor_node]['variables']
        observed = self.observations[factor_node]
        return {
            (factor_node, a): DiscreteAreEqualOp.a_average_conditional(
                observed, self.messages[(b, factor_node)]),
            (factor_node, b): DiscreteAreEqualOp.b_average_conditional(
                observed, self.messages[(a, factor_node)])
        }

    def update_messages(self) -> float:
        """Perform one sweep of message passing.

        All variable-to-factor messages are updated first, then all
        factor-to-variable messages.

        Returns:
            Largest absolute change of any message probability
        """
        max_change = 0.0

        new_messages = {}
        for var_node in self.variables:
            new_messages.update(self.variable_to_factor_messages(var_node))
        max_change = max(max_change, self._apply(new_messages))

        new_messages = {}
        for factor_node in self.factors:
            new_messages.update(self.factor_to_variable_messages(factor_node))
        max_change = max(max_change, self._apply(new_messages))

        self.history.append(max_change)
        return max_change

    def _apply(self, new_messages: Dict[Tuple[str, str], Discrete]) -> float:
        change = 0.0
        for key, new_msg in new_messages.items():
            old_msg = self.messages.get(key)
            if old_msg is not None:
                change = max(change, float(np.max(np.abs(new_msg.probs - old_msg.probs))))
        self.messages.update(new_messages)
        return change

    def run(self) -> int:
        """Sweep until converged or ``max_sweeps`` is reached.

        Returns:
            Number of sweeps performed
        """
        for sweep in range(1, self.settings.max_sweeps + 1):
            change = self.update_messages()
            logger.debug("Sweep %d: max message change %.3e", sweep, change)
            if change <= self.settings.tolerance:
                logger.info("Converged after %d sweeps", sweep)
                return sweep
        logger.warning("No convergence after %d sweeps (last change %.3e)",
                       self.settings.max_sweeps, self.history[-1] if self.history else float('nan'))
        return self.settings.max_sweeps

    def compute_beliefs(self) -> Dict[str, Discrete]:
        """Compute marginal beliefs for all variable nodes."""
        for var_node in self.variables:
            self.beliefs[var_node] = ReplicateOpNoDivide.marginal_average_conditional(
                self._uses(var_node), self.priors[var_node])
        return self.beliefs

    def log_evidence(self) -> float:
        """Sum of per-operator evidence contributions.

        Variable-to-factor messages are recomputed from the current
        factor-to-variable messages so every term sees the same state.
        """
        return self.evidence_terms().total

    def evidence_terms(self) -> EvidenceAccumulator:
        to_factors = {}
        for var_node in self.variables:
            uses = self._uses(var_node)
            for i, factor in enumerate(self._factors_of(var_node)):
                to_factors[(var_node, factor)] = ReplicateOpNoDivide.uses_average_conditional(
                    uses, self.priors[var_node], i)

        accumulator = EvidenceAccumulator()
        for factor in self.factors:
            a, b = self.graph.nodes[factor]['variables']
            accumulator.add(factor, DiscreteAreEqualOp.log_evidence_ratio(
                self.observations[factor], to_factors[(a, factor)], to_factors[(b, factor)]))
        for var_node in self.variables:
            uses = self._uses(var_node)
            if not uses or should_skip(ReplicateOp.log_evidence_ratio, uses=uses):
                continue
            to_uses = [to_factors[(var_node, f)] for f in self._factors_of(var_node)]
            accumulator.add(var_node, ReplicateOp.log_evidence_ratio(
                uses, self.priors[var_node], to_uses))
        return accumulator
