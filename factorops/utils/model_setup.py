#!/usr/bin/env python3
"""
Equality-network problem setup utilities.
Draws random priors and observations for a factor graph and computes the
exact evidence by enumeration for comparison with EP.
"""

import itertools
import logging
import numpy as np
import networkx as nx
from dataclasses import dataclass
from scipy.special import logsumexp
from typing import Dict, Optional, Tuple

from ..distributions import Discrete
from .graph_utils import GraphFactory, factor_nodes, variable_nodes

logger = logging.getLogger(__name__)

# Enumeration cost grows as num_states ** num_variables
MAX_ENUMERATION_STATES = 2_000_000


@dataclass
class ModelConfig:
    """Random equality-network problem.

    Attributes:
        graph_type: Graph topology, see ``GraphFactory.GRAPH_TYPES``
        num_variables: Number of discrete variables
        num_states: Categories per variable
        concentration: Dirichlet concentration of the random priors
        flip_prob: Probability that an observed equality is flipped
        seed: Random seed
    """
    graph_type: str = "chain"
    num_variables: int = 5
    num_states: int = 3
    concentration: float = 1.0
    flip_prob: float = 0.0
    seed: Optional[int] = 0


def random_priors(graph: nx.Graph, num_states: int, rng: np.random.Generator,
                  concentration: float = 1.0) -> Dict[str, Discrete]:
    """Dirichlet-distributed prior for every variable node."""
    alpha = np.full(num_states, concentration)
    return {v: Discrete(rng.dirichlet(alpha)) for v in variable_nodes(graph)}


def sample_observations(graph: nx.Graph, priors: Dict[str, Discrete], rng: np.random.Generator,
                        flip_prob: float = 0.0) -> Tuple[Dict[str, bool], Dict[str, int]]:
    """Observe ``x_a == x_b`` on every factor for a ground truth drawn from the priors.

    Returns:
        (observations, ground_truth)
    """
    truth = {v: priors[v].sample(rng) for v in variable_nodes(graph)}
    observations = {}
    for factor in factor_nodes(graph):
        a, b = graph.nodes[factor]['variables']
        equal = truth[a] == truth[b]
        if flip_prob > 0 and rng.random() < flip_prob:
            equal = not equal
        observations[factor] = bool(equal)
    return observations, truth


def build_problem(config: ModelConfig) -> Tuple[nx.Graph, Dict[str, Discrete], Dict[str, bool], Dict[str, int]]:
    """Create graph, priors, observations and ground truth from a config."""
    rng = np.random.default_rng(config.seed)
    graph = GraphFactory.create_graph(config.graph_type, config.num_variables)
    priors = random_priors(graph, config.num_states, rng, config.concentration)
    observations, truth = sample_observations(graph, priors, rng, config.flip_prob)
    logger.info("Built %s problem: %d variables, %d states, %d observed equalities",
                config.graph_type, config.num_variables, config.num_states, len(observations))
    return graph, priors, observations, truth


def _check_enumeration_size(dimensions) -> None:
    total_states = int(np.prod(dimensions))
    if total_states > MAX_ENUMERATION_STATES:
        raise ValueError(f"Enumeration over {total_states} joint states is too large")


def brute_force_log_evidence(graph: nx.Graph, priors: Dict[str, Discrete],
                             observations: Dict[str, bool]) -> float:
    """
    Exact log-evidence by summing over every joint state.

    log Z = log sum_x prod_v prior_v(x_v) prod_f [(x_a == x_b) == observed_f]

    Args:
        graph: Factor graph
        priors: Prior per variable node
        observations: Observed equality per factor node

    Returns:
        log Z (``-inf`` if the observations are impossible)
    """
    variables = variable_nodes(graph)
    dimensions = [priors[v].dimension for v in variables]
    _check_enumeration_size(dimensions)

    position = {v: i for i, v in enumerate(variables)}
    factors = [(position[a], position[b], observations[f])
               for f in factor_nodes(graph)
               for a, b in [graph.nodes[f]['variables']]]
    log_priors = [np.log(priors[v].probs) for v in variables]

    log_terms = []
    for state in itertools.product(*(range(k) for k in dimensions)):
        if any((state[a] == state[b]) != observed for a, b, observed in factors):
            continue
        log_terms.append(sum(lp[x] for lp, x in zip(log_priors, state)))
    if not log_terms:
        return -np.inf
    return float(logsumexp(log_terms))


def brute_force_marginals(graph: nx.Graph, priors: Dict[str, Discrete],
                          observations: Dict[str, bool]) -> Dict[str, Discrete]:
    """Exact posterior marginals by enumeration, for checking EP beliefs on trees."""
    variables = variable_nodes(graph)
    dimensions = [priors[v].dimension for v in variables]
    _check_enumeration_size(dimensions)
    position = {v: i for i, v in enumerate(variables)}
    factors = [(position[a], position[b], observations[f])
               for f in factor_nodes(graph)
               for a, b in [graph.nodes[f]['variables']]]

    sums = [np.zeros(k) for k in dimensions]
    for state in itertools.product(*(range(k) for k in dimensions)):
        if any((state[a] == state[b]) != observed for a, b, observed in factors):
            continue
        weight = np.prod([priors[v].probs[x] for v, x in zip(variables, state)])
        for i, x in enumerate(state):
            sums[i][x] += weight
    return {v: Discrete(s) for v, s in zip(variables, sums)}
