#!/usr/bin/env python3
"""
Utility modules for the factorops package
"""

from .linear_algebra_utils import (
    regularize_precision_matrix,
    add_rank_one_terms,
    information_to_moments,
    condition_on_known
)
from .graph_utils import GraphFactory, variable_nodes, factor_nodes, is_tree_structured
from .model_setup import (
    ModelConfig,
    build_problem,
    random_priors,
    sample_observations,
    brute_force_log_evidence,
    brute_force_marginals
)

__all__ = [
    'regularize_precision_matrix',
    'add_rank_one_terms',
    'information_to_moments',
    'condition_on_known',
    'GraphFactory',
    'variable_nodes',
    'factor_nodes',
    'is_tree_structured',
    'ModelConfig',
    'build_problem',
    'random_priors',
    'sample_observations',
    'brute_force_log_evidence',
    'brute_force_marginals'
]
