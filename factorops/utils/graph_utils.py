#!/usr/bin/env python3
"""
Graph creation utilities for pairwise equality networks
"""

import networkx as nx
from typing import List, Tuple


class GraphFactory:
    """Factory class for creating bipartite factor graphs.

    Variable nodes are named ``x_<i>``; each pairwise factor ``f_<i>_<j>``
    connects ``x_<i>`` and ``x_<j>`` and records them, in order, in its
    ``variables`` attribute.
    """

    GRAPH_TYPES = ("chain", "star", "tree", "loop")

    @staticmethod
    def create_graph(graph_type: str, size: int = 5) -> nx.Graph:
        """Create graph based on specified type.

        Args:
            graph_type: One of ``GRAPH_TYPES``
            size: Number of variable nodes

        Returns:
            The factor graph
        """
        if size < 2:
            raise ValueError(f"Graph needs at least 2 variables, got {size}")
        if graph_type == "chain":
            return GraphFactory.create_chain(size)
        elif graph_type == "star":
            return GraphFactory.create_star(size)
        elif graph_type == "tree":
            return GraphFactory.create_binary_tree(size)
        elif graph_type == "loop":
            return GraphFactory.create_loop(size)
        else:
            raise ValueError(f"Unknown graph type: {graph_type}")

    @staticmethod
    def _from_pairs(n: int, pairs: List[Tuple[int, int]]) -> nx.Graph:
        G = nx.Graph()
        for i in range(n):
            G.add_node(f'x_{i}', kind='variable')
        for i, j in pairs:
            factor = f'f_{i}_{j}'
            G.add_node(factor, kind='factor', variables=(f'x_{i}', f'x_{j}'))
            G.add_edge(f'x_{i}', factor)
            G.add_edge(f'x_{j}', factor)
        return G

    @staticmethod
    def create_chain(n: int) -> nx.Graph:
        """Create N-node chain factor graph."""
        return GraphFactory._from_pairs(n, [(i, i + 1) for i in range(n - 1)])

    @staticmethod
    def create_star(n: int) -> nx.Graph:
        """Create star with x_0 at the hub."""
        return GraphFactory._from_pairs(n, [(0, i) for i in range(1, n)])

    @staticmethod
    def create_binary_tree(n: int) -> nx.Graph:
        """Create binary tree in heap order: the parent of x_i is x_{(i-1)//2}."""
        return GraphFactory._from_pairs(n, [((i - 1) // 2, i) for i in range(1, n)])

    @staticmethod
    def create_loop(n: int) -> nx.Graph:
        """Create single cycle; EP evidence is then only approximate."""
        if n < 3:
            raise ValueError(f"A loop needs at least 3 variables, got {n}")
        return GraphFactory._from_pairs(n, [(i, i + 1) for i in range(n - 1)] + [(0, n - 1)])


def variable_nodes(G: nx.Graph) -> List[str]:
    return [n for n, kind in G.nodes(data='kind') if kind == 'variable']


def factor_nodes(G: nx.Graph) -> List[str]:
    return [n for n, kind in G.nodes(data='kind') if kind == 'factor']


def is_tree_structured(G: nx.Graph) -> bool:
    """True when the factor graph has no cycles, so EP is exact."""
    return nx.is_tree(G)
