"""
Electrical node identification over component terminals.

Terminals joined by wire connections are merged into electrical nodes with a
path-compressed union-find over dense terminal indices. Nodes are rebuilt
from scratch on every call; nothing is cached between analyses.
"""

import logging
from typing import Dict, List, Optional, Sequence
import networkx as nx
from networkx.utils import UnionFind
from pydantic import BaseModel, Field

from .analysis_settings import AnalysisSettings
from .components import Connection, TerminalKey, terminal_key_str


class Node(BaseModel):
    """Set of terminals held at the same potential by direct wiring."""
    node_id: str
    voltage: float = 0.0
    component_ids: List[str] = Field(default_factory=list)
    terminal_keys: List[str] = Field(default_factory=list)

    def contains(self, comp_id: str, terminal_id: str) -> bool:
        return terminal_key_str((comp_id, terminal_id)) in self.terminal_keys


def terminal_key_index(connections: Sequence[Connection]) -> Dict[TerminalKey, int]:
    """Assign dense integer indices to terminal keys in first-seen order."""
    index: Dict[TerminalKey, int] = {}
    for connection in connections:
        for key in connection.endpoints:
            if key not in index:
                index[key] = len(index)
    return index


def group_terminals(connections: Sequence[Connection]) -> List[List[TerminalKey]]:
    """
    Group connected terminals into equivalence classes.

    Args:
        connections: Wire connections between component terminals

    Returns:
        List of terminal groups, ordered by the first-seen terminal of each
        group; members keep first-seen order as well.
    """
    index = terminal_key_index(connections)
    keys = list(index)
    union_find = UnionFind(range(len(keys)))
    for connection in connections:
        union_find.union(index[connection.from_key], index[connection.to_key])

    groups: Dict[int, List[int]] = {}
    for i in range(len(keys)):
        groups.setdefault(union_find[i], []).append(i)
    return [[keys[i] for i in members] for members in groups.values()]


def build_nodes(connections: Sequence[Connection],
                settings: Optional[AnalysisSettings] = None) -> Dict[str, Node]:
    """
    Build the electrical nodes of a circuit and designate the ground node.

    The ground node is the node touching the most distinct components; ties go
    to the node seen first. It is renamed to ``settings.ground_node_id`` and
    its voltage fixed at 0.

    Args:
        connections: Wire connections between component terminals
        settings: Analysis settings (defaults when omitted)

    Returns:
        Dict mapping node ids to nodes; empty when there are no connections
    """
    settings = settings or AnalysisSettings()
    nodes: List[Node] = []
    for number, members in enumerate(group_terminals(connections)):
        component_ids = list(dict.fromkeys(comp_id for comp_id, _ in members))
        nodes.append(Node(
            node_id=f"node_{number}",
            component_ids=component_ids,
            terminal_keys=[terminal_key_str(key) for key in members],
        ))

    if not nodes:
        return {}

    ground = nodes[0]
    for node in nodes[1:]:
        if len(node.component_ids) > len(ground.component_ids):
            ground = node
    logging.debug(f"Ground node selected: {ground.node_id} with components {ground.component_ids}")
    ground.node_id = settings.ground_node_id
    ground.voltage = 0.0

    return {node.node_id: node for node in nodes}


def terminal_node_map(nodes: Dict[str, Node]) -> Dict[str, str]:
    """Map ``component:terminal`` keys to the id of the node containing them."""
    return {key: node_id for node_id, node in nodes.items() for key in node.terminal_keys}


def find_node_for_terminal(nodes: Dict[str, Node], comp_id: str, terminal_id: str) -> Optional[str]:
    """Find the node that contains a specific component terminal."""
    for node_id, node in nodes.items():
        if node.contains(comp_id, terminal_id):
            return node_id
    return None


def build_terminal_graph(connections: Sequence[Connection]) -> nx.MultiGraph:
    """
    Build an undirected multigraph whose vertices are terminal keys.

    Each connection becomes one edge keyed by its connection id, so parallel
    duplicate wires stay distinguishable.
    """
    graph = nx.MultiGraph()
    for connection in connections:
        graph.add_edge(connection.from_key, connection.to_key, key=connection.conn_id, connection=connection)
    return graph
