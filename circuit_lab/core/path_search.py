"""
Bounded path enumeration between the two terminals of a source.

Paths alternate between wire connections and hops across a component from
the terminal a wire arrived at to each of its other terminals. The search
uses an explicit worklist instead of recursion and is capped by the maximum
path length, so it always terminates.
"""

from typing import Dict, FrozenSet, List, NamedTuple, Optional
import networkx as nx

from .analysis_settings import AnalysisSettings
from .components import Component, TerminalKey


class PathStep(NamedTuple):
    """A component reached on a path and the connection used to reach it."""
    component_id: str
    connection_id: Optional[str] = None


Path = List[PathStep]


def _search_paths(source_id: str, start_terminal: str, end_terminal: str,
                  component_map: Dict[str, Component], graph: nx.MultiGraph, max_length: int,
                  distinct_components: bool, stop_at_first: bool) -> List[Path]:
    start: TerminalKey = (source_id, start_terminal)
    target: TerminalKey = (source_id, end_terminal)
    paths: List[Path] = []

    # (terminal to leave from, path so far, connections already used on this path)
    worklist: List[tuple] = [(start, [PathStep(source_id)], frozenset())]
    while worklist:
        current, path, used = worklist.pop()
        if current not in graph:
            continue

        for _, neighbour, conn_id in graph.edges(current, keys=True):
            if conn_id in used:
                continue
            target_component, target_terminal = neighbour
            new_path = path + [PathStep(target_component, conn_id)]

            if neighbour == target:
                paths.append(new_path)
                if stop_at_first:
                    return paths
                continue

            if len(new_path) >= max_length or target_component == source_id:
                continue
            if distinct_components and any(step.component_id == target_component for step in path):
                continue
            component = component_map.get(target_component)
            if component is None:
                continue

            new_used: FrozenSet[str] = used | {conn_id}
            for terminal_id in reversed(component.terminal_ids):
                if terminal_id != target_terminal:
                    worklist.append(((target_component, terminal_id), new_path, new_used))

    return paths


def find_direct_paths(source_id: str, start_terminal: str, end_terminal: str,
                      component_map: Dict[str, Component], graph: nx.MultiGraph,
                      max_length: int = 8) -> List[Path]:
    """
    Find every path from one terminal of a source back to its other terminal.

    A path never uses the same connection twice but may revisit components.

    Args:
        source_id: Id of the source component
        start_terminal: Terminal the search leaves from
        end_terminal: Terminal that completes a path
        component_map: Components by id
        graph: Terminal multigraph from ``build_terminal_graph``
        max_length: Maximum number of components on a path, source included

    Returns:
        List of paths; each starts with the source step (no connection)
    """
    return _search_paths(source_id, start_terminal, end_terminal, component_map, graph,
                         max_length, distinct_components=False, stop_at_first=False)


def has_complete_path(source_id: str, start_terminal: str, end_terminal: str,
                      component_map: Dict[str, Component], graph: nx.MultiGraph,
                      max_length: int = 8) -> bool:
    """Check whether any path joins the two source terminals without revisiting a component."""
    return bool(_search_paths(source_id, start_terminal, end_terminal, component_map, graph,
                              max_length, distinct_components=True, stop_at_first=True))


def path_resistance(path: Path, component_map: Dict[str, Component], settings: AnalysisSettings) -> float:
    """Sum the resistance every component on the path contributes."""
    total = 0.0
    for step in path:
        component = component_map.get(step.component_id)
        if component is not None:
            total += component.path_resistance(settings)
    return total
