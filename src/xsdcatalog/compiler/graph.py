"""Definition graph: named schema definitions as nodes, derivations and group references as edges.

Uses networkx to reject circular definitions (a type deriving from itself,
a model group or attribute group containing itself) before anything is
built, and to order definitions so bases are built before derived types.
Recursion through element declarations is legitimate and never recorded
here.
"""

from __future__ import annotations

import networkx as nx

from xsdcatalog.compiler.components import Name

# ("type" | "group" | "attributeGroup", expanded name)
DefinitionKey = tuple[str, Name]


def _label(key: DefinitionKey) -> str:
    kind, (_ns, local) = key
    return f"{kind} '{local}'"


class DefinitionGraph:
    """Dependency graph between the global definitions of one schema."""

    def __init__(self) -> None:
        self._graph: nx.DiGraph[DefinitionKey] = nx.DiGraph()

    def add_definition(self, key: DefinitionKey) -> None:
        self._graph.add_node(key)

    def add_dependency(self, dependent: DefinitionKey, dependency: DefinitionKey) -> None:
        """Record that ``dependent`` needs ``dependency`` to be built first."""
        self._graph.add_edge(dependent, dependency)

    def find_cycle(self) -> list[DefinitionKey] | None:
        """Return one dependency cycle as a closed path, or None when acyclic."""
        try:
            edges = nx.find_cycle(self._graph)
        except nx.NetworkXNoCycle:
            return None
        path = [edge[0] for edge in edges]
        return path + [path[0]]

    def describe_cycle(self, cycle: list[DefinitionKey]) -> str:
        return " -> ".join(_label(key) for key in cycle)

    def build_order(self) -> list[DefinitionKey]:
        """Definitions ordered so every dependency precedes its dependents."""
        return list(reversed(list(nx.topological_sort(self._graph))))

    def dependencies(self, key: DefinitionKey) -> list[DefinitionKey]:
        if key not in self._graph:
            return []
        return list(self._graph.successors(key))
