"""DependencyGraph — lazy-built NetworkX view of the resolved package graph.

Built once per invocation from the ResolvedGraph; nothing is cached across
runs. Only normal and build edges count toward cycle detection: cargo
allows dev-dependency cycles (a crate's tests may depend on a crate that
depends on it).
"""

from __future__ import annotations

import networkx as nx

from buckal.domain.cargo import DependencyKind, ResolvedGraph
from buckal.domain.errors import BuckalError

type _Graph = nx.DiGraph

_COMPILE_KINDS = frozenset({DependencyKind.NORMAL, DependencyKind.BUILD})


class DependencyGraph:
    """Package-level graph with edges from consumer to dependency."""

    def __init__(self, resolved: ResolvedGraph) -> None:
        self._resolved = resolved
        self._graph: _Graph | None = None

    @property
    def graph(self) -> _Graph:
        """Return the graph, building it on first access."""
        if self._graph is None:
            self._graph = self._build()
        return self._graph

    def _build(self) -> _Graph:
        g: _Graph = nx.DiGraph()
        # Add all packages first so isolated ones are visible.
        for package_id, package in self._resolved.packages.items():
            g.add_node(package_id, name=package.name, version=package.version)

        for node in self._resolved.nodes.values():
            for dep in node.deps:
                kinds = {info.kind for info in dep.dep_kinds} or {DependencyKind.NORMAL}
                if kinds & _COMPILE_KINDS:
                    g.add_edge(node.id, dep.pkg, kinds=sorted(k.value for k in kinds))
        return g

    def find_cycle(self) -> list[str] | None:
        """Return package ids forming a cycle, or None if the graph is acyclic."""
        try:
            edges = nx.find_cycle(self.graph)
        except nx.NetworkXNoCycle:
            return None
        return [source for source, _target in edges]

    def validate(self) -> None:
        """Raise BuckalError (``CYCLIC_GRAPH``) naming the first cycle found."""
        cycle = self.find_cycle()
        if cycle is None:
            return
        names = [self._label(package_id) for package_id in cycle]
        msg = f"Dependency cycle detected: {' -> '.join([*names, names[0]])}"
        raise BuckalError("CYCLIC_GRAPH", msg, cycle=cycle)

    def _label(self, package_id: str) -> str:
        data = self.graph.nodes.get(package_id, {})
        if "name" in data:
            return f"{data['name']}@{data['version']}"
        return package_id
