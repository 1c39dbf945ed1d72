"""
Class Hierarchy for API Drift

This module builds a NetworkX graph of the inheritance relationships recorded
in a baseline snapshot, so a drifted base class can be traced to every class
that inherits its API.

Design Decisions:
    - Uses NetworkX DiGraph; edges point from subclass to base
    - Parent, interfaces and traits are all base edges
    - Base names are resolved to snapshot keys by exact fully qualified name,
      then by unqualified name when exactly one snapshot class has it
    - Unresolved bases (stdlib, third party) stay in the graph as bare nodes

Graph Properties:
    - Directed: subclass -> base
    - Acyclic for valid Python, but cycles are tolerated
"""

from typing import Iterable, Iterator, Optional

import networkx as nx

from apidrift.models import BaselineSnapshot, ClassSignature


class ClassHierarchy:
    """
    Inheritance graph over the classes of one snapshot.

    Attributes:
        graph: The underlying NetworkX DiGraph

    Usage:
        hierarchy = ClassHierarchy.from_snapshot(snapshot)
        for name in hierarchy.subclasses_of("app.models.Base"):
            print(name)
    """

    def __init__(self) -> None:
        """Initialize an empty hierarchy."""
        self._graph: nx.DiGraph = nx.DiGraph()
        self._by_short_name: dict[str, set[str]] = {}

    @classmethod
    def from_snapshot(cls, snapshot: BaselineSnapshot) -> "ClassHierarchy":
        """Build the hierarchy of every class in a snapshot."""
        hierarchy = cls()
        for signature in snapshot.values():
            hierarchy._add_class_node(signature)
        for signature in snapshot.values():
            hierarchy._add_base_edges(signature)
        return hierarchy

    @property
    def graph(self) -> nx.DiGraph:
        """Access the underlying NetworkX graph."""
        return self._graph

    @property
    def class_count(self) -> int:
        """Number of snapshot classes (unresolved bases excluded)."""
        return sum(1 for _, known in self._graph.nodes(data="known") if known)

    def _add_class_node(self, signature: ClassSignature) -> None:
        self._graph.add_node(signature.name, known=True)
        self._by_short_name.setdefault(signature.short_name, set()).add(signature.name)

    def _add_base_edges(self, signature: ClassSignature) -> None:
        bases = [(signature.parent, "parent")] if signature.parent else []
        bases += [(name, "interface") for name in signature.interfaces]
        bases += [(name, "trait") for name in signature.traits]
        for base, relation in bases:
            self._graph.add_edge(signature.name, self.resolve(base), relation=relation)

    def resolve(self, name: str) -> str:
        """
        Resolve a base name to a snapshot class name where possible.

        Args:
            name: Fully qualified or unqualified class name

        Returns:
            The matching snapshot key, or the name unchanged
        """
        if self._graph.nodes.get(name, {}).get("known"):
            return name
        candidates = self._by_short_name.get(name.rsplit(".", 1)[-1], set())
        if len(candidates) == 1:
            return next(iter(candidates))
        return name

    def bases_of(self, name: str) -> Iterator[str]:
        """
        Get the direct bases of a class.

        Yields:
            Base names (successors)
        """
        name = self.resolve(name)
        if name in self._graph:
            yield from self._graph.successors(name)

    def subclasses_of(self, name: str) -> set[str]:
        """
        Get every class that inherits from the given class, transitively.

        Args:
            name: The base class

        Returns:
            Set of subclass names (ancestors in the subclass -> base graph)
        """
        name = self.resolve(name)
        if name not in self._graph:
            return set()
        return set(nx.ancestors(self._graph, name))

    def get_affected_by_change(self, names: Iterable[str]) -> set[str]:
        """
        Get all classes affected by API changes to the given classes.

        This includes the changed classes themselves plus every subclass, as
        inherited methods change with their base.

        Args:
            names: Names of drifted classes

        Returns:
            Set of all affected class names
        """
        affected: set[str] = set()
        for name in names:
            resolved = self.resolve(name)
            affected.add(resolved)
            affected.update(self.subclasses_of(resolved))
        return affected

    def relation(self, subclass: str, base: str) -> Optional[str]:
        """How subclass relates to base: "parent", "interface", "trait" or None."""
        subclass, base = self.resolve(subclass), self.resolve(base)
        if not self._graph.has_edge(subclass, base):
            return None
        return self._graph.edges[subclass, base].get("relation")
