"""Reactive dependency graph.

- cell: Cell and CellKind
- graph: Graph (ownership, reverse-edge index, invalidation)
- evaluator: Evaluator and ReadContext (lazy memoized evaluation)
- errors: NotReady, CyclicDependency, InvalidOperation
"""

from reflow.graph.cell import Cell, CellKind, MISSING
from reflow.graph.errors import GraphError, NotReady, CyclicDependency, InvalidOperation
from reflow.graph.evaluator import Evaluator, ReadContext
from reflow.graph.graph import Graph

__all__ = [
    "Cell",
    "CellKind",
    "MISSING",
    "Graph",
    "Evaluator",
    "ReadContext",
    "GraphError",
    "NotReady",
    "CyclicDependency",
    "InvalidOperation",
]
