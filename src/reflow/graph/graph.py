"""Dependency graph: cell ownership, reverse-edge index and invalidation.

The Graph owns every Cell of one session. Edges are never stored on their
own: the reverse index ``dependency -> {dependents}`` is rebuilt from each
derived cell's last recorded upstream set whenever an evaluation succeeds.

All public entry points hold one re-entrant lock, so a ``set()`` and its
invalidation always complete before any concurrent ``read()`` proceeds.
"""

import logging
import threading
from collections import deque
from typing import Any, Callable, Dict, Iterable, List, Set

from reflow.graph.cell import Cell, CellKind, MISSING
from reflow.graph.errors import InvalidOperation
from reflow.graph.evaluator import Evaluator, ReadContext

__all__ = ['Graph']

logger = logging.getLogger(__name__)


class Graph:
    """Session-scoped dependency graph of input and derived cells.

    **Lifecycle:**

    Input cells are registered once and mutated only through ``set()``.
    Derived cells are registered once (lazily, nothing is evaluated at
    registration) and are only ever recomputed, never assigned.

    **Invalidation:**

    ``set()`` on an input leaves the input fresh with its new value and marks
    every transitive dependent stale. ``invalidate()`` does the same starting
    from any cell. Traversal is breadth-first over the reverse-edge index and
    visits each cell at most once, so diamonds are handled without duplicate
    work. Traversal does not stop at cells that are already stale: a fresh
    cell may sit below a stale one when its computation caught the upstream
    failure.

    **Evaluation:**

    ``read()`` delegates to the Evaluator (lazy, memoized, cycle-checked).

    Example usage::

        graph = Graph("session-1")
        graph.register_input("a")
        graph.register_derived("b", lambda ctx: ctx.read("a") + 1, ["a"])
        graph.set("a", 1)
        graph.read("b")   # 2
        graph.set("a", 5) # ['b']
        graph.read("b")   # 6
    """

    def __init__(self, name: str = "graph"):
        self.name = name
        self._cells: Dict[str, Cell] = {}
        self._dependents: Dict[str, Set[str]] = {}
        self._lock = threading.RLock()
        self._evaluator = Evaluator(self)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_input(self, cell_id: str, value: Any = MISSING) -> Cell:
        """Create an input cell, optionally with an initial value."""
        with self._lock:
            self._check_new(cell_id)
            cell = Cell(cell_id, CellKind.INPUT, value=value)
            self._cells[cell_id] = cell
            logger.debug("[%s] Registered input '%s'", self.name, cell_id)
            return cell

    def register_derived(self, cell_id: str, computation: Callable[[ReadContext], Any],
                         upstream_guess: Iterable[str] = ()) -> Cell:
        """Create a derived cell. Evaluation is deferred to the first read.

        Parameters
        ----------
        cell_id : str
            Unique cell identifier.
        computation : callable
            ``computation(ctx) -> value``. Reads upstream values through
            ``ctx.read(other_id)``.
        upstream_guess : iterable of str
            Cells the computation is expected to read. Seeds the reverse-edge
            index so invalidation reaches this cell before its first
            successful evaluation. Ids may refer to cells registered later.
        """
        if not callable(computation):
            raise InvalidOperation(f"Computation for '{cell_id}' is not callable", cell_id=cell_id)
        with self._lock:
            self._check_new(cell_id)
            cell = Cell(cell_id, CellKind.DERIVED, computation=computation,
                        upstream=upstream_guess)
            self._cells[cell_id] = cell
            for upstream_id in cell.upstream:
                self._dependents.setdefault(upstream_id, set()).add(cell_id)
            logger.debug("[%s] Registered derived '%s' upstream_guess=%s",
                         self.name, cell_id, sorted(cell.upstream))
            return cell

    def _check_new(self, cell_id: str):
        if not isinstance(cell_id, str) or not cell_id:
            raise InvalidOperation(f"Cell id must be a non-empty string, got {cell_id!r}")
        if cell_id in self._cells:
            raise InvalidOperation(f"Cell '{cell_id}' already registered", cell_id=cell_id)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set(self, cell_id: str, value: Any) -> List[str]:
        """Store a new value on an input cell and invalidate its dependents.

        No equality check is made: setting the same value again still
        invalidates downstream cells.

        Returns
        -------
        list of str
            Dependents marked stale, in breadth-first order.

        Raises
        ------
        InvalidOperation
            If the cell is derived, unknown, or the call happens from inside
            a computation.
        """
        with self._lock:
            cell = self.get_cell(cell_id)
            if not cell.is_input:
                raise InvalidOperation(
                    f"Cannot set derived cell '{cell_id}'; only input cells accept values",
                    cell_id=cell_id,
                )
            self._check_not_evaluating("set", cell_id)
            cell.value = value
            cell.stale = False
            invalidated = self._propagate(cell_id, include_self=False)
            logger.debug("[%s] Set '%s'; invalidated %s", self.name, cell_id, invalidated)
            return invalidated

    def invalidate(self, cell_id: str) -> List[str]:
        """Mark ``cell_id`` and every transitive dependent stale.

        Input cells keep their value (they have no computation to re-run);
        only their dependents are affected.

        Returns
        -------
        list of str
            Cells marked stale, in breadth-first order.
        """
        with self._lock:
            self.get_cell(cell_id)
            self._check_not_evaluating("invalidate", cell_id)
            invalidated = self._propagate(cell_id, include_self=True)
            logger.debug("[%s] Invalidated %s", self.name, invalidated)
            return invalidated

    def _propagate(self, start_id: str, include_self: bool) -> List[str]:
        order: List[str] = []
        visited = {start_id}
        pending = deque([start_id])

        while pending:
            current_id = pending.popleft()
            cell = self._cells.get(current_id)
            if cell is not None and cell.is_derived and (include_self or current_id != start_id):
                cell.clear()
                order.append(current_id)
            for dependent_id in sorted(self._dependents.get(current_id, ())):
                if dependent_id not in visited:
                    visited.add(dependent_id)
                    pending.append(dependent_id)

        return order

    def _check_not_evaluating(self, operation: str, cell_id: str):
        if self._evaluator.is_evaluating:
            raise InvalidOperation(
                f"Cannot {operation} '{cell_id}' while evaluating "
                f"{list(self._evaluator.in_progress)}; computations must be pure",
                cell_id=cell_id,
            )

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def read(self, cell_id: str) -> Any:
        """Return the current value of a cell, recomputing stale cells it needs."""
        with self._lock:
            return self._evaluator.evaluate(cell_id)

    def replace_upstream(self, cell_id: str, upstream: Iterable[str]):
        """Swap a derived cell's upstream set and rewrite the reverse index.

        Called by the Evaluator after a successful evaluation.
        """
        with self._lock:
            cell = self.get_cell(cell_id)
            new = frozenset(upstream)
            for removed in cell.upstream - new:
                dependents = self._dependents.get(removed)
                if dependents is not None:
                    dependents.discard(cell_id)
                    if not dependents:
                        del self._dependents[removed]
            for added in new - cell.upstream:
                self._dependents.setdefault(added, set()).add(cell_id)
            cell.upstream = new

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_cell(self, cell_id: str) -> Cell:
        try:
            return self._cells[cell_id]
        except KeyError:
            raise InvalidOperation(f"Unknown cell '{cell_id}'", cell_id=cell_id) from None

    def dependents(self, cell_id: str) -> frozenset:
        """Direct dependents of ``cell_id`` as of their last evaluation."""
        with self._lock:
            return frozenset(self._dependents.get(cell_id, ()))

    def upstream(self, cell_id: str) -> frozenset:
        with self._lock:
            return self.get_cell(cell_id).upstream

    def is_stale(self, cell_id: str) -> bool:
        with self._lock:
            return self.get_cell(cell_id).stale

    def has_value(self, cell_id: str) -> bool:
        with self._lock:
            return self.get_cell(cell_id).has_value

    def evaluations(self, cell_id: str) -> int:
        """Number of times a derived cell's computation has been run."""
        with self._lock:
            return self.get_cell(cell_id).evaluations

    def cells(self) -> List[str]:
        with self._lock:
            return list(self._cells)

    def __contains__(self, cell_id) -> bool:
        return cell_id in self._cells

    def __len__(self) -> int:
        return len(self._cells)

    def __repr__(self):
        return f"<Graph name={self.name!r} cells={len(self._cells)}>"
