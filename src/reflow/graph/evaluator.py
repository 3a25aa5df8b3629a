"""Lazy, memoized evaluation of graph cells.

The Evaluator is the only component that runs computations. For each
requested cell it either returns the cached value (fresh cell) or re-runs
the computation, recording every upstream read made through the explicit
``ReadContext``. On success the recorded read set replaces the cell's
previous upstream set; on failure nothing is cached and the cell stays
stale so a later read can retry.
"""

import logging
from typing import Any, TYPE_CHECKING

from reflow.graph.cell import Cell
from reflow.graph.errors import CyclicDependency, InvalidOperation, NotReady

if TYPE_CHECKING:
    from reflow.graph.graph import Graph

__all__ = ['Evaluator', 'ReadContext']

logger = logging.getLogger(__name__)


class ReadContext:
    """Handle passed to a derived cell's computation.

    Carries the id of the cell being evaluated and records which upstream
    cells the computation reads. Reads are recorded before they are
    attempted, so an upstream that raises is still part of the upstream set.

    Examples
    --------
    >>> def total(ctx):
    ...     return ctx.read("price") * ctx.read("quantity")
    >>> graph.register_derived("total", total, upstream_guess=["price", "quantity"])
    """

    def __init__(self, evaluator: "Evaluator", cell_id: str):
        self.cell_id = cell_id
        self._evaluator = evaluator
        self._reads: dict[str, None] = {}  # ordered set

    def read(self, cell_id: str) -> Any:
        """Return the current value of ``cell_id`` and record the edge."""
        self._reads[cell_id] = None
        return self._evaluator.evaluate(cell_id)

    @property
    def reads(self) -> tuple[str, ...]:
        return tuple(self._reads)

    def __repr__(self):
        return f"<ReadContext cell={self.cell_id!r} reads={list(self._reads)}>"


class Evaluator:
    """Produce current cell values with memoization and cycle detection.

    Algorithm for ``evaluate(cell_id)``:

    1. Input cell: return its value, or raise ``NotReady`` if never set.
    2. Fresh derived cell: return the cached value. No upstream is touched.
    3. Cell already on the evaluation stack: raise ``CyclicDependency``
       naming the full cycle.
    4. Otherwise push the cell, run its computation with a fresh
       ``ReadContext``, pop the cell, then cache the value, clear the stale
       flag and hand the recorded reads to the Graph so it can rewrite the
       reverse-edge index.

    Any exception from the computation propagates unchanged after the cell
    is popped; the cell keeps no value and stays stale.

    Not thread-safe on its own: the owning Graph serializes access.
    """

    def __init__(self, graph: "Graph"):
        self._graph = graph
        self._stack: list[str] = []

    @property
    def is_evaluating(self) -> bool:
        return bool(self._stack)

    @property
    def in_progress(self) -> tuple[str, ...]:
        return tuple(self._stack)

    def evaluate(self, cell_id: str) -> Any:
        cell = self._graph.get_cell(cell_id)

        if cell.is_input:
            if not cell.has_value:
                raise NotReady(f"Input '{cell_id}' has no value yet", cell_id=cell_id)
            return cell.value

        if cell.is_fresh:
            return cell.value

        if cell_id in self._stack:
            cycle = self._stack[self._stack.index(cell_id):] + [cell_id]
            raise CyclicDependency(cycle)

        return self._recompute(cell)

    def _recompute(self, cell: Cell) -> Any:
        if cell.computation is None:
            raise InvalidOperation(f"Derived cell '{cell.id}' has no computation", cell_id=cell.id)

        ctx = ReadContext(self, cell.id)
        self._stack.append(cell.id)
        cell.evaluations += 1
        try:
            value = cell.computation(ctx)
        except NotReady as e:
            logger.debug("Cell '%s' not ready: %s", cell.id, e)
            raise
        except Exception as e:
            logger.debug("Cell '%s' failed: %s: %s", cell.id, type(e).__name__, e)
            raise
        finally:
            self._stack.pop()

        self._graph.replace_upstream(cell.id, ctx.reads)
        cell.value = value
        cell.stale = False
        logger.debug("Evaluated '%s' (run %d) reads=%s", cell.id, cell.evaluations, list(ctx.reads))
        return value
