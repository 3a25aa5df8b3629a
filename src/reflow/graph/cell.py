"""Cell: a named holder of an input value or a derived computation."""

from enum import Enum
from typing import Any, Callable, FrozenSet, Optional

__all__ = ['Cell', 'CellKind', 'MISSING']


class _Missing:
    """Sentinel for "no cached value" (``None`` is a legitimate value)."""

    def __repr__(self):
        return "<MISSING>"

    def __bool__(self):
        return False


MISSING = _Missing()


class CellKind(str, Enum):
    INPUT = "input"
    DERIVED = "derived"


class Cell:
    """A single node of the dependency graph.

    Input cells carry a value set from outside the graph. Derived cells carry
    a computation and the set of upstream cell ids read during their most
    recent evaluation. Cells never evaluate themselves; the Evaluator owns
    that, and the Graph owns the reverse-edge index.

    Parameters
    ----------
    cell_id : str
        Unique identifier within one Graph.
    kind : CellKind
        Input or Derived.
    computation : callable, optional
        Derived cells only. Called with a ``ReadContext``; must be pure.
    upstream : iterable of str, optional
        Initial upstream guess for derived cells. Replaced wholesale after
        each successful evaluation.
    """

    def __init__(self, cell_id: str, kind: CellKind,
                 computation: Optional[Callable[..., Any]] = None,
                 upstream=(), value: Any = MISSING):
        self.id = cell_id
        self.kind = CellKind(kind)
        self.computation = computation
        self.upstream: FrozenSet[str] = frozenset(upstream)
        self.value = value
        # Derived cells start stale; inputs are never stale
        self.stale = self.kind is CellKind.DERIVED
        self.evaluations = 0

    @property
    def is_input(self) -> bool:
        return self.kind is CellKind.INPUT

    @property
    def is_derived(self) -> bool:
        return self.kind is CellKind.DERIVED

    @property
    def has_value(self) -> bool:
        return self.value is not MISSING

    @property
    def is_fresh(self) -> bool:
        """True when the cached value can be returned without recomputation."""
        return self.has_value and not self.stale

    def clear(self):
        """Drop the cached value and mark stale (derived cells only)."""
        if self.is_derived:
            self.value = MISSING
            self.stale = True

    def __repr__(self):
        return f"<Cell id={self.id!r} kind={self.kind.value} stale={self.stale}>"
