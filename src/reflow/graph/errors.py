"""Error kinds raised by the dependency graph.

Two families:
- Expected, recoverable states (``NotReady``) that callers render as user
  guidance and that never corrupt cached state.
- Wiring and API misuse (``CyclicDependency``, ``InvalidOperation``) that
  abort the current request and are never retried.
"""


class GraphError(RuntimeError):
    """Base class for all graph failures."""

    def __init__(self, message: str, cell_id: str | None = None):
        super().__init__(message)
        self.cell_id = cell_id


class NotReady(GraphError):
    """An input cell was read before any value was set.

    Mirrors "no file uploaded yet". This is a normal short-circuit, not a
    crash, and is logged at DEBUG level only.
    """
    pass


class CyclicDependency(GraphError):
    """Evaluation of a cell transitively requested itself."""

    def __init__(self, cycle: list[str]):
        self.cycle = list(cycle)
        super().__init__(
            "Cyclic dependency: " + " -> ".join(self.cycle),
            cell_id=self.cycle[0] if self.cycle else None,
        )


class InvalidOperation(GraphError):
    """Programmer misuse of the graph API (e.g. set() on a derived cell)."""
    pass
