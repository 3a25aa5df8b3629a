"""`Reflow` - reactive upload, clean and download of delimited tables.

Subpackages:
- graph: Cells, dependency graph, memoized evaluation
- table: Parsing, cleaning and writing of tables
- pipeline: Session pipeline, orchestrator, processor, tracking
- schemas: Configuration (param < user < CLI)
- contracts: Runtime invariants
"""

__version__ = "0.1.0"
