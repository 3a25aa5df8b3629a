#!/usr/bin/env python3
"""``Reflow`` table transform runner.

Usage:
    python scripts/run_transform.py data/survey.csv
    python scripts/run_transform.py data/survey.csv -c scripts/user_config.py
    python scripts/run_transform.py data/export.txt --delimiter tab --remove-empty

Note: User config in scripts/user_config.py, expert defaults in src/reflow/schemas/param.py
"""

import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root / "src"))

from reflow.cli.run_transform import main


if __name__ == "__main__":
    sys.exit(main())
