"""
Entry point for module execution (``python -m baseline_codemod``).

This module delegates execution to the CLI handler in ``baseline_codemod.cli.__main__``.
"""

import sys
from baseline_codemod.cli.__main__ import main

if __name__ == "__main__":
  sys.exit(main())
