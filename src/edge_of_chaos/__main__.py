"""
Module entry point for edge_of_chaos package.

Allows running via: python -m edge_of_chaos <command>
"""

import sys
from edge_of_chaos.cli import main

if __name__ == "__main__":
    sys.exit(main())
