"""
Allow running threatlensctl as a module: python -m threatlens.cli
"""

import sys
from .threatlensctl import main

if __name__ == "__main__":
    sys.exit(main())
