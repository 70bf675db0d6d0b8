"""
Main entry point for running the package as a module.

Usage:
    python -m gallerygen scan -p mysite
    python -m gallerygen images -p mysite
    python -m gallerygen generate -p mysite
    python -m gallerygen report -p mysite
"""

import sys
from .cli import main

if __name__ == '__main__':
    sys.exit(main())
