"""Entry point for running package_tester as a module.

Usage:
    python -m package_tester "^react" --n-processes 4
    python -m package_tester --all
"""

from .cli import main

if __name__ == "__main__":
    main()
