"""
Package entry point.

Allows running the crawler via:

    python -m kurssihaku

This simply forwards execution to kurssihaku.cli.main().
"""

from kurssihaku.cli import main

if __name__ == "__main__":
    main()
