"""CLI entry point for artindex.cli module.

Enables execution via: python -m artindex.cli (runs index_wallets)
"""

from artindex.cli.index_wallets import main

if __name__ == "__main__":
    raise SystemExit(main())
