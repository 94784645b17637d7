"""CLI dispatch for python3 -m awayline."""
from __future__ import annotations

if __name__ == "__main__":
    from awayline.cli import cli_main
    cli_main()
