# File: dieselgen/__main__.py
"""
dieselgen — Module entry point.

Allows running the generator directly via::

    python -m dieselgen -i src/schema.rs -o src/models

Delegates to ``dieselgen.cli.cli_main``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from dieselgen.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
