"""Entry point for the prismblog CLI.

Running ``python -m prismblog`` dispatches to the click group in the cli module.
"""

from .cli import main

if __name__ == "__main__":  # pragma: no cover
    main()
