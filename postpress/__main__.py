"""Entry point for the Postpress CLI.

Allows running the package directly with ``python -m postpress``.
"""

from .cli import main

if __name__ == "__main__":  # pragma: no cover
    main()
