"""Entry point for the Slate CLI.

Running ``python -m slate`` is equivalent to invoking the ``slate`` command.
"""

from .cli import main

if __name__ == "__main__":  # pragma: no cover
    main()
