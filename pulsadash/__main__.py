"""Main entry point when executing pulsadash as a package.

This allows running the package using python -m pulsadash.
"""

from pulsadash.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
