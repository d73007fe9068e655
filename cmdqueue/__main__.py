"""Main entry point when executing cmdqueue as a package.

This allows running the package using python -m cmdqueue.
"""

from cmdqueue.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
