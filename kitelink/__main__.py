"""Main entry point when executing kitelink as a package.

This allows running the package using python -m kitelink.
"""

from kitelink.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
