"""Entry point for ``python -m chimein``."""

from chimein.cli.commands import app

if __name__ == "__main__":
    app()
