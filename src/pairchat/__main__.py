"""CLI entrypoint for running pairchat as a module."""

from pairchat.cli import cli
from pairchat.logging import setup_logging

if __name__ == "__main__":
    setup_logging()
    cli()
