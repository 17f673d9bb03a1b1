"""buildgate command line interface."""

from buildgate.cli.main import main

__all__ = ["main"]
