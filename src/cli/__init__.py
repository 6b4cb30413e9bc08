"""Edge Hard Tools command line interface."""

from hard_tools import __version__

__all__ = ["__version__"]
