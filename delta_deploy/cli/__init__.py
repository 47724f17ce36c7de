"""Command line interface for delta-deploy"""

from .main import cli, main

__all__ = ["cli", "main"]
