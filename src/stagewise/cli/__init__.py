"""
stagewise CLI — Typer application.

Usage::

    stagewise run --network localhost --dry-run
    stagewise plan --network mumbai
    stagewise units list --network localhost
"""

from stagewise.cli.app import app

__all__ = ["app"]
