"""CLI front-end module for kubectl-mapper

Typer-based interface exposing the ``map`` command.
"""

from .main import app

__all__ = ['app']
