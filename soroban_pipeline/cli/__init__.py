"""Typer command-line interface (`soroban-tx`)."""

from .main import app, main

__all__ = ["app", "main"]
