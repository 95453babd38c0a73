"""
Version helpers for the Soroban transaction pipeline.
We keep a static __version__ (PEP 440); bump it when publishing.
"""

from __future__ import annotations

__version__ = "0.1.0"


def user_agent() -> str:
    """Default User-Agent sent to RPC nodes."""
    return f"soroban-pipeline-py/{__version__}"


__all__ = ["__version__", "user_agent"]
