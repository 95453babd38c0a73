"""
Log rendering for diagnostic events and resource usage.

Events are opaque strings produced by the node; they are logged verbatim and
never interpreted.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .tx.envelope import SorobanData

log = logging.getLogger(__name__)


def log_events(
    events: Iterable[str],
    *,
    level: int = logging.DEBUG,
    context: str = "simulation",
    logger: Optional[logging.Logger] = None,
) -> int:
    """Log each event on its own line; returns how many were logged."""
    logger = logger or log
    n = 0
    for n, ev in enumerate(events, start=1):
        logger.log(level, "%s event %d: %s", context, n, ev)
    return n


def log_resources(
    data: Optional[SorobanData],
    *,
    min_resource_fee: int = 0,
    level: int = logging.DEBUG,
    logger: Optional[logging.Logger] = None,
) -> None:
    logger = logger or log
    if data is None:
        logger.log(level, "no soroban resources declared")
        return
    res = data.resources
    logger.log(
        level,
        "resources: instructions=%d read_bytes=%d write_bytes=%d read_only=%d read_write=%d min_resource_fee=%d",
        res.instructions,
        res.read_bytes,
        res.write_bytes,
        len(res.footprint.read_only),
        len(res.footprint.read_write),
        min_resource_fee,
    )


__all__ = ["log_events", "log_resources"]
