"""Compact logging utilities for the TS130F integration.

Provides banner-style summaries and stable key=value formatting so frame
and state logs are easy to scan in Home Assistant.
"""

from __future__ import annotations

import logging
from typing import Any


def _fmt_kv(**kvs: Any) -> str:
    """Format key=value pairs in a stable, compact way."""
    parts: list[str] = []
    for k in sorted(kvs.keys()):
        v = kvs[k]
        parts.append(f"{k}={v}")
    return ", ".join(parts)


def info_banner(logger: logging.Logger, title: str, **kvs: Any) -> None:
    """Log a 3-line banner with an optional key=value summary at INFO level."""
    if not logger.isEnabledFor(logging.INFO):
        return
    line = _fmt_kv(**kvs) if kvs else ""
    rule = "=" * max(1, len(title) + (len(line) + 2 if line else 0) + 4)
    logger.info("+%s+", rule)
    if line:
        logger.info("|  %s  %s", title, line)
    else:
        logger.info("|  %s", title)
    logger.info("+%s+", rule)


def kv(logger: logging.Logger, level: int, msg: str, **kvs: Any) -> None:
    """Log a message followed by stable key=value pairs at the given level.

    Avoids formatting cost when the logger is not enabled for the level.
    """
    if not logger.isEnabledFor(level):
        return
    if kvs:
        logger.log(level, "%s: %s", msg, _fmt_kv(**kvs))
    else:
        logger.log(level, "%s", msg)


def hex_id(value: int | None, width: int = 4) -> str:
    """Render a cluster/attribute/command id as 0x-prefixed hex."""
    if value is None:
        return "None"
    return f"0x{value:0{width}X}"
