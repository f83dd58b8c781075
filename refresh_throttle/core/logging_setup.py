from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

from loguru import logger


_CONFIGURED = False
_SINK_IDS: list[int] = []


def _normalize_level(level: str | None) -> str:
    raw = (level or "INFO").strip().upper()
    valid = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
    if raw in valid:
        return raw
    return "INFO"


def setup_logging(
    *,
    component: str = "app",
    force: bool = False,
    add_stderr: bool = True,
    log_path: str | Path | None = None,
) -> dict[str, str]:
    """Install sinks for scheduler logs.

    Library modules only log through ``loguru.logger``; hosts that want to see
    those records call this once. ``log_path`` adds a pretty text file next to
    a ``.structured.jsonl`` file carrying the bound extras.
    """
    global _CONFIGURED

    pretty_path = Path(log_path) if log_path is not None else None
    structured_path = pretty_path.with_suffix(".structured.jsonl") if pretty_path is not None else None
    paths = {
        "pretty": str(pretty_path) if pretty_path is not None else "",
        "structured": str(structured_path) if structured_path is not None else "",
    }

    if _CONFIGURED and not force:
        return paths

    if force:
        for sink_id in _SINK_IDS:
            logger.remove(sink_id)
        _SINK_IDS.clear()

    logger.configure(extra={"component": component, "scheduler": "------", "state": "-"})

    fmt = (
        "... {time:HH:mm:ss.SSS} {level:<5} "
        "[{extra[component]:<11}] "
        "[{extra[scheduler]:<16}] "
        "[{extra[state]:<19}] "
        "{message}"
    )

    level_name = _normalize_level(os.getenv("REFRESH_THROTTLE_LOG_LEVEL", "INFO"))

    if add_stderr:
        _SINK_IDS.append(
            logger.add(
                sys.stderr,
                level=level_name,
                format=fmt,
                colorize=False,
                enqueue=False,
                backtrace=False,
                diagnose=False,
            )
        )

    if pretty_path is not None and structured_path is not None:
        pretty_path.parent.mkdir(parents=True, exist_ok=True)
        _SINK_IDS.append(
            logger.add(
                pretty_path,
                level=level_name,
                format=fmt,
                colorize=False,
                enqueue=False,
                encoding="utf-8",
                mode="w",
                backtrace=False,
                diagnose=False,
            )
        )
        _SINK_IDS.append(
            logger.add(
                structured_path,
                level=level_name,
                serialize=True,
                enqueue=False,
                encoding="utf-8",
                mode="w",
                backtrace=False,
                diagnose=False,
            )
        )

    _CONFIGURED = True
    return paths


def emit_event(
    bound_logger: Any,
    message: str,
    *,
    level: str = "DEBUG",
    event: str | None = None,
    scheduler: str | None = None,
    state: str | None = None,
    duration_ms: int | float | None = None,
    outcome: str | None = None,
    error_category: str | None = None,
    meta: dict[str, Any] | None = None,
) -> None:
    extras: dict[str, Any] = {}
    if event is not None:
        extras["event"] = event
    if scheduler is not None:
        extras["scheduler"] = scheduler
    if state is not None:
        extras["state"] = state
    if duration_ms is not None:
        extras["duration_ms"] = duration_ms
    if outcome is not None:
        extras["outcome"] = outcome
    if error_category is not None:
        extras["error_category"] = error_category
    if meta is not None:
        extras["meta"] = meta

    logger_obj = bound_logger.bind(**extras) if extras else bound_logger
    logger_obj.log(_normalize_level(level), message)
