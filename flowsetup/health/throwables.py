"""Throwable storage — reference codes for failures logged on the server side."""

from __future__ import annotations

import logging
import secrets
import traceback
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


def new_reference_code() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S") + secrets.token_hex(3)


def store_throwable(exc: BaseException, directory: Path | None = None) -> str:
    """Return a reference code for ``exc``, writing its traceback when possible."""
    reference = new_reference_code()
    if directory is None:
        return reference

    try:
        directory.mkdir(parents=True, exist_ok=True)
        (directory / f"{reference}.txt").write_text(
            "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
            encoding="utf-8",
        )
    except OSError:
        logger.warning("Could not write exception log %s to %s", reference, directory)
    return reference
