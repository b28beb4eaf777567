"""Asynchronous file access for resolution; misses are logged, never raised."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from tsinline.syntax.parser import SourceModule, parse_source

log = logging.getLogger(__name__)


async def read_text(path: Path) -> str | None:
    def _read() -> str:
        return path.read_text(encoding="utf-8")

    try:
        return await asyncio.get_event_loop().run_in_executor(None, _read)
    except (OSError, UnicodeDecodeError) as e:
        log.debug("Cannot read %s: %s", path, e)
        return None


async def is_file(path: Path) -> bool:
    return await asyncio.get_event_loop().run_in_executor(None, path.is_file)


async def is_dir(path: Path) -> bool:
    return await asyncio.get_event_loop().run_in_executor(None, path.is_dir)


async def load_module(path: Path) -> SourceModule | None:
    text = await read_text(path)
    if text is None:
        return None
    return parse_source(path, text)
