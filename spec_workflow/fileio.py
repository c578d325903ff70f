"""File primitives shared by the task, approval and ignore-file writers.

Every write is atomic (temp file in the same directory, then ``os.replace``)
so a concurrent reader or a directory watcher never observes a partially
written document.
"""

from __future__ import annotations

import asyncio
import errno
import logging
import os
import stat
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Dict, Optional


logger = logging.getLogger("spec_workflow.fileio")

DEFAULT_WRITE_RETRIES = 3
DEFAULT_RETRY_DELAY = 0.1

_PERMISSION_ERRNOS = {errno.EACCES, errno.EPERM}


def _is_permission_error(error: OSError) -> bool:
    return isinstance(error, PermissionError) or error.errno in _PERMISSION_ERRNOS


def write_text_atomic(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` so readers see either the old or the new file."""
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        # newline="" keeps \r\n documents byte-identical
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        try:
            mode = stat.S_IMODE(os.stat(path).st_mode)
        except FileNotFoundError:
            mode = 0o644
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def read_text(path: Path) -> str:
    with open(path, "r", encoding="utf-8", newline="") as handle:
        return handle.read()


async def read_text_async(path: Path) -> str:
    return await asyncio.to_thread(read_text, Path(path))


async def write_file_with_retry(
    path: Path,
    content: str,
    *,
    max_retries: int = DEFAULT_WRITE_RETRIES,
    base_delay: float = DEFAULT_RETRY_DELAY,
) -> None:
    """Atomically write ``content``, retrying transient failures with exponential backoff.

    Permission errors are raised on the first attempt.
    """
    last_error: Optional[OSError] = None
    for attempt in range(1, max_retries + 1):
        try:
            await asyncio.to_thread(write_text_atomic, Path(path), content)
            return
        except OSError as exc:
            if _is_permission_error(exc):
                raise
            last_error = exc
            logger.debug(f"Write to {path} failed (attempt {attempt}/{max_retries}): {exc}")
            if attempt < max_retries:
                await asyncio.sleep(base_delay * (2 ** (attempt - 1)))

    if last_error is not None:
        raise last_error
    raise OSError(f"Failed to write {path} after {max_retries} attempts")


class PathLockRegistry:
    """One ``asyncio.Lock`` per resolved file path.

    Wraps read-modify-write sequences so two coroutines updating the same
    document inside one process cannot lose an update. An entry lives only
    while some coroutine holds or waits for it.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}

    def _key(self, path: Path | str) -> str:
        return str(Path(path).resolve())

    @asynccontextmanager
    async def hold(self, path: Path | str) -> AsyncIterator[None]:
        key = self._key(path)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if not self._holders[key]:
                del self._holders[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
