from __future__ import annotations

import asyncio
import contextlib
import hashlib
import logging
import os
from collections.abc import Callable, Coroutine, Iterable
from pathlib import Path
from typing import Any

from watchfiles import Change, DefaultFilter, awatch

from transform_cache.core.warm import SOURCE_EXTENSIONS

logger = logging.getLogger(__name__)


class SourceChangeFilter(DefaultFilter):
    """Let through additions and edits of source files outside the ignored roots.

    The cache directory usually lives inside the watched tree; writes there must not
    trigger another round of transforms.
    """

    def __init__(self, ignore_roots: Iterable[str | Path] = ()) -> None:
        super().__init__(ignore_paths=[os.path.join(os.path.abspath(root), "") for root in ignore_roots])

    def __call__(self, change: Change, path: str) -> bool:
        if change == Change.deleted or Path(path).suffix not in SOURCE_EXTENSIONS:
            return False
        return super().__call__(change, path)


class WatchfilesWatcher:
    """Watch a directory for changed source files and hand them to a callback.

    Editors often touch or re-save a file without changing it; only files whose
    content differs from the last time they were seen are forwarded.
    """

    def __init__(
        self,
        directory: str | Path,
        on_change: Callable[[set[Path]], Coroutine[Any, Any, None]],
        *,
        ignore_roots: Iterable[str | Path] = (),
    ) -> None:
        self._directory = Path(directory)
        self._on_change = on_change
        self._filter = SourceChangeFilter(ignore_roots)
        self._digests: dict[Path, str] = {}
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._watch())
        logger.info("Watcher started for %s", self._directory)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Watcher stopped for %s", self._directory)

    async def wait(self) -> None:
        if self._task is not None:
            await self._task

    def _changed_paths(self, changes: set[tuple[Change, str]]) -> set[Path]:
        changed: set[Path] = set()
        for _, raw_path in changes:
            path = Path(raw_path)
            try:
                digest = hashlib.sha1(path.read_bytes()).hexdigest()
            except OSError as exc:
                logger.debug("Skipping %s: %s", path, exc)
                self._digests.pop(path, None)
                continue
            if self._digests.get(path) != digest:
                self._digests[path] = digest
                changed.add(path)
        return changed

    async def _watch(self) -> None:
        async for changes in awatch(self._directory, watch_filter=self._filter):
            paths = await asyncio.to_thread(self._changed_paths, changes)
            if paths:
                logger.info("Detected changes in %d source file(s)", len(paths))
                try:
                    await self._on_change(paths)
                except Exception:
                    logger.exception("Error while re-transforming changed files")
