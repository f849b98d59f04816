"""Transient rendering surfaces for print exports.

A surface is acquired for exactly one print job and must be closed
afterwards. :class:`HtmlFileSurface` writes the document into a private
temporary directory and, when a print command is configured, hands the file to
that command. Completion of the command is the surface's after-print signal.
"""
from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Protocol, Sequence

from accounts_reports.core.errors import RenderSurfaceUnavailable

logger = logging.getLogger(__name__)


class PrintSurface(Protocol):
    """Contract for print rendering surfaces."""

    def write(self, document: str) -> None:
        """Load the full document into the surface."""

    def on_after_print(self, callback: Callable[[], None]) -> None:
        """Register a callback fired once printing has completed."""

    async def print(self) -> None:
        """Start printing; returns once the job has been handed off."""

    def close(self) -> None:
        """Release the surface. Must be idempotent."""


class HtmlFileSurface:
    def __init__(self, *, command: Sequence[str] | None = None, directory: Path | None = None) -> None:
        try:
            self._root = Path(tempfile.mkdtemp(prefix="report-print-", dir=directory))
        except OSError as exc:
            raise RenderSurfaceUnavailable(f"cannot create print surface: {exc}") from exc
        self._document_path = self._root / "document.html"
        self._command = list(command or [])
        self._callbacks: list[Callable[[], None]] = []
        self._process: asyncio.subprocess.Process | None = None
        self._waiter: asyncio.Task | None = None
        self._closed = False

    @property
    def document_path(self) -> Path:
        return self._document_path

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, document: str) -> None:
        if self._closed:
            raise RenderSurfaceUnavailable("print surface already closed")
        self._document_path.write_text(document, encoding="utf-8")

    def on_after_print(self, callback: Callable[[], None]) -> None:
        self._callbacks.append(callback)

    async def print(self) -> None:
        if self._closed:
            raise RenderSurfaceUnavailable("print surface already closed")
        if not self._command:
            logger.info("no print command configured; skipping print of %s", self._document_path.name)
            self._fire_after_print()
            return
        self._process = await asyncio.create_subprocess_exec(
            *self._command,
            str(self._document_path),
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        self._waiter = asyncio.get_running_loop().create_task(self._wait_for_process())

    async def _wait_for_process(self) -> None:
        assert self._process is not None
        returncode = await self._process.wait()
        if returncode:
            logger.warning("print command exited with status %s", returncode)
        self._fire_after_print()

    def _fire_after_print(self) -> None:
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._callbacks.clear()
        if self._process is not None and self._process.returncode is None:
            try:
                self._process.kill()
            except ProcessLookupError:
                pass
        if self._waiter is not None and not self._waiter.done():
            try:
                current = asyncio.current_task()
            except RuntimeError:
                current = None
            if self._waiter is not current:
                self._waiter.cancel()
        shutil.rmtree(self._root, ignore_errors=True)


def html_file_surface_factory(
    command: Sequence[str] | None = None, directory: Path | None = None
) -> Callable[[], PrintSurface]:
    def factory() -> PrintSurface:
        return HtmlFileSurface(command=command, directory=directory)

    return factory
