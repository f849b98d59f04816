"""Print-ready HTML documents and the fire-and-forget print pipeline."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Mapping, Sequence

from jinja2 import Environment, select_autoescape

from accounts_reports.core.datasets import ExportColumn
from accounts_reports.core.errors import RenderSurfaceUnavailable
from accounts_reports.infrastructure.print_surface import PrintSurface

logger = logging.getLogger(__name__)

PRINT_STYLES = (
    "body{font-family:ui-sans-serif,system-ui,-apple-system,Segoe UI,Roboto,Arial;padding:16px;color:#111827}"
    "h1{font-size:18px;margin:0 0 12px}"
    "table{width:100%;border-collapse:collapse;font-size:12px;background:#fff}"
    "th,td{text-align:left;padding:8px;border-bottom:1px solid #e5e7eb}"
    "thead{background:#f9fafb}"
)

DOCUMENT_TEMPLATE = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8" />
    <title>{{ title }}</title>
    <style>{{ styles | safe }}</style>
  </head>
  <body>
    <h1>{{ title }}</h1>
    <table>
      <thead>
        <tr>{% for column in columns %}<th>{{ column.label }}</th>{% endfor %}</tr>
      </thead>
      <tbody>
{%- for cells in rows %}
        <tr>{% for cell in cells %}<td>{{ cell }}</td>{% endfor %}</tr>
{%- endfor %}
      </tbody>
    </table>
  </body>
</html>
"""

_environment = Environment(autoescape=select_autoescape(default_for_string=True, default=True))
_template = _environment.from_string(DOCUMENT_TEMPLATE)


def render_print_document(
    title: str,
    columns: Sequence[ExportColumn],
    records: Sequence[Mapping[str, Any]],
) -> str:
    """Render a self-contained HTML table with one row per record."""

    rows = [[column.print_value(record.get(column.key)) for column in columns] for record in records]
    return _template.render(title=title, styles=PRINT_STYLES, columns=columns, rows=rows)


class SurfaceLease:
    """Releases a surface exactly once, on the after-print signal or a timer."""

    def __init__(self, surface: PrintSurface) -> None:
        self._surface = surface
        self._timer: asyncio.TimerHandle | None = None
        self.released = False

    def arm(self, delay: float) -> None:
        if self.released:
            return
        self._timer = asyncio.get_running_loop().call_later(delay, self.release)

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        if self._timer is not None:
            self._timer.cancel()
        self._surface.close()


class PrintExporter:
    """Drives one transient print surface per export request."""

    def __init__(
        self,
        surface_factory: Callable[[], PrintSurface],
        *,
        settle_delay: float = 0.25,
        cleanup_timeout: float = 1.5,
    ) -> None:
        self._surface_factory = surface_factory
        self._settle_delay = settle_delay
        self._cleanup_timeout = cleanup_timeout
        self._tasks: set[asyncio.Task] = set()
        self._leases: set[SurfaceLease] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks) + sum(1 for lease in self._leases if not lease.released)

    def trigger(self, document: str) -> None:
        """Schedule printing of ``document`` on the running loop and return immediately."""

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("print export requested without a running event loop; skipped")
            return
        task = loop.create_task(self._run(document))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, document: str) -> None:
        try:
            surface = self._surface_factory()
        except RenderSurfaceUnavailable as exc:
            logger.warning("print export aborted: %s", exc)
            return

        lease = SurfaceLease(surface)
        self._leases.add(lease)
        try:
            surface.write(document)
            surface.on_after_print(lease.release)
            await asyncio.sleep(self._settle_delay)
            await surface.print()
        except (OSError, RenderSurfaceUnavailable) as exc:
            logger.warning("print export failed: %s", exc)
            lease.release()
        except asyncio.CancelledError:
            lease.release()
            raise
        else:
            lease.arm(self._cleanup_timeout)
        finally:
            self._leases = {item for item in self._leases if not item.released}

    async def drain(self) -> None:
        """Wait for scheduled jobs and release any surface still held."""

        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        for lease in list(self._leases):
            lease.release()
        self._leases.clear()
