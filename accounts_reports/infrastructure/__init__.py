"""Infrastructure layer exports."""

from .print_surface import HtmlFileSurface, PrintSurface, html_file_surface_factory
from .report_source import HttpReportDataSource, ReportDataSource, StaticReportDataSource

__all__ = [
    "HtmlFileSurface",
    "HttpReportDataSource",
    "PrintSurface",
    "ReportDataSource",
    "StaticReportDataSource",
    "html_file_surface_factory",
]
