"""Application services."""

from .reports import (
    ReportView,
    ReportsService,
    build_reports_service,
    configure_reports_service,
    get_reports_service,
    reset_reports_state,
)

__all__ = [
    "ReportView",
    "ReportsService",
    "build_reports_service",
    "configure_reports_service",
    "get_reports_service",
    "reset_reports_state",
]
