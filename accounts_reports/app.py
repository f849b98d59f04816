import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from accounts_reports.application import build_reports_service, configure_reports_service, get_reports_service
from accounts_reports.core.settings import ReportSettings
from accounts_reports.routes import reports


def create_app(settings: ReportSettings | None = None) -> FastAPI:
    settings = settings or ReportSettings.from_env()
    if settings.log_level:
        logging.basicConfig(level=settings.log_level.upper())

    if settings.source_url:
        configure_reports_service(build_reports_service(settings))

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        await get_reports_service().aclose()

    app = FastAPI(title="Accounts Reports API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(reports.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Accounts Reports API",
                "docs": "/docs",
                "health": "/api/reports/summary",
            }
        )

    return app


app = create_app()
