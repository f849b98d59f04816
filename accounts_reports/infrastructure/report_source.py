"""Clients for the payments reporting API that feeds the reports page."""
from __future__ import annotations

import copy
from typing import Any, Protocol
from urllib.parse import urlparse

import httpx

from accounts_reports.core.errors import SourceUnavailable


class ReportDataSource(Protocol):
    """Contract for the upstream data source, one call per dataset."""

    async def fetch_aging(self) -> Any: ...

    async def fetch_compliance(self) -> Any: ...

    async def fetch_sla_breaches(self) -> Any: ...

    async def fetch_summary(self, time_range: str) -> Any: ...

    async def fetch_trends(self, time_range: str) -> Any: ...

    async def aclose(self) -> None: ...


class HttpReportDataSource:
    """Reads report payloads from the payments API over HTTP."""

    AGING_PATH = "/payments/reports/aging"
    COMPLIANCE_PATH = "/payments/reports/compliance"
    SLA_BREACHES_PATH = "/payments/reports/sla-breaches"
    SUMMARY_PATH = "/payments/reports/summary"
    TRENDS_PATH = "/payments/reports/trends"

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        parsed = urlparse(base_url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("base_url must include scheme and host")

        self._base_url = base_url.rstrip("/")
        self._headers = {"Accept": "application/json"}
        if token:
            self._headers["Authorization"] = f"Bearer {token}"
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    async def _get(self, path: str, params: dict[str, str] | None = None) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = await self._client.get(url, params=params, headers=self._headers)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as exc:
            raise SourceUnavailable(f"GET {path} failed: {exc}") from exc
        except ValueError as exc:
            raise SourceUnavailable(f"GET {path} returned invalid JSON") from exc

        if isinstance(body, dict) and "data" in body:
            if body.get("success") is False:
                raise SourceUnavailable(f"GET {path} reported failure: {body.get('message') or 'unknown error'}")
            return body["data"]
        return body

    async def fetch_aging(self) -> Any:
        return await self._get(self.AGING_PATH)

    async def fetch_compliance(self) -> Any:
        return await self._get(self.COMPLIANCE_PATH)

    async def fetch_sla_breaches(self) -> Any:
        return await self._get(self.SLA_BREACHES_PATH)

    async def fetch_summary(self, time_range: str) -> Any:
        return await self._get(self.SUMMARY_PATH, params={"period": time_range})

    async def fetch_trends(self, time_range: str) -> Any:
        return await self._get(self.TRENDS_PATH, params={"period": time_range})

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class StaticReportDataSource:
    """In-memory source used when no API is configured and in tests.

    ``summary`` and ``trends`` are keyed by time range. A payload that is an
    exception instance is raised instead of returned.
    """

    def __init__(
        self,
        *,
        aging: Any = None,
        compliance: Any = None,
        sla_breaches: Any = None,
        summary: dict[str, Any] | None = None,
        trends: dict[str, Any] | None = None,
    ) -> None:
        self.aging = aging if aging is not None else []
        self.compliance = compliance if compliance is not None else {"vendors": [], "overallComplianceRate": 0}
        self.sla_breaches = (
            sla_breaches if sla_breaches is not None else {"items": [], "totalBreaches": 0, "avgDelayAcrossAll": 0}
        )
        self.summary = summary or {}
        self.trends = trends or {}
        self.calls: list[str] = []

    @staticmethod
    def _resolve(payload: Any) -> Any:
        if isinstance(payload, BaseException):
            raise payload
        return copy.deepcopy(payload)

    async def fetch_aging(self) -> Any:
        self.calls.append("aging")
        return self._resolve(self.aging)

    async def fetch_compliance(self) -> Any:
        self.calls.append("compliance")
        return self._resolve(self.compliance)

    async def fetch_sla_breaches(self) -> Any:
        self.calls.append("sla_breaches")
        return self._resolve(self.sla_breaches)

    async def fetch_summary(self, time_range: str) -> Any:
        self.calls.append(f"summary:{time_range}")
        return self._resolve(self.summary.get(time_range, {"released": 0, "pending": 0}))

    async def fetch_trends(self, time_range: str) -> Any:
        self.calls.append(f"trends:{time_range}")
        return self._resolve(self.trends.get(time_range, []))

    async def aclose(self) -> None:
        return None
