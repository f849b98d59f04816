from __future__ import annotations

from fastapi import APIRouter, HTTPException
from fastapi.responses import HTMLResponse, JSONResponse, Response

from accounts_reports.application import ReportView, get_reports_service
from accounts_reports.core.errors import (
    InvalidFilterValue,
    InvalidTimeRange,
    UnknownDataset,
    UnknownFilterSlot,
)

router = APIRouter(prefix="/reports", tags=["reports"])


def _get_view(dataset_id: str) -> ReportView:
    service = get_reports_service()
    try:
        return service.view(dataset_id)
    except UnknownDataset as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


def _page_payload(view: ReportView) -> dict:
    return {
        "dataset": view.dataset_id.value,
        "title": view.definition.title,
        "items": [row.export_record("json") for row in view.get_visible_page()],
        "pagination": view.get_pagination_info().model_dump(mode="json"),
        "filters": view.criteria,
        "loading": view.loading,
    }


@router.post("/refresh")
async def refresh_reports() -> dict:
    service = get_reports_service()
    await service.refresh()
    return {
        "datasets": {
            view.dataset_id.value: {"total": len(view.rows), "loading": view.loading} for view in service.views()
        },
        "summary": service.get_summary().model_dump(mode="json"),
    }


@router.get("/summary")
async def get_summary() -> dict:
    return get_reports_service().get_summary().model_dump(mode="json")


@router.put("/time-range")
async def set_time_range(payload: dict) -> dict:
    time_range = payload.get("time_range")
    if not time_range:
        raise HTTPException(status_code=400, detail="time_range is required")
    service = get_reports_service()
    try:
        await service.set_time_range(str(time_range))
    except InvalidTimeRange as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return service.get_summary().model_dump(mode="json")


@router.get("/trends")
async def get_trends() -> dict:
    service = get_reports_service()
    return {
        "time_range": service.time_range,
        "loading": service.period_loading,
        "items": [point.export_record("json") for point in service.get_trends()],
    }


@router.get("/{dataset_id}")
async def get_visible_page(dataset_id: str) -> dict:
    return _page_payload(_get_view(dataset_id))


@router.put("/{dataset_id}/filters/{slot}")
async def set_filter(dataset_id: str, slot: str, payload: dict) -> dict:
    view = _get_view(dataset_id)
    try:
        view.set_filter(slot, payload.get("value"))
    except UnknownFilterSlot as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except InvalidFilterValue as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _page_payload(view)


@router.get("/{dataset_id}/filters/{slot}/choices")
async def get_filter_choices(dataset_id: str, slot: str) -> dict:
    view = _get_view(dataset_id)
    try:
        choices = view.choices(slot)
    except UnknownFilterSlot as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"slot": slot, "items": choices}


@router.delete("/{dataset_id}/filters")
async def reset_filters(dataset_id: str) -> dict:
    view = _get_view(dataset_id)
    view.reset_filters()
    return _page_payload(view)


@router.put("/{dataset_id}/page")
async def set_page(dataset_id: str, payload: dict) -> dict:
    view = _get_view(dataset_id)
    page = payload.get("page")
    if isinstance(page, bool) or not isinstance(page, (int, str)):
        raise HTTPException(status_code=400, detail="page must be a positive integer")
    try:
        view.set_page(int(page))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="page must be a positive integer") from exc
    return _page_payload(view)


@router.get("/{dataset_id}/pagination")
async def get_pagination_info(dataset_id: str) -> dict:
    return _get_view(dataset_id).get_pagination_info().model_dump(mode="json")


@router.get("/{dataset_id}/export.csv")
async def export_delimited_text(dataset_id: str) -> Response:
    _get_view(dataset_id)
    service = get_reports_service()
    content = service.export_as_delimited_text(dataset_id)
    filename = service.export_filename(dataset_id)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{dataset_id}/print", response_class=HTMLResponse)
async def get_print_document(dataset_id: str) -> HTMLResponse:
    _get_view(dataset_id)
    return HTMLResponse(get_reports_service().render_print_document(dataset_id))


@router.post("/{dataset_id}/print", status_code=202)
async def trigger_print_export(dataset_id: str) -> JSONResponse:
    _get_view(dataset_id)
    get_reports_service().trigger_print_export(dataset_id)
    return JSONResponse({"dataset": dataset_id, "status": "scheduled"}, status_code=202)
