from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response

from exceptions import ExportError, WorkspaceError
from models.chart_models import ChartType, TemplateApplyOptions, dump_model
from models.common_models import (
    AddChartRequest,
    ApplyStyleRequest,
    ChartTextRequest,
    CreateTemplateRequest,
    ImportSnapshotRequest,
    ReorderChartsRequest,
    SelectSheetRequest,
    UpdateChartRequest,
)
from services import export_service
from services.auth_service import get_current_user
from services.chart_render_service import render_chart_png
from services.style_presets_service import COLOR_THEMES, list_style_presets
from services.workspace_service import WorkspaceController, workspace_for_session

router = APIRouter(prefix="/workspace", tags=["workspace"])

EXPORT_MEDIA_TYPES = {
    "excel": ("application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", "xlsx"),
    "images": ("application/zip", "zip"),
    "pdf": ("application/pdf", "pdf"),
    "long-image": ("image/png", "png"),
}


def _not_found(e: KeyError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(e.args[0]) if e.args else "Not found.")


def _workspace(session_id: str, username: str = Depends(get_current_user)) -> WorkspaceController:
    try:
        return workspace_for_session(session_id, username)
    except KeyError as e:
        raise _not_found(e)


def _summary(ws: WorkspaceController):
    snapshot = ws.snapshot
    return {
        "fileName": snapshot.file_name,
        "sheets": [s.sheet_name for s in snapshot.sheets],
        "currentSheetName": snapshot.current_sheet_name,
        "activeCharts": [dump_model(c) for c in snapshot.active_charts],
        "lockedCharts": [{"id": c.id, "title": c.config.title, "type": c.config.type.value, "lockedAt": c.locked_at} for c in snapshot.locked_charts],
        "templates": [{"id": t.id, "name": t.name, "description": t.description, "charts": len(t.charts)} for t in snapshot.templates],
    }


# --------------------------------------------------------------------- styles
@router.get("/style-presets")
async def style_presets(chart_type: Optional[ChartType] = None):
    return list_style_presets(chart_type)


@router.get("/color-themes")
async def color_themes():
    return COLOR_THEMES


# ------------------------------------------------------------------ workspace
@router.get("/{session_id}")
async def get_workspace_state(ws: WorkspaceController = Depends(_workspace)):
    return _summary(ws)


@router.post("/{session_id}/sheet")
async def select_sheet(req: SelectSheetRequest, ws: WorkspaceController = Depends(_workspace)):
    try:
        ws.select_sheet(req.sheet_name)
    except KeyError as e:
        raise _not_found(e)
    return _summary(ws)


@router.get("/{session_id}/snapshot")
async def export_snapshot(ws: WorkspaceController = Depends(_workspace)):
    return ws.export_snapshot()


@router.post("/{session_id}/snapshot")
async def import_snapshot(req: ImportSnapshotRequest, ws: WorkspaceController = Depends(_workspace)):
    try:
        ws.import_snapshot(req.snapshot)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid snapshot: {e}")
    return _summary(ws)


# --------------------------------------------------------------------- charts
@router.post("/{session_id}/charts", status_code=201)
async def add_chart(req: AddChartRequest, ws: WorkspaceController = Depends(_workspace)):
    try:
        chart = ws.add_chart(req.chart_type)
    except WorkspaceError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return dump_model(chart)


@router.put("/{session_id}/charts/{chart_id}")
async def update_chart(chart_id: str, req: UpdateChartRequest, ws: WorkspaceController = Depends(_workspace)):
    try:
        return dump_model(ws.update_chart(chart_id, req.config))
    except KeyError as e:
        raise _not_found(e)


@router.delete("/{session_id}/charts/{chart_id}")
async def delete_chart(chart_id: str, ws: WorkspaceController = Depends(_workspace)):
    try:
        ws.delete_chart(chart_id)
    except KeyError as e:
        raise _not_found(e)
    return {"message": "Chart deleted."}


@router.post("/{session_id}/charts/reorder")
async def reorder_charts(req: ReorderChartsRequest, ws: WorkspaceController = Depends(_workspace)):
    try:
        charts = ws.reorder_charts(req.source_index, req.destination_index)
    except WorkspaceError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return [c.id for c in charts]


@router.post("/{session_id}/charts/{chart_id}/style")
async def apply_style(chart_id: str, req: ApplyStyleRequest, ws: WorkspaceController = Depends(_workspace)):
    try:
        return dump_model(ws.apply_style(chart_id, req.preset_id))
    except KeyError as e:
        raise _not_found(e)


@router.get("/{session_id}/charts/{chart_id}/options")
async def chart_options(chart_id: str, ws: WorkspaceController = Depends(_workspace)):
    try:
        return ws.chart_options(chart_id)
    except KeyError as e:
        raise _not_found(e)


@router.get("/{session_id}/charts/{chart_id}/image")
async def chart_image(chart_id: str, ws: WorkspaceController = Depends(_workspace)):
    try:
        option = ws.chart_options(chart_id)
    except KeyError as e:
        raise _not_found(e)
    return {"image_base64": render_chart_png(option)}


@router.post("/{session_id}/charts/{chart_id}/lock", status_code=201)
async def lock_chart(chart_id: str, ws: WorkspaceController = Depends(_workspace)):
    try:
        locked = ws.lock_chart(chart_id)
    except KeyError as e:
        raise _not_found(e)
    return {"id": locked.id, "lockedAt": locked.locked_at}


# -------------------------------------------------------------- locked charts
@router.get("/{session_id}/locked")
async def locked_charts(ws: WorkspaceController = Depends(_workspace)):
    return [dump_model(c) for c in ws.snapshot.locked_charts]


@router.delete("/{session_id}/locked/{locked_id}")
async def delete_locked_chart(locked_id: str, ws: WorkspaceController = Depends(_workspace)):
    try:
        ws.delete_locked_chart(locked_id)
    except KeyError as e:
        raise _not_found(e)
    return {"message": "Locked chart deleted."}


@router.get("/{session_id}/locked/{locked_id}/options")
async def locked_chart_options(locked_id: str, ws: WorkspaceController = Depends(_workspace)):
    try:
        return ws.locked_chart_options(locked_id)
    except KeyError as e:
        raise _not_found(e)


@router.get("/{session_id}/locked/{locked_id}/image")
async def locked_chart_image(locked_id: str, ws: WorkspaceController = Depends(_workspace)):
    try:
        option = ws.locked_chart_options(locked_id)
    except KeyError as e:
        raise _not_found(e)
    return {"image_base64": render_chart_png(option)}


@router.put("/{session_id}/locked/{locked_id}/text")
async def set_chart_text(locked_id: str, req: ChartTextRequest, ws: WorkspaceController = Depends(_workspace)):
    try:
        return dump_model(ws.set_chart_text(locked_id, req.pre_analysis, req.post_analysis))
    except KeyError as e:
        raise _not_found(e)


# ------------------------------------------------------------------ templates
@router.post("/{session_id}/templates", status_code=201)
async def create_template(req: CreateTemplateRequest, ws: WorkspaceController = Depends(_workspace)):
    try:
        template = ws.create_template(req.name, req.description)
    except WorkspaceError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return dump_model(template)


@router.delete("/{session_id}/templates/{template_id}")
async def delete_template(template_id: str, ws: WorkspaceController = Depends(_workspace)):
    try:
        ws.delete_template(template_id)
    except KeyError as e:
        raise _not_found(e)
    return {"message": "Template deleted."}


@router.post("/{session_id}/templates/{template_id}/apply")
async def apply_template(template_id: str, req: TemplateApplyOptions, ws: WorkspaceController = Depends(_workspace)):
    try:
        created = ws.apply_template(template_id, req.match_strategy, req.header_mappings)
    except KeyError as e:
        raise _not_found(e)
    except WorkspaceError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return [dump_model(c) for c in created]


# -------------------------------------------------------------------- exports
@router.get("/{session_id}/export/{kind}")
async def export_locked_charts(kind: str, ws: WorkspaceController = Depends(_workspace)):
    if kind not in EXPORT_MEDIA_TYPES:
        raise HTTPException(status_code=404, detail=f"Unknown export format '{kind}'.")

    locked = list(ws.snapshot.locked_charts)
    texts = dict(ws.snapshot.chart_texts)
    try:
        if kind == "excel":
            content = export_service.export_excel(locked)
        elif kind == "images":
            content = export_service.export_images_zip(locked)
        elif kind == "pdf":
            content = export_service.export_pdf(locked, texts)
        else:
            content = export_service.export_long_image(locked, texts)
    except ExportError as e:
        raise HTTPException(status_code=400, detail=str(e))

    media_type, extension = EXPORT_MEDIA_TYPES[kind]
    file_name = export_service.export_file_name(kind.replace("-", "_"), extension)
    return Response(content=content, media_type=media_type, headers={"Content-Disposition": f'attachment; filename="{file_name}"'})
