from fastapi import APIRouter, Depends, HTTPException

from models.common_models import ChartImage, ChartOptionsRequest, PreviewRequest
from services.auth_service import get_current_user
from services.chart_options_service import derive_chart_options
from services.chart_render_service import render_chart_png
from services.preview_service import get_preview_rows
from services.workspace_service import workspace_for_session

router = APIRouter(prefix="/data", tags=["data"])

def _sheet(session_id: str, sheet_name: str, username: str):
    try:
        return workspace_for_session(session_id, username).get_sheet(sheet_name)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e.args[0]) if e.args else "Not found.")

@router.post("/preview")
async def preview_data(req: PreviewRequest, username: str = Depends(get_current_user)):
    sheet = _sheet(req.session_id, req.sheet_name, username)
    return get_preview_rows(sheet, req.n_rows)

@router.post("/chart-options")
async def chart_options(req: ChartOptionsRequest, username: str = Depends(get_current_user)):
    sheet = _sheet(req.session_id, req.sheet_name, username)
    return derive_chart_options(sheet.headers, sheet.data, req.config)

@router.post("/chart-image")
async def chart_image(req: ChartOptionsRequest, username: str = Depends(get_current_user)):
    sheet = _sheet(req.session_id, req.sheet_name, username)
    option = derive_chart_options(sheet.headers, sheet.data, req.config)
    image = render_chart_png(option)
    if image is None:
        raise HTTPException(status_code=500, detail="Chart could not be rendered.")
    return ChartImage(chart_type=req.config.type.value, title=req.config.title, image_base64=image).model_dump()
