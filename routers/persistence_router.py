from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import ValidationError

from models.chart_models import ChartTemplate, LockedChart, dump_model
from services import user_store_service
from services.auth_service import get_current_user

router = APIRouter(prefix="/api", tags=["persistence"])

def _validate(model, items: List[Dict[str, Any]]):
    try:
        return [model.model_validate(item) for item in items]
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid {model.__name__} payload: {e.error_count()} error(s).")

@router.get("/templates")
async def get_templates(username: str = Depends(get_current_user)):
    return [dump_model(t) for t in user_store_service.get_templates(username)]

@router.post("/templates")
async def save_templates(templates: List[Dict[str, Any]] = Body(...), username: str = Depends(get_current_user)):
    user_store_service.save_templates(username, _validate(ChartTemplate, templates))
    return {"message": "Templates saved."}

@router.get("/charts")
async def get_charts(username: str = Depends(get_current_user)):
    return [dump_model(c) for c in user_store_service.get_locked_charts(username)]

@router.post("/charts")
async def save_charts(charts: List[Dict[str, Any]] = Body(...), username: str = Depends(get_current_user)):
    user_store_service.save_locked_charts(username, _validate(LockedChart, charts))
    return {"message": "Charts saved."}
