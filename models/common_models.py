from typing import Any, Dict, List, Optional
from pydantic import BaseModel

from config import PREVIEW_ROWS
from models.chart_models import ChartConfig, ChartType

class SheetInfo(BaseModel):
    sheet_name: str
    n_rows: int
    n_cols: int
    headers: List[str] = []

class PreviewRequest(BaseModel):
    session_id: str
    sheet_name: str
    n_rows: int = PREVIEW_ROWS

class ChartOptionsRequest(BaseModel):
    session_id: str
    sheet_name: str
    config: ChartConfig

class ChartImage(BaseModel):
    chart_type: str
    title: str
    image_base64: Optional[str] = None

class SelectSheetRequest(BaseModel):
    sheet_name: str

class AddChartRequest(BaseModel):
    chart_type: ChartType

class UpdateChartRequest(BaseModel):
    config: ChartConfig

class ReorderChartsRequest(BaseModel):
    source_index: int
    destination_index: int

class ChartTextRequest(BaseModel):
    pre_analysis: str = ""
    post_analysis: str = ""

class CreateTemplateRequest(BaseModel):
    name: str
    description: str = ""

class ApplyStyleRequest(BaseModel):
    preset_id: str

class ImportSnapshotRequest(BaseModel):
    snapshot: Dict[str, Any]
