from typing import Dict, List, Optional

from pydantic import ConfigDict
from pydantic.alias_generators import to_camel

from models.chart_models import CamelModel, ChartConfig, ChartTemplate, LockedChart, SheetData


class ActiveChart(CamelModel):
    id: str
    config: ChartConfig
    sheet_name: str


class ChartText(CamelModel):
    pre_analysis: str = ""
    post_analysis: str = ""


class WorkspaceSnapshot(CamelModel):
    """Full state of one workspace. Never mutated; the controller swaps in new copies."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    file_name: Optional[str] = None
    sheets: List[SheetData] = []
    current_sheet_name: Optional[str] = None
    active_charts: List[ActiveChart] = []
    locked_charts: List[LockedChart] = []
    templates: List[ChartTemplate] = []
    chart_texts: Dict[str, ChartText] = {}
