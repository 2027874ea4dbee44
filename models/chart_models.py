from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from utils.logger import get_logger

logger = get_logger(__name__)

CHART_OPTIONS_VERSION = 1


class CamelModel(BaseModel):
    # snake_case in Python, camelCase on the wire and in the JSON files
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChartType(str, Enum):
    BAR = "bar"
    LINE = "line"
    PIE = "pie"
    SCATTER = "scatter"
    AREA = "area"
    RADAR = "radar"


class SortOrder(str, Enum):
    NONE = "none"
    ASCENDING = "asc"
    DESCENDING = "desc"


class MatchStrategy(str, Enum):
    EXACT = "exact"
    FUZZY = "fuzzy"
    MANUAL = "manual"


class SheetData(CamelModel):
    sheet_name: str
    headers: List[str] = []
    data: List[List[Any]] = []

    @field_validator("headers", mode="before")
    @classmethod
    def _headers_as_text(cls, value):
        if value is None:
            return []
        return ["" if h is None else str(h) for h in value]


class AxisBinding(CamelModel):
    field: str = ""
    title: Optional[str] = None


class SeriesBinding(CamelModel):
    field: str = ""
    name: Optional[str] = None


class ChartOptions(CamelModel):
    """
    Rendering parameters of a chart.

    The record is closed: keys that are not declared here are dropped (and
    logged) when a config is parsed, so they never reach the render spec.
    """

    version: int = CHART_OPTIONS_VERSION

    # data handling
    count_mode: Optional[bool] = None
    show_data_labels: Optional[bool] = None
    sort_order: Optional[SortOrder] = None
    sort_by_series_value: Optional[bool] = None
    base_value: Optional[float] = None

    # shared styling
    colors: Optional[List[str]] = None
    color_theme: Optional[str] = None
    bar_width: Optional[float] = None
    border_radius: Optional[float] = None
    series_opacity: Optional[float] = None
    bg_color: Optional[str] = None
    border_color: Optional[str] = None
    font_family: Optional[str] = None
    title_color: Optional[str] = None
    axis_color: Optional[str] = None
    label_color: Optional[str] = None
    legend_color: Optional[str] = None
    shadow_blur: Optional[float] = None
    shadow_color: Optional[str] = None
    shadow_offset_x: Optional[float] = None
    shadow_offset_y: Optional[float] = None

    # line / area
    smooth: Optional[bool] = None
    line_width: Optional[float] = None
    line_type: Optional[str] = None
    symbol_size: Optional[Union[float, List[float]]] = None
    area_style: Optional[bool] = None
    area_opacity: Optional[float] = None
    stack: Optional[bool] = None
    color_stops: Optional[List[Tuple[float, str]]] = None

    # pie
    radius: Optional[List[Union[float, str]]] = None
    border_width: Optional[float] = None
    rose_type: Optional[bool] = None
    pie_border_color: Optional[str] = None

    # scatter
    effect_gradient: Optional[bool] = None
    effect_shadow: Optional[bool] = None

    @model_validator(mode="before")
    @classmethod
    def _drop_unknown_keys(cls, data):
        if not isinstance(data, dict):
            return data
        known = set()
        for name, info in cls.model_fields.items():
            known.add(name)
            if info.alias:
                known.add(info.alias)
        unknown = [k for k in data if k not in known]
        if unknown:
            logger.warning(f"Ignoring unknown chart option keys: {sorted(unknown)}")
            data = {k: v for k, v in data.items() if k in known}
        return data


class ChartConfig(CamelModel):
    type: ChartType
    title: str = ""
    x_axis: Optional[AxisBinding] = None
    y_axis: Optional[AxisBinding] = None
    series: List[SeriesBinding] = []
    options: ChartOptions = Field(default_factory=ChartOptions)

    @field_validator("series", mode="before")
    @classmethod
    def _series_not_null(cls, value):
        return [] if value is None else value

    @field_validator("options", mode="before")
    @classmethod
    def _options_not_null(cls, value):
        return {} if value is None else value


class LockedChart(CamelModel):
    id: str
    config: ChartConfig
    source_data: SheetData
    locked_at: int
    source_file_name: Optional[str] = None


class TemplateChart(CamelModel):
    config: ChartConfig
    original_headers: List[str] = []
    pre_analysis: str = ""
    post_analysis: str = ""


class ChartTemplate(CamelModel):
    id: str
    name: str
    description: str = ""
    created_at: int
    charts: List[TemplateChart] = []


class TemplateApplyOptions(CamelModel):
    match_strategy: MatchStrategy = MatchStrategy.EXACT
    header_mappings: Optional[Dict[str, str]] = None


def dump_model(model: BaseModel) -> Dict[str, Any]:
    """JSON-ready dict in the camelCase wire/file shape."""
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)
