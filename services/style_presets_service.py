from typing import Any, Dict, List, Optional

from models.chart_models import ChartConfig, ChartOptions, ChartType, dump_model

COLOR_THEMES: Dict[str, List[str]] = {
    "default": ["#5470c6", "#91cc75", "#fac858", "#ee6666", "#73c0de", "#3ba272", "#fc8452", "#9a60b4", "#ea7ccc"],
    "warm": ["#ff7f50", "#ff6347", "#ff4500", "#ff8c00", "#ffa500", "#ffb700", "#ffd700", "#ffff00", "#f0e68c"],
    "cool": ["#87ceeb", "#00bfff", "#1e90ff", "#6495ed", "#7b68ee", "#9370db", "#8a2be2", "#9932cc", "#9400d3"],
    "pastel": ["#FFB6C1", "#FFD700", "#ADD8E6", "#98FB98", "#DDA0DD", "#FFDAB9", "#87CEFA", "#B0E0E6", "#F5DEB3"],
    "dark": ["#1a1a1a", "#2c2c2c", "#3f3f3f", "#515151", "#626262", "#7a7a7a", "#8b8b8b", "#9c9c9c", "#adadad"],
}

_DARK_TEXT = {"bgColor": "#1a1a1a", "borderColor": "#2a2a2a", "titleColor": "#ffffff", "axisColor": "#d0d0d0", "labelColor": "#eeeeee", "legendColor": "#eeeeee"}
_LIGHT_TEXT = {"bgColor": "#ffffff", "borderColor": "#f0f0f0", "titleColor": "#333333", "axisColor": "#666666", "labelColor": "#666666", "legendColor": "#333333"}

# Ready-made option sets per chart type, in the camelCase option shape
STYLE_PRESETS: List[Dict[str, Any]] = [
    {
        "id": "classic-business",
        "name": "Classic business",
        "description": "Clean blue gradient palette for formal reports",
        "type": ChartType.BAR,
        "options": {**_LIGHT_TEXT, "colors": ["#4e7bea", "#5d8aec", "#6b99ee", "#79a7f0", "#88b6f2"], "barWidth": 65, "borderRadius": 4, "seriesOpacity": 1.0, "legendColor": "#333333", "showDataLabels": True},
    },
    {
        "id": "3d-effect",
        "name": "Raised",
        "description": "Bars with a drop shadow",
        "type": ChartType.BAR,
        "options": {
            **_LIGHT_TEXT,
            "colors": ["#55a4f3", "#92ec86", "#f7c967", "#fc7a43", "#df73ff"],
            "barWidth": 75,
            "borderRadius": 6,
            "seriesOpacity": 0.85,
            "bgColor": "#f7f7f7",
            "showDataLabels": True,
            "shadowBlur": 10,
            "shadowColor": "rgba(0, 0, 0, 0.2)",
            "shadowOffsetX": 5,
            "shadowOffsetY": 5,
        },
    },
    {
        "id": "smooth-gradient",
        "name": "Smooth gradient",
        "description": "Smoothed lines with a light fill, for trends",
        "type": ChartType.LINE,
        "options": {**_LIGHT_TEXT, "colors": COLOR_THEMES["default"][:5], "seriesOpacity": 0.8, "smooth": True, "lineWidth": 3, "symbolSize": 6, "areaStyle": True, "areaOpacity": 0.3},
    },
    {
        "id": "dotted-line",
        "name": "Dashed markers",
        "description": "Dashed lines with large markers on every point",
        "type": ChartType.LINE,
        "options": {**_LIGHT_TEXT, "colors": ["#5b8ff9", "#5ad8a6", "#5d7092", "#f6bd16", "#e86452"], "seriesOpacity": 1.0, "showDataLabels": True, "smooth": False, "lineWidth": 2, "symbolSize": 8, "lineType": "dashed"},
    },
    {
        "id": "pastel-donut",
        "name": "Pastel donut",
        "description": "Ring chart in soft colors",
        "type": ChartType.PIE,
        "options": {**_LIGHT_TEXT, "colors": COLOR_THEMES["pastel"][:6], "seriesOpacity": 0.9, "showDataLabels": True, "radius": ["40%", "70%"], "borderRadius": 8, "borderWidth": 2, "pieBorderColor": "#ffffff"},
    },
    {
        "id": "rose-chart",
        "name": "Rose",
        "description": "Nightingale rose, slice radius follows the value",
        "type": ChartType.PIE,
        "options": {**_LIGHT_TEXT, "colors": COLOR_THEMES["default"][:6], "seriesOpacity": 0.9, "labelColor": "#333333", "showDataLabels": True, "borderWidth": 1, "roseType": True, "pieBorderColor": "#ffffff"},
    },
    {
        "id": "gradient-area",
        "name": "Gradient area",
        "description": "Smooth area with a vertical gradient fill",
        "type": ChartType.AREA,
        "options": {
            **_LIGHT_TEXT,
            "colors": ["#83bff6", "#188df0", "#188df0"],
            "seriesOpacity": 0.8,
            "smooth": True,
            "lineWidth": 2,
            "symbolSize": 6,
            "areaStyle": True,
            "areaOpacity": 0.5,
            "colorStops": [[0, "rgba(24, 141, 240, 0.8)"], [1, "rgba(24, 141, 240, 0.1)"]],
        },
    },
    {
        "id": "stacked-area",
        "name": "Stacked area",
        "description": "Stacked series, for part-of-whole trends",
        "type": ChartType.AREA,
        "options": {**_LIGHT_TEXT, "colors": COLOR_THEMES["default"][:5], "seriesOpacity": 0.8, "lineWidth": 1, "symbolSize": 4, "areaStyle": True, "areaOpacity": 0.7, "stack": True},
    },
    {
        "id": "bubble-scatter",
        "name": "Bubbles",
        "description": "Points of varying size",
        "type": ChartType.SCATTER,
        "options": {**_LIGHT_TEXT, "colors": COLOR_THEMES["default"][:5], "seriesOpacity": 0.7, "symbolSize": [10, 16, 22, 8, 12]},
    },
    {
        "id": "dark-scatter",
        "name": "Dark scatter",
        "description": "Bright glowing points on a dark background",
        "type": ChartType.SCATTER,
        "options": {**_DARK_TEXT, "colors": ["#36c5b0", "#a0e8af", "#ffdd7e", "#ff9d84", "#9e9fff"], "seriesOpacity": 0.9, "symbolSize": 12, "effectShadow": True, "shadowColor": "rgba(255, 255, 255, 0.3)", "shadowBlur": 10},
    },
    {
        "id": "classic-radar",
        "name": "Classic radar",
        "description": "Plain radar for multi-dimensional comparison",
        "type": ChartType.RADAR,
        "options": {**_LIGHT_TEXT, "colors": COLOR_THEMES["default"][:5], "seriesOpacity": 0.8},
    },
    {
        "id": "dark-radar",
        "name": "Dark radar",
        "description": "Radar on a dark background",
        "type": ChartType.RADAR,
        "options": {**_DARK_TEXT, "colors": ["#36c5b0", "#a0e8af", "#ffdd7e", "#ff9d84", "#9e9fff"], "seriesOpacity": 0.9, "showDataLabels": True},
    },
]


def resolve_palette(colors: Optional[List[str]], color_theme: Optional[str]) -> List[str]:
    """Explicit colors win, then a named theme, then the default theme."""
    if colors:
        return list(colors)
    if color_theme and color_theme in COLOR_THEMES:
        return list(COLOR_THEMES[color_theme])
    return list(COLOR_THEMES["default"])


def list_style_presets(chart_type: Optional[ChartType] = None) -> List[Dict[str, Any]]:
    presets = STYLE_PRESETS if chart_type is None else [p for p in STYLE_PRESETS if p["type"] == chart_type]
    return [{**p, "type": p["type"].value} for p in presets]


def get_style_preset(preset_id: str) -> Dict[str, Any]:
    for preset in STYLE_PRESETS:
        if preset["id"] == preset_id:
            return preset
    raise KeyError(f"Style preset '{preset_id}' not found.")


def apply_style_preset(config: ChartConfig, preset_id: str) -> ChartConfig:
    """
    Overlay a preset's options on a chart config.

    Data options (count mode, sorting, base value) are kept; styling keys
    present in the preset replace the chart's own.
    """
    preset = get_style_preset(preset_id)
    merged = {**dump_model(config.options), **preset["options"]}
    return config.model_copy(update={"options": ChartOptions.model_validate(merged)})
