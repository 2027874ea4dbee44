"""
Chart option derivation.

Turns a sheet (headers + rows) and a ChartConfig into an ECharts-style
option dict. Everything here is pure: no I/O, no shared state, and no
exceptions for bindings that do not resolve (they just produce empty or
zero-filled series).
"""

import math
from functools import cmp_to_key
from typing import Any, Dict, List, Optional, Sequence, Tuple

from models.chart_models import ChartConfig, ChartOptions, ChartType, SortOrder
from services.cell_format_service import (
    format_cell,
    is_date_field,
    is_empty_cell,
    parse_date,
    parse_leading_float,
    stringify_cell,
    to_number,
)
from services.style_presets_service import resolve_palette

UNRESOLVED = -1
COUNT_AXIS_NAME = "Count"

DEFAULT_BAR_WIDTH = 60
DEFAULT_TITLE_COLOR = "#333333"
DEFAULT_TEXT_COLOR = "#666666"

# (category label, one value per bound series)
Point = Tuple[str, List[float]]


def resolve_field(headers: Sequence[str], field: Optional[str]) -> int:
    """Column index of an exact header match, UNRESOLVED when missing or unbound."""
    if not field:
        return UNRESOLVED
    for index, header in enumerate(headers):
        if header == field:
            return index
    return UNRESOLVED


def _cell(row: Sequence[Any], index: int) -> Any:
    # rows coming from spreadsheets are often shorter than the header row
    if index < 0 or index >= len(row):
        return None
    return row[index]


def _percent(value: float) -> str:
    return f"{value:g}%"


# ---------------------------------------------------------------------------
# Data collection
# ---------------------------------------------------------------------------
def _count_points(
    rows: Sequence[Sequence[Any]],
    x_index: int,
    series_indices: List[int],
    x_is_date: bool,
    base_value: float,
) -> List[Point]:
    """One point per distinct X value, counting non-empty series cells."""
    categories: Dict[str, List[int]] = {}

    for row in rows:
        category = format_cell(_cell(row, x_index), x_is_date)
        counts = categories.setdefault(category, [0] * len(series_indices))
        for i, series_index in enumerate(series_indices):
            if series_index >= 0 and not is_empty_cell(_cell(row, series_index)):
                counts[i] += 1

    return [(category, [count + base_value for count in counts]) for category, counts in categories.items()]


def _raw_points(
    rows: Sequence[Sequence[Any]],
    x_index: int,
    series_indices: List[int],
    x_is_date: bool,
    base_value: float,
) -> List[Point]:
    """One point per row; unparsable or unbound series cells fall back to the base value."""
    if x_index < 0:
        return []

    points: List[Point] = []
    for row in rows:
        category = format_cell(_cell(row, x_index), x_is_date)
        values = []
        for series_index in series_indices:
            number = parse_leading_float(_cell(row, series_index)) if series_index >= 0 else None
            values.append(base_value if number is None else number + base_value)
        points.append((category, values))
    return points


def _compare_keys(a: Tuple, b: Tuple) -> int:
    (text_a, date_a, num_a), (text_b, date_b, num_b) = a, b
    if date_a is not None and date_b is not None:
        return (date_a > date_b) - (date_a < date_b)
    if num_a is not None and num_b is not None:
        return (num_a > num_b) - (num_a < num_b)
    # case-insensitive, raw text breaks ties
    folded_a, folded_b = (text_a.casefold(), text_a), (text_b.casefold(), text_b)
    return (folded_a > folded_b) - (folded_a < folded_b)


def _category_key(category: str, is_date: bool) -> Tuple:
    return (category, parse_date(category) if is_date else None, to_number(category))


def sort_categories(categories: List[str], sort_order: SortOrder, is_date: bool = False) -> List[str]:
    """Order category labels: dates, then numbers, then text."""
    if sort_order in (None, SortOrder.NONE):
        return list(categories)
    keyed = [(_category_key(c, is_date), c) for c in categories]
    keyed.sort(key=cmp_to_key(lambda a, b: _compare_keys(a[0], b[0])), reverse=sort_order == SortOrder.DESCENDING)
    return [c for _, c in keyed]


def sort_points(points: List[Point], sort_order: SortOrder, by_series_value: bool, is_date: bool) -> List[Point]:
    if sort_order in (None, SortOrder.NONE):
        return points

    descending = sort_order == SortOrder.DESCENDING

    if by_series_value:
        return sorted(points, key=lambda p: p[1][0] if p[1] else 0, reverse=descending)

    keyed = [(_category_key(p[0], is_date), p) for p in points]
    keyed.sort(key=cmp_to_key(lambda a, b: _compare_keys(a[0], b[0])), reverse=descending)
    return [p for _, p in keyed]


# ---------------------------------------------------------------------------
# Styling
# ---------------------------------------------------------------------------
class _Style:
    """Option values with their defaults applied."""

    def __init__(self, options: ChartOptions):
        self.options = options
        self.colors = resolve_palette(options.colors, options.color_theme)
        self.show_labels = bool(options.show_data_labels)
        self.base_value = options.base_value or 0
        self.bar_width = options.bar_width or DEFAULT_BAR_WIDTH
        self.border_radius = options.border_radius or 0
        self.opacity = options.series_opacity or 1.0
        self.bg_color = options.bg_color or "transparent"
        self.title_color = options.title_color or DEFAULT_TITLE_COLOR
        self.axis_color = options.axis_color or DEFAULT_TEXT_COLOR
        self.label_color = options.label_color or DEFAULT_TEXT_COLOR
        self.legend_color = options.legend_color or DEFAULT_TEXT_COLOR

    def axis(self) -> Dict[str, Any]:
        return {
            "axisLine": {"lineStyle": {"color": self.axis_color}},
            "axisLabel": {"color": self.axis_color},
            "nameTextStyle": {"color": self.axis_color},
        }

    def base(self, title: str) -> Dict[str, Any]:
        text_style: Dict[str, Any] = {"color": self.label_color}
        if self.options.font_family:
            text_style["fontFamily"] = self.options.font_family
        return {
            "color": list(self.colors),
            "backgroundColor": self.bg_color,
            "title": {"text": title, "textStyle": {"color": self.title_color}},
            "textStyle": text_style,
            "xAxis": self.axis(),
            "yAxis": self.axis(),
            "legend": {"textStyle": {"color": self.legend_color}},
        }

    def value_axis(self, name: Optional[str]) -> Dict[str, Any]:
        axis = {**self.axis(), "name": name}
        if self.base_value > 0:
            axis["min"] = self.base_value
        return axis

    def label(self, position: str = "top", formatter: str = "{c}") -> Dict[str, Any]:
        return {"show": self.show_labels, "position": position, "formatter": formatter, "color": self.label_color}

    def area_style(self) -> Dict[str, Any]:
        area: Dict[str, Any] = {"opacity": self.options.area_opacity or self.opacity * 0.7}
        if self.options.color_stops:
            area["color"] = {
                "type": "linear",
                "x": 0,
                "y": 0,
                "x2": 0,
                "y2": 1,
                "colorStops": [{"offset": offset, "color": color} for offset, color in self.options.color_stops],
            }
        return area


# ---------------------------------------------------------------------------
# Per chart type builders
# ---------------------------------------------------------------------------
def _series_name(binding) -> str:
    return binding.name or binding.field


def _bar_option(style: _Style, config: ChartConfig, categories, values, series, y_name) -> Dict[str, Any]:
    opts = style.options
    option = style.base(config.title)
    option.update(
        {
            "tooltip": {},
            "xAxis": {**style.axis(), "data": categories, "name": config.x_axis.title if config.x_axis else None},
            "yAxis": style.value_axis(y_name),
            "series": [
                {
                    "name": _series_name(s),
                    "type": "bar",
                    "data": values[i],
                    "barWidth": _percent(style.bar_width),
                    "itemStyle": {
                        "borderRadius": style.border_radius,
                        "opacity": style.opacity,
                        "shadowBlur": opts.shadow_blur or 0,
                        "shadowColor": opts.shadow_color or "rgba(0,0,0,0)",
                        "shadowOffsetX": opts.shadow_offset_x or 0,
                        "shadowOffsetY": opts.shadow_offset_y or 0,
                    },
                    "label": style.label(),
                }
                for i, s in enumerate(series)
            ],
        }
    )
    return option


def _line_symbol_size(opts: ChartOptions) -> float:
    size = opts.symbol_size
    if isinstance(size, list):
        return size[0] if size else 4
    return size or 4


def _line_option(style: _Style, config: ChartConfig, categories, values, series, y_name, filled: bool) -> Dict[str, Any]:
    opts = style.options
    option = style.base(config.title)
    series_options = []
    for i, s in enumerate(series):
        entry: Dict[str, Any] = {
            "name": _series_name(s),
            "type": "line",
            "data": values[i],
            "smooth": bool(opts.smooth),
            "symbolSize": _line_symbol_size(opts),
            "lineStyle": {"width": opts.line_width or 2, "type": opts.line_type or "solid", "opacity": style.opacity},
            "itemStyle": {"opacity": style.opacity},
            "label": style.label(),
        }
        if filled or opts.area_style:
            entry["areaStyle"] = style.area_style()
        if opts.stack:
            entry["stack"] = "total"
        series_options.append(entry)

    option.update(
        {
            "tooltip": {},
            "xAxis": {**style.axis(), "data": categories, "name": config.x_axis.title if config.x_axis else None},
            "yAxis": style.value_axis(y_name),
            "series": series_options,
        }
    )
    return option


def _scatter_option(style: _Style, config: ChartConfig, categories, values, series, y_name) -> Dict[str, Any]:
    opts = style.options
    first_color = style.colors[0] if style.colors else "#5470c6"
    if opts.effect_gradient:
        color: Any = {
            "type": "radial",
            "x": 0.5,
            "y": 0.5,
            "r": 0.5,
            "colorStops": [{"offset": 0, "color": first_color}, {"offset": 1, "color": "rgba(255,255,255,0.2)"}],
        }
    else:
        color = first_color

    sizes = opts.symbol_size if isinstance(opts.symbol_size, list) and opts.symbol_size else None

    series_options = []
    for i, s in enumerate(series):
        data = []
        for point_index, category in enumerate(categories):
            x_value = parse_leading_float(category)
            point = [point_index if x_value is None else x_value, values[i][point_index]]
            if sizes:
                data.append({"value": point, "symbolSize": sizes[point_index % len(sizes)]})
            else:
                data.append(point)

        entry: Dict[str, Any] = {
            "name": _series_name(s),
            "type": "scatter",
            "data": data,
            "itemStyle": {
                "opacity": style.opacity,
                "color": color,
                "shadowBlur": 10 if opts.effect_shadow else (opts.shadow_blur or 0),
                "shadowColor": opts.shadow_color or "rgba(0, 0, 0, 0.3)",
            },
            "label": style.label(position="right", formatter="{@[1]}"),
        }
        if not sizes:
            entry["symbolSize"] = opts.symbol_size or 10
        series_options.append(entry)

    option = style.base(config.title)
    option.update(
        {
            "tooltip": {"trigger": "item"},
            "xAxis": {**style.axis(), "type": "value", "name": config.x_axis.title if config.x_axis else None, "scale": True},
            "yAxis": {**style.value_axis(y_name), "type": "value", "scale": True},
            "series": series_options,
        }
    )
    return option


def _radar_option(style: _Style, config: ChartConfig, categories, values, series) -> Dict[str, Any]:
    indicators = []
    for index, name in enumerate(categories):
        column = [values[i][index] for i in range(len(series))]
        peak = max(column) if column else 0
        # headroom above the peak, base value counted once more
        indicators.append({"name": name, "max": math.ceil((peak + style.base_value) * 1.2)})

    option = style.base(config.title)
    option.update(
        {
            "tooltip": {},
            "xAxis": {"show": False},
            "yAxis": {"show": False},
            "radar": {"indicator": indicators, "name": {"textStyle": {"color": style.axis_color}}},
            "series": [
                {
                    "type": "radar",
                    "data": [
                        {
                            "name": _series_name(s),
                            "value": list(values[i]),
                            "areaStyle": {"opacity": style.opacity * 0.6},
                            "lineStyle": {"opacity": style.opacity},
                            "itemStyle": {"opacity": style.opacity},
                            "label": {"show": style.show_labels, "color": style.label_color},
                        }
                        for i, s in enumerate(series)
                    ],
                }
            ],
        }
    )
    return option


def pie_slices(rows: Sequence[Sequence[Any]], column: int, base_value: float, sort_order: SortOrder) -> List[Dict[str, Any]]:
    """Occurrence count of every distinct non-empty value of one column."""
    counts: Dict[str, int] = {}
    for row in rows:
        text = stringify_cell(_cell(row, column))
        if text == "":
            continue
        counts[text] = counts.get(text, 0) + 1

    names = sort_categories(list(counts), sort_order)
    slices = [{"name": name, "value": counts[name] + base_value} for name in names]
    slices = [s for s in slices if s["value"] > 0]

    if sort_order not in (None, SortOrder.NONE):
        slices.sort(key=lambda s: s["value"], reverse=sort_order == SortOrder.DESCENDING)
    return slices


def _pie_option(style: _Style, config: ChartConfig, rows, series, series_indices) -> Dict[str, Any]:
    opts = style.options
    sort_order = opts.sort_order or SortOrder.NONE
    pies = []

    for binding, column in zip(series, series_indices):
        if column < 0:
            continue
        slices = pie_slices(rows, column, style.base_value, sort_order)
        if not slices:
            continue
        pies.append(
            {
                "name": _series_name(binding),
                "type": "pie",
                "radius": opts.radius or [0, "65%"],
                "center": ["40%", "50%"],
                "data": slices,
                "label": {
                    "show": style.show_labels,
                    "position": "outside",
                    "formatter": "{b}: {c} ({d}%)",
                    "color": style.label_color,
                    "textStyle": {"fontSize": 12, "fontWeight": "bold", "color": style.label_color},
                },
                "labelLine": {"show": style.show_labels, "length": 10, "length2": 10},
                "itemStyle": {
                    "opacity": style.opacity,
                    "borderRadius": style.border_radius,
                    "borderWidth": opts.border_width or 0,
                    "borderColor": opts.pie_border_color or opts.border_color or "transparent",
                    "shadowBlur": opts.shadow_blur or 0,
                    "shadowColor": opts.shadow_color or "rgba(0, 0, 0, 0.2)",
                    "shadowOffsetX": opts.shadow_offset_x or 0,
                    "shadowOffsetY": opts.shadow_offset_y or 0,
                },
                "roseType": "radius" if opts.rose_type else False,
                "emphasis": {
                    "itemStyle": {"shadowBlur": 10, "shadowOffsetX": 0, "shadowColor": "rgba(0, 0, 0, 0.5)", "opacity": style.opacity},
                    "label": {"show": True},
                },
            }
        )

    if not pies:
        pies.append(
            {
                "name": "Data",
                "type": "pie",
                "radius": "65%",
                "center": ["40%", "50%"],
                "data": [],
                "label": {"show": style.show_labels, "color": style.label_color},
            }
        )

    option = style.base(config.title)
    legend = option["legend"]
    option.update(
        {
            "tooltip": {"trigger": "item", "formatter": "{a} <br/>{b}: {c} ({d}%)"},
            "xAxis": {"show": False},
            "yAxis": {"show": False},
            "legend": {
                **legend,
                "orient": "vertical",
                "left": "65%",
                "top": "middle",
                "itemGap": 15,
                "textStyle": {**legend["textStyle"], "padding": [0, 0, 0, 5]},
            },
            "series": pies,
        }
    )
    return option


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------
def derive_chart_options(headers: Sequence[str], rows: Sequence[Sequence[Any]], config: ChartConfig) -> Dict[str, Any]:
    """
    Build the render spec for one chart.

    Count mode groups rows by the X value and counts non-empty series cells;
    otherwise every row is one category and series cells are parsed as
    numbers. Pie charts ignore the X axis and count the distinct values of
    each series column instead.
    """
    headers = list(headers)
    options = config.options
    style = _Style(options)

    series = [s for s in config.series if s and s.field]
    series_indices = [resolve_field(headers, s.field) for s in series]

    if config.type == ChartType.PIE:
        return _pie_option(style, config, rows, series, series_indices)

    x_index = resolve_field(headers, config.x_axis.field if config.x_axis else None)
    x_is_date = x_index >= 0 and is_date_field(headers[x_index])
    count_mode = bool(options.count_mode) and x_index >= 0

    if count_mode:
        points = _count_points(rows, x_index, series_indices, x_is_date, style.base_value)
        y_name = COUNT_AXIS_NAME
    else:
        points = _raw_points(rows, x_index, series_indices, x_is_date, style.base_value)
        y_name = config.y_axis.title if config.y_axis else None

    points = sort_points(points, options.sort_order or SortOrder.NONE, bool(options.sort_by_series_value) and bool(series), x_is_date)

    categories = [category for category, _ in points]
    values = [[point_values[i] for _, point_values in points] for i in range(len(series))]

    if config.type == ChartType.BAR:
        return _bar_option(style, config, categories, values, series, y_name)
    if config.type == ChartType.LINE:
        return _line_option(style, config, categories, values, series, y_name, filled=False)
    if config.type == ChartType.AREA:
        return _line_option(style, config, categories, values, series, y_name, filled=True)
    if config.type == ChartType.SCATTER:
        return _scatter_option(style, config, categories, values, series, y_name)
    if config.type == ChartType.RADAR:
        return _radar_option(style, config, categories, values, series)

    return {"title": {"text": config.title}}
