"""
Server-side rendering of chart render specs with matplotlib and seaborn.

The render spec is the same option dict the browser would hand to its
charting library; this module only reads the parts a static image can
show (categories, series values, palette, titles and a few styles).
"""

import base64
import io
import re
import warnings
from typing import Any, Dict, List, Optional, Sequence

import matplotlib

matplotlib.use("Agg")
import numpy as np
import pandas as pd
import seaborn as sns
from matplotlib import colors as mcolors
from matplotlib.figure import Figure

from services.viz_cache import cache_key, get_cached_image, store_image
from utils.logger import get_logger

warnings.filterwarnings("ignore", category=UserWarning, module="seaborn")

logger = get_logger(__name__)

DEFAULT_FIGSIZE = (8, 5)
FALLBACK_COLOR = "#5470c6"
_RGBA_PATTERN = re.compile(r"rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*([\d.]+)\s*)?\)")


def to_mpl_color(value: Any, default: Any = FALLBACK_COLOR) -> Any:
    """Translate a CSS-like color (hex, name, rgb(a), gradient dict) into something matplotlib accepts."""
    if isinstance(value, dict):
        stops = value.get("colorStops") or []
        return to_mpl_color(stops[0].get("color"), default) if stops else default
    if not isinstance(value, str) or not value:
        return default
    if value == "transparent":
        return "none"

    match = _RGBA_PATTERN.fullmatch(value.strip())
    if match:
        r, g, b, a = match.groups()
        return (float(r) / 255, float(g) / 255, float(b) / 255, float(a) if a is not None else 1.0)

    return value if mcolors.is_color_like(value) else default


def _palette(option: Dict[str, Any], n: int) -> List[Any]:
    colors = [to_mpl_color(c) for c in option.get("color") or []] or [FALLBACK_COLOR]
    return [colors[i % len(colors)] for i in range(max(n, 1))]


def _text_color(option: Dict[str, Any], *path: str, default: str = "#666666") -> Any:
    node: Any = option
    for key in path:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
    return to_mpl_color(node, default)


def _long_frame(categories: Sequence[str], series: List[Dict[str, Any]]) -> pd.DataFrame:
    """One row per (series, category) with the category's position on the axis."""
    records = []
    for s in series:
        data = s.get("data") or []
        for position, category in enumerate(categories):
            value = data[position] if position < len(data) else None
            records.append({"position": position, "category": category, "series": s.get("name") or "", "value": value})
    return pd.DataFrame.from_records(records, columns=["position", "category", "series", "value"])


def _style_cartesian(ax, option: Dict[str, Any], categories: Optional[Sequence[str]] = None):
    axis_color = _text_color(option, "xAxis", "axisLabel", "color")
    if categories is not None:
        ax.set_xticks(range(len(categories)))
        ax.set_xticklabels(categories, rotation=45 if len(categories) > 6 else 0, ha="right" if len(categories) > 6 else "center")
    ax.set_xlabel((option.get("xAxis") or {}).get("name") or "", color=axis_color)
    ax.set_ylabel((option.get("yAxis") or {}).get("name") or "", color=axis_color)
    ax.tick_params(colors=axis_color)
    for spine in ax.spines.values():
        spine.set_color(axis_color)
    y_min = (option.get("yAxis") or {}).get("min")
    if y_min is not None:
        ax.set_ylim(bottom=y_min)


def _draw_bar(ax, option: Dict[str, Any], series: List[Dict[str, Any]]):
    categories = (option.get("xAxis") or {}).get("data") or []
    df = _long_frame(categories, series)
    if df.empty:
        return False

    width = 0.6
    bar_width = str(series[0].get("barWidth") or "60%")
    if bar_width.endswith("%"):
        width = min(max(float(bar_width[:-1]) / 100, 0.05), 1.0)

    opacity = (series[0].get("itemStyle") or {}).get("opacity", 1.0)
    sns.barplot(
        data=df,
        x="position",
        y="value",
        hue="series",
        palette=_palette(option, len(series)),
        errorbar=None,
        width=width,
        alpha=opacity,
        ax=ax,
    )
    if any((s.get("label") or {}).get("show") for s in series):
        for container in ax.containers:
            ax.bar_label(container, fmt="%g", color=_text_color(option, "textStyle", "color"))
    _style_cartesian(ax, option, categories)
    return True


def _draw_line(ax, option: Dict[str, Any], series: List[Dict[str, Any]]):
    categories = (option.get("xAxis") or {}).get("data") or []
    df = _long_frame(categories, series)
    if df.empty:
        return False

    if any(s.get("stack") for s in series):
        df["value"] = df.groupby("position")["value"].cumsum()

    first = series[0]
    line_style = first.get("lineStyle") or {}
    palette = _palette(option, len(series))
    sns.lineplot(
        data=df,
        x="position",
        y="value",
        hue="series",
        palette=palette,
        linewidth=line_style.get("width", 2),
        linestyle="--" if line_style.get("type") == "dashed" else ":" if line_style.get("type") == "dotted" else "-",
        marker="o",
        markersize=first.get("symbolSize", 4),
        ax=ax,
    )

    previous = np.zeros(len(categories))
    for index, s in enumerate(series):
        area = s.get("areaStyle")
        values = df[df["series"] == (s.get("name") or "")]["value"].to_numpy(dtype=float)
        if area is not None and len(values) == len(categories):
            baseline = previous if s.get("stack") else 0
            ax.fill_between(range(len(categories)), baseline, values, color=palette[index], alpha=area.get("opacity", 0.5))
            if s.get("stack"):
                previous = values
    _style_cartesian(ax, option, categories)
    return True


def _draw_scatter(ax, option: Dict[str, Any], series: List[Dict[str, Any]]):
    palette = _palette(option, len(series))
    drawn = False
    for index, s in enumerate(series):
        xs, ys, sizes = [], [], []
        for point in s.get("data") or []:
            size = s.get("symbolSize", 10)
            if isinstance(point, dict):
                size = point.get("symbolSize", size)
                point = point.get("value")
            xs.append(point[0])
            ys.append(point[1])
            sizes.append(float(size) ** 2)
        if not xs:
            continue
        item_style = s.get("itemStyle") or {}
        sns.scatterplot(
            x=xs,
            y=ys,
            s=sizes,
            color=palette[index],
            alpha=item_style.get("opacity", 1.0),
            label=s.get("name") or None,
            ax=ax,
        )
        drawn = True
    if drawn:
        _style_cartesian(ax, option)
    return drawn


def _radius_fraction(value: Any, default: float) -> float:
    if isinstance(value, str) and value.endswith("%"):
        return float(value[:-1]) / 100
    if isinstance(value, (int, float)):
        return float(value) / 100 if value > 1 else float(value)
    return default


def _draw_pie(ax, option: Dict[str, Any], series: List[Dict[str, Any]]):
    pie = next((s for s in series if s.get("data")), None)
    if pie is None:
        return False

    names = [d["name"] for d in pie["data"]]
    values = [d["value"] for d in pie["data"]]
    show_labels = (pie.get("label") or {}).get("show")

    radius = pie.get("radius")
    inner, outer = 0.0, 0.65
    if isinstance(radius, list) and len(radius) == 2:
        inner, outer = _radius_fraction(radius[0], 0.0), _radius_fraction(radius[1], 0.65)
    elif radius is not None:
        outer = _radius_fraction(radius, 0.65)

    wedgeprops: Dict[str, Any] = {"alpha": (pie.get("itemStyle") or {}).get("opacity", 1.0)}
    border = pie.get("itemStyle") or {}
    if border.get("borderWidth"):
        wedgeprops["linewidth"] = border["borderWidth"]
        wedgeprops["edgecolor"] = to_mpl_color(border.get("borderColor"), "white")
    if inner > 0 and outer > inner:
        wedgeprops["width"] = (outer - inner) / outer

    ax.pie(
        values,
        labels=names if show_labels else None,
        colors=_palette(option, len(values)),
        autopct="%1.1f%%" if show_labels else None,
        wedgeprops=wedgeprops,
        textprops={"color": _text_color(option, "textStyle", "color")},
        startangle=90,
        counterclock=False,
    )
    ax.legend(names, loc="center left", bbox_to_anchor=(1.0, 0.5), frameon=False, labelcolor=_text_color(option, "legend", "textStyle", "color"))
    ax.axis("equal")
    return True


def _draw_radar(ax, option: Dict[str, Any], series: List[Dict[str, Any]]):
    indicators = (option.get("radar") or {}).get("indicator") or []
    entries = [entry for s in series for entry in (s.get("data") or [])]
    if not indicators or not entries:
        return False

    angles = np.linspace(0, 2 * np.pi, len(indicators), endpoint=False).tolist()
    closed_angles = angles + angles[:1]
    palette = _palette(option, len(entries))
    for index, entry in enumerate(entries):
        values = list(entry.get("value") or [])
        closed = values + values[:1]
        ax.plot(closed_angles, closed, color=palette[index], linewidth=2, label=entry.get("name"))
        ax.fill(closed_angles, closed, color=palette[index], alpha=(entry.get("areaStyle") or {}).get("opacity", 0.3))

    ax.set_xticks(angles)
    ax.set_xticklabels([i["name"] for i in indicators], color=_text_color(option, "radar", "name", "textStyle", "color"))
    peak = max((i.get("max") or 0) for i in indicators)
    if peak > 0:
        ax.set_ylim(0, peak)
    ax.legend(loc="upper right", bbox_to_anchor=(1.3, 1.1), frameon=False)
    return True


_DRAWERS = {
    "bar": _draw_bar,
    "line": _draw_line,
    "scatter": _draw_scatter,
    "pie": _draw_pie,
    "radar": _draw_radar,
}


def chart_kind(option: Dict[str, Any]) -> Optional[str]:
    series = option.get("series") or []
    return series[0].get("type") if series else None


def draw_chart(fig: Figure, option: Dict[str, Any], rect: Optional[Sequence[float]] = None):
    """Draw one render spec into fig, inside rect (figure fraction) or filling the figure."""
    kind = chart_kind(option)
    projection = "polar" if kind == "radar" else None
    ax = fig.add_axes(rect, projection=projection) if rect is not None else fig.add_subplot(projection=projection)

    background = to_mpl_color(option.get("backgroundColor"), "none")
    if background != "none":
        ax.set_facecolor(background)

    title = (option.get("title") or {}).get("text") or ""
    ax.set_title(title, color=_text_color(option, "title", "textStyle", "color", default="#333333"))

    drawer = _DRAWERS.get(kind)
    drawn = drawer(ax, option, option.get("series") or []) if drawer else False
    if not drawn:
        ax.set_axis_off()
        ax.text(0.5, 0.5, "No data", ha="center", va="center", transform=ax.transAxes, color="#999999")
    return ax


def render_chart_bytes(option: Dict[str, Any], figsize=DEFAULT_FIGSIZE, dpi: int = 100) -> bytes:
    fig = Figure(figsize=figsize, dpi=dpi)
    background = to_mpl_color(option.get("backgroundColor"), "none")
    fig.patch.set_facecolor("white" if background == "none" else background)
    draw_chart(fig, option)
    fig.tight_layout()

    buffer = io.BytesIO()
    fig.savefig(buffer, format="png", facecolor=fig.get_facecolor())
    return buffer.getvalue()


def render_chart_png(option: Dict[str, Any], figsize=DEFAULT_FIGSIZE) -> Optional[str]:
    """
    Render a chart and return a base64-encoded PNG string.
    Returns None if rendering fails.
    """
    key = cache_key(option, *figsize)
    cached = get_cached_image(key)
    if cached:
        return cached

    try:
        data = render_chart_bytes(option, figsize)
    except Exception:
        logger.exception(f"Failed to render {chart_kind(option)} chart")
        return None

    image_base64 = base64.b64encode(data).decode("utf-8")
    store_image(key, image_base64)
    logger.debug(f"Rendered {chart_kind(option)} chart, {len(data)} PNG bytes")
    return image_base64
