"""
Exports of a workspace's locked charts.

    export_excel        one worksheet per chart: metadata, source data, chart image
    export_images_zip   one PNG per chart
    export_pdf          one page per chart with its analysis text
    export_long_image   every chart stacked into a single PNG
"""

import html
import io
import re
import textwrap
import zipfile
from datetime import datetime
from typing import Any, Dict, List, Optional

from matplotlib.backends.backend_pdf import PdfPages
from matplotlib.figure import Figure
from openpyxl import Workbook
from openpyxl.drawing.image import Image as XLImage
from openpyxl.styles import Font

from exceptions import ExportError
from models.chart_models import LockedChart
from models.workspace_models import ChartText
from services.chart_options_service import derive_chart_options
from services.chart_render_service import draw_chart, render_chart_bytes
from utils.logger import get_logger

logger = get_logger(__name__)

SHEET_TITLE_LIMIT = 30
_INVALID_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")
_INVALID_FILE_CHARS = re.compile(r'[\/\\:*?"<>|]')
_HTML_TAG = re.compile(r"<[^>]+>")
_BLOCK_END = re.compile(r"</(p|div|li|h[1-6])>|<br\s*/?>", re.IGNORECASE)

A4_PORTRAIT = (8.27, 11.69)


def _require_charts(locked_charts: List[LockedChart]):
    if not locked_charts:
        raise ExportError("There are no locked charts to export.")


def export_file_name(kind: str, extension: str) -> str:
    return f"locked_charts_{kind}_{datetime.now().strftime('%Y-%m-%d')}.{extension}"


def html_to_text(content: Optional[str]) -> str:
    """Plain text of a rich-text analysis; block ends become line breaks."""
    if not content:
        return ""
    text = _BLOCK_END.sub("\n", content)
    text = html.unescape(_HTML_TAG.sub("", text))
    lines = [line.strip() for line in text.splitlines()]
    return "\n".join(line for line in lines if line)


def _chart_option(chart: LockedChart) -> Dict[str, Any]:
    return derive_chart_options(chart.source_data.headers, chart.source_data.data, chart.config)


def _sheet_title(title: str, index: int, used: set) -> str:
    base = _INVALID_SHEET_CHARS.sub("_", title or "").strip()[:SHEET_TITLE_LIMIT] or f"Chart {index + 1}"
    candidate = base
    suffix = 2
    while candidate.lower() in used:
        tail = f" ({suffix})"
        candidate = base[: SHEET_TITLE_LIMIT - len(tail)] + tail
        suffix += 1
    used.add(candidate.lower())
    return candidate


def _excel_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def export_excel(locked_charts: List[LockedChart], with_images: bool = True) -> bytes:
    _require_charts(locked_charts)

    workbook = Workbook()
    workbook.remove(workbook.active)
    used_titles: set = set()
    bold = Font(bold=True)

    for index, chart in enumerate(locked_charts):
        sheet = workbook.create_sheet(_sheet_title(chart.config.title, index, used_titles))
        locked_at = datetime.fromtimestamp(chart.locked_at / 1000).strftime("%Y-%m-%d %H:%M:%S")
        sheet.append(["Chart title", chart.config.title])
        sheet.append(["Source sheet", chart.source_data.sheet_name])
        sheet.append(["Source file", chart.source_file_name or "Unknown"])
        sheet.append(["Locked at", locked_at])
        sheet.append([])
        sheet.append(["Source data:"])
        sheet.append(list(chart.source_data.headers))
        for row in chart.source_data.data:
            sheet.append([_excel_value(v) for v in row])

        for row_index in (1, 2, 3, 4, 6, 7):
            sheet.cell(row=row_index, column=1).font = bold

        if with_images:
            try:
                image = XLImage(io.BytesIO(render_chart_bytes(_chart_option(chart))))
            except Exception:
                logger.exception(f"Could not render chart '{chart.id}' for the Excel export")
                continue
            anchor_column = max(len(chart.source_data.headers), 2) + 2
            sheet.add_image(image, f"{sheet.cell(row=1, column=anchor_column).column_letter}1")

    buffer = io.BytesIO()
    workbook.save(buffer)
    logger.info(f"Exported {len(locked_charts)} chart(s) to Excel")
    return buffer.getvalue()


def export_images_zip(locked_charts: List[LockedChart]) -> bytes:
    _require_charts(locked_charts)

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for index, chart in enumerate(locked_charts):
            name = _INVALID_FILE_CHARS.sub("_", chart.config.title or "chart")
            try:
                data = render_chart_bytes(_chart_option(chart), dpi=200)
            except Exception:
                logger.exception(f"Could not render chart '{chart.id}' for the image export")
                continue
            archive.writestr(f"charts/{name}_{index + 1}.png", data)

    logger.info(f"Exported {len(locked_charts)} chart image(s) to ZIP")
    return buffer.getvalue()


def _wrap(text: str, width: int) -> str:
    return "\n".join(textwrap.fill(paragraph, width) for paragraph in text.splitlines())


def _chart_page(chart: LockedChart, text: ChartText, figsize=A4_PORTRAIT) -> Figure:
    fig = Figure(figsize=figsize)
    fig.patch.set_facecolor("white")
    fig.text(0.5, 0.96, chart.config.title or "Chart", ha="center", va="top", fontsize=16, weight="bold")

    pre = html_to_text(text.pre_analysis)
    post = html_to_text(text.post_analysis)
    if pre:
        fig.text(0.08, 0.91, _wrap(pre, 95), ha="left", va="top", fontsize=9)
    draw_chart(fig, _chart_option(chart), rect=[0.12, 0.38, 0.76, 0.4])
    if post:
        fig.text(0.08, 0.3, _wrap(post, 95), ha="left", va="top", fontsize=9)
    fig.text(
        0.5,
        0.03,
        f"{chart.source_file_name or 'Unknown file'} / {chart.source_data.sheet_name}",
        ha="center",
        fontsize=8,
        color="#999999",
    )
    return fig


def export_pdf(locked_charts: List[LockedChart], chart_texts: Optional[Dict[str, ChartText]] = None) -> bytes:
    _require_charts(locked_charts)
    chart_texts = chart_texts or {}

    buffer = io.BytesIO()
    with PdfPages(buffer) as pdf:
        for chart in locked_charts:
            pdf.savefig(_chart_page(chart, chart_texts.get(chart.id) or ChartText()))

    logger.info(f"Exported {len(locked_charts)} chart(s) to PDF")
    return buffer.getvalue()


def export_long_image(locked_charts: List[LockedChart], chart_texts: Optional[Dict[str, ChartText]] = None) -> bytes:
    """All charts one under the other, each with its analysis text above and below."""
    _require_charts(locked_charts)
    chart_texts = chart_texts or {}

    block_height = 7.0
    header_height = 1.0
    total_height = header_height + block_height * len(locked_charts)
    fig = Figure(figsize=(10, total_height), dpi=100)
    fig.patch.set_facecolor("white")
    fig.text(0.5, 1 - 0.5 / total_height, "Locked charts", ha="center", va="center", fontsize=20, weight="bold")

    for index, chart in enumerate(locked_charts):
        text = chart_texts.get(chart.id) or ChartText()
        top = total_height - header_height - index * block_height
        pre = html_to_text(text.pre_analysis)
        post = html_to_text(text.post_analysis)
        if pre:
            fig.text(0.06, (top - 0.2) / total_height, _wrap(pre, 110), va="top", fontsize=9)
        draw_chart(fig, _chart_option(chart), rect=[0.1, (top - 5.6) / total_height, 0.8, 4.6 / total_height])
        if post:
            fig.text(0.06, (top - 6.1) / total_height, _wrap(post, 110), va="top", fontsize=9)

    buffer = io.BytesIO()
    fig.savefig(buffer, format="png", facecolor="white")
    logger.info(f"Exported {len(locked_charts)} chart(s) to a long image")
    return buffer.getvalue()
