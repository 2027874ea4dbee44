"""Tests for rendering and exporting locked charts."""

import base64
import io
import zipfile

import pytest
from openpyxl import load_workbook

from exceptions import ExportError
from models.chart_models import ChartType, LockedChart
from models.workspace_models import ChartText
from services import export_service
from services.chart_options_service import derive_chart_options
from services.chart_render_service import render_chart_png, to_mpl_color

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


@pytest.fixture
def locked_charts(sales_sheet, bar_config):
    charts = []
    for index, chart_type in enumerate([ChartType.BAR, ChartType.PIE, ChartType.RADAR]):
        config = bar_config(chart_type=chart_type, count_mode=True)
        config.title = "Revenue: by month?"
        charts.append(
            LockedChart(
                id=f"locked-{index}",
                config=config,
                source_data=sales_sheet,
                locked_at=1700000000000,
                source_file_name="sales.xlsx",
            )
        )
    return charts


@pytest.mark.unit
def test_css_colors_are_translated() -> None:
    assert to_mpl_color("#ff0000") == "#ff0000"
    assert to_mpl_color("transparent") == "none"
    assert to_mpl_color("rgba(255, 0, 0, 0.5)") == (1.0, 0.0, 0.0, 0.5)
    assert to_mpl_color({"colorStops": [{"offset": 0, "color": "red"}]}) == "red"
    assert to_mpl_color("not-a-color", "#123456") == "#123456"


@pytest.mark.unit
def test_html_to_text() -> None:
    assert export_service.html_to_text("<p>Sales &amp; costs</p><p><b>up</b> 5%</p>") == "Sales & costs\nup 5%"
    assert export_service.html_to_text(None) == ""


@pytest.mark.integration
@pytest.mark.parametrize("chart_type", list(ChartType))
def test_every_chart_type_renders_to_png(chart_type, sales_sheet, bar_config) -> None:
    option = derive_chart_options(sales_sheet.headers, sales_sheet.data, bar_config(chart_type=chart_type, count_mode=True))

    image = render_chart_png(option)

    assert image is not None
    assert base64.b64decode(image).startswith(PNG_SIGNATURE)


@pytest.mark.integration
def test_chart_without_data_still_renders(bar_config) -> None:
    option = derive_chart_options(["Other"], [], bar_config(count_mode=True))

    assert render_chart_png(option) is not None


@pytest.mark.integration
def test_exports_need_locked_charts() -> None:
    with pytest.raises(ExportError):
        export_service.export_excel([])
    with pytest.raises(ExportError):
        export_service.export_pdf([])


@pytest.mark.integration
def test_excel_export_layout(locked_charts) -> None:
    workbook = load_workbook(io.BytesIO(export_service.export_excel(locked_charts)))

    # invalid sheet characters are replaced and duplicate titles get a suffix
    assert workbook.sheetnames == ["Revenue_ by month_", "Revenue_ by month_ (2)", "Revenue_ by month_ (3)"]
    sheet = workbook.worksheets[0]
    assert sheet["A1"].value == "Chart title"
    assert sheet["B1"].value == "Revenue: by month?"
    assert sheet["B2"].value == "Sales"
    assert sheet["B3"].value == "sales.xlsx"
    assert sheet["A6"].value == "Source data:"
    assert [c.value for c in sheet[7]][:3] == ["Month", "Revenue", "Region"]
    assert [c.value for c in sheet[8]][:3] == ["Jan", 100, "North"]


@pytest.mark.integration
def test_images_zip_export(locked_charts) -> None:
    archive = zipfile.ZipFile(io.BytesIO(export_service.export_images_zip(locked_charts)))

    names = archive.namelist()
    assert names == [
        "charts/Revenue_ by month__1.png",
        "charts/Revenue_ by month__2.png",
        "charts/Revenue_ by month__3.png",
    ]
    assert archive.read(names[0]).startswith(PNG_SIGNATURE)


@pytest.mark.integration
def test_pdf_export_has_a_page_per_chart(locked_charts) -> None:
    texts = {"locked-0": ChartText(pre_analysis="<p>Intro</p>", post_analysis="Outro")}

    pdf = export_service.export_pdf(locked_charts, texts)

    assert pdf.startswith(b"%PDF")
    assert pdf.count(b"/Type /Page") - pdf.count(b"/Type /Pages") == 3


@pytest.mark.integration
def test_long_image_export(locked_charts) -> None:
    image = export_service.export_long_image(locked_charts)

    assert image.startswith(PNG_SIGNATURE)
