"""Tests for chart option derivation."""

import pytest

from models.chart_models import AxisBinding, ChartConfig, ChartOptions, ChartType, SeriesBinding, SortOrder
from services.chart_options_service import (
    COUNT_AXIS_NAME,
    UNRESOLVED,
    derive_chart_options,
    pie_slices,
    resolve_field,
    sort_categories,
)

pytestmark = pytest.mark.unit


def _config(chart_type=ChartType.BAR, x="Month", series=("Sales",), **options):
    return ChartConfig(
        type=chart_type,
        title="Test chart",
        x_axis=AxisBinding(field=x, title=x),
        y_axis=AxisBinding(field=series[0] if series else "", title="Value"),
        series=[SeriesBinding(field=f, name=f) for f in series],
        options=ChartOptions(**options),
    )


def test_resolve_field_returns_sentinel_for_missing_or_unbound_fields() -> None:
    """Missing headers resolve to the sentinel instead of raising."""

    headers = ["Month", "Sales"]
    assert resolve_field(headers, "Sales") == 1
    assert resolve_field(headers, "Profit") == UNRESOLVED
    assert resolve_field(headers, "") == UNRESOLVED
    assert resolve_field(headers, None) == UNRESOLVED
    assert resolve_field(headers, "sales") == UNRESOLVED


def test_count_mode_groups_by_first_appearance() -> None:
    """Count mode counts non-empty series cells per distinct X value."""

    headers = ["Month", "Sales"]
    rows = [["Jan", 10], ["Feb", 20], ["Jan", 5]]

    option = derive_chart_options(headers, rows, _config(x="Month", count_mode=True))

    assert option["xAxis"]["data"] == ["Jan", "Feb"]
    assert option["series"][0]["data"] == [2, 1]
    assert option["yAxis"]["name"] == COUNT_AXIS_NAME


def test_count_mode_skips_empty_cells_and_adds_base_value() -> None:
    headers = ["Product", "Sales"]
    rows = [["A", 1], ["A", None], ["B", ""], ["A", 0]]

    option = derive_chart_options(headers, rows, _config(x="Product", count_mode=True, base_value=10))

    assert option["xAxis"]["data"] == ["A", "B"]
    assert option["series"][0]["data"] == [12, 10]
    assert option["yAxis"]["min"] == 10


def test_raw_mode_parses_leading_numbers_and_falls_back_to_base() -> None:
    """Outside count mode each row is a point and cells are parsed as leading floats."""

    headers = ["Product", "Weight"]
    rows = [["A", "12.5kg"], ["B", "n/a"], ["C", 3], ["D"]]

    option = derive_chart_options(headers, rows, _config(x="Product", series=("Weight",), count_mode=False))

    assert option["xAxis"]["data"] == ["A", "B", "C", "D"]
    assert option["series"][0]["data"] == [12.5, 0, 3.0, 0]
    assert option["yAxis"]["name"] == "Value"


def test_unresolved_x_axis_yields_empty_series_without_error() -> None:
    headers = ["Product", "Sales"]
    rows = [["A", 1]]

    option = derive_chart_options(headers, rows, _config(x="Missing", count_mode=False))

    assert option["xAxis"]["data"] == []
    assert option["series"][0]["data"] == []


def test_unresolved_series_counts_zero() -> None:
    headers = ["Product", "Sales"]
    rows = [["A", 1], ["B", 2]]

    option = derive_chart_options(headers, rows, _config(x="Product", series=("Missing",), count_mode=True))

    assert option["series"][0]["data"] == [0, 0]


def test_series_with_empty_field_are_ignored() -> None:
    config = _config(x="Product", count_mode=True)
    config.series.append(SeriesBinding(field=""))

    option = derive_chart_options(["Product", "Sales"], [["A", 1]], config)

    assert len(option["series"]) == 1


def test_date_columns_are_rendered_from_excel_serials() -> None:
    """Serials in range become ISO dates on date-named axes; other values pass through."""

    headers = ["Order Date", "Amount"]
    rows = [[45306, 10], [45323, 20], ["unknown", 5], [12, 1]]

    option = derive_chart_options(headers, rows, _config(x="Order Date", series=("Amount",), count_mode=False))

    assert option["xAxis"]["data"] == ["2024-01-15", "2024-02-01", "unknown", "12"]


def test_sorting_ascending_and_descending_are_reverses() -> None:
    headers = ["Product", "Sales"]
    rows = [["b", 1], ["10", 1], ["a", 1], ["2", 1]]

    ascending = derive_chart_options(headers, rows, _config(x="Product", count_mode=True, sort_order=SortOrder.ASCENDING))
    descending = derive_chart_options(headers, rows, _config(x="Product", count_mode=True, sort_order=SortOrder.DESCENDING))

    assert ascending["xAxis"]["data"] == ["2", "10", "a", "b"]
    assert descending["xAxis"]["data"] == list(reversed(ascending["xAxis"]["data"]))


def test_text_categories_sort_case_insensitively() -> None:
    categories = ["b", "B", "a", "C"]

    assert sort_categories(categories, SortOrder.ASCENDING, is_date=False) == ["a", "B", "b", "C"]
    assert sort_categories(categories, SortOrder.DESCENDING, is_date=False) == ["C", "b", "B", "a"]


def test_sort_by_series_value() -> None:
    headers = ["Product", "Sales"]
    rows = [["A", 5], ["B", 30], ["C", 10]]

    option = derive_chart_options(
        headers,
        rows,
        _config(x="Product", count_mode=False, sort_order=SortOrder.DESCENDING, sort_by_series_value=True),
    )

    assert option["xAxis"]["data"] == ["B", "C", "A"]
    assert option["series"][0]["data"] == [30, 10, 5]


def test_sort_categories_orders_dates_chronologically() -> None:
    categories = ["2024-03-01", "2024-01-15", "2023-12-31"]

    assert sort_categories(categories, SortOrder.ASCENDING, is_date=True) == ["2023-12-31", "2024-01-15", "2024-03-01"]
    assert sort_categories(categories, SortOrder.NONE, is_date=True) == categories


def test_pie_counts_distinct_values_of_the_series_column() -> None:
    headers = ["Region", "Owner"]
    rows = [["North", "x"], ["South", "y"], ["North", "z"], ["", "w"]]

    option = derive_chart_options(headers, rows, _config(chart_type=ChartType.PIE, x="", series=("Region",)))

    pie = option["series"][0]
    assert pie["type"] == "pie"
    assert pie["data"] == [{"name": "North", "value": 2}, {"name": "South", "value": 1}]


def test_pie_slices_sorted_by_value_descending() -> None:
    rows = [["a"], ["b"], ["b"], ["c"], ["c"], ["c"]]

    slices = pie_slices(rows, 0, 0, SortOrder.DESCENDING)

    assert [s["name"] for s in slices] == ["c", "b", "a"]


def test_pie_without_resolvable_series_gets_placeholder() -> None:
    option = derive_chart_options(["Region"], [["North"]], _config(chart_type=ChartType.PIE, x="", series=("Missing",)))

    assert option["series"] == [
        {
            "name": "Data",
            "type": "pie",
            "radius": "65%",
            "center": ["40%", "50%"],
            "data": [],
            "label": {"show": False, "color": "#666666"},
        }
    ]


def test_area_and_stack_options() -> None:
    headers = ["Product", "Sales", "Cost"]
    rows = [["A", 1, 2]]

    option = derive_chart_options(
        headers,
        rows,
        _config(chart_type=ChartType.AREA, x="Product", series=("Sales", "Cost"), count_mode=False, stack=True),
    )

    assert [s["type"] for s in option["series"]] == ["line", "line"]
    assert all("areaStyle" in s for s in option["series"])
    assert all(s["stack"] == "total" for s in option["series"])


def test_scatter_uses_numeric_categories_and_per_point_sizes() -> None:
    headers = ["Height", "Weight"]
    rows = [["170", 60], ["tall", 80]]

    option = derive_chart_options(
        headers,
        rows,
        _config(chart_type=ChartType.SCATTER, x="Height", series=("Weight",), count_mode=False, symbol_size=[5, 9]),
    )

    data = option["series"][0]["data"]
    assert data == [{"value": [170.0, 60.0], "symbolSize": 5}, {"value": [1, 80.0], "symbolSize": 9}]


def test_radar_indicator_max_is_padded_peak() -> None:
    headers = ["Skill", "Score"]
    rows = [["Speed", 10], ["Power", 4]]

    option = derive_chart_options(headers, rows, _config(chart_type=ChartType.RADAR, x="Skill", series=("Score",), count_mode=False))

    assert option["radar"]["indicator"] == [{"name": "Speed", "max": 12}, {"name": "Power", "max": 5}]
    assert option["series"][0]["data"][0]["value"] == [10.0, 4.0]


def test_palette_theme_and_explicit_colors() -> None:
    headers = ["Product", "Sales"]
    themed = derive_chart_options(headers, [], _config(x="Product", color_theme="warm"))
    explicit = derive_chart_options(headers, [], _config(x="Product", color_theme="warm", colors=["#000000"]))

    assert themed["color"][0] == "#ff7f50"
    assert explicit["color"] == ["#000000"]


def test_unknown_option_keys_are_dropped() -> None:
    options = ChartOptions.model_validate({"countMode": True, "madeUpKey": 3})

    assert options.count_mode is True
    assert not hasattr(options, "madeUpKey")
    assert "madeUpKey" not in options.model_dump(by_alias=True)


def test_derivation_does_not_mutate_inputs() -> None:
    headers = ["Product", "Sales"]
    rows = [["b", 1], ["a", 2]]
    config = _config(x="Product", count_mode=True, sort_order=SortOrder.ASCENDING)
    before = config.model_dump()

    derive_chart_options(headers, rows, config)

    assert rows == [["b", 1], ["a", 2]]
    assert config.model_dump() == before
