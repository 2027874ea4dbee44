from typing import Dict, Any
from models.chart_models import SheetData
from .cell_format_service import format_cell, is_date_field

def get_preview_rows(sheet: SheetData, n_rows: int = 20) -> Dict[str, Any]:
    """First rows of a sheet; date-like columns go through the Excel date heuristic."""
    date_columns = [is_date_field(h) for h in sheet.headers]
    rows = []
    for row in sheet.data[:max(n_rows, 0)]:
        rows.append([
            format_cell(value, date_columns[i]) if i < len(date_columns) and date_columns[i] else value
            for i, value in enumerate(row)
        ])
    return {
        "sheet_name": sheet.sheet_name,
        "columns": sheet.headers,
        "rows": rows,
        "n_rows": len(sheet.data),
    }
