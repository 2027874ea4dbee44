from datetime import date, datetime, time
from typing import Any, List

import numpy as np
import pandas as pd
from models.chart_models import SheetData
from models.common_models import SheetInfo
from services.cell_format_service import EXCEL_EPOCH, stringify_cell
from utils.logger import get_logger

logger = get_logger(__name__)

_EXCEL_EPOCH_TS = pd.Timestamp(EXCEL_EPOCH)


def _to_cell_value(value: Any) -> Any:
    """
    Plain JSON-friendly scalar for one cell.

    Dates become Excel serial numbers, the same shape they have inside the
    workbook, so the date heuristics see them as numbers.
    """
    if value is None:
        return None
    if isinstance(value, (pd.Timestamp, datetime, date)) and not pd.isna(value):
        ts = pd.Timestamp(value)
        if ts.tzinfo is not None:
            ts = ts.tz_localize(None)
        serial = (ts - _EXCEL_EPOCH_TS) / pd.Timedelta(days=1)
        return int(serial) if float(serial).is_integer() else float(serial)
    if isinstance(value, time):
        return value.isoformat()
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and np.isnan(value):
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


def read_workbook(file_path: str) -> List[SheetData]:
    """
    Read every sheet of an Excel file.
    The first row is the header row; sheets without any row are skipped.
    """
    xls = pd.ExcelFile(file_path)
    sheets: List[SheetData] = []

    for sheet_name in xls.sheet_names:
        df = xls.parse(sheet_name, header=None)
        if df.shape[0] == 0:
            logger.info(f"Skipping empty sheet '{sheet_name}' in {file_path}")
            continue

        records = [[_to_cell_value(v) for v in row] for row in df.itertuples(index=False, name=None)]
        headers = [stringify_cell(h) for h in records[0]]
        sheets.append(SheetData(sheet_name=str(sheet_name), headers=headers, data=records[1:]))

    logger.info(f"Read {len(sheets)} sheet(s) from {file_path}")
    return sheets


def describe_sheets(sheets: List[SheetData]) -> List[SheetInfo]:
    return [
        SheetInfo(
            sheet_name=sheet.sheet_name,
            n_rows=len(sheet.data),
            n_cols=len(sheet.headers),
            headers=sheet.headers,
        )
        for sheet in sheets
    ]
