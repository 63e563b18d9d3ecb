# services/spreadsheets.py
from io import BytesIO
from zipfile import BadZipFile
from typing import Any, Dict, List, Tuple

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from core.errors import ValidationError

EXCEL_EXTENSIONS = (".xlsx", ".xlsm")


def read_rows(content: bytes) -> List[Tuple[int, Dict[str, Any]]]:
    """
    Read the first worksheet of an .xlsx file into (row number, dict)
    pairs keyed by the header row. Blank rows are skipped but keep
    their numbering so errors point at the right spreadsheet row.
    """
    try:
        wb = load_workbook(BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError, ValueError) as e:
        raise ValidationError(f"Could not read spreadsheet: {e}") from e

    try:
        ws = wb.worksheets[0]
        rows = ws.iter_rows(values_only=True)
        header = next(rows, None)
        if not header:
            return []
        keys = [str(h).strip() if h is not None else "" for h in header]

        out = []
        for number, values in enumerate(rows, start=2):
            if values is None or all(v is None or str(v).strip() == "" for v in values):
                continue
            out.append((number, {k: v for k, v in zip(keys, values) if k}))
        return out
    finally:
        wb.close()
