#!/usr/bin/env python3
"""
Workbook loader - reads a spreadsheet into an in-memory grid of sheets.
Cells are stored sparsely with 1-based (row, column) addresses; absent cells are empty.
"""

import io
import logging
import os
import zipfile
from datetime import date, datetime, time
from enum import Enum
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterator, List, Optional, Tuple, Union

import openpyxl
import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from mmr_processor.exceptions import WorkbookLoadError
from mmr_processor.processors.value_parsers import (
    is_blank,
    normalize_text,
    parse_date,
    parse_number,
    parse_optional_date,
    parse_percentage,
)

logger = logging.getLogger(__name__)

WorkbookSource = Union[str, Path, bytes, bytearray, BinaryIO]

OPENPYXL_EXTENSIONS = ('.xlsx', '.xlsm')
PANDAS_EXCEL_EXTENSIONS = ('.xls',)
CSV_EXTENSIONS = ('.csv',)
SUPPORTED_EXTENSIONS = OPENPYXL_EXTENSIONS + PANDAS_EXCEL_EXTENSIONS + CSV_EXTENSIONS


class CellKind(str, Enum):
    """Closed set of cell value shapes"""
    EMPTY = "empty"
    TEXT = "text"
    NUMBER = "number"
    DATETIME = "datetime"


class CellValue:
    """Tagged cell value with explicit, tolerant conversions"""

    __slots__ = ('kind', 'raw')

    def __init__(self, kind: CellKind, raw: Any = None):
        self.kind = kind
        self.raw = raw

    @classmethod
    def from_raw(cls, raw: Any) -> 'CellValue':
        if is_blank(raw):
            return EMPTY_CELL
        if isinstance(raw, bool):
            return cls(CellKind.NUMBER, float(raw))
        if isinstance(raw, (int, float)):
            return cls(CellKind.NUMBER, float(raw))
        if isinstance(raw, datetime):
            return cls(CellKind.DATETIME, raw)
        if isinstance(raw, date):
            return cls(CellKind.DATETIME, datetime(raw.year, raw.month, raw.day))
        if isinstance(raw, time):
            return cls(CellKind.TEXT, raw.isoformat())
        return cls(CellKind.TEXT, str(raw))

    @property
    def is_empty(self) -> bool:
        return self.kind == CellKind.EMPTY

    @property
    def normalized(self) -> str:
        return normalize_text(self.as_text())

    def as_text(self) -> str:
        if self.kind == CellKind.EMPTY:
            return ""
        if self.kind == CellKind.NUMBER:
            number = self.raw
            return str(int(number)) if number.is_integer() else str(number)
        if self.kind == CellKind.DATETIME:
            return self.raw.isoformat()
        return self.raw.strip()

    def as_number(self) -> float:
        return parse_number(self.raw)

    def as_percentage(self) -> float:
        return parse_percentage(self.raw)

    def as_date(self) -> datetime:
        return parse_date(self.raw)

    def as_optional_date(self) -> Optional[datetime]:
        return parse_optional_date(self.raw)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CellValue):
            return NotImplemented
        return self.kind == other.kind and self.raw == other.raw

    def __repr__(self) -> str:
        return f"CellValue({self.kind.value}, {self.raw!r})"


EMPTY_CELL = CellValue(CellKind.EMPTY)


class Sheet:
    """Sparse 2-D grid of raw cell values"""

    def __init__(self, name: str, cells: Optional[Dict[Tuple[int, int], Any]] = None):
        self.name = name
        self._cells: Dict[Tuple[int, int], Any] = {}
        self.max_row = 0
        self.max_column = 0
        for (row, col), value in (cells or {}).items():
            self.set_value(row, col, value)

    @classmethod
    def from_rows(cls, name: str, rows: List[List[Any]]) -> 'Sheet':
        """Build a sheet from a list of row lists (row 1 first)"""
        sheet = cls(name)
        for row_idx, row in enumerate(rows, start=1):
            for col_idx, value in enumerate(row, start=1):
                sheet.set_value(row_idx, col_idx, value)
        return sheet

    def set_value(self, row: int, col: int, value: Any) -> None:
        if row < 1 or col < 1:
            raise ValueError(f"Cell address must be 1-based, got ({row}, {col})")
        if is_blank(value):
            self._cells.pop((row, col), None)
            return
        self._cells[(row, col)] = value
        self.max_row = max(self.max_row, row)
        self.max_column = max(self.max_column, col)

    def value(self, row: int, col: int) -> Any:
        return self._cells.get((row, col))

    def cell(self, row: int, col: int) -> CellValue:
        raw = self._cells.get((row, col))
        return EMPTY_CELL if raw is None else CellValue.from_raw(raw)

    def row_values(self, row: int, max_col: Optional[int] = None) -> List[Any]:
        last_col = max_col if max_col is not None else self.max_column
        return [self._cells.get((row, col)) for col in range(1, last_col + 1)]

    def row_texts(self, row: int, max_col: Optional[int] = None) -> List[str]:
        last_col = max_col if max_col is not None else self.max_column
        return [self.cell(row, col).as_text() for col in range(1, last_col + 1)]

    def iter_cells(self) -> Iterator[Tuple[int, int, Any]]:
        """Yield (row, col, raw) for non-empty cells in row-major order"""
        for (row, col) in sorted(self._cells):
            yield row, col, self._cells[(row, col)]

    @property
    def cell_count(self) -> int:
        return len(self._cells)

    def to_dataframe(self, max_rows: Optional[int] = None) -> pd.DataFrame:
        """Dense DataFrame view (row/column labels are the 1-based addresses)"""
        last_row = self.max_row if max_rows is None else min(self.max_row, max_rows)
        data = [self.row_values(row) for row in range(1, last_row + 1)]
        return pd.DataFrame(
            data,
            index=range(1, last_row + 1),
            columns=range(1, self.max_column + 1),
        )

    def __repr__(self) -> str:
        return f"Sheet({self.name!r}, rows={self.max_row}, cols={self.max_column})"


class Workbook:
    """Ordered sequence of sheets"""

    def __init__(self, sheets: List[Sheet], file_name: str = ""):
        self.sheets = sheets
        self.file_name = file_name

    @property
    def sheet_names(self) -> List[str]:
        return [sheet.name for sheet in self.sheets]

    def __getitem__(self, name: str) -> Sheet:
        for sheet in self.sheets:
            if sheet.name == name:
                return sheet
        raise KeyError(name)

    def __len__(self) -> int:
        return len(self.sheets)

    def __iter__(self) -> Iterator[Sheet]:
        return iter(self.sheets)


def load_workbook(source: WorkbookSource, file_name: Optional[str] = None) -> Workbook:
    """Load a workbook from a path, raw bytes or a binary stream"""
    name = file_name or (os.path.basename(str(source)) if isinstance(source, (str, Path)) else "")
    extension = Path(name).suffix.lower() if name else '.xlsx'

    if isinstance(source, (str, Path)) and not Path(source).exists():
        raise WorkbookLoadError(f"File not found: {source}")

    if extension not in SUPPORTED_EXTENSIONS:
        raise WorkbookLoadError(f"Unsupported workbook format: {extension}")

    try:
        if extension in OPENPYXL_EXTENSIONS:
            sheets = _load_with_openpyxl(source)
        elif extension in CSV_EXTENSIONS:
            sheets = _load_csv(source, name)
        else:
            sheets = _load_with_pandas(source)
    except WorkbookLoadError:
        raise
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError, ImportError) as e:
        raise WorkbookLoadError(f"Failed to read workbook {name or '<buffer>'}: {e}") from e

    logger.debug(f"Loaded workbook {name or '<buffer>'} with {len(sheets)} sheets")
    return Workbook(sheets, file_name=name)


def _as_stream(source: WorkbookSource) -> Union[str, BinaryIO]:
    if isinstance(source, (bytes, bytearray)):
        return io.BytesIO(bytes(source))
    if isinstance(source, Path):
        return str(source)
    return source


def _load_with_openpyxl(source: WorkbookSource) -> List[Sheet]:
    workbook = openpyxl.load_workbook(_as_stream(source), data_only=True)
    try:
        sheets = []
        for worksheet in workbook.worksheets:
            sheet = Sheet(worksheet.title)
            for row in worksheet.iter_rows():
                for cell in row:
                    if cell.value is not None:
                        sheet.set_value(cell.row, cell.column, cell.value)
            sheets.append(sheet)
        return sheets
    finally:
        workbook.close()


def _load_with_pandas(source: WorkbookSource) -> List[Sheet]:
    frames = pd.read_excel(_as_stream(source), sheet_name=None, header=None)
    return [_frame_to_sheet(str(name), frame) for name, frame in frames.items()]


def _load_csv(source: WorkbookSource, name: str) -> List[Sheet]:
    frame = pd.read_csv(_as_stream(source), header=None)
    sheet_name = Path(name).stem if name else 'Sheet1'
    return [_frame_to_sheet(sheet_name, frame)]


def _frame_to_sheet(name: str, frame: pd.DataFrame) -> Sheet:
    sheet = Sheet(name)
    for row_idx, row in enumerate(frame.itertuples(index=False), start=1):
        for col_idx, value in enumerate(row, start=1):
            if pd.isna(value):
                continue
            if isinstance(value, pd.Timestamp):
                value = value.to_pydatetime()
            elif hasattr(value, 'item'):
                value = value.item()
            sheet.set_value(row_idx, col_idx, value)
    return sheet
