#!/usr/bin/env python3
"""
Format adapter - tolerant cell and table locator for one sheet.
Lookups never use fixed addresses: labels are searched inside a bounded window,
values are resolved within a small offset of their label, and table columns are
matched by pattern or by string similarity.
"""

import logging
import re
from typing import Dict, List, NamedTuple, Optional, Pattern, Sequence, Union

from fuzzywuzzy import fuzz

from mmr_processor.models.config_models import ParserConfig
from mmr_processor.processors.value_parsers import normalize_text
from mmr_processor.processors.workbook_loader import EMPTY_CELL, CellValue, Sheet

CellPattern = Union[str, Pattern]
ColumnPatterns = Union[Sequence[str], Dict[str, CellPattern]]

DIRECTIONS = ('auto', 'right', 'below')


class CellRef(NamedTuple):
    """Location and value of a matched cell"""
    row: int
    column: int
    value: CellValue


class SearchArea(NamedTuple):
    """Inclusive 1-based window; None bounds fall back to the configured search window"""
    start_row: int = 1
    end_row: Optional[int] = None
    start_col: int = 1
    end_col: Optional[int] = None


def matches_pattern(text: str, pattern: CellPattern) -> bool:
    """Regex search on normalized text; strings that are not valid regexes match as substrings"""
    if not text:
        return False
    if isinstance(pattern, re.Pattern):
        return pattern.search(text) is not None
    try:
        return re.search(pattern, text, re.IGNORECASE) is not None
    except re.error:
        return pattern.lower() in text


def similarity(first: str, second: str) -> float:
    """Edit-distance similarity of the normalized strings in [0, 1]"""
    s1 = normalize_text(first)
    s2 = normalize_text(second)
    if s1 == s2:
        return 1.0 if s1 else 0.0
    return fuzz.ratio(s1, s2) / 100.0


class FormatAdapter:
    """Fuzzy cell/table locator bound to one sheet"""

    def __init__(self, sheet: Sheet, config: Optional[ParserConfig] = None):
        self.sheet = sheet
        self.config = config or ParserConfig()
        self.logger = logging.getLogger(self.__class__.__name__)

    # ---------- cell search ----------

    def find_cell(self, pattern: CellPattern, search_area: Optional[SearchArea] = None) -> Optional[CellRef]:
        """First cell in row-major order whose normalized text matches the pattern"""
        area = self._resolve_area(search_area)
        for row in range(area.start_row, area.end_row + 1):
            for col in range(area.start_col, area.end_col + 1):
                cell = self.sheet.cell(row, col)
                if cell.is_empty:
                    continue
                if matches_pattern(cell.normalized, pattern):
                    return CellRef(row, col, cell)
        return None

    def find_relative_value(self, label_cell: Optional[CellRef], direction: str = 'auto') -> Optional[CellValue]:
        """Nearest non-empty cell right of the label, then below it"""
        if label_cell is None:
            return None
        if direction not in DIRECTIONS:
            raise ValueError(f"Unknown direction '{direction}', expected one of {DIRECTIONS}")

        tolerances = self.config.tolerances
        if direction in ('right', 'auto'):
            for offset in range(1, tolerances.max_col_offset + 1):
                cell = self.sheet.cell(label_cell.row, label_cell.column + offset)
                if not cell.is_empty:
                    return cell

        if direction in ('below', 'auto'):
            for offset in range(1, tolerances.max_row_offset + 1):
                cell = self.sheet.cell(label_cell.row + offset, label_cell.column)
                if not cell.is_empty:
                    return cell

        return None

    def find_value(self, pattern: CellPattern, direction: str = 'auto',
                   search_area: Optional[SearchArea] = None) -> Optional[CellValue]:
        """Locate a label and resolve its value in one step"""
        return self.find_relative_value(self.find_cell(pattern, search_area), direction)

    # ---------- tables ----------

    def find_header_row(self, column_patterns: ColumnPatterns, min_matches: int = 2,
                        start_row: int = 1) -> Optional[int]:
        """First row in the search window where at least min_matches column patterns match"""
        patterns = self._pattern_map(column_patterns)
        area = self._resolve_area(SearchArea(start_row=start_row))
        required = min(min_matches, len(patterns))
        if required == 0:
            return None

        for row in range(area.start_row, area.end_row + 1):
            headers = [self.sheet.cell(row, col).normalized for col in range(1, self.sheet.max_column + 1)]
            matched = sum(
                1 for pattern in patterns.values()
                if any(matches_pattern(text, pattern) for text in headers)
            )
            if matched >= required:
                return row
        return None

    def locate_columns(self, header_row: int, column_patterns: ColumnPatterns) -> Dict[str, int]:
        """Map each column name to the first unclaimed header column it matches"""
        patterns = self._pattern_map(column_patterns)
        headers = {
            col: self.sheet.cell(header_row, col).normalized
            for col in range(1, self.sheet.max_column + 1)
        }
        headers = {col: text for col, text in headers.items() if text}

        columns: Dict[str, int] = {}
        claimed = set()
        for name, pattern in patterns.items():
            for col, text in headers.items():
                if col not in claimed and matches_pattern(text, pattern):
                    columns[name] = col
                    claimed.add(col)
                    break

        # Fuzzy pass for names whose pattern matched nothing
        threshold = self.config.tolerances.similarity_threshold
        for name in patterns:
            if name in columns:
                continue
            label = name.replace('_', ' ')
            for col, text in headers.items():
                if col not in claimed and similarity(text, label) >= threshold:
                    columns[name] = col
                    claimed.add(col)
                    self.logger.debug(f"Column '{name}' matched header '{text}' by similarity")
                    break

        return columns

    def extract_table(self, header_row: int, column_patterns: ColumnPatterns) -> List[Dict[str, CellValue]]:
        """
        Read the rows below header_row into records keyed by column name.
        Reading stops at the first row whose first cell is empty, where the first
        cell is taken from the leftmost non-empty header column. Names without a
        matching column map to an empty cell.
        """
        patterns = self._pattern_map(column_patterns)
        header_cols = [
            col for col in range(1, self.sheet.max_column + 1)
            if not self.sheet.cell(header_row, col).is_empty
        ]
        if not header_cols:
            return []

        first_col = header_cols[0]
        columns = self.locate_columns(header_row, patterns)
        missing = [name for name in patterns if name not in columns]
        if missing:
            self.logger.debug(f"Sheet '{self.sheet.name}' row {header_row}: no column for {missing}")

        records = []
        for row in range(header_row + 1, self.sheet.max_row + 1):
            if self.sheet.cell(row, first_col).is_empty:
                break
            records.append({
                name: self.sheet.cell(row, columns[name]) if name in columns else EMPTY_CELL
                for name in patterns
            })
        return records

    # ---------- similarity ----------

    def similarity(self, first: str, second: str) -> float:
        return similarity(first, second)

    def is_similar(self, first: str, second: str) -> bool:
        return similarity(first, second) >= self.config.tolerances.similarity_threshold

    # ---------- helpers ----------

    def _resolve_area(self, search_area: Optional[SearchArea]) -> SearchArea:
        window = self.config.search_window
        area = search_area or SearchArea()
        end_row = area.end_row if area.end_row is not None else min(window.max_rows, self.sheet.max_row)
        end_col = area.end_col if area.end_col is not None else min(window.max_cols, self.sheet.max_column)
        return SearchArea(max(1, area.start_row), end_row, max(1, area.start_col), end_col)

    @staticmethod
    def _pattern_map(column_patterns: ColumnPatterns) -> Dict[str, CellPattern]:
        if isinstance(column_patterns, dict):
            return dict(column_patterns)
        return {name: re.escape(normalize_text(name)) for name in column_patterns}
