#!/usr/bin/env python3
"""
Base annexure processor class that defines the interface for all annexure extractors.
This provides common functionality and structure for specific annexure implementations.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from pydantic import BaseModel

from mmr_processor.models.config_models import ParserConfig
from mmr_processor.models.report_models import (
    AnnexureType,
    ParseError,
    ParseWarning,
    Severity
)
from mmr_processor.processors.format_adapter import CellPattern, ColumnPatterns, FormatAdapter
from mmr_processor.processors.workbook_loader import CellValue, Sheet

_SKIP_ROW = re.compile(r'^(grand\s*|sub\s*-?\s*)?total\b')


class IssueCollector:
    """Accumulates parse errors and warnings for one parse"""

    def __init__(self):
        self.errors: List[ParseError] = []
        self.warnings: List[ParseWarning] = []

    def error(self, annexure: str, message: str, cell: Optional[str] = None) -> None:
        self.errors.append(ParseError(annexure=annexure, message=message, severity=Severity.ERROR, cell=cell))

    def critical(self, annexure: str, message: str, cell: Optional[str] = None) -> None:
        self.errors.append(ParseError(annexure=annexure, message=message, severity=Severity.CRITICAL, cell=cell))

    def warning(self, annexure: str, message: str, suggestion: Optional[str] = None,
                cell: Optional[str] = None) -> None:
        self.warnings.append(ParseWarning(annexure=annexure, message=message, suggestion=suggestion, cell=cell))

    @property
    def critical_count(self) -> int:
        return sum(1 for error in self.errors if error.severity == Severity.CRITICAL)


class BaseAnnexureProcessor(ABC):
    """Abstract base class for annexure extractors"""

    failure_severity = Severity.ERROR

    def __init__(self, config: Optional[ParserConfig] = None):
        self.config = config or ParserConfig()
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    @abstractmethod
    def annexure_type(self) -> AnnexureType:
        """Annexure type handled by this processor"""
        pass

    @property
    def label(self) -> str:
        """Annexure name used in errors and warnings"""
        return self.annexure_type.value

    @abstractmethod
    def extract(self, adapter: FormatAdapter, issues: IssueCollector) -> Optional[BaseModel]:
        """Extract the typed payload from a sheet; data problems go to issues"""
        pass

    def process(self, sheet: Sheet, issues: IssueCollector) -> Optional[BaseModel]:
        """Run extraction on one sheet; unexpected failures are recorded, never raised"""
        adapter = FormatAdapter(sheet, self.config)
        try:
            return self.extract(adapter, issues)
        except Exception as e:
            self.logger.error(f"Error extracting {self.label} from sheet '{sheet.name}': {e}", exc_info=True)
            issues.errors.append(ParseError(
                annexure=self.label,
                message=f"Parse error in sheet '{sheet.name}': {e}",
                severity=self.failure_severity,
            ))
            return None

    # ---------- table helpers ----------

    def _locate_table(self, adapter: FormatAdapter, columns: ColumnPatterns,
                      anchor: Optional[CellPattern] = None, min_matches: int = 2) -> Optional[int]:
        """Header row of a table, searched from the anchor label when one is present"""
        start_row = 1
        anchor_cell = adapter.find_cell(anchor) if anchor is not None else None
        if anchor_cell is not None:
            start_row = anchor_cell.row

        header_row = adapter.find_header_row(columns, min_matches=min_matches, start_row=start_row)
        if header_row is None and anchor_cell is not None:
            header_row = adapter.find_header_row(columns, min_matches=min_matches)
        if header_row is None and anchor_cell is not None:
            header_row = anchor_cell.row
        return header_row

    def _read_table(self, adapter: FormatAdapter, columns: Dict[str, CellPattern],
                    anchor: Optional[CellPattern] = None,
                    min_matches: int = 2) -> Optional[List[Dict[str, CellValue]]]:
        """Table records with total rows dropped, or None when no header row is found"""
        header_row = self._locate_table(adapter, columns, anchor, min_matches)
        if header_row is None:
            return None

        key_column = next(iter(columns))
        records = adapter.extract_table(header_row, columns)
        rows = [record for record in records if not self._is_skip_row(record[key_column].normalized)]
        self.logger.debug(f"{self.label}: {len(rows)} rows from header row {header_row} "
                          f"({len(records) - len(rows)} total rows skipped)")
        return rows

    def _is_skip_row(self, text: str) -> bool:
        """Check if a table row is a total/subtotal line"""
        return bool(_SKIP_ROW.match(text))

    @staticmethod
    def _text(cell: Optional[CellValue]) -> str:
        return cell.as_text() if cell is not None else ""

    @staticmethod
    def _number(cell: Optional[CellValue]) -> float:
        return cell.as_number() if cell is not None else 0.0

    @staticmethod
    def _optional_text(cell: Optional[CellValue]) -> Optional[str]:
        if cell is None or cell.is_empty:
            return None
        return cell.as_text()

    @staticmethod
    def _percent_of(part: float, whole: float) -> float:
        return part / whole * 100 if whole else 0.0
