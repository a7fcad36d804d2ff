#!/usr/bin/env python3
"""
MMR processor - the parse pipeline for one workbook.
Loads the workbook, classifies every sheet, runs the annexure extractors,
assembles the report, validates it and scores the parse confidence.
The entry point always returns a well-formed ParseResult.
"""

import logging
import re
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from mmr_processor.exceptions import JobCancelledError, JobTimeoutError
from mmr_processor.models.config_models import MMRConfig
from mmr_processor.models.report_models import (
    GENERAL_ANNEXURE,
    AnnexureSummary,
    AnnexureType,
    Annexures,
    MMRReport,
    ParseError,
    ParseResult,
    ReportMetadata,
    Severity,
    SheetInventoryEntry,
    SummaryMetrics
)
from mmr_processor.processors.base_annexure_processor import BaseAnnexureProcessor, IssueCollector
from mmr_processor.processors.compliance_sheet_processors import QualityProcessor, SafetyProcessor
from mmr_processor.processors.confidence_scorer import ConfidenceScorer
from mmr_processor.processors.financial_sheet_processor import FinancialProgressProcessor
from mmr_processor.processors.overview_sheet_processor import OverviewSheetProcessor
from mmr_processor.processors.progress_sheet_processor import PhysicalProgressProcessor
from mmr_processor.processors.resource_sheet_processors import (
    EquipmentProcessor,
    ManpowerProcessor,
    MaterialsProcessor
)
from mmr_processor.processors.schedule_sheet_processor import ScheduleProcessor
from mmr_processor.processors.sheet_classifier import SheetClassifier
from mmr_processor.processors.summary_sheet_processor import SummarySheetProcessor
from mmr_processor.processors.workbook_loader import Sheet, Workbook, WorkbookSource, load_workbook
from mmr_processor.validators.mmr_validator import MMRValidator

ProgressCallback = Callable[[int, int, str], None]

MONTHS = ['January', 'February', 'March', 'April', 'May', 'June',
          'July', 'August', 'September', 'October', 'November', 'December']

_MONTH_PATTERN = re.compile(
    r'(?<![a-z])(jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?'
    r'|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)(?![a-z])',
    re.IGNORECASE,
)
_YEAR_PATTERN = re.compile(r'(?<!\d)20\d{2}(?!\d)')
_ISO_DATE_PATTERN = re.compile(r'^(\d{4})-(\d{2})-\d{2}')
_PROJECT_CODE_PATTERN = re.compile(r'PRJ\d+', re.IGNORECASE)

PREVIEW_CELLS = 10


class MMRProcessor:
    """Main processor for MMR workbooks"""

    def __init__(self, config: Optional[MMRConfig] = None):
        self.config = config or MMRConfig.get_default_config()
        self.logger = logging.getLogger(self.__class__.__name__)

        parser_config = self.config.parser
        self.classifier = SheetClassifier(self.config.classifier, parser_config.tolerances)
        self.scorer = ConfidenceScorer(self.config.confidence_weights)
        self.validator = MMRValidator(self.config.validation)

        self.summary_processor = SummarySheetProcessor(parser_config)
        processors: List[BaseAnnexureProcessor] = [
            self.summary_processor,
            OverviewSheetProcessor(parser_config),
            PhysicalProgressProcessor(parser_config),
            FinancialProgressProcessor(parser_config),
            ManpowerProcessor(parser_config),
            EquipmentProcessor(parser_config),
            MaterialsProcessor(parser_config),
            ScheduleProcessor(parser_config),
            SafetyProcessor(parser_config),
            QualityProcessor(parser_config),
        ]
        self.processors: Dict[AnnexureType, BaseAnnexureProcessor] = {
            processor.annexure_type: processor for processor in processors
        }

    def parse_file(self, source: WorkbookSource, file_name: Optional[str] = None,
                   uploaded_at: Optional[datetime] = None,
                   progress_callback: Optional[ProgressCallback] = None) -> ParseResult:
        """
        Parse a workbook from a path, bytes or stream.
        Unexpected failures become a single critical General error with confidence 0.
        Cancellation and timeout raised from the progress callback propagate to the caller.
        """
        issues = IssueCollector()
        try:
            workbook = load_workbook(source, file_name)
            return self.parse_workbook(workbook, issues, uploaded_at, progress_callback)
        except (JobCancelledError, JobTimeoutError):
            raise
        except Exception as e:
            self.logger.error(f"Failed to parse {file_name or source!r}: {e}", exc_info=True)
            errors = [error for error in issues.errors if error.severity != Severity.CRITICAL]
            errors.append(ParseError(
                annexure=GENERAL_ANNEXURE,
                message=f"Failed to parse file: {e}",
                severity=Severity.CRITICAL,
            ))
            return ParseResult(success=False, errors=errors, warnings=issues.warnings, confidence=0)

    def parse_workbook(self, workbook: Workbook, issues: Optional[IssueCollector] = None,
                       uploaded_at: Optional[datetime] = None,
                       progress_callback: Optional[ProgressCallback] = None) -> ParseResult:
        """Classify, extract, validate and score an already loaded workbook"""
        issues = issues or IssueCollector()
        now = datetime.now()
        total_steps = len(workbook) + 2
        self._report(progress_callback, 1, total_steps, f"Loaded {len(workbook)} sheets")

        annexures = Annexures()
        metrics: Optional[SummaryMetrics] = None
        inventory: List[SheetInventoryEntry] = []

        for index, sheet in enumerate(workbook, start=1):
            entry = self.inventory_entry(sheet)
            if entry.annexure != AnnexureType.OTHER:
                entry.extracted = self._extract_sheet(sheet, entry.annexure, annexures, issues)
                if entry.extracted and entry.annexure == AnnexureType.SUMMARY:
                    metrics = self.summary_processor.extract_metrics(sheet)
            inventory.append(entry)
            self._report(progress_callback, 1 + index, total_steps, f"Processed sheet '{sheet.name}'")

        extracted = sum(1 for entry in inventory if entry.extracted)
        self.logger.info(f"{workbook.file_name or '<buffer>'}: {len(inventory)} sheets, "
                         f"{extracted} annexures extracted")

        if extracted == 0:
            issues.critical(GENERAL_ANNEXURE, "No valid annexures found in the file")
            self._report(progress_callback, total_steps, total_steps, "No annexures found")
            return ParseResult(success=False, errors=issues.errors, warnings=issues.warnings,
                               confidence=0, sheets=inventory)

        project_id, month, year = self.identify_report(annexures.summary, workbook.file_name)
        report = MMRReport(
            project_id=project_id,
            month=month,
            year=year,
            report_date=datetime(year, MONTHS.index(month) + 1, 1) if month in MONTHS else now,
            summary=metrics or SummaryMetrics(),
            annexures=annexures,
            metadata=ReportMetadata(
                file_name=workbook.file_name,
                uploaded_at=uploaded_at or now,
                parsed_at=now,
                format_version=self.config.classifier.active_profile or "standard",
            ),
        )

        validation = self.validator.validate(report, now)
        errors = issues.errors + validation.errors
        warnings = issues.warnings + validation.warnings
        has_critical = any(error.severity == Severity.CRITICAL for error in errors)
        confidence = 0 if has_critical else self.scorer.score(extracted, errors, warnings)

        report.metadata.parse_confidence = confidence
        report.metadata.errors = errors
        report.metadata.warnings = warnings
        self._report(progress_callback, total_steps, total_steps, "Validation complete")

        return ParseResult(
            success=not has_critical,
            data=None if has_critical else report,
            errors=errors,
            warnings=warnings,
            confidence=confidence,
            sheets=inventory,
        )

    def inventory_entry(self, sheet: Sheet) -> SheetInventoryEntry:
        """Classify one sheet and describe it for diagnostics"""
        headers = self.detect_header(sheet)
        return SheetInventoryEntry(
            name=sheet.name,
            annexure=self.classifier.classify(sheet.name, headers),
            rows=sheet.max_row,
            columns=sheet.max_column,
            header_preview=[text for text in headers if text][:PREVIEW_CELLS],
        )

    def detect_header(self, sheet: Sheet) -> List[str]:
        """Texts of the first row near the top with at least two non-empty cells"""
        max_col = min(sheet.max_column, self.config.parser.search_window.max_cols)
        for row in range(1, min(sheet.max_row, self.config.parser.header_scan_rows) + 1):
            texts = sheet.row_texts(row, max_col)
            if sum(1 for text in texts if text) >= 2:
                return texts
        return []

    def identify_report(self, summary: Optional[AnnexureSummary], file_name: str) -> Tuple[str, str, int]:
        """Project id, month and year from the summary sheet, then the file name"""
        project_code = summary.project_code if summary else ""
        period = summary.reporting_period if summary else ""

        if not project_code:
            match = _PROJECT_CODE_PATTERN.search(file_name or "")
            project_code = match.group(0).upper() if match else "UNKNOWN"

        month = self._extract_month(period) or self._extract_month(file_name) or "Unknown"
        year = self._extract_year(period) or self._extract_year(file_name) or datetime.now().year
        return project_code, month, year

    def _extract_sheet(self, sheet: Sheet, annexure: AnnexureType, annexures: Annexures,
                       issues: IssueCollector) -> bool:
        if annexures.get(annexure) is not None:
            issues.warning(annexure.value, f"Duplicate {annexure.value} sheet '{sheet.name}' ignored",
                           suggestion="Keep a single sheet per annexure")
            return False

        payload = self.processors[annexure].process(sheet, issues)
        if payload is None:
            return False
        annexures.set(annexure, payload)
        return True

    @staticmethod
    def _extract_month(text: str) -> Optional[str]:
        if not text:
            return None
        match = _MONTH_PATTERN.search(text)
        if match:
            prefix = match.group(1).lower()[:3]
            return next(month for month in MONTHS if month.lower().startswith(prefix))
        iso = _ISO_DATE_PATTERN.match(text)
        if iso and 1 <= int(iso.group(2)) <= 12:
            return MONTHS[int(iso.group(2)) - 1]
        return None

    @staticmethod
    def _extract_year(text: str) -> Optional[int]:
        if not text:
            return None
        match = _YEAR_PATTERN.search(text)
        return int(match.group(0)) if match else None

    @staticmethod
    def _report(callback: Optional[ProgressCallback], current: int, total: int, message: str) -> None:
        if callback is not None:
            callback(current, total, message)
