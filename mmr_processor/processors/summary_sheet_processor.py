#!/usr/bin/env python3
"""
Summary sheet processor - handles the executive summary sheet.
These sheets identify the project and carry the headline budget and progress figures.
"""

from typing import Optional

from mmr_processor.models.report_models import AnnexureSummary, AnnexureType, Severity, SummaryMetrics
from mmr_processor.processors.base_annexure_processor import BaseAnnexureProcessor, IssueCollector
from mmr_processor.processors.format_adapter import FormatAdapter
from mmr_processor.processors.workbook_loader import Sheet

LABEL_PATTERNS = {
    'project_name': r'project\s*name|name\s*of\s*(the\s*)?project',
    'project_code': r'project\s*code|\bcode\b',
    'reporting_period': r'report.*period|\bmonth\b|period',
    'prepared_by': r'prepared\s*by',
    'checked_by': r'checked\s*by|reviewed\s*by',
    'approved_by': r'approved\s*by',
}

METRIC_PATTERNS = {
    'total_budget': r'total.*budget|budget.*total|sanctioned\s*cost',
    'actual_expenditure': r'actual.*expend|expend.*actual|cumulative\s*expend|actual\s*cost|^(total\s*)?expenditure',
    'physical_progress': r'physical.*progress',
    'financial_progress': r'financial.*progress',
    'variance': r'\bvariance\b',
}


class SummarySheetProcessor(BaseAnnexureProcessor):
    """Processor for Summary sheets"""

    failure_severity = Severity.CRITICAL

    @property
    def annexure_type(self) -> AnnexureType:
        return AnnexureType.SUMMARY

    def extract(self, adapter: FormatAdapter, issues: IssueCollector) -> Optional[AnnexureSummary]:
        values = {field: adapter.find_value(pattern) for field, pattern in LABEL_PATTERNS.items()}

        project_name = self._text(values['project_name'])
        if not project_name:
            issues.critical(self.label, "Project name not found")
            return None

        return AnnexureSummary(
            project_name=project_name,
            project_code=self._text(values['project_code']),
            reporting_period=self._text(values['reporting_period']),
            prepared_by=self._text(values['prepared_by']),
            checked_by=self._text(values['checked_by']),
            approved_by=self._text(values['approved_by']),
        )

    def extract_metrics(self, sheet: Sheet) -> SummaryMetrics:
        """Headline figures; variance is expenditure minus budget when not stated"""
        adapter = FormatAdapter(sheet, self.config)
        values = {field: adapter.find_value(pattern) for field, pattern in METRIC_PATTERNS.items()}

        total_budget = self._number(values['total_budget'])
        actual_expenditure = self._number(values['actual_expenditure'])
        physical = values['physical_progress']
        financial = values['financial_progress']
        variance = values['variance']

        return SummaryMetrics(
            total_budget=total_budget,
            actual_expenditure=actual_expenditure,
            physical_progress=physical.as_percentage() if physical is not None else 0,
            financial_progress=financial.as_percentage() if financial is not None else 0,
            variance=variance.as_number() if variance is not None else actual_expenditure - total_budget,
        )
