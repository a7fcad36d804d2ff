#!/usr/bin/env python3
"""
Physical progress sheet processor - handles the activity quantities annexure.
"""

from typing import Optional

from mmr_processor.models.report_models import Activity, AnnexureType, PhysicalProgress
from mmr_processor.processors.base_annexure_processor import BaseAnnexureProcessor, IssueCollector
from mmr_processor.processors.format_adapter import FormatAdapter

ACTIVITY_ANCHOR = r'physical.*progress|activity|work.*item'
ACTIVITY_COLUMNS = {
    'description': r'description|activity|work\s*item|\bitem\b|particular',
    'unit': r'\bunit\b|\buom\b',
    'planned': r'planned|target|scope|total\s*q',
    'actual': r'actual|achieved|executed|done|cumulative',
    'progress': r'progress|%|complet',
    'variance': r'variance',
}


class PhysicalProgressProcessor(BaseAnnexureProcessor):
    """Processor for Physical Progress sheets"""

    @property
    def annexure_type(self) -> AnnexureType:
        return AnnexureType.PHYSICAL_PROGRESS

    def extract(self, adapter: FormatAdapter, issues: IssueCollector) -> Optional[PhysicalProgress]:
        rows = self._read_table(adapter, ACTIVITY_COLUMNS, anchor=ACTIVITY_ANCHOR, min_matches=3)
        if rows is None:
            issues.warning(self.label, "Physical progress table not found",
                           suggestion="Check if the annexure contains physical progress data")
            return None

        activities = []
        for index, row in enumerate(rows, start=1):
            planned = row['planned'].as_number()
            actual = row['actual'].as_number()
            variance = row['variance']
            activities.append(Activity(
                id=f"A{index}",
                description=row['description'].as_text(),
                unit=row['unit'].as_text(),
                planned_qty=planned,
                actual_qty=actual,
                progress=row['progress'].as_percentage(),
                variance=actual - planned if variance.is_empty else variance.as_number(),
            ))
        return PhysicalProgress(activities=activities)
