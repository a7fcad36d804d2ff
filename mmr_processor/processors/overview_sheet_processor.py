#!/usr/bin/env python3
"""
Overview sheet processor - handles the project overview annexure.
Reads project details from label/value pairs and the key milestones table.
"""

from datetime import datetime
from typing import List, Optional

from mmr_processor.models.report_models import (
    AnnexureType,
    Milestone,
    MilestoneStatus,
    ProjectDetails,
    ProjectOverview,
    Severity
)
from mmr_processor.processors.base_annexure_processor import BaseAnnexureProcessor, IssueCollector
from mmr_processor.processors.format_adapter import FormatAdapter

DETAIL_PATTERNS = {
    'name': r'project\s*name|name\s*of\s*(the\s*)?(project|work)',
    'location': r'location|\bsite\b',
    'client': r'client|employer|owner',
    'contract_value': r'contract.*value|value.*contract|contract\s*(amount|price)',
    'start_date': r'start.*date|commencement',
    'end_date': r'^(?!.*(revised|extended)).*(end.*date|completion.*date)',
    'revised_end_date': r'(revised|extended).*(end|completion|date)',
}

MILESTONE_ANCHOR = r'milestones?|key\s*dates'
MILESTONE_COLUMNS = {
    'description': r'description|milestone|activity',
    'planned': r'planned|scheduled|target|baseline',
    'actual': r'actual|achieved',
    'status': r'status',
    'remarks': r'remark|comment',
}


def normalize_status(value: str) -> MilestoneStatus:
    """Map free-text status by substring; anything unrecognised is Pending"""
    status = value.lower()
    if 'complete' in status:
        return MilestoneStatus.COMPLETED
    if 'progress' in status:
        return MilestoneStatus.IN_PROGRESS
    if 'delay' in status:
        return MilestoneStatus.DELAYED
    return MilestoneStatus.PENDING


class OverviewSheetProcessor(BaseAnnexureProcessor):
    """Processor for Project Overview sheets"""

    failure_severity = Severity.CRITICAL

    @property
    def annexure_type(self) -> AnnexureType:
        return AnnexureType.OVERVIEW

    def extract(self, adapter: FormatAdapter, issues: IssueCollector) -> Optional[ProjectOverview]:
        values = {field: adapter.find_value(pattern) for field, pattern in DETAIL_PATTERNS.items()}
        now = datetime.now()

        start_date = values['start_date'].as_optional_date() if values['start_date'] else None
        end_date = values['end_date'].as_optional_date() if values['end_date'] else None
        if start_date is None:
            issues.warning(self.label, "Project start date not found or unreadable",
                           suggestion="Add a 'Start Date' label with a date value")
            start_date = now
        if end_date is None:
            issues.warning(self.label, "Project end date not found or unreadable",
                           suggestion="Add an 'End Date' or 'Completion Date' label with a date value")
            end_date = now

        details = ProjectDetails(
            name=self._text(values['name']),
            location=self._text(values['location']),
            client=self._text(values['client']),
            contract_value=self._number(values['contract_value']),
            start_date=start_date,
            end_date=end_date,
            revised_end_date=values['revised_end_date'].as_optional_date() if values['revised_end_date'] else None,
        )
        return ProjectOverview(project_details=details, milestones=self._extract_milestones(adapter))

    def _extract_milestones(self, adapter: FormatAdapter) -> List[Milestone]:
        rows = self._read_table(adapter, MILESTONE_COLUMNS, anchor=MILESTONE_ANCHOR)
        if not rows:
            return []

        milestones = []
        for index, row in enumerate(rows, start=1):
            milestones.append(Milestone(
                id=f"M{index}",
                description=row['description'].as_text(),
                planned_date=row['planned'].as_date(),
                actual_date=row['actual'].as_optional_date(),
                status=normalize_status(row['status'].as_text()),
                remarks=self._optional_text(row['remarks']),
            ))
        return milestones
