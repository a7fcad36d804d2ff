#!/usr/bin/env python3
"""
Compliance sheet processors - safety (HSE) and quality (QA/QC) annexures.
"""

from mmr_processor.models.report_models import (
    AnnexureType,
    Quality,
    QualityTest,
    Safety,
    SafetyIncident
)
from mmr_processor.processors.base_annexure_processor import BaseAnnexureProcessor, IssueCollector
from mmr_processor.processors.format_adapter import FormatAdapter

SAFETY_METRICS = {
    'man_hours': r'man\s*-?\s*hours?',
    'incidents': r'^(no\.?\s*of\s*|number\s*of\s*|total\s*)?(incidents?|accidents?)(\s*\(.*\))?$',
    'lost_time_injuries': r'lost\s*time|\blti\b',
    'near_misses': r'near\s*-?\s*miss',
    'fatalities': r'fatal',
}

INCIDENT_ANCHOR = r'incident\s*(log|register|details)|accident\s*(log|register|details)'
INCIDENT_COLUMNS = {
    'date': r'\bdate\b',
    'description': r'description|details|nature',
    'category': r'category|\btype\b|classification',
    'action_taken': r'action|measure|corrective',
}

QUALITY_COLUMNS = {
    'test': r'test|description|parameter|\bitem\b',
    'planned': r'planned|required|target',
    'conducted': r'conducted|performed|carried|\bdone\b',
    'pass_rate': r'pass\s*(rate|%)|success\s*rate',
    'failed': r'fail|unsatisfactory|rejected',
    'passed': r'\bpass(ed)?\b|(?<!un)satisfactory|accepted',
}


class SafetyProcessor(BaseAnnexureProcessor):
    """Processor for Safety sheets"""

    @property
    def annexure_type(self) -> AnnexureType:
        return AnnexureType.SAFETY

    def extract(self, adapter: FormatAdapter, issues: IssueCollector) -> Safety:
        metrics = {field: self._number(adapter.find_value(pattern)) for field, pattern in SAFETY_METRICS.items()}

        incident_log = []
        anchor_cell = adapter.find_cell(INCIDENT_ANCHOR)
        if anchor_cell is not None:
            rows = self._read_table(adapter, INCIDENT_COLUMNS, anchor=INCIDENT_ANCHOR) or []
            for row in rows:
                incident_log.append(SafetyIncident(
                    date=row['date'].as_optional_date(),
                    description=row['description'].as_text(),
                    category=row['category'].as_text(),
                    action_taken=row['action_taken'].as_text(),
                ))

        return Safety(incident_log=incident_log, **metrics)


class QualityProcessor(BaseAnnexureProcessor):
    """Processor for Quality sheets"""

    @property
    def annexure_type(self) -> AnnexureType:
        return AnnexureType.QUALITY

    def extract(self, adapter: FormatAdapter, issues: IssueCollector) -> Quality:
        rows = self._read_table(adapter, QUALITY_COLUMNS, anchor=r'quality|qa\s*/?\s*qc|tests?') or []
        tests = []
        for row in rows:
            conducted = row['conducted'].as_number()
            passed = row['passed'].as_number()
            pass_rate = row['pass_rate']
            tests.append(QualityTest(
                test=row['test'].as_text(),
                planned=row['planned'].as_number(),
                conducted=conducted,
                passed=passed,
                failed=row['failed'].as_number(),
                pass_rate=self._percent_of(passed, conducted) if pass_rate.is_empty else pass_rate.as_percentage(),
            ))
        return Quality(tests=tests)
