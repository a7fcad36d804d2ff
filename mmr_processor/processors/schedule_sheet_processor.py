#!/usr/bin/env python3
"""
Schedule sheet processor - handles the programme / baseline schedule annexure.
"""

from mmr_processor.models.report_models import AnnexureType, Schedule, ScheduleActivity
from mmr_processor.processors.base_annexure_processor import BaseAnnexureProcessor, IssueCollector
from mmr_processor.processors.format_adapter import FormatAdapter

SCHEDULE_COLUMNS = {
    'description': r'activity|description|milestone|task',
    'planned_start': r'(planned|baseline|scheduled|target).*start|start.*(planned|baseline|scheduled)',
    'planned_finish': r'(planned|baseline|scheduled|target).*(finish|end|completion)|(finish|end|completion).*(planned|baseline)',
    'actual_start': r'actual.*start|start.*actual',
    'actual_finish': r'actual.*(finish|end|completion)|(finish|end|completion).*actual',
    'delay_days': r'delay|slippage',
}


class ScheduleProcessor(BaseAnnexureProcessor):
    """Processor for Schedule sheets"""

    @property
    def annexure_type(self) -> AnnexureType:
        return AnnexureType.SCHEDULE

    def extract(self, adapter: FormatAdapter, issues: IssueCollector) -> Schedule:
        rows = self._read_table(adapter, SCHEDULE_COLUMNS, anchor=r'schedule|programme|milestone') or []
        activities = []
        for row in rows:
            planned_finish = row['planned_finish'].as_optional_date()
            actual_finish = row['actual_finish'].as_optional_date()
            delay = row['delay_days']
            if not delay.is_empty:
                delay_days = delay.as_number()
            elif planned_finish is not None and actual_finish is not None:
                delay_days = max(0, (actual_finish - planned_finish).days)
            else:
                delay_days = 0

            activities.append(ScheduleActivity(
                description=row['description'].as_text(),
                planned_start=row['planned_start'].as_optional_date(),
                planned_finish=planned_finish,
                actual_start=row['actual_start'].as_optional_date(),
                actual_finish=actual_finish,
                delay_days=delay_days,
            ))
        return Schedule(activities=activities)
