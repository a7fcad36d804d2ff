#!/usr/bin/env python3
"""
Financial progress sheet processor - handles the budget items annexure.
Variance and variance % are recomputed from budgeted and actual when the sheet omits them.
"""

from typing import Optional

from mmr_processor.models.report_models import AnnexureType, BudgetItem, FinancialProgress
from mmr_processor.processors.base_annexure_processor import BaseAnnexureProcessor, IssueCollector
from mmr_processor.processors.format_adapter import FormatAdapter

BUDGET_ANCHOR = r'financial.*progress|budget|expenditure'
BUDGET_COLUMNS = {
    'category': r'category|\bhead\b|description|\bitem\b|particular|component',
    'budgeted': r'budget|sanction|estimate',
    'actual': r'actual|expenditure|spent|incurred',
    'committed': r'commit',
    'variance_percent': r'variance\s*(%|\(%\)|percent)|%\s*variance',
    'variance': r'variance',
}


class FinancialProgressProcessor(BaseAnnexureProcessor):
    """Processor for Financial Progress sheets"""

    @property
    def annexure_type(self) -> AnnexureType:
        return AnnexureType.FINANCIAL_PROGRESS

    def extract(self, adapter: FormatAdapter, issues: IssueCollector) -> Optional[FinancialProgress]:
        rows = self._read_table(adapter, BUDGET_COLUMNS, anchor=BUDGET_ANCHOR, min_matches=3)
        if rows is None:
            issues.warning(self.label, "Financial progress table not found",
                           suggestion="Check if the annexure contains financial data")
            return None

        items = []
        for row in rows:
            budgeted = row['budgeted'].as_number()
            actual = row['actual'].as_number()
            variance = row['variance']
            variance_percent = row['variance_percent']
            items.append(BudgetItem(
                category=row['category'].as_text(),
                budgeted=budgeted,
                actual=actual,
                committed=row['committed'].as_number(),
                variance=actual - budgeted if variance.is_empty else variance.as_number(),
                variance_percent=(self._percent_of(actual - budgeted, budgeted)
                                  if variance_percent.is_empty else variance_percent.as_number()),
            ))
        return FinancialProgress(budget_items=items)
