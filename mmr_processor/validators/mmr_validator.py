#!/usr/bin/env python3
"""
Report validator - schema and business-rule validation of an assembled MMR report.
Schema failures are errors; heuristic and cross-annexure mismatches are warnings
with a suggested fix. Validation never raises.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator

from mmr_processor.models.config_models import ValidationRules
from mmr_processor.models.report_models import (
    CROSS_VALIDATION_ANNEXURE,
    AnnexureType,
    MMRReport,
    ParseError,
    ParseWarning,
    ProjectDetails,
    Severity,
    SummaryMetrics,
    ValidationResult
)


class SummarySchema(BaseModel):
    """Range rules for the summary metrics block"""
    total_budget: float = Field(..., gt=0)
    actual_expenditure: float = Field(..., ge=0)
    physical_progress: float = Field(..., ge=0, le=100)
    financial_progress: float = Field(..., ge=0, le=100)
    variance: float


class ProjectDetailsSchema(BaseModel):
    """Required-field rules for overview project details"""
    name: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    client: str = Field(..., min_length=1)
    contract_value: float = Field(..., gt=0)
    start_date: datetime
    end_date: datetime

    @model_validator(mode='after')
    def validate_dates(self):
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class MMRValidator:
    """Validates an assembled report against schema and business rules"""

    def __init__(self, rules: Optional[ValidationRules] = None):
        self.rules = rules or ValidationRules()
        self.logger = logging.getLogger(self.__class__.__name__)

    def validate(self, report: MMRReport, now: Optional[datetime] = None) -> ValidationResult:
        """Run every applicable rule and return the collected issues"""
        errors: List[ParseError] = []
        warnings: List[ParseWarning] = []
        now = now or datetime.now()
        annexures = report.annexures

        try:
            if annexures.summary is not None:
                self._validate_summary(report.summary, errors, warnings)
            if annexures.overview is not None:
                self._validate_overview(report, errors, warnings)
            if annexures.physical_progress is not None:
                self._validate_physical_progress(report, errors, warnings)
            if annexures.financial_progress is not None:
                self._validate_financial_progress(report, warnings)
            if annexures.manpower is not None:
                self._validate_manpower(report, errors)
            if annexures.equipment is not None:
                self._validate_equipment(report, warnings)
            if annexures.quality is not None:
                self._validate_quality(report, warnings)
            self._cross_validate(report, warnings, now)
        except Exception as e:
            self.logger.error(f"Validation aborted: {e}", exc_info=True)
            errors.append(ParseError(
                annexure=CROSS_VALIDATION_ANNEXURE,
                message=f"Validation aborted: {e}",
                severity=Severity.ERROR,
            ))

        self.logger.debug(f"Validation finished: {len(errors)} errors, {len(warnings)} warnings")
        return ValidationResult(valid=not errors, errors=errors, warnings=warnings)

    # ---------- schema rules ----------

    def _schema_errors(self, schema: type, data: dict, annexure: str) -> List[ParseError]:
        try:
            schema.model_validate(data)
            return []
        except ValidationError as e:
            return [
                ParseError(
                    annexure=annexure,
                    message=f"{'.'.join(str(part) for part in detail['loc']) or 'record'}: {detail['msg']}",
                    severity=Severity.ERROR,
                )
                for detail in e.errors()
            ]

    def _validate_summary(self, summary: SummaryMetrics, errors: List[ParseError],
                          warnings: List[ParseWarning]) -> None:
        annexure = AnnexureType.SUMMARY.value
        errors.extend(self._schema_errors(SummarySchema, summary.model_dump(), annexure))

        if summary.physical_progress > summary.financial_progress + self.rules.progress_gap_threshold:
            warnings.append(ParseWarning(
                annexure=annexure,
                message="Physical progress significantly ahead of financial progress",
                suggestion="Verify if this is expected or if there are pending payments",
            ))

    def _validate_overview(self, report: MMRReport, errors: List[ParseError],
                           warnings: List[ParseWarning]) -> None:
        annexure = AnnexureType.OVERVIEW.value
        overview = report.annexures.overview
        details: ProjectDetails = overview.project_details
        errors.extend(self._schema_errors(ProjectDetailsSchema, details.model_dump(), annexure))

        allowed_delay = timedelta(days=self.rules.milestone_delay_days)
        for index, milestone in enumerate(overview.milestones, start=1):
            if milestone.actual_date is None:
                continue
            if milestone.actual_date - milestone.planned_date > allowed_delay:
                warnings.append(ParseWarning(
                    annexure=annexure,
                    message=f"Milestone {index} delayed by more than {self.rules.milestone_delay_days} days",
                    suggestion="Update project schedule or provide justification",
                ))

    # ---------- business rules ----------

    def _validate_physical_progress(self, report: MMRReport, errors: List[ParseError],
                                    warnings: List[ParseWarning]) -> None:
        annexure = AnnexureType.PHYSICAL_PROGRESS.value
        for index, activity in enumerate(report.annexures.physical_progress.activities, start=1):
            if activity.planned_qty < 0 or activity.actual_qty < 0:
                errors.append(ParseError(
                    annexure=annexure,
                    message=f"Activity {index} has negative quantities",
                    severity=Severity.ERROR,
                ))

            if activity.planned_qty > 0:
                calculated = activity.actual_qty / activity.planned_qty * 100
                if abs(calculated - activity.progress) > self.rules.progress_calc_tolerance:
                    warnings.append(ParseWarning(
                        annexure=annexure,
                        message=f"Activity {index} progress calculation mismatch "
                                f"(stated {activity.progress:.1f}%, calculated {calculated:.1f}%)",
                        suggestion="Verify progress calculation",
                    ))

    def _validate_financial_progress(self, report: MMRReport, warnings: List[ParseWarning]) -> None:
        annexure = AnnexureType.FINANCIAL_PROGRESS.value
        overrun_limit = 1 + self.rules.budget_overrun_ratio
        for item in report.annexures.financial_progress.budget_items:
            expected_variance = item.actual - item.budgeted
            if abs(expected_variance - item.variance) > self.rules.variance_epsilon:
                warnings.append(ParseWarning(
                    annexure=annexure,
                    message=f"Variance calculation error for {item.category}",
                    suggestion="Recalculate variance",
                ))

            if item.actual > item.budgeted * overrun_limit:
                warnings.append(ParseWarning(
                    annexure=annexure,
                    message=f"Budget overrun for {item.category}",
                    suggestion="Review budget allocation",
                ))

    def _validate_manpower(self, report: MMRReport, errors: List[ParseError]) -> None:
        annexure = AnnexureType.MANPOWER.value
        for entry in report.annexures.manpower.entries:
            if entry.planned < 0 or entry.actual < 0:
                errors.append(ParseError(
                    annexure=annexure,
                    message=f"Manpower category '{entry.category}' has negative counts",
                    severity=Severity.ERROR,
                ))

    def _validate_equipment(self, report: MMRReport, warnings: List[ParseWarning]) -> None:
        annexure = AnnexureType.EQUIPMENT.value
        for entry in report.annexures.equipment.entries:
            if entry.operational > entry.deployed:
                warnings.append(ParseWarning(
                    annexure=annexure,
                    message=f"Equipment '{entry.type}' has more operational units than deployed",
                    suggestion="Check deployed and operational counts",
                ))

    def _validate_quality(self, report: MMRReport, warnings: List[ParseWarning]) -> None:
        annexure = AnnexureType.QUALITY.value
        for test in report.annexures.quality.tests:
            if test.passed + test.failed > test.conducted:
                warnings.append(ParseWarning(
                    annexure=annexure,
                    message=f"Quality test '{test.test}' reports more results than tests conducted",
                    suggestion="Check passed, failed and conducted counts",
                ))

    # ---------- cross-validation ----------

    def _cross_validate(self, report: MMRReport, warnings: List[ParseWarning], now: datetime) -> None:
        annexures = report.annexures
        if annexures.summary is None:
            return

        if annexures.financial_progress is not None:
            total_from_annexure = annexures.financial_progress.total_actual
            difference = abs(total_from_annexure - report.summary.actual_expenditure)
            if difference > self.rules.expenditure_tolerance:
                warnings.append(ParseWarning(
                    annexure=CROSS_VALIDATION_ANNEXURE,
                    message="Summary expenditure does not match financial progress total",
                    suggestion="Reconcile summary with detailed annexures",
                ))

        if annexures.overview is not None:
            end_date = annexures.overview.project_details.end_date
            if end_date < now and report.summary.physical_progress < 100:
                warnings.append(ParseWarning(
                    annexure=CROSS_VALIDATION_ANNEXURE,
                    message="Project past end date but not complete",
                    suggestion="Update project schedule or completion status",
                ))
