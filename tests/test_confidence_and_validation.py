"""
Tests for the confidence scorer and the report validator
"""

from datetime import datetime

import pytest

from mmr_processor.models.config_models import ConfidenceWeights, ValidationRules
from mmr_processor.models.report_models import (
    CROSS_VALIDATION_ANNEXURE,
    Activity,
    Annexures,
    AnnexureSummary,
    BudgetItem,
    Equipment,
    EquipmentEntry,
    FinancialProgress,
    Manpower,
    ManpowerEntry,
    Milestone,
    MMRReport,
    ParseError,
    ParseWarning,
    PhysicalProgress,
    ProjectDetails,
    ProjectOverview,
    Quality,
    QualityTest,
    ReportMetadata,
    Severity,
    SummaryMetrics
)
from mmr_processor.processors.confidence_scorer import ConfidenceScorer
from mmr_processor.validators.mmr_validator import MMRValidator

NOW = datetime(2025, 8, 1)


def make_report(summary=None, /, **annexures) -> MMRReport:
    if summary is None:
        summary = SummaryMetrics(total_budget=1000, actual_expenditure=500,
                                 physical_progress=50, financial_progress=50, variance=-500)
    annexures.setdefault('summary', AnnexureSummary(project_name="Test Project"))
    return MMRReport(
        year=2025,
        month="July",
        report_date=datetime(2025, 7, 1),
        summary=summary,
        annexures=Annexures(**annexures),
        metadata=ReportMetadata(uploaded_at=NOW, parsed_at=NOW),
    )


def details(**overrides) -> ProjectDetails:
    values = dict(name="Tower", location="City", client="Owner", contract_value=1000,
                  start_date=datetime(2024, 1, 1), end_date=datetime(2026, 1, 1))
    values.update(overrides)
    return ProjectDetails(**values)


def error(severity=Severity.ERROR) -> ParseError:
    return ParseError(annexure="Test", message="problem", severity=severity)


def warning() -> ParseWarning:
    return ParseWarning(annexure="Test", message="advisory")


class TestConfidenceScorer:
    """Weighted header match, completeness and validation pass rate"""

    def test_clean_parse_scores_100(self):
        assert ConfidenceScorer().score(3, [], []) == 100

    def test_nothing_extracted(self):
        scores = ConfidenceScorer().factor_scores(0, [], [])
        assert scores['header_match'] == 0
        assert ConfidenceScorer().score(0, [], []) == 70

    def test_errors_lower_validation_factor(self):
        # validation_pass = 1 - 1/2
        assert ConfidenceScorer().score(2, [error()], [warning()]) == 85

    def test_critical_errors_lower_completeness(self):
        scorer = ConfidenceScorer()
        assert scorer.factor_scores(1, [error(Severity.CRITICAL)], [])['data_complete'] == pytest.approx(0.8)
        assert scorer.factor_scores(1, [error(Severity.CRITICAL)] * 10, [])['data_complete'] == 0

    def test_more_errors_never_raise_confidence(self):
        scorer = ConfidenceScorer()
        previous = 101
        for count in range(6):
            current = scorer.score(2, [error()] * count, [warning()])
            assert 0 <= current <= previous
            previous = current

    def test_custom_weights(self):
        weights = ConfidenceWeights(header_match=1.0, data_complete=0.0, validation_pass=0.0)
        assert ConfidenceScorer(weights).score(1, [error()], []) == 100

    def test_half_points_round_up(self):
        weights = ConfidenceWeights(header_match=0.0, data_complete=0.0, validation_pass=1.0)
        # validation_pass = 1 - 7/8
        assert ConfidenceScorer(weights).score(1, [error()] * 7, [warning()]) == 13

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValueError):
            ConfidenceWeights(header_match=0.5, data_complete=0.5, validation_pass=0.5)


class TestSummaryRules:
    def test_valid_report(self):
        result = MMRValidator().validate(make_report(), NOW)
        assert result.valid
        assert result.errors == [] and result.warnings == []

    def test_schema_ranges(self):
        summary = SummaryMetrics(total_budget=0, actual_expenditure=-1,
                                 physical_progress=120, financial_progress=50, variance=0)
        result = MMRValidator().validate(make_report(summary), NOW)

        assert not result.valid
        assert len(result.errors) == 3
        assert {e.annexure for e in result.errors} == {"Summary"}

    def test_physical_ahead_of_financial(self):
        summary = SummaryMetrics(total_budget=1000, actual_expenditure=100,
                                 physical_progress=80, financial_progress=50, variance=-900)
        result = MMRValidator().validate(make_report(summary), NOW)

        assert result.valid
        assert result.warnings[0].message == "Physical progress significantly ahead of financial progress"

    def test_gap_at_threshold_is_accepted(self):
        summary = SummaryMetrics(total_budget=1000, actual_expenditure=100,
                                 physical_progress=70, financial_progress=50, variance=-900)
        assert MMRValidator().validate(make_report(summary), NOW).warnings == []

    def test_summary_rules_skipped_without_summary_sheet(self):
        summary = SummaryMetrics(total_budget=0)
        report = make_report(summary, summary=None)
        assert MMRValidator().validate(report, NOW).valid


class TestOverviewRules:
    def test_missing_fields_are_errors(self):
        overview = ProjectOverview(project_details=details(client="", contract_value=0))
        result = MMRValidator().validate(make_report(overview=overview), NOW)

        assert len(result.errors) == 2
        assert all(e.annexure == "Overview" for e in result.errors)

    def test_end_before_start(self):
        overview = ProjectOverview(project_details=details(end_date=datetime(2023, 1, 1)))
        result = MMRValidator().validate(make_report(overview=overview), NOW)
        assert not result.valid

    def test_delayed_milestone_warns(self):
        milestones = [
            Milestone(id="M1", planned_date=datetime(2025, 1, 1), actual_date=datetime(2025, 1, 20)),
            Milestone(id="M2", planned_date=datetime(2025, 1, 1), actual_date=datetime(2025, 3, 1)),
            Milestone(id="M3", planned_date=datetime(2025, 1, 1)),
        ]
        overview = ProjectOverview(project_details=details(), milestones=milestones)
        result = MMRValidator().validate(make_report(overview=overview), NOW)

        assert [w.message for w in result.warnings] == ["Milestone 2 delayed by more than 30 days"]


class TestBusinessRules:
    def test_negative_quantities(self):
        progress = PhysicalProgress(activities=[Activity(id="A1", planned_qty=-5, actual_qty=1)])
        result = MMRValidator().validate(make_report(physical_progress=progress), NOW)
        assert result.errors[0].message == "Activity 1 has negative quantities"

    def test_progress_mismatch(self):
        progress = PhysicalProgress(activities=[
            Activity(id="A1", planned_qty=100, actual_qty=50, progress=52),
            Activity(id="A2", planned_qty=100, actual_qty=50, progress=70),
        ])
        result = MMRValidator().validate(make_report(physical_progress=progress), NOW)

        assert len(result.warnings) == 1
        assert result.warnings[0].message.startswith("Activity 2 progress calculation mismatch")

    def test_variance_and_overrun(self):
        financial = FinancialProgress(budget_items=[
            BudgetItem(category="Civil", budgeted=100, actual=90, variance=-10),
            BudgetItem(category="MEP", budgeted=100, actual=150, variance=40),
        ])
        summary = SummaryMetrics(total_budget=200, actual_expenditure=240,
                                 physical_progress=50, financial_progress=50, variance=40)
        result = MMRValidator().validate(make_report(summary, financial_progress=financial), NOW)

        messages = [w.message for w in result.warnings]
        assert messages == ["Variance calculation error for MEP", "Budget overrun for MEP"]

    def test_manpower_negative_counts(self):
        manpower = Manpower(entries=[ManpowerEntry(category="Skilled", planned=10, actual=-1)])
        result = MMRValidator().validate(make_report(manpower=manpower), NOW)
        assert not result.valid

    def test_equipment_and_quality_consistency(self):
        equipment = Equipment(entries=[EquipmentEntry(type="Crane", deployed=2, operational=3)])
        quality = Quality(tests=[QualityTest(test="Slump", conducted=5, passed=4, failed=2)])
        result = MMRValidator().validate(make_report(equipment=equipment, quality=quality), NOW)

        assert result.valid
        assert len(result.warnings) == 2


class TestCrossValidation:
    """Summary figures are reconciled against the detailed annexures"""

    def financial(self, actual: float) -> FinancialProgress:
        return FinancialProgress(budget_items=[
            BudgetItem(category="Civil", budgeted=400, actual=actual / 2, variance=actual / 2 - 400),
            BudgetItem(category="MEP", budgeted=400, actual=actual / 2, variance=actual / 2 - 400),
        ])

    def test_within_tolerance(self):
        report = make_report(financial_progress=self.financial(600))
        assert MMRValidator().validate(report, NOW).warnings == []

    def test_outside_tolerance(self):
        report = make_report(financial_progress=self.financial(300))
        warnings = MMRValidator().validate(report, NOW).warnings

        assert len(warnings) == 1
        assert warnings[0].annexure == CROSS_VALIDATION_ANNEXURE
        assert warnings[0].message == "Summary expenditure does not match financial progress total"

    def test_custom_tolerance(self):
        rules = ValidationRules(expenditure_tolerance=250)
        report = make_report(financial_progress=self.financial(300))
        assert MMRValidator(rules).validate(report, NOW).warnings == []

    def test_past_end_date_not_complete(self):
        overview = ProjectOverview(project_details=details(end_date=datetime(2025, 6, 30)))
        warnings = MMRValidator().validate(make_report(overview=overview), NOW).warnings
        assert [w.message for w in warnings] == ["Project past end date but not complete"]

    def test_no_cross_check_without_summary_sheet(self):
        report = make_report(financial_progress=self.financial(300))
        report.annexures.summary = None
        assert MMRValidator().validate(report, NOW).warnings == []
