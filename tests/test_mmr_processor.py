"""
End-to-end tests for the workbook parse pipeline
"""

from datetime import datetime

import pytest

from mmr_processor.exceptions import JobCancelledError
from mmr_processor.models.report_models import (
    GENERAL_ANNEXURE,
    AnnexureSummary,
    AnnexureType,
    Severity
)
from mmr_processor.processors.workbook_loader import Sheet

from sample_workbooks import FINANCIAL_ROWS, SUMMARY_ROWS


class TestParseFile:
    """Full parses of in-memory workbooks"""

    def test_summary_only_workbook(self, processor, summary_workbook):
        result = processor.parse_file(summary_workbook, file_name="PRJ006_MMR_July_2025.xlsx")

        assert result.success
        assert result.errors == []
        assert result.warnings == []
        assert result.confidence == 100

        report = result.data
        assert report.project_id == "PRJ006"
        assert report.month == "July"
        assert report.year == 2025
        assert report.report_date == datetime(2025, 7, 1)
        assert report.summary.physical_progress == 65
        assert report.summary.actual_expenditure == 35000000
        assert report.annexures.summary.project_name == "Metro Line Extension"
        assert report.metadata.file_name == "PRJ006_MMR_July_2025.xlsx"
        assert report.metadata.format_version == "standard"
        assert report.metadata.parse_confidence == 100

    def test_full_workbook(self, processor, full_workbook):
        result = processor.parse_file(full_workbook, file_name="report.xlsx")

        assert result.success
        assert result.errors == []
        assert [w.message for w in result.warnings] == ["Milestone 2 delayed by more than 30 days"]
        assert result.confidence == 100

        annexures = result.data.annexures
        assert annexures.present_types() == [
            AnnexureType.SUMMARY,
            AnnexureType.OVERVIEW,
            AnnexureType.PHYSICAL_PROGRESS,
            AnnexureType.FINANCIAL_PROGRESS,
        ]
        assert len(annexures.physical_progress.activities) == 3
        assert annexures.financial_progress.total_actual == 35000000

    def test_no_recognizable_sheets(self, processor, make_workbook):
        content = make_workbook({"Notes": [["Random", "Notes"]]})
        result = processor.parse_file(content, file_name="notes.xlsx")

        assert not result.success
        assert result.data is None
        assert result.confidence == 0
        assert len(result.errors) == 1
        assert result.errors[0].annexure == GENERAL_ANNEXURE
        assert result.errors[0].severity == Severity.CRITICAL
        assert result.errors[0].message == "No valid annexures found in the file"
        assert result.sheets[0].annexure == AnnexureType.OTHER

    def test_corrupt_file(self, processor):
        result = processor.parse_file(b"definitely not a workbook", file_name="broken.xlsx")

        assert not result.success
        assert result.data is None
        assert result.confidence == 0
        assert len(result.critical_errors) == 1
        assert result.errors[0].annexure == GENERAL_ANNEXURE
        assert result.errors[0].message.startswith("Failed to parse file")

    def test_missing_file_path(self, processor, tmp_path):
        result = processor.parse_file(str(tmp_path / "missing.xlsx"))
        assert not result.success
        assert result.critical_errors

    def test_critical_summary_error_discards_report(self, processor, make_workbook):
        content = make_workbook({
            "Summary": [["Total Budget", 10]],
            "Financial Progress": FINANCIAL_ROWS,
        })
        result = processor.parse_file(content, file_name="report.xlsx")

        assert not result.success
        assert result.data is None
        assert result.confidence == 0
        assert result.errors[0].message == "Project name not found"
        assert [entry.extracted for entry in result.sheets] == [False, True]

    def test_duplicate_annexure_sheets(self, processor, make_workbook):
        content = make_workbook({"Summary": SUMMARY_ROWS, "Executive Summary": SUMMARY_ROWS})
        result = processor.parse_file(content, file_name="report.xlsx")

        assert result.success
        assert len(result.warnings) == 1
        assert "Duplicate" in result.warnings[0].message
        assert [entry.extracted for entry in result.sheets] == [True, False]

    def test_inventory_lists_every_sheet(self, processor, make_workbook):
        content = make_workbook({"Summary": SUMMARY_ROWS, "Scratch": [["a", "b"], [1, 2]]})
        result = processor.parse_file(content, file_name="report.xlsx")

        assert [entry.name for entry in result.sheets] == ["Summary", "Scratch"]
        scratch = result.sheets[1]
        assert scratch.annexure == AnnexureType.OTHER
        assert not scratch.extracted
        assert scratch.header_preview == ["a", "b"]
        assert (scratch.rows, scratch.columns) == (2, 2)

    def test_json_output_omits_empty_annexures(self, processor, summary_workbook):
        output = processor.parse_file(summary_workbook, file_name="report.xlsx").to_json_dict()

        assert output['success'] is True
        assert 'overview' not in output['data']['annexures']
        assert output['data']['report_date'].startswith("2025-07-01")


class TestProgressCallback:
    """Progress is reported per sheet, then once more after validation"""

    def test_reports_each_step(self, processor, full_workbook):
        calls = []
        processor.parse_file(full_workbook, file_name="report.xlsx",
                             progress_callback=lambda current, total, message: calls.append((current, total)))

        assert calls == [(1, 6), (2, 6), (3, 6), (4, 6), (5, 6), (6, 6)]

    def test_cancellation_propagates(self, processor, summary_workbook):
        def cancel(current, total, message):
            raise JobCancelledError("cancelled")

        with pytest.raises(JobCancelledError):
            processor.parse_file(summary_workbook, file_name="report.xlsx", progress_callback=cancel)


class TestIdentifyReport:
    """Project id and reporting period from the summary sheet, then the file name"""

    def test_summary_fields_win(self, processor):
        summary = AnnexureSummary(project_name="X", project_code="PRJ001", reporting_period="March 2024")
        assert processor.identify_report(summary, "PRJ999_MMR_June_2023.xlsx") == ("PRJ001", "March", 2024)

    def test_file_name_fallback(self, processor):
        assert processor.identify_report(None, "prj012_MMR_Sept_2024.xlsx") == ("PRJ012", "September", 2024)

    def test_iso_period(self, processor):
        summary = AnnexureSummary(project_name="X", reporting_period="2025-03-31")
        project_id, month, year = processor.identify_report(summary, "")

        assert project_id == "UNKNOWN"
        assert (month, year) == ("March", 2025)

    def test_nothing_identifiable(self, processor):
        assert processor.identify_report(None, "report.xlsx") == ("UNKNOWN", "Unknown", datetime.now().year)


class TestDetectHeader:
    def test_first_row_with_two_cells(self, processor):
        sheet = Sheet.from_rows("Sheet1", [["Title"], [], ["Item", "Qty"]])
        assert processor.detect_header(sheet) == ["Item", "Qty"]

    def test_no_header(self, processor):
        assert processor.detect_header(Sheet.from_rows("Sheet1", [["Title"]])) == []
